from pathlib import Path

from shield_action.api.services.host_bridge import create_host_bridge
from shield_action.config import EngineSettings
from shield_action.engine.shield_engine import ShieldActionEngine
from shield_action.logger import get_logger
from shield_action.store.kv_store import InMemoryStore, JsonFileStore, KeyValueStore
from shield_action.store.selections import SelectionStore
from shield_action.ui.notifications import LocalUriOpener, get_notification_service

log = get_logger("engine.factory")


def create_store(settings: EngineSettings) -> KeyValueStore:
    if settings.store_path:
        return JsonFileStore(Path(settings.store_path))
    log.warning("SHIELD_STORE_PATH not set, using an in-memory store")
    return InMemoryStore()


def create_engine(settings: EngineSettings | None = None) -> ShieldActionEngine:
    """設定からエンジンを組み立てるファクトリ関数.

    SHIELD_HOST_URL があればホストアプリへの HTTP ブリッジを使い、
    無ければローカルの通知サービスを使う。
    """
    settings = settings or EngineSettings.from_env()
    selections = SelectionStore(create_store(settings), settings.keys)

    if settings.host_url:
        bridge = create_host_bridge(settings.host_url, settings.host_timeout)
        log.info("Using host bridge at %s", bridge.base_url)
        return ShieldActionEngine(selections, uri_opener=bridge, notifier=bridge)

    return ShieldActionEngine(
        selections,
        uri_opener=LocalUriOpener(),
        notifier=get_notification_service(),
    )
