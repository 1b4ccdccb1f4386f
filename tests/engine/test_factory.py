from shield_action.api.services.host_bridge import HostBridge
from shield_action.config import EngineSettings, StoreKeys
from shield_action.engine.factory import create_engine
from shield_action.store.kv_store import InMemoryStore, JsonFileStore
from shield_action.ui.notifications import LocalUriOpener, NotificationService


def test_local_engine_without_settings():
    engine = create_engine(EngineSettings())
    try:
        assert isinstance(engine.selections.store, InMemoryStore)
        assert isinstance(engine.uri_opener, LocalUriOpener)
        assert isinstance(engine.notifier, NotificationService)
    finally:
        engine.shutdown()


def test_engine_with_shared_file_and_host(tmp_path):
    keys = StoreKeys(whitelist_key="allowList")
    settings = EngineSettings(
        store_path=str(tmp_path / "shared.json"),
        host_url="http://127.0.0.1:5578",
        host_timeout=1.0,
        keys=keys,
    )

    engine = create_engine(settings)
    try:
        assert isinstance(engine.selections.store, JsonFileStore)
        assert engine.selections.keys is keys
        assert isinstance(engine.uri_opener, HostBridge)
        assert engine.notifier is engine.uri_opener
        assert engine.uri_opener.timeout == 1.0
    finally:
        engine.shutdown()
