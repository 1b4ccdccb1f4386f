"""環境変数ベースの設定."""

import os
from dataclasses import dataclass
from pathlib import Path

from shield_action.logger import get_logger

log = get_logger("config")

DEFAULT_HOST_TIMEOUT = 5.0


def load_env_local(path: Path) -> bool:
    """``.env.local`` を読み込み環境変数に反映する.

    既に設定されている値は上書きしない。ファイルが無ければ False を返す。
    """
    env_path = path / ".env.local"
    if not env_path.exists():
        return False
    for raw_line in env_path.read_text(encoding="utf-8").splitlines():
        line = raw_line.strip()
        if not line or line.startswith("#"):
            continue
        if "=" not in line:
            continue
        k, v = line.split("=", 1)
        k = k.strip()
        v = v.strip().strip('"').strip("'")
        if k and k not in os.environ:
            os.environ[k] = v
    log.info("Loaded %s", env_path)
    return True


@dataclass(frozen=True)
class StoreKeys:
    """Keys shared between the controlling process and the extension."""

    selection_config_prefix: str = "shieldActionConfigForSelection_"
    global_config_key: str = "shieldActionConfig"
    whitelist_key: str = "whitelist"
    selection_prefix: str = "familyActivitySelectionId_"
    selection_ids_key: str = "familyActivitySelectionIds"
    monitored_names_key: str = "monitoredActivityNames"
    block_state_key: str = "blockState"
    effective_policy_key: str = "effectiveBlockPolicy"


# StoreKeys のフィールドと上書き用の環境変数
KEY_ENV_VARS = {
    "selection_config_prefix": "SHIELD_KEY_SELECTION_CONFIG_PREFIX",
    "global_config_key": "SHIELD_KEY_GLOBAL_CONFIG",
    "whitelist_key": "SHIELD_KEY_WHITELIST",
    "selection_prefix": "SHIELD_KEY_SELECTION_PREFIX",
    "selection_ids_key": "SHIELD_KEY_SELECTION_IDS",
    "monitored_names_key": "SHIELD_KEY_MONITORED_NAMES",
    "block_state_key": "SHIELD_KEY_BLOCK_STATE",
    "effective_policy_key": "SHIELD_KEY_EFFECTIVE_POLICY",
}


@dataclass(frozen=True)
class EngineSettings:
    """Runtime settings for the engine and its adapters."""

    store_path: str | None = None
    host_url: str | None = None
    host_timeout: float = DEFAULT_HOST_TIMEOUT
    keys: StoreKeys = StoreKeys()

    @classmethod
    def from_env(cls) -> "EngineSettings":
        """環境変数から設定を構築する.

        - SHIELD_STORE_PATH: 共有ストアの JSON ファイル (未設定ならメモリ内)
        - SHIELD_HOST_URL: ホストアプリのブリッジ URL (未設定ならローカル通知)
        - SHIELD_HOST_TIMEOUT: ブリッジのタイムアウト(秒)
        - SHIELD_KEY_*: ストアキーの上書き
        """
        timeout_raw = os.getenv("SHIELD_HOST_TIMEOUT")
        try:
            timeout = float(timeout_raw) if timeout_raw else DEFAULT_HOST_TIMEOUT
        except ValueError:
            log.warning("Invalid SHIELD_HOST_TIMEOUT=%r, using default", timeout_raw)
            timeout = DEFAULT_HOST_TIMEOUT

        defaults = StoreKeys()
        keys = StoreKeys(
            **{
                field: os.getenv(env) or getattr(defaults, field)
                for field, env in KEY_ENV_VARS.items()
            }
        )
        return cls(
            store_path=os.getenv("SHIELD_STORE_PATH") or None,
            host_url=os.getenv("SHIELD_HOST_URL") or None,
            host_timeout=timeout,
            keys=keys,
        )
