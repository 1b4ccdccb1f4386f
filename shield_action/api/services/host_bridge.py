import os
from typing import Any

import requests

from shield_action.logger import get_logger

HTTP_OK = 200

log = get_logger("api.host_bridge")


class HostBridge:
    """ホストアプリへの HTTP ブリッジ (URI オープンと通知)."""

    def __init__(self, base_url: str, timeout: float = 5.0) -> None:
        """初期化

        Args:
        base_url: ホストアプリのベースURL（例: http://127.0.0.1:5578）
        timeout: リクエストタイムアウト(秒)

        """
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.open_url = f"{self.base_url}/open"
        self.notify_url = f"{self.base_url}/notify"

    def is_available(self) -> bool:
        """ホストアプリが応答するかチェック."""
        try:
            response = requests.get(f"{self.base_url}/status", timeout=self.timeout)
        except requests.RequestException:
            return False
        else:
            status_code: int = response.status_code
            return status_code == HTTP_OK

    def _post(self, url: str, payload: dict[str, Any]) -> bool:
        try:
            response = requests.post(url, json=payload, timeout=self.timeout)
        except requests.exceptions.Timeout:
            log.warning("Host bridge timeout: %s", url)
            return False
        except requests.RequestException as e:
            log.warning("Host bridge error for %s: %s", url, e)
            return False

        ok = response.status_code == HTTP_OK
        if not ok:
            log.warning("Host bridge %s returned %s", url, response.status_code)
        return ok

    def open_uri(self, uri: str) -> bool:
        """URI をホストアプリで開く (ベストエフォート)."""
        return self._post(self.open_url, {"uri": uri})

    def schedule_notification(
        self, payload: dict[str, Any], fire_delay_ms: float = 0
    ) -> bool:
        """通知のスケジュールをホストアプリに依頼する."""
        return self._post(
            self.notify_url, {"payload": payload, "delayMs": fire_delay_ms}
        )


def create_host_bridge(
    base_url: str | None = None,
    timeout: float | None = None,
) -> HostBridge:
    """ホストブリッジのファクトリ関数.

    環境変数で設定:
    - SHIELD_HOST_URL: ホストアプリのベースURL（例: http://127.0.0.1:5578）
    """
    resolved_base = base_url or os.getenv("SHIELD_HOST_URL")
    if not resolved_base:
        msg = "SHIELD_HOST_URL must be set (e.g., in .env.local)."
        raise RuntimeError(msg)
    return HostBridge(base_url=resolved_base, timeout=timeout or 5.0)
