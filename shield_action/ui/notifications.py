import platform
import sys
import threading
import time
import webbrowser
from dataclasses import dataclass
from enum import Enum
from typing import Any

from shield_action.logger import get_logger

if sys.platform == "win32":
    from win10toast import ToastNotifier  # type: ignore[import-untyped, unused-ignore]

log = get_logger("ui.notifications")

MS_PER_SECOND = 1000


class NotificationLevel(Enum):
    """Notification severity levels used by the service."""

    INFO = "info"
    WARNING = "warning"
    URGENT = "urgent"


@dataclass
class NotificationConfig:
    """Configuration for :class:`NotificationService`.

    ``toast_duration`` is only used on Windows where a toast is shown.
    """

    toast_duration: int = 5
    default_title: str = "Shield"


class NotificationService:
    """Local notification collaborator with history tracking.

    Payloads follow the shield config shape: ``title``, ``body`` (or
    ``subtitle``) and an optional ``level``. On Windows a toast is shown;
    elsewhere the notification is only recorded and reported as not delivered.
    """

    def __init__(self, config: NotificationConfig | None = None) -> None:
        self.platform = platform.system()
        self.config = config or NotificationConfig()
        self._history: list[dict[str, Any]] = []
        self._lock = threading.Lock()

    def schedule_notification(
        self, payload: dict[str, Any], fire_delay_ms: float = 0
    ) -> bool:
        """通知をスケジュールする. 遅延が無ければ即時表示."""
        if fire_delay_ms and fire_delay_ms > 0:
            timer = threading.Timer(
                fire_delay_ms / MS_PER_SECOND, self._show, args=(payload,)
            )
            timer.daemon = True
            timer.start()
            log.info("Notification scheduled in %sms", fire_delay_ms)
            return True
        return self._show(payload)

    def _show(self, payload: dict[str, Any]) -> bool:
        title = str(payload.get("title") or self.config.default_title)
        message = str(payload.get("body") or payload.get("subtitle") or "")
        level = _level_from(payload.get("level"))

        success = False
        if self.platform == "Windows":
            notifier = ToastNotifier()
            notifier.show_toast(  # pyright: ignore[reportUnknownMemberType]
                title, message, duration=self.config.toast_duration, threaded=True
            )
            success = True
        with self._lock:
            self._history.append(
                {
                    "title": title,
                    "message": message,
                    "level": level.value,
                    "payload": payload,
                    "timestamp": time.time(),
                    "delivered": success,
                },
            )
        return success

    # ------------------------------------------------------------------
    # Query helpers
    def get_capabilities(self) -> dict[str, Any]:
        return {
            "platform": self.platform,
            "supports_toast": self.platform == "Windows",
        }

    def get_notification_history(self) -> list[dict[str, Any]]:
        """Return a copy of the notification history."""
        with self._lock:
            return list(self._history)


class LocalUriOpener:
    """Open URIs on this machine, or just record them when disabled."""

    def __init__(self, *, open_in_browser: bool = False) -> None:
        self.open_in_browser = open_in_browser
        self._opened: list[str] = []

    def open_uri(self, uri: str) -> bool:
        self._opened.append(uri)
        if not self.open_in_browser:
            log.info("Would open %s", uri)
            return True
        return webbrowser.open(uri)

    def get_opened(self) -> list[str]:
        return list(self._opened)


def _level_from(value: object) -> NotificationLevel:
    for level in NotificationLevel:
        if level.value == value:
            return level
    return NotificationLevel.INFO


_service: NotificationService | None = None


def get_notification_service() -> NotificationService:
    """Return the process-wide default notification service."""
    global _service  # noqa: PLW0603
    if _service is None:
        _service = NotificationService()
    return _service
