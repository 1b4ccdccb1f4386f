"""Compose the host response and deliver it, optionally after a delay."""

import asyncio
import threading
from collections.abc import Callable

from shield_action.logger import get_logger
from shield_action.model.models import Behavior, EngineResponse

__all__ = ["DelayedCompletion", "compose", "respond_after_delay"]

log = get_logger("engine.response")

MS_PER_SECOND = 1000


def compose(behavior: Behavior | str | None, delay_ms: float | None) -> EngineResponse:
    """behavior が無い場合は close."""
    if not isinstance(behavior, Behavior):
        behavior = Behavior.parse(behavior)
    if delay_ms is not None and delay_ms < 0:
        delay_ms = None
    return EngineResponse(behavior=behavior, delay_ms=delay_ms)


class DelayedCompletion:
    """Invoke the host completion callback exactly once.

    With a delay the callback fires from a ``threading.Timer``; the actions
    have already run by then, only the response is held back.
    """

    def __init__(self, callback: Callable[[EngineResponse], None]) -> None:
        self._callback = callback
        self._lock = threading.Lock()
        self._fired = False
        self._timer: threading.Timer | None = None

    @property
    def fired(self) -> bool:
        return self._fired

    def deliver(self, response: EngineResponse) -> None:
        if response.delay_ms:
            with self._lock:
                if self._fired or self._timer is not None:
                    log.warning("Completion already scheduled, ignoring %s", response)
                    return
                self._timer = threading.Timer(
                    response.delay_ms / MS_PER_SECOND, self._fire, args=(response,)
                )
                self._timer.daemon = True
                self._timer.start()
            log.info(
                "Response %s deferred by %sms",
                response.behavior.value,
                response.delay_ms,
            )
            return
        self._fire(response)

    def cancel(self) -> bool:
        """Stop a pending timer. Returns True if a callback was prevented."""
        with self._lock:
            if self._timer is None or self._fired:
                return False
            self._timer.cancel()
            self._fired = True
            return True

    def _fire(self, response: EngineResponse) -> None:
        with self._lock:
            if self._fired:
                log.warning("Completion already delivered, ignoring %s", response)
                return
            self._fired = True
        self._callback(response)


async def respond_after_delay(response: EngineResponse) -> EngineResponse:
    """遅延がある場合は他の処理をブロックせずに待ってから返す."""
    if response.delay_ms:
        await asyncio.sleep(response.delay_ms / MS_PER_SECOND)
    return response
