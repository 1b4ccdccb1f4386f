"""Single-threaded context for side effects that belong to the host UI.

Opening URIs and scheduling notifications are dispatched here and never
awaited for control flow; their outcome is only logged.
"""

import threading
from collections.abc import Callable
from concurrent.futures import Future, ThreadPoolExecutor, wait
from typing import Any

from shield_action.logger import get_logger

__all__ = ["MainContext"]

log = get_logger("engine.main")


class MainContext:
    def __init__(self, name: str = "shield-main") -> None:
        self._executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix=name)
        self._pending: set[Future[Any]] = set()
        self._lock = threading.Lock()

    def dispatch(self, label: str, fn: Callable[..., Any], *args: Any) -> Future[Any]:
        """Run ``fn(*args)`` on the context; log the outcome when it finishes."""
        future = self._executor.submit(fn, *args)
        with self._lock:
            self._pending.add(future)

        def _done(f: Future[Any]) -> None:
            with self._lock:
                self._pending.discard(f)
            exc = f.exception()
            if exc is not None:
                log.error("%s failed: %s", label, exc)
            elif f.result() is False:
                log.warning("%s reported failure", label)
            else:
                log.info("%s completed", label)

        future.add_done_callback(_done)
        return future

    def drain(self, timeout: float | None = None) -> None:
        """Wait for everything dispatched so far."""
        with self._lock:
            pending = list(self._pending)
        wait(pending, timeout=timeout)

    def shutdown(self) -> None:
        self._executor.shutdown(wait=True)
