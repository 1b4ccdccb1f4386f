"""Shared key-value store used by the controlling process and the extension.

Both sides follow the same discipline: ``sync_before_read`` before looking at
anything, ``sync_after_write`` after changing anything. There is no lock
across processes, so the last writer wins.
"""

import json
import os
import tempfile
import threading
from pathlib import Path
from typing import Any, Protocol

from shield_action.errors import StoreUnavailableError
from shield_action.logger import get_logger

__all__ = ["InMemoryStore", "JsonFileStore", "KeyValueStore"]

log = get_logger("store")


class KeyValueStore(Protocol):
    def get(self, key: str) -> Any | None: ...

    def set(self, key: str, value: Any) -> None: ...

    def remove(self, key: str) -> None: ...

    def sync_before_read(self) -> None: ...

    def sync_after_write(self) -> None: ...


class InMemoryStore:
    """Process-local store, for tests and single-process setups."""

    def __init__(self, initial: dict[str, Any] | None = None) -> None:
        self._data: dict[str, Any] = dict(initial or {})
        self._lock = threading.Lock()
        self.sync_count = 0

    def get(self, key: str) -> Any | None:
        with self._lock:
            return self._data.get(key)

    def set(self, key: str, value: Any) -> None:
        with self._lock:
            self._data[key] = value

    def remove(self, key: str) -> None:
        with self._lock:
            self._data.pop(key, None)

    def sync_before_read(self) -> None:
        self.sync_count += 1

    def sync_after_write(self) -> None:
        self.sync_count += 1

    def snapshot(self) -> dict[str, Any]:
        with self._lock:
            return dict(self._data)


class JsonFileStore:
    """Store backed by one JSON file that several processes share.

    ``sync_before_read`` reloads the file so the other process's writes are
    visible, flushing any pending local change first. ``sync_after_write``
    flushes the in-memory copy atomically with a temp file and ``os.replace``.
    """

    def __init__(self, path: str | Path) -> None:
        self.path = Path(path)
        self._data: dict[str, Any] = {}
        self._dirty = False
        self._lock = threading.Lock()

    def get(self, key: str) -> Any | None:
        with self._lock:
            return self._data.get(key)

    def set(self, key: str, value: Any) -> None:
        with self._lock:
            self._data[key] = value
            self._dirty = True

    def remove(self, key: str) -> None:
        with self._lock:
            if key in self._data:
                del self._data[key]
                self._dirty = True

    def sync_before_read(self) -> None:
        with self._lock:
            # 未保存の変更を読み込みで捨てない
            if self._dirty:
                self._flush()
            self._data = self._load()
            self._dirty = False

    def sync_after_write(self) -> None:
        with self._lock:
            if not self._dirty:
                return
            self._flush()
            self._dirty = False

    def _load(self) -> dict[str, Any]:
        if not self.path.exists():
            return {}
        try:
            with self.path.open(encoding="utf-8") as f:
                data = json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            msg = f"cannot read store at {self.path}: {e}"
            raise StoreUnavailableError(msg) from e
        if not isinstance(data, dict):
            msg = f"store at {self.path} is not a JSON object"
            raise StoreUnavailableError(msg)
        return data

    def _flush(self) -> None:
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            fd, tmp_path = tempfile.mkstemp(
                prefix=f".{self.path.name}.", dir=self.path.parent
            )
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                json.dump(self._data, f, ensure_ascii=False, sort_keys=True)
            os.replace(tmp_path, self.path)
        except OSError as e:
            msg = f"cannot write store at {self.path}: {e}"
            raise StoreUnavailableError(msg) from e
        log.debug("Flushed %d keys to %s", len(self._data), self.path)
