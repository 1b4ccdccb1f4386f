"""Typed access to selections, configs, the whitelist and block state."""

import threading
from collections.abc import Callable
from typing import Any, TypeVar

from shield_action.config import StoreKeys
from shield_action.errors import StoreUnavailableError
from shield_action.logger import get_logger
from shield_action.model.models import BlockState, EffectiveBlockPolicy, Selection
from shield_action.store.kv_store import KeyValueStore

__all__ = ["WHITELIST_ID", "SelectionStore"]

log = get_logger("store.selections")

WHITELIST_ID = "whitelist"

T = TypeVar("T")


class SelectionStore:
    """Adapter over :class:`KeyValueStore` speaking the engine's types.

    Every read synchronizes first and every write synchronizes after, so the
    other process sees changes promptly. Any failure of the underlying store
    surfaces as :class:`StoreUnavailableError`.
    """

    def __init__(self, store: KeyValueStore, keys: StoreKeys | None = None) -> None:
        self.store = store
        self.keys = keys or StoreKeys()
        # one sync pair at a time within this process
        self._lock = threading.RLock()

    # ------------------------------------------------------------------
    # Low level
    def _read(self, key: str) -> Any | None:
        try:
            with self._lock:
                self.store.sync_before_read()
                return self.store.get(key)
        except StoreUnavailableError:
            raise
        except Exception as e:
            msg = f"store read failed for {key!r}: {e}"
            raise StoreUnavailableError(msg) from e

    def _write(self, mutate: Callable[[KeyValueStore], T]) -> T:
        try:
            with self._lock:
                self.store.sync_before_read()
                result = mutate(self.store)
                self.store.sync_after_write()
        except StoreUnavailableError:
            raise
        except Exception as e:
            msg = f"store write failed: {e}"
            raise StoreUnavailableError(msg) from e
        return result

    # ------------------------------------------------------------------
    # Selections
    def _selection_key(self, selection_id: str) -> str:
        return f"{self.keys.selection_prefix}{selection_id}"

    def selection_ids(self) -> list[str]:
        ids = self._read(self.keys.selection_ids_key)
        if not isinstance(ids, list):
            return []
        return [i for i in ids if isinstance(i, str)]

    def get_selection(self, selection_id: str) -> Selection | None:
        raw = self._read(self._selection_key(selection_id))
        if not isinstance(raw, dict):
            return None
        try:
            return Selection.from_dict(raw)
        except (ValueError, TypeError):
            log.warning("Skipping unreadable selection record %r", selection_id)
            return None

    def list_selections(self) -> list[Selection]:
        """全ての保存済みセレクションを保存順で返す."""
        selections = []
        for selection_id in self.selection_ids():
            selection = self.get_selection(selection_id)
            if selection is not None:
                selections.append(selection)
        return selections

    def save_selection(self, selection: Selection) -> None:
        def mutate(store: KeyValueStore) -> None:
            store.set(self._selection_key(selection.id), selection.to_dict())
            ids = store.get(self.keys.selection_ids_key)
            ids = list(ids) if isinstance(ids, list) else []
            if selection.id not in ids:
                ids.append(selection.id)
            store.set(self.keys.selection_ids_key, ids)

        self._write(mutate)

    def delete_selection(self, selection_id: str) -> bool:
        def mutate(store: KeyValueStore) -> bool:
            ids = store.get(self.keys.selection_ids_key)
            ids = list(ids) if isinstance(ids, list) else []
            existed = selection_id in ids
            store.set(
                self.keys.selection_ids_key, [i for i in ids if i != selection_id]
            )
            store.remove(self._selection_key(selection_id))
            return existed

        return self._write(mutate)

    # ------------------------------------------------------------------
    # Whitelist
    def get_whitelist(self) -> Selection:
        return _whitelist_from(self._read(self.keys.whitelist_key))

    def save_whitelist(self, whitelist: Selection) -> None:
        data = {**whitelist.to_dict(), "id": WHITELIST_ID}
        self._write(lambda store: store.set(self.keys.whitelist_key, data))

    # ------------------------------------------------------------------
    # Button configs
    def get_config(self, key: str) -> Any | None:
        return self._read(key)

    def save_config(self, key: str, config: dict[str, Any]) -> None:
        self._write(lambda store: store.set(key, config))

    def selection_config_key(self, selection_id: str) -> str:
        return f"{self.keys.selection_config_prefix}{selection_id}"

    # ------------------------------------------------------------------
    # Monitoring
    def monitored_activity_names(self) -> list[str]:
        names = self._read(self.keys.monitored_names_key)
        if not isinstance(names, list):
            return []
        return [n for n in names if isinstance(n, str)]

    def save_monitored_activity_names(self, names: list[str]) -> None:
        self._write(
            lambda store: store.set(self.keys.monitored_names_key, list(names))
        )

    # ------------------------------------------------------------------
    # Block state
    def get_block_state(self) -> BlockState:
        return _block_state_from(self._read(self.keys.block_state_key))

    def save_block_state(self, state: BlockState) -> None:
        self._write(lambda store: store.set(self.keys.block_state_key, state.to_dict()))

    def get_effective_policy(self) -> EffectiveBlockPolicy | None:
        raw = self._read(self.keys.effective_policy_key)
        if not isinstance(raw, dict):
            return None
        try:
            return EffectiveBlockPolicy.from_dict(raw)
        except (KeyError, ValueError, TypeError):
            log.warning("Effective block policy record unreadable")
            return None

    def save_effective_policy(self, policy: EffectiveBlockPolicy) -> None:
        self._write(
            lambda store: store.set(self.keys.effective_policy_key, policy.to_dict())
        )

    # ------------------------------------------------------------------
    # Read-modify-write in one synchronized section
    def update_whitelist(self, change: Callable[[Selection], Selection]) -> Selection:
        """Apply ``change`` to the whitelist between one sync pair."""

        def mutate(store: KeyValueStore) -> Selection:
            updated = change(_whitelist_from(store.get(self.keys.whitelist_key)))
            store.set(
                self.keys.whitelist_key, {**updated.to_dict(), "id": WHITELIST_ID}
            )
            return updated

        return self._write(mutate)

    def update_block_state(
        self, change: Callable[[BlockState], BlockState]
    ) -> BlockState:
        def mutate(store: KeyValueStore) -> BlockState:
            updated = change(_block_state_from(store.get(self.keys.block_state_key)))
            store.set(self.keys.block_state_key, updated.to_dict())
            return updated

        return self._write(mutate)


def _whitelist_from(raw: Any) -> Selection:
    if isinstance(raw, dict):
        try:
            return Selection.from_dict({**raw, "id": WHITELIST_ID})
        except (ValueError, TypeError):
            log.warning("Whitelist record unreadable, starting empty")
    return Selection(WHITELIST_ID)


def _block_state_from(raw: Any) -> BlockState:
    if isinstance(raw, dict):
        try:
            return BlockState.from_dict(raw)
        except (ValueError, TypeError):
            log.warning("Block state record unreadable, starting empty")
    return BlockState()
