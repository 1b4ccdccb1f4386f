"""Resolve button configuration for a selection, falling back to the global one."""

from shield_action.errors import (
    ActionMalformedError,
    ConfigAbsentError,
    StoreUnavailableError,
)
from shield_action.logger import get_logger
from shield_action.model.models import ButtonConfig, ButtonPressed
from shield_action.store.selections import SelectionStore

__all__ = ["ConfigResolver"]

log = get_logger("engine.config")

BUTTON_KEYS = tuple(b.value for b in ButtonPressed)


class ConfigResolver:
    def __init__(self, selections: SelectionStore) -> None:
        self.selections = selections

    def resolve_config(
        self, selection_id: str | None
    ) -> dict[str, ButtonConfig] | None:
        """セレクション固有の設定、無ければグローバル設定を返す.

        どちらも無い場合は None (設定なし。呼び出し側は close を返す)。
        ストアが読めない場合も None として扱う。
        """
        keys = []
        if selection_id:
            keys.append(self.selections.selection_config_key(selection_id))
        keys.append(self.selections.keys.global_config_key)

        for key in keys:
            try:
                raw = self.selections.get_config(key)
            except StoreUnavailableError as e:
                log.warning("Store unavailable while resolving config: %s", e)
                return None
            if raw is None:
                continue
            if not isinstance(raw, dict):
                log.warning("Ignoring non-mapping config under %r", key)
                continue
            log.info("Using shield config from %r", key)
            return self._parse_buttons(raw, key)

        log.info("No shield config for selection %r", selection_id)
        return None

    @staticmethod
    def _parse_buttons(raw: dict, key: str) -> dict[str, ButtonConfig]:
        buttons: dict[str, ButtonConfig] = {}
        for button in BUTTON_KEYS:
            if button not in raw:
                continue
            try:
                buttons[button] = ButtonConfig.from_mapping(raw[button])
            except ActionMalformedError as e:
                log.warning("Dropping %s button config in %r: %s", button, key, e)
        return buttons

    def button_config(
        self, selection_id: str | None, button: ButtonPressed
    ) -> ButtonConfig:
        """押されたボタンの設定を返す. 無ければ ConfigAbsentError."""
        buttons = self.resolve_config(selection_id)
        config = buttons.get(button.value) if buttons else None
        if config is None:
            msg = f"no {button.value} button config for selection {selection_id!r}"
            raise ConfigAbsentError(msg)
        return config
