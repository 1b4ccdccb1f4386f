"""Action variants a shield button can run.

The set is closed: every known ``type`` maps to one model below, anything else
becomes :class:`UnknownAction` so newer configs keep working on older engines.
"""

from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from shield_action.errors import ActionMalformedError

__all__ = [
    "ACTION_TYPES",
    "LEGACY_ALIASES",
    "Action",
    "AddCurrentToWhitelistAction",
    "DisableBlockAllModeAction",
    "OpenAppAction",
    "OpenUrlAction",
    "ResetBlocksAction",
    "SendNotificationAction",
    "UnblockAllMatchingSelectionsAction",
    "UnblockSelectionAction",
    "UnknownAction",
    "WhitelistAllMatchingSelectionsAction",
    "WhitelistSelectionAction",
    "parse_action",
]


class _ActionBase(BaseModel):
    model_config = ConfigDict(extra="ignore", frozen=True, populate_by_name=True)


class OpenUrlAction(_ActionBase):
    type: Literal["openUrl"] = "openUrl"
    url: str | None = None


class OpenAppAction(_ActionBase):
    type: Literal["openApp"] = "openApp"
    deeplink_url: str | None = Field(default=None, alias="deeplinkUrl")
    bundle_id: str | None = Field(default=None, alias="bundleId")


class SendNotificationAction(_ActionBase):
    type: Literal["sendNotification"] = "sendNotification"
    payload: dict[str, Any]
    delay_ms: float = Field(default=0, alias="delayMs", ge=0)


class AddCurrentToWhitelistAction(_ActionBase):
    type: Literal["addCurrentToWhitelist"] = "addCurrentToWhitelist"


class DisableBlockAllModeAction(_ActionBase):
    type: Literal["disableBlockAllMode"] = "disableBlockAllMode"


class ResetBlocksAction(_ActionBase):
    type: Literal["resetBlocks"] = "resetBlocks"


class UnblockSelectionAction(_ActionBase):
    type: Literal["unblockSelection"] = "unblockSelection"


class UnblockAllMatchingSelectionsAction(_ActionBase):
    type: Literal["unblockAllMatchingSelections"] = "unblockAllMatchingSelections"


class WhitelistSelectionAction(_ActionBase):
    type: Literal["whitelistSelection"] = "whitelistSelection"


class WhitelistAllMatchingSelectionsAction(_ActionBase):
    type: Literal["whitelistAllMatchingSelections"] = (
        "whitelistAllMatchingSelections"
    )


class UnknownAction(_ActionBase):
    """Catch-all for action types this engine does not implement."""

    type: str
    raw: dict[str, Any] = Field(default_factory=dict)


Action = (
    OpenUrlAction
    | OpenAppAction
    | SendNotificationAction
    | AddCurrentToWhitelistAction
    | DisableBlockAllModeAction
    | ResetBlocksAction
    | UnblockSelectionAction
    | UnblockAllMatchingSelectionsAction
    | WhitelistSelectionAction
    | WhitelistAllMatchingSelectionsAction
    | UnknownAction
)

ACTION_TYPES: dict[str, type[_ActionBase]] = {
    "openUrl": OpenUrlAction,
    "openApp": OpenAppAction,
    "sendNotification": SendNotificationAction,
    "addCurrentToWhitelist": AddCurrentToWhitelistAction,
    "disableBlockAllMode": DisableBlockAllModeAction,
    "resetBlocks": ResetBlocksAction,
    "unblockSelection": UnblockSelectionAction,
    "unblockAllMatchingSelections": UnblockAllMatchingSelectionsAction,
    "whitelistSelection": WhitelistSelectionAction,
    "whitelistAllMatchingSelections": WhitelistAllMatchingSelectionsAction,
}

# 旧バージョンの設定で使われていた type 名
LEGACY_ALIASES = {
    "openUrlWithDispatch": "openUrl",
    "unblockPossibleFamilyActivitySelection": "unblockSelection",
    "unblockAllPossibleFamilyActivitySelections": "unblockAllMatchingSelections",
    "whitelistPossibleFamilyActivitySelection": "whitelistSelection",
    "whitelistAllPossibleFamilyActivitySelections": "whitelistAllMatchingSelections",
}


def parse_action(raw: Any) -> Action:
    """Turn one stored action entry into its variant.

    Raises:
        ActionMalformedError: the entry is not a mapping, has no string
            ``type``, or is missing a field its variant requires.

    """
    if not isinstance(raw, dict):
        msg = f"action entry must be a mapping, got {type(raw).__name__}"
        raise ActionMalformedError(msg)

    action_type = raw.get("type")
    if not isinstance(action_type, str) or not action_type:
        msg = f"action entry without a type: {raw!r}"
        raise ActionMalformedError(msg)

    action_type = LEGACY_ALIASES.get(action_type, action_type)
    model = ACTION_TYPES.get(action_type)
    if model is None:
        return UnknownAction(type=action_type, raw=raw)

    try:
        parsed = model.model_validate({**raw, "type": action_type})
    except ValidationError as e:
        msg = f"invalid {action_type} action: {e.error_count()} error(s)"
        raise ActionMalformedError(msg) from e
    return parsed  # type: ignore[return-value]
