"""Run a button's action list in order, best effort.

A failing action is logged and skipped; the actions after it still run and
nothing already done is rolled back.
"""

from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Any, Protocol
from urllib.parse import urlsplit

from shield_action.engine.block_mutator import BlockMutator
from shield_action.engine.main_context import MainContext
from shield_action.engine.matcher import SelectionMatcher
from shield_action.engine.placeholders import apply_placeholders, replace_placeholders
from shield_action.errors import (
    InvalidURIError,
    ShieldActionError,
    UnknownActionKindError,
)
from shield_action.logger import get_logger
from shield_action.model.actions import (
    Action,
    AddCurrentToWhitelistAction,
    DisableBlockAllModeAction,
    OpenAppAction,
    OpenUrlAction,
    ResetBlocksAction,
    SendNotificationAction,
    UnblockAllMatchingSelectionsAction,
    UnblockSelectionAction,
    UnknownAction,
    WhitelistAllMatchingSelectionsAction,
    WhitelistSelectionAction,
    parse_action,
)
from shield_action.model.models import (
    ButtonConfig,
    Placeholders,
    Selection,
    ShieldEvent,
)

__all__ = [
    "FALLBACK_URI",
    "ActionContext",
    "ActionExecutor",
    "ActionOutcome",
    "ExecutionReport",
    "NotificationScheduler",
    "UriOpener",
]

log = get_logger("engine.executor")

FALLBACK_URI = "device-activity://"
LEGACY_INDEX = -1

Handler = Callable[[Any, Placeholders, "ActionContext"], None]


class UriOpener(Protocol):
    def open_uri(self, uri: str) -> bool: ...


class NotificationScheduler(Protocol):
    def schedule_notification(
        self, payload: dict[str, Any], fire_delay_ms: float = 0
    ) -> bool: ...


@dataclass
class ActionContext:
    """Everything an action handler may touch for one event."""

    event: ShieldEvent
    matcher: SelectionMatcher
    mutator: BlockMutator
    main: MainContext
    uri_opener: UriOpener
    notifier: NotificationScheduler
    only_monitored: bool = True
    triggered_by: str = "shieldAction"


@dataclass
class ActionOutcome:
    index: int
    type: str
    ok: bool
    error: str | None = None


@dataclass
class ExecutionReport:
    outcomes: list[ActionOutcome] = field(default_factory=list)

    @property
    def failed(self) -> list[ActionOutcome]:
        return [o for o in self.outcomes if not o.ok]

    def to_list(self) -> list[dict[str, Any]]:
        return [
            {"index": o.index, "type": o.type, "ok": o.ok, "error": o.error}
            for o in self.outcomes
        ]


class ActionExecutor:
    def __init__(self) -> None:
        self._handlers: dict[type, Handler] = {
            OpenUrlAction: self._open_url,
            OpenAppAction: self._open_app,
            SendNotificationAction: self._send_notification,
            AddCurrentToWhitelistAction: self._add_current_to_whitelist,
            DisableBlockAllModeAction: self._disable_block_all_mode,
            ResetBlocksAction: self._reset_blocks,
            UnblockSelectionAction: self._unblock_selection,
            UnblockAllMatchingSelectionsAction: self._unblock_all,
            WhitelistSelectionAction: self._whitelist_selection,
            WhitelistAllMatchingSelectionsAction: self._whitelist_all,
            UnknownAction: self._unknown,
        }

    def run_button(
        self,
        config: ButtonConfig,
        placeholders: Placeholders,
        context: ActionContext,
    ) -> ExecutionReport:
        """``actions`` を順に実行し、その後に旧形式の ``type`` を実行する."""
        report = self.execute(config.actions, placeholders, context)
        if config.legacy_type:
            log.info("Processing deprecated type: %s", config.legacy_type)
            report.outcomes.append(
                self._run_one(LEGACY_INDEX, config.legacy_fields, placeholders, context)
            )
        return report

    def execute(
        self,
        actions: list[Any],
        placeholders: Placeholders,
        context: ActionContext,
    ) -> ExecutionReport:
        report = ExecutionReport()
        log.info("Executing %d action(s)", len(actions))
        for index, raw in enumerate(actions):
            report.outcomes.append(self._run_one(index, raw, placeholders, context))
        return report

    def _run_one(
        self,
        index: int,
        raw: Any,
        placeholders: Placeholders,
        context: ActionContext,
    ) -> ActionOutcome:
        label = "legacy" if index == LEGACY_INDEX else f"#{index + 1}"
        action_type = raw.get("type") if isinstance(raw, dict) else None
        try:
            action = parse_action(raw)
            action_type = action.type
            log.info("Executing action %s: %s", label, action_type)
            self._handlers[type(action)](action, placeholders, context)
        except ShieldActionError as e:
            log.warning("Action %s (%s) failed: %s", label, action_type, e)
            return ActionOutcome(index, str(action_type), ok=False, error=str(e))
        except Exception as e:
            log.exception("Action %s (%s) raised unexpectedly", label, action_type)
            return ActionOutcome(index, str(action_type), ok=False, error=repr(e))
        return ActionOutcome(index, str(action_type), ok=True)

    # ------------------------------------------------------------------
    # Handlers
    def _open_url(
        self, action: OpenUrlAction, placeholders: Placeholders, context: ActionContext
    ) -> None:
        self._dispatch_open(action.url, placeholders, context)

    def _open_app(
        self, action: OpenAppAction, placeholders: Placeholders, context: ActionContext
    ) -> None:
        if action.deeplink_url is None and action.bundle_id:
            # bundle ids are not URIs; open the fallback like a missing deeplink
            log.info("openApp without deeplinkUrl (bundleId=%s)", action.bundle_id)
        self._dispatch_open(action.deeplink_url, placeholders, context)

    def _dispatch_open(
        self, template: str | None, placeholders: Placeholders, context: ActionContext
    ) -> None:
        uri = replace_placeholders(template or FALLBACK_URI, placeholders, encode=True)
        _validate_uri(uri)
        context.main.dispatch(f"openURI({uri})", context.uri_opener.open_uri, uri)

    def _send_notification(
        self,
        action: SendNotificationAction,
        placeholders: Placeholders,
        context: ActionContext,
    ) -> None:
        payload = apply_placeholders(action.payload, placeholders)
        context.main.dispatch(
            "scheduleNotification",
            context.notifier.schedule_notification,
            payload,
            action.delay_ms,
        )

    def _add_current_to_whitelist(
        self, _action: Action, _placeholders: Placeholders, context: ActionContext
    ) -> None:
        context.mutator.add_token_to_whitelist(
            context.event.token,
            context.event.kind,
            triggered_by=context.triggered_by,
        )

    def _disable_block_all_mode(
        self, _action: Action, _placeholders: Placeholders, context: ActionContext
    ) -> None:
        context.mutator.disable_block_all_mode(triggered_by=context.triggered_by)

    def _reset_blocks(
        self, _action: Action, _placeholders: Placeholders, context: ActionContext
    ) -> None:
        context.mutator.reset_blocks(triggered_by=context.triggered_by)

    def _unblock_selection(
        self, _action: Action, _placeholders: Placeholders, context: ActionContext
    ) -> None:
        for selection in _matching(context, first_only=True):
            context.mutator.unblock_selection(
                selection, triggered_by=context.triggered_by
            )

    def _unblock_all(
        self, _action: Action, _placeholders: Placeholders, context: ActionContext
    ) -> None:
        for selection in _matching(context, first_only=False):
            context.mutator.unblock_selection(
                selection, triggered_by=context.triggered_by
            )

    def _whitelist_selection(
        self, _action: Action, _placeholders: Placeholders, context: ActionContext
    ) -> None:
        for selection in _matching(context, first_only=True):
            context.mutator.add_selection_to_whitelist(
                selection, triggered_by=context.triggered_by
            )

    def _whitelist_all(
        self, _action: Action, _placeholders: Placeholders, context: ActionContext
    ) -> None:
        for selection in _matching(context, first_only=False):
            context.mutator.add_selection_to_whitelist(
                selection, triggered_by=context.triggered_by
            )

    def _unknown(
        self,
        action: UnknownAction,
        _placeholders: Placeholders,
        _context: ActionContext,
    ) -> None:
        msg = f"unknown action type {action.type!r}"
        raise UnknownActionKindError(msg)


def _matching(context: ActionContext, *, first_only: bool) -> list[Selection]:
    matches = context.matcher.find_matching_selections(
        context.event.token,
        context.event.kind,
        only_if_contains_monitored_names=context.only_monitored,
        sort_by_granularity=True,
    )
    if not matches:
        log.info("No matching selection for %s token", context.event.kind.value)
    return matches[:1] if first_only else matches


def _validate_uri(uri: str) -> None:
    if any(c.isspace() for c in uri):
        msg = f"URI contains whitespace: {uri!r}"
        raise InvalidURIError(msg)
    try:
        parts = urlsplit(uri)
    except ValueError as e:
        msg = f"unparsable URI {uri!r}: {e}"
        raise InvalidURIError(msg) from e
    if not parts.scheme:
        msg = f"URI has no scheme: {uri!r}"
        raise InvalidURIError(msg)
