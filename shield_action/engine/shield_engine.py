"""Handle one shield button press from event to host response."""

from collections.abc import Callable
from dataclasses import dataclass, field
from enum import Enum

from shield_action.engine.block_mutator import BlockMutator, BlockPolicy
from shield_action.engine.config_resolver import ConfigResolver
from shield_action.engine.executor import (
    ActionContext,
    ActionExecutor,
    ExecutionReport,
    NotificationScheduler,
    UriOpener,
)
from shield_action.engine.main_context import MainContext
from shield_action.engine.matcher import MonitorRegistry, SelectionMatcher
from shield_action.engine.placeholders import TokenNameResolver, build_placeholders
from shield_action.engine.response import DelayedCompletion, compose
from shield_action.errors import ConfigAbsentError, StoreUnavailableError
from shield_action.logger import get_logger
from shield_action.model.models import (
    Behavior,
    EngineResponse,
    Placeholders,
    ShieldEvent,
)
from shield_action.store.selections import SelectionStore

__all__ = ["EventResult", "EventState", "ShieldActionEngine"]

log = get_logger("engine")

TRIGGERED_BY = "shieldAction"


class EventState(Enum):
    RECEIVED = "received"
    MATCHING = "matching"
    CONFIG_RESOLVED = "config_resolved"
    NO_CONFIG = "no_config"
    EXECUTING = "executing"
    COMPOSING = "composing"
    RESPONDED = "responded"


@dataclass
class EventResult:
    response: EngineResponse
    selection_id: str | None = None
    placeholders: Placeholders = field(default_factory=dict)
    report: ExecutionReport = field(default_factory=ExecutionReport)
    states: list[EventState] = field(default_factory=list)


class ShieldActionEngine:
    """Match, resolve, execute and compose for each button press.

    The host always gets a valid :class:`EngineResponse`; every failure along
    the way ends in ``close``.
    """

    def __init__(
        self,
        selections: SelectionStore,
        uri_opener: UriOpener,
        notifier: NotificationScheduler,
        *,
        monitors: MonitorRegistry | None = None,
        block_policy: BlockPolicy | None = None,
        names: TokenNameResolver | None = None,
        main: MainContext | None = None,
    ) -> None:
        self.selections = selections
        self.uri_opener = uri_opener
        self.notifier = notifier
        self.names = names
        self.matcher = SelectionMatcher(selections, monitors)
        self.resolver = ConfigResolver(selections)
        self.mutator = BlockMutator(selections, block_policy)
        self.executor = ActionExecutor()
        self.main = main or MainContext()

    def process(self, event: ShieldEvent) -> EventResult:
        result = EventResult(response=EngineResponse())
        try:
            self._process(event, result)
        except Exception:
            log.exception("Shield action failed, falling back to close")
            result.response = EngineResponse(Behavior.CLOSE, None)
        result.states.append(EventState.RESPONDED)
        log.info(
            "Shield action completed, returning behavior: %s (delayMs=%s)",
            result.response.behavior.value,
            result.response.delay_ms,
        )
        return result

    def _process(self, event: ShieldEvent, result: EventResult) -> None:
        result.states.append(EventState.RECEIVED)
        log.info("HandleAction START - %s on %s", event.button.value, event.kind.value)

        result.states.append(EventState.MATCHING)
        try:
            matches = self.matcher.find_matching_selections(
                event.token,
                event.kind,
                only_if_contains_monitored_names=True,
                sort_by_granularity=True,
            )
        except StoreUnavailableError as e:
            log.warning("Store unavailable while matching: %s", e)
            matches = []
        result.selection_id = matches[0].id if matches else None

        try:
            config = self.resolver.button_config(result.selection_id, event.button)
        except ConfigAbsentError as e:
            result.states.append(EventState.NO_CONFIG)
            log.info("%s, closing", e)
            return
        result.states.append(EventState.CONFIG_RESOLVED)

        result.placeholders = build_placeholders(event, result.selection_id, self.names)
        context = ActionContext(
            event=event,
            matcher=self.matcher,
            mutator=self.mutator,
            main=self.main,
            uri_opener=self.uri_opener,
            notifier=self.notifier,
            only_monitored=config.only_monitored,
            triggered_by=TRIGGERED_BY,
        )

        result.states.append(EventState.EXECUTING)
        result.report = self.executor.run_button(config, result.placeholders, context)
        self._synchronize()

        result.states.append(EventState.COMPOSING)
        result.response = compose(config.behavior, config.delay_ms)

    def _synchronize(self) -> None:
        try:
            self.selections.store.sync_after_write()
        except StoreUnavailableError as e:
            log.warning("Final store synchronization failed: %s", e)

    def handle(self, event: ShieldEvent) -> EngineResponse:
        return self.process(event).response

    def handle_action(
        self,
        event: ShieldEvent,
        completion_handler: Callable[[EngineResponse], None],
    ) -> DelayedCompletion:
        """アクションを実行し、遅延があれば待ってから完了ハンドラを一度だけ呼ぶ."""
        completion = DelayedCompletion(completion_handler)
        completion.deliver(self.handle(event))
        return completion

    def shutdown(self) -> None:
        self.main.shutdown()
