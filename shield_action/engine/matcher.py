"""Find the stored selections a blocked token belongs to."""

import re
from typing import Protocol

from shield_action.logger import get_logger
from shield_action.model.models import Selection, Token, TokenKind
from shield_action.store.selections import SelectionStore

__all__ = ["MonitorRegistry", "SelectionMatcher", "StoreMonitorRegistry"]

log = get_logger("engine.matcher")


class MonitorRegistry(Protocol):
    def is_selection_monitored(self, selection_id: str) -> bool: ...


class StoreMonitorRegistry:
    """A selection is monitored when an active activity name contains its id.

    The id has to appear as a whole segment: ``s1`` matches ``activity_s1`` and
    ``s1-daily`` but not ``activity_s10``.
    """

    def __init__(self, selections: SelectionStore) -> None:
        self.selections = selections

    def is_selection_monitored(self, selection_id: str) -> bool:
        if not selection_id:
            return False
        pattern = _segment_pattern(selection_id)
        names = self.selections.monitored_activity_names()
        return any(pattern.search(name) for name in names)


class SelectionMatcher:
    def __init__(
        self,
        selections: SelectionStore,
        monitors: MonitorRegistry | None = None,
    ) -> None:
        self.selections = selections
        self.monitors = monitors or StoreMonitorRegistry(selections)

    def find_matching_selections(
        self,
        token: Token,
        kind: TokenKind,
        *,
        only_if_contains_monitored_names: bool = True,
        sort_by_granularity: bool = True,
    ) -> list[Selection]:
        """トークンを含むセレクションを返す.

        Args:
            token: ブロックされたエンティティのトークン
            kind: トークンの種類
            only_if_contains_monitored_names: 監視中のセレクションのみに絞る
            sort_by_granularity: トークン数の少ない(より具体的な)順に並べる

        Returns:
            list[Selection]: 一致したセレクション。空リストも正常

        """
        matches = [
            s for s in self.selections.list_selections() if s.contains(token, kind)
        ]

        if only_if_contains_monitored_names:
            matches = [s for s in matches if self.monitors.is_selection_monitored(s.id)]

        if sort_by_granularity:
            matches.sort(key=lambda s: (s.total_tokens, s.id))

        log.debug(
            "Matched %d selection(s) for %s token: %s",
            len(matches),
            kind.value,
            [s.id for s in matches],
        )
        return matches


def _segment_pattern(selection_id: str) -> re.Pattern[str]:
    return re.compile(rf"(?<![0-9A-Za-z]){re.escape(selection_id)}(?![0-9A-Za-z])")
