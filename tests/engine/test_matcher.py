from shield_action.engine.matcher import SelectionMatcher, StoreMonitorRegistry
from shield_action.model.models import Token, TokenKind


class TestSelectionMatcher:
    """セレクション照合のテスト"""

    def test_includes_selection_containing_token_without_monitor_filter(
        self, selections, add_selection
    ):
        add_selection("focus", apps=["A"], monitored=False)
        matcher = SelectionMatcher(selections)

        matches = matcher.find_matching_selections(
            Token("A"),
            TokenKind.APPLICATION,
            only_if_contains_monitored_names=False,
        )

        assert [s.id for s in matches] == ["focus"]

    def test_excludes_unmonitored_selection_by_default(
        self, selections, add_selection
    ):
        add_selection("focus", apps=["A"], monitored=False)
        add_selection("study", apps=["A"], monitored=True)
        matcher = SelectionMatcher(selections)

        matches = matcher.find_matching_selections(Token("A"), TokenKind.APPLICATION)

        assert [s.id for s in matches] == ["study"]

    def test_granularity_orders_narrow_selection_first(
        self, selections, add_selection
    ):
        add_selection("broad", apps=["A", "B", "C"], domains=["d1", "d2"])
        add_selection("narrow", apps=["A"])
        matcher = SelectionMatcher(selections)

        matches = matcher.find_matching_selections(Token("A"), TokenKind.APPLICATION)

        assert [s.id for s in matches] == ["narrow", "broad"]

    def test_granularity_ties_break_by_id(self, selections, add_selection):
        add_selection("zeta", apps=["A", "B"])
        add_selection("alpha", apps=["A", "C"])
        matcher = SelectionMatcher(selections)

        matches = matcher.find_matching_selections(Token("A"), TokenKind.APPLICATION)

        assert [s.id for s in matches] == ["alpha", "zeta"]

    def test_without_sorting_keeps_store_order(self, selections, add_selection):
        add_selection("broad", apps=["A", "B", "C"])
        add_selection("narrow", apps=["A"])
        matcher = SelectionMatcher(selections)

        matches = matcher.find_matching_selections(
            Token("A"), TokenKind.APPLICATION, sort_by_granularity=False
        )

        assert [s.id for s in matches] == ["broad", "narrow"]

    def test_matches_only_the_set_for_the_event_kind(
        self, selections, add_selection
    ):
        add_selection("apps", apps=["X"])
        add_selection("domains", domains=["X"])
        matcher = SelectionMatcher(selections)

        matches = matcher.find_matching_selections(Token("X"), TokenKind.WEB_DOMAIN)

        assert [s.id for s in matches] == ["domains"]

    def test_empty_selection_matches_nothing(self, selections, add_selection):
        add_selection("empty")
        matcher = SelectionMatcher(selections)

        assert matcher.find_matching_selections(Token("A"), TokenKind.CATEGORY) == []

    def test_custom_monitor_registry_is_consulted(self, selections, add_selection):
        add_selection("focus", apps=["A"], monitored=False)

        class AlwaysMonitored:
            def is_selection_monitored(self, selection_id):
                return True

        matcher = SelectionMatcher(selections, AlwaysMonitored())

        matches = matcher.find_matching_selections(Token("A"), TokenKind.APPLICATION)

        assert [s.id for s in matches] == ["focus"]


class TestStoreMonitorRegistry:
    def test_selection_is_monitored_when_activity_name_contains_id(self, selections):
        selections.save_monitored_activity_names(["evening_focus_block"])
        registry = StoreMonitorRegistry(selections)

        assert registry.is_selection_monitored("focus") is True
        assert registry.is_selection_monitored("study") is False

    def test_no_monitors_means_nothing_monitored(self, selections):
        registry = StoreMonitorRegistry(selections)

        assert registry.is_selection_monitored("focus") is False

    def test_id_must_match_a_whole_segment(self, selections):
        selections.save_monitored_activity_names(["activity_s10", "s2-daily"])
        registry = StoreMonitorRegistry(selections)

        assert registry.is_selection_monitored("s1") is False
        assert registry.is_selection_monitored("s10") is True
        assert registry.is_selection_monitored("s2") is True
