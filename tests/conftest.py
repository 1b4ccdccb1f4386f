import pytest
from unittest.mock import Mock

from shield_action.engine.executor import ActionContext
from shield_action.engine.main_context import MainContext
from shield_action.engine.shield_engine import ShieldActionEngine
from shield_action.model.models import (
    ButtonPressed,
    Selection,
    ShieldEvent,
    Token,
    TokenKind,
)
from shield_action.store.kv_store import InMemoryStore
from shield_action.store.selections import SelectionStore


@pytest.fixture
def store():
    """テスト用のメモリ内ストア"""
    return InMemoryStore()


@pytest.fixture
def selections(store):
    return SelectionStore(store)


@pytest.fixture
def uri_opener():
    """URIオープンのモック"""
    mock = Mock()
    mock.open_uri = Mock(return_value=True)
    return mock


@pytest.fixture
def notifier():
    """通知サービスのモック"""
    mock = Mock()
    mock.schedule_notification = Mock(return_value=True)
    return mock


@pytest.fixture
def main_context():
    context = MainContext(name="test-main")
    yield context
    context.shutdown()


@pytest.fixture
def engine(selections, uri_opener, notifier, main_context):
    return ShieldActionEngine(
        selections,
        uri_opener=uri_opener,
        notifier=notifier,
        main=main_context,
    )


@pytest.fixture
def add_selection(selections):
    """セレクションを保存し、必要なら監視中として登録する"""

    def _add(
        selection_id,
        *,
        apps=(),
        domains=(),
        categories=(),
        monitored=True,
    ):
        selection = Selection.of(
            selection_id,
            applicationTokens=apps,
            webDomainTokens=domains,
            categoryTokens=categories,
        )
        selections.save_selection(selection)
        if monitored:
            names = selections.monitored_activity_names()
            selections.save_monitored_activity_names(
                [*names, f"activity_{selection_id}"]
            )
        return selection

    return _add


@pytest.fixture
def app_event():
    """アプリのプライマリボタン押下イベント"""
    return ShieldEvent(ButtonPressed.PRIMARY, Token("A"), TokenKind.APPLICATION)


@pytest.fixture
def make_context(engine):
    def _make(event, *, only_monitored=True):
        return ActionContext(
            event=event,
            matcher=engine.matcher,
            mutator=engine.mutator,
            main=engine.main,
            uri_opener=engine.uri_opener,
            notifier=engine.notifier,
            only_monitored=only_monitored,
        )

    return _make
