from unittest.mock import Mock

import pytest
from fastapi.testclient import TestClient

from shield_action.api.main import STATE, app
from shield_action.engine.shield_engine import ShieldActionEngine
from shield_action.errors import StoreUnavailableError
from shield_action.store.selections import SelectionStore


@pytest.fixture(autouse=True)
def reset_state():
    yield
    STATE["engine"] = None
    STATE["last_event"] = None
    STATE["last_response"] = None
    STATE["last_report"] = None
    STATE["logs"].clear()


@pytest.fixture
def client(engine):
    """テスト用のFastAPIクライアント"""
    STATE["engine"] = engine
    return TestClient(app)


class TestShieldActionEndpoint:
    """ホスト向け /shield/action のテスト"""

    def test_executes_configured_actions(
        self, client, engine, selections, add_selection, uri_opener
    ):
        # Given: 監視中のセレクションとその専用設定
        add_selection("focusapps", apps=["A"])
        selections.save_config(
            selections.selection_config_key("focusapps"),
            {
                "primary": {
                    "actions": [{"type": "openUrl", "url": "https://x/{action}"}],
                    "behavior": "defer",
                }
            },
        )

        # When: プライマリボタン押下を送信
        response = client.post(
            "/shield/action",
            json={"button": "primary", "token": "A", "kind": "application"},
        )
        engine.main.drain(timeout=5)

        # Then: defer が返り、URI が開かれる
        assert response.status_code == 200
        assert response.json() == {"behavior": "defer", "delayMs": None}
        uri_opener.open_uri.assert_called_once_with("https://x/primary")

    def test_without_config_closes(self, client):
        response = client.post(
            "/shield/action",
            json={"button": "secondary", "token": "Z", "kind": "webDomain"},
        )

        assert response.status_code == 200
        assert response.json()["behavior"] == "close"

    def test_monitoring_data_records_last_event(self, client):
        client.post(
            "/shield/action",
            json={"button": "primary", "token": "Q", "kind": "category"},
        )

        data = client.get("/api/monitoring_data").json()

        assert data["last_event"]["token"] == "Q"
        assert data["last_response"] == {"behavior": "close", "delayMs": None}
        assert data["last_report"] == []
        assert any("Shield action processed" in line for line in data["logs"])

    @pytest.mark.parametrize(
        "body",
        [
            {"button": "primary", "token": "  ", "kind": "application"},
            {"button": "tertiary", "token": "A", "kind": "application"},
            {"button": "primary", "token": "A", "kind": "device"},
        ],
    )
    def test_invalid_request_is_rejected(self, client, body):
        response = client.post("/shield/action", json=body)

        assert response.status_code == 422


class TestManagementEndpoints:
    """管理アプリ向けエンドポイントのテスト"""

    def test_selection_lifecycle(self, client):
        response = client.put(
            "/selections/work",
            json={"applicationTokens": ["A", "B"], "webDomainTokens": ["d"]},
        )
        assert response.status_code == 200
        assert response.json()["selection"]["applicationTokens"] == ["A", "B"]

        listed = client.get("/selections").json()["selections"]
        assert [s["id"] for s in listed] == ["work"]

        assert client.delete("/selections/work").status_code == 200
        assert client.delete("/selections/work").status_code == 404

    def test_config_and_monitors_are_stored(self, client, selections):
        client.put("/config", json={"primary": {"behavior": "defer"}})
        client.put("/config/work", json={"secondary": {}})
        client.put("/monitors", json={"activityNames": ["activity_work"]})

        keys = selections.keys
        assert selections.get_config(keys.global_config_key) == {
            "primary": {"behavior": "defer"}
        }
        assert selections.get_config(selections.selection_config_key("work")) == {
            "secondary": {}
        }
        assert selections.monitored_activity_names() == ["activity_work"]

    def test_block_selection_updates_policy(self, client, add_selection):
        add_selection("social", domains=["sns.example"])

        assert client.post("/blocks/social").status_code == 200

        policy = client.get("/policy").json()["policy"]
        assert policy["blocked"]["webDomainTokens"] == ["sns.example"]
        assert policy["activeSelectionIds"] == ["social"]

    def test_block_unknown_selection_is_404(self, client):
        assert client.post("/blocks/missing").status_code == 404

    def test_status_and_whitelist(self, client, add_selection):
        add_selection("work", apps=["A"])

        status = client.get("/status").json()
        whitelist = client.get("/whitelist").json()

        assert status["selections"] == 1
        assert status["whitelisted_tokens"] == 0
        assert whitelist["id"] == "whitelist"


def test_store_failure_returns_503(uri_opener, notifier, main_context):
    broken = Mock()
    broken.sync_before_read.side_effect = StoreUnavailableError("disk gone")
    STATE["engine"] = ShieldActionEngine(
        SelectionStore(broken),
        uri_opener=uri_opener,
        notifier=notifier,
        main=main_context,
    )

    response = TestClient(app).get("/selections")

    assert response.status_code == 503
    assert response.json() == {"detail": "Store unavailable"}
