"""
Tests for the HTTP surface and the service wiring behind it.

Uses FastAPI's TestClient against a fully wired service graph on a temp
database; quotes, the text-generation client and SSO are stubbed.
"""

from unittest.mock import patch

import pytest
from fastapi.testclient import TestClient

from unicorn_trader.api.server import create_app
from unicorn_trader.api.sso import SSOUser

SSO_COOKIE = {"manaboodle_sso_token": "token-123"}


@pytest.fixture
def client(services):
    return TestClient(create_app(services), cookies=SSO_COOKIE)


@pytest.fixture
def sso_user():
    with patch('unicorn_trader.api.server.SSOClient.verify',
               return_value=SSOUser(id='user-42', email='student@example.edu')) as verify:
        yield verify


class TestServices:

    def test_initialize_provisions_roster_once(self, services):
        # ai_oracle already exists, so nine of the ten roster personas are new
        assert services.initialize() == 9
        assert services.initialize() == 0
        assert len(services.store.list_personas()) == 10

    def test_sync_writes_live_prices_only(self, services):
        results = services.sync_reference_prices()

        assert results['META'] == {'success': True, 'price': 50.0, 'change_pct': 1.0}
        assert results['GRAB']['success'] is False
        assert services.store.get_reference_price('META') == 50.0
        # Fallback prices are never written back
        assert services.store.get_reference_price('GRAB') == 5.33

    def test_reset_clears_audit_history(self, services):
        account = services.store.require_account('ai_oracle')
        services.audit_logger.record(account, "p", "r", None, None)
        services.audit_logger.flush()

        services.reset_account('ai_oracle')
        assert services.audit_logger.get_entries('ai_oracle') == []

    def test_update_persona_normalizes_strategy(self, services):
        account = services.update_persona('ai_oracle', strategy=' contrarian ')
        assert account.ai_strategy == 'CONTRARIAN'

    def test_update_persona_unknown_strategy(self, services):
        with pytest.raises(ValueError, match="Unknown strategy"):
            services.update_persona('ai_oracle', strategy='VIBES')
        assert services.store.require_account('ai_oracle').ai_strategy == 'PERFECT_TIMING'


class TestUserRoutes:

    def test_requires_sso_cookie(self, services):
        anonymous = TestClient(create_app(services))
        response = anonymous.post("/api/invest", json={"pitchId": 1, "shares": 1})
        assert response.status_code == 401

    def test_invest(self, client, services, sso_user):
        response = client.post("/api/invest", json={"pitchId": 1, "shares": 10})

        assert response.status_code == 200
        body = response.json()
        assert body["success"] is True
        assert body["result"]["amount"] == pytest.approx(500.0)
        assert services.store.require_account('user-42').available_cash == pytest.approx(999_500.0)
        sso_user.assert_called_with("token-123")

    def test_invest_overspend(self, client, sso_user):
        response = client.post("/api/invest", json={"pitchId": 2, "shares": 10_000})
        assert response.status_code == 400
        assert "Max affordable: 2500.00 shares" in response.json()["detail"]

    def test_invest_uses_reference_price(self, client, sso_user):
        response = client.post("/api/invest", json={"pitchId": 5, "shares": 1})
        # GRAB falls back to its seeded reference price
        assert response.status_code == 200

    def test_invalid_shares(self, client, sso_user):
        response = client.post("/api/invest", json={"pitchId": 1, "shares": 0})
        assert response.status_code == 422

    def test_sell_round_trip(self, client, services, sso_user):
        client.post("/api/invest", json={"pitchId": 1, "shares": 10})

        oversell = client.post("/api/sell", json={"pitchId": 1, "shares": 11})
        assert oversell.status_code == 400

        response = client.post("/api/sell", json={"pitchId": 1, "shares": 10})
        assert response.status_code == 200
        assert services.store.get_holdings('user-42') == []

    def test_portfolio(self, client, sso_user):
        client.post("/api/invest", json={"pitchId": 2, "shares": 5})

        body = client.get("/api/portfolio").json()
        [holding] = body["holdings"]
        assert holding["ticker"] == "MSFT"
        assert holding["current_value"] == pytest.approx(2_000.0)
        assert body["total_value"] == pytest.approx(1_000_000.0)

    def test_stock_quote(self, client):
        response = client.get("/api/stock/meta")
        assert response.status_code == 200
        assert response.json()["price"] == 50.0
        assert response.json()["source"] == "live"

    def test_stock_quote_unavailable(self, client):
        assert client.get("/api/stock/ZZZZ").status_code == 503


class TestAdminRoutes:

    def test_health(self, client):
        assert client.get("/health").json() == {"status": "ok"}

    def test_cron_requires_secret(self, client):
        assert client.get("/api/cron/ai-trading").status_code == 401
        assert client.get("/api/cron/ai-trading", headers={"Authorization": "Bearer wrong"}).status_code == 401

    def test_cron_with_secret(self, client):
        response = client.get("/api/cron/ai-trading", headers={"Authorization": "Bearer s3cret"})
        assert response.status_code == 200
        assert "skipped" in response.json()

    def test_cron_secret_not_configured(self, services):
        services.config.api.cron_secret = None
        unconfigured = TestClient(create_app(services))
        response = unconfigured.get("/api/cron/ai-trading", headers={"Authorization": "Bearer "})
        assert response.status_code == 500

    def test_trigger_single_persona(self, client):
        response = client.post("/api/admin/ai-trading/trigger", json={"userId": "ai_oracle"})
        assert response.status_code == 200
        assert response.json()["results"][0]["user_id"] == "ai_oracle"

    def test_trigger_unknown_persona(self, client):
        response = client.post("/api/admin/ai-trading/trigger", json={"userId": "nobody"})
        assert response.status_code == 404

    def test_trigger_human_rejected(self, client, services):
        services.store.get_or_create_account("human-1")
        response = client.post("/api/admin/ai-trading/trigger", json={"userId": "human-1"})
        assert response.status_code == 400

    def test_reset_and_clone(self, client, services):
        services.store.execute_trade('ai_oracle', 1, 10, 50.0, 'BUY')

        reset = client.post("/api/admin/ai-reset", json={"userId": "ai_oracle"})
        assert reset.status_code == 200
        assert reset.json()["account"]["available_cash"] == 1_000_000.0

        clone = client.post("/api/admin/ai-clone", json={"userId": "ai_oracle"})
        assert clone.status_code == 200
        assert clone.json()["account"]["display_name"] == "The Oracle 2"

        assert client.post("/api/admin/ai-reset", json={"userId": "nobody"}).status_code == 404

    def test_sync_prices(self, client):
        body = client.post("/api/admin/sync-prices").json()
        assert body["success"] is False
        assert body["results"]["MSFT"]["success"] is True

    def test_runs_and_logs(self, client, services):
        account = services.store.require_account('ai_oracle')
        services.audit_logger.record(account, "prompt", "raw", None, None, triggered_by="manual")

        logs = client.get("/api/admin/ai-trading/logs", params={"userId": "ai_oracle"}).json()["logs"]
        assert len(logs) == 1
        assert logs[0]["triggered_by"] == "manual"

        assert client.get("/api/admin/ai-trading/runs").json() == {"runs": []}

    def test_update_ai_investor(self, client, services):
        response = client.patch("/api/admin/ai-investors", json={
            "userId": "ai_oracle",
            "isActive": False,
            "strategy": "contrarian",
            "personalityPrompt": "Only buy what everyone else is selling.",
        })

        assert response.status_code == 200
        account = response.json()["account"]
        assert account["is_active"] is False
        assert account["ai_strategy"] == "CONTRARIAN"
        assert account["ai_personality_prompt"] == "Only buy what everyone else is selling."
        assert services.store.list_personas(active_only=True) == []

    def test_deactivated_persona_skipped_by_run(self, client, services):
        client.patch("/api/admin/ai-investors", json={"userId": "ai_oracle", "isActive": False})

        response = client.post("/api/admin/ai-trading/trigger", json={"userId": "ai_oracle"})
        assert response.status_code == 400
        assert "inactive" in response.json()["detail"]

    def test_update_ai_investor_errors(self, client, services):
        assert client.patch("/api/admin/ai-investors", json={"userId": "nobody", "isActive": True}).status_code == 404
        assert client.patch("/api/admin/ai-investors", json={"userId": "ai_oracle"}).status_code == 400
        assert client.patch(
            "/api/admin/ai-investors", json={"userId": "ai_oracle", "strategy": "VIBES"}
        ).status_code == 400

        services.store.get_or_create_account("human-1")
        assert client.patch("/api/admin/ai-investors", json={"userId": "human-1", "isActive": False}).status_code == 400
