# file: tests/test_api.py
import pytest
from unittest.mock import AsyncMock, Mock
from fastapi.testclient import TestClient
from app.errors import ExternalServiceError, NotAuthenticatedError, QuotaExceededError
from app.main import create_app
from app.schema import AuthUser, Company, OutreachMessage, ResponseTemplate, UsageCounters, UserProfile
from app.services.session_cache import SessionCache
from app.state import AppState

AUTH = {"Authorization": "Bearer good-token"}

@pytest.fixture
def stores(investors, acme):
    """Mocked database collaborators behind a registry"""
    registry = Mock()
    registry.investors = AsyncMock()
    registry.investors.fetch_all.return_value = investors
    registry.investors.fetch_by_id.side_effect = lambda i: next((x for x in investors if x.id == i), None)
    registry.companies = AsyncMock()
    registry.companies.fetch_by_user.return_value = acme
    registry.outreach = AsyncMock()
    registry.outreach.fetch_by_user.return_value = []
    registry.templates = AsyncMock()
    registry.templates.fetch_all.return_value = []
    registry.users = AsyncMock()
    registry.users.profile.return_value = UserProfile(id="user_1", subscription_tier="free")
    registry.users.record_usage.return_value = UsageCounters()
    registry.auth = AsyncMock()
    registry.auth.get_user.return_value = AuthUser(id="user_1", email="founder@acme.com")

    registry.get_investor_store.return_value = registry.investors
    registry.get_outreach_store.return_value = registry.outreach
    registry.get_template_store.return_value = registry.templates
    return registry

@pytest.fixture
def llm():
    generator = Mock()
    generator.generate = AsyncMock(return_value=("Hi Sarah, ...", {"total_tokens": 200}))
    generator.is_configured.return_value = True
    return generator

@pytest.fixture
def client(stores, llm, tmp_path):
    billing = Mock()
    billing.resolve_tier = AsyncMock(side_effect=lambda user_id, fallback: fallback)
    billing.close = AsyncMock()
    billing.is_configured.return_value = False
    state = AppState(stores, llm, billing, SessionCache(tmp_path / "session.json"))
    return TestClient(create_app(state))

def test_requires_bearer_token(client, stores):
    """Missing or rejected tokens are 401"""
    assert client.get("/investors").status_code == 401

    stores.auth.get_user.side_effect = NotAuthenticatedError("Invalid or expired session")
    response = client.get("/investors", headers=AUTH)
    assert response.status_code == 401

def test_search_filters_and_counts_usage(client, stores):
    """A search returns the filtered list and consumes one search"""
    response = client.get("/investors", params={"stage": "Seed", "industry": "all"}, headers=AUTH)

    assert response.status_code == 200
    body = response.json()
    assert body["count"] == 2
    assert [i["id"] for i in body["investors"]] == ["inv_2", "inv_3"]
    stores.users.record_usage.assert_awaited_once()
    assert stores.users.record_usage.call_args.args[1] == "search"

def test_search_degrades_to_snapshot(client, stores):
    """Once loaded, investors are still served while the store is down"""
    client.get("/investors", headers=AUTH)
    stores.investors.fetch_all.side_effect = ExternalServiceError("database", "timeout")

    response = client.get("/investors", params={"q": "accel"}, headers=AUTH)

    assert response.status_code == 200
    assert [i["id"] for i in response.json()["investors"]] == ["inv_1"]

def test_search_survives_whole_database_outage(client, stores):
    """Usage lookup and counter write failures do not hide cached investors"""
    client.get("/investors", headers=AUTH)
    outage = ExternalServiceError("database", "connection refused")
    stores.investors.fetch_all.side_effect = outage
    stores.users.profile.side_effect = outage
    stores.users.record_usage.side_effect = outage

    response = client.get("/investors", params={"stage": "Seed"}, headers=AUTH)

    assert response.status_code == 200
    assert [i["id"] for i in response.json()["investors"]] == ["inv_2", "inv_3"]

def test_search_survives_failed_counter_write(client, stores):
    """A failed usage write still returns the search results"""
    stores.users.record_usage.side_effect = ExternalServiceError("database", "timeout")

    response = client.get("/investors", headers=AUTH)

    assert response.status_code == 200
    assert response.json()["count"] == 3

def test_search_with_nothing_cached_is_empty(client, stores):
    """With no snapshot yet an outage gives an empty list, not an error"""
    stores.investors.fetch_all.side_effect = ExternalServiceError("database", "down")
    stores.users.profile.side_effect = ExternalServiceError("database", "down")

    response = client.get("/investors", headers=AUTH)

    assert response.status_code == 200
    assert response.json() == {"count": 0, "investors": []}

def test_unknown_investor_is_404(client):
    """Missing investors are reported as not found"""
    assert client.get("/investors/inv_404", headers=AUTH).status_code == 404

def test_generate_returns_message_and_subject(client, llm):
    """A successful generation passes usage through"""
    response = client.post("/outreach/generate", json={"investor_id": "inv_1", "notes": "Met at SaaStr"}, headers=AUTH)

    assert response.status_code == 200
    body = response.json()
    assert body["message"] == "Hi Sarah, ..."
    assert body["usage"] == {"total_tokens": 200}
    assert body["subject"]

def test_generate_falls_back_on_quota(client, llm):
    """Quota errors still produce a usable draft"""
    llm.generate.side_effect = QuotaExceededError("openai", "insufficient_quota", status=429)

    response = client.post("/outreach/generate", json={"investor_id": "inv_1"}, headers=AUTH)

    assert response.status_code == 200
    body = response.json()
    assert body["usage"] is None
    assert "Accel" in body["message"] and "Acme" in body["message"]

def test_generate_rejects_incomplete_company(client, stores, llm):
    """Missing company fields are all reported before any generation"""
    stores.companies.fetch_by_user.return_value = Company(id="co_1", description="x")

    response = client.post("/outreach/generate", json={"investor_id": "inv_1"}, headers=AUTH)

    assert response.status_code == 422
    assert response.json()["fields"] == ["company.name", "company.industry"]
    llm.generate.assert_not_called()

def test_outreach_limit_blocks_free_users(client, stores, llm):
    """The sixth message of the month on free is refused"""
    stores.users.profile.return_value = UserProfile(
        id="user_1", subscription_tier="free", usage=UsageCounters(outreach_this_month=5),
    )

    response = client.post("/outreach/generate", json={"investor_id": "inv_1"}, headers=AUTH)

    assert response.status_code == 403
    assert response.json()["action"] == "outreach"
    llm.generate.assert_not_called()

def test_save_outreach_records_usage(client, stores):
    """Saving a draft stores it and consumes one outreach"""
    stores.outreach.create.return_value = OutreachMessage(
        id="m1", user_id="user_1", investor_id="inv_1", subject="Hi", body="Body",
    )

    response = client.post(
        "/outreach", json={"investor_id": "inv_1", "subject": "Hi", "body": "Body"}, headers=AUTH,
    )

    assert response.status_code == 201
    assert response.json()["status"] == "draft"
    assert stores.users.record_usage.call_args.args[1] == "outreach"

def test_history_failure_is_503(client, stores):
    """Database failures on writes and history are surfaced as retryable"""
    stores.outreach.fetch_by_user.side_effect = ExternalServiceError("database", "timeout")

    response = client.get("/outreach", headers=AUTH)

    assert response.status_code == 503
    assert response.json()["service"] == "database"

def test_company_is_created_once(client, stores):
    """Onboarding refuses a second company"""
    response = client.post("/company", json={"name": "Acme"}, headers=AUTH)
    assert response.status_code == 409

    stores.companies.fetch_by_user.return_value = None
    stores.companies.create.return_value = Company(id="co_2", user_id="user_1", name="Acme")
    response = client.post("/company", json={"name": "Acme"}, headers=AUTH)
    assert response.status_code == 201
    assert response.json()["id"] == "co_2"

def test_usage_and_dashboard(client, stores):
    """Usage report and dashboard summary reflect the profile counters"""
    stores.users.profile.return_value = UserProfile(
        id="user_1", subscription_tier="free", usage=UsageCounters(outreach_this_month=2),
    )
    stores.outreach.fetch_by_user.return_value = [
        OutreachMessage(id="m1", user_id="user_1", investor_id="inv_1", subject="s", body="b", status="responded"),
        OutreachMessage(id="m2", user_id="user_1", investor_id="inv_2", subject="s", body="b", status="sent"),
    ]

    usage = client.get("/usage", headers=AUTH).json()
    assert usage["tier"] == "free"
    assert usage["usage"]["outreach"]["percentage"] == 40.0

    dashboard = client.get("/dashboard", headers=AUTH).json()
    assert dashboard["total_messages"] == 2
    assert dashboard["investors_contacted"] == 2
    assert dashboard["response_rate"] == 50.0
    assert dashboard["outreach_remaining"] == 3

def test_plans_are_public(client):
    """Plan comparison needs no login"""
    response = client.get("/plans")
    assert response.status_code == 200
    assert [p["id"] for p in response.json()["plans"]] == ["free", "pro", "premium"]

def test_status_update_only_touches_status(client, stores):
    """PATCH passes the new status through; unknown messages are 404"""
    stores.outreach.update.return_value = OutreachMessage(
        id="m1", user_id="user_1", investor_id="inv_1", subject="s", body="b", status="sent",
    )

    response = client.patch("/outreach/m1", json={"status": "sent"}, headers=AUTH)
    assert response.status_code == 200
    stores.outreach.update.assert_awaited_with("m1", "user_1", {"status": "sent"})

    assert client.patch("/outreach/m1", json={"status": "deleted"}, headers=AUTH).status_code == 422

    stores.outreach.update.return_value = None
    assert client.patch("/outreach/m9", json={"status": "sent"}, headers=AUTH).status_code == 404

def test_template_prefill(client, stores):
    """Known names are filled and the rest are listed"""
    stores.templates.fetch_all.return_value = [
        ResponseTemplate(
            id="template_2", name="Follow-up After Meeting", type="followup",
            content="Hi [INVESTOR_NAME], thanks from [COMPANY_NAME]. [FOUNDER_NAME]",
        ),
    ]

    response = client.get("/templates/template_2/prefill", params={"investor_id": "inv_1"}, headers=AUTH)

    assert response.status_code == 200
    body = response.json()
    assert body["content"] == "Hi Sarah Chen, thanks from Acme. [FOUNDER_NAME]"
    assert body["placeholders"] == ["FOUNDER_NAME"]
    assert client.get("/templates/nope/prefill", headers=AUTH).status_code == 404

def test_logout_forgets_company_snapshot(client, stores):
    """After logout the cached company is no longer served"""
    client.get("/company", headers=AUTH)
    stores.companies.fetch_by_user.side_effect = ExternalServiceError("database", "timeout")
    assert client.get("/company", headers=AUTH).status_code == 200

    assert client.post("/session/logout", headers=AUTH).status_code == 204
    assert client.get("/company", headers=AUTH).status_code == 503
