import jwt
import pytest
from fastapi.testclient import TestClient

from tenant_billing.core.app_factory import create_application
from tenant_billing.core.config import Settings
from tenant_billing.domain.errors import SubscriptionConflictError

from .conftest import FIXED_NOW, VALID_IDENTITY, FakeClock

SECRET = "test-secret"


@pytest.fixture
def api_clock():
    return FakeClock(FIXED_NOW)


@pytest.fixture
def client(tmp_path, monkeypatch, api_clock):
    monkeypatch.setenv("DATABASE_PATH", str(tmp_path / "api.db"))
    monkeypatch.setenv("ACCOUNT_TOKEN_SECRET", SECRET)
    monkeypatch.setenv("CORS_ALLOW_ORIGINS", "http://localhost:3000")
    app = create_application(Settings(), clock=api_clock)
    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture
def auth_headers(client):
    persistence = client.app.state.container.persistence
    account = persistence.create_account("tenant@example.com", first_name="Ana", last_name="Lopez")
    token = jwt.encode({"sub": str(account.id)}, SECRET, algorithm="HS256")
    return {"Authorization": f"Bearer {token}"}


def test_health(client):
    response = client.get("/health")
    assert response.status_code == 200
    assert response.json() == {"ok": True}


def test_plans_are_public(client):
    response = client.get("/api/subscriptions/plans")

    assert response.status_code == 200
    names = [plan["name"] for plan in response.json()]
    assert names == ["Free", "Starter", "Advanced"]


def test_requires_token(client):
    assert client.get("/api/subscriptions/me").status_code == 401


def test_rejects_bad_token(client):
    token = jwt.encode({"sub": "1"}, "another-secret", algorithm="HS256")
    response = client.get("/api/subscriptions/me", headers={"Authorization": f"Bearer {token}"})

    assert response.status_code == 401
    assert response.json()["detail"] == "Invalid or expired token"


def test_unknown_account_is_404(client):
    token = jwt.encode({"sub": "999"}, SECRET, algorithm="HS256")
    response = client.get("/api/subscriptions/me", headers={"Authorization": f"Bearer {token}"})

    assert response.status_code == 404


def test_me_on_fresh_account(client, auth_headers):
    response = client.get("/api/subscriptions/me", headers=auth_headers)

    assert response.status_code == 200
    body = response.json()
    assert body["account"]["email"] == "tenant@example.com"
    assert body["snapshot"]["plan"] == "free"
    assert body["snapshot"]["status"] == "free"
    assert body["derived"] == {
        "is_active": False,
        "is_on_trial": False,
        "remaining_days": None,
        "ends_at": None,
        "is_expired": False,
    }


def test_start_then_replace(client, auth_headers):
    payload = {"plan": "advanced", "billing_interval": "monthly", "trial_days": 7, **VALID_IDENTITY}

    created = client.post("/api/subscriptions/start", json=payload, headers=auth_headers)
    assert created.status_code == 201
    assert created.json()["message"] == "Subscription created"
    assert created.json()["subscription"]["plan"] == "pro"
    assert created.json()["subscription"]["status"] == "trialing"

    replaced = client.post(
        "/api/subscriptions/start",
        json={"plan": "starter", "billing_interval": "yearly"},
        headers=auth_headers,
    )
    assert replaced.status_code == 200
    assert replaced.json()["message"] == "Subscription updated"
    assert replaced.json()["subscription"]["id"] == created.json()["subscription"]["id"]
    assert replaced.json()["subscription"]["status"] == "active"

    me = client.get("/api/subscriptions/me", headers=auth_headers).json()
    assert me["snapshot"]["plan"] == "starter"
    assert me["derived"]["is_active"] is True
    assert me["derived"]["remaining_days"] == 365


@pytest.mark.parametrize(
    "overrides",
    [
        {"plan": "gold"},
        {"billing_interval": "weekly"},
        {"national_id": "ab"},
        {"phone": "0991234567"},
        {"address": {"state": "Pichincha"}},
    ],
)
def test_start_validation_errors_are_400(client, auth_headers, overrides):
    payload = {"plan": "pro", "billing_interval": "monthly", **VALID_IDENTITY, **overrides}

    response = client.post("/api/subscriptions/start", json=payload, headers=auth_headers)

    assert response.status_code == 400
    assert client.get("/api/subscriptions", headers=auth_headers).json() == []


def test_negative_trial_days_is_422(client, auth_headers):
    payload = {"plan": "pro", "billing_interval": "monthly", "trial_days": -1, **VALID_IDENTITY}
    response = client.post("/api/subscriptions/start", json=payload, headers=auth_headers)

    assert response.status_code == 422


def test_cancel_without_subscription_is_404(client, auth_headers):
    response = client.post("/api/subscriptions/cancel", headers=auth_headers)

    assert response.status_code == 404
    assert response.json()["detail"] == "No active subscription to cancel"


def test_cancel_at_period_end_by_default(client, auth_headers):
    client.post(
        "/api/subscriptions/start",
        json={"plan": "pro", "billing_interval": "monthly", **VALID_IDENTITY},
        headers=auth_headers,
    )

    response = client.post("/api/subscriptions/cancel", headers=auth_headers)

    assert response.status_code == 200
    assert response.json()["message"] == "Subscription will be canceled at the end of the billing period"
    assert response.json()["subscription"]["cancel_at_period_end"] is True
    me = client.get("/api/subscriptions/me", headers=auth_headers).json()
    assert me["snapshot"]["status"] == "active"


def test_cancel_immediately(client, auth_headers):
    client.post(
        "/api/subscriptions/start",
        json={"plan": "pro", "billing_interval": "monthly", **VALID_IDENTITY},
        headers=auth_headers,
    )

    response = client.post("/api/subscriptions/cancel", json={"immediate": True}, headers=auth_headers)

    assert response.status_code == 200
    assert response.json()["message"] == "Subscription canceled immediately"
    assert response.json()["subscription"]["status"] == "canceled"
    me = client.get("/api/subscriptions/me", headers=auth_headers).json()
    assert me["snapshot"]["plan"] == "free"
    assert me["derived"]["is_active"] is False


def test_history_is_newest_first(client, auth_headers):
    client.post(
        "/api/subscriptions/start",
        json={"plan": "pro", "billing_interval": "monthly", **VALID_IDENTITY},
        headers=auth_headers,
    )
    client.post("/api/subscriptions/cancel", json={"immediate": True}, headers=auth_headers)
    client.post(
        "/api/subscriptions/start",
        json={"plan": "enterprise", "billing_interval": "yearly"},
        headers=auth_headers,
    )

    history = client.get("/api/subscriptions", headers=auth_headers).json()

    assert [entry["plan"] for entry in history] == ["enterprise", "pro"]
    assert [entry["is_active"] for entry in history] == [True, False]


def test_concurrent_start_conflict_is_409(client, auth_headers, monkeypatch):
    lifecycle = client.app.state.container.subscription_lifecycle

    def conflicting_start(account_id, **kwargs):
        raise SubscriptionConflictError(account_id)

    monkeypatch.setattr(lifecycle, "start_subscription", conflicting_start)
    payload = {"plan": "pro", "billing_interval": "monthly", **VALID_IDENTITY}

    response = client.post("/api/subscriptions/start", json=payload, headers=auth_headers)

    assert response.status_code == 409
