"""Integration tests for the security-status admin endpoints."""

from unittest.mock import Mock, patch

import pytest
from fastapi.testclient import TestClient

from app.adapters.abuse.base import AbuseCategory
from app.adapters.rate_limit.base import TrafficClass
from app.adapters.rate_limit.in_memory import BLOCKED_MESSAGE
from app.core.app_factory import create_app
from app.core.config import AdmissionSettings, Settings
from tests.support import BROWSER_UA, make_admission

BLOCKED_CLIENT = {"User-Agent": BROWSER_UA, "X-Forwarded-For": "198.51.100.23"}


@pytest.fixture
def admission(clock: Mock):
    return make_admission(clock, threshold=0, general=(10, 5, 300))


@pytest.fixture
def client(admission) -> TestClient:
    return TestClient(create_app(admission=admission, relay=None))


class TestAuthentication:
    def test_missing_header_is_401(self, client: TestClient) -> None:
        response = client.get("/api/security-status")

        assert response.status_code == 401
        assert response.json()["error"]["code"] == "unauthorized"
        assert response.headers["WWW-Authenticate"] == "Bearer"

    def test_wrong_scheme_is_401(self, client: TestClient) -> None:
        response = client.get("/api/security-status", headers={"Authorization": "Basic dGVzdA=="})

        assert response.status_code == 401
        assert response.json()["error"]["code"] == "unauthorized"

    def test_wrong_token_is_401(self, client: TestClient) -> None:
        response = client.get("/api/security-status", headers={"Authorization": "Bearer nope"})

        assert response.status_code == 401
        assert response.json()["error"]["code"] == "invalid_token"

    def test_post_requires_token(self, client: TestClient) -> None:
        response = client.post("/api/security-status", json={"action": "cleanup"})

        assert response.status_code == 401

    @patch("app.core.auth.settings")
    def test_unconfigured_token_fails_closed(self, mock_settings, client: TestClient, admin_headers) -> None:
        mock_settings.app.security_status_token = None

        response = client.get("/api/security-status", headers=admin_headers)

        assert response.status_code == 401
        assert response.json()["error"]["code"] == "invalid_token"


def test_status_snapshot(client: TestClient, admission, admin_headers) -> None:
    for _ in range(6):
        admission.rate_limiter.check("198.51.100.23", TrafficClass.GENERAL)
    admission.abuse_tracker.record_event("192.0.2.50", AbuseCategory.HONEYPOT_TRIGGERED)

    response = client.get("/api/security-status", headers=admin_headers)

    assert response.status_code == 200
    body = response.json()
    assert body["status"] == "operational"
    assert body["timestamp"]
    assert body["rate_limiter"]["blocked_clients"] == 1
    assert body["rate_limiter"]["blocked_client_ids"] == ["198.51.100.23"]
    # The admin request itself is tracked under the "unknown" bucket
    assert body["rate_limiter"]["tracked_entries"] == 2
    assert body["abuse_tracker"] == {
        "tracked_entries": 1,
        "blocked_clients": 1,
        "blocked_client_ids": ["192.0.2.50"],
    }


def test_status_is_read_only(client: TestClient, admission, admin_headers) -> None:
    admission.abuse_tracker.record_event("192.0.2.50", AbuseCategory.HONEYPOT_TRIGGERED)

    first = client.get("/api/security-status", headers=admin_headers).json()
    second = client.get("/api/security-status", headers=admin_headers).json()

    assert first["abuse_tracker"] == second["abuse_tracker"]


def test_unblock_action(client: TestClient, admission, admin_headers) -> None:
    admission.abuse_tracker.record_event("198.51.100.23", AbuseCategory.HONEYPOT_TRIGGERED)
    assert client.get("/docs", headers=BLOCKED_CLIENT).status_code == 403

    response = client.post(
        "/api/security-status",
        json={"action": "unblock", "ip": "198.51.100.23"},
        headers=admin_headers,
    )

    assert response.status_code == 200
    assert response.json()["success"] is True
    assert response.json()["message"] == "IP 198.51.100.23 has been unblocked"
    assert client.get("/docs", headers=BLOCKED_CLIENT).status_code == 200


def test_block_action(client: TestClient, admission, admin_headers) -> None:
    response = client.post(
        "/api/security-status",
        json={"action": "block", "ip": "198.51.100.23", "duration_seconds": 120},
        headers=admin_headers,
    )

    assert response.status_code == 200
    assert response.json()["message"] == "IP 198.51.100.23 has been blocked"

    blocked = client.get("/docs", headers=BLOCKED_CLIENT)
    assert blocked.status_code == 429
    assert blocked.headers["Retry-After"] == "120"
    assert blocked.json()["error"]["message"] == BLOCKED_MESSAGE


def test_block_action_uses_default_duration(client: TestClient, admission, admin_headers) -> None:
    client.post(
        "/api/security-status",
        json={"action": "block", "ip": "198.51.100.23"},
        headers=admin_headers,
    )

    blocked = client.get("/docs", headers=BLOCKED_CLIENT)
    assert blocked.headers["Retry-After"] == "86400"


def test_cleanup_action(client: TestClient, admission, clock: Mock, admin_headers) -> None:
    admission.rate_limiter.check("stale-1", TrafficClass.GENERAL)
    admission.rate_limiter.check("stale-2", TrafficClass.GENERAL)
    clock.return_value = 1011.0

    response = client.post("/api/security-status", json={"action": "cleanup"}, headers=admin_headers)

    assert response.status_code == 200
    assert response.json()["message"] == "Cleanup completed"
    assert response.json()["removed_entries"] == 2


@pytest.mark.parametrize(
    "payload",
    [{"action": "explode"}, {"action": "unblock"}, {"action": "block"}],
)
def test_invalid_action(client: TestClient, admin_headers, payload: dict) -> None:
    response = client.post("/api/security-status", json=payload, headers=admin_headers)

    assert response.status_code == 400
    assert response.json()["error"]["code"] == "invalid_action"


def test_non_positive_duration_is_rejected(client: TestClient, admin_headers) -> None:
    response = client.post(
        "/api/security-status",
        json={"action": "block", "ip": "198.51.100.23", "duration_seconds": 0},
        headers=admin_headers,
    )

    assert response.status_code == 422


def test_openapi_marks_only_admin_operations(client: TestClient) -> None:
    schema = client.get("/openapi.json").json()

    assert schema["components"]["securitySchemes"]["AdminBearer"]["scheme"] == "bearer"
    assert schema["paths"]["/api/security-status"]["get"]["security"] == [{"AdminBearer": []}]
    assert schema["paths"]["/api/security-status"]["post"]["security"] == [{"AdminBearer": []}]
    assert "security" not in schema["paths"]["/api/submit"]["post"]
    assert {tag["name"] for tag in schema["tags"]} >= {"Submissions", "Security", "Health"}


def test_block_default_duration_follows_app_settings(clock: Mock, admin_headers) -> None:
    admission = make_admission(clock)
    app_settings = Settings(admission=AdmissionSettings(manual_block_seconds=60))
    client = TestClient(create_app(app_settings=app_settings, admission=admission, relay=None))

    response = client.post(
        "/api/security-status",
        json={"action": "block", "ip": "9.9.9.9"},
        headers=admin_headers,
    )

    assert response.status_code == 200
    decision = admission.rate_limiter.check("9.9.9.9", TrafficClass.GENERAL)
    assert decision.allowed is False
    assert decision.retry_after_seconds == 60
