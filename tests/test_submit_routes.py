"""Integration tests for POST /api/submit."""

import json
from unittest.mock import Mock

import httpx
import pytest
from fastapi.testclient import TestClient

from app.adapters.relay.http_form_relay import HttpFormRelay
from app.core.app_factory import create_app
from tests.support import BROWSER_UA, SENSITIVE_MESSAGE, VALID_FORM, make_admission

RELAY_URL = "https://relay.example/exec"
CLIENT_HEADERS = {"User-Agent": BROWSER_UA, "X-Forwarded-For": "203.0.113.7"}


class RecordingHandler:
    """MockTransport handler that records relayed requests."""

    def __init__(self, status_code: int = 200, exc: Exception | None = None) -> None:
        self.status_code = status_code
        self.exc = exc
        self.requests: list[httpx.Request] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if self.exc is not None:
            raise self.exc
        return httpx.Response(self.status_code, json={"result": "success"})


def _client(clock: Mock, handler: RecordingHandler | None = None, **admission_kwargs):
    admission = make_admission(clock, **admission_kwargs)
    relay = None
    if handler is not None:
        relay = HttpFormRelay(RELAY_URL, transport=httpx.MockTransport(handler))
    return TestClient(create_app(admission=admission, relay=relay)), admission


def test_json_submission_is_relayed(clock: Mock) -> None:
    handler = RecordingHandler()
    client, _ = _client(clock, handler)

    response = client.post("/api/submit", json=VALID_FORM, headers=CLIENT_HEADERS)

    assert response.status_code == 200
    body = response.json()
    assert body["success"] is True
    assert body["message"] == "Application submitted successfully"
    assert body["submission_id"]

    assert len(handler.requests) == 1
    relayed = handler.requests[0]
    assert str(relayed.url) == RELAY_URL
    assert relayed.headers["content-type"].startswith("multipart/form-data")
    assert relayed.headers["user-agent"] == "Application-Intake/1.0"
    assert b'name="fullName"' in relayed.content
    assert b"203.0.113.7" in relayed.content


def test_urlencoded_submission(clock: Mock) -> None:
    client, _ = _client(clock, RecordingHandler())

    response = client.post("/api/submit", data=VALID_FORM, headers=CLIENT_HEADERS)

    assert response.status_code == 200


def test_multipart_submission(clock: Mock) -> None:
    client, _ = _client(clock, RecordingHandler())
    parts = {key: (None, value) for key, value in VALID_FORM.items()}

    response = client.post("/api/submit", files=parts, headers=CLIENT_HEADERS)

    assert response.status_code == 200


def test_unsupported_content_type(clock: Mock) -> None:
    client, _ = _client(clock, RecordingHandler())

    response = client.post(
        "/api/submit",
        content=b"fullName=Asha",
        headers={**CLIENT_HEADERS, "Content-Type": "text/plain"},
    )

    assert response.status_code == 400
    assert response.json()["error"]["code"] == "invalid_content_type"


@pytest.mark.parametrize("raw", [b"{not json", json.dumps(["a", "b"]).encode()])
def test_malformed_json(clock: Mock, raw: bytes) -> None:
    client, _ = _client(clock, RecordingHandler())

    response = client.post(
        "/api/submit",
        content=raw,
        headers={**CLIENT_HEADERS, "Content-Type": "application/json"},
    )

    assert response.status_code == 400
    assert response.json()["error"]["code"] == "invalid_json"


def test_validation_errors_are_listed(clock: Mock) -> None:
    handler = RecordingHandler()
    client, admission = _client(clock, handler)
    data = dict(VALID_FORM, email="nope", teamWork="Maybe")

    response = client.post("/api/submit", json=data, headers=CLIENT_HEADERS)

    assert response.status_code == 400
    error = response.json()["error"]
    assert error["code"] == "validation_error"
    assert error["message"] == "Validation failed"
    assert error["details"]["errors"] == ["email: Invalid email format", "Invalid team work preference"]
    assert handler.requests == []
    assert admission.abuse_tracker.stats().tracked_entries == 1


def test_honeypot_returns_429(clock: Mock) -> None:
    handler = RecordingHandler()
    client, _ = _client(clock, handler)

    response = client.post("/api/submit", json=dict(VALID_FORM, _honeypot="gotcha"), headers=CLIENT_HEADERS)

    assert response.status_code == 429
    assert response.json()["error"]["code"] == "spam_detected"
    assert handler.requests == []


def test_short_user_agent_rejected(clock: Mock) -> None:
    client, _ = _client(clock, RecordingHandler())

    response = client.post(
        "/api/submit",
        json=VALID_FORM,
        headers={"User-Agent": "Mozilla", "X-Forwarded-For": "203.0.113.7"},
    )

    assert response.status_code == 400
    assert response.json()["error"]["code"] == "invalid_request"


def test_missing_relay_is_500(clock: Mock) -> None:
    client, _ = _client(clock, handler=None)

    response = client.post("/api/submit", json=VALID_FORM, headers=CLIENT_HEADERS)

    assert response.status_code == 500
    assert response.json()["error"]["code"] == "config_error"


def test_relay_timeout_is_408(clock: Mock) -> None:
    handler = RecordingHandler(exc=httpx.ReadTimeout("timed out"))
    client, admission = _client(clock, handler)

    response = client.post("/api/submit", json=VALID_FORM, headers=CLIENT_HEADERS)

    assert response.status_code == 408
    assert response.json()["error"]["code"] == "timeout"
    assert admission.abuse_tracker.stats().tracked_entries == 1


@pytest.mark.parametrize(
    "handler",
    [RecordingHandler(status_code=502), RecordingHandler(exc=httpx.ConnectError("refused"))],
)
def test_relay_failure_is_500(clock: Mock, handler: RecordingHandler) -> None:
    client, _ = _client(clock, handler)

    response = client.post("/api/submit", json=VALID_FORM, headers=CLIENT_HEADERS)

    assert response.status_code == 500
    assert response.json()["error"]["code"] == "submission_error"
    assert response.json()["error"]["message"] == "Submission failed. Please try again later."


def test_sensitive_quota_blocks_fourth_submission(clock: Mock) -> None:
    handler = RecordingHandler()
    client, admission = _client(clock, handler, sensitive=(900, 3, 3600))

    for _ in range(3):
        assert client.post("/api/submit", json=VALID_FORM, headers=CLIENT_HEADERS).status_code == 200

    response = client.post("/api/submit", json=VALID_FORM, headers=CLIENT_HEADERS)

    assert response.status_code == 429
    assert response.headers["Retry-After"] == "3600"
    assert response.json()["error"]["message"] == SENSITIVE_MESSAGE
    assert len(handler.requests) == 3
    assert admission.abuse_tracker.stats().tracked_entries == 1

    # Browsing is still allowed on the general profile
    assert client.get("/docs", headers=CLIENT_HEADERS).status_code == 200


def test_api_responses_carry_hardening_headers(clock: Mock) -> None:
    client, _ = _client(clock, RecordingHandler())

    response = client.post("/api/submit", json=VALID_FORM, headers=CLIENT_HEADERS)

    assert response.headers["X-Frame-Options"] == "DENY"
    assert response.headers["Cache-Control"].startswith("no-store")
    assert response.headers["X-Robots-Tag"] == "noindex, nofollow"
