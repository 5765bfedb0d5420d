"""Tests for the trigger endpoint FastAPI app."""

from __future__ import annotations

import json

import pytest

fastapi = pytest.importorskip("fastapi")

from fastapi.testclient import TestClient  # noqa: E402

from tests.conftest import (  # noqa: E402
    NOW,
    SECRET,
    SITE,
    WATCHTOWER,
    FixedClock,
    RecordingTransport,
    StaticCollector,
    make_config,
)
from warden.core.agent import WardenAgent  # noqa: E402
from warden.core.constants import TRIGGER_PATH  # noqa: E402
from warden.core.exceptions import RateLimitError, ValidationError  # noqa: E402
from warden.core.models import TransportResponse  # noqa: E402
from warden.protocol.trigger import client_identity_key, sign_trigger  # noqa: E402
from warden.server.app import client_ip, create_app, error_body  # noqa: E402


def _payload(ts: int = NOW) -> dict:
    return {
        "watchtower_url": WATCHTOWER,
        "timestamp": ts,
        "signature": sign_trigger(WATCHTOWER, ts, SITE, SECRET),
    }


def _agent(tmp_path, transport=None, **cfg) -> WardenAgent:
    config = make_config(database={"path": str(tmp_path / "warden.db")}, **cfg)
    return WardenAgent(
        config,
        collector=StaticCollector(),
        transport=transport or RecordingTransport(),
        clock=FixedClock(),
    )


@pytest.fixture
def transport():
    return RecordingTransport()


@pytest.fixture
def agent(tmp_path, transport):
    a = _agent(tmp_path, transport=transport)
    yield a
    a.close()


@pytest.fixture
def client(agent):
    return TestClient(create_app(agent))


# ---------------------------------------------------------------------------
# POST /warden/v1/trigger
# ---------------------------------------------------------------------------


class TestTriggerSuccess:
    def test_returns_200(self, client):
        response = client.post(TRIGGER_PATH, json=_payload())
        assert response.status_code == 200
        assert response.json() == {
            "success": True,
            "message": "Report sent successfully",
            "site": SITE,
        }

    def test_report_posted(self, client, transport):
        client.post(TRIGGER_PATH, json=_payload())
        assert len(transport.requests) == 1

    def test_string_timestamp_accepted(self, client):
        payload = _payload()
        payload["timestamp"] = str(NOW)
        assert client.post(TRIGGER_PATH, json=payload).status_code == 200


class TestTriggerRejected:
    def test_missing_fields_400(self, client):
        response = client.post(TRIGGER_PATH, json={"timestamp": NOW})
        assert response.status_code == 400
        assert response.json() == {
            "code": "missing_fields",
            "message": "Missing required fields.",
            "data": {"status": 400},
        }

    def test_malformed_json_400(self, client):
        response = client.post(
            TRIGGER_PATH,
            content=b"{not json",
            headers={"Content-Type": "application/json"},
        )
        assert response.status_code == 400
        assert response.json()["code"] == "missing_fields"

    def test_json_array_400(self, client):
        response = client.post(TRIGGER_PATH, content=json.dumps([1, 2]))
        assert response.status_code == 400

    def test_expired_401(self, client):
        response = client.post(TRIGGER_PATH, json=_payload(NOW - 301))
        assert response.status_code == 401
        assert response.json()["code"] == "invalid_timestamp"

    def test_bad_signature_401(self, client):
        payload = _payload()
        payload["signature"] = "deadbeef"
        response = client.post(TRIGGER_PATH, json=payload)
        assert response.status_code == 401
        assert response.json()["code"] == "invalid_signature"

    def test_wrong_origin_401(self, client):
        payload = _payload()
        payload["watchtower_url"] = "https://evil.example.com"
        response = client.post(TRIGGER_PATH, json=payload)
        assert response.status_code == 401
        assert response.json()["code"] == "invalid_watchtower"

    def test_rate_limited_429(self, client):
        assert client.post(TRIGGER_PATH, json=_payload()).status_code == 200
        response = client.post(TRIGGER_PATH, json=_payload())
        assert response.status_code == 429
        body = response.json()
        assert body["code"] == "rate_limited"
        assert body["retry_after"] == 300
        assert response.headers["Retry-After"] == "300"

    @pytest.mark.parametrize("literal", ["Infinity", "-Infinity", "NaN", '"' + "1" * 5000 + '"'])
    def test_unusable_timestamp_401(self, client, literal):
        body = (
            f'{{"watchtower_url": "{WATCHTOWER}", "timestamp": {literal}, '
            f'"signature": "{"0" * 64}"}}'
        )
        response = client.post(
            TRIGGER_PATH, content=body, headers={"Content-Type": "application/json"}
        )
        assert response.status_code == 401
        assert response.json()["code"] == "invalid_timestamp"

    def test_get_not_allowed(self, client):
        assert client.get(TRIGGER_PATH).status_code == 405


class TestTriggerServerErrors:
    def test_not_configured_500(self, tmp_path):
        with _agent(tmp_path, watchtower={"url": "", "secret": ""}) as a:
            response = TestClient(create_app(a)).post(TRIGGER_PATH, json=_payload())
        assert response.status_code == 500
        assert response.json()["code"] == "not_configured"

    def test_report_failed_500(self, tmp_path):
        transport = RecordingTransport(TransportResponse(503, "unavailable"))
        with _agent(tmp_path, transport=transport) as a:
            response = TestClient(create_app(a)).post(TRIGGER_PATH, json=_payload())
        assert response.status_code == 500
        body = response.json()
        assert body["code"] == "report_failed"
        assert body["message"] == "HTTP 503"


class TestClientKeying:
    def test_forwarded_clients_limited_separately(self, client):
        first = client.post(TRIGGER_PATH, json=_payload(), headers={"X-Forwarded-For": "203.0.113.5"})
        second = client.post(TRIGGER_PATH, json=_payload(), headers={"X-Forwarded-For": "203.0.113.6"})
        assert first.status_code == 200
        assert second.status_code == 200

    def test_same_forwarded_client_limited(self, client, agent):
        headers = {"CF-Connecting-IP": "198.51.100.7"}
        client.post(TRIGGER_PATH, json=_payload(), headers=headers)
        assert client.post(TRIGGER_PATH, json=_payload(), headers=headers).status_code == 429
        assert agent.db.last_accepted(client_identity_key("198.51.100.7")) == NOW


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


class TestClientIp:
    def test_cloudflare_header_first(self):
        headers = {"cf-connecting-ip": "198.51.100.1", "x-forwarded-for": "203.0.113.9"}
        assert client_ip(headers, "10.0.0.1") == "198.51.100.1"

    def test_first_forwarded_hop(self):
        assert client_ip({"x-forwarded-for": "203.0.113.9, 10.0.0.2"}, None) == "203.0.113.9"

    def test_real_ip(self):
        assert client_ip({"x-real-ip": "2001:db8::1"}, None) == "2001:db8::1"

    def test_peer_fallback(self):
        assert client_ip({}, "10.0.0.1") == "10.0.0.1"

    def test_invalid_header_is_unknown(self):
        assert client_ip({"x-forwarded-for": "not-an-ip"}, "10.0.0.1") == "unknown"

    def test_no_peer(self):
        assert client_ip({}, None) == "unknown"


class TestErrorBody:
    def test_validation_error(self):
        body = error_body(ValidationError("invalid_signature", "Invalid signature."))
        assert body == {
            "code": "invalid_signature",
            "message": "Invalid signature.",
            "data": {"status": 401},
        }

    def test_rate_limit_has_retry_after(self):
        body = error_body(RateLimitError(42))
        assert body["retry_after"] == 42
        assert body["data"]["status"] == 429
