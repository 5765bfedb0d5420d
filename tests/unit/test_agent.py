"""Unit tests for warden.core.agent.WardenAgent."""

from __future__ import annotations

import pytest

from tests.conftest import (
    NOW,
    SECRET,
    SITE,
    WATCHTOWER,
    FixedClock,
    RecordingTransport,
    StaticCollector,
    make_config,
)
from warden.core.agent import WardenAgent
from warden.core.exceptions import RateLimitError, TransportError, ValidationError
from warden.core.models import CycleOutcome, ReportStatus, TransportResponse
from warden.core.store.database import Database
from warden.protocol.crypter import derive_key_id
from warden.protocol.trigger import sign_trigger

CLIENT = "trigger:client-a"


def _payload(ts: int = NOW) -> dict:
    return {
        "watchtower_url": WATCHTOWER,
        "timestamp": ts,
        "signature": sign_trigger(WATCHTOWER, ts, SITE, SECRET),
    }


@pytest.fixture
def clock() -> FixedClock:
    return FixedClock()


@pytest.fixture
def transport() -> RecordingTransport:
    return RecordingTransport()


@pytest.fixture
def agent(tmp_path, clock, transport):
    cfg = make_config(database={"path": str(tmp_path / "warden.db")})
    a = WardenAgent(cfg, collector=StaticCollector(), transport=transport, clock=clock)
    yield a
    a.close()


# ---------------------------------------------------------------------------
# Cycle
# ---------------------------------------------------------------------------


class TestRunCycle:
    def test_first_run_sends(self, agent, transport) -> None:
        result = agent.run_cycle()
        assert result.outcome == CycleOutcome.SENT
        assert transport.requests[0][0] == WATCHTOWER + "/api/v1/report"

    def test_second_run_skips(self, agent, transport) -> None:
        agent.run_cycle()
        assert agent.run_cycle().outcome == CycleOutcome.SKIPPED
        assert len(transport.requests) == 1

    def test_uses_given_database(self, tmp_path, clock, transport) -> None:
        db = Database(tmp_path / "shared.db")
        db.connect()
        with WardenAgent(make_config(), db=db, collector=StaticCollector(), transport=transport, clock=clock) as a:
            a.run_cycle()
            assert a.db is db
        assert db.is_connected is False


# ---------------------------------------------------------------------------
# Triggers
# ---------------------------------------------------------------------------


class TestHandleTrigger:
    def test_success_body(self, agent) -> None:
        body = agent.handle_trigger(_payload(), CLIENT)
        assert body == {"success": True, "message": "Report sent successfully", "site": SITE}

    def test_trigger_forces_send(self, agent, transport) -> None:
        agent.run_cycle()
        agent.handle_trigger(_payload(), CLIENT)
        assert len(transport.requests) == 2

    def test_second_trigger_rate_limited(self, agent, clock) -> None:
        agent.handle_trigger(_payload(), CLIENT)
        clock.advance(10)
        with pytest.raises(RateLimitError) as exc_info:
            agent.handle_trigger(_payload(int(clock.now)), CLIENT)
        assert exc_info.value.retry_after == 290

    def test_bad_signature_does_not_send(self, agent, transport) -> None:
        payload = _payload()
        payload["signature"] = "0" * 64
        with pytest.raises(ValidationError) as exc_info:
            agent.handle_trigger(payload, CLIENT)
        assert exc_info.value.code == "invalid_signature"
        assert transport.requests == []

    def test_failed_cycle_raises_transport_error(self, tmp_path, clock) -> None:
        cfg = make_config(database={"path": str(tmp_path / "warden.db")})
        transport = RecordingTransport(TransportResponse(500, '{"message": "Watchtower down"}'))
        with WardenAgent(cfg, collector=StaticCollector(), transport=transport, clock=clock) as a:
            with pytest.raises(TransportError, match="Watchtower down") as exc_info:
                a.handle_trigger(_payload(), CLIENT)
        assert exc_info.value.status_code == 500


# ---------------------------------------------------------------------------
# Status / uninstall
# ---------------------------------------------------------------------------


class TestStatus:
    def test_before_first_report(self, agent) -> None:
        status = agent.status()
        assert status["configured"] is True
        assert status["site_url"] == SITE
        assert status["watchtower_url"] == WATCHTOWER
        assert status["key_id"] == derive_key_id(SECRET)
        assert status["last_status"] == ReportStatus.UNKNOWN.value
        assert status["last_report"] is None

    def test_after_report(self, agent) -> None:
        agent.run_cycle()
        status = agent.status()
        assert status["last_status"] == ReportStatus.SUCCESS.value
        assert status["last_report"] == NOW
        assert status["last_error"] is None

    def test_unconfigured(self, tmp_path, clock) -> None:
        cfg = make_config(
            watchtower={"url": "", "secret": ""},
            database={"path": str(tmp_path / "warden.db")},
        )
        with WardenAgent(cfg, collector=StaticCollector(), transport=RecordingTransport(), clock=clock) as a:
            status = a.status()
        assert status["configured"] is False
        assert status["key_id"] is None


class TestUninstall:
    def test_clears_state_and_cooldowns(self, agent, transport) -> None:
        agent.handle_trigger(_payload(), CLIENT)
        agent.uninstall()

        assert agent.status()["last_report"] is None
        assert agent.db.last_accepted(CLIENT) is None
        # cooldown gone, so the same client may trigger immediately
        agent.handle_trigger(_payload(), CLIENT)
        assert len(transport.requests) == 2
