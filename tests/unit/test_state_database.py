"""Unit tests for warden.core.store.database: SQLite state, cooldowns and cache."""

from __future__ import annotations

import threading
from pathlib import Path

import pytest

from warden.core.models import ChangeState, ReportStatus
from warden.core.store.database import Database
from warden.core.store.memory import MemoryRateLimitStore, MemoryStateStore


@pytest.fixture
def db(tmp_path: Path) -> Database:
    d = Database(tmp_path / "warden.db")
    d.connect()
    yield d
    d.close()


# ---------------------------------------------------------------------------
# Change state
# ---------------------------------------------------------------------------


class TestChangeState:
    def test_empty_database_defaults(self, db: Database) -> None:
        assert db.load_state() == ChangeState()

    def test_round_trip(self, db: Database) -> None:
        state = ChangeState("abc123", 1_700_000_000, ReportStatus.SUCCESS)
        assert db.save_state(state) is True
        assert db.load_state() == state

    def test_failure_keeps_content_hash(self, db: Database) -> None:
        db.save_state(ChangeState("abc123", 100, ReportStatus.SUCCESS))
        db.save_state(ChangeState("", 200, ReportStatus.FAILED, "HTTP 500"))
        assert db.load_state() == ChangeState("abc123", 200, ReportStatus.FAILED, "HTTP 500")

    def test_clearing_error(self, db: Database) -> None:
        db.save_state(ChangeState("h", 1, ReportStatus.FAILED, "boom"))
        db.save_state(ChangeState("h", 2, ReportStatus.SUCCESS, None))
        assert db.load_state().last_error is None

    def test_persists_across_connections(self, tmp_path: Path) -> None:
        path = tmp_path / "warden.db"
        with Database(path) as first:
            first.save_state(ChangeState("h", 42, ReportStatus.SUCCESS))
        with Database(path) as second:
            assert second.load_state().last_send_time == 42

    def test_unknown_status_value_tolerated(self, db: Database) -> None:
        db.conn.execute("INSERT INTO state (key, value) VALUES ('last_status', 'weird')")
        assert db.load_state().last_status == ReportStatus.UNKNOWN

    def test_not_connected(self, tmp_path: Path) -> None:
        with pytest.raises(RuntimeError):
            Database(tmp_path / "x.db").load_state()


class TestStateOrdering:
    """Two connections on one file, as the report timer and the server run."""

    @pytest.fixture
    def pair(self, tmp_path: Path):
        path = tmp_path / "warden.db"
        a, b = Database(path), Database(path)
        a.connect()
        b.connect()
        yield a, b
        a.close()
        b.close()

    def test_older_failure_does_not_replace_newer_success(self, pair) -> None:
        a, b = pair
        b.save_state(ChangeState("fresh", 1005, ReportStatus.SUCCESS))

        assert a.save_state(ChangeState("", 1000, ReportStatus.FAILED, "late failure")) is False
        assert a.load_state() == ChangeState("fresh", 1005, ReportStatus.SUCCESS)

    def test_older_success_does_not_roll_back(self, pair) -> None:
        a, b = pair
        b.save_state(ChangeState("fresh", 1005, ReportStatus.SUCCESS))
        assert a.save_state(ChangeState("stale", 1000, ReportStatus.SUCCESS)) is False
        assert b.load_state().last_content_hash == "fresh"

    def test_failure_in_same_second_keeps_success(self, pair) -> None:
        a, b = pair
        b.save_state(ChangeState("fresh", 1000, ReportStatus.SUCCESS))
        assert a.save_state(ChangeState("", 1000, ReportStatus.FAILED, "boom")) is False
        assert a.load_state().last_status == ReportStatus.SUCCESS

    def test_later_failure_recorded_with_stored_hash(self, pair) -> None:
        a, b = pair
        b.save_state(ChangeState("fresh", 1000, ReportStatus.SUCCESS))
        assert a.save_state(ChangeState("stale", 1010, ReportStatus.FAILED, "boom")) is True
        assert b.load_state() == ChangeState("fresh", 1010, ReportStatus.FAILED, "boom")


# ---------------------------------------------------------------------------
# Rate limits
# ---------------------------------------------------------------------------


class TestRateLimits:
    def test_acquire_then_blocked(self, db: Database) -> None:
        assert db.try_acquire("k", 1000, 300) == 0
        assert db.last_accepted("k") == 1000
        assert db.try_acquire("k", 1100, 300) == 200
        assert db.last_accepted("k") == 1000

    def test_acquire_after_window(self, db: Database) -> None:
        db.try_acquire("k", 1000, 300)
        assert db.try_acquire("k", 1300, 300) == 0
        assert db.last_accepted("k") == 1300

    def test_purge(self, db: Database) -> None:
        db.try_acquire("old", 100, 300)
        db.try_acquire("new", 1000, 300)
        assert db.purge_rate_limits(before=500) == 1
        assert db.last_accepted("old") is None
        assert db.last_accepted("new") == 1000

    def test_two_connections_race(self, tmp_path: Path) -> None:
        path = tmp_path / "warden.db"
        a, b = Database(path), Database(path)
        a.connect()
        b.connect()
        try:
            results = []
            barrier = threading.Barrier(2)

            def worker(d: Database) -> None:
                barrier.wait()
                results.append(d.try_acquire("k", 1000, 300))

            threads = [threading.Thread(target=worker, args=(d,)) for d in (a, b)]
            for t in threads:
                t.start()
            for t in threads:
                t.join()
            assert sorted(results) == [0, 300]
        finally:
            a.close()
            b.close()


# ---------------------------------------------------------------------------
# Version cache and uninstall
# ---------------------------------------------------------------------------


class TestVersionCache:
    def test_hit_before_expiry(self, db: Database) -> None:
        db.cache_set("latest:python", "3.13.1", expires_at=2000)
        assert db.cache_get("latest:python", now=1999) == "3.13.1"

    def test_miss_after_expiry(self, db: Database) -> None:
        db.cache_set("latest:python", "3.13.1", expires_at=2000)
        assert db.cache_get("latest:python", now=2000) is None

    def test_overwrite(self, db: Database) -> None:
        db.cache_set("k", "1", 2000)
        db.cache_set("k", "2", 3000)
        assert db.cache_get("k", 2500) == "2"


class TestClearRuntimeState:
    def test_clears_everything(self, db: Database) -> None:
        db.save_state(ChangeState("h", 1, ReportStatus.SUCCESS))
        db.try_acquire("k", 1000, 300)
        db.cache_set("c", "v", 5000)

        db.clear_runtime_state()

        assert db.load_state() == ChangeState()
        assert db.last_accepted("k") is None
        assert db.cache_get("c", 0) is None


# ---------------------------------------------------------------------------
# In-memory stores
# ---------------------------------------------------------------------------


class TestMemoryStores:
    def test_state_round_trip(self) -> None:
        store = MemoryStateStore()
        state = ChangeState("h", 5, ReportStatus.SUCCESS)
        store.save_state(state)
        assert store.load_state() is state

    def test_rate_limit_semantics_match_sqlite(self) -> None:
        store = MemoryRateLimitStore()
        assert store.try_acquire("k", 1000, 300) == 0
        assert store.try_acquire("k", 1299, 300) == 1
        assert store.try_acquire("k", 1300, 300) == 0

    def test_memory_cache_expiry(self) -> None:
        store = MemoryStateStore()
        store.cache_set("k", "v", 10)
        assert store.cache_get("k", 9) == "v"
        assert store.cache_get("k", 10) is None

    def test_memory_refuses_older_state(self) -> None:
        store = MemoryStateStore(ChangeState("fresh", 1005, ReportStatus.SUCCESS))
        assert store.save_state(ChangeState("", 1000, ReportStatus.FAILED, "late")) is False
        assert store.save_state(ChangeState("x", 1010, ReportStatus.FAILED, "boom")) is True
        assert store.load_state() == ChangeState("fresh", 1010, ReportStatus.FAILED, "boom")

    def test_memory_clear(self) -> None:
        store = MemoryStateStore(ChangeState("h", 1))
        store.cache_set("k", "v", 10)
        store.clear_runtime_state()
        assert store.load_state() == ChangeState()
        assert store.cache_get("k", 0) is None
