"""
SQLite-backed runtime state for Warden.

One database file (``~/.warden/warden.db``) holds:

  - state         last content hash, last report time, status, error
  - rate_limits   client identity key -> last accepted trigger timestamp
  - cache         latest-release lookups with an expiry

The scheduler (``warden report``) and the trigger server (``warden serve``)
may run as separate processes, so writes that must be atomic run inside
``BEGIN IMMEDIATE`` transactions rather than relying on in-process locks.
"""

from __future__ import annotations

import logging
import sqlite3
import threading
from pathlib import Path

from warden.core.interfaces import ChangeStateStore, RateLimitStore, VersionCache
from warden.core.models import ChangeState, ReportStatus

logger = logging.getLogger(__name__)

_SCHEMA = """
CREATE TABLE IF NOT EXISTS state (
    key   TEXT PRIMARY KEY,
    value TEXT
);
CREATE TABLE IF NOT EXISTS rate_limits (
    client_key  TEXT PRIMARY KEY,
    accepted_at INTEGER NOT NULL
);
CREATE TABLE IF NOT EXISTS cache (
    key        TEXT PRIMARY KEY,
    value      TEXT NOT NULL,
    expires_at INTEGER NOT NULL
);
"""

_STATE_KEYS = ("data_hash", "last_report", "last_status", "last_error")


class Database(ChangeStateStore, RateLimitStore, VersionCache):
    """
    Thin sqlite3 wrapper implementing the Warden state stores.

    Usage::

        db = Database(path)
        db.connect()
        state = db.load_state()
        db.close()
    """

    def __init__(self, path: Path) -> None:
        self.path = path
        self._conn: sqlite3.Connection | None = None
        self._lock = threading.Lock()

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def connect(self) -> None:
        self.path.parent.mkdir(mode=0o700, parents=True, exist_ok=True)
        # isolation_level=None: transactions are managed explicitly below
        self._conn = sqlite3.connect(
            str(self.path),
            isolation_level=None,
            check_same_thread=False,
            timeout=10.0,
        )
        self._conn.row_factory = sqlite3.Row
        self._conn.executescript(_SCHEMA)
        logger.debug("State database open: %s", self.path)

    def close(self) -> None:
        if self._conn is not None:
            self._conn.close()
            self._conn = None

    def __enter__(self) -> Database:
        self.connect()
        return self

    def __exit__(self, *exc: object) -> None:
        self.close()

    @property
    def is_connected(self) -> bool:
        return self._conn is not None

    @property
    def conn(self) -> sqlite3.Connection:
        if self._conn is None:
            raise RuntimeError("Database is not connected")
        return self._conn

    # ------------------------------------------------------------------
    # ChangeState
    # ------------------------------------------------------------------

    def _read_state(self, conn: sqlite3.Connection) -> ChangeState:
        rows = conn.execute(
            "SELECT key, value FROM state WHERE key IN (?, ?, ?, ?)", _STATE_KEYS
        ).fetchall()
        values = {row["key"]: row["value"] for row in rows}
        last_report = values.get("last_report")
        try:
            status = ReportStatus(values.get("last_status") or ReportStatus.UNKNOWN)
        except ValueError:
            status = ReportStatus.UNKNOWN
        return ChangeState(
            last_content_hash=values.get("data_hash") or "",
            last_send_time=int(last_report) if last_report else None,
            last_status=status,
            last_error=values.get("last_error") or None,
        )

    def load_state(self) -> ChangeState:
        with self._lock:
            return self._read_state(self.conn)

    def save_state(self, state: ChangeState) -> bool:
        items = [
            ("last_report", str(state.last_send_time) if state.last_send_time else None),
            ("last_status", state.last_status.value),
            ("last_error", state.last_error),
        ]
        if state.last_status != ReportStatus.FAILED:
            items.append(("data_hash", state.last_content_hash or None))
        with self._lock:
            conn = self.conn
            conn.execute("BEGIN IMMEDIATE")
            try:
                stored = self._read_state(conn)
                if stored.outdates(state):
                    conn.execute("COMMIT")
                    logger.info(
                        "Newer report state (%s at %s) kept; %s at %s not written",
                        stored.last_status.value,
                        stored.last_send_time,
                        state.last_status.value,
                        state.last_send_time,
                    )
                    return False
                for key, value in items:
                    if value is None:
                        conn.execute("DELETE FROM state WHERE key = ?", (key,))
                    else:
                        conn.execute(
                            "INSERT INTO state (key, value) VALUES (?, ?) "
                            "ON CONFLICT(key) DO UPDATE SET value = excluded.value",
                            (key, value),
                        )
                conn.execute("COMMIT")
            except sqlite3.Error:
                conn.execute("ROLLBACK")
                raise
        return True

    # ------------------------------------------------------------------
    # Rate limits
    # ------------------------------------------------------------------

    def last_accepted(self, key: str) -> int | None:
        with self._lock:
            row = self.conn.execute(
                "SELECT accepted_at FROM rate_limits WHERE client_key = ?", (key,)
            ).fetchone()
        return int(row["accepted_at"]) if row else None

    def try_acquire(self, key: str, now: int, cooldown: int) -> int:
        with self._lock:
            conn = self.conn
            conn.execute("BEGIN IMMEDIATE")
            try:
                row = conn.execute(
                    "SELECT accepted_at FROM rate_limits WHERE client_key = ?", (key,)
                ).fetchone()
                if row is not None:
                    remaining = cooldown - (now - int(row["accepted_at"]))
                    if remaining > 0:
                        conn.execute("COMMIT")
                        return remaining
                conn.execute(
                    "INSERT INTO rate_limits (client_key, accepted_at) VALUES (?, ?) "
                    "ON CONFLICT(client_key) DO UPDATE SET accepted_at = excluded.accepted_at",
                    (key, now),
                )
                conn.execute("COMMIT")
                return 0
            except sqlite3.Error:
                conn.execute("ROLLBACK")
                raise

    def purge_rate_limits(self, before: int) -> int:
        with self._lock:
            cur = self.conn.execute("DELETE FROM rate_limits WHERE accepted_at < ?", (before,))
        return cur.rowcount

    # ------------------------------------------------------------------
    # Version cache
    # ------------------------------------------------------------------

    def cache_get(self, key: str, now: int) -> str | None:
        with self._lock:
            row = self.conn.execute(
                "SELECT value, expires_at FROM cache WHERE key = ?", (key,)
            ).fetchone()
        if row is None or int(row["expires_at"]) <= now:
            return None
        return str(row["value"])

    def cache_set(self, key: str, value: str, expires_at: int) -> None:
        with self._lock:
            self.conn.execute(
                "INSERT INTO cache (key, value, expires_at) VALUES (?, ?, ?) "
                "ON CONFLICT(key) DO UPDATE SET value = excluded.value, "
                "expires_at = excluded.expires_at",
                (key, value, expires_at),
            )

    # ------------------------------------------------------------------
    # Uninstall
    # ------------------------------------------------------------------

    def clear_runtime_state(self) -> None:
        """Remove state, cooldowns and cached lookups in one transaction."""
        with self._lock:
            conn = self.conn
            conn.execute("BEGIN IMMEDIATE")
            try:
                conn.execute("DELETE FROM state")
                conn.execute("DELETE FROM rate_limits")
                conn.execute("DELETE FROM cache")
                conn.execute("COMMIT")
            except sqlite3.Error:
                conn.execute("ROLLBACK")
                raise
        logger.info("Runtime state cleared: %s", self.path)
