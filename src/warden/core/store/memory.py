"""In-process state stores, used by tests and when embedding the core."""

from __future__ import annotations

import threading
from dataclasses import replace

from warden.core.interfaces import ChangeStateStore, RateLimitStore, VersionCache
from warden.core.models import ChangeState, ReportStatus


class MemoryStateStore(ChangeStateStore, VersionCache):
    """ChangeState and version cache held in memory."""

    def __init__(self, state: ChangeState | None = None) -> None:
        self._state = state or ChangeState()
        self._cache: dict[str, tuple[str, int]] = {}
        self._lock = threading.Lock()

    def load_state(self) -> ChangeState:
        with self._lock:
            return self._state

    def save_state(self, state: ChangeState) -> bool:
        with self._lock:
            if self._state.outdates(state):
                return False
            if state.last_status == ReportStatus.FAILED:
                state = replace(state, last_content_hash=self._state.last_content_hash)
            self._state = state
        return True

    def cache_get(self, key: str, now: int) -> str | None:
        with self._lock:
            entry = self._cache.get(key)
        if entry is None or entry[1] <= now:
            return None
        return entry[0]

    def cache_set(self, key: str, value: str, expires_at: int) -> None:
        with self._lock:
            self._cache[key] = (value, expires_at)

    def clear_runtime_state(self) -> None:
        with self._lock:
            self._state = ChangeState()
            self._cache.clear()


class MemoryRateLimitStore(RateLimitStore):
    """Cooldown entries in a dict; check-and-set runs under one lock."""

    def __init__(self) -> None:
        self._entries: dict[str, int] = {}
        self._lock = threading.Lock()

    def last_accepted(self, key: str) -> int | None:
        with self._lock:
            return self._entries.get(key)

    def try_acquire(self, key: str, now: int, cooldown: int) -> int:
        with self._lock:
            last = self._entries.get(key)
            if last is not None:
                remaining = cooldown - (now - last)
                if remaining > 0:
                    return remaining
            self._entries[key] = now
            return 0

    def purge_rate_limits(self, before: int) -> int:
        with self._lock:
            stale = [k for k, ts in self._entries.items() if ts < before]
            for k in stale:
                del self._entries[k]
        return len(stale)
