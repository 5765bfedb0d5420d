"""State stores: SQLite for the installed agent, in-memory for tests."""

from warden.core.store.database import Database
from warden.core.store.memory import MemoryRateLimitStore, MemoryStateStore

__all__ = ["Database", "MemoryRateLimitStore", "MemoryStateStore"]
