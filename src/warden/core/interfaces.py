"""
Collaborator interfaces for the reporting core.

The core never looks anything up globally.  Every external concern is
passed in as one of these narrow contracts:

  - SecretStore        configured Watchtower URL and shared secret
  - ChangeStateStore   last hash / send time / status / error
  - RateLimitStore     per-client cooldown entries (atomic check-and-set)
  - VersionCache       short-lived cache for latest-release lookups
  - ReportTransport    "POST JSON, get status + body"
  - ReportCollector    produces a fresh Report each cycle
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any

from warden.core.models import ChangeState, Report, TransportResponse


class SecretStore(ABC):
    """Source of the Watchtower URL and the shared secret."""

    @abstractmethod
    def watchtower_url(self) -> str:
        """Return the configured Watchtower URL, or "" when unset."""
        ...

    @abstractmethod
    def secret(self) -> str:
        """Return the shared secret, or "" when unset."""
        ...


class ChangeStateStore(ABC):
    """Persistence for the outcome of the last reporting attempt."""

    @abstractmethod
    def load_state(self) -> ChangeState: ...

    @abstractmethod
    def save_state(self, state: ChangeState) -> bool:
        """Persist all four fields together; return False if not written.

        The write is refused when the stored state outdates *state*, and a
        failed state never replaces the stored content hash.
        """
        ...


class RateLimitStore(ABC):
    """Per-client cooldown bookkeeping for inbound triggers."""

    @abstractmethod
    def last_accepted(self, key: str) -> int | None:
        """Return the timestamp of the last accepted trigger for *key*."""
        ...

    @abstractmethod
    def try_acquire(self, key: str, now: int, cooldown: int) -> int:
        """Atomically claim the cooldown slot for *key*.

        Returns 0 and records *now* when no entry newer than *cooldown*
        seconds exists; otherwise leaves the entry alone and returns the
        remaining wait in seconds.
        """
        ...

    @abstractmethod
    def purge_rate_limits(self, before: int) -> int:
        """Drop entries accepted before *before*; return how many were removed."""
        ...


class VersionCache(ABC):
    """Expiring key/value cache for latest-version lookups."""

    @abstractmethod
    def cache_get(self, key: str, now: int) -> str | None: ...

    @abstractmethod
    def cache_set(self, key: str, value: str, expires_at: int) -> None: ...


class ReportTransport(ABC):
    """Outbound delivery of the secure envelope."""

    @abstractmethod
    def post_json(self, url: str, body: dict[str, Any], timeout: float) -> TransportResponse:
        """POST *body* as JSON.

        Raises TransportError on network failure or timeout.  Any HTTP
        status is returned, not raised.
        """
        ...


class ReportCollector(ABC):
    """Builds the report describing the host's update status."""

    @abstractmethod
    def collect(self) -> Report: ...
