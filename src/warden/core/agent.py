"""
WardenAgent: one process's wiring of the reporting core.

The agent owns the state database and builds every collaborator from a
single WardenConfig value:

  Database ──┬── ChangeStateStore ── ReportingCycle ── HttpxTransport
             ├── RateLimitStore ──── TriggerAuthenticator
             └── VersionCache ────── ReleaseIndex ── HostReportCollector

Both entry points (``warden report`` and the trigger endpoint) go through
the same agent so they share one cycle lock.
"""

from __future__ import annotations

import logging
import time
from collections.abc import Callable, Mapping
from typing import Any

from warden.core.config import ConfigSecretStore, WardenConfig
from warden.core.exceptions import TransportError
from warden.core.interfaces import ReportCollector, ReportTransport, SecretStore
from warden.core.models import CycleResult
from warden.core.store.database import Database
from warden.protocol.crypter import derive_key_id
from warden.protocol.trigger import TriggerAuthenticator
from warden.reporting.collector import HostReportCollector, ReleaseIndex
from warden.reporting.cycle import ReportingCycle

logger = logging.getLogger(__name__)


class WardenAgent:
    """Reporting agent for the site described by *config*."""

    def __init__(
        self,
        config: WardenConfig,
        db: Database | None = None,
        secrets: SecretStore | None = None,
        collector: ReportCollector | None = None,
        transport: ReportTransport | None = None,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self.config = config
        self.db = db or Database(config.db_path)
        if not self.db.is_connected:
            self.db.connect()
        self.secrets = secrets or ConfigSecretStore(config)
        self._clock = clock

        if collector is None:
            collector = HostReportCollector(config, ReleaseIndex(self.db, clock=clock))
        if transport is None:
            from warden.transport.http import HttpxTransport

            transport = HttpxTransport()

        self.cycle = ReportingCycle(
            config,
            self.secrets,
            collector,
            transport,
            self.db,
            clock=clock,
        )
        self.authenticator = TriggerAuthenticator(
            self.secrets,
            config.site.url,
            self.db,
            clock=clock,
        )

    # ------------------------------------------------------------------
    # Entry points
    # ------------------------------------------------------------------

    def run_cycle(self, force: bool = False) -> CycleResult:
        return self.cycle.run(force=force)

    def handle_trigger(self, payload: Mapping[str, Any] | None, client_key: str) -> dict[str, Any]:
        """Authenticate a remote trigger and run a forced cycle.

        Authentication errors propagate unchanged; a cycle that fails after
        authentication raises TransportError (``report_failed``).
        """
        self.authenticator.authenticate(payload, client_key)
        self.authenticator.purge_expired()

        result = self.cycle.run(force=True)
        if not result.success:
            raise TransportError(result.error or "Report failed", status_code=result.status_code)
        return {
            "success": True,
            "message": "Report sent successfully",
            "site": self.config.site.url,
        }

    def status(self) -> dict[str, Any]:
        state = self.db.load_state()
        secret = self.secrets.secret()
        return {
            "configured": bool(self.secrets.watchtower_url() and secret),
            "site_url": self.config.site.url,
            "watchtower_url": self.secrets.watchtower_url(),
            "key_id": derive_key_id(secret) if secret else None,
            "send_component_names": self.config.privacy.send_component_names,
            "last_status": state.last_status.value,
            "last_report": state.last_send_time,
            "last_error": state.last_error,
        }

    def uninstall(self) -> None:
        """Remove all runtime state: hash, timestamps, cooldowns, cached versions."""
        self.db.clear_runtime_state()

    def close(self) -> None:
        self.db.close()

    def __enter__(self) -> WardenAgent:
        return self

    def __exit__(self, *exc: object) -> None:
        self.close()
