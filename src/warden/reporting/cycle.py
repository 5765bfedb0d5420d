"""
One reporting cycle: check configuration, collect, gate, seal, send, record.

The whole sequence runs under a single lock so a scheduled run and a
remote trigger in the same process never interleave their read-modify-write
of the change state.  Across processes the state store refuses writes
that would replace a newer outcome, so a slow failing run never masks a
later success.  A failed attempt records its time, status and error but
keeps the last successful content hash, so the next cycle retries.
"""

from __future__ import annotations

import logging
import threading
import time
from collections.abc import Callable

from warden.core.config import WardenConfig, https_url_error, report_endpoint
from warden.core.constants import REPORT_TIMEOUT_SECONDS
from warden.core.exceptions import ConfigurationError, TransportError, WardenError
from warden.core.interfaces import ChangeStateStore, ReportCollector, ReportTransport, SecretStore
from warden.core.models import ChangeState, CycleOutcome, CycleResult, ReportStatus
from warden.protocol.crypter import PayloadCrypter
from warden.reporting.gate import ChangeGate

logger = logging.getLogger(__name__)


class ReportingCycle:
    """Runs reporting attempts for one site."""

    def __init__(
        self,
        config: WardenConfig,
        secrets: SecretStore,
        collector: ReportCollector,
        transport: ReportTransport,
        state: ChangeStateStore,
        clock: Callable[[], float] = time.time,
        gate: ChangeGate | None = None,
        timeout: float = REPORT_TIMEOUT_SECONDS,
    ) -> None:
        self._config = config
        self._secrets = secrets
        self._collector = collector
        self._transport = transport
        self._state = state
        self._clock = clock
        self._gate = gate or ChangeGate()
        self._timeout = timeout
        self._lock = threading.Lock()

    def _check_configuration(self) -> tuple[str, str, str]:
        url = self._secrets.watchtower_url()
        secret = self._secrets.secret()
        site_url = self._config.site.url
        if not url or not secret:
            raise ConfigurationError("Watchtower URL or shared secret is not configured.")
        if error := https_url_error(url):
            raise ConfigurationError(error)
        if not site_url:
            raise ConfigurationError("Site URL is not configured.")
        return url, secret, site_url

    def run(self, force: bool = False) -> CycleResult:
        with self._lock:
            now = int(self._clock())
            try:
                return self._attempt(force, now, self._state.load_state())
            except WardenError as exc:
                return self._record_failure(
                    now,
                    exc.message or exc.__class__.__name__,
                    exc.code,
                    getattr(exc, "status_code", None),
                )
            except Exception as exc:  # noqa: BLE001
                logger.exception("Reporting cycle crashed")
                return self._record_failure(
                    now, f"{exc.__class__.__name__}: {exc}", WardenError.code, None
                )

    def _attempt(self, force: bool, now: int, previous: ChangeState) -> CycleResult:
        url, secret, site_url = self._check_configuration()

        report = self._collector.collect()
        decision = self._gate.decide(report, force, previous, now)
        if not decision.send:
            logger.info("Report unchanged since last send; skipping")
            return CycleResult(
                outcome=CycleOutcome.SKIPPED,
                reason=decision.reason,
                content_hash=decision.content_hash,
            )

        envelope = PayloadCrypter(secret).seal(report, site_url, now)
        endpoint = report_endpoint(url, self._config.watchtower.report_path)
        response = self._transport.post_json(endpoint, envelope.to_dict(), self._timeout)

        if response.status_code != 200:
            message = response.json_message() or f"HTTP {response.status_code}"
            raise TransportError(message, status_code=response.status_code)

        self._state.save_state(
            ChangeState(
                last_content_hash=decision.content_hash,
                last_send_time=now,
                last_status=ReportStatus.SUCCESS,
                last_error=None,
            )
        )
        logger.info("Report sent (%s), key_id=%s", decision.reason, envelope.key_id)
        return CycleResult(
            outcome=CycleOutcome.SENT,
            reason=decision.reason,
            status_code=response.status_code,
            content_hash=decision.content_hash,
        )

    def _record_failure(
        self, now: int, message: str, code: str, status_code: int | None
    ) -> CycleResult:
        logger.error("Report failed: %s", message)
        # the store keeps its content hash for failed states
        self._state.save_state(
            ChangeState(
                last_send_time=now,
                last_status=ReportStatus.FAILED,
                last_error=message,
            )
        )
        return CycleResult(
            outcome=CycleOutcome.FAILED,
            reason="error",
            error=message,
            status_code=status_code,
            error_code=code,
        )
