"""Change gate: send only when the report changed or the heartbeat is due."""

from __future__ import annotations

import hashlib
import logging
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any

from warden.core.constants import HEARTBEAT_HOURS
from warden.core.models import ChangeState, Report

logger = logging.getLogger(__name__)


def stable_hash(report: Mapping[str, Any]) -> str:
    """SHA-256 of the sorted-key compact JSON form of *report*."""
    canonical = report if isinstance(report, Report) else Report(report)
    return hashlib.sha256(canonical.canonical_json().encode("utf-8")).hexdigest()


@dataclass(frozen=True)
class GateDecision:
    send: bool
    reason: str  # forced | changed | first | heartbeat | unchanged
    content_hash: str


class ChangeGate:
    """
    Decides whether a cycle transmits.

    Order of precedence:
      1. force                          → send ("forced")
      2. hash differs from last success → send ("changed")
      3. never sent before              → send ("first")
      4. heartbeat interval elapsed     → send ("heartbeat")
      5. otherwise                      → skip ("unchanged")
    """

    def __init__(self, heartbeat_hours: float = HEARTBEAT_HOURS) -> None:
        self.heartbeat_seconds = int(heartbeat_hours * 3600)

    def decide(
        self,
        report: Mapping[str, Any],
        force: bool,
        state: ChangeState,
        now: int,
    ) -> GateDecision:
        content_hash = stable_hash(report)

        if force:
            reason, send = "forced", True
        elif content_hash != state.last_content_hash:
            reason, send = "changed", True
        elif state.last_send_time is None:
            reason, send = "first", True
        elif now - state.last_send_time >= self.heartbeat_seconds:
            reason, send = "heartbeat", True
        else:
            reason, send = "unchanged", False

        logger.debug("Gate decision: send=%s reason=%s", send, reason)
        return GateDecision(send=send, reason=reason, content_hash=content_hash)
