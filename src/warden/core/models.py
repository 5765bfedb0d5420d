"""Shared data models for the reporting core."""

from __future__ import annotations

import copy
import json
from collections.abc import Iterator, Mapping
from dataclasses import dataclass
from enum import StrEnum
from typing import Any


class ReportStatus(StrEnum):
    """Outcome of the most recent reporting attempt."""

    SUCCESS = "success"
    FAILED = "failed"
    UNKNOWN = "unknown"


class Report(Mapping[str, Any]):
    """Immutable, ordered report produced by a collector for one cycle.

    The constructor deep-copies its input, so later mutation of the source
    dict (or of nested lists) never leaks into a report already handed to
    the gate or the crypter.
    """

    __slots__ = ("_fields",)

    def __init__(self, fields: Mapping[str, Any] | None = None, /, **kwargs: Any) -> None:
        data: dict[str, Any] = dict(copy.deepcopy(dict(fields or {})))
        data.update(copy.deepcopy(kwargs))
        self._fields = data

    def __getitem__(self, key: str) -> Any:
        return copy.deepcopy(self._fields[key])

    def __iter__(self) -> Iterator[str]:
        return iter(self._fields)

    def __len__(self) -> int:
        return len(self._fields)

    def __repr__(self) -> str:
        return f"Report({self._fields!r})"

    def __eq__(self, other: object) -> bool:
        if isinstance(other, Report):
            return self._fields == other._fields
        if isinstance(other, Mapping):
            return self._fields == dict(other)
        return NotImplemented

    def __hash__(self) -> int:
        return hash(self.canonical_json())

    def to_dict(self) -> dict[str, Any]:
        """Return a fresh, mutable copy in field order."""
        return copy.deepcopy(self._fields)

    def canonical_json(self) -> str:
        """Sorted-key compact JSON, stable across runs and platforms."""
        return json.dumps(self._fields, sort_keys=True, separators=(",", ":"))


@dataclass(frozen=True)
class ChangeState:
    """Bookkeeping for the last reporting attempt."""

    last_content_hash: str = ""
    last_send_time: int | None = None
    last_status: ReportStatus = ReportStatus.UNKNOWN
    last_error: str | None = None

    def outdates(self, incoming: ChangeState) -> bool:
        """True if this stored state is newer than *incoming* and must be kept.

        A later send time always wins.  On a tie a success is kept over a
        failure, so a slow failing run never masks a concurrent success.
        """
        if self.last_send_time is None or incoming.last_send_time is None:
            return False
        if self.last_send_time != incoming.last_send_time:
            return self.last_send_time > incoming.last_send_time
        return (
            self.last_status == ReportStatus.SUCCESS
            and incoming.last_status == ReportStatus.FAILED
        )


@dataclass(frozen=True)
class TriggerRequest:
    """An inbound trigger that passed structural checks (still untrusted)."""

    watchtower_url: str
    timestamp: int
    signature: str


@dataclass(frozen=True)
class TransportResponse:
    """Status and body returned by the collector."""

    status_code: int
    body: str = ""

    def json_message(self) -> str | None:
        """Return the ``message`` field of a JSON body, if there is one."""
        try:
            decoded = json.loads(self.body)
        except (ValueError, TypeError):
            return None
        if isinstance(decoded, dict):
            message = decoded.get("message")
            if isinstance(message, str) and message:
                return message
        return None


class CycleOutcome(StrEnum):
    SENT = "sent"
    SKIPPED = "skipped"
    FAILED = "failed"


@dataclass(frozen=True)
class CycleResult:
    """Result of one reporting cycle."""

    outcome: CycleOutcome
    reason: str = ""
    error: str | None = None
    status_code: int | None = None
    content_hash: str = ""
    error_code: str | None = None  # WardenError.code of the failure

    @property
    def success(self) -> bool:
        return self.outcome != CycleOutcome.FAILED

    @property
    def transmitted(self) -> bool:
        return self.outcome == CycleOutcome.SENT

    def to_dict(self) -> dict[str, Any]:
        return {
            "outcome": self.outcome.value,
            "success": self.success,
            "reason": self.reason,
            "error": self.error,
            "status_code": self.status_code,
            "error_code": self.error_code,
        }
