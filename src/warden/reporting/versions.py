"""
Deterministic version staleness classification.

Two kinds of software are graded, each with its own table:

  platform  score = major*10 + minor; three or more points behind is
            critical, anything less is outdated
  runtime   an older major, or two or more minors behind, is critical;
            anything less is outdated

Either side missing or unparseable grades as ``unknown``; at or ahead of
the latest release grades as ``current``.
"""

from __future__ import annotations

from enum import StrEnum
from itertools import zip_longest


class VersionStatus(StrEnum):
    """Staleness tiers, ordered UNKNOWN → CRITICAL."""

    UNKNOWN = "unknown"
    CURRENT = "current"
    OUTDATED = "outdated"
    CRITICAL = "critical"


class VersionKind(StrEnum):
    PLATFORM = "platform"  # the framework/application the site runs on
    RUNTIME = "runtime"  # the interpreter


def parse_version(text: str | None) -> tuple[int, ...] | None:
    """Split a dotted version into integers; None when it is not one."""
    if text is None:
        return None
    text = str(text).strip()
    if not text:
        return None
    parts: list[int] = []
    for segment in text.split("."):
        if not segment.isdigit():
            return None
        parts.append(int(segment))
    return tuple(parts)


def _compare(a: tuple[int, ...], b: tuple[int, ...]) -> int:
    for x, y in zip_longest(a, b, fillvalue=0):
        if x != y:
            return -1 if x < y else 1
    return 0


def is_newer(candidate: str | None, baseline: str | None) -> bool | None:
    """True if *candidate* is strictly newer than *baseline*.

    Returns None when either side cannot be parsed.
    """
    a, b = parse_version(candidate), parse_version(baseline)
    if a is None or b is None:
        return None
    return _compare(a, b) > 0


def _major_minor(v: tuple[int, ...]) -> tuple[int, int]:
    return v[0], (v[1] if len(v) > 1 else 0)


class VersionClassifier:
    """Pure classifier mapping (current, latest, kind) to a VersionStatus."""

    PLATFORM_CRITICAL_GAP = 3
    RUNTIME_CRITICAL_MINOR_GAP = 2

    @classmethod
    def classify(
        cls,
        current: str | None,
        latest: str | None,
        kind: VersionKind | str = VersionKind.PLATFORM,
    ) -> VersionStatus:
        cur, lat = parse_version(current), parse_version(latest)
        if cur is None or lat is None:
            return VersionStatus.UNKNOWN
        if _compare(cur, lat) >= 0:
            return VersionStatus.CURRENT

        cur_major, cur_minor = _major_minor(cur)
        lat_major, lat_minor = _major_minor(lat)

        if VersionKind(kind) == VersionKind.PLATFORM:
            gap = (lat_major * 10 + lat_minor) - (cur_major * 10 + cur_minor)
            if gap >= cls.PLATFORM_CRITICAL_GAP:
                return VersionStatus.CRITICAL
            return VersionStatus.OUTDATED

        if cur_major < lat_major:
            return VersionStatus.CRITICAL
        if lat_minor - cur_minor >= cls.RUNTIME_CRITICAL_MINOR_GAP:
            return VersionStatus.CRITICAL
        return VersionStatus.OUTDATED
