"""
Host report collection.

The collector describes the Python host it runs on:

  platform    the distribution named by ``[inventory] platform`` (for
              example ``django``), graded against its latest PyPI release
  runtime     the running interpreter, graded against the newest CPython
              release listed by endoflife.date
  components  every distribution in ``[inventory] components`` with a newer
              release available on PyPI

Latest-release lookups go through ReleaseIndex, which caches answers for
twelve hours in the state store.  A lookup that fails yields ``None`` and
the affected status grades as ``unknown``.
"""

from __future__ import annotations

import logging
import socket
import sys
import time
from collections.abc import Callable
from datetime import datetime
from importlib import metadata
from typing import Any

import httpx

from warden import __version__
from warden.core.config import WardenConfig
from warden.core.constants import RELEASE_CACHE_TTL_SECONDS, RELEASE_LOOKUP_TIMEOUT_SECONDS
from warden.core.interfaces import ReportCollector, VersionCache
from warden.core.models import Report
from warden.reporting.versions import VersionClassifier, VersionKind, is_newer

logger = logging.getLogger(__name__)

PYTHON_RELEASES_URL = "https://endoflife.date/api/python.json"
PYPI_PROJECT_URL = "https://pypi.org/pypi/{name}/json"

HIDDEN_COMPONENT = {"slug": "hidden", "current_version": "hidden", "new_version": "available"}


class ReleaseIndex:
    """Cached lookups of the latest released versions."""

    def __init__(
        self,
        cache: VersionCache,
        clock: Callable[[], float] = time.time,
        timeout: float = RELEASE_LOOKUP_TIMEOUT_SECONDS,
        ttl: int = RELEASE_CACHE_TTL_SECONDS,
    ) -> None:
        self._cache = cache
        self._clock = clock
        self._timeout = timeout
        self._ttl = ttl

    def _fetch_json(self, url: str) -> Any:
        try:
            resp = httpx.get(url, timeout=self._timeout)
            resp.raise_for_status()
            return resp.json()
        except (httpx.HTTPError, ValueError) as exc:
            logger.warning("Release lookup failed for %s: %s", url, exc)
            return None

    def _cached(self, key: str, fetch: Callable[[], str | None]) -> str | None:
        now = int(self._clock())
        if (hit := self._cache.cache_get(key, now)) is not None:
            return hit
        value = fetch()
        if value:
            self._cache.cache_set(key, value, now + self._ttl)
        return value

    def latest_python(self) -> str | None:
        def fetch() -> str | None:
            data = self._fetch_json(PYTHON_RELEASES_URL)
            if isinstance(data, list) and data and isinstance(data[0], dict):
                latest = data[0].get("latest")
                return str(latest) if latest else None
            return None

        return self._cached("latest:python", fetch)

    def latest_distribution(self, name: str) -> str | None:
        def fetch() -> str | None:
            data = self._fetch_json(PYPI_PROJECT_URL.format(name=name))
            if isinstance(data, dict):
                version = (data.get("info") or {}).get("version")
                return str(version) if version else None
            return None

        return self._cached(f"latest:pypi:{name.lower()}", fetch)


def installed_version(name: str) -> str | None:
    try:
        return metadata.version(name)
    except metadata.PackageNotFoundError:
        return None


def runtime_version() -> str:
    v = sys.version_info
    return f"{v.major}.{v.minor}.{v.micro}"


def local_timezone() -> str:
    return datetime.now().astimezone().tzname() or "UTC"


class HostReportCollector(ReportCollector):
    """Builds the update-status Report for this host."""

    def __init__(
        self,
        config: WardenConfig,
        index: ReleaseIndex,
        version_of: Callable[[str], str | None] = installed_version,
    ) -> None:
        self._config = config
        self._index = index
        self._version_of = version_of

    def _components(self) -> list[dict[str, str]]:
        """Components with a newer release available."""
        entries: list[dict[str, str]] = []
        for name in self._config.inventory.components:
            current = self._version_of(name)
            if current is None:
                logger.debug("Component %s is not installed; skipped", name)
                continue
            latest = self._index.latest_distribution(name)
            if not is_newer(latest, current):
                continue
            entries.append(
                {
                    "name": name,
                    "slug": name.lower(),
                    "current_version": current,
                    "new_version": latest or "unknown",
                }
            )
        return entries

    def collect(self) -> Report:
        cfg = self._config
        show_names = cfg.privacy.send_component_names

        platform = cfg.inventory.platform
        platform_current = self._version_of(platform) if platform else None
        platform_latest = self._index.latest_distribution(platform) if platform else None

        runtime_current = runtime_version()
        runtime_latest = self._index.latest_python()

        components = self._components()
        if not show_names:
            components = [dict(HIDDEN_COMPONENT) for _ in components]

        return Report(
            site_name=cfg.site.name or socket.gethostname(),
            site_url=cfg.site.url,
            platform_name=platform,
            platform_current=platform_current,
            platform_latest=platform_latest,
            platform_status=VersionClassifier.classify(
                platform_current, platform_latest, VersionKind.PLATFORM
            ).value,
            runtime_current=runtime_current,
            runtime_latest=runtime_latest,
            runtime_status=VersionClassifier.classify(
                runtime_current, runtime_latest, VersionKind.RUNTIME
            ).value,
            components_count=len(components),
            components_json=components,
            components_list=",".join(c["name"] for c in components) if show_names else "",
            agent_version=__version__,
            timezone=local_timezone(),
        )
