"""Shared fakes for the reporting core."""

from __future__ import annotations

from typing import Any

import pytest

from warden.core.config import WardenConfig
from warden.core.exceptions import TransportError
from warden.core.interfaces import ReportCollector, ReportTransport, SecretStore
from warden.core.models import Report, TransportResponse

SECRET = "s3cr3t-shared-key-for-tests"
WATCHTOWER = "https://watch.example.com"
SITE = "https://site.example.org"
NOW = 1_700_000_000


class FixedClock:
    """Callable clock that only moves when told to."""

    def __init__(self, now: float = NOW) -> None:
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class StaticSecrets(SecretStore):
    def __init__(self, url: str = WATCHTOWER, secret: str = SECRET) -> None:
        self.url = url
        self.value = secret

    def watchtower_url(self) -> str:
        return self.url

    def secret(self) -> str:
        return self.value


class StaticCollector(ReportCollector):
    def __init__(self, fields: dict[str, Any] | None = None) -> None:
        self.fields = fields or {"site_name": "Example", "platform_current": "5.0"}
        self.calls = 0

    def collect(self) -> Report:
        self.calls += 1
        return Report(self.fields)


class RecordingTransport(ReportTransport):
    """Returns queued responses and records every request."""

    def __init__(self, *responses: TransportResponse | Exception) -> None:
        self.responses = list(responses) or [TransportResponse(200, '{"ok": true}')]
        self.requests: list[tuple[str, dict[str, Any], float]] = []

    def post_json(self, url: str, body: dict[str, Any], timeout: float) -> TransportResponse:
        self.requests.append((url, body, timeout))
        response = self.responses.pop(0) if len(self.responses) > 1 else self.responses[0]
        if isinstance(response, Exception):
            raise response
        return response


def make_config(**overrides: Any) -> WardenConfig:
    data: dict[str, Any] = {
        "site": {"url": SITE, "name": "Example"},
        "watchtower": {"url": WATCHTOWER, "secret": SECRET},
    }
    for section, values in overrides.items():
        data.setdefault(section, {}).update(values)
    return WardenConfig.model_validate(data)


@pytest.fixture
def clock() -> FixedClock:
    return FixedClock()


@pytest.fixture
def config() -> WardenConfig:
    return make_config()


@pytest.fixture
def secrets_store() -> StaticSecrets:
    return StaticSecrets()


@pytest.fixture
def network_down() -> TransportError:
    return TransportError("Connection refused")
