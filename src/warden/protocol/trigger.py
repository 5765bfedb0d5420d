"""
Inbound trigger authentication.

Watchtower can ask a site to report immediately by POSTing::

    {"watchtower_url": ..., "timestamp": ..., "signature": ...}

where ``signature = HMAC-SHA256(secret, watchtower_url|timestamp|site_url)``
and ``site_url`` carries no trailing slash.

Checks run in a fixed order and the first failure wins:

  1. cooldown pre-check            → RateLimitError (429)
  2. required fields present       → ValidationError missing_fields (400)
  3. timestamp within ±max_skew    → ValidationError invalid_timestamp (401)
  4. agent configured              → ConfigurationError (500)
  5. origin matches configuration  → ValidationError invalid_watchtower (401)
  6. signature matches             → ValidationError invalid_signature (401)

Only a request that passes all six claims the cooldown slot, so failed
attempts never lock out the legitimate collector.
"""

from __future__ import annotations

import hashlib
import hmac
import logging
import math
import re
import time
from collections.abc import Callable, Mapping
from typing import Any

from warden.core.constants import (
    SIGNATURE_DELIMITER,
    TRIGGER_COOLDOWN_SECONDS,
    TRIGGER_MAX_SKEW_SECONDS,
)
from warden.core.exceptions import ConfigurationError, RateLimitError, ValidationError
from warden.core.interfaces import RateLimitStore, SecretStore
from warden.core.models import TriggerRequest
from warden.protocol.urls import strip_trailing_slash, urls_match

logger = logging.getLogger(__name__)

_REQUIRED_FIELDS = ("watchtower_url", "timestamp", "signature")
_LEADING_INT = re.compile(r"\s*([+-]?\d+)")
_HEX_SIGNATURE = re.compile(r"[0-9a-f]{64}")


def sign_trigger(
    watchtower_url: str,
    timestamp: int | str,
    site_url: str,
    secret: str,
) -> str:
    """Signature a collector attaches to a trigger for *site_url*."""
    message = SIGNATURE_DELIMITER.join(
        (watchtower_url, str(timestamp), strip_trailing_slash(site_url))
    )
    # surrogatepass: an untrusted URL must fail the comparison, not the encoder
    data = message.encode("utf-8", "surrogatepass")
    return hmac.new(secret.encode("utf-8"), data, hashlib.sha256).hexdigest()


def client_identity_key(ip: str) -> str:
    """Storage key for a caller address; raw addresses are never stored."""
    return "trigger:" + hashlib.sha256(ip.encode("utf-8")).hexdigest()[:32]


def _is_blank(value: Any) -> bool:
    # 0 and "0" count as absent, matching how the collector treats them
    if value is None or value is False:
        return True
    if isinstance(value, str):
        return value.strip() in ("", "0")
    if isinstance(value, (int, float)):
        return value == 0
    if isinstance(value, (list, dict)):
        return not value
    return False


def _coerce_timestamp(value: Any) -> int:
    """Integer value of *value*, or 0 when it is not a finite number."""
    if isinstance(value, bool):
        return 0
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        return int(value) if math.isfinite(value) else 0
    if isinstance(value, str):
        m = _LEADING_INT.match(value)
        if not m:
            return 0
        try:
            return int(m.group(1))
        except ValueError:
            # longer than the interpreter's int conversion limit
            return 0
    return 0


def _signed_text(value: Any) -> str:
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


class TriggerAuthenticator:
    """Validates inbound triggers against the configured collector."""

    def __init__(
        self,
        secrets: SecretStore,
        site_url: str,
        rate_limits: RateLimitStore,
        clock: Callable[[], float] = time.time,
        cooldown: int = TRIGGER_COOLDOWN_SECONDS,
        max_skew: int = TRIGGER_MAX_SKEW_SECONDS,
    ) -> None:
        self._secrets = secrets
        self._site_url = strip_trailing_slash(site_url)
        self._rate_limits = rate_limits
        self._clock = clock
        self.cooldown = cooldown
        self.max_skew = max_skew

    def _now(self) -> int:
        return int(self._clock())

    def _check_cooldown(self, client_key: str, now: int) -> None:
        last = self._rate_limits.last_accepted(client_key)
        if last is None:
            return
        remaining = self.cooldown - (now - last)
        if remaining > 0:
            raise RateLimitError(remaining)

    def authenticate(self, payload: Mapping[str, Any] | None, client_key: str) -> TriggerRequest:
        """Run every check; return the parsed request or raise."""
        now = self._now()
        self._check_cooldown(client_key, now)

        data: Mapping[str, Any] = payload if isinstance(payload, Mapping) else {}
        if any(_is_blank(data.get(name)) for name in _REQUIRED_FIELDS):
            raise ValidationError("missing_fields", "Missing required fields.")

        raw_timestamp = data["timestamp"]
        timestamp = _coerce_timestamp(raw_timestamp)
        if abs(now - timestamp) > self.max_skew:
            raise ValidationError("invalid_timestamp", "Request expired.")

        configured_url = self._secrets.watchtower_url()
        secret = self._secrets.secret()
        if not configured_url or not secret:
            raise ConfigurationError("Plugin not configured.")

        watchtower_url = str(data["watchtower_url"])
        if not urls_match(watchtower_url, configured_url):
            logger.warning("Trigger rejected: origin mismatch (%s)", watchtower_url)
            raise ValidationError("invalid_watchtower", "Invalid Watchtower URL.")

        signature = str(data["signature"])
        expected = sign_trigger(watchtower_url, _signed_text(raw_timestamp), self._site_url, secret)
        if not _HEX_SIGNATURE.fullmatch(signature) or not hmac.compare_digest(
            expected, signature
        ):
            logger.warning("Trigger rejected: bad signature")
            raise ValidationError("invalid_signature", "Invalid signature.")

        remaining = self._rate_limits.try_acquire(client_key, now, self.cooldown)
        if remaining:
            raise RateLimitError(remaining)

        logger.info("Trigger accepted from %s", watchtower_url)
        return TriggerRequest(watchtower_url=watchtower_url, timestamp=timestamp, signature=signature)

    def purge_expired(self) -> int:
        """Drop cooldown entries older than the window."""
        return self._rate_limits.purge_rate_limits(self._now() - self.cooldown)
