"""Warden exception hierarchy.

Every error carries a machine-readable ``code`` and the HTTP status used
when it is surfaced through the trigger endpoint.
"""

from __future__ import annotations


class WardenError(Exception):
    """Base exception for all Warden errors."""

    code = "warden_error"
    http_status = 500

    def __init__(self, message: str = "") -> None:
        super().__init__(message)
        self.message = message


class ConfigurationError(WardenError):
    """Raised when the Watchtower URL, secret or site URL is missing or invalid."""

    code = "not_configured"


class ConfigNotFoundError(ConfigurationError):
    """Raised when the configuration file does not exist."""


class CryptoError(WardenError):
    """Raised when encryption cannot be performed safely.

    Never downgraded: a missing backend or an unavailable random source
    aborts the attempt.
    """

    code = "crypto_failed"


class ValidationError(WardenError):
    """Raised when an inbound trigger is malformed, expired, spoofed or unsigned."""

    def __init__(self, code: str, message: str) -> None:
        super().__init__(message)
        self.code = code
        self.http_status = 400 if code == "missing_fields" else 401


class RateLimitError(WardenError):
    """Raised when a client triggers again inside its cooldown window."""

    code = "rate_limited"
    http_status = 429

    def __init__(self, retry_after: int) -> None:
        super().__init__(f"Please wait {retry_after} seconds.")
        self.retry_after = retry_after


class TransportError(WardenError):
    """Raised when the report could not be delivered to Watchtower."""

    code = "report_failed"

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code
