"""Warden constants: filesystem layout, protocol windows, timeouts."""

from __future__ import annotations

from enum import IntEnum

# ---------------------------------------------------------------------------
# Exit codes
# ---------------------------------------------------------------------------


class ExitCode(IntEnum):
    SUCCESS = 0
    ERROR = 1
    CONFIG_ERROR = 2
    NETWORK_ERROR = 4
    CRYPTO_ERROR = 6
    DEPENDENCY_MISSING = 7


# ---------------------------------------------------------------------------
# Filesystem layout
# ---------------------------------------------------------------------------

WARDEN_DIR_NAME = ".warden"
CONFIG_FILENAME = "config.toml"
DB_FILENAME = "warden.db"
LOG_FILENAME = "warden.log"

# ---------------------------------------------------------------------------
# Protocol
# ---------------------------------------------------------------------------

TRIGGER_PATH = "/warden/v1/trigger"
DEFAULT_REPORT_PATH = "/api/v1/report"
SIGNATURE_DELIMITER = "|"
KEY_ID_LENGTH = 16
IV_LENGTH = 16

TRIGGER_COOLDOWN_SECONDS = 300  # one accepted trigger per client per 5 minutes
TRIGGER_MAX_SKEW_SECONDS = 300  # replay window, both directions of clock skew
HEARTBEAT_HOURS = 20  # max silence while nothing changes

# ---------------------------------------------------------------------------
# Network
# ---------------------------------------------------------------------------

REPORT_TIMEOUT_SECONDS = 15.0
RELEASE_LOOKUP_TIMEOUT_SECONDS = 10.0
RELEASE_CACHE_TTL_SECONDS = 12 * 3600

DEFAULT_SERVER_HOST = "127.0.0.1"
DEFAULT_SERVER_PORT = 8788
