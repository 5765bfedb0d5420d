"""Warden configuration: Pydantic model, load, save and settings sanitisation."""

from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Any
from urllib.parse import urlsplit

from pydantic import BaseModel, Field, SecretStr, field_validator

from warden.core.constants import (
    CONFIG_FILENAME,
    DB_FILENAME,
    DEFAULT_REPORT_PATH,
    DEFAULT_SERVER_HOST,
    DEFAULT_SERVER_PORT,
    LOG_FILENAME,
    WARDEN_DIR_NAME,
)
from warden.core.exceptions import ConfigNotFoundError, ConfigurationError
from warden.core.interfaces import SecretStore

logger = logging.getLogger(__name__)


def warden_dir() -> Path:
    """Return the Warden config directory (~/.warden), creating it if needed."""
    d = Path.home() / WARDEN_DIR_NAME
    d.mkdir(mode=0o700, parents=True, exist_ok=True)
    return d


def https_url_error(url: str) -> str | None:
    """Return why *url* is not an acceptable Watchtower URL, or None if it is."""
    if not url.startswith("https://"):
        return "Watchtower URL must use HTTPS."
    parts = urlsplit(url)
    if not parts.hostname or any(ch.isspace() for ch in url):
        return "Invalid Watchtower URL."
    try:
        parts.port
    except ValueError:
        return "Invalid Watchtower URL."
    return None


def report_endpoint(base_url: str, report_path: str) -> str:
    """Join the Watchtower base URL and the report path with one slash."""
    return base_url.rstrip("/") + "/" + report_path.lstrip("/")


# ---------------------------------------------------------------------------
# Sub-models
# ---------------------------------------------------------------------------


class SiteConfig(BaseModel):
    url: str = ""  # canonical URL of this site, part of every signature
    name: str = ""

    @field_validator("url")
    @classmethod
    def strip_trailing_slash(cls, v: str) -> str:
        return v.strip().rstrip("/")


class WatchtowerConfig(BaseModel):
    url: str = ""
    secret: SecretStr = SecretStr("")
    report_path: str = DEFAULT_REPORT_PATH

    @field_validator("url")
    @classmethod
    def require_https(cls, v: str) -> str:
        v = v.strip()
        if not v:
            return v
        if error := https_url_error(v):
            raise ValueError(error)
        return v


class PrivacyConfig(BaseModel):
    send_component_names: bool = True


class InventoryConfig(BaseModel):
    platform: str = ""  # distribution reported as the site platform, e.g. "django"
    components: list[str] = Field(default_factory=list)

    @field_validator("components", mode="before")
    @classmethod
    def parse_components(cls, v: Any) -> Any:
        """Accept both list and comma-separated string."""
        if isinstance(v, str):
            return [c.strip() for c in v.split(",") if c.strip()]
        return v


class ServerConfig(BaseModel):
    host: str = DEFAULT_SERVER_HOST
    port: int = DEFAULT_SERVER_PORT


class LoggingConfig(BaseModel):
    level: str = "INFO"
    format: str = "text"  # "text" | "json"

    @field_validator("level")
    @classmethod
    def validate_level(cls, v: str) -> str:
        allowed = {"DEBUG", "INFO", "WARNING", "ERROR"}
        if v.upper() not in allowed:
            raise ValueError(f"Log level must be one of: {allowed}")
        return v.upper()

    @field_validator("format")
    @classmethod
    def validate_format(cls, v: str) -> str:
        if v not in ("text", "json"):
            raise ValueError("Log format must be 'text' or 'json'")
        return v


class DatabaseConfig(BaseModel):
    path: str = ""  # empty → use default


# ---------------------------------------------------------------------------
# Root config
# ---------------------------------------------------------------------------


class WardenConfig(BaseModel):
    """Root Warden configuration model."""

    config_version: int = 1
    site: SiteConfig = Field(default_factory=SiteConfig)
    watchtower: WatchtowerConfig = Field(default_factory=WatchtowerConfig)
    privacy: PrivacyConfig = Field(default_factory=PrivacyConfig)
    inventory: InventoryConfig = Field(default_factory=InventoryConfig)
    server: ServerConfig = Field(default_factory=ServerConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)
    database: DatabaseConfig = Field(default_factory=DatabaseConfig)

    @property
    def is_configured(self) -> bool:
        return bool(self.watchtower.url and self.secret_value())

    def secret_value(self) -> str:
        """Return the shared secret, resolving keyring placeholders."""
        raw = self.watchtower.secret.get_secret_value()
        from warden.core.keyring_store import is_keyring_placeholder, retrieve_token

        if is_keyring_placeholder(raw):
            return retrieve_token(raw) or ""
        return raw

    @property
    def db_path(self) -> Path:
        if self.database.path:
            return Path(self.database.path).expanduser()
        return warden_dir() / DB_FILENAME

    @property
    def log_path(self) -> Path:
        return warden_dir() / LOG_FILENAME

    def to_toml_dict(self) -> dict[str, Any]:
        """Plain dict suitable for ``save_config`` (secret unmasked)."""
        data = self.model_dump(mode="python")
        data["watchtower"]["secret"] = self.watchtower.secret.get_secret_value()
        return data


class ConfigSecretStore(SecretStore):
    """SecretStore reading from a WardenConfig value."""

    def __init__(self, config: WardenConfig) -> None:
        self._config = config

    def watchtower_url(self) -> str:
        return self._config.watchtower.url

    def secret(self) -> str:
        return self._config.secret_value()


# ---------------------------------------------------------------------------
# Settings sanitisation
# ---------------------------------------------------------------------------


def update_settings(
    current: WardenConfig,
    *,
    watchtower_url: str | None = None,
    secret: str | None = None,
    send_component_names: bool | None = None,
) -> tuple[WardenConfig, list[str]]:
    """Apply user-submitted settings to *current*.

    Rules:
      - a non-HTTPS or malformed Watchtower URL is rejected and the previous
        value is kept; an empty URL clears it
      - an empty secret keeps the existing secret
      - the privacy flag is stored as given

    Returns the updated config and the list of rejection messages.
    """
    errors: list[str] = []
    data = current.to_toml_dict()

    if watchtower_url is not None:
        url = watchtower_url.strip()
        if not url:
            data["watchtower"]["url"] = ""
        elif error := https_url_error(url):
            errors.append(error)
        else:
            data["watchtower"]["url"] = url

    if secret is not None and secret.strip():
        data["watchtower"]["secret"] = secret.strip()

    if send_component_names is not None:
        data["privacy"]["send_component_names"] = bool(send_component_names)

    return WardenConfig.model_validate(data), errors


# ---------------------------------------------------------------------------
# Load / save
# ---------------------------------------------------------------------------


def _config_file_path() -> Path:
    if env_path := os.environ.get("WARDEN_CONFIG"):
        return Path(env_path)
    return warden_dir() / CONFIG_FILENAME


def load_config(path: Path | None = None) -> WardenConfig:
    """
    Load WardenConfig from TOML file, overlaid with environment variables.

    Priority (highest to lowest):
      1. Environment variables (WARDEN_*)
      2. Config file (~/.warden/config.toml)

    Old config schemas are upgraded in memory; run ``warden config migrate``
    to persist the upgrade.
    """
    import tomllib

    from warden.core.config_migrate import (
        CURRENT_CONFIG_VERSION,
        detect_version,
        upgrade_config,
    )

    cfg_path = path or _config_file_path()

    if not cfg_path.exists():
        raise ConfigNotFoundError(
            f"Warden is not configured. Run 'warden setup' first.\n"
            f"(Config file not found: {cfg_path})"
        )

    try:
        with open(cfg_path, "rb") as f:
            data = tomllib.load(f)
    except Exception as exc:
        raise ConfigurationError(f"Cannot read config file {cfg_path}: {exc}") from exc

    version = detect_version(data)
    if version < CURRENT_CONFIG_VERSION:
        logger.info("Upgrading config %s from v%d in memory", cfg_path, version)
        data = upgrade_config(data, version, CURRENT_CONFIG_VERSION)

    _apply_env_overrides(data)

    try:
        return WardenConfig.model_validate(data)
    except Exception as exc:
        raise ConfigurationError(f"Invalid config at {cfg_path}: {exc}") from exc


def _apply_env_overrides(data: dict[str, Any]) -> None:
    """Overlay WARDEN_* environment variables onto the parsed TOML data."""
    if url := os.environ.get("WARDEN_WATCHTOWER_URL"):
        data.setdefault("watchtower", {})["url"] = url
    if secret := os.environ.get("WARDEN_SECRET"):
        data.setdefault("watchtower", {})["secret"] = secret
    if site := os.environ.get("WARDEN_SITE_URL"):
        data.setdefault("site", {})["url"] = site
    if level := os.environ.get("WARDEN_LOG_LEVEL"):
        data.setdefault("logging", {})["level"] = level
    if db := os.environ.get("WARDEN_DB_PATH"):
        data.setdefault("database", {})["path"] = db


def save_config(config_data: dict[str, Any], path: Path | None = None) -> Path:
    """Write config dict to TOML file with secure permissions (0600)."""
    import tomli_w

    cfg_path = path or _config_file_path()
    cfg_path.parent.mkdir(mode=0o700, parents=True, exist_ok=True)

    # Write atomically
    tmp_path = cfg_path.with_suffix(".tmp")
    try:
        with open(tmp_path, "wb") as f:
            tomli_w.dump(config_data, f)
        tmp_path.rename(cfg_path)
    except Exception as exc:
        tmp_path.unlink(missing_ok=True)
        raise ConfigurationError(f"Cannot write config to {cfg_path}: {exc}") from exc

    cfg_path.chmod(0o600)
    return cfg_path
