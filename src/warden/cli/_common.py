"""Helpers shared by CLI commands."""

from __future__ import annotations

import sys

from rich.console import Console

from warden.core.constants import ExitCode

console = Console()
err_console = Console(stderr=True)


def load_config_or_exit():
    """Load the config, exiting with CONFIG_ERROR when it is missing or invalid."""
    from warden.core.config import load_config
    from warden.core.exceptions import ConfigNotFoundError, ConfigurationError

    try:
        return load_config()
    except ConfigNotFoundError as exc:
        err_console.print(f"[red]{exc.message}[/red]")
        sys.exit(ExitCode.CONFIG_ERROR)
    except ConfigurationError as exc:
        err_console.print(f"[red]Config error:[/red] {exc.message}")
        sys.exit(ExitCode.CONFIG_ERROR)


def init_logging(cfg) -> None:
    from warden.core.logging_setup import configure_logging

    configure_logging(cfg.logging.level, cfg.logging.format)


def mask(value: str) -> str:
    """Mask a secret value, showing first 4 and last 4 chars."""
    if len(value) <= 12:
        return "***"
    return value[:4] + "***" + value[-4:]
