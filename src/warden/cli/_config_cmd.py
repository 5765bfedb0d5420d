"""CLI commands: warden config show | validate | migrate."""

from __future__ import annotations

import json
import sys

import click

from warden.cli._common import console, mask
from warden.core.constants import ExitCode


@click.group("config")
def config_group() -> None:
    """View, validate, and migrate Warden configuration."""


def _require_file():
    from warden.core.config import _config_file_path

    cfg_path = _config_file_path()
    if not cfg_path.exists():
        console.print(f"[red]Config not found:[/red] {cfg_path}")
        console.print("Run: warden setup")
        sys.exit(ExitCode.CONFIG_ERROR)
    return cfg_path


@config_group.command("show")
@click.option("--json", "as_json", is_flag=True, default=False, help="Output as JSON")
@click.option("--redact/--no-redact", default=True, help="Redact secrets (default: redact)")
def config_show(as_json, redact):
    """Display the current configuration."""
    from warden.core.config import load_config
    from warden.core.exceptions import ConfigurationError

    cfg_path = _require_file()
    try:
        cfg = load_config(cfg_path)
    except ConfigurationError as exc:
        console.print(f"[red]Config error:[/red] {exc.message}")
        sys.exit(ExitCode.CONFIG_ERROR)

    data = _config_to_dict(cfg, redact=redact)
    data["_config_path"] = str(cfg_path)

    if as_json:
        click.echo(json.dumps(data, indent=2))
    else:
        _print_config_rich(data)


@config_group.command("validate")
def config_validate():
    """Validate the current config file against the schema."""
    from warden.core.config import load_config
    from warden.core.exceptions import ConfigurationError

    cfg_path = _require_file()
    try:
        cfg = load_config(cfg_path)
    except ConfigurationError as exc:
        console.print(f"[red]Config validation failed:[/red] {exc.message}")
        sys.exit(ExitCode.CONFIG_ERROR)

    console.print(f"[green]Config is valid:[/green] {cfg_path}")
    if not cfg.is_configured:
        console.print("[yellow]Watchtower URL or shared secret is not set.[/yellow]")


@config_group.command("migrate")
@click.option("--dry-run", is_flag=True, default=False, help="Show changes without writing")
def config_migrate(dry_run):
    """Migrate config to the latest schema version."""
    import tomllib

    from warden.core.config import save_config
    from warden.core.config_migrate import (
        CURRENT_CONFIG_VERSION,
        detect_version,
        upgrade_config,
    )
    from warden.core.exceptions import ConfigurationError

    cfg_path = _require_file()
    with open(cfg_path, "rb") as f:
        data = tomllib.load(f)

    detected = detect_version(data)
    if detected >= CURRENT_CONFIG_VERSION:
        console.print(f"Config is already at version {detected}. No migration needed.")
        return

    console.print(f"Migrating config from v{detected} to v{CURRENT_CONFIG_VERSION}...")
    try:
        data = upgrade_config(data, detected, CURRENT_CONFIG_VERSION)
    except ConfigurationError as exc:
        console.print(f"[red]Migration failed:[/red] {exc.message}")
        sys.exit(ExitCode.CONFIG_ERROR)

    if dry_run:
        import tomli_w

        console.print("[dim]Dry run: changes not written.[/dim]")
        click.echo(tomli_w.dumps(data))
    else:
        save_config(data, cfg_path)
        console.print(f"[green]Config migrated and saved:[/green] {cfg_path}")


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _config_to_dict(cfg, redact=True):
    """Serialize WardenConfig to a plain dict with optional redaction."""
    data = cfg.to_toml_dict()
    secret = data["watchtower"]["secret"]
    if redact and secret:
        from warden.core.keyring_store import is_keyring_placeholder

        if not is_keyring_placeholder(secret):
            data["watchtower"]["secret"] = mask(secret)
    return data


def _print_config_rich(data):
    """Print config dict in a human-friendly format."""
    path = data.pop("_config_path", "unknown")
    console.print(f"[bold]Warden Configuration[/bold]  ({path})\n")

    for section, values in data.items():
        if isinstance(values, dict):
            console.print(f"  [cyan][{section}][/cyan]")
            for k, v in values.items():
                console.print(f"    {k} = {v!r}")
        else:
            console.print(f"  {section} = {values!r}")
    console.print()
