"""warden setup: configure the Watchtower connection and privacy."""

from __future__ import annotations

import os
import sys

from rich.console import Console
from rich.prompt import Confirm, Prompt

from warden.core.constants import ExitCode


def run_setup(
    console: Console,
    non_interactive: bool = False,
    watchtower_url: str | None = None,
    secret: str | None = None,  # nosec B107
    site_url: str | None = None,
    site_name: str | None = None,
    platform: str | None = None,
    components: str | None = None,
    send_component_names: bool | None = None,
    use_keyring: bool = False,
) -> None:
    """Apply settings to config.toml.

    A non-HTTPS or malformed Watchtower URL is rejected and the previous
    value kept; an empty secret keeps the existing one.
    """
    from warden.core.config import (
        WardenConfig,
        _config_file_path,
        load_config,
        save_config,
        update_settings,
    )
    from warden.core.exceptions import ConfigurationError

    cfg_path = _config_file_path()
    current = WardenConfig()
    if cfg_path.exists():
        try:
            current = load_config(cfg_path)
        except ConfigurationError as exc:
            console.print(f"[yellow]Existing config ignored:[/yellow] {exc.message}")

    console.print("[bold]Warden Setup[/bold]\n")

    if watchtower_url is None:
        watchtower_url = os.environ.get("WARDEN_WATCHTOWER_URL")
    if secret is None:
        secret = os.environ.get("WARDEN_SECRET")
    if site_url is None:
        site_url = os.environ.get("WARDEN_SITE_URL")

    if not non_interactive:
        if watchtower_url is None:
            watchtower_url = Prompt.ask(
                "[bold]Watchtower URL[/bold] (https://...)",
                default=current.watchtower.url or None,
            )
        if secret is None:
            secret = Prompt.ask(
                "[bold]Shared secret[/bold] (leave empty to keep the current one)",
                password=True,
                default="",
                show_default=False,
            )
        if site_url is None and not current.site.url:
            site_url = Prompt.ask("[bold]Site URL[/bold]")
        if send_component_names is None:
            send_component_names = Confirm.ask(
                "Include component names in reports?",
                default=current.privacy.send_component_names,
            )

    if secret and use_keyring:
        from warden.core.keyring_store import store_token

        try:
            secret = store_token("secret", secret)
        except Exception as exc:  # noqa: BLE001
            console.print(f"[red]Keyring unavailable:[/red] {exc}")
            sys.exit(ExitCode.DEPENDENCY_MISSING)

    updated, errors = update_settings(
        current,
        watchtower_url=watchtower_url,
        secret=secret,
        send_component_names=send_component_names,
    )

    data = updated.to_toml_dict()
    if site_url is not None:
        data["site"]["url"] = site_url
    if site_name is not None:
        data["site"]["name"] = site_name
    if platform is not None:
        data["inventory"]["platform"] = platform.strip()
    if components is not None:
        data["inventory"]["components"] = components

    try:
        final = WardenConfig.model_validate(data)
    except ValueError as exc:
        console.print(f"[red]Invalid settings:[/red] {exc}")
        sys.exit(ExitCode.CONFIG_ERROR)

    saved = save_config(final.to_toml_dict(), cfg_path)

    for error in errors:
        console.print(f"[red]{error}[/red]")
    console.print(f"[green]Config saved:[/green] {saved}")

    if not final.is_configured:
        console.print(
            "[yellow]Watchtower URL and shared secret are both required before reporting.[/yellow]"
        )
    else:
        console.print("Next: [cyan]warden report --force[/cyan] to send the first report.")

    if errors:
        sys.exit(ExitCode.CONFIG_ERROR)
