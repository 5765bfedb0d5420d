"""
Warden CLI entry point.

Commands:
  warden setup                 configure Watchtower URL, secret and privacy
  warden report [--force]      run one reporting cycle
  warden status                show configuration and last outcome
  warden serve                 run the remote trigger endpoint
  warden config show|validate|migrate
  warden doctor                environment and configuration health check
  warden uninstall             remove runtime state
  warden service install|show  systemd units for scheduled reporting
  warden version               show version information
"""

from __future__ import annotations

import click
from rich.console import Console

from warden import __version__
from warden.cli._config_cmd import config_group
from warden.cli._service import service_group

console = Console()
err_console = Console(stderr=True)


# ---------------------------------------------------------------------------
# Root group
# ---------------------------------------------------------------------------


@click.group(context_settings={"help_option_names": ["-h", "--help"]})
@click.version_option(__version__, "--version", "-V", message="warden %(version)s")
def cli() -> None:
    """Warden: encrypted update-status reporting to a Watchtower collector."""


cli.add_command(config_group)
cli.add_command(service_group)


# ---------------------------------------------------------------------------
# setup
# ---------------------------------------------------------------------------


@cli.command()
@click.option("--watchtower-url", default=None, help="Watchtower base URL (https only)")
@click.option("--secret", default=None, help="Shared secret issued by Watchtower")
@click.option("--site-url", default=None, help="Canonical URL of this site")
@click.option("--site-name", default=None, help="Display name of this site")
@click.option("--platform", default=None, help="Distribution reported as the platform")
@click.option("--components", default=None, help="Comma-separated distributions to watch")
@click.option(
    "--send-component-names/--hide-component-names",
    default=None,
    help="Include component names in reports",
)
@click.option("--keyring", "use_keyring", is_flag=True, default=False, help="Store the secret in the OS keyring")
@click.option("--non-interactive", is_flag=True, default=False, help="Read from flags and env vars only")
def setup(
    watchtower_url: str | None,
    secret: str | None,
    site_url: str | None,
    site_name: str | None,
    platform: str | None,
    components: str | None,
    send_component_names: bool | None,
    use_keyring: bool,
    non_interactive: bool,
) -> None:
    """Configure the Watchtower connection."""
    from warden.cli._setup import run_setup

    run_setup(
        console=console,
        non_interactive=non_interactive,
        watchtower_url=watchtower_url,
        secret=secret,
        site_url=site_url,
        site_name=site_name,
        platform=platform,
        components=components,
        send_component_names=send_component_names,
        use_keyring=use_keyring,
    )


# ---------------------------------------------------------------------------
# report / status
# ---------------------------------------------------------------------------


@cli.command()
@click.option("--force", is_flag=True, default=False, help="Send even if nothing changed")
@click.option("--json", "as_json", is_flag=True, default=False)
def report(force: bool, as_json: bool) -> None:
    """Run one reporting cycle."""
    from warden.cli._report import cmd_report

    cmd_report(force=force, as_json=as_json, console=console)


@cli.command()
@click.option("--json", "as_json", is_flag=True, default=False)
def status(as_json: bool) -> None:
    """Show configuration and the last reporting outcome."""
    from warden.cli._status import cmd_status

    cmd_status(as_json=as_json, console=console)


# ---------------------------------------------------------------------------
# serve
# ---------------------------------------------------------------------------


@cli.command()
@click.option("--host", default=None, help="Bind address (default: [server] host)")
@click.option("--port", default=None, type=int, help="Port (default: [server] port)")
def serve(host: str | None, port: int | None) -> None:
    """Run the remote trigger endpoint."""
    from warden.cli._serve import cmd_serve

    cmd_serve(host=host, port=port, console=console)


# ---------------------------------------------------------------------------
# doctor
# ---------------------------------------------------------------------------


@cli.command()
@click.option("--json", "as_json", is_flag=True, default=False)
def doctor(as_json: bool) -> None:
    """Environment and configuration health check."""
    from warden.cli._doctor import cmd_doctor

    cmd_doctor(as_json=as_json, console=console)


# ---------------------------------------------------------------------------
# uninstall
# ---------------------------------------------------------------------------


@cli.command()
@click.option("--yes", "-y", is_flag=True, default=False, help="Do not ask for confirmation")
@click.option("--purge-config", is_flag=True, default=False, help="Also delete config.toml")
def uninstall(yes: bool, purge_config: bool) -> None:
    """Remove report state, trigger cooldowns and cached versions."""
    from warden.cli._uninstall import cmd_uninstall

    cmd_uninstall(yes=yes, purge_config=purge_config, console=console)


# ---------------------------------------------------------------------------
# version
# ---------------------------------------------------------------------------


@cli.command()
@click.option("--json", "as_json", is_flag=True, default=False)
def version(as_json: bool) -> None:
    """Show version information."""
    import platform
    import sys as _sys

    if as_json:
        import json

        click.echo(
            json.dumps(
                {
                    "warden": __version__,
                    "python": _sys.version.split()[0],
                    "platform": _sys.platform,
                    "arch": platform.machine(),
                },
                indent=2,
            )
        )
    else:
        console.print(f"warden {__version__}")
        console.print(f"Python {_sys.version.split()[0]}")
        console.print(f"Platform: {_sys.platform} {platform.machine()}")


# ---------------------------------------------------------------------------
# Entry point
# ---------------------------------------------------------------------------


def main() -> None:
    cli()


if __name__ == "__main__":
    main()
