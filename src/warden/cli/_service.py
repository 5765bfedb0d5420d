"""CLI commands: warden service install | show."""

from __future__ import annotations

import shutil
import sys

import click

from warden.cli._common import console
from warden.core.constants import ExitCode


@click.group("service")
def service_group() -> None:
    """Manage systemd units for scheduled reporting."""


def _units(interval: str):
    from warden.core.config import _config_file_path
    from warden.os.systemd.service import generate_units

    exec_path = shutil.which("warden") or sys.argv[0]
    return generate_units(exec_path, str(_config_file_path().resolve()), interval=interval)


@service_group.command("show")
@click.option("--interval", default="1d", show_default=True, help="Time between reports (systemd time span)")
def service_show(interval: str) -> None:
    """Print the unit files without installing them."""
    for name, content in _units(interval).items():
        console.print(f"[cyan]# {name}[/cyan]")
        click.echo(content)


@service_group.command("install")
@click.option("--interval", default="1d", show_default=True, help="Time between reports (systemd time span)")
@click.option("--with-server", is_flag=True, default=False, help="Also enable the trigger server unit")
def service_install(interval: str, with_server: bool) -> None:
    """Install and enable the systemd user units."""
    import subprocess

    from warden.os.systemd.service import (
        enable_units,
        install_units,
        is_systemd_available,
        reload_daemon,
    )

    if not is_systemd_available():
        console.print("[red]systemd user session not available on this system.[/red]")
        console.print("Schedule [cyan]warden report[/cyan] with cron instead.")
        sys.exit(ExitCode.DEPENDENCY_MISSING)

    for path in install_units(_units(interval)):
        console.print(f"[green]Wrote[/green] {path}")

    try:
        reload_daemon()
        enable_units(with_server=with_server)
    except subprocess.CalledProcessError as exc:
        stderr = exc.stderr.decode(errors="replace") if exc.stderr else ""
        console.print(f"[red]systemctl failed:[/red] {stderr.strip() or exc}")
        sys.exit(ExitCode.ERROR)

    console.print("[green]Report timer enabled.[/green]")
    if with_server:
        console.print("[green]Trigger server enabled.[/green]")
