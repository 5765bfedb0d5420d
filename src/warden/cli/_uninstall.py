"""warden uninstall: remove runtime state and, optionally, the configuration."""

from __future__ import annotations

import sys

from rich.console import Console
from rich.prompt import Confirm


def cmd_uninstall(yes: bool, purge_config: bool, console: Console) -> None:
    from warden.cli._common import load_config_or_exit
    from warden.core.agent import WardenAgent
    from warden.core.config import _config_file_path
    from warden.core.keyring_store import delete_token, is_keyring_placeholder

    cfg = load_config_or_exit()

    if not yes and not Confirm.ask(
        "Remove the report state, trigger cooldowns and cached versions?", default=False
    ):
        console.print("Aborted.")
        sys.exit(1)

    with WardenAgent(cfg) as agent:
        agent.uninstall()
    console.print("[green]Runtime state cleared.[/green]")

    if not purge_config:
        return

    raw_secret = cfg.watchtower.secret.get_secret_value()
    if is_keyring_placeholder(raw_secret):
        try:
            if delete_token(raw_secret):
                console.print("[green]Keyring entry removed.[/green]")
        except Exception as exc:  # noqa: BLE001
            console.print(f"[yellow]Keyring entry not removed:[/yellow] {exc}")

    cfg_path = _config_file_path()
    cfg_path.unlink(missing_ok=True)
    console.print(f"[green]Config removed:[/green] {cfg_path}")
