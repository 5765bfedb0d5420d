"""warden status: configuration and last reporting outcome."""

from __future__ import annotations

import json
from datetime import UTC, datetime

from rich.console import Console

from warden.cli._common import load_config_or_exit


def _fmt_time(ts: int | None) -> str:
    if not ts:
        return "never"
    return datetime.fromtimestamp(ts, UTC).strftime("%Y-%m-%d %H:%M:%S UTC")


def cmd_status(as_json: bool, console: Console) -> None:
    from warden.core.agent import WardenAgent

    cfg = load_config_or_exit()
    with WardenAgent(cfg) as agent:
        data = agent.status()

    if as_json:
        print(json.dumps(data, indent=2))
        return

    colour = {"success": "green", "failed": "red"}.get(data["last_status"], "dim")
    console.print("[bold]Warden Status[/bold]\n")
    console.print(f"  Site:         {data['site_url'] or '[dim]not set[/dim]'}")
    console.print(f"  Watchtower:   {data['watchtower_url'] or '[dim]not set[/dim]'}")
    console.print(f"  Key ID:       {data['key_id'] or '[dim]none[/dim]'}")
    console.print(f"  Names sent:   {'yes' if data['send_component_names'] else 'no'}")
    console.print(f"  Last report:  {_fmt_time(data['last_report'])}")
    console.print(f"  Last status:  [{colour}]{data['last_status']}[/{colour}]")
    if data["last_error"]:
        console.print(f"  Last error:   [red]{data['last_error']}[/red]")
    if not data["configured"]:
        console.print("\n  Run [cyan]warden setup[/cyan] to configure Watchtower.")
