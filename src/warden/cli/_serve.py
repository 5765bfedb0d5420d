"""warden serve: run the remote trigger endpoint."""

from __future__ import annotations

import sys

from rich.console import Console

from warden.cli._common import init_logging, load_config_or_exit
from warden.core.constants import TRIGGER_PATH, ExitCode


def cmd_serve(host: str | None, port: int | None, console: Console) -> None:
    try:
        import fastapi  # noqa: F401
        import uvicorn  # noqa: F401
    except ImportError as exc:
        console.print(f"[red]Server dependencies not installed:[/red] {exc.name}")
        sys.exit(ExitCode.DEPENDENCY_MISSING)

    from warden.core.agent import WardenAgent
    from warden.server.app import start_server

    cfg = load_config_or_exit()
    init_logging(cfg)
    if not cfg.is_configured:
        console.print("[yellow]Warden is not configured; triggers will be refused.[/yellow]")

    host = host or cfg.server.host
    port = port or cfg.server.port
    console.print(f"Listening for triggers at http://{host}:{port}{TRIGGER_PATH}")
    with WardenAgent(cfg) as agent:
        start_server(agent, host=host, port=port)
