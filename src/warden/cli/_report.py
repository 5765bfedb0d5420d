"""warden report: run one reporting cycle."""

from __future__ import annotations

import json
import sys

from rich.console import Console

from warden.cli._common import init_logging, load_config_or_exit
from warden.core.constants import ExitCode

_EXIT_BY_ERROR = {
    "not_configured": ExitCode.CONFIG_ERROR,
    "crypto_failed": ExitCode.CRYPTO_ERROR,
    "report_failed": ExitCode.NETWORK_ERROR,
}


def cmd_report(force: bool, as_json: bool, console: Console) -> None:
    from warden.core.agent import WardenAgent

    cfg = load_config_or_exit()
    init_logging(cfg)

    with WardenAgent(cfg) as agent:
        result = agent.run_cycle(force=force)

    if as_json:
        print(json.dumps(result.to_dict(), indent=2))
    elif result.transmitted:
        console.print(f"[green]Report sent[/green] ({result.reason})")
    elif result.success:
        console.print("[dim]No changes since the last report; nothing sent.[/dim]")
    else:
        console.print(f"[red]Report failed:[/red] {result.error}")

    if not result.success:
        sys.exit(_EXIT_BY_ERROR.get(result.error_code or "", ExitCode.ERROR))
