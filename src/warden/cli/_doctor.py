"""warden doctor: environment and configuration health check."""

from __future__ import annotations

import json
import sys
from typing import Any

from rich.console import Console

from warden.core.constants import ExitCode


def _check(name: str, status: str, detail: str) -> dict[str, str]:
    return {"name": name, "status": status, "detail": detail}


def _config_checks() -> list[dict[str, str]]:
    from warden.core.config import _config_file_path, https_url_error, load_config
    from warden.core.exceptions import ConfigurationError

    cfg_path = _config_file_path()
    if not cfg_path.exists():
        return [_check("Config file", "fail", f"not found: {cfg_path}")]
    try:
        cfg = load_config(cfg_path)
    except ConfigurationError as exc:
        return [_check("Config file", "fail", exc.message)]

    checks = [_check("Config file", "pass", str(cfg_path))]
    mode = cfg_path.stat().st_mode & 0o777
    checks.append(
        _check("Config permissions", "pass" if mode & 0o077 == 0 else "warn", oct(mode))
    )

    url = cfg.watchtower.url
    if not url:
        checks.append(_check("Watchtower URL", "fail", "not set"))
    else:
        error = https_url_error(url)
        checks.append(_check("Watchtower URL", "fail" if error else "pass", error or url))

    try:
        secret = cfg.secret_value()
    except Exception as exc:  # noqa: BLE001
        checks.append(_check("Shared secret", "fail", f"keyring error: {exc}"))
    else:
        checks.append(_check("Shared secret", "pass" if secret else "fail", "set" if secret else "not set"))

    site = cfg.site.url
    checks.append(_check("Site URL", "pass" if site else "fail", site or "not set"))

    try:
        from warden.core.store.database import Database

        with Database(cfg.db_path) as db:
            db.load_state()
        checks.append(_check("State database", "pass", str(cfg.db_path)))
    except Exception as exc:  # noqa: BLE001
        checks.append(_check("State database", "fail", str(exc)))
    return checks


def _dependency_checks() -> list[dict[str, str]]:
    checks = []
    try:
        from cryptography import __version__ as crypto_version

        checks.append(_check("cryptography", "pass", crypto_version))
    except ImportError:
        checks.append(_check("cryptography", "fail", "not installed; reports cannot be encrypted"))

    for module in ("fastapi", "uvicorn"):
        try:
            __import__(module)
            checks.append(_check(module, "pass", "installed"))
        except ImportError:
            checks.append(_check(module, "warn", "not installed; warden serve unavailable"))
    return checks


def run_checks() -> list[dict[str, str]]:
    checks = [
        _check("Python version", "pass", sys.version.split()[0]),
        _check("Platform", "pass", sys.platform),
    ]
    checks.extend(_dependency_checks())
    checks.extend(_config_checks())
    return checks


def cmd_doctor(as_json: bool, console: Console) -> None:
    checks = run_checks()
    all_pass = all(c["status"] != "fail" for c in checks)

    if as_json:
        report: dict[str, Any] = {"checks": checks, "all_pass": all_pass}
        print(json.dumps(report, indent=2))
    else:
        console.print("[bold]Warden Doctor[/bold]\n")
        icons = {
            "pass": "[green]PASS[/green]",
            "warn": "[yellow]WARN[/yellow]",
            "fail": "[red]FAIL[/red]",
        }
        for c in checks:
            console.print(f"  {icons[c['status']]}  {c['name']}: {c['detail']}")
        console.print()
        if all_pass:
            console.print("[green]All checks passed.[/green]")
        else:
            console.print("[red]Some checks failed. Run [cyan]warden setup[/cyan] to fix the config.[/red]")

    if not all_pass:
        sys.exit(ExitCode.ERROR)
