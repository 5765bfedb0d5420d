"""
systemd user units for scheduled reporting and the trigger server.

Three units are generated:

  warden-report.service   oneshot, runs ``warden report``
  warden-report.timer     fires the oneshot on an interval (default daily)
  warden.service          long-running ``warden serve`` for remote triggers

Lifecycle::

    warden service install                 # write units + daemon-reload + enable
    systemctl --user list-timers warden-report.timer
    journalctl --user -u warden-report -f

Units are written to ~/.config/systemd/user/ (respects $XDG_CONFIG_HOME).
"""

from __future__ import annotations

import os
import subprocess
import sys
from pathlib import Path

REPORT_SERVICE = "warden-report.service"
REPORT_TIMER = "warden-report.timer"
SERVER_SERVICE = "warden.service"

_REPORT_TEMPLATE = """\
[Unit]
Description=Warden update-status report
After=network-online.target
Wants=network-online.target

[Service]
Type=oneshot
ExecStart="{exec_path}" report
Environment="WARDEN_CONFIG={config_path}"
SyslogIdentifier=warden-report
"""

_TIMER_TEMPLATE = """\
[Unit]
Description=Run the Warden report every {interval}

[Timer]
OnBootSec=5min
OnUnitActiveSec={interval}
RandomizedDelaySec=10min
Persistent=true

[Install]
WantedBy=timers.target
"""

_SERVER_TEMPLATE = """\
[Unit]
Description=Warden trigger endpoint
After=network.target

[Service]
Type=simple
ExecStart="{exec_path}" serve
Restart=on-failure
RestartSec=5s
Environment="WARDEN_CONFIG={config_path}"
StandardOutput=journal
StandardError=journal
SyslogIdentifier=warden

[Install]
WantedBy=default.target
"""


def generate_units(exec_path: str, config_path: str, interval: str = "1d") -> dict[str, str]:
    """
    Render the unit files.

    Args:
        exec_path:   Absolute path to the ``warden`` binary.
        config_path: Absolute path to the Warden config TOML file.
        interval:    systemd time span between reports, e.g. ``1d`` or ``6h``.

    Returns:
        Mapping of unit file name to content.
    """
    values = {"exec_path": exec_path, "config_path": config_path, "interval": interval}
    return {
        REPORT_SERVICE: _REPORT_TEMPLATE.format(**values),
        REPORT_TIMER: _TIMER_TEMPLATE.format(**values),
        SERVER_SERVICE: _SERVER_TEMPLATE.format(**values),
    }


def systemd_user_dir() -> Path:
    """Return the systemd user unit directory (~/.config/systemd/user/)."""
    xdg_config = os.environ.get("XDG_CONFIG_HOME", str(Path.home() / ".config"))
    return Path(xdg_config) / "systemd" / "user"


def install_units(units: dict[str, str]) -> list[Path]:
    """Write *units* to the systemd user directory; return the written paths."""
    unit_dir = systemd_user_dir()
    unit_dir.mkdir(parents=True, exist_ok=True)
    written = []
    for name, content in units.items():
        path = unit_dir / name
        path.write_text(content, encoding="utf-8")
        path.chmod(0o644)
        written.append(path)
    return written


def _systemctl(*args: str) -> None:
    subprocess.run(  # nosec B603 B607
        ["systemctl", "--user", *args],
        check=True,
        capture_output=True,
    )


def reload_daemon() -> None:
    _systemctl("daemon-reload")


def enable_units(with_server: bool = False) -> None:
    """Enable the report timer, and the trigger server when requested."""
    _systemctl("enable", "--now", REPORT_TIMER)
    if with_server:
        _systemctl("enable", "--now", SERVER_SERVICE)


def is_systemd_available() -> bool:
    """True when a systemd user session answers; always False off Linux."""
    if not sys.platform.startswith("linux"):
        return False
    try:
        result = subprocess.run(  # nosec B603 B607
            ["systemctl", "--user", "status"],
            capture_output=True,
            timeout=3.0,
        )
        # 3 = degraded, still a live manager
        return result.returncode in (0, 3)
    except (FileNotFoundError, subprocess.TimeoutExpired):
        return False
