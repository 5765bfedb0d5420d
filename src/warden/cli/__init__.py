"""
warden.cli: Click-based CLI entry point and command handlers.

Commands:
    setup       Configure the Watchtower URL, shared secret and privacy
    report      Run one reporting cycle (``--force`` skips the change gate)
    status      Show configuration and the last reporting outcome
    serve       Run the remote trigger endpoint
    config      Show, validate and migrate configuration
    doctor      Run environment diagnostics
    uninstall   Remove runtime state (and optionally the configuration)
    service     Install systemd units for scheduled reporting
"""
