"""
Warden: secure update-status reporting agent.

Warden collects the update status of the host it runs on (platform,
language runtime, watched components), encrypts and signs the report and
delivers it to a Watchtower collector.  Watchtower can also ask Warden to
report immediately through an authenticated trigger endpoint.

Package layout (src/warden/):
  core/        configuration, exceptions, models, stores, agent wiring
  protocol/    payload encryption/signing, URL normalisation, trigger auth
  reporting/   version classifier, change gate, reporting cycle, collector
  transport/   outbound HTTP transport
  server/      inbound trigger endpoint (FastAPI)
  os/systemd/  systemd user service + timer generation
  cli/         Click CLI entry point
"""

__version__ = "3.6.0"
__all__ = ["__version__"]
