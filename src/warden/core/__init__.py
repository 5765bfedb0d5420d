"""
warden.core: configuration, shared models, stores and agent wiring.

Modules:
    agent           WardenAgent: wires stores, collector, transport and cycle
    config          Configuration loading (TOML + env vars) and sanitisation
    config_migrate  Config schema version detection and upgrade chain
    constants       Exit codes, filesystem layout, protocol constants
    exceptions      Warden exception hierarchy
    interfaces      Narrow contracts the reporting core depends on
    keyring_store   Optional OS keyring storage for the shared secret
    logging_setup   Text / JSON log formatting
    models          Report, ChangeState, CycleResult and friends
    store/          SQLite and in-memory state stores
"""
