"""
Warden test suite.

Tests are organized by layer:
    tests/unit/         Unit tests (no network, in-memory or temp-dir state)
    tests/server/       Trigger endpoint through the FastAPI test client
    tests/integration/  CLI commands end to end with CliRunner

Run all tests:
    pytest

Run unit tests only:
    pytest tests/unit/
"""
