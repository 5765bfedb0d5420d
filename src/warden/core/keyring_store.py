"""
Optional OS keyring storage for the shared secret.

When the ``keyring`` package is installed, ``warden setup --keyring`` stores
the secret in the OS keyring and writes a placeholder of the form
``keyring:warden:<name>`` into config.toml instead of the secret itself.
"""

from __future__ import annotations

import logging

logger = logging.getLogger(__name__)

SERVICE_NAME = "warden"
KEYRING_PREFIX = "keyring:"


def is_keyring_placeholder(value: str) -> bool:
    return value.startswith(KEYRING_PREFIX)


def store_token(name: str, value: str) -> str:
    """Store *value* in the keyring and return the placeholder to persist."""
    import keyring

    keyring.set_password(SERVICE_NAME, name, value)
    return f"{KEYRING_PREFIX}{SERVICE_NAME}:{name}"


def retrieve_token(placeholder: str) -> str | None:
    """Resolve a ``keyring:<service>:<name>`` placeholder; None if absent."""
    if not is_keyring_placeholder(placeholder):
        return None
    service, _, name = placeholder[len(KEYRING_PREFIX) :].partition(":")
    if not service or not name:
        return None

    import keyring

    value = keyring.get_password(service, name)
    if value is None:
        logger.warning("Keyring entry %s:%s not found", service, name)
    return value


def delete_token(placeholder: str) -> bool:
    """Remove the keyring entry behind *placeholder*; True if one was removed."""
    if not is_keyring_placeholder(placeholder):
        return False
    service, _, name = placeholder[len(KEYRING_PREFIX) :].partition(":")

    import keyring
    from keyring.errors import PasswordDeleteError

    try:
        keyring.delete_password(service, name)
    except PasswordDeleteError:
        return False
    return True
