"""
warden.protocol: the secure reporting protocol.

Outbound: reports are AES-256-CBC encrypted under SHA-256(secret) and the
envelope is signed with HMAC-SHA256 over
``site_url|key_id|iv|payload|timestamp``.

Inbound: trigger requests are signed with HMAC-SHA256 over
``watchtower_url|timestamp|site_url`` and must be fresh, come from the
configured Watchtower, and respect a per-client cooldown.
"""

from warden.protocol.crypter import PayloadCrypter, SecureEnvelope
from warden.protocol.trigger import TriggerAuthenticator, sign_trigger
from warden.protocol.urls import normalize_url, urls_match

__all__ = [
    "PayloadCrypter",
    "SecureEnvelope",
    "TriggerAuthenticator",
    "normalize_url",
    "sign_trigger",
    "urls_match",
]
