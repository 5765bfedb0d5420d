"""
Payload encryption and envelope signing.

Key material is derived from the shared secret only:

  key     = SHA-256(secret)                       32 raw bytes, AES-256 key
  key_id  = hex(SHA-256(secret))[:16]             public identifier

Each report is serialised to compact JSON, encrypted with AES-256-CBC
(PKCS#7 padding) under a fresh 16-byte IV from the OS CSPRNG, and wrapped
in a SecureEnvelope whose signature is::

    HMAC-SHA256(secret, site_url|key_id|iv_b64|payload_b64|timestamp)

Field order and the ``|`` delimiter are the wire contract with Watchtower.
The secret itself never leaves the host.
"""

from __future__ import annotations

import base64
import hashlib
import hmac
import json
import logging
import os
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any

from warden.core.constants import IV_LENGTH, KEY_ID_LENGTH, SIGNATURE_DELIMITER
from warden.core.exceptions import CryptoError

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Key derivation
# ---------------------------------------------------------------------------


def derive_key(secret: str) -> bytes:
    return hashlib.sha256(secret.encode("utf-8")).digest()


def derive_key_id(secret: str) -> str:
    return hashlib.sha256(secret.encode("utf-8")).hexdigest()[:KEY_ID_LENGTH]


# ---------------------------------------------------------------------------
# Encryption
# ---------------------------------------------------------------------------


def _backend() -> tuple[Any, Any, Any]:
    try:
        from cryptography.hazmat.primitives import padding
        from cryptography.hazmat.primitives.ciphers import Cipher, algorithms, modes
    except ImportError as exc:
        raise CryptoError(
            "Encryption backend unavailable: install the 'cryptography' package"
        ) from exc
    return Cipher, algorithms, (modes, padding)


def generate_iv() -> bytes:
    """Return IV_LENGTH bytes from the OS CSPRNG; no fallback source."""
    try:
        iv = os.urandom(IV_LENGTH)
    except (NotImplementedError, OSError) as exc:
        raise CryptoError(f"Secure random source unavailable: {exc}") from exc
    if len(iv) != IV_LENGTH:
        raise CryptoError("Secure random source returned a short read")
    return iv


def serialize_report(report: Mapping[str, Any]) -> bytes:
    return json.dumps(dict(report), separators=(",", ":")).encode("utf-8")


def encrypt(report: Mapping[str, Any], secret: str) -> tuple[bytes, bytes]:
    """Encrypt *report* under *secret*; return ``(iv, ciphertext)``."""
    if not secret:
        raise CryptoError("Cannot encrypt without a shared secret")
    try:
        plaintext = serialize_report(report)
    except (TypeError, ValueError) as exc:
        raise CryptoError(f"Report cannot be serialised: {exc}") from exc
    Cipher, algorithms, (modes, padding) = _backend()
    iv = generate_iv()

    padder = padding.PKCS7(algorithms.AES.block_size).padder()
    padded = padder.update(plaintext) + padder.finalize()
    try:
        encryptor = Cipher(algorithms.AES(derive_key(secret)), modes.CBC(iv)).encryptor()
        ciphertext = encryptor.update(padded) + encryptor.finalize()
    except Exception as exc:
        raise CryptoError(f"Encryption failed: {exc}") from exc
    return iv, ciphertext


def decrypt(iv: bytes, ciphertext: bytes, secret: str) -> dict[str, Any]:
    """Inverse of :func:`encrypt`, as performed by Watchtower."""
    Cipher, algorithms, (modes, padding) = _backend()
    try:
        decryptor = Cipher(algorithms.AES(derive_key(secret)), modes.CBC(iv)).decryptor()
        padded = decryptor.update(ciphertext) + decryptor.finalize()
        unpadder = padding.PKCS7(algorithms.AES.block_size).unpadder()
        plaintext = unpadder.update(padded) + unpadder.finalize()
        return json.loads(plaintext.decode("utf-8"))
    except (ValueError, UnicodeDecodeError) as exc:
        raise CryptoError(f"Decryption failed: {exc}") from exc


# ---------------------------------------------------------------------------
# Signing
# ---------------------------------------------------------------------------


def hmac_hex(message: str, secret: str) -> str:
    return hmac.new(secret.encode("utf-8"), message.encode("utf-8"), hashlib.sha256).hexdigest()


def sign(
    site_url: str,
    key_id: str,
    iv_b64: str,
    payload_b64: str,
    timestamp: int,
    secret: str,
) -> str:
    """Envelope signature over ``site_url|key_id|iv|payload|timestamp``."""
    message = SIGNATURE_DELIMITER.join((site_url, key_id, iv_b64, payload_b64, str(timestamp)))
    return hmac_hex(message, secret)


def _b64(data: bytes) -> str:
    return base64.b64encode(data).decode("ascii")


@dataclass(frozen=True)
class SecureEnvelope:
    """Encrypted, signed report as transmitted to Watchtower."""

    site_url: str
    key_id: str
    iv: bytes
    payload: bytes
    timestamp: int
    signature: str

    @property
    def iv_b64(self) -> str:
        return _b64(self.iv)

    @property
    def payload_b64(self) -> str:
        return _b64(self.payload)

    def to_dict(self) -> dict[str, Any]:
        return {
            "site_url": self.site_url,
            "key_id": self.key_id,
            "iv": self.iv_b64,
            "payload": self.payload_b64,
            "timestamp": self.timestamp,
            "signature": self.signature,
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> SecureEnvelope:
        return cls(
            site_url=str(data["site_url"]),
            key_id=str(data["key_id"]),
            iv=base64.b64decode(data["iv"]),
            payload=base64.b64decode(data["payload"]),
            timestamp=int(data["timestamp"]),
            signature=str(data["signature"]),
        )


def verify_envelope(envelope: SecureEnvelope, secret: str) -> bool:
    """Recompute the envelope signature and compare in constant time."""
    expected = sign(
        envelope.site_url,
        envelope.key_id,
        envelope.iv_b64,
        envelope.payload_b64,
        envelope.timestamp,
        secret,
    )
    return hmac.compare_digest(expected.encode("ascii"), envelope.signature.encode("utf-8"))


class PayloadCrypter:
    """Seals reports into SecureEnvelopes for one shared secret."""

    def __init__(self, secret: str) -> None:
        if not secret:
            raise CryptoError("PayloadCrypter requires a shared secret")
        self._secret = secret
        self.key_id = derive_key_id(secret)

    def seal(self, report: Mapping[str, Any], site_url: str, timestamp: int) -> SecureEnvelope:
        iv, ciphertext = encrypt(report, self._secret)
        site_url = site_url.rstrip("/")
        signature = sign(
            site_url, self.key_id, _b64(iv), _b64(ciphertext), timestamp, self._secret
        )
        logger.debug("Sealed report: key_id=%s bytes=%d", self.key_id, len(ciphertext))
        return SecureEnvelope(
            site_url=site_url,
            key_id=self.key_id,
            iv=iv,
            payload=ciphertext,
            timestamp=timestamp,
            signature=signature,
        )

    def __repr__(self) -> str:
        return f"PayloadCrypter(key_id={self.key_id!r})"
