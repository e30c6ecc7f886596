"""
Token encryption — encrypt / decrypt OAuth tokens at rest.

Uses AES-256-GCM from the ``cryptography`` library.  The key comes from
``Settings.encryption_key`` (env var: ``ENCRYPTION_KEY``): either 64 hex
characters (decoded to 32 raw bytes) or a raw string of at least 32
characters, of which the first 32 bytes are used.  Generate one with::

    python -c "import secrets; print(secrets.token_hex(32))"

Each blob is ``base64(nonce[12] || tag[16] || ciphertext)``.

Rotating the key makes every previously stored blob unreadable; there is
no key versioning.
"""

from __future__ import annotations

import base64
import binascii
import logging
import os
import re

from cryptography.exceptions import InvalidTag
from cryptography.hazmat.primitives.ciphers.aead import AESGCM

from connectors.errors import (
    ConfigurationError,
    MalformedCiphertextError,
    TokenAuthenticationError,
)

logger = logging.getLogger(__name__)

KEY_BYTES = 32
NONCE_BYTES = 12
TAG_BYTES = 16

_HEX_KEY = re.compile(r"^[0-9a-fA-F]{64}$")


def derive_key(secret: str | None) -> bytes:
    """Turn the configured secret into a 32-byte AES key."""
    if not secret or len(secret) < KEY_BYTES:
        raise ConfigurationError(
            "ENCRYPTION_KEY must be set (at least 32 chars). "
            'Generate with: python -c "import secrets; print(secrets.token_hex(32))"'
        )
    if _HEX_KEY.match(secret):
        return bytes.fromhex(secret)
    return secret.encode("utf-8")[:KEY_BYTES]


class TokenCipher:
    """AES-256-GCM cipher bound to one process-wide key."""

    def __init__(self, secret: str | None) -> None:
        self._aead = AESGCM(derive_key(secret))

    def __repr__(self) -> str:
        return "TokenCipher(key=***)"

    def encrypt(self, plaintext: str) -> str:
        """Encrypt a token string for database storage."""
        nonce = os.urandom(NONCE_BYTES)
        sealed = self._aead.encrypt(nonce, plaintext.encode("utf-8"), None)
        # cryptography appends the tag; the stored layout puts it first
        ciphertext, tag = sealed[:-TAG_BYTES], sealed[-TAG_BYTES:]
        return base64.b64encode(nonce + tag + ciphertext).decode("ascii")

    def decrypt(self, blob: str) -> str:
        """
        Decrypt a token string read from the database.

        Raises ``MalformedCiphertextError`` if the blob is not valid base64
        or is shorter than nonce + tag, and ``TokenAuthenticationError`` if
        the authentication tag does not verify.
        """
        try:
            raw = base64.b64decode(blob, validate=True)
        except (binascii.Error, ValueError) as exc:
            raise MalformedCiphertextError("Encrypted token is not valid base64") from exc

        if len(raw) < NONCE_BYTES + TAG_BYTES:
            raise MalformedCiphertextError("Encrypted token is too short")

        nonce = raw[:NONCE_BYTES]
        tag = raw[NONCE_BYTES:NONCE_BYTES + TAG_BYTES]
        ciphertext = raw[NONCE_BYTES + TAG_BYTES:]

        try:
            plaintext = self._aead.decrypt(nonce, ciphertext + tag, None)
        except InvalidTag as exc:
            logger.warning("Encrypted token failed authentication")
            raise TokenAuthenticationError("Encrypted token failed authentication") from exc

        return plaintext.decode("utf-8")
