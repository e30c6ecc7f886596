"""
Session token creation and verification.

Tokens are base64-encoded JSON payloads signed with HMAC-SHA256 using
``Settings.session_secret``.  The session itself is issued elsewhere; this
service only needs to know who the current user is.
"""

from __future__ import annotations

import hashlib
import hmac
import json
import logging
import time
from base64 import b64decode, b64encode
from typing import Optional

logger = logging.getLogger(__name__)


def create_token(user_id: str, secret: str, expiry_seconds: int) -> str:
    """
    Create a signed token containing ``user_id`` and expiry.

    Sessions are issued by the login service, not here; this mirrors its
    format for tests and local tooling.
    """
    payload = {
        "user_id": user_id,
        "exp": int(time.time()) + expiry_seconds,
    }
    raw = json.dumps(payload).encode()
    sig = hmac.new(secret.encode(), raw, hashlib.sha256).hexdigest()
    return b64encode(raw).decode() + "." + sig


def verify_token(token: str, secret: str) -> Optional[str]:
    """Return the token's ``user_id``, or ``None`` if it is invalid or expired."""
    try:
        parts = token.split(".", 1)
        if len(parts) != 2:
            raise ValueError("bad format")
        raw = b64decode(parts[0])
        expected_sig = hmac.new(secret.encode(), raw, hashlib.sha256).hexdigest()
        if not hmac.compare_digest(parts[1], expected_sig):
            raise ValueError("bad signature")
        payload = json.loads(raw)
        if payload.get("exp", 0) < time.time():
            raise ValueError("token expired")
        return str(payload["user_id"])
    except (ValueError, KeyError, TypeError) as exc:
        logger.debug("Rejected session token: %s", exc)
        return None
