"""
Pending authorization state — how a callback proves it answers a
request this browser actually started.

Two bindings exist:

* CSRF cookie (generic family): a random token goes out as ``state`` and
  is kept, together with the requested provider, in two http-only
  cookies that live for ``STATE_TTL`` seconds.  The callback reads both
  and the cookies are cleared on every callback response, whatever the
  outcome, so a state value can be used at most once.
* User id (Google, Notion): ``state`` is the user's own id and is
  cross-checked against the live session.
"""

from __future__ import annotations

import hmac
import logging
import secrets
from dataclasses import dataclass
from typing import Optional

from fastapi import Request, Response

from connectors.base import IntegrationType
from connectors.errors import CallbackFailure, CallbackReason

logger = logging.getLogger(__name__)

STATE_COOKIE = "oauth_state"
PROVIDER_COOKIE = "oauth_provider"
STATE_TTL = 600  # seconds


@dataclass(frozen=True)
class PendingAuthorization:
    state: Optional[str]
    provider: Optional[str]


class CookieStateStore:
    """Issue / read / clear the CSRF state pair kept in cookies."""

    def __init__(self, secure: bool = False, ttl: int = STATE_TTL) -> None:
        self.secure = secure
        self.ttl = ttl

    @staticmethod
    def issue(provider: IntegrationType) -> PendingAuthorization:
        """Create a fresh pending authorization with a random 32-byte state."""
        return PendingAuthorization(state=secrets.token_hex(32), provider=provider.value)

    def store(self, response: Response, pending: PendingAuthorization) -> None:
        """Attach the state and provider cookies to ``response``."""
        for name, value in ((STATE_COOKIE, pending.state), (PROVIDER_COOKIE, pending.provider)):
            response.set_cookie(
                name,
                value,
                max_age=self.ttl,
                path="/",
                httponly=True,
                secure=self.secure,
                samesite="lax",
            )

    def read(self, request: Request) -> PendingAuthorization:
        return PendingAuthorization(
            state=request.cookies.get(STATE_COOKIE),
            provider=request.cookies.get(PROVIDER_COOKIE),
        )

    def clear(self, response: Response) -> None:
        for name in (STATE_COOKIE, PROVIDER_COOKIE):
            response.delete_cookie(
                name, path="/", httponly=True, secure=self.secure, samesite="lax"
            )

    @staticmethod
    def verify(pending: PendingAuthorization, state: Optional[str]) -> str:
        """
        Check the incoming ``state`` against the stored cookie.

        Returns the provider id stored alongside it.  Raises
        ``CallbackFailure`` with ``invalid_state`` when either value is
        missing or they differ, and ``missing_provider`` when the
        provider cookie is gone.
        """
        if not state or not pending.state or not hmac.compare_digest(
            state.encode(), pending.state.encode()
        ):
            raise CallbackFailure(CallbackReason.INVALID_STATE)
        if not pending.provider:
            raise CallbackFailure(CallbackReason.MISSING_PROVIDER)
        return pending.provider


def verify_user_state(state: str, session_user_id: str) -> None:
    """``state`` carries a user id; it must be the logged-in user's."""
    if not hmac.compare_digest(state.encode(), session_user_id.encode()):
        logger.warning("OAuth state does not match the session user")
        raise CallbackFailure(CallbackReason.AUTH_MISMATCH)
