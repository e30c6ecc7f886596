"""
BaseConnector — abstract interface for all OAuth2 connectors.

There is one connector per provider *family*.  The family fixes three
things at once: how the ``state`` parameter is bound (CSRF cookie or the
user's own id), which callback path the provider redirects to, and which
token-exchange protocol the callback speaks.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple
from urllib.parse import urlencode

import httpx

from config.settings import Settings
from connectors.errors import CallbackFailure, CallbackReason

logger = logging.getLogger(__name__)


class IntegrationType(str, Enum):
    """Closed set of integration types a user can hold (and request)."""

    GMAIL = "gmail"
    GOOGLE_CALENDAR = "google_calendar"
    NOTION = "notion"
    GITHUB = "github"


class ProviderFamily(str, Enum):
    GENERIC = "generic"
    GOOGLE = "google"
    NOTION = "notion"


class StateBinding(str, Enum):
    CSRF_COOKIE = "csrf_cookie"
    USER_ID = "user_id"


@dataclass(frozen=True)
class TokenGrant:
    """Normalised result of a successful code → token exchange."""

    access_token: str
    refresh_token: Optional[str] = None
    expires_in: Optional[int] = None
    extra: Dict[str, Any] = field(default_factory=dict)

    def expires_at(self, now: Optional[datetime] = None) -> Optional[datetime]:
        if not self.expires_in:
            return None
        now = now or datetime.now(timezone.utc)
        return now + timedelta(seconds=int(self.expires_in))


class BaseConnector(ABC):
    """Abstract base for all OAuth2 connectors."""

    family: ProviderFamily
    state_binding: StateBinding
    callback_path: str
    authorize_url: str
    token_url: str

    def __init__(self, settings: Settings) -> None:
        self.settings = settings

    # ── Identity ────────────────────────────────────────────────────────

    @property
    @abstractmethod
    def display_name(self) -> str:
        ...

    @property
    @abstractmethod
    def integration_types(self) -> Tuple[IntegrationType, ...]:
        """Integration rows written by one successful grant."""
        ...

    @property
    def scopes(self) -> List[str]:
        return []

    @property
    def extra_params(self) -> Dict[str, str]:
        """Fixed parameters appended to the authorize URL."""
        return {}

    @property
    @abstractmethod
    def client_id(self) -> str:
        ...

    @property
    @abstractmethod
    def client_secret(self) -> str:
        ...

    def is_configured(self) -> bool:
        return bool(self.client_id and self.client_secret)

    def redirect_uri(self) -> str:
        return f"{self.settings.public_url.rstrip('/')}{self.callback_path}"

    def success_label(self, requested: IntegrationType) -> str:
        """Value of the success indicator put on the dashboard redirect."""
        return requested.value

    # ── OAuth flow ──────────────────────────────────────────────────────

    def get_auth_url(self, state: str) -> str:
        """Build the provider's OAuth2 authorization URL."""
        params = {
            "client_id": self.client_id,
            "redirect_uri": self.redirect_uri(),
            "response_type": "code",
            "state": state,
        }
        if self.scopes:
            params["scope"] = " ".join(self.scopes)
        params.update(self.extra_params)
        return f"{self.authorize_url}?{urlencode(params)}"

    def http_client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(timeout=self.settings.http_timeout_seconds)

    async def exchange_code(self, code: str) -> TokenGrant:
        """
        Exchange the authorization code for tokens.

        Raises ``CallbackFailure`` with ``token_exchange_failed`` for a
        non-2xx response or an ``error`` field in the body, and with
        ``no_access_token`` when a 2xx body carries no access token.
        Transport errors propagate to the caller.
        """
        async with self.http_client() as client:
            resp = await self._post_token_request(client, code)

        try:
            data = resp.json()
        except ValueError:
            data = {}
        if not isinstance(data, dict):
            data = {}

        if resp.is_error or data.get("error"):
            provider_error = data.get("error")
            logger.warning(
                "%s token exchange failed: status=%s error=%s",
                self.display_name,
                resp.status_code,
                provider_error,
            )
            raise CallbackFailure(
                CallbackReason.TOKEN_EXCHANGE_FAILED,
                str(provider_error) if provider_error else None,
            )

        access_token = data.get("access_token")
        if not access_token:
            logger.warning("%s token response had no access_token", self.display_name)
            raise CallbackFailure(CallbackReason.NO_ACCESS_TOKEN)

        return TokenGrant(
            access_token=access_token,
            refresh_token=data.get("refresh_token") or None,
            expires_in=data.get("expires_in") or None,
            extra=self.parse_extra(data),
        )

    @abstractmethod
    async def _post_token_request(self, client: httpx.AsyncClient, code: str) -> httpx.Response:
        """Send the provider-specific token request."""
        ...

    def parse_extra(self, data: Dict[str, Any]) -> Dict[str, Any]:
        """Provider metadata to keep in the integration's ``extra`` column."""
        return {}
