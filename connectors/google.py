"""
GoogleConnector — one consent screen for Gmail, Calendar and Drive.

A single grant is recorded as two integrations (``gmail`` and
``google_calendar``) sharing the same token material.  ``state`` is the
requesting user's id.
"""

from __future__ import annotations

from typing import Dict, List, Tuple

import httpx

from connectors.base import BaseConnector, IntegrationType, ProviderFamily, StateBinding

# Google OAuth2 endpoints
_GOOGLE_AUTH_URL = "https://accounts.google.com/o/oauth2/v2/auth"
_GOOGLE_TOKEN_URL = "https://oauth2.googleapis.com/token"


class GoogleConnector(BaseConnector):
    """OAuth2 connector for the Google workspace family."""

    family = ProviderFamily.GOOGLE
    state_binding = StateBinding.USER_ID
    callback_path = "/api/v1/integrations/google/callback"
    authorize_url = _GOOGLE_AUTH_URL
    token_url = _GOOGLE_TOKEN_URL

    @property
    def display_name(self) -> str:
        return "Google"

    @property
    def integration_types(self) -> Tuple[IntegrationType, ...]:
        return (IntegrationType.GMAIL, IntegrationType.GOOGLE_CALENDAR)

    @property
    def scopes(self) -> List[str]:
        return [
            "https://www.googleapis.com/auth/gmail.modify",
            "https://www.googleapis.com/auth/calendar",
            "https://www.googleapis.com/auth/drive.readonly",
        ]

    @property
    def extra_params(self) -> Dict[str, str]:
        return {
            "access_type": "offline",       # gets refresh_token
            "prompt": "consent",            # force consent to always get refresh_token
        }

    @property
    def client_id(self) -> str:
        return self.settings.google_client_id

    @property
    def client_secret(self) -> str:
        return self.settings.google_client_secret

    def success_label(self, requested: IntegrationType) -> str:
        return IntegrationType.GMAIL.value

    async def _post_token_request(self, client: httpx.AsyncClient, code: str) -> httpx.Response:
        return await client.post(
            self.token_url,
            data={
                "code": code,
                "client_id": self.client_id,
                "client_secret": self.client_secret,
                "redirect_uri": self.redirect_uri(),
                "grant_type": "authorization_code",
            },
        )
