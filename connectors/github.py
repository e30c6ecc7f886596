"""
GitHubConnector — the generic OAuth2 family.

State is a random CSRF token held in a short-lived cookie; the token
exchange is a JSON POST carrying the client credentials.
"""

from __future__ import annotations

from typing import List, Tuple

import httpx

from connectors.base import BaseConnector, IntegrationType, ProviderFamily, StateBinding

# GitHub OAuth2 endpoints
_GH_AUTH_URL = "https://github.com/login/oauth/authorize"
_GH_TOKEN_URL = "https://github.com/login/oauth/access_token"


class GitHubConnector(BaseConnector):
    """OAuth2 connector for GitHub."""

    family = ProviderFamily.GENERIC
    state_binding = StateBinding.CSRF_COOKIE
    callback_path = "/api/v1/integrations/callback"
    authorize_url = _GH_AUTH_URL
    token_url = _GH_TOKEN_URL

    @property
    def display_name(self) -> str:
        return "GitHub"

    @property
    def integration_types(self) -> Tuple[IntegrationType, ...]:
        return (IntegrationType.GITHUB,)

    @property
    def scopes(self) -> List[str]:
        return ["repo", "read:user"]

    @property
    def client_id(self) -> str:
        return self.settings.github_client_id

    @property
    def client_secret(self) -> str:
        return self.settings.github_client_secret

    async def _post_token_request(self, client: httpx.AsyncClient, code: str) -> httpx.Response:
        # without the Accept header GitHub answers form-urlencoded
        return await client.post(
            self.token_url,
            json={
                "client_id": self.client_id,
                "client_secret": self.client_secret,
                "code": code,
                "redirect_uri": self.redirect_uri(),
            },
            headers={"Accept": "application/json"},
        )
