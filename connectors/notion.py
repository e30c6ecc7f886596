"""
NotionConnector — OAuth2 for Notion workspaces.

Notion authenticates the token request with HTTP Basic auth, requests no
scopes (permissions live in the integration's settings on Notion's side)
and returns workspace metadata next to a non-expiring access token.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass, replace
from typing import Any, Dict, Optional, Tuple

import httpx

from connectors.base import (
    BaseConnector,
    IntegrationType,
    ProviderFamily,
    StateBinding,
    TokenGrant,
)

_NOTION_AUTH_URL = "https://api.notion.com/v1/oauth/authorize"
_NOTION_TOKEN_URL = "https://api.notion.com/v1/oauth/token"


@dataclass(frozen=True)
class NotionWorkspace:
    workspace_id: Optional[str] = None
    workspace_name: Optional[str] = None
    bot_id: Optional[str] = None


class NotionConnector(BaseConnector):
    """OAuth2 connector for Notion."""

    family = ProviderFamily.NOTION
    state_binding = StateBinding.USER_ID
    callback_path = "/api/v1/integrations/notion/callback"
    authorize_url = _NOTION_AUTH_URL
    token_url = _NOTION_TOKEN_URL

    @property
    def display_name(self) -> str:
        return "Notion"

    @property
    def integration_types(self) -> Tuple[IntegrationType, ...]:
        return (IntegrationType.NOTION,)

    @property
    def extra_params(self) -> Dict[str, str]:
        return {"owner": "user"}

    @property
    def client_id(self) -> str:
        return self.settings.notion_client_id

    @property
    def client_secret(self) -> str:
        return self.settings.notion_client_secret

    async def _post_token_request(self, client: httpx.AsyncClient, code: str) -> httpx.Response:
        return await client.post(
            self.token_url,
            auth=httpx.BasicAuth(self.client_id, self.client_secret),
            json={
                "grant_type": "authorization_code",
                "code": code,
                "redirect_uri": self.redirect_uri(),
            },
        )

    async def exchange_code(self, code: str) -> TokenGrant:
        grant = await super().exchange_code(code)
        # stored as a non-expiring token without refresh
        return replace(grant, refresh_token=None, expires_in=None)

    def parse_extra(self, data: Dict[str, Any]) -> Dict[str, Any]:
        workspace = NotionWorkspace(
            workspace_id=data.get("workspace_id"),
            workspace_name=data.get("workspace_name"),
            bot_id=data.get("bot_id"),
        )
        return asdict(workspace)
