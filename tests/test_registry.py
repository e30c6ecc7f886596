"""
Tests for the connector registry and authorize-URL building.
"""

from urllib.parse import parse_qs, urlsplit

import pytest

from config.settings import Settings
from connectors.base import IntegrationType, ProviderFamily, StateBinding
from connectors.errors import InvalidProviderError
from connectors.registry import VALID_PROVIDERS, ConnectorRegistry


def _query(url: str) -> dict:
    return {k: v[0] for k, v in parse_qs(urlsplit(url).query).items()}


class TestResolve:
    def test_google_types_share_one_connector(self, settings):
        registry = ConnectorRegistry(settings)
        gmail = registry.resolve("gmail")
        calendar = registry.resolve("google_calendar")
        assert gmail is calendar
        assert gmail.family is ProviderFamily.GOOGLE
        assert gmail.integration_types == (IntegrationType.GMAIL, IntegrationType.GOOGLE_CALENDAR)

    @pytest.mark.parametrize(
        "provider, family, binding",
        [
            ("github", ProviderFamily.GENERIC, StateBinding.CSRF_COOKIE),
            ("notion", ProviderFamily.NOTION, StateBinding.USER_ID),
            ("gmail", ProviderFamily.GOOGLE, StateBinding.USER_ID),
        ],
    )
    def test_family_and_state_binding(self, settings, provider, family, binding):
        conn = ConnectorRegistry(settings).resolve(provider)
        assert conn.family is family
        assert conn.state_binding is binding

    @pytest.mark.parametrize("provider", [None, "", "slack", "GITHUB", "google"])
    def test_unknown_provider(self, settings, provider):
        with pytest.raises(InvalidProviderError) as info:
            ConnectorRegistry(settings).resolve(provider)
        assert "gmail, google_calendar, notion, github" in str(info.value)

    def test_callback_paths_are_distinct_per_family(self, settings):
        registry = ConnectorRegistry(settings)
        paths = {registry.for_family(f).callback_path for f in ProviderFamily}
        assert len(paths) == 3

    def test_list_providers(self, settings):
        listed = ConnectorRegistry(settings).list_providers()
        assert [p["provider"] for p in listed] == VALID_PROVIDERS
        assert all(p["configured"] for p in listed)

    def test_unconfigured_provider_is_reported(self):
        registry = ConnectorRegistry(Settings(_env_file=None, github_client_id="", github_client_secret=""))
        github = next(p for p in registry.list_providers() if p["provider"] == "github")
        assert github["configured"] is False


class TestAuthorizeUrls:
    def test_github_url(self, settings):
        url = ConnectorRegistry(settings).resolve("github").get_auth_url("csrf-token")
        assert url.startswith("https://github.com/login/oauth/authorize?")
        params = _query(url)
        assert params == {
            "client_id": "gh-client",
            "redirect_uri": "http://testserver/api/v1/integrations/callback",
            "response_type": "code",
            "scope": "repo read:user",
            "state": "csrf-token",
        }

    def test_google_url_forces_offline_consent(self, settings, user_id):
        url = ConnectorRegistry(settings).resolve("google_calendar").get_auth_url(user_id)
        params = _query(url)
        assert params["state"] == user_id
        assert params["access_type"] == "offline"
        assert params["prompt"] == "consent"
        assert params["redirect_uri"] == "http://testserver/api/v1/integrations/google/callback"
        scopes = params["scope"].split(" ")
        assert "https://www.googleapis.com/auth/gmail.modify" in scopes
        assert "https://www.googleapis.com/auth/calendar" in scopes
        assert "https://www.googleapis.com/auth/drive.readonly" in scopes

    def test_notion_url_has_no_scope(self, settings, user_id):
        url = ConnectorRegistry(settings).resolve("notion").get_auth_url(user_id)
        assert url.startswith("https://api.notion.com/v1/oauth/authorize?")
        params = _query(url)
        assert "scope" not in params
        assert params["owner"] == "user"
        assert params["state"] == user_id
        assert params["redirect_uri"] == "http://testserver/api/v1/integrations/notion/callback"
