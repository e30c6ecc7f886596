"""
ConnectorRegistry — resolves a requested provider id to its connector.
"""

from __future__ import annotations

import logging
from typing import Dict, List, Optional

from config.settings import Settings
from connectors.base import BaseConnector, IntegrationType, ProviderFamily
from connectors.errors import InvalidProviderError
from connectors.github import GitHubConnector
from connectors.google import GoogleConnector
from connectors.notion import NotionConnector

logger = logging.getLogger(__name__)

VALID_PROVIDERS: List[str] = [t.value for t in IntegrationType]


class ConnectorRegistry:
    """One connector per provider family, built from the process settings."""

    def __init__(self, settings: Settings) -> None:
        self._families: Dict[ProviderFamily, BaseConnector] = {
            ProviderFamily.GOOGLE: GoogleConnector(settings),
            ProviderFamily.NOTION: NotionConnector(settings),
            ProviderFamily.GENERIC: GitHubConnector(settings),
        }
        self._by_type: Dict[IntegrationType, BaseConnector] = {}
        for conn in self._families.values():
            for integration_type in conn.integration_types:
                self._by_type[integration_type] = conn
            if not conn.is_configured():
                logger.warning(
                    "Connector %s not configured (missing client_id/secret)",
                    conn.display_name,
                )

    @staticmethod
    def parse_provider(provider: Optional[str]) -> IntegrationType:
        """Validate a requested provider id against the closed set."""
        try:
            return IntegrationType(provider)
        except ValueError:
            raise InvalidProviderError(provider, VALID_PROVIDERS) from None

    def resolve(self, provider: Optional[str]) -> BaseConnector:
        """Get the connector handling a provider id, or raise ``InvalidProviderError``."""
        return self._by_type[self.parse_provider(provider)]

    def for_family(self, family: ProviderFamily) -> BaseConnector:
        return self._families[family]

    def list_providers(self) -> List[Dict[str, object]]:
        """Return info about every supported provider id."""
        return [
            {
                "provider": integration_type.value,
                "display_name": conn.display_name,
                "family": conn.family.value,
                "configured": conn.is_configured(),
            }
            for integration_type, conn in self._by_type.items()
        ]
