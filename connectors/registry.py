"""
ConnectorRegistry — provides access to all OAuth connectors.
"""

from __future__ import annotations

import logging
from typing import Dict, List, Optional

from connectors.base import BaseConnector
from connectors.microsoft import MicrosoftConnector
from connectors.salesforce import SalesforceConnector

logger = logging.getLogger(__name__)

# ── All known connectors — add new ones here ─────────────────────────────

_ALL_CONNECTORS: List[BaseConnector] = [
    MicrosoftConnector(),
    SalesforceConnector(),
]


class ConnectorRegistry:
    """Lookup table of connectors keyed by provider slug."""

    def __init__(self, connectors: Optional[List[BaseConnector]] = None) -> None:
        self._connectors: Dict[str, BaseConnector] = {
            c.provider_name: c for c in (connectors if connectors is not None else _ALL_CONNECTORS)
        }

    def get(self, provider: str) -> Optional[BaseConnector]:
        """Get a connector by provider name, or None if unknown."""
        return self._connectors.get(provider)

    def get_configured(self, provider: str) -> Optional[BaseConnector]:
        """Like ``get`` but also None when client credentials are missing."""
        conn = self._connectors.get(provider)
        if conn is None:
            return None
        if not conn.is_configured():
            logger.warning(
                "Connector %s requested but not configured (missing client id/secret/redirect)",
                provider,
            )
            return None
        return conn

    def list_providers(self) -> List[Dict[str, object]]:
        """Return info about all available connectors."""
        return [
            {
                "provider": c.provider_name,
                "display_name": c.display_name,
                "configured": c.is_configured(),
            }
            for c in self._connectors.values()
        ]


def get_connector_registry() -> ConnectorRegistry:
    """FastAPI dependency; tests override it with fake connectors."""
    return ConnectorRegistry()
