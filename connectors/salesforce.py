"""
SalesforceConnector — OAuth2 web-server flow for Salesforce.

Salesforce returns the tenant ``instance_url`` alongside the tokens and
omits ``expires_in``; the session lifetime comes from
``config.salesforce_default_token_ttl``.
"""

from __future__ import annotations

import logging
from typing import List

import httpx

from config.settings import config
from connectors.base import BaseConnector
from utils.errors import UpstreamProviderError

logger = logging.getLogger(__name__)


class SalesforceConnector(BaseConnector):
    """OAuth2 connector for the Salesforce REST API."""

    @property
    def provider_name(self) -> str:
        return "salesforce"

    @property
    def display_name(self) -> str:
        return "Salesforce"

    @property
    def scopes(self) -> List[str]:
        return ["api", "refresh_token"]

    @property
    def authorize_url(self) -> str:
        return f"{config.salesforce_login_url.rstrip('/')}/services/oauth2/authorize"

    @property
    def token_url(self) -> str:
        return f"{config.salesforce_login_url.rstrip('/')}/services/oauth2/token"

    @property
    def revoke_url(self) -> str:
        return f"{config.salesforce_login_url.rstrip('/')}/services/oauth2/revoke"

    @property
    def default_token_ttl(self) -> int:
        return config.salesforce_default_token_ttl

    def parse_token_response(self, data):
        parsed = super().parse_token_response(data)
        if not parsed["instance_url"]:
            raise UpstreamProviderError("Salesforce returned no instance URL")
        parsed["account_label"] = parsed["instance_url"]
        parsed["provider_meta"] = {"issued_at": data.get("issued_at")}
        return parsed

    async def revoke_token(self, token: str) -> bool:
        """Revoke the token at Salesforce."""
        try:
            async with self._http_client() as client:
                resp = await client.post(self.revoke_url, data={"token": token})
                return resp.status_code == 200
        except httpx.HTTPError as exc:
            logger.warning("Salesforce revoke failed: %s", exc)
            return False
