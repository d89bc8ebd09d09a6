"""
BaseConnector — shared OAuth2 authorization-code flow.

Every provider (Microsoft, Salesforce, …) subclasses this and supplies its
endpoints, scopes and credentials; the exchange / refresh requests are the
same standard form posts for all of them.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional
from urllib.parse import urlencode

import httpx

from config.settings import config
from utils.errors import UpstreamProviderError

logger = logging.getLogger(__name__)


class TokenExchangeError(UpstreamProviderError):
    """The provider's token endpoint answered with a non-2xx status."""

    def __init__(self, provider: str, status_code: int, body: str = "") -> None:
        self.provider = provider
        self.status_code = status_code
        self.body = body
        super().__init__(f"{provider} token endpoint returned HTTP {status_code}")


class BaseConnector(ABC):
    """Abstract base for all OAuth2 connectors."""

    def __init__(self, transport: Optional[httpx.AsyncBaseTransport] = None) -> None:
        self._transport = transport

    # ── Identity ────────────────────────────────────────────────────────
    @property
    @abstractmethod
    def provider_name(self) -> str:
        """Unique slug: 'microsoft', 'salesforce'."""
        ...

    @property
    @abstractmethod
    def display_name(self) -> str:
        """Human-readable: 'Microsoft OneDrive', 'Salesforce'."""
        ...

    @property
    @abstractmethod
    def scopes(self) -> List[str]:
        """OAuth scopes required by this connector."""
        ...

    @property
    @abstractmethod
    def authorize_url(self) -> str:
        ...

    @property
    @abstractmethod
    def token_url(self) -> str:
        ...

    @property
    def default_token_ttl(self) -> int:
        """Lifetime assumed when the provider omits ``expires_in``."""
        return 3600

    # ── Credentials ─────────────────────────────────────────────────────

    def _credentials(self) -> Dict[str, str]:
        return config.get_provider_config(self.provider_name)

    def redirect_uri(self) -> str:
        return self._credentials()["redirect_uri"]

    def is_configured(self) -> bool:
        """
        Return True if this connector has all required config
        (client ID, secret and redirect URI).
        """
        creds = self._credentials()
        return bool(creds["client_id"] and creds["client_secret"] and creds["redirect_uri"])

    # ── OAuth flow ──────────────────────────────────────────────────────

    def extra_auth_params(self) -> Dict[str, str]:
        return {}

    def get_auth_url(self, state: str) -> str:
        """
        Build the provider's OAuth2 authorization URL.

        Parameters
        ----------
        state : str
            Opaque state string (encodes user_id + CSRF nonce).
        """
        params = {
            "client_id": self._credentials()["client_id"],
            "redirect_uri": self.redirect_uri(),
            "response_type": "code",
            "scope": " ".join(self.scopes),
            "state": state,
        }
        params.update(self.extra_auth_params())
        return f"{self.authorize_url}?{urlencode(params)}"

    def _http_client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(transport=self._transport, timeout=config.http_timeout_seconds)

    async def _post_token_endpoint(self, form: Dict[str, str]) -> Dict[str, Any]:
        creds = self._credentials()
        data = {
            "client_id": creds["client_id"],
            "client_secret": creds["client_secret"],
            **form,
        }
        async with self._http_client() as client:
            resp = await client.post(
                self.token_url,
                data=data,
                headers={"Accept": "application/json"},
            )
        if not resp.is_success:
            logger.warning(
                "%s token request (%s) failed: HTTP %d",
                self.provider_name,
                form.get("grant_type"),
                resp.status_code,
            )
            raise TokenExchangeError(self.provider_name, resp.status_code, resp.text)
        try:
            return resp.json()
        except ValueError as exc:
            logger.warning(
                "%s token endpoint returned non-JSON body (HTTP %d)",
                self.provider_name,
                resp.status_code,
            )
            raise UpstreamProviderError(
                f"{self.display_name} returned an invalid token response"
            ) from exc

    def parse_token_response(self, data: Dict[str, Any]) -> Dict[str, Any]:
        """
        Normalise a token response.

        Returns
        -------
        dict with keys:
            access_token, refresh_token, expires_in, scopes,
            instance_url, account_id, account_label, provider_meta
        """
        if not data.get("access_token"):
            raise UpstreamProviderError(f"{self.display_name} returned no access token")
        scope = data.get("scope") or ""
        return {
            "access_token": data["access_token"],
            "refresh_token": data.get("refresh_token"),
            "expires_in": int(data.get("expires_in") or self.default_token_ttl),
            "scopes": scope.split() if scope else list(self.scopes),
            "instance_url": data.get("instance_url"),
            "account_id": data.get("id", ""),
            "account_label": "",
            "provider_meta": {},
        }

    async def handle_callback(self, code: str) -> Dict[str, Any]:
        """Exchange the authorization code for tokens."""
        data = await self._post_token_endpoint(
            {
                "grant_type": "authorization_code",
                "code": code,
                "redirect_uri": self.redirect_uri(),
            }
        )
        return self.parse_token_response(data)

    async def refresh_access_token(self, refresh_token: str) -> Dict[str, Any]:
        """
        Refresh an expired access token.

        Returns
        -------
        dict with keys: access_token, expires_in, (optional) refresh_token,
        (optional) instance_url
        """
        data = await self._post_token_endpoint(
            {"grant_type": "refresh_token", "refresh_token": refresh_token}
        )
        parsed = self.parse_token_response(data)
        return {
            "access_token": parsed["access_token"],
            "expires_in": parsed["expires_in"],
            "refresh_token": parsed["refresh_token"],
            "instance_url": parsed["instance_url"],
        }

    async def revoke_token(self, token: str) -> bool:
        """
        Revoke the token at the provider (optional).
        Returns True on success, False if provider doesn't support revocation.
        """
        return False
