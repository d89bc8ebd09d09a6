"""
MicrosoftConnector — OAuth2 web flow for Microsoft Graph (OneDrive).
"""

from __future__ import annotations

import logging
from typing import Dict, List

from config.settings import config
from connectors.base import BaseConnector

logger = logging.getLogger(__name__)

_LOGIN_BASE = "https://login.microsoftonline.com"


class MicrosoftConnector(BaseConnector):
    """OAuth2 connector for Microsoft Graph file storage."""

    @property
    def provider_name(self) -> str:
        return "microsoft"

    @property
    def display_name(self) -> str:
        return "Microsoft OneDrive"

    @property
    def scopes(self) -> List[str]:
        return [
            "https://graph.microsoft.com/Files.ReadWrite",
            "User.Read",
            "offline_access",   # gets refresh_token
        ]

    @property
    def authorize_url(self) -> str:
        return f"{_LOGIN_BASE}/{config.microsoft_tenant}/oauth2/v2.0/authorize"

    @property
    def token_url(self) -> str:
        return f"{_LOGIN_BASE}/{config.microsoft_tenant}/oauth2/v2.0/token"

    def extra_auth_params(self) -> Dict[str, str]:
        return {"response_mode": "query"}
