"""
OneDrive uploader — PUT a small file into the user's ``SupportTickets``
folder through Microsoft Graph.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, Optional
from urllib.parse import quote

import httpx

from config.settings import config
from utils.errors import SessionExpired, UpstreamProviderError, ValidationError

logger = logging.getLogger(__name__)

_GRAPH_API = "https://graph.microsoft.com/v1.0"
UPLOAD_FOLDER = "SupportTickets"


class OneDriveClient:
    def __init__(self, transport: Optional[httpx.AsyncBaseTransport] = None) -> None:
        self._transport = transport

    @staticmethod
    def upload_url(filename: str, folder: str = UPLOAD_FOLDER) -> str:
        return f"{_GRAPH_API}/me/drive/root:/{folder}/{quote(filename)}:/content"

    async def upload_file(
        self,
        access_token: str,
        filename: str,
        content: str,
        *,
        content_type: str = "application/json",
    ) -> Dict[str, Any]:
        """Upload ``content`` as ``filename``; returns Graph's driveItem JSON."""
        if not access_token:
            raise SessionExpired("Microsoft OneDrive not connected. Please connect OneDrive first.")
        if "/" in filename or "\\" in filename:
            raise ValidationError("Invalid file name")

        async with httpx.AsyncClient(
            transport=self._transport, timeout=config.http_timeout_seconds
        ) as client:
            try:
                resp = await client.put(
                    self.upload_url(filename),
                    content=content.encode(),
                    headers={
                        "Authorization": f"Bearer {access_token}",
                        "Content-Type": content_type,
                    },
                )
            except httpx.HTTPError as exc:
                logger.error("OneDrive upload of %s failed: %s", filename, exc)
                raise UpstreamProviderError("OneDrive upload failed") from exc

        if resp.status_code == 401:
            raise SessionExpired("OneDrive session expired. Please reconnect OneDrive.")
        if not resp.is_success:
            logger.error("OneDrive upload failed: HTTP %d", resp.status_code)
            raise UpstreamProviderError(f"OneDrive upload failed: {resp.reason_phrase or resp.status_code}")

        logger.info("Uploaded %s to OneDrive", filename)
        return resp.json()
