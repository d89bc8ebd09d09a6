"""
Salesforce REST client — create sObject records (Account, Contact).

Error translation:
  • 401                         → ``SessionExpired`` (reconnect)
  • ``[{"message": ...}, ...]`` → ``UpstreamProviderError`` with the first message
  • anything else non-2xx       → generic ``UpstreamProviderError``
"""

from __future__ import annotations

import logging
from typing import Any, Dict, Optional

import httpx

from config.settings import config
from utils.errors import SessionExpired, UpstreamProviderError

logger = logging.getLogger(__name__)


def _compact(record: Dict[str, Any]) -> Dict[str, Any]:
    """Drop empty optional fields; Salesforce rejects explicit blanks on some types."""
    return {k: v for k, v in record.items() if v not in (None, "")}


def first_error_message(payload: Any) -> Optional[str]:
    """First ``message`` in a Salesforce error list, if the body is one."""
    if isinstance(payload, list) and payload:
        first = payload[0]
        if isinstance(first, dict) and first.get("message"):
            return str(first["message"])
    return None


class SalesforceClient:
    def __init__(
        self,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        api_version: Optional[str] = None,
    ) -> None:
        self._transport = transport
        self._api_version = api_version or config.salesforce_api_version

    def _sobject_url(self, instance_url: str, sobject: str) -> str:
        return f"{instance_url.rstrip('/')}/services/data/{self._api_version}/sobjects/{sobject}"

    async def create_record(
        self,
        access_token: str,
        instance_url: str,
        sobject: str,
        record: Dict[str, Any],
    ) -> str:
        """POST one record and return its Salesforce ID."""
        if not access_token or not instance_url:
            raise SessionExpired("No valid Salesforce session found. Please reconnect to Salesforce.")

        async with httpx.AsyncClient(
            transport=self._transport, timeout=config.http_timeout_seconds
        ) as client:
            try:
                resp = await client.post(
                    self._sobject_url(instance_url, sobject),
                    json=_compact(record),
                    headers={"Authorization": f"Bearer {access_token}"},
                )
            except httpx.HTTPError as exc:
                logger.error("Salesforce %s request failed: %s", sobject, exc)
                raise UpstreamProviderError(
                    f"Failed to create Salesforce {sobject}. Please try again."
                ) from exc

        if resp.status_code == 401:
            raise SessionExpired("Salesforce session expired. Please reconnect to Salesforce.")

        if not resp.is_success:
            try:
                payload = resp.json()
            except ValueError:
                payload = None
            logger.error("Failed to create Salesforce %s: HTTP %d", sobject, resp.status_code)
            message = first_error_message(payload)
            if message:
                raise UpstreamProviderError(f"Salesforce error: {message}")
            raise UpstreamProviderError(f"Failed to create Salesforce {sobject}. Please try again.")

        record_id = resp.json().get("id")
        logger.info("Salesforce %s created: %s", sobject, record_id)
        return record_id

    async def create_account(self, access_token: str, instance_url: str, data: Dict[str, Any]) -> str:
        return await self.create_record(access_token, instance_url, "Account", data)

    async def create_contact(self, access_token: str, instance_url: str, data: Dict[str, Any]) -> str:
        return await self.create_record(access_token, instance_url, "Contact", data)
