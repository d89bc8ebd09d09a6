"""
Tests for the Salesforce account and OneDrive support-ticket routes.
"""

import json
import uuid
from datetime import datetime, timezone

import httpx
import pytest
from sqlalchemy import select

from api.integrations import get_onedrive_client, get_salesforce_client
from connectors.token_manager import store_connection
from database.models import UserConnection
from integrations.onedrive import OneDriveClient
from integrations.salesforce import SalesforceClient
from main import app

ACCOUNT_FORM = {
    "companyName": "Acme",
    "industry": "Technology",
    "firstName": "Ada",
    "lastName": "Lovelace",
    "contactEmail": "ada@acme.test",
}


@pytest.fixture
def api_stub(provider_stub):
    """Route the provider API clients through the shared stub transport."""
    app.dependency_overrides[get_salesforce_client] = lambda: SalesforceClient(
        transport=provider_stub.transport
    )
    app.dependency_overrides[get_onedrive_client] = lambda: OneDriveClient(
        transport=provider_stub.transport
    )
    return provider_stub


async def _connect(session_factory, user_id, provider, **extra):
    async with session_factory() as session:
        await store_connection(
            session,
            user_id,
            provider,
            {"access_token": "at", "refresh_token": "rt", "expires_in": 3600, **extra},
        )
        await session.commit()


async def _expires_at(session_factory, user_id, provider):
    async with session_factory() as session:
        result = await session.execute(
            select(UserConnection.expires_at).where(
                UserConnection.user_id == uuid.UUID(user_id),
                UserConnection.provider == provider,
            )
        )
        value = result.scalar_one()
    return value.replace(tzinfo=timezone.utc) if value.tzinfo is None else value


class TestSalesforceAccounts:
    @pytest.mark.asyncio
    async def test_creates_account_then_contact(self, client, make_user, session_factory, api_stub):
        user_id, headers = await make_user()
        await _connect(session_factory, user_id, "salesforce", instance_url="https://acme.my.salesforce.com")
        api_stub.queue(
            httpx.Response(201, json={"id": "001A"}),
            httpx.Response(201, json={"id": "003C"}),
        )

        resp = await client.post(
            "/api/v1/integrations/salesforce/accounts", json=ACCOUNT_FORM, headers=headers
        )

        assert resp.status_code == 200
        assert resp.json()["data"] == {"accountId": "001A", "contactId": "003C"}
        account_req, contact_req = api_stub.requests
        assert account_req.url.path.endswith("/sobjects/Account")
        assert json.loads(account_req.content) == {"Name": "Acme", "Industry": "Technology"}
        assert contact_req.url.path.endswith("/sobjects/Contact")
        assert json.loads(contact_req.content)["AccountId"] == "001A"

    @pytest.mark.asyncio
    async def test_required_fields(self, client, make_user, api_stub):
        _, headers = await make_user()
        resp = await client.post(
            "/api/v1/integrations/salesforce/accounts",
            json={**ACCOUNT_FORM, "contactEmail": " "},
            headers=headers,
        )
        assert resp.status_code == 400
        assert api_stub.requests == []

    @pytest.mark.asyncio
    async def test_not_connected(self, client, make_user, api_stub):
        _, headers = await make_user()
        resp = await client.post(
            "/api/v1/integrations/salesforce/accounts", json=ACCOUNT_FORM, headers=headers
        )
        assert resp.status_code == 401
        assert resp.json()["reconnect_required"] is True

    @pytest.mark.asyncio
    async def test_rejected_token_is_invalidated(self, client, make_user, session_factory, api_stub):
        user_id, headers = await make_user()
        await _connect(session_factory, user_id, "salesforce", instance_url="https://acme.my.salesforce.com")
        api_stub.queue(httpx.Response(401, json=[{"message": "Session expired or invalid"}]))

        resp = await client.post(
            "/api/v1/integrations/salesforce/accounts", json=ACCOUNT_FORM, headers=headers
        )

        assert resp.status_code == 401
        assert resp.json()["reconnect_required"] is True
        assert await _expires_at(session_factory, user_id, "salesforce") <= datetime.now(timezone.utc)

    @pytest.mark.asyncio
    async def test_salesforce_error_message(self, client, make_user, session_factory, api_stub):
        user_id, headers = await make_user()
        await _connect(session_factory, user_id, "salesforce", instance_url="https://acme.my.salesforce.com")
        api_stub.queue(httpx.Response(400, json=[{"message": "Duplicate value found"}]))

        resp = await client.post(
            "/api/v1/integrations/salesforce/accounts", json=ACCOUNT_FORM, headers=headers
        )
        assert resp.status_code == 502
        assert resp.json() == {"error": "Salesforce error: Duplicate value found"}


class TestSupportTickets:
    @pytest.mark.asyncio
    async def test_upload(self, client, make_user, session_factory, api_stub):
        user_id, headers = await make_user()
        await _connect(session_factory, user_id, "microsoft")
        api_stub.queue(httpx.Response(201, json={"id": "drive-item"}))

        ticket = {"ticketId": "T-9", "Summary": "Printer on fire", "Priority": "High"}
        resp = await client.post(
            "/api/v1/integrations/onedrive/support-tickets", json=ticket, headers=headers
        )

        assert resp.status_code == 200
        data = resp.json()
        assert data["filename"] == "support-ticket-T-9.json"
        assert data["uploadPath"] == "/SupportTickets/support-ticket-T-9.json"
        upload = api_stub.requests[0]
        assert upload.url.path.endswith("/SupportTickets/support-ticket-T-9.json:/content")
        assert json.loads(upload.content) == ticket

    @pytest.mark.asyncio
    async def test_connection_test_does_not_upload(self, client, make_user, session_factory, api_stub):
        user_id, headers = await make_user()
        await _connect(session_factory, user_id, "microsoft")

        resp = await client.post(
            "/api/v1/integrations/onedrive/support-tickets", json={"test": True}, headers=headers
        )
        assert resp.json() == {"success": True, "message": "OneDrive connection test successful", "test": True}
        assert api_stub.requests == []

    @pytest.mark.asyncio
    async def test_missing_fields(self, client, make_user, session_factory, api_stub):
        user_id, headers = await make_user()
        await _connect(session_factory, user_id, "microsoft")
        resp = await client.post(
            "/api/v1/integrations/onedrive/support-tickets", json={"ticketId": "T-1"}, headers=headers
        )
        assert resp.status_code == 400
        assert resp.json() == {"error": "Invalid ticket data - missing required fields"}

    @pytest.mark.asyncio
    async def test_requires_connection(self, client, make_user, api_stub):
        _, headers = await make_user()
        resp = await client.post(
            "/api/v1/integrations/onedrive/support-tickets", json={"test": True}, headers=headers
        )
        assert resp.status_code == 401
        assert resp.json()["reconnect_required"] is True

    @pytest.mark.asyncio
    async def test_requires_login(self, client, api_stub):
        resp = await client.post("/api/v1/integrations/onedrive/support-tickets", json={"test": True})
        assert resp.status_code == 401
