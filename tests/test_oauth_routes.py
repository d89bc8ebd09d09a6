"""
Tests for the OAuth initiate / callback / disconnect routes.
"""

import uuid
from unittest.mock import AsyncMock, patch
from urllib.parse import parse_qs, urlparse

import httpx
import pytest
from sqlalchemy import select

from auth.signing import create_oauth_state
from connectors.encryption import decrypt_token
from connectors.token_manager import store_connection
from database.models import UserConnection


def _query(location: str) -> dict:
    return {k: v[0] for k, v in parse_qs(urlparse(location).query).items()}


def _set_cookies(resp: httpx.Response) -> dict:
    """Map cookie name → raw Set-Cookie header value."""
    return {h.split("=", 1)[0]: h for h in resp.headers.get_list("set-cookie")}


async def _callback(client, provider, *, state, cookie_state, **params):
    headers = {}
    if cookie_state is not None:
        headers["Cookie"] = f"{provider}_oauth_state={cookie_state}"
    if state is not None:
        params["state"] = state
    return await client.get(f"/api/v1/auth/{provider}/callback", params=params, headers=headers)


class TestInitiate:
    @pytest.mark.asyncio
    async def test_redirects_with_state_cookie(self, client, make_user):
        user_id, headers = await make_user()
        resp = await client.get(
            "/api/v1/auth/microsoft", params={"returnTo": "/inventory/42"}, headers=headers
        )

        assert resp.status_code == 302
        location = resp.headers["location"]
        assert location.startswith("https://login.microsoftonline.com/")
        state = _query(location)["state"]

        cookies = _set_cookies(resp)
        assert state in cookies["microsoft_oauth_state"]
        assert "Max-Age=600" in cookies["microsoft_oauth_state"]
        assert "HttpOnly" in cookies["microsoft_oauth_state"]
        assert "/inventory/42" in cookies["microsoft_return_to"]

    @pytest.mark.asyncio
    async def test_anonymous_sent_to_login(self, client):
        resp = await client.get("/api/v1/auth/salesforce")
        assert resp.status_code == 302
        assert resp.headers["location"] == "http://localhost:3000/auth/login?error=authentication_required"

    @pytest.mark.asyncio
    async def test_offsite_return_to_ignored(self, client, make_user):
        _, headers = await make_user()
        resp = await client.get(
            "/api/v1/auth/microsoft", params={"returnTo": "//evil.example"}, headers=headers
        )
        assert "evil.example" not in _set_cookies(resp)["microsoft_return_to"]

    @pytest.mark.asyncio
    async def test_unknown_provider(self, client, make_user):
        _, headers = await make_user()
        resp = await client.get("/api/v1/auth/github", headers=headers)
        assert resp.status_code == 404
        assert resp.json() == {"error": "Provider 'github' not found"}


class TestCallbackRejections:
    @pytest.mark.asyncio
    async def test_provider_error(self, client, registry):
        connector = registry.get("microsoft")
        with patch.object(connector, "handle_callback", new_callable=AsyncMock) as exchange:
            resp = await _callback(
                client, "microsoft", state=None, cookie_state=None, error="access_denied"
            )
        assert resp.status_code == 302
        assert resp.headers["location"].startswith("http://localhost:3000/profile?")
        assert _query(resp.headers["location"]) == {
            "error": "microsoft_error",
            "details": "access_denied",
        }
        exchange.assert_not_awaited()

    @pytest.mark.asyncio
    @pytest.mark.parametrize("provider", ["microsoft", "salesforce"])
    async def test_state_mismatch(self, client, registry, provider):
        user_id = str(uuid.uuid4())
        connector = registry.get(provider)
        with patch.object(connector, "handle_callback", new_callable=AsyncMock) as exchange:
            resp = await _callback(
                client,
                provider,
                code="c",
                state=create_oauth_state(user_id, provider),
                cookie_state=create_oauth_state(user_id, provider),
            )
        assert _query(resp.headers["location"])["details"] == "invalid_state"
        exchange.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_missing_cookie(self, client, registry):
        connector = registry.get("salesforce")
        state = create_oauth_state(str(uuid.uuid4()), "salesforce")
        with patch.object(connector, "handle_callback", new_callable=AsyncMock) as exchange:
            resp = await _callback(client, "salesforce", code="c", state=state, cookie_state=None)
        assert _query(resp.headers["location"]) == {
            "error": "salesforce_error",
            "details": "invalid_state",
        }
        exchange.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_state_for_other_provider(self, client, registry):
        state = create_oauth_state(str(uuid.uuid4()), "microsoft")
        connector = registry.get("salesforce")
        with patch.object(connector, "handle_callback", new_callable=AsyncMock) as exchange:
            resp = await _callback(client, "salesforce", code="c", state=state, cookie_state=state)
        assert _query(resp.headers["location"])["details"] == "invalid_state"
        exchange.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_missing_code(self, client):
        state = create_oauth_state(str(uuid.uuid4()), "microsoft")
        resp = await _callback(client, "microsoft", state=state, cookie_state=state)
        assert _query(resp.headers["location"])["details"] == "no_code"

    @pytest.mark.asyncio
    async def test_token_exchange_failure(self, client, provider_stub):
        provider_stub.queue(httpx.Response(400, json={"error": "invalid_grant"}))
        state = create_oauth_state(str(uuid.uuid4()), "microsoft")
        resp = await _callback(client, "microsoft", code="c", state=state, cookie_state=state)
        assert _query(resp.headers["location"])["details"] == "token_exchange_failed"

    @pytest.mark.asyncio
    async def test_non_json_token_response(self, client, provider_stub):
        provider_stub.queue(httpx.Response(200, text="<html>gateway</html>"))
        state = create_oauth_state(str(uuid.uuid4()), "microsoft")
        resp = await _callback(client, "microsoft", code="c", state=state, cookie_state=state)
        assert resp.status_code == 302
        assert _query(resp.headers["location"]) == {
            "error": "microsoft_error",
            "details": "callback_error",
        }

    @pytest.mark.asyncio
    async def test_storage_failure_redirects(self, client, make_user, provider_stub, session_factory):
        user_id, _ = await make_user()
        provider_stub.queue(httpx.Response(200, json={"access_token": "at", "expires_in": 3600}))
        state = create_oauth_state(user_id, "microsoft")
        with patch(
            "connectors.routes.store_connection",
            new=AsyncMock(side_effect=RuntimeError("database unavailable")),
        ):
            resp = await _callback(client, "microsoft", code="c", state=state, cookie_state=state)

        assert resp.status_code == 302
        assert _query(resp.headers["location"])["details"] == "callback_error"
        async with session_factory() as session:
            result = await session.execute(select(UserConnection))
            assert result.scalars().all() == []


class TestCallbackSuccess:
    @pytest.mark.asyncio
    async def test_stores_connection_and_clears_cookies(
        self, client, make_user, provider_stub, session_factory
    ):
        user_id, _ = await make_user()
        provider_stub.queue(
            httpx.Response(
                200,
                json={
                    "access_token": "sf-at",
                    "refresh_token": "sf-rt",
                    "instance_url": "https://acme.my.salesforce.com",
                },
            )
        )
        state = create_oauth_state(user_id, "salesforce")
        resp = await client.get(
            "/api/v1/auth/salesforce/callback",
            params={"code": "auth-code", "state": state},
            headers={
                "Cookie": f"salesforce_oauth_state={state}; salesforce_return_to=/inventory/new"
            },
        )

        assert resp.status_code == 302
        assert resp.headers["location"] == "http://localhost:3000/inventory/new?salesforce=connected"
        cookies = _set_cookies(resp)
        assert "Max-Age=0" in cookies["salesforce_oauth_state"]
        assert "Max-Age=0" in cookies["salesforce_return_to"]

        async with session_factory() as session:
            result = await session.execute(
                select(UserConnection).where(UserConnection.user_id == uuid.UUID(user_id))
            )
            conn = result.scalar_one()
        assert conn.provider == "salesforce"
        assert conn.instance_url == "https://acme.my.salesforce.com"
        assert conn.access_token != "sf-at"
        assert decrypt_token(conn.access_token) == "sf-at"

    @pytest.mark.asyncio
    async def test_default_return_to(self, client, make_user, provider_stub):
        user_id, _ = await make_user()
        provider_stub.queue(httpx.Response(200, json={"access_token": "at", "expires_in": 3600}))
        state = create_oauth_state(user_id, "microsoft")
        resp = await _callback(client, "microsoft", code="c", state=state, cookie_state=state)
        assert resp.headers["location"] == "http://localhost:3000/profile?microsoft=connected"


class TestConnectionsAndDisconnect:
    @pytest.mark.asyncio
    async def test_status_and_disconnect(self, client, make_user, session_factory):
        user_id, headers = await make_user()
        async with session_factory() as session:
            await store_connection(
                session,
                user_id,
                "microsoft",
                {"access_token": "at", "refresh_token": "rt", "expires_in": 3600},
            )
            await session.commit()

        resp = await client.get("/api/v1/auth/microsoft/status", headers=headers)
        assert resp.json() == {"provider": "microsoft", "connected": True, "status": "active"}

        resp = await client.get("/api/v1/auth/connections", headers=headers)
        assert [c["provider"] for c in resp.json()] == ["microsoft"]

        resp = await client.post("/api/v1/auth/microsoft/disconnect", headers=headers)
        assert resp.status_code == 200
        assert resp.json()["disconnected"] is True
        cleared = _set_cookies(resp)
        assert "microsoft_access_token" in cleared
        assert "microsoft_oauth_state" in cleared

        resp = await client.post("/api/v1/auth/microsoft/disconnect", headers=headers)
        assert resp.status_code == 200
        assert resp.json()["disconnected"] is False

        resp = await client.get("/api/v1/auth/microsoft/status", headers=headers)
        assert resp.json()["connected"] is False

    @pytest.mark.asyncio
    async def test_disconnect_requires_auth(self, client):
        resp = await client.post("/api/v1/auth/microsoft/disconnect")
        assert resp.status_code == 401

    @pytest.mark.asyncio
    async def test_providers_listing(self, client):
        resp = await client.get("/api/v1/auth/providers")
        assert {p["provider"] for p in resp.json()} == {"microsoft", "salesforce"}
