"""
Connector API routes — OAuth initiate/callback, list connections, disconnect.

Route prefix: /api/v1/auth

Every provider goes through the same flow:

  GET  /{provider}             → set state + return-to cookies, redirect to provider
  GET  /{provider}/callback    → verify state, exchange code, store credentials
  POST /{provider}/disconnect  → delete credentials, clear cookies (idempotent)
"""

from __future__ import annotations

import hmac
import logging
from typing import Any, Dict, List, Optional
from urllib.parse import urlencode

import httpx
from fastapi import APIRouter, Depends, Query, Request
from fastapi.responses import JSONResponse, RedirectResponse
from sqlalchemy.ext.asyncio import AsyncSession

from auth.dependencies import db_session, get_current_user_id, get_optional_user_id
from auth.signing import BadSignature, create_oauth_state, verify_oauth_state
from config.settings import config
from connectors.base import BaseConnector, TokenExchangeError
from connectors.registry import ConnectorRegistry, get_connector_registry
from connectors.token_manager import disconnect, get_user_connections, store_connection
from utils.cookies import clear_app_cookie, set_app_cookie
from utils.errors import NotFound, UpstreamProviderError

logger = logging.getLogger(__name__)

router = APIRouter(tags=["connectors"])

# Cookie names used by releases that kept tokens client-side
_LEGACY_TOKEN_COOKIES = ("access_token", "refresh_token", "instance_url")


def state_cookie_name(provider: str) -> str:
    return f"{provider}_oauth_state"


def return_to_cookie_name(provider: str) -> str:
    return f"{provider}_return_to"


def _safe_return_to(value: Optional[str]) -> str:
    """Only same-site relative paths are accepted as redirect targets."""
    if value and value.startswith("/") and not value.startswith("//"):
        return value
    return config.default_return_to


def _site_url(path: str) -> str:
    return f"{config.site_url.rstrip('/')}{path}"


def _clear_flow_cookies(response: RedirectResponse, provider: str) -> None:
    clear_app_cookie(response, state_cookie_name(provider))
    clear_app_cookie(response, return_to_cookie_name(provider))


def _error_redirect(provider: str, details: str) -> RedirectResponse:
    query = urlencode({"error": f"{provider}_error", "details": details})
    response = RedirectResponse(_site_url(f"{config.default_return_to}?{query}"), status_code=302)
    _clear_flow_cookies(response, provider)
    return response


def _lookup(registry: ConnectorRegistry, provider: str) -> BaseConnector:
    connector = registry.get(provider)
    if connector is None:
        raise NotFound(f"Provider '{provider}' not found")
    return connector


# ── Routes ─────────────────────────────────────────────────────────────


@router.get("/providers")
async def list_providers(
    registry: ConnectorRegistry = Depends(get_connector_registry),
) -> List[Dict[str, Any]]:
    """
    List all connector providers and their configuration status.
    No auth required — used by frontend to show available connectors.
    """
    return registry.list_providers()


@router.get("/connections")
async def list_connections(
    user_id: str = Depends(get_current_user_id),
    session: AsyncSession = Depends(db_session),
) -> List[Dict[str, Any]]:
    """List all OAuth connections for the authenticated user."""
    return await get_user_connections(session, user_id)


@router.get("/{provider}")
async def start_authorization(
    provider: str,
    return_to: Optional[str] = Query(None, alias="returnTo"),
    user_id: Optional[str] = Depends(get_optional_user_id),
    registry: ConnectorRegistry = Depends(get_connector_registry),
) -> RedirectResponse:
    """
    Redirect the browser to the provider's consent page.

    The signed state is kept in a short-lived cookie so the callback can
    prove the redirect came back to the browser that started it.
    """
    connector = _lookup(registry, provider)

    if user_id is None:
        return RedirectResponse(
            _site_url("/auth/login?error=authentication_required"), status_code=302
        )
    if not connector.is_configured():
        logger.error("%s OAuth configuration missing", connector.display_name)
        return _error_redirect(provider, "not_configured")

    state = create_oauth_state(user_id, provider)
    auth_url = connector.get_auth_url(state)
    logger.info("%s OAuth initiated for user %s", connector.display_name, user_id)

    response = RedirectResponse(auth_url, status_code=302)
    set_app_cookie(response, state_cookie_name(provider), state, config.oauth_state_ttl_seconds)
    set_app_cookie(
        response,
        return_to_cookie_name(provider),
        _safe_return_to(return_to),
        config.oauth_state_ttl_seconds,
    )
    return response


@router.get("/{provider}/callback")
async def oauth_callback(
    provider: str,
    request: Request,
    code: Optional[str] = Query(None),
    state: Optional[str] = Query(None),
    error: Optional[str] = Query(None),
    session: AsyncSession = Depends(db_session),
    registry: ConnectorRegistry = Depends(get_connector_registry),
) -> RedirectResponse:
    """
    OAuth callback — the provider redirects here after consent.

    Fails closed: a provider error, a missing or mismatched state, or a
    missing code all redirect with an error code before any token request.
    """
    connector = _lookup(registry, provider)

    if error:
        logger.warning("%s OAuth error: %s", connector.display_name, error)
        return _error_redirect(provider, error)

    expected_state = request.cookies.get(state_cookie_name(provider))
    if not state or not expected_state or not hmac.compare_digest(state, expected_state):
        logger.warning("%s callback rejected: state mismatch", connector.display_name)
        return _error_redirect(provider, "invalid_state")
    try:
        user_id = verify_oauth_state(state, provider)
    except BadSignature as exc:
        logger.warning("%s callback rejected: %s", connector.display_name, exc)
        return _error_redirect(provider, "invalid_state")

    if not code:
        logger.warning("%s callback without authorization code", connector.display_name)
        return _error_redirect(provider, "no_code")

    try:
        token_data = await connector.handle_callback(code)
        await store_connection(session, user_id, provider, token_data)
        await session.commit()
    except TokenExchangeError:
        return _error_redirect(provider, "token_exchange_failed")
    except (UpstreamProviderError, httpx.HTTPError) as exc:
        logger.error("%s callback failed: %s", connector.display_name, exc)
        return _error_redirect(provider, "callback_error")
    except Exception:
        logger.exception("%s callback failed while saving the connection", connector.display_name)
        await session.rollback()
        return _error_redirect(provider, "callback_error")

    logger.info("OAuth connected: user=%s provider=%s", user_id, provider)

    return_to = _safe_return_to(request.cookies.get(return_to_cookie_name(provider)))
    response = RedirectResponse(
        _site_url(f"{return_to}?{urlencode({provider: 'connected'})}"), status_code=302
    )
    _clear_flow_cookies(response, provider)
    return response


@router.get("/{provider}/status")
async def connection_status(
    provider: str,
    user_id: str = Depends(get_current_user_id),
    session: AsyncSession = Depends(db_session),
    registry: ConnectorRegistry = Depends(get_connector_registry),
) -> Dict[str, Any]:
    """Whether the caller currently has credentials for ``provider``."""
    _lookup(registry, provider)
    connections = await get_user_connections(session, user_id)
    match = next((c for c in connections if c["provider"] == provider), None)
    return {
        "provider": provider,
        "connected": match is not None and match["status"] == "active",
        "status": match["status"] if match else None,
    }


@router.post("/{provider}/disconnect")
async def disconnect_provider(
    provider: str,
    user_id: str = Depends(get_current_user_id),
    session: AsyncSession = Depends(db_session),
    registry: ConnectorRegistry = Depends(get_connector_registry),
) -> JSONResponse:
    """Delete stored credentials and clear provider cookies. Idempotent."""
    connector = _lookup(registry, provider)
    removed = await disconnect(session, user_id, provider, registry=registry)
    await session.commit()

    response = JSONResponse(
        {
            "success": True,
            "disconnected": removed,
            "message": f"{connector.display_name} disconnected successfully",
        }
    )
    for suffix in _LEGACY_TOKEN_COOKIES:
        clear_app_cookie(response, f"{provider}_{suffix}")
    clear_app_cookie(response, state_cookie_name(provider))
    clear_app_cookie(response, return_to_cookie_name(provider))
    return response
