"""
Token manager — get / refresh / store per-user OAuth credentials.

This is the single interface the integration routes use to obtain an
active token for a given user + provider combination.  Credentials live in
``user_connections`` (one row per user and provider), encrypted at rest.
"""

from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, List, Optional

import httpx
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from config.settings import config
from connectors.encryption import decrypt_token, encrypt_token
from connectors.registry import ConnectorRegistry
from database.models import UserConnection
from utils.errors import ReconnectRequired, UpstreamProviderError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ActiveCredentials:
    access_token: str
    instance_url: Optional[str] = None


def _to_uuid(value: str | uuid.UUID) -> uuid.UUID:
    return uuid.UUID(value) if isinstance(value, str) else value


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _aware(value: Optional[datetime]) -> Optional[datetime]:
    # SQLite hands back naive datetimes
    if value is not None and value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def compute_expires_at(expires_in: int, *, now: Optional[datetime] = None) -> datetime:
    """
    Expiry used for the stored access token: the provider-declared lifetime
    minus ``config.token_expiry_margin_seconds`` (never negative).
    """
    now = now or _utcnow()
    lifetime = max(int(expires_in) - config.token_expiry_margin_seconds, 0)
    return now + timedelta(seconds=lifetime)


async def _find_connection(
    session: AsyncSession, user_id: str, provider: str
) -> Optional[UserConnection]:
    result = await session.execute(
        select(UserConnection).where(
            UserConnection.user_id == _to_uuid(user_id),
            UserConnection.provider == provider,
        )
    )
    return result.scalar_one_or_none()


async def store_connection(
    session: AsyncSession,
    user_id: str,
    provider: str,
    token_data: Dict[str, Any],
) -> str:
    """
    Store a new OAuth connection (or replace the existing one).

    Parameters
    ----------
    token_data : dict
        Output from ``connector.handle_callback()``.

    Returns
    -------
    connection_id as string
    """
    expires_at = compute_expires_at(token_data.get("expires_in", 3600))
    existing = await _find_connection(session, user_id, provider)

    if existing:
        existing.access_token = encrypt_token(token_data["access_token"])
        if token_data.get("refresh_token"):
            existing.refresh_token = encrypt_token(token_data["refresh_token"])
        existing.expires_at = expires_at
        existing.instance_url = token_data.get("instance_url")
        existing.scopes = token_data.get("scopes", [])
        existing.provider_meta = token_data.get("provider_meta", {})
        existing.account_id = token_data.get("account_id") or existing.account_id
        existing.account_label = token_data.get("account_label") or existing.account_label
        existing.status = "active"
        existing.error_message = None
        existing.connected_at = _utcnow()
        conn = existing
        logger.info("Updated %s connection for user %s", provider, user_id)
    else:
        conn = UserConnection(
            connection_id=uuid.uuid4(),
            user_id=_to_uuid(user_id),
            provider=provider,
            account_label=token_data.get("account_label", ""),
            account_id=token_data.get("account_id", ""),
            access_token=encrypt_token(token_data["access_token"]),
            refresh_token=encrypt_token(token_data.get("refresh_token")),
            token_type="Bearer",
            expires_at=expires_at,
            instance_url=token_data.get("instance_url"),
            scopes=token_data.get("scopes", []),
            provider_meta=token_data.get("provider_meta", {}),
            status="active",
        )
        session.add(conn)
        logger.info("Created %s connection for user %s", provider, user_id)

    await session.flush()
    return str(conn.connection_id)


async def _mark_unusable(
    session: AsyncSession, conn: UserConnection, status: str, message: str
) -> None:
    conn.status = status
    conn.error_message = message
    # Persist before the caller's error rolls the request session back
    await session.commit()


async def get_active_credentials(
    session: AsyncSession,
    user_id: str,
    provider: str,
    *,
    registry: Optional[ConnectorRegistry] = None,
) -> ActiveCredentials:
    """
    Get valid credentials for the user + provider.

    1. Look up the connection in DB.
    2. If the access token is expired, refresh it with the refresh token.
    3. Update ``last_used_at``.

    Raises ``ReconnectRequired`` when not connected, when the token is
    expired without a refresh token, or when the refresh fails.
    """
    conn = await _find_connection(session, user_id, provider)
    if conn is None:
        raise ReconnectRequired(f"No {provider} connection found. Please connect first.")

    expires_at = _aware(conn.expires_at)
    if conn.status != "active" or (expires_at is not None and expires_at <= _utcnow()):
        refresh_token = decrypt_token(conn.refresh_token)
        if not refresh_token:
            await _mark_unusable(session, conn, "expired", "Token expired and no refresh token available")
            raise ReconnectRequired(f"{provider} session expired. Please reconnect.")

        connector = (registry or ConnectorRegistry()).get(provider)
        if connector is None:
            raise ReconnectRequired(f"Provider '{provider}' is not available")

        try:
            refreshed = await connector.refresh_access_token(refresh_token)
        except (UpstreamProviderError, httpx.HTTPError) as exc:
            logger.warning("Token refresh failed for %s/%s: %s", provider, user_id, exc)
            await _mark_unusable(session, conn, "error", f"Refresh failed: {exc}")
            raise ReconnectRequired(f"{provider} session expired. Please reconnect.") from exc

        conn.access_token = encrypt_token(refreshed["access_token"])
        conn.expires_at = compute_expires_at(refreshed.get("expires_in", 3600))
        conn.last_refreshed = _utcnow()
        # Some providers rotate refresh tokens
        if refreshed.get("refresh_token"):
            conn.refresh_token = encrypt_token(refreshed["refresh_token"])
        if refreshed.get("instance_url"):
            conn.instance_url = refreshed["instance_url"]
        conn.status = "active"
        conn.error_message = None
        logger.info("Refreshed %s token for user %s", provider, user_id)

    conn.last_used_at = _utcnow()
    await session.flush()
    return ActiveCredentials(
        access_token=decrypt_token(conn.access_token),
        instance_url=conn.instance_url,
    )


async def invalidate_access_token(session: AsyncSession, user_id: str, provider: str) -> None:
    """Force a refresh on next use (the provider rejected the token)."""
    conn = await _find_connection(session, user_id, provider)
    if conn is None:
        return
    conn.expires_at = _utcnow()
    await session.commit()


async def get_user_connections(session: AsyncSession, user_id: str) -> List[Dict[str, Any]]:
    """Return all connections for a user (no tokens exposed)."""
    result = await session.execute(
        select(UserConnection).where(UserConnection.user_id == _to_uuid(user_id))
    )
    return [
        {
            "connection_id": str(c.connection_id),
            "provider": c.provider,
            "account_label": c.account_label,
            "status": c.status,
            "scopes": c.scopes or [],
            "instance_url": c.instance_url,
            "connected_at": c.connected_at.isoformat() if c.connected_at else None,
            "last_used_at": c.last_used_at.isoformat() if c.last_used_at else None,
            "error_message": c.error_message,
        }
        for c in result.scalars().all()
    ]


async def disconnect(
    session: AsyncSession,
    user_id: str,
    provider: str,
    *,
    registry: Optional[ConnectorRegistry] = None,
) -> bool:
    """
    Revoke (best effort) and delete the user's connection for ``provider``.
    Returns True if a connection was removed; calling it again is a no-op.
    """
    conn = await _find_connection(session, user_id, provider)
    if conn is None:
        return False

    connector = (registry or ConnectorRegistry()).get(provider)
    if connector is not None:
        token = decrypt_token(conn.refresh_token) or decrypt_token(conn.access_token)
        if not await connector.revoke_token(token):
            logger.debug("Provider %s did not revoke token for user %s", provider, user_id)

    await session.delete(conn)
    await session.flush()
    logger.info("Disconnected %s for user %s", provider, user_id)
    return True
