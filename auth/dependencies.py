"""
FastAPI dependencies for authentication.

The caller is identified by a bearer token in the ``Authorization`` header
or, for browser navigation such as the OAuth redirects, by the
``session_token`` cookie.
"""

from __future__ import annotations

from typing import AsyncGenerator, Optional

from fastapi import Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from auth.signing import verify_token
from config.settings import config
from database.session import get_db_session
from utils.errors import AuthenticationRequired


async def db_session(
    session: AsyncSession = Depends(get_db_session),
) -> AsyncGenerator[AsyncSession, None]:
    """Yield a DB session for route handlers."""
    yield session


async def get_optional_user_id(request: Request) -> Optional[str]:
    """
    ``user_id`` of the caller, or ``None`` for anonymous requests.

    A bad bearer header is an error; a stale session cookie is ignored.
    """
    authorization = request.headers.get("Authorization", "")
    if authorization.startswith("Bearer "):
        return verify_token(authorization[7:].strip())

    cookie = request.cookies.get(config.session_cookie_name)
    if not cookie:
        return None
    try:
        return verify_token(cookie)
    except AuthenticationRequired:
        return None


async def get_current_user_id(
    user_id: Optional[str] = Depends(get_optional_user_id),
) -> str:
    """Authenticated ``user_id`` (UUID string); 401 when missing."""
    if user_id is None:
        raise AuthenticationRequired()
    return user_id
