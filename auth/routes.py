"""
Auth API routes — register, login, logout.

Route prefix: /api/v1/auth
"""

from __future__ import annotations

import logging
import uuid
from typing import Any, Dict

from fastapi import APIRouter, Depends, Response
from pydantic import BaseModel, Field
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from auth.dependencies import db_session
from auth.password import hash_password, verify_password
from auth.signing import create_token
from config.settings import config
from database.models import User
from utils.cookies import clear_app_cookie, set_app_cookie
from utils.errors import AuthenticationRequired, Conflict

logger = logging.getLogger(__name__)

router = APIRouter(tags=["auth"])


class EmailAlreadyRegistered(Conflict):
    default_message = "Email already registered"


# ── Request / response schemas ─────────────────────────────────────────


class RegisterRequest(BaseModel):
    username: str = Field(..., min_length=2, max_length=64)
    email: str = Field(..., min_length=5, max_length=255)
    password: str = Field(..., min_length=4, max_length=72)


class LoginRequest(BaseModel):
    email: str
    password: str


class AuthResponse(BaseModel):
    user_id: str
    display_name: str
    email: str
    token: str


def _auth_payload(user: User, response: Response) -> Dict[str, Any]:
    token = create_token(str(user.user_id))
    set_app_cookie(response, config.session_cookie_name, token, config.jwt_expiry_seconds)
    return {
        "user_id": str(user.user_id),
        "display_name": user.display_name or "",
        "email": user.email,
        "token": token,
    }


# ── Endpoints ──────────────────────────────────────────────────────────


@router.post("/register", response_model=AuthResponse)
async def register(
    req: RegisterRequest,
    response: Response,
    session: AsyncSession = Depends(db_session),
) -> Dict[str, Any]:
    """Register a new user."""
    email = req.email.strip().lower()
    result = await session.execute(select(User).where(User.email == email))
    if result.scalar_one_or_none() is not None:
        raise EmailAlreadyRegistered()

    user = User(
        user_id=uuid.uuid4(),
        email=email,
        display_name=req.username,
        password_hash=hash_password(req.password),
    )
    session.add(user)
    await session.flush()

    logger.info("Registered user %s (%s)", req.username, user.user_id)
    return _auth_payload(user, response)


@router.post("/login", response_model=AuthResponse)
async def login(
    req: LoginRequest,
    response: Response,
    session: AsyncSession = Depends(db_session),
) -> Dict[str, Any]:
    """Login with email + password."""
    result = await session.execute(
        select(User).where(User.email == req.email.strip().lower())
    )
    user = result.scalar_one_or_none()

    if user is None or not verify_password(req.password, user.password_hash):
        raise AuthenticationRequired("Invalid email or password")

    logger.info("Login: %s (%s)", user.display_name, user.user_id)
    return _auth_payload(user, response)


@router.post("/logout")
async def logout(response: Response) -> Dict[str, Any]:
    clear_app_cookie(response, config.session_cookie_name)
    return {"success": True}
