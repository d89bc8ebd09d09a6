"""
HMAC-signed tokens.

Two flavours share one format (``base64(json payload) + "." + hex signature``):

  • session tokens — ``{"user_id", "exp"}``, signed with ``config.jwt_secret``
  • OAuth state   — ``{"user_id", "nonce", "provider", "exp"}``, signed with
    ``config.oauth_state_secret``
"""

from __future__ import annotations

import hashlib
import hmac
import json
import secrets
import time
from base64 import urlsafe_b64decode, urlsafe_b64encode
from typing import Any, Dict

from config.settings import config
from utils.errors import AuthenticationRequired


class BadSignature(ValueError):
    """Token is malformed, tampered with or expired."""


def _sign(raw: bytes, secret: str) -> str:
    return hmac.new(secret.encode(), raw, hashlib.sha256).hexdigest()


def sign_payload(payload: Dict[str, Any], secret: str, ttl_seconds: int) -> str:
    body = dict(payload, exp=int(time.time()) + ttl_seconds)
    raw = json.dumps(body, separators=(",", ":"), sort_keys=True).encode()
    return urlsafe_b64encode(raw).decode() + "." + _sign(raw, secret)


def unsign_payload(token: str, secret: str) -> Dict[str, Any]:
    """Return the payload of a valid token, raising ``BadSignature`` otherwise."""
    parts = token.split(".", 1)
    if len(parts) != 2:
        raise BadSignature("bad format")
    try:
        raw = urlsafe_b64decode(parts[0].encode())
    except (ValueError, TypeError) as exc:
        raise BadSignature("bad encoding") from exc
    if not hmac.compare_digest(parts[1], _sign(raw, secret)):
        raise BadSignature("bad signature")
    try:
        payload = json.loads(raw)
    except ValueError as exc:
        raise BadSignature("bad payload") from exc
    if payload.get("exp", 0) < time.time():
        raise BadSignature("expired")
    return payload


# ── Session tokens ─────────────────────────────────────────────────────


def create_token(user_id: str) -> str:
    """Create a signed token containing ``user_id`` and expiry."""
    return sign_payload({"user_id": user_id}, config.jwt_secret, config.jwt_expiry_seconds)


def verify_token(token: str) -> str:
    """
    Verify token and return ``user_id``.

    Raises ``AuthenticationRequired`` on invalid or expired tokens.
    """
    try:
        return unsign_payload(token, config.jwt_secret)["user_id"]
    except (BadSignature, KeyError) as exc:
        raise AuthenticationRequired(f"Invalid or expired token: {exc}")


# ── OAuth state ────────────────────────────────────────────────────────


def create_oauth_state(user_id: str, provider: str) -> str:
    """Opaque CSRF state: random nonce bound to the user and provider."""
    return sign_payload(
        {"user_id": user_id, "provider": provider, "nonce": secrets.token_urlsafe(16)},
        config.oauth_state_secret,
        config.oauth_state_ttl_seconds,
    )


def verify_oauth_state(state: str, provider: str) -> str:
    """Return the ``user_id`` bound to ``state``; raise ``BadSignature`` otherwise."""
    payload = unsign_payload(state, config.oauth_state_secret)
    if payload.get("provider") != provider:
        raise BadSignature("provider mismatch")
    if not payload.get("user_id"):
        raise BadSignature("missing user")
    return payload["user_id"]
