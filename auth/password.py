"""
Password hashing and verification with bcrypt.
"""

from __future__ import annotations

import bcrypt

from utils.errors import ValidationError

# bcrypt only looks at the first 72 bytes of a password
_BCRYPT_MAX_BYTES = 72


def hash_password(password: str, rounds: int = 12) -> str:
    encoded = password.encode()
    if len(encoded) > _BCRYPT_MAX_BYTES:
        raise ValidationError("Password must be at most 72 bytes")
    return bcrypt.hashpw(encoded, bcrypt.gensalt(rounds=rounds)).decode()


def verify_password(password: str, password_hash: str) -> bool:
    """Constant-time comparison against a bcrypt hash."""
    encoded = password.encode()
    if not password_hash or len(encoded) > _BCRYPT_MAX_BYTES:
        return False
    try:
        return bcrypt.checkpw(encoded, password_hash.encode())
    except (ValueError, TypeError):
        return False
