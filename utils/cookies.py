"""
Cookie helpers — every cookie this service sets is HTTP-only,
``SameSite=Lax`` and ``Secure`` in production.
"""

from __future__ import annotations

from typing import Optional

from fastapi import Response

from config.settings import config


def set_app_cookie(response: Response, name: str, value: str, max_age: Optional[int]) -> None:
    response.set_cookie(
        key=name,
        value=value,
        max_age=max_age,
        httponly=True,
        secure=config.cookie_secure,
        samesite="lax",
        path="/",
    )


def clear_app_cookie(response: Response, name: str) -> None:
    response.delete_cookie(
        key=name,
        path="/",
        httponly=True,
        secure=config.cookie_secure,
        samesite="lax",
    )
