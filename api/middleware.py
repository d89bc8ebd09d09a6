"""
Global middleware: request timing and a per-request id.
"""

from __future__ import annotations

import logging
import time
import uuid

from fastapi import FastAPI, Request

logger = logging.getLogger(__name__)

REQUEST_ID_HEADER = "X-Request-ID"


def register_middleware(app: FastAPI) -> None:
    """Attach the app-level HTTP middleware."""

    @app.middleware("http")
    async def request_timer(request: Request, call_next):
        request_id = request.headers.get(REQUEST_ID_HEADER) or uuid.uuid4().hex
        start = time.perf_counter()
        response = await call_next(request)
        elapsed = time.perf_counter() - start
        response.headers["X-Process-Time"] = f"{elapsed:.4f}"
        response.headers[REQUEST_ID_HEADER] = request_id
        # Query strings are left out; OAuth callbacks carry codes
        logger.debug(
            "[%s] %s %s -> %d in %.3fs",
            request_id, request.method, request.url.path, response.status_code, elapsed,
        )
        return response
