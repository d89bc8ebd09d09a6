"""
Inventory service — application entry point.
"""

from __future__ import annotations

import logging
import sys

import uvicorn
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from api.comments import router as comments_router
from api.errors import register_exception_handlers
from api.integrations import router as integrations_router
from api.inventories import router as inventories_router
from api.items import router as items_router
from api.middleware import register_middleware
from api.profile import router as profile_router
from auth.routes import router as auth_router
from config.settings import config
from connectors.encryption import get_cipher
from connectors.registry import ConnectorRegistry
from connectors.routes import router as connectors_router
from database.models import Base
from database.session import engine

logging.basicConfig(
    level=logging.DEBUG if config.debug else logging.INFO,
    format="%(asctime)s  %(levelname)-8s  %(name)s — %(message)s",
    stream=sys.stdout,
)
for _noisy in ("httpcore", "httpx", "sqlalchemy.engine", "urllib3"):
    logging.getLogger(_noisy).setLevel(logging.WARNING)
logger = logging.getLogger(__name__)


def create_app() -> FastAPI:
    app = FastAPI(
        title="Inventory Service",
        version="1.0.0",
        description="Multi-tenant inventories with Salesforce and OneDrive integrations.",
    )

    # CORS
    app.add_middleware(
        CORSMiddleware,
        allow_origins=config.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    register_middleware(app)
    register_exception_handlers(app)

    # Routes; the fixed /auth paths must be registered before /auth/{provider}
    app.include_router(auth_router, prefix="/api/v1/auth")
    app.include_router(connectors_router, prefix="/api/v1/auth")
    app.include_router(inventories_router, prefix="/api/v1/inventories")
    app.include_router(items_router, prefix="/api/v1/inventories")
    app.include_router(comments_router, prefix="/api/v1/inventories")
    app.include_router(profile_router, prefix="/api/v1/profile")
    app.include_router(integrations_router, prefix="/api/v1/integrations")

    @app.get("/health")
    async def health():
        return {
            "status": "ok",
            "environment": config.environment,
            "token_encryption": get_cipher().enabled,
        }

    @app.on_event("startup")
    async def on_startup():
        if config.environment != "production":
            async with engine.begin() as conn:
                await conn.run_sync(Base.metadata.create_all)
            logger.info("Database tables ensured")

        for provider in ConnectorRegistry().list_providers():
            if not provider["configured"]:
                logger.warning("%s connector is not configured", provider["display_name"])

        if not get_cipher().enabled and config.environment == "production":
            logger.error("Running in production without TOKEN_ENCRYPTION_KEY")

        logger.info("Application ready to accept requests.")

    return app


app = create_app()

if __name__ == "__main__":
    uvicorn.run(
        "main:app",
        host=config.host,
        port=config.port,
        reload=config.debug,
        log_level="debug" if config.debug else "info",
    )
