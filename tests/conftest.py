"""
Shared fixtures: an in-memory SQLite database, the FastAPI app wired to it,
and connectors whose HTTP calls go to an ``httpx.MockTransport``.
"""

import os

# Settings are read at import time
os.environ["DATABASE_URL"] = "sqlite+aiosqlite:///:memory:"
os.environ["JWT_SECRET"] = "test-jwt-secret"
os.environ["OAUTH_STATE_SECRET"] = "test-oauth-state-secret"
os.environ["TOKEN_ENCRYPTION_KEY"] = "MDEyMzQ1Njc4OWFiY2RlZjAxMjM0NTY3ODlhYmNkZWY="
os.environ["ENVIRONMENT"] = "test"
os.environ["SITE_URL"] = "http://localhost:3000"
os.environ["MICROSOFT_CLIENT_ID"] = "ms-client"
os.environ["MICROSOFT_CLIENT_SECRET"] = "ms-secret"
os.environ["MICROSOFT_REDIRECT_URI"] = "http://localhost:8000/api/v1/auth/microsoft/callback"
os.environ["SALESFORCE_CLIENT_ID"] = "sf-client"
os.environ["SALESFORCE_CLIENT_SECRET"] = "sf-secret"
os.environ["SALESFORCE_CALLBACK_URL"] = "http://localhost:8000/api/v1/auth/salesforce/callback"

import uuid
from typing import Callable, List

import httpx
import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from auth.signing import create_token
from connectors.microsoft import MicrosoftConnector
from connectors.registry import ConnectorRegistry, get_connector_registry
from connectors.salesforce import SalesforceConnector
from database.models import Base, Inventory, User
from database.session import get_db_session
from main import app


class ProviderStub:
    """
    Records outgoing requests and answers them from a queue of
    ``httpx.Response`` objects (the last one repeats).
    """

    def __init__(self) -> None:
        self.requests: List[httpx.Request] = []
        self.responses: List[httpx.Response] = [httpx.Response(200, json={})]

    def queue(self, *responses: httpx.Response) -> None:
        self.responses = list(responses)

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if len(self.responses) > 1:
            return self.responses.pop(0)
        return self.responses[0]

    @property
    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self.handler)


@pytest_asyncio.fixture
async def engine():
    engine = create_async_engine(
        "sqlite+aiosqlite://",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(engine):
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


@pytest_asyncio.fixture
async def db(session_factory):
    async with session_factory() as session:
        yield session


@pytest.fixture
def provider_stub() -> ProviderStub:
    return ProviderStub()


@pytest.fixture
def registry(provider_stub) -> ConnectorRegistry:
    return ConnectorRegistry(
        [
            MicrosoftConnector(transport=provider_stub.transport),
            SalesforceConnector(transport=provider_stub.transport),
        ]
    )


@pytest_asyncio.fixture
async def client(session_factory, registry):
    async def _session():
        async with session_factory() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    app.dependency_overrides[get_db_session] = _session
    app.dependency_overrides[get_connector_registry] = lambda: registry
    async with httpx.AsyncClient(
        transport=httpx.ASGITransport(app=app), base_url="http://testserver"
    ) as ac:
        yield ac
    app.dependency_overrides.clear()


@pytest.fixture
def make_user(session_factory) -> Callable:
    """Create a user row; returns ``(user_id, auth headers)``."""

    async def _make(name: str = "alice"):
        user_id = uuid.uuid4()
        async with session_factory() as session:
            session.add(User(user_id=user_id, email=f"{name}-{user_id.hex[:6]}@example.com", display_name=name))
            await session.commit()
        return str(user_id), {"Authorization": f"Bearer {create_token(str(user_id))}"}

    return _make


@pytest.fixture
def make_inventory(session_factory) -> Callable:
    """Insert an inventory directly; keyword arguments override the defaults."""

    async def _make(owner_id: str, **overrides):
        fields = {
            "title": "Tools",
            "is_public": True,
            "custom_id_prefix": "PFX",
            "custom_id_format": "{prefix}-{counter}",
            "counter_start": 1,
            "last_counter": 0,
        }
        fields.update(overrides)
        async with session_factory() as session:
            inventory = Inventory(creator_id=uuid.UUID(owner_id), **fields)
            session.add(inventory)
            await session.commit()
        return str(inventory.inventory_id)

    return _make
