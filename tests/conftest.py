# tests/conftest.py
"""
Shared pytest fixtures.

This module provides:
- Test environment variables (set before the service is imported)
- In-memory SQLite database with all tables, one per test
- Tagged cache over the in-memory backend
- A notifier that records realtime events instead of pushing them
- FastAPI app and async client with database, cache and notifier overridden
- Bearer token helpers for each persona
"""

import os

os.environ.setdefault("ENVIRONMENT", "local")
os.environ.setdefault("SECRET_KEY", "test-secret-key-for-testing-only-not-for-production")
os.environ.setdefault("RATE_LIMIT_ENABLED", "false")
os.environ.setdefault("WHATSAPP_VERIFY_TOKEN", "test-verify-token")
os.environ.setdefault("WHATSAPP_WEBHOOK_SECRET", "test-webhook-secret")
os.environ.setdefault("LOG_LEVEL", "40")

from collections import defaultdict
from typing import Any, AsyncGenerator, Optional
from uuid import UUID, uuid4

import pytest
from fastapi import FastAPI
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool
from sqlmodel import SQLModel

import support_service.infrastructure.database.models  # noqa: F401  registers tables
from support_service.api.app import create_app
from support_service.api.dependencies import get_notifier, get_session
from support_service.auth.tokens import create_access_token
from support_service.config.settings import Settings, get_settings
from support_service.domain.enums import UserType
from support_service.infrastructure.cache import (
    InMemoryCache,
    TaggedCache,
    discard_invalidations,
    flush_invalidations,
    get_tagged_cache,
)
from support_service.interfaces import INotifier


pytest_plugins = ["tests.factories.fixtures"]


# ============================================================================
# Settings
# ============================================================================

@pytest.fixture
def test_settings() -> Settings:
    """
    Environment settings with automatic assignment switched off.

    Tests that exercise auto-assignment build their own copy with it on.
    """
    return get_settings().model_copy(update={"auto_assignment_enabled": False})


# ============================================================================
# Database
# ============================================================================

@pytest.fixture
async def test_engine():
    """
    Fresh in-memory database per test.

    StaticPool keeps the single connection alive, so every session sees
    the same tables.
    """
    engine = create_async_engine(
        "sqlite+aiosqlite:///:memory:",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    async with engine.begin() as conn:
        await conn.run_sync(SQLModel.metadata.create_all)

    yield engine

    await engine.dispose()


@pytest.fixture
def session_factory(test_engine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(test_engine, class_=AsyncSession, expire_on_commit=False)


@pytest.fixture
async def db_session(session_factory) -> AsyncGenerator[AsyncSession, None]:
    """
    Session for seeding data and calling services directly.

    Services only flush, so assertions can read their changes from the
    same session without committing.
    """
    async with session_factory() as session:
        yield session


# ============================================================================
# Cache and realtime
# ============================================================================

@pytest.fixture
def cache() -> TaggedCache:
    return TaggedCache(InMemoryCache(), default_ttl=300)


class RecordingNotifier(INotifier):
    """INotifier that keeps every broadcast for assertions."""

    def __init__(self):
        self.events: list[tuple[str, dict[str, Any], Optional[str]]] = []
        self.groups: dict[str, set[str]] = defaultdict(set)
        self.user_connections: dict[str, list[str]] = {}

    async def broadcast(self, event: str, payload: dict[str, Any], group: Optional[str] = None) -> None:
        self.events.append((event, payload, group))

    async def add_to_group(self, connection_id: str, group: str) -> None:
        self.groups[group].add(connection_id)

    def connections_for_user(self, user_id: str) -> list[str]:
        return self.user_connections.get(user_id, [])

    @property
    def names(self) -> list[str]:
        return [event for event, _, _ in self.events]

    def payloads(self, event: str) -> list[dict[str, Any]]:
        return [payload for name, payload, _ in self.events if name == event]


@pytest.fixture
def notifier() -> RecordingNotifier:
    return RecordingNotifier()


# ============================================================================
# FastAPI application and client
# ============================================================================

@pytest.fixture
def app(session_factory, cache: TaggedCache, notifier: RecordingNotifier, test_settings: Settings) -> FastAPI:
    """
    Application wired to the test database, cache and notifier.

    The lifespan is not run by the ASGI transport, so nothing here
    connects to a real database or Redis.
    """
    application = create_app()

    async def _session() -> AsyncGenerator[AsyncSession, None]:
        async with session_factory() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                discard_invalidations(session)
                raise
            await flush_invalidations(session)

    application.dependency_overrides[get_session] = _session
    application.dependency_overrides[get_tagged_cache] = lambda: cache
    application.dependency_overrides[get_notifier] = lambda: notifier
    application.dependency_overrides[get_settings] = lambda: test_settings
    return application


@pytest.fixture
async def client(app: FastAPI) -> AsyncGenerator[AsyncClient, None]:
    """
    Async HTTP client for the API.

    Usage:
        async def test_endpoint(client):
            response = await client.get("/health/live")
            assert response.status_code == 200
    """
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as http_client:
        yield http_client


# ============================================================================
# Authentication
# ============================================================================

def bearer(user_id: Optional[UUID] = None, user_type: Optional[UserType] = None, **claims: Any) -> dict[str, str]:
    """Authorization header for a freshly signed access token."""
    token = create_access_token(user_id or uuid4(), user_type=user_type, **claims)
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def auth_headers():
    """
    Header builder for any persona.

    Usage:
        async def test_endpoint(client, auth_headers):
            headers = auth_headers(user.id, UserType.CHAT_AGENT)
            response = await client.get("/api/v1/conversations", headers=headers)
    """
    return bearer


@pytest.fixture
def supervisor_headers() -> dict[str, str]:
    return bearer(uuid4(), UserType.CHAT_SUPERVISOR, name="Sam Supervisor")


@pytest.fixture
def api_consumer_headers() -> dict[str, str]:
    """Headers for the bot, which reports messages and escalations."""
    return bearer(uuid4(), UserType.API_CONSUMER, name="Support Bot")
