"""Shared test fixtures."""

from __future__ import annotations

from collections.abc import AsyncGenerator, Callable
from datetime import datetime, timezone
from unittest.mock import AsyncMock

import pytest
import pytest_asyncio
from fastapi import FastAPI
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from picnicquest.achievements.catalog import BadgeCatalog
from picnicquest.achievements.engine import AwardEngine
from picnicquest.achievements.seed import build_default_catalog
from picnicquest.achievements.store import InMemoryBadgeStore
from picnicquest.database import create_session_factory, create_tables
from picnicquest.main import attach_achievements, create_app

EARNED_AT = datetime(2026, 3, 1, 9, 0, 0, tzinfo=timezone.utc)


@pytest.fixture
def catalog() -> BadgeCatalog:
    return build_default_catalog()


@pytest.fixture
def memory_store() -> InMemoryBadgeStore:
    return InMemoryBadgeStore()


@pytest.fixture
def award_engine(catalog: BadgeCatalog, memory_store: InMemoryBadgeStore) -> AwardEngine:
    """Engine over the in-memory store with a fixed award clock."""
    return AwardEngine(catalog, memory_store, clock=lambda: EARNED_AT)


@pytest.fixture
def fake_redis() -> AsyncMock:
    """Redis stand-in: every command is an AsyncMock."""
    redis = AsyncMock()
    redis.ping.return_value = True
    redis.publish.return_value = 1
    redis.xadd.return_value = "1760870400000-0"
    return redis


@pytest_asyncio.fixture
async def db_engine() -> AsyncGenerator[AsyncEngine, None]:
    """Fresh in-memory SQLite database per test."""
    engine = create_async_engine(
        "sqlite+aiosqlite:///:memory:",
        echo=False,
        poolclass=StaticPool,
    )
    await create_tables(engine)
    yield engine
    await engine.dispose()


@pytest_asyncio.fixture
async def session_factory(db_engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return create_session_factory(db_engine)


@pytest.fixture
def make_app(catalog: BadgeCatalog, memory_store: InMemoryBadgeStore) -> Callable[..., FastAPI]:
    """Build the app with its state wired directly (ASGITransport does not run the lifespan)."""

    def _make(redis=None, session_factory=None, store=None) -> FastAPI:
        app = create_app()
        attach_achievements(app, catalog, store or memory_store, redis=redis)
        app.state.session_factory = session_factory
        return app

    return _make


@pytest_asyncio.fixture
async def client(make_app: Callable[..., FastAPI]) -> AsyncGenerator[AsyncClient, None]:
    """HTTP client against the app backed by the in-memory store, without Redis."""
    async with AsyncClient(transport=ASGITransport(app=make_app()), base_url="http://test") as c:
        yield c
