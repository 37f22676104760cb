"""FastAPI application factory."""

from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from typing import Any

import redis.asyncio as aioredis
from fastapi import FastAPI

from picnicquest.achievements.catalog import BadgeCatalog
from picnicquest.achievements.engine import AwardEngine
from picnicquest.achievements.notifier import BadgeNotifier
from picnicquest.achievements.router import router as achievements_router
from picnicquest.achievements.seed import load_catalog
from picnicquest.achievements.sql_store import SqlBadgeStore
from picnicquest.achievements.store import BadgeStore
from picnicquest.config import get_settings
from picnicquest.database import create_engine, create_session_factory
from picnicquest.health.router import router as health_router
from picnicquest.middleware import setup_middleware


def attach_achievements(
    app: FastAPI,
    catalog: BadgeCatalog,
    store: BadgeStore,
    redis: Any | None = None,
    max_attempts: int = 3,
) -> AwardEngine:
    """Wire the catalog, store, engine and notifier into ``app.state``."""
    engine = AwardEngine(catalog, store, max_attempts=max_attempts)
    app.state.catalog = catalog
    app.state.badge_store = store
    app.state.award_engine = engine
    app.state.notifier = BadgeNotifier(redis)
    app.state.redis = redis
    return engine


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Startup and shutdown lifecycle."""
    settings = get_settings()
    catalog = load_catalog(settings.badge_catalog_path)

    db_engine = create_engine(settings.database_url)
    session_factory = create_session_factory(db_engine)
    redis_client = aioredis.from_url(
        settings.redis_url,
        encoding="utf-8",
        decode_responses=True,
        max_connections=50,
    )

    app.state.session_factory = session_factory
    attach_achievements(
        app,
        catalog,
        SqlBadgeStore(session_factory),
        redis=redis_client,
        max_attempts=settings.award_max_attempts,
    )

    yield

    await redis_client.aclose()
    await db_engine.dispose()


def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""
    settings = get_settings()

    app = FastAPI(
        title="PicnicQuest Achievements API",
        description="Badge catalog, user progress and award engine for PicnicQuest",
        version=settings.app_version,
        docs_url="/docs" if settings.debug else None,
        redoc_url="/redoc" if settings.debug else None,
        lifespan=lifespan,
    )

    setup_middleware(app, settings)
    app.include_router(health_router, tags=["Health"])
    app.include_router(achievements_router)

    return app
