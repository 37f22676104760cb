"""Standalone runner for the achievement event consumer.

Reads booking and review events from Redis Streams and runs them through
the award engine against the SQL badge store.

Usage: python -m picnicquest.workers.achievement_runner
"""

from __future__ import annotations

import asyncio
import logging
import signal

import redis.asyncio as aioredis

from picnicquest.achievements.consumer import AchievementEventConsumer
from picnicquest.achievements.engine import AwardEngine
from picnicquest.achievements.seed import load_catalog
from picnicquest.achievements.sql_store import SqlBadgeStore
from picnicquest.config import get_settings
from picnicquest.database import create_engine, create_session_factory
from picnicquest.middleware.logging import setup_logging

logger = logging.getLogger(__name__)


async def main() -> None:
    """Run the achievement event consumer until SIGINT/SIGTERM."""
    settings = get_settings()
    setup_logging(settings)

    catalog = load_catalog(settings.badge_catalog_path)
    db_engine = create_engine(settings.database_url)
    store = SqlBadgeStore(create_session_factory(db_engine))

    redis_client = aioredis.from_url(
        settings.redis_url,
        encoding="utf-8",
        decode_responses=True,
        max_connections=20,
    )

    consumer = AchievementEventConsumer(
        redis_client,
        AwardEngine(catalog, store, max_attempts=settings.award_max_attempts),
        consumer_name=settings.consumer_name,
    )

    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        loop.add_signal_handler(sig, consumer.stop)

    logger.info("Starting achievement consumer (consumer=%s, catalog=v%s)", settings.consumer_name, catalog.version)

    try:
        await consumer.run(count=settings.consumer_batch_size, block_ms=settings.consumer_block_ms)
    finally:
        await redis_client.aclose()
        await db_engine.dispose()


if __name__ == "__main__":
    asyncio.run(main())
