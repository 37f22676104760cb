"""Redis Stream consumer feeding booking and review events to the award engine.

Reads ``booking:created`` and ``review:submitted`` with XREADGROUP in the
``achievement-consumers`` group. A message is acknowledged once it has been
committed, or when it can never succeed (malformed, out of order, unknown
user). Anything else stays pending: every batch first re-reads this
consumer's own unacknowledged backlog (id ``0``) and retries it, so a
message that failed during an outage is processed once the outage ends.
"""

from __future__ import annotations

import asyncio
import logging

import redis.asyncio as aioredis

from picnicquest.achievements.engine import AwardEngine
from picnicquest.achievements.errors import MalformedEvent, OutOfOrderEvent, UnknownUser
from picnicquest.achievements.events import STREAMS, parse_envelope
from picnicquest.achievements.notifier import BadgeNotifier

logger = logging.getLogger(__name__)

CONSUMER_GROUP = "achievement-consumers"


class AchievementEventConsumer:
    """Processes domain events from Redis Streams."""

    def __init__(
        self,
        redis_client: aioredis.Redis,
        engine: AwardEngine,
        notifier: BadgeNotifier | None = None,
        consumer_name: str = "achievement-worker-1",
    ) -> None:
        self.redis = redis_client
        self.engine = engine
        self.notifier = notifier or BadgeNotifier(redis_client)
        self.consumer_name = consumer_name
        self._running = False
        self.processed = 0
        self.dropped = 0
        self.errors = 0

    async def setup_groups(self) -> None:
        """Create consumer groups for all streams (idempotent)."""
        for stream in STREAMS:
            try:
                await self.redis.xgroup_create(stream, CONSUMER_GROUP, id="0", mkstream=True)
                logger.info("Created consumer group %s for %s", CONSUMER_GROUP, stream)
            except aioredis.ResponseError as e:
                if "BUSYGROUP" not in str(e):
                    raise

    async def handle_message(self, stream: str, msg_id: str, fields: dict[str, str]) -> bool:
        """Process one message; returns True if it was acknowledged."""
        try:
            user_id, event = parse_envelope(fields)
            earned = await self.engine.handle(user_id, event)
        except (MalformedEvent, OutOfOrderEvent, UnknownUser) as exc:
            logger.warning("Dropping %s from %s: %s", msg_id, stream, exc.message)
            await self.redis.xack(stream, CONSUMER_GROUP, msg_id)
            self.dropped += 1
            return True
        except Exception:
            self.errors += 1
            logger.exception("Failed to process %s from %s; leaving it pending", msg_id, stream)
            return False

        await self.redis.xack(stream, CONSUMER_GROUP, msg_id)
        self.processed += 1
        if earned:
            await self.notifier.badges_earned(user_id, earned)
        return True

    async def consume(self, count: int = 100, block_ms: int = 5000) -> int:
        """Retry this consumer's pending backlog, then read and process new messages.

        Returns:
            Number of messages acknowledged.
        """
        acked = await self._process(await self._read("0", count))
        acked += await self._process(await self._read(">", count, block_ms))
        return acked

    async def _read(self, start_id: str, count: int, block_ms: int | None = None) -> list:
        """XREADGROUP from all streams. ``"0"`` returns entries delivered to us but never acked."""
        try:
            return await self.redis.xreadgroup(
                groupname=CONSUMER_GROUP,
                consumername=self.consumer_name,
                streams={s: start_id for s in STREAMS},
                count=count,
                block=block_ms,
            ) or []
        except aioredis.ResponseError as e:
            logger.error("XREADGROUP error: %s", e)
            return []

    async def _process(self, events: list) -> int:
        acked = 0
        for stream_name, messages in events:
            stream = stream_name if isinstance(stream_name, str) else stream_name.decode()
            for msg_id, fields in messages:
                if not fields:
                    # Entry was trimmed from the stream while pending
                    logger.warning("Dropping %s from %s: entry no longer exists", msg_id, stream)
                    await self.redis.xack(stream, CONSUMER_GROUP, msg_id)
                    self.dropped += 1
                    acked += 1
                elif await self.handle_message(stream, msg_id, fields):
                    acked += 1
        return acked

    async def run(self, count: int = 100, block_ms: int = 5000) -> None:
        """Main consumer loop: runs until ``stop()``."""
        await self.setup_groups()
        self._running = True
        logger.info("Achievement consumer started (consumer=%s)", self.consumer_name)

        while self._running:
            try:
                await self.consume(count=count, block_ms=block_ms)
            except Exception:
                logger.exception("Consumer loop error")
                await asyncio.sleep(1)

        logger.info(
            "Achievement consumer stopped (processed=%d dropped=%d errors=%d)",
            self.processed, self.dropped, self.errors,
        )

    def stop(self) -> None:
        """Signal the consumer to stop after the current batch."""
        self._running = False
