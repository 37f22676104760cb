"""Badge-earned notifications over Redis pub/sub."""

from __future__ import annotations

import json
import logging
from collections.abc import Sequence
from typing import Any

from picnicquest.achievements.catalog import BadgeDefinition

logger = logging.getLogger(__name__)

BADGE_EARNED_CHANNEL = "pubsub:badge_earned"


def badge_payload(user_id: str, badge: BadgeDefinition) -> dict[str, Any]:
    return {
        "user_id": user_id,
        "badge_id": badge.id,
        "name": badge.name,
        "description": badge.description,
        "icon": badge.icon,
        "category": badge.category,
        "level": badge.level,
    }


class BadgeNotifier:
    """Publishes one message per newly earned badge for the front-end popup.

    Runs after the award is committed, so a failed publish is logged and
    the award stands.
    """

    def __init__(self, redis: Any | None) -> None:
        self.redis = redis

    async def badges_earned(self, user_id: str, badges: Sequence[BadgeDefinition]) -> int:
        """Returns the number of messages published."""
        if self.redis is None or not badges:
            return 0

        published = 0
        for badge in badges:
            try:
                await self.redis.publish(BADGE_EARNED_CHANNEL, json.dumps(badge_payload(user_id, badge)))
                published += 1
            except Exception:
                logger.warning("Failed to publish badge_earned for %s/%s", user_id, badge.id, exc_info=True)
        return published
