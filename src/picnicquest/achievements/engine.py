"""Award engine: turns one domain event into stats and badge changes for one user.

Per call: load the user's snapshot, apply the event to the stats,
evaluate every badge the user has not completed, then commit the new
stats and all badge changes in one atomic write. Reads and writes for a
user happen inside that user's lock. A commit that loses a race
(``PersistenceConflict``) is replayed from a freshly loaded snapshot, never
by re-applying the stale result.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Sequence
from datetime import datetime, timezone

from picnicquest.achievements.catalog import BadgeCatalog, BadgeDefinition
from picnicquest.achievements.criteria import evaluate
from picnicquest.achievements.errors import PersistenceConflict, UnsupportedCriteriaKind
from picnicquest.achievements.events import DomainEvent
from picnicquest.achievements.locks import UserLockRegistry
from picnicquest.achievements.stats import UserStats, apply_event
from picnicquest.achievements.store import BadgeProgress, BadgeStore, UserSnapshot

logger = logging.getLogger(__name__)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class AwardEngine:
    """Evaluates badge criteria for domain events and awards badges exactly once."""

    def __init__(
        self,
        catalog: BadgeCatalog,
        store: BadgeStore,
        locks: UserLockRegistry | None = None,
        max_attempts: int = 3,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        if max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")
        self.catalog = catalog
        self.store = store
        self.locks = locks or UserLockRegistry()
        self.max_attempts = max_attempts
        self._clock = clock

    async def handle(self, user_id: str, event: DomainEvent) -> list[BadgeDefinition]:
        """Apply ``event`` for ``user_id``; returns badges completed by this call.

        Raises:
            UnknownUser: the user has no achievement record.
            OutOfOrderEvent: the event predates the user's last activity.
            PersistenceConflict: every attempt lost a concurrent write.
        """
        badges = self.catalog.all()

        attempt = 0
        while True:
            attempt += 1
            async with self.locks.hold(user_id):
                snapshot = await self.store.load(user_id)
                new_stats = apply_event(snapshot.stats, event)
                diffs, earned = self._evaluate(snapshot, new_stats, event, badges)
                try:
                    await self.store.commit_atomic(user_id, new_stats, diffs, snapshot.version)
                except PersistenceConflict:
                    if attempt == self.max_attempts:
                        logger.error(
                            "Giving up on %s for user %s after %d conflicting commits",
                            event.kind.value, user_id, attempt,
                        )
                        raise
                    logger.warning(
                        "Commit conflict for user %s (attempt %d/%d), replaying",
                        user_id, attempt, self.max_attempts,
                    )
                    continue

            if earned:
                logger.info(
                    "User %s earned %s on %s",
                    user_id, [b.id for b in earned], event.kind.value,
                )
            return earned

    def _evaluate(
        self,
        snapshot: UserSnapshot,
        stats: UserStats,
        event: DomainEvent,
        badges: Sequence[BadgeDefinition],
    ) -> tuple[list[BadgeProgress], list[BadgeDefinition]]:
        """Badge records to write, and the badges completed by them."""
        now = self._clock()
        diffs: list[BadgeProgress] = []
        earned: list[BadgeDefinition] = []

        for badge in badges:
            if snapshot.is_completed(badge.id):
                continue
            try:
                result = evaluate(stats, badge.criteria, event)
            except UnsupportedCriteriaKind as exc:
                logger.error("Skipping badge %s: %s", badge.id, exc.message)
                continue

            current = snapshot.badges.get(badge.id)
            if result.satisfied:
                diffs.append(BadgeProgress(badge.id, result.required, completed=True, earned_at=now))
                earned.append(badge)
            elif current is None or current.progress != result.progress:
                diffs.append(BadgeProgress(badge.id, result.progress))

        return diffs, earned
