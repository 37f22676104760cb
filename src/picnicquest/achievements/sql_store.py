"""SQLAlchemy-backed badge store.

Atomicity is one transaction per commit. Concurrent writers are detected
with an optimistic ``version`` column on ``user_stats``: the stats update
only matches the row it was loaded from, so a stale snapshot updates zero
rows and the whole transaction rolls back.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence
from datetime import datetime, timezone
from types import MappingProxyType

from sqlalchemy import insert, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from picnicquest.achievements.catalog import BadgeCatalog
from picnicquest.achievements.errors import PersistenceConflict, UnknownUser
from picnicquest.achievements.stats import UserStats
from picnicquest.achievements.store import BadgeProgress, UserSnapshot
from picnicquest.db.models import UserBadge, UserStats as UserStatsRow

logger = logging.getLogger(__name__)


def _stats_from_row(row: UserStatsRow) -> UserStats:
    return UserStats(
        total_bookings=row.total_bookings,
        total_reviews=row.total_reviews,
        streak_days=row.streak_days,
        longest_streak=row.longest_streak,
        last_activity_date=row.last_activity_date,
        spot_visits=dict(row.spot_visits or {}),
    )


def _progress_from_row(row: UserBadge) -> BadgeProgress:
    return BadgeProgress(
        badge_id=row.badge_id,
        progress=int(row.progress),
        completed=row.completed,
        earned_at=row.earned_at,
    )


class SqlBadgeStore:
    """Badge store over ``user_stats`` and ``user_badges``."""

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]) -> None:
        self._session_factory = session_factory

    async def register_user(self, user_id: str, catalog: BadgeCatalog) -> bool:
        async with self._session_factory() as db:
            try:
                async with db.begin():
                    if await db.get(UserStatsRow, user_id) is not None:
                        return False
                    db.add(UserStatsRow(
                        user_id=user_id,
                        total_bookings=0,
                        total_reviews=0,
                        streak_days=0,
                        longest_streak=0,
                        spot_visits={},
                        version=0,
                    ))
                    db.add_all(
                        UserBadge(user_id=user_id, badge_id=badge.id, progress=0, completed=False)
                        for badge in catalog
                    )
            except IntegrityError:
                # Registered concurrently by another request
                return False
        logger.info("Registered achievement state for user %s (%d badges)", user_id, len(catalog))
        return True

    async def load(self, user_id: str) -> UserSnapshot:
        async with self._session_factory() as db:
            row = (
                await db.execute(select(UserStatsRow).where(UserStatsRow.user_id == user_id))
            ).scalar_one_or_none()
            if row is None:
                raise UnknownUser(user_id)

            badge_rows = (
                await db.execute(select(UserBadge).where(UserBadge.user_id == user_id))
            ).scalars()
            badges = {r.badge_id: _progress_from_row(r) for r in badge_rows}

        return UserSnapshot(user_id, _stats_from_row(row), MappingProxyType(badges), row.version)

    async def commit_atomic(
        self,
        user_id: str,
        stats: UserStats,
        badge_diffs: Sequence[BadgeProgress],
        expected_version: int,
    ) -> int:
        version = expected_version + 1
        async with self._session_factory() as db:
            try:
                async with db.begin():
                    result = await db.execute(
                        update(UserStatsRow)
                        .where(
                            UserStatsRow.user_id == user_id,
                            UserStatsRow.version == expected_version,
                        )
                        .values(
                            total_bookings=stats.total_bookings,
                            total_reviews=stats.total_reviews,
                            streak_days=stats.streak_days,
                            longest_streak=stats.longest_streak,
                            last_activity_date=stats.last_activity_date,
                            spot_visits=dict(stats.spot_visits),
                            version=version,
                            updated_at=datetime.now(timezone.utc),
                        )
                    )
                    if result.rowcount != 1:
                        raise PersistenceConflict(
                            f"User {user_id!r} changed since version {expected_version}"
                        )

                    for diff in badge_diffs:
                        await self._write_badge(db, user_id, diff)
            except IntegrityError as exc:
                raise PersistenceConflict(f"Concurrent badge write for user {user_id!r}") from exc
        return version

    async def _write_badge(self, db: AsyncSession, user_id: str, diff: BadgeProgress) -> None:
        """Update the open record for the badge, or create it if the badge is new to this user."""
        values = {
            "progress": diff.progress,
            "completed": diff.completed,
            "earned_at": diff.earned_at,
        }
        result = await db.execute(
            update(UserBadge)
            .where(
                UserBadge.user_id == user_id,
                UserBadge.badge_id == diff.badge_id,
                UserBadge.completed.is_(False),
            )
            .values(**values)
        )
        if result.rowcount == 0:
            # No open record: either absent (insert) or already completed (unique violation)
            await db.execute(insert(UserBadge).values(user_id=user_id, badge_id=diff.badge_id, **values))
