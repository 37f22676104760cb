"""Storage contract for per-user achievement state, plus the in-memory store."""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from datetime import datetime
from types import MappingProxyType
from typing import Protocol

from picnicquest.achievements.catalog import BadgeCatalog
from picnicquest.achievements.errors import PersistenceConflict, UnknownUser
from picnicquest.achievements.stats import UserStats


@dataclass(frozen=True)
class BadgeProgress:
    """A user's record for one badge. Once ``completed`` it never changes again."""

    badge_id: str
    progress: int = 0
    completed: bool = False
    earned_at: datetime | None = None


@dataclass(frozen=True)
class UserSnapshot:
    """Everything the engine reads for one user, with the version it was read at."""

    user_id: str
    stats: UserStats
    badges: Mapping[str, BadgeProgress]
    version: int

    def is_completed(self, badge_id: str) -> bool:
        record = self.badges.get(badge_id)
        return record is not None and record.completed


class BadgeStore(Protocol):
    """Durable per-user stats and badge progress."""

    async def register_user(self, user_id: str, catalog: BadgeCatalog) -> bool:
        """Create zeroed stats and one open progress record per badge; False if already registered."""
        ...

    async def load(self, user_id: str) -> UserSnapshot:
        """Read the user's state. Raises UnknownUser."""
        ...

    async def commit_atomic(
        self,
        user_id: str,
        stats: UserStats,
        badge_diffs: Sequence[BadgeProgress],
        expected_version: int,
    ) -> int:
        """Write stats and badge changes together; returns the new version.

        Raises PersistenceConflict if the stored version is no longer
        ``expected_version``. Nothing is written in that case.
        """
        ...


class InMemoryBadgeStore:
    """Process-local store. Snapshots are immutable and replaced whole on commit."""

    def __init__(self) -> None:
        self._users: dict[str, UserSnapshot] = {}

    async def register_user(self, user_id: str, catalog: BadgeCatalog) -> bool:
        if user_id in self._users:
            return False
        badges = {badge.id: BadgeProgress(badge.id) for badge in catalog}
        self._users[user_id] = UserSnapshot(user_id, UserStats(), MappingProxyType(badges), 0)
        return True

    async def load(self, user_id: str) -> UserSnapshot:
        snapshot = self._users.get(user_id)
        if snapshot is None:
            raise UnknownUser(user_id)
        return snapshot

    async def commit_atomic(
        self,
        user_id: str,
        stats: UserStats,
        badge_diffs: Sequence[BadgeProgress],
        expected_version: int,
    ) -> int:
        current = self._users.get(user_id)
        if current is None:
            raise UnknownUser(user_id)
        if current.version != expected_version:
            raise PersistenceConflict(
                f"User {user_id!r} is at version {current.version}, expected {expected_version}"
            )

        badges = dict(current.badges)
        for diff in badge_diffs:
            if current.is_completed(diff.badge_id):
                continue
            badges[diff.badge_id] = diff

        version = expected_version + 1
        self._users[user_id] = UserSnapshot(user_id, stats, MappingProxyType(badges), version)
        return version
