"""Stats aggregation: apply one domain event to a user's stats snapshot."""

from __future__ import annotations

import dataclasses
from collections.abc import Mapping
from dataclasses import dataclass, field
from datetime import date

from picnicquest.achievements.errors import OutOfOrderEvent
from picnicquest.achievements.events import BookingCreated, DomainEvent, ReviewSubmitted


@dataclass(frozen=True)
class UserStats:
    """Cumulative activity for one user at a point in time."""

    total_bookings: int = 0
    total_reviews: int = 0
    streak_days: int = 0
    longest_streak: int = 0
    last_activity_date: date | None = None
    spot_visits: Mapping[str, int] = field(default_factory=dict)

    @property
    def favorite_spots(self) -> frozenset[str]:
        return frozenset(self.spot_visits)


def streak_gap(last_activity: date | None, activity: date) -> int | None:
    """Whole days between the last activity and this one (None if never active)."""
    if last_activity is None:
        return None
    return (activity - last_activity).days


def next_streak(current: int, gap: int | None) -> int:
    """Streak after an activity ``gap`` days since the previous one.

    Same day keeps the streak, the next day extends it, anything longer
    (or no previous activity) starts over at 1.
    """
    if gap is None or gap > 1:
        return 1
    if gap == 1:
        return current + 1
    return max(current, 1)


def apply_event(stats: UserStats, event: DomainEvent) -> UserStats:
    """Return the stats that result from ``event``; ``stats`` is left untouched.

    Raises:
        OutOfOrderEvent: the event is dated before ``stats.last_activity_date``.
    """
    activity = event.activity_date
    gap = streak_gap(stats.last_activity_date, activity)
    if gap is not None and gap < 0:
        raise OutOfOrderEvent(
            f"Event dated {activity.isoformat()} precedes last activity "
            f"{stats.last_activity_date.isoformat()}"
        )

    streak = next_streak(stats.streak_days, gap)
    changes: dict[str, object] = {
        "streak_days": streak,
        "longest_streak": max(stats.longest_streak, streak),
        "last_activity_date": activity,
    }

    if isinstance(event, BookingCreated):
        changes["total_bookings"] = stats.total_bookings + 1
        if event.spot_id:
            visits = dict(stats.spot_visits)
            visits[event.spot_id] = visits.get(event.spot_id, 0) + 1
            changes["spot_visits"] = visits
    elif isinstance(event, ReviewSubmitted):
        changes["total_reviews"] = stats.total_reviews + 1
    else:
        raise TypeError(f"Unsupported event type: {type(event).__name__}")

    return dataclasses.replace(stats, **changes)
