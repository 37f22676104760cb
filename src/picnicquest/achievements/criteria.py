"""Criteria evaluation: pure mapping from a stats snapshot to badge progress."""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass
from operator import attrgetter
from typing import NamedTuple

from picnicquest.achievements.errors import UnsupportedCriteriaKind
from picnicquest.achievements.events import BookingCreated, DomainEvent
from picnicquest.achievements.stats import UserStats

COUNT = "count"
MILESTONE = "milestone"
STREAK = "streak"
ACHIEVEMENT = "achievement"

CRITERIA_KINDS = frozenset({COUNT, MILESTONE, STREAK, ACHIEVEMENT})

COUNTERS: dict[str, Callable[[UserStats], int]] = {
    "bookings": attrgetter("total_bookings"),
    "reviews": attrgetter("total_reviews"),
}

# Count badges read the counter that matches their category unless told otherwise.
CATEGORY_COUNTERS = {
    "booking": "bookings",
    "review": "reviews",
}

MORNING_CUTOFF_HOUR = 8


def morning_booking(event: DomainEvent | None) -> bool:
    """A picnic booked for before 08:00."""
    return (
        isinstance(event, BookingCreated)
        and event.picnic_at is not None
        and event.picnic_at.hour < MORNING_CUTOFF_HOUR
    )


PREDICATES: dict[str, Callable[[DomainEvent | None], bool]] = {
    "morning_booking": morning_booking,
}


@dataclass(frozen=True)
class CriteriaSpec:
    """Unlock rule for a badge."""

    type: str
    value: int
    target: str | None = None
    counter: str | None = None
    predicate: str | None = None


class Evaluation(NamedTuple):
    satisfied: bool
    progress: int
    required: int


def evaluate(stats: UserStats, criteria: CriteriaSpec, event: DomainEvent | None = None) -> Evaluation:
    """Evaluate one criteria against a stats snapshot.

    ``event`` is the event that produced ``stats``; only ``achievement``
    criteria look at it. Progress of a satisfied criteria is clamped to
    ``required``.

    Raises:
        UnsupportedCriteriaKind: unknown type, or a count/achievement rule
            whose counter/predicate is not registered.
    """
    required = criteria.value

    if criteria.type == COUNT:
        read = COUNTERS.get(criteria.counter or "")
        if read is None:
            raise UnsupportedCriteriaKind(f"{COUNT}:{criteria.counter}")
        progress = read(stats)

    elif criteria.type == MILESTONE:
        progress = stats.spot_visits.get(criteria.target, 0) if criteria.target else 0

    elif criteria.type == STREAK:
        progress = stats.streak_days

    elif criteria.type == ACHIEVEMENT:
        predicate = PREDICATES.get(criteria.predicate or "")
        if predicate is None:
            raise UnsupportedCriteriaKind(f"{ACHIEVEMENT}:{criteria.predicate}")
        progress = 1 if predicate(event) else 0

    else:
        raise UnsupportedCriteriaKind(criteria.type)

    satisfied = progress >= required
    return Evaluation(satisfied, min(progress, required), required)
