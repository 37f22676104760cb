"""Pydantic request/response models for achievement endpoints."""

from __future__ import annotations

from datetime import date, datetime
from typing import Any

from pydantic import BaseModel, Field

from picnicquest.achievements.catalog import BadgeDefinition
from picnicquest.achievements.events import EventKind
from picnicquest.achievements.stats import UserStats


# --- Badge ---


class CriteriaResponse(BaseModel):
    type: str
    value: int
    target: str | None = None


class BadgeDefinitionResponse(BaseModel):
    id: str
    name: str
    description: str
    icon: str
    category: str
    level: int
    criteria: CriteriaResponse

    @classmethod
    def from_definition(cls, badge: BadgeDefinition) -> BadgeDefinitionResponse:
        return cls(
            id=badge.id,
            name=badge.name,
            description=badge.description,
            icon=badge.icon,
            category=badge.category,
            level=badge.level,
            criteria=CriteriaResponse(
                type=badge.criteria.type,
                value=badge.criteria.value,
                target=badge.criteria.target,
            ),
        )


class AllBadgesResponse(BaseModel):
    version: str
    badges: list[BadgeDefinitionResponse]


class UserBadgeEntry(BaseModel):
    badge: BadgeDefinitionResponse
    progress: int
    required: int
    completed: bool
    earned_at: datetime | None = None


class UserBadgesResponse(BaseModel):
    earned: list[UserBadgeEntry]
    in_progress: list[UserBadgeEntry]
    total_available: int
    total_earned: int


# --- Stats ---


class StatsResponse(BaseModel):
    total_bookings: int
    total_reviews: int
    streak_days: int
    longest_streak: int
    last_activity_date: date | None = None
    favorite_spots: list[str] = []

    @classmethod
    def from_stats(cls, stats: UserStats) -> StatsResponse:
        return cls(
            total_bookings=stats.total_bookings,
            total_reviews=stats.total_reviews,
            streak_days=stats.streak_days,
            longest_streak=stats.longest_streak,
            last_activity_date=stats.last_activity_date,
            favorite_spots=sorted(stats.favorite_spots),
        )


# --- Registration / events ---


class RegistrationResponse(BaseModel):
    user_id: str
    created: bool


class EventRequest(BaseModel):
    event: EventKind
    occurred_at: datetime | None = None  # defaults to now
    data: dict[str, Any] = Field(default_factory=dict)


class EventResultResponse(BaseModel):
    user_id: str
    earned: list[BadgeDefinitionResponse]
