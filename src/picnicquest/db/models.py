"""ORM models for achievement state.

One ``user_stats`` row per user and one ``user_badges`` row per
(user, badge). Both are created when the user registers.
"""

from __future__ import annotations

from datetime import date, datetime
from typing import Any

from sqlalchemy import (
    JSON,
    Boolean,
    Date,
    DateTime,
    Float,
    ForeignKey,
    Integer,
    String,
    UniqueConstraint,
    false,
    text,
)
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import Mapped, mapped_column

from picnicquest.db.base import Base

JSONVariant = JSON().with_variant(JSONB(), "postgresql")


class UserStats(Base):
    """Aggregate counters and streak for one user: optimistic ``version`` guards every write."""

    __tablename__ = "user_stats"

    user_id: Mapped[str] = mapped_column(String(64), primary_key=True)
    total_bookings: Mapped[int] = mapped_column(Integer, nullable=False, server_default="0")
    total_reviews: Mapped[int] = mapped_column(Integer, nullable=False, server_default="0")
    streak_days: Mapped[int] = mapped_column(Integer, nullable=False, server_default="0")
    longest_streak: Mapped[int] = mapped_column(Integer, nullable=False, server_default="0")
    last_activity_date: Mapped[date | None] = mapped_column(Date, nullable=True)
    spot_visits: Mapped[dict[str, Any]] = mapped_column(JSONVariant, nullable=False, default=dict)
    version: Mapped[int] = mapped_column(Integer, nullable=False, server_default="0")
    updated_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True, server_default=text("CURRENT_TIMESTAMP")
    )


class UserBadge(Base):
    """Progress toward one badge: UNIQUE(user_id, badge_id) makes awards idempotent."""

    __tablename__ = "user_badges"
    __table_args__ = (
        UniqueConstraint("user_id", "badge_id", name="user_badges_user_id_badge_id_key"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user_id: Mapped[str] = mapped_column(
        String(64), ForeignKey("user_stats.user_id", ondelete="CASCADE"), nullable=False, index=True
    )
    badge_id: Mapped[str] = mapped_column(String(64), nullable=False)
    progress: Mapped[float] = mapped_column(Float, nullable=False, server_default="0")
    completed: Mapped[bool] = mapped_column(Boolean, nullable=False, server_default=false())
    earned_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
