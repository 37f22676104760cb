"""Achievement tables.

Creates user_stats (aggregate counters, streak and optimistic version)
and user_badges (per-badge progress, one row per user and badge).

Revision ID: 001_achievement_tables
Revises:
Create Date: 2026-10-19
"""

from collections.abc import Sequence

from alembic import op

revision: str = "001_achievement_tables"
down_revision: str | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None


def upgrade() -> None:
    # --- User Stats ---
    op.execute("""
        CREATE TABLE IF NOT EXISTS user_stats (
            user_id VARCHAR(64) PRIMARY KEY,
            total_bookings INTEGER NOT NULL DEFAULT 0,
            total_reviews INTEGER NOT NULL DEFAULT 0,
            streak_days INTEGER NOT NULL DEFAULT 0,
            longest_streak INTEGER NOT NULL DEFAULT 0,
            last_activity_date DATE,
            spot_visits JSONB NOT NULL DEFAULT '{}',
            version INTEGER NOT NULL DEFAULT 0,
            updated_at TIMESTAMPTZ DEFAULT NOW()
        )
    """)

    # --- User Badges ---
    op.execute("""
        CREATE TABLE IF NOT EXISTS user_badges (
            id SERIAL PRIMARY KEY,
            user_id VARCHAR(64) NOT NULL REFERENCES user_stats(user_id) ON DELETE CASCADE,
            badge_id VARCHAR(64) NOT NULL,
            progress DOUBLE PRECISION NOT NULL DEFAULT 0,
            completed BOOLEAN NOT NULL DEFAULT false,
            earned_at TIMESTAMPTZ,
            CONSTRAINT user_badges_user_id_badge_id_key UNIQUE (user_id, badge_id)
        )
    """)
    op.execute("""
        CREATE INDEX IF NOT EXISTS ix_user_badges_user_id
        ON user_badges(user_id)
    """)
    op.execute("""
        CREATE INDEX IF NOT EXISTS idx_user_badges_completed
        ON user_badges(user_id, completed)
    """)


def downgrade() -> None:
    op.execute("DROP TABLE IF EXISTS user_badges")
    op.execute("DROP TABLE IF EXISTS user_stats")
