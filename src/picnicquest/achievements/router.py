"""Achievement API endpoints: catalog, user progress, and synchronous event handling."""

from __future__ import annotations

from datetime import datetime, timezone

from fastapi import APIRouter, Depends, HTTPException, Query, Response, status

from picnicquest.achievements.catalog import CATEGORIES, BadgeCatalog
from picnicquest.achievements.engine import AwardEngine
from picnicquest.achievements.events import build_event
from picnicquest.achievements.notifier import BadgeNotifier
from picnicquest.achievements.schemas import (
    AllBadgesResponse,
    BadgeDefinitionResponse,
    EventRequest,
    EventResultResponse,
    RegistrationResponse,
    StatsResponse,
    UserBadgeEntry,
    UserBadgesResponse,
)
from picnicquest.achievements.store import BadgeProgress, BadgeStore
from picnicquest.dependencies import get_award_engine, get_catalog, get_notifier, get_store

router = APIRouter(prefix="/api/v1", tags=["Achievements"])


# ── Catalog ──


@router.get("/badges", response_model=AllBadgesResponse)
async def list_badges(
    category: str | None = Query(default=None),
    catalog: BadgeCatalog = Depends(get_catalog),
):
    """All badge definitions, optionally filtered by category."""
    if category is not None and category not in CATEGORIES:
        raise HTTPException(status_code=400, detail=f"Unknown category: {category}")
    badges = catalog.by_category(category) if category else catalog.all()
    return AllBadgesResponse(
        version=catalog.version,
        badges=[BadgeDefinitionResponse.from_definition(b) for b in badges],
    )


@router.get("/badges/{badge_id}", response_model=BadgeDefinitionResponse)
async def get_badge(badge_id: str, catalog: BadgeCatalog = Depends(get_catalog)):
    """Single badge definition."""
    if badge_id not in catalog:
        raise HTTPException(status_code=404, detail="Badge not found")
    return BadgeDefinitionResponse.from_definition(catalog.get(badge_id))


# ── Per-user ──


@router.post("/users/{user_id}/achievements", response_model=RegistrationResponse)
async def register_user(
    user_id: str,
    response: Response,
    catalog: BadgeCatalog = Depends(get_catalog),
    store: BadgeStore = Depends(get_store),
):
    """Create the user's stats and badge progress records (called at sign-up)."""
    created = await store.register_user(user_id, catalog)
    response.status_code = status.HTTP_201_CREATED if created else status.HTTP_200_OK
    return RegistrationResponse(user_id=user_id, created=created)


@router.get("/users/{user_id}/stats", response_model=StatsResponse)
async def get_user_stats(user_id: str, store: BadgeStore = Depends(get_store)):
    """The user's current stats snapshot."""
    snapshot = await store.load(user_id)
    return StatsResponse.from_stats(snapshot.stats)


@router.get("/users/{user_id}/badges", response_model=UserBadgesResponse)
async def get_user_badges(
    user_id: str,
    catalog: BadgeCatalog = Depends(get_catalog),
    store: BadgeStore = Depends(get_store),
):
    """Earned badges and progress toward the rest."""
    snapshot = await store.load(user_id)

    earned: list[UserBadgeEntry] = []
    in_progress: list[UserBadgeEntry] = []
    for badge in catalog:
        record = snapshot.badges.get(badge.id) or BadgeProgress(badge.id)
        entry = UserBadgeEntry(
            badge=BadgeDefinitionResponse.from_definition(badge),
            progress=record.progress,
            required=badge.criteria.value,
            completed=record.completed,
            earned_at=record.earned_at,
        )
        (earned if record.completed else in_progress).append(entry)

    return UserBadgesResponse(
        earned=earned,
        in_progress=in_progress,
        total_available=len(catalog),
        total_earned=len(earned),
    )


@router.post("/users/{user_id}/events", response_model=EventResultResponse)
async def submit_event(
    user_id: str,
    body: EventRequest,
    engine: AwardEngine = Depends(get_award_engine),
    notifier: BadgeNotifier = Depends(get_notifier),
):
    """Apply one already-stored booking/review event and return newly earned badges."""
    occurred_at = body.occurred_at or datetime.now(timezone.utc)
    event = build_event(body.event, body.data, occurred_at)
    earned = await engine.handle(user_id, event)
    await notifier.badges_earned(user_id, earned)
    return EventResultResponse(
        user_id=user_id,
        earned=[BadgeDefinitionResponse.from_definition(b) for b in earned],
    )
