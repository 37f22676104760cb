"""Shared FastAPI dependencies: resources built in the app lifespan."""

from typing import Any

from fastapi import Request

from picnicquest.achievements.catalog import BadgeCatalog
from picnicquest.achievements.engine import AwardEngine
from picnicquest.achievements.notifier import BadgeNotifier
from picnicquest.achievements.store import BadgeStore


def get_catalog(request: Request) -> BadgeCatalog:
    return request.app.state.catalog


def get_store(request: Request) -> BadgeStore:
    return request.app.state.badge_store


def get_award_engine(request: Request) -> AwardEngine:
    return request.app.state.award_engine


def get_notifier(request: Request) -> BadgeNotifier:
    return request.app.state.notifier


def get_redis(request: Request) -> Any:
    """The Redis client, or None when the app runs without one."""
    return getattr(request.app.state, "redis", None)
