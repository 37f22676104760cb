"""Built-in badge catalog: the nine PicnicQuest badges."""

from __future__ import annotations

from picnicquest.achievements.catalog import BadgeCatalog

CATALOG_VERSION = "2025.1"

MARINA_BEACH_SPOT_ID = "marina-beach"

BADGE_SEED_DATA: list[dict] = [
    # Booking
    {
        "id": "first_timer",
        "name": "First Timer",
        "description": "Book your first picnic",
        "icon": "/badges/first-timer.svg",
        "category": "booking",
        "criteria": {"type": "count", "value": 1},
        "level": 1,
    },
    {
        "id": "regular_explorer",
        "name": "Regular Explorer",
        "description": "Book 5 picnics",
        "icon": "/badges/regular-explorer.svg",
        "category": "booking",
        "criteria": {"type": "count", "value": 5},
        "level": 2,
    },
    {
        "id": "picnic_expert",
        "name": "Picnic Expert",
        "description": "Book 10 picnics",
        "icon": "/badges/picnic-expert.svg",
        "category": "booking",
        "criteria": {"type": "count", "value": 10},
        "level": 3,
    },
    # Review
    {
        "id": "first_review",
        "name": "First Review",
        "description": "Write your first review",
        "icon": "/badges/first-review.svg",
        "category": "review",
        "criteria": {"type": "count", "value": 1},
        "level": 1,
    },
    {
        "id": "review_pro",
        "name": "Review Pro",
        "description": "Write 5 reviews",
        "icon": "/badges/review-pro.svg",
        "category": "review",
        "criteria": {"type": "count", "value": 5},
        "level": 2,
    },
    {
        "id": "critic",
        "name": "Critic",
        "description": "Write 10 reviews",
        "icon": "/badges/critic.svg",
        "category": "review",
        "criteria": {"type": "count", "value": 10},
        "level": 3,
    },
    # Exploration, social, special
    {
        "id": "beach_lover",
        "name": "Beach Lover",
        "description": "Visit Marina Beach",
        "icon": "/badges/beach-lover.svg",
        "category": "exploration",
        "criteria": {"type": "milestone", "value": 1, "target": MARINA_BEACH_SPOT_ID},
        "level": 1,
    },
    {
        "id": "consistent_explorer",
        "name": "Consistent Explorer",
        "description": "Visit for 3 consecutive days",
        "icon": "/badges/consistent-explorer.svg",
        "category": "social",
        "criteria": {"type": "streak", "value": 3},
        "level": 2,
    },
    {
        "id": "early_bird",
        "name": "Early Bird",
        "description": "Book a morning picnic (before 8 AM)",
        "icon": "/badges/early-bird.svg",
        "category": "special",
        "criteria": {"type": "achievement", "value": 1, "predicate": "morning_booking"},
        "level": 1,
    },
]


def build_default_catalog() -> BadgeCatalog:
    """Catalog built from ``BADGE_SEED_DATA``."""
    return BadgeCatalog.from_records(BADGE_SEED_DATA, version=CATALOG_VERSION)


def load_catalog(path: str | None = None) -> BadgeCatalog:
    """Catalog from ``path`` when configured, built-in badges otherwise."""
    if path:
        return BadgeCatalog.from_file(path)
    return build_default_catalog()
