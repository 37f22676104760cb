"""Badge catalog: immutable registry of badge definitions.

Built once at startup from seed records or a JSON file and passed to the
award engine. There is no mutation API; a new catalog version means a new
``BadgeCatalog`` instance.
"""

from __future__ import annotations

import json
import logging
from collections.abc import Iterable, Iterator
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from pydantic import BaseModel, Field, ValidationError

from picnicquest.achievements.criteria import (
    ACHIEVEMENT,
    CATEGORY_COUNTERS,
    COUNT,
    COUNTERS,
    CRITERIA_KINDS,
    MILESTONE,
    PREDICATES,
    CriteriaSpec,
)
from picnicquest.achievements.errors import CatalogError, DuplicateBadgeError, UnsupportedCriteriaKind

logger = logging.getLogger(__name__)

CATEGORIES = ("booking", "review", "exploration", "social", "special")


@dataclass(frozen=True)
class BadgeDefinition:
    """One badge. ``id`` is the identity; ``name`` is for display."""

    id: str
    name: str
    description: str
    icon: str
    category: str
    criteria: CriteriaSpec
    level: int = 1


class CriteriaRecord(BaseModel):
    type: str
    value: int = 1
    target: str | None = None
    counter: str | None = None
    predicate: str | None = None


class BadgeRecord(BaseModel):
    """Raw badge definition as found in seed data or a catalog file."""

    id: str = Field(min_length=1, max_length=64)
    name: str = Field(min_length=1)
    description: str = ""
    icon: str = ""
    category: str
    criteria: CriteriaRecord
    level: int = 1


def _build_definition(record: BadgeRecord) -> BadgeDefinition:
    criteria = record.criteria
    if criteria.type not in CRITERIA_KINDS:
        raise UnsupportedCriteriaKind(criteria.type, record.id)
    if record.category not in CATEGORIES:
        raise CatalogError(f"Badge {record.id!r} has unknown category {record.category!r}")
    if criteria.value < 1:
        raise CatalogError(f"Badge {record.id!r} needs a criteria value of at least 1")

    counter = criteria.counter
    if criteria.type == COUNT:
        counter = counter or CATEGORY_COUNTERS.get(record.category)
        if counter not in COUNTERS:
            raise CatalogError(f"Count badge {record.id!r} has no counter for category {record.category!r}")
    elif criteria.type == MILESTONE and not criteria.target:
        raise CatalogError(f"Milestone badge {record.id!r} needs a target")
    elif criteria.type == ACHIEVEMENT and criteria.predicate not in PREDICATES:
        raise CatalogError(f"Achievement badge {record.id!r} has unknown predicate {criteria.predicate!r}")

    return BadgeDefinition(
        id=record.id,
        name=record.name,
        description=record.description,
        icon=record.icon,
        category=record.category,
        criteria=CriteriaSpec(
            type=criteria.type,
            value=criteria.value,
            target=criteria.target,
            counter=counter,
            predicate=criteria.predicate,
        ),
        level=record.level,
    )


class BadgeCatalog:
    """Read-only, ordered set of badge definitions."""

    def __init__(self, definitions: Iterable[BadgeDefinition], version: str = "1") -> None:
        by_id: dict[str, BadgeDefinition] = {}
        names: set[str] = set()
        for definition in definitions:
            if definition.criteria.type not in CRITERIA_KINDS:
                raise UnsupportedCriteriaKind(definition.criteria.type, definition.id)
            if definition.id in by_id:
                raise DuplicateBadgeError(f"Duplicate badge id {definition.id!r}")
            if definition.name in names:
                raise DuplicateBadgeError(f"Duplicate badge name {definition.name!r}")
            by_id[definition.id] = definition
            names.add(definition.name)

        self.version = version
        self._by_id = by_id
        self._ordered = tuple(sorted(by_id.values(), key=lambda b: (b.level, b.name)))

    @classmethod
    def from_records(cls, records: Iterable[dict[str, Any]], version: str = "1") -> BadgeCatalog:
        """Validate raw records and build a catalog."""
        definitions = []
        for raw in records:
            try:
                record = BadgeRecord.model_validate(raw)
            except ValidationError as exc:
                raise CatalogError(f"Invalid badge record {raw.get('id', '?')!r}: {exc}") from exc
            definitions.append(_build_definition(record))
        catalog = cls(definitions, version=version)
        logger.info("Loaded badge catalog v%s with %d badges", version, len(catalog))
        return catalog

    @classmethod
    def from_file(cls, path: str | Path) -> BadgeCatalog:
        """Load ``{"version": ..., "badges": [...]}`` from a JSON file."""
        document = json.loads(Path(path).read_text(encoding="utf-8"))
        return cls.from_records(document.get("badges", []), version=str(document.get("version", "1")))

    def all(self) -> tuple[BadgeDefinition, ...]:
        """All badges ordered by level, then name."""
        return self._ordered

    def by_category(self, category: str) -> tuple[BadgeDefinition, ...]:
        return tuple(b for b in self._ordered if b.category == category)

    def get(self, badge_id: str) -> BadgeDefinition:
        return self._by_id[badge_id]

    def ids(self) -> frozenset[str]:
        return frozenset(self._by_id)

    def __len__(self) -> int:
        return len(self._ordered)

    def __iter__(self) -> Iterator[BadgeDefinition]:
        return iter(self._ordered)

    def __contains__(self, badge_id: object) -> bool:
        return badge_id in self._by_id
