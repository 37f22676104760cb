"""Achievement error hierarchy.

Every error carries a stable ``code`` and the HTTP status the API maps it
to. Only ``UnsupportedCriteriaKind`` raised during evaluation is ever
caught and skipped; everything else propagates to the caller of
``AwardEngine.handle`` with no state written.
"""

from __future__ import annotations


class AchievementError(Exception):
    """Base exception for the achievement engine."""

    code = "achievement_error"
    http_status = 500

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message

    def to_response(self) -> dict[str, str]:
        return {"detail": self.message, "code": self.code}


class CatalogError(AchievementError):
    """A badge definition is invalid; raised while the catalog is built."""

    code = "catalog_error"


class DuplicateBadgeError(CatalogError):
    code = "duplicate_badge"


class UnsupportedCriteriaKind(CatalogError):
    """Criteria type (or count counter) the evaluator does not understand."""

    code = "unsupported_criteria_kind"

    def __init__(self, kind: str, badge_id: str | None = None) -> None:
        where = f" on badge {badge_id!r}" if badge_id else ""
        super().__init__(f"Unsupported criteria kind {kind!r}{where}")
        self.kind = kind
        self.badge_id = badge_id


class OutOfOrderEvent(AchievementError):
    """Event is dated before the user's last recorded activity."""

    code = "out_of_order_event"
    http_status = 409


class UnknownUser(AchievementError):
    """No stats record exists for the user."""

    code = "unknown_user"
    http_status = 404

    def __init__(self, user_id: str) -> None:
        super().__init__(f"No achievement record for user {user_id!r}")
        self.user_id = user_id


class PersistenceConflict(AchievementError):
    """User state changed between load and commit; replay from a fresh snapshot."""

    code = "persistence_conflict"
    http_status = 409


class MalformedEvent(AchievementError):
    """Event envelope or payload failed validation."""

    code = "malformed_event"
    http_status = 422
