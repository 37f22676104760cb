"""Domain events consumed by the award engine, and their Redis stream envelope.

Booking and review subsystems publish an event only after their own record
is durably stored. Every stream message shares one envelope:

{
    "event": "booking_created" | "review_submitted",
    "user_id": "<user id>",
    "ts": 1760870400.0,
    "data": "<JSON payload>"
}
"""

from __future__ import annotations

import dataclasses
import json
import logging
from dataclasses import dataclass
from datetime import date, datetime, timezone
from enum import Enum
from typing import Any, Union

from pydantic import BaseModel, Field, ValidationError

from picnicquest.achievements.errors import MalformedEvent

logger = logging.getLogger(__name__)


class EventKind(str, Enum):
    """Event types the engine understands."""

    BOOKING_CREATED = "booking_created"
    REVIEW_SUBMITTED = "review_submitted"


STREAMS: dict[str, EventKind] = {
    "booking:created": EventKind.BOOKING_CREATED,
    "review:submitted": EventKind.REVIEW_SUBMITTED,
}
STREAM_FOR_KIND: dict[EventKind, str] = {kind: stream for stream, kind in STREAMS.items()}


def to_utc(dt: datetime) -> datetime:
    """Naive datetimes are taken as UTC."""
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


@dataclass(frozen=True)
class BookingCreated:
    occurred_at: datetime
    booking_id: str | None = None
    spot_id: str | None = None
    picnic_at: datetime | None = None  # local time the picnic is booked for
    party_size: int | None = None

    kind = EventKind.BOOKING_CREATED

    @property
    def activity_date(self) -> date:
        return to_utc(self.occurred_at).date()


@dataclass(frozen=True)
class ReviewSubmitted:
    occurred_at: datetime
    review_id: str | None = None
    spot_id: str | None = None
    location_name: str | None = None

    kind = EventKind.REVIEW_SUBMITTED

    @property
    def activity_date(self) -> date:
        return to_utc(self.occurred_at).date()


DomainEvent = Union[BookingCreated, ReviewSubmitted]


# --- Wire payloads ---


class BookingCreatedData(BaseModel):
    """Payload for booking_created events."""

    booking_id: str | None = None
    spot_id: str | None = None
    picnic_at: datetime | None = None
    party_size: int | None = Field(default=None, ge=1)


class ReviewSubmittedData(BaseModel):
    """Payload for review_submitted events."""

    review_id: str | None = None
    spot_id: str | None = None
    location_name: str | None = None


class EventEnvelope(BaseModel):
    """Common envelope for all stream messages."""

    event: EventKind
    user_id: str = Field(min_length=1)
    ts: float = Field(allow_inf_nan=False)
    data: dict[str, Any] = Field(default_factory=dict)


_PAYLOADS: dict[EventKind, tuple[type[BaseModel], type]] = {
    EventKind.BOOKING_CREATED: (BookingCreatedData, BookingCreated),
    EventKind.REVIEW_SUBMITTED: (ReviewSubmittedData, ReviewSubmitted),
}


def build_event(kind: EventKind | str, payload: dict[str, Any], occurred_at: datetime) -> DomainEvent:
    """Validate a payload and build the matching domain event."""
    try:
        kind = EventKind(kind)
    except ValueError:
        raise MalformedEvent(f"Unknown event kind {kind!r}") from None

    data_model, event_cls = _PAYLOADS[kind]
    try:
        data = data_model.model_validate(payload)
    except ValidationError as exc:
        raise MalformedEvent(f"Invalid {kind.value} payload: {exc.error_count()} error(s)") from exc
    return event_cls(occurred_at=to_utc(occurred_at), **data.model_dump())


def encode_envelope(user_id: str, event: DomainEvent) -> dict[str, str]:
    """Flatten an event into Redis stream fields."""
    payload = {
        name: value.isoformat() if isinstance(value, datetime) else value
        for name, value in dataclasses.asdict(event).items()
        if name != "occurred_at" and value is not None
    }
    return {
        "event": event.kind.value,
        "user_id": user_id,
        "ts": repr(to_utc(event.occurred_at).timestamp()),
        "data": json.dumps(payload),
    }


def parse_envelope(fields: dict[str, str]) -> tuple[str, DomainEvent]:
    """Parse a stream message into ``(user_id, event)``.

    ``data`` normally arrives as a JSON string; an already-decoded mapping
    is accepted as well.
    """
    raw = dict(fields)
    data = raw.get("data", "{}")
    if isinstance(data, str):
        try:
            raw["data"] = json.loads(data)
        except json.JSONDecodeError:
            raise MalformedEvent("Event data is not valid JSON") from None

    try:
        envelope = EventEnvelope.model_validate(raw)
    except ValidationError as exc:
        raise MalformedEvent(f"Invalid event envelope: {exc.error_count()} error(s)") from exc

    try:
        occurred_at = datetime.fromtimestamp(envelope.ts, tz=timezone.utc)
    except (ValueError, OverflowError, OSError):
        raise MalformedEvent(f"Event timestamp out of range: {envelope.ts!r}") from None
    return envelope.user_id, build_event(envelope.event, envelope.data, occurred_at)


class EventSource:
    """Publishes domain events to Redis Streams for the achievement consumer."""

    def __init__(self, redis: Any) -> None:
        self.redis = redis

    async def emit(
        self,
        user_id: str,
        kind: EventKind | str,
        payload: dict[str, Any],
        occurred_at: datetime,
    ) -> str:
        """Validate and append one event; returns the stream message id."""
        event = build_event(kind, payload, occurred_at)
        stream = STREAM_FOR_KIND[event.kind]
        msg_id = await self.redis.xadd(stream, encode_envelope(user_id, event))
        logger.debug("Emitted %s for user %s (id=%s)", event.kind.value, user_id, msg_id)
        return msg_id
