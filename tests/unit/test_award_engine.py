"""Award engine: stats application, badge evaluation and commit semantics."""

from __future__ import annotations

import asyncio
import itertools
from datetime import datetime, timedelta, timezone

import pytest
import pytest_asyncio

from picnicquest.achievements.catalog import BadgeCatalog, BadgeDefinition
from picnicquest.achievements.criteria import CriteriaSpec
from picnicquest.achievements.engine import AwardEngine
from picnicquest.achievements.errors import OutOfOrderEvent, PersistenceConflict, UnknownUser
from picnicquest.achievements.events import BookingCreated, ReviewSubmitted
from picnicquest.achievements.stats import apply_event
from picnicquest.achievements.store import InMemoryBadgeStore

EARNED_AT = datetime(2026, 3, 1, 9, 0, 0, tzinfo=timezone.utc)


def at(day: int, hour: int = 12) -> datetime:
    return datetime(2026, 3, day, hour, 0, 0, tzinfo=timezone.utc)


def booking(day: int, **kwargs) -> BookingCreated:
    return BookingCreated(at(day), **kwargs)


def review(day: int, **kwargs) -> ReviewSubmitted:
    return ReviewSubmitted(at(day), **kwargs)


@pytest_asyncio.fixture
async def alice(memory_store, catalog) -> str:
    await memory_store.register_user("alice", catalog)
    return "alice"


class TestScenarios:

    async def test_first_booking(self, award_engine, memory_store, alice):
        earned = await award_engine.handle(alice, booking(1))

        assert [b.id for b in earned] == ["first_timer"]
        snapshot = await memory_store.load(alice)
        assert snapshot.stats.total_bookings == 1
        assert snapshot.badges["first_timer"].completed
        assert snapshot.badges["first_timer"].earned_at == EARNED_AT
        assert not snapshot.badges["regular_explorer"].completed
        assert snapshot.badges["regular_explorer"].progress == 1

    async def test_fifth_booking(self, award_engine, memory_store, alice):
        for day in (1, 3, 5, 7):
            await award_engine.handle(alice, booking(day))
        assert (await memory_store.load(alice)).stats.total_bookings == 4

        earned = await award_engine.handle(alice, booking(9))

        assert [b.id for b in earned] == ["regular_explorer"]
        snapshot = await memory_store.load(alice)
        assert snapshot.stats.total_bookings == 5
        assert snapshot.badges["regular_explorer"].completed
        assert snapshot.badges["picnic_expert"].progress == 5

    async def test_second_review_does_not_reaward(self, award_engine, memory_store, alice):
        first = await award_engine.handle(alice, review(1))
        record = (await memory_store.load(alice)).badges["first_review"]

        second = await award_engine.handle(alice, review(2))

        assert [b.id for b in first] == ["first_review"]
        assert second == []
        snapshot = await memory_store.load(alice)
        assert snapshot.stats.total_reviews == 2
        assert snapshot.badges["first_review"] == record
        assert snapshot.badges["review_pro"].progress == 2

    async def test_out_of_order_rejected_without_mutation(self, award_engine, memory_store, alice):
        await award_engine.handle(alice, booking(5))
        before = await memory_store.load(alice)

        with pytest.raises(OutOfOrderEvent):
            await award_engine.handle(alice, booking(4))

        assert await memory_store.load(alice) is before


class TestBadgeRules:

    async def test_beach_lover(self, award_engine, alice):
        earned = await award_engine.handle(alice, booking(1, spot_id="marina-beach"))
        assert {b.id for b in earned} == {"first_timer", "beach_lover"}

    async def test_early_bird(self, award_engine, alice):
        earned = await award_engine.handle(alice, booking(1, picnic_at=datetime(2026, 3, 8, 7, 0)))
        assert "early_bird" in {b.id for b in earned}

    async def test_late_booking_is_not_early_bird(self, award_engine, memory_store, alice):
        earned = await award_engine.handle(alice, booking(1, picnic_at=datetime(2026, 3, 8, 11, 0)))
        assert "early_bird" not in {b.id for b in earned}
        assert not (await memory_store.load(alice)).badges["early_bird"].completed

    async def test_three_day_streak(self, award_engine, memory_store, alice):
        await award_engine.handle(alice, booking(1))
        await award_engine.handle(alice, review(2))
        earned = await award_engine.handle(alice, booking(3))

        assert [b.id for b in earned] == ["consistent_explorer"]
        assert (await memory_store.load(alice)).stats.streak_days == 3

    async def test_streak_progress_follows_reset(self, award_engine, memory_store, alice):
        await award_engine.handle(alice, booking(1))
        await award_engine.handle(alice, booking(2))
        assert (await memory_store.load(alice)).badges["consistent_explorer"].progress == 2

        await award_engine.handle(alice, booking(6))

        assert (await memory_store.load(alice)).badges["consistent_explorer"].progress == 1

    async def test_completed_badge_never_changes(self, catalog, memory_store, alice):
        ticks = (EARNED_AT + timedelta(minutes=n) for n in itertools.count())
        engine = AwardEngine(catalog, memory_store, clock=lambda: next(ticks))

        await engine.handle(alice, booking(1))
        awarded = (await memory_store.load(alice)).badges["first_timer"]
        for day in (2, 4, 6):
            assert "first_timer" not in {b.id for b in await engine.handle(alice, booking(day))}

        assert (await memory_store.load(alice)).badges["first_timer"] == awarded

    async def test_each_badge_awarded_once(self, award_engine, alice):
        seen: list[str] = []
        for day in range(1, 13):
            seen += [b.id for b in await award_engine.handle(alice, booking(day))]
        assert len(seen) == len(set(seen))
        assert {"first_timer", "regular_explorer", "picnic_expert", "consistent_explorer"} <= set(seen)


class TestCatalogChanges:

    async def test_unsupported_badge_skipped(self, memory_store):
        catalog = BadgeCatalog([
            BadgeDefinition("first_timer", "First Timer", "", "", "booking", CriteriaSpec("count", 1, counter="bookings")),
            BadgeDefinition("social_butterfly", "Social Butterfly", "", "", "social", CriteriaSpec("count", 1, counter="friends")),
        ])
        await memory_store.register_user("alice", catalog)
        engine = AwardEngine(catalog, memory_store)

        earned = await engine.handle("alice", booking(1))

        assert [b.id for b in earned] == ["first_timer"]
        snapshot = await memory_store.load("alice")
        assert snapshot.stats.total_bookings == 1
        assert not snapshot.badges["social_butterfly"].completed

    async def test_badge_added_after_registration(self, catalog, memory_store):
        old = BadgeCatalog([catalog.get("first_timer")])
        await memory_store.register_user("alice", old)
        await AwardEngine(old, memory_store).handle("alice", booking(1))

        earned = await AwardEngine(catalog, memory_store).handle("alice", booking(2, spot_id="marina-beach"))

        assert [b.id for b in earned] == ["beach_lover"]
        snapshot = await memory_store.load("alice")
        assert snapshot.badges["first_timer"].completed
        assert snapshot.badges["regular_explorer"].progress == 2


class TestConcurrency:

    async def test_same_user_events_serialized(self, catalog):
        class YieldingStore(InMemoryBadgeStore):
            async def load(self, user_id):
                snapshot = await super().load(user_id)
                await asyncio.sleep(0)
                return snapshot

        store = YieldingStore()
        await store.register_user("alice", catalog)
        engine = AwardEngine(catalog, store)

        results = await asyncio.gather(
            engine.handle("alice", booking(1)),
            engine.handle("alice", booking(1, hour=13)),
        )

        snapshot = await store.load("alice")
        assert snapshot.stats.total_bookings == 2
        assert snapshot.version == 2
        assert sum(b.id == "first_timer" for earned in results for b in earned) == 1

    async def test_conflict_replays_from_fresh_snapshot(self, catalog):
        class RacingStore(InMemoryBadgeStore):
            """Another writer commits a review between our load and commit, once."""

            loads = 0
            raced = False

            async def load(self, user_id):
                self.loads += 1
                return await super().load(user_id)

            async def commit_atomic(self, user_id, stats, badge_diffs, expected_version):
                if not self.raced:
                    self.raced = True
                    current = await super().load(user_id)
                    await super().commit_atomic(
                        user_id, apply_event(current.stats, review(1)), [], current.version,
                    )
                return await super().commit_atomic(user_id, stats, badge_diffs, expected_version)

        store = RacingStore()
        await store.register_user("alice", catalog)

        earned = await AwardEngine(catalog, store).handle("alice", booking(1))

        snapshot = await store.load("alice")
        assert store.loads == 3
        assert snapshot.stats.total_bookings == 1
        assert snapshot.stats.total_reviews == 1
        assert snapshot.version == 2
        assert {b.id for b in earned} == {"first_timer", "first_review"}

    async def test_conflict_gives_up_after_max_attempts(self, catalog):
        class ConflictingStore(InMemoryBadgeStore):
            commits = 0

            async def commit_atomic(self, user_id, stats, badge_diffs, expected_version):
                self.commits += 1
                raise PersistenceConflict("always stale")

        store = ConflictingStore()
        await store.register_user("alice", catalog)
        before = await store.load("alice")

        with pytest.raises(PersistenceConflict):
            await AwardEngine(catalog, store, max_attempts=2).handle("alice", booking(1))

        assert store.commits == 2
        assert await store.load("alice") is before


async def test_unknown_user(award_engine, memory_store):
    with pytest.raises(UnknownUser):
        await award_engine.handle("ghost", booking(1))


def test_max_attempts_must_be_positive(catalog, memory_store):
    with pytest.raises(ValueError):
        AwardEngine(catalog, memory_store, max_attempts=0)
