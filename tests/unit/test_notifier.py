"""Badge-earned pub/sub notifications."""

from __future__ import annotations

import json

from picnicquest.achievements.notifier import BADGE_EARNED_CHANNEL, BadgeNotifier


async def test_one_message_per_badge(fake_redis, catalog):
    badges = [catalog.get("first_timer"), catalog.get("beach_lover")]

    published = await BadgeNotifier(fake_redis).badges_earned("alice", badges)

    assert published == 2
    channels = [c.args[0] for c in fake_redis.publish.await_args_list]
    assert channels == [BADGE_EARNED_CHANNEL, BADGE_EARNED_CHANNEL]
    payload = json.loads(fake_redis.publish.await_args_list[0].args[1])
    assert payload["user_id"] == "alice"
    assert payload["badge_id"] == "first_timer"
    assert payload["name"] == "First Timer"


async def test_nothing_earned(fake_redis):
    assert await BadgeNotifier(fake_redis).badges_earned("alice", []) == 0
    fake_redis.publish.assert_not_awaited()


async def test_without_redis(catalog):
    assert await BadgeNotifier(None).badges_earned("alice", [catalog.get("first_timer")]) == 0


async def test_publish_failure_is_not_fatal(fake_redis, catalog):
    fake_redis.publish.side_effect = [ConnectionError("redis down"), 1]
    badges = [catalog.get("first_timer"), catalog.get("beach_lover")]

    assert await BadgeNotifier(fake_redis).badges_earned("alice", badges) == 1
