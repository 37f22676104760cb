"""Per-user lock registry."""

from __future__ import annotations

import asyncio

from picnicquest.achievements.locks import UserLockRegistry


async def test_lock_released_and_forgotten():
    locks = UserLockRegistry()
    async with locks.hold("alice"):
        assert locks.is_locked("alice")
        assert len(locks) == 1
    assert not locks.is_locked("alice")
    assert len(locks) == 0


async def test_same_user_serialized():
    locks = UserLockRegistry()
    order: list[str] = []

    async def worker(name: str) -> None:
        async with locks.hold("alice"):
            order.append(f"{name}-in")
            await asyncio.sleep(0)
            await asyncio.sleep(0)
            order.append(f"{name}-out")

    await asyncio.gather(worker("a"), worker("b"))

    assert order == ["a-in", "a-out", "b-in", "b-out"]
    assert len(locks) == 0


async def test_different_users_overlap():
    locks = UserLockRegistry()
    inside: set[str] = set()
    overlapped = asyncio.Event()

    async def worker(user_id: str) -> None:
        async with locks.hold(user_id):
            inside.add(user_id)
            if len(inside) == 2:
                overlapped.set()
            await asyncio.wait_for(overlapped.wait(), timeout=1)

    await asyncio.gather(worker("alice"), worker("bob"))

    assert overlapped.is_set()
    assert len(locks) == 0


async def test_lock_released_on_error():
    locks = UserLockRegistry()
    try:
        async with locks.hold("alice"):
            raise RuntimeError("boom")
    except RuntimeError:
        pass
    assert not locks.is_locked("alice")
    assert len(locks) == 0
