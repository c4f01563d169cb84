"""Per-payment lock map."""

import asyncio

import pytest

from payrelay.common.locks import KeyedLock


@pytest.mark.asyncio
async def test_same_key_is_serialized():
    locks = KeyedLock()
    events = []

    async def worker(name):
        async with locks.hold("pay_1"):
            events.append(f"{name}-in")
            await asyncio.sleep(0.01)
            events.append(f"{name}-out")

    await asyncio.gather(worker("a"), worker("b"))
    assert events == ["a-in", "a-out", "b-in", "b-out"]


@pytest.mark.asyncio
async def test_different_keys_do_not_block_each_other():
    locks = KeyedLock()
    entered = asyncio.Event()

    async def holder():
        async with locks.hold("pay_1"):
            await asyncio.wait_for(entered.wait(), timeout=1)

    async def other():
        async with locks.hold("pay_2"):
            entered.set()

    await asyncio.gather(holder(), other())


@pytest.mark.asyncio
async def test_idle_locks_are_dropped():
    locks = KeyedLock()
    async with locks.hold("pay_1"):
        assert "pay_1" in locks
    assert "pay_1" not in locks
    assert len(locks) == 0


@pytest.mark.asyncio
async def test_lock_is_released_when_body_raises():
    locks = KeyedLock()
    with pytest.raises(RuntimeError):
        async with locks.hold("pay_1"):
            raise RuntimeError("boom")
    assert len(locks) == 0
    async with locks.hold("pay_1"):
        pass
