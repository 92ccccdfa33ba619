"""Unit tests for per-service operation locks."""

import asyncio

import pytest

from oaServiceControl.control.locks import ServiceLockRegistry


class TestServiceLockRegistry:
    """Test ServiceLockRegistry."""

    @pytest.mark.asyncio
    async def test_same_key_is_serialized(self):
        locks = ServiceLockRegistry()
        events = []

        async def worker(name):
            async with locks.hold((1, "Spooler")):
                events.append(f"{name}-in")
                await asyncio.sleep(0.01)
                events.append(f"{name}-out")

        await asyncio.gather(worker("a"), worker("b"))

        assert events == ["a-in", "a-out", "b-in", "b-out"]

    @pytest.mark.asyncio
    async def test_different_keys_run_concurrently(self):
        locks = ServiceLockRegistry()
        entered = asyncio.Event()
        release = asyncio.Event()

        async def first():
            async with locks.hold((1, "Spooler")):
                entered.set()
                await release.wait()

        task = asyncio.create_task(first())
        await entered.wait()

        async with locks.hold((1, "W32Time")):
            assert locks.is_locked((1, "Spooler"))

        release.set()
        await task

    @pytest.mark.asyncio
    async def test_locks_dropped_when_unused(self):
        locks = ServiceLockRegistry()

        async with locks.hold("key"):
            assert len(locks) == 1
            assert locks.is_locked("key")

        assert len(locks) == 0
        assert not locks.is_locked("key")

    @pytest.mark.asyncio
    async def test_lock_released_on_error(self):
        locks = ServiceLockRegistry()

        with pytest.raises(RuntimeError):
            async with locks.hold("key"):
                raise RuntimeError("boom")

        assert len(locks) == 0
