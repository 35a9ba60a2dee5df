"""Unit tests for conductor.core.locks module."""

import asyncio

from conductor.core.locks import LockRegistry, agent_key, task_key, workflow_key


class TestKeys:
    """Test aggregate key helpers."""

    def test_keys_are_namespaced(self) -> None:
        assert workflow_key("1") == "workflow:1"
        assert agent_key("1") == "agent:1"
        assert task_key("1") == "task:1"


class TestLockRegistry:
    """Test LockRegistry."""

    def test_get_returns_same_lock_per_key(self) -> None:
        locks = LockRegistry()

        assert locks.get("a") is locks.get("a")
        assert locks.get("a") is not locks.get("b")
        assert len(locks) == 2

    async def test_hold_locks_every_key(self) -> None:
        locks = LockRegistry()

        async with locks.hold("b", "a", "a"):
            assert locks.is_locked("a")
            assert locks.is_locked("b")
        assert not locks.is_locked("a")
        assert not locks.is_locked("b")

    async def test_hold_serializes_same_key(self) -> None:
        """A second holder of the same key waits for the first."""
        locks = LockRegistry()
        order: list[str] = []

        async def worker(name: str) -> None:
            async with locks.hold("workflow:1"):
                order.append(f"{name}-in")
                await asyncio.sleep(0)
                order.append(f"{name}-out")

        await asyncio.gather(worker("first"), worker("second"))

        assert order == ["first-in", "first-out", "second-in", "second-out"]

    async def test_opposite_key_orders_do_not_deadlock(self) -> None:
        locks = LockRegistry()

        async def worker(*keys: str) -> None:
            for _ in range(5):
                async with locks.hold(*keys):
                    await asyncio.sleep(0)

        await asyncio.wait_for(
            asyncio.gather(worker("agent:a", "agent:b"), worker("agent:b", "agent:a")),
            timeout=2,
        )

    async def test_released_keys_are_dropped(self) -> None:
        locks = LockRegistry()

        async with locks.hold("task:1", "agent:a"):
            assert len(locks) == 2

        assert len(locks) == 0

    async def test_lock_kept_while_someone_waits(self) -> None:
        """The waiter gets the same lock the first holder released."""
        locks = LockRegistry()
        entered = asyncio.Event()
        seen: list[int] = []

        async def first() -> None:
            async with locks.hold("workflow:1"):
                entered.set()
                await asyncio.sleep(0)
                seen.append(len(locks))

        async def second() -> None:
            await entered.wait()
            async with locks.hold("workflow:1"):
                seen.append(len(locks))

        await asyncio.gather(first(), second())

        assert seen == [1, 1]
        assert len(locks) == 0
