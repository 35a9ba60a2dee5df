"""Per-aggregate asyncio locks.

Operations on the same workflow, agent or task are serialized; operations on
different aggregates run concurrently. Keys look like "workflow:<id>",
"agent:<id>" and "task:<id>".
"""

from __future__ import annotations

import asyncio
from collections import Counter
from collections.abc import AsyncIterator
from contextlib import AsyncExitStack, asynccontextmanager


def workflow_key(workflow_id: str) -> str:
    return f"workflow:{workflow_id}"


def agent_key(agent_id: str) -> str:
    return f"agent:{agent_id}"


def task_key(task_id: str) -> str:
    return f"task:{task_id}"


class LockRegistry:
    """Lazily created asyncio.Lock per aggregate key.

    A key's lock is dropped once no caller holds or waits for it, so the
    registry only grows with the aggregates currently in use.

    Example:
        locks = LockRegistry()
        async with locks.hold(workflow_key(wf_id)):
            ...  # mutate the workflow

        async with locks.hold(task_key(task_id), agent_key(a), agent_key(b)):
            ...  # move a task between two agents
    """

    def __init__(self) -> None:
        self._locks: dict[str, asyncio.Lock] = {}
        self._users: Counter[str] = Counter()

    def get(self, key: str) -> asyncio.Lock:
        lock = self._locks.get(key)
        if lock is None:
            lock = asyncio.Lock()
            self._locks[key] = lock
        return lock

    @asynccontextmanager
    async def hold(self, *keys: str) -> AsyncIterator[None]:
        """Acquire every key's lock, in sorted order to rule out deadlock."""
        ordered = sorted(set(keys))
        self._users.update(ordered)
        try:
            async with AsyncExitStack() as stack:
                for key in ordered:
                    await stack.enter_async_context(self.get(key))
                yield
        finally:
            for key in ordered:
                self._users[key] -= 1
                if self._users[key] == 0:
                    del self._users[key]
                    self._locks.pop(key, None)

    def is_locked(self, key: str) -> bool:
        lock = self._locks.get(key)
        return lock is not None and lock.locked()

    def __len__(self) -> int:
        return len(self._locks)


__all__ = ["LockRegistry", "agent_key", "task_key", "workflow_key"]
