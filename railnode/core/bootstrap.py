"""
Per-key memo for one-time async provisioning (tables, collections).

Concurrent first callers for the same key share one in-flight task. A task
that fails is evicted from the cache the moment it completes, before any
waiter resumes, so the next call starts a fresh attempt.
"""

from __future__ import annotations

import asyncio
from typing import Awaitable, Callable, Generic, TypeVar

T = TypeVar("T")


class BootstrapCache(Generic[T]):
    def __init__(self) -> None:
        self._entries: dict[str, asyncio.Task[T]] = {}

    def __contains__(self, key: str) -> bool:
        return key in self._entries

    def __len__(self) -> int:
        return len(self._entries)

    async def get(self, key: str, factory: Callable[[], Awaitable[T]]) -> T:
        # Lookup and insert happen with no await in between, so on a single
        # event loop no second task can be started for the same key.
        task = self._entries.get(key)
        if task is None:
            task = asyncio.ensure_future(factory())
            self._entries[key] = task
            task.add_done_callback(lambda done: self._evict_failed(key, done))
        # shield: a cancelled waiter must not cancel the shared bootstrap.
        return await asyncio.shield(task)

    def _evict_failed(self, key: str, task: asyncio.Task[T]) -> None:
        if task.cancelled() or task.exception() is not None:
            if self._entries.get(key) is task:
                del self._entries[key]

    def clear(self) -> None:
        for task in self._entries.values():
            if not task.done():
                task.cancel()
        self._entries.clear()
