"""Single-flight registry for in-progress fetches."""

import asyncio
from typing import Awaitable, Callable, TypeVar

T = TypeVar("T")


class InFlightRegistry:
    """Shares one in-progress task per cache key among concurrent callers.

    The first caller for a key starts the work; callers arriving while it
    runs await the same task. The registry is process-local: separate
    processes with a simultaneous cold cache each run their own fetch.
    """

    def __init__(self) -> None:
        self._tasks: dict[str, asyncio.Task] = {}

    def in_flight(self, key: str) -> bool:
        task = self._tasks.get(key)
        return task is not None and not task.done()

    async def run(self, key: str, factory: Callable[[], Awaitable[T]]) -> T:
        task = self._tasks.get(key)
        if task is None or task.done():
            task = asyncio.ensure_future(factory())
            self._tasks[key] = task
            task.add_done_callback(lambda done, key=key: self._discard(key, done))
        # A cancelled waiter must not cancel the shared fetch
        return await asyncio.shield(task)

    def forget(self, key: str) -> None:
        """Stop handing out the current task for ``key``; it still runs to completion."""
        self._tasks.pop(key, None)

    def _discard(self, key: str, task: asyncio.Task) -> None:
        if self._tasks.get(key) is task:
            del self._tasks[key]
