"""Per-key deduplication of concurrent conversions.

The first caller for a key starts the work as a task; later callers for the
same key await that task instead of starting their own. Every caller awaits
through ``asyncio.shield`` so a cancelled request does not cancel the work
others are waiting on. The key is released when the task finishes, whether
it succeeded or failed, so the next request after a failure starts afresh.
"""

from __future__ import annotations

import asyncio
import logging
from functools import partial
from typing import Awaitable, Callable, Generic, Hashable, TypeVar

from rdfproxy.observability.metrics import set_in_flight

logger = logging.getLogger(__name__)

T = TypeVar("T")


class InFlightConversions(Generic[T]):
    """Table of running conversions keyed by cache key."""

    def __init__(self) -> None:
        self._tasks: dict[Hashable, asyncio.Task[T]] = {}

    def __len__(self) -> int:
        return len(self._tasks)

    def __contains__(self, key: Hashable) -> bool:
        return key in self._tasks

    async def run(self, key: Hashable, work: Callable[[], Awaitable[T]]) -> T:
        """Run ``work`` for a key, or join the execution already running.

        All callers for one execution receive the same result or the same
        exception.
        """
        task = self._tasks.get(key)
        if task is None or task.done():
            task = asyncio.ensure_future(work())
            self._tasks[key] = task
            task.add_done_callback(partial(self._release, key))
            set_in_flight(len(self._tasks))
        else:
            logger.debug("Joining in-flight conversion for %s", key)
        return await asyncio.shield(task)

    def _release(self, key: Hashable, task: asyncio.Task[T]) -> None:
        if self._tasks.get(key) is task:
            del self._tasks[key]
        set_in_flight(len(self._tasks))
        if task.cancelled():
            return
        # Retrieve the exception so it is not reported as never retrieved
        # when every waiter has gone away
        exc = task.exception()
        if exc is not None:
            logger.debug("Conversion for %s failed: %s", key, exc)

    async def aclose(self) -> None:
        """Cancel running conversions."""
        tasks = list(self._tasks.values())
        for task in tasks:
            task.cancel()
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)
        self._tasks.clear()
