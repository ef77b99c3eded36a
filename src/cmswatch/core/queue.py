"""Bounded-concurrency FIFO queue for remote operations."""

import asyncio
from typing import Awaitable, Callable, Set, TypeVar

from ..utils.logging import get_logger


T = TypeVar('T')

DEFAULT_CONCURRENCY = 10


class OperationQueue:
    """Runs queued coroutines with a fixed number of concurrent slots.

    Tasks start in the order they were enqueued as slots free up; completion
    order is whatever the tasks themselves produce. The queue never inspects
    results, it only schedules.
    """

    def __init__(self, concurrency: int = DEFAULT_CONCURRENCY):
        """Initialize the queue.

        Args:
            concurrency: Maximum number of tasks executing at once
        """
        if concurrency < 1:
            raise ValueError("concurrency must be at least 1")

        self.concurrency = concurrency
        self.semaphore = asyncio.Semaphore(concurrency)
        self.active = 0
        self._tasks: Set[asyncio.Task] = set()

        self.logger = get_logger(self.__class__.__name__)

    @property
    def pending(self) -> int:
        """Tasks enqueued but still waiting for a slot."""
        return len(self._tasks) - self.active

    @property
    def size(self) -> int:
        """Tasks enqueued and not yet settled."""
        return len(self._tasks)

    def enqueue(self, task_func: Callable[[], Awaitable[T]]) -> "asyncio.Task[T]":
        """Schedule ``task_func`` and return a task resolving to its result.

        Must be called from inside the running event loop.
        """
        task = asyncio.get_running_loop().create_task(self._run(task_func))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task

    async def _run(self, task_func: Callable[[], Awaitable[T]]) -> T:
        async with self.semaphore:
            self.active += 1
            try:
                return await task_func()
            finally:
                self.active -= 1

    async def join(self) -> None:
        """Wait until every enqueued task has settled, including late arrivals."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)
