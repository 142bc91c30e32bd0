"""Bounded worker pool for feed-cycles.

A fixed number of asyncio worker tasks read feeds from a bounded dispatch
queue, so at most ``concurrency`` feeds are in flight no matter how large a
batch is. Submission is fire-and-forget: outcomes surface only through the
handler's logging and metrics.

Example:
    >>> import asyncio
    >>> from feedagg.executor.pool import WorkerPool
    >>> async def example():
    ...     seen = []
    ...     async def handler(feed):
    ...         seen.append(feed)
    ...     async with WorkerPool(handler, concurrency=2) as pool:
    ...         await pool.submit(["a", "b", "c"])
    ...         await pool.join()
    ...     return sorted(seen)
    >>> asyncio.run(example())
    ['a', 'b', 'c']
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable, Iterable
from typing import Any, Generic, TypeVar

from feedagg.core.exceptions import ConfigurationError

T = TypeVar("T")

logger = logging.getLogger(__name__)


class WorkerPool(Generic[T]):
    """Fixed-size pool of asyncio workers.

    The pool size is set at construction and never grows or shrinks. The
    dispatch queue holds at most ``concurrency`` waiting items, so
    ``submit`` returns immediately while slots are free and otherwise waits
    for one.

    Args:
        handler: Async callable run once per submitted item.
        concurrency: Number of workers.
        name: Prefix for worker task names.
    """

    def __init__(
        self,
        handler: Callable[[T], Awaitable[Any]],
        *,
        concurrency: int,
        name: str = "feed-worker",
    ) -> None:
        if concurrency < 1:
            raise ConfigurationError(f"concurrency must be >= 1, got {concurrency}")

        self._handler = handler
        self._concurrency = concurrency
        self._name = name
        self._queue: asyncio.Queue[T] | None = None
        self._workers: list[asyncio.Task[None]] = []

        self._in_flight = 0
        self._max_in_flight = 0
        self._processed = 0
        self._errors = 0

    # --- Introspection ---

    @property
    def concurrency(self) -> int:
        """Number of workers."""
        return self._concurrency

    @property
    def running(self) -> bool:
        """Whether workers have been started and not closed."""
        return bool(self._workers)

    @property
    def in_flight(self) -> int:
        """Items currently being handled."""
        return self._in_flight

    @property
    def max_in_flight(self) -> int:
        """Highest number of items handled at once since start."""
        return self._max_in_flight

    @property
    def pending(self) -> int:
        """Items waiting in the dispatch queue."""
        return self._queue.qsize() if self._queue is not None else 0

    @property
    def processed(self) -> int:
        """Items handled to completion (successfully or not)."""
        return self._processed

    @property
    def errors(self) -> int:
        """Items whose handler raised."""
        return self._errors

    # --- Lifecycle ---

    async def start(self) -> None:
        """Spawn the workers. Idempotent."""
        if self._workers:
            return
        self._queue = asyncio.Queue(maxsize=self._concurrency)
        self._workers = [
            asyncio.create_task(self._work(), name=f"{self._name}-{i}")
            for i in range(self._concurrency)
        ]
        logger.debug("Started %d workers", self._concurrency)

    async def close(self, *, drain: bool = False) -> None:
        """Stop the workers.

        Args:
            drain: Wait for queued and in-flight items first. Otherwise they
                are abandoned.
        """
        if not self._workers:
            return
        if drain:
            await self.join()

        for task in self._workers:
            task.cancel()
        await asyncio.gather(*self._workers, return_exceptions=True)
        self._workers = []
        self._queue = None
        self._in_flight = 0
        logger.debug("Worker pool closed")

    async def __aenter__(self) -> WorkerPool[T]:
        await self.start()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.close()

    # --- Dispatch ---

    async def submit(self, items: Iterable[T]) -> int:
        """Enqueue items for processing.

        Returns:
            Number of items enqueued.

        Raises:
            RuntimeError: If the pool is not running.
        """
        if self._queue is None:
            raise RuntimeError("WorkerPool is not running. Call start() first.")

        count = 0
        for item in items:
            await self._queue.put(item)
            count += 1
        return count

    async def join(self) -> None:
        """Wait until every submitted item has been handled."""
        if self._queue is not None:
            await self._queue.join()

    async def _work(self) -> None:
        assert self._queue is not None
        queue = self._queue
        while True:
            item = await queue.get()
            self._in_flight += 1
            self._max_in_flight = max(self._max_in_flight, self._in_flight)
            try:
                await self._handler(item)
            except Exception:
                self._errors += 1
                logger.exception("Worker handler failed for %r", item)
            finally:
                self._in_flight -= 1
                queue.task_done()
            self._processed += 1
