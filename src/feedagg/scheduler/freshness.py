"""Freshness scheduler.

On a fixed cadence, selects the stalest feeds from storage and hands them to
the worker pool. Selection is stateless: whatever ``last_fetched_at`` says
at tick time decides the batch, never-fetched feeds first.
"""

from __future__ import annotations

import asyncio
import logging
from datetime import timedelta
from typing import TYPE_CHECKING

from feedagg.core.exceptions import ConfigurationError

if TYPE_CHECKING:
    from feedagg.executor.pool import WorkerPool
    from feedagg.models.feed import Feed
    from feedagg.protocols.storage import FeedStorage

logger = logging.getLogger(__name__)


class FreshnessScheduler:
    """Tick loop that dispatches the stalest feeds.

    Ticks fire at ``start + k * interval``. A tick that overruns its slot
    causes the missed slots to be skipped, never queued up.

    Example:
        >>> import asyncio
        >>> from feedagg.executor import WorkerPool
        >>> from feedagg.scheduler import FreshnessScheduler
        >>> from feedagg.storage.memory import MemoryStorage
        >>> async def example():
        ...     storage = MemoryStorage()
        ...     await storage.add_feed("blog", "https://example.com/rss")
        ...     async def handler(feed):
        ...         pass
        ...     async with WorkerPool(handler, concurrency=2) as pool:
        ...         scheduler = FreshnessScheduler(storage, pool, batch_size=2, interval=60)
        ...         batch = await scheduler.tick()
        ...     return [f.name for f in batch]
        >>> asyncio.run(example())
        ['blog']
    """

    def __init__(
        self,
        storage: FeedStorage,
        pool: WorkerPool[Feed],
        *,
        batch_size: int,
        interval: float | timedelta,
        fetch_on_start: bool = True,
    ) -> None:
        """Initialize the scheduler.

        Args:
            storage: Source of feeds to refresh.
            pool: Pool that runs the feed-cycles.
            batch_size: Maximum feeds selected per tick.
            interval: Time between ticks, in seconds or as a timedelta.
            fetch_on_start: Fire the first tick immediately instead of one
                interval after start.

        Raises:
            ConfigurationError: If batch_size or interval is not positive.
        """
        seconds = interval.total_seconds() if isinstance(interval, timedelta) else float(interval)
        if batch_size < 1:
            raise ConfigurationError(f"batch_size must be >= 1, got {batch_size}")
        if seconds <= 0:
            raise ConfigurationError(f"interval must be positive, got {interval!r}")

        self._storage = storage
        self._pool = pool
        self._batch_size = batch_size
        self._interval = seconds
        self._fetch_on_start = fetch_on_start
        self._stopping = asyncio.Event()
        self._running = False
        self._ticks = 0
        self._dispatched = 0
        self._skipped = 0

    @property
    def interval(self) -> float:
        """Seconds between ticks."""
        return self._interval

    @property
    def batch_size(self) -> int:
        """Maximum feeds per tick."""
        return self._batch_size

    @property
    def running(self) -> bool:
        """Whether ``run`` is active."""
        return self._running

    @property
    def ticks(self) -> int:
        """Ticks fired so far."""
        return self._ticks

    @property
    def dispatched(self) -> int:
        """Feeds handed to the pool so far."""
        return self._dispatched

    @property
    def skipped(self) -> int:
        """Tick slots missed because a tick overran."""
        return self._skipped

    async def tick(self) -> list[Feed]:
        """Select one batch and submit it to the pool.

        Waits while the pool has no free slot. A selection failure is logged
        and yields an empty batch; the next tick tries again.

        Returns:
            The feeds dispatched, stalest first.
        """
        self._ticks += 1

        try:
            feeds = await self._storage.list_feeds_to_fetch(self._batch_size)
        except Exception:
            logger.exception("Tick %d: could not select feeds to fetch", self._ticks)
            return []

        if not feeds:
            logger.debug("Tick %d: no feeds to fetch", self._ticks)
            return []

        logger.info("Tick %d: dispatching %d feeds", self._ticks, len(feeds))
        self._dispatched += await self._pool.submit(feeds)
        return feeds

    async def run(self) -> None:
        """Tick until ``stop`` is called."""
        if self._running:
            raise RuntimeError("Scheduler is already running")

        self._running = True
        loop = asyncio.get_running_loop()
        next_tick = loop.time() + (0.0 if self._fetch_on_start else self._interval)
        logger.info(
            "Scheduler started: every %.1fs, batches of %d", self._interval, self._batch_size
        )

        try:
            while not self._stopping.is_set():
                delay = next_tick - loop.time()
                if delay > 0 and await self._wait_for_stop(delay):
                    break

                await self.tick()

                next_tick += self._interval
                now = loop.time()
                if next_tick <= now:
                    missed = int((now - next_tick) // self._interval) + 1
                    self._skipped += missed
                    next_tick += missed * self._interval
                    logger.warning("Tick overran its interval; skipped %d tick(s)", missed)
        finally:
            self._running = False
            self._stopping.clear()
            logger.info("Scheduler stopped after %d ticks", self._ticks)

    def stop(self) -> None:
        """Ask ``run`` to return. In-flight cycles are not touched.

        A stop requested before ``run`` starts makes that run return at once.
        """
        self._stopping.set()

    def reset(self) -> None:
        """Drop a pending stop request so the scheduler can run again."""
        if not self._running:
            self._stopping.clear()

    async def _wait_for_stop(self, delay: float) -> bool:
        try:
            await asyncio.wait_for(self._stopping.wait(), timeout=delay)
        except TimeoutError:
            return False
        return True
