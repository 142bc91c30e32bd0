"""FeedIngestor - the background ingestion loop.

Wires storage, the feed source client, the per-feed pipeline, the worker pool
and the freshness scheduler together. Concurrency and interval are passed in
explicitly; there is no module-level state.

Example:
    >>> import asyncio
    >>> from feedagg.core.ingestor import FeedIngestor
    >>> from feedagg.storage.memory import MemoryStorage
    >>> async def example():
    ...     async with FeedIngestor(MemoryStorage(), concurrency=2, interval=60) as ingestor:
    ...         return ingestor.concurrency
    >>> asyncio.run(example())
    2
"""

from __future__ import annotations

import asyncio
import logging
from datetime import timedelta
from typing import TYPE_CHECKING, Any

from feedagg.core.config import Settings
from feedagg.executor.pool import WorkerPool
from feedagg.http.client import DEFAULT_USER_AGENT, FeedSourceClient
from feedagg.metrics import IngestionMetrics
from feedagg.pipeline import FeedPipeline
from feedagg.scheduler.freshness import FreshnessScheduler

if TYPE_CHECKING:
    from feedagg.models.cycle import CycleResult
    from feedagg.models.feed import Feed
    from feedagg.parser import SyndicationParser
    from feedagg.protocols.storage import FeedStorage

logger = logging.getLogger(__name__)


class FeedIngestor:
    """Owns one ingestion loop.

    Args:
        storage: Storage backend for feeds and posts.
        concurrency: Maximum feed-cycles in flight.
        interval: Time between scheduler ticks, in seconds or as a timedelta.
        batch_size: Feeds selected per tick (default: ``concurrency``).
        client: Feed source client (default: one owned by the ingestor).
        parser: Feed document parser.
        metrics: Metrics collector.
        fetch_on_start: Fire the first tick immediately.
        mark_fetched_on_failure: Advance the freshness marker of failed feeds.
        request_timeout: Timeout for the default client, in seconds.
        user_agent: User-Agent for the default client.
    """

    def __init__(
        self,
        storage: FeedStorage,
        *,
        concurrency: int,
        interval: float | timedelta,
        batch_size: int | None = None,
        client: FeedSourceClient | None = None,
        parser: SyndicationParser | None = None,
        metrics: IngestionMetrics | None = None,
        fetch_on_start: bool = True,
        mark_fetched_on_failure: bool = True,
        request_timeout: float = 10.0,
        user_agent: str = DEFAULT_USER_AGENT,
    ) -> None:
        self._storage = storage
        self._owns_client = client is None
        self._client = client or FeedSourceClient(
            timeout=request_timeout,
            user_agent=user_agent,
            max_connections=max(concurrency, 1),
        )
        self._metrics = metrics or IngestionMetrics()
        self._pipeline = FeedPipeline(
            storage,
            self._client,
            parser=parser,
            metrics=self._metrics,
            mark_fetched_on_failure=mark_fetched_on_failure,
        )
        self._pool: WorkerPool[Feed] = WorkerPool(self._run_cycle, concurrency=concurrency)
        self._scheduler = FreshnessScheduler(
            storage,
            self._pool,
            batch_size=batch_size or concurrency,
            interval=interval,
            fetch_on_start=fetch_on_start,
        )
        self._task: asyncio.Task[None] | None = None
        self._initialized = False

    @classmethod
    def from_settings(
        cls,
        storage: FeedStorage,
        settings: Settings,
        **kwargs: Any,
    ) -> FeedIngestor:
        """Build an ingestor from application settings.

        Example:
            >>> from feedagg.core.config import Settings
            >>> from feedagg.core.ingestor import FeedIngestor
            >>> from feedagg.storage.memory import MemoryStorage
            >>> ingestor = FeedIngestor.from_settings(MemoryStorage(), Settings(concurrency=4))
            >>> ingestor.concurrency
            4
        """
        options: dict[str, Any] = {
            "concurrency": settings.concurrency,
            "interval": settings.interval,
            "fetch_on_start": settings.fetch_on_start,
            "mark_fetched_on_failure": settings.mark_fetched_on_failure,
            "request_timeout": settings.request_timeout,
            "user_agent": settings.user_agent,
        }
        if "metrics" not in kwargs:
            options["metrics"] = IngestionMetrics(enable_prometheus=settings.enable_prometheus)
        options.update(kwargs)
        return cls(storage, **options)

    # --- Introspection ---

    @property
    def storage(self) -> FeedStorage:
        """Get the storage backend."""
        return self._storage

    @property
    def metrics(self) -> IngestionMetrics:
        """Get the metrics collector."""
        return self._metrics

    @property
    def pool(self) -> WorkerPool[Feed]:
        """Get the worker pool."""
        return self._pool

    @property
    def scheduler(self) -> FreshnessScheduler:
        """Get the scheduler."""
        return self._scheduler

    @property
    def concurrency(self) -> int:
        """Maximum feed-cycles in flight."""
        return self._pool.concurrency

    @property
    def running(self) -> bool:
        """Whether the scheduler loop is active."""
        return self._task is not None and not self._task.done()

    # --- Lifecycle ---

    async def initialize(self) -> None:
        """Initialize storage and start the workers. Idempotent."""
        if self._initialized:
            return
        await self._storage.initialize()
        await self._pool.start()
        self._initialized = True

    async def start(self) -> None:
        """Start the scheduler loop in the background."""
        if self.running:
            raise RuntimeError("Ingestor is already running")
        await self.initialize()
        self._task = asyncio.create_task(self._scheduler.run(), name="feedagg-scheduler")
        logger.info(
            "Ingestion started: concurrency=%d, interval=%.1fs",
            self.concurrency,
            self._scheduler.interval,
        )

    async def wait(self) -> None:
        """Wait for the scheduler loop to finish."""
        if self._task is not None:
            await self._task

    async def run_once(self) -> list[Feed]:
        """Run a single tick and wait for its cycles to finish.

        Returns:
            The feeds that were dispatched.
        """
        await self.initialize()
        feeds = await self._scheduler.tick()
        await self._pool.join()
        return feeds

    async def close(self, *, drain: bool = False) -> None:
        """Stop scheduling and shut the pool down.

        Args:
            drain: Let queued and in-flight cycles finish. Otherwise they
                are cancelled; anything already persisted stays.
        """
        self._scheduler.stop()
        if self._task is not None:
            # A tick may be blocked on a full dispatch queue
            self._task.cancel()
            await asyncio.gather(self._task, return_exceptions=True)
            self._task = None
        self._scheduler.reset()

        await self._pool.close(drain=drain)
        if self._owns_client:
            await self._client.close()
        if self._initialized:
            await self._storage.close()
            self._initialized = False
        logger.info("Ingestion stopped")

    async def __aenter__(self) -> FeedIngestor:
        """Async context manager entry."""
        await self.initialize()
        return self

    async def __aexit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        """Async context manager exit."""
        await self.close()

    async def _run_cycle(self, feed: Feed) -> CycleResult:
        return await self._pipeline.run(feed)


async def start_ingestion(
    storage: FeedStorage,
    concurrency: int,
    interval: float | timedelta,
    **options: Any,
) -> FeedIngestor:
    """Start a background ingestion loop.

    Returns once the loop is running. Call ``close()`` on the result to stop.

    Args:
        storage: Storage backend for feeds and posts.
        concurrency: Maximum feed-cycles in flight.
        interval: Time between scheduler ticks.
        **options: Passed to FeedIngestor.

    Example:
        >>> import asyncio
        >>> from feedagg.core.ingestor import start_ingestion
        >>> from feedagg.storage.memory import MemoryStorage
        >>> async def example():
        ...     ingestor = await start_ingestion(MemoryStorage(), 2, 60)
        ...     running = ingestor.running
        ...     await ingestor.close()
        ...     return running
        >>> asyncio.run(example())
        True
    """
    ingestor = FeedIngestor(storage, concurrency=concurrency, interval=interval, **options)
    await ingestor.start()
    return ingestor
