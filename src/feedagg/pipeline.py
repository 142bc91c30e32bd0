"""Pipeline - one feed-cycle from fetch to freshness update.

The FeedPipeline handles the complete flow for a single feed:
1. Fetching the feed document
2. Parsing it into candidate posts
3. Persisting new posts, skipping known URLs
4. Advancing the feed's freshness marker

Every error is scoped to the cycle: it is logged, counted and reported in
the returned CycleResult, never raised to the caller.

Example:
    >>> from feedagg.pipeline import FeedPipeline
    >>> hasattr(FeedPipeline, "run")
    True
"""

from __future__ import annotations

import logging
import time
from collections.abc import Callable
from datetime import datetime
from typing import TYPE_CHECKING

from feedagg.core.exceptions import FeedAggError, PersistError
from feedagg.metrics import IngestionMetrics
from feedagg.models.base import utcnow
from feedagg.models.cycle import CycleResult, CycleState
from feedagg.parser import SyndicationParser
from feedagg.upserter import PostUpserter

if TYPE_CHECKING:
    from feedagg.http import FeedSourceClient
    from feedagg.models.feed import Feed
    from feedagg.protocols.storage import FeedStorage

logger = logging.getLogger(__name__)


class FeedPipeline:
    """Runs feed-cycles.

    Stateless between calls, so one instance is shared by all workers.

    Example:
        >>> import asyncio
        >>> import httpx
        >>> from feedagg.http import FeedSourceClient
        >>> from feedagg.pipeline import FeedPipeline
        >>> from feedagg.storage.memory import MemoryStorage
        >>> rss = b'<rss><channel><item><link>https://example.com/1</link></item></channel></rss>'
        >>> transport = httpx.MockTransport(lambda request: httpx.Response(200, content=rss))
        >>> async def example():
        ...     storage = MemoryStorage()
        ...     feed = await storage.add_feed("blog", "https://example.com/rss")
        ...     async with FeedSourceClient(transport=transport) as client:
        ...         result = await FeedPipeline(storage, client).run(feed)
        ...     return result.state.value, result.new
        >>> asyncio.run(example())
        ('done', 1)
    """

    def __init__(
        self,
        storage: FeedStorage,
        client: FeedSourceClient,
        *,
        parser: SyndicationParser | None = None,
        upserter: PostUpserter | None = None,
        metrics: IngestionMetrics | None = None,
        mark_fetched_on_failure: bool = True,
        clock: Callable[[], datetime] = utcnow,
    ) -> None:
        """Initialize the pipeline.

        Args:
            storage: Storage backend for posts and freshness markers.
            client: Client used to retrieve feed documents.
            parser: Feed document parser.
            upserter: Post upserter (default: one bound to ``storage``).
            metrics: Metrics collector.
            mark_fetched_on_failure: Advance the freshness marker when the
                cycle fails, so broken feeds wait their turn instead of being
                retried every tick.
            clock: Source of the fetch start time.
        """
        self._storage = storage
        self._client = client
        self._parser = parser or SyndicationParser()
        self._upserter = upserter or PostUpserter(storage)
        self._metrics = metrics or IngestionMetrics()
        self._mark_fetched_on_failure = mark_fetched_on_failure
        self._clock = clock

    @property
    def storage(self) -> FeedStorage:
        """Get the storage backend."""
        return self._storage

    @property
    def metrics(self) -> IngestionMetrics:
        """Get the metrics collector."""
        return self._metrics

    async def run(self, feed: Feed) -> CycleResult:
        """Run one feed-cycle.

        Args:
            feed: The feed to refresh.

        Returns:
            The cycle outcome. Never raises for cycle-level failures.
        """
        fetched_at = self._clock()
        result = CycleResult(feed_id=feed.id, feed_name=feed.name, started_at=fetched_at)
        start = time.perf_counter()

        try:
            result.state = CycleState.FETCHING
            with self._metrics.time_operation("fetch", feed=feed.name):
                document = await self._client.fetch(feed.url)

            result.state = CycleState.PARSING
            with self._metrics.time_operation("parse", feed=feed.name):
                candidates = self._parser.parse(document, fetched_at=fetched_at, base_url=feed.url)
            result.candidates = len(candidates)

            result.state = CycleState.PERSISTING
            with self._metrics.time_operation("persist", feed=feed.name):
                stats = await self._upserter.upsert(feed.id, candidates)
            result.new = stats.new
            result.duplicates = stats.duplicates

        except FeedAggError as e:
            if isinstance(e, PersistError) and e.stats is not None:
                result.new = e.stats.new
                result.duplicates = e.stats.duplicates
            self._fail(result, e)
        except Exception as e:
            logger.exception("Unexpected error in feed-cycle for %s (%s)", feed.name, feed.url)
            self._fail(result, e)

        if result.state is not CycleState.FAILED or self._mark_fetched_on_failure:
            await self._mark_fetched(feed, fetched_at, result)

        if result.state is not CycleState.FAILED:
            result.state = CycleState.DONE

        result.duration_ms = (time.perf_counter() - start) * 1000
        self._metrics.record_cycle(result)
        self._log_result(feed, result)
        return result

    async def _mark_fetched(self, feed: Feed, fetched_at: datetime, result: CycleResult) -> None:
        try:
            await self._storage.mark_feed_fetched(feed.id, fetched_at)
        except Exception as e:
            if result.state is CycleState.FAILED:
                # Keep the original failure as the reported reason
                logger.warning("Could not mark %s fetched after failure: %s", feed.name, e)
                return
            self._fail(result, e)
            return
        result.marked_fetched = True

    def _fail(self, result: CycleResult, error: BaseException) -> None:
        result.failed_in = result.state
        result.state = CycleState.FAILED
        result.error = str(error) or type(error).__name__
        result.error_type = type(error).__name__
        self._metrics.record_error(result.feed_name, result.error_type)

    def _log_result(self, feed: Feed, result: CycleResult) -> None:
        if result.state is CycleState.DONE:
            logger.info(
                "Fetched %s: %d new, %d duplicates (%.0f ms)",
                feed.name,
                result.new,
                result.duplicates,
                result.duration_ms,
            )
        else:
            stage = result.failed_in.value if result.failed_in else "unknown"
            logger.warning(
                "Feed %s failed while %s: %s [%s]",
                feed.name,
                stage,
                result.error,
                result.error_type,
            )
