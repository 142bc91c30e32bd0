"""Post deduplicator/upserter.

Persists candidate posts for one feed, relying on the storage-level unique
constraint on the canonical URL. There is no read-before-write: every
candidate is inserted and a UniqueConflict counts as "already known".

Example:
    >>> import asyncio
    >>> from datetime import datetime, UTC
    >>> from feedagg.models import PostCandidate
    >>> from feedagg.storage.memory import MemoryStorage
    >>> from feedagg.upserter import PostUpserter
    >>> async def example():
    ...     storage = MemoryStorage()
    ...     feed = await storage.add_feed("blog", "https://example.com/rss")
    ...     c = PostCandidate(url="https://example.com/1", published_at=datetime.now(UTC))
    ...     upserter = PostUpserter(storage)
    ...     first = await upserter.upsert(feed.id, [c])
    ...     second = await upserter.upsert(feed.id, [c])
    ...     return first.new, second.duplicates
    >>> asyncio.run(example())
    (1, 1)
"""

from __future__ import annotations

import logging
from collections.abc import Sequence
from dataclasses import dataclass
from typing import TYPE_CHECKING
from uuid import UUID

from feedagg.core.exceptions import PersistError, UniqueConflict

if TYPE_CHECKING:
    from feedagg.models.post import PostCandidate
    from feedagg.protocols.storage import FeedStorage

logger = logging.getLogger(__name__)


@dataclass
class UpsertStats:
    """Counts from one upsert pass.

    Example:
        >>> from feedagg.upserter import UpsertStats
        >>> stats = UpsertStats(attempted=4, new=3, duplicates=1)
        >>> stats.dedup_rate
        0.25
    """

    attempted: int = 0
    new: int = 0
    duplicates: int = 0

    @property
    def dedup_rate(self) -> float:
        """Share of attempted candidates that were already stored."""
        if self.attempted == 0:
            return 0.0
        return self.duplicates / self.attempted


class PostUpserter:
    """Insert candidates for a feed, treating URL conflicts as no-ops."""

    def __init__(self, storage: FeedStorage) -> None:
        self._storage = storage

    @property
    def storage(self) -> FeedStorage:
        """Get the storage backend."""
        return self._storage

    async def upsert(self, feed_id: UUID, candidates: Sequence[PostCandidate]) -> UpsertStats:
        """Persist candidates in order.

        Args:
            feed_id: Feed the posts belong to.
            candidates: Parsed candidates for this feed-cycle.

        Returns:
            Counts of new and duplicate posts.

        Raises:
            PersistError: On the first non-conflict storage failure. The
                remaining candidates are not attempted; counts so far are
                available on ``error.stats``.
        """
        stats = UpsertStats()

        for candidate in candidates:
            stats.attempted += 1
            try:
                await self._storage.create_post(feed_id, candidate)
            except UniqueConflict:
                stats.duplicates += 1
                continue
            except PersistError as e:
                e.stats = stats
                raise
            stats.new += 1

        logger.debug(
            "Upserted feed %s: %d new, %d duplicates",
            feed_id,
            stats.new,
            stats.duplicates,
        )
        return stats
