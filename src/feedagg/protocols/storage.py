"""Storage backend protocol.

Defines the narrow storage contract consumed by the ingestion core.

Example:
    >>> from feedagg.protocols.storage import FeedStorage
    >>> hasattr(FeedStorage, "list_feeds_to_fetch")
    True
    >>> hasattr(FeedStorage, "create_post")
    True
"""

from __future__ import annotations

from datetime import datetime
from typing import TYPE_CHECKING, Protocol, runtime_checkable
from uuid import UUID

if TYPE_CHECKING:
    from feedagg.models import Feed, Post, PostCandidate


@runtime_checkable
class FeedStorage(Protocol):
    """Storage backend protocol.

    Implementations must provide storage-native atomicity for each write;
    the core holds no locks around them.

    See Also:
        feedagg.storage.memory.MemoryStorage: In-memory implementation
        feedagg.storage.sqlalchemy_storage.SQLAlchemyStorage: SQL implementation
    """

    # --- Ingestion Operations ---

    async def list_feeds_to_fetch(self, limit: int) -> list[Feed]:
        """Return up to ``limit`` feeds, least recently fetched first.

        Never-fetched feeds (``last_fetched_at is None``) come first; ties are
        broken by feed id.
        """
        ...

    async def mark_feed_fetched(self, feed_id: UUID, fetched_at: datetime) -> bool:
        """Advance a feed's freshness marker.

        The marker never moves backwards: an older ``fetched_at`` is a no-op.

        Returns:
            True if the marker moved; False if it was already at or past
            ``fetched_at`` or the feed no longer exists.

        Raises:
            PersistError: If the update failed.
        """
        ...

    async def create_post(self, feed_id: UUID, candidate: PostCandidate) -> Post:
        """Insert a post bound to ``feed_id``.

        Raises:
            UniqueConflict: If a post with the same URL exists in any feed.
            PersistError: For any other storage failure.
        """
        ...

    # --- Feed/Post Bookkeeping ---

    async def add_feed(self, name: str, url: str, user_id: UUID | None = None) -> Feed:
        """Create a feed.

        Raises:
            PersistError: If a feed with the same URL exists.
        """
        ...

    async def get_feed(self, feed_id: UUID) -> Feed | None:
        """Get a feed by id."""
        ...

    async def list_posts(self, feed_id: UUID | None = None) -> list[Post]:
        """List posts, newest published first."""
        ...

    async def count_posts(self, feed_id: UUID | None = None) -> int:
        """Count posts, optionally for one feed."""
        ...

    # --- Lifecycle ---

    async def initialize(self) -> None:
        """Initialize storage (create tables, etc.)."""
        ...

    async def close(self) -> None:
        """Clean up resources."""
        ...
