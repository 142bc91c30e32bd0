"""In-memory storage backend for testing.

Provides a complete in-memory implementation of FeedStorage, useful for
testing, development and as the reference for other backends.

Example:
    >>> import asyncio
    >>> from feedagg.storage.memory import MemoryStorage
    >>> storage = MemoryStorage()
    >>> feed = asyncio.run(storage.add_feed("blog", "https://example.com/rss"))
    >>> [f.name for f in asyncio.run(storage.list_feeds_to_fetch(10))]
    ['blog']

Note:
    All methods are async. Use within async context or with asyncio.run().
"""

from __future__ import annotations

from datetime import UTC, datetime
from uuid import UUID

from feedagg.core.exceptions import PersistError, UniqueConflict
from feedagg.models.base import ensure_utc, utcnow
from feedagg.models.feed import Feed
from feedagg.models.post import Post, PostCandidate


class MemoryStorage:
    """In-memory storage using dictionaries.

    Safe for single-process async usage: no method awaits between checking
    and mutating state, so each write is atomic with respect to the event
    loop. Data is lost when the process exits.

    Example:
        >>> from feedagg.storage.memory import MemoryStorage
        >>> s = MemoryStorage()
        >>> s._initialized
        False
    """

    def __init__(self) -> None:
        self._feeds: dict[UUID, Feed] = {}
        self._posts: dict[UUID, Post] = {}
        self._url_index: dict[str, UUID] = {}  # url -> post id
        self._initialized = False

    async def initialize(self) -> None:
        """No-op for memory storage."""
        self._initialized = True

    async def close(self) -> None:
        """Clear all data."""
        self._feeds.clear()
        self._posts.clear()
        self._url_index.clear()
        self._initialized = False

    # --- Ingestion Operations ---

    async def list_feeds_to_fetch(self, limit: int) -> list[Feed]:
        """Least recently fetched feeds first, never-fetched before all."""
        if limit <= 0:
            return []
        ordered = sorted(self._feeds.values(), key=_freshness_key)
        return [feed.model_copy() for feed in ordered[:limit]]

    async def mark_feed_fetched(self, feed_id: UUID, fetched_at: datetime) -> bool:
        """Advance the freshness marker, never backwards."""
        feed = self._feeds.get(feed_id)
        if feed is None:
            return False

        fetched_at = ensure_utc(fetched_at)
        if feed.last_fetched_at is not None and feed.last_fetched_at >= fetched_at:
            return False

        self._feeds[feed_id] = feed.model_copy(
            update={"last_fetched_at": fetched_at, "updated_at": utcnow()}
        )
        return True

    async def create_post(self, feed_id: UUID, candidate: PostCandidate) -> Post:
        """Insert a post; the URL is unique across all feeds."""
        if feed_id not in self._feeds:
            raise PersistError(f"Feed not found: {feed_id}")
        if candidate.url in self._url_index:
            raise UniqueConflict(candidate.url)

        post = Post.from_candidate(candidate, feed_id)
        self._posts[post.id] = post
        self._url_index[post.url] = post.id
        return post

    # --- Feed/Post Bookkeeping ---

    async def add_feed(self, name: str, url: str, user_id: UUID | None = None) -> Feed:
        """Create a feed; feed URLs are unique."""
        return await self.put_feed(Feed(name=name, url=url, user_id=user_id))

    async def put_feed(self, feed: Feed) -> Feed:
        """Store a fully specified feed (test helper)."""
        for other in self._feeds.values():
            if other.url == feed.url and other.id != feed.id:
                raise PersistError(f"Feed URL already registered: {feed.url}")
        self._feeds[feed.id] = feed
        return feed

    async def get_feed(self, feed_id: UUID) -> Feed | None:
        """Get a feed by id."""
        return self._feeds.get(feed_id)

    async def list_posts(self, feed_id: UUID | None = None) -> list[Post]:
        """List posts, newest published first."""
        posts = [p for p in self._posts.values() if feed_id is None or p.feed_id == feed_id]
        posts.sort(key=lambda p: p.published_at, reverse=True)
        return posts

    async def count_posts(self, feed_id: UUID | None = None) -> int:
        """Count posts, optionally for one feed."""
        if feed_id is None:
            return len(self._posts)
        return sum(1 for p in self._posts.values() if p.feed_id == feed_id)


_NEVER = datetime.min.replace(tzinfo=UTC)


def _freshness_key(feed: Feed) -> tuple[bool, datetime, str]:
    # False sorts before True, so never-fetched feeds lead
    return (
        feed.last_fetched_at is not None,
        feed.last_fetched_at or _NEVER,
        str(feed.id),
    )
