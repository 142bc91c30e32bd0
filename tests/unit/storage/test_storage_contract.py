"""Behaviour shared by every FeedStorage backend.

Each test runs against MemoryStorage (the reference implementation) and
SQLAlchemyStorage on a file-backed SQLite database.
"""

from __future__ import annotations

from datetime import UTC, datetime, timedelta
from uuid import uuid4

import pytest

from feedagg.core.exceptions import PersistError, UniqueConflict
from feedagg.models.post import PostCandidate
from feedagg.protocols.storage import FeedStorage
from feedagg.storage.memory import MemoryStorage
from feedagg.storage.sqlalchemy_storage import SQLAlchemyStorage

NOW = datetime(2026, 3, 1, 12, 0, tzinfo=UTC)

# =============================================================================
# Test Fixtures and Helpers
# =============================================================================


@pytest.fixture(params=["memory", "sqlite"])
async def backend(request, sqlite_url):
    """Initialized storage backend."""
    if request.param == "memory":
        storage = MemoryStorage()
    else:
        storage = SQLAlchemyStorage(sqlite_url)
    await storage.initialize()
    yield storage
    await storage.close()


def make_candidate(url: str = "https://example.com/post/1", **kwargs) -> PostCandidate:
    """Create a candidate with a fixed publication time."""
    kwargs.setdefault("title", f"Title for {url}")
    kwargs.setdefault("published_at", NOW)
    return PostCandidate(url=url, **kwargs)


async def add_fetched_feed(storage, name: str, fetched_at: datetime | None):
    feed = await storage.add_feed(name, f"https://{name}.example.com/rss")
    if fetched_at is not None:
        assert await storage.mark_feed_fetched(feed.id, fetched_at)
    return feed


# =============================================================================
# Protocol Compliance
# =============================================================================


async def test_backends_satisfy_protocol(backend):
    assert isinstance(backend, FeedStorage)


# =============================================================================
# Feed Selection
# =============================================================================


class TestListFeedsToFetch:
    """Least recently fetched first, never-fetched before everything."""

    async def test_never_fetched_ranked_first(self, backend):
        await add_fetched_feed(backend, "b", NOW - timedelta(minutes=10))
        a = await add_fetched_feed(backend, "a", None)

        batch = await backend.list_feeds_to_fetch(1)

        assert [f.id for f in batch] == [a.id]

    async def test_orders_by_last_fetched(self, backend):
        oldest = await add_fetched_feed(backend, "oldest", NOW - timedelta(hours=3))
        newest = await add_fetched_feed(backend, "newest", NOW - timedelta(hours=1))
        middle = await add_fetched_feed(backend, "middle", NOW - timedelta(hours=2))

        batch = await backend.list_feeds_to_fetch(10)

        assert [f.id for f in batch] == [oldest.id, middle.id, newest.id]

    async def test_ties_broken_by_id(self, backend):
        feeds = [await add_fetched_feed(backend, f"feed{i}", None) for i in range(4)]

        batch = await backend.list_feeds_to_fetch(10)

        assert [f.id for f in batch] == sorted((f.id for f in feeds), key=str)

    async def test_respects_limit(self, backend):
        for i in range(5):
            await add_fetched_feed(backend, f"feed{i}", None)

        assert len(await backend.list_feeds_to_fetch(3)) == 3
        assert await backend.list_feeds_to_fetch(0) == []

    async def test_empty_storage(self, backend):
        assert await backend.list_feeds_to_fetch(10) == []

    async def test_timestamps_are_utc(self, backend):
        await add_fetched_feed(backend, "a", NOW)

        (feed,) = await backend.list_feeds_to_fetch(1)

        assert feed.last_fetched_at == NOW
        assert feed.last_fetched_at.tzinfo is not None


# =============================================================================
# Freshness Marker
# =============================================================================


class TestMarkFeedFetched:
    async def test_sets_marker(self, backend):
        feed = await add_fetched_feed(backend, "a", None)

        assert await backend.mark_feed_fetched(feed.id, NOW)

        stored = await backend.get_feed(feed.id)
        assert stored.last_fetched_at == NOW

    async def test_advances_marker(self, backend):
        feed = await add_fetched_feed(backend, "a", NOW)

        assert await backend.mark_feed_fetched(feed.id, NOW + timedelta(seconds=1))

        stored = await backend.get_feed(feed.id)
        assert stored.last_fetched_at == NOW + timedelta(seconds=1)

    @pytest.mark.parametrize("delta", [timedelta(0), timedelta(minutes=-5)])
    async def test_never_moves_backwards(self, backend, delta):
        feed = await add_fetched_feed(backend, "a", NOW)

        assert not await backend.mark_feed_fetched(feed.id, NOW + delta)

        stored = await backend.get_feed(feed.id)
        assert stored.last_fetched_at == NOW

    async def test_unknown_feed(self, backend):
        assert not await backend.mark_feed_fetched(uuid4(), NOW)

    async def test_naive_timestamp_taken_as_utc(self, backend):
        feed = await add_fetched_feed(backend, "a", None)

        await backend.mark_feed_fetched(feed.id, NOW.replace(tzinfo=None))

        stored = await backend.get_feed(feed.id)
        assert stored.last_fetched_at == NOW


# =============================================================================
# Post Creation
# =============================================================================


class TestCreatePost:
    async def test_creates_post(self, backend):
        feed = await add_fetched_feed(backend, "a", None)

        post = await backend.create_post(feed.id, make_candidate(description="body"))

        assert post.feed_id == feed.id
        assert post.url == "https://example.com/post/1"
        assert post.description == "body"
        assert await backend.count_posts() == 1

    async def test_duplicate_url_raises_unique_conflict(self, backend):
        feed = await add_fetched_feed(backend, "a", None)
        await backend.create_post(feed.id, make_candidate())

        with pytest.raises(UniqueConflict) as exc_info:
            await backend.create_post(feed.id, make_candidate(title="Changed"))

        assert exc_info.value.url == "https://example.com/post/1"
        assert await backend.count_posts() == 1

    async def test_url_unique_across_feeds(self, backend):
        a = await add_fetched_feed(backend, "a", None)
        b = await add_fetched_feed(backend, "b", None)
        await backend.create_post(a.id, make_candidate())

        with pytest.raises(UniqueConflict):
            await backend.create_post(b.id, make_candidate())

        assert await backend.count_posts(b.id) == 0

    async def test_unknown_feed_raises_persist_error(self, backend):
        with pytest.raises(PersistError):
            await backend.create_post(uuid4(), make_candidate())

        assert await backend.count_posts() == 0

    async def test_conflict_is_not_persist_error(self, backend):
        feed = await add_fetched_feed(backend, "a", None)
        await backend.create_post(feed.id, make_candidate())

        with pytest.raises(UniqueConflict):
            await backend.create_post(feed.id, make_candidate())

        assert not issubclass(UniqueConflict, PersistError)


# =============================================================================
# Bookkeeping
# =============================================================================


class TestBookkeeping:
    async def test_get_missing_feed(self, backend):
        assert await backend.get_feed(uuid4()) is None

    async def test_add_feed_round_trip(self, backend):
        user_id = uuid4()
        feed = await backend.add_feed("go-blog", "https://go.dev/blog/feed.atom", user_id=user_id)

        stored = await backend.get_feed(feed.id)

        assert stored.name == "go-blog"
        assert stored.url == "https://go.dev/blog/feed.atom"
        assert stored.user_id == user_id
        assert stored.last_fetched_at is None

    async def test_duplicate_feed_url_raises_persist_error(self, backend):
        await backend.add_feed("a", "https://a.example.com/rss")

        with pytest.raises(PersistError):
            await backend.add_feed("a-again", "https://a.example.com/rss")

        assert len(await backend.list_feeds_to_fetch(10)) == 1

    async def test_list_posts_newest_first(self, backend):
        feed = await add_fetched_feed(backend, "a", None)
        for i in range(3):
            await backend.create_post(
                feed.id,
                make_candidate(f"https://example.com/{i}", published_at=NOW + timedelta(hours=i)),
            )

        posts = await backend.list_posts(feed.id)

        assert [p.url for p in posts] == [
            "https://example.com/2",
            "https://example.com/1",
            "https://example.com/0",
        ]

    async def test_count_posts_per_feed(self, backend):
        a = await add_fetched_feed(backend, "a", None)
        b = await add_fetched_feed(backend, "b", None)
        await backend.create_post(a.id, make_candidate("https://example.com/1"))
        await backend.create_post(a.id, make_candidate("https://example.com/2"))
        await backend.create_post(b.id, make_candidate("https://example.com/3"))

        assert await backend.count_posts() == 3
        assert await backend.count_posts(a.id) == 2
        assert await backend.count_posts(b.id) == 1
