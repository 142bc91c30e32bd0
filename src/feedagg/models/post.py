"""Post models.

- `PostCandidate`: parsed item from a feed document, before persistence
- `Post`: stored post bound to a feed

Example:
    >>> from datetime import datetime, timezone
    >>> from uuid import uuid4
    >>> from feedagg.models.post import Post, PostCandidate
    >>> candidate = PostCandidate(
    ...     title="Hello",
    ...     url="https://example.com/hello",
    ...     published_at=datetime(2024, 1, 15, tzinfo=timezone.utc),
    ... )
    >>> post = Post.from_candidate(candidate, feed_id=uuid4())
    >>> post.url
    'https://example.com/hello'
    >>> post.description is None
    True
"""

from __future__ import annotations

from datetime import datetime
from uuid import UUID, uuid4

from pydantic import Field, field_validator

from feedagg.models.base import FeedAggModel, ensure_utc, utcnow


class PostCandidate(FeedAggModel):
    """A parsed, not yet persisted post.

    ``url`` is the canonical link and the deduplication key.
    """

    title: str = Field(default="")
    url: str = Field(..., min_length=1, max_length=2048)
    description: str | None = Field(default=None)
    published_at: datetime = Field(...)

    @field_validator("published_at")
    @classmethod
    def _normalize_published(cls, v: datetime) -> datetime:
        return ensure_utc(v)


class Post(FeedAggModel):
    """A stored post."""

    id: UUID = Field(default_factory=uuid4)
    feed_id: UUID = Field(...)
    title: str = Field(default="")
    url: str = Field(..., min_length=1, max_length=2048)
    description: str | None = Field(default=None)
    published_at: datetime = Field(...)
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)

    @field_validator("published_at", "created_at", "updated_at")
    @classmethod
    def _normalize_timestamps(cls, v: datetime) -> datetime:
        return ensure_utc(v)

    @classmethod
    def from_candidate(cls, candidate: PostCandidate, feed_id: UUID) -> Post:
        """Bind a candidate to a feed."""
        return cls(
            feed_id=feed_id,
            title=candidate.title,
            url=candidate.url,
            description=candidate.description,
            published_at=candidate.published_at,
        )
