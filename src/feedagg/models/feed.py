"""Feed model.

A feed is a subscribed syndication source. Its ``last_fetched_at`` is the
freshness marker used to rank fetch priority; ``None`` means never fetched.

Example:
    >>> from feedagg.models.feed import Feed
    >>> feed = Feed(name="Go Blog", url="https://go.dev/blog/feed.atom")
    >>> feed.last_fetched_at is None
    True
    >>> feed.user_id is None
    True
"""

from __future__ import annotations

from datetime import datetime
from uuid import UUID, uuid4

from pydantic import Field, field_validator

from feedagg.models.base import FeedAggModel, ensure_utc, utcnow


class Feed(FeedAggModel):
    """A subscribed feed."""

    id: UUID = Field(default_factory=uuid4)
    name: str = Field(..., min_length=1, max_length=255)
    url: str = Field(..., min_length=1, max_length=2048, description="Source document URL")
    user_id: UUID | None = Field(default=None, description="Owning user, None for shared feeds")
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)
    last_fetched_at: datetime | None = Field(default=None, description="Freshness marker")

    @field_validator("created_at", "updated_at", "last_fetched_at")
    @classmethod
    def _normalize_timestamps(cls, v: datetime | None) -> datetime | None:
        return ensure_utc(v) if v is not None else None
