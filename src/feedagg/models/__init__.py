"""Data models."""

from feedagg.models.base import FeedAggModel, ensure_utc, utcnow
from feedagg.models.cycle import CycleResult, CycleState
from feedagg.models.feed import Feed
from feedagg.models.post import Post, PostCandidate

__all__ = [
    "CycleResult",
    "CycleState",
    "Feed",
    "FeedAggModel",
    "Post",
    "PostCandidate",
    "ensure_utc",
    "utcnow",
]
