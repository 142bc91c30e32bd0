"""Protocol definitions."""

from feedagg.protocols.storage import FeedStorage

__all__ = ["FeedStorage"]
