"""feedagg HTTP utilities.

Example:
    >>> from feedagg.http import FeedSourceClient
    >>>
    >>> async with FeedSourceClient(timeout=10.0) as client:
    ...     data = await client.fetch("https://example.com/rss")
"""

from feedagg.http.client import FeedSourceClient, feed_source_client

__all__ = [
    "FeedSourceClient",
    "feed_source_client",
]
