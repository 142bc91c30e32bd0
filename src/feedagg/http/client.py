"""HTTP client for retrieving feed documents.

Provides an async client with:
- A fixed per-request timeout
- Redirect following
- Connection pooling shared by all workers

Requests are not retried. A feed that fails stays among the least recently
fetched and is picked up again by a later tick.

Example:
    >>> from feedagg.http import FeedSourceClient
    >>>
    >>> async with FeedSourceClient(timeout=10.0) as client:
    ...     data = await client.fetch("https://go.dev/blog/feed.atom")
"""

from __future__ import annotations

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from typing import Any

import httpx

from feedagg.core.exceptions import FetchError

DEFAULT_USER_AGENT = "feedagg/0.1"
ACCEPT = "application/rss+xml, application/atom+xml, application/xml;q=0.9, text/xml;q=0.9, */*;q=0.5"


class FeedSourceClient:
    """Async client that fetches raw feed documents.

    Example:
        >>> client = FeedSourceClient(timeout=5.0, user_agent="bot/1.0")
        >>> client.timeout
        5.0
        >>> client.headers["User-Agent"]
        'bot/1.0'

    Attributes:
        timeout: Request timeout in seconds
        user_agent: User-Agent header value
    """

    def __init__(
        self,
        timeout: float = 10.0,
        user_agent: str = DEFAULT_USER_AGENT,
        headers: dict[str, str] | None = None,
        *,
        max_connections: int = 100,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        """Initialize the client.

        Args:
            timeout: Overall per-request timeout in seconds
            user_agent: User-Agent header
            headers: Additional default headers
            max_connections: Connection pool limit
            transport: Custom httpx transport (tests use httpx.MockTransport)
        """
        self._timeout = timeout
        self._user_agent = user_agent
        self._extra_headers = headers or {}
        self._max_connections = max_connections
        self._transport = transport
        self._client: httpx.AsyncClient | None = None

    @property
    def timeout(self) -> float:
        """Request timeout in seconds."""
        return self._timeout

    @property
    def user_agent(self) -> str:
        """User-Agent header value."""
        return self._user_agent

    @property
    def headers(self) -> dict[str, str]:
        """Default headers for requests."""
        return {
            "User-Agent": self._user_agent,
            "Accept": ACCEPT,
            "Accept-Encoding": "gzip, deflate",
            **self._extra_headers,
        }

    def _ensure_client(self) -> httpx.AsyncClient:
        """Get or create the underlying httpx client."""
        if self._client is None or self._client.is_closed:
            self._client = httpx.AsyncClient(
                headers=self.headers,
                timeout=httpx.Timeout(self._timeout),
                follow_redirects=True,
                limits=httpx.Limits(max_connections=self._max_connections),
                transport=self._transport,
            )
        return self._client

    async def close(self) -> None:
        """Close the HTTP client."""
        if self._client is not None and not self._client.is_closed:
            await self._client.aclose()
        self._client = None

    async def __aenter__(self) -> FeedSourceClient:
        """Async context manager entry."""
        self._ensure_client()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        """Async context manager exit."""
        await self.close()

    async def fetch(self, url: str, **kwargs: Any) -> bytes:
        """Fetch a feed document.

        Args:
            url: Absolute feed URL
            **kwargs: Additional arguments for httpx

        Returns:
            Raw response body

        Raises:
            FetchError: On network error, timeout, non-2xx status or empty body
        """
        client = self._ensure_client()

        try:
            response = await client.get(url, **kwargs)
        except httpx.TimeoutException as e:
            raise FetchError(url, f"timed out after {self._timeout}s") from e
        except (httpx.HTTPError, httpx.InvalidURL) as e:
            raise FetchError(url, f"request failed: {e!r}") from e

        if not response.is_success:
            raise FetchError(
                url,
                f"HTTP {response.status_code} {response.reason_phrase}".rstrip(),
                status_code=response.status_code,
            )

        body = response.content
        if not body or not body.strip():
            raise FetchError(url, "empty response body", status_code=response.status_code)

        return body


@asynccontextmanager
async def feed_source_client(**kwargs: Any) -> AsyncIterator[FeedSourceClient]:
    """Context manager for a feed source client.

    Example:
        >>> async with feed_source_client(timeout=5.0) as client:
        ...     data = await client.fetch("https://example.com/rss")
    """
    client = FeedSourceClient(**kwargs)
    try:
        async with client:
            yield client
    finally:
        await client.close()


__all__ = [
    "FeedSourceClient",
    "feed_source_client",
]
