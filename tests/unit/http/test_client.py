"""Tests for feedagg.http.client - FeedSourceClient."""

from __future__ import annotations

import httpx
import pytest

from feedagg.core.exceptions import FetchError
from feedagg.http.client import DEFAULT_USER_AGENT, FeedSourceClient, feed_source_client

FEED_URL = "https://example.com/feed.xml"


def make_client(handler, **kwargs) -> FeedSourceClient:
    return FeedSourceClient(transport=httpx.MockTransport(handler), **kwargs)


class TestFeedSourceClientConfig:
    def test_defaults(self):
        client = FeedSourceClient()

        assert client.timeout == 10.0
        assert client.user_agent == DEFAULT_USER_AGENT

    def test_headers(self):
        client = FeedSourceClient(user_agent="bot/2.0", headers={"X-Test": "1"})

        assert client.headers["User-Agent"] == "bot/2.0"
        assert "application/rss+xml" in client.headers["Accept"]
        assert client.headers["X-Test"] == "1"


class TestFetch:
    async def test_returns_body(self):
        async with make_client(lambda request: httpx.Response(200, content=b"<rss/>")) as client:
            body = await client.fetch(FEED_URL)

        assert body == b"<rss/>"

    async def test_sends_user_agent(self):
        seen: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(200, content=b"<rss/>")

        async with make_client(handler, user_agent="feedagg-test/1") as client:
            await client.fetch(FEED_URL)

        assert seen[0].headers["User-Agent"] == "feedagg-test/1"

    async def test_follows_redirects(self):
        def handler(request: httpx.Request) -> httpx.Response:
            if request.url.path == "/old":
                return httpx.Response(301, headers={"Location": FEED_URL})
            return httpx.Response(200, content=b"<rss/>")

        async with make_client(handler) as client:
            body = await client.fetch("https://example.com/old")

        assert body == b"<rss/>"

    async def test_server_error_raises_fetch_error(self):
        async with make_client(lambda request: httpx.Response(500)) as client:
            with pytest.raises(FetchError) as exc_info:
                await client.fetch(FEED_URL)

        assert exc_info.value.status_code == 500
        assert exc_info.value.url == FEED_URL
        assert "HTTP 500" in str(exc_info.value)

    async def test_not_found_raises_fetch_error(self):
        async with make_client(lambda request: httpx.Response(404)) as client:
            with pytest.raises(FetchError) as exc_info:
                await client.fetch(FEED_URL)

        assert exc_info.value.status_code == 404

    @pytest.mark.parametrize("body", [b"", b"   \n\t"])
    async def test_empty_body_raises_fetch_error(self, body):
        async with make_client(lambda request: httpx.Response(200, content=body)) as client:
            with pytest.raises(FetchError, match="empty response body"):
                await client.fetch(FEED_URL)

    async def test_timeout_raises_fetch_error(self):
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ReadTimeout("slow", request=request)

        async with make_client(handler, timeout=2.5) as client:
            with pytest.raises(FetchError, match="timed out after 2.5s") as exc_info:
                await client.fetch(FEED_URL)

        assert exc_info.value.status_code is None

    async def test_connection_error_raises_fetch_error(self):
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("refused", request=request)

        async with make_client(handler) as client:
            with pytest.raises(FetchError, match="request failed"):
                await client.fetch(FEED_URL)


class TestLifecycle:
    async def test_close_is_idempotent(self):
        client = make_client(lambda request: httpx.Response(200, content=b"<rss/>"))
        await client.fetch(FEED_URL)

        await client.close()
        await client.close()

    async def test_reopens_after_close(self):
        client = make_client(lambda request: httpx.Response(200, content=b"<rss/>"))
        await client.close()

        assert await client.fetch(FEED_URL) == b"<rss/>"
        await client.close()

    async def test_context_manager_helper(self):
        async with feed_source_client(timeout=3.0) as client:
            assert client.timeout == 3.0
