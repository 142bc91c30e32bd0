"""Shared fixtures for feedagg tests."""

from __future__ import annotations

from collections.abc import Callable

import httpx
import pytest

from feedagg.storage.memory import MemoryStorage


@pytest.fixture
def storage() -> MemoryStorage:
    """Fresh in-memory storage."""
    return MemoryStorage()


@pytest.fixture
def sqlite_url(tmp_path) -> str:
    """File-backed SQLite database in the test's temp dir."""
    return f"sqlite:///{tmp_path / 'feedagg.db'}"


@pytest.fixture
def rss_document() -> Callable[..., bytes]:
    """Build an RSS 2.0 document with one item per link."""

    def build(*links: str) -> bytes:
        items = "".join(
            f"<item><title>Post {i}</title><link>{link}</link>"
            f"<pubDate>Thu, 01 Jan 2026 12:0{i % 10}:00 GMT</pubDate></item>"
            for i, link in enumerate(links)
        )
        return f'<rss version="2.0"><channel><title>t</title>{items}</channel></rss>'.encode()

    return build


@pytest.fixture
def transport_for() -> Callable[[dict[str, tuple[int, bytes]]], httpx.MockTransport]:
    """MockTransport answering from a url -> (status, body) map, 404 otherwise."""

    def build(routes: dict[str, tuple[int, bytes]]) -> httpx.MockTransport:
        def handler(request: httpx.Request) -> httpx.Response:
            status, body = routes.get(str(request.url), (404, b""))
            return httpx.Response(status, content=body)

        return httpx.MockTransport(handler)

    return build
