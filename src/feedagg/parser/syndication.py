"""RSS 2.0 / Atom document parser.

Turns a raw feed document into PostCandidate objects in document order.

Example:
    >>> from datetime import datetime, timezone
    >>> from feedagg.parser.syndication import SyndicationParser
    >>> xml = b'''<rss version="2.0"><channel>
    ...   <item><title>One</title><link>https://example.com/1</link></item>
    ...   <item><title>No link</title></item>
    ... </channel></rss>'''
    >>> fetched = datetime(2024, 1, 1, tzinfo=timezone.utc)
    >>> posts = SyndicationParser().parse(xml, fetched_at=fetched)
    >>> [(p.title, p.url) for p in posts]
    [('One', 'https://example.com/1')]
    >>> posts[0].published_at == fetched
    True
"""

from __future__ import annotations

import logging
import xml.etree.ElementTree as ET
from collections.abc import Callable
from datetime import datetime
from email.utils import parsedate_to_datetime
from urllib.parse import urljoin, urlsplit

from pydantic import ValidationError

from feedagg.core.exceptions import ParseError
from feedagg.models.base import ensure_utc, utcnow
from feedagg.models.post import PostCandidate

logger = logging.getLogger(__name__)

ATOM_NS = "http://www.w3.org/2005/Atom"
DC_NS = "http://purl.org/dc/elements/1.1/"
CONTENT_NS = "http://purl.org/rss/1.0/modules/content/"

_LINK_SCHEMES = ("http", "https")


def _local(tag: str) -> str:
    """Strip the ``{namespace}`` prefix from an element tag."""
    return tag.rsplit("}", 1)[-1] if tag.startswith("{") else tag


def _text(elem: ET.Element | None) -> str | None:
    """All text inside an element, stripped; None when empty."""
    if elem is None:
        return None
    value = "".join(elem.itertext()).strip()
    return value or None


def parse_date(value: str | None) -> datetime | None:
    """Parse an RFC 822 or ISO 8601 timestamp.

    Naive results are taken as UTC. Returns None when unparsable.

    Example:
        >>> parse_date("Thu, 01 Jan 2026 12:00:00 GMT").isoformat()
        '2026-01-01T12:00:00+00:00'
        >>> parse_date("2026-01-01T12:00:00Z").isoformat()
        '2026-01-01T12:00:00+00:00'
        >>> parse_date("yesterday") is None
        True
    """
    if not value:
        return None
    value = value.strip()

    try:
        return ensure_utc(parsedate_to_datetime(value))
    except (TypeError, ValueError, IndexError, OverflowError):
        pass

    try:
        return ensure_utc(datetime.fromisoformat(value.replace("Z", "+00:00")))
    except (ValueError, OverflowError):
        return None


class SyndicationParser:
    """Parser for RSS 2.0 and Atom feeds.

    Required per item: a resolvable http(s) link, otherwise the item is
    dropped. Title falls back to ``""``, publication time to the fetch time,
    and description is optional.

    Document-level problems raise ParseError; problems in one item only
    skip that item.

    Example:
        >>> from feedagg.parser.syndication import SyndicationParser
        >>> parser = SyndicationParser()
        >>> parser.parse(b"<html><body/></html>")  # doctest: +IGNORE_EXCEPTION_DETAIL
        Traceback (most recent call last):
        ParseError: Unrecognised feed root element <html>
    """

    def parse(
        self,
        data: bytes | str,
        *,
        fetched_at: datetime | None = None,
        base_url: str | None = None,
    ) -> list[PostCandidate]:
        """Parse a feed document into candidates.

        Args:
            data: Raw document.
            fetched_at: Fallback publication time (default: now).
            base_url: URL the document was fetched from, used to resolve
                relative links.

        Returns:
            Candidates in document order.

        Raises:
            ParseError: If the document is empty, not well-formed XML, or
                neither RSS nor Atom.
        """
        if not data or not data.strip():
            raise ParseError("Empty feed document")

        fallback = ensure_utc(fetched_at) if fetched_at is not None else utcnow()

        try:
            root = ET.fromstring(data.lstrip())
        except ET.ParseError as e:
            raise ParseError(f"Failed to parse feed XML: {e}") from e

        elements: list[ET.Element]
        parse_one: Callable[[ET.Element, datetime, str | None], PostCandidate | None]
        if self._is_atom_feed(root):
            elements = self._atom_entries(root)
            parse_one = self._parse_atom_entry
        elif self._is_rss_feed(root):
            elements = [e for e in root.iter() if _local(e.tag) == "item"]
            parse_one = self._parse_rss_item
        else:
            raise ParseError(f"Unrecognised feed root element <{_local(root.tag)}>")

        candidates: list[PostCandidate] = []
        for position, element in enumerate(elements):
            try:
                candidate = parse_one(element, fallback, base_url)
            except (ValidationError, ValueError, OverflowError) as e:
                logger.debug("Skipping malformed item #%d: %s", position, e)
                continue
            if candidate is None:
                logger.debug("Skipping item #%d without a link", position)
                continue
            candidates.append(candidate)

        return candidates

    # --- Format detection ---

    def _is_atom_feed(self, root: ET.Element) -> bool:
        return root.tag == f"{{{ATOM_NS}}}feed" or root.tag == "feed"

    def _is_rss_feed(self, root: ET.Element) -> bool:
        return _local(root.tag) in ("rss", "channel")

    # --- RSS ---

    def _parse_rss_item(
        self,
        item: ET.Element,
        fallback: datetime,
        base_url: str | None,
    ) -> PostCandidate | None:
        link = self._resolve(_text(item.find("link")), base_url)
        if link is None:
            guid = item.find("guid")
            if guid is not None and guid.get("isPermaLink", "true").lower() != "false":
                link = self._resolve(_text(guid), base_url)
        if link is None:
            return None

        published = parse_date(_text(item.find("pubDate"))) or parse_date(
            _text(item.find(f"{{{DC_NS}}}date"))
        )
        description = _text(item.find("description")) or _text(
            item.find(f"{{{CONTENT_NS}}}encoded")
        )

        return PostCandidate(
            title=_text(item.find("title")) or "",
            url=link,
            description=description,
            published_at=published or fallback,
        )

    # --- Atom ---

    def _atom_entries(self, root: ET.Element) -> list[ET.Element]:
        return root.findall(f"{{{ATOM_NS}}}entry") or root.findall("entry")

    def _parse_atom_entry(
        self,
        entry: ET.Element,
        fallback: datetime,
        base_url: str | None,
    ) -> PostCandidate | None:
        def find(tag: str) -> ET.Element | None:
            elem = entry.find(f"{{{ATOM_NS}}}{tag}")
            return elem if elem is not None else entry.find(tag)

        link = self._resolve(self._atom_link(entry), base_url)
        if link is None:
            return None

        published = parse_date(_text(find("published"))) or parse_date(_text(find("updated")))

        return PostCandidate(
            title=_text(find("title")) or "",
            url=link,
            description=_text(find("summary")) or _text(find("content")),
            published_at=published or fallback,
        )

    def _atom_link(self, entry: ET.Element) -> str | None:
        links = entry.findall(f"{{{ATOM_NS}}}link") or entry.findall("link")
        hrefs = [(link.get("rel"), (link.get("href") or "").strip()) for link in links]
        hrefs = [(rel, href) for rel, href in hrefs if href]

        for rel, href in hrefs:
            if rel in (None, "alternate"):
                return href
        return hrefs[0][1] if hrefs else None

    # --- Helpers ---

    def _resolve(self, link: str | None, base_url: str | None) -> str | None:
        """Absolute http(s) URL for ``link``, or None if it cannot be resolved."""
        if not link:
            return None
        if base_url:
            link = urljoin(base_url, link)
        if urlsplit(link).scheme.lower() not in _LINK_SCHEMES:
            return None
        return link
