"""Custom exceptions.

feedagg uses a single hierarchy of exceptions rooted at FeedAggError. Every
error raised inside a feed-cycle is scoped to that cycle: the pipeline catches
it, logs it and reports it in the cycle result.

Example:
    >>> from feedagg.core.exceptions import FetchError, FeedAggError
    >>> err = FetchError("https://example.com/rss", "HTTP 500", status_code=500)
    >>> isinstance(err, FeedAggError)
    True
    >>> err.status_code
    500
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from feedagg.upserter import UpsertStats


class FeedAggError(Exception):
    """Base exception for feedagg.

    Example:
        >>> from feedagg.core.exceptions import FeedAggError
        >>> str(FeedAggError("something went wrong"))
        'something went wrong'
    """


class FetchError(FeedAggError):
    """Retrieving a feed document failed.

    Covers network errors, timeouts, non-success status codes and empty
    bodies.

    Example:
        >>> from feedagg.core.exceptions import FetchError
        >>> err = FetchError("https://example.com/feed", "timed out")
        >>> str(err)
        'Failed to fetch https://example.com/feed: timed out'
        >>> err.status_code is None
        True
    """

    def __init__(self, url: str, reason: str, status_code: int | None = None) -> None:
        self.url = url
        self.reason = reason
        self.status_code = status_code
        super().__init__(f"Failed to fetch {url}: {reason}")


class ParseError(FeedAggError):
    """Feed document is malformed at the document level.

    Example:
        >>> from feedagg.core.exceptions import ParseError
        >>> raise ParseError("not xml")  # doctest: +IGNORE_EXCEPTION_DETAIL
        Traceback (most recent call last):
        ParseError: not xml
    """


class PersistError(FeedAggError):
    """Storage failed for a reason other than a uniqueness conflict.

    When raised by the upserter, ``stats`` holds the counts accumulated before
    the failure.
    """

    def __init__(self, message: str, stats: UpsertStats | None = None) -> None:
        super().__init__(message)
        self.stats = stats


class UniqueConflict(FeedAggError):
    """A post with the same canonical URL already exists.

    This is the expected "already known" signal of the deduplicator, not a
    failure.

    Example:
        >>> from feedagg.core.exceptions import UniqueConflict
        >>> UniqueConflict("https://example.com/a").url
        'https://example.com/a'
    """

    def __init__(self, url: str) -> None:
        self.url = url
        super().__init__(f"Post already exists: {url}")


class ConfigurationError(FeedAggError):
    """Configuration is invalid.

    Example:
        >>> from feedagg.core.exceptions import ConfigurationError
        >>> raise ConfigurationError("concurrency must be >= 1")  # doctest: +IGNORE_EXCEPTION_DETAIL
        Traceback (most recent call last):
        ConfigurationError: concurrency must be >= 1
    """
