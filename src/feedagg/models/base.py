"""Base model shared by all feedagg models.

Example:
    >>> from feedagg.models.base import FeedAggModel, utcnow
    >>> class Thing(FeedAggModel):
    ...     name: str
    >>> Thing(name="  padded  ").name
    'padded'
    >>> utcnow().tzinfo is not None
    True
"""

from __future__ import annotations

from datetime import UTC, datetime

from pydantic import BaseModel, ConfigDict


def utcnow() -> datetime:
    """Current time as an aware UTC datetime."""
    return datetime.now(UTC)


def ensure_utc(value: datetime) -> datetime:
    """Treat naive datetimes as UTC and convert aware ones to UTC.

    Example:
        >>> from datetime import datetime
        >>> ensure_utc(datetime(2024, 1, 1)).isoformat()
        '2024-01-01T00:00:00+00:00'
    """
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value.astimezone(UTC)


class FeedAggModel(BaseModel):
    """Base model with standard configuration."""

    model_config = ConfigDict(
        from_attributes=True,
        populate_by_name=True,
        str_strip_whitespace=True,
        validate_assignment=True,
        extra="forbid",
    )
