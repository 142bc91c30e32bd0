"""Feed-cycle state and result.

One feed-cycle is one worker's end-to-end processing of one feed for one
scheduler tick::

    PENDING -> FETCHING -> PARSING -> PERSISTING -> DONE
        \\          \\          \\           \\
         +----------+----------+-----------+--> FAILED

DONE and FAILED are terminal for the cycle; the feed may be selected again on
a later tick either way.

Example:
    >>> from uuid import uuid4
    >>> from feedagg.models.cycle import CycleResult, CycleState
    >>> result = CycleResult(feed_id=uuid4(), feed_name="blog", new=3, duplicates=1)
    >>> result.state
    <CycleState.PENDING: 'pending'>
    >>> result.candidates
    0
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from uuid import UUID

from feedagg.models.base import utcnow


class CycleState(str, Enum):
    """Feed-cycle states.

    Example:
        >>> from feedagg.models.cycle import CycleState
        >>> CycleState.DONE.is_terminal
        True
        >>> CycleState.FETCHING.is_active
        True
    """

    PENDING = "pending"
    FETCHING = "fetching"
    PARSING = "parsing"
    PERSISTING = "persisting"
    DONE = "done"
    FAILED = "failed"

    @property
    def is_terminal(self) -> bool:
        return self in (CycleState.DONE, CycleState.FAILED)

    @property
    def is_active(self) -> bool:
        return self in (CycleState.FETCHING, CycleState.PARSING, CycleState.PERSISTING)


@dataclass
class CycleResult:
    """Outcome of one feed-cycle."""

    feed_id: UUID
    feed_name: str
    state: CycleState = CycleState.PENDING
    error: str | None = None
    error_type: str | None = None
    failed_in: CycleState | None = None
    candidates: int = 0
    new: int = 0
    duplicates: int = 0
    marked_fetched: bool = False
    started_at: datetime = field(default_factory=utcnow)
    duration_ms: float = 0.0

    @property
    def ok(self) -> bool:
        return self.state is CycleState.DONE
