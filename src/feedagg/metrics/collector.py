"""Metrics collector for feed ingestion.

Provides in-process counters for monitoring the ingestion loop, with optional
Prometheus export.

Example:
    >>> from feedagg.metrics import IngestionMetrics
    >>>
    >>> metrics = IngestionMetrics()
    >>> with metrics.time_operation("fetch", feed="go-blog"):
    ...     pass
    >>> metrics.record_error("go-blog", "FetchError")
    >>> metrics.summary().total_errors
    1
"""

from __future__ import annotations

import logging
import time
from collections import defaultdict
from collections.abc import Generator
from contextlib import contextmanager
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

from prometheus_client import REGISTRY, CollectorRegistry, Counter, Histogram

if TYPE_CHECKING:
    from feedagg.models.cycle import CycleResult

logger = logging.getLogger("feedagg.metrics")


@dataclass
class MetricsSummary:
    """Summary of collected metrics.

    Attributes:
        total_cycles: Feed-cycles finished (done or failed)
        cycles_by_state: Finished cycles grouped by terminal state
        total_new: New posts stored
        total_duplicates: Candidates skipped as already known
        total_errors: Errors recorded
        new_by_feed: New posts grouped by feed
        errors_by_type: Errors grouped by exception type
        errors_by_feed: Errors grouped by feed
        operation_times: Total seconds by operation and feed
        operation_counts: Timed calls by operation and feed
    """

    total_cycles: int = 0
    cycles_by_state: dict[str, int] = field(default_factory=dict)
    total_new: int = 0
    total_duplicates: int = 0
    total_errors: int = 0
    new_by_feed: dict[str, int] = field(default_factory=dict)
    errors_by_type: dict[str, int] = field(default_factory=dict)
    errors_by_feed: dict[str, int] = field(default_factory=dict)
    operation_times: dict[str, dict[str, float]] = field(default_factory=dict)
    operation_counts: dict[str, dict[str, int]] = field(default_factory=dict)

    def __str__(self) -> str:
        """Format summary as human-readable string."""
        lines = [
            "Ingestion Metrics Summary",
            "=" * 40,
            f"Cycles: {self.total_cycles:,}",
            f"New posts: {self.total_new:,}",
            f"Duplicates: {self.total_duplicates:,}",
            f"Errors: {self.total_errors}",
        ]

        if self.cycles_by_state:
            lines.append("\nCycles by state:")
            for state, count in sorted(self.cycles_by_state.items()):
                lines.append(f"  {state}: {count:,}")

        if self.new_by_feed:
            lines.append("\nNew posts by feed (top 10):")
            for feed, count in sorted(self.new_by_feed.items(), key=lambda x: -x[1])[:10]:
                lines.append(f"  {feed}: {count:,}")

        if self.errors_by_type:
            lines.append("\nErrors by type:")
            for error_type, count in sorted(self.errors_by_type.items()):
                lines.append(f"  {error_type}: {count}")

        if self.errors_by_feed:
            lines.append("\nErrors by feed (top 10):")
            for feed, count in sorted(self.errors_by_feed.items(), key=lambda x: -x[1])[:10]:
                lines.append(f"  {feed}: {count}")

        return "\n".join(lines)

    def to_dict(self) -> dict[str, Any]:
        """Convert summary to dictionary for JSON serialization."""
        return {
            "total_cycles": self.total_cycles,
            "cycles_by_state": self.cycles_by_state,
            "total_new": self.total_new,
            "total_duplicates": self.total_duplicates,
            "total_errors": self.total_errors,
            "new_by_feed": self.new_by_feed,
            "errors_by_type": self.errors_by_type,
            "errors_by_feed": self.errors_by_feed,
        }


class IngestionMetrics:
    """Collects metrics for feed-cycles.

    Safe to share between workers on one event loop.

    Attributes:
        prometheus_enabled: Whether Prometheus metrics are enabled
    """

    def __init__(
        self,
        enable_prometheus: bool = False,
        prometheus_prefix: str = "feedagg",
        registry: CollectorRegistry | None = None,
    ):
        """Initialize metrics collector.

        Args:
            enable_prometheus: If True, also export to Prometheus
            prometheus_prefix: Prefix for Prometheus metric names
            registry: Prometheus registry (default: the global registry)
        """
        self._cycles_by_state: dict[str, int] = defaultdict(int)
        self._new_by_feed: dict[str, int] = defaultdict(int)
        self._duplicates = 0
        self._errors_by_type: dict[str, int] = defaultdict(int)
        self._errors_by_feed: dict[str, int] = defaultdict(int)
        # Running totals per (operation, feed)
        self._operation_times: dict[str, dict[str, float]] = defaultdict(
            lambda: defaultdict(float)
        )
        self._operation_counts: dict[str, dict[str, int]] = defaultdict(
            lambda: defaultdict(int)
        )
        self._prometheus_enabled = False
        self._prometheus_prefix = prometheus_prefix

        if enable_prometheus:
            self._init_prometheus(registry if registry is not None else REGISTRY)

    @property
    def prometheus_enabled(self) -> bool:
        """Whether Prometheus metrics are enabled."""
        return self._prometheus_enabled

    def _init_prometheus(self, registry: CollectorRegistry) -> None:
        """Register Prometheus metrics."""
        prefix = self._prometheus_prefix

        self._prom_cycles = Counter(
            f"{prefix}_feed_cycles_total",
            "Feed-cycles finished",
            ["state"],
            registry=registry,
        )
        self._prom_posts = Counter(
            f"{prefix}_posts_total",
            "Candidates persisted",
            ["outcome"],
            registry=registry,
        )
        self._prom_errors = Counter(
            f"{prefix}_errors_total",
            "Feed-cycle errors",
            ["error_type"],
            registry=registry,
        )
        self._prom_duration = Histogram(
            f"{prefix}_operation_duration_seconds",
            "Time spent per feed-cycle operation",
            ["operation"],
            buckets=(0.01, 0.05, 0.1, 0.5, 1.0, 2.5, 5.0, 10.0, 30.0),
            registry=registry,
        )

        self._prometheus_enabled = True
        logger.info("Prometheus metrics enabled")

    def record_cycle(self, result: CycleResult) -> None:
        """Record a finished feed-cycle."""
        state = result.state.value
        self._cycles_by_state[state] += 1
        self._new_by_feed[result.feed_name] += result.new
        self._duplicates += result.duplicates

        if self._prometheus_enabled:
            self._prom_cycles.labels(state=state).inc()
            self._prom_posts.labels(outcome="new").inc(result.new)
            self._prom_posts.labels(outcome="duplicate").inc(result.duplicates)

    def record_error(self, feed: str, error_type: str = "unknown") -> None:
        """Record an error.

        Args:
            feed: Feed name
            error_type: Exception type name (e.g. "FetchError")
        """
        self._errors_by_type[error_type] += 1
        self._errors_by_feed[feed] += 1

        if self._prometheus_enabled:
            self._prom_errors.labels(error_type=error_type).inc()

    @contextmanager
    def time_operation(
        self,
        operation: str,
        feed: str = "default",
    ) -> Generator[None, None, None]:
        """Context manager to time an operation.

        Args:
            operation: Operation type ("fetch", "parse", "persist")
            feed: Feed name
        """
        start = time.perf_counter()
        try:
            yield
        finally:
            duration = time.perf_counter() - start
            self._operation_times[operation][feed] += duration
            self._operation_counts[operation][feed] += 1

            if self._prometheus_enabled:
                self._prom_duration.labels(operation=operation).observe(duration)

    def summary(self) -> MetricsSummary:
        """Get metrics summary."""
        return MetricsSummary(
            total_cycles=sum(self._cycles_by_state.values()),
            cycles_by_state=dict(self._cycles_by_state),
            total_new=sum(self._new_by_feed.values()),
            total_duplicates=self._duplicates,
            total_errors=sum(self._errors_by_type.values()),
            new_by_feed={k: v for k, v in self._new_by_feed.items() if v},
            errors_by_type=dict(self._errors_by_type),
            errors_by_feed=dict(self._errors_by_feed),
            operation_times={op: dict(feeds) for op, feeds in self._operation_times.items()},
            operation_counts={op: dict(feeds) for op, feeds in self._operation_counts.items()},
        )

    def reset(self) -> None:
        """Reset all in-process counters."""
        self._cycles_by_state.clear()
        self._new_by_feed.clear()
        self._duplicates = 0
        self._errors_by_type.clear()
        self._errors_by_feed.clear()
        self._operation_times.clear()
        self._operation_counts.clear()

    def to_dict(self) -> dict[str, Any]:
        """Export metrics as dictionary."""
        return self.summary().to_dict()


__all__ = [
    "IngestionMetrics",
    "MetricsSummary",
]
