"""Scheduling of feed-cycles."""

from feedagg.scheduler.freshness import FreshnessScheduler

__all__ = ["FreshnessScheduler"]
