"""Executors for feed-cycles.

Example:
    >>> from feedagg.executor import WorkerPool
    >>> WorkerPool(lambda feed: None, concurrency=4).concurrency
    4
"""

from feedagg.executor.pool import WorkerPool

__all__ = ["WorkerPool"]
