"""
feedagg - Background RSS/Atom Feed Ingestion.

Periodically refreshes a set of subscribed feeds, parses their items and
stores new posts, skipping ones already known by URL.

Quick Start:
    >>> from feedagg import MemoryStorage, start_ingestion
    >>> storage = MemoryStorage()
    >>> await storage.add_feed("go-blog", "https://go.dev/blog/feed.atom")
    >>> ingestor = await start_ingestion(storage, concurrency=10, interval=60)
    >>> ...
    >>> await ingestor.close()

Architecture:
    Scheduler: FreshnessScheduler picks the stalest feeds every tick
    Executor: WorkerPool runs at most ``concurrency`` feed-cycles at once
    Pipeline: fetch (FeedSourceClient) -> parse (SyndicationParser)
        -> persist (PostUpserter) -> mark fetched
    Storage Backends: MemoryStorage, SQLAlchemyStorage
"""

from feedagg.core.config import Settings, get_settings
from feedagg.core.exceptions import (
    ConfigurationError,
    FeedAggError,
    FetchError,
    ParseError,
    PersistError,
    UniqueConflict,
)
from feedagg.core.ingestor import FeedIngestor, start_ingestion
from feedagg.executor.pool import WorkerPool
from feedagg.http.client import FeedSourceClient
from feedagg.metrics import IngestionMetrics, MetricsSummary
from feedagg.models import CycleResult, CycleState, Feed, Post, PostCandidate
from feedagg.parser import SyndicationParser
from feedagg.pipeline import FeedPipeline
from feedagg.protocols.storage import FeedStorage
from feedagg.scheduler.freshness import FreshnessScheduler
from feedagg.storage.memory import MemoryStorage
from feedagg.storage.sqlalchemy_storage import SQLAlchemyStorage
from feedagg.upserter import PostUpserter, UpsertStats

__version__ = "0.1.0"

__all__ = [
    # Ingestion
    "FeedIngestor",
    "FeedPipeline",
    "FreshnessScheduler",
    "WorkerPool",
    "start_ingestion",
    # Components
    "FeedSourceClient",
    "PostUpserter",
    "SyndicationParser",
    "UpsertStats",
    # Storage
    "FeedStorage",
    "MemoryStorage",
    "SQLAlchemyStorage",
    # Models
    "CycleResult",
    "CycleState",
    "Feed",
    "Post",
    "PostCandidate",
    # Config & errors
    "ConfigurationError",
    "FeedAggError",
    "FetchError",
    "ParseError",
    "PersistError",
    "Settings",
    "UniqueConflict",
    "get_settings",
    # Metrics
    "IngestionMetrics",
    "MetricsSummary",
    "__version__",
]
