"""Core configuration, errors and the ingestion loop.

``FeedIngestor`` lives in ``feedagg.core.ingestor`` and is re-exported from
the top-level package.
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

__all__ = [
    # Settings
    "Settings",
    "get_settings",
    # Errors
    "ConfigurationError",
    "FeedAggError",
    "FetchError",
    "ParseError",
    "PersistError",
    "UniqueConflict",
]
