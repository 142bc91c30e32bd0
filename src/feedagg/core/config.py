"""feedagg configuration.

Application settings loaded from environment variables with FEEDAGG_ prefix.

Example:
    >>> from feedagg.core.config import get_settings
    >>> settings = get_settings(log_level="DEBUG")
    >>> settings.log_level
    'DEBUG'
    >>> settings.concurrency
    10
"""

from __future__ import annotations

from datetime import timedelta
from typing import Any, Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings.

    Loads from environment variables with FEEDAGG_ prefix.

    Example:
        >>> from feedagg.core.config import Settings
        >>> s = Settings(database_url="sqlite:///test.db", interval=30)
        >>> s.database_url
        'sqlite:///test.db'
        >>> s.interval_delta.total_seconds()
        30.0
    """

    model_config = SettingsConfigDict(
        env_prefix="FEEDAGG_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Storage
    database_url: str = Field(
        default="sqlite:///./feedagg.db",
        description="SQLAlchemy database URL",
    )

    # Ingestion
    concurrency: int = Field(default=10, ge=1, le=1000, description="Feeds in flight at once")
    interval: float = Field(default=60.0, gt=0.0, description="Seconds between scheduler ticks")
    fetch_on_start: bool = Field(default=True, description="Fire the first tick immediately")
    mark_fetched_on_failure: bool = Field(
        default=True,
        description="Advance the freshness marker when a cycle fails",
    )

    # HTTP
    request_timeout: float = Field(default=10.0, gt=0.0)
    user_agent: str = Field(default="feedagg/0.1 (+https://github.com/feedagg/feedagg)")

    # Logging
    log_level: str = Field(default="INFO", description="Logging level")
    log_format: Literal["console", "json"] = Field(default="console")

    # Metrics
    enable_prometheus: bool = Field(default=False)

    @property
    def interval_delta(self) -> timedelta:
        """Tick interval as a timedelta."""
        return timedelta(seconds=self.interval)


def get_settings(**overrides: Any) -> Settings:
    """Get settings with optional overrides.

    Example:
        >>> from feedagg.core.config import get_settings
        >>> get_settings(concurrency=3).concurrency
        3
    """
    return Settings(**overrides)
