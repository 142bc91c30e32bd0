"""
feedagg SQLAlchemy models and schema management.

This module provides:
- SQLAlchemy ORM models for the feeds and posts tables
- The unique index on ``posts.url`` that deduplication relies on
- The freshness index used by feed selection

Usage:
    from feedagg.storage.models import create_all_tables

    engine = create_engine("postgresql://...")
    create_all_tables(engine)
"""

import uuid
from datetime import datetime

from sqlalchemy import (
    DateTime,
    ForeignKey,
    Index,
    String,
    Text,
    Uuid,
    func,
)
from sqlalchemy.engine import Engine
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


# =============================================================================
# Base Model
# =============================================================================


class Base(DeclarativeBase):
    """Base class for all feedagg models."""


# =============================================================================
# Feed Model
# =============================================================================


class FeedModel(Base):
    """
    Subscribed feeds.

    ``user_id`` references the accounts table owned by the CRUD layer; it is
    kept as a plain nullable column so the core can run without that schema.
    """

    __tablename__ = "feeds"
    __table_args__ = (
        Index("ix_feeds_last_fetched_at", "last_fetched_at", "id"),
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    url: Mapped[str] = mapped_column(String(2048), nullable=False, unique=True)
    user_id: Mapped[uuid.UUID | None] = mapped_column(Uuid, nullable=True)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
        onupdate=func.now(),
    )
    last_fetched_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))


# =============================================================================
# Post Model
# =============================================================================


class PostModel(Base):
    """
    Ingested posts.

    The unique constraint on ``url`` is the deduplication key across all
    feeds.
    """

    __tablename__ = "posts"
    __table_args__ = (
        Index("ix_posts_feed_published", "feed_id", "published_at"),
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    feed_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("feeds.id", ondelete="CASCADE"),
        nullable=False,
    )
    title: Mapped[str] = mapped_column(Text, nullable=False, default="")
    url: Mapped[str] = mapped_column(String(2048), nullable=False, unique=True)
    description: Mapped[str | None] = mapped_column(Text)
    published_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
        onupdate=func.now(),
    )


# =============================================================================
# Schema Management
# =============================================================================


def create_all_tables(engine: Engine) -> None:
    """Create all tables and indexes if they do not exist."""
    Base.metadata.create_all(engine)


def drop_all_tables(engine: Engine) -> None:
    """Drop all tables. Use with care."""
    Base.metadata.drop_all(engine)
