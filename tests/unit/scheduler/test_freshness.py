"""Tests for feedagg.scheduler.freshness - FreshnessScheduler."""

from __future__ import annotations

import asyncio
import logging
from datetime import UTC, datetime, timedelta

import pytest

from feedagg.core.exceptions import ConfigurationError, PersistError
from feedagg.executor.pool import WorkerPool
from feedagg.models.feed import Feed
from feedagg.scheduler.freshness import FreshnessScheduler
from feedagg.storage.memory import MemoryStorage

NOW = datetime(2026, 3, 1, 12, 0, tzinfo=UTC)

# =============================================================================
# Test Fixtures
# =============================================================================


class BrokenStorage(MemoryStorage):
    async def list_feeds_to_fetch(self, limit: int) -> list[Feed]:
        raise PersistError("connection refused")


class SlowStorage(MemoryStorage):
    def __init__(self, delay: float) -> None:
        super().__init__()
        self.delay = delay

    async def list_feeds_to_fetch(self, limit: int) -> list[Feed]:
        await asyncio.sleep(self.delay)
        return await super().list_feeds_to_fetch(limit)


@pytest.fixture
async def recording_pool():
    """Started pool that records the feeds it handles."""
    handled: list[Feed] = []

    async def handler(feed: Feed) -> None:
        handled.append(feed)

    pool = WorkerPool(handler, concurrency=4)
    pool.handled = handled
    await pool.start()
    yield pool
    await pool.close()


async def run_for(scheduler: FreshnessScheduler, seconds: float) -> None:
    task = asyncio.create_task(scheduler.run())
    await asyncio.sleep(seconds)
    scheduler.stop()
    await asyncio.wait_for(task, timeout=1)


# =============================================================================
# Tick Tests
# =============================================================================


class TestTick:
    async def test_never_fetched_feed_selected_first(self, storage, recording_pool):
        a = await storage.put_feed(Feed(name="a", url="https://a.example.com/rss"))
        await storage.put_feed(
            Feed(
                name="b",
                url="https://b.example.com/rss",
                last_fetched_at=NOW - timedelta(minutes=10),
            )
        )
        scheduler = FreshnessScheduler(storage, recording_pool, batch_size=1, interval=60)

        batch = await scheduler.tick()
        await recording_pool.join()

        assert [f.id for f in batch] == [a.id]
        assert [f.id for f in recording_pool.handled] == [a.id]

    async def test_batch_limited_to_batch_size(self, storage, recording_pool):
        for i in range(5):
            await storage.add_feed(f"feed{i}", f"https://feed{i}.example.com/rss")
        scheduler = FreshnessScheduler(storage, recording_pool, batch_size=3, interval=60)

        batch = await scheduler.tick()
        await recording_pool.join()

        assert len(batch) == 3
        assert len(recording_pool.handled) == 3
        assert scheduler.dispatched == 3

    async def test_empty_batch_is_a_tick(self, storage, recording_pool):
        scheduler = FreshnessScheduler(storage, recording_pool, batch_size=3, interval=60)

        assert await scheduler.tick() == []
        assert scheduler.ticks == 1

    async def test_selection_failure_yields_empty_batch(self, recording_pool, caplog):
        scheduler = FreshnessScheduler(BrokenStorage(), recording_pool, batch_size=3, interval=60)

        with caplog.at_level(logging.ERROR, logger="feedagg.scheduler.freshness"):
            batch = await scheduler.tick()

        assert batch == []
        assert "could not select feeds" in caplog.text


# =============================================================================
# Run Loop Tests
# =============================================================================


class TestRun:
    async def test_first_tick_is_immediate_by_default(self, storage, recording_pool):
        scheduler = FreshnessScheduler(storage, recording_pool, batch_size=1, interval=10)

        await run_for(scheduler, 0.05)

        assert scheduler.ticks == 1

    async def test_first_tick_after_one_interval(self, storage, recording_pool):
        scheduler = FreshnessScheduler(
            storage, recording_pool, batch_size=1, interval=0.2, fetch_on_start=False
        )
        task = asyncio.create_task(scheduler.run())

        await asyncio.sleep(0.05)
        assert scheduler.ticks == 0

        await asyncio.sleep(0.25)
        assert scheduler.ticks == 1

        scheduler.stop()
        await asyncio.wait_for(task, timeout=1)

    async def test_ticks_on_fixed_cadence(self, storage, recording_pool):
        scheduler = FreshnessScheduler(storage, recording_pool, batch_size=1, interval=0.05)

        await run_for(scheduler, 0.275)

        assert 4 <= scheduler.ticks <= 7

    async def test_overrunning_tick_skips_missed_slots(self, recording_pool):
        scheduler = FreshnessScheduler(
            SlowStorage(delay=0.12), recording_pool, batch_size=1, interval=0.05
        )

        await run_for(scheduler, 0.3)

        assert scheduler.skipped >= 2
        assert scheduler.ticks <= 3

    async def test_stop_before_run(self, storage, recording_pool):
        scheduler = FreshnessScheduler(storage, recording_pool, batch_size=1, interval=0.01)
        scheduler.stop()

        await asyncio.wait_for(scheduler.run(), timeout=1)

        assert scheduler.ticks == 0
        assert not scheduler.running

    async def test_runs_again_after_stop(self, storage, recording_pool):
        scheduler = FreshnessScheduler(storage, recording_pool, batch_size=1, interval=3600)
        await run_for(scheduler, 0.02)

        await run_for(scheduler, 0.02)

        assert scheduler.ticks == 2

    async def test_reset_drops_pending_stop(self, storage, recording_pool):
        scheduler = FreshnessScheduler(storage, recording_pool, batch_size=1, interval=3600)
        scheduler.stop()

        scheduler.reset()
        await run_for(scheduler, 0.02)

        assert scheduler.ticks == 1

    async def test_stop_interrupts_wait(self, storage, recording_pool):
        scheduler = FreshnessScheduler(storage, recording_pool, batch_size=1, interval=3600)

        await run_for(scheduler, 0.02)

        assert scheduler.ticks == 1

    async def test_run_twice_rejected(self, storage, recording_pool):
        scheduler = FreshnessScheduler(storage, recording_pool, batch_size=1, interval=3600)
        task = asyncio.create_task(scheduler.run())
        await asyncio.sleep(0)

        with pytest.raises(RuntimeError, match="already running"):
            await scheduler.run()

        scheduler.stop()
        await task

    async def test_marked_feeds_rotate(self, storage):
        """Feeds marked fetched during a tick fall behind the rest."""
        for i in range(4):
            await storage.add_feed(f"feed{i}", f"https://feed{i}.example.com/rss")
        handled: list[str] = []
        clock = iter(NOW + timedelta(seconds=i) for i in range(100))

        async def handler(feed: Feed) -> None:
            handled.append(feed.name)
            await storage.mark_feed_fetched(feed.id, next(clock))

        async with WorkerPool(handler, concurrency=1) as pool:
            scheduler = FreshnessScheduler(storage, pool, batch_size=2, interval=60)
            await scheduler.tick()
            await pool.join()
            await scheduler.tick()
            await pool.join()
            await scheduler.tick()
            await pool.join()

        assert sorted(handled[:4]) == ["feed0", "feed1", "feed2", "feed3"]
        assert handled[4:] == handled[:2]


# =============================================================================
# Configuration Tests
# =============================================================================


class TestConfiguration:
    def test_timedelta_interval(self, storage):
        pool = WorkerPool(lambda feed: None, concurrency=1)

        scheduler = FreshnessScheduler(storage, pool, batch_size=1, interval=timedelta(minutes=1))

        assert scheduler.interval == 60.0

    @pytest.mark.parametrize(
        ("batch_size", "interval"),
        [(0, 60), (1, 0), (1, -5), (1, timedelta(0))],
    )
    def test_invalid(self, storage, batch_size, interval):
        pool = WorkerPool(lambda feed: None, concurrency=1)

        with pytest.raises(ConfigurationError):
            FreshnessScheduler(storage, pool, batch_size=batch_size, interval=interval)
