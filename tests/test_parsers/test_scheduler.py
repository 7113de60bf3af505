"""Tests for the two-cadence snapshot scheduler."""

import asyncio
from datetime import datetime, timedelta
from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from holder_radar.parsers.exceptions import ChainUnavailableError, StorageError
from holder_radar.parsers.metrics import SnapshotMetrics
from holder_radar.parsers.persistence import SnapshotStore
from holder_radar.parsers.scheduler import Scheduler
from tests.factories import make_snapshot, new_address


class _FakeService:
    """Snapshot computer whose stats runs can be held open."""

    def __init__(self) -> None:
        self.calls: list[tuple[str, bool]] = []
        self.hold_stats = asyncio.Event()
        self.hold_stats.set()
        self.stats_started = asyncio.Event()
        self.fail: set[str] = set()
        self.slow: set[str] = set()

    async def compute_snapshot(self, mint, price_override=None, *, include_distribution=True):
        self.calls.append((mint, include_distribution))
        if not include_distribution:
            self.stats_started.set()
            await self.hold_stats.wait()
        if mint in self.slow:
            await asyncio.sleep(10)
        if mint in self.fail:
            raise ChainUnavailableError("HTTP 429")
        return make_snapshot(
            mint,
            timestamp=datetime(2026, 1, 1),
            distribution_score=55.0 if include_distribution else None,
        )


def _store(stats_due: list[str], metrics_due: list[str]) -> MagicMock:
    store = MagicMock()
    store.list_mints_due_for_stats = AsyncMock(return_value=stats_due)
    store.list_mints_due_for_metrics = AsyncMock(return_value=metrics_due)
    store.persist_snapshot = AsyncMock()
    store.mark_stats_updated = AsyncMock()
    store.mark_metrics_updated = AsyncMock()
    return store


def _scheduler(service, store, **kwargs) -> tuple[Scheduler, SnapshotMetrics]:
    run_metrics = SnapshotMetrics()
    scheduler = Scheduler(service, store, run_metrics=run_metrics, **kwargs)
    return scheduler, run_metrics


class TestCadenceTick:
    @pytest.mark.asyncio
    async def test_stats_cycle_updates_due_mints(self) -> None:
        service = _FakeService()
        store = _store(["m1", "m2"], [])
        scheduler, run_metrics = _scheduler(service, store)

        assert await scheduler.stats.tick() is True

        assert sorted(service.calls) == [("m1", False), ("m2", False)]
        assert store.persist_snapshot.await_count == 2
        marked = sorted(c.args[0] for c in store.mark_stats_updated.await_args_list)
        assert marked == ["m1", "m2"]
        store.mark_metrics_updated.assert_not_awaited()
        cadence = run_metrics.get_summary()["cadences"]["stats"]
        assert cadence["cycles"] == 1
        assert cadence["mints_ok"] == 2

    @pytest.mark.asyncio
    async def test_metrics_cycle_includes_distribution(self) -> None:
        service = _FakeService()
        store = _store([], ["m1"])
        scheduler, _ = _scheduler(service, store)

        await scheduler.metrics.tick()

        assert service.calls == [("m1", True)]
        store.mark_metrics_updated.assert_awaited_once()
        assert store.mark_metrics_updated.await_args.args[0] == "m1"
        persisted = store.persist_snapshot.await_args.args[0]
        assert persisted.distribution_score == 55.0

    @pytest.mark.asyncio
    async def test_overlapping_stats_tick_is_noop_metrics_proceeds(self) -> None:
        service = _FakeService()
        service.hold_stats.clear()
        store = _store(["slow-mint"], ["m1"])
        scheduler, run_metrics = _scheduler(service, store)

        first = asyncio.create_task(scheduler.stats.tick())
        await asyncio.wait_for(service.stats_started.wait(), timeout=1)
        assert scheduler.stats.running

        # Second stats tick while the first is in flight
        assert await scheduler.stats.tick() is False
        assert store.list_mints_due_for_stats.await_count == 1

        # Metrics cadence is unaffected
        assert await scheduler.metrics.tick() is True
        store.mark_metrics_updated.assert_awaited_once()

        service.hold_stats.set()
        assert await first is True
        assert not scheduler.stats.running
        assert [c for c in service.calls if not c[1]] == [("slow-mint", False)]
        summary = run_metrics.get_summary()["cadences"]
        assert summary["stats"]["skipped_ticks"] == 1
        assert summary["metrics"]["skipped_ticks"] == 0

    @pytest.mark.asyncio
    async def test_failed_mint_left_stale(self) -> None:
        service = _FakeService()
        service.fail = {"bad"}
        store = _store(["bad", "good"], [])
        scheduler, run_metrics = _scheduler(service, store)

        await scheduler.stats.tick()

        store.mark_stats_updated.assert_awaited_once()
        assert store.mark_stats_updated.await_args.args[0] == "good"
        cadence = run_metrics.get_summary()["cadences"]["stats"]
        assert cadence["mints_ok"] == 1
        assert cadence["mints_failed"] == 1

    @pytest.mark.asyncio
    async def test_unexpected_error_isolated(self) -> None:
        service = _FakeService()
        store = _store(["a", "b"], [])
        store.persist_snapshot = AsyncMock(side_effect=[RuntimeError("boom"), None])
        scheduler, _ = _scheduler(service, store)

        assert await scheduler.stats.tick() is True
        store.mark_stats_updated.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_stuck_mint_times_out(self) -> None:
        service = _FakeService()
        service.slow = {"stuck"}
        store = _store(["stuck", "fast"], [])
        scheduler, run_metrics = _scheduler(service, store, mint_timeout_sec=0.05)

        await asyncio.wait_for(scheduler.stats.tick(), timeout=2)

        store.mark_stats_updated.assert_awaited_once()
        assert store.mark_stats_updated.await_args.args[0] == "fast"
        cadence = run_metrics.get_summary()["cadences"]["stats"]
        assert cadence["mints_timed_out"] == 1

    @pytest.mark.asyncio
    async def test_concurrency_cap(self) -> None:
        in_flight = 0
        peak = 0

        class _CountingService(_FakeService):
            async def compute_snapshot(self, mint, price_override=None, *, include_distribution=True):
                nonlocal in_flight, peak
                in_flight += 1
                peak = max(peak, in_flight)
                await asyncio.sleep(0.01)
                in_flight -= 1
                return await super().compute_snapshot(
                    mint, include_distribution=include_distribution
                )

        store = _store([f"m{i}" for i in range(8)], [])
        scheduler, _ = _scheduler(_CountingService(), store, stats_concurrency=3)

        await scheduler.stats.tick()

        assert peak == 3
        assert store.mark_stats_updated.await_count == 8

    @pytest.mark.asyncio
    async def test_storage_error_listing_due_mints(self) -> None:
        service = _FakeService()
        store = _store([], [])
        store.list_mints_due_for_stats = AsyncMock(side_effect=StorageError("db down"))
        scheduler, run_metrics = _scheduler(service, store)

        assert await scheduler.stats.tick() is True
        assert service.calls == []
        assert "stats" not in run_metrics.get_summary()["cadences"]

    @pytest.mark.asyncio
    async def test_unexpected_error_listing_due_mints(self) -> None:
        service = _FakeService()
        store = _store([], [])
        store.list_mints_due_for_metrics = AsyncMock(side_effect=RuntimeError("bad row"))
        scheduler, _ = _scheduler(service, store)

        assert await scheduler.metrics.tick() is True
        assert not scheduler.metrics.running
        assert service.calls == []

    @pytest.mark.asyncio
    async def test_nothing_due(self) -> None:
        service = _FakeService()
        scheduler, run_metrics = _scheduler(service, _store([], []))

        await scheduler.stats.tick()

        assert service.calls == []
        assert run_metrics.get_summary()["cadences"]["stats"]["cycles"] == 1


class TestSchedulerLoop:
    @pytest.mark.asyncio
    async def test_run_fires_both_cadences_until_cancelled(self) -> None:
        service = _FakeService()
        store = _store(["m1"], ["m1"])
        scheduler, _ = _scheduler(
            service,
            store,
            stats_interval_sec=0.02,
            metrics_interval_sec=0.05,
            stats_report_interval_sec=0.05,
        )

        task = asyncio.create_task(scheduler.run())
        await asyncio.sleep(0.15)
        task.cancel()
        with pytest.raises(asyncio.CancelledError):
            await task

        assert store.list_mints_due_for_stats.await_count >= 3
        assert store.list_mints_due_for_metrics.await_count >= 1
        assert not scheduler.stats.running
        assert not scheduler.metrics.running

    @pytest.mark.asyncio
    async def test_stop_cancels_in_flight_cycles(self) -> None:
        service = _FakeService()
        service.hold_stats.clear()
        store = _store(["m1"], [])
        scheduler, _ = _scheduler(service, store, stats_interval_sec=60)

        loop_task = asyncio.create_task(scheduler.stats.run_forever())
        await asyncio.wait_for(service.stats_started.wait(), timeout=1)
        loop_task.cancel()
        with pytest.raises(asyncio.CancelledError):
            await loop_task

        await scheduler.stop()

        assert not scheduler.stats.running
        store.mark_stats_updated.assert_not_awaited()


class TestCadenceWithStore:
    @pytest.mark.asyncio
    async def test_mint_refreshed_on_every_stats_tick(self, store: SnapshotStore) -> None:
        mint = new_address()
        await store.upsert_monitored_token(mint)
        service = _FakeService()
        scheduler, _ = _scheduler(service, store, stats_interval_sec=60)

        t0 = datetime(2026, 3, 1, 12, 0, 0)
        ticks = [t0, t0 + timedelta(seconds=60), t0 + timedelta(seconds=120)]
        with patch("holder_radar.parsers.scheduler._utcnow", side_effect=ticks):
            for _ in ticks:
                await scheduler.stats.tick()

        assert service.calls == [(mint, False)] * 3

    @pytest.mark.asyncio
    async def test_mint_refreshed_on_every_metrics_tick(self, store: SnapshotStore) -> None:
        mint = new_address()
        await store.upsert_monitored_token(mint)
        service = _FakeService()
        scheduler, _ = _scheduler(service, store, metrics_interval_sec=14400)

        t0 = datetime(2026, 3, 1, 12, 0, 0)
        ticks = [t0, t0 + timedelta(hours=4)]
        with patch("holder_radar.parsers.scheduler._utcnow", side_effect=ticks):
            for _ in ticks:
                await scheduler.metrics.tick()

        assert service.calls == [(mint, True)] * 2

    @pytest.mark.asyncio
    async def test_mint_not_refreshed_within_interval(self, store: SnapshotStore) -> None:
        mint = new_address()
        await store.upsert_monitored_token(mint)
        service = _FakeService()
        scheduler, _ = _scheduler(service, store)

        t0 = datetime(2026, 3, 1, 12, 0, 0)
        ticks = [t0, t0 + timedelta(seconds=30)]
        with patch("holder_radar.parsers.scheduler._utcnow", side_effect=ticks):
            for _ in ticks:
                await scheduler.stats.tick()

        assert service.calls == [(mint, False)]
