"""Recurring snapshot scheduler: two independent cadences.

``stats`` (every 60s) refreshes thresholds and concentration without the
Gini stage; ``metrics`` (every 4h) recomputes the full snapshot including
the distribution score. Each cadence has its own overlap guard: a tick that
fires while the previous cycle of the same cadence is still running is a
no-op. Cadences never block each other.
"""

import asyncio
import time
from dataclasses import dataclass
from datetime import UTC, datetime
from enum import Enum
from typing import Protocol

from loguru import logger

from holder_radar.parsers.exceptions import HolderRadarError, StorageError
from holder_radar.parsers.metrics import SnapshotMetrics
from holder_radar.parsers.metrics import metrics as default_metrics
from holder_radar.parsers.stats_models import Snapshot


class Cadence(str, Enum):
    STATS = "stats"
    METRICS = "metrics"


class SnapshotComputer(Protocol):
    async def compute_snapshot(
        self,
        mint: str,
        price_override: float | None = None,
        *,
        include_distribution: bool = True,
    ) -> Snapshot: ...


class SnapshotSink(Protocol):
    async def list_mints_due_for_stats(self, now: datetime) -> list[str]: ...
    async def list_mints_due_for_metrics(self, now: datetime) -> list[str]: ...
    async def persist_snapshot(self, snapshot: Snapshot) -> None: ...
    async def mark_stats_updated(self, mint: str, ts: datetime) -> None: ...
    async def mark_metrics_updated(self, mint: str, ts: datetime) -> None: ...


@dataclass(frozen=True)
class CadenceConfig:
    cadence: Cadence
    interval_sec: float
    concurrency: int
    include_distribution: bool


def _utcnow() -> datetime:
    return datetime.now(UTC).replace(tzinfo=None)


class CadenceRunner:
    """Timer loop plus overlap guard for one cadence."""

    def __init__(
        self,
        config: CadenceConfig,
        service: SnapshotComputer,
        store: SnapshotSink,
        *,
        mint_timeout_sec: float = 300.0,
        run_metrics: SnapshotMetrics | None = None,
    ) -> None:
        self._config = config
        self._service = service
        self._store = store
        self._mint_timeout_sec = mint_timeout_sec
        self._metrics = run_metrics or default_metrics
        # Held for the whole cycle; checked without awaiting on tick
        self._guard = asyncio.Lock()
        self._tasks: set[asyncio.Task] = set()

    @property
    def name(self) -> str:
        return self._config.cadence.value

    @property
    def running(self) -> bool:
        return self._guard.locked()

    async def tick(self) -> bool:
        """Run one cycle unless one is already in flight. Returns True if it ran."""
        if self._guard.locked():
            logger.info(f"[SCHED] {self.name} tick skipped: previous cycle still running")
            self._metrics.record_skipped_tick(self.name)
            return False
        async with self._guard:
            await self._run_cycle()
        return True

    async def run_forever(self) -> None:
        """Fire a tick every interval until cancelled. Ticks never wait on cycles."""
        logger.info(
            f"[SCHED] {self.name} cadence every {self._config.interval_sec:.0f}s, "
            f"concurrency={self._config.concurrency}"
        )
        while True:
            task = asyncio.create_task(self.tick(), name=f"{self.name}_cycle")
            self._tasks.add(task)
            task.add_done_callback(self._tasks.discard)
            await asyncio.sleep(self._config.interval_sec)

    async def stop(self) -> None:
        for task in list(self._tasks):
            task.cancel()
        if self._tasks:
            await asyncio.gather(*self._tasks, return_exceptions=True)

    async def _run_cycle(self) -> None:
        now = _utcnow()
        try:
            mints = await self._list_due(now)
        except StorageError as e:
            logger.error(f"[SCHED] {self.name}: cannot list due mints: {e}")
            return
        except Exception as e:
            logger.exception(f"[SCHED] {self.name}: unexpected error listing due mints: {e}")
            return

        self._metrics.record_cycle(self.name)
        if not mints:
            logger.debug(f"[SCHED] {self.name}: nothing due")
            return

        t0 = time.monotonic()
        semaphore = asyncio.Semaphore(self._config.concurrency)
        results = await asyncio.gather(*(self._run_mint(mint, now, semaphore) for mint in mints))
        ok = sum(results)
        logger.info(
            f"[SCHED] {self.name} cycle: {ok}/{len(mints)} mints updated "
            f"in {time.monotonic() - t0:.1f}s"
        )

    async def _run_mint(self, mint: str, now: datetime, semaphore: asyncio.Semaphore) -> bool:
        """Snapshot, persist and mark one mint. Never raises: siblings keep running."""
        async with semaphore:
            t0 = time.monotonic()
            timed_out = False
            try:
                await asyncio.wait_for(self._process(mint, now), timeout=self._mint_timeout_sec)
                ok = True
            except asyncio.TimeoutError:
                logger.warning(
                    f"[SCHED] {self.name} {mint[:12]}: timed out after "
                    f"{self._mint_timeout_sec:.0f}s, retry next tick"
                )
                ok = False
                timed_out = True
            except HolderRadarError as e:
                logger.warning(
                    f"[SCHED] {self.name} {mint[:12]}: {type(e).__name__}: {e}, retry next tick"
                )
                ok = False
            except Exception as e:
                logger.exception(f"[SCHED] {self.name} {mint[:12]}: unexpected error: {e}")
                ok = False

            latency_ms = (time.monotonic() - t0) * 1000
            self._metrics.record_mint(self.name, latency_ms, ok=ok, timed_out=timed_out)
            return ok

    async def _process(self, mint: str, now: datetime) -> None:
        # Stamp with the cycle start so the mint is due again on the next tick
        snapshot = await self._service.compute_snapshot(
            mint, include_distribution=self._config.include_distribution
        )
        await self._store.persist_snapshot(snapshot)
        if self._config.cadence == Cadence.STATS:
            await self._store.mark_stats_updated(mint, now)
        else:
            await self._store.mark_metrics_updated(mint, now)

    async def _list_due(self, now: datetime) -> list[str]:
        if self._config.cadence == Cadence.STATS:
            return await self._store.list_mints_due_for_stats(now)
        return await self._store.list_mints_due_for_metrics(now)


class Scheduler:
    """Drives the stats and metrics cadences side by side."""

    def __init__(
        self,
        service: SnapshotComputer,
        store: SnapshotSink,
        *,
        stats_interval_sec: float = 60,
        metrics_interval_sec: float = 14400,
        stats_concurrency: int = 3,
        metrics_concurrency: int = 1,
        mint_timeout_sec: float = 300.0,
        stats_report_interval_sec: float = 300,
        run_metrics: SnapshotMetrics | None = None,
    ) -> None:
        self._metrics = run_metrics or default_metrics
        self._report_interval = stats_report_interval_sec
        self.stats = CadenceRunner(
            CadenceConfig(Cadence.STATS, stats_interval_sec, stats_concurrency, False),
            service,
            store,
            mint_timeout_sec=mint_timeout_sec,
            run_metrics=self._metrics,
        )
        self.metrics = CadenceRunner(
            CadenceConfig(Cadence.METRICS, metrics_interval_sec, metrics_concurrency, True),
            service,
            store,
            mint_timeout_sec=mint_timeout_sec,
            run_metrics=self._metrics,
        )

    async def run(self) -> None:
        """Run both cadences and the stats reporter until cancelled."""
        try:
            await asyncio.gather(
                self.stats.run_forever(),
                self.metrics.run_forever(),
                self._stats_reporter(),
            )
        finally:
            await self.stop()

    async def stop(self) -> None:
        await self.stats.stop()
        await self.metrics.stop()

    async def _stats_reporter(self) -> None:
        """Log scheduler stats periodically."""
        while True:
            await asyncio.sleep(self._report_interval)
            logger.info(f"[STATS] {self._metrics.format_stats_line()}")
