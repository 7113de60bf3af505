"""Scheduler metrics: per-cadence runs, failures, skipped ticks and latency.

Counters accumulate during runtime and are read by the health endpoint
and the periodic stats reporter.
"""

import time
from dataclasses import dataclass
from threading import Lock


@dataclass
class CadenceMetrics:
    """Metrics for a single cadence ("stats" or "metrics")."""

    cycles: int = 0
    skipped_ticks: int = 0  # tick fired while the previous cycle was running
    mints_ok: int = 0
    mints_failed: int = 0
    mints_timed_out: int = 0
    total_latency_ms: float = 0.0
    max_latency_ms: float = 0.0
    last_cycle_at: float | None = None

    @property
    def avg_latency_ms(self) -> float:
        done = self.mints_ok + self.mints_failed
        if done == 0:
            return 0.0
        return self.total_latency_ms / done

    @property
    def failure_rate_pct(self) -> float:
        done = self.mints_ok + self.mints_failed
        if done == 0:
            return 0.0
        return self.mints_failed / done * 100


class SnapshotMetrics:
    """Global accumulator for scheduled and on-demand snapshots.

    Lock-guarded because the Gini stage may run on a worker thread while
    the event loop records results.
    """

    def __init__(self) -> None:
        self._lock = Lock()
        self._cadences: dict[str, CadenceMetrics] = {}
        self._on_demand: int = 0
        self._start_time: float = time.monotonic()

    def _get(self, cadence: str) -> CadenceMetrics:
        if cadence not in self._cadences:
            self._cadences[cadence] = CadenceMetrics()
        return self._cadences[cadence]

    def record_cycle(self, cadence: str) -> None:
        with self._lock:
            cm = self._get(cadence)
            cm.cycles += 1
            cm.last_cycle_at = time.monotonic()

    def record_skipped_tick(self, cadence: str) -> None:
        with self._lock:
            self._get(cadence).skipped_ticks += 1

    def record_mint(
        self,
        cadence: str,
        latency_ms: float,
        *,
        ok: bool,
        timed_out: bool = False,
    ) -> None:
        with self._lock:
            cm = self._get(cadence)
            if ok:
                cm.mints_ok += 1
            else:
                cm.mints_failed += 1
            if timed_out:
                cm.mints_timed_out += 1
            cm.total_latency_ms += latency_ms
            if latency_ms > cm.max_latency_ms:
                cm.max_latency_ms = latency_ms

    def record_on_demand(self) -> None:
        with self._lock:
            self._on_demand += 1

    def get_summary(self) -> dict:
        with self._lock:
            summary: dict = {
                "uptime_sec": round(time.monotonic() - self._start_time),
                "on_demand_snapshots": self._on_demand,
                "cadences": {},
            }
            for name, cm in self._cadences.items():
                summary["cadences"][name] = {
                    "cycles": cm.cycles,
                    "skipped_ticks": cm.skipped_ticks,
                    "mints_ok": cm.mints_ok,
                    "mints_failed": cm.mints_failed,
                    "mints_timed_out": cm.mints_timed_out,
                    "failure_rate_pct": round(cm.failure_rate_pct, 1),
                    "avg_latency_ms": round(cm.avg_latency_ms),
                    "max_latency_ms": round(cm.max_latency_ms),
                }
            return summary

    def format_stats_line(self) -> str:
        """One-line summary for the stats reporter."""
        with self._lock:
            parts = []
            for name, cm in sorted(self._cadences.items()):
                parts.append(
                    f"{name}: cycles={cm.cycles} ok={cm.mints_ok} "
                    f"failed={cm.mints_failed} skipped={cm.skipped_ticks} "
                    f"avg_lat={cm.avg_latency_ms:.0f}ms"
                )
            parts.append(f"on_demand={self._on_demand}")
            return " | ".join(parts)


# Global singleton, shared by the scheduler and the API
metrics = SnapshotMetrics()
