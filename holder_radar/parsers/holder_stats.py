"""Holder distribution statistics over the organic (filtered) holder set.

All functions take raw balances (smallest units) and are pure, so the same
holder data always yields the same numbers.
"""

import heapq
from bisect import bisect_left
from dataclasses import dataclass, field
from itertools import accumulate

import numpy as np

from holder_radar.parsers.stats_models import ConcentrationMetric, HolderThreshold

USD_THRESHOLDS: tuple[float, ...] = (10, 100, 1_000, 10_000, 100_000, 1_000_000)
TOP_N_CUTOFFS: tuple[int, ...] = (1, 10, 25, 50, 100, 250)
CONCENTRATION_CAP = 300


@dataclass
class HolderStats:
    holder_count: int = 0
    holder_thresholds: list[HolderThreshold] = field(default_factory=list)
    concentration_metrics: list[ConcentrationMetric] = field(default_factory=list)
    hhi: float = 0.0
    distribution_score: float | None = None


def compute_holder_thresholds(
    balances: list[int],
    *,
    decimals: int,
    price: float,
    market_cap: float,
    usd_thresholds: tuple[float, ...] = USD_THRESHOLDS,
) -> list[HolderThreshold]:
    """Count holders whose balance is worth at least each USD threshold."""
    if price <= 0:
        raise ValueError(f"price must be positive, got {price}")

    total = len(balances)
    ascending = sorted(balances)
    prefix = [0, *accumulate(ascending)]
    scale = 10**decimals

    buckets: list[HolderThreshold] = []
    baseline_count = 0
    for i, usd in enumerate(usd_thresholds):
        min_raw = int(usd / price * scale)
        idx = bisect_left(ascending, min_raw)
        count = total - idx
        if i == 0:
            baseline_count = count
        slice_raw = prefix[total] - prefix[idx]

        buckets.append(
            HolderThreshold(
                usd_threshold=usd,
                holder_count=count,
                total_holders=total,
                pct_of_total=count / total * 100 if total else 0.0,
                pct_of_baseline=count / baseline_count * 100 if baseline_count else 0.0,
                market_cap_per_holder=market_cap / count if count else 0.0,
                slice_value_usd=slice_raw / scale * price,
            )
        )
    return buckets


def compute_concentration(
    balances: list[int],
    raw_supply: int,
    *,
    cutoffs: tuple[int, ...] = TOP_N_CUTOFFS,
) -> list[ConcentrationMetric]:
    """Share of total supply held by the top N holders.

    Only the largest CONCENTRATION_CAP balances are considered. A cutoff
    beyond the number of holders sums every holder there is.
    """
    top = heapq.nlargest(CONCENTRATION_CAP, balances)
    metrics: list[ConcentrationMetric] = []
    for n in cutoffs:
        held = sum(top[:n])
        pct = held / raw_supply * 100 if raw_supply > 0 else 0.0
        metrics.append(ConcentrationMetric(top_n=n, pct_of_supply=pct))
    return metrics


def compute_hhi(balances: list[int]) -> float:
    """Herfindahl–Hirschman index in percentage-squared units (max 10 000)."""
    total = sum(balances)
    if total <= 0:
        return 0.0
    return sum((b / total * 100) ** 2 for b in balances)


def compute_gini(balances: list[int]) -> float:
    """Gini coefficient via the sorted-rank form.

    Σ(2i − n − 1)·xᵢ / (n·Σx) over ascending balances equals the mean
    absolute pairwise difference divided by 2·n·mean, in O(n log n).
    """
    n = len(balances)
    if n == 0:
        return 0.0
    arr = np.sort(np.asarray(balances, dtype=np.float64))
    total = arr.sum()
    if total <= 0:
        return 0.0
    index = np.arange(1, n + 1, dtype=np.float64)
    return float(np.sum((2 * index - n - 1) * arr) / (n * total))


def compute_distribution_score(balances: list[int]) -> float:
    """(1 − Gini) × 100, clamped to [0, 100]. 0 for an empty holder set."""
    if not balances:
        return 0.0
    score = (1.0 - compute_gini(balances)) * 100
    return min(max(score, 0.0), 100.0)


def compute_holder_stats(
    balances: list[int],
    *,
    raw_supply: int,
    decimals: int,
    price: float,
    include_distribution: bool = True,
) -> HolderStats:
    market_cap = raw_supply / 10**decimals * price
    return HolderStats(
        holder_count=len(balances),
        holder_thresholds=compute_holder_thresholds(
            balances, decimals=decimals, price=price, market_cap=market_cap
        ),
        concentration_metrics=compute_concentration(balances, raw_supply),
        hhi=compute_hhi(balances),
        distribution_score=compute_distribution_score(balances) if include_distribution else None,
    )
