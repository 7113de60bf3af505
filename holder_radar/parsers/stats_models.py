"""Pydantic models for snapshot output (API responses and JSON columns)."""

from datetime import datetime

from pydantic import BaseModel


class HolderThreshold(BaseModel):
    """Holders whose balance is worth at least ``usd_threshold``."""

    usd_threshold: float
    holder_count: int = 0
    total_holders: int = 0
    pct_of_total: float = 0.0
    pct_of_baseline: float = 0.0  # vs. the lowest ($10) bucket
    market_cap_per_holder: float = 0.0
    slice_value_usd: float = 0.0  # combined value held by this bucket


class ConcentrationMetric(BaseModel):
    top_n: int
    pct_of_supply: float = 0.0


class ExcludedOwner(BaseModel):
    owner: str
    category: str  # "static-denylist" | "program-owned"
    reason: str
    share_pct: float


class Snapshot(BaseModel):
    """Point-in-time holder distribution for one mint."""

    mint: str
    timestamp: datetime
    price: float
    supply: float  # decimal-adjusted
    market_cap: float
    decimals: int
    total_holders: int = 0  # before exclusions
    organic_holder_count: int = 0
    holder_thresholds: list[HolderThreshold] = []
    concentration_metrics: list[ConcentrationMetric] = []
    hhi: float = 0.0
    distribution_score: float | None = None  # None when the Gini stage was skipped
    excluded_owners: list[ExcludedOwner] = []
