from datetime import datetime

from sqlalchemy import (
    JSON,
    DateTime,
    Float,
    Index,
    Integer,
    String,
    UniqueConstraint,
    func,
)
from sqlalchemy.orm import Mapped, mapped_column

from holder_radar.models.base import Base

# Never-updated marker: both cadences treat the token as due immediately
EPOCH = datetime(1970, 1, 1)


class MonitoredToken(Base):
    """Mint registered for recurring snapshots."""

    __tablename__ = "monitored_tokens"

    id: Mapped[int] = mapped_column(primary_key=True)
    mint_address: Mapped[str] = mapped_column(String(64), unique=True)
    last_stats_update: Mapped[datetime] = mapped_column(DateTime, default=EPOCH)
    last_metrics_update: Mapped[datetime] = mapped_column(DateTime, default=EPOCH)
    created_at: Mapped[datetime] = mapped_column(DateTime, server_default=func.now())

    __table_args__ = (
        Index("idx_monitored_stats_update", "last_stats_update"),
        Index("idx_monitored_metrics_update", "last_metrics_update"),
    )


class HolderSnapshot(Base):
    """Holder thresholds and concentration written by every successful cycle."""

    __tablename__ = "holder_snapshots"

    id: Mapped[int] = mapped_column(primary_key=True)
    mint_address: Mapped[str] = mapped_column(String(64))
    timestamp: Mapped[datetime] = mapped_column(DateTime)
    price: Mapped[float] = mapped_column(Float)
    supply: Mapped[float] = mapped_column(Float)
    market_cap: Mapped[float] = mapped_column(Float)
    decimals: Mapped[int] = mapped_column(Integer)
    total_holders: Mapped[int] = mapped_column(Integer)
    organic_holders: Mapped[int] = mapped_column(Integer)
    holder_thresholds: Mapped[list] = mapped_column(JSON)
    concentration_metrics: Mapped[list] = mapped_column(JSON)
    excluded_owners: Mapped[list] = mapped_column(JSON, default=list)
    hhi: Mapped[float] = mapped_column(Float)
    distribution_score: Mapped[float | None] = mapped_column(Float)

    __table_args__ = (
        Index("idx_holder_snapshots_mint_time", "mint_address", "timestamp"),
    )


class DistributionMetric(Base):
    """HHI and Gini-derived score from the slow metrics cadence."""

    __tablename__ = "distribution_metrics"

    id: Mapped[int] = mapped_column(primary_key=True)
    mint_address: Mapped[str] = mapped_column(String(64))
    timestamp: Mapped[datetime] = mapped_column(DateTime)
    organic_holders: Mapped[int] = mapped_column(Integer)
    hhi: Mapped[float] = mapped_column(Float)
    distribution_score: Mapped[float] = mapped_column(Float)

    __table_args__ = (
        Index("idx_distribution_metrics_mint_time", "mint_address", "timestamp"),
    )


class ExcludedAccount(Base):
    """Owner classified as non-organic for a mint, kept across snapshots."""

    __tablename__ = "excluded_accounts"

    id: Mapped[int] = mapped_column(primary_key=True)
    mint_address: Mapped[str] = mapped_column(String(64))
    owner_address: Mapped[str] = mapped_column(String(64))
    category: Mapped[str] = mapped_column(String(32))
    reason: Mapped[str] = mapped_column(String(255))
    share_pct: Mapped[float] = mapped_column(Float)
    first_seen_at: Mapped[datetime] = mapped_column(DateTime)
    last_seen_at: Mapped[datetime] = mapped_column(DateTime)

    __table_args__ = (
        UniqueConstraint("mint_address", "owner_address", name="uq_excluded_mint_owner"),
    )
