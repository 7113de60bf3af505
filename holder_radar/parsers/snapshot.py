"""Snapshot orchestration: chain read → exclusion → statistics, per mint."""

import asyncio
import time
from datetime import UTC, datetime
from typing import Protocol

from loguru import logger

from holder_radar.parsers.chain_reader import ChainReader
from holder_radar.parsers.exceptions import PriceUnavailableError
from holder_radar.parsers.exclusions import ExclusionClassifier, ExclusionSet
from holder_radar.parsers.holder_stats import HolderStats, compute_holder_stats
from holder_radar.parsers.stats_models import ExcludedOwner, Snapshot


class PriceProvider(Protocol):
    async def get_usd_price(self, mint: str) -> float: ...


class SnapshotService:
    """Computes a Snapshot for one mint.

    Stages run strictly in order; any failure other than an unresolved
    owner aborts this mint's snapshot and propagates to the caller.
    """

    def __init__(
        self,
        reader: ChainReader,
        classifier: ExclusionClassifier,
        price_provider: PriceProvider,
        *,
        offload_min_holders: int = 2000,
    ) -> None:
        self._reader = reader
        self._classifier = classifier
        self._price_provider = price_provider
        self._offload_min_holders = offload_min_holders

    async def compute_snapshot(
        self,
        mint: str,
        price_override: float | None = None,
        *,
        include_distribution: bool = True,
    ) -> Snapshot:
        """Raises InvalidMintError, PriceUnavailableError or ChainUnavailableError."""
        t0 = time.monotonic()
        mint_info = await self._reader.get_mint_info(mint)
        price = await self._resolve_price(mint, price_override)
        market_cap = mint_info.supply * price

        holders = await self._reader.get_holders(mint, mint_info)
        exclusions = await self._classifier.classify(holders, mint_info.raw_supply, market_cap)
        organic = exclusions.apply(holders)
        balances = [h.raw_balance for h in organic]

        stats = await self._compute_stats(
            balances,
            raw_supply=mint_info.raw_supply,
            decimals=mint_info.decimals,
            price=price,
            include_distribution=include_distribution,
        )

        snapshot = Snapshot(
            mint=mint,
            timestamp=datetime.now(UTC).replace(tzinfo=None),
            price=price,
            supply=mint_info.supply,
            market_cap=market_cap,
            decimals=mint_info.decimals,
            total_holders=len(holders),
            organic_holder_count=stats.holder_count,
            holder_thresholds=stats.holder_thresholds,
            concentration_metrics=stats.concentration_metrics,
            hhi=stats.hhi,
            distribution_score=stats.distribution_score,
            excluded_owners=_excluded_owners(exclusions),
        )
        elapsed_ms = (time.monotonic() - t0) * 1000
        score = (
            f"{snapshot.distribution_score:.1f}"
            if snapshot.distribution_score is not None else "skipped"
        )
        logger.info(
            f"[SNAPSHOT] {mint[:12]}: {snapshot.organic_holder_count}/{snapshot.total_holders} "
            f"organic, mcap=${market_cap:,.0f}, hhi={snapshot.hhi:.1f}, "
            f"score={score} ({elapsed_ms:.0f}ms)"
        )
        return snapshot

    async def _resolve_price(self, mint: str, price_override: float | None) -> float:
        if price_override is not None and price_override > 0:
            return price_override
        price = await self._price_provider.get_usd_price(mint)
        if price <= 0:
            raise PriceUnavailableError(f"Non-positive price for {mint}: {price}")
        return price

    async def _compute_stats(
        self,
        balances: list[int],
        *,
        raw_supply: int,
        decimals: int,
        price: float,
        include_distribution: bool,
    ) -> HolderStats:
        kwargs = dict(
            raw_supply=raw_supply,
            decimals=decimals,
            price=price,
            include_distribution=include_distribution,
        )
        if include_distribution and len(balances) >= self._offload_min_holders:
            # CPU-bound sort/Gini off the event loop so RPC waits keep flowing
            return await asyncio.to_thread(compute_holder_stats, balances, **kwargs)
        return compute_holder_stats(balances, **kwargs)


def _excluded_owners(exclusions: ExclusionSet) -> list[ExcludedOwner]:
    return [
        ExcludedOwner(
            owner=e.owner,
            category=e.category.value,
            reason=e.reason,
            share_pct=e.share_pct,
        )
        for e in exclusions.exclusions.values()
    ]
