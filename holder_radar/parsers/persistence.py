"""Snapshot storage: monitored tokens, snapshots, distribution metrics, exclusions.

Every public method opens its own session and commits; SQLAlchemy errors
surface as StorageError.
"""

from datetime import datetime, timedelta

from loguru import logger
from sqlalchemy import select, update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from holder_radar.models.token import (
    EPOCH,
    DistributionMetric,
    ExcludedAccount,
    HolderSnapshot,
    MonitoredToken,
)
from holder_radar.parsers.exceptions import StorageError
from holder_radar.parsers.stats_models import (
    ConcentrationMetric,
    ExcludedOwner,
    HolderThreshold,
    Snapshot,
)


class SnapshotStore:
    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        *,
        stats_interval_sec: int = 60,
        metrics_interval_sec: int = 14400,
    ) -> None:
        self._session_factory = session_factory
        self._stats_interval = timedelta(seconds=stats_interval_sec)
        self._metrics_interval = timedelta(seconds=metrics_interval_sec)

    async def upsert_monitored_token(self, mint: str) -> bool:
        """Register a mint for monitoring. Returns False if it was already registered."""
        try:
            async with self._session_factory() as session:
                existing = await session.scalar(
                    select(MonitoredToken.id).where(MonitoredToken.mint_address == mint)
                )
                if existing is not None:
                    return False
                session.add(
                    MonitoredToken(
                        mint_address=mint,
                        last_stats_update=EPOCH,
                        last_metrics_update=EPOCH,
                    )
                )
                await session.commit()
        except IntegrityError:
            # Registered concurrently by another request
            return False
        except SQLAlchemyError as e:
            raise StorageError(f"upsert_monitored_token({mint}): {e}") from e
        logger.info(f"[STORE] Monitoring {mint}")
        return True

    async def is_monitored(self, mint: str) -> bool:
        try:
            async with self._session_factory() as session:
                found = await session.scalar(
                    select(MonitoredToken.id).where(MonitoredToken.mint_address == mint)
                )
        except SQLAlchemyError as e:
            raise StorageError(f"is_monitored({mint}): {e}") from e
        return found is not None

    async def mark_stats_updated(self, mint: str, ts: datetime) -> None:
        await self._mark(mint, last_stats_update=ts)

    async def mark_metrics_updated(self, mint: str, ts: datetime) -> None:
        await self._mark(mint, last_metrics_update=ts)

    async def list_mints_due_for_stats(self, now: datetime) -> list[str]:
        return await self._list_due(MonitoredToken.last_stats_update, now - self._stats_interval)

    async def list_mints_due_for_metrics(self, now: datetime) -> list[str]:
        return await self._list_due(
            MonitoredToken.last_metrics_update, now - self._metrics_interval
        )

    async def persist_snapshot(self, snapshot: Snapshot) -> None:
        """Store a snapshot; Gini-bearing snapshots also write a distribution row."""
        try:
            async with self._session_factory() as session:
                session.add(
                    HolderSnapshot(
                        mint_address=snapshot.mint,
                        timestamp=snapshot.timestamp,
                        price=snapshot.price,
                        supply=snapshot.supply,
                        market_cap=snapshot.market_cap,
                        decimals=snapshot.decimals,
                        total_holders=snapshot.total_holders,
                        organic_holders=snapshot.organic_holder_count,
                        holder_thresholds=[t.model_dump() for t in snapshot.holder_thresholds],
                        concentration_metrics=[
                            c.model_dump() for c in snapshot.concentration_metrics
                        ],
                        excluded_owners=[e.model_dump() for e in snapshot.excluded_owners],
                        hhi=snapshot.hhi,
                        distribution_score=snapshot.distribution_score,
                    )
                )
                if snapshot.distribution_score is not None:
                    session.add(
                        DistributionMetric(
                            mint_address=snapshot.mint,
                            timestamp=snapshot.timestamp,
                            organic_holders=snapshot.organic_holder_count,
                            hhi=snapshot.hhi,
                            distribution_score=snapshot.distribution_score,
                        )
                    )
                await self._record_exclusions(session, snapshot)
                await session.commit()
        except SQLAlchemyError as e:
            raise StorageError(f"persist_snapshot({snapshot.mint}): {e}") from e

    async def get_latest_snapshot(self, mint: str) -> Snapshot | None:
        """Latest stored snapshot, completed with the latest distribution metrics."""
        try:
            async with self._session_factory() as session:
                row = await session.scalar(
                    select(HolderSnapshot)
                    .where(HolderSnapshot.mint_address == mint)
                    .order_by(HolderSnapshot.timestamp.desc(), HolderSnapshot.id.desc())
                    .limit(1)
                )
                if row is None:
                    return None
                metrics = await session.scalar(
                    select(DistributionMetric)
                    .where(DistributionMetric.mint_address == mint)
                    .order_by(DistributionMetric.timestamp.desc(), DistributionMetric.id.desc())
                    .limit(1)
                )
        except SQLAlchemyError as e:
            raise StorageError(f"get_latest_snapshot({mint}): {e}") from e

        snapshot = _row_to_snapshot(row)
        if snapshot.distribution_score is None and metrics is not None:
            snapshot.distribution_score = metrics.distribution_score
        return snapshot

    async def list_exclusions(self, mint: str) -> list[ExcludedOwner]:
        try:
            async with self._session_factory() as session:
                result = await session.scalars(
                    select(ExcludedAccount)
                    .where(ExcludedAccount.mint_address == mint)
                    .order_by(ExcludedAccount.share_pct.desc())
                )
                rows = result.all()
        except SQLAlchemyError as e:
            raise StorageError(f"list_exclusions({mint}): {e}") from e
        return [
            ExcludedOwner(
                owner=r.owner_address,
                category=r.category,
                reason=r.reason,
                share_pct=r.share_pct,
            )
            for r in rows
        ]

    async def _mark(self, mint: str, **values: datetime) -> None:
        try:
            async with self._session_factory() as session:
                await session.execute(
                    update(MonitoredToken)
                    .where(MonitoredToken.mint_address == mint)
                    .values(**values)
                )
                await session.commit()
        except SQLAlchemyError as e:
            raise StorageError(f"mark {list(values)} for {mint}: {e}") from e

    async def _list_due(self, column, stale_before: datetime) -> list[str]:
        try:
            async with self._session_factory() as session:
                result = await session.scalars(
                    select(MonitoredToken.mint_address)
                    .where(column <= stale_before)
                    .order_by(column)
                )
                return list(result.all())
        except SQLAlchemyError as e:
            raise StorageError(f"list due mints: {e}") from e

    @staticmethod
    async def _record_exclusions(session: AsyncSession, snapshot: Snapshot) -> None:
        if not snapshot.excluded_owners:
            return
        result = await session.scalars(
            select(ExcludedAccount).where(
                ExcludedAccount.mint_address == snapshot.mint,
                ExcludedAccount.owner_address.in_([e.owner for e in snapshot.excluded_owners]),
            )
        )
        existing = {row.owner_address: row for row in result.all()}
        for excluded in snapshot.excluded_owners:
            row = existing.get(excluded.owner)
            if row is None:
                session.add(
                    ExcludedAccount(
                        mint_address=snapshot.mint,
                        owner_address=excluded.owner,
                        category=excluded.category,
                        reason=excluded.reason[:255],
                        share_pct=excluded.share_pct,
                        first_seen_at=snapshot.timestamp,
                        last_seen_at=snapshot.timestamp,
                    )
                )
            else:
                row.category = excluded.category
                row.reason = excluded.reason[:255]
                row.share_pct = excluded.share_pct
                row.last_seen_at = snapshot.timestamp


def _row_to_snapshot(row: HolderSnapshot) -> Snapshot:
    return Snapshot(
        mint=row.mint_address,
        timestamp=row.timestamp,
        price=row.price,
        supply=row.supply,
        market_cap=row.market_cap,
        decimals=row.decimals,
        total_holders=row.total_holders,
        organic_holder_count=row.organic_holders,
        holder_thresholds=[HolderThreshold(**t) for t in row.holder_thresholds or []],
        concentration_metrics=[
            ConcentrationMetric(**c) for c in row.concentration_metrics or []
        ],
        excluded_owners=[ExcludedOwner(**e) for e in row.excluded_owners or []],
        hhi=row.hhi,
        distribution_score=row.distribution_score,
    )
