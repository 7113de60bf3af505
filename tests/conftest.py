"""Shared test fixtures."""

from collections.abc import AsyncGenerator

import pytest_asyncio
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import NullPool

from holder_radar.models.base import Base
from holder_radar.parsers.persistence import SnapshotStore


@pytest_asyncio.fixture(scope="function")
async def session_factory(tmp_path) -> AsyncGenerator[async_sessionmaker[AsyncSession], None]:
    """Fresh SQLite file per test with NullPool to avoid loop mismatch."""
    engine = create_async_engine(
        f"sqlite+aiosqlite:///{tmp_path / 'holders.db'}",
        echo=False,
        poolclass=NullPool,
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)

    await engine.dispose()


@pytest_asyncio.fixture(scope="function")
async def store(session_factory) -> SnapshotStore:
    return SnapshotStore(session_factory, stats_interval_sec=60, metrics_interval_sec=14400)
