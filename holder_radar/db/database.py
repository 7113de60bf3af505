"""Async engine and session factory for snapshot storage."""

from sqlalchemy import text
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from config.settings import settings
from holder_radar.models.base import Base

engine = create_async_engine(
    settings.database_url,
    echo=False,
    pool_size=10,
    max_overflow=5,
    pool_pre_ping=True,
    pool_recycle=3600,
)

async_session_factory = async_sessionmaker(
    engine,
    class_=AsyncSession,
    expire_on_commit=False,
)


async def create_tables(db_engine: AsyncEngine = engine) -> None:
    """Create missing tables (local runs; production schema comes from alembic)."""
    async with db_engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


async def database_ok(db_engine: AsyncEngine = engine) -> bool:
    try:
        async with db_engine.connect() as conn:
            await conn.execute(text("SELECT 1"))
    except Exception:
        return False
    return True
