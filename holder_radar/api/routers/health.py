"""Health check: storage, cache and scheduler state."""

from __future__ import annotations

from typing import Any

from fastapi import APIRouter
from pydantic import BaseModel

from holder_radar.api.registry import registry
from holder_radar.db.database import database_ok
from holder_radar.db.redis import redis_ok

router = APIRouter(prefix="/api/v1", tags=["health"])


class HealthResponse(BaseModel):
    status: str
    version: str
    uptime_sec: int
    db_ok: bool
    redis_ok: bool
    stats_running: bool
    metrics_running: bool
    cadences: dict[str, Any] = {}


@router.get("/health", response_model=HealthResponse)
async def health_check() -> HealthResponse:
    db = await database_ok()
    cache = await redis_ok()

    summary: dict[str, Any] = {}
    if registry.snapshot_metrics:
        summary = registry.snapshot_metrics.get_summary()

    scheduler = registry.scheduler
    return HealthResponse(
        # Redis is only a cache; losing it costs RPC budget, not correctness
        status="ok" if db else "degraded",
        version="0.1.0",
        uptime_sec=summary.get("uptime_sec", 0),
        db_ok=db,
        redis_ok=cache,
        stats_running=bool(scheduler and scheduler.stats.running),
        metrics_running=bool(scheduler and scheduler.metrics.running),
        cadences=summary.get("cadences", {}),
    )
