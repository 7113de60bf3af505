"""Token endpoints: register for monitoring, cached stats, on-demand snapshot."""

from typing import Any

from fastapi import APIRouter, Depends, HTTPException, Query, Request, status
from loguru import logger
from pydantic import BaseModel

from config.settings import settings
from holder_radar.api.dependencies import get_snapshot_service, get_store
from holder_radar.api.limiter import limiter
from holder_radar.parsers.account_decoder import is_valid_address
from holder_radar.parsers.metrics import metrics
from holder_radar.parsers.persistence import SnapshotStore
from holder_radar.parsers.snapshot import SnapshotService
from holder_radar.parsers.stats_models import ExcludedOwner, Snapshot

router = APIRouter(prefix="/api/v1/tokens", tags=["tokens"])


class CreateTokenRequest(BaseModel):
    mint_address: str


class CreateTokenResponse(BaseModel):
    status: str
    message: str


def _require_address(mint: str) -> None:
    if not is_valid_address(mint):
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Invalid mint address: {mint}",
        )


async def _require_monitored(store: SnapshotStore, mint: str) -> None:
    if not await store.is_monitored(mint):
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Token {mint} is not being monitored",
        )


@router.post("", response_model=CreateTokenResponse)
async def create_token_monitor(
    body: CreateTokenRequest,
    store: SnapshotStore = Depends(get_store),
) -> CreateTokenResponse:
    """Register a mint; the scheduler picks it up on the next tick of each cadence."""
    _require_address(body.mint_address)
    logger.info(f"[API] Monitor request for {body.mint_address}")

    created = await store.upsert_monitored_token(body.mint_address)
    if not created:
        return CreateTokenResponse(
            status="already_monitored",
            message="Token is already being monitored",
        )
    return CreateTokenResponse(
        status="monitoring_started",
        message="Token has been added to monitoring. Data will be available soon.",
    )


@router.get("/{mint}/stats", response_model=Snapshot)
async def token_stats(
    mint: str,
    store: SnapshotStore = Depends(get_store),
) -> Snapshot:
    """Latest stored snapshot for a monitored mint."""
    _require_address(mint)
    await _require_monitored(store, mint)

    snapshot = await store.get_latest_snapshot(mint)
    if snapshot is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"No snapshot for {mint} yet",
        )
    return snapshot


@router.get("/{mint}/snapshot", response_model=Snapshot)
@limiter.limit(settings.api_snapshot_rate_limit)
async def token_snapshot(
    request: Request,
    mint: str,
    price: float | None = Query(None, gt=0, description="USD price override"),
    service: SnapshotService = Depends(get_snapshot_service),
) -> Snapshot:
    """Compute a snapshot now, straight from chain state."""
    _require_address(mint)
    metrics.record_on_demand()
    return await service.compute_snapshot(mint, price)


@router.get("/{mint}/exclusions")
async def token_exclusions(
    mint: str,
    store: SnapshotStore = Depends(get_store),
) -> dict[str, Any]:
    """Owners excluded from this mint's statistics so far."""
    _require_address(mint)
    await _require_monitored(store, mint)
    exclusions: list[ExcludedOwner] = await store.list_exclusions(mint)
    return {"mint": mint, "items": [e.model_dump() for e in exclusions]}
