"""FastAPI dependency injection: snapshot service and storage from the registry."""

from __future__ import annotations

from fastapi import HTTPException, status

from holder_radar.api.registry import registry
from holder_radar.parsers.persistence import SnapshotStore
from holder_radar.parsers.snapshot import SnapshotService


def get_store() -> SnapshotStore:
    if registry.store is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Storage not initialized",
        )
    return registry.store


def get_snapshot_service() -> SnapshotService:
    if registry.snapshot_service is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Snapshot service not initialized",
        )
    return registry.snapshot_service
