"""Singleton registry for runtime objects shared between scheduler and API.

Populated once in ``main.run_service()``. Endpoints read these references
directly; everything runs in a single asyncio event loop.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from holder_radar.parsers.metrics import SnapshotMetrics
    from holder_radar.parsers.persistence import SnapshotStore
    from holder_radar.parsers.scheduler import Scheduler
    from holder_radar.parsers.snapshot import SnapshotService


class ServiceRegistry:
    """Holds references to runtime objects for API access."""

    snapshot_service: SnapshotService | None = None
    store: SnapshotStore | None = None
    scheduler: Scheduler | None = None
    snapshot_metrics: SnapshotMetrics | None = None


registry = ServiceRegistry()
