from holder_radar.models.base import Base
from holder_radar.models.token import (
    DistributionMetric,
    ExcludedAccount,
    HolderSnapshot,
    MonitoredToken,
)

__all__ = [
    "Base",
    "MonitoredToken",
    "HolderSnapshot",
    "DistributionMetric",
    "ExcludedAccount",
]
