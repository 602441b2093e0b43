"""StakingVault Recovery Toolkit - snapshot and redistribute funds after an emergency unlock."""

__version__ = "1.0.0"

from .distribution import DistributionExecutor
from .snapshot.service import SnapshotService

__all__ = ["DistributionExecutor", "SnapshotService"]
