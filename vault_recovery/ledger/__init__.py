from vault_recovery.ledger.ledger import PositionLedger
from vault_recovery.ledger.models import (
    LedgerStats,
    LockPosition,
    PositionState,
    UserEntitlement,
)

__all__ = [
    "LedgerStats",
    "LockPosition",
    "PositionLedger",
    "PositionState",
    "UserEntitlement",
]
