from vault_recovery.events.decoder import EventDecoder
from vault_recovery.events.models import (
    EventKind,
    LockedEvent,
    RewardsClaimedEvent,
    UnlockedEvent,
    UnstakedEvent,
    VaultEvent,
)

__all__ = [
    "EventDecoder",
    "EventKind",
    "LockedEvent",
    "RewardsClaimedEvent",
    "UnlockedEvent",
    "UnstakedEvent",
    "VaultEvent",
]
