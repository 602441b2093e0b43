"""Domain events emitted by the StakingVault."""

from dataclasses import dataclass
from enum import Enum
from typing import Tuple, Union


class EventKind(str, Enum):
    LOCKED = "Locked"
    UNLOCKED = "Unlocked"
    REWARDS_CLAIMED = "RewardsClaimed"
    UNSTAKED = "Unstaked"


@dataclass(frozen=True)
class VaultEventBase:
    """Position of the log in the chain plus the (lowercase) user address."""

    block_number: int
    log_index: int
    transaction_hash: str
    user: str

    @property
    def sort_key(self) -> Tuple[int, int]:
        return (self.block_number, self.log_index)


@dataclass(frozen=True)
class LockedEvent(VaultEventBase):
    lock_id: int
    amount: int
    lock_period: int
    unlock_time: int
    pool_id: int

    kind = EventKind.LOCKED


@dataclass(frozen=True)
class UnlockedEvent(VaultEventBase):
    lock_id: int
    amount: int
    pool_id: int

    kind = EventKind.UNLOCKED


@dataclass(frozen=True)
class RewardsClaimedEvent(VaultEventBase):
    pool_id: int
    amount: int

    kind = EventKind.REWARDS_CLAIMED


@dataclass(frozen=True)
class UnstakedEvent(VaultEventBase):
    pool_id: int
    amount: int

    kind = EventKind.UNSTAKED


VaultEvent = Union[LockedEvent, UnlockedEvent, RewardsClaimedEvent, UnstakedEvent]
