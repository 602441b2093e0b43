"""Lock positions, per-user entitlements and replay statistics."""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional


class PositionState(str, Enum):
    LOCKED = "locked"
    UNLOCKED = "unlocked"
    UNSTAKED = "unstaked"


_STATE_RANK = {
    PositionState.LOCKED: 0,
    PositionState.UNLOCKED: 1,
    PositionState.UNSTAKED: 2,
}


@dataclass
class LockPosition:
    """
    One stake deposit, keyed by (user, lock_id).

    ``last_claim_block`` starts at the Locked block and is advanced by
    RewardsClaimed; rewards are derived at snapshot time, never stored here.
    """

    user: str
    lock_id: int
    pool_id: int
    amount: int
    lock_period: int
    unlock_time: int
    origin_block: int
    transaction_hash: str
    last_claim_block: int
    state: PositionState = PositionState.LOCKED
    unlock_block: Optional[int] = None
    unstake_block: Optional[int] = None

    @property
    def is_open(self) -> bool:
        return self.state is not PositionState.UNSTAKED

    def can_move_to(self, state: PositionState) -> bool:
        return _STATE_RANK[state] > _STATE_RANK[self.state]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "lockId": self.lock_id,
            "poolId": self.pool_id,
            "amount": str(self.amount),
            "lockPeriod": self.lock_period,
            "unlockTime": self.unlock_time,
            "lastClaimBlock": self.last_claim_block,
            "blockNumber": self.origin_block,
            "transactionHash": self.transaction_hash,
            "state": self.state.value,
            "isLocked": self.state is PositionState.LOCKED,
            "unstaked": self.state is PositionState.UNSTAKED,
            "unlockBlock": self.unlock_block,
            "unstakeBlock": self.unstake_block,
        }


@dataclass
class UserEntitlement:
    """What the vault still owes one user."""

    address: str
    positions: List[LockPosition] = field(default_factory=list)
    tokens_by_pool: Dict[int, int] = field(default_factory=dict)
    rewards: int = 0

    @property
    def has_outstanding_balance(self) -> bool:
        return any(position.is_open for position in self.positions)

    @property
    def open_positions(self) -> List[LockPosition]:
        return [p for p in self.positions if p.is_open]


@dataclass
class LedgerStats:
    """Replay counters: applied / ignored per event kind."""

    locked: int = 0
    duplicate_locks: int = 0
    unlocked: int = 0
    unmatched_unlocks: int = 0
    unstaked: int = 0
    unmatched_unstakes: int = 0
    claims: int = 0
    claims_applied: int = 0
    unmatched_claims: int = 0

    def to_dict(self) -> Dict[str, int]:
        return dict(self.__dict__)
