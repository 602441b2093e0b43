"""
Turn a replayed PositionLedger into a Snapshot of outstanding obligations.

Owed tokens per (user, pool) are the sum of that user's open (not
Unstaked) positions. Rewards are computed fresh for every open position;
Unstaked positions contribute nothing.
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Dict, List, Mapping, Optional, Tuple

from vault_recovery.ledger.ledger import PositionLedger
from vault_recovery.ledger.models import LedgerStats, UserEntitlement
from vault_recovery.rewards.calculator import (
    PositionReward,
    RewardCalculator,
    RewardWindow,
)
from vault_recovery.shared.logging import get_logger
from vault_recovery.shared.types import TokenInfo

logger = get_logger(__name__)


@dataclass(frozen=True)
class SnapshotMetadata:
    created_at: str
    start_block: int
    end_block: int
    emergency_unlock_block: Optional[int]
    contract: str
    pool_tokens: Dict[int, TokenInfo]

    @property
    def total_blocks(self) -> int:
        return self.end_block - self.start_block


@dataclass
class Snapshot:
    """Point-in-time derived ledger of what the vault owes."""

    metadata: SnapshotMetadata
    users: Dict[str, UserEntitlement] = field(default_factory=dict)
    position_rewards: Dict[Tuple[str, int], PositionReward] = field(
        default_factory=dict
    )
    total_staked: Dict[int, int] = field(default_factory=dict)
    total_rewards: int = 0
    window: Optional[RewardWindow] = None
    stats: Optional[LedgerStats] = None

    @property
    def outstanding_users(self) -> List[UserEntitlement]:
        return [u for u in self.users.values() if u.has_outstanding_balance]

    @property
    def total_outstanding_positions(self) -> int:
        return sum(len(u.open_positions) for u in self.users.values())


def build_snapshot(
    ledger: PositionLedger,
    calculator: RewardCalculator,
    *,
    contract: str,
    pool_tokens: Mapping[int, TokenInfo],
    start_block: int,
    end_block: int,
    emergency_unlock_block: Optional[int] = None,
    created_at: Optional[str] = None,
) -> Snapshot:
    """
    Compute owed tokens and rewards for every user in the ledger.

    Args:
        ledger: Ledger after replaying every event up to ``end_block``
        calculator: Reward calculator (resolves block timestamps)
        contract: Vault address recorded in the metadata
        pool_tokens: Configured pools; totals carry one entry per pool
        start_block: First scanned block
        end_block: Last scanned block ("now" for reward accrual)
        emergency_unlock_block: Accrual cutoff block, if any
        created_at: ISO timestamp override (tests)
    """
    metadata = SnapshotMetadata(
        created_at=created_at
        or datetime.now(timezone.utc).isoformat().replace("+00:00", "Z"),
        start_block=start_block,
        end_block=end_block,
        emergency_unlock_block=emergency_unlock_block,
        contract=contract,
        pool_tokens=dict(pool_tokens),
    )
    window = calculator.window(end_block, emergency_unlock_block)
    snapshot = Snapshot(
        metadata=metadata,
        total_staked={pool_id: 0 for pool_id in sorted(pool_tokens)},
        window=window,
        stats=ledger.stats,
    )

    positions_by_user = ledger.positions_by_user()
    users = list(positions_by_user)
    logger.info(f"Calculating rewards for {len(users)} users")

    for index, user in enumerate(users, 1):
        entitlement = UserEntitlement(
            address=user,
            positions=positions_by_user[user],
            tokens_by_pool={pool_id: 0 for pool_id in sorted(pool_tokens)},
        )

        for position in entitlement.open_positions:
            pool_id = position.pool_id
            entitlement.tokens_by_pool[pool_id] = (
                entitlement.tokens_by_pool.get(pool_id, 0) + position.amount
            )
            snapshot.total_staked[pool_id] = (
                snapshot.total_staked.get(pool_id, 0) + position.amount
            )

            reward = calculator.position_reward(position, window)
            snapshot.position_rewards[(user, position.lock_id)] = reward
            entitlement.rewards += reward.reward
            snapshot.total_rewards += reward.reward

        snapshot.users[user] = entitlement
        if index % 100 == 0 or index == len(users):
            logger.info(f"Progress: {index}/{len(users)} users")

    logger.info(
        f"Found {len(snapshot.outstanding_users)} users with outstanding "
        f"balances across {snapshot.total_outstanding_positions} positions"
    )
    return snapshot
