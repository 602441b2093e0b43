"""
Linear staking reward, reproduced from the vault contract:

    reward = amount * rate_bps * elapsed // (lock_period * 10_000)

``elapsed`` runs from the position's last claim to the accrual end, which
is the emergency-unlock block's timestamp when that block falls inside the
snapshot range, else the snapshot end block's timestamp. Integer only.
"""

from dataclasses import dataclass
from typing import Callable, Dict, Mapping, Optional, Tuple

from vault_recovery.ledger.models import LockPosition
from vault_recovery.shared.constants import DistributionConstants
from vault_recovery.shared.logging import get_logger

logger = get_logger(__name__)


def calculate_reward(
    amount: int, rate_bps: int, lock_period: int, elapsed: int
) -> int:
    """Contract reward formula; 0 for a non-positive rate, period or elapsed."""
    if amount <= 0 or rate_bps <= 0 or lock_period <= 0 or elapsed <= 0:
        return 0
    return (amount * rate_bps * elapsed) // (
        lock_period * DistributionConstants.BASIS_POINTS
    )


class RewardRateTable:
    """(pool_id, lock_period) -> basis points. Missing entries mean 0."""

    def __init__(self, rates: Mapping[int, Mapping[int, int]]):
        self._rates: Dict[Tuple[int, int], int] = {
            (int(pool_id), int(period)): int(rate)
            for pool_id, periods in rates.items()
            for period, rate in periods.items()
        }

    def rate_for(self, pool_id: int, lock_period: int) -> int:
        return self._rates.get((pool_id, lock_period), 0)

    def has_rate(self, pool_id: int, lock_period: int) -> bool:
        return (pool_id, lock_period) in self._rates


@dataclass(frozen=True)
class RewardWindow:
    """Timestamps bounding reward accrual for one snapshot."""

    now_ts: int
    cutoff_ts: int
    cutoff_block: Optional[int] = None

    @property
    def end_ts(self) -> int:
        return min(self.cutoff_ts, self.now_ts)


@dataclass(frozen=True)
class PositionReward:
    reward: int
    rate_bps: int
    elapsed: int


class RewardCalculator:
    """
    Computes rewards for ledger positions.

    Args:
        rates: Reward rate table
        block_timestamp: Resolves a block number to its timestamp
            (Web3Service.get_block_timestamp, cached per block)
    """

    def __init__(
        self,
        rates: RewardRateTable,
        block_timestamp: Callable[[int], int],
    ):
        self.rates = rates
        self._block_timestamp = block_timestamp
        self.missing_rate_warnings = 0

    def window(
        self, end_block: int, emergency_unlock_block: Optional[int] = None
    ) -> RewardWindow:
        now_ts = self._block_timestamp(end_block)
        if emergency_unlock_block is not None and emergency_unlock_block <= end_block:
            cutoff_ts = self._block_timestamp(emergency_unlock_block)
            logger.info(
                f"Rewards accrue until emergency unlock block "
                f"{emergency_unlock_block} (ts {cutoff_ts})"
            )
            return RewardWindow(now_ts, cutoff_ts, emergency_unlock_block)
        return RewardWindow(now_ts, now_ts, None)

    def position_reward(
        self, position: LockPosition, window: RewardWindow
    ) -> PositionReward:
        rate = self.rates.rate_for(position.pool_id, position.lock_period)
        if rate == 0 or position.lock_period <= 0:
            self.missing_rate_warnings += 1
            logger.warning(
                f"No reward rate for pool {position.pool_id} and lock period "
                f"{position.lock_period} (user {position.user}, lock "
                f"{position.lock_id}); reward set to 0"
            )
            return PositionReward(reward=0, rate_bps=rate, elapsed=0)

        last_claim_ts = self._block_timestamp(position.last_claim_block)
        elapsed = max(window.end_ts - last_claim_ts, 0)
        return PositionReward(
            reward=calculate_reward(
                position.amount, rate, position.lock_period, elapsed
            ),
            rate_bps=rate,
            elapsed=elapsed,
        )
