"""
Per-(user, lockId) position state machine rebuilt from vault events.

Events must be applied in (block_number, log_index) order; ``replay``
sorts them before applying. State only moves forward:
LOCKED -> UNLOCKED -> UNSTAKED (UNLOCKED may be skipped).

Two events do not carry a lockId and are matched per (user, pool):

* Unstaked consumes at most one open position of that pool, the oldest
  one first. A position is never consumed twice.
* RewardsClaimed resets ``last_claim_block`` for every open position of
  that pool. The contract claims per lock, but the event only carries the
  pool, so per-pool granularity is the best the log allows; each position
  touched this way is counted in ``stats.claims_applied``.
"""

from typing import Dict, Iterable, List, Optional, Tuple

from vault_recovery.events.models import (
    LockedEvent,
    RewardsClaimedEvent,
    UnlockedEvent,
    UnstakedEvent,
    VaultEvent,
)
from vault_recovery.ledger.models import (
    LedgerStats,
    LockPosition,
    PositionState,
)
from vault_recovery.shared.logging import get_logger

logger = get_logger(__name__)


class PositionLedger:
    """Replays vault events into lock positions."""

    def __init__(self):
        self._positions: Dict[Tuple[str, int], LockPosition] = {}
        # Creation order per (user, pool), used to match Unstaked
        self._by_user_pool: Dict[Tuple[str, int], List[LockPosition]] = {}
        self.stats = LedgerStats()

    def replay(self, events: Iterable[VaultEvent]) -> "PositionLedger":
        for event in sorted(events, key=lambda e: e.sort_key):
            self.apply(event)
        return self

    def apply(self, event: VaultEvent) -> None:
        if isinstance(event, LockedEvent):
            self._on_locked(event)
        elif isinstance(event, UnlockedEvent):
            self._on_unlocked(event)
        elif isinstance(event, UnstakedEvent):
            self._on_unstaked(event)
        elif isinstance(event, RewardsClaimedEvent):
            self._on_rewards_claimed(event)
        else:
            raise TypeError(f"Unsupported event type: {type(event).__name__}")

    def _on_locked(self, event: LockedEvent) -> None:
        key = (event.user, event.lock_id)
        if key in self._positions:
            self.stats.duplicate_locks += 1
            logger.warning(
                f"Duplicate Locked for {event.user} lock {event.lock_id} "
                f"at block {event.block_number}; keeping the first"
            )
            return

        position = LockPosition(
            user=event.user,
            lock_id=event.lock_id,
            pool_id=event.pool_id,
            amount=event.amount,
            lock_period=event.lock_period,
            unlock_time=event.unlock_time,
            origin_block=event.block_number,
            transaction_hash=event.transaction_hash,
            last_claim_block=event.block_number,
        )
        self._positions[key] = position
        self._by_user_pool.setdefault((event.user, event.pool_id), []).append(
            position
        )
        self.stats.locked += 1

    def _on_unlocked(self, event: UnlockedEvent) -> None:
        position = self._positions.get((event.user, event.lock_id))
        if position is None or not position.can_move_to(PositionState.UNLOCKED):
            self.stats.unmatched_unlocks += 1
            reason = "unknown lock" if position is None else position.state.value
            logger.warning(
                f"Ignoring Unlocked for {event.user} lock {event.lock_id} "
                f"at block {event.block_number} ({reason})"
            )
            return

        position.state = PositionState.UNLOCKED
        position.unlock_block = event.block_number
        self.stats.unlocked += 1

    def _on_unstaked(self, event: UnstakedEvent) -> None:
        candidates = self._by_user_pool.get((event.user, event.pool_id), [])
        position = next((p for p in candidates if p.is_open), None)
        if position is None:
            self.stats.unmatched_unstakes += 1
            logger.warning(
                f"Unstaked for {event.user} pool {event.pool_id} at block "
                f"{event.block_number} has no open position"
            )
            return

        position.state = PositionState.UNSTAKED
        position.unstake_block = event.block_number
        self.stats.unstaked += 1

    def _on_rewards_claimed(self, event: RewardsClaimedEvent) -> None:
        self.stats.claims += 1
        touched = 0
        for position in self._by_user_pool.get((event.user, event.pool_id), []):
            if position.is_open:
                position.last_claim_block = event.block_number
                touched += 1

        if touched == 0:
            self.stats.unmatched_claims += 1
            logger.debug(
                f"RewardsClaimed for {event.user} pool {event.pool_id} "
                f"at block {event.block_number} matched no open position"
            )
        self.stats.claims_applied += touched

    # Queries

    def get_position(self, user: str, lock_id: int) -> Optional[LockPosition]:
        return self._positions.get((user.lower(), lock_id))

    @property
    def positions(self) -> List[LockPosition]:
        """All positions in creation order."""
        return list(self._positions.values())

    def positions_by_user(self) -> Dict[str, List[LockPosition]]:
        """Positions grouped per user, users in order of their first Locked event."""
        grouped: Dict[str, List[LockPosition]] = {}
        for (user, _), position in self._positions.items():
            grouped.setdefault(user, []).append(position)
        return grouped

    def open_positions(self) -> List[LockPosition]:
        return [p for p in self._positions.values() if p.is_open]

    def owed_tokens(self, user: str) -> Dict[int, int]:
        """Principal still owed to ``user`` per pool."""
        owed: Dict[int, int] = {}
        for position in self.positions_by_user().get(user, []):
            if position.is_open:
                owed[position.pool_id] = owed.get(position.pool_id, 0) + position.amount
        return owed

    def total_staked(self) -> Dict[int, int]:
        totals: Dict[int, int] = {}
        for position in self.open_positions():
            totals[position.pool_id] = totals.get(position.pool_id, 0) + position.amount
        return totals
