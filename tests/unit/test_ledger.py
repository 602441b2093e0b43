"""
Unit tests for the position ledger state machine.
"""

import random

import pytest

from conftest import USER_A, USER_B
from vault_recovery.events.models import (
    LockedEvent,
    RewardsClaimedEvent,
    UnlockedEvent,
    UnstakedEvent,
)
from vault_recovery.ledger.ledger import PositionLedger
from vault_recovery.ledger.models import PositionState


def _meta(block, log_index=0, user=USER_A):
    return {
        "block_number": block,
        "log_index": log_index,
        "transaction_hash": f"0x{block:04x}{log_index:04x}",
        "user": user,
    }


def locked(lock_id, pool_id, amount, block, log_index=0, user=USER_A, period=4320000):
    return LockedEvent(
        **_meta(block, log_index, user),
        lock_id=lock_id,
        amount=amount,
        lock_period=period,
        unlock_time=0,
        pool_id=pool_id,
    )


def unlocked(lock_id, pool_id, block, log_index=0, user=USER_A):
    return UnlockedEvent(
        **_meta(block, log_index, user), lock_id=lock_id, amount=0, pool_id=pool_id
    )


def unstaked(pool_id, block, log_index=0, user=USER_A, amount=0):
    return UnstakedEvent(**_meta(block, log_index, user), pool_id=pool_id, amount=amount)


def claimed(pool_id, block, log_index=0, user=USER_A):
    return RewardsClaimedEvent(**_meta(block, log_index, user), pool_id=pool_id, amount=1)


class TestLockedAndUnlocked:
    def test_locked_creates_position(self):
        ledger = PositionLedger().replay([locked(1, 0, 100, block=10)])
        position = ledger.get_position(USER_A, 1)

        assert position.state is PositionState.LOCKED
        assert position.last_claim_block == 10
        assert position.origin_block == 10
        assert ledger.owed_tokens(USER_A) == {0: 100}

    def test_duplicate_locked_keeps_first(self):
        ledger = PositionLedger().replay(
            [locked(1, 0, 100, block=10), locked(1, 0, 999, block=11)]
        )
        assert ledger.get_position(USER_A, 1).amount == 100
        assert ledger.stats.duplicate_locks == 1

    def test_unlocked_is_still_owed(self):
        ledger = PositionLedger().replay(
            [locked(1, 2, 100, block=10), unlocked(1, 2, block=20)]
        )
        position = ledger.get_position(USER_A, 1)
        assert position.state is PositionState.UNLOCKED
        assert position.unlock_block == 20
        assert position.is_open
        assert ledger.owed_tokens(USER_A) == {2: 100}

    def test_unlocked_unknown_lock_ignored(self):
        ledger = PositionLedger().replay([unlocked(5, 0, block=20)])
        assert ledger.positions == []
        assert ledger.stats.unmatched_unlocks == 1

    def test_state_never_moves_back(self):
        ledger = PositionLedger().replay(
            [locked(1, 0, 100, block=10), unstaked(0, block=20), unlocked(1, 0, block=30)]
        )
        assert ledger.get_position(USER_A, 1).state is PositionState.UNSTAKED
        assert ledger.stats.unmatched_unlocks == 1


class TestUnstaked:
    def test_consumes_oldest_open_position_of_pool(self):
        ledger = PositionLedger().replay(
            [
                locked(1, 0, 100, block=10),
                locked(2, 1, 200, block=11),
                locked(3, 0, 300, block=12),
                unstaked(0, block=20),
            ]
        )
        assert ledger.get_position(USER_A, 1).state is PositionState.UNSTAKED
        assert ledger.get_position(USER_A, 3).state is PositionState.LOCKED
        assert ledger.owed_tokens(USER_A) == {0: 300, 1: 200}

    def test_never_consumes_twice(self):
        """Each Unstaked closes a different position; extras are unmatched."""
        ledger = PositionLedger().replay(
            [
                locked(1, 0, 100, block=10),
                locked(2, 0, 100, block=11),
                unstaked(0, block=20),
                unstaked(0, block=21),
                unstaked(0, block=22),
            ]
        )
        blocks = sorted(p.unstake_block for p in ledger.positions)
        assert blocks == [20, 21]
        assert ledger.stats.unstaked == 2
        assert ledger.stats.unmatched_unstakes == 1
        assert ledger.owed_tokens(USER_A) == {}

    def test_other_user_unaffected(self):
        ledger = PositionLedger().replay(
            [
                locked(1, 0, 100, block=10, user=USER_B),
                unstaked(0, block=20, user=USER_A),
            ]
        )
        assert ledger.get_position(USER_B, 1).is_open
        assert ledger.stats.unmatched_unstakes == 1


class TestRewardsClaimed:
    def test_resets_open_positions_of_pool(self):
        ledger = PositionLedger().replay(
            [
                locked(1, 0, 100, block=10),
                locked(2, 0, 100, block=11),
                locked(3, 1, 100, block=12),
                claimed(0, block=50),
            ]
        )
        assert ledger.get_position(USER_A, 1).last_claim_block == 50
        assert ledger.get_position(USER_A, 2).last_claim_block == 50
        assert ledger.get_position(USER_A, 3).last_claim_block == 12
        assert ledger.stats.claims_applied == 2

    def test_unmatched_claim(self):
        ledger = PositionLedger().replay([claimed(0, block=50)])
        assert ledger.stats.unmatched_claims == 1


class TestReplay:
    def _events(self):
        return [
            locked(1, 0, 100, block=10, log_index=0),
            locked(2, 0, 50, block=10, log_index=1),
            locked(1, 1, 70, block=11, user=USER_B),
            claimed(0, block=12),
            unlocked(1, 1, block=13, user=USER_B),
            unstaked(0, block=14),
            locked(3, 2, 10, block=15),
            unstaked(1, block=16, user=USER_B),
        ]

    def test_deterministic_regardless_of_input_order(self):
        """Replay sorts by (block, logIndex), so shuffled input gives the same state."""
        expected = PositionLedger().replay(self._events())

        rng = random.Random(7)
        for _ in range(5):
            shuffled = self._events()
            rng.shuffle(shuffled)
            ledger = PositionLedger().replay(shuffled)
            assert [p.to_dict() for p in ledger.positions] == [
                p.to_dict() for p in expected.positions
            ]
            assert ledger.stats == expected.stats

    def test_totals_equal_open_positions(self):
        ledger = PositionLedger().replay(self._events())

        by_pool = {}
        for position in ledger.open_positions():
            by_pool[position.pool_id] = by_pool.get(position.pool_id, 0) + position.amount

        assert ledger.total_staked() == by_pool == {0: 50, 2: 10}
        assert list(ledger.positions_by_user()) == [USER_A, USER_B]

    def test_positions_by_user_groups_interleaved_locks(self):
        ledger = PositionLedger().replay(
            [
                locked(1, 0, 10, block=1, user=USER_B),
                locked(1, 0, 20, block=2, user=USER_A),
                locked(2, 1, 30, block=3, user=USER_B),
                locked(2, 2, 40, block=4, user=USER_A),
            ]
        )

        grouped = ledger.positions_by_user()

        assert list(grouped) == [USER_B, USER_A]
        assert [p.amount for p in grouped[USER_B]] == [10, 30]
        assert [p.amount for p in grouped[USER_A]] == [20, 40]

    def test_unsupported_event(self):
        with pytest.raises(TypeError):
            PositionLedger().apply(object())
