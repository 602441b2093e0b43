"""
Decode raw vault logs into typed events.

Layouts (indexed topics after topic0 / ABI-encoded data words):

    Locked          user, lockId  / amount, lockPeriod, unlockTime, poolId
    Unlocked        user, lockId  / amount, poolId
    RewardsClaimed  user, poolId  / amount
    Unstaked        user, poolId  / amount, <unused word>

A log that cannot be decoded is skipped and reported as a warning in the
returned Result; it never aborts the batch.
"""

from typing import Dict, Iterable, List, Mapping, Optional, Sequence

from eth_abi import decode
from eth_abi.exceptions import DecodingError
from eth_utils import to_bytes

from vault_recovery.events.models import (
    EventKind,
    LockedEvent,
    RewardsClaimedEvent,
    UnlockedEvent,
    UnstakedEvent,
    VaultEvent,
)
from vault_recovery.scanning.models import RawLog
from vault_recovery.shared.constants import StakingVaultConstants
from vault_recovery.shared.exceptions import EventDecodeException
from vault_recovery.shared.logging import get_logger
from vault_recovery.shared.results import ErrorSeverity, ProcessingError, Result

logger = get_logger(__name__)

_DATA_TYPES: Dict[EventKind, List[str]] = {
    EventKind.LOCKED: ["uint256", "uint256", "uint256", "uint256"],
    EventKind.UNLOCKED: ["uint256", "uint256"],
    EventKind.REWARDS_CLAIMED: ["uint256"],
    EventKind.UNSTAKED: ["uint256", "uint256"],
}


def topic_to_address(topic: str) -> str:
    """Lowercase address held in the low 20 bytes of an indexed topic."""
    raw = to_bytes(hexstr=topic)
    if len(raw) != 32:
        raise EventDecodeException(f"Indexed topic is {len(raw)} bytes, expected 32")
    return "0x" + raw[12:].hex()


def topic_to_int(topic: str) -> int:
    raw = to_bytes(hexstr=topic)
    if len(raw) != 32:
        raise EventDecodeException(f"Indexed topic is {len(raw)} bytes, expected 32")
    return int.from_bytes(raw, "big")


class EventDecoder:
    """Maps topic0 to one of the four vault event kinds and decodes it."""

    def __init__(
        self,
        event_topics: Optional[Mapping[str, str]] = None,
        known_pools: Optional[Iterable[int]] = None,
    ):
        topics = event_topics or StakingVaultConstants.EVENT_TOPICS
        self._kinds: Dict[str, EventKind] = {
            topic.lower(): EventKind(name) for name, topic in topics.items()
        }
        self._known_pools = (
            frozenset(known_pools) if known_pools is not None else None
        )

    def _words(self, log: RawLog, kind: EventKind) -> Sequence[int]:
        types = _DATA_TYPES[kind]
        data = to_bytes(hexstr=log.data) if log.data not in ("", "0x") else b""
        needed = 32 * len(types)
        if len(data) < needed:
            raise EventDecodeException(
                f"{kind.value} data is {len(data)} bytes, expected {needed}"
            )
        try:
            return decode(types, data[:needed])
        except DecodingError as e:
            raise EventDecodeException(f"Cannot decode {kind.value} data: {e}")

    def _check_pool(self, pool_id: int, kind: EventKind) -> int:
        if self._known_pools is not None and pool_id not in self._known_pools:
            raise EventDecodeException(
                f"{kind.value} references unknown pool {pool_id}"
            )
        return pool_id

    def decode(self, log: RawLog) -> VaultEvent:
        """
        Decode a single log.

        Raises:
            EventDecodeException: unknown topic0, wrong topic count,
                short data or an unknown pool id
        """
        if not log.topics:
            raise EventDecodeException("Log has no topics")
        kind = self._kinds.get(log.topics[0].lower())
        if kind is None:
            raise EventDecodeException(f"Unknown event topic {log.topics[0]}")
        if len(log.topics) != 3:
            raise EventDecodeException(
                f"{kind.value} has {len(log.topics)} topics, expected 3"
            )

        common = {
            "block_number": log.block_number,
            "log_index": log.log_index,
            "transaction_hash": log.transaction_hash,
            "user": topic_to_address(log.topics[1]),
        }
        second = topic_to_int(log.topics[2])
        words = self._words(log, kind)

        if kind is EventKind.LOCKED:
            amount, lock_period, unlock_time, pool_id = words
            return LockedEvent(
                **common,
                lock_id=second,
                amount=amount,
                lock_period=lock_period,
                unlock_time=unlock_time,
                pool_id=self._check_pool(pool_id, kind),
            )
        if kind is EventKind.UNLOCKED:
            amount, pool_id = words
            return UnlockedEvent(
                **common,
                lock_id=second,
                amount=amount,
                pool_id=self._check_pool(pool_id, kind),
            )
        if kind is EventKind.REWARDS_CLAIMED:
            return RewardsClaimedEvent(
                **common, pool_id=self._check_pool(second, kind), amount=words[0]
            )
        return UnstakedEvent(
            **common, pool_id=self._check_pool(second, kind), amount=words[0]
        )

    def decode_all(self, logs: Iterable[RawLog]) -> Result[List[VaultEvent]]:
        """Decode a batch, skipping bad logs, sorted in chain order."""
        events: List[VaultEvent] = []
        errors: List[ProcessingError] = []

        for log in logs:
            try:
                events.append(self.decode(log))
            except EventDecodeException as e:
                logger.warning(
                    f"Skipping log {log.transaction_hash}#{log.log_index} "
                    f"at block {log.block_number}: {e.message}"
                )
                errors.append(
                    ProcessingError(
                        source="decoder",
                        message=e.message,
                        severity=ErrorSeverity.WARNING,
                        context={
                            "block_number": log.block_number,
                            "transaction_hash": log.transaction_hash,
                            "log_index": log.log_index,
                        },
                        exception=e,
                    )
                )

        events.sort(key=lambda event: event.sort_key)
        return Result.partial_success(events, errors)
