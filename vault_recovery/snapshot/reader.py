"""
Load snapshot artifacts back into typed data.

Both the summary and the detailed artifact are accepted. Pool ids are
validated against the configured pool set, addresses must be valid hex
addresses, and every amount is parsed as an exact int from its decimal
string (float literals are rejected).
"""

import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Iterable, Mapping, Optional, Union

from eth_utils import is_address

from vault_recovery.snapshot.writer import SUMMARY_GLOB
from vault_recovery.shared.exceptions import (
    InputFileException,
    SnapshotFormatException,
)
from vault_recovery.shared.logging import get_logger
from vault_recovery.shared.types import (
    TokenInfo,
    parse_int_amount,
    parse_pool_amounts,
    parse_pool_id,
)
from vault_recovery.utils.file_utils import load_json

logger = get_logger(__name__)

_SUMMARY_TS_RE = re.compile(r"staking_snapshot_summary_(\d+)\.json$")


@dataclass(frozen=True)
class UserOwed:
    address: str
    tokens: Dict[int, int]
    rewards: int


@dataclass
class SnapshotSummary:
    """What a snapshot says is owed, independent of which artifact it came from."""

    kind: str
    metadata: Dict[str, Any]
    users: Dict[str, UserOwed] = field(default_factory=dict)
    pool_tokens: Dict[int, TokenInfo] = field(default_factory=dict)
    total_staked: Dict[int, int] = field(default_factory=dict)
    total_rewards: int = 0
    users_with_outstanding_balances: int = 0
    total_outstanding_positions: int = 0
    path: Optional[Path] = None

    def owed_for_pool(self, pool_id: int) -> Dict[str, int]:
        return {
            address: owed.tokens.get(pool_id, 0)
            for address, owed in self.users.items()
        }

    def rewards_owed(self) -> Dict[str, int]:
        return {address: owed.rewards for address, owed in self.users.items()}


def _require_mapping(value: Any, name: str) -> Mapping[str, Any]:
    if not isinstance(value, Mapping):
        raise SnapshotFormatException(f"'{name}' must be an object")
    return value


def _parse_pool_tokens(
    raw: Any, known_pools: Iterable[int]
) -> Dict[int, TokenInfo]:
    if raw is None:
        return {}
    tokens: Dict[int, TokenInfo] = {}
    for key, token in _require_mapping(raw, "metadata.poolTokens").items():
        pool_id = parse_pool_id(key, known_pools)
        try:
            tokens[pool_id] = TokenInfo(
                address=str(token["address"]),
                symbol=str(token["symbol"]),
                decimals=int(token.get("decimals", 18)),
            )
        except (KeyError, TypeError, ValueError) as e:
            raise SnapshotFormatException(f"Invalid pool token {key}: {e}")
    return tokens


def _parse_user(
    address: str, entry: Any, known_pools: Iterable[int]
) -> UserOwed:
    if not is_address(address):
        raise SnapshotFormatException(f"Invalid user address: {address!r}")
    entry = _require_mapping(entry, f"users.{address}")

    # Detailed artifact nests totals under totalOwed
    owed = entry.get("totalOwed", entry)
    owed = _require_mapping(owed, f"users.{address}.totalOwed")
    if "tokens" not in owed:
        raise SnapshotFormatException(f"User {address} has no 'tokens' entry")

    return UserOwed(
        address=address.lower(),
        tokens=parse_pool_amounts(owed["tokens"], known_pools),
        rewards=parse_int_amount(owed.get("rewards", "0"), f"rewards of {address}"),
    )


def parse_snapshot(
    data: Mapping[str, Any], known_pools: Iterable[int]
) -> SnapshotSummary:
    """
    Validate and convert a parsed snapshot document.

    Raises:
        SnapshotFormatException: on any structural or value error
    """
    known = list(known_pools)
    data = _require_mapping(data, "snapshot")
    metadata = dict(_require_mapping(data.get("metadata", {}), "metadata"))
    raw_users = _require_mapping(data.get("users"), "users")

    users = {
        address.lower(): _parse_user(address, entry, known)
        for address, entry in raw_users.items()
    }
    kind = (
        "detailed"
        if any(isinstance(e, Mapping) and "totalOwed" in e for e in raw_users.values())
        else "summary"
    )

    summary = SnapshotSummary(
        kind=kind,
        metadata=metadata,
        users=users,
        pool_tokens=_parse_pool_tokens(metadata.get("poolTokens"), known),
    )

    block = data.get("summary")
    if block is not None:
        block = _require_mapping(block, "summary")
        summary.total_staked = parse_pool_amounts(
            block.get("totalStaked", {}), known
        )
        summary.total_rewards = parse_int_amount(
            _require_mapping(block.get("totalRewards", {}), "summary.totalRewards").get(
                "total", "0"
            ),
            "summary.totalRewards.total",
        )
        summary.users_with_outstanding_balances = int(
            block.get("usersWithOutstandingBalances", 0)
        )
        summary.total_outstanding_positions = int(
            block.get("totalOutstandingPositions", 0)
        )
    else:
        for owed in users.values():
            for pool_id, amount in owed.tokens.items():
                summary.total_staked[pool_id] = (
                    summary.total_staked.get(pool_id, 0) + amount
                )
            summary.total_rewards += owed.rewards
        summary.users_with_outstanding_balances = sum(
            1 for owed in users.values() if any(owed.tokens.values())
        )

    return summary


def load_snapshot(
    path: Union[str, Path], known_pools: Iterable[int]
) -> SnapshotSummary:
    """
    Read a snapshot file.

    Raises:
        InputFileException: file missing or not JSON
        SnapshotFormatException: JSON does not describe a valid snapshot
    """
    summary = parse_snapshot(load_json(path), known_pools)
    summary.path = Path(path)
    logger.info(
        f"Loaded {summary.kind} snapshot {path} ({len(summary.users)} users)"
    )
    return summary


def find_latest_summary(directory: Union[str, Path] = ".") -> Path:
    """
    Newest ``staking_snapshot_summary_<ts>.json`` in ``directory``.

    Raises:
        InputFileException: no summary snapshot found
    """
    candidates = []
    for path in Path(directory).glob(SUMMARY_GLOB):
        match = _SUMMARY_TS_RE.search(path.name)
        if match:
            candidates.append((int(match.group(1)), path.name, path))

    if not candidates:
        raise InputFileException(
            f"No summary snapshot files found in {Path(directory).resolve()}"
        )
    latest = max(candidates)[2]
    logger.info(f"Using latest summary snapshot: {latest}")
    return latest
