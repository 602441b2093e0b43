"""
Shared type definitions used across the recovery toolkit.
"""

import re
from dataclasses import dataclass
from typing import Any, Dict, FrozenSet, Iterable, Mapping

from vault_recovery.shared.exceptions import SnapshotFormatException

# =============================================================================
# TOKENS & POOLS
# =============================================================================


@dataclass(frozen=True)
class TokenInfo:
    """ERC20 token distributed by the recovery."""

    address: str
    symbol: str
    decimals: int = 18

    def to_dict(self) -> Dict[str, Any]:
        return {
            "address": self.address,
            "symbol": self.symbol,
            "decimals": self.decimals,
        }


_POOL_ID_RE = re.compile(r"^\d+$")
_INT_STRING_RE = re.compile(r"^-?\d+$")


def parse_pool_id(raw: Any, known_pools: Iterable[int]) -> int:
    """Validate a pool identifier against the configured closed pool set.

    JSON object keys arrive as strings ("0", "1", ...); integers are also
    accepted. Anything else, or an id outside ``known_pools``, raises
    SnapshotFormatException.
    """
    if isinstance(raw, bool):
        raise SnapshotFormatException(f"Invalid pool id: {raw!r}")
    if isinstance(raw, int):
        pool_id = raw
    elif isinstance(raw, str) and _POOL_ID_RE.match(raw.strip()):
        pool_id = int(raw.strip())
    else:
        raise SnapshotFormatException(f"Invalid pool id: {raw!r}")

    known: FrozenSet[int] = frozenset(known_pools)
    if pool_id not in known:
        raise SnapshotFormatException(
            f"Unknown pool id {pool_id}; expected one of {sorted(known)}"
        )
    return pool_id


def parse_int_amount(raw: Any, field_name: str = "amount") -> int:
    """Parse a decimal-string (or int) amount exactly, never through float."""
    if isinstance(raw, bool):
        raise SnapshotFormatException(f"Invalid {field_name}: {raw!r}")
    if isinstance(raw, int):
        return raw
    if isinstance(raw, str) and _INT_STRING_RE.match(raw.strip()):
        return int(raw.strip())
    raise SnapshotFormatException(
        f"Invalid {field_name}: {raw!r} is not an integer string"
    )


def parse_pool_amounts(
    raw: Mapping[str, Any], known_pools: Iterable[int]
) -> Dict[int, int]:
    """Parse a ``{poolId: amountStr}`` mapping into validated ints.

    Keys such as "0Readable" in summary blocks are ignored.
    """
    if not isinstance(raw, Mapping):
        raise SnapshotFormatException(
            f"Expected pool amount mapping, got {type(raw).__name__}"
        )
    known = list(known_pools)
    amounts: Dict[int, int] = {}
    for key, value in raw.items():
        if isinstance(key, str) and key.endswith("Readable"):
            continue
        pool_id = parse_pool_id(key, known)
        amounts[pool_id] = parse_int_amount(value, f"amount for pool {pool_id}")
    return amounts
