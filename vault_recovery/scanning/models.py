"""
Raw log records as returned by eth_getLogs.

web3 returns AttributeDicts with HexBytes and camelCase keys; checkpoints
store plain JSON. RawLog accepts both shapes and normalizes them so the
fetcher, checkpoint and decoder compare and order logs the same way.
"""

from dataclasses import dataclass
from typing import Any, Dict, List, Mapping, Sequence, Tuple

from hexbytes import HexBytes


def _to_hex(value: Any) -> str:
    if isinstance(value, (bytes, bytearray)):
        return HexBytes(value).to_0x_hex()
    text = str(value)
    return text if text.startswith("0x") else "0x" + text


def _to_int(value: Any) -> int:
    if isinstance(value, str):
        return int(value, 16) if value.startswith("0x") else int(value)
    return int(value)


def _field(log: Mapping[str, Any], *names: str) -> Any:
    for name in names:
        if name in log:
            return log[name]
    raise KeyError(names[0])


@dataclass(frozen=True)
class RawLog:
    """A log entry normalized to lowercase hex strings and ints."""

    address: str
    topics: Tuple[str, ...]
    data: str
    block_number: int
    transaction_hash: str
    log_index: int

    @property
    def key(self) -> Tuple[str, int]:
        return (self.transaction_hash, self.log_index)

    @property
    def sort_key(self) -> Tuple[int, int]:
        return (self.block_number, self.log_index)

    @classmethod
    def from_web3(cls, log: Mapping[str, Any]) -> "RawLog":
        """Build from a web3 log (AttributeDict with HexBytes) or a JSON-RPC dict."""
        return cls(
            address=str(log.get("address", "")).lower(),
            topics=tuple(_to_hex(t).lower() for t in log["topics"]),
            data=_to_hex(log.get("data", b"")).lower(),
            block_number=_to_int(_field(log, "blockNumber", "block_number")),
            transaction_hash=_to_hex(
                _field(log, "transactionHash", "transaction_hash")
            ).lower(),
            log_index=_to_int(_field(log, "logIndex", "log_index")),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "address": self.address,
            "topics": list(self.topics),
            "data": self.data,
            "blockNumber": self.block_number,
            "transactionHash": self.transaction_hash,
            "logIndex": self.log_index,
        }


def merge_logs(*batches: Sequence[RawLog]) -> List[RawLog]:
    """Union of log batches, de-duplicated and in chain order."""
    seen: Dict[Tuple[str, int], RawLog] = {}
    for batch in batches:
        for log in batch:
            seen.setdefault(log.key, log)
    return sorted(seen.values(), key=lambda log: log.sort_key)
