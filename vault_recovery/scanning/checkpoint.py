"""
Resumable scan progress.

A checkpoint file records, per topic filter, the next block to fetch and
the logs fetched so far. It is rewritten atomically after every completed
chunk, so an interrupted scan restarts from the last finished chunk. A
checkpoint written for a different contract or block range is ignored.
"""

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

from vault_recovery.scanning.models import RawLog
from vault_recovery.shared.exceptions import InputFileException
from vault_recovery.shared.logging import get_logger
from vault_recovery.utils.file_utils import load_json, write_json_atomic

logger = get_logger(__name__)

CHECKPOINT_VERSION = 1


@dataclass
class TopicProgress:
    next_block: int
    logs: List[RawLog] = field(default_factory=list)


class ScanCheckpoint:
    """Per-topic scan progress persisted to a JSON file."""

    def __init__(
        self,
        path: Union[str, Path],
        contract: str,
        start_block: int,
        end_block: int,
    ):
        self.path = Path(path)
        self.contract = contract.lower()
        self.start_block = start_block
        self.end_block = end_block
        self._topics: Dict[str, TopicProgress] = {}

    @classmethod
    def open(
        cls,
        path: Union[str, Path],
        contract: str,
        start_block: int,
        end_block: int,
    ) -> "ScanCheckpoint":
        """Load ``path`` if it matches the scan, else start an empty checkpoint."""
        checkpoint = cls(path, contract, start_block, end_block)
        if not checkpoint.path.exists():
            return checkpoint

        try:
            data = load_json(checkpoint.path)
        except InputFileException as e:
            logger.warning(f"Ignoring unreadable checkpoint {path}: {e.message}")
            return checkpoint

        if (
            data.get("version") != CHECKPOINT_VERSION
            or str(data.get("contract", "")).lower() != checkpoint.contract
            or data.get("startBlock") != start_block
            or data.get("endBlock") != end_block
        ):
            logger.warning(
                f"Checkpoint {path} was written for a different scan; starting fresh"
            )
            return checkpoint

        for key, entry in data.get("topics", {}).items():
            checkpoint._topics[key] = TopicProgress(
                next_block=int(entry["nextBlock"]),
                logs=[RawLog.from_web3(log) for log in entry.get("logs", [])],
            )
        logger.info(f"Loaded checkpoint {path} ({len(checkpoint._topics)} topics)")
        return checkpoint

    @staticmethod
    def stored_end_block(path: Union[str, Path]) -> Optional[int]:
        """End block recorded in an existing checkpoint file, if readable."""
        if not Path(path).exists():
            return None
        try:
            end_block = load_json(path).get("endBlock")
        except InputFileException:
            return None
        return int(end_block) if isinstance(end_block, int) else None

    def get(self, key: str) -> Optional[TopicProgress]:
        return self._topics.get(key)

    def record(self, key: str, next_block: int, logs: List[RawLog]) -> None:
        """Store progress for one topic filter and persist the whole file."""
        self._topics[key] = TopicProgress(next_block=next_block, logs=list(logs))
        self.save()

    def save(self) -> None:
        write_json_atomic(self.path, self.to_dict())

    def to_dict(self) -> Dict[str, Any]:
        return {
            "version": CHECKPOINT_VERSION,
            "contract": self.contract,
            "startBlock": self.start_block,
            "endBlock": self.end_block,
            "topics": {
                key: {
                    "nextBlock": progress.next_block,
                    "logs": [log.to_dict() for log in progress.logs],
                }
                for key, progress in self._topics.items()
            },
        }
