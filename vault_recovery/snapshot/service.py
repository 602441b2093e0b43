"""
SnapshotService - end-to-end snapshot generation

Pipeline:
1. Resolve the block range (deployment block -> end block)
2. Fetch Locked / Unlocked / RewardsClaimed / Unstaked logs in chunks
3. Decode them (bad logs are skipped and reported)
4. Replay them into a PositionLedger in (block, logIndex) order
5. Compute rewards and owed totals
6. Write the detailed and summary JSON artifacts atomically
"""

from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Optional, Tuple, Union

from vault_recovery.events.decoder import EventDecoder
from vault_recovery.ledger.ledger import PositionLedger
from vault_recovery.rewards.calculator import RewardCalculator, RewardRateTable
from vault_recovery.scanning.checkpoint import ScanCheckpoint
from vault_recovery.scanning.fetcher import LogFetcher
from vault_recovery.scanning.models import RawLog, merge_logs
from vault_recovery.shared.config import RecoveryConfig
from vault_recovery.shared.constants import StakingVaultConstants
from vault_recovery.shared.logging import get_logger
from vault_recovery.shared.results import ProcessingError
from vault_recovery.snapshot.builder import Snapshot, build_snapshot
from vault_recovery.snapshot.writer import write_snapshot

logger = get_logger(__name__)


@dataclass
class SnapshotRun:
    snapshot: Snapshot
    detailed_path: Optional[Path] = None
    summary_path: Optional[Path] = None
    decode_errors: List[ProcessingError] = field(default_factory=list)
    log_count: int = 0


class SnapshotService:
    """
    Builds snapshots from chain history.

    Attributes:
        config: Resolved recovery configuration
        web3_service: Read-side chain access (logs, block timestamps)
        fetcher: Chunked log fetcher bound to the vault contract
    """

    def __init__(
        self,
        config: RecoveryConfig,
        web3_service,
        fetcher: Optional[LogFetcher] = None,
    ):
        self.config = config
        self.web3_service = web3_service
        self.fetcher = fetcher or LogFetcher(
            web3_service,
            config.vault_address,
            chunk_size=config.chunk_size,
            min_chunk_size=config.min_chunk_size,
        )
        self.decoder = EventDecoder(known_pools=config.pool_ids)

    def resolve_end_block(
        self,
        end_block: Optional[int] = None,
        block_limit: Optional[int] = None,
    ) -> int:
        """Explicit end block, else start + limit capped at latest, else latest."""
        latest = self.web3_service.get_block_number()
        logger.info(f"Latest block: {latest}")
        if end_block is not None:
            return min(end_block, latest)
        if block_limit is not None:
            return min(self.config.start_block + block_limit, latest)
        return latest

    def fetch_all_logs(
        self,
        start_block: int,
        end_block: int,
        checkpoint: Optional[ScanCheckpoint] = None,
    ) -> List[RawLog]:
        batches = []
        for name in StakingVaultConstants.EVENT_SIGNATURES:
            topic = StakingVaultConstants.EVENT_TOPICS[name]
            logger.info(f"Fetching {name} events")
            batches.append(
                self.fetcher.fetch_logs(
                    topic,
                    start_block,
                    end_block,
                    checkpoint=checkpoint,
                    label=name,
                )
            )
        return merge_logs(*batches)

    def build(
        self,
        start_block: int,
        end_block: int,
        checkpoint: Optional[ScanCheckpoint] = None,
    ) -> SnapshotRun:
        logs = self.fetch_all_logs(start_block, end_block, checkpoint)

        decoded = self.decoder.decode_all(logs)
        if decoded.is_partial:
            logger.warning(
                f"{len(decoded.errors)} of {len(logs)} logs could not be decoded"
            )

        ledger = PositionLedger().replay(decoded.unwrap())
        logger.info(f"Ledger replay stats: {ledger.stats.to_dict()}")

        calculator = RewardCalculator(
            RewardRateTable(self.config.reward_rates),
            self.web3_service.get_block_timestamp,
        )
        snapshot = build_snapshot(
            ledger,
            calculator,
            contract=self.config.vault_address,
            pool_tokens=self.config.pool_tokens,
            start_block=start_block,
            end_block=end_block,
            emergency_unlock_block=self.config.emergency_unlock_block,
        )
        logger.debug(
            f"Block timestamps fetched: {self.web3_service.cached_block_count}"
        )
        return SnapshotRun(
            snapshot=snapshot,
            decode_errors=list(decoded.errors),
            log_count=len(logs),
        )

    def generate(
        self,
        end_block: Optional[int] = None,
        block_limit: Optional[int] = None,
        output_dir: Union[str, Path] = ".",
        checkpoint_path: Optional[Union[str, Path]] = None,
        timestamp: Optional[int] = None,
    ) -> SnapshotRun:
        """Scan, replay, compute and write both snapshot artifacts."""
        start_block = self.config.start_block
        checkpoint: Optional[ScanCheckpoint] = None

        if checkpoint_path is not None and end_block is None and block_limit is None:
            # Keep the checkpoint's range so a resumed "latest" scan still matches
            end_block = ScanCheckpoint.stored_end_block(checkpoint_path)

        resolved_end = self.resolve_end_block(end_block, block_limit)
        if resolved_end < start_block:
            raise ValueError(
                f"End block {resolved_end} is before start block {start_block}"
            )
        logger.info(
            f"Scanning blocks {start_block} to {resolved_end} "
            f"({resolved_end - start_block} blocks)"
        )

        if checkpoint_path is not None:
            checkpoint = ScanCheckpoint.open(
                checkpoint_path, self.config.vault_address, start_block, resolved_end
            )

        run = self.build(start_block, resolved_end, checkpoint)
        reward_decimals = (
            self.config.reward_token.decimals if self.config.reward_token else 18
        )
        run.detailed_path, run.summary_path = write_snapshot(
            run.snapshot, output_dir, timestamp, reward_decimals
        )
        return run
