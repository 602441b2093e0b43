"""
Chunked eth_getLogs scanner.

A block range is fetched in fixed-size chunks. Each chunk goes through the
shared retry loop; when a chunk still fails after its retries, the chunk
size is halved and the same start block is tried again. Once the chunk
size is at its floor the failure propagates as LogFetchException carrying
the first block that was not fetched.

The result of a chunked scan is the same as a single scan over the whole
range: logs are de-duplicated by (transaction_hash, log_index) and sorted
by (block_number, log_index).
"""

import time
from typing import Any, Callable, List, Optional

from web3 import Web3

from vault_recovery.scanning.checkpoint import ScanCheckpoint
from vault_recovery.scanning.models import RawLog, merge_logs
from vault_recovery.shared.constants import ScanConstants
from vault_recovery.shared.exceptions import (
    LogFetchException,
    NonRetryableException,
    OperationCancelled,
)
from vault_recovery.shared.logging import get_logger
from vault_recovery.shared.retry import LOG_FETCH_RETRY_CONFIG, RetryConfig

logger = get_logger(__name__)


class LogFetcher:
    """
    Fetch a contract's logs over a block range in adaptive chunks.

    Attributes:
        chunk_size: Starting chunk size for every scan
        min_chunk_size: Floor below which chunks are not split further
    """

    def __init__(
        self,
        web3_service: Any,
        contract_address: str,
        chunk_size: int = ScanConstants.DEFAULT_CHUNK_SIZE,
        min_chunk_size: int = ScanConstants.MIN_CHUNK_SIZE,
        retry_config: RetryConfig = LOG_FETCH_RETRY_CONFIG,
        sleep: Callable[[float], None] = time.sleep,
        is_cancelled: Optional[Callable[[], bool]] = None,
    ):
        if min_chunk_size < 1 or chunk_size < min_chunk_size:
            raise ValueError(
                f"Invalid chunk sizes: chunk={chunk_size}, min={min_chunk_size}"
            )
        self.web3_service = web3_service
        self.contract_address = Web3.to_checksum_address(contract_address)
        self.chunk_size = chunk_size
        self.min_chunk_size = min_chunk_size
        self.retry_config = retry_config
        self._sleep = sleep
        self._is_cancelled = is_cancelled

    def fetch_chunk(
        self, topics: List[Any], from_block: int, to_block: int
    ) -> List[RawLog]:
        """One chunk, retried with backoff. Raises the last error on exhaustion."""
        filter_params = {
            "address": self.contract_address,
            "topics": topics,
            "fromBlock": hex(from_block),
            "toBlock": hex(to_block),
        }
        logs = self.retry_config.call(
            self.web3_service.get_logs,
            filter_params,
            operation_name=f"get_logs({from_block}-{to_block})",
            is_cancelled=self._is_cancelled,
            sleep=self._sleep,
        )
        return [RawLog.from_web3(log) for log in logs]

    def fetch_logs(
        self,
        topic: str,
        from_block: int,
        to_block: int,
        extra_topics: Optional[List[Any]] = None,
        checkpoint: Optional[ScanCheckpoint] = None,
        label: Optional[str] = None,
    ) -> List[RawLog]:
        """
        Fetch every log for ``topic`` in the inclusive range.

        Args:
            topic: Event signature hash (topic0)
            from_block: First block (inclusive)
            to_block: Last block (inclusive)
            extra_topics: Optional filters for topic1..topicN
            checkpoint: Optional resumable progress store
            label: Name used in progress logs (defaults to the topic)

        Raises:
            LogFetchException: a chunk failed at the minimum chunk size
            OperationCancelled: cancellation was requested
        """
        if from_block > to_block:
            return []

        topics: List[Any] = [topic] + list(extra_topics or [])
        name = label or topic
        key = ":".join(str(t) for t in topics)

        collected: List[RawLog] = []
        start = from_block
        if checkpoint is not None:
            progress = checkpoint.get(key)
            if progress is not None:
                start = max(progress.next_block, from_block)
                collected = list(progress.logs)
                logger.info(
                    f"Resuming {name} scan at block {start} "
                    f"({len(collected)} logs from checkpoint)"
                )

        total_blocks = to_block - from_block + 1
        chunk_size = self.chunk_size

        while start <= to_block:
            if self._is_cancelled is not None and self._is_cancelled():
                raise OperationCancelled(f"{name} scan cancelled at block {start}")

            end = min(start + chunk_size - 1, to_block)
            percent = (start - from_block) * 100 // total_blocks
            logger.info(
                f"Fetching {name} events: {percent}% complete "
                f"(blocks {start} to {end})"
            )

            try:
                chunk_logs = self.fetch_chunk(topics, start, end)
            except (NonRetryableException, OperationCancelled):
                raise
            except Exception as e:
                if chunk_size <= self.min_chunk_size:
                    raise LogFetchException(
                        f"Failed to fetch {name} logs for blocks {start}-{end} "
                        f"at minimum chunk size {chunk_size}: {e}",
                        resume_block=start,
                    ) from e
                chunk_size = max(chunk_size // 2, self.min_chunk_size)
                logger.warning(
                    f"Error fetching {name} events for blocks {start}-{end}: {e}. "
                    f"Reducing chunk size to {chunk_size} and retrying"
                )
                continue

            logger.debug(
                f"Found {len(chunk_logs)} {name} events in blocks {start} to {end}"
            )
            collected = merge_logs(collected, chunk_logs)
            start = end + 1

            if checkpoint is not None:
                checkpoint.record(key, start, collected)

        result = merge_logs(collected)
        logger.info(f"Total {name} events fetched: {len(result)}")
        return result
