"""
Unit tests for the chunked log fetcher.
"""

from unittest.mock import MagicMock

import pytest
from hexbytes import HexBytes

from conftest import TOPICS, USER_A, USER_B, locked_log, unstaked_log
from vault_recovery.scanning.checkpoint import ScanCheckpoint
from vault_recovery.scanning.fetcher import LogFetcher
from vault_recovery.scanning.models import RawLog, merge_logs
from vault_recovery.shared.constants import StakingVaultConstants
from vault_recovery.shared.exceptions import (
    LogFetchException,
    NonRetryableException,
    OperationCancelled,
)
from vault_recovery.shared.retry import RetryConfig

NO_RETRY = RetryConfig(max_attempts=1, base_delay=0)


class FakeChain:
    """get_logs over an in-memory log list, optionally failing on wide ranges."""

    def __init__(self, logs, max_range=None, fail_always=False):
        self.logs = logs
        self.max_range = max_range
        self.fail_always = fail_always
        self.calls = []

    def get_logs(self, params):
        from_block = int(params["fromBlock"], 16)
        to_block = int(params["toBlock"], 16)
        self.calls.append((from_block, to_block))
        if self.fail_always:
            raise ValueError("upstream unavailable")
        if self.max_range is not None and to_block - from_block + 1 > self.max_range:
            raise ValueError("query returned more than 10000 results")
        topic0 = params["topics"][0]
        return [
            log.to_dict()
            for log in self.logs
            if from_block <= log.block_number <= to_block and log.topics[0] == topic0
        ]


@pytest.fixture
def chain_logs():
    return [
        locked_log(USER_A, 1, 10**18, 4320000, 0, 0, block=1005, log_index=2),
        locked_log(USER_A, 2, 10**18, 4320000, 0, 1, block=1005, log_index=0),
        locked_log(USER_B, 1, 5 * 10**18, 8640000, 0, 0, block=1250),
        locked_log(USER_B, 2, 5 * 10**18, 8640000, 0, 2, block=1999),
        unstaked_log(USER_A, 0, 10**18, block=1500),
    ]


def _fetcher(chain, chunk_size=100, min_chunk_size=10, **kwargs):
    return LogFetcher(
        chain,
        StakingVaultConstants.VAULT_ADDRESS,
        chunk_size=chunk_size,
        min_chunk_size=min_chunk_size,
        retry_config=kwargs.pop("retry_config", NO_RETRY),
        sleep=lambda _: None,
        **kwargs,
    )


class TestRawLog:
    """Tests for RawLog normalization."""

    def test_from_web3_hexbytes(self):
        log = RawLog.from_web3(
            {
                "address": "0xA6FaCD417faf801107bF19F4a24062Ff15AE9C61",
                "topics": [HexBytes("0x" + "ab" * 32)],
                "data": HexBytes("0x" + "00" * 32),
                "blockNumber": 10,
                "transactionHash": HexBytes("0x" + "CD" * 32),
                "logIndex": 3,
            }
        )
        assert log.address == "0xa6facd417faf801107bf19f4a24062ff15ae9c61"
        assert log.topics == ("0x" + "ab" * 32,)
        assert log.transaction_hash == "0x" + "cd" * 32
        assert log.sort_key == (10, 3)

    def test_from_json_rpc_hex_numbers(self):
        log = RawLog.from_web3(
            {
                "topics": ["0x01"],
                "data": "0x",
                "blockNumber": "0x10",
                "transactionHash": "0xaa",
                "logIndex": "0x1",
            }
        )
        assert log.block_number == 16
        assert log.log_index == 1

    def test_merge_dedupes_and_sorts(self, chain_logs):
        merged = merge_logs(chain_logs[2:], chain_logs, chain_logs[:1])
        assert len(merged) == len(chain_logs)
        assert [log.sort_key for log in merged] == sorted(
            log.sort_key for log in chain_logs
        )


class TestLogFetcher:
    """Tests for LogFetcher.fetch_logs."""

    def test_invalid_chunk_sizes(self):
        with pytest.raises(ValueError):
            LogFetcher(MagicMock(), StakingVaultConstants.VAULT_ADDRESS, 10, 20)

    def test_empty_range(self):
        chain = FakeChain([])
        assert _fetcher(chain).fetch_logs(TOPICS["Locked"], 10, 9) == []
        assert chain.calls == []

    def test_chunks_cover_range_inclusively(self):
        chain = FakeChain([])
        _fetcher(chain, chunk_size=100).fetch_logs(TOPICS["Locked"], 1000, 1250)
        assert chain.calls == [(1000, 1099), (1100, 1199), (1200, 1250)]

    def test_chunked_equals_single_scan(self, chain_logs):
        """Chunk boundaries never change the result."""
        single = _fetcher(FakeChain(chain_logs), chunk_size=5000).fetch_logs(
            TOPICS["Locked"], 1000, 2000
        )
        chunked = _fetcher(FakeChain(chain_logs), chunk_size=7, min_chunk_size=1).fetch_logs(
            TOPICS["Locked"], 1000, 2000
        )

        assert chunked == single
        assert [log.sort_key for log in single] == [
            (1005, 0),
            (1005, 2),
            (1250, 0),
            (1999, 0),
        ]

    def test_filters_by_topic(self, chain_logs):
        logs = _fetcher(FakeChain(chain_logs)).fetch_logs(
            TOPICS["Unstaked"], 1000, 2000
        )
        assert len(logs) == 1
        assert logs[0].block_number == 1500

    def test_shrinks_chunk_on_failure(self, chain_logs):
        """A too-wide chunk is halved and the same start block retried."""
        chain = FakeChain(chain_logs, max_range=30)
        logs = _fetcher(chain, chunk_size=100, min_chunk_size=10).fetch_logs(
            TOPICS["Locked"], 1000, 1099
        )

        assert chain.calls[:3] == [(1000, 1099), (1000, 1049), (1000, 1024)]
        assert [log.sort_key for log in logs] == [(1005, 0), (1005, 2)]

    def test_fails_at_minimum_chunk(self):
        chain = FakeChain([], fail_always=True)
        with pytest.raises(LogFetchException) as exc_info:
            _fetcher(chain, chunk_size=40, min_chunk_size=10).fetch_logs(
                TOPICS["Locked"], 500, 1000
            )

        assert exc_info.value.resume_block == 500
        assert chain.calls == [(500, 539), (500, 519), (500, 509)]

    def test_retries_before_shrinking(self):
        """Each chunk size gets the full retry budget first."""
        chain = FakeChain([], fail_always=True)
        fetcher = _fetcher(
            chain,
            chunk_size=10,
            min_chunk_size=10,
            retry_config=RetryConfig(max_attempts=4, base_delay=2.0),
        )
        with pytest.raises(LogFetchException):
            fetcher.fetch_logs(TOPICS["Locked"], 0, 100)
        assert len(chain.calls) == 4

    def test_non_retryable_propagates(self):
        chain = MagicMock()
        chain.get_logs.side_effect = NonRetryableException("bad filter")
        with pytest.raises(NonRetryableException):
            _fetcher(chain).fetch_logs(TOPICS["Locked"], 0, 10)

    def test_cancelled(self):
        chain = FakeChain([])
        fetcher = _fetcher(chain, is_cancelled=lambda: True)
        with pytest.raises(OperationCancelled):
            fetcher.fetch_logs(TOPICS["Locked"], 0, 10)
        assert chain.calls == []


class TestCheckpointResume:
    """Tests for resuming a scan from a checkpoint file."""

    def test_resume_skips_finished_chunks(self, tmp_path, chain_logs):
        path = tmp_path / "scan.json"
        vault = StakingVaultConstants.VAULT_ADDRESS

        # First run dies after the first chunk
        chain = FakeChain(chain_logs)
        calls = {"n": 0}
        original = chain.get_logs

        def flaky(params):
            calls["n"] += 1
            if calls["n"] > 1:
                raise NonRetryableException("provider gone")
            return original(params)

        chain.get_logs = flaky
        checkpoint = ScanCheckpoint.open(path, vault, 1000, 2000)
        with pytest.raises(NonRetryableException):
            _fetcher(chain, chunk_size=500).fetch_logs(
                TOPICS["Locked"], 1000, 2000, checkpoint=checkpoint
            )

        # Second run resumes at block 1500
        resumed_chain = FakeChain(chain_logs)
        checkpoint = ScanCheckpoint.open(path, vault, 1000, 2000)
        logs = _fetcher(resumed_chain, chunk_size=500).fetch_logs(
            TOPICS["Locked"], 1000, 2000, checkpoint=checkpoint
        )

        assert resumed_chain.calls == [(1500, 1999), (2000, 2000)]
        full = _fetcher(FakeChain(chain_logs), chunk_size=5000).fetch_logs(
            TOPICS["Locked"], 1000, 2000
        )
        assert logs == full
