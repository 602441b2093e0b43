"""
Unit tests for the retry utilities module.
"""

from unittest.mock import MagicMock

import pytest

from vault_recovery.shared.exceptions import (
    NonRetryableException,
    OperationCancelled,
    RetryableException,
)
from vault_recovery.shared.retry import (
    LOG_FETCH_RETRY_CONFIG,
    RPC_RETRY_CONFIG,
    RetryConfig,
    compute_delay,
    retry_sync_operation,
)


class TestRetrySyncOperation:
    """Tests for the retry_sync_operation function."""

    def test_succeeds_first_try(self):
        """Test operation that succeeds on first attempt."""
        mock_fn = MagicMock(return_value="success")
        sleeps = []

        result = retry_sync_operation(mock_fn, sleep=sleeps.append)

        assert result == "success"
        assert mock_fn.call_count == 1
        assert sleeps == []

    def test_succeeds_after_retry(self):
        """Test operation that fails twice then succeeds."""
        mock_fn = MagicMock(
            side_effect=[RetryableException("fail"), ValueError("too big"), "ok"]
        )
        sleeps = []

        result = retry_sync_operation(
            mock_fn, max_attempts=3, base_delay=2.0, sleep=sleeps.append
        )

        assert result == "ok"
        assert mock_fn.call_count == 3
        assert sleeps == [2.0, 4.0]

    def test_fails_after_max_attempts(self):
        """The last exception propagates once retries are exhausted."""
        mock_fn = MagicMock(side_effect=RetryableException("always fail"))

        with pytest.raises(RetryableException, match="always fail"):
            retry_sync_operation(mock_fn, max_attempts=4, sleep=lambda _: None)

        assert mock_fn.call_count == 4

    def test_non_retryable_propagates_immediately(self):
        """NonRetryableException is never retried."""
        mock_fn = MagicMock(side_effect=NonRetryableException("bad input"))

        with pytest.raises(NonRetryableException):
            retry_sync_operation(mock_fn, max_attempts=5, sleep=lambda _: None)

        assert mock_fn.call_count == 1

    def test_passes_arguments(self):
        """Positional and keyword arguments reach the operation."""
        mock_fn = MagicMock(return_value=1)

        retry_sync_operation(mock_fn, "a", 2, key="value", sleep=lambda _: None)

        mock_fn.assert_called_once_with("a", 2, key="value")

    def test_cancelled_before_first_attempt(self):
        """A cancellation request stops the loop before calling the operation."""
        mock_fn = MagicMock(return_value="never")

        with pytest.raises(OperationCancelled):
            retry_sync_operation(mock_fn, is_cancelled=lambda: True)

        mock_fn.assert_not_called()

    def test_cancelled_between_attempts(self):
        """Cancellation is observed before every retry."""
        mock_fn = MagicMock(side_effect=RetryableException("fail"))
        flags = iter([False, True])

        with pytest.raises(OperationCancelled):
            retry_sync_operation(
                mock_fn,
                max_attempts=5,
                is_cancelled=lambda: next(flags),
                sleep=lambda _: None,
            )

        assert mock_fn.call_count == 1


class TestComputeDelay:
    """Tests for backoff delay computation."""

    def test_exponential(self):
        assert [compute_delay(i, 2.0, 30.0) for i in range(5)] == [
            2.0,
            4.0,
            8.0,
            16.0,
            30.0,
        ]

    def test_constant(self):
        assert compute_delay(3, 1.5, 30.0, exponential=False) == 1.5


class TestRetryConfig:
    """Tests for the RetryConfig class."""

    def test_default_values(self):
        config = RetryConfig()
        assert config.max_attempts == 3
        assert config.base_delay == 1.0
        assert config.max_delay == 30.0
        assert config.exponential is True

    def test_call_uses_config(self):
        """call() applies the config's attempts and delays."""
        config = RetryConfig(max_attempts=2, base_delay=0.5)
        mock_fn = MagicMock(side_effect=RetryableException("fail"))
        sleeps = []

        with pytest.raises(RetryableException):
            config.call(mock_fn, sleep=sleeps.append)

        assert mock_fn.call_count == 2
        assert sleeps == [0.5]

    def test_preconfigured(self):
        """Log fetching retries three times starting at 2 seconds."""
        assert LOG_FETCH_RETRY_CONFIG.max_attempts == 4
        assert LOG_FETCH_RETRY_CONFIG.base_delay == 2.0
        assert RPC_RETRY_CONFIG.max_attempts == 3
