"""
Retry utilities for handling transient failures.

This module provides a functional helper and a shared config for retrying
blocking operations (RPC calls, log scans, transfers) with configurable
backoff. Retries are an explicit loop with an attempt counter: stack depth
stays bounded and a cancellation check runs before every attempt.

Exception Handling:
- By default, retries on RetryableException, web3 errors and any other
  provider exception
- NonRetryableException is never retried (propagates immediately)
- OperationCancelled is raised when ``is_cancelled`` reports True
"""

import time
from typing import Any, Callable, Optional, Tuple, Type, TypeVar

from web3.exceptions import (
    BadFunctionCallOutput,
    BlockNotFound,
    TransactionNotFound,
    Web3Exception,
)

from vault_recovery.shared.exceptions import (
    NonRetryableException,
    OperationCancelled,
    RetryableException,
)
from vault_recovery.shared.logging import get_logger

T = TypeVar("T")

logger = get_logger(__name__)

# Default retryable exceptions (network/RPC related + RetryableException hierarchy)
DEFAULT_RETRYABLE_EXCEPTIONS: Tuple[Type[Exception], ...] = (
    RetryableException,
    ConnectionError,
    TimeoutError,
    OSError,
    Web3Exception,
    BadFunctionCallOutput,
    TransactionNotFound,
    BlockNotFound,
    Exception,  # Providers surface size/rate limits as plain ValueError etc.
)


def compute_delay(
    attempt: int,
    base_delay: float,
    max_delay: float,
    exponential: bool = True,
) -> float:
    """Delay before retry number ``attempt + 1`` (attempt is zero-based)."""
    if exponential:
        return min(base_delay * (2**attempt), max_delay)
    return base_delay


def retry_sync_operation(
    operation: Callable[..., T],
    *args: Any,
    max_attempts: int = 3,
    base_delay: float = 1.0,
    max_delay: float = 30.0,
    exponential: bool = True,
    retryable_exceptions: Optional[Tuple[Type[Exception], ...]] = None,
    operation_name: Optional[str] = None,
    is_cancelled: Optional[Callable[[], bool]] = None,
    sleep: Callable[[float], None] = time.sleep,
    **kwargs: Any,
) -> T:
    """
    Retry a synchronous operation with configurable backoff.

    Args:
        operation: Function to call
        *args: Positional arguments for the operation
        max_attempts: Maximum attempts (including the first one)
        base_delay: Initial delay between retries
        max_delay: Maximum delay between retries
        exponential: Double the delay after each failure
        retryable_exceptions: Exception types to retry on
        operation_name: Optional name for logging
        is_cancelled: Checked before every attempt; True aborts the loop
        sleep: Sleep function (injectable for tests)
        **kwargs: Keyword arguments for the operation

    Returns:
        Result of the operation

    Raises:
        OperationCancelled: if ``is_cancelled`` returned True
        The last exception once all attempts are exhausted
    """
    if retryable_exceptions is None:
        retryable_exceptions = DEFAULT_RETRYABLE_EXCEPTIONS

    name = operation_name or getattr(operation, "__name__", "operation")
    last_exception: Optional[Exception] = None

    for attempt in range(max_attempts):
        if is_cancelled is not None and is_cancelled():
            raise OperationCancelled(f"{name} cancelled before attempt {attempt + 1}")

        try:
            return operation(*args, **kwargs)
        except NonRetryableException:
            raise
        except OperationCancelled:
            raise
        except retryable_exceptions as e:
            last_exception = e

            if attempt < max_attempts - 1:
                delay = compute_delay(attempt, base_delay, max_delay, exponential)

                logger.warning(
                    f"Attempt {attempt + 1}/{max_attempts} failed for "
                    f"{name}: {e}. Retrying in {delay:.1f}s..."
                )

                sleep(delay)

    if last_exception:
        raise last_exception
    raise RuntimeError(
        "Unexpected state: no exception but all attempts exhausted"
    )


class RetryConfig:
    """
    Configuration class for retry behavior.

    Can be used to share retry settings across multiple operations.
    """

    def __init__(
        self,
        max_attempts: int = 3,
        base_delay: float = 1.0,
        max_delay: float = 30.0,
        exponential: bool = True,
        retryable_exceptions: Optional[Tuple[Type[Exception], ...]] = None,
    ):
        self.max_attempts = max_attempts
        self.base_delay = base_delay
        self.max_delay = max_delay
        self.exponential = exponential
        self.retryable_exceptions = retryable_exceptions or DEFAULT_RETRYABLE_EXCEPTIONS

    def call(
        self,
        operation: Callable[..., T],
        *args: Any,
        operation_name: Optional[str] = None,
        is_cancelled: Optional[Callable[[], bool]] = None,
        sleep: Callable[[float], None] = time.sleep,
        **kwargs: Any,
    ) -> T:
        """Run ``operation`` under this config's retry policy."""
        return retry_sync_operation(
            operation,
            *args,
            max_attempts=self.max_attempts,
            base_delay=self.base_delay,
            max_delay=self.max_delay,
            exponential=self.exponential,
            retryable_exceptions=self.retryable_exceptions,
            operation_name=operation_name,
            is_cancelled=is_cancelled,
            sleep=sleep,
            **kwargs,
        )


# Pre-configured retry configs for common use cases
RPC_RETRY_CONFIG = RetryConfig(
    max_attempts=3,
    base_delay=1.0,
    max_delay=10.0,
    exponential=True,
)

# 3 retries after the first call, starting at 2s (2s, 4s, 8s)
LOG_FETCH_RETRY_CONFIG = RetryConfig(
    max_attempts=4,
    base_delay=2.0,
    max_delay=30.0,
    exponential=True,
)
