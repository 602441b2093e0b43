"""
Exception hierarchy for the StakingVault recovery toolkit.

Exception Categories:
- RetryableException: Transient failures that may succeed on retry (RPC, network)
- NonRetryableException: Permanent failures that won't benefit from retry (bad data)
- ConfigurationException: Startup/config errors that prevent operation

Domain exceptions are categorized:
- LogFetchException -> RetryableException (provider failures while scanning logs)
- RpcException -> RetryableException (block, balance and nonce reads)
- TransferException -> RetryableException (submission/confirmation failures)
- EventDecodeException -> NonRetryableException (malformed log payloads)
- SnapshotFormatException -> NonRetryableException (invalid snapshot JSON)
- InputFileException -> NonRetryableException (unreadable CSV/snapshot input)
"""

from typing import Optional


class RetryableException(Exception):
    """
    Base class for exceptions that may succeed on retry.

    Use for transient failures like:
    - RPC timeouts
    - Rate limiting / response size limits
    - Temporary network issues
    """

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class NonRetryableException(Exception):
    """
    Base class for exceptions that won't benefit from retry.

    Use for permanent failures like:
    - Invalid input data
    - Missing required data
    - Business logic violations
    """

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ConfigurationException(NonRetryableException):
    """
    Exception for configuration/startup errors.

    Use when:
    - Required environment variables are missing (RPC URL, private key)
    - Invalid configuration values (bad addresses, unknown pools)
    """

    pass


class OperationCancelled(Exception):
    """Raised when a retry loop observes a cancellation request."""

    pass


class LogFetchException(RetryableException):
    """
    Exception for log range scans that could not complete.

    Carries the first block that has not been fetched so that a caller
    can resume the scan from there.
    """

    def __init__(self, message: str, resume_block: Optional[int] = None):
        super().__init__(message)
        self.resume_block = resume_block


class TransferException(RetryableException):
    """Exception for token transfers that failed to submit or confirm."""

    def __init__(self, message: str, tx_hash: Optional[str] = None):
        super().__init__(message)
        self.tx_hash = tx_hash


class NonceConflictException(TransferException):
    """Transfer rejected because the nonce was already used or too low."""

    pass


class RpcException(RetryableException):
    """A read-side chain call kept failing after its retries."""

    pass


class EventDecodeException(NonRetryableException):
    """A single log could not be decoded into a domain event."""

    pass


class SnapshotFormatException(NonRetryableException):
    """Snapshot JSON is structurally invalid or carries bad values."""

    pass


class InputFileException(NonRetryableException):
    """A required input file is missing or unreadable."""

    pass
