"""
Result types for explicit success/failure tracking.

This module provides structured result types that carry success/failure
information, so that log decoding and fund distribution never drop an
item silently: every item ends up either in the data or in the errors.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Generic, List, Optional, TypeVar

T = TypeVar("T")


class ErrorSeverity(Enum):
    """Severity levels for processing errors."""

    WARNING = "warning"  # Item dropped, processing continues
    ERROR = "error"  # Item failed, processing continues


@dataclass
class ProcessingError:
    """
    Represents a single processing error with context.

    Attributes:
        source: Component that generated the error (e.g., "decoder", "transfer")
        message: Human-readable error description
        severity: How severe the error is
        context: Additional context like recipient, block number, tx hash
        exception: Original exception if available
    """

    source: str
    message: str
    severity: ErrorSeverity
    context: Dict[str, Any] = field(default_factory=dict)
    exception: Optional[Exception] = None


@dataclass
class Result(Generic[T]):
    """
    Result type that carries success/failure information.

    Attributes:
        success: Whether the operation succeeded
        data: The result data if successful
        errors: Errors encountered (can be non-empty on success for warnings)
        is_partial: Operation completed but some items were dropped
    """

    success: bool
    data: Optional[T] = None
    errors: List[ProcessingError] = field(default_factory=list)
    is_partial: bool = False

    @classmethod
    def partial_success(
        cls, data: T, errors: List[ProcessingError]
    ) -> "Result[T]":
        """Create a completed result that lost some items along the way."""
        return cls(
            success=True, data=data, errors=list(errors), is_partial=bool(errors)
        )

    def unwrap(self) -> T:
        """Return the data, raising if the operation failed."""
        if not self.success:
            raise RuntimeError("; ".join(e.message for e in self.errors))
        return self.data  # type: ignore[return-value]


@dataclass
class DistributionSummary:
    """
    Summary of a distribution run (one token, or several pools merged).

    Every recipient considered by the run lands in exactly one counter:
    successful, failed, skipped_by_operator, skipped_by_threshold or
    not_attempted (left untouched after a cancel).
    """

    label: str
    simulation: bool = True

    # Counts
    successful: int = 0
    failed: int = 0
    skipped_by_operator: int = 0
    skipped_by_threshold: int = 0
    not_attempted: int = 0
    cancelled: bool = False

    # Details
    errors: List[ProcessingError] = field(default_factory=list)
    failed_recipients: List[Dict[str, Any]] = field(default_factory=list)
    transactions: List[Dict[str, Any]] = field(default_factory=list)

    @property
    def total(self) -> int:
        """Number of classified recipients."""
        return (
            self.successful
            + self.failed
            + self.skipped_by_operator
            + self.skipped_by_threshold
            + self.not_attempted
        )

    def record_failure(
        self,
        address: str,
        amount: int,
        message: str,
        exception: Optional[Exception] = None,
    ) -> None:
        """Count a failed recipient and keep the reason."""
        self.failed += 1
        self.failed_recipients.append(
            {"address": address, "amount": str(amount), "error": message}
        )
        self.errors.append(
            ProcessingError(
                source="transfer",
                message=message,
                severity=ErrorSeverity.ERROR,
                context={"address": address, "amount": str(amount)},
                exception=exception,
            )
        )

    def merge(self, other: "DistributionSummary") -> None:
        """Merge another summary into this one."""
        self.successful += other.successful
        self.failed += other.failed
        self.skipped_by_operator += other.skipped_by_operator
        self.skipped_by_threshold += other.skipped_by_threshold
        self.not_attempted += other.not_attempted
        self.cancelled = self.cancelled or other.cancelled
        self.errors.extend(other.errors)
        self.failed_recipients.extend(other.failed_recipients)
        self.transactions.extend(other.transactions)
