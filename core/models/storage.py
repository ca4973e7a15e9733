"""
Operation result models shared by storage, linking, and impact analysis.

Collaborator failures are reported through these results instead of being
silently swallowed, so batch operations can surface partial failure.
"""

from datetime import datetime
from enum import Enum
from typing import Any, Dict, Generic, List, Optional, TypeVar
from pydantic import BaseModel, Field, computed_field


T = TypeVar('T')


class OperationStatus(Enum):
    """Status of an operation"""
    SUCCESS = "success"
    FAILED = "failed"
    PARTIAL = "partial"


class OperationResult(BaseModel, Generic[T]):
    """Standard operation result wrapper"""

    # Result status
    status: OperationStatus

    # Data (present on success, and on partial or recoverable failure)
    data: Optional[T] = None

    # Error information
    error: Optional[str] = None
    error_details: Optional[Dict[str, Any]] = None
    recoverable: bool = True
    warnings: List[str] = Field(default_factory=list)

    # Operation metadata
    operation_type: str
    timestamp: datetime = Field(default_factory=datetime.now)
    processing_time_ms: Optional[float] = None

    # Batch metrics
    items_processed: int = 0
    items_failed: int = 0

    @computed_field
    @property
    def success(self) -> bool:
        """Computed property for success status"""
        return self.status == OperationStatus.SUCCESS

    @property
    def is_fatal(self) -> bool:
        """Failed and not safe to continue past"""
        return self.status == OperationStatus.FAILED and not self.recoverable

    @property
    def success_rate(self) -> float:
        """Calculate success rate for batch operations"""
        if self.items_processed == 0:
            return 1.0 if self.success else 0.0
        return (self.items_processed - self.items_failed) / self.items_processed

    @classmethod
    def success_result(
        cls,
        data: T,
        operation_type: str,
        processing_time_ms: Optional[float] = None,
        items_processed: int = 1
    ) -> 'OperationResult[T]':
        """Create successful result"""
        return cls(
            status=OperationStatus.SUCCESS,
            data=data,
            operation_type=operation_type,
            processing_time_ms=processing_time_ms,
            items_processed=items_processed
        )

    @classmethod
    def partial_result(
        cls,
        data: T,
        operation_type: str,
        warnings: List[str],
        items_processed: int = 0,
        items_failed: int = 0
    ) -> 'OperationResult[T]':
        """Create result where some items failed but the rest are usable"""
        return cls(
            status=OperationStatus.PARTIAL,
            data=data,
            operation_type=operation_type,
            warnings=list(warnings),
            items_processed=items_processed,
            items_failed=items_failed
        )

    @classmethod
    def error_result(
        cls,
        error: str,
        operation_type: str,
        data: Optional[T] = None,
        recoverable: bool = True,
        error_details: Optional[Dict[str, Any]] = None,
        processing_time_ms: Optional[float] = None
    ) -> 'OperationResult[T]':
        """Create error result"""
        return cls(
            status=OperationStatus.FAILED,
            data=data,
            error=error,
            error_details=error_details,
            recoverable=recoverable,
            operation_type=operation_type,
            processing_time_ms=processing_time_ms
        )

    def messages(self) -> List[str]:
        """All human-readable problems carried by this result"""
        problems = list(self.warnings)
        if self.error:
            problems.append(self.error)
        return problems
