"""Typed success/failure results for engine operations"""
from dataclasses import dataclass
from typing import Generic, Optional, TypeVar

from progression.exceptions import ProgressionError

T = TypeVar("T")


@dataclass(frozen=True)
class OperationResult(Generic[T]):
    """
    Outcome of an operation that can fail on a precondition

    Precondition violations are returned to the caller instead of raised.
    """
    success: bool
    value: Optional[T] = None
    error: Optional[ProgressionError] = None

    @classmethod
    def ok(cls, value: T) -> "OperationResult[T]":
        return cls(success=True, value=value)

    @classmethod
    def fail(cls, error: ProgressionError) -> "OperationResult[T]":
        return cls(success=False, error=error)

    @property
    def message(self) -> str:
        if self.error is not None:
            return self.error.user_message
        return ""
