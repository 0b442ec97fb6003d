"""Outcome of a prediction phase or of a whole prediction run."""

from datetime import datetime, timezone
from typing import Generic, TypeVar

from pydantic import BaseModel, Field

from balloonpath.contracts.enums import ErrorKind

T = TypeVar("T")

# Context values attached to a failure (phase name, violation list, ...)
DetailValue = str | int | float | bool | list[str] | None


class ServiceError(BaseModel):
    """Why a phase failed: an ``ErrorKind`` plus context."""

    code: ErrorKind = Field(..., description="Failure kind")
    message: str
    details: dict[str, DetailValue] | None = None


class ServiceResult(BaseModel, Generic[T]):
    """Either ``data`` (success) or ``error`` (failure), never both.

    The orchestrator wraps every component call in one of these and
    branches on ``kind`` to fail, degrade or omit a section.
    """

    success: bool
    data: T | None = None
    error: ServiceError | None = None
    duration_ms: float | None = Field(default=None, ge=0)
    finished_at: datetime = Field(default_factory=lambda: datetime.now(tz=timezone.utc))

    @property
    def kind(self) -> ErrorKind | None:
        return self.error.code if self.error else None

    @classmethod
    def ok(cls, data: T, duration_ms: float | None = None) -> "ServiceResult[T]":
        return cls(success=True, data=data, duration_ms=duration_ms)

    @classmethod
    def fail(
        cls,
        code: ErrorKind,
        message: str,
        duration_ms: float | None = None,
        **details: DetailValue,
    ) -> "ServiceResult[T]":
        return cls(
            success=False,
            error=ServiceError(code=code, message=message, details=details or None),
            duration_ms=duration_ms,
        )
