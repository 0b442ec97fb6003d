"""Prediction-specific exceptions.

Every exception carries an ``ErrorKind`` so the orchestrator can turn it
into a ``ServiceResult`` failure and branch on the kind.
"""

from __future__ import annotations

from dataclasses import dataclass

from balloonpath.contracts.enums import ErrorKind


@dataclass(frozen=True)
class FieldViolation:
    """One failed input check."""

    field: str
    message: str
    code: str = "value_error"

    def __str__(self) -> str:
        return f"{self.field}: {self.message}"


class PredictionError(Exception):
    """Base exception for all prediction errors."""

    kind: ErrorKind = ErrorKind.DATA_UNAVAILABLE


class InvalidInputError(PredictionError):
    """Raised when a launch payload fails validation.

    Lists every violation, not just the first one found.
    """

    kind = ErrorKind.INVALID_INPUT

    def __init__(self, violations: list[FieldViolation]):
        self.violations = list(violations)
        summary = "; ".join(str(v) for v in self.violations)
        super().__init__(f"{len(self.violations)} invalid field(s): {summary}")


class DataUnavailableError(PredictionError):
    """Raised when a weather query has no usable data and no fallback."""

    kind = ErrorKind.DATA_UNAVAILABLE


class AscentTimeoutError(PredictionError):
    """Raised when the ascent exceeds the flight-time safety bound."""

    kind = ErrorKind.ASCENT_TIMEOUT

    def __init__(self, elapsed_s: float, altitude: float):
        self.elapsed_s = elapsed_s
        self.altitude = altitude
        super().__init__(
            f"ascent did not reach burst after {elapsed_s:.0f} s (altitude {altitude:.0f} m)"
        )


class DescentTimeoutError(PredictionError):
    """Raised when the descent exceeds the flight-time safety bound."""

    kind = ErrorKind.DESCENT_TIMEOUT

    def __init__(self, elapsed_s: float, altitude: float):
        self.elapsed_s = elapsed_s
        self.altitude = altitude
        super().__init__(
            f"descent did not reach ground after {elapsed_s:.0f} s (altitude {altitude:.0f} m)"
        )


class InsufficientSamplesError(PredictionError):
    """Raised when the Monte Carlo sample count is below the minimum."""

    kind = ErrorKind.INSUFFICIENT_SAMPLES

    def __init__(self, requested: int, minimum: int):
        self.requested = requested
        self.minimum = minimum
        super().__init__(
            f"{requested} Monte Carlo samples requested, at least {minimum} required"
        )


class PredictionCancelledError(PredictionError):
    """Raised when the caller's cancellation signal is set mid-run."""

    kind = ErrorKind.CANCELLED
