"""Enumerations shared across all balloonpath contracts."""

from enum import Enum


class FlightPhase(str, Enum):
    """Phase tag carried by each trajectory point.

    Tags only move forward: ascent -> burst -> descent -> landed.
    """
    ASCENT = "ascent"
    BURST = "burst"
    DESCENT = "descent"
    LANDED = "landed"


class AscentModel(str, Enum):
    """How the ascent rate is derived."""
    CONSTANT = "constant"  # configured ascent_rate, the default
    BUOYANT = "buoyant"  # quasi-steady rate from free lift and envelope drag


class WeatherDataQuality(str, Enum):
    EXCELLENT = "excellent"
    GOOD = "good"
    FAIR = "fair"
    POOR = "poor"


class ErrorKind(str, Enum):
    """Machine-readable failure kinds, used as ``ServiceError.code``."""
    INVALID_INPUT = "invalid_input"
    DATA_UNAVAILABLE = "data_unavailable"
    ASCENT_TIMEOUT = "ascent_timeout"
    DESCENT_TIMEOUT = "descent_timeout"
    INSUFFICIENT_SAMPLES = "insufficient_samples"
    CANCELLED = "cancelled"


class OrchestratorPhase(str, Enum):
    """Lifecycle of a single prediction run."""
    VALIDATING = "validating"
    WEATHER_PREPARATION = "weather_preparation"
    ASCENDING = "ascending"
    DESCENDING = "descending"
    UNCERTAINTY_ANALYSIS = "uncertainty_analysis"
    COMPLETE = "complete"
    ERROR = "error"
