"""PredictionResult and its analysis sections.

A PredictionResult is calculated once per invocation and never mutated;
it is the unit handed to map rendering, export and telemetry layers.
"""

from pydantic import Field

from balloonpath.contracts.common import Coordinates, FrozenContract
from balloonpath.contracts.enums import WeatherDataQuality
from balloonpath.contracts.trajectory import BurstSite, LandingSite, TrajectoryPoint


class FlightMetrics(FrozenContract):
    duration_s: float = Field(..., ge=0, description="Landing time − launch time")
    ascent_duration_s: float = Field(..., ge=0)
    descent_duration_s: float = Field(..., ge=0)
    max_altitude: float = Field(..., description="Equals the burst altitude")
    total_distance_km: float = Field(
        ..., ge=0, description="Cumulative great-circle distance along the trajectory"
    )
    drift_distance_km: float = Field(
        ..., ge=0, description="Great-circle distance from launch to landing"
    )
    average_wind_speed: float = Field(..., ge=0, description="m/s over logged points")


class UncertaintyFactors(FrozenContract):
    """Relative contributions to the landing uncertainty (0 to 1 each)."""

    wind_uncertainty: float = Field(..., ge=0, le=1)
    model_uncertainty: float = Field(..., ge=0, le=1)
    data_quality: float = Field(..., ge=0, le=1)
    vertical_uncertainty: float = Field(default=0.0, ge=0, le=1)


class DistancePercentiles(FrozenContract):
    """Landing distance from the deterministic landing point, in km."""

    p10: float = Field(..., ge=0)
    p50: float = Field(..., ge=0)
    p90: float = Field(..., ge=0)


class UncertaintyAnalysis(FrozenContract):
    landing_radius_km: float = Field(..., ge=0)
    burst_radius_km: float = Field(..., ge=0)
    confidence_level: float = Field(..., gt=0, lt=1)
    sample_count: int = Field(..., ge=1)
    rms_wind_error: float = Field(..., ge=0, description="m/s")
    percentiles: DistancePercentiles
    mean_landing: Coordinates
    std_deviation_km: float = Field(..., ge=0)
    factors: UncertaintyFactors


class QualityAssessment(FrozenContract):
    """Weather data quality and every non-fatal degradation of the run."""

    weather_data_quality: WeatherDataQuality
    prediction_confidence: float = Field(..., ge=0, le=1)
    coverage: float = Field(..., ge=0, le=1)
    degraded_mode: bool = False
    warnings: tuple[str, ...] = ()
    recommendations: tuple[str, ...] = ()


class PredictionResult(FrozenContract):
    trajectory: tuple[TrajectoryPoint, ...]
    burst_site: BurstSite
    landing_site: LandingSite
    flight_metrics: FlightMetrics
    uncertainty: UncertaintyAnalysis | None = None
    quality: QualityAssessment
