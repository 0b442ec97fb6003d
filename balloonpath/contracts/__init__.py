"""balloonpath data contracts — Pydantic v2 models for trajectory prediction.

Inputs (created by the caller, read-only during a run)
------------------------------------------------------
- ``LaunchSpec`` / ``BalloonConfiguration``
- ``WeatherConditions`` — grid nodes supplied by a weather collaborator

Calculated (one per invocation, immutable)
------------------------------------------
- ``PredictionResult`` — trajectory, burst/landing sites, metrics,
  uncertainty analysis, quality assessment
"""

from balloonpath.contracts.common import ContractModel, Coordinates, ensure_utc
from balloonpath.contracts.enums import (
    AscentModel,
    ErrorKind,
    FlightPhase,
    OrchestratorPhase,
    WeatherDataQuality,
)
from balloonpath.contracts.launch import BalloonConfiguration, LaunchSpec
from balloonpath.contracts.prediction import (
    DistancePercentiles,
    FlightMetrics,
    PredictionResult,
    QualityAssessment,
    UncertaintyAnalysis,
    UncertaintyFactors,
)
from balloonpath.contracts.result import ServiceError, ServiceResult
from balloonpath.contracts.trajectory import BurstSite, LandingSite, TrajectoryPoint
from balloonpath.contracts.weather import WeatherConditions, WeatherWindow

__all__ = [
    # Common
    "ContractModel",
    "Coordinates",
    "ensure_utc",
    # Enums
    "AscentModel",
    "ErrorKind",
    "FlightPhase",
    "OrchestratorPhase",
    "WeatherDataQuality",
    # Inputs
    "BalloonConfiguration",
    "LaunchSpec",
    "WeatherConditions",
    "WeatherWindow",
    # Trajectory
    "TrajectoryPoint",
    "BurstSite",
    "LandingSite",
    # Prediction
    "FlightMetrics",
    "UncertaintyFactors",
    "DistancePercentiles",
    "UncertaintyAnalysis",
    "QualityAssessment",
    "PredictionResult",
    # Result
    "ServiceError",
    "ServiceResult",
]
