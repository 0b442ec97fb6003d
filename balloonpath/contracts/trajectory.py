"""TrajectoryPoint, BurstSite, LandingSite — the integrated flight path."""

from datetime import datetime

from pydantic import Field, field_validator

from balloonpath.contracts.common import Coordinates, FrozenContract, ensure_utc
from balloonpath.contracts.enums import FlightPhase


class TrajectoryPoint(FrozenContract):
    """One logged state of the balloon.

    ``vertical_velocity`` is positive while climbing and negative on
    descent. Temperature (°C) and pressure (hPa) are those sampled from
    the weather field at the point.
    """

    timestamp: datetime
    latitude: float = Field(..., ge=-90, le=90)
    longitude: float = Field(..., ge=-180, le=180)
    altitude: float
    vertical_velocity: float
    wind_speed: float = Field(..., ge=0)
    wind_direction: float = Field(..., ge=0, le=360)
    temperature: float | None = None
    pressure: float | None = None
    phase: FlightPhase

    @field_validator("timestamp")
    @classmethod
    def _timestamp_utc(cls, value: datetime) -> datetime:
        return ensure_utc(value)


class _Site(FrozenContract):
    location: Coordinates
    altitude: float
    timestamp: datetime
    uncertainty_radius_km: float | None = Field(default=None, ge=0)
    confidence: float = Field(..., ge=0, le=1)


class BurstSite(_Site):
    """Where the envelope fails: the last ascent point."""


class LandingSite(_Site):
    """Where the payload touches ground: the last descent point."""
