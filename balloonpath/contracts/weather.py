"""Weather contracts — interpolated conditions and forecast windows."""

import math
from datetime import datetime

from pydantic import ConfigDict, Field, field_validator

from balloonpath.contracts.common import ContractModel, ensure_utc


class WeatherConditions(ContractModel):
    """Atmospheric state at one (time, position, altitude).

    Produced by weather collaborators as grid nodes, and by a weather
    field as the interpolated answer to a ``sample()`` query.
    ``confidence`` decays with the interpolation distance from stored
    data; ``extrapolated`` is set when the query was clamped to the grid.
    """

    model_config = ConfigDict(frozen=True)

    timestamp: datetime
    altitude: float = Field(..., description="Meters AMSL")
    latitude: float | None = Field(default=None, ge=-90, le=90)
    longitude: float | None = Field(default=None, ge=-180, le=180)
    wind_u: float = Field(..., description="Eastward wind component (m/s)")
    wind_v: float = Field(..., description="Northward wind component (m/s)")
    temperature: float = Field(..., description="°C")
    pressure: float = Field(..., gt=0, description="hPa")
    humidity: float = Field(default=0.0, ge=0, le=100, description="%")
    confidence: float = Field(default=1.0, ge=0, le=1)
    extrapolated: bool = False

    @field_validator("timestamp")
    @classmethod
    def _timestamp_utc(cls, value: datetime) -> datetime:
        return ensure_utc(value)

    @property
    def wind_speed(self) -> float:
        return math.hypot(self.wind_u, self.wind_v)

    @property
    def wind_direction(self) -> float:
        """Direction the wind blows FROM, degrees clockwise from north."""
        if self.wind_u == 0 and self.wind_v == 0:
            return 0.0
        return (270.0 - math.degrees(math.atan2(self.wind_v, self.wind_u))) % 360.0


class WeatherWindow(ContractModel):
    """Time/altitude span of weather needed for one prediction."""

    model_config = ConfigDict(frozen=True)

    start: datetime
    end: datetime
    latitude: float = Field(..., ge=-90, le=90)
    longitude: float = Field(..., ge=-180, le=180)
    min_altitude: float
    max_altitude: float

    @field_validator("start", "end")
    @classmethod
    def _utc(cls, value: datetime) -> datetime:
        return ensure_utc(value)

    @property
    def duration_s(self) -> float:
        return (self.end - self.start).total_seconds()
