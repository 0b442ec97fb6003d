"""BalloonConfiguration and LaunchSpec — caller-supplied prediction inputs.

Both are immutable once built: a prediction run reads them and never
mutates them.
"""

from datetime import datetime
from typing import Self

from pydantic import ConfigDict, Field, field_validator, model_validator

from balloonpath.contracts.common import ContractModel, Coordinates, ensure_utc
from balloonpath.contracts.enums import AscentModel

# Launch sites outside this band are rejected
MIN_LAUNCH_ALTITUDE = -500.0
MAX_LAUNCH_ALTITUDE = 6000.0


class BalloonConfiguration(ContractModel):
    """Physical parameters of the balloon and its payload."""

    model_config = ConfigDict(frozen=True)

    volume: float = Field(..., gt=0, description="Initial envelope volume (m³)")
    burst_altitude: float = Field(..., gt=0, le=60_000, description="Meters AMSL")
    ascent_rate: float = Field(..., gt=0, description="m/s, used by the constant model")
    payload_weight: float = Field(..., gt=0, description="kg")
    drag_coefficient: float = Field(..., gt=0)
    parachute_area: float = Field(
        default=1.0, gt=0, description="Descent drag reference area (m²)"
    )
    balloon_mass: float = Field(
        default=0.0, ge=0, description="Envelope mass (kg), buoyant model only"
    )
    ascent_model: AscentModel = AscentModel.CONSTANT


class LaunchSpec(ContractModel):
    """Launch location, instant and balloon.

    JSON shape: ``latitude``/``longitude``/``altitude``/``launchTime`` plus
    a nested ``balloon`` object.
    """

    model_config = ConfigDict(frozen=True)

    latitude: float = Field(..., ge=-90, le=90)
    longitude: float = Field(..., ge=-180, le=180)
    altitude: float = Field(
        default=0.0, ge=MIN_LAUNCH_ALTITUDE, le=MAX_LAUNCH_ALTITUDE
    )
    launch_time: datetime
    balloon: BalloonConfiguration

    @field_validator("launch_time")
    @classmethod
    def _launch_time_utc(cls, value: datetime) -> datetime:
        return ensure_utc(value)

    @model_validator(mode="after")
    def _burst_above_launch(self) -> Self:
        if self.balloon.burst_altitude <= self.altitude:
            raise ValueError(
                f"burst altitude ({self.balloon.burst_altitude} m) must be above "
                f"launch altitude ({self.altitude} m)"
            )
        return self

    @property
    def coordinates(self) -> Coordinates:
        return Coordinates(
            latitude=self.latitude, longitude=self.longitude, altitude=self.altitude
        )
