"""Engine settings and weather query options.

Both are validated records. ``PredictionSettings.from_env()`` overlays
``BALLOONPATH_<FIELD>`` environment variables on the defaults, e.g.
``BALLOONPATH_MONTE_CARLO_SAMPLES=500``.
"""

from __future__ import annotations

import os
from typing import Self

from pydantic import BaseModel, ConfigDict, Field, model_validator

ENV_PREFIX = "BALLOONPATH_"


class PredictionSettings(BaseModel):
    """Numerical and resource settings of a prediction run."""

    model_config = ConfigDict(frozen=True)

    # Integration
    time_step_s: float = Field(default=1.0, gt=0)
    log_interval_steps: int = Field(default=50, ge=1)
    max_phase_duration_s: float = Field(default=86_400.0, gt=0)
    gravity: float = Field(default=9.81, gt=0)

    # Monte Carlo
    monte_carlo_samples: int = Field(default=100, ge=1)
    min_monte_carlo_samples: int = Field(default=10, ge=1)
    rms_wind_error: float = Field(default=2.0, ge=0, description="m/s")
    confidence_level: float = Field(default=0.95, gt=0, lt=1)
    error_correlation_s: float = Field(default=600.0, gt=0)
    ascent_rate_error: float = Field(default=0.0, ge=0, description="m/s, 1 sigma")
    burst_altitude_error: float = Field(default=0.0, ge=0, description="m, 1 sigma")
    random_seed: int | None = None
    max_workers: int | None = Field(default=None, ge=1)

    # Weather window
    nominal_descent_rate: float = Field(default=5.0, gt=0)
    window_margin_s: float = Field(default=3600.0, ge=0)

    # Weather cache
    cache_ttl_s: float = Field(default=300.0, ge=0)
    cache_max_entries: int = Field(default=32, ge=1)

    @model_validator(mode="after")
    def _time_step_fits(self) -> Self:
        if self.time_step_s > self.max_phase_duration_s:
            raise ValueError("time_step_s must not exceed max_phase_duration_s")
        return self

    @classmethod
    def from_env(cls, environ: dict[str, str] | None = None, **overrides) -> Self:
        """Build settings from ``BALLOONPATH_*`` environment variables."""
        env = os.environ if environ is None else environ
        values: dict[str, str] = {}
        for name in cls.model_fields:
            raw = env.get(f"{ENV_PREFIX}{name.upper()}")
            if raw is not None and raw != "":
                values[name] = raw
        values.update(overrides)
        return cls.model_validate(values)


class WeatherQueryOptions(BaseModel):
    """How a weather field answers queries outside or between its nodes.

    The three scales are e-folding distances of the confidence decay:
    confidence drops to 1/e of the stored value at that distance from
    the nearest grid node along the axis.
    """

    model_config = ConfigDict(frozen=True)

    fallback: bool = Field(default=True, description="Clamp out-of-range queries")
    time_scale_s: float = Field(default=21_600.0, gt=0)
    spatial_scale_km: float = Field(default=100.0, gt=0)
    vertical_scale_m: float = Field(default=5_000.0, gt=0)
    surface_tolerance_m: float = Field(
        default=500.0, ge=0, description="Gap below the lowest level still counted as covered"
    )
