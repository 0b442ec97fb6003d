"""Horizontal wind drift on a spherical Earth.

Used step-by-step by the ascent and descent simulators, and in bulk by
the Monte Carlo engine, which replays a recorded wind series with
injected error. Both paths share the same displacement formula:

    Δlat = deg(v·Δt / R)
    Δlon = deg(u·Δt / (R · max(cos(lat), ε)))
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field

import numpy as np

from balloonpath.services.physics.geodesy import (
    EARTH_RADIUS_M,
    clamp_latitude,
    normalize_longitude,
)

# Smallest cos(latitude) used as the longitude divisor
MIN_COS_LATITUDE = 1e-3


class WindDriftIntegrator:
    """Converts wind and time into a latitude/longitude displacement."""

    def __init__(
        self,
        earth_radius_m: float = EARTH_RADIUS_M,
        min_cos_latitude: float = MIN_COS_LATITUDE,
    ):
        self.earth_radius_m = earth_radius_m
        self.min_cos_latitude = min_cos_latitude

    def displacement(
        self,
        wind_u: float,
        wind_v: float,
        dt: float,
        latitude: float,
        *,
        rms_error: float = 0.0,
        rng: np.random.Generator | None = None,
    ) -> tuple[float, float]:
        """Return (Δlat, Δlon) in degrees.

        Perturbation mode: when ``rng`` is given, a zero-mean Gaussian
        error with standard deviation ``rms_error`` is added to u and v
        independently. Two normals are always drawn so a given generator
        state yields the same draws whatever the error magnitude.
        """
        if rng is not None:
            eu, ev = rng.standard_normal(2)
            wind_u += rms_error * eu
            wind_v += rms_error * ev
        cos_lat = max(math.cos(math.radians(latitude)), self.min_cos_latitude)
        dlat = math.degrees(wind_v * dt / self.earth_radius_m)
        dlon = math.degrees(wind_u * dt / (self.earth_radius_m * cos_lat))
        return dlat, dlon

    def advance(
        self,
        latitude: float,
        longitude: float,
        wind_u: float,
        wind_v: float,
        dt: float,
        **perturbation,
    ) -> tuple[float, float]:
        """Apply one displacement and return the new (lat, lon)."""
        dlat, dlon = self.displacement(wind_u, wind_v, dt, latitude, **perturbation)
        return clamp_latitude(latitude + dlat), normalize_longitude(longitude + dlon)

    def integrate_path(
        self,
        latitude: float,
        longitude: float,
        wind_u: np.ndarray,
        wind_v: np.ndarray,
        dt: np.ndarray,
        *,
        rms_error: float = 0.0,
        rng: np.random.Generator | None = None,
        chunk_ids: np.ndarray | None = None,
    ) -> tuple[np.ndarray, np.ndarray]:
        """Integrate a whole wind series at once.

        Returns the latitude and longitude after each step (same length
        as the inputs), matching repeated ``advance()`` calls. Each
        longitude step uses the latitude at the start of that step.

        Perturbation mode: when ``rng`` is given, one Gaussian error pair
        (u, v) with standard deviation ``rms_error`` is drawn per chunk of
        ``chunk_ids`` (one chunk per step when omitted) and added to every
        step of that chunk. Pairs are drawn even for a zero error.
        """
        wind_u = np.asarray(wind_u, dtype=float)
        wind_v = np.asarray(wind_v, dtype=float)
        dt = np.asarray(dt, dtype=float)
        if rng is not None and len(dt):
            if chunk_ids is None:
                chunk_ids = np.arange(len(dt))
            error = rms_error * rng.standard_normal((int(chunk_ids.max()) + 1, 2))
            wind_u = wind_u + error[chunk_ids, 0]
            wind_v = wind_v + error[chunk_ids, 1]

        dlat = np.degrees(wind_v * dt / self.earth_radius_m)
        lats = latitude + np.cumsum(dlat)
        if np.any(np.abs(lats) > 90.0):
            lats = _clamped_cumsum(latitude, dlat)
        lat_before = np.concatenate(([latitude], lats[:-1]))
        cos_lat = np.maximum(np.cos(np.radians(lat_before)), self.min_cos_latitude)
        dlon = np.degrees(wind_u * dt / (self.earth_radius_m * cos_lat))
        lons = longitude + np.cumsum(dlon)
        lons = np.where(np.abs(lons) > 180.0, (lons + 180.0) % 360.0 - 180.0, lons)
        return lats, lons


def _clamped_cumsum(start: float, steps: np.ndarray) -> np.ndarray:
    """Running latitude clamped to the poles after every step."""
    out = np.empty_like(steps)
    lat = start
    for i, step in enumerate(steps):
        lat = clamp_latitude(lat + step)
        out[i] = lat
    return out


@dataclass(frozen=True)
class DriftSeries:
    """The wind actually applied at every integration step of a flight.

    ``altitude`` holds the altitude reached at the end of each step (NaN
    where the caller did not record it).
    """

    start_latitude: float
    start_longitude: float
    dt: np.ndarray
    wind_u: np.ndarray
    wind_v: np.ndarray
    burst_index: int  # number of ascent steps
    start_altitude: float | None = None
    altitude: np.ndarray | None = None

    def __len__(self) -> int:
        return len(self.dt)

    @property
    def duration_s(self) -> float:
        return float(self.dt.sum())

    @property
    def ascent_duration_s(self) -> float:
        return float(self.dt[: self.burst_index].sum())

    @property
    def has_altitudes(self) -> bool:
        return (
            self.start_altitude is not None
            and self.altitude is not None
            and len(self.altitude) == len(self)
            and not np.isnan(self.altitude).any()
        )

    @property
    def mean_wind_speed(self) -> float:
        if len(self) == 0 or self.duration_s == 0:
            return 0.0
        speed = np.hypot(self.wind_u, self.wind_v)
        return float(np.average(speed, weights=self.dt))


@dataclass
class DriftRecorder:
    """Append-only accumulator filled by the simulators."""

    start_latitude: float
    start_longitude: float
    start_altitude: float | None = None
    _dt: list[float] = field(default_factory=list)
    _u: list[float] = field(default_factory=list)
    _v: list[float] = field(default_factory=list)
    _alt: list[float] = field(default_factory=list)
    burst_index: int | None = None

    def record(self, dt: float, wind_u: float, wind_v: float, altitude: float | None = None) -> None:
        self._dt.append(dt)
        self._u.append(wind_u)
        self._v.append(wind_v)
        self._alt.append(math.nan if altitude is None else altitude)

    def mark_burst(self) -> None:
        self.burst_index = len(self._dt)

    def freeze(self) -> DriftSeries:
        return DriftSeries(
            start_latitude=self.start_latitude,
            start_longitude=self.start_longitude,
            dt=np.asarray(self._dt, dtype=float),
            wind_u=np.asarray(self._u, dtype=float),
            wind_v=np.asarray(self._v, dtype=float),
            burst_index=len(self._dt) if self.burst_index is None else self.burst_index,
            start_altitude=self.start_altitude,
            altitude=np.asarray(self._alt, dtype=float),
        )
