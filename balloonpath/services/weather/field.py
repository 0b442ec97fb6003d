"""Weather fields — interpolated wind and atmosphere over time, position and altitude.

A ``WeatherGrid`` holds pre-fetched forecast nodes on a regular
(time × latitude × longitude) lattice, each node carrying a column of
altitude levels. Queries interpolate:

- temporally: linear between the two bracketing forecast times
- spatially: bilinear across the enclosing grid cell, nearest-neighbour
  along an axis that has a single node
- vertically: linear between the two bracketing levels of each corner column

Grids are read-only after construction and safe to share across threads.
"""

from __future__ import annotations

import logging
import math
from collections import defaultdict
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Iterable, Protocol, Sequence

import numpy as np

from balloonpath.config import WeatherQueryOptions
from balloonpath.contracts.common import ensure_utc
from balloonpath.contracts.weather import WeatherConditions, WeatherWindow
from balloonpath.errors import DataUnavailableError
from balloonpath.services.physics import atmosphere
from balloonpath.services.physics.geodesy import haversine_km

logger = logging.getLogger(__name__)

# Field layout along the last axis of WeatherGrid data
_FIELDS = ("wind_u", "wind_v", "temperature", "pressure", "humidity", "confidence")
_U, _V, _T, _P, _H, _C = range(len(_FIELDS))

Query = tuple[float, float, float, datetime]


class WeatherField(Protocol):
    """Read-only weather capability consumed by the simulators."""

    def sample(
        self, latitude: float, longitude: float, altitude: float, time: datetime
    ) -> WeatherConditions: ...

    def batch_sample(self, queries: Iterable[Query]) -> list[WeatherConditions]: ...

    def coverage(self, window: WeatherWindow) -> float: ...


@dataclass(frozen=True)
class _Bracket:
    lo: int
    hi: int
    weight: float  # weight of ``hi``
    clamped: bool
    distance: float  # to the nearest node, in axis units


def _bracket(nodes: np.ndarray, value: float) -> _Bracket:
    """Locate ``value`` between two sorted nodes, clamping outside."""
    n = len(nodes)
    if n == 1:
        return _Bracket(0, 0, 0.0, False, abs(value - nodes[0]))
    clamped = value < nodes[0] or value > nodes[-1]
    v = min(max(value, nodes[0]), nodes[-1])
    i = int(np.searchsorted(nodes, v, side="right")) - 1
    i = min(max(i, 0), n - 2)
    span = nodes[i + 1] - nodes[i]
    w = (v - nodes[i]) / span if span > 0 else 0.0
    distance = min(abs(value - nodes[i]), abs(value - nodes[i + 1]))
    return _Bracket(i, i + 1, w, clamped, distance)


def _pairs(b: _Bracket) -> list[tuple[int, float]]:
    """Index/weight pairs with non-zero weight."""
    if b.lo == b.hi or b.weight == 0.0:
        return [(b.lo, 1.0)]
    if b.weight == 1.0:
        return [(b.hi, 1.0)]
    return [(b.lo, 1.0 - b.weight), (b.hi, b.weight)]


def _epoch(time: datetime) -> float:
    return ensure_utc(time).timestamp()


class WeatherGrid:
    """Pre-fetched forecast grid with 3-axis interpolation.

    Args:
        times: Forecast valid times, epoch seconds, strictly increasing.
        latitudes / longitudes: Grid node coordinates, strictly increasing.
            ``None`` for a location-agnostic grid (no spatial decay).
        altitudes: Level altitudes per column, shape (T, Y, X, L),
            increasing along the last axis.
        data: Field values, shape (T, Y, X, L, 6) in ``_FIELDS`` order.
    """

    def __init__(
        self,
        times: np.ndarray,
        latitudes: np.ndarray | None,
        longitudes: np.ndarray | None,
        altitudes: np.ndarray,
        data: np.ndarray,
        options: WeatherQueryOptions | None = None,
    ):
        self.options = options or WeatherQueryOptions()
        self._times = np.asarray(times, dtype=float)
        self._located = latitudes is not None and longitudes is not None
        self._lats = np.asarray(latitudes if self._located else [0.0], dtype=float)
        self._lons = np.asarray(longitudes if self._located else [0.0], dtype=float)
        self._alts = np.asarray(altitudes, dtype=float)
        self._data = np.asarray(data, dtype=float)

        if self.is_empty:
            return
        shape = (len(self._times), len(self._lats), len(self._lons))
        if self._alts.shape[:3] != shape or self._data.shape[:4] != self._alts.shape:
            raise ValueError(
                f"grid shape mismatch: axes {shape}, altitudes {self._alts.shape}, "
                f"data {self._data.shape}"
            )
        for name, axis in (("times", self._times), ("latitudes", self._lats), ("longitudes", self._lons)):
            if np.any(np.diff(axis) <= 0):
                raise ValueError(f"{name} must be strictly increasing")
        if np.any(np.diff(self._alts, axis=-1) <= 0):
            raise ValueError("column altitudes must be strictly increasing")

    # ------------------------------------------------------------------
    # Construction
    # ------------------------------------------------------------------

    @classmethod
    def empty(cls, options: WeatherQueryOptions | None = None) -> WeatherGrid:
        return cls(
            np.empty(0), None, None, np.empty((0, 1, 1, 0)), np.empty((0, 1, 1, 0, len(_FIELDS))),
            options,
        )

    @classmethod
    def from_conditions(
        cls,
        records: Sequence[WeatherConditions],
        options: WeatherQueryOptions | None = None,
    ) -> WeatherGrid:
        """Build a grid from flat weather records.

        Every (time, latitude, longitude) node must be present and carry
        the same number of altitude levels. Records without a location
        belong to a location-agnostic grid; mixing both is an error.
        """
        if not records:
            return cls.empty(options)

        located = {r.latitude is not None and r.longitude is not None for r in records}
        if len(located) > 1:
            raise ValueError("records mix located and location-agnostic nodes")
        is_located = located.pop()

        columns: dict[tuple[float, float, float], list[WeatherConditions]] = defaultdict(list)
        for r in records:
            key = (
                _epoch(r.timestamp),
                r.latitude if is_located else 0.0,
                r.longitude if is_located else 0.0,
            )
            columns[key].append(r)

        times = sorted({k[0] for k in columns})
        lats = sorted({k[1] for k in columns})
        lons = sorted({k[2] for k in columns})
        n_levels = {len(c) for c in columns.values()}
        if len(n_levels) != 1:
            raise ValueError(f"columns have differing level counts: {sorted(n_levels)}")
        n_level = n_levels.pop()
        expected = len(times) * len(lats) * len(lons)
        if len(columns) != expected:
            raise ValueError(f"incomplete grid: {len(columns)} of {expected} nodes present")

        alts = np.empty((len(times), len(lats), len(lons), n_level))
        data = np.empty((len(times), len(lats), len(lons), n_level, len(_FIELDS)))
        t_idx = {t: i for i, t in enumerate(times)}
        y_idx = {y: i for i, y in enumerate(lats)}
        x_idx = {x: i for i, x in enumerate(lons)}
        for (t, y, x), column in columns.items():
            column = sorted(column, key=lambda r: r.altitude)
            ti, yi, xi = t_idx[t], y_idx[y], x_idx[x]
            alts[ti, yi, xi] = [r.altitude for r in column]
            data[ti, yi, xi] = [
                [r.wind_u, r.wind_v, r.temperature, r.pressure, r.humidity, r.confidence]
                for r in column
            ]

        return cls(
            np.asarray(times),
            np.asarray(lats) if is_located else None,
            np.asarray(lons) if is_located else None,
            alts,
            data,
            options,
        )

    # ------------------------------------------------------------------
    # Properties
    # ------------------------------------------------------------------

    @property
    def is_empty(self) -> bool:
        return len(self._times) == 0 or self._alts.shape[-1] == 0

    @property
    def node_count(self) -> int:
        return 0 if self.is_empty else int(np.prod(self._alts.shape))

    def time_range(self) -> tuple[datetime, datetime] | None:
        if self.is_empty:
            return None
        return (
            datetime.fromtimestamp(self._times[0], tz=timezone.utc),
            datetime.fromtimestamp(self._times[-1], tz=timezone.utc),
        )

    def altitude_range(self) -> tuple[float, float] | None:
        if self.is_empty:
            return None
        return float(self._alts[..., 0].min()), float(self._alts[..., -1].max())

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def sample(
        self, latitude: float, longitude: float, altitude: float, time: datetime
    ) -> WeatherConditions:
        """Interpolated conditions at one point.

        Raises:
            DataUnavailableError: The grid is empty, or the query lies
                outside the grid and clamping is disabled.
        """
        if self.is_empty:
            raise DataUnavailableError("weather grid holds no data")

        t = _epoch(time)
        tb = _bracket(self._times, t)
        yb = _bracket(self._lats, latitude if self._located else 0.0)
        xb = _bracket(self._lons, longitude if self._located else 0.0)

        values = np.zeros(len(_FIELDS))
        clamped = tb.clamped or yb.clamped or xb.clamped
        best_weight = -1.0
        nearest_column: tuple[int, int, int] = (tb.lo, yb.lo, xb.lo)
        for ti, wt in _pairs(tb):
            for yi, wy in _pairs(yb):
                for xi, wx in _pairs(xb):
                    weight = wt * wy * wx
                    column, z_clamped = self._column_value(ti, yi, xi, altitude)
                    clamped = clamped or z_clamped
                    values += column * weight if weight != 1.0 else column
                    if weight > best_weight:
                        best_weight = weight
                        nearest_column = (ti, yi, xi)

        if clamped and not self.options.fallback:
            raise DataUnavailableError(
                f"no bracketing weather data at ({latitude:.4f}, {longitude:.4f}, "
                f"{altitude:.0f} m, {ensure_utc(time).isoformat()})"
            )

        confidence = values[_C] * self._decay(tb, latitude, longitude, altitude, nearest_column)
        return WeatherConditions(
            timestamp=time,
            altitude=altitude,
            latitude=latitude,
            longitude=longitude,
            wind_u=values[_U],
            wind_v=values[_V],
            temperature=values[_T],
            pressure=values[_P],
            humidity=min(max(values[_H], 0.0), 100.0),
            confidence=min(max(confidence, 0.0), 1.0),
            extrapolated=clamped,
        )

    def batch_sample(self, queries: Iterable[Query]) -> list[WeatherConditions]:
        return [self.sample(lat, lon, alt, time) for lat, lon, alt, time in queries]

    def coverage(self, window: WeatherWindow) -> float:
        """Fraction of ``window`` this grid covers (0 to 1).

        Product of the time-span and altitude-span overlaps. A single
        forecast time (or a single level) is treated as invariant along
        that axis and covers it fully. Pressure-level data starts some
        way above the surface; when the lowest level lies within
        ``surface_tolerance_m`` of the window floor, queries below it are
        served from that level and the floor counts as covered.
        """
        if self.is_empty:
            return 0.0

        def overlap(lo: float, hi: float, node_lo: float, node_hi: float) -> float:
            if hi <= lo:
                return 1.0 if node_lo <= lo <= node_hi else 0.0
            return max(0.0, min(hi, node_hi) - max(lo, node_lo)) / (hi - lo)

        if len(self._times) == 1:
            time_frac = 1.0
        else:
            time_frac = overlap(
                _epoch(window.start), _epoch(window.end), self._times[0], self._times[-1]
            )
        if self._alts.shape[-1] == 1:
            alt_frac = 1.0
        else:
            alt_lo, alt_hi = self.altitude_range()
            floor = window.min_altitude
            if floor < alt_lo <= floor + self.options.surface_tolerance_m:
                floor = min(alt_lo, window.max_altitude)
            alt_frac = overlap(floor, window.max_altitude, alt_lo, alt_hi)
        return time_frac * alt_frac

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _column_value(self, ti: int, yi: int, xi: int, altitude: float) -> tuple[np.ndarray, bool]:
        levels = self._alts[ti, yi, xi]
        zb = _bracket(levels, altitude)
        column = self._data[ti, yi, xi]
        pairs = _pairs(zb)
        if len(pairs) == 1:
            return column[pairs[0][0]], zb.clamped
        (lo, w_lo), (hi, w_hi) = pairs
        return column[lo] * w_lo + column[hi] * w_hi, zb.clamped

    def _decay(
        self,
        tb: _Bracket,
        latitude: float,
        longitude: float,
        altitude: float,
        column: tuple[int, int, int],
    ) -> float:
        """Confidence multiplier, 1 at a grid node, falling with distance."""
        opts = self.options
        dz = float(np.min(np.abs(self._alts[column] - altitude)))
        exponent = tb.distance / opts.time_scale_s + dz / opts.vertical_scale_m
        if self._located:
            lat_node = self._lats[np.argmin(np.abs(self._lats - latitude))]
            lon_node = self._lons[np.argmin(np.abs(self._lons - longitude))]
            exponent += haversine_km(latitude, longitude, lat_node, lon_node) / opts.spatial_scale_km
        return math.exp(-exponent)


class StandardAtmosphereField:
    """Calm fallback field: no wind, standard-atmosphere temperature and pressure.

    Every answer carries zero confidence and the extrapolated flag.
    """

    def sample(
        self, latitude: float, longitude: float, altitude: float, time: datetime
    ) -> WeatherConditions:
        state = atmosphere.conditions(altitude)
        return WeatherConditions(
            timestamp=time,
            altitude=altitude,
            latitude=latitude,
            longitude=longitude,
            wind_u=0.0,
            wind_v=0.0,
            temperature=state.temperature_c,
            pressure=state.pressure_hpa,
            humidity=0.0,
            confidence=0.0,
            extrapolated=True,
        )

    def batch_sample(self, queries: Iterable[Query]) -> list[WeatherConditions]:
        return [self.sample(lat, lon, alt, time) for lat, lon, alt, time in queries]

    def coverage(self, window: WeatherWindow) -> float:
        return 0.0


class MonitoredWeatherField:
    """Wraps a field, records query statistics and optionally falls back.

    When ``fallback`` is set, a ``DataUnavailableError`` from the primary
    field is answered by the fallback field instead and counted.
    Not thread-safe: one instance per trajectory integration.
    """

    def __init__(self, primary: WeatherField, fallback: WeatherField | None = None):
        self.primary = primary
        self.fallback = fallback
        self.samples = 0
        self.fallback_samples = 0
        self.extrapolated_samples = 0
        self._confidence_sum = 0.0

    @property
    def mean_confidence(self) -> float:
        return self._confidence_sum / self.samples if self.samples else 0.0

    def sample(
        self, latitude: float, longitude: float, altitude: float, time: datetime
    ) -> WeatherConditions:
        try:
            conditions = self.primary.sample(latitude, longitude, altitude, time)
        except DataUnavailableError:
            if self.fallback is None:
                raise
            if self.fallback_samples == 0:
                logger.warning(
                    "Weather unavailable at %.0f m, %s; using fallback field",
                    altitude, ensure_utc(time).isoformat(),
                )
            self.fallback_samples += 1
            conditions = self.fallback.sample(latitude, longitude, altitude, time)
        self.samples += 1
        self._confidence_sum += conditions.confidence
        if conditions.extrapolated:
            self.extrapolated_samples += 1
        return conditions

    def batch_sample(self, queries: Iterable[Query]) -> list[WeatherConditions]:
        return [self.sample(lat, lon, alt, time) for lat, lon, alt, time in queries]

    def coverage(self, window: WeatherWindow) -> float:
        return self.primary.coverage(window)
