"""Open-Meteo API client for pressure-level forecast grids.

Lives outside the integration loop: a caller awaits ``fetch_grid()``
once per prediction, then hands the grid to the orchestrator through a
``StaticWeatherSource``.
"""

from __future__ import annotations

import logging
import math
from datetime import datetime, timedelta, timezone
from typing import Any, Sequence

import httpx

from balloonpath.config import WeatherQueryOptions
from balloonpath.contracts.common import ensure_utc
from balloonpath.contracts.weather import WeatherConditions, WeatherWindow
from balloonpath.errors import DataUnavailableError
from balloonpath.services.weather.field import WeatherGrid

logger = logging.getLogger(__name__)

BASE_URL = "https://api.open-meteo.com"

# Pressure levels requested (hPa), surface to ~31 km
PRESSURE_LEVELS = [1000, 925, 850, 700, 500, 300, 250, 200, 150, 100, 70, 50, 30, 20, 10]

_LEVEL_VARS = [
    "wind_speed",
    "wind_direction",
    "temperature",
    "geopotential_height",
    "relative_humidity",
]


def _hourly_vars(levels: Sequence[int]) -> list[str]:
    return [f"{var}_{hpa}hPa" for hpa in levels for var in _LEVEL_VARS]


def wind_components(speed: float, direction_deg: float) -> tuple[float, float]:
    """(u, v) from speed and meteorological direction (wind FROM)."""
    rad = math.radians(direction_deg)
    return -speed * math.sin(rad), -speed * math.cos(rad)


class OpenMeteoClient:
    """Async HTTP client for the Open-Meteo forecast API."""

    def __init__(
        self,
        http_client: httpx.AsyncClient | None = None,
        levels: Sequence[int] = PRESSURE_LEVELS,
        options: WeatherQueryOptions | None = None,
    ):
        self._client = http_client or httpx.AsyncClient(timeout=30.0)
        self.levels = list(levels)
        self.options = options

    async def fetch_grid(
        self,
        window: WeatherWindow,
        latitudes: Sequence[float] | None = None,
        longitudes: Sequence[float] | None = None,
    ) -> WeatherGrid:
        """Fetch an hourly pressure-level grid covering ``window``.

        One location per (latitude, longitude) pair of the lattice; the
        window's own location when none are given.

        Raises:
            DataUnavailableError: HTTP failure or no complete level.
        """
        lats = sorted(latitudes or [window.latitude])
        lons = sorted(longitudes or [window.longitude])
        points = [(lat, lon) for lat in lats for lon in lons]
        params = {
            "latitude": ",".join(f"{lat:.4f}" for lat, _ in points),
            "longitude": ",".join(f"{lon:.4f}" for _, lon in points),
            "hourly": ",".join(_hourly_vars(self.levels)),
            "start_hour": _floor_hour(window.start).strftime("%Y-%m-%dT%H:00"),
            "end_hour": _ceil_hour(window.end).strftime("%Y-%m-%dT%H:00"),
            "wind_speed_unit": "ms",
            "timezone": "GMT",
        }
        try:
            resp = await self._client.get(f"{BASE_URL}/v1/forecast", params=params)
            resp.raise_for_status()
        except httpx.HTTPError as exc:
            raise DataUnavailableError(f"Open-Meteo request failed: {exc}") from exc

        payload = resp.json()
        payloads = payload if isinstance(payload, list) else [payload]
        if len(payloads) != len(points):
            raise DataUnavailableError(
                f"Open-Meteo returned {len(payloads)} locations, expected {len(points)}"
            )
        records = _parse_pressure_levels(payloads, points, self.levels)
        logger.info(
            "Fetched Open-Meteo grid: %d location(s), %d record(s)", len(points), len(records)
        )
        return WeatherGrid.from_conditions(records, self.options)


def _parse_time(value: str) -> datetime:
    return datetime.fromisoformat(value).replace(tzinfo=timezone.utc)


def _floor_hour(value: datetime) -> datetime:
    return ensure_utc(value).replace(minute=0, second=0, microsecond=0)


def _ceil_hour(value: datetime) -> datetime:
    """Hourly forecasts must reach past the end of the window."""
    floored = _floor_hour(value)
    return floored if floored == ensure_utc(value) else floored + timedelta(hours=1)


def _complete_levels(payloads: list[dict[str, Any]], levels: Sequence[int]) -> list[int]:
    """Levels with a value for every variable, hour and location."""
    complete = []
    for hpa in levels:
        keys = [f"{var}_{hpa}hPa" for var in _LEVEL_VARS]
        if all(
            k in data.get("hourly", {}) and None not in data["hourly"][k]
            for data in payloads
            for k in keys
        ):
            complete.append(hpa)
        else:
            logger.debug("Dropping incomplete pressure level %d hPa", hpa)
    return complete


def _parse_pressure_levels(
    payloads: list[dict[str, Any]],
    points: list[tuple[float, float]],
    levels: Sequence[int],
) -> list[WeatherConditions]:
    """Parse Open-Meteo hourly responses into weather records."""
    usable = _complete_levels(payloads, levels)
    if not usable:
        raise DataUnavailableError("Open-Meteo response has no complete pressure level")

    records: list[WeatherConditions] = []
    for (lat, lon), data in zip(points, payloads):
        hourly = data["hourly"]
        for i, stamp in enumerate(hourly.get("time", [])):
            timestamp = _parse_time(stamp)
            for hpa in usable:
                u, v = wind_components(
                    hourly[f"wind_speed_{hpa}hPa"][i], hourly[f"wind_direction_{hpa}hPa"][i]
                )
                records.append(WeatherConditions(
                    timestamp=timestamp,
                    altitude=hourly[f"geopotential_height_{hpa}hPa"][i],
                    latitude=lat,
                    longitude=lon,
                    wind_u=u,
                    wind_v=v,
                    temperature=hourly[f"temperature_{hpa}hPa"][i],
                    pressure=float(hpa),
                    humidity=min(max(hourly[f"relative_humidity_{hpa}hPa"][i], 0), 100),
                ))
    return records
