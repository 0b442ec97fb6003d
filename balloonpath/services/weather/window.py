"""Forecast window estimation from a rough flight-duration estimate."""

from __future__ import annotations

from datetime import timedelta

from balloonpath.config import PredictionSettings
from balloonpath.contracts.launch import LaunchSpec
from balloonpath.contracts.weather import WeatherWindow


def estimate_flight_duration_s(
    launch: LaunchSpec,
    nominal_descent_rate: float,
    ground_elevation: float = 0.0,
) -> float:
    """Ascent distance / ascent rate + burst-to-ground / nominal descent rate."""
    balloon = launch.balloon
    ascent = (balloon.burst_altitude - launch.altitude) / balloon.ascent_rate
    descent = max(balloon.burst_altitude - ground_elevation, 0.0) / nominal_descent_rate
    return ascent + descent


def estimate_weather_window(
    launch: LaunchSpec,
    settings: PredictionSettings | None = None,
    ground_elevation: float = 0.0,
) -> WeatherWindow:
    """Time and altitude span the weather must cover for ``launch``.

    - Time: [launch − margin, launch + estimated duration + margin]
    - Altitude: [lowest of launch/ground, burst]
    """
    settings = settings or PredictionSettings()
    duration = estimate_flight_duration_s(launch, settings.nominal_descent_rate, ground_elevation)
    margin = timedelta(seconds=settings.window_margin_s)
    return WeatherWindow(
        start=launch.launch_time - margin,
        end=launch.launch_time + timedelta(seconds=duration) + margin,
        latitude=launch.latitude,
        longitude=launch.longitude,
        min_altitude=min(launch.altitude, ground_elevation),
        max_altitude=launch.balloon.burst_altitude,
    )
