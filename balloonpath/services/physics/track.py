"""Downsampled trajectory logging shared by the simulators."""

from __future__ import annotations

from datetime import datetime, timedelta

from balloonpath.contracts.enums import FlightPhase
from balloonpath.contracts.trajectory import TrajectoryPoint
from balloonpath.contracts.weather import WeatherConditions


class TrajectoryLog:
    """Append-only point log with strictly increasing timestamps.

    Intermediate points are kept every ``interval`` steps; phase-boundary
    points (launch, burst, landing) are always kept. A boundary point
    that would not be strictly later than the previous point replaces it.
    """

    def __init__(self, start_time: datetime, interval: int):
        self.start_time = start_time
        self.interval = interval
        self.points: list[TrajectoryPoint] = []

    def due(self, step: int) -> bool:
        return step % self.interval == 0

    def append(
        self,
        elapsed_s: float,
        latitude: float,
        longitude: float,
        altitude: float,
        vertical_velocity: float,
        conditions: WeatherConditions,
        phase: FlightPhase,
    ) -> TrajectoryPoint:
        point = TrajectoryPoint(
            timestamp=self.start_time + timedelta(seconds=elapsed_s),
            latitude=latitude,
            longitude=longitude,
            altitude=altitude,
            vertical_velocity=vertical_velocity,
            wind_speed=conditions.wind_speed,
            wind_direction=conditions.wind_direction,
            temperature=conditions.temperature,
            pressure=conditions.pressure,
            phase=phase,
        )
        while self.points and self.points[-1].timestamp >= point.timestamp:
            self.points.pop()
        self.points.append(point)
        return point
