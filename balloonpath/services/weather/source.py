"""Weather sources — where an orchestrator obtains its weather grid."""

from __future__ import annotations

from typing import Protocol

from balloonpath.contracts.weather import WeatherConditions, WeatherWindow
from balloonpath.services.weather.field import WeatherGrid


class WeatherSource(Protocol):
    """Synchronous provider of a pre-fetched grid for a window.

    ``name`` identifies the source in cache keys. Implementations raise
    ``DataUnavailableError`` when they have nothing for the window.
    """

    name: str

    def load(self, window: WeatherWindow) -> WeatherGrid: ...


class StaticWeatherSource:
    """Serves one grid built up front, whatever the window."""

    def __init__(self, grid: WeatherGrid, name: str = "static"):
        self.grid = grid
        self.name = name

    @classmethod
    def from_conditions(
        cls, records: list[WeatherConditions], name: str = "static"
    ) -> StaticWeatherSource:
        return cls(WeatherGrid.from_conditions(records), name=name)

    def load(self, window: WeatherWindow) -> WeatherGrid:
        return self.grid
