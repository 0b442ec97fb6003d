"""Tests for weather grid interpolation and fallback fields."""

from __future__ import annotations

import math
from datetime import timedelta

import pytest

from balloonpath.config import WeatherQueryOptions
from balloonpath.contracts.weather import WeatherConditions, WeatherWindow
from balloonpath.errors import DataUnavailableError
from balloonpath.services.weather.field import (
    MonitoredWeatherField,
    StandardAtmosphereField,
    WeatherGrid,
)
from factories import LAUNCH_TIME, PRESSURE_LEVEL_HEIGHTS, uniform_grid, uniform_records

T1 = LAUNCH_TIME + timedelta(hours=1)
LATS = (40.0, 41.0)
LONS = (-75.0, -74.0)
LEVELS = (0.0, 1000.0, 2000.0)


def _node(t, lat, lon, alt, **values) -> WeatherConditions:
    base = {
        "wind_u": 0.0,
        "wind_v": 0.0,
        "temperature": 15.0,
        "pressure": 1000.0,
        "humidity": 50.0,
        "confidence": 1.0,
    }
    base.update(values)
    return WeatherConditions(timestamp=t, altitude=alt, latitude=lat, longitude=lon, **base)


def _grid_records(u_of=lambda t, lat, lon, alt: 0.0) -> list[WeatherConditions]:
    records = []
    for t in (LAUNCH_TIME, T1):
        for lat in LATS:
            for lon in LONS:
                for alt in LEVELS:
                    records.append(_node(
                        t, lat, lon, alt,
                        wind_u=u_of(t, lat, lon, alt),
                        wind_v=-u_of(t, lat, lon, alt) / 2,
                        temperature=15.0 - alt * 0.0065,
                        pressure=1000.0 - alt * 0.1,
                        confidence=0.9,
                    ))
    return records


def _linear_u(t, lat, lon, alt):
    hours = (t - LAUNCH_TIME).total_seconds() / 3600
    return 10 * hours + 2 * (lat - 40) + 4 * (lon + 75) + alt / 1000


@pytest.fixture
def grid() -> WeatherGrid:
    return WeatherGrid.from_conditions(_grid_records(_linear_u))


class TestGridConstruction:
    def test_node_count(self, grid):
        assert grid.node_count == 2 * 2 * 2 * 3
        assert grid.altitude_range() == (0.0, 2000.0)
        assert grid.time_range() == (LAUNCH_TIME, T1)

    def test_empty(self):
        grid = WeatherGrid.from_conditions([])
        assert grid.is_empty
        assert grid.time_range() is None

    def test_incomplete_grid_rejected(self):
        records = _grid_records()[:-3]
        with pytest.raises(ValueError, match="incomplete grid"):
            WeatherGrid.from_conditions(records)

    def test_level_count_mismatch_rejected(self):
        records = _grid_records()[:-1]
        with pytest.raises(ValueError, match="level counts"):
            WeatherGrid.from_conditions(records)

    def test_mixed_location_rejected(self):
        records = _grid_records()
        records.append(WeatherConditions(
            timestamp=LAUNCH_TIME, altitude=0, wind_u=0, wind_v=0, temperature=0, pressure=1000
        ))
        with pytest.raises(ValueError, match="mix"):
            WeatherGrid.from_conditions(records)


class TestInterpolation:
    def test_exact_grid_point_is_idempotent(self, grid):
        for record in _grid_records(_linear_u):
            sampled = grid.sample(record.latitude, record.longitude, record.altitude, record.timestamp)
            assert sampled.wind_u == record.wind_u
            assert sampled.wind_v == record.wind_v
            assert sampled.temperature == record.temperature
            assert sampled.pressure == record.pressure
            assert sampled.humidity == record.humidity
            assert sampled.confidence == record.confidence
            assert not sampled.extrapolated

    def test_temporal_linear(self, grid):
        mid = LAUNCH_TIME + timedelta(minutes=30)
        assert grid.sample(40.0, -75.0, 0.0, mid).wind_u == pytest.approx(5.0)

    def test_vertical_linear(self, grid):
        assert grid.sample(40.0, -75.0, 1500.0, LAUNCH_TIME).wind_u == pytest.approx(1.5)
        assert grid.sample(40.0, -75.0, 1500.0, LAUNCH_TIME).pressure == pytest.approx(850.0)

    def test_bilinear(self, grid):
        sampled = grid.sample(40.25, -74.5, 0.0, LAUNCH_TIME)
        assert sampled.wind_u == pytest.approx(2 * 0.25 + 4 * 0.5)

    def test_all_axes(self, grid):
        t = LAUNCH_TIME + timedelta(minutes=15)
        sampled = grid.sample(40.5, -74.75, 500.0, t)
        assert sampled.wind_u == pytest.approx(2.5 + 1.0 + 1.0 + 0.5)
        assert sampled.wind_v == pytest.approx(-sampled.wind_u / 2)

    def test_confidence_decays_between_nodes(self, grid):
        at_node = grid.sample(40.0, -75.0, 1000.0, LAUNCH_TIME).confidence
        off_time = grid.sample(40.0, -75.0, 1000.0, LAUNCH_TIME + timedelta(minutes=30)).confidence
        off_alt = grid.sample(40.0, -75.0, 1500.0, LAUNCH_TIME).confidence
        off_space = grid.sample(40.5, -74.5, 1000.0, LAUNCH_TIME).confidence
        assert at_node == 0.9
        assert off_time < at_node
        assert off_alt < at_node
        assert off_space < at_node
        assert off_time == pytest.approx(0.9 * math.exp(-1800 / 21600))
        assert off_alt == pytest.approx(0.9 * math.exp(-500 / 5000))


class TestOutOfRange:
    def test_clamps_and_flags(self, grid):
        late = T1 + timedelta(hours=2)
        sampled = grid.sample(40.0, -75.0, 0.0, late)
        assert sampled.extrapolated
        assert sampled.wind_u == pytest.approx(10.0)
        assert sampled.confidence < 0.9

    def test_above_top_level(self, grid):
        sampled = grid.sample(40.0, -75.0, 5000.0, LAUNCH_TIME)
        assert sampled.extrapolated
        assert sampled.wind_u == pytest.approx(2.0)

    def test_no_fallback_raises(self):
        grid = WeatherGrid.from_conditions(
            _grid_records(), WeatherQueryOptions(fallback=False)
        )
        grid.sample(40.5, -74.5, 500.0, LAUNCH_TIME)
        with pytest.raises(DataUnavailableError):
            grid.sample(45.0, -74.5, 500.0, LAUNCH_TIME)

    def test_empty_grid_raises(self):
        with pytest.raises(DataUnavailableError):
            WeatherGrid.empty().sample(0, 0, 0, LAUNCH_TIME)


class TestSinglePointGrid:
    def test_nearest_neighbour(self):
        records = [
            _node(LAUNCH_TIME, 40.0, -74.0, 0.0, wind_u=3.0),
            _node(LAUNCH_TIME, 40.0, -74.0, 1000.0, wind_u=5.0),
        ]
        grid = WeatherGrid.from_conditions(records)
        sampled = grid.sample(40.3, -73.8, 500.0, LAUNCH_TIME + timedelta(hours=2))
        assert sampled.wind_u == pytest.approx(4.0)
        assert not sampled.extrapolated
        assert sampled.confidence < 1.0

    def test_location_agnostic(self):
        records = [
            WeatherConditions(
                timestamp=LAUNCH_TIME, altitude=alt, wind_u=1.0, wind_v=0,
                temperature=10, pressure=900,
            )
            for alt in (0.0, 1000.0)
        ]
        grid = WeatherGrid.from_conditions(records)
        assert grid.sample(-33.0, 151.0, 0.0, LAUNCH_TIME).confidence == 1.0


class TestCoverage:
    def _window(self, hours: float, top: float) -> WeatherWindow:
        return WeatherWindow(
            start=LAUNCH_TIME,
            end=LAUNCH_TIME + timedelta(hours=hours),
            latitude=40.5,
            longitude=-74.5,
            min_altitude=0.0,
            max_altitude=top,
        )

    def test_full(self, grid):
        assert grid.coverage(self._window(1, 2000)) == 1.0

    def test_partial(self, grid):
        assert grid.coverage(self._window(2, 4000)) == pytest.approx(0.25)

    def test_empty(self):
        assert WeatherGrid.empty().coverage(self._window(1, 2000)) == 0.0

    def test_lowest_pressure_level_covers_surface(self):
        grid = uniform_grid(
            levels=PRESSURE_LEVEL_HEIGHTS, times=[LAUNCH_TIME, LAUNCH_TIME + timedelta(hours=5)]
        )
        assert grid.coverage(self._window(5, 30_000)) == 1.0

    def test_high_lowest_level_not_counted(self):
        grid = uniform_grid(levels=[2000.0, 10_000.0], times=[LAUNCH_TIME, T1])
        assert grid.coverage(self._window(1, 10_000)) == pytest.approx(0.8)

    def test_surface_tolerance_configurable(self):
        records = uniform_records(levels=PRESSURE_LEVEL_HEIGHTS, times=[LAUNCH_TIME, T1])
        strict = WeatherGrid.from_conditions(records, WeatherQueryOptions(surface_tolerance_m=0))
        assert strict.coverage(self._window(1, 31_060)) == pytest.approx(1 - 110 / 31_060)


class TestFallbackFields:
    def test_standard_atmosphere(self):
        sampled = StandardAtmosphereField().sample(40.0, -74.0, 0.0, LAUNCH_TIME)
        assert sampled.wind_u == 0.0
        assert sampled.temperature == pytest.approx(15.0)
        assert sampled.pressure == pytest.approx(1013.25, rel=1e-4)
        assert sampled.confidence == 0.0
        assert sampled.extrapolated

    def test_monitored_falls_back(self):
        monitored = MonitoredWeatherField(WeatherGrid.empty(), fallback=StandardAtmosphereField())
        sampled = monitored.sample(40.0, -74.0, 1000.0, LAUNCH_TIME)
        assert sampled.confidence == 0.0
        assert monitored.fallback_samples == 1
        assert monitored.samples == 1

    def test_monitored_without_fallback_raises(self):
        monitored = MonitoredWeatherField(WeatherGrid.empty())
        with pytest.raises(DataUnavailableError):
            monitored.sample(40.0, -74.0, 1000.0, LAUNCH_TIME)

    def test_monitored_statistics(self, grid):
        monitored = MonitoredWeatherField(grid)
        monitored.batch_sample([
            (40.0, -75.0, 0.0, LAUNCH_TIME),
            (40.0, -75.0, 9000.0, LAUNCH_TIME),
        ])
        assert monitored.samples == 2
        assert monitored.extrapolated_samples == 1
        assert 0.0 < monitored.mean_confidence < 0.9
