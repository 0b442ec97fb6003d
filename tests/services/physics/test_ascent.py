"""Tests for ascent integration."""

from __future__ import annotations

import threading
from datetime import timedelta

import pytest

from balloonpath.config import PredictionSettings
from balloonpath.contracts.enums import AscentModel, FlightPhase
from balloonpath.errors import AscentTimeoutError, PredictionCancelledError
from balloonpath.services.physics.ascent import AscentSimulator, BuoyantAscentRate
from balloonpath.services.physics.wind_drift import DriftRecorder
from factories import LAUNCH_TIME, make_launch, uniform_grid, uniform_records


class TestConstantRateAscent:
    def test_zero_wind_burst_directly_above_launch(self, launch, calm_grid):
        result = AscentSimulator(calm_grid).simulate(launch)
        burst = result.burst_site
        assert burst.altitude == 30_000.0
        assert burst.location.latitude == launch.latitude
        assert burst.location.longitude == launch.longitude
        assert burst.timestamp == LAUNCH_TIME + timedelta(seconds=6000)
        assert result.duration_s == 6000.0

    def test_logging_interval(self, launch, calm_grid):
        points = AscentSimulator(calm_grid).simulate(launch).points
        # launch point, every 50th of 6000 steps except the last, burst point
        assert len(points) == 1 + 119 + 1
        assert points[0].timestamp == LAUNCH_TIME
        assert points[0].phase == FlightPhase.ASCENT
        assert points[-1].phase == FlightPhase.BURST
        assert points[1].altitude == 250.0

    def test_custom_logging_interval(self, launch, calm_grid):
        settings = PredictionSettings(log_interval_steps=1000)
        points = AscentSimulator(calm_grid, settings).simulate(launch).points
        assert len(points) == 1 + 5 + 1

    def test_timestamps_strictly_increasing(self, launch, calm_grid):
        points = AscentSimulator(calm_grid).simulate(launch).points
        assert all(a.timestamp < b.timestamp for a, b in zip(points, points[1:]))

    def test_partial_final_step_hits_burst_exactly(self, calm_grid):
        launch = make_launch(burst_altitude=1003.0)
        result = AscentSimulator(calm_grid).simulate(launch)
        assert result.burst_site.altitude == 1003.0
        assert result.duration_s == pytest.approx(200.6)

    def test_eastward_wind_drifts_east(self, launch):
        result = AscentSimulator(uniform_grid(wind_u=10.0)).simulate(launch)
        assert result.burst_site.location.longitude > launch.longitude
        assert result.burst_site.location.latitude == pytest.approx(launch.latitude)

    def test_records_wind_series(self, launch):
        recorder = DriftRecorder(launch.latitude, launch.longitude)
        AscentSimulator(uniform_grid(wind_u=4.0)).simulate(launch, recorder=recorder)
        series = recorder.freeze()
        assert len(series) == 6000
        assert series.burst_index == 6000
        assert series.duration_s == pytest.approx(6000.0)
        assert series.mean_wind_speed == pytest.approx(4.0)

    def test_confidence_reported(self, launch):
        result = AscentSimulator(uniform_grid(confidence=0.8)).simulate(launch)
        assert 0.0 < result.mean_confidence <= 0.8
        assert result.burst_site.confidence == result.mean_confidence


class TestAscentSafety:
    def test_timeout(self, launch, calm_grid):
        settings = PredictionSettings(max_phase_duration_s=100.0)
        with pytest.raises(AscentTimeoutError) as exc_info:
            AscentSimulator(calm_grid, settings).simulate(launch)
        assert exc_info.value.elapsed_s == pytest.approx(100.0)

    def test_cancel(self, launch, calm_grid):
        cancel = threading.Event()
        cancel.set()
        with pytest.raises(PredictionCancelledError):
            AscentSimulator(calm_grid).simulate(launch, cancel=cancel)


class TestBuoyantAscent:
    def test_rate_from_free_lift(self):
        launch = make_launch(burst_altitude=5000.0, ascent_model=AscentModel.BUOYANT)
        surface = uniform_records()[1]  # sea-level record
        rate = BuoyantAscentRate(launch.balloon, surface, 9.81)
        assert rate.free_lift(surface) > 0
        assert 1.0 < rate(surface) < 20.0

    def test_envelope_expands_with_altitude(self):
        launch = make_launch(ascent_model=AscentModel.BUOYANT)
        records = uniform_records()
        rate = BuoyantAscentRate(launch.balloon, records[1], 9.81)
        assert rate.volume(records[11]) > rate.volume(records[1]) == pytest.approx(4.0)

    def test_no_lift_gives_zero_rate(self):
        launch = make_launch(payload_weight=10.0, ascent_model=AscentModel.BUOYANT)
        surface = uniform_records()[1]
        assert BuoyantAscentRate(launch.balloon, surface, 9.81)(surface) == 0.0

    def test_reaches_burst(self, calm_grid):
        launch = make_launch(burst_altitude=5000.0, ascent_model=AscentModel.BUOYANT)
        result = AscentSimulator(calm_grid).simulate(launch)
        assert result.burst_site.altitude == 5000.0
        assert all(p.vertical_velocity > 0 for p in result.points[:-1])
