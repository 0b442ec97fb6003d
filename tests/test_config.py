"""Tests for engine settings."""

import pytest
from pydantic import ValidationError

from balloonpath.config import PredictionSettings, WeatherQueryOptions


def test_defaults():
    s = PredictionSettings()
    assert s.time_step_s == 1.0
    assert s.monte_carlo_samples == 100
    assert s.rms_wind_error == 2.0
    assert s.confidence_level == 0.95
    assert s.max_phase_duration_s == 86_400.0


def test_from_env_reads_prefixed_variables():
    env = {
        "BALLOONPATH_MONTE_CARLO_SAMPLES": "500",
        "BALLOONPATH_RMS_WIND_ERROR": "3.5",
        "BALLOONPATH_RANDOM_SEED": "",
        "UNRELATED": "x",
    }
    s = PredictionSettings.from_env(env)
    assert s.monte_carlo_samples == 500
    assert s.rms_wind_error == 3.5
    assert s.random_seed is None


def test_from_env_overrides_win():
    s = PredictionSettings.from_env({"BALLOONPATH_TIME_STEP_S": "2"}, time_step_s=0.5)
    assert s.time_step_s == 0.5


def test_from_env_rejects_bad_values():
    with pytest.raises(ValidationError):
        PredictionSettings.from_env({"BALLOONPATH_CONFIDENCE_LEVEL": "1.5"})


def test_time_step_must_fit_phase_limit():
    with pytest.raises(ValidationError):
        PredictionSettings(time_step_s=10, max_phase_duration_s=5)


def test_settings_frozen():
    s = PredictionSettings()
    with pytest.raises(ValidationError):
        s.time_step_s = 2.0


def test_query_options_defaults():
    o = WeatherQueryOptions()
    assert o.fallback is True
    assert o.time_scale_s == 21_600.0
    with pytest.raises(ValidationError):
        WeatherQueryOptions(spatial_scale_km=0)
