"""Tests for weather quality assessment."""

from __future__ import annotations

import pytest

from balloonpath.contracts.enums import WeatherDataQuality
from balloonpath.services.weather.quality import assess_quality, grade_weather


class TestGrade:
    @pytest.mark.parametrize(
        "confidence,coverage,expected",
        [
            (0.95, 1.0, WeatherDataQuality.EXCELLENT),
            (0.8, 0.9, WeatherDataQuality.GOOD),
            (0.6, 0.6, WeatherDataQuality.FAIR),
            (0.4, 1.0, WeatherDataQuality.POOR),
            (1.0, 0.0, WeatherDataQuality.POOR),
        ],
    )
    def test_thresholds(self, confidence, coverage, expected):
        assert grade_weather(confidence, coverage) == expected

    def test_degraded_capped_at_fair(self):
        assert grade_weather(0.99, 0.97, degraded=True) == WeatherDataQuality.FAIR


class TestAssessQuality:
    def test_clean_run(self):
        qa = assess_quality(0.95, 1.0)
        assert qa.weather_data_quality == WeatherDataQuality.EXCELLENT
        assert qa.warnings == ()
        assert qa.prediction_confidence == pytest.approx(0.95)
        assert not qa.degraded_mode

    def test_no_data_is_poor_with_warnings(self):
        qa = assess_quality(0.0, 0.0, degraded=True)
        assert qa.weather_data_quality == WeatherDataQuality.POOR
        assert qa.warnings
        assert qa.recommendations
        assert qa.prediction_confidence == 0.0

    def test_prior_warnings_kept(self):
        qa = assess_quality(0.95, 1.0, warnings=["Polar launch"])
        assert qa.warnings[0] == "Polar launch"

    def test_partial_coverage_warning(self):
        qa = assess_quality(0.9, 0.6, degraded=True)
        assert any("60%" in w for w in qa.warnings)
        assert qa.degraded_mode

    def test_extrapolation_and_fallback_warnings(self):
        qa = assess_quality(0.9, 1.0, extrapolated_fraction=0.3, fallback_samples=12)
        assert any("fallback" in w for w in qa.warnings)
        assert any("outside the forecast grid" in w for w in qa.warnings)
