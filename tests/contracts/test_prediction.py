"""Tests for trajectory and prediction output contracts."""

from datetime import datetime, timezone

import pytest
from pydantic import ValidationError

from balloonpath.contracts.common import Coordinates
from balloonpath.contracts.enums import FlightPhase, WeatherDataQuality
from balloonpath.contracts.prediction import QualityAssessment
from balloonpath.contracts.trajectory import LandingSite, TrajectoryPoint

T0 = datetime(2025, 6, 15, 12, 0, tzinfo=timezone.utc)


class TestTrajectoryPoint:
    def test_json_shape(self):
        point = TrajectoryPoint(
            timestamp=T0,
            latitude=40.0,
            longitude=-74.0,
            altitude=1000.0,
            vertical_velocity=5.0,
            wind_speed=3.0,
            wind_direction=270.0,
            phase=FlightPhase.ASCENT,
        )
        data = point.to_json()
        assert data["phase"] == "ascent"
        assert data["verticalVelocity"] == 5.0
        assert data["timestamp"].startswith("2025-06-15T12:00:00")
        assert "temperature" not in data

    def test_frozen(self):
        point = TrajectoryPoint(
            timestamp=T0, latitude=0, longitude=0, altitude=0, vertical_velocity=0,
            wind_speed=0, wind_direction=0, phase=FlightPhase.LANDED,
        )
        with pytest.raises(ValidationError):
            point.altitude = 10.0


class TestSites:
    def test_radius_omitted_without_uncertainty(self):
        site = LandingSite(
            location=Coordinates(latitude=40.1, longitude=-73.5, altitude=0.0),
            altitude=0.0,
            timestamp=T0,
            confidence=0.8,
        )
        data = site.to_json()
        assert "uncertaintyRadiusKm" not in data
        assert data["location"]["latitude"] == 40.1

    def test_confidence_bounded(self):
        with pytest.raises(ValidationError):
            LandingSite(
                location=Coordinates(latitude=0, longitude=0),
                altitude=0.0,
                timestamp=T0,
                confidence=1.5,
            )


class TestQualityAssessment:
    def test_serializes_camel_case(self):
        qa = QualityAssessment(
            weather_data_quality=WeatherDataQuality.POOR,
            prediction_confidence=0.0,
            coverage=0.0,
            degraded_mode=True,
            warnings=("No weather data",),
        )
        data = qa.to_json()
        assert data["weatherDataQuality"] == "poor"
        assert data["degradedMode"] is True
        assert data["warnings"] == ["No weather data"]
