"""Tests for launch payload validation."""

from __future__ import annotations

import pytest

from balloonpath.errors import InvalidInputError
from balloonpath.services.validation import validate_launch_payload
from factories import make_launch


def _payload(balloon: dict | None = None, **overrides) -> dict:
    data = {
        "latitude": 40.7128,
        "longitude": -74.0060,
        "altitude": 0,
        "launchTime": "2025-06-15T12:00:00Z",
        "balloon": {
            "volume": 4.0,
            "burstAltitude": 30000,
            "ascentRate": 5.0,
            "payloadWeight": 1.0,
            "dragCoefficient": 0.5,
            **(balloon or {}),
        },
    }
    data.update(overrides)
    return data


def _fields(exc: InvalidInputError) -> set[str]:
    return {v.field for v in exc.violations}


class TestValidPayloads:
    def test_dict_payload(self):
        validated = validate_launch_payload(_payload())
        assert validated.spec.balloon.burst_altitude == 30000
        assert validated.warnings == []

    def test_spec_passthrough(self):
        spec = make_launch()
        assert validate_launch_payload(spec).spec is spec


class TestViolations:
    def test_lists_every_violation(self):
        payload = _payload(latitude=100, balloon={"ascentRate": -1, "dragCoefficient": 0})
        with pytest.raises(InvalidInputError) as exc_info:
            validate_launch_payload(payload)
        assert _fields(exc_info.value) == {
            "latitude",
            "balloon.ascent_rate",
            "balloon.drag_coefficient",
        }
        assert "3 invalid field(s)" in str(exc_info.value)

    def test_burst_below_launch(self):
        with pytest.raises(InvalidInputError) as exc_info:
            validate_launch_payload(_payload(altitude=2000, balloon={"burstAltitude": 1500}))
        assert _fields(exc_info.value) == {"balloon.burst_altitude"}

    def test_burst_below_launch_reported_with_other_errors(self):
        payload = _payload(latitude=-95, altitude=2000, balloon={"burstAltitude": 1500})
        with pytest.raises(InvalidInputError) as exc_info:
            validate_launch_payload(payload)
        assert _fields(exc_info.value) == {"latitude", "balloon.burst_altitude"}

    def test_missing_fields(self):
        payload = _payload()
        del payload["launchTime"]
        del payload["balloon"]["volume"]
        with pytest.raises(InvalidInputError) as exc_info:
            validate_launch_payload(payload)
        assert _fields(exc_info.value) == {"launch_time", "balloon.volume"}

    def test_burst_below_ground(self):
        with pytest.raises(InvalidInputError) as exc_info:
            validate_launch_payload(make_launch(burst_altitude=1000), ground_elevation=1200)
        assert exc_info.value.violations[0].code == "burst_below_ground"

    def test_buoyant_without_free_lift(self):
        payload = _payload(balloon={"ascentModel": "buoyant", "payloadWeight": 20.0})
        with pytest.raises(InvalidInputError) as exc_info:
            validate_launch_payload(payload)
        assert _fields(exc_info.value) == {"balloon.volume"}


class TestWarnings:
    def test_polar(self):
        validated = validate_launch_payload(_payload(latitude=75.0))
        assert any("Polar" in w for w in validated.warnings)

    def test_high_altitude_launch(self):
        validated = validate_launch_payload(_payload(altitude=3500))
        assert any("High altitude" in w for w in validated.warnings)

    def test_fast_ascent(self):
        validated = validate_launch_payload(_payload(balloon={"burstAltitude": 5000}))
        assert any("fast ascent" in w for w in validated.warnings)

    def test_slow_ascent(self):
        validated = validate_launch_payload(_payload(balloon={"ascentRate": 1.5}))
        assert any("slow ascent" in w for w in validated.warnings)
