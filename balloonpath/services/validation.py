"""Launch payload validation.

Collects every violation before failing, and derives the non-fatal
warnings a valid launch may still deserve.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import Any, Mapping

from pydantic import ValidationError

from balloonpath.contracts.enums import AscentModel
from balloonpath.contracts.launch import LaunchSpec
from balloonpath.errors import FieldViolation, InvalidInputError
from balloonpath.services.physics import atmosphere
from balloonpath.services.physics.ascent import R_AIR, R_HELIUM

_POLAR_LATITUDE = 70.0
_HIGH_LAUNCH_ALTITUDE_M = 3000.0
_FAST_ASCENT_MIN = 30.0  # minutes to burst
_SLOW_ASCENT_MIN = 240.0

_CAMEL_BOUNDARY = re.compile(r"(?<!^)(?=[A-Z])")


@dataclass
class ValidatedLaunch:
    spec: LaunchSpec
    warnings: list[str] = field(default_factory=list)


def _snake(part: str | int) -> str:
    return _CAMEL_BOUNDARY.sub("_", str(part)).lower()


def _burst_violation(payload: Mapping[str, Any]) -> FieldViolation | None:
    """Cross-field check on the raw payload, usable when other fields fail."""
    balloon = payload.get("balloon")
    if not isinstance(balloon, Mapping):
        return None
    burst = balloon.get("burstAltitude", balloon.get("burst_altitude"))
    launch_alt = payload.get("altitude", 0.0)
    try:
        burst, launch_alt = float(burst), float(launch_alt)
    except (TypeError, ValueError):
        return None
    if burst <= launch_alt:
        return FieldViolation(
            "balloon.burst_altitude",
            f"burst altitude ({burst} m) must be above launch altitude ({launch_alt} m)",
            "burst_below_launch",
        )
    return None


def _violations(exc: ValidationError, payload: Mapping[str, Any]) -> list[FieldViolation]:
    violations: list[FieldViolation] = []
    for err in exc.errors():
        loc = ".".join(_snake(p) for p in err["loc"])
        if not loc:
            # Model-level rule: burst above launch
            violations.append(
                FieldViolation("balloon.burst_altitude", err["msg"], "burst_below_launch")
            )
            continue
        violations.append(FieldViolation(loc, err["msg"], err["type"]))
    if not any(v.code == "burst_below_launch" for v in violations):
        cross = _burst_violation(payload)
        if cross is not None:
            violations.append(cross)
    return violations


def validate_launch_payload(
    payload: LaunchSpec | Mapping[str, Any],
    ground_elevation: float = 0.0,
) -> ValidatedLaunch:
    """Validate a launch payload (JSON dict or ready-made LaunchSpec).

    Raises:
        InvalidInputError: Listing every violated field.
    """
    if isinstance(payload, LaunchSpec):
        spec = payload
    else:
        try:
            spec = LaunchSpec.model_validate(payload)
        except ValidationError as exc:
            raise InvalidInputError(_violations(exc, payload)) from exc

    violations: list[FieldViolation] = []
    balloon = spec.balloon
    if balloon.burst_altitude <= ground_elevation:
        violations.append(FieldViolation(
            "balloon.burst_altitude",
            f"burst altitude must be above ground elevation ({ground_elevation} m)",
            "burst_below_ground",
        ))
    if balloon.ascent_model == AscentModel.BUOYANT:
        state = atmosphere.conditions(spec.altitude)
        displaced = state.density * (1.0 - R_AIR / R_HELIUM) * balloon.volume
        if displaced <= balloon.payload_weight + balloon.balloon_mass:
            violations.append(FieldViolation(
                "balloon.volume",
                f"envelope of {balloon.volume} m³ has no free lift for "
                f"{balloon.payload_weight + balloon.balloon_mass} kg",
                "no_free_lift",
            ))
    if violations:
        raise InvalidInputError(violations)

    warnings: list[str] = []
    if abs(spec.latitude) > _POLAR_LATITUDE:
        warnings.append("Polar launch location may have limited weather model accuracy")
    if spec.altitude > _HIGH_LAUNCH_ALTITUDE_M:
        warnings.append("High altitude launch location may affect weather data accuracy")
    if balloon.ascent_model == AscentModel.CONSTANT:
        ascent_min = (balloon.burst_altitude - spec.altitude) / balloon.ascent_rate / 60.0
        if ascent_min < _FAST_ASCENT_MIN:
            warnings.append("Very fast ascent rate may result in less accurate predictions")
        elif ascent_min > _SLOW_ASCENT_MIN:
            warnings.append("Very slow ascent rate may encounter changing weather conditions")
    return ValidatedLaunch(spec=spec, warnings=warnings)
