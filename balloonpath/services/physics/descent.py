"""Descent integration: burst to ground under a parachute.

State machine ``Descending -> Landed``. The payload falls at terminal
velocity for the local standard-atmosphere density; the final step is
shortened so the landing altitude equals the ground elevation exactly.
"""

from __future__ import annotations

import logging
import math
import threading
from dataclasses import dataclass
from datetime import timedelta

from balloonpath.config import PredictionSettings
from balloonpath.contracts.common import Coordinates
from balloonpath.contracts.enums import FlightPhase
from balloonpath.contracts.launch import BalloonConfiguration
from balloonpath.contracts.trajectory import BurstSite, LandingSite, TrajectoryPoint
from balloonpath.errors import DescentTimeoutError, PredictionCancelledError
from balloonpath.services.physics import atmosphere
from balloonpath.services.physics.track import TrajectoryLog
from balloonpath.services.physics.wind_drift import DriftRecorder, WindDriftIntegrator
from balloonpath.services.weather.field import WeatherField

logger = logging.getLogger(__name__)


def terminal_velocity(
    balloon: BalloonConfiguration, altitude: float, gravity: float = 9.81
) -> float:
    """Descent speed (m/s, positive) where drag balances weight.

    v_t = sqrt(2·m·g / (ρ·Cd·A)) with ρ from the standard atmosphere and m
    the payload weight alone; the envelope separates at burst.
    """
    rho = atmosphere.density(altitude)
    return math.sqrt(
        2.0 * balloon.payload_weight * gravity
        / (rho * balloon.drag_coefficient * balloon.parachute_area)
    )


@dataclass(frozen=True)
class DescentResult:
    points: list[TrajectoryPoint]
    landing_site: LandingSite
    duration_s: float
    mean_confidence: float


class DescentSimulator:
    """Integrates the fall from burst to ground plus wind drift."""

    def __init__(
        self,
        field: WeatherField,
        settings: PredictionSettings | None = None,
        drift: WindDriftIntegrator | None = None,
    ):
        self.field = field
        self.settings = settings or PredictionSettings()
        self.drift = drift or WindDriftIntegrator()

    def simulate(
        self,
        burst: BurstSite,
        balloon: BalloonConfiguration,
        ground_elevation: float = 0.0,
        recorder: DriftRecorder | None = None,
        cancel: threading.Event | None = None,
    ) -> DescentResult:
        """Run the descent from ``burst``.

        The burst point itself belongs to the ascent log; this log starts
        with the first descent step and ends with the landed point.

        Raises:
            DescentTimeoutError: Ground not reached within ``max_phase_duration_s``.
            PredictionCancelledError: ``cancel`` was set.
        """
        s = self.settings
        lat, lon, alt = burst.location.latitude, burst.location.longitude, burst.altitude
        start = burst.timestamp
        elapsed = 0.0
        step = 0
        log = TrajectoryLog(start, s.log_interval_steps)
        confidence_sum, samples = 0.0, 0
        velocity = 0.0

        while alt > ground_elevation:
            if cancel is not None and cancel.is_set():
                raise PredictionCancelledError("prediction cancelled during descent")
            if elapsed >= s.max_phase_duration_s:
                logger.warning("Descent timeout after %.0f s at %.0f m", elapsed, alt)
                raise DescentTimeoutError(elapsed, alt)

            conditions = self.field.sample(lat, lon, alt, start + timedelta(seconds=elapsed))
            confidence_sum += conditions.confidence
            samples += 1
            velocity = -terminal_velocity(balloon, alt, s.gravity)

            dt = s.time_step_s
            if alt + velocity * dt <= ground_elevation:
                dt = (ground_elevation - alt) / velocity
                alt = ground_elevation
            else:
                alt += velocity * dt
            lat, lon = self.drift.advance(lat, lon, conditions.wind_u, conditions.wind_v, dt)
            if recorder is not None:
                recorder.record(dt, conditions.wind_u, conditions.wind_v, alt)
            elapsed += dt
            step += 1

            if alt > ground_elevation and log.due(step):
                log.append(elapsed, lat, lon, alt, velocity, conditions, FlightPhase.DESCENT)

        landing_time = start + timedelta(seconds=elapsed)
        landed = self.field.sample(lat, lon, alt, landing_time)
        log.append(elapsed, lat, lon, alt, velocity, landed, FlightPhase.LANDED)
        mean_confidence = confidence_sum / samples if samples else landed.confidence

        logger.debug(
            "Descent landed after %.0f s (%d steps) at (%.5f, %.5f)", elapsed, step, lat, lon
        )
        return DescentResult(
            points=log.points,
            landing_site=LandingSite(
                location=Coordinates(latitude=lat, longitude=lon, altitude=alt),
                altitude=alt,
                timestamp=landing_time,
                confidence=mean_confidence,
            ),
            duration_s=elapsed,
            mean_confidence=mean_confidence,
        )
