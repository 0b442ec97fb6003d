"""Ascent integration: launch to burst.

State machine ``Ascending -> Burst``. Fixed time step; the final step is
shortened so the balloon reaches the burst altitude exactly.
"""

from __future__ import annotations

import logging
import math
import threading
from dataclasses import dataclass
from datetime import datetime, timedelta

from balloonpath.config import PredictionSettings
from balloonpath.contracts.enums import AscentModel, FlightPhase
from balloonpath.contracts.launch import BalloonConfiguration, LaunchSpec
from balloonpath.contracts.trajectory import BurstSite, TrajectoryPoint
from balloonpath.contracts.common import Coordinates
from balloonpath.contracts.weather import WeatherConditions
from balloonpath.errors import AscentTimeoutError, PredictionCancelledError
from balloonpath.services.physics.atmosphere import KELVIN_OFFSET
from balloonpath.services.physics.track import TrajectoryLog
from balloonpath.services.physics.wind_drift import DriftRecorder, WindDriftIntegrator
from balloonpath.services.weather.field import WeatherField

logger = logging.getLogger(__name__)

R_AIR = 287.05  # J/(kg·K)
R_HELIUM = 2077.1  # J/(kg·K)
ENVELOPE_DRAG_COEFFICIENT = 0.25  # sphere, subcritical


def air_density(conditions: WeatherConditions) -> float:
    """Density from sampled pressure (hPa) and temperature (°C)."""
    return conditions.pressure * 100.0 / (R_AIR * (conditions.temperature + KELVIN_OFFSET))


class BuoyantAscentRate:
    """Quasi-steady ascent rate of a helium envelope.

    The envelope expands isothermally with the gas (V ∝ T/P from the
    launch state). The rate is the speed at which envelope drag equals
    free lift: v = sqrt(2·F / (ρ·Cd·A)).
    """

    def __init__(self, balloon: BalloonConfiguration, launch: WeatherConditions, gravity: float):
        self.balloon = balloon
        self.gravity = gravity
        self._p0 = launch.pressure
        self._t0 = launch.temperature + KELVIN_OFFSET

    def volume(self, conditions: WeatherConditions) -> float:
        t = conditions.temperature + KELVIN_OFFSET
        return self.balloon.volume * (self._p0 / conditions.pressure) * (t / self._t0)

    def free_lift(self, conditions: WeatherConditions) -> float:
        """Net upward force (N)."""
        t = conditions.temperature + KELVIN_OFFSET
        p = conditions.pressure * 100.0
        rho_air = p / (R_AIR * t)
        rho_gas = p / (R_HELIUM * t)
        mass = self.balloon.payload_weight + self.balloon.balloon_mass
        return ((rho_air - rho_gas) * self.volume(conditions) - mass) * self.gravity

    def __call__(self, conditions: WeatherConditions) -> float:
        lift = self.free_lift(conditions)
        if lift <= 0:
            return 0.0
        radius = (3.0 * self.volume(conditions) / (4.0 * math.pi)) ** (1.0 / 3.0)
        area = math.pi * radius**2
        return math.sqrt(2.0 * lift / (air_density(conditions) * ENVELOPE_DRAG_COEFFICIENT * area))


@dataclass(frozen=True)
class AscentResult:
    points: list[TrajectoryPoint]
    burst_site: BurstSite
    burst_time: datetime
    duration_s: float
    mean_confidence: float


class AscentSimulator:
    """Integrates vertical ascent plus wind drift from launch to burst."""

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
        launch: LaunchSpec,
        recorder: DriftRecorder | None = None,
        cancel: threading.Event | None = None,
    ) -> AscentResult:
        """Run the ascent.

        1. Sample the weather field at the current position and time
        2. Advance altitude by the ascent rate (clamped to burst)
        3. Advance horizontal position by wind drift
        4. Log a point every ``log_interval_steps`` steps

        Raises:
            AscentTimeoutError: Burst not reached within ``max_phase_duration_s``.
            PredictionCancelledError: ``cancel`` was set.
        """
        s = self.settings
        balloon = launch.balloon
        burst_alt = balloon.burst_altitude
        lat, lon, alt = launch.latitude, launch.longitude, launch.altitude
        elapsed = 0.0
        step = 0
        log = TrajectoryLog(launch.launch_time, s.log_interval_steps)

        conditions = self.field.sample(lat, lon, alt, launch.launch_time)
        if balloon.ascent_model == AscentModel.BUOYANT:
            rate_of = BuoyantAscentRate(balloon, conditions, s.gravity)
        else:
            rate_of = lambda _: balloon.ascent_rate  # noqa: E731
        rate = rate_of(conditions)
        log.append(elapsed, lat, lon, alt, rate, conditions, FlightPhase.ASCENT)
        confidence_sum, samples = conditions.confidence, 1

        while alt < burst_alt:
            if cancel is not None and cancel.is_set():
                raise PredictionCancelledError("prediction cancelled during ascent")
            if elapsed >= s.max_phase_duration_s:
                logger.warning("Ascent timeout after %.0f s at %.0f m", elapsed, alt)
                raise AscentTimeoutError(elapsed, alt)

            if step > 0:
                conditions = self.field.sample(
                    lat, lon, alt, launch.launch_time + timedelta(seconds=elapsed)
                )
                confidence_sum += conditions.confidence
                samples += 1
                rate = rate_of(conditions)

            dt = s.time_step_s
            if rate > 0 and alt + rate * dt >= burst_alt:
                dt = (burst_alt - alt) / rate
                alt = burst_alt
            else:
                alt += rate * dt
            lat, lon = self.drift.advance(lat, lon, conditions.wind_u, conditions.wind_v, dt)
            if recorder is not None:
                recorder.record(dt, conditions.wind_u, conditions.wind_v, alt)
            elapsed += dt
            step += 1

            if alt < burst_alt and log.due(step):
                log.append(elapsed, lat, lon, alt, rate, conditions, FlightPhase.ASCENT)

        burst_time = launch.launch_time + timedelta(seconds=elapsed)
        burst_conditions = self.field.sample(lat, lon, alt, burst_time)
        log.append(elapsed, lat, lon, alt, 0.0, burst_conditions, FlightPhase.BURST)
        if recorder is not None:
            recorder.mark_burst()

        mean_confidence = confidence_sum / samples
        logger.debug(
            "Ascent reached %.0f m after %.0f s (%d steps) at (%.5f, %.5f)",
            alt, elapsed, step, lat, lon,
        )
        return AscentResult(
            points=log.points,
            burst_site=BurstSite(
                location=Coordinates(latitude=lat, longitude=lon, altitude=alt),
                altitude=alt,
                timestamp=burst_time,
                confidence=mean_confidence,
            ),
            burst_time=burst_time,
            duration_s=elapsed,
            mean_confidence=mean_confidence,
        )
