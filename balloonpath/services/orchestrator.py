"""Prediction orchestrator — the engine's entry point.

Sequences one prediction run through its phases::

    Validating -> WeatherPreparation -> Ascending -> Descending
        -> UncertaintyAnalysis -> Complete

with ``Error`` reachable from any phase. Each phase's outcome is a
``ServiceResult``; the orchestrator branches on its error kind to decide
between failing the run, degrading it, or omitting a section.
"""

from __future__ import annotations

import logging
import threading
import time
from dataclasses import dataclass, field
from typing import Any, Callable, Mapping, TypeVar

from balloonpath.config import PredictionSettings
from balloonpath.contracts.enums import ErrorKind, OrchestratorPhase
from balloonpath.contracts.launch import LaunchSpec
from balloonpath.contracts.prediction import FlightMetrics, PredictionResult, UncertaintyAnalysis
from balloonpath.contracts.result import ServiceResult
from balloonpath.contracts.trajectory import TrajectoryPoint
from balloonpath.contracts.weather import WeatherWindow
from balloonpath.errors import (
    DataUnavailableError,
    InsufficientSamplesError,
    InvalidInputError,
    PredictionError,
)
from balloonpath.services.physics.ascent import AscentResult, AscentSimulator
from balloonpath.services.physics.descent import DescentResult, DescentSimulator
from balloonpath.services.physics.geodesy import haversine_km
from balloonpath.services.physics.wind_drift import DriftRecorder, DriftSeries
from balloonpath.services.uncertainty import MonteCarloUncertaintyEngine, uncertainty_factors
from balloonpath.services.validation import ValidatedLaunch, validate_launch_payload
from balloonpath.services.weather.cache import TTLCache, window_key
from balloonpath.services.weather.field import (
    MonitoredWeatherField,
    StandardAtmosphereField,
    WeatherField,
    WeatherGrid,
)
from balloonpath.services.weather.quality import assess_quality
from balloonpath.services.weather.source import WeatherSource
from balloonpath.services.weather.window import estimate_weather_window

logger = logging.getLogger(__name__)

T = TypeVar("T")

# Failures that abort a run from inside the uncertainty phase
_FATAL_IN_UNCERTAINTY = (ErrorKind.CANCELLED,)


@dataclass
class _WeatherPlan:
    field: WeatherField
    window: WeatherWindow
    coverage: float
    degraded: bool


@dataclass
class _Run:
    """Mutable bookkeeping of one invocation."""

    progress: Callable[[OrchestratorPhase], None] | None
    phase: OrchestratorPhase = OrchestratorPhase.VALIDATING
    history: list[OrchestratorPhase] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)

    def enter(self, phase: OrchestratorPhase) -> None:
        self.phase = phase
        self.history.append(phase)
        logger.info("Prediction phase: %s", phase.value)
        if self.progress is not None:
            self.progress(phase)


class PredictionOrchestrator:
    """Runs predictions against one weather source.

    The orchestrator owns its weather cache, so repeated predictions for
    nearby windows reuse a loaded grid until the TTL expires. Instances
    hold no per-run state and may serve concurrent ``predict()`` calls.
    """

    def __init__(
        self,
        source: WeatherSource | None = None,
        settings: PredictionSettings | None = None,
        cache: TTLCache[WeatherGrid] | None = None,
    ):
        self.source = source
        self.settings = settings or PredictionSettings()
        self.cache = cache or TTLCache(self.settings.cache_ttl_s, self.settings.cache_max_entries)
        self._uncertainty = MonteCarloUncertaintyEngine(self.settings)

    def predict(
        self,
        payload: LaunchSpec | Mapping[str, Any],
        *,
        ground_elevation: float = 0.0,
        cancel: threading.Event | None = None,
        progress: Callable[[OrchestratorPhase], None] | None = None,
    ) -> ServiceResult[PredictionResult]:
        """Full prediction pipeline.

        1. Validate the launch payload (all violations at once)
        2. Estimate the weather window and load the grid (cached)
        3. Integrate ascent, then descent from the burst point
        4. Monte Carlo uncertainty over the recorded wind series
        5. Assemble metrics, quality assessment and result
        """
        started = time.perf_counter()
        run = _Run(progress)

        def elapsed_ms() -> float:
            return (time.perf_counter() - started) * 1000.0

        def failed(result: ServiceResult[Any]) -> ServiceResult[PredictionResult]:
            failed_phase = run.phase
            run.enter(OrchestratorPhase.ERROR)
            error = result.error
            logger.warning(
                "Prediction failed in %s: %s (%s)", failed_phase.value, error.message, error.code
            )
            details = dict(error.details or {})
            details["phase"] = failed_phase.value
            return ServiceResult.fail(error.code, error.message, duration_ms=elapsed_ms(), **details)

        # 1. Validating
        run.enter(OrchestratorPhase.VALIDATING)
        validated = self._attempt(self._validate, payload, ground_elevation)
        if not validated.success:
            return failed(validated)
        launch = validated.data.spec
        run.warnings.extend(validated.data.warnings)

        # 2. WeatherPreparation
        run.enter(OrchestratorPhase.WEATHER_PREPARATION)
        plan = self._prepare_weather(launch, ground_elevation, run)
        monitored = MonitoredWeatherField(plan.field, fallback=StandardAtmosphereField())
        recorder = DriftRecorder(launch.latitude, launch.longitude, launch.altitude)

        # 3. Ascending / Descending
        run.enter(OrchestratorPhase.ASCENDING)
        ascent = self._attempt(
            AscentSimulator(monitored, self.settings).simulate, launch, recorder, cancel
        )
        if not ascent.success:
            return failed(ascent)

        run.enter(OrchestratorPhase.DESCENDING)
        descent = self._attempt(
            DescentSimulator(monitored, self.settings).simulate,
            ascent.data.burst_site, launch.balloon, ground_elevation, recorder, cancel,
        )
        if not descent.success:
            return failed(descent)
        series = recorder.freeze()

        # 4. UncertaintyAnalysis
        run.enter(OrchestratorPhase.UNCERTAINTY_ANALYSIS)
        uncertainty = self._attempt(
            self._uncertainty.analyze,
            series,
            factors=uncertainty_factors(
                self.settings.rms_wind_error,
                series.mean_wind_speed,
                monitored.mean_confidence,
                plan.coverage,
            ),
            cancel=cancel,
        )
        analysis: UncertaintyAnalysis | None = None
        if uncertainty.success:
            analysis = uncertainty.data
        elif uncertainty.kind in _FATAL_IN_UNCERTAINTY:
            return failed(uncertainty)
        else:
            logger.warning("Uncertainty analysis omitted: %s", uncertainty.error.message)
            run.warnings.append(f"Uncertainty analysis omitted: {uncertainty.error.message}")

        # 5. Complete
        result = self._assemble(launch, ascent.data, descent.data, series, analysis, plan, monitored, run)
        run.enter(OrchestratorPhase.COMPLETE)
        logger.info(
            "Prediction complete: landing (%.5f, %.5f) after %.0f s, quality %s, %d warning(s)",
            result.landing_site.location.latitude,
            result.landing_site.location.longitude,
            result.flight_metrics.duration_s,
            result.quality.weather_data_quality,
            len(result.quality.warnings),
        )
        return ServiceResult.ok(result, duration_ms=elapsed_ms())

    # ------------------------------------------------------------------
    # Phases
    # ------------------------------------------------------------------

    @staticmethod
    def _attempt(fn: Callable[..., T], *args, **kwargs) -> ServiceResult[T]:
        """Run one component call, converting its failure into a result."""
        try:
            return ServiceResult.ok(fn(*args, **kwargs))
        except InvalidInputError as exc:
            return ServiceResult.fail(
                exc.kind, str(exc), violations=[str(v) for v in exc.violations]
            )
        except PredictionError as exc:
            return ServiceResult.fail(exc.kind, str(exc))

    def _validate(self, payload: LaunchSpec | Mapping[str, Any], ground_elevation: float) -> ValidatedLaunch:
        validated = validate_launch_payload(payload, ground_elevation)
        s = self.settings
        if s.monte_carlo_samples < s.min_monte_carlo_samples:
            raise InsufficientSamplesError(s.monte_carlo_samples, s.min_monte_carlo_samples)
        return validated

    def _load_grid(self, window: WeatherWindow) -> WeatherGrid:
        if self.source is None:
            raise DataUnavailableError("no weather source configured")
        key = window_key(self.source.name, window)
        grid = self.cache.get(key)
        if grid is None:
            try:
                grid = self.source.load(window)
            except PredictionError:
                raise
            except Exception as exc:
                raise DataUnavailableError(
                    f"weather source {self.source.name} failed: {exc}"
                ) from exc
            self.cache.put(key, grid)
        else:
            logger.debug("Weather grid served from cache for %s", self.source.name)
        return grid

    def _prepare_weather(self, launch: LaunchSpec, ground_elevation: float, run: _Run) -> _WeatherPlan:
        """Load weather for the estimated window, degrading rather than failing."""
        window = estimate_weather_window(launch, self.settings, ground_elevation)
        loaded = self._attempt(self._load_grid, window)
        if not loaded.success:
            logger.warning("Weather unavailable: %s; using standard atmosphere", loaded.error.message)
            run.warnings.append(f"Weather source unavailable: {loaded.error.message}")
            return _WeatherPlan(StandardAtmosphereField(), window, 0.0, True)

        grid = loaded.data
        coverage = grid.coverage(window)
        if coverage <= 0.0:
            logger.warning("Weather grid does not cover the flight window; using standard atmosphere")
            return _WeatherPlan(StandardAtmosphereField(), window, 0.0, True)
        if coverage < 1.0:
            logger.warning("Weather covers %.0f%% of the flight window; degraded mode", coverage * 100)
        return _WeatherPlan(grid, window, coverage, coverage < 1.0)

    def _assemble(
        self,
        launch: LaunchSpec,
        ascent: AscentResult,
        descent: DescentResult,
        series: DriftSeries,
        analysis: UncertaintyAnalysis | None,
        plan: _WeatherPlan,
        monitored: MonitoredWeatherField,
        run: _Run,
    ) -> PredictionResult:
        trajectory = tuple(ascent.points + descent.points)
        burst = ascent.burst_site
        landing = descent.landing_site
        if analysis is not None:
            burst = burst.model_copy(update={
                "uncertainty_radius_km": analysis.burst_radius_km,
                "confidence": analysis.confidence_level,
            })
            landing = landing.model_copy(update={
                "uncertainty_radius_km": analysis.landing_radius_km,
                "confidence": analysis.confidence_level,
            })

        quality = assess_quality(
            monitored.mean_confidence if plan.coverage > 0 else 0.0,
            plan.coverage,
            degraded=plan.degraded,
            extrapolated_fraction=(
                monitored.extrapolated_samples / monitored.samples if monitored.samples else 0.0
            ),
            fallback_samples=monitored.fallback_samples,
            warnings=run.warnings,
        )
        return PredictionResult(
            trajectory=trajectory,
            burst_site=burst,
            landing_site=landing,
            flight_metrics=flight_metrics(launch, trajectory, ascent, descent),
            uncertainty=analysis,
            quality=quality,
        )


def flight_metrics(
    launch: LaunchSpec,
    trajectory: tuple[TrajectoryPoint, ...],
    ascent: AscentResult,
    descent: DescentResult,
) -> FlightMetrics:
    """Duration, altitude and distance summary of a completed flight."""
    total_km = sum(
        haversine_km(a.latitude, a.longitude, b.latitude, b.longitude)
        for a, b in zip(trajectory, trajectory[1:])
    )
    landing = descent.landing_site.location
    speeds = [p.wind_speed for p in trajectory]
    return FlightMetrics(
        duration_s=(descent.landing_site.timestamp - launch.launch_time).total_seconds(),
        ascent_duration_s=ascent.duration_s,
        descent_duration_s=descent.duration_s,
        max_altitude=max(p.altitude for p in trajectory),
        total_distance_km=total_km,
        drift_distance_km=haversine_km(
            launch.latitude, launch.longitude, landing.latitude, landing.longitude
        ),
        average_wind_speed=sum(speeds) / len(speeds),
    )
