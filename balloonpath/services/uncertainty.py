"""Monte Carlo landing uncertainty.

Replays the wind series a flight actually experienced with Gaussian wind
error injected, N times, and measures how far the perturbed landings
(and bursts) fall from the unperturbed replay.

Forecast wind error is correlated in time: one error draw applies to a
chunk of ``error_correlation_s`` seconds of flight, and chunks never
straddle the burst. A correlation equal to the time step gives
independent per-step noise.

Optionally each sample also draws an ascent-rate and a burst-altitude
error, which reshape the timing of the replayed vertical profile.
"""

from __future__ import annotations

import logging
import math
import threading
from concurrent.futures import ThreadPoolExecutor, as_completed

import numpy as np

from balloonpath.config import PredictionSettings
from balloonpath.contracts.common import Coordinates
from balloonpath.contracts.prediction import (
    DistancePercentiles,
    UncertaintyAnalysis,
    UncertaintyFactors,
)
from balloonpath.errors import (
    DataUnavailableError,
    InsufficientSamplesError,
    PredictionCancelledError,
)
from balloonpath.services.physics.geodesy import haversine_km_array
from balloonpath.services.physics.wind_drift import DriftSeries, WindDriftIntegrator

logger = logging.getLogger(__name__)


def correlation_chunks(series: DriftSeries, correlation_s: float) -> np.ndarray:
    """Chunk id for every step of ``series``."""
    ids = np.empty(len(series), dtype=np.int64)
    chunk = 0
    filled = 0.0
    for i, dt in enumerate(series.dt):
        if i > 0 and (filled >= correlation_s or i == series.burst_index):
            chunk += 1
            filled = 0.0
        ids[i] = chunk
        filled += dt
    return ids


def uncertainty_factors(
    rms_wind_error: float,
    mean_wind_speed: float,
    mean_confidence: float = 1.0,
    coverage: float = 1.0,
) -> UncertaintyFactors:
    """Relative contributions to the landing uncertainty.

    - wind: RMS error relative to the typical wind it perturbs
    - model: shortfall of interpolation confidence
    - data quality: fraction of the flight window covered by data
    """
    total = rms_wind_error + mean_wind_speed
    return UncertaintyFactors(
        wind_uncertainty=rms_wind_error / total if total > 0 else 0.0,
        model_uncertainty=min(max(1.0 - mean_confidence, 0.0), 1.0),
        data_quality=min(max(coverage, 0.0), 1.0),
    )


# Floor of a perturbed mean ascent rate (m/s)
MIN_ASCENT_RATE = 0.1
# A perturbed burst stays at least this far above the launch (m)
MIN_BURST_CLEARANCE_M = 100.0


def vertical_step_durations(
    series: DriftSeries, ascent_rate_error: float, burst_altitude_error: float
) -> np.ndarray:
    """Step durations of a replay with a shifted ascent rate and burst altitude.

    Ascent steps are stretched by the ratio of the recorded mean ascent
    rate to the perturbed one. Steps, or parts of steps, above the
    perturbed burst altitude are dropped on both legs. A higher burst
    lengthens the last ascent step and the first descent step (at the
    recorded top-of-descent speed), each keeping that step's wind.
    The array keeps the length of ``series`` so chunk ids still apply.
    """
    b = series.burst_index
    dt = series.dt.copy()
    if b == 0:
        return dt
    after = series.altitude
    before = np.concatenate(([series.start_altitude], after[:-1]))
    burst = after[b - 1]
    ascent_s = series.ascent_duration_s
    mean_rate = (burst - series.start_altitude) / ascent_s if ascent_s > 0 else 0.0
    if mean_rate <= 0:
        return dt

    rate = max(mean_rate + ascent_rate_error, MIN_ASCENT_RATE)
    new_burst = max(burst + burst_altitude_error, series.start_altitude + MIN_BURST_CLEARANCE_M)

    span = np.abs(after - before)
    kept = np.abs(np.minimum(after, new_burst) - np.minimum(before, new_burst))
    frac = np.divide(kept, span, out=(before < new_burst).astype(float), where=span > 0)
    dt *= frac
    dt[:b] *= mean_rate / rate

    extra = new_burst - burst
    if extra > 0:
        dt[b - 1] += extra / rate
        if b < len(dt) and series.dt[b] > 0 and span[b] > 0:
            dt[b] += extra / (span[b] / series.dt[b])
    return dt


def _circular_mean_deg(values: np.ndarray) -> float:
    rad = np.radians(values)
    return math.degrees(math.atan2(np.sin(rad).mean(), np.cos(rad).mean()))


class MonteCarloUncertaintyEngine:
    """Runs perturbed wind-drift replays across a worker pool."""

    def __init__(
        self,
        settings: PredictionSettings | None = None,
        drift: WindDriftIntegrator | None = None,
    ):
        self.settings = settings or PredictionSettings()
        self.drift = drift or WindDriftIntegrator()

    def analyze(
        self,
        series: DriftSeries,
        *,
        rms_wind_error: float | None = None,
        ascent_rate_error: float | None = None,
        burst_altitude_error: float | None = None,
        samples: int | None = None,
        seed: int | None = None,
        factors: UncertaintyFactors | None = None,
        cancel: threading.Event | None = None,
    ) -> UncertaintyAnalysis:
        """Build the landing and burst dispersion of ``series``.

        Each sample owns its own generator, spawned from one seed
        sequence, so a fixed seed reproduces the analysis regardless of
        worker scheduling. With a non-zero ascent-rate or burst-altitude
        error, each sample first draws its own vertical profile (see
        ``vertical_step_durations``); this needs recorded altitudes.

        Raises:
            InsufficientSamplesError: Fewer samples than the configured minimum.
            DataUnavailableError: The series holds no integration steps.
            PredictionCancelledError: ``cancel`` was set.
        """
        s = self.settings
        n = s.monte_carlo_samples if samples is None else samples
        if n < s.min_monte_carlo_samples:
            raise InsufficientSamplesError(n, s.min_monte_carlo_samples)
        if len(series) == 0:
            raise DataUnavailableError("no recorded wind to perturb")
        rms = s.rms_wind_error if rms_wind_error is None else rms_wind_error
        rate_sigma = s.ascent_rate_error if ascent_rate_error is None else ascent_rate_error
        burst_sigma = s.burst_altitude_error if burst_altitude_error is None else burst_altitude_error
        seed = s.random_seed if seed is None else seed

        vertical = rate_sigma > 0 or burst_sigma > 0
        if vertical and not series.has_altitudes:
            logger.warning("Altitudes not recorded; ascent and burst errors ignored")
            vertical = False

        chunk_ids = correlation_chunks(series, s.error_correlation_s)
        burst_idx = max(series.burst_index - 1, 0)

        ref_lats, ref_lons = self.drift.integrate_path(
            series.start_latitude, series.start_longitude, series.wind_u, series.wind_v, series.dt
        )
        ref_landing = (ref_lats[-1], ref_lons[-1])
        ref_burst = (ref_lats[burst_idx], ref_lons[burst_idx])

        def run_sample(index: int, seq: np.random.SeedSequence) -> tuple[int, tuple[float, ...]]:
            if cancel is not None and cancel.is_set():
                raise PredictionCancelledError("prediction cancelled during uncertainty analysis")
            rng = np.random.default_rng(seq)
            dt = series.dt
            if vertical:
                rate_error, burst_error = rng.standard_normal(2) * (rate_sigma, burst_sigma)
                dt = vertical_step_durations(series, rate_error, burst_error)
            lats, lons = self.drift.integrate_path(
                series.start_latitude,
                series.start_longitude,
                series.wind_u,
                series.wind_v,
                dt,
                rms_error=rms,
                rng=rng,
                chunk_ids=chunk_ids,
            )
            ascent_s = float(dt[: series.burst_index].sum())
            return index, (lats[-1], lons[-1], lats[burst_idx], lons[burst_idx], ascent_s)

        outcomes = np.empty((n, 5))
        seeds = np.random.SeedSequence(seed).spawn(n)
        with ThreadPoolExecutor(max_workers=s.max_workers) as executor:
            futures = [executor.submit(run_sample, i, seq) for i, seq in enumerate(seeds)]
            try:
                for future in as_completed(futures):
                    index, outcome = future.result()
                    outcomes[index] = outcome
            except PredictionCancelledError:
                for future in futures:
                    future.cancel()
                raise

        land_d = haversine_km_array(ref_landing[0], ref_landing[1], outcomes[:, 0], outcomes[:, 1])
        burst_d = haversine_km_array(ref_burst[0], ref_burst[1], outcomes[:, 2], outcomes[:, 3])

        mean_lat = float(outcomes[:, 0].mean())
        mean_lon = _circular_mean_deg(outcomes[:, 1])
        spread = haversine_km_array(mean_lat, mean_lon, outcomes[:, 0], outcomes[:, 1])
        p10, p50, p90 = np.percentile(land_d, [10, 50, 90])
        q = s.confidence_level * 100.0

        # vertical: spread of ascent duration relative to the recorded one
        factors = factors or uncertainty_factors(rms, series.mean_wind_speed)
        nominal_ascent_s = series.ascent_duration_s
        if vertical and nominal_ascent_s > 0:
            spread_s = float(outcomes[:, 4].std())
            factors = factors.model_copy(
                update={"vertical_uncertainty": min(spread_s / nominal_ascent_s, 1.0)}
            )

        analysis = UncertaintyAnalysis(
            landing_radius_km=float(np.percentile(land_d, q)),
            burst_radius_km=float(np.percentile(burst_d, q)),
            confidence_level=s.confidence_level,
            sample_count=n,
            rms_wind_error=rms,
            percentiles=DistancePercentiles(p10=float(p10), p50=float(p50), p90=float(p90)),
            mean_landing=Coordinates(latitude=mean_lat, longitude=mean_lon, altitude=None),
            std_deviation_km=float(np.sqrt(np.mean(spread**2))),
            factors=factors,
        )
        logger.debug(
            "Monte Carlo: %d samples, %d chunks, rms %.2f m/s -> radius %.3f km",
            n, int(chunk_ids[-1]) + 1, rms, analysis.landing_radius_km,
        )
        return analysis
