"""Weather data quality assessment for a prediction run."""

from __future__ import annotations

import math
from typing import Sequence

from balloonpath.contracts.enums import WeatherDataQuality
from balloonpath.contracts.prediction import QualityAssessment

# (min mean confidence, min coverage) per grade, best first
_GRADES = [
    (WeatherDataQuality.EXCELLENT, 0.9, 0.95),
    (WeatherDataQuality.GOOD, 0.75, 0.8),
    (WeatherDataQuality.FAIR, 0.5, 0.5),
]

_EXTRAPOLATION_WARN = 0.1  # fraction of queries outside the grid


def grade_weather(mean_confidence: float, coverage: float, degraded: bool = False) -> WeatherDataQuality:
    """Map confidence and coverage to a quality tag.

    No coverage is always poor; degraded mode is at best fair.
    """
    if coverage <= 0.0:
        return WeatherDataQuality.POOR
    for grade, min_confidence, min_coverage in _GRADES:
        if degraded and grade in (WeatherDataQuality.EXCELLENT, WeatherDataQuality.GOOD):
            continue
        if mean_confidence >= min_confidence and coverage >= min_coverage:
            return grade
    return WeatherDataQuality.POOR


def assess_quality(
    mean_confidence: float,
    coverage: float,
    *,
    degraded: bool = False,
    extrapolated_fraction: float = 0.0,
    fallback_samples: int = 0,
    warnings: Sequence[str] = (),
) -> QualityAssessment:
    """Build the QualityAssessment of a run.

    ``warnings`` are degradations already recorded by earlier phases; the
    assessment appends its own and never drops any.
    """
    all_warnings = list(warnings)
    recommendations: list[str] = []

    # --- Coverage ---
    if coverage <= 0.0:
        all_warnings.append("No weather data covers the flight window; calm standard atmosphere assumed")
        recommendations.append("Use alternative weather data sources")
    elif coverage < 1.0:
        percent = math.floor(coverage * 100 + 1e-9)
        all_warnings.append(f"Weather data covers only {percent}% of the flight window")
        recommendations.append("Fetch a longer or deeper forecast window")

    # --- Interpolation quality ---
    if fallback_samples:
        all_warnings.append(f"{fallback_samples} weather queries answered by the fallback field")
    if extrapolated_fraction > _EXTRAPOLATION_WARN:
        all_warnings.append(
            f"{extrapolated_fraction:.0%} of weather queries fell outside the forecast grid"
        )
    if 0.0 < coverage and mean_confidence < 0.5:
        all_warnings.append(f"Low weather confidence ({mean_confidence:.2f})")
        recommendations.append("Consider using ensemble data or increase uncertainty margins")

    grade = grade_weather(mean_confidence, coverage, degraded)
    if grade == WeatherDataQuality.EXCELLENT:
        recommendations.append("Weather data quality is excellent for balloon prediction")
    elif grade == WeatherDataQuality.POOR:
        recommendations.append("Consider postponing launch due to poor weather data quality")

    return QualityAssessment(
        weather_data_quality=grade,
        prediction_confidence=min(max(mean_confidence * coverage, 0.0), 1.0),
        coverage=min(max(coverage, 0.0), 1.0),
        degraded_mode=degraded,
        warnings=tuple(all_warnings),
        recommendations=tuple(recommendations),
    )
