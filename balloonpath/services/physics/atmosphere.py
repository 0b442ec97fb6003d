"""Layered standard atmosphere (U.S. Standard Atmosphere 1976).

Geometric altitude is converted to geopotential altitude, then each
layer applies either a linear lapse rate or an isothermal exponential.
Valid from -500 m to 60 km; queries outside that band are clamped.
"""

from __future__ import annotations

import bisect
import math
from dataclasses import dataclass

MIN_ALTITUDE = -500.0
MAX_ALTITUDE = 60_000.0

EARTH_RADIUS_KM = 6356.766
STANDARD_GRAVITY = 9.80665
KELVIN_OFFSET = 273.15

# Layer base geopotential altitudes (km), lapse rates (K/km), base
# temperatures (K) and base pressures (kPa)
_LAYER_BASES = [0.0, 11.0, 20.0, 32.0, 47.0, 51.0, 71.0, 84.852]
_LAPSE_RATES = [-6.5, 0.0, 1.0, 2.8, 0.0, -2.8, -2.0, 0.0]
_BASE_TEMPERATURES = [288.15, 216.65, 216.65, 228.65, 270.65, 270.65, 214.65, 186.946]
_BASE_PRESSURES = [101.325, 22.632142, 5.474889, 0.868019, 0.110906, 0.066939, 0.003956, 0.000373]

# g0 * M / R in K/km, and 1000 / R_specific (kPa/K -> kg/m³)
_HYDROSTATIC_CONSTANT = 34.163195
_DENSITY_FACTOR = 3.483676


@dataclass(frozen=True)
class AtmosphereState:
    """Ambient state at one altitude, SI units."""

    altitude: float
    temperature: float  # K
    pressure: float  # Pa
    density: float  # kg/m³
    gravity: float  # m/s²

    @property
    def temperature_c(self) -> float:
        return self.temperature - KELVIN_OFFSET

    @property
    def pressure_hpa(self) -> float:
        return self.pressure / 100.0


def clamp_altitude(altitude_m: float) -> float:
    return min(max(altitude_m, MIN_ALTITUDE), MAX_ALTITUDE)


def conditions(altitude_m: float) -> AtmosphereState:
    """Full standard-atmosphere state at a geometric altitude (m)."""
    altitude = clamp_altitude(altitude_m)
    z_km = altitude / 1000.0
    gravity = STANDARD_GRAVITY * (EARTH_RADIUS_KM / (EARTH_RADIUS_KM + z_km)) ** 2
    h = EARTH_RADIUS_KM * z_km / (EARTH_RADIUS_KM + z_km)

    # Below sea level stays in the first layer
    i = max(bisect.bisect(_LAYER_BASES, h) - 1, 0)
    base_t = _BASE_TEMPERATURES[i]
    lapse = _LAPSE_RATES[i]
    t = base_t + lapse * (h - _LAYER_BASES[i])
    if lapse != 0:
        p_kpa = _BASE_PRESSURES[i] * (base_t / t) ** (_HYDROSTATIC_CONSTANT / lapse)
    else:
        p_kpa = _BASE_PRESSURES[i] * math.exp(
            -_HYDROSTATIC_CONSTANT * (h - _LAYER_BASES[i]) / base_t
        )
    return AtmosphereState(
        altitude=altitude,
        temperature=t,
        pressure=p_kpa * 1000.0,
        density=p_kpa * _DENSITY_FACTOR / t,
        gravity=gravity,
    )


def density(altitude_m: float) -> float:
    """Air density (kg/m³), monotonically decreasing with altitude."""
    return conditions(altitude_m).density


def temperature(altitude_m: float) -> float:
    """Air temperature (K)."""
    return conditions(altitude_m).temperature


def pressure(altitude_m: float) -> float:
    """Air pressure (Pa)."""
    return conditions(altitude_m).pressure
