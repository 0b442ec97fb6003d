"""Shared fixtures."""

from __future__ import annotations

import pytest

from balloonpath.contracts.launch import LaunchSpec
from balloonpath.services.weather.field import WeatherGrid
from factories import make_launch, uniform_grid


@pytest.fixture
def launch() -> LaunchSpec:
    return make_launch()


@pytest.fixture
def calm_grid() -> WeatherGrid:
    return uniform_grid()
