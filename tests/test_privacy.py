from __future__ import annotations

import math
import random

import pytest

from geopresence.exceptions import GeometryError
from geopresence.geodesy import flat_distance_meters
from geopresence.models.geo import ObfuscatedPoint, TrueLocation
from geopresence.privacy import obfuscate


def test_disabled_returns_input_unchanged() -> None:
    true = TrueLocation(latitude=52.37, longitude=4.89)
    assert obfuscate(true, 100.0, False) is true


def test_zero_radius_keeps_position() -> None:
    true = TrueLocation(latitude=52.37, longitude=4.89)
    point = obfuscate(true, 0.0, True, rng=random.Random(1))

    assert isinstance(point, ObfuscatedPoint)
    assert (point.latitude, point.longitude) == (52.37, 4.89)


@pytest.mark.parametrize("latitude", [0.0, 45.0, -60.0, 85.0])
def test_points_stay_within_radius(latitude: float) -> None:
    rng = random.Random(42)
    true = TrueLocation(latitude=latitude, longitude=10.0)

    for _ in range(500):
        point = obfuscate(true, 250.0, True, rng=rng)
        assert flat_distance_meters(true, point) <= 250.0 + 1e-6


def test_each_call_samples_a_fresh_point() -> None:
    rng = random.Random(5)
    true = TrueLocation(latitude=1.0, longitude=1.0)

    first = obfuscate(true, 100.0, True, rng=rng)
    second = obfuscate(true, 100.0, True, rng=rng)

    assert (first.latitude, first.longitude) != (second.latitude, second.longitude)


def test_default_generator_is_used_without_rng() -> None:
    true = TrueLocation(latitude=1.0, longitude=1.0)
    point = obfuscate(true, 100.0, True)
    assert flat_distance_meters(true, point) <= 100.0 + 1e-6


def test_near_pole_output_stays_valid() -> None:
    rng = random.Random(9)
    true = TrueLocation(latitude=89.9999, longitude=179.0)

    for _ in range(200):
        point = obfuscate(true, 100.0, True, rng=rng)
        assert -90.0 <= point.latitude <= 90.0
        assert -180.0 <= point.longitude <= 180.0
        assert math.isfinite(point.longitude)


def test_antimeridian_wraps() -> None:
    rng = random.Random(11)
    true = TrueLocation(latitude=0.0, longitude=179.9999)

    longitudes = [obfuscate(true, 100.0, True, rng=rng).longitude for _ in range(200)]

    assert all(-180.0 <= lng <= 180.0 for lng in longitudes)
    assert any(lng < 0 for lng in longitudes)


@pytest.mark.parametrize("radius", [-1.0, float("nan"), float("inf")])
def test_invalid_radius_rejected(radius: float) -> None:
    true = TrueLocation(latitude=0.0, longitude=0.0)
    with pytest.raises(GeometryError):
        obfuscate(true, radius, True)
    with pytest.raises(ValueError):
        obfuscate(true, radius, True)
