"""Spherical and flat-earth helpers shared by privacy and radar code."""

from __future__ import annotations

import math

from geopresence._constants import EARTH_RADIUS_METERS, METERS_PER_DEGREE, MIN_LONGITUDE_SCALE
from geopresence.models.geo import Coord


def haversine_meters(a: Coord, b: Coord) -> float:
    """Great-circle distance between *a* and *b* in metres."""
    lat1 = math.radians(a.latitude)
    lat2 = math.radians(b.latitude)
    d_lat = lat2 - lat1
    d_lng = math.radians(b.longitude - a.longitude)
    h = math.sin(d_lat / 2) ** 2 + math.cos(lat1) * math.cos(lat2) * math.sin(d_lng / 2) ** 2
    return 2 * EARTH_RADIUS_METERS * math.atan2(math.sqrt(h), math.sqrt(max(0.0, 1 - h)))


def initial_bearing_degrees(origin: Coord, target: Coord) -> float:
    """Initial great-circle bearing from *origin* to *target* in ``[0, 360)``.

    Identical points yield ``0.0``; ``atan2(0, 0)`` is defined.
    """
    lat1 = math.radians(origin.latitude)
    lat2 = math.radians(target.latitude)
    d_lng = math.radians(target.longitude - origin.longitude)

    y = math.sin(d_lng) * math.cos(lat2)
    x = math.cos(lat1) * math.sin(lat2) - math.sin(lat1) * math.cos(lat2) * math.cos(d_lng)
    bearing = math.degrees(math.atan2(y, x)) % 360.0
    # Tiny negative angles round up to exactly 360.0.
    if bearing >= 360.0:
        return 0.0
    return bearing


def longitude_scale(latitude: float) -> float:
    """Metres-per-degree factor for longitude at *latitude*, relative to latitude."""
    return max(MIN_LONGITUDE_SCALE, abs(math.cos(math.radians(latitude))))


def offset_degrees(reference_latitude: float, north_meters: float, east_meters: float) -> tuple[float, float]:
    """Convert a metric displacement into a ``(d_lat, d_lng)`` degree delta.

    Uses the flat-earth approximation: ``METERS_PER_DEGREE`` for latitude,
    scaled by ``cos(reference_latitude)`` for longitude.
    """
    d_lat = north_meters / METERS_PER_DEGREE
    d_lng = east_meters / (METERS_PER_DEGREE * longitude_scale(reference_latitude))
    return d_lat, d_lng


def flat_distance_meters(a: Coord, b: Coord) -> float:
    """Distance under the same flat-earth approximation used by :func:`offset_degrees`."""
    north = (b.latitude - a.latitude) * METERS_PER_DEGREE
    east = (b.longitude - a.longitude) * METERS_PER_DEGREE * longitude_scale(a.latitude)
    return math.hypot(north, east)
