"""Privacy offset generation.

A participant's position is never shown as-is: each time a marker is
placed, a fresh point is sampled uniformly in angle and distance within
the configured radius. The function is stateless on purpose; repeated
renders of the same entity land on different nearby points.
"""

from __future__ import annotations

import math
import random

from geopresence.exceptions import GeometryError
from geopresence.geodesy import offset_degrees
from geopresence.models.geo import Coord, ObfuscatedPoint

_system_random = random.SystemRandom()


def obfuscate(
    true: Coord,
    radius_meters: float,
    enabled: bool,
    *,
    rng: random.Random | None = None,
) -> Coord:
    """Return a point within *radius_meters* of *true*.

    The bound holds under the flat-earth metric of
    :func:`geopresence.geodesy.flat_distance_meters`. Great-circle distance
    from :func:`geopresence.geodesy.haversine_meters` can read about 0.2%
    higher, because ``METERS_PER_DEGREE`` is slightly below the true
    length of a degree.

    Parameters
    ----------
    true : Coord
        Precise position.
    radius_meters : float
        Maximum displacement. Must be non-negative.
    enabled : bool
        When ``False`` the precise position is returned unchanged.
    rng : random.Random, optional
        Source of randomness. Defaults to the OS-backed generator.

    Returns
    -------
    Coord
        *true* itself when disabled, otherwise an :class:`ObfuscatedPoint`.

    Raises
    ------
    GeometryError
        If *radius_meters* is negative or not finite (a ``ValueError``).
    """
    if not math.isfinite(radius_meters) or radius_meters < 0:
        raise GeometryError(f"radius_meters must be a finite value >= 0, got {radius_meters}")
    if not enabled:
        return true

    source = rng or _system_random
    angle = source.uniform(0.0, 2 * math.pi)
    distance = source.uniform(0.0, radius_meters)

    d_lat, d_lng = offset_degrees(
        true.latitude,
        north_meters=distance * math.cos(angle),
        east_meters=distance * math.sin(angle),
    )

    latitude = max(-90.0, min(90.0, true.latitude + d_lat))
    longitude = true.longitude + d_lng
    # Wrap across the antimeridian.
    if longitude > 180.0 or longitude < -180.0:
        longitude = ((longitude + 180.0) % 360.0) - 180.0
    return ObfuscatedPoint(latitude=latitude, longitude=longitude)
