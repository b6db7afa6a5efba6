"""Radar projection and interaction state.

Entities are placed by initial great-circle bearing from the viewer and
by distance scaled to the radar's fixed display radius. Entities beyond
the radar's range are pinned to the rim rather than hidden.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence
from dataclasses import dataclass

from geopresence._constants import (
    RADAR_BUTTON_ZOOM_STEP,
    RADAR_WHEEL_ZOOM_IN,
    RADAR_WHEEL_ZOOM_OUT,
    RADAR_ZOOM_MAX,
    RADAR_ZOOM_MIN,
)
from geopresence.config import PresenceConfig
from geopresence.geodesy import haversine_meters, initial_bearing_degrees
from geopresence.models.geo import Coord
from geopresence.models.presence import CollectibleMarker, DiscoveryResult, PresenceEntity
from geopresence.models.radar import RadarMode, RadarPoint

_logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class RadarTransform:
    """Zoom and pan applied to the radar display."""

    zoom: float = 1.0
    pan_x: float = 0.0
    pan_y: float = 0.0


def _clamp_zoom(value: float) -> float:
    return max(RADAR_ZOOM_MIN, min(RADAR_ZOOM_MAX, value))


class RadarProjector:
    """Projects entities into bearing/distance space and owns zoom/pan state.

    Parameters
    ----------
    display_radius_px : float
        Radius of the radar display; the rim.
    max_distance_meters : float
        Real-world distance that maps onto the rim.
    max_points : int or None
        Cap on projected points per pass (nearest first). ``None`` projects
        everything.
    """

    def __init__(
        self,
        *,
        display_radius_px: float = 50.0,
        max_distance_meters: float = 50_000.0,
        max_points: int | None = None,
        mode: RadarMode = RadarMode.COLLECTIBLES,
    ) -> None:
        if display_radius_px <= 0 or max_distance_meters <= 0:
            raise ValueError("display_radius_px and max_distance_meters must be > 0")
        self.display_radius_px = display_radius_px
        self.max_distance_meters = max_distance_meters
        self.max_points = max_points
        self._mode = mode
        self._zoom = 1.0
        self._pan_x = 0.0
        self._pan_y = 0.0
        self._dragging = False
        self._drag_origin = (0.0, 0.0)

    @classmethod
    def from_config(
        cls,
        config: PresenceConfig,
        *,
        max_points: int | None = None,
        mode: RadarMode = RadarMode.COLLECTIBLES,
    ) -> RadarProjector:
        return cls(
            display_radius_px=config.radar_display_radius_px,
            max_distance_meters=config.radar_max_distance_meters,
            max_points=max_points,
            mode=mode,
        )

    # ------------------------------------------------------------------
    # Projection
    # ------------------------------------------------------------------

    def project(
        self,
        viewer: Coord,
        entity: Coord,
        distance_meters: float | None = None,
        *,
        entity_id: str = "",
    ) -> RadarPoint:
        """Place *entity* relative to *viewer*.

        *distance_meters* is the entity's reported distance; when omitted
        the haversine distance between the two points is used.
        """
        angle = initial_bearing_degrees(viewer, entity)
        distance = haversine_meters(viewer, entity) if distance_meters is None else max(0.0, distance_meters)
        pinned = distance > self.max_distance_meters
        scaled = min(distance / self.max_distance_meters, 1.0) * self.display_radius_px
        return RadarPoint(
            entity_id=entity_id,
            angle_degrees=angle,
            clamped_distance_px=scaled,
            distance_meters=distance,
            pinned=pinned,
        )

    def project_result(self, viewer: Coord, result: DiscoveryResult) -> list[RadarPoint]:
        """Project the current mode's entities, nearest first.

        Entities without usable coordinates are skipped; they never abort
        the batch.
        """
        points: list[RadarPoint] = []
        for entity in self._entities(result):
            location = entity.true_location
            if location is None:
                _logger.debug("Radar skipping %s without usable coordinates", type(entity).__name__)
                continue
            points.append(
                self.project(viewer, location, entity.distance_from_viewer, entity_id=entity.id)
            )
        points.sort(key=lambda p: p.distance_meters)
        if self.max_points is not None:
            points = points[: self.max_points]
        return points

    def closest(self, result: DiscoveryResult) -> PresenceEntity | CollectibleMarker | None:
        """Nearest entity of the current mode by reported distance."""
        candidates = [e for e in self._entities(result) if e.distance_from_viewer is not None]
        if not candidates:
            return None
        return min(candidates, key=lambda e: e.distance_from_viewer or 0.0)

    def _entities(self, result: DiscoveryResult) -> Sequence[PresenceEntity | CollectibleMarker]:
        if self._mode == RadarMode.PARTICIPANTS:
            return result.participants
        return result.markers

    # ------------------------------------------------------------------
    # Mode
    # ------------------------------------------------------------------

    @property
    def mode(self) -> RadarMode:
        return self._mode

    def set_mode(self, mode: RadarMode) -> None:
        """Switch the projected entity set; zoom and pan are kept."""
        self._mode = mode

    def toggle_mode(self) -> RadarMode:
        self._mode = RadarMode.PARTICIPANTS if self._mode == RadarMode.COLLECTIBLES else RadarMode.COLLECTIBLES
        return self._mode

    # ------------------------------------------------------------------
    # Zoom / pan
    # ------------------------------------------------------------------

    @property
    def zoom(self) -> float:
        return self._zoom

    @property
    def pan(self) -> tuple[float, float]:
        return (self._pan_x, self._pan_y)

    @property
    def dragging(self) -> bool:
        return self._dragging

    @property
    def transform(self) -> RadarTransform:
        return RadarTransform(zoom=self._zoom, pan_x=self._pan_x, pan_y=self._pan_y)

    def wheel(self, delta_y: float) -> float:
        """Scroll zoom: scrolling down zooms out, anything else zooms in."""
        step = RADAR_WHEEL_ZOOM_OUT if delta_y > 0 else RADAR_WHEEL_ZOOM_IN
        self._zoom = _clamp_zoom(self._zoom * step)
        return self._zoom

    def pinch(self, scale: float) -> float:
        """Gesture zoom by a multiplicative *scale*."""
        if scale <= 0:
            return self._zoom
        self._zoom = _clamp_zoom(self._zoom * scale)
        return self._zoom

    def zoom_in(self) -> float:
        self._zoom = _clamp_zoom(self._zoom * RADAR_BUTTON_ZOOM_STEP)
        return self._zoom

    def zoom_out(self) -> float:
        self._zoom = _clamp_zoom(self._zoom / RADAR_BUTTON_ZOOM_STEP)
        return self._zoom

    def reset(self) -> None:
        self._zoom = 1.0
        self._pan_x = 0.0
        self._pan_y = 0.0
        self._dragging = False

    def drag_start(self, x: float, y: float) -> None:
        self._dragging = True
        self._drag_origin = (x - self._pan_x, y - self._pan_y)

    def drag_move(self, x: float, y: float) -> tuple[float, float]:
        if self._dragging:
            origin_x, origin_y = self._drag_origin
            self._pan_x = x - origin_x
            self._pan_y = y - origin_y
        return self.pan

    def drag_end(self) -> None:
        self._dragging = False
