"""Tests for bearing/distance helpers and radar projection."""

from __future__ import annotations

import pytest

from geopresence.config import PresenceConfig
from geopresence.geodesy import (
    flat_distance_meters,
    haversine_meters,
    initial_bearing_degrees,
    longitude_scale,
    offset_degrees,
)
from geopresence.models.geo import Coord
from geopresence.models.presence import CollectibleMarker, DiscoveryResult, PresenceEntity
from geopresence.models.radar import RadarMode
from geopresence.radar import RadarProjector

ORIGIN = Coord(latitude=0.0, longitude=0.0)

# ------------------------------------------------------------------
# Geodesy
# ------------------------------------------------------------------


class TestBearing:
    @pytest.mark.parametrize(
        ("target", "expected"),
        [
            (Coord(latitude=1.0, longitude=0.0), 0.0),
            (Coord(latitude=0.0, longitude=1.0), 90.0),
            (Coord(latitude=-1.0, longitude=0.0), 180.0),
            (Coord(latitude=0.0, longitude=-1.0), 270.0),
        ],
    )
    def test_cardinal_directions(self, target: Coord, expected: float) -> None:
        assert initial_bearing_degrees(ORIGIN, target) == pytest.approx(expected)

    def test_identical_points(self) -> None:
        assert initial_bearing_degrees(ORIGIN, ORIGIN) == 0.0

    def test_result_is_normalized(self) -> None:
        bearing = initial_bearing_degrees(Coord(latitude=10.0, longitude=10.0), Coord(latitude=9.0, longitude=9.0))
        assert 180.0 < bearing < 270.0


class TestDistances:
    def test_haversine_one_degree_latitude(self) -> None:
        assert haversine_meters(ORIGIN, Coord(latitude=1.0, longitude=0.0)) == pytest.approx(111_195, rel=1e-3)

    def test_offset_degrees_equator(self) -> None:
        d_lat, d_lng = offset_degrees(0.0, north_meters=111_000.0, east_meters=111_000.0)
        assert d_lat == pytest.approx(1.0)
        assert d_lng == pytest.approx(1.0)

    def test_offset_degrees_scales_longitude(self) -> None:
        _, d_lng = offset_degrees(60.0, north_meters=0.0, east_meters=111_000.0)
        assert d_lng == pytest.approx(2.0)

    def test_longitude_scale_floor_at_pole(self) -> None:
        assert longitude_scale(90.0) == pytest.approx(1e-6)

    def test_flat_distance_inverts_offset(self) -> None:
        d_lat, d_lng = offset_degrees(45.0, north_meters=30.0, east_meters=40.0)
        moved = Coord(latitude=45.0 + d_lat, longitude=10.0 + d_lng)
        assert flat_distance_meters(Coord(latitude=45.0, longitude=10.0), moved) == pytest.approx(50.0)


# ------------------------------------------------------------------
# Projection
# ------------------------------------------------------------------


def _result() -> DiscoveryResult:
    return DiscoveryResult(
        participants=(
            PresenceEntity.model_validate({"publicKey": "far", "latitude": 0.0, "longitude": 5.0, "distance": 556.0}),
            PresenceEntity.model_validate({"publicKey": "near", "latitude": 0.1, "longitude": 0.0, "distance": 11.1}),
            PresenceEntity.model_validate({"publicKey": "nowhere", "distance": 1.0}),
        ),
        markers=(
            CollectibleMarker.model_validate({"id": "gem", "latitude": 0.001, "longitude": 0.0, "distance": 111.0}),
        ),
    )


class TestProjection:
    def test_inside_range_is_scaled(self) -> None:
        radar = RadarProjector(display_radius_px=50.0, max_distance_meters=50_000.0)
        point = radar.project(ORIGIN, Coord(latitude=0.0, longitude=0.2), 25_000.0, entity_id="e")

        assert point.angle_degrees == pytest.approx(90.0)
        assert point.clamped_distance_px == pytest.approx(25.0)
        assert point.pinned is False

    def test_beyond_range_is_pinned_to_rim(self) -> None:
        radar = RadarProjector(display_radius_px=50.0, max_distance_meters=50_000.0)
        point = radar.project(ORIGIN, Coord(latitude=-2.0, longitude=0.0), 220_000.0)

        assert point.clamped_distance_px == 50.0
        assert point.pinned is True
        assert point.angle_degrees == pytest.approx(180.0)

    def test_missing_distance_uses_haversine(self) -> None:
        radar = RadarProjector(display_radius_px=100.0, max_distance_meters=222_390.0)
        point = radar.project(ORIGIN, Coord(latitude=1.0, longitude=0.0))

        assert point.distance_meters == pytest.approx(111_195, rel=1e-3)
        assert point.clamped_distance_px == pytest.approx(50.0, rel=1e-3)

    def test_entity_at_viewer_is_centered(self) -> None:
        point = RadarProjector().project(ORIGIN, ORIGIN)
        assert (point.angle_degrees, point.clamped_distance_px, point.pinned) == (0.0, 0.0, False)

    def test_project_result_sorts_and_skips(self) -> None:
        radar = RadarProjector(mode=RadarMode.PARTICIPANTS)
        points = radar.project_result(ORIGIN, _result())

        assert [p.entity_id for p in points] == ["near", "far"]
        assert points[1].pinned is True

    def test_max_points_caps_nearest_first(self) -> None:
        radar = RadarProjector(mode=RadarMode.PARTICIPANTS, max_points=1)
        assert [p.entity_id for p in radar.project_result(ORIGIN, _result())] == ["near"]

    def test_collectible_mode(self) -> None:
        radar = RadarProjector()
        (point,) = radar.project_result(ORIGIN, _result())

        assert point.entity_id == "gem"
        assert point.angle_degrees == pytest.approx(0.0)

    def test_closest(self) -> None:
        radar = RadarProjector(mode=RadarMode.PARTICIPANTS)
        closest = radar.closest(_result())
        assert closest is not None
        assert closest.id == "nowhere"

        assert RadarProjector().closest(DiscoveryResult()) is None

    def test_from_config(self) -> None:
        config = PresenceConfig(participant_id="me", radar_display_radius_px=80.0, radar_max_distance_meters=1000.0)
        radar = RadarProjector.from_config(config)
        assert (radar.display_radius_px, radar.max_distance_meters) == (80.0, 1000.0)

    def test_invalid_dimensions(self) -> None:
        with pytest.raises(ValueError):
            RadarProjector(display_radius_px=0.0)


# ------------------------------------------------------------------
# Interaction
# ------------------------------------------------------------------


class TestInteraction:
    def test_mode_toggle_keeps_zoom(self) -> None:
        radar = RadarProjector()
        radar.zoom_in()

        assert radar.toggle_mode() == RadarMode.PARTICIPANTS
        assert radar.toggle_mode() == RadarMode.COLLECTIBLES
        assert radar.zoom == pytest.approx(1.2)

    def test_wheel_direction(self) -> None:
        radar = RadarProjector()
        assert radar.wheel(120.0) == pytest.approx(0.9)
        assert radar.wheel(-120.0) == pytest.approx(0.99)

    def test_zoom_is_clamped(self) -> None:
        radar = RadarProjector()
        for _ in range(50):
            radar.zoom_in()
        assert radar.zoom == 3.0
        for _ in range(50):
            radar.wheel(1.0)
        assert radar.zoom == 0.5
        assert radar.pinch(0.0) == 0.5

    def test_drag_pans_and_reset(self) -> None:
        radar = RadarProjector()
        radar.drag_start(10.0, 10.0)
        assert radar.drag_move(25.0, 5.0) == (15.0, -5.0)
        radar.drag_end()
        assert radar.drag_move(100.0, 100.0) == (15.0, -5.0)

        radar.reset()
        assert radar.transform.zoom == 1.0
        assert radar.pan == (0.0, 0.0)
