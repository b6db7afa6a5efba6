from __future__ import annotations

import asyncio
import itertools
import random
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any

import pytest

from geopresence.config import PresenceConfig
from geopresence.models.geo import CameraState, Coord, ProjectionMode, ViewportState
from geopresence.surface import MarkerClick, MarkerContent

VIEWER_ID = "viewer-0000-1111-2222-3333"


@dataclass
class PlacedMarker:
    surface_id: str
    coord: Coord
    content: MarkerContent
    on_click: MarkerClick


class FakeRenderer:
    """In-memory renderer that records every call."""

    def __init__(self) -> None:
        self.auto_ready = True
        self.surfaces: dict[str, ViewportState] = {}
        self.ready: dict[str, bool] = {}
        self.cameras: dict[str, CameraState] = {}
        self.camera_calls: list[tuple[str, CameraState, bool, int]] = []
        self.styles: dict[str, str] = {}
        self.projections: dict[str, ProjectionMode] = {}
        self.destroyed: list[str] = []
        self.placed: dict[int, PlacedMarker] = {}
        self.add_calls = 0
        self.remove_calls = 0
        self._ids = itertools.count(1)

    def create_surface(self, surface_id: str, viewport: ViewportState) -> None:
        self.surfaces[surface_id] = viewport
        self.cameras[surface_id] = viewport.camera
        self.ready[surface_id] = self.auto_ready

    def destroy_surface(self, surface_id: str) -> None:
        self.surfaces.pop(surface_id)
        self.ready.pop(surface_id, None)
        self.destroyed.append(surface_id)

    def is_ready(self, surface_id: str) -> bool:
        return self.ready.get(surface_id, False)

    def add_marker(self, surface_id: str, coord: Coord, content: MarkerContent, on_click: MarkerClick) -> int:
        if surface_id not in self.surfaces:
            raise RuntimeError(f"surface {surface_id} does not exist")
        handle = next(self._ids)
        self.placed[handle] = PlacedMarker(surface_id, coord, content, on_click)
        self.add_calls += 1
        return handle

    def remove_marker(self, handle: int) -> None:
        del self.placed[handle]
        self.remove_calls += 1

    def get_camera(self, surface_id: str) -> CameraState:
        return self.cameras[surface_id]

    def set_camera(self, surface_id: str, state: CameraState, animated: bool, duration_ms: int = 0) -> None:
        self.cameras[surface_id] = state
        self.camera_calls.append((surface_id, state, animated, duration_ms))

    def set_style(self, surface_id: str, style_id: str) -> None:
        self.styles[surface_id] = style_id

    def set_projection(self, surface_id: str, projection: ProjectionMode) -> None:
        self.projections[surface_id] = projection

    # helpers

    def markers_on(self, surface_id: str) -> list[PlacedMarker]:
        return [m for m in self.placed.values() if m.surface_id == surface_id]

    def marker_for(self, surface_id: str, entity_id: str) -> PlacedMarker:
        matches = [m for m in self.markers_on(surface_id) if m.content.entity_id == entity_id]
        assert len(matches) == 1, f"expected one marker for {entity_id} on {surface_id}, got {len(matches)}"
        return matches[0]


class FakeTransport:
    """Transport double keyed by endpoint path."""

    def __init__(self) -> None:
        self.responses: dict[str, Any] = {}
        self.calls: list[tuple[str, str, dict[str, Any]]] = []
        self.fail: Exception | None = None
        self.gate: asyncio.Event | None = None

    async def get_json(self, endpoint: str, params: Mapping[str, str] | None = None) -> Any:
        self.calls.append(("GET", endpoint, dict(params or {})))
        if self.gate is not None:
            await self.gate.wait()
        if self.fail is not None:
            raise self.fail
        return self.responses.get(endpoint, {})

    async def post_json(self, endpoint: str, payload: Mapping[str, Any]) -> Any:
        self.calls.append(("POST", endpoint, dict(payload)))
        if self.fail is not None:
            raise self.fail
        return self.responses.get(endpoint, {"success": True})

    def calls_to(self, endpoint: str) -> list[tuple[str, str, dict[str, Any]]]:
        return [c for c in self.calls if c[1] == endpoint]


def make_config(**overrides: Any) -> PresenceConfig:
    values: dict[str, Any] = {
        "participant_id": VIEWER_ID,
        "reconcile_debounce": 0.01,
        "surface_ready_backoff": 0.01,
        "surface_ready_retries": 3,
        "auto_refresh_interval": 0.0,
    }
    values.update(overrides)
    return PresenceConfig(**values)


async def settle(delay: float = 0.05) -> None:
    """Let debounce timers fire."""
    await asyncio.sleep(delay)


@pytest.fixture
def config() -> PresenceConfig:
    return make_config()


@pytest.fixture
def renderer() -> FakeRenderer:
    return FakeRenderer()


@pytest.fixture
def transport() -> FakeTransport:
    return FakeTransport()


@pytest.fixture
def rng() -> random.Random:
    return random.Random(1234)
