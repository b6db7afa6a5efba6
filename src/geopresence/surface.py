"""Rendering surface abstraction.

The map renderer is an external collaborator. Both the inline and the
fullscreen map are represented by the same :class:`Surface` type so that
synchronization and lifecycle code never special-cases either one.
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass
from enum import StrEnum
from typing import Any, Protocol

from geopresence.exceptions import SurfaceNotReadyError
from geopresence.models.geo import CameraState, Coord, ProjectionMode, ViewportState
from geopresence.models.presence import EntityKind

INLINE_SURFACE_ID = "inline"
FULLSCREEN_SURFACE_ID = "fullscreen"


class SurfaceRole(StrEnum):
    INLINE = "inline"
    FULLSCREEN = "fullscreen"


@dataclass(frozen=True, slots=True)
class MarkerContent:
    """What a marker displays; the renderer decides how it looks."""

    kind: EntityKind
    entity_id: str
    label: str
    subtitle: str | None = None
    media_ref: str | None = None


MarkerClick = Callable[[], None]


class Renderer(Protocol):
    """Structural interface of the map-rendering collaborator.

    Handles returned by :meth:`add_marker` are opaque; they are only ever
    passed back to :meth:`remove_marker`.
    """

    def create_surface(self, surface_id: str, viewport: ViewportState) -> None: ...

    def destroy_surface(self, surface_id: str) -> None: ...

    def is_ready(self, surface_id: str) -> bool: ...

    def add_marker(self, surface_id: str, coord: Coord, content: MarkerContent, on_click: MarkerClick) -> Any: ...

    def remove_marker(self, handle: Any) -> None: ...

    def get_camera(self, surface_id: str) -> CameraState: ...

    def set_camera(self, surface_id: str, state: CameraState, animated: bool, duration_ms: int = 0) -> None: ...

    def set_style(self, surface_id: str, style_id: str) -> None: ...

    def set_projection(self, surface_id: str, projection: ProjectionMode) -> None: ...


class Surface:
    """One rendering target bound to a renderer under a stable ``surface_id``."""

    def __init__(self, surface_id: str, renderer: Renderer, *, role: SurfaceRole) -> None:
        self.surface_id = surface_id
        self.role = role
        self._renderer = renderer

    def __repr__(self) -> str:
        return f"Surface({self.surface_id!r}, role={self.role.value})"

    @property
    def is_ready(self) -> bool:
        return bool(self._renderer.is_ready(self.surface_id))

    def add_marker(self, coord: Coord, content: MarkerContent, on_click: MarkerClick) -> Any:
        return self._renderer.add_marker(self.surface_id, coord, content, on_click)

    def remove_marker(self, handle: Any) -> None:
        self._renderer.remove_marker(handle)

    def get_camera(self) -> CameraState:
        if not self.is_ready:
            raise SurfaceNotReadyError(self.surface_id)
        return self._renderer.get_camera(self.surface_id)

    def set_camera(self, state: CameraState, *, animated: bool = False, duration_ms: int = 0) -> None:
        self._renderer.set_camera(self.surface_id, state, animated, duration_ms)

    def set_style(self, style_id: str) -> None:
        self._renderer.set_style(self.surface_id, style_id)

    def set_projection(self, projection: ProjectionMode) -> None:
        self._renderer.set_projection(self.surface_id, projection)
