"""Inline/fullscreen surface lifecycle and camera handoff.

The inline surface lives as long as the lifecycle is mounted. The
fullscreen surface follows::

    CLOSED -> OPENING -> OPEN -> CLOSING -> CLOSED

Open and close requests that arrive in any other state are no-ops, so a
doubled escape key or a toggle racing an explicit close is harmless.
"""

from __future__ import annotations

import logging
from enum import StrEnum

from geopresence._constants import (
    VIEWER_ZOOM_GLOBE,
    VIEWER_ZOOM_MERCATOR,
    WORLD_ZOOM_GLOBE,
    WORLD_ZOOM_MERCATOR,
)
from geopresence.config import PresenceConfig
from geopresence.exceptions import SurfaceLifecycleError
from geopresence.models.geo import CameraState, Coord, ProjectionMode, ViewportState
from geopresence.surface import FULLSCREEN_SURFACE_ID, INLINE_SURFACE_ID, Renderer, Surface, SurfaceRole
from geopresence.synchronizer import PresenceSynchronizer

_logger = logging.getLogger(__name__)


class FullscreenState(StrEnum):
    CLOSED = "closed"
    OPENING = "opening"
    OPEN = "open"
    CLOSING = "closing"


class CloseReason(StrEnum):
    EXPLICIT = "explicit"
    ESCAPE = "escape"
    EXTERNAL = "external"


def world_view(style_id: str, projection: ProjectionMode) -> ViewportState:
    zoom = WORLD_ZOOM_GLOBE if projection == ProjectionMode.GLOBE else WORLD_ZOOM_MERCATOR
    return ViewportState(
        center=Coord(latitude=0.0, longitude=0.0),
        zoom=zoom,
        style_id=style_id,
        projection_mode=projection,
    )


class ViewportLifecycle:
    """Creates, tears down and hands camera state between the two map surfaces."""

    def __init__(
        self,
        config: PresenceConfig,
        renderer: Renderer,
        synchronizer: PresenceSynchronizer,
        *,
        projection: ProjectionMode = ProjectionMode.GLOBE,
    ) -> None:
        self._config = config
        self._renderer = renderer
        self._synchronizer = synchronizer
        self._viewport = world_view(config.default_style_id, projection)
        self._inline = Surface(INLINE_SURFACE_ID, renderer, role=SurfaceRole.INLINE)
        self._fullscreen: Surface | None = None
        self._state = FullscreenState.CLOSED
        self._mounted = False
        self._inline_interacted = False
        self._viewer: Coord | None = None

    # ------------------------------------------------------------------
    # Properties
    # ------------------------------------------------------------------

    @property
    def state(self) -> FullscreenState:
        return self._state

    @property
    def mounted(self) -> bool:
        return self._mounted

    @property
    def viewport(self) -> ViewportState:
        return self._viewport

    @property
    def inline_surface(self) -> Surface:
        return self._inline

    @property
    def fullscreen_surface(self) -> Surface | None:
        return self._fullscreen

    def live_surfaces(self) -> list[Surface]:
        surfaces = [self._inline] if self._mounted else []
        if self._fullscreen is not None:
            surfaces.append(self._fullscreen)
        return surfaces

    # ------------------------------------------------------------------
    # Inline surface
    # ------------------------------------------------------------------

    def mount(self) -> None:
        """Create the inline surface and hand it to the synchronizer."""
        if self._mounted:
            return
        self._renderer.create_surface(INLINE_SURFACE_ID, self._viewer_or_world())
        self._mounted = True
        self._synchronizer.attach_surface(self._inline)
        _logger.debug("Inline surface mounted")

    def unmount(self) -> None:
        """Close fullscreen (if open) and destroy the inline surface."""
        if not self._mounted:
            return
        self.close(CloseReason.EXTERNAL)
        self._synchronizer.detach_surface(INLINE_SURFACE_ID)
        self._renderer.destroy_surface(INLINE_SURFACE_ID)
        self._mounted = False
        self._inline_interacted = False
        _logger.debug("Inline surface unmounted")

    def mark_inline_interaction(self) -> None:
        """The user panned or zoomed the inline map; fullscreen opens on its framing."""
        self._inline_interacted = True

    def set_viewer_location(self, location: Coord | None) -> None:
        """Recenter an untouched inline map on the viewer with a smooth transition."""
        first_fix = self._viewer is None and location is not None
        self._viewer = location
        if first_fix and self._mounted and not self._inline_interacted and location is not None:
            camera = CameraState(center=location, zoom=self._viewer_zoom())
            self._inline.set_camera(camera, animated=True, duration_ms=2000)
            self._viewport = self._viewport.with_camera(camera)

    # ------------------------------------------------------------------
    # Fullscreen transitions
    # ------------------------------------------------------------------

    def open(self) -> bool:
        """Open the fullscreen surface. Returns ``False`` when already open or in transition."""
        if not self._mounted:
            raise SurfaceLifecycleError("Cannot open fullscreen before the inline surface is mounted")
        if self._state != FullscreenState.CLOSED:
            _logger.debug("Fullscreen open ignored in state %s", self._state)
            return False

        self._state = FullscreenState.OPENING
        seed = self._seed_viewport()
        try:
            self._renderer.create_surface(FULLSCREEN_SURFACE_ID, seed)
        except Exception:
            self._state = FullscreenState.CLOSED
            raise
        self._fullscreen = Surface(FULLSCREEN_SURFACE_ID, self._renderer, role=SurfaceRole.FULLSCREEN)
        self._synchronizer.attach_surface(self._fullscreen)
        self._state = FullscreenState.OPEN
        _logger.debug("Fullscreen opened at zoom=%.2f", seed.zoom)
        return True

    def close(self, reason: CloseReason = CloseReason.EXPLICIT) -> bool:
        """Close fullscreen and hand its camera to the inline surface.

        Returns ``False`` (and does nothing) unless fullscreen is open.
        """
        if self._state != FullscreenState.OPEN or self._fullscreen is None:
            _logger.debug("Fullscreen close (%s) ignored in state %s", reason, self._state)
            return False

        self._state = FullscreenState.CLOSING
        surface = self._fullscreen
        camera: CameraState | None
        try:
            camera = surface.get_camera()
        except Exception:
            _logger.warning("Could not read fullscreen camera; inline framing kept", exc_info=True)
            camera = None

        try:
            self._synchronizer.detach_surface(FULLSCREEN_SURFACE_ID)
            self._renderer.destroy_surface(FULLSCREEN_SURFACE_ID)
        finally:
            self._fullscreen = None
            self._state = FullscreenState.CLOSED

        if camera is not None and self._mounted:
            self._viewport = self._viewport.with_camera(camera)
            self._inline.set_camera(camera, animated=True, duration_ms=self._config.handoff_duration_ms)
            self._inline_interacted = True
        _logger.debug("Fullscreen closed (%s)", reason)
        return True

    def on_escape(self) -> bool:
        return self.close(CloseReason.ESCAPE)

    def toggle(self) -> bool:
        """Flip fullscreen; returns the new open/closed flag."""
        if self._state == FullscreenState.CLOSED:
            self.open()
        else:
            self.close(CloseReason.EXTERNAL)
        return self._state == FullscreenState.OPEN

    def set_fullscreen(self, wanted: bool) -> bool:
        """Apply an externally driven fullscreen flag. Returns whether anything changed."""
        if wanted:
            return self.open()
        return self.close(CloseReason.EXTERNAL)

    # ------------------------------------------------------------------
    # Presentation
    # ------------------------------------------------------------------

    def set_style(self, style_id: str) -> None:
        """Switch map style on every live surface and re-place markers."""
        if style_id == self._viewport.style_id:
            return
        self._viewport = self._viewport.model_copy(update={"style_id": style_id})
        for surface in self.live_surfaces():
            surface.set_style(style_id)
            self._synchronizer.request_reconcile(surface.surface_id, force=True)

    def set_projection_mode(self, projection: ProjectionMode) -> None:
        if projection == self._viewport.projection_mode:
            return
        self._viewport = self._viewport.model_copy(update={"projection_mode": projection})
        for surface in self.live_surfaces():
            surface.set_projection(projection)
            self._synchronizer.request_reconcile(surface.surface_id, force=True)

    # ------------------------------------------------------------------
    # Seeding
    # ------------------------------------------------------------------

    def _viewer_zoom(self) -> float:
        return VIEWER_ZOOM_GLOBE if self._viewport.projection_mode == ProjectionMode.GLOBE else VIEWER_ZOOM_MERCATOR

    def _viewer_or_world(self) -> ViewportState:
        if self._viewer is not None:
            return self._viewport.with_camera(CameraState(center=self._viewer, zoom=self._viewer_zoom()))
        return world_view(self._viewport.style_id, self._viewport.projection_mode)

    def _seed_viewport(self) -> ViewportState:
        if self._inline_interacted:
            try:
                return self._viewport.with_camera(self._inline.get_camera())
            except Exception:
                _logger.warning("Could not read inline camera; seeding fullscreen from location", exc_info=True)
        return self._viewer_or_world()
