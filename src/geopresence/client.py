"""High-level async engine tying discovery, synchronization, radar and viewports together."""

from __future__ import annotations

import logging
import random
from collections.abc import Callable
from typing import Any

import aiohttp

from geopresence._transport import JsonTransport, Transport
from geopresence.config import PresenceConfig
from geopresence.discovery import DiscoveryClient, WarningListener
from geopresence.exceptions import GeoPresenceError
from geopresence.models.geo import Coord, ProjectionMode, TrueLocation
from geopresence.models.presence import DiscoveryResult, SearchMode
from geopresence.models.radar import RadarMode, RadarPoint
from geopresence.radar import RadarProjector
from geopresence.surface import Renderer
from geopresence.synchronizer import EventListener, PresenceSynchronizer
from geopresence.viewport import ViewportLifecycle

_logger = logging.getLogger(__name__)


class PresenceClient:
    """Async presence engine for one local participant.

    Usage::

        async with PresenceClient(config, renderer) as client:
            await client.submit_location(TrueLocation(latitude=52.37, longitude=4.9))
            result = await client.refresh()
            points = client.radar_points()

    Without a *renderer* the client still discovers and projects the
    radar; only map surfaces are unavailable.
    """

    def __init__(
        self,
        config: PresenceConfig,
        renderer: Renderer | None = None,
        *,
        session: aiohttp.ClientSession | None = None,
        transport: Transport | None = None,
        rng: random.Random | None = None,
        on_event: EventListener | None = None,
        on_warning: WarningListener | None = None,
    ) -> None:
        self._config = config
        self._renderer = renderer
        self._external_session = session is not None
        self._http_session = session
        self._transport = transport
        self._rng = rng
        self._on_event = on_event
        self._on_warning = on_warning
        self._discovery: DiscoveryClient | None = None
        self._synchronizer: PresenceSynchronizer | None = None
        self._viewport: ViewportLifecycle | None = None
        self._radar = RadarProjector.from_config(config)
        self._unsubscribe: Callable[[], None] | None = None

    # ------------------------------------------------------------------
    # Context manager lifecycle
    # ------------------------------------------------------------------

    async def __aenter__(self) -> PresenceClient:
        if self._transport is None:
            if self._http_session is None:
                self._http_session = aiohttp.ClientSession()
            self._transport = JsonTransport(self._config, self._http_session)
        self._discovery = DiscoveryClient(
            self._config,
            self._transport,
            on_warning=self._on_warning,
            rng=self._rng,
        )
        self._synchronizer = PresenceSynchronizer(self._config, rng=self._rng, on_event=self._on_event)
        self._unsubscribe = self._discovery.subscribe(self._synchronizer.update)
        if self._renderer is not None:
            self._viewport = ViewportLifecycle(self._config, self._renderer, self._synchronizer)
            self._viewport.mount()
        return self

    async def __aexit__(self, *exc: Any) -> None:
        if self._discovery is not None:
            self._discovery.stop_auto_refresh()
        if self._unsubscribe is not None:
            self._unsubscribe()
            self._unsubscribe = None
        if self._viewport is not None:
            self._viewport.unmount()
            self._viewport = None
        if self._synchronizer is not None:
            self._synchronizer.close()
            self._synchronizer = None
        self._discovery = None
        if not self._external_session and self._http_session is not None:
            await self._http_session.close()
            self._http_session = None
            self._transport = None

    def _require_discovery(self) -> DiscoveryClient:
        if self._discovery is None:
            raise GeoPresenceError("Client not initialized. Use 'async with PresenceClient(...) as client:'")
        return self._discovery

    def _require_synchronizer(self) -> PresenceSynchronizer:
        if self._synchronizer is None:
            raise GeoPresenceError("Client not initialized. Use 'async with PresenceClient(...) as client:'")
        return self._synchronizer

    def _require_viewport(self) -> ViewportLifecycle:
        if self._viewport is None:
            raise GeoPresenceError("No renderer attached; map surfaces are unavailable")
        return self._viewport

    # ------------------------------------------------------------------
    # Components
    # ------------------------------------------------------------------

    @property
    def config(self) -> PresenceConfig:
        return self._config

    @property
    def discovery(self) -> DiscoveryClient:
        return self._require_discovery()

    @property
    def synchronizer(self) -> PresenceSynchronizer:
        return self._require_synchronizer()

    @property
    def viewport(self) -> ViewportLifecycle:
        return self._require_viewport()

    @property
    def radar(self) -> RadarProjector:
        return self._radar

    @property
    def last_result(self) -> DiscoveryResult | None:
        return self._require_discovery().last_result

    # ------------------------------------------------------------------
    # Discovery
    # ------------------------------------------------------------------

    async def refresh(self) -> DiscoveryResult:
        return await self._require_discovery().refresh()

    async def on_foreground(self) -> DiscoveryResult | None:
        return await self._require_discovery().on_foreground()

    async def set_search_mode(self, mode: SearchMode) -> DiscoveryResult:
        """Switch between radius and global search and refresh immediately."""
        discovery = self._require_discovery()
        discovery.set_mode(mode)
        _logger.debug("Search mode changed: %s", mode.query_params())
        return await discovery.discover()

    def start_auto_refresh(self, interval: float | None = None) -> None:
        self._require_discovery().start_auto_refresh(interval)

    def stop_auto_refresh(self) -> None:
        self._require_discovery().stop_auto_refresh()

    # ------------------------------------------------------------------
    # Own presence
    # ------------------------------------------------------------------

    def set_privacy_enabled(self, enabled: bool) -> None:
        """Controls whether *published* location is obfuscated.

        Other participants' markers are obfuscated regardless.
        """
        self._require_discovery().set_privacy_enabled(enabled)

    def set_privacy_radius(self, radius_meters: float) -> None:
        """Change the obfuscation radius for published and rendered positions.

        Every surface is re-placed with the new radius.
        """
        self._require_discovery().set_privacy_radius(radius_meters)
        self._require_synchronizer().set_privacy_radius(radius_meters)

    async def submit_location(self, reading: TrueLocation) -> Coord:
        """Publish the viewer's position and show it on every surface."""
        published = await self._require_discovery().submit_location(reading)
        self._require_synchronizer().set_viewer_location(reading)
        if self._viewport is not None:
            self._viewport.set_viewer_location(reading)
        return published

    async def set_visibility(self, visible: bool) -> bool:
        return await self._require_discovery().set_visibility(visible)

    def set_event_listener(self, listener: EventListener | None) -> None:
        self._on_event = listener
        if self._synchronizer is not None:
            self._synchronizer.set_event_listener(listener)

    # ------------------------------------------------------------------
    # Radar
    # ------------------------------------------------------------------

    def radar_points(self, mode: RadarMode | None = None) -> list[RadarPoint]:
        """Project the last result around the viewer; empty without a location fix."""
        discovery = self._require_discovery()
        viewer = discovery.viewer_location
        result = discovery.last_result
        if viewer is None or result is None:
            return []
        if mode is not None:
            self._radar.set_mode(mode)
        return self._radar.project_result(viewer, result)

    # ------------------------------------------------------------------
    # Map presentation
    # ------------------------------------------------------------------

    def open_fullscreen(self) -> bool:
        return self._require_viewport().open()

    def close_fullscreen(self) -> bool:
        return self._require_viewport().close()

    def set_style(self, style_id: str) -> None:
        self._require_viewport().set_style(style_id)

    def set_projection_mode(self, projection: ProjectionMode) -> None:
        self._require_viewport().set_projection_mode(projection)
