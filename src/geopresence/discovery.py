"""Discovery of nearby participants and collectible markers."""

from __future__ import annotations

import asyncio
import contextlib
import logging
import math
import random
from collections.abc import Callable
from datetime import UTC, datetime

from geopresence._api import directory as _directory_api
from geopresence._transport import Transport
from geopresence.config import PresenceConfig
from geopresence.exceptions import GeoPresenceApiError, GeoPresenceError, GeoPresenceTransportError, GeometryError
from geopresence.models.geo import Coord, TrueLocation
from geopresence.models.presence import CollectibleMarker, DiscoveryResult, SearchMode
from geopresence.privacy import obfuscate

_logger = logging.getLogger(__name__)

ResultListener = Callable[[DiscoveryResult], None]
WarningListener = Callable[[GeoPresenceError], None]


class DiscoveryClient:
    """Requests nearby entities from the directory service.

    Failures never propagate out of :meth:`discover`: the previous
    successful result is returned marked ``stale`` and a warning is logged
    and handed to *on_warning*. Only fresh results reach subscribers, so a
    failed refresh causes no marker churn downstream.
    """

    def __init__(
        self,
        config: PresenceConfig,
        transport: Transport,
        *,
        on_warning: WarningListener | None = None,
        rng: random.Random | None = None,
    ) -> None:
        self._config = config
        self._transport = transport
        self._on_warning = on_warning
        self._rng = rng
        self._mode = SearchMode.everywhere() if config.global_search else SearchMode.within(config.search_radius_km)
        self._privacy_enabled = config.privacy_enabled
        self._privacy_radius = config.privacy_radius_meters
        self._viewer: TrueLocation | None = None
        self._last: DiscoveryResult | None = None
        self._listeners: list[ResultListener] = []
        self._lock = asyncio.Lock()
        self._refresh_task: asyncio.Task[None] | None = None

    # ------------------------------------------------------------------
    # State
    # ------------------------------------------------------------------

    @property
    def mode(self) -> SearchMode:
        return self._mode

    def set_mode(self, mode: SearchMode) -> None:
        self._mode = mode

    @property
    def last_result(self) -> DiscoveryResult | None:
        return self._last

    @property
    def viewer_location(self) -> TrueLocation | None:
        return self._viewer

    def set_viewer_location(self, location: TrueLocation | None) -> None:
        self._viewer = location

    @property
    def privacy_enabled(self) -> bool:
        return self._privacy_enabled

    def set_privacy_enabled(self, enabled: bool) -> None:
        self._privacy_enabled = enabled

    @property
    def privacy_radius(self) -> float:
        return self._privacy_radius

    def set_privacy_radius(self, radius_meters: float) -> None:
        if not math.isfinite(radius_meters) or radius_meters < 0:
            raise GeometryError(f"radius_meters must be a finite value >= 0, got {radius_meters}")
        self._privacy_radius = radius_meters

    def subscribe(self, listener: ResultListener) -> Callable[[], None]:
        """Register *listener* for fresh results; returns an unsubscribe callable."""
        self._listeners.append(listener)

        def _unsubscribe() -> None:
            with contextlib.suppress(ValueError):
                self._listeners.remove(listener)

        return _unsubscribe

    # ------------------------------------------------------------------
    # Discovery
    # ------------------------------------------------------------------

    async def discover(self, mode: SearchMode | None = None) -> DiscoveryResult:
        """Fetch participants and collectibles for *mode* (defaults to the current mode)."""
        effective = mode or self._mode
        async with self._lock:
            try:
                participants = await _directory_api.fetch_nearby_participants(
                    self._config, self._transport, effective
                )
                markers: list[CollectibleMarker] = []
                if self._viewer is not None:
                    markers = await _directory_api.fetch_nearby_collectibles(
                        self._transport, self._viewer, self._config.collectible_radius_meters
                    )
            except (GeoPresenceTransportError, GeoPresenceApiError) as exc:
                return self._degrade(exc, effective)

            result = DiscoveryResult(
                participants=tuple(participants),
                markers=tuple(markers),
                mode=effective,
                fetched_at=datetime.now(UTC),
            )
            self._last = result

        self._publish(result)
        return result

    async def refresh(self) -> DiscoveryResult:
        """Explicit user refresh."""
        return await self.discover()

    async def on_foreground(self) -> DiscoveryResult | None:
        """Opportunistic refresh when the client regains foreground visibility.

        Skipped while another discovery is already in flight.
        """
        if self._lock.locked():
            _logger.debug("Foreground refresh skipped; discovery already in flight")
            return None
        return await self.discover()

    def _degrade(self, exc: GeoPresenceError, mode: SearchMode) -> DiscoveryResult:
        previous = self._last
        _logger.warning(
            "Discovery failed, keeping %s result: %s",
            "previous" if previous is not None else "empty",
            exc,
        )
        if self._on_warning is not None:
            try:
                self._on_warning(exc)
            except Exception:
                _logger.debug("on_warning callback failed", exc_info=True)
        if previous is None:
            return DiscoveryResult(mode=mode, stale=True)
        return previous.as_stale()

    def _publish(self, result: DiscoveryResult) -> None:
        for listener in list(self._listeners):
            try:
                listener(result)
            except Exception:
                _logger.debug("Discovery listener failed", exc_info=True)

    # ------------------------------------------------------------------
    # Periodic refresh
    # ------------------------------------------------------------------

    def start_auto_refresh(self, interval: float | None = None) -> None:
        """Refresh every *interval* seconds until :meth:`stop_auto_refresh`."""
        period = self._config.auto_refresh_interval if interval is None else interval
        if period <= 0:
            return
        self.stop_auto_refresh()
        self._refresh_task = asyncio.get_running_loop().create_task(self._auto_refresh_loop(period))

    def stop_auto_refresh(self) -> None:
        task = self._refresh_task
        self._refresh_task = None
        if task is not None and not task.done():
            task.cancel()

    @property
    def auto_refresh_running(self) -> bool:
        return self._refresh_task is not None and not self._refresh_task.done()

    async def _auto_refresh_loop(self, period: float) -> None:
        while True:
            await asyncio.sleep(period)
            try:
                await self.discover()
            except Exception:
                _logger.warning("Auto refresh iteration failed", exc_info=True)

    # ------------------------------------------------------------------
    # Own presence
    # ------------------------------------------------------------------

    async def submit_location(self, reading: TrueLocation) -> Coord:
        """Publish the local participant's position, obfuscated when privacy is on.

        Also records *reading* as the viewer location used for collectible
        lookups. Returns the coordinate that was actually sent.

        Raises
        ------
        GeoPresenceTransportError, GeoPresenceApiError
            If the directory rejects or cannot receive the update.
        """
        self._viewer = reading
        published = obfuscate(
            reading,
            self._privacy_radius,
            self._privacy_enabled,
            rng=self._rng,
        )
        await _directory_api.submit_location(self._config, self._transport, published, reading)
        return published

    async def set_visibility(self, visible: bool) -> bool:
        """Opt in to or out of discovery by other participants."""
        return await _directory_api.toggle_visibility(self._config, self._transport, visible)
