"""Marker reconciliation across rendering surfaces.

This is the only component allowed to create or remove marker handles.
Each attached surface runs its own small state machine::

    IDLE -> PENDING_RECONCILE -> RECONCILING -> IDLE

Triggers (a new discovery result, a surface becoming ready, a privacy or
viewer change) move a surface to ``PENDING_RECONCILE`` and (re)arm a
debounce timer, so a burst of triggers collapses into one pass that uses
the latest data. A pass whose input is identical to the last reconciled
input for that surface is skipped entirely.
"""

from __future__ import annotations

import logging
import random
from collections.abc import Callable
from dataclasses import dataclass, field
from enum import StrEnum
from typing import Any

from geopresence._redact import mask_identifier
from geopresence.config import PresenceConfig
from geopresence.exceptions import SurfaceLifecycleError
from geopresence.models.events import CollectRequested, InteractionEvent, ProfileRequested
from geopresence.models.geo import TrueLocation
from geopresence.models.presence import CollectibleMarker, DiscoveryResult, EntityKind, PresenceEntity
from geopresence.privacy import obfuscate
from geopresence.scheduler import TimerScheduler
from geopresence.surface import MarkerClick, MarkerContent, Surface

_logger = logging.getLogger(__name__)

EventListener = Callable[[InteractionEvent], None]

_VIEWER_KEY = "viewer:self"


class SyncState(StrEnum):
    IDLE = "idle"
    PENDING_RECONCILE = "pending_reconcile"
    RECONCILING = "reconciling"


@dataclass(frozen=True, slots=True)
class RenderedMarker:
    """A live marker handle. At most one exists per ``(kind, entity_id, surface_id)``."""

    kind: EntityKind
    entity_id: str
    surface_id: str
    handle: Any


@dataclass(frozen=True, slots=True)
class _RenderItem:
    key: str
    kind: EntityKind
    entity_id: str
    location: TrueLocation
    obfuscated: bool
    content: MarkerContent
    fingerprint: tuple[Any, ...]


@dataclass(slots=True)
class _SurfaceSync:
    surface: Surface
    state: SyncState = SyncState.IDLE
    last_signature: tuple[Any, ...] | None = None
    force: bool = False
    dirty: bool = False
    ready_attempts: int = 0
    passes: int = 0
    skipped: int = 0
    operations: dict[str, int] = field(default_factory=lambda: {"add": 0, "remove": 0})


def entity_key(kind: EntityKind, entity_id: str) -> str:
    """Handle-table key for an entity; kinds never collide."""
    return f"{kind.value}:{entity_id}"


class PresenceSynchronizer:
    """Keeps every attached surface's markers in line with the latest discovery result.

    Parameters
    ----------
    config : PresenceConfig
        Supplies the debounce window, readiness retry policy and privacy radius.
    scheduler : TimerScheduler, optional
        Timer owner. One is created when omitted.
    rng : random.Random, optional
        Randomness for privacy offsets (tests pass a seeded instance).
    on_event : callable, optional
        Receives :class:`ProfileRequested` / :class:`CollectRequested` when
        a marker is activated.
    """

    def __init__(
        self,
        config: PresenceConfig,
        *,
        scheduler: TimerScheduler | None = None,
        rng: random.Random | None = None,
        on_event: EventListener | None = None,
    ) -> None:
        self._config = config
        self._scheduler = scheduler or TimerScheduler()
        self._rng = rng
        self._on_event = on_event
        self._debounce = config.reconcile_debounce
        self._privacy_radius = config.privacy_radius_meters
        self._surfaces: dict[str, _SurfaceSync] = {}
        self._handles: dict[tuple[str, str], RenderedMarker] = {}
        self._result: DiscoveryResult | None = None
        self._viewer: TrueLocation | None = None
        self._closed = False

    # ------------------------------------------------------------------
    # Inputs
    # ------------------------------------------------------------------

    def update(self, result: DiscoveryResult) -> None:
        """Accept a new discovery result and schedule reconciliation everywhere."""
        self._result = result
        self.request_reconcile()

    def set_viewer_location(self, location: TrueLocation | None) -> None:
        """Show (or hide) the local participant's own marker at its precise position."""
        self._viewer = location
        self.request_reconcile()

    @property
    def privacy_radius(self) -> float:
        return self._privacy_radius

    def set_privacy_radius(self, radius_meters: float) -> None:
        if radius_meters < 0:
            raise ValueError("radius_meters must be >= 0")
        self._privacy_radius = radius_meters
        self.request_reconcile()

    def set_event_listener(self, listener: EventListener | None) -> None:
        self._on_event = listener

    @property
    def latest_result(self) -> DiscoveryResult | None:
        return self._result

    # ------------------------------------------------------------------
    # Surfaces
    # ------------------------------------------------------------------

    def attach_surface(self, surface: Surface) -> None:
        """Start managing *surface*; it gets a reconciliation once ready."""
        if self._closed:
            raise SurfaceLifecycleError("Synchronizer is closed")
        if surface.surface_id in self._surfaces:
            _logger.debug("Surface %s already attached", surface.surface_id)
            return
        self._surfaces[surface.surface_id] = _SurfaceSync(surface=surface)
        _logger.debug("Attached %r", surface)
        self.request_reconcile(surface.surface_id)

    def detach_surface(self, surface_id: str) -> None:
        """Stop managing a surface and remove every marker it holds.

        Must run before the renderer destroys the surface.
        """
        sync = self._surfaces.pop(surface_id, None)
        if sync is None:
            return
        self._scheduler.cancel_prefix(f"{surface_id}:")
        removed = 0
        for key in [k for k in self._handles if k[1] == surface_id]:
            self._remove_handle(sync.surface, key)
            removed += 1
        _logger.debug("Detached surface %s (removed %d markers)", surface_id, removed)

    def notify_surface_ready(self, surface_id: str) -> None:
        """Readiness signal from the renderer: reconcile without waiting for backoff."""
        sync = self._surfaces.get(surface_id)
        if sync is None:
            return
        self._scheduler.cancel(f"{surface_id}:ready")
        sync.ready_attempts = 0
        self.request_reconcile(surface_id)

    def surface_ids(self) -> list[str]:
        return list(self._surfaces)

    def state(self, surface_id: str) -> SyncState:
        sync = self._surfaces.get(surface_id)
        if sync is None:
            raise SurfaceLifecycleError(f"Surface {surface_id!r} is not attached")
        return sync.state

    def pass_count(self, surface_id: str) -> int:
        sync = self._surfaces.get(surface_id)
        return sync.passes if sync is not None else 0

    def operation_counts(self, surface_id: str) -> dict[str, int]:
        """Cumulative marker adds/removes performed on *surface_id*."""
        sync = self._surfaces.get(surface_id)
        return dict(sync.operations) if sync is not None else {"add": 0, "remove": 0}

    def markers(self, surface_id: str | None = None) -> list[RenderedMarker]:
        return [m for (_, sid), m in self._handles.items() if surface_id is None or sid == surface_id]

    # ------------------------------------------------------------------
    # Scheduling
    # ------------------------------------------------------------------

    def request_reconcile(self, surface_id: str | None = None, *, force: bool = False) -> None:
        """Mark one surface (or all) as pending and (re)arm its debounce timer.

        ``force`` bypasses change detection for the next pass, e.g. after a
        style change wiped the renderer's marker layer.
        """
        if self._closed:
            return
        targets = [surface_id] if surface_id is not None else list(self._surfaces)
        for sid in targets:
            sync = self._surfaces.get(sid)
            if sync is None:
                continue
            sync.force = sync.force or force
            if sync.state == SyncState.RECONCILING:
                sync.dirty = True
                continue
            sync.state = SyncState.PENDING_RECONCILE
            self._scheduler.schedule(f"{sid}:reconcile", self._debounce, lambda sid=sid: self._run(sid))

    def reconcile_now(self, surface_id: str | None = None) -> None:
        """Skip the debounce window and reconcile pending surfaces immediately."""
        targets = [surface_id] if surface_id is not None else list(self._surfaces)
        for sid in targets:
            sync = self._surfaces.get(sid)
            if sync is None or sync.state != SyncState.PENDING_RECONCILE:
                continue
            self._scheduler.cancel(f"{sid}:reconcile")
            self._run(sid)

    # ------------------------------------------------------------------
    # Reconciliation
    # ------------------------------------------------------------------

    def _run(self, surface_id: str) -> None:
        sync = self._surfaces.get(surface_id)
        if sync is None or self._closed:
            return
        if sync.state == SyncState.RECONCILING:
            sync.dirty = True
            return

        if not sync.surface.is_ready:
            self._retry_when_ready(sync)
            return
        sync.ready_attempts = 0
        self._scheduler.cancel(f"{surface_id}:ready")

        items = self._render_items()
        signature = (self._privacy_radius, tuple(sorted(item.fingerprint for item in items)))
        if not sync.force and signature == sync.last_signature:
            sync.state = SyncState.IDLE
            sync.skipped += 1
            _logger.debug("Surface %s unchanged; reconciliation skipped", surface_id)
            return

        sync.state = SyncState.RECONCILING
        sync.force = False
        try:
            complete = self._reconcile(sync, items)
        finally:
            sync.state = SyncState.IDLE
        sync.passes += 1
        # An incomplete pass must not satisfy change detection next time.
        sync.last_signature = signature if complete else None

        if sync.dirty:
            sync.dirty = False
            self.request_reconcile(surface_id)

    def _retry_when_ready(self, sync: _SurfaceSync) -> None:
        surface_id = sync.surface.surface_id
        if sync.ready_attempts >= self._config.surface_ready_retries:
            _logger.warning(
                "Surface %s still not ready after %d retries; dropping pending reconciliation",
                surface_id,
                sync.ready_attempts,
            )
            sync.ready_attempts = 0
            sync.state = SyncState.IDLE
            return
        delay = self._config.surface_ready_backoff * (2**sync.ready_attempts)
        sync.ready_attempts += 1
        _logger.debug(
            "Surface %s not ready; retry %d/%d in %.3fs",
            surface_id,
            sync.ready_attempts,
            self._config.surface_ready_retries,
            delay,
        )
        self._scheduler.schedule(f"{surface_id}:ready", delay, lambda: self._run(surface_id))

    def _reconcile(self, sync: _SurfaceSync, items: list[_RenderItem]) -> bool:
        surface = sync.surface
        surface_id = surface.surface_id
        present = {item.key for item in items}
        complete = True

        # (1) entities that disappeared
        for key in [k for k in self._handles if k[1] == surface_id and k[0] not in present]:
            self._remove_handle(surface, key, sync)

        # (2) fresh handle per present entity at a newly sampled point
        for item in items:
            key = (item.key, surface_id)
            if key in self._handles:
                self._remove_handle(surface, key, sync)
            coord = obfuscate(item.location, self._privacy_radius, item.obfuscated, rng=self._rng)
            try:
                handle = surface.add_marker(coord, item.content, self._click_handler(item, surface_id))
            except Exception:
                _logger.warning("Adding marker %s on %s failed", item.key, surface_id, exc_info=True)
                complete = False
                continue
            sync.operations["add"] += 1
            # (3) the click handler above is bound to this handle's entity
            self._handles[key] = RenderedMarker(
                kind=item.kind, entity_id=item.entity_id, surface_id=surface_id, handle=handle
            )

        _logger.debug(
            "Reconciled %s: %d markers (adds=%d removes=%d)",
            surface_id,
            len(items),
            sync.operations["add"],
            sync.operations["remove"],
        )
        return complete

    def _remove_handle(self, surface: Surface, key: tuple[str, str], sync: _SurfaceSync | None = None) -> None:
        marker = self._handles.pop(key)
        try:
            surface.remove_marker(marker.handle)
        except Exception:
            _logger.warning("Removing marker %s on %s failed", key[0], key[1], exc_info=True)
        if sync is not None:
            sync.operations["remove"] += 1

    # ------------------------------------------------------------------
    # Entity flattening
    # ------------------------------------------------------------------

    def _render_items(self) -> list[_RenderItem]:
        items: list[_RenderItem] = []
        if self._viewer is not None:
            items.append(
                _RenderItem(
                    key=_VIEWER_KEY,
                    kind=EntityKind.VIEWER,
                    entity_id=self._config.participant_id,
                    location=self._viewer,
                    obfuscated=False,
                    content=MarkerContent(
                        kind=EntityKind.VIEWER,
                        entity_id=self._config.participant_id,
                        label=mask_identifier(self._config.participant_id, keep=8),
                        subtitle="Your location",
                    ),
                    fingerprint=(_VIEWER_KEY, None, self._viewer.latitude, self._viewer.longitude, False),
                )
            )

        result = self._result
        if result is None:
            return items

        seen: set[str] = set()
        for participant in result.participants:
            item = self._participant_item(participant)
            if item is not None and item.key not in seen:
                seen.add(item.key)
                items.append(item)
        for marker in result.markers:
            item = self._collectible_item(marker)
            if item is not None and item.key not in seen:
                seen.add(item.key)
                items.append(item)
        return items

    def _participant_item(self, participant: PresenceEntity) -> _RenderItem | None:
        location = participant.true_location
        if location is None:
            _logger.debug("Skipping participant %s without usable coordinates", mask_identifier(participant.id))
            return None
        key = entity_key(EntityKind.PARTICIPANT, participant.id)
        distance = participant.distance_from_viewer
        return _RenderItem(
            key=key,
            kind=EntityKind.PARTICIPANT,
            entity_id=participant.id,
            location=location,
            obfuscated=True,
            content=MarkerContent(
                kind=EntityKind.PARTICIPANT,
                entity_id=participant.id,
                label=mask_identifier(participant.id),
                subtitle=f"{distance / 1000.0:.2f}km away" if distance is not None else None,
            ),
            fingerprint=(key, distance, location.latitude, location.longitude, False),
        )

    def _collectible_item(self, marker: CollectibleMarker) -> _RenderItem | None:
        location = marker.true_location
        if location is None:
            _logger.debug("Skipping collectible %s without usable coordinates", marker.id)
            return None
        key = entity_key(EntityKind.COLLECTIBLE, marker.id)
        distance = marker.distance_from_viewer
        return _RenderItem(
            key=key,
            kind=EntityKind.COLLECTIBLE,
            entity_id=marker.id,
            location=location,
            obfuscated=False,
            content=MarkerContent(
                kind=EntityKind.COLLECTIBLE,
                entity_id=marker.id,
                label=marker.name or "Collectible",
                subtitle=f"{round(distance)}m away" if distance is not None else None,
                media_ref=marker.media_ref,
            ),
            fingerprint=(key, distance, location.latitude, location.longitude, marker.collected),
        )

    def _click_handler(self, item: _RenderItem, surface_id: str) -> MarkerClick:
        if item.kind == EntityKind.PARTICIPANT:
            return lambda: self._emit(ProfileRequested(participant_id=item.entity_id, surface_id=surface_id))
        if item.kind == EntityKind.COLLECTIBLE:
            return lambda: self._emit(CollectRequested(marker_id=item.entity_id, surface_id=surface_id))
        return lambda: None

    def _emit(self, event: InteractionEvent) -> None:
        if self._on_event is None:
            _logger.debug("No listener for %s", type(event).__name__)
            return
        try:
            self._on_event(event)
        except Exception:
            _logger.debug("Interaction listener failed", exc_info=True)

    # ------------------------------------------------------------------
    # Teardown
    # ------------------------------------------------------------------

    def close(self) -> None:
        """Cancel every timer and remove every marker from every surface."""
        if self._closed:
            return
        self._scheduler.close()
        for surface_id in list(self._surfaces):
            self.detach_surface(surface_id)
        self._closed = True
