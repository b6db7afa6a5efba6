"""Data models for presence discovery and rendering."""

from geopresence.models._base import PresenceBaseModel
from geopresence.models.events import CollectRequested, InteractionEvent, ProfileRequested
from geopresence.models.geo import (
    CameraState,
    Coord,
    ObfuscatedPoint,
    ProjectionMode,
    TrueLocation,
    ViewportState,
)
from geopresence.models.presence import (
    CollectibleMarker,
    DiscoveryResult,
    EntityKind,
    PresenceEntity,
    SearchMode,
)
from geopresence.models.radar import RadarMode, RadarPoint

__all__ = [
    "CameraState",
    "CollectRequested",
    "CollectibleMarker",
    "Coord",
    "DiscoveryResult",
    "EntityKind",
    "InteractionEvent",
    "ObfuscatedPoint",
    "PresenceBaseModel",
    "PresenceEntity",
    "ProfileRequested",
    "ProjectionMode",
    "RadarMode",
    "RadarPoint",
    "SearchMode",
    "TrueLocation",
    "ViewportState",
]
