"""geopresence - Async proximity presence engine with privacy-preserving map markers."""

from importlib.metadata import PackageNotFoundError, version

try:
    __version__ = version("geopresence")
except PackageNotFoundError:
    __version__ = "0+local"
from geopresence.client import PresenceClient
from geopresence.config import PresenceConfig
from geopresence.discovery import DiscoveryClient
from geopresence.exceptions import (
    GeometryError,
    GeoPresenceApiError,
    GeoPresenceConfigError,
    GeoPresenceError,
    GeoPresenceTransportError,
    SurfaceLifecycleError,
    SurfaceNotReadyError,
)
from geopresence.models import (
    CameraState,
    CollectibleMarker,
    CollectRequested,
    Coord,
    DiscoveryResult,
    EntityKind,
    InteractionEvent,
    ObfuscatedPoint,
    PresenceEntity,
    ProfileRequested,
    ProjectionMode,
    RadarMode,
    RadarPoint,
    SearchMode,
    TrueLocation,
    ViewportState,
)
from geopresence.privacy import obfuscate
from geopresence.radar import RadarProjector
from geopresence.surface import MarkerContent, Renderer, Surface
from geopresence.synchronizer import PresenceSynchronizer, SyncState
from geopresence.viewport import FullscreenState, ViewportLifecycle

__all__ = [
    "__version__",
    "CameraState",
    "CollectRequested",
    "CollectibleMarker",
    "Coord",
    "DiscoveryClient",
    "DiscoveryResult",
    "EntityKind",
    "FullscreenState",
    "GeoPresenceApiError",
    "GeoPresenceConfigError",
    "GeoPresenceError",
    "GeoPresenceTransportError",
    "GeometryError",
    "InteractionEvent",
    "MarkerContent",
    "ObfuscatedPoint",
    "PresenceClient",
    "PresenceConfig",
    "PresenceEntity",
    "PresenceSynchronizer",
    "ProfileRequested",
    "ProjectionMode",
    "RadarMode",
    "RadarPoint",
    "RadarProjector",
    "Renderer",
    "SearchMode",
    "Surface",
    "SurfaceLifecycleError",
    "SurfaceNotReadyError",
    "SyncState",
    "TrueLocation",
    "ViewportLifecycle",
    "ViewportState",
    "obfuscate",
]
