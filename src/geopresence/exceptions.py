"""Custom exception hierarchy for geopresence."""

from __future__ import annotations


class GeoPresenceError(Exception):
    """Base exception for all geopresence errors."""


class GeoPresenceConfigError(GeoPresenceError):
    """Invalid or missing configuration."""


class GeoPresenceTransportError(GeoPresenceError):
    """HTTP-level failure (network, non-2xx, invalid JSON)."""

    def __init__(
        self,
        message: str,
        *,
        status_code: int | None = None,
        endpoint: str = "",
    ) -> None:
        self.status_code = status_code
        self.endpoint = endpoint
        super().__init__(message)


class GeoPresenceApiError(GeoPresenceError):
    """Directory service answered, but reported an application-level error."""

    def __init__(
        self,
        message: str,
        *,
        code: str = "",
        endpoint: str = "",
    ) -> None:
        self.code = code
        self.endpoint = endpoint
        super().__init__(message)


class SurfaceNotReadyError(GeoPresenceError):
    """Rendering surface has not finished initializing."""

    def __init__(self, surface_id: str) -> None:
        self.surface_id = surface_id
        super().__init__(f"Surface {surface_id!r} is not ready")


class SurfaceLifecycleError(GeoPresenceError):
    """Operation requested on a surface that does not exist."""


class GeometryError(GeoPresenceError, ValueError):
    """Coordinate is missing, NaN, or out of range."""
