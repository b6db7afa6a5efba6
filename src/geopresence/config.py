"""Client configuration for geopresence."""

from __future__ import annotations

import dataclasses
import os
from typing import Any

from geopresence.exceptions import GeoPresenceConfigError


def _env_bool(value: str | None, default: bool) -> bool:
    if value is None:
        return default
    normalized = value.strip().lower()
    if normalized in {"1", "true", "yes", "y", "on"}:
        return True
    if normalized in {"0", "false", "no", "n", "off"}:
        return False
    return default


@dataclasses.dataclass(frozen=True)
class PresenceConfig:
    """Client configuration.

    Parameters
    ----------
    participant_id : str
        Stable identifier of the local participant, supplied by the
        identity provider.
    base_url : str
        Directory service base URL.
    api_key : str or None
        Optional bearer token sent with every directory request.
    request_timeout : float
        Total timeout in seconds for a single directory request.
    privacy_enabled : bool
        Whether the local participant's published position is obfuscated.
        Other participants' markers are obfuscated regardless; the viewer's
        own marker is always precise.
    privacy_radius_meters : float
        Maximum displacement applied by the privacy offset. This is the
        single source of truth for the obfuscation radius.
    search_radius_km : float
        Radius used by bounded discovery.
    global_search : bool
        Use global discovery instead of bounded discovery.
    collectible_radius_meters : float
        Radius used when fetching collectible markers around the viewer.
    auto_refresh_interval : float
        Seconds between automatic discovery refreshes. ``0`` disables it.
    reconcile_debounce : float
        Debounce window in seconds for marker reconciliation.
    surface_ready_retries : int
        How many times a reconciliation waits for a surface that is not
        ready before giving up.
    surface_ready_backoff : float
        Base delay in seconds for the first readiness retry; doubles on each
        subsequent attempt.
    radar_display_radius_px : float
        Radius of the radar display in pixels.
    radar_max_distance_meters : float
        Distance represented by the radar rim.
    handoff_duration_ms : int
        Duration of the eased camera transition when fullscreen closes.
    default_style_id : str
        Map style used when a surface is created.
    """

    participant_id: str
    base_url: str = "http://localhost:5000"
    api_key: str | None = None
    request_timeout: float = 15.0
    privacy_enabled: bool = True
    privacy_radius_meters: float = 100.0
    search_radius_km: float = 10.0
    global_search: bool = False
    collectible_radius_meters: float = 1000.0
    auto_refresh_interval: float = 10.0
    reconcile_debounce: float = 0.15
    surface_ready_retries: int = 5
    surface_ready_backoff: float = 0.1
    radar_display_radius_px: float = 50.0
    radar_max_distance_meters: float = 50_000.0
    handoff_duration_ms: int = 1000
    default_style_id: str = "satellite-streets"

    def __post_init__(self) -> None:
        if not self.participant_id or not self.participant_id.strip():
            raise GeoPresenceConfigError("participant_id must be non-empty")
        if self.privacy_radius_meters < 0:
            raise GeoPresenceConfigError("privacy_radius_meters must be >= 0")
        if self.search_radius_km <= 0:
            raise GeoPresenceConfigError("search_radius_km must be > 0")
        if self.surface_ready_retries < 0:
            raise GeoPresenceConfigError("surface_ready_retries must be >= 0")
        if self.radar_display_radius_px <= 0 or self.radar_max_distance_meters <= 0:
            raise GeoPresenceConfigError("radar dimensions must be > 0")

    @classmethod
    def from_env(cls, **overrides: Any) -> PresenceConfig:
        """Create configuration from environment variables.

        Reads ``GEOPRESENCE_PARTICIPANT_ID`` and optional ``GEOPRESENCE_*``
        variables. Explicit keyword arguments override environment values.

        Parameters
        ----------
        **overrides
            Explicit field values that take precedence over env vars.

        Returns
        -------
        PresenceConfig
            Populated configuration.
        """
        env = os.environ

        _ENV_STR_MAP = {
            "GEOPRESENCE_PARTICIPANT_ID": "participant_id",
            "GEOPRESENCE_BASE_URL": "base_url",
            "GEOPRESENCE_API_KEY": "api_key",
            "GEOPRESENCE_STYLE_ID": "default_style_id",
        }
        _ENV_FLOAT_MAP = {
            "GEOPRESENCE_REQUEST_TIMEOUT": "request_timeout",
            "GEOPRESENCE_PRIVACY_RADIUS_M": "privacy_radius_meters",
            "GEOPRESENCE_SEARCH_RADIUS_KM": "search_radius_km",
            "GEOPRESENCE_COLLECTIBLE_RADIUS_M": "collectible_radius_meters",
            "GEOPRESENCE_AUTO_REFRESH_INTERVAL": "auto_refresh_interval",
            "GEOPRESENCE_RECONCILE_DEBOUNCE": "reconcile_debounce",
            "GEOPRESENCE_SURFACE_READY_BACKOFF": "surface_ready_backoff",
        }
        _ENV_INT_MAP = {
            "GEOPRESENCE_SURFACE_READY_RETRIES": "surface_ready_retries",
            "GEOPRESENCE_HANDOFF_DURATION_MS": "handoff_duration_ms",
        }

        config_kwargs: dict[str, Any] = {}
        for env_key, field_name in _ENV_STR_MAP.items():
            val = env.get(env_key)
            if val is not None:
                config_kwargs[field_name] = val

        try:
            for env_key, field_name in _ENV_FLOAT_MAP.items():
                val = env.get(env_key)
                if val is not None and field_name not in overrides:
                    config_kwargs[field_name] = float(val)
            for env_key, field_name in _ENV_INT_MAP.items():
                val = env.get(env_key)
                if val is not None and field_name not in overrides:
                    config_kwargs[field_name] = int(val)
        except ValueError as exc:
            raise GeoPresenceConfigError(f"Invalid numeric environment value: {exc}") from exc

        if "privacy_enabled" not in overrides:
            config_kwargs["privacy_enabled"] = _env_bool(env.get("GEOPRESENCE_PRIVACY_ENABLED"), True)
        if "global_search" not in overrides:
            config_kwargs["global_search"] = _env_bool(env.get("GEOPRESENCE_GLOBAL_SEARCH"), False)

        config_kwargs.update(overrides)

        if "participant_id" not in config_kwargs:
            raise GeoPresenceConfigError("GEOPRESENCE_PARTICIPANT_ID is not set")

        return cls(**config_kwargs)
