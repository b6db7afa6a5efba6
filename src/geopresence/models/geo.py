"""Geographic primitives and camera state."""

from __future__ import annotations

import math
from datetime import datetime
from enum import StrEnum

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator


class ProjectionMode(StrEnum):
    GLOBE = "globe"
    MERCATOR = "mercator"


class Coord(BaseModel):
    """A WGS84 point.

    Construction fails with a validation error when either component is
    missing, NaN, infinite, or out of range.
    """

    model_config = ConfigDict(frozen=True, extra="ignore", populate_by_name=True)

    latitude: float = Field(validation_alias=AliasChoices("latitude", "lat"))
    longitude: float = Field(validation_alias=AliasChoices("longitude", "lng", "lon"))

    @field_validator("latitude")
    @classmethod
    def _check_latitude(cls, value: float) -> float:
        if not math.isfinite(value) or not -90.0 <= value <= 90.0:
            raise ValueError(f"latitude must be within [-90, 90], got {value}")
        return value

    @field_validator("longitude")
    @classmethod
    def _check_longitude(cls, value: float) -> float:
        if not math.isfinite(value) or not -180.0 <= value <= 180.0:
            raise ValueError(f"longitude must be within [-180, 180], got {value}")
        return value

    def as_lng_lat(self) -> tuple[float, float]:
        """Return ``(longitude, latitude)``, the order map renderers expect."""
        return (self.longitude, self.latitude)


class TrueLocation(Coord):
    """A precise position reading; immutable snapshot."""

    captured_at: datetime | None = None


class ObfuscatedPoint(Coord):
    """A position displaced by the privacy offset. Never persisted."""


class CameraState(BaseModel):
    """Camera framing reported by, or applied to, a rendering surface."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    center: Coord
    zoom: float = Field(ge=0.0)


class ViewportState(BaseModel):
    """Camera plus presentation settings handed across surface lifecycles."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    center: Coord
    zoom: float = Field(ge=0.0)
    style_id: str
    projection_mode: ProjectionMode = ProjectionMode.GLOBE

    @property
    def camera(self) -> CameraState:
        return CameraState(center=self.center, zoom=self.zoom)

    def with_camera(self, camera: CameraState) -> ViewportState:
        return self.model_copy(update={"center": camera.center, "zoom": camera.zoom})
