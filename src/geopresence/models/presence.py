"""Presence entities, collectible markers, and discovery results."""

from __future__ import annotations

from datetime import UTC, datetime
from enum import StrEnum
from typing import Any, ClassVar

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from geopresence._normalize import (
    first_present,
    is_valid_coordinate,
    parse_timestamp,
    safe_bool,
    safe_float,
    safe_str,
)
from geopresence.models._base import PresenceBaseModel
from geopresence.models.geo import TrueLocation


class EntityKind(StrEnum):
    PARTICIPANT = "participant"
    COLLECTIBLE = "collectible"
    VIEWER = "viewer"


def _fold_location(values: dict[str, Any], captured_at: Any) -> dict[str, Any]:
    """Move flat ``latitude``/``longitude`` keys into ``true_location``.

    Unusable coordinates leave ``true_location`` unset; such entities are
    kept in the result but skipped by rendering and radar projection.
    """
    if isinstance(values.get("true_location"), (dict, TrueLocation)):
        return values
    nested = values.get("trueLocation")
    if isinstance(nested, (dict, TrueLocation)):
        values["true_location"] = nested
        return values

    latitude = safe_float(first_present(values, "latitude", "lat"))
    longitude = safe_float(first_present(values, "longitude", "lng", "lon"))
    if is_valid_coordinate(latitude, longitude):
        values["true_location"] = {
            "latitude": latitude,
            "longitude": longitude,
            "captured_at": parse_timestamp(captured_at),
        }
    return values


class PresenceEntity(PresenceBaseModel):
    """Another participant reported by the directory.

    Parameters
    ----------
    id : str
        Stable participant identifier.
    true_location : TrueLocation or None
        Position as reported; ``None`` when the payload carried no usable
        coordinates.
    distance_from_viewer : float or None
        Distance from the viewer in metres. The directory reports
        kilometres under ``distance``.
    last_seen_at : datetime or None
        When the participant last reported a position.
    """

    _KEY_ALIASES: ClassVar[dict[str, str]] = {
        "publicKey": "id",
        "participantId": "id",
        "lastSeen": "last_seen_at",
        "distanceMeters": "distance_from_viewer",
    }

    id: str
    true_location: TrueLocation | None = None
    distance_from_viewer: float | None = None
    last_seen_at: datetime | None = None

    @classmethod
    def _prepare(cls, values: dict[str, Any]) -> dict[str, Any]:
        if "distance_from_viewer" not in values and "distance" in values:
            km = safe_float(values.get("distance"))
            values["distance_from_viewer"] = km * 1000.0 if km is not None else None
        seen = first_present(values, "last_seen_at", "lastSeenAt", "timestamp")
        if seen is not None:
            values["last_seen_at"] = seen
        return _fold_location(values, seen)

    @field_validator("id", mode="before")
    @classmethod
    def _coerce_id(cls, value: Any) -> str:
        text = safe_str(value)
        if text is None:
            raise ValueError("participant id must be non-empty")
        return text

    @field_validator("distance_from_viewer", mode="before")
    @classmethod
    def _coerce_distance(cls, value: Any) -> float | None:
        distance = safe_float(value)
        if distance is None or distance < 0:
            return None
        return distance

    @field_validator("last_seen_at", mode="before")
    @classmethod
    def _coerce_last_seen(cls, value: Any) -> datetime | None:
        return parse_timestamp(value)


class CollectibleMarker(PresenceBaseModel):
    """A collectible placed in the world by the backend catalog.

    This library only displays collectibles; ``collected`` changes
    through an external collection action.
    """

    _KEY_ALIASES: ClassVar[dict[str, str]] = {
        "nft_id": "id",
        "nftId": "id",
        "radius_meters": "collection_radius_meters",
        "radiusMeters": "collection_radius_meters",
        "is_collected": "collected",
        "isCollected": "collected",
        "collection_name": "name",
        "collectionName": "name",
    }

    id: str
    true_location: TrueLocation | None = None
    collection_radius_meters: float = 0.0
    media_ref: str | None = None
    collected: bool = False
    name: str | None = None
    distance_from_viewer: float | None = None

    @classmethod
    def _prepare(cls, values: dict[str, Any]) -> dict[str, Any]:
        if "distance_from_viewer" not in values and "distance" in values:
            values["distance_from_viewer"] = values.get("distance")
        if "media_ref" not in values and "mediaRef" not in values:
            server_url = safe_str(values.get("server_url") or values.get("serverUrl"))
            ipfs_hash = safe_str(values.get("ipfs_hash") or values.get("ipfsHash"))
            if server_url and ipfs_hash:
                values["media_ref"] = f"{server_url}{ipfs_hash}"
            else:
                image = safe_str(values.get("image_url") or values.get("imageUrl"))
                if image:
                    values["media_ref"] = image
        return _fold_location(values, first_present(values, "created_at", "createdAt"))

    @field_validator("id", mode="before")
    @classmethod
    def _coerce_id(cls, value: Any) -> str:
        text = safe_str(value)
        if text is None:
            raise ValueError("collectible id must be non-empty")
        return text

    @field_validator("collection_radius_meters", mode="before")
    @classmethod
    def _coerce_radius(cls, value: Any) -> float:
        radius = safe_float(value)
        return radius if radius is not None and radius > 0 else 0.0

    @field_validator("distance_from_viewer", mode="before")
    @classmethod
    def _coerce_distance(cls, value: Any) -> float | None:
        distance = safe_float(value)
        if distance is None or distance < 0:
            return None
        return distance

    @field_validator("collected", mode="before")
    @classmethod
    def _coerce_collected(cls, value: Any) -> bool:
        return bool(safe_bool(value))


class SearchMode(BaseModel):
    """Discovery parameterization: bounded radius or global."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    radius_km: float | None = Field(default=None, gt=0)
    global_search: bool = False

    @model_validator(mode="after")
    def _exactly_one(self) -> SearchMode:
        if self.global_search == (self.radius_km is not None):
            raise ValueError("SearchMode needs either radius_km or global_search, not both")
        return self

    @classmethod
    def within(cls, radius_km: float) -> SearchMode:
        return cls(radius_km=radius_km)

    @classmethod
    def everywhere(cls) -> SearchMode:
        return cls(global_search=True)

    def query_params(self) -> dict[str, str]:
        if self.global_search:
            return {"showAll": "true"}
        return {"radius": f"{self.radius_km:g}"}


class DiscoveryResult(BaseModel):
    """One discovery response. Superseded, never mutated, by the next one."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    participants: tuple[PresenceEntity, ...] = ()
    markers: tuple[CollectibleMarker, ...] = ()
    mode: SearchMode | None = None
    fetched_at: datetime = Field(default_factory=lambda: datetime.now(UTC))
    stale: bool = False

    def as_stale(self) -> DiscoveryResult:
        return self.model_copy(update={"stale": True})
