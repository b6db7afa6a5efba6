"""Radar projection output."""

from __future__ import annotations

from enum import StrEnum

from pydantic import BaseModel, ConfigDict, Field


class RadarMode(StrEnum):
    PARTICIPANTS = "participants"
    COLLECTIBLES = "collectibles"


class RadarPoint(BaseModel):
    """Bearing/distance placement of one entity on the radar.

    Parameters
    ----------
    entity_id : str
        Identifier of the projected entity.
    angle_degrees : float
        Initial great-circle bearing from the viewer, in ``[0, 360)``.
    clamped_distance_px : float
        Distance from the radar centre in pixels, pinned to the rim for
        entities beyond the radar's range.
    distance_meters : float
        Real-world distance used for the placement.
    pinned : bool
        ``True`` when the entity lies beyond the radar's range and was
        pinned to the rim.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    entity_id: str
    angle_degrees: float = Field(ge=0.0, lt=360.0)
    clamped_distance_px: float = Field(ge=0.0)
    distance_meters: float = Field(default=0.0, ge=0.0)
    pinned: bool = False
