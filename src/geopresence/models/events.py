"""Outward-facing interaction events.

Selecting a rendered marker never acts on its own; it emits one of these
events and the identity/wallet or collection collaborator decides what
happens next.
"""

from __future__ import annotations

from datetime import UTC, datetime

from pydantic import BaseModel, ConfigDict, Field, field_validator


class _InteractionEvent(BaseModel):
    model_config = ConfigDict(frozen=True, extra="forbid")

    surface_id: str | None = Field(default=None, description="Surface the interaction happened on")
    emitted_at: datetime = Field(default_factory=lambda: datetime.now(UTC))


class CollectRequested(_InteractionEvent):
    """A collectible marker was activated."""

    marker_id: str

    @field_validator("marker_id")
    @classmethod
    def _non_empty(cls, value: str) -> str:
        marker_id = value.strip()
        if not marker_id:
            raise ValueError("marker_id must be non-empty")
        return marker_id


class ProfileRequested(_InteractionEvent):
    """A participant marker was selected (open profile or payment flow)."""

    participant_id: str

    @field_validator("participant_id")
    @classmethod
    def _non_empty(cls, value: str) -> str:
        participant_id = value.strip()
        if not participant_id:
            raise ValueError("participant_id must be non-empty")
        return participant_id


InteractionEvent = CollectRequested | ProfileRequested
