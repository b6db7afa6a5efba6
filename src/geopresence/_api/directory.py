"""Directory service endpoints.

Endpoints:
  - GET  /api/location/nearby/{participant_id}   (participants)
  - GET  /api/nft/nearby                         (collectible markers)
  - POST /api/location/submit                    (publish own position)
  - POST /api/location/toggle-visibility         (presence opt-in)
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from typing import Any

from pydantic import ValidationError

from geopresence._constants import (
    NEARBY_COLLECTIBLES_ENDPOINT,
    NEARBY_PARTICIPANTS_ENDPOINT,
    SUBMIT_LOCATION_ENDPOINT,
    TOGGLE_VISIBILITY_ENDPOINT,
)
from geopresence._redact import mask_identifier, redact_for_log
from geopresence._transport import Transport
from geopresence.config import PresenceConfig
from geopresence.exceptions import GeoPresenceApiError
from geopresence.models.geo import Coord, TrueLocation
from geopresence.models.presence import CollectibleMarker, PresenceEntity, SearchMode

_logger = logging.getLogger(__name__)

_PARTICIPANT_LIST_KEYS = ("nearbyUsers", "participants", "users")
_COLLECTIBLE_LIST_KEYS = ("nfts", "markers", "collectibles", "data")


def _raise_for_api_error(endpoint: str, response: Any) -> None:
    if not isinstance(response, dict):
        return
    if response.get("success") is False or ("error" in response and not _has_any(response)):
        raise GeoPresenceApiError(
            f"{endpoint} failed: {response.get('error') or response.get('message') or 'unknown error'}",
            code=str(response.get("code", "")),
            endpoint=endpoint,
        )


def _has_any(response: dict[str, Any]) -> bool:
    return any(key in response for key in (*_PARTICIPANT_LIST_KEYS, *_COLLECTIBLE_LIST_KEYS))


def _extract_list(response: Any, keys: Iterable[str]) -> list[Any]:
    if isinstance(response, list):
        return response
    if not isinstance(response, dict):
        return []
    for key in keys:
        value = response.get(key)
        if isinstance(value, list):
            return value
    return []


def _parse_items(items: list[Any], model: type[PresenceEntity] | type[CollectibleMarker], endpoint: str) -> list[Any]:
    """Validate list items, dropping (and logging) the ones that do not parse."""
    parsed: list[Any] = []
    for item in items:
        if not isinstance(item, dict):
            _logger.debug("%s: skipping non-object item %r", endpoint, type(item).__name__)
            continue
        try:
            parsed.append(model.model_validate(item))
        except ValidationError as exc:
            _logger.debug(
                "%s: skipping unparseable item %s (%d errors)",
                endpoint,
                redact_for_log(item),
                exc.error_count(),
            )
    return parsed


async def fetch_nearby_participants(
    config: PresenceConfig,
    transport: Transport,
    mode: SearchMode,
) -> list[PresenceEntity]:
    """Fetch participants visible to the local participant.

    The directory applies the radius filter server-side; in global mode
    every visible participant is returned. The local participant is never
    included.
    """
    endpoint = NEARBY_PARTICIPANTS_ENDPOINT.format(participant_id=config.participant_id)
    response = await transport.get_json(endpoint, mode.query_params())
    _raise_for_api_error(endpoint, response)

    participants: list[PresenceEntity] = _parse_items(
        _extract_list(response, _PARTICIPANT_LIST_KEYS), PresenceEntity, endpoint
    )
    participants = [p for p in participants if p.id != config.participant_id]
    _logger.debug(
        "Nearby participants for %s: %d (mode=%s)",
        mask_identifier(config.participant_id),
        len(participants),
        mode.query_params(),
    )
    return participants


async def fetch_nearby_collectibles(
    transport: Transport,
    center: Coord,
    radius_meters: float,
) -> list[CollectibleMarker]:
    """Fetch collectible markers within *radius_meters* of *center*."""
    params = {
        "latitude": f"{center.latitude:.6f}",
        "longitude": f"{center.longitude:.6f}",
        "radius": f"{radius_meters:g}",
    }
    response = await transport.get_json(NEARBY_COLLECTIBLES_ENDPOINT, params)
    _raise_for_api_error(NEARBY_COLLECTIBLES_ENDPOINT, response)
    markers: list[CollectibleMarker] = _parse_items(
        _extract_list(response, _COLLECTIBLE_LIST_KEYS), CollectibleMarker, NEARBY_COLLECTIBLES_ENDPOINT
    )
    _logger.debug("Nearby collectibles: %d (radius=%gm)", len(markers), radius_meters)
    return markers


async def submit_location(
    config: PresenceConfig,
    transport: Transport,
    published: Coord,
    reading: TrueLocation,
) -> dict[str, Any]:
    """Publish the local participant's (already obfuscated) position."""
    payload: dict[str, Any] = {
        "publicKey": config.participant_id,
        "latitude": published.latitude,
        "longitude": published.longitude,
    }
    if reading.captured_at is not None:
        payload["timestamp"] = reading.captured_at.isoformat()
    response = await transport.post_json(SUBMIT_LOCATION_ENDPOINT, payload)
    _raise_for_api_error(SUBMIT_LOCATION_ENDPOINT, response)
    return response if isinstance(response, dict) else {}


async def toggle_visibility(
    config: PresenceConfig,
    transport: Transport,
    visible: bool,
) -> bool:
    """Opt the local participant in to or out of discovery by others."""
    payload = {"publicKey": config.participant_id, "isVisible": visible}
    response = await transport.post_json(TOGGLE_VISIBILITY_ENDPOINT, payload)
    _raise_for_api_error(TOGGLE_VISIBILITY_ENDPOINT, response)
    if isinstance(response, dict):
        data = response.get("data")
        if isinstance(data, dict) and isinstance(data.get("isVisible"), bool):
            return bool(data["isVisible"])
    return visible
