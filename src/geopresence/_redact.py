"""Helpers for safe debug logging.

geopresence handles exact positions and stable participant identifiers,
which must never leak into logs. Coordinates and credentials are replaced
outright; identifiers are shortened so log lines stay correlatable.
"""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from typing import Any

_REDACTED = "<redacted>"
_MAX_DEPTH = 20

_COORDINATE_KEYS: frozenset[str] = frozenset(
    {"latitude", "longitude", "lat", "lng", "lon", "user_latitude", "user_longitude"}
)
_IDENTITY_KEYS: frozenset[str] = frozenset(
    {"publickey", "public_key", "user_public_key", "wallet_address", "participantid", "participant_id"}
)
_SECRET_KEYS: frozenset[str] = frozenset({"authorization", "api_key", "apikey", "token", "ipaddress"})


def mask_identifier(value: str, *, keep: int = 6) -> str:
    """Shorten an identifier to ``head…tail`` for display and logs."""
    if len(value) <= keep * 2:
        return value
    return f"{value[:keep]}…{value[-keep:]}"


def _redact_field(key: str, value: Any) -> Any:
    lowered = key.lower()
    if lowered in _COORDINATE_KEYS or lowered in _SECRET_KEYS:
        return _REDACTED
    if lowered in _IDENTITY_KEYS:
        # Short ids would survive masking unchanged.
        if isinstance(value, str) and len(value) > 12:
            return mask_identifier(value, keep=4)
        return _REDACTED
    return None


def redact_for_log(value: Any, *, max_string: int = 512, _depth: int = 0) -> Any:
    """Return a copy of *value* with coordinates, ids and secrets hidden."""
    if _depth > _MAX_DEPTH:
        return "<max-depth>"

    if value is None or isinstance(value, (bool, int, float)):
        return value
    if isinstance(value, str):
        return value if len(value) <= max_string else f"{value[:max_string]}…<truncated>"
    if isinstance(value, (bytes, bytearray)):
        return f"<bytes:{len(value)}b>"

    if isinstance(value, Mapping):
        out: dict[str, Any] = {}
        for raw_key, item in value.items():
            key = str(raw_key)
            hidden = _redact_field(key, item)
            out[key] = hidden if hidden is not None else redact_for_log(item, max_string=max_string, _depth=_depth + 1)
        return out

    if isinstance(value, Sequence):
        return [redact_for_log(item, max_string=max_string, _depth=_depth + 1) for item in value]

    return repr(value)
