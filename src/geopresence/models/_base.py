"""Base model for directory service payloads.

The directory mixes camelCase and legacy snake_case keys and uses
placeholder strings for missing values. :class:`PresenceBaseModel`
absorbs both before field validation runs, and keeps the untouched
payload in ``raw`` for debugging.
"""

from __future__ import annotations

import math
from typing import Any, ClassVar

from pydantic import BaseModel, ConfigDict, Field, model_validator
from pydantic.alias_generators import to_camel

# Placeholders the directory uses for "not available".
_SENTINELS = frozenset({"", "--", "NaN", "nan", "null"})


def _is_missing(value: Any) -> bool:
    if value is None:
        return True
    if isinstance(value, str):
        return value.strip() in _SENTINELS
    return isinstance(value, float) and math.isnan(value)


def _rename_keys(values: dict[str, Any], aliases: dict[str, str]) -> dict[str, Any]:
    """Apply *aliases* (wire key -> field name) without clobbering canonical keys."""
    renamed = dict(values)
    for wire_key, field_name in aliases.items():
        if wire_key in renamed and field_name not in renamed:
            renamed[field_name] = renamed.pop(wire_key)
    return renamed


class PresenceBaseModel(BaseModel):
    """Frozen base for directory payload models.

    Subclasses declare ``_KEY_ALIASES`` for legacy keys the camelCase
    alias generator cannot derive, and may override :meth:`_prepare` to
    reshape flat wire fields.
    """

    _KEY_ALIASES: ClassVar[dict[str, str]] = {}

    model_config = ConfigDict(
        frozen=True,
        extra="ignore",
        populate_by_name=True,
        alias_generator=to_camel,
    )

    raw: dict[str, Any] = Field(default_factory=dict, exclude=True)

    @model_validator(mode="before")
    @classmethod
    def _normalize_payload(cls, values: Any) -> Any:
        if not isinstance(values, dict):
            return values
        present = {k: v for k, v in _rename_keys(values, cls._KEY_ALIASES).items() if not _is_missing(v)}
        prepared = cls._prepare(present)
        # An explicit raw (kwargs construction) wins over the payload itself.
        prepared.setdefault("raw", dict(values))
        return prepared

    @classmethod
    def _prepare(cls, values: dict[str, Any]) -> dict[str, Any]:
        """Reshape a cleaned payload before field validation."""
        return values
