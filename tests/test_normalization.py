from __future__ import annotations

from datetime import UTC, datetime

import pytest

from geopresence._api.directory import _extract_list, _parse_items
from geopresence._normalize import (
    first_present,
    is_valid_coordinate,
    parse_timestamp,
    safe_bool,
    safe_float,
)
from geopresence.models.presence import PresenceEntity


@pytest.mark.parametrize(
    ("value", "expected"),
    [("1.5", 1.5), (0, 0.0), ("--", None), ("", None), (None, None), (True, None), ("nan", None), ("inf", None)],
)
def test_safe_float(value: object, expected: float | None) -> None:
    assert safe_float(value) == expected


def test_safe_bool() -> None:
    assert safe_bool("yes") is True
    assert safe_bool(0) is False
    assert safe_bool("maybe") is None


def test_first_present_keeps_zero() -> None:
    assert first_present({"lat": 0.0, "latitude": None}, "latitude", "lat") == 0.0


def test_is_valid_coordinate_bounds() -> None:
    assert is_valid_coordinate(90.0, -180.0)
    assert not is_valid_coordinate(90.1, 0.0)
    assert not is_valid_coordinate(None, 0.0)
    assert not is_valid_coordinate(float("nan"), 0.0)


def test_parse_timestamp_formats() -> None:
    expected = datetime(2026, 1, 1, tzinfo=UTC)
    assert parse_timestamp("2026-01-01T00:00:00Z") == expected
    assert parse_timestamp(1767225600) == expected
    assert parse_timestamp(1767225600000) == expected
    assert parse_timestamp("1767225600") == expected
    assert parse_timestamp("not a date") is None
    assert parse_timestamp(-5) is None


def test_extract_list_accepts_known_shapes() -> None:
    assert _extract_list([{"a": 1}], ("nearbyUsers",)) == [{"a": 1}]
    assert _extract_list({"users": [1]}, ("nearbyUsers", "users")) == [1]
    assert _extract_list({"success": True}, ("nearbyUsers",)) == []
    assert _extract_list("oops", ("nearbyUsers",)) == []


def test_parse_items_drops_bad_entries() -> None:
    parsed = _parse_items(
        [{"publicKey": "ok", "latitude": 1, "longitude": 2}, {"latitude": 1}, "not-a-dict"],
        PresenceEntity,
        "/api/location/nearby/x",
    )
    assert [p.id for p in parsed] == ["ok"]
