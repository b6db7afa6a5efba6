from __future__ import annotations

from geopresence._redact import mask_identifier, redact_for_log


def test_redact_for_log_redacts_sensitive_keys() -> None:
    payload = {
        "success": True,
        "publicKey": "ABCDEF",
        "nearbyUsers": [{"latitude": 52.37, "longitude": 4.89, "distance": 1.2}],
        "nested": {"user_latitude": 1.0, "Authorization": "Bearer x"},
    }

    redacted = redact_for_log(payload)
    assert redacted["publicKey"] == "<redacted>"
    assert redacted["nearbyUsers"][0]["latitude"] == "<redacted>"
    assert redacted["nearbyUsers"][0]["longitude"] == "<redacted>"
    assert redacted["nearbyUsers"][0]["distance"] == 1.2
    assert redacted["nested"]["user_latitude"] == "<redacted>"
    assert redacted["nested"]["Authorization"] == "<redacted>"
    assert redacted["success"] is True


def test_redact_for_log_masks_long_identifiers() -> None:
    redacted = redact_for_log({"participant_id": "0123456789abcdefghij", "apiKey": "secret-value-123456"})
    assert redacted["participant_id"] == "0123…ghij"
    assert redacted["apiKey"] == "<redacted>"


def test_redact_for_log_truncates_long_strings() -> None:
    long_value = "x" * 600
    redacted = redact_for_log({"value": long_value}, max_string=10)
    assert redacted["value"].startswith("x" * 10)
    assert "<truncated>" in redacted["value"]


def test_mask_identifier() -> None:
    assert mask_identifier("0123456789abcdefghij") == "012345…efghij"
    assert mask_identifier("short") == "short"
