from __future__ import annotations

from pyflotta._redact import redact_for_log


def test_redact_for_log_redacts_driver_identity() -> None:
    payload = {
        "targa": "AB123CD",
        "badgeAutista": "12",
        "autista": "Mario Rossi",
        "driver": {"nome": "Mario Rossi", "badge": "12"},
        "fotoDataUrl": "data:image/jpeg;base64,AAAA",
        "note": "data:text/plain;base64,QUJD",
    }

    redacted = redact_for_log(payload)
    assert redacted["targa"] == "AB123CD"
    assert redacted["badgeAutista"] == "<redacted>"
    assert redacted["autista"] == "<redacted>"
    assert redacted["driver"] == {"nome": "<redacted>", "badge": "<redacted>"}
    assert redacted["fotoDataUrl"] == "<photo>"
    assert redacted["note"].startswith("<data-url:")


def test_redact_for_log_descends_into_nested_driver_objects() -> None:
    redacted = redact_for_log({"autista": {"nome": "Mario Rossi", "badge": "12"}})
    assert redacted == {"autista": {"nome": "<redacted>", "badge": "<redacted>"}}


def test_redact_for_log_truncates_long_strings() -> None:
    long_value = "x" * 600
    redacted = redact_for_log({"value": long_value}, max_string=10)
    assert redacted["value"].startswith("x" * 10)
    assert "<truncated>" in redacted["value"]
