"""Alert candidate and persisted alert-state models."""

from __future__ import annotations

import math
from collections.abc import Mapping
from enum import StrEnum
from typing import Any, Literal

from pydantic import Field, field_validator

from pyflotta.models._base import FlottaBaseModel

ALERTS_STATE_VERSION: Literal[1] = 1


class AlertMetaType(StrEnum):
    REVISIONE = "revisione"
    SEGNALAZIONE = "segnalazione"
    CONFLITTO = "conflitto"


class AlertSeverity(StrEnum):
    DANGER = "danger"
    WARNING = "warning"
    INFO = "info"


class AlertMeta(FlottaBaseModel):
    """Alert kind plus the content fingerprint it was computed against."""

    type: AlertMetaType
    ref: str

    @field_validator("ref", mode="before")
    @classmethod
    def _coerce_ref(cls, value: Any) -> str:
        return "" if value is None else str(value)


class AlertCandidate(FlottaBaseModel):
    """An alert-worthy condition found in the current data."""

    id: str
    """Stable identity: unchanged while the underlying entity is unchanged."""
    meta: AlertMeta
    title: str
    detail: str = ""
    severity: AlertSeverity = AlertSeverity.WARNING
    sort_bucket: int = 0
    sort_value: float = 0.0

    @property
    def sort_key(self) -> tuple[int, float, str]:
        return (self.sort_bucket, self.sort_value, self.title)


def _nullable_millis(value: Any) -> int | float | None:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return None
    if math.isnan(value) or math.isinf(value):
        return None
    return value


class AlertStateItem(FlottaBaseModel):
    """Acknowledge/snooze state stored for one alert id."""

    ack_at: int | float | None = None
    snooze_until: int | float | None = None
    last_shown_at: int | float | None = None
    meta: AlertMeta

    @field_validator("ack_at", "snooze_until", "last_shown_at", mode="before")
    @classmethod
    def _coerce_millis(cls, value: Any) -> int | float | None:
        return _nullable_millis(value)


class AlertsState(FlottaBaseModel):
    """The persisted alert lifecycle document: ``{"version": 1, "items": {...}}``."""

    version: Literal[1] = ALERTS_STATE_VERSION
    items: dict[str, AlertStateItem] = Field(default_factory=dict)

    @classmethod
    def empty(cls) -> AlertsState:
        return cls()

    @classmethod
    def from_document(cls, raw: Any) -> AlertsState:
        """Parse a stored document, dropping anything malformed.

        A missing document, a different ``version`` or a non-mapping
        ``items`` all yield an empty state. Items without a valid ``meta``
        are skipped individually.
        """
        if not isinstance(raw, Mapping) or raw.get("version") != ALERTS_STATE_VERSION:
            return cls.empty()
        items_raw = raw.get("items")
        if not isinstance(items_raw, Mapping):
            return cls.empty()

        items: dict[str, AlertStateItem] = {}
        for alert_id, item_raw in items_raw.items():
            if not isinstance(item_raw, Mapping):
                continue
            meta_raw = item_raw.get("meta")
            if not isinstance(meta_raw, Mapping):
                continue
            try:
                meta_type = AlertMetaType(meta_raw.get("type"))
            except ValueError:
                continue
            items[str(alert_id)] = AlertStateItem(
                ack_at=item_raw.get("ackAt"),
                snooze_until=item_raw.get("snoozeUntil"),
                last_shown_at=item_raw.get("lastShownAt"),
                meta=AlertMeta(type=meta_type, ref=meta_raw.get("ref")),
            )
        return cls(items=items)

    def to_document(self) -> dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True)
