"""Timeline event model."""

from __future__ import annotations

from enum import StrEnum

from pydantic import Field

from pyflotta.models._base import FlottaBaseModel


class EventType(StrEnum):
    HOOKUP = "hookup"
    UNHOOKUP = "unhookup"
    REPORT = "report"
    CHECK = "check"
    REFUEL = "refuel"
    REQUEST = "request"
    TIRE = "tire"
    HISTORY = "history"


class MatchConfidence(StrEnum):
    """How a record was tied to the target driver."""

    EXACT = "EXACT"
    """The record carries the target badge (or, in name mode, the exact name)."""
    WEAK = "WEAK"
    """The record has no badge; its name equals the badge's primary name."""


class TimelineEvent(FlottaBaseModel):
    """A single entry of a driver or vehicle timeline.

    Instances are immutable. The change-history pass returns copies with
    missing ``before_*``/``after_*`` values filled in.
    """

    id: str
    ts: int = 0
    """Epoch milliseconds; ``0`` when the record has no usable timestamp."""
    date_label: str = ""
    raw_timestamp_label: str = ""
    type: EventType
    title: str
    subtitle: str = ""
    targa: str = ""
    badge: str = ""
    match_confidence: MatchConfidence = MatchConfidence.EXACT
    source_key: str = ""
    ref_id: str = ""
    motrice: str = ""
    rimorchio: str = ""
    is_change_event: bool = False
    before_motrice: str | None = None
    after_motrice: str | None = None
    before_rimorchio: str | None = None
    after_rimorchio: str | None = None
    photo: bool = False
    extra: list[str] = Field(default_factory=list)
