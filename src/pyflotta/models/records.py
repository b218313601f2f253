"""Canonical record and identity match models."""

from __future__ import annotations

from enum import StrEnum
from typing import Any

from pydantic import Field

from pyflotta.models._base import FlottaBaseModel


class SourceKind(StrEnum):
    """Tag for each source record schema."""

    SESSION = "session"
    REPORT = "report"
    CHECK = "check"
    REFUEL = "refuel"
    REQUEST = "request"
    TIRE_DRAFT = "tire_draft"
    TIRE_EVENT = "tire_event"
    HISTORY = "history"
    VEHICLE = "vehicle"
    UNHOOK = "unhook"
    MOTRICE_CHANGE = "motrice_change"


class CanonicalRecord(FlottaBaseModel):
    """Shared shape every source record normalizes into.

    ``timestamp`` is epoch milliseconds or ``None``; normalization never
    raises, malformed fields simply come out empty.
    """

    source: SourceKind
    ref_id: str = ""
    """Native record id (``id``/``uid``/``uuid``/...), if any."""
    badge: str = ""
    """Badge as written on the record (trimmed, original case)."""
    display_name: str = ""
    identifier_candidates: list[str] = Field(default_factory=list)
    """Every normalized plate found on the record, in priority order."""
    plate: str = ""
    """First identifier candidate, or the plate placeholder."""
    motrice: str = ""
    rimorchio: str = ""
    timestamp: int | None = None
    end_timestamp: int | None = None
    raw_timestamp_label: str = ""
    before_motrice: str = ""
    after_motrice: str = ""
    before_rimorchio: str = ""
    after_rimorchio: str = ""
    closed: bool = False
    """Session-only: the record carries a close/revoke marker."""
    raw: dict[str, Any] = Field(default_factory=dict, repr=False)


class EntityMatch(FlottaBaseModel):
    """One candidate identity for a name-only driver query."""

    badge_key: str
    badge_label: str = ""
    name_label: str = ""
    occurrence_count: int = 0
