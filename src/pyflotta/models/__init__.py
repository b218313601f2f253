"""Data models for fleet records, timelines and alerts."""

from pyflotta.models._base import FlottaBaseModel, FlottaRecordModel
from pyflotta.models.alerts import (
    ALERTS_STATE_VERSION,
    AlertCandidate,
    AlertMeta,
    AlertMetaType,
    AlertSeverity,
    AlertsState,
    AlertStateItem,
)
from pyflotta.models.records import CanonicalRecord, EntityMatch, SourceKind
from pyflotta.models.timeline import EventType, MatchConfidence, TimelineEvent
from pyflotta.models.vehicle import TrailerState, TrailerStatus, Vehicle

__all__ = [
    "ALERTS_STATE_VERSION",
    "AlertCandidate",
    "AlertMeta",
    "AlertMetaType",
    "AlertSeverity",
    "AlertStateItem",
    "AlertsState",
    "CanonicalRecord",
    "EntityMatch",
    "EventType",
    "FlottaBaseModel",
    "FlottaRecordModel",
    "MatchConfidence",
    "SourceKind",
    "TimelineEvent",
    "TrailerState",
    "TrailerStatus",
    "Vehicle",
]
