"""pyflotta - Timeline reconciliation and alerting for a truck fleet dashboard."""

from importlib.metadata import PackageNotFoundError, version

try:
    __version__ = version("pyflotta")
except PackageNotFoundError:
    __version__ = "0+local"
from pyflotta.client import FlottaClient
from pyflotta.config import FlottaConfig, StorageKeys
from pyflotta.exceptions import FlottaConfigError, FlottaError, FlottaTransportError
from pyflotta.ingestion.collections import SourceBuckets
from pyflotta.models import (
    AlertCandidate,
    AlertMeta,
    AlertMetaType,
    AlertSeverity,
    AlertsState,
    AlertStateItem,
    CanonicalRecord,
    EntityMatch,
    EventType,
    MatchConfidence,
    SourceKind,
    TimelineEvent,
    TrailerState,
    TrailerStatus,
    Vehicle,
)
from pyflotta.state.events import AlertAction
from pyflotta.storage import DocumentStore, MemoryDocumentStore, RemoteDocumentStore, unwrap_list
from pyflotta.timeline.aggregate import DriverTimeline
from pyflotta.timeline.vehicle import VehicleTimeline

__all__ = [
    "__version__",
    "AlertAction",
    "AlertCandidate",
    "AlertMeta",
    "AlertMetaType",
    "AlertSeverity",
    "AlertStateItem",
    "AlertsState",
    "CanonicalRecord",
    "DocumentStore",
    "DriverTimeline",
    "EntityMatch",
    "EventType",
    "FlottaClient",
    "FlottaConfig",
    "FlottaConfigError",
    "FlottaError",
    "FlottaTransportError",
    "MatchConfidence",
    "MemoryDocumentStore",
    "RemoteDocumentStore",
    "SourceBuckets",
    "SourceKind",
    "StorageKeys",
    "TimelineEvent",
    "TrailerState",
    "TrailerStatus",
    "Vehicle",
    "VehicleTimeline",
    "unwrap_list",
]
