"""Source collection loading.

All collections for one reconciliation pass are read concurrently and
awaited together; a failed read is an empty collection for that source.
"""

from __future__ import annotations

import asyncio
import dataclasses
import logging
from typing import Any

from pydantic import ValidationError

from pyflotta.config import StorageKeys
from pyflotta.models.records import SourceKind
from pyflotta.models.vehicle import Vehicle
from pyflotta.storage import DocumentStore, unwrap_list

_logger = logging.getLogger(__name__)

# Source kind -> StorageKeys attribute.
_KEY_FIELDS: dict[SourceKind, str] = {
    SourceKind.SESSION: "sessions",
    SourceKind.REPORT: "reports",
    SourceKind.CHECK: "checks",
    SourceKind.REFUEL: "refuels",
    SourceKind.REQUEST: "requests",
    SourceKind.TIRE_DRAFT: "tire_drafts",
    SourceKind.TIRE_EVENT: "tire_events",
    SourceKind.VEHICLE: "vehicles",
    SourceKind.HISTORY: "history",
    SourceKind.UNHOOK: "unhooks",
    SourceKind.MOTRICE_CHANGE: "motrice_changes",
}

# Collections that carry driver activity, in aggregation order.
DRIVER_SOURCES: tuple[SourceKind, ...] = (
    SourceKind.SESSION,
    SourceKind.REPORT,
    SourceKind.CHECK,
    SourceKind.REFUEL,
    SourceKind.REQUEST,
    SourceKind.TIRE_DRAFT,
    SourceKind.TIRE_EVENT,
    SourceKind.HISTORY,
    SourceKind.MOTRICE_CHANGE,
)


@dataclasses.dataclass(frozen=True)
class SourceBuckets:
    """Raw records of every source collection, as read for one pass.

    Lists hold the records exactly as stored; normalization happens
    downstream so the same snapshot can feed several views.
    """

    sessions: list[Any] = dataclasses.field(default_factory=list)
    reports: list[Any] = dataclasses.field(default_factory=list)
    checks: list[Any] = dataclasses.field(default_factory=list)
    refuels: list[Any] = dataclasses.field(default_factory=list)
    requests: list[Any] = dataclasses.field(default_factory=list)
    tire_drafts: list[Any] = dataclasses.field(default_factory=list)
    tire_events: list[Any] = dataclasses.field(default_factory=list)
    vehicles: list[Any] = dataclasses.field(default_factory=list)
    history: list[Any] = dataclasses.field(default_factory=list)
    unhooks: list[Any] = dataclasses.field(default_factory=list)
    motrice_changes: list[Any] = dataclasses.field(default_factory=list)
    keys: StorageKeys = dataclasses.field(default_factory=StorageKeys)

    def records(self, kind: SourceKind) -> list[Any]:
        return getattr(self, _KEY_FIELDS[kind])

    def source_key(self, kind: SourceKind) -> str:
        """Storage key the *kind* collection was read from (used in event ids)."""
        return getattr(self.keys, _KEY_FIELDS[kind])

    def parsed_vehicles(self) -> list[Vehicle]:
        """Vehicle master list as models; entries that fail to validate are skipped."""
        parsed: list[Vehicle] = []
        for index, raw in enumerate(self.vehicles):
            if not isinstance(raw, dict):
                continue
            try:
                parsed.append(Vehicle.model_validate(raw))
            except ValidationError:
                _logger.debug("Skipping unparseable vehicle #%d", index, exc_info=True)
        return parsed


async def load_buckets(store: DocumentStore, keys: StorageKeys | None = None) -> SourceBuckets:
    """Read every source collection from *store* concurrently."""
    keys = keys or StorageKeys()
    kinds = list(_KEY_FIELDS)
    results = await asyncio.gather(*(store.get(getattr(keys, _KEY_FIELDS[kind])) for kind in kinds))

    lists: dict[str, list[Any]] = {}
    for kind, value in zip(kinds, results, strict=True):
        records = unwrap_list(value)
        if value is not None and not records and not isinstance(value, list):
            _logger.debug("Collection %s has unexpected shape %s", getattr(keys, _KEY_FIELDS[kind]), type(value).__name__)
        lists[_KEY_FIELDS[kind]] = records
    return SourceBuckets(keys=keys, **lists)
