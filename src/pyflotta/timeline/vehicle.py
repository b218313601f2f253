"""Vehicle-centric timeline and trailer status board.

Plates typed by drivers are noisy, so records are correlated to a vehicle
with :func:`~pyflotta.identity.plates.is_same_plate` rather than strict
equality. This tolerance is confined to this module.
"""

from __future__ import annotations

import logging
from datetime import UTC, tzinfo
from typing import Any

from pydantic import Field

from pyflotta.identity.plates import is_same_plate
from pyflotta.ingestion.collections import DRIVER_SOURCES, SourceBuckets
from pyflotta.ingestion.normalize import first_string, normalize_targa
from pyflotta.ingestion.sources import normalize_record
from pyflotta.models._base import FlottaBaseModel
from pyflotta.models.records import CanonicalRecord, SourceKind
from pyflotta.models.timeline import MatchConfidence, TimelineEvent
from pyflotta.models.vehicle import TrailerState, TrailerStatus, Vehicle
from pyflotta.timeline.aggregate import dedupe_events, sort_events
from pyflotta.timeline.events import build_events, finalize_subtitle

_logger = logging.getLogger(__name__)

_DRIVER_NAME_FIELDS = (("nomeAutista",), ("autistaNome",), ("autista",))


class VehicleTimeline(FlottaBaseModel):
    targa: str
    vehicle: Vehicle | None = None
    """Master-list entry for the plate, when one is found."""
    events: list[TimelineEvent] = Field(default_factory=list)


def record_plates(record: CanonicalRecord) -> list[str]:
    """Every plate a record mentions: identifiers, coupling and snapshots."""
    plates = list(record.identifier_candidates)
    for plate in (
        record.motrice,
        record.rimorchio,
        record.before_motrice,
        record.after_motrice,
        record.before_rimorchio,
        record.after_rimorchio,
    ):
        if plate and plate not in plates:
            plates.append(plate)
    return plates


def find_vehicle(buckets: SourceBuckets, targa: str) -> Vehicle | None:
    """Master-list entry for *targa*; an exact plate wins over a near match."""
    target = normalize_targa(targa)
    near: Vehicle | None = None
    for vehicle in buckets.parsed_vehicles():
        if vehicle.targa == target:
            return vehicle
        if near is None and is_same_plate(vehicle.targa, target):
            near = vehicle
    return near


def build_vehicle_timeline(buckets: SourceBuckets, targa: str, *, tz: tzinfo = UTC) -> VehicleTimeline:
    """Sessions, history, reports, checks, refuels, tires and requests for one plate.

    Raises
    ------
    ValueError
        If *targa* is empty after normalization.
    """
    target = normalize_targa(targa)
    if not target:
        raise ValueError("targa must be a non-empty plate")

    events: list[TimelineEvent] = []
    for kind in DRIVER_SOURCES:
        source_key = buckets.source_key(kind)
        for index, raw in enumerate(buckets.records(kind)):
            record = normalize_record(kind, raw, tz=tz)
            if not any(is_same_plate(plate, target) for plate in record_plates(record)):
                continue
            events.extend(
                build_events(
                    record,
                    source_key=source_key,
                    index=index,
                    confidence=MatchConfidence.EXACT,
                    tz=tz,
                )
            )

    events = sort_events([finalize_subtitle(event) for event in dedupe_events(events)])
    _logger.debug("Vehicle timeline built: %d events", len(events))
    return VehicleTimeline(targa=target, vehicle=find_vehicle(buckets, target), events=events)


def _driver_name(raw: Any) -> str:
    return first_string(raw, _DRIVER_NAME_FIELDS)


def trailer_status_board(buckets: SourceBuckets, *, now: int, tz: tzinfo = UTC) -> list[TrailerStatus]:
    """Current state of every known trailer, newest first.

    Trailers coupled in an open session are ``AGGANCIATO``. Trailers whose
    latest unhook record is not in use are ``LIBERO``. A session without a
    start time is stamped with *now*.
    """
    board: list[TrailerStatus] = []
    in_use: set[str] = set()

    for raw in buckets.records(SourceKind.SESSION):
        record = normalize_record(SourceKind.SESSION, raw, tz=tz)
        if record.closed or not record.rimorchio:
            continue
        in_use.add(record.rimorchio)
        board.append(
            TrailerStatus(
                targa=record.rimorchio,
                stato=TrailerState.AGGANCIATO,
                autista=_driver_name(raw) or record.display_name,
                motrice=record.motrice,
                stato_carico=first_string(raw, (("statoCarico",),)),
                timestamp=record.timestamp or now,
            )
        )

    latest: dict[str, tuple[CanonicalRecord, Any]] = {}
    for raw in buckets.records(SourceKind.UNHOOK):
        record = normalize_record(SourceKind.UNHOOK, raw, tz=tz)
        plate = record.rimorchio or (record.identifier_candidates[0] if record.identifier_candidates else "")
        if not plate:
            continue
        previous = latest.get(plate)
        if previous is None or (record.timestamp or 0) > (previous[0].timestamp or 0):
            latest[plate] = (record, raw)

    for plate, (record, raw) in latest.items():
        if plate in in_use:
            continue
        board.append(
            TrailerStatus(
                targa=plate,
                stato=TrailerState.LIBERO,
                autista=_driver_name(raw) or record.display_name,
                luogo=first_string(raw, (("luogo",),)),
                stato_carico=first_string(raw, (("statoCarico",),)),
                timestamp=record.timestamp or 0,
            )
        )

    return sorted(board, key=lambda row: -row.timestamp)
