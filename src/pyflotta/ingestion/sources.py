"""Source record schemas.

Each store collection is a tagged variant (:class:`SourceKind`) with a
:class:`SourceSchema` declaring, once, the ordered list of field paths tried
for every canonical field. :func:`normalize_record` is the single entry point
that turns a record of any of these shapes into a :class:`CanonicalRecord`.

Which key wins is therefore enumerable: it is the first path in the list
whose value converts.
"""

from __future__ import annotations

import dataclasses
from collections.abc import Mapping
from datetime import UTC, tzinfo
from typing import Any

from pyflotta._constants import TARGA_PLACEHOLDER
from pyflotta.ingestion.normalize import (
    FieldPath,
    all_plates,
    any_truthy,
    first_plate,
    first_string,
    first_timestamp,
    first_timestamp_label,
    first_value,
    normalize_badge,
)
from pyflotta.models.records import CanonicalRecord, SourceKind


def _paths(*names: str) -> tuple[FieldPath, ...]:
    """Build a path list from dotted names (``"prima.targaMotrice"``)."""
    return tuple(tuple(name.split(".")) for name in names)


def _ref_id(value: Any) -> str | None:
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, str)):
        text = str(value).strip()
        return text or None
    return None


# ---------------------------------------------------------------------------
# Shared field lists
# ---------------------------------------------------------------------------

DEFAULT_TIMESTAMP_FIELDS = _paths("timestamp", "ts", "dataOra", "data", "date", "createdAt", "updatedAt")

SESSION_START_FIELDS = DEFAULT_TIMESTAMP_FIELDS + _paths("dataInizio", "startAt", "timestampAggancio")

SESSION_END_FIELDS = _paths(
    "revokedAt",
    "chiusuraTimestamp",
    "chiusura",
    "endAt",
    "dataFine",
    "dataChiusura",
    "closedAt",
)

SESSION_CLOSED_MARKERS = _paths(
    "revoked",
    "chiusura",
    "closed",
    "dataFine",
    "endAt",
    "revokedAt",
    "chiusuraTimestamp",
)

REF_ID_FIELDS = _paths("id", "uid", "uuid", "key", "refId")

BADGE_FIELDS = _paths(
    "badgeAutista",
    "badge",
    "autistaBadge",
    "badge_autista",
    "badgeId",
    "badgeID",
    "badgeAutistaId",
    "autista.badge",
    "autista.badgeAutista",
    "autista.badgeId",
    "driver.badge",
    "driver.badgeId",
)

# A plain-string ``autista``/``driver`` is the name itself; the same keys
# holding an object are looked into further down the list.
NAME_FIELDS = _paths(
    "autista",
    "driver",
    "autistaNome",
    "nomeAutista",
    "nome",
    "driverName",
    "autistaName",
    "autista.nome",
    "autista.name",
    "driver.nome",
    "driver.name",
)

PLATE_FIELDS = _paths(
    "targa",
    "targaCamion",
    "targacamion",
    "targaRimorchio",
    "targarimorchio",
    "camion.targa",
    "rimorchio.targa",
    "targaMotrice",
    "motriceTarga",
    "motrice.targa",
    "rimorchioTarga",
    "prima.targaMotrice",
    "dopo.targaMotrice",
    "prima.targaRimorchio",
    "dopo.targaRimorchio",
)

MOTRICE_FIELDS = _paths(
    "targaMotrice",
    "motriceTarga",
    "motrice.targa",
    "targaCamion",
    "targaTrattore",
    "targa",
    "targaMezzo",
    "mezzo",
)

RIMORCHIO_FIELDS = _paths("targaRimorchio", "rimorchioTarga", "rimorchio.targa", "rimorchio")

BEFORE_MOTRICE_FIELDS = _paths(
    "prima.targaMotrice",
    "prima.motrice",
    "prima.targaCamion",
    "primaMotrice",
    "targaMotricePrima",
)
AFTER_MOTRICE_FIELDS = _paths(
    "dopo.targaMotrice",
    "dopo.motrice",
    "dopo.targaCamion",
    "dopoMotrice",
    "targaMotriceDopo",
)
BEFORE_RIMORCHIO_FIELDS = _paths(
    "prima.targaRimorchio",
    "prima.rimorchio",
    "primaRimorchio",
    "targaRimorchioPrima",
)
AFTER_RIMORCHIO_FIELDS = _paths(
    "dopo.targaRimorchio",
    "dopo.rimorchio",
    "dopoRimorchio",
    "targaRimorchioDopo",
)

_NONE: tuple[FieldPath, ...] = ()


@dataclasses.dataclass(frozen=True)
class SourceSchema:
    """Ordered candidate field paths for one record type."""

    kind: SourceKind
    timestamp_fields: tuple[FieldPath, ...] = DEFAULT_TIMESTAMP_FIELDS
    end_timestamp_fields: tuple[FieldPath, ...] = _NONE
    plate_fields: tuple[FieldPath, ...] = PLATE_FIELDS
    motrice_fields: tuple[FieldPath, ...] = MOTRICE_FIELDS
    rimorchio_fields: tuple[FieldPath, ...] = RIMORCHIO_FIELDS
    before_motrice_fields: tuple[FieldPath, ...] = _NONE
    after_motrice_fields: tuple[FieldPath, ...] = _NONE
    before_rimorchio_fields: tuple[FieldPath, ...] = _NONE
    after_rimorchio_fields: tuple[FieldPath, ...] = _NONE
    closed_markers: tuple[FieldPath, ...] = _NONE
    badge_fields: tuple[FieldPath, ...] = BADGE_FIELDS
    name_fields: tuple[FieldPath, ...] = NAME_FIELDS
    ref_id_fields: tuple[FieldPath, ...] = REF_ID_FIELDS


SCHEMAS: dict[SourceKind, SourceSchema] = {
    SourceKind.SESSION: SourceSchema(
        kind=SourceKind.SESSION,
        timestamp_fields=SESSION_START_FIELDS,
        end_timestamp_fields=SESSION_END_FIELDS,
        closed_markers=SESSION_CLOSED_MARKERS,
    ),
    SourceKind.REPORT: SourceSchema(kind=SourceKind.REPORT),
    SourceKind.CHECK: SourceSchema(
        kind=SourceKind.CHECK,
        # Checks name the tractor "camion"; try those before the generic list.
        plate_fields=_paths("targaCamion", "targacamion", "camion.targa", "targaRimorchio", "targarimorchio", "rimorchio.targa")
        + PLATE_FIELDS,
        motrice_fields=_paths("targaCamion", "targacamion", "camion.targa"),
        rimorchio_fields=_paths("targaRimorchio", "targarimorchio", "rimorchio.targa"),
    ),
    SourceKind.REFUEL: SourceSchema(kind=SourceKind.REFUEL),
    SourceKind.REQUEST: SourceSchema(
        kind=SourceKind.REQUEST,
        timestamp_fields=DEFAULT_TIMESTAMP_FIELDS + _paths("timestampRichiesta"),
    ),
    SourceKind.TIRE_DRAFT: SourceSchema(
        kind=SourceKind.TIRE_DRAFT,
        plate_fields=PLATE_FIELDS + _paths("targetTarga", "contesto.targaCamion", "contesto.targaRimorchio"),
    ),
    SourceKind.TIRE_EVENT: SourceSchema(
        kind=SourceKind.TIRE_EVENT,
        plate_fields=PLATE_FIELDS + _paths("targetTarga", "contesto.targaCamion", "contesto.targaRimorchio"),
    ),
    SourceKind.HISTORY: SourceSchema(
        kind=SourceKind.HISTORY,
        timestamp_fields=DEFAULT_TIMESTAMP_FIELDS + _paths("timestampCambio", "dataMs"),
        before_motrice_fields=BEFORE_MOTRICE_FIELDS,
        after_motrice_fields=AFTER_MOTRICE_FIELDS,
        before_rimorchio_fields=BEFORE_RIMORCHIO_FIELDS,
        after_rimorchio_fields=AFTER_RIMORCHIO_FIELDS,
    ),
    SourceKind.VEHICLE: SourceSchema(kind=SourceKind.VEHICLE),
    SourceKind.UNHOOK: SourceSchema(
        kind=SourceKind.UNHOOK,
        timestamp_fields=_paths("timestampSgancio") + DEFAULT_TIMESTAMP_FIELDS,
        plate_fields=_paths("targaRimorchio") + PLATE_FIELDS,
    ),
    SourceKind.MOTRICE_CHANGE: SourceSchema(
        kind=SourceKind.MOTRICE_CHANGE,
        timestamp_fields=_paths("timestampCambio") + DEFAULT_TIMESTAMP_FIELDS,
        before_motrice_fields=BEFORE_MOTRICE_FIELDS,
        after_motrice_fields=AFTER_MOTRICE_FIELDS,
    ),
}


def normalize_record(kind: SourceKind, record: Any, *, tz: tzinfo = UTC) -> CanonicalRecord:
    """Normalize a record of the given source kind.

    Never raises: a non-mapping record yields an empty canonical record and
    any field of unexpected type is treated as absent.
    """
    schema = SCHEMAS[kind]
    if not isinstance(record, Mapping):
        return CanonicalRecord(source=kind, plate=TARGA_PLACEHOLDER)

    identifiers = all_plates(record, schema.plate_fields)
    timestamp_label = first_timestamp_label(record, schema.timestamp_fields)
    if not timestamp_label:
        timestamp_label = first_timestamp_label(record, DEFAULT_TIMESTAMP_FIELDS)

    return CanonicalRecord(
        source=kind,
        ref_id=first_value(record, schema.ref_id_fields, _ref_id) or "",
        badge=first_value(record, schema.badge_fields, normalize_badge) or "",
        display_name=first_string(record, schema.name_fields),
        identifier_candidates=identifiers,
        plate=identifiers[0] if identifiers else TARGA_PLACEHOLDER,
        motrice=first_plate(record, schema.motrice_fields),
        rimorchio=first_plate(record, schema.rimorchio_fields),
        timestamp=first_timestamp(record, schema.timestamp_fields, tz=tz),
        end_timestamp=(
            first_timestamp(record, schema.end_timestamp_fields, tz=tz) if schema.end_timestamp_fields else None
        ),
        raw_timestamp_label=timestamp_label,
        before_motrice=first_plate(record, schema.before_motrice_fields),
        after_motrice=first_plate(record, schema.after_motrice_fields),
        before_rimorchio=first_plate(record, schema.before_rimorchio_fields),
        after_rimorchio=first_plate(record, schema.after_rimorchio_fields),
        closed=any_truthy(record, schema.closed_markers),
        raw=dict(record),
    )
