"""Text rendering for timeline events.

Labels are Italian, matching what the dashboard operators read.
"""

from __future__ import annotations

import math
from collections.abc import Iterable, Mapping
from datetime import datetime, tzinfo
from typing import Any

from pyflotta._constants import DATE_PLACEHOLDER, PREVIOUS_UNAVAILABLE, SUBTITLE_PLACEHOLDER
from pyflotta.ingestion.normalize import first_bool, first_string, normalize_targa
from pyflotta.models.timeline import TimelineEvent

_PHOTO_FIELDS = ("fotoUrl", "fotoDataUrl", "fotoStoragePath", "fotoStoragePaths", "fotoUrls", "foto")
_KO_LIST_FIELDS = (
    "koList",
    "koItems",
    "anomalie",
    "problemi",
    "difetti",
    "errori",
    "controlliKo",
    "koDetails",
)
_KO_LABEL_FIELDS = (("label",), ("nome",), ("titolo",), ("descrizione",), ("name",), ("testo",))


def format_date_label(ts: int, tz: tzinfo) -> str:
    """``dd mm yyyy HH:MM`` in *tz*, or the placeholder for ``ts == 0``."""
    if not ts:
        return DATE_PLACEHOLDER
    try:
        moment = datetime.fromtimestamp(ts / 1000, tz=tz)
    except (OverflowError, OSError, ValueError):
        return DATE_PLACEHOLDER
    return moment.strftime("%d %m %Y %H:%M")


def join_parts(parts: Iterable[str | None]) -> str:
    return " | ".join(part.strip() for part in parts if part and part.strip())


def build_subtitle(parts: Iterable[str | None]) -> str:
    return join_parts(parts) or SUBTITLE_PLACEHOLDER


def build_change_line(label: str, before: str | None, after: str | None) -> str | None:
    """One ``Motrice: A -> B`` style line, or ``None`` when both sides are empty."""
    before_plate = normalize_targa(before)
    after_plate = normalize_targa(after)
    if not before_plate and not after_plate:
        return None
    if before_plate and after_plate:
        return f"{label}: {before_plate} -> {after_plate}"
    if after_plate:
        return f"{label}: {after_plate} ({PREVIOUS_UNAVAILABLE})"
    return f"{label}: {before_plate} -> -"


def build_change_subtitle(event: TimelineEvent) -> str:
    lines = [
        build_change_line("Motrice", event.before_motrice, event.after_motrice),
        build_change_line("Rimorchio", event.before_rimorchio, event.after_rimorchio),
        *event.extra,
    ]
    return build_subtitle(lines)


def format_operativo_label(value: str) -> str:
    """Human label for a free-text operational event type."""
    raw = value.strip()
    if not raw:
        return ""
    upper = "_".join(raw.upper().split())
    if "ASSETTO" in upper and "CAMBIO" in upper:
        return "Cambio assetto"
    if "ASSETTO" in upper and "INIZIO" in upper:
        return "Inizio assetto"
    if "ASSETTO" in upper and "FINE" in upper:
        return "Fine assetto"
    for marker, label in (
        ("CAMBIO", "Cambio"),
        ("AGGANCIO", "Aggancio"),
        ("SGANCIO", "Sgancio"),
        ("IMPORT", "Import"),
        ("MODIFICA", "Modifica"),
    ):
        if marker in upper:
            return label
    return raw


def history_action_label(
    before_motrice: str,
    after_motrice: str,
    before_rimorchio: str,
    after_rimorchio: str,
) -> str:
    """Name the coupling change described by a before/after snapshot pair."""
    motrice_changed = bool(before_motrice and after_motrice and before_motrice != after_motrice)
    rimorchio_changed = bool(before_rimorchio and after_rimorchio and before_rimorchio != after_rimorchio)
    if motrice_changed and rimorchio_changed:
        return "Cambio assetto"
    if motrice_changed:
        return "Cambio motrice"
    if rimorchio_changed:
        return "Cambio rimorchio"
    if not before_motrice and after_motrice:
        return "Aggancio motrice"
    if before_motrice and not after_motrice:
        return "Sgancio motrice"
    if not before_rimorchio and after_rimorchio:
        return "Aggancio rimorchio"
    if before_rimorchio and not after_rimorchio:
        return "Sgancio rimorchio"
    return ""


def has_photo(record: Mapping[str, Any]) -> bool:
    for key in _PHOTO_FIELDS:
        value = record.get(key)
        if value is None:
            continue
        if isinstance(value, list):
            return len(value) > 0
        if isinstance(value, str):
            return bool(value.strip())
        if isinstance(value, Mapping):
            return bool(value.get("url") or value.get("path") or value.get("storagePath"))
        return False
    return False


def extract_ko_items(record: Mapping[str, Any]) -> list[str]:
    """Failed check items listed on a vehicle check, deduplicated in order."""
    items: list[str] = []
    for key in _KO_LIST_FIELDS:
        bucket = record.get(key)
        if not isinstance(bucket, list):
            continue
        for entry in bucket:
            if isinstance(entry, str):
                label = entry.strip()
            elif isinstance(entry, Mapping):
                label = first_string(entry, _KO_LABEL_FIELDS)
            else:
                label = ""
            if label and label not in items:
                items.append(label)
    return items


def numeric_label(value: Any) -> str:
    if isinstance(value, bool) or value is None:
        return ""
    if isinstance(value, (int, float)):
        if math.isnan(value) or math.isinf(value):
            return ""
        return str(value)
    if isinstance(value, str):
        return value.strip()
    return ""


def format_litri(value: Any) -> str:
    raw = numeric_label(value)
    if not raw:
        return ""
    return raw if "L" in raw.upper().split() else f"{raw} L"


def format_costo(value: Any) -> str:
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        label = numeric_label(value)
        return f"{label} €" if label else ""
    if isinstance(value, str):
        return value.strip()
    return ""


def report_status(record: Mapping[str, Any]) -> str:
    """Stored status text, or ``Letta``/``Nuova`` derived from a read flag."""
    status = first_string(record, (("stato",), ("status",)))
    if status:
        return status
    read_flag = first_bool(record, (("letto",), ("letta",), ("isRead",)))
    if read_flag is None:
        return ""
    return "Letta" if read_flag else "Nuova"
