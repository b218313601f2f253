"""Per-source timeline event builders.

Each builder turns one normalized record into zero or more
:class:`TimelineEvent` objects. Identity has already been resolved by the
caller; builders only shape the event. Change-event subtitles are left empty
here and rendered once before/after values have been derived.
"""

from __future__ import annotations

import re
from collections.abc import Callable, Mapping
from datetime import tzinfo
from typing import Any

from pyflotta.ingestion.normalize import first_string, first_timestamp_label, format_targa_label, safe_float
from pyflotta.ingestion.sources import SESSION_END_FIELDS
from pyflotta.models.records import CanonicalRecord, SourceKind
from pyflotta.models.timeline import EventType, MatchConfidence, TimelineEvent
from pyflotta.timeline import render


def _fields(*names: str) -> tuple[tuple[str, ...], ...]:
    return tuple((name,) for name in names)


_CHANGE_TYPE_RE = re.compile(r"CAMBIO|AGGANCIO|SGANCIO|ASSETTO")

_REPORT_CATEGORY = _fields("categoria", "tipo", "area", "titolo", "segnalazioneTipo")
_REPORT_DESCRIPTION = _fields("descrizione", "messaggio", "testo", "note", "dettaglio")
_REPORT_SEVERITY = _fields("gravita", "priorita", "urgenza", "severity")
_CHECK_OUTCOME = _fields("esito", "risultato", "status", "stato")
_CHECK_KO_COUNT = ("koCount", "numeroKo", "totaleKo", "koTotali")
_NOTE = _fields("note", "dettaglio", "messaggio")
_REFUEL_STATION = _fields("distributore", "puntoVendita", "stazione", "fornitore", "impianto")
_REFUEL_NOTE = _fields("note", "messaggio", "dettaglio", "commento")
_REQUEST_ITEM = _fields("attrezzatura", "attrezzature", "materiale", "descrizione", "richiesta", "messaggio")
_REQUEST_NOTE = _fields("note", "motivazione", "cantiere")
_TIRE_KIND = _fields("tipo", "azione", "stato", "esito")
_HISTORY_PLACE = _fields("luogo", "cantiere", "destinazione", "zona")
_HISTORY_LOAD = _fields("statoCarico", "carico")
_HISTORY_CONDITION = _fields("condizioni", "condizione", "statoMezzo")
_HISTORY_NOTE = _fields("note", "dettaglio", "descrizione")
_HISTORY_KIND = _fields("tipo", "tipoOperativo", "azione", "evento", "operation", "op", "azioneOperativa")

Builder = Callable[..., list[TimelineEvent]]


def event_id(source_key: str, record: CanonicalRecord, index: int, suffix: str = "") -> str:
    """Stable event id: collection key plus native id, else plus ``#index``."""
    base = f"{source_key}:{record.ref_id}" if record.ref_id else f"{source_key}:#{index}"
    return f"{base}:{suffix}" if suffix else base


def _first_number(record: Mapping[str, Any], keys: tuple[str, ...]) -> Any:
    for key in keys:
        value = record.get(key)
        if value is not None:
            return value
    return None


def _base(
    record: CanonicalRecord,
    *,
    event_type: EventType,
    title: str,
    source_key: str,
    index: int,
    confidence: MatchConfidence,
    tz: tzinfo,
    suffix: str = "",
    ts: int | None = None,
    raw_label: str | None = None,
    **fields: Any,
) -> TimelineEvent:
    resolved_ts = (record.timestamp if ts is None else ts) or 0
    return TimelineEvent(
        id=event_id(source_key, record, index, suffix),
        ts=resolved_ts,
        date_label=render.format_date_label(resolved_ts, tz),
        raw_timestamp_label=record.raw_timestamp_label if raw_label is None else raw_label,
        type=event_type,
        title=title,
        targa=format_targa_label(record.plate),
        badge=record.badge,
        match_confidence=confidence,
        source_key=source_key,
        ref_id=record.ref_id,
        motrice=record.motrice,
        rimorchio=record.rimorchio,
        **fields,
    )


def session_events(record: CanonicalRecord, **kwargs: Any) -> list[TimelineEvent]:
    """A hookup at session start, plus an unhookup when the session has an end time."""
    targa = format_targa_label(record.plate)
    events = [
        _base(
            record,
            event_type=EventType.HOOKUP,
            title=f"Aggancio: {targa}",
            suffix="hookup",
            is_change_event=True,
            after_motrice=record.motrice or None,
            after_rimorchio=record.rimorchio or None,
            **kwargs,
        )
    ]
    if record.end_timestamp is not None:
        events.append(
            _base(
                record,
                event_type=EventType.UNHOOKUP,
                title=f"Sgancio: {targa}",
                suffix="unhookup",
                ts=record.end_timestamp,
                raw_label=first_timestamp_label(record.raw, SESSION_END_FIELDS) or record.raw_timestamp_label,
                is_change_event=True,
                before_motrice=record.motrice or None,
                before_rimorchio=record.rimorchio or None,
                after_motrice="",
                after_rimorchio="",
                **kwargs,
            )
        )
    return events


def report_events(record: CanonicalRecord, **kwargs: Any) -> list[TimelineEvent]:
    raw = record.raw
    status = render.report_status(raw).upper()
    category = first_string(raw, _REPORT_CATEGORY)
    description = first_string(raw, _REPORT_DESCRIPTION)
    severity = first_string(raw, _REPORT_SEVERITY)
    subtitle = render.build_subtitle(
        [
            f"Categoria: {category}" if category else "",
            f"Descrizione: {description}" if description else "",
            f"Gravita: {severity}" if severity else "",
            f"Stato: {status}" if status else "",
        ]
    )
    return [
        _base(
            record,
            event_type=EventType.REPORT,
            title=f"Segnalazione: {format_targa_label(record.plate)}",
            subtitle=subtitle,
            photo=render.has_photo(raw),
            **kwargs,
        )
    ]


def check_events(record: CanonicalRecord, **kwargs: Any) -> list[TimelineEvent]:
    raw = record.raw
    outcome = first_string(raw, _CHECK_OUTCOME).upper()
    is_ko = raw.get("ko") is True or raw.get("esito") is False or outcome == "KO"
    ko_items = render.extract_ko_items(raw)
    ko_count = safe_float(_first_number(raw, _CHECK_KO_COUNT))
    count = int(ko_count) if ko_count is not None else len(ko_items)
    if is_ko:
        outcome_line = f"Esito: KO ({count} KO)" if count else "Esito: KO"
    else:
        outcome_line = "Esito: OK"
    note = first_string(raw, _NOTE)
    subtitle = render.build_subtitle(
        [
            f"Camion: {record.motrice}" if record.motrice else "",
            f"Rimorchio: {record.rimorchio}" if record.rimorchio else "",
            outcome_line,
            f"KO principali: {', '.join(ko_items[:5])}" if ko_items else "",
            f"Note: {note}" if note else "",
        ]
    )
    return [
        _base(
            record,
            event_type=EventType.CHECK,
            title=f"Controllo mezzo: {format_targa_label(record.plate)}",
            subtitle=subtitle,
            **kwargs,
        )
    ]


def refuel_events(record: CanonicalRecord, **kwargs: Any) -> list[TimelineEvent]:
    raw = record.raw
    litri = render.format_litri(_first_number(raw, ("litri", "quantita", "qta")))
    station = first_string(raw, _REFUEL_STATION)
    cost = render.format_costo(_first_number(raw, ("costo", "importo", "totale", "prezzo")))
    note = first_string(raw, _REFUEL_NOTE)
    subtitle = render.build_subtitle(
        [
            f"Litri: {litri}" if litri else "",
            f"Distributore: {station}" if station else "",
            f"Costo: {cost}" if cost else "",
            f"Note: {note}" if note else "",
        ]
    )
    return [
        _base(
            record,
            event_type=EventType.REFUEL,
            title=f"Rifornimento: {format_targa_label(record.plate)}",
            subtitle=subtitle,
            **kwargs,
        )
    ]


def request_events(record: CanonicalRecord, **kwargs: Any) -> list[TimelineEvent]:
    raw = record.raw
    item = first_string(raw, _REQUEST_ITEM)
    note = first_string(raw, _REQUEST_NOTE)
    photo = render.has_photo(raw)
    subtitle = render.build_subtitle(
        [
            f"Richiesta: {item}" if item else "",
            f"Note: {note}" if note else "",
            f"Foto: {'SI' if photo else 'NO'}",
        ]
    )
    return [
        _base(
            record,
            event_type=EventType.REQUEST,
            title=f"Richiesta attrezzature: {format_targa_label(record.plate)}",
            subtitle=subtitle,
            photo=photo,
            **kwargs,
        )
    ]


def tire_events(record: CanonicalRecord, **kwargs: Any) -> list[TimelineEvent]:
    raw = record.raw
    kind = first_string(raw, _TIRE_KIND)
    note = first_string(raw, _NOTE)
    subtitle = render.build_subtitle([f"Tipo: {kind}" if kind else "", f"Note: {note}" if note else ""])
    return [
        _base(
            record,
            event_type=EventType.TIRE,
            title=f"Evento gomme: {format_targa_label(record.plate)}",
            subtitle=subtitle,
            **kwargs,
        )
    ]


def history_events(record: CanonicalRecord, **kwargs: Any) -> list[TimelineEvent]:
    raw = record.raw
    targa = format_targa_label(record.plate)
    kind_raw = first_string(raw, _HISTORY_KIND)
    kind_label = render.format_operativo_label(kind_raw)
    action = render.history_action_label(
        record.before_motrice,
        record.after_motrice,
        record.before_rimorchio,
        record.after_rimorchio,
    )
    if action:
        title = f"{action}: {targa}"
    elif kind_label:
        title = f"Evento operativo: {kind_label} - {targa}"
    else:
        title = f"Evento operativo: {targa}"

    place = first_string(raw, _HISTORY_PLACE)
    load = first_string(raw, _HISTORY_LOAD)
    condition = first_string(raw, _HISTORY_CONDITION)
    note = first_string(raw, _HISTORY_NOTE)
    extra = [
        line
        for line in (
            f"Autista: {record.display_name}" if record.display_name else "",
            f"Badge {record.badge}" if record.badge else "",
            f"Luogo: {place}" if place else "",
            f"Stato carico: {load}" if load else "",
            f"Condizioni: {condition}" if condition else "",
            f"Dettaglio: {note}" if note else "",
        )
        if line
    ]
    has_snapshot = any(
        (record.before_motrice, record.after_motrice, record.before_rimorchio, record.after_rimorchio)
    )
    return [
        _base(
            record,
            event_type=EventType.HISTORY,
            title=title,
            is_change_event=has_snapshot or bool(_CHANGE_TYPE_RE.search(kind_raw.upper())),
            before_motrice=record.before_motrice or None,
            after_motrice=record.after_motrice or None,
            before_rimorchio=record.before_rimorchio or None,
            after_rimorchio=record.after_rimorchio or None,
            extra=extra,
            **kwargs,
        )
    ]


def motrice_change_events(record: CanonicalRecord, **kwargs: Any) -> list[TimelineEvent]:
    """A tractor swap; the new tractor is the record's current ``targaMotrice``."""
    after = record.after_motrice or record.motrice
    extra = [f"Autista: {record.display_name}"] if record.display_name else []
    return [
        _base(
            record,
            event_type=EventType.HISTORY,
            title=f"Cambio motrice: {format_targa_label(after or record.plate)}",
            is_change_event=True,
            before_motrice=record.before_motrice or None,
            after_motrice=after or None,
            extra=extra,
            **kwargs,
        )
    ]


BUILDERS: dict[SourceKind, Builder] = {
    SourceKind.SESSION: session_events,
    SourceKind.REPORT: report_events,
    SourceKind.CHECK: check_events,
    SourceKind.REFUEL: refuel_events,
    SourceKind.REQUEST: request_events,
    SourceKind.TIRE_DRAFT: tire_events,
    SourceKind.TIRE_EVENT: tire_events,
    SourceKind.HISTORY: history_events,
    SourceKind.MOTRICE_CHANGE: motrice_change_events,
}


def build_events(
    record: CanonicalRecord,
    *,
    source_key: str,
    index: int,
    confidence: MatchConfidence,
    tz: tzinfo,
) -> list[TimelineEvent]:
    """Events for one record; sources without a timeline builder yield none."""
    builder = BUILDERS.get(record.source)
    if builder is None:
        return []
    return builder(record, source_key=source_key, index=index, confidence=confidence, tz=tz)


def finalize_subtitle(event: TimelineEvent) -> TimelineEvent:
    """Render the subtitle of a change event from its (derived) before/after values."""
    if event.is_change_event:
        return event.model_copy(update={"subtitle": render.build_change_subtitle(event)})
    if not event.subtitle:
        return event.model_copy(update={"subtitle": render.build_subtitle([])})
    return event
