"""Alert candidate rules.

Each rule scans one slice of the fleet snapshot and emits
:class:`AlertCandidate` objects with two keys:

* ``id``: display identity, stable for as long as the underlying entity
  (plate, report) exists;
* ``meta.ref``: content fingerprint. A stored acknowledgement only holds
  while the fingerprint is unchanged.

Rules need no identity resolution and never raise on dirty records.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from datetime import UTC, date, datetime, tzinfo
from typing import Any

from pyflotta._hashing import fingerprint
from pyflotta.alerts.inspection import days_until, next_inspection_date
from pyflotta.ingestion.collections import SourceBuckets
from pyflotta.ingestion.normalize import (
    first_bool,
    first_string,
    normalize_badge,
    normalize_badge_key,
    normalize_name,
    normalize_name_key,
)
from pyflotta.ingestion.sources import normalize_record
from pyflotta.models.alerts import AlertCandidate, AlertMeta, AlertMetaType, AlertSeverity
from pyflotta.models.records import CanonicalRecord, SourceKind
from pyflotta.models.vehicle import Vehicle

_logger = logging.getLogger(__name__)

DEFAULT_WARNING_DAYS = 30

BUCKET_CONFLICT = 0
BUCKET_DEADLINE = 1
BUCKET_REPORT = 2

_UNREAD_STATUSES = frozenset({"nuova", "nuovo"})
_READ_FLAGS = (("letta",), ("letto",), ("isRead",))


def today_in(now: int, tz: tzinfo) -> date:
    return datetime.fromtimestamp(now / 1000, tz=tz).date()


# ---------------------------------------------------------------------------
# Deadline rule
# ---------------------------------------------------------------------------


def deadline_candidates(
    vehicles: Iterable[Vehicle],
    *,
    today: date,
    warning_days: int = DEFAULT_WARNING_DAYS,
) -> list[AlertCandidate]:
    """Vehicles whose next inspection is at most *warning_days* away (or past).

    One candidate per plate; the first vehicle listed for a plate wins.
    """
    candidates: list[AlertCandidate] = []
    seen: set[str] = set()
    for vehicle in vehicles:
        if not vehicle.targa or vehicle.targa in seen:
            continue
        seen.add(vehicle.targa)
        deadline = next_inspection_date(vehicle, today)
        if deadline is None:
            continue
        days = days_until(deadline, today)
        if days > warning_days:
            continue

        title = "Revisione scaduta" if days < 0 else "Revisione in scadenza"
        when = deadline.strftime("%d/%m/%Y")
        if days < 0:
            remaining = f"scaduta da {-days} giorni"
        elif days == 0:
            remaining = "scade oggi"
        else:
            remaining = f"tra {days} giorni"
        label = f" {vehicle.label}" if vehicle.label else ""
        candidates.append(
            AlertCandidate(
                id=f"revisione:{vehicle.targa}",
                meta=AlertMeta(
                    type=AlertMetaType.REVISIONE,
                    ref=fingerprint([vehicle.targa, deadline.isoformat()]),
                ),
                title=title,
                detail=f"{vehicle.targa}{label} - scadenza {when} ({remaining})",
                severity=AlertSeverity.DANGER,
                sort_bucket=BUCKET_DEADLINE,
                sort_value=days,
            )
        )
    return candidates


# ---------------------------------------------------------------------------
# Unread-report rule
# ---------------------------------------------------------------------------


def is_unread_report(raw: Any) -> bool:
    """Status ``nuova``/``nuovo`` (any case) or an explicit ``False`` read flag."""
    status = first_string(raw, (("stato",), ("status",))).lower()
    if status in _UNREAD_STATUSES:
        return True
    return first_bool(raw, _READ_FLAGS) is False


def report_candidates(reports: Iterable[Any], *, tz: tzinfo = UTC) -> list[AlertCandidate]:
    """One candidate per unread report, newest first within the bucket."""
    candidates: list[AlertCandidate] = []
    seen: set[str] = set()
    for raw in reports:
        if not is_unread_report(raw):
            continue
        record = normalize_record(SourceKind.REPORT, raw, tz=tz)
        problem = first_string(raw, (("tipoProblema",),))
        description = first_string(raw, (("descrizione",),))
        scope = first_string(raw, (("ambito",),))
        ts = record.timestamp or 0
        plate = record.identifier_candidates[0] if record.identifier_candidates else ""
        badge = normalize_badge(record.badge)

        identity_parts = [ts, plate, badge, problem, description]
        alert_id = f"segnalazione:{record.ref_id or fingerprint(identity_parts)}"
        if alert_id in seen:
            _logger.debug("Skipping duplicate report alert %s", alert_id)
            continue
        seen.add(alert_id)

        detail = " - ".join(part for part in (problem, description) if part) or "Nuova segnalazione"
        candidates.append(
            AlertCandidate(
                id=alert_id,
                meta=AlertMeta(
                    type=AlertMetaType.SEGNALAZIONE,
                    ref=fingerprint([*identity_parts, scope]),
                ),
                title=f"Segnalazione: {plate or record.plate}",
                detail=detail,
                severity=AlertSeverity.WARNING,
                sort_bucket=BUCKET_REPORT,
                sort_value=-ts,
            )
        )
    return candidates


# ---------------------------------------------------------------------------
# Conflict rule
# ---------------------------------------------------------------------------


def party_label(record: CanonicalRecord) -> str:
    """``badge 12 (Mario Rossi)``; missing parts render as ``-``."""
    badge = normalize_badge(record.badge)
    name = normalize_name(record.display_name)
    return f"badge {badge or '-'} ({name or '-'})"


def _party_key(record: CanonicalRecord, index: int) -> str:
    badge_key = normalize_badge_key(record.badge)
    if badge_key:
        return f"badge:{badge_key}"
    name_key = normalize_name_key(record.display_name)
    if name_key:
        return f"name:{name_key}"
    return f"session:{index}"


def conflict_candidates(sessions: Iterable[Any], *, tz: tzinfo = UTC) -> list[AlertCandidate]:
    """Plates claimed by more than one party across open sessions.

    Tractors and trailers are grouped separately, so the same plate can
    produce at most one ``conflict:motrice:*`` and one ``conflict:rimorchio:*``.
    """
    groups: dict[str, dict[str, dict[str, str]]] = {"motrice": {}, "rimorchio": {}}
    for index, raw in enumerate(sessions):
        record = normalize_record(SourceKind.SESSION, raw, tz=tz)
        if record.closed:
            continue
        key = _party_key(record, index)
        label = party_label(record)
        for scope, plate in (("motrice", record.motrice), ("rimorchio", record.rimorchio)):
            if plate:
                groups[scope].setdefault(plate, {}).setdefault(key, label)

    candidates: list[AlertCandidate] = []
    for scope, plates in groups.items():
        for plate, parties in plates.items():
            if len(parties) < 2:
                continue
            labels = sorted(set(parties.values()))
            candidates.append(
                AlertCandidate(
                    id=f"conflict:{scope}:{plate}",
                    meta=AlertMeta(type=AlertMetaType.CONFLITTO, ref=fingerprint(labels)),
                    title=f"Conflitto {scope}: {plate}",
                    detail=f"In uso da: {', '.join(labels)}",
                    severity=AlertSeverity.DANGER,
                    sort_bucket=BUCKET_CONFLICT,
                    sort_value=-len(parties),
                )
            )
    return candidates


def sort_candidates(candidates: Iterable[AlertCandidate]) -> list[AlertCandidate]:
    return sorted(candidates, key=lambda candidate: candidate.sort_key)


def generate_alert_candidates(
    buckets: SourceBuckets,
    *,
    now: int,
    tz: tzinfo = UTC,
    warning_days: int = DEFAULT_WARNING_DAYS,
) -> list[AlertCandidate]:
    """Run every rule over *buckets*, ordered by ``(sort_bucket, sort_value, title)``."""
    today = today_in(now, tz)
    candidates = [
        *deadline_candidates(buckets.parsed_vehicles(), today=today, warning_days=warning_days),
        *report_candidates(buckets.reports, tz=tz),
        *conflict_candidates(buckets.sessions, tz=tz),
    ]
    _logger.debug("Generated %d alert candidates", len(candidates))
    return sort_candidates(candidates)
