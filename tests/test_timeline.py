from __future__ import annotations

from datetime import date
from typing import Any
from zoneinfo import ZoneInfo

from pyflotta._constants import DATE_PLACEHOLDER, NAME_PLACEHOLDER, NO_BADGE_KEY
from pyflotta.identity import ResolverContext
from pyflotta.ingestion.collections import SourceBuckets
from pyflotta.models.timeline import EventType, MatchConfidence
from pyflotta.timeline.aggregate import build_driver_timeline
from pyflotta.timeline.filters import TimelineFilter, filter_events

T1 = 1_700_000_000_000  # 14 11 2023 22:13 UTC
T2 = T1 + 3_600_000
T3 = T1 + 7_200_000
T4 = T1 + 10_800_000

SESSIONS = "@autisti_sessione_attive"
REPORTS = "@segnalazioni_autisti_tmp"
HISTORY = "@storico_eventi_operativi"


def _buckets(**overrides: Any) -> SourceBuckets:
    data: dict[str, Any] = {
        "sessions": [
            {
                "id": "s1",
                "badgeAutista": "7",
                "autista": "Mario Rossi",
                "targaMotrice": "AA111AA",
                "targaRimorchio": "RR111RR",
                "timestamp": T1,
                "revokedAt": T3,
            }
        ],
        "reports": [
            {"id": "r1", "badgeAutista": "7", "targa": "AA111AA", "timestamp": T2, "descrizione": "Luce rotta", "stato": "nuova"},
            {"id": "r2", "badgeAutista": "8", "autista": "Mario Rossi", "timestamp": T2},
            {"autista": "mario rossi", "targa": "AA111AA", "timestamp": T4},
            {"id": "r4", "badgeAutista": "7", "descrizione": "senza data"},
        ],
    }
    data.update(overrides)
    return SourceBuckets(**data)


def _badge_timeline(buckets: SourceBuckets, badge: str = "7", tz: Any = None):
    tz = tz or ZoneInfo("UTC")
    return build_driver_timeline(buckets, ResolverContext.for_badge(buckets, badge, tz=tz), tz=tz)


def test_badge_timeline_merges_sources_newest_first() -> None:
    timeline = _badge_timeline(_buckets())

    assert [event.id for event in timeline.events] == [
        f"{REPORTS}:#2",
        f"{SESSIONS}:s1:unhookup",
        f"{REPORTS}:r1",
        f"{SESSIONS}:s1:hookup",
        f"{REPORTS}:r4",
    ]
    assert timeline.badge_label == "7"
    assert timeline.primary_name == "Mario Rossi"
    assert timeline.header_name == "Mario Rossi"
    assert timeline.name_matches == []


def test_badgeless_record_matched_by_primary_name_is_weak() -> None:
    events = {event.id: event for event in _badge_timeline(_buckets()).events}

    assert events[f"{REPORTS}:#2"].match_confidence is MatchConfidence.WEAK
    assert events[f"{REPORTS}:r1"].match_confidence is MatchConfidence.EXACT
    assert f"{REPORTS}:r2" not in events


def test_session_emits_hookup_and_unhookup() -> None:
    events = {event.id: event for event in _badge_timeline(_buckets()).events}
    hookup = events[f"{SESSIONS}:s1:hookup"]
    unhookup = events[f"{SESSIONS}:s1:unhookup"]

    assert hookup.type is EventType.HOOKUP
    assert hookup.ts == T1
    assert hookup.title.startswith("Aggancio: ")
    assert hookup.subtitle == (
        "Motrice: AA111AA (precedente non disponibile) | Rimorchio: RR111RR (precedente non disponibile)"
    )
    assert unhookup.type is EventType.UNHOOKUP
    assert unhookup.ts == T3
    assert unhookup.subtitle == "Motrice: AA111AA -> - | Rimorchio: RR111RR -> -"


def test_report_rendering() -> None:
    events = {event.id: event for event in _badge_timeline(_buckets()).events}
    report = events[f"{REPORTS}:r1"]

    assert report.title == "Segnalazione: AA111AA"
    assert report.subtitle == "Descrizione: Luce rotta | Stato: NUOVA"
    assert report.date_label == "14 11 2023 23:13"


def test_event_without_timestamp_sorts_last_with_placeholder_label() -> None:
    last = _badge_timeline(_buckets()).events[-1]

    assert last.ts == 0
    assert last.date_label == DATE_PLACEHOLDER


def test_date_labels_use_configured_zone() -> None:
    timeline = _badge_timeline(_buckets(), tz=ZoneInfo("Europe/Rome"))
    hookup = next(event for event in timeline.events if event.type is EventType.HOOKUP)

    assert hookup.date_label == "14 11 2023 23:13"


def test_rebuilding_yields_identical_ids_and_order() -> None:
    buckets = _buckets()
    first = _badge_timeline(buckets)
    second = _badge_timeline(buckets)

    assert [event.id for event in first.events] == [event.id for event in second.events]
    assert first.events == second.events


def test_duplicate_ids_keep_first_occurrence() -> None:
    buckets = _buckets(
        sessions=[],
        reports=[
            {"id": "dup", "badgeAutista": "7", "timestamp": T1, "descrizione": "prima"},
            {"id": "dup", "badgeAutista": "7", "timestamp": T2, "descrizione": "seconda"},
        ],
    )
    events = _badge_timeline(buckets).events

    assert len(events) == 1
    assert events[0].subtitle == "Descrizione: prima"


def test_closed_session_is_not_active() -> None:
    assert _badge_timeline(_buckets()).active_session is None


def test_open_session_is_active_and_names_the_header() -> None:
    session = {"badgeAutista": "9", "autista": "Anna Bianchi", "targaMotrice": "CC333CC", "timestamp": T1}
    timeline = _badge_timeline(_buckets(sessions=[session], reports=[]), badge="9")

    assert timeline.active_session == session
    assert timeline.header_name == "Anna Bianchi"
    assert [event.type for event in timeline.events] == [EventType.HOOKUP]


def test_unknown_badge_yields_empty_timeline_with_placeholder_header() -> None:
    timeline = _badge_timeline(_buckets(), badge="404")

    assert timeline.events == []
    assert timeline.header_name == NAME_PLACEHOLDER


def test_name_mode_reports_candidate_badges() -> None:
    buckets = _buckets()
    timeline = build_driver_timeline(buckets, ResolverContext.for_name("Mario Rossi"), tz=ZoneInfo("UTC"))

    assert [match.badge_key for match in timeline.name_matches] == ["7", "8", NO_BADGE_KEY]
    assert [match.occurrence_count for match in timeline.name_matches] == [2, 1, 1]
    assert timeline.is_ambiguous
    assert timeline.badge_label == ""
    assert timeline.header_name == "Mario Rossi"
    assert all(event.match_confidence is MatchConfidence.EXACT for event in timeline.events)


def test_type_counts() -> None:
    counts = _badge_timeline(_buckets()).type_counts

    assert counts == {EventType.REPORT: 3, EventType.UNHOOKUP: 1, EventType.HOOKUP: 1}


def test_filters() -> None:
    utc = ZoneInfo("UTC")
    events = _badge_timeline(_buckets()).events

    reports = filter_events(events, TimelineFilter(types=frozenset({EventType.REPORT})), utc)
    by_plate = filter_events(events, TimelineFilter(plate="aa111"), utc)
    first_day = filter_events(events, TimelineFilter(date_from=date(2023, 11, 14), date_to=date(2023, 11, 14)), utc)
    no_badge = filter_events(events, TimelineFilter(badge=NO_BADGE_KEY), utc)

    assert len(reports) == 3
    assert [event.id for event in by_plate] == [f"{REPORTS}:#2", f"{REPORTS}:r1"]
    assert [event.id for event in first_day] == [f"{REPORTS}:r1", f"{SESSIONS}:s1:hookup"]
    assert [event.id for event in no_badge] == [f"{REPORTS}:#2"]


def test_coupling_carries_from_sessions_into_operational_history() -> None:
    buckets = SourceBuckets(
        sessions=[
            {"id": "s1", "badgeAutista": "7", "targaMotrice": "AA111AA", "timestamp": T1, "revokedAt": T3},
        ],
        history=[
            {"id": "h1", "badgeAutista": "7", "tipo": "CAMBIO_MOTRICE", "targaMotrice": "BB222BB", "timestamp": T2},
        ],
    )

    timeline = _badge_timeline(buckets)
    by_id = {event.id: event for event in timeline.events}

    assert [event.id for event in timeline.events] == [
        f"{SESSIONS}:s1:unhookup",
        f"{HISTORY}:h1",
        f"{SESSIONS}:s1:hookup",
    ]
    change = by_id[f"{HISTORY}:h1"]
    assert change.is_change_event
    assert (change.before_motrice, change.after_motrice) == ("AA111AA", "BB222BB")
    assert change.subtitle == "Motrice: AA111AA -> BB222BB | Badge 7"
    assert by_id[f"{SESSIONS}:s1:unhookup"].subtitle == "Motrice: AA111AA -> -"
