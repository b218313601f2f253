from __future__ import annotations

from zoneinfo import ZoneInfo

import pytest

from pyflotta.ingestion.collections import SourceBuckets
from pyflotta.models.timeline import EventType
from pyflotta.models.vehicle import TrailerState
from pyflotta.timeline.vehicle import build_vehicle_timeline, find_vehicle, trailer_status_board

T1 = 1_700_000_000_000
T2 = T1 + 60_000
T3 = T1 + 120_000

UTC = ZoneInfo("UTC")


def test_find_vehicle_prefers_exact_plate() -> None:
    buckets = SourceBuckets(vehicles=[{"targa": "AB123CD", "marca": "Volvo"}, {"targa": "AB123CE", "marca": "Iveco"}])

    exact = find_vehicle(buckets, "ab123ce")
    near = find_vehicle(buckets, "AB123CF")

    assert exact is not None and exact.marca == "Iveco"
    assert near is not None and near.marca == "Volvo"
    assert find_vehicle(buckets, "ZZ999ZZ") is None


def test_find_vehicle_skips_malformed_entries() -> None:
    buckets = SourceBuckets(vehicles=["junk", None, {"targa": "AB123CD"}])
    vehicle = find_vehicle(buckets, "AB123CD")
    assert vehicle is not None


def test_vehicle_timeline_tolerates_one_typo() -> None:
    buckets = SourceBuckets(
        sessions=[{"id": "s1", "badgeAutista": "7", "targaMotrice": "AB 123 CD", "timestamp": T1}],
        reports=[{"id": "r1", "targa": "AB123C", "timestamp": T2}],
        refuels=[{"id": "f1", "targa": "ZZ999ZZ", "timestamp": T3}],
        history=[{"id": "h1", "prima": {"targaMotrice": "XX000XX"}, "dopo": {"targaMotrice": "AB123CD"}, "timestamp": T3}],
    )

    timeline = build_vehicle_timeline(buckets, "ab123cd", tz=UTC)

    assert timeline.targa == "AB123CD"
    assert timeline.vehicle is None
    assert [event.id for event in timeline.events] == [
        "@storico_eventi_operativi:h1",
        "@segnalazioni_autisti_tmp:r1",
        "@autisti_sessione_attive:s1:hookup",
    ]
    change = timeline.events[0]
    assert change.type is EventType.HISTORY
    assert change.title == "Cambio motrice: XX000XX"
    assert change.subtitle == "Motrice: XX000XX -> AB123CD"


def test_vehicle_timeline_rejects_empty_plate() -> None:
    with pytest.raises(ValueError):
        build_vehicle_timeline(SourceBuckets(), "  ")


def test_trailer_status_board() -> None:
    buckets = SourceBuckets(
        sessions=[
            {"targaMotrice": "AA111AA", "targaRimorchio": "RR111RR", "nomeAutista": "Mario Rossi", "timestamp": T2},
            {"targaRimorchio": "RR222RR", "timestamp": T1, "revoked": True},
        ],
        unhooks=[
            {"targaRimorchio": "RR111RR", "timestampSgancio": T1},
            {"targaRimorchio": "RR333RR", "timestampSgancio": T1, "luogo": "Deposito"},
            {"targaRimorchio": "RR333RR", "timestampSgancio": T3, "luogo": "Cantiere", "statoCarico": "vuoto"},
        ],
    )

    board = trailer_status_board(buckets, now=T3 + 1, tz=UTC)

    assert [(row.targa, row.stato) for row in board] == [
        ("RR333RR", TrailerState.LIBERO),
        ("RR111RR", TrailerState.AGGANCIATO),
    ]
    assert board[0].luogo == "Cantiere"
    assert board[0].stato_carico == "vuoto"
    assert board[1].autista == "Mario Rossi"
    assert board[1].motrice == "AA111AA"


def test_trailer_session_without_timestamp_is_stamped_now() -> None:
    buckets = SourceBuckets(sessions=[{"targaRimorchio": "RR111RR"}])
    [row] = trailer_status_board(buckets, now=T3, tz=UTC)
    assert row.timestamp == T3
