from __future__ import annotations

# pylint: disable=redefined-outer-name

import copy
from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Any

import pytest

from pyflotta import FlottaClient, FlottaConfig, FlottaError, MemoryDocumentStore
from pyflotta._constants import (
    DAY_MS,
    KEY_ALERTS_STATE,
    KEY_MOTRICE_CHANGES,
    KEY_REPORTS,
    KEY_SESSIONS,
    KEY_UNHOOKS,
    KEY_VEHICLES,
)
from pyflotta.models import MatchConfidence, TrailerState


def _ms(*args: int) -> int:
    return int(datetime(*args, tzinfo=UTC).timestamp() * 1000)


NOW = _ms(2026, 1, 1, 9)
S1 = _ms(2025, 12, 31, 8)
S2 = _ms(2025, 12, 31, 10)


def _documents() -> dict[str, Any]:
    return {
        KEY_SESSIONS: [
            {
                "id": "s1",
                "badgeAutista": "7",
                "autista": "Mario Rossi",
                "targaMotrice": "AB123CD",
                "targaRimorchio": "RR111RR",
                "timestamp": S1,
            },
            {"id": "s2", "badgeAutista": "8", "autista": "Luigi Verdi", "targaMotrice": "AB123CD", "timestamp": S1 + 1000},
        ],
        KEY_REPORTS: {
            "value": [
                {"id": "r1", "badgeAutista": "7", "targa": "AB123CD", "stato": "nuova", "timestamp": S2, "descrizione": "Luce"},
            ]
        },
        KEY_VEHICLES: [
            {"targa": "AB123CD", "marca": "Volvo", "modello": "FH", "dataScadenzaRevisione": "2026-01-20"},
        ],
        KEY_UNHOOKS: [{"targaRimorchio": "RR222RR", "timestampSgancio": S1, "luogo": "Deposito"}],
    }


@pytest.fixture
def config() -> FlottaConfig:
    return FlottaConfig(base_url="http://store.invalid", time_zone="UTC")


# ---------------------------------------------------------------------------
# Fake document store backend
# ---------------------------------------------------------------------------


@dataclass
class FakeStoreBackend:
    documents: dict[str, Any] = field(default_factory=_documents)
    gets: dict[str, int] = field(default_factory=dict)
    puts: list[str] = field(default_factory=list)

    async def get_document(self, key: str) -> Any:
        self.gets[key] = self.gets.get(key, 0) + 1
        return copy.deepcopy(self.documents.get(key))

    async def put_document(self, key: str, value: Any) -> None:
        self.puts.append(key)
        self.documents[key] = copy.deepcopy(value)


@pytest.fixture
def backend(monkeypatch: pytest.MonkeyPatch) -> FakeStoreBackend:
    fake = FakeStoreBackend()

    async def fake_get_document(_self: Any, key: str) -> Any:
        return await fake.get_document(key)

    async def fake_put_document(_self: Any, key: str, value: Any) -> None:
        await fake.put_document(key, value)

    monkeypatch.setattr("pyflotta._transport.HttpTransport.get_document", fake_get_document)
    monkeypatch.setattr("pyflotta._transport.HttpTransport.put_document", fake_put_document)
    return fake


# ---------------------------------------------------------------------------
# End-to-end tests
# ---------------------------------------------------------------------------


@pytest.mark.asyncio
@pytest.mark.e2e
async def test_e2e_client_happy_path(config: FlottaConfig, backend: FakeStoreBackend) -> None:
    now = [NOW]

    async with FlottaClient(config, clock=lambda: now[0]) as client:
        buckets = await client.load_sources()
        assert len(buckets.sessions) == 2
        assert len(buckets.reports) == 1
        assert backend.gets[KEY_SESSIONS] == 1

        timeline = await client.driver_timeline(badge="7", buckets=buckets)
        assert [event.id for event in timeline.events] == [f"{KEY_REPORTS}:r1", f"{KEY_SESSIONS}:s1:hookup"]
        assert timeline.header_name == "Mario Rossi"
        assert timeline.active_session is not None
        assert timeline.active_session["id"] == "s1"

        vehicle = await client.vehicle_timeline("ab123cd", buckets=buckets)
        assert vehicle.vehicle is not None
        assert vehicle.vehicle.label == "Volvo FH"
        assert [event.id for event in vehicle.events] == [
            f"{KEY_REPORTS}:r1",
            f"{KEY_SESSIONS}:s2:hookup",
            f"{KEY_SESSIONS}:s1:hookup",
        ]

        board = await client.trailer_status(buckets=buckets)
        assert {(row.targa, row.stato) for row in board} == {
            ("RR111RR", TrailerState.AGGANCIATO),
            ("RR222RR", TrailerState.LIBERO),
        }

        visible = await client.refresh_alerts()
        assert [alert.id for alert in visible] == [
            "conflict:motrice:AB123CD",
            "revisione:AB123CD",
            "segnalazione:r1",
        ]
        assert backend.puts == []

        await client.apply_alert_action("revisione:AB123CD", "ack")
        await client.apply_alert_action("conflict:motrice:AB123CD", "snooze_1d")
        assert backend.puts == [KEY_ALERTS_STATE, KEY_ALERTS_STATE]
        stored = backend.documents[KEY_ALERTS_STATE]
        assert stored["version"] == 1
        assert stored["items"]["revisione:AB123CD"]["ackAt"] == NOW
        assert stored["items"]["conflict:motrice:AB123CD"]["snoozeUntil"] == NOW + DAY_MS

        assert [alert.id for alert in client.visible_alerts()] == ["segnalazione:r1"]
        now[0] = NOW + DAY_MS
        assert [alert.id for alert in client.visible_alerts()] == ["conflict:motrice:AB123CD", "segnalazione:r1"]


@pytest.mark.asyncio
@pytest.mark.e2e
async def test_e2e_changed_deadline_resurfaces_acknowledged_alert(
    config: FlottaConfig, backend: FakeStoreBackend
) -> None:
    async with FlottaClient(config, clock=lambda: NOW) as client:
        await client.refresh_alerts()
        await client.apply_alert_action("revisione:AB123CD", "ack")
        assert "revisione:AB123CD" not in [alert.id for alert in await client.refresh_alerts()]

        backend.documents[KEY_VEHICLES][0]["dataScadenzaRevisione"] = "2026-01-25"
        visible = await client.refresh_alerts()

    assert "revisione:AB123CD" in [alert.id for alert in visible]
    assert backend.documents[KEY_ALERTS_STATE]["items"] == {}


@pytest.mark.asyncio
@pytest.mark.e2e
async def test_e2e_name_query_lists_candidate_badges(config: FlottaConfig, backend: FakeStoreBackend) -> None:
    backend.documents[KEY_REPORTS] = [
        {"id": "r9", "badgeAutista": "99", "autista": "Mario Rossi", "timestamp": S2},
    ]
    async with FlottaClient(config) as client:
        timeline = await client.driver_timeline(name="mario rossi")

    assert [match.badge_label for match in timeline.name_matches] == ["7", "99"]
    assert timeline.is_ambiguous
    assert all(event.match_confidence is MatchConfidence.EXACT for event in timeline.events)


@pytest.mark.asyncio
@pytest.mark.e2e
async def test_e2e_watch_alerts_reevaluates_snooze(config: FlottaConfig) -> None:
    store = MemoryDocumentStore(_documents())
    now = [NOW]

    async with FlottaClient(config, store=store, clock=lambda: now[0]) as client:
        watcher = client.watch_alerts(0.01)
        first = await anext(watcher)
        assert len(first) == 3

        await client.apply_alert_action("segnalazione:r1", "snooze_3d")
        second = await anext(watcher)
        assert [alert.id for alert in second] == ["conflict:motrice:AB123CD", "revisione:AB123CD"]

        now[0] = NOW + 3 * DAY_MS
        third = await anext(watcher)
        assert len(third) == 3
        await watcher.aclose()

    assert store.writes == [KEY_ALERTS_STATE]


@pytest.mark.asyncio
async def test_client_requires_context_manager(config: FlottaConfig) -> None:
    client = FlottaClient(config, store=MemoryDocumentStore())
    with pytest.raises(FlottaError, match="not initialized"):
        await client.load_sources()


@pytest.mark.asyncio
async def test_client_argument_errors(config: FlottaConfig) -> None:
    async with FlottaClient(config, store=MemoryDocumentStore()) as client:
        with pytest.raises(ValueError):
            await client.driver_timeline()
        with pytest.raises(ValueError):
            await client.driver_timeline(badge="  ", name="")
        with pytest.raises(ValueError):
            await client.vehicle_timeline(" ")
        with pytest.raises(ValueError, match="unknown alert id"):
            await client.apply_alert_action("revisione:NOPE", "ack")
        with pytest.raises(ValueError):
            await anext(client.watch_alerts(0))


@pytest.mark.asyncio
async def test_client_survives_empty_store(config: FlottaConfig) -> None:
    async with FlottaClient(config, store=MemoryDocumentStore(), clock=lambda: NOW) as client:
        timeline = await client.driver_timeline(badge="7")
        alerts = await client.refresh_alerts()
        board = await client.trailer_status()

    assert timeline.events == []
    assert alerts == []
    assert board == []


@pytest.mark.asyncio
async def test_client_day_events_default_to_today(config: FlottaConfig) -> None:
    documents = _documents()
    documents[KEY_MOTRICE_CHANGES] = [
        {"id": "m1", "autista": "Mario Rossi", "targaMotrice": "CC333CC", "timestampCambio": NOW - 3_600_000},
    ]
    async with FlottaClient(config, store=MemoryDocumentStore(documents), clock=lambda: NOW) as client:
        today = await client.day_events()
        yesterday = await client.day_events(datetime(2025, 12, 31).date())

    assert [event.id for event in today] == [f"{KEY_MOTRICE_CHANGES}:m1"]
    assert [event.id for event in yesterday] == [f"{KEY_REPORTS}:r1"]
