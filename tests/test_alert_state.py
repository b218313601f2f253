from __future__ import annotations

import pytest

from pyflotta._constants import DAY_MS, KEY_ALERTS_STATE
from pyflotta.models.alerts import AlertCandidate, AlertMeta, AlertMetaType, AlertsState, AlertStateItem
from pyflotta.state.events import AlertAction, parse_action
from pyflotta.state.lifecycle import apply_action, is_hidden, reconcile, visible_alerts
from pyflotta.state.store import AlertStateStore
from pyflotta.storage import MemoryDocumentStore

T = 1_700_000_000_000


def _candidate(alert_id: str = "revisione:AB123CD", ref: str = "abc") -> AlertCandidate:
    return AlertCandidate(id=alert_id, meta=AlertMeta(type=AlertMetaType.REVISIONE, ref=ref), title=alert_id)


def _state(**items: AlertStateItem) -> AlertsState:
    return AlertsState(items=items)


def _item(ref: str = "abc", **fields: int | None) -> AlertStateItem:
    return AlertStateItem(meta=AlertMeta(type=AlertMetaType.REVISIONE, ref=ref), **fields)


# ---------------------------------------------------------------------------
# Actions
# ---------------------------------------------------------------------------


def test_parse_action() -> None:
    assert parse_action("ack") is AlertAction.ACK
    assert parse_action(AlertAction.SNOOZE_3D) is AlertAction.SNOOZE_3D
    with pytest.raises(ValueError, match="unknown alert action"):
        parse_action("dismiss")


def test_snooze_durations() -> None:
    assert AlertAction.ACK.snooze_millis is None
    assert AlertAction.SNOOZE_1D.snooze_millis == 86_400_000
    assert AlertAction.SNOOZE_3D.snooze_millis == 3 * 86_400_000


def test_snooze_hides_for_exactly_one_day() -> None:
    candidate = _candidate()
    state = apply_action(AlertsState.empty(), candidate.id, candidate.meta, "snooze_1d", T)

    item = state.items[candidate.id]
    assert item.snooze_until == T + 86_400_000
    assert item.ack_at is None
    assert item.last_shown_at == T
    assert is_hidden(state, candidate, T)
    assert is_hidden(state, candidate, T + 86_399_999)
    assert not is_hidden(state, candidate, T + 86_400_000)


def test_ack_hides_until_content_changes() -> None:
    candidate = _candidate()
    state = apply_action(AlertsState.empty(), candidate.id, candidate.meta, AlertAction.ACK, T)

    assert state.items[candidate.id].ack_at == T
    assert state.items[candidate.id].snooze_until is None
    assert is_hidden(state, candidate, T + 365 * DAY_MS)
    assert not is_hidden(state, _candidate(ref="changed"), T + 1)


def test_ack_replaces_previous_snooze() -> None:
    candidate = _candidate()
    snoozed = apply_action(AlertsState.empty(), candidate.id, candidate.meta, "snooze_3d", T)
    acked = apply_action(snoozed, candidate.id, candidate.meta, "ack", T + 10)

    assert acked.items[candidate.id].snooze_until is None
    assert acked.items[candidate.id].ack_at == T + 10
    assert snoozed.items[candidate.id].ack_at is None


def test_apply_action_rejects_unknown_action() -> None:
    candidate = _candidate()
    with pytest.raises(ValueError):
        apply_action(AlertsState.empty(), candidate.id, candidate.meta, "forever", T)


def test_visible_alerts_keeps_order() -> None:
    a, b, c = _candidate("a"), _candidate("b"), _candidate("c")
    state = apply_action(AlertsState.empty(), "b", b.meta, "ack", T)

    assert visible_alerts(state, [c, b, a], T) == [c, a]


# ---------------------------------------------------------------------------
# Reconcile
# ---------------------------------------------------------------------------


def test_reconcile_without_changes_returns_same_state() -> None:
    state = _state(**{"revisione:AB123CD": _item(ack_at=T, last_shown_at=T)})
    assert reconcile(state, [_candidate()], T + DAY_MS) is state


def test_reconcile_drops_item_when_meta_changed() -> None:
    state = _state(**{"revisione:AB123CD": _item(ack_at=T, last_shown_at=T)})
    updated = reconcile(state, [_candidate(ref="new-deadline")], T + 1)
    assert updated.items == {}


def test_reconcile_prunes_after_threshold() -> None:
    now = T + 100 * DAY_MS
    state = _state(
        old=_item(ack_at=now - 91 * DAY_MS, last_shown_at=now - 91 * DAY_MS),
        recent=_item(ack_at=now - 89 * DAY_MS, last_shown_at=now - 89 * DAY_MS),
        long_snooze=_item(snooze_until=now + DAY_MS, last_shown_at=now - 95 * DAY_MS),
    )
    candidates = [_candidate("old"), _candidate("recent"), _candidate("long_snooze")]

    updated = reconcile(state, candidates, now)

    assert set(updated.items) == {"recent", "long_snooze"}


def test_reconcile_forgets_items_no_longer_generated() -> None:
    now = T + 100 * DAY_MS
    state = _state(
        gone=_item(snooze_until=now + DAY_MS, last_shown_at=now - 91 * DAY_MS),
        live=_item(snooze_until=now + DAY_MS, last_shown_at=now - 91 * DAY_MS),
    )

    updated = reconcile(state, [_candidate("live")], now)

    assert set(updated.items) == {"live"}


def test_reconcile_prunes_stale_items_whose_alert_is_gone() -> None:
    now = T + 200 * DAY_MS
    state = _state(
        stale=_item(ack_at=now - 91 * DAY_MS, snooze_until=now - 91 * DAY_MS, last_shown_at=now - DAY_MS),
        snoozed=_item(ack_at=now - 91 * DAY_MS, snooze_until=now - 89 * DAY_MS, last_shown_at=now - DAY_MS),
    )

    updated = reconcile(state, [], now)

    assert set(updated.items) == {"snoozed"}


def test_reconcile_honours_custom_retention() -> None:
    now = T + 10 * DAY_MS
    state = _state(old=_item(ack_at=now - 8 * DAY_MS, last_shown_at=now - 8 * DAY_MS))

    assert set(reconcile(state, [_candidate("old")], now, prune_after_days=7).items) == set()
    assert set(reconcile(state, [_candidate("old")], now).items) == {"old"}


# ---------------------------------------------------------------------------
# Document shape
# ---------------------------------------------------------------------------


def test_to_document_uses_stored_field_names() -> None:
    candidate = _candidate()
    state = apply_action(AlertsState.empty(), candidate.id, candidate.meta, "snooze_1d", T)

    assert state.to_document() == {
        "version": 1,
        "items": {
            "revisione:AB123CD": {
                "ackAt": None,
                "snoozeUntil": T + DAY_MS,
                "lastShownAt": T,
                "meta": {"type": "revisione", "ref": "abc"},
            }
        },
    }


def test_from_document_round_trip() -> None:
    state = _state(**{"revisione:AB123CD": _item(ack_at=T, last_shown_at=T)})
    assert AlertsState.from_document(state.to_document()) == state


@pytest.mark.parametrize(
    "raw",
    [None, [], "x", {"version": 2, "items": {}}, {"version": 1, "items": []}, {"items": {}}],
)
def test_from_document_rejects_malformed_documents(raw: object) -> None:
    assert AlertsState.from_document(raw) == AlertsState.empty()


def test_from_document_skips_malformed_items() -> None:
    raw = {
        "version": 1,
        "items": {
            "good": {"ackAt": T, "snoozeUntil": "soon", "lastShownAt": float("nan"), "meta": {"type": "conflitto", "ref": 42}},
            "no_meta": {"ackAt": T},
            "bad_type": {"ackAt": T, "meta": {"type": "other", "ref": "x"}},
            "not_a_dict": "ack",
        },
    }
    state = AlertsState.from_document(raw)

    assert list(state.items) == ["good"]
    item = state.items["good"]
    assert item.ack_at == T
    assert item.snooze_until is None
    assert item.last_shown_at is None
    assert item.meta == AlertMeta(type=AlertMetaType.CONFLITTO, ref="42")


# ---------------------------------------------------------------------------
# Store
# ---------------------------------------------------------------------------


@pytest.mark.asyncio
async def test_store_apply_persists_and_hides() -> None:
    now = [T]
    backing = MemoryDocumentStore()
    store = AlertStateStore(backing, clock=lambda: now[0])
    candidate = _candidate()

    await store.apply(candidate.id, candidate.meta, "snooze_1d")

    assert backing.writes == [KEY_ALERTS_STATE]
    assert backing.snapshot()[KEY_ALERTS_STATE]["items"][candidate.id]["snoozeUntil"] == T + DAY_MS
    assert store.visible([candidate]) == []
    now[0] = T + DAY_MS
    assert store.visible([candidate]) == [candidate]


@pytest.mark.asyncio
async def test_store_reconcile_writes_only_on_change() -> None:
    candidate = _candidate()
    document = _state(**{candidate.id: _item(ack_at=T, last_shown_at=T)}).to_document()
    backing = MemoryDocumentStore({KEY_ALERTS_STATE: document})
    store = AlertStateStore(backing, clock=lambda: T + DAY_MS)

    await store.reconcile([candidate])
    assert backing.writes == []
    assert store.visible([candidate]) == []

    changed = _candidate(ref="changed")
    await store.reconcile([changed])
    assert backing.writes == [KEY_ALERTS_STATE]
    assert backing.snapshot()[KEY_ALERTS_STATE]["items"] == {}
    assert store.visible([changed]) == [changed]


@pytest.mark.asyncio
async def test_store_load_tolerates_garbage() -> None:
    store = AlertStateStore(MemoryDocumentStore({KEY_ALERTS_STATE: "garbage"}), clock=lambda: T)
    assert await store.load() == AlertsState.empty()
