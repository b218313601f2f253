from __future__ import annotations

from typing import Any

from pyflotta.models.timeline import EventType, TimelineEvent
from pyflotta.timeline.history import derive_change_history
from pyflotta.timeline.render import build_change_line, build_change_subtitle, history_action_label


def _event(event_id: str, ts: int, event_type: EventType = EventType.HISTORY, **fields: Any) -> TimelineEvent:
    fields.setdefault("badge", "7")
    fields.setdefault("is_change_event", True)
    return TimelineEvent(id=event_id, ts=ts, type=event_type, title=event_id, **fields)


def _by_id(events: list[TimelineEvent]) -> dict[str, TimelineEvent]:
    return {event.id: event for event in events}


def test_before_values_are_carried_forward_per_badge() -> None:
    hookup = _event("hookup", 100, EventType.HOOKUP, motrice="A", after_motrice="A")
    change = _event("change", 200, motrice="B")
    unhookup = _event("unhookup", 300, EventType.UNHOOKUP, after_motrice="")

    derived = _by_id(derive_change_history([unhookup, hookup, change]))

    assert derived["hookup"].before_motrice is None
    assert derived["change"].before_motrice == "A"
    assert derived["change"].after_motrice == "B"
    assert derived["unhookup"].before_motrice == "B"
    assert derived["unhookup"].after_motrice == ""


def test_output_keeps_input_order() -> None:
    events = [_event("c", 300), _event("a", 100), _event("b", 200)]
    assert [event.id for event in derive_change_history(events)] == ["c", "a", "b"]


def test_explicit_values_are_never_overwritten() -> None:
    first = _event("first", 100, motrice="A", rimorchio="R1")
    second = _event("second", 200, motrice="B", before_motrice="X", after_motrice="Y", before_rimorchio="")

    derived = _by_id(derive_change_history([first, second]))

    assert derived["second"].before_motrice == "X"
    assert derived["second"].after_motrice == "Y"
    assert derived["second"].before_rimorchio == ""


def test_events_without_badge_are_untouched() -> None:
    first = _event("first", 100, motrice="A")
    orphan = _event("orphan", 200, badge="", motrice="B")

    derived = _by_id(derive_change_history([first, orphan]))

    assert derived["orphan"] == orphan
    assert derived["orphan"].before_motrice is None


def test_badges_do_not_share_state() -> None:
    mine = _event("mine", 100, motrice="A")
    theirs = _event("theirs", 200, badge="8", motrice="B")

    derived = _by_id(derive_change_history([mine, theirs]))

    assert derived["theirs"].before_motrice is None


def test_non_change_events_still_advance_the_carried_coupling() -> None:
    check = _event("check", 100, EventType.CHECK, is_change_event=False, motrice="A", rimorchio="R1")
    change = _event("change", 200, motrice="B")

    derived = _by_id(derive_change_history([check, change]))

    assert derived["check"].before_motrice is None
    assert derived["change"].before_motrice == "A"
    assert derived["change"].before_rimorchio == "R1"


def test_badge_comparison_ignores_case_and_spaces() -> None:
    first = _event("first", 100, badge="ab12", motrice="A")
    second = _event("second", 200, badge=" AB12 ", motrice="B")

    derived = _by_id(derive_change_history([first, second]))

    assert derived["second"].before_motrice == "A"


def test_build_change_line() -> None:
    assert build_change_line("Motrice", "a", "b") == "Motrice: A -> B"
    assert build_change_line("Motrice", None, "b") == "Motrice: B (precedente non disponibile)"
    assert build_change_line("Motrice", "A", "") == "Motrice: A -> -"
    assert build_change_line("Motrice", None, None) is None


def test_build_change_subtitle_appends_extra_lines() -> None:
    event = _event(
        "e",
        100,
        before_motrice="A",
        after_motrice="B",
        extra=["Luogo: Cantiere Nord"],
    )
    assert build_change_subtitle(event) == "Motrice: A -> B | Luogo: Cantiere Nord"


def test_build_change_subtitle_placeholder_when_nothing_known() -> None:
    assert build_change_subtitle(_event("e", 100)) == "Dettaglio non disponibile"


def test_history_action_label() -> None:
    assert history_action_label("A", "B", "R1", "R2") == "Cambio assetto"
    assert history_action_label("A", "B", "", "") == "Cambio motrice"
    assert history_action_label("", "", "R1", "R2") == "Cambio rimorchio"
    assert history_action_label("", "B", "", "") == "Aggancio motrice"
    assert history_action_label("A", "", "", "") == "Sgancio motrice"
    assert history_action_label("A", "A", "", "R2") == "Aggancio rimorchio"
    assert history_action_label("", "", "", "") == ""
