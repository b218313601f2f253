"""Change-history derivation.

Source collections mostly record the *current* coupling (which tractor and
trailer a driver has) rather than deltas. Walking a driver's events in
chronological order and carrying the last known coupling forward recovers
the missing "before" side of each change.
"""

from __future__ import annotations

import dataclasses
from collections.abc import Iterable

from pyflotta.ingestion.normalize import normalize_badge_key
from pyflotta.models.timeline import TimelineEvent


@dataclasses.dataclass
class _Coupling:
    motrice: str = ""
    rimorchio: str = ""


def derive_change_history(events: Iterable[TimelineEvent]) -> list[TimelineEvent]:
    """Fill unset before/after plates on change events.

    One forward pass in ascending ``ts`` (stable for equal timestamps) keeps
    the last seen ``{motrice, rimorchio}`` per badge. For every change event:

    * an unset ``before_*`` takes the carried value, when there is one;
    * an unset ``after_*`` takes the event's own current plate, when set.

    The carried state then moves to the event's ``after_*`` plate if
    non-empty, else to its current plate; an event with neither leaves it
    unchanged. Events without a badge are passed through untouched.

    Fields already set (including an explicit ``""`` meaning "nothing
    coupled") are never overwritten. Values that cannot be derived stay
    ``None``.

    Returns
    -------
    list[TimelineEvent]
        Updated copies, in the same order as the input.
    """
    ordered = list(events)
    carried: dict[str, _Coupling] = {}
    results: dict[int, TimelineEvent] = {}

    for position in sorted(range(len(ordered)), key=lambda i: ordered[i].ts):
        event = ordered[position]
        badge_key = normalize_badge_key(event.badge)
        if not badge_key:
            results[position] = event
            continue
        last = carried.setdefault(badge_key, _Coupling())

        if event.is_change_event:
            updates: dict[str, str] = {}
            if event.before_motrice is None and last.motrice:
                updates["before_motrice"] = last.motrice
            if event.after_motrice is None and event.motrice:
                updates["after_motrice"] = event.motrice
            if event.before_rimorchio is None and last.rimorchio:
                updates["before_rimorchio"] = last.rimorchio
            if event.after_rimorchio is None and event.rimorchio:
                updates["after_rimorchio"] = event.rimorchio
            if updates:
                event = event.model_copy(update=updates)

        next_motrice = event.after_motrice or event.motrice
        next_rimorchio = event.after_rimorchio or event.rimorchio
        if next_motrice:
            last.motrice = next_motrice
        if next_rimorchio:
            last.rimorchio = next_rimorchio
        results[position] = event

    return [results[i] for i in range(len(ordered))]
