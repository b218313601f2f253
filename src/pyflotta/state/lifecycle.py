"""Alert lifecycle as pure functions of ``(state, inputs, now) -> state``.

None of these functions touch storage or read a clock, so a
compare-and-swap persistence layer can wrap them unchanged. See
:class:`~pyflotta.state.store.AlertStateStore` for the stateful wrapper.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable

from pyflotta.models.alerts import AlertCandidate, AlertMeta, AlertsState, AlertStateItem
from pyflotta.state.events import AlertAction, parse_action
from pyflotta.state.policy import (
    DEFAULT_PRUNE_AFTER_DAYS,
    is_expired,
    is_forgotten,
    is_meta_changed,
    is_suppressing,
    prune_threshold,
)

_logger = logging.getLogger(__name__)


def reconcile(
    state: AlertsState,
    candidates: Iterable[AlertCandidate],
    now: int,
    *,
    prune_after_days: int = DEFAULT_PRUNE_AFTER_DAYS,
) -> AlertsState:
    """Reconcile stored alert state against freshly generated candidates.

    1. A stored item whose ``meta`` differs from its candidate's is dropped:
       the content changed, so the alert counts as unseen.
    2. Items whose acknowledgement and snooze both predate the prune
       threshold are dropped.
    3. Items with no current candidate are dropped once their
       ``last_shown_at`` predates the threshold.

    Returns *state* itself when nothing changed.
    """
    by_id = {candidate.id: candidate for candidate in candidates}
    threshold = prune_threshold(now, prune_after_days)

    items: dict[str, AlertStateItem] = {}
    for alert_id, item in state.items.items():
        candidate = by_id.get(alert_id)
        if candidate is not None and is_meta_changed(item.meta, candidate.meta):
            _logger.debug("Alert %s content changed, dropping stored state", alert_id)
            continue
        if is_expired(item, threshold):
            _logger.debug("Pruning expired alert state %s", alert_id)
            continue
        if candidate is None and is_forgotten(item, threshold):
            _logger.debug("Pruning forgotten alert state %s", alert_id)
            continue
        items[alert_id] = item

    if len(items) == len(state.items):
        return state
    return AlertsState(items=items)


def apply_action(
    state: AlertsState,
    alert_id: str,
    meta: AlertMeta,
    action: AlertAction | str,
    now: int,
) -> AlertsState:
    """Record an acknowledge/snooze action on *alert_id*.

    ``ack`` sets ``ack_at=now`` and clears the snooze; ``snooze_1d`` and
    ``snooze_3d`` set ``snooze_until`` one or three days ahead and clear the
    acknowledgement. ``last_shown_at`` is always set to *now*. The stored
    ``meta`` is kept when equal to *meta*, otherwise replaced.

    Raises
    ------
    ValueError
        If *action* is not a known :class:`AlertAction`.
    """
    resolved = parse_action(action)
    previous = state.items.get(alert_id)
    snooze = resolved.snooze_millis

    item = AlertStateItem(
        ack_at=now if resolved is AlertAction.ACK else None,
        snooze_until=now + snooze if snooze is not None else None,
        last_shown_at=now,
        meta=meta if previous is None or is_meta_changed(previous.meta, meta) else previous.meta,
    )
    return AlertsState(items={**state.items, alert_id: item})


def is_hidden(state: AlertsState, candidate: AlertCandidate, now: int) -> bool:
    """Hidden iff a stored item exists with unchanged meta and still suppresses."""
    item = state.items.get(candidate.id)
    if item is None or is_meta_changed(item.meta, candidate.meta):
        return False
    return is_suppressing(item, now)


def visible_alerts(state: AlertsState, candidates: Iterable[AlertCandidate], now: int) -> list[AlertCandidate]:
    """Candidates not hidden by stored state, in their original order."""
    return [candidate for candidate in candidates if not is_hidden(state, candidate, now)]
