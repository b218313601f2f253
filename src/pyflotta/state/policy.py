"""Alert suppression and retention policy.

Pure predicates over stored items. No I/O and no clock: ``now`` and the
prune threshold are always passed in.
"""

from __future__ import annotations

from pyflotta._constants import DAY_MS
from pyflotta.models.alerts import AlertMeta, AlertStateItem

DEFAULT_PRUNE_AFTER_DAYS = 90


def prune_threshold(now: int, prune_after_days: int = DEFAULT_PRUNE_AFTER_DAYS) -> int:
    return now - prune_after_days * DAY_MS


def is_meta_changed(previous: AlertMeta | None, current: AlertMeta) -> bool:
    if previous is None:
        return True
    return previous.type != current.type or previous.ref != current.ref


def is_suppressing(item: AlertStateItem, now: int) -> bool:
    """Acknowledged, or snoozed until a time still in the future."""
    if item.ack_at is not None:
        return True
    return item.snooze_until is not None and now < item.snooze_until


def is_expired(item: AlertStateItem, threshold: int) -> bool:
    """Both the acknowledgement and the snooze (missing counts as 0) predate *threshold*."""
    return (item.snooze_until or 0) < threshold and (item.ack_at or 0) < threshold


def is_forgotten(item: AlertStateItem, threshold: int) -> bool:
    """Last shown before *threshold* (only applies to alerts no longer generated)."""
    last_shown = item.last_shown_at or 0
    return 0 < last_shown < threshold
