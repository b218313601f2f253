"""Timeline filtering for the driver and vehicle views."""

from __future__ import annotations

import dataclasses
from collections.abc import Iterable
from datetime import date, datetime, time, timedelta, tzinfo

from pyflotta._constants import NO_BADGE_KEY
from pyflotta.ingestion.normalize import normalize_badge_key, normalize_targa
from pyflotta.models.timeline import EventType, TimelineEvent


def day_start_millis(day: date, tz: tzinfo) -> int:
    return int(datetime.combine(day, time(), tzinfo=tz).timestamp() * 1000)


def day_end_millis(day: date, tz: tzinfo) -> int:
    """Last millisecond of *day* in *tz*."""
    return day_start_millis(day + timedelta(days=1), tz) - 1


@dataclasses.dataclass(frozen=True)
class TimelineFilter:
    """Filter criteria; every unset criterion matches everything.

    ``date_from``/``date_to`` are inclusive calendar days in the configured
    zone. When either bound is set, events without a timestamp are excluded.
    ``badge`` applies to name-mode timelines; use :data:`NO_BADGE_KEY` to
    select events recorded without a badge.
    """

    types: frozenset[EventType] = frozenset()
    plate: str = ""
    date_from: date | None = None
    date_to: date | None = None
    badge: str = ""

    def matches(self, event: TimelineEvent, tz: tzinfo) -> bool:
        if self.types and event.type not in self.types:
            return False
        plate = normalize_targa(self.plate)
        if plate and plate not in normalize_targa(event.targa):
            return False
        if self.date_from is not None or self.date_to is not None:
            if not event.ts:
                return False
            if self.date_from is not None and event.ts < day_start_millis(self.date_from, tz):
                return False
            if self.date_to is not None and event.ts > day_end_millis(self.date_to, tz):
                return False
        if self.badge:
            wanted = self.badge if self.badge == NO_BADGE_KEY else normalize_badge_key(self.badge)
            actual = normalize_badge_key(event.badge) or NO_BADGE_KEY
            if actual != wanted:
                return False
        return True


def filter_events(events: Iterable[TimelineEvent], criteria: TimelineFilter, tz: tzinfo) -> list[TimelineEvent]:
    return [event for event in events if criteria.matches(event, tz)]


def type_counts(events: Iterable[TimelineEvent]) -> dict[EventType, int]:
    counts: dict[EventType, int] = {}
    for event in events:
        counts[event.type] = counts.get(event.type, 0) + 1
    return counts
