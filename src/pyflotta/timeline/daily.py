"""Fleet-wide event feed for one calendar day."""

from __future__ import annotations

import logging
from datetime import UTC, date, tzinfo

from pyflotta.ingestion.collections import SourceBuckets
from pyflotta.ingestion.sources import normalize_record
from pyflotta.models.records import SourceKind
from pyflotta.models.timeline import MatchConfidence, TimelineEvent
from pyflotta.timeline.aggregate import dedupe_events, sort_events
from pyflotta.timeline.events import build_events, finalize_subtitle
from pyflotta.timeline.filters import day_end_millis, day_start_millis

_logger = logging.getLogger(__name__)

# Collections shown in the daily feed, in emission order.
DAILY_SOURCES: tuple[SourceKind, ...] = (
    SourceKind.REFUEL,
    SourceKind.REPORT,
    SourceKind.CHECK,
    SourceKind.REQUEST,
    SourceKind.MOTRICE_CHANGE,
)


def day_events(buckets: SourceBuckets, day: date, *, tz: tzinfo = UTC) -> list[TimelineEvent]:
    """Every fleet event recorded on *day* (a calendar day in *tz*), newest first.

    Unlike the driver and vehicle views nothing is resolved or correlated:
    each record timestamped inside the day becomes an event. Records without
    a usable timestamp are left out. Change events keep whatever before and
    after plates the record itself states.
    """
    start = day_start_millis(day, tz)
    end = day_end_millis(day, tz)

    events: list[TimelineEvent] = []
    for kind in DAILY_SOURCES:
        source_key = buckets.source_key(kind)
        for index, raw in enumerate(buckets.records(kind)):
            record = normalize_record(kind, raw, tz=tz)
            if record.timestamp is None or not start <= record.timestamp <= end:
                continue
            events.extend(
                build_events(record, source_key=source_key, index=index, confidence=MatchConfidence.EXACT, tz=tz)
            )

    events = sort_events([finalize_subtitle(event) for event in dedupe_events(events)])
    _logger.debug("Daily feed for %s: %d events", day.isoformat(), len(events))
    return events
