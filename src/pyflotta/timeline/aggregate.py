"""Driver timeline aggregation."""

from __future__ import annotations

import logging
from datetime import UTC, tzinfo
from typing import Any

from pydantic import Field

from pyflotta._constants import NAME_PLACEHOLDER
from pyflotta._redact import redact_for_log
from pyflotta.identity.resolver import ResolverContext
from pyflotta.ingestion.collections import DRIVER_SOURCES, SourceBuckets
from pyflotta.ingestion.normalize import normalize_name
from pyflotta.ingestion.sources import normalize_record
from pyflotta.models._base import FlottaBaseModel
from pyflotta.models.records import EntityMatch, SourceKind
from pyflotta.models.timeline import EventType, TimelineEvent
from pyflotta.timeline.events import build_events, finalize_subtitle
from pyflotta.timeline.filters import type_counts
from pyflotta.timeline.history import derive_change_history

_logger = logging.getLogger(__name__)


class DriverTimeline(FlottaBaseModel):
    """Everything the driver view shows for one badge or name query."""

    events: list[TimelineEvent] = Field(default_factory=list)
    """Newest first; events without a timestamp last."""
    badge_label: str = ""
    """Queried badge, or the badge derived from a name query when unambiguous."""
    primary_name: str = ""
    header_name: str = NAME_PLACEHOLDER
    active_session: dict[str, Any] | None = None
    """First matched session without a close marker, as stored."""
    name_matches: list[EntityMatch] = Field(default_factory=list)
    """Name mode only: candidate badges, most frequent first."""

    @property
    def is_ambiguous(self) -> bool:
        return len(self.name_matches) > 1

    @property
    def type_counts(self) -> dict[EventType, int]:
        return type_counts(self.events)


def sort_events(events: list[TimelineEvent]) -> list[TimelineEvent]:
    """Descending ``ts``; equal timestamps keep their emission order."""
    return sorted(events, key=lambda event: -event.ts)


def dedupe_events(events: list[TimelineEvent]) -> list[TimelineEvent]:
    """Drop events whose id was already emitted (first occurrence wins)."""
    seen: set[str] = set()
    unique: list[TimelineEvent] = []
    for event in events:
        if event.id in seen:
            _logger.debug("Dropping duplicate timeline event %s", event.id)
            continue
        seen.add(event.id)
        unique.append(event)
    return unique


def build_driver_timeline(
    buckets: SourceBuckets,
    context: ResolverContext,
    *,
    tz: tzinfo = UTC,
    derive_history: bool = True,
) -> DriverTimeline:
    """Merge every driver collection into one timeline for *context*'s identity.

    Each record is normalized, resolved against the context and, on a match,
    turned into events (a session yields a hookup and, once closed, an
    unhookup). Event ids are derived from the collection key and the
    record's native id or index, so re-running over unchanged data yields
    the same ids in the same order.

    Parameters
    ----------
    buckets : SourceBuckets
        Raw collections for this pass.
    context : ResolverContext
        Target identity; its name-match tally is filled as a side effect.
    tz : tzinfo
        Zone used to interpret naive timestamps and to render date labels.
    derive_history : bool
        Run :func:`~pyflotta.timeline.history.derive_change_history` before
        rendering change subtitles.
    """
    events: list[TimelineEvent] = []
    active_session: dict[str, Any] | None = None
    active_session_name = ""

    for kind in DRIVER_SOURCES:
        source_key = buckets.source_key(kind)
        for index, raw in enumerate(buckets.records(kind)):
            record = normalize_record(kind, raw, tz=tz)
            confidence = context.match(record)
            if confidence is None:
                continue
            emitted = build_events(record, source_key=source_key, index=index, confidence=confidence, tz=tz)
            if not emitted:
                _logger.debug("Record %s#%d produced no events: %s", source_key, index, redact_for_log(raw))
            for event in emitted:
                events.append(event)
                context.register(record)
            if kind is SourceKind.SESSION and active_session is None and not record.closed:
                active_session = record.raw
                active_session_name = normalize_name(record.display_name)

    events = dedupe_events(events)
    if derive_history:
        events = derive_change_history(events)
    events = sort_events([finalize_subtitle(event) for event in events])

    name_matches = context.name_matches() if context.is_name_mode else []
    badge_label = context.derived_badge_label() if context.is_name_mode else context.badge_label

    if context.is_name_mode:
        header_name = context.name_query
    else:
        header_name = context.primary_name or active_session_name or NAME_PLACEHOLDER

    _logger.debug(
        "Timeline built: %d events, %d name matches, active session %s",
        len(events),
        len(name_matches),
        "yes" if active_session is not None else "no",
    )
    return DriverTimeline(
        events=events,
        badge_label=badge_label,
        primary_name=context.primary_name,
        header_name=header_name or NAME_PLACEHOLDER,
        active_session=active_session,
        name_matches=name_matches,
    )
