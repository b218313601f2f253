"""Driver identity resolution.

A driver is identified by badge when one is known, by free-text name
otherwise. The badge is authoritative: a record carrying a different badge
never matches, whatever its name says. Records without a badge fall back to
the badge's *primary name*, the display name most often recorded alongside
that badge.

Everything derived for one query lives on a :class:`ResolverContext` built
at the start of a reconciliation pass and dropped at its end.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from datetime import UTC, tzinfo

from pyflotta._constants import NAME_PLACEHOLDER, NO_BADGE_KEY
from pyflotta.ingestion.collections import DRIVER_SOURCES, SourceBuckets
from pyflotta.ingestion.normalize import (
    normalize_badge,
    normalize_badge_key,
    normalize_name,
    normalize_name_key,
)
from pyflotta.ingestion.sources import normalize_record
from pyflotta.models.records import CanonicalRecord, EntityMatch
from pyflotta.models.timeline import MatchConfidence

_logger = logging.getLogger(__name__)


def resolve_match(
    record: CanonicalRecord,
    target_badge_key: str,
    fallback_name_key: str,
) -> MatchConfidence | None:
    """Match a record against a target badge.

    Parameters
    ----------
    record : CanonicalRecord
        Normalized source record.
    target_badge_key : str
        Target badge, trimmed and lowercased.
    fallback_name_key : str
        Normalized primary name for the target badge (may be empty).

    Returns
    -------
    MatchConfidence or None
        ``EXACT`` when the record carries the target badge, ``WEAK`` when it
        carries no badge and its name equals the primary name, else ``None``.
    """
    badge_key = normalize_badge_key(record.badge)
    if badge_key:
        return MatchConfidence.EXACT if badge_key == target_badge_key else None
    name_key = normalize_name_key(record.display_name)
    if not name_key or not fallback_name_key:
        return None
    return MatchConfidence.WEAK if name_key == fallback_name_key else None


def primary_name_from_records(records: Iterable[CanonicalRecord], badge_key: str) -> str:
    """Most frequent display name among *records* carrying *badge_key*.

    Ties go to the name seen first. Returns ``""`` when no record with that
    badge has a name.
    """
    counts: dict[str, int] = {}
    labels: dict[str, str] = {}
    for record in records:
        if normalize_badge_key(record.badge) != badge_key:
            continue
        name = normalize_name(record.display_name)
        if not name:
            continue
        key = name.lower()
        if key not in counts:
            counts[key] = 0
            labels[key] = name
        counts[key] += 1

    best_key = ""
    best_count = 0
    for key, count in counts.items():
        if count > best_count:
            best_key, best_count = key, count
    return labels.get(best_key, "")


def iter_driver_records(buckets: SourceBuckets, *, tz: tzinfo = UTC) -> Iterable[CanonicalRecord]:
    for kind in DRIVER_SOURCES:
        for raw in buckets.records(kind):
            yield normalize_record(kind, raw, tz=tz)


def primary_name_for_badge(buckets: SourceBuckets, badge_key: str, *, tz: tzinfo = UTC) -> str:
    """Majority-vote display name for *badge_key* across every driver collection."""
    return primary_name_from_records(iter_driver_records(buckets, tz=tz), normalize_badge_key(badge_key))


class ResolverContext:
    """Identity resolution state for one reconciliation pass.

    Build it with :meth:`for_badge` or :meth:`for_name`, hand it to the
    aggregator, then read :meth:`name_matches` when querying by name. Do not
    reuse a context across passes: its match tally accumulates.
    """

    def __init__(
        self,
        *,
        badge_label: str = "",
        primary_name: str = "",
        name_query: str = "",
    ) -> None:
        self.badge_label = normalize_badge(badge_label)
        self.badge_key = self.badge_label.lower()
        self.primary_name = normalize_name(primary_name)
        self.primary_name_key = self.primary_name.lower()
        self.name_query = normalize_name(name_query)
        self.name_query_key = self.name_query.lower()
        if not self.badge_key and not self.name_query_key:
            raise ValueError("ResolverContext needs a badge or a name")
        self._matches: dict[str, EntityMatch] = {}

    @classmethod
    def for_badge(cls, buckets: SourceBuckets, badge: str, *, tz: tzinfo = UTC) -> ResolverContext:
        """Context for a badge query; computes the badge's primary name once."""
        label = normalize_badge(badge)
        if not label:
            raise ValueError("badge must be a non-empty string")
        primary = primary_name_for_badge(buckets, label.lower(), tz=tz)
        _logger.debug("Primary name for badge resolved (%s)", "found" if primary else "none")
        return cls(badge_label=label, primary_name=primary)

    @classmethod
    def for_name(cls, name: str) -> ResolverContext:
        """Context for a free-text name query (no badge known)."""
        if not normalize_name(name):
            raise ValueError("name must be a non-empty string")
        return cls(name_query=name)

    @property
    def is_name_mode(self) -> bool:
        return not self.badge_key

    def match(self, record: CanonicalRecord) -> MatchConfidence | None:
        """Resolve *record* against this context's target identity."""
        if not self.is_name_mode:
            return resolve_match(record, self.badge_key, self.primary_name_key)
        name_key = normalize_name_key(record.display_name)
        if name_key and name_key == self.name_query_key:
            return MatchConfidence.EXACT
        return None

    def register(self, record: CanonicalRecord) -> None:
        """Count one emitted event toward the name-mode match tally."""
        if not self.is_name_mode:
            return
        badge_label = normalize_badge(record.badge)
        key = badge_label.lower() or NO_BADGE_KEY
        name_label = normalize_name(record.display_name) or self.name_query or NAME_PLACEHOLDER
        existing = self._matches.get(key)
        if existing is None:
            self._matches[key] = EntityMatch(
                badge_key=key,
                badge_label=badge_label,
                name_label=name_label,
                occurrence_count=1,
            )
            return
        self._matches[key] = existing.model_copy(
            update={
                "occurrence_count": existing.occurrence_count + 1,
                "badge_label": existing.badge_label or badge_label,
                "name_label": existing.name_label or name_label,
            }
        )

    def name_matches(self) -> list[EntityMatch]:
        """Badges seen for the queried name, most frequent first (stable on ties)."""
        return sorted(self._matches.values(), key=lambda match: -match.occurrence_count)

    def derived_badge_label(self) -> str:
        """The badge behind a name query, when exactly one distinct badge matched."""
        labels = [match.badge_label for match in self.name_matches() if match.badge_label]
        if len({label.lower() for label in labels}) == 1:
            return labels[0]
        return ""
