"""Normalization helpers.

Centralizes defensive parsing of loosely typed store records. Every helper
here treats a value of unexpected type as absent and never raises.

Field lookups go through :func:`first_value`, which walks an explicit,
ordered list of field paths and returns the first one that converts. Source
schemas declare those lists once (see :mod:`pyflotta.ingestion.sources`).
"""

from __future__ import annotations

import math
import re
from collections.abc import Callable, Iterable, Mapping
from datetime import UTC, date, datetime, time, tzinfo
from typing import Any, TypeVar

from pyflotta._constants import SECONDS_THRESHOLD, TARGA_PLACEHOLDER

T = TypeVar("T")

FieldPath = tuple[str, ...]
"""Path into a nested record, e.g. ``("prima", "targaMotrice")``."""

_WHITESPACE_RE = re.compile(r"\s+")
_DMY_RE = re.compile(r"^(\d{1,2})[/.\s-](\d{1,2})[/.\s-](\d{4})(?:[,\sT]+(\d{1,2}):(\d{2}))?")
_ISO_DATE_RE = re.compile(r"(\d{4})-(\d{2})-(\d{2})")
_DMY_ANYWHERE_RE = re.compile(r"(\d{1,2})[./\s](\d{1,2})[./\s](\d{4})")
_DIGITS_RE = re.compile(r"^-?\d+(\.\d+)?$")


def safe_float(value: Any) -> float | None:
    if value is None or value == "" or isinstance(value, bool):
        return None
    try:
        result = float(value)
    except (TypeError, ValueError):
        return None
    if math.isnan(result) or math.isinf(result):
        return None
    return result


def safe_int(value: Any) -> int | None:
    parsed = safe_float(value)
    if parsed is None:
        return None
    return int(parsed)


def safe_str(value: Any) -> str:
    """Return a stripped string for ``str`` input, ``""`` for anything else."""
    if isinstance(value, str):
        return value.strip()
    return ""


# ---------------------------------------------------------------------------
# Identity keys
# ---------------------------------------------------------------------------


def normalize_targa(value: Any) -> str:
    """Uppercase a plate and strip all whitespace; non-plates become ``""``."""
    if isinstance(value, bool) or value is None:
        return ""
    if isinstance(value, (int, float)):
        value = str(value)
    if not isinstance(value, str):
        return ""
    return _WHITESPACE_RE.sub("", value).upper()


def format_targa_label(value: Any) -> str:
    normalized = normalize_targa(value)
    if not normalized or normalized == normalize_targa(TARGA_PLACEHOLDER):
        return TARGA_PLACEHOLDER
    return normalized


def normalize_badge(value: Any) -> str:
    if isinstance(value, bool) or value is None:
        return ""
    if isinstance(value, int):
        return str(value)
    return safe_str(value)


def normalize_badge_key(value: Any) -> str:
    return normalize_badge(value).lower()


def normalize_name(value: Any) -> str:
    """Collapse internal whitespace and trim."""
    return _WHITESPACE_RE.sub(" ", safe_str(value)).strip()


def normalize_name_key(value: Any) -> str:
    return normalize_name(value).lower()


# ---------------------------------------------------------------------------
# Timestamps
# ---------------------------------------------------------------------------


def _number_to_millis(value: float) -> int | None:
    if math.isnan(value) or math.isinf(value) or value <= 0:
        return None
    if value < SECONDS_THRESHOLD:
        value *= 1000
    return int(round(value))


def _datetime_to_millis(value: datetime, tz: tzinfo) -> int | None:
    if value.tzinfo is None:
        value = value.replace(tzinfo=tz)
    return _number_to_millis(value.timestamp() * 1000)


def _string_to_millis(text: str, tz: tzinfo) -> int | None:
    raw = text.strip()
    if not raw:
        return None
    if _DIGITS_RE.match(raw):
        return _number_to_millis(float(raw))

    match = _DMY_RE.match(raw)
    if match:
        dd, mm, yyyy, hh, mi = match.groups()
        try:
            parsed = datetime(int(yyyy), int(mm), int(dd), int(hh or 0), int(mi or 0), tzinfo=tz)
        except ValueError:
            return None
        return _datetime_to_millis(parsed, tz)

    iso = raw[:-1] + "+00:00" if raw.endswith(("Z", "z")) else raw
    try:
        parsed = datetime.fromisoformat(iso)
    except ValueError:
        return None
    if len(raw) == 10:
        # Date-only ISO strings are UTC midnight.
        parsed = parsed.replace(tzinfo=UTC)
    return _datetime_to_millis(parsed, tz)


def to_millis(value: Any, *, tz: tzinfo = UTC) -> int | None:
    """Convert a loosely typed timestamp to epoch milliseconds.

    Accepts numbers (values below 1e12 are seconds), numeric strings,
    ``dd/mm/yyyy[ hh:mm]`` and ISO-8601 strings, ``datetime``/``date`` and
    Firestore-style ``{"seconds": ..., "nanoseconds": ...}`` mappings.
    Naive values are interpreted in *tz*. Anything else, including
    non-positive numbers, is ``None``.
    """
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return _number_to_millis(float(value))
    if isinstance(value, str):
        return _string_to_millis(value, tz)
    if isinstance(value, datetime):
        return _datetime_to_millis(value, tz)
    if isinstance(value, date):
        return _datetime_to_millis(datetime.combine(value, time()), tz)
    if isinstance(value, Mapping):
        seconds = safe_float(value.get("seconds", value.get("_seconds")))
        if seconds is None:
            return None
        nanos = safe_float(value.get("nanoseconds", value.get("_nanoseconds"))) or 0.0
        return _number_to_millis(seconds * 1000 + nanos // 1_000_000)
    return None


def raw_timestamp_label(value: Any) -> str:
    """Render the raw timestamp value as it was stored (for display/debug)."""
    if value is None or isinstance(value, bool):
        return ""
    if isinstance(value, (int, float)):
        return "" if math.isnan(value) or math.isinf(value) else str(value)
    if isinstance(value, str):
        return value.strip()
    if isinstance(value, Mapping):
        seconds = safe_float(value.get("seconds", value.get("_seconds")))
        return str(int(seconds * 1000)) if seconds is not None else ""
    if isinstance(value, datetime):
        return value.isoformat()
    return ""


# ---------------------------------------------------------------------------
# Ordered field lookup
# ---------------------------------------------------------------------------


def get_path(record: Any, path: FieldPath) -> Any:
    """Follow *path* through nested mappings; any non-mapping hop yields ``None``."""
    current = record
    for key in path:
        if not isinstance(current, Mapping):
            return None
        current = current.get(key)
    return current


def first_value(
    record: Any,
    paths: Iterable[FieldPath],
    convert: Callable[[Any], T | None],
) -> T | None:
    """Return the first converted value over *paths* in priority order.

    ``convert`` returns ``None`` (or an empty string) to reject a value,
    in which case the next path is tried.
    """
    if not isinstance(record, Mapping):
        return None
    for path in paths:
        raw = get_path(record, path)
        if raw is None:
            continue
        converted = convert(raw)
        if converted is None or converted == "":
            continue
        return converted
    return None


def first_string(record: Any, paths: Iterable[FieldPath]) -> str:
    return first_value(record, paths, safe_str) or ""


def first_timestamp(record: Any, paths: Iterable[FieldPath], *, tz: tzinfo = UTC) -> int | None:
    return first_value(record, paths, lambda value: to_millis(value, tz=tz))


def first_timestamp_label(record: Any, paths: Iterable[FieldPath]) -> str:
    return first_value(record, paths, raw_timestamp_label) or ""


def first_plate(record: Any, paths: Iterable[FieldPath]) -> str:
    """First non-empty normalized plate over *paths*, else ``""``."""
    return first_value(record, paths, normalize_targa) or ""


def all_plates(record: Any, paths: Iterable[FieldPath]) -> list[str]:
    """Every distinct normalized plate over *paths*, in priority order."""
    plates: list[str] = []
    if not isinstance(record, Mapping):
        return plates
    for path in paths:
        plate = normalize_targa(get_path(record, path))
        if plate and plate not in plates:
            plates.append(plate)
    return plates


def first_bool(record: Any, paths: Iterable[FieldPath]) -> bool | None:
    """First strictly boolean value over *paths* (truthy strings do not count)."""
    if not isinstance(record, Mapping):
        return None
    for path in paths:
        value = get_path(record, path)
        if isinstance(value, bool):
            return value
    return None


def any_truthy(record: Any, paths: Iterable[FieldPath]) -> bool:
    if not isinstance(record, Mapping):
        return False
    return any(bool(get_path(record, path)) for path in paths)


# ---------------------------------------------------------------------------
# Calendar dates (vehicle master list)
# ---------------------------------------------------------------------------


def _build_date(year: int, month: int, day: int) -> date | None:
    try:
        return date(year, month, day)
    except ValueError:
        return None


def parse_date_flexible(value: Any, *, tz: tzinfo = UTC) -> date | None:
    """Parse a calendar date from ``yyyy-mm-dd``, ``dd/mm/yyyy`` or ``dd mm yyyy``.

    When the text contains both forms the earliest match wins. Epoch numbers
    and Firestore timestamps are converted in *tz*.
    """
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, datetime):
        return value.astimezone(tz).date() if value.tzinfo else value.date()
    if isinstance(value, date):
        return value
    if isinstance(value, (int, float, Mapping)):
        millis = to_millis(value, tz=tz)
        if millis is None:
            return None
        try:
            return datetime.fromtimestamp(millis / 1000, tz=tz).date()
        except (OverflowError, OSError, ValueError):
            return None
    text = safe_str(value)
    if not text:
        return None

    candidates: list[tuple[int, date]] = []
    iso = _ISO_DATE_RE.search(text)
    if iso:
        parsed = _build_date(int(iso.group(1)), int(iso.group(2)), int(iso.group(3)))
        if parsed is not None:
            candidates.append((iso.start(), parsed))
    dmy = _DMY_ANYWHERE_RE.search(text)
    if dmy:
        parsed = _build_date(int(dmy.group(3)), int(dmy.group(2)), int(dmy.group(1)))
        if parsed is not None:
            candidates.append((dmy.start(), parsed))
    if not candidates:
        return None
    candidates.sort(key=lambda item: item[0])
    return candidates[0][1]
