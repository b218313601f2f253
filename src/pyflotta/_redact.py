"""Helpers for safe debug logging.

Fleet records carry driver names, badge codes and inline photo data URLs.
This module redacts them before records are emitted in DEBUG logs.
"""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from typing import Any

_SENSITIVE_VALUE_KEYS: frozenset[str] = frozenset(
    {
        "autista",
        "autistanome",
        "nomeautista",
        "nome",
        "cognome",
        "drivername",
        "badge",
        "badgeautista",
        "autistabadge",
        "badgeid",
        "telefono",
        "email",
        "token",
        "authorization",
        "apitoken",
    }
)

# Photo payloads are either huge inline data URLs or storage paths.
_PHOTO_KEYS: frozenset[str] = frozenset(
    {
        "foto",
        "fotourl",
        "fotourls",
        "fotodataurl",
        "fotostoragepath",
        "fotostoragepaths",
    }
)


def redact_for_log(value: Any, *, max_string: int = 256, _depth: int = 0) -> Any:
    """Return a redacted copy of *value* suitable for debug logs."""
    if _depth > 20:
        return "<max-depth>"

    if value is None:
        return None

    if isinstance(value, str):
        if value.startswith("data:"):
            return f"<data-url:{len(value)}c>"
        if len(value) > max_string:
            return f"{value[:max_string]}…<truncated>"
        return value

    if isinstance(value, (int, float, bool)):
        return value

    if isinstance(value, bytes):
        return f"<bytes:{len(value)}b>"

    if isinstance(value, Mapping):
        redacted: dict[str, Any] = {}
        for k, v in value.items():
            key = str(k)
            lowered = key.lower()
            if lowered in _SENSITIVE_VALUE_KEYS and not isinstance(v, Mapping):
                redacted[key] = "<redacted>"
            elif lowered in _PHOTO_KEYS:
                redacted[key] = "<photo>"
            else:
                redacted[key] = redact_for_log(v, max_string=max_string, _depth=_depth + 1)
        return redacted

    if isinstance(value, Sequence) and not isinstance(value, (str, bytes, bytearray)):
        return [redact_for_log(v, max_string=max_string, _depth=_depth + 1) for v in value]

    # Fallback: represent unknown objects without dumping internals.
    return repr(value)
