"""Stable content hashes used for alert identities and fingerprints.

The dashboard already persists alert ids built with a 32-bit FNV-1a hash
rendered in base 36, so the same function is reproduced here bit for bit.
"""

from __future__ import annotations

from collections.abc import Iterable
from typing import Any

_FNV_OFFSET = 0x811C9DC5
_FNV_PRIME = 0x01000193
_MASK32 = 0xFFFFFFFF
_BASE36 = "0123456789abcdefghijklmnopqrstuvwxyz"


def _to_base36(value: int) -> str:
    if value == 0:
        return "0"
    digits: list[str] = []
    while value:
        value, rem = divmod(value, 36)
        digits.append(_BASE36[rem])
    return "".join(reversed(digits))


def stable_hash32(value: str) -> str:
    """Compute the 32-bit FNV-1a hash of *value*, returned in base 36.

    Hashes UTF-16 code units so that non-BMP characters produce the same
    digest as the browser implementation.

    Parameters
    ----------
    value : str
        The string to hash.

    Returns
    -------
    str
        Lowercase base-36 digest (1 to 7 characters).
    """
    h = _FNV_OFFSET
    encoded = value.encode("utf-16-le")
    for i in range(0, len(encoded), 2):
        h ^= encoded[i] | (encoded[i + 1] << 8)
        h = (h * _FNV_PRIME) & _MASK32
    return _to_base36(h)


def fingerprint(parts: Iterable[Any]) -> str:
    """Hash a sequence of parts joined with ``|``; ``None`` becomes empty."""
    return stable_hash32("|".join("" if part is None else str(part) for part in parts))
