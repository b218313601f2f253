"""Plate near-matching for the vehicle-centric view."""

from __future__ import annotations

from typing import Any

from pyflotta.ingestion.normalize import normalize_targa


def _alnum(value: str) -> str:
    return "".join(ch for ch in value if ch.isalnum())


def is_same_plate(a: Any, b: Any) -> bool:
    """Return ``True`` when two plates are the same up to one typo.

    Plates are normalized and stripped of punctuation first. They match when
    equal, or when their lengths differ by at most one and at most one
    position differs over the shorter string. Empty plates never match.

    Only meant for correlating legacy free-text plate fields; driver identity
    never goes through this tolerance.
    """
    left = _alnum(normalize_targa(a))
    right = _alnum(normalize_targa(b))
    if not left or not right:
        return False
    if left == right:
        return True
    if abs(len(left) - len(right)) > 1:
        return False
    shorter = min(len(left), len(right))
    mismatches = sum(1 for i in range(shorter) if left[i] != right[i])
    return mismatches <= 1
