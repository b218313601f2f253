"""Identity resolution: driver badge/name matching and plate near-matching."""

from pyflotta.identity.plates import is_same_plate
from pyflotta.identity.resolver import (
    ResolverContext,
    primary_name_for_badge,
    primary_name_from_records,
    resolve_match,
)

__all__ = [
    "ResolverContext",
    "is_same_plate",
    "primary_name_for_badge",
    "primary_name_from_records",
    "resolve_match",
]
