"""Base model for pyflotta data types.

Every pyflotta model inherits from :class:`FlottaBaseModel` which provides:

* ``alias_generator=to_camel`` so the camelCase keys used by the stored
  documents map automatically to snake_case fields, and
  ``model_dump(by_alias=True)`` writes them back unchanged.
* Frozen instances: derived data is produced with ``model_copy`` instead of
  in-place mutation.

:class:`FlottaRecordModel` additionally strips the placeholder values the
dashboard forms leave behind (``""``, ``"-"``, ``"--"``) and stashes the
original payload in ``raw``.
"""

from __future__ import annotations

import math
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, model_validator
from pydantic.alias_generators import to_camel

# Placeholder strings the dashboard stores for "not available".
_SENTINELS = frozenset({"", "-", "--", "—", "NaN", "nan"})


class FlottaBaseModel(BaseModel):
    """Base for pyflotta models."""

    model_config = ConfigDict(
        frozen=True,
        extra="ignore",
        populate_by_name=True,
        alias_generator=to_camel,
    )


class FlottaRecordModel(FlottaBaseModel):
    """Base for models parsed from raw store records."""

    raw: dict[str, Any] = Field(default_factory=dict, repr=False)
    """Original record dict."""

    @staticmethod
    def _clean_dict(values: dict[str, Any]) -> dict[str, Any]:
        cleaned: dict[str, Any] = {}
        for key, value in values.items():
            if value is None:
                continue
            if isinstance(value, str) and value.strip() in _SENTINELS:
                continue
            if isinstance(value, float) and math.isnan(value):
                continue
            cleaned[key] = value
        return cleaned

    @model_validator(mode="before")
    @classmethod
    def _clean_record_values(cls, values: Any) -> Any:
        """Strip placeholder values and stash the raw payload."""
        if not isinstance(values, dict):
            return values
        original = dict(values)
        cleaned = FlottaRecordModel._clean_dict(original)
        # Keep an explicitly provided raw (kwargs construction).
        if "raw" not in values:
            cleaned["raw"] = original
        return cleaned
