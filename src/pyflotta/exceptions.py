"""Custom exception hierarchy for pyflotta.

The reconciliation core never raises on dirty data. These exceptions only
cross the configuration and transport edges.
"""

from __future__ import annotations


class FlottaError(Exception):
    """Base exception for all pyflotta errors."""


class FlottaConfigError(FlottaError):
    """Invalid or missing configuration."""


class FlottaTransportError(FlottaError):
    """HTTP-level failure talking to the document store (network, non-2xx, invalid JSON)."""

    def __init__(
        self,
        message: str,
        *,
        status_code: int | None = None,
        key: str = "",
    ) -> None:
        self.status_code = status_code
        self.key = key
        super().__init__(message)
