"""Document store adapters.

The reconciliation core only ever talks to a :class:`DocumentStore`: an
async ``get``/``set`` pair keyed by string. Failures never propagate into
the core; a failed read is ``None`` and a failed write is a no-op, both
logged at WARNING level.
"""

from __future__ import annotations

import copy
import logging
from collections.abc import Mapping
from typing import Any, Protocol

import aiohttp

from pyflotta._transport import Transport
from pyflotta.exceptions import FlottaTransportError

_logger = logging.getLogger(__name__)


class DocumentStore(Protocol):
    async def get(self, key: str) -> Any | None:
        ...

    async def set(self, key: str, value: Any) -> None:
        ...


def unwrap_list(value: Any) -> list[Any]:
    """Normalize a stored collection to a list.

    Accepts a bare list, a ``{"value": [...]}`` document, or the legacy
    ``{"items": [...]}`` shape. Anything else is an empty list.
    """
    if isinstance(value, list):
        return value
    if isinstance(value, Mapping):
        for member in ("value", "items"):
            inner = value.get(member)
            if isinstance(inner, list):
                return inner
    return []


class RemoteDocumentStore:
    """:class:`DocumentStore` backed by an HTTP :class:`~pyflotta._transport.Transport`."""

    def __init__(self, transport: Transport) -> None:
        self._transport = transport

    async def get(self, key: str) -> Any | None:
        try:
            return await self._transport.get_document(key)
        except (FlottaTransportError, aiohttp.ClientError) as exc:
            _logger.warning("Reading %s failed, treating as empty: %s", key, exc)
            _logger.debug("Read failure detail for %s", key, exc_info=True)
            return None

    async def set(self, key: str, value: Any) -> None:
        try:
            await self._transport.put_document(key, value)
        except (FlottaTransportError, aiohttp.ClientError) as exc:
            _logger.warning("Writing %s failed, change not persisted: %s", key, exc)
            _logger.debug("Write failure detail for %s", key, exc_info=True)


class MemoryDocumentStore:
    """In-process :class:`DocumentStore` for tests and offline use.

    Values are deep-copied on the way in and out so callers cannot mutate
    stored documents by accident.
    """

    def __init__(self, initial: Mapping[str, Any] | None = None) -> None:
        self._data: dict[str, Any] = {key: copy.deepcopy(value) for key, value in (initial or {}).items()}
        self.writes: list[str] = []

    async def get(self, key: str) -> Any | None:
        if key not in self._data:
            return None
        return copy.deepcopy(self._data[key])

    async def set(self, key: str, value: Any) -> None:
        self._data[key] = copy.deepcopy(value)
        self.writes.append(key)

    def snapshot(self) -> dict[str, Any]:
        return copy.deepcopy(self._data)
