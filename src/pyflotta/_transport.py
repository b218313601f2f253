"""HTTP transport for the JSON document store."""

from __future__ import annotations

import json
import logging
from typing import Any, Protocol
from urllib.parse import quote

import aiohttp

from pyflotta.config import FlottaConfig
from pyflotta.exceptions import FlottaTransportError

_logger = logging.getLogger(__name__)

_USER_AGENT = "pyflotta"


class Transport(Protocol):
    """Structural transport interface used by :class:`~pyflotta.storage.RemoteDocumentStore`.

    Having a protocol here makes it easy to pass test doubles while keeping
    the production implementation (:class:`HttpTransport`) concrete.
    """

    async def get_document(self, key: str) -> Any:
        ...

    async def put_document(self, key: str, value: Any) -> None:
        ...


class HttpTransport:
    """Reads and writes ``{"value": ...}`` documents at ``{base_url}/storage/{key}``."""

    def __init__(self, config: FlottaConfig, http_session: aiohttp.ClientSession) -> None:
        self._config = config
        self._http = http_session
        self._timeout = aiohttp.ClientTimeout(total=config.request_timeout)

    def _url(self, key: str) -> str:
        return f"{self._config.base_url.rstrip('/')}/storage/{quote(key, safe='')}"

    def _headers(self) -> dict[str, str]:
        headers = {
            "accept": "application/json",
            "content-type": "application/json; charset=UTF-8",
            "user-agent": _USER_AGENT,
        }
        if self._config.api_token:
            headers["authorization"] = f"Bearer {self._config.api_token}"
        return headers

    async def get_document(self, key: str) -> Any:
        """Fetch the document stored at *key*.

        Returns the document's ``value`` member, or ``None`` when the key
        does not exist (HTTP 404).
        """
        url = self._url(key)
        _logger.debug("GET %s", url)
        try:
            async with self._http.get(url, headers=self._headers(), timeout=self._timeout) as resp:
                text = await resp.text()
                if resp.status == 404:
                    return None
                if resp.status != 200:
                    raise FlottaTransportError(
                        f"HTTP {resp.status} reading {key}: {text[:200]}",
                        status_code=resp.status,
                        key=key,
                    )
        except FlottaTransportError:
            raise
        except TimeoutError as exc:
            raise FlottaTransportError(f"Reading {key} timed out", key=key) from exc
        except (aiohttp.ClientError, UnicodeDecodeError) as exc:
            raise FlottaTransportError(f"Reading {key} failed: {exc}", key=key) from exc

        if not text.strip():
            return None
        try:
            body = json.loads(text)
        except json.JSONDecodeError as exc:
            raise FlottaTransportError(f"Invalid JSON reading {key}: {text[:200]}", key=key) from exc

        if isinstance(body, dict) and "value" in body:
            return body["value"]
        return body

    async def put_document(self, key: str, value: Any) -> None:
        """Store *value* at *key* as ``{"value": value}``."""
        url = self._url(key)
        payload = json.dumps({"value": value}, separators=(",", ":"))
        _logger.debug("PUT %s (%d bytes)", url, len(payload))
        try:
            async with self._http.put(url, data=payload, headers=self._headers(), timeout=self._timeout) as resp:
                if resp.status not in (200, 201, 204):
                    text = await resp.text()
                    raise FlottaTransportError(
                        f"HTTP {resp.status} writing {key}: {text[:200]}",
                        status_code=resp.status,
                        key=key,
                    )
        except FlottaTransportError:
            raise
        except TimeoutError as exc:
            raise FlottaTransportError(f"Writing {key} timed out", key=key) from exc
        except (aiohttp.ClientError, UnicodeDecodeError) as exc:
            raise FlottaTransportError(f"Writing {key} failed: {exc}", key=key) from exc
