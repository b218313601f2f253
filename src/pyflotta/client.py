"""High-level async client for the fleet reconciliation core."""

from __future__ import annotations

import asyncio
import logging
import time
from collections.abc import AsyncIterator, Callable
from datetime import date, datetime
from typing import Any

import aiohttp

from pyflotta._transport import HttpTransport
from pyflotta.alerts.rules import generate_alert_candidates
from pyflotta.config import FlottaConfig
from pyflotta.exceptions import FlottaError
from pyflotta.identity.resolver import ResolverContext
from pyflotta.ingestion.collections import SourceBuckets, load_buckets
from pyflotta.models.alerts import AlertCandidate, AlertMeta, AlertsState
from pyflotta.models.timeline import TimelineEvent
from pyflotta.models.vehicle import TrailerStatus
from pyflotta.state.events import AlertAction
from pyflotta.state.store import AlertStateStore
from pyflotta.storage import DocumentStore, RemoteDocumentStore
from pyflotta.timeline.aggregate import DriverTimeline, build_driver_timeline
from pyflotta.timeline.daily import day_events
from pyflotta.timeline.vehicle import VehicleTimeline, build_vehicle_timeline, trailer_status_board

_logger = logging.getLogger(__name__)


def _now_ms() -> int:
    """Current epoch timestamp in milliseconds."""
    return int(time.time() * 1000)


class FlottaClient:
    """Async client over the fleet document store.

    Usage::

        async with FlottaClient(config) as client:
            timeline = await client.driver_timeline(badge="12")
            alerts = await client.refresh_alerts()

    Pass ``store=`` to run against any :class:`~pyflotta.storage.DocumentStore`
    (for example :class:`~pyflotta.storage.MemoryDocumentStore`); otherwise an
    HTTP store is opened on ``config.base_url``.
    """

    def __init__(
        self,
        config: FlottaConfig | None = None,
        *,
        store: DocumentStore | None = None,
        session: aiohttp.ClientSession | None = None,
        clock: Callable[[], int] = _now_ms,
    ) -> None:
        self._config = config or FlottaConfig()
        self._tz = self._config.tzinfo
        self._clock = clock
        self._store = store
        self._external_session = session is not None
        self._http_session = session
        self._alert_store: AlertStateStore | None = None
        self._candidates: list[AlertCandidate] = []

    # ------------------------------------------------------------------
    # Context manager lifecycle
    # ------------------------------------------------------------------

    async def __aenter__(self) -> FlottaClient:
        if self._store is None:
            if self._http_session is None:
                self._http_session = aiohttp.ClientSession()
            self._store = RemoteDocumentStore(HttpTransport(self._config, self._http_session))
        self._alert_store = AlertStateStore(
            self._store,
            key=self._config.keys.alerts_state,
            clock=self._clock,
            prune_after_days=self._config.prune_after_days,
        )
        return self

    async def __aexit__(self, *exc: Any) -> None:
        if not self._external_session and self._http_session is not None:
            await self._http_session.close()
            self._http_session = None
        self._alert_store = None

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _require_store(self) -> DocumentStore:
        if self._store is None or self._alert_store is None:
            raise FlottaError("Client not initialized. Use 'async with FlottaClient(...) as client:'")
        return self._store

    def _require_alert_store(self) -> AlertStateStore:
        self._require_store()
        assert self._alert_store is not None  # noqa: S101
        return self._alert_store

    async def _buckets(self, buckets: SourceBuckets | None) -> SourceBuckets:
        return buckets if buckets is not None else await self.load_sources()

    # ------------------------------------------------------------------
    # Source data
    # ------------------------------------------------------------------

    async def load_sources(self) -> SourceBuckets:
        """Read every source collection concurrently for one pass."""
        return await load_buckets(self._require_store(), self._config.keys)

    # ------------------------------------------------------------------
    # Timelines
    # ------------------------------------------------------------------

    async def driver_timeline(
        self,
        *,
        badge: str | None = None,
        name: str | None = None,
        buckets: SourceBuckets | None = None,
    ) -> DriverTimeline:
        """Timeline for a driver, by badge (preferred) or by free-text name.

        Raises
        ------
        ValueError
            If neither a badge nor a name is given.
        """
        if not (badge and badge.strip()) and not (name and name.strip()):
            raise ValueError("driver_timeline needs a badge or a name")
        data = await self._buckets(buckets)
        if badge and badge.strip():
            context = ResolverContext.for_badge(data, badge, tz=self._tz)
        else:
            context = ResolverContext.for_name(name or "")
        return build_driver_timeline(data, context, tz=self._tz)

    async def vehicle_timeline(self, targa: str, *, buckets: SourceBuckets | None = None) -> VehicleTimeline:
        data = await self._buckets(buckets)
        return build_vehicle_timeline(data, targa, tz=self._tz)

    async def trailer_status(self, *, buckets: SourceBuckets | None = None) -> list[TrailerStatus]:
        data = await self._buckets(buckets)
        return trailer_status_board(data, now=self._clock(), tz=self._tz)

    async def day_events(self, day: date | None = None, *, buckets: SourceBuckets | None = None) -> list[TimelineEvent]:
        """Fleet events recorded on *day* (default: today in the configured zone), newest first."""
        if day is None:
            day = datetime.fromtimestamp(self._clock() / 1000, tz=self._tz).date()
        data = await self._buckets(buckets)
        return day_events(data, day, tz=self._tz)

    # ------------------------------------------------------------------
    # Alerts
    # ------------------------------------------------------------------

    async def alert_candidates(self, *, buckets: SourceBuckets | None = None) -> list[AlertCandidate]:
        """Every alert-worthy condition, ignoring acknowledge/snooze state.

        The result is kept as the candidate set used by :meth:`visible_alerts`
        and :meth:`apply_alert_action`.
        """
        data = await self._buckets(buckets)
        self._candidates = generate_alert_candidates(
            data,
            now=self._clock(),
            tz=self._tz,
            warning_days=self._config.inspection_warning_days,
        )
        return list(self._candidates)

    async def load_alert_state(self) -> AlertsState:
        """Read the stored alert state without reconciling or writing it."""
        return await self._require_alert_store().load()

    async def refresh_alerts(self, *, buckets: SourceBuckets | None = None) -> list[AlertCandidate]:
        """Regenerate candidates, reconcile stored state and return the visible ones."""
        alert_store = self._require_alert_store()
        candidates = await self.alert_candidates(buckets=buckets)
        await alert_store.reconcile(candidates)
        return alert_store.visible(candidates)

    def visible_alerts(self) -> list[AlertCandidate]:
        """Re-evaluate visibility of the last generated candidates (no I/O)."""
        return self._require_alert_store().visible(self._candidates)

    async def apply_alert_action(
        self,
        alert_id: str,
        action: AlertAction | str,
        *,
        meta: AlertMeta | None = None,
    ) -> AlertsState:
        """Acknowledge or snooze an alert.

        ``meta`` defaults to the meta of the matching candidate from the last
        :meth:`refresh_alerts`.

        Raises
        ------
        ValueError
            If the action is unknown, or no meta is given and *alert_id* is
            not among the last generated candidates.
        """
        alert_store = self._require_alert_store()
        if meta is None:
            meta = next((c.meta for c in self._candidates if c.id == alert_id), None)
            if meta is None:
                raise ValueError(f"unknown alert id: {alert_id!r}")
        return await alert_store.apply(alert_id, meta, action)

    async def watch_alerts(self, interval: float | None = None) -> AsyncIterator[list[AlertCandidate]]:
        """Yield visible alerts now and then every *interval* seconds.

        The first iteration refreshes candidates from the store; later ticks
        only re-evaluate snooze expiry against the cached state and never
        write. Stop by breaking out of the loop or cancelling the task.
        """
        period = interval if interval is not None else self._config.alert_refresh_interval
        if period <= 0:
            raise ValueError("interval must be > 0")
        yield await self.refresh_alerts()
        while True:
            await asyncio.sleep(period)
            yield self.visible_alerts()
