"""Persisted alert lifecycle store.

Wraps the pure functions of :mod:`pyflotta.state.lifecycle` with a clock
and a :class:`~pyflotta.storage.DocumentStore`. Writes are last-write-wins:
two dashboards acknowledging at the same time may overwrite each other.
"""

from __future__ import annotations

import logging
import time
from collections.abc import Callable, Iterable

from pyflotta._constants import KEY_ALERTS_STATE
from pyflotta.models.alerts import AlertCandidate, AlertMeta, AlertsState
from pyflotta.state import lifecycle
from pyflotta.state.events import AlertAction
from pyflotta.state.policy import DEFAULT_PRUNE_AFTER_DAYS
from pyflotta.storage import DocumentStore

_logger = logging.getLogger(__name__)


def _now_ms() -> int:
    """Current epoch timestamp in milliseconds."""
    return int(time.time() * 1000)


class AlertStateStore:
    """Alert acknowledge/snooze state backed by a document store.

    The last loaded state is cached; :meth:`visible` only reads that cache,
    so periodic visibility checks never write.
    """

    def __init__(
        self,
        store: DocumentStore,
        *,
        key: str = KEY_ALERTS_STATE,
        clock: Callable[[], int] = _now_ms,
        prune_after_days: int = DEFAULT_PRUNE_AFTER_DAYS,
    ) -> None:
        self._store = store
        self._key = key
        self._clock = clock
        self._prune_after_days = prune_after_days
        self._state = AlertsState.empty()

    @property
    def state(self) -> AlertsState:
        return self._state

    async def load(self) -> AlertsState:
        """Read the stored document; a missing or malformed one is empty state."""
        raw = await self._store.get(self._key)
        self._state = AlertsState.from_document(raw)
        return self._state

    async def _save(self, state: AlertsState) -> None:
        self._state = state
        await self._store.set(self._key, state.to_document())

    async def reconcile(self, candidates: Iterable[AlertCandidate]) -> AlertsState:
        """Load, reconcile against *candidates* and persist if anything was dropped."""
        current = await self.load()
        updated = lifecycle.reconcile(
            current,
            candidates,
            self._clock(),
            prune_after_days=self._prune_after_days,
        )
        if updated is not current:
            _logger.debug(
                "Alert state reconciled: %d -> %d items",
                len(current.items),
                len(updated.items),
            )
            await self._save(updated)
        return updated

    async def apply(self, alert_id: str, meta: AlertMeta, action: AlertAction | str) -> AlertsState:
        """Apply a user action on top of the latest stored state and persist it."""
        current = await self.load()
        updated = lifecycle.apply_action(current, alert_id, meta, action, self._clock())
        await self._save(updated)
        return updated

    def visible(self, candidates: Iterable[AlertCandidate]) -> list[AlertCandidate]:
        return lifecycle.visible_alerts(self._state, candidates, self._clock())
