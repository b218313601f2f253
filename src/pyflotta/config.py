"""Client configuration for pyflotta."""

from __future__ import annotations

import dataclasses
import os
from typing import Any
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from pyflotta import _constants as c
from pyflotta.exceptions import FlottaConfigError


@dataclasses.dataclass(frozen=True)
class StorageKeys:
    """Document store keys read (and, for alerts, written) by pyflotta.

    The defaults match the keys used by the fleet dashboard; override them
    when the store is shared between several deployments.
    """

    sessions: str = c.KEY_SESSIONS
    reports: str = c.KEY_REPORTS
    checks: str = c.KEY_CHECKS
    refuels: str = c.KEY_REFUELS
    requests: str = c.KEY_REQUESTS
    tire_drafts: str = c.KEY_TIRE_DRAFTS
    tire_events: str = c.KEY_TIRE_EVENTS
    vehicles: str = c.KEY_VEHICLES
    history: str = c.KEY_HISTORY
    unhooks: str = c.KEY_UNHOOKS
    motrice_changes: str = c.KEY_MOTRICE_CHANGES
    alerts_state: str = c.KEY_ALERTS_STATE


@dataclasses.dataclass(frozen=True)
class FlottaConfig:
    """Client configuration.

    Parameters
    ----------
    base_url : str
        Base URL of the HTTP document store. Documents live under
        ``{base_url}/storage/{key}``.
    api_token : str or None
        Optional bearer token sent with every store request.
    time_zone : str
        IANA time zone used for date labels and day arithmetic.
    request_timeout : float
        Per-request timeout in seconds.
    inspection_warning_days : int
        Inspection deadlines this many days away (or fewer) raise an alert.
    prune_after_days : int
        Acknowledged/snoozed alert state older than this is pruned.
    alert_refresh_interval : float
        Seconds between visibility re-evaluations in
        :meth:`pyflotta.client.FlottaClient.watch_alerts`.
    keys : StorageKeys
        Document store keys.
    """

    base_url: str = "http://localhost:8080"
    api_token: str | None = None
    time_zone: str = "Europe/Rome"
    request_timeout: float = 15.0
    inspection_warning_days: int = 30
    prune_after_days: int = 90
    alert_refresh_interval: float = 60.0
    keys: StorageKeys = dataclasses.field(default_factory=StorageKeys)

    def __post_init__(self) -> None:
        if self.inspection_warning_days < 0:
            raise FlottaConfigError("inspection_warning_days must be >= 0")
        if self.prune_after_days <= 0:
            raise FlottaConfigError("prune_after_days must be > 0")
        if self.alert_refresh_interval <= 0:
            raise FlottaConfigError("alert_refresh_interval must be > 0")

    @property
    def tzinfo(self) -> ZoneInfo:
        """Resolved :class:`~zoneinfo.ZoneInfo` for :attr:`time_zone`."""
        try:
            return ZoneInfo(self.time_zone)
        except (ZoneInfoNotFoundError, ValueError) as exc:
            raise FlottaConfigError(f"unknown time zone: {self.time_zone!r}") from exc

    @classmethod
    def from_env(cls, **overrides: Any) -> FlottaConfig:
        """Create configuration from environment variables.

        Reads ``FLOTTA_BASE_URL``, ``FLOTTA_API_TOKEN``, ``FLOTTA_TIME_ZONE``
        and the numeric ``FLOTTA_*`` tunables. Storage keys can be overridden
        with ``FLOTTA_KEY_<NAME>`` (e.g. ``FLOTTA_KEY_SESSIONS``). Explicit
        keyword arguments override environment values.
        """
        env = os.environ

        key_kwargs: dict[str, str] = {}
        for field in dataclasses.fields(StorageKeys):
            val = env.get(f"FLOTTA_KEY_{field.name.upper()}")
            if val is not None:
                key_kwargs[field.name] = val

        # Allow overriding keys via a nested dict
        key_overrides = overrides.pop("keys", None)
        if isinstance(key_overrides, dict):
            key_kwargs.update(key_overrides)
        elif isinstance(key_overrides, StorageKeys):
            key_kwargs = dataclasses.asdict(key_overrides)

        config_kwargs: dict[str, Any] = {"keys": StorageKeys(**key_kwargs)}

        _ENV_STR_MAP = {
            "FLOTTA_BASE_URL": "base_url",
            "FLOTTA_API_TOKEN": "api_token",
            "FLOTTA_TIME_ZONE": "time_zone",
        }
        for env_key, field_name in _ENV_STR_MAP.items():
            val = env.get(env_key)
            if val is not None:
                config_kwargs[field_name] = val

        _ENV_NUM_MAP: dict[str, tuple[str, type]] = {
            "FLOTTA_REQUEST_TIMEOUT": ("request_timeout", float),
            "FLOTTA_INSPECTION_WARNING_DAYS": ("inspection_warning_days", int),
            "FLOTTA_PRUNE_AFTER_DAYS": ("prune_after_days", int),
            "FLOTTA_ALERT_REFRESH_INTERVAL": ("alert_refresh_interval", float),
        }
        for env_key, (field_name, caster) in _ENV_NUM_MAP.items():
            val = env.get(env_key)
            if val is None or field_name in overrides:
                continue
            try:
                config_kwargs[field_name] = caster(val)
            except ValueError as exc:
                raise FlottaConfigError(f"{env_key} must be a number, got {val!r}") from exc

        config_kwargs.update(overrides)

        return cls(**config_kwargs)
