"""User actions on alerts.

Acknowledge and snooze are the only ways alert state is created or
updated; everything else the lifecycle does is pruning.
"""

from __future__ import annotations

from enum import StrEnum

from pyflotta._constants import DAY_MS


class AlertAction(StrEnum):
    ACK = "ack"
    SNOOZE_1D = "snooze_1d"
    SNOOZE_3D = "snooze_3d"

    @property
    def snooze_millis(self) -> int | None:
        """Snooze length in milliseconds; ``None`` for :attr:`ACK`."""
        durations: dict[AlertAction, int] = {
            AlertAction.SNOOZE_1D: DAY_MS,
            AlertAction.SNOOZE_3D: 3 * DAY_MS,
        }
        return durations.get(self)


def parse_action(value: str | AlertAction) -> AlertAction:
    """Coerce *value* to an :class:`AlertAction`.

    Raises
    ------
    ValueError
        If *value* is not one of ``ack``, ``snooze_1d``, ``snooze_3d``.
    """
    if isinstance(value, AlertAction):
        return value
    try:
        return AlertAction(value)
    except ValueError:
        raise ValueError(f"unknown alert action: {value!r}") from None
