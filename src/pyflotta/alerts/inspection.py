"""Periodic inspection ("revisione") deadline arithmetic.

Heavy vehicles are first inspected four years after registration, then every
two years. A recorded inspection moves the next deadline to two years after
it when that is later than the registration cycle.
"""

from __future__ import annotations

import logging
from datetime import date

from pyflotta.models.vehicle import Vehicle

_logger = logging.getLogger(__name__)

FIRST_INSPECTION_YEARS = 4
INSPECTION_INTERVAL_YEARS = 2


def add_years(day: date, years: int) -> date | None:
    """Shift *day* by whole years; 29 February falls back to the 28th.

    Returns ``None`` when the result would fall outside the calendar range.
    """
    year = day.year + years
    if not date.min.year <= year <= date.max.year:
        return None
    try:
        return day.replace(year=year)
    except ValueError:
        return day.replace(year=year, day=28)


def next_inspection_from_registration(registered: date, today: date) -> date | None:
    """First deadline of the registration cycle that is after *today*."""
    deadline = add_years(registered, FIRST_INSPECTION_YEARS)
    step = 0
    while deadline is not None and deadline <= today:
        step += INSPECTION_INTERVAL_YEARS
        deadline = add_years(registered, FIRST_INSPECTION_YEARS + step)
    return deadline


def next_inspection_date(vehicle: Vehicle, today: date) -> date | None:
    """Next inspection deadline for *vehicle*, or ``None`` when unknown.

    An explicit ``dataScadenzaRevisione`` always wins. Otherwise the later of
    the registration cycle and last inspection + 2 years is used. Dates whose
    cycle runs past the calendar range are ignored.
    """
    if vehicle.data_scadenza_revisione is not None:
        return vehicle.data_scadenza_revisione

    candidates: list[date] = []
    if vehicle.data_immatricolazione is not None:
        from_registration = next_inspection_from_registration(vehicle.data_immatricolazione, today)
        if from_registration is None:
            _logger.debug("Registration date of %s out of range, ignored", vehicle.targa)
        else:
            candidates.append(from_registration)
    if vehicle.data_ultimo_collaudo is not None:
        from_inspection = add_years(vehicle.data_ultimo_collaudo, INSPECTION_INTERVAL_YEARS)
        if from_inspection is None:
            _logger.debug("Last inspection date of %s out of range, ignored", vehicle.targa)
        else:
            candidates.append(from_inspection)
    return max(candidates) if candidates else None


def days_until(deadline: date, today: date) -> int:
    return (deadline - today).days
