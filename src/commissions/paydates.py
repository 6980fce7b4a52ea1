"""Payroll scheduling: which Friday an approved commission is paid on.

Payroll closes every week on the configured weekday/hour in Mountain
Standard Time. Arizona does not observe DST, so the offset is a fixed UTC-7.
"""
from __future__ import annotations

import datetime as dt

from django.conf import settings

MST = dt.timezone(dt.timedelta(hours=-7), name="MST")
FRIDAY = 4


def _cutoff_weekday() -> int:
    return int(getattr(settings, "PAYROLL_CUTOFF_WEEKDAY", 1))


def _cutoff_hour() -> int:
    return int(getattr(settings, "PAYROLL_CUTOFF_HOUR", 15))


def to_mst(moment: dt.datetime) -> dt.datetime:
    """Naive datetimes are taken to already be in MST."""
    if moment.tzinfo is None:
        return moment.replace(tzinfo=MST)
    return moment.astimezone(MST)


def calculate_scheduled_pay_date(approved_at: dt.datetime) -> dt.date:
    """Return the Friday on which a commission approved at *approved_at* is paid.

    The pay week runs Saturday through Friday. Approvals up to the cutoff
    are paid that Friday, later ones the Friday after. A Friday approval
    always lands on the following Friday.
    """
    local = to_mst(approved_at)
    weekday = local.weekday()

    days_until_friday = (FRIDAY - weekday) % 7
    if days_until_friday == 0:
        days_until_friday = 7

    cutoff_weekday = _cutoff_weekday()
    # Saturday (5) and Sunday (6) open the pay week, so shift to make it 0-based.
    week_pos = (weekday - 5) % 7
    cutoff_pos = (cutoff_weekday - 5) % 7
    past_cutoff = week_pos > cutoff_pos or (week_pos == cutoff_pos and local.hour >= _cutoff_hour())
    if weekday != FRIDAY and past_cutoff:
        days_until_friday += 7

    return local.date() + dt.timedelta(days=days_until_friday)


def scheduled_pay_date_string(approved_at: dt.datetime) -> str:
    return calculate_scheduled_pay_date(approved_at).isoformat()
