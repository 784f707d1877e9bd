"""Pure date arithmetic for trial windows and billing periods.

Month and year addition clamp to the end of the target month: Jan 31 plus one
month is Feb 28 (Feb 29 in leap years) and Feb 29 plus one year is Feb 28.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Optional

from dateutil.relativedelta import relativedelta

from ..domain.models.plans import INTERVAL_YEARLY, validate_interval

_SECONDS_PER_DAY = 24 * 60 * 60


@dataclass(frozen=True, slots=True)
class PeriodBoundaries:
    next_billing_date: datetime
    trial_start: Optional[datetime] = None
    trial_end: Optional[datetime] = None
    current_period_start: Optional[datetime] = None
    current_period_end: Optional[datetime] = None

    @property
    def is_trial(self) -> bool:
        return self.trial_end is not None


def add_months(value: datetime, months: int) -> datetime:
    return value + relativedelta(months=months)


def add_years(value: datetime, years: int) -> datetime:
    return value + relativedelta(years=years)


def add_interval(value: datetime, billing_interval: str) -> datetime:
    """Advance ``value`` by exactly one billing interval."""
    validate_interval(billing_interval)
    if billing_interval == INTERVAL_YEARLY:
        return add_years(value, 1)
    return add_months(value, 1)


def days_between(start: datetime, end: datetime) -> int:
    """Whole days from ``start`` to ``end`` rounded up, never negative."""
    seconds = (end - start).total_seconds()
    return max(0, math.ceil(seconds / _SECONDS_PER_DAY))


def compute_boundaries(now: datetime, billing_interval: str, trial_days: int) -> PeriodBoundaries:
    """
    Compute the dates of a freshly started subscription.

    Args:
        now: Start instant
        billing_interval: monthly or yearly
        trial_days: Trial length; zero or less starts billing immediately

    Returns:
        Trial window when ``trial_days`` is positive, otherwise one paid period
    """
    validate_interval(billing_interval)
    if trial_days and trial_days > 0:
        trial_end = now + timedelta(days=trial_days)
        return PeriodBoundaries(
            trial_start=now,
            trial_end=trial_end,
            next_billing_date=trial_end,
        )

    period_end = add_interval(now, billing_interval)
    return PeriodBoundaries(
        current_period_start=now,
        current_period_end=period_end,
        next_billing_date=period_end,
    )
