"""Date manipulation utilities"""

import math
from datetime import date, datetime, time, tzinfo
from decimal import Decimal
from typing import Optional, Union

from dateutil.relativedelta import relativedelta

DateLike = Union[date, datetime]

# relativedelta clamps month-end overflow (Jan 31 + 1 month -> Feb 28/29)
FREQUENCY_STEPS = {
    "weekly": relativedelta(weeks=1),
    "monthly": relativedelta(months=1),
    "quarterly": relativedelta(months=3),
    "yearly": relativedelta(years=1),
}

SECONDS_PER_DAY = 86_400

# Payments per month at each frequency
MONTHLY_FACTORS = {
    "weekly": Decimal(52) / Decimal(12),
    "monthly": Decimal(1),
    "quarterly": Decimal(1) / Decimal(3),
    "yearly": Decimal(1) / Decimal(12),
}


def predict_next_payment_date(base_date: DateLike, frequency: str) -> DateLike:
    """
    Project the next occurrence of a payment.

    Month and year steps clamp to the last valid day of the target month:
        2025-01-31 monthly   -> 2025-02-28
        2024-02-29 yearly    -> 2025-02-28
        2024-11-30 quarterly -> 2025-02-28

    Unknown frequencies fall back to monthly. Returns the same type it was given.
    """
    step = FREQUENCY_STEPS.get(frequency, FREQUENCY_STEPS["monthly"])
    return base_date + step


def as_date(value: DateLike) -> date:
    if isinstance(value, datetime):
        return value.date()
    return value


def _as_datetime(value: DateLike, tz: Optional[tzinfo] = None) -> datetime:
    if isinstance(value, datetime):
        return value
    return datetime.combine(value, time.min, tzinfo=tz)


def days_until(due: DateLike, now: DateLike) -> int:
    """Whole days from now until due, rounded up; negative when due is in the past"""
    now_dt = _as_datetime(now)
    due_dt = _as_datetime(due, now_dt.tzinfo)
    return math.ceil((due_dt - now_dt).total_seconds() / SECONDS_PER_DAY)


def lookback_start(now: DateLike, months: int) -> date:
    """First calendar day inside a lookback window of `months` months"""
    return as_date(now) - relativedelta(months=months)


def count_occurrences_through(start: date, end: date, frequency: str) -> int:
    """
    Number of projected occurrences from start up to and including end.

    Occurrence k is start + k steps, so a month-end anchor does not drift:
    2025-01-31 monthly -> Jan 31, Feb 28, Mar 31.
    """
    step = FREQUENCY_STEPS.get(frequency, FREQUENCY_STEPS["monthly"])

    count = 0
    while start + step * count <= end:
        count += 1
    return count


def monthly_equivalent_factor(frequency: str) -> Decimal:
    """Multiplier converting one payment at `frequency` into a monthly amount; unknown counts as monthly"""
    return MONTHLY_FACTORS.get(frequency, MONTHLY_FACTORS["monthly"])
