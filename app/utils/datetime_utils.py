"""
Datetime utilities.

Provides timezone-aware datetime functions.
"""

import calendar
from datetime import UTC, date, datetime, time, timedelta

from app.models.enums import PayoutFrequency


def utc_now() -> datetime:
    """
    Get current UTC datetime with timezone info.

    Returns:
        Current datetime in UTC with timezone awareness
    """
    return datetime.now(UTC)


def ensure_utc(value: datetime) -> datetime:
    """Return value as an aware UTC datetime (naive values are taken as UTC)."""
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value.astimezone(UTC)


def start_of_day(value: datetime | date) -> datetime:
    """Midnight UTC of the given day."""
    if isinstance(value, datetime):
        value = ensure_utc(value).date()
    return datetime.combine(value, time.min, tzinfo=UTC)


def add_months(value: datetime, months: int) -> datetime:
    """
    Add calendar months, clamping the day to the target month length.

    Args:
        value: Base datetime
        months: Months to add

    Returns:
        Shifted datetime (31 Jan + 1 month = 28/29 Feb)
    """
    month_index = value.month - 1 + months
    year = value.year + month_index // 12
    month = month_index % 12 + 1
    day = min(value.day, calendar.monthrange(year, month)[1])
    return value.replace(year=year, month=month, day=day)


def next_payout_time(
    now: datetime, frequency: PayoutFrequency | str
) -> datetime:
    """
    Compute the next ROI payout time.

    The next payout is one period after the start of the current day, so
    repeated runs on the same day land on the same instant.

    Args:
        now: Current time
        frequency: daily, weekly or monthly

    Returns:
        Aware UTC datetime at midnight
    """
    base = start_of_day(now)
    frequency = PayoutFrequency(frequency)
    if frequency == PayoutFrequency.WEEKLY:
        return base + timedelta(days=7)
    if frequency == PayoutFrequency.MONTHLY:
        return add_months(base, 1)
    return base + timedelta(days=1)
