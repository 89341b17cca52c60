"""Duration and overlap arithmetic over calendar dates.

All functions take plain `datetime.date` values, so there is no time-of-day
or timezone component to drift. They are pure and safe to call from anywhere.
"""

import calendar
from datetime import date, timedelta
from decimal import Decimal
from typing import Optional

from pricing.constants import DAYS_PER_YEAR


def day_count(start: date, end: date) -> int:
    """Signed number of days from `start` to `end`."""
    return (end - start).days


def _exact_year_diff(start: date, end: date) -> Optional[int]:
    """Whole years between two dates sharing month and day, else None."""
    if start.month != end.month or start.day != end.day:
        return None
    return end.year - start.year


def license_duration_days(start: date, end: date) -> int:
    """Number of days a license is priced for.

    A license running a whole number of years (end date on the same month and
    day as the start, or one day later) counts as `years * 365` days, so leap
    days never change an annual price. Anything else is the exact day count.

    Args:
        start: Maintenance start date
        end: Maintenance end date

    Returns:
        Duration in days
    """
    years = _exact_year_diff(start, end - timedelta(days=1))
    if years is None or years < 1:
        years = _exact_year_diff(start, end)

    if years is not None and years >= 1:
        return years * DAYS_PER_YEAR

    return day_count(start, end)


def overlap_days(new_start: date, old_end: Optional[date]) -> int:
    """Days of an earlier maintenance period still remaining at `new_start`.

    Returns 0 when there is no earlier period or it ended on or before the
    new period starts.
    """
    if old_end is None or new_start >= old_end:
        return 0
    return license_duration_days(new_start, old_end)


def _days_in_month(d: date) -> int:
    return calendar.monthrange(d.year, d.month)[1]


def month_count(start: date, end: date) -> Decimal:
    """Signed fractional number of months between two dates.

    When both dates fall on the same day of month the result is the whole
    month difference. Otherwise the first and last months contribute the
    fraction of their own length that is covered, and every month strictly
    between them counts as one.

    Example:
        2024-01-15 to 2024-03-20 is 17/31 of January, all of February and
        19/31 of March.
    """
    if end < start:
        return -month_count(end, start)

    whole_months = (end.year - start.year) * 12 + (end.month - start.month)

    if start.day == end.day:
        return Decimal(whole_months)

    if whole_months == 0:
        return Decimal(end.day - start.day) / Decimal(_days_in_month(start))

    start_days = _days_in_month(start)
    end_days = _days_in_month(end)

    first_fraction = Decimal(start_days - start.day + 1) / Decimal(start_days)
    last_fraction = Decimal(end.day - 1) / Decimal(end_days)

    return first_fraction + Decimal(whole_months - 1) + last_fraction
