"""Target date range generation."""

from datetime import date, timedelta
from typing import List, Optional

from dateutil.relativedelta import relativedelta

from ..models import TargetDate


def build_date_range(
    today: Optional[date] = None,
    start_offset_days: int = 7,
    months_ahead: int = 2,
    extra_days: int = 10
) -> List[TargetDate]:
    """
    Business days from today+start_offset_days through today+months+extra_days.

    Both ends are inclusive. Month arithmetic clamps to the last day of the
    month (31 Dec + 2 months is 28/29 Feb).

    Args:
        today: Reference date (defaults to the local current date)
        start_offset_days: Days ahead of today for the first candidate
        months_ahead: Whole calendar months ahead for the last candidate
        extra_days: Days added after the month offset

    Returns:
        Ascending list of business-day TargetDate values
    """
    today = today or date.today()
    current = today + timedelta(days=start_offset_days)
    end = today + relativedelta(months=months_ahead) + timedelta(days=extra_days)

    dates = []
    while current <= end:
        target = TargetDate.of(current)
        if target.is_business_day:
            dates.append(target)
        current += timedelta(days=1)
    return dates
