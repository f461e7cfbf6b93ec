from datetime import date

from pauta_crawler.utils import build_date_range


def test_range_bounds_are_inclusive():
    """Monday 2 Mar 2026: first candidate 9 Mar, last candidate 12 May (both weekdays)."""
    dates = build_date_range(today=date(2026, 3, 2))

    assert dates[0].value == date(2026, 3, 9)
    assert dates[-1].value == date(2026, 5, 12)


def test_range_contains_only_business_days_in_order():
    dates = build_date_range(today=date(2026, 3, 2))

    assert all(d.is_business_day for d in dates)
    values = [d.value for d in dates]
    assert values == sorted(values)
    assert len(values) == len(set(values))


def test_month_arithmetic_clamps_to_month_end():
    """31 Dec + 2 months is 28 Feb (a Saturday), so the last weekday is 27 Feb."""
    dates = build_date_range(today=date(2025, 12, 31), start_offset_days=50, extra_days=0)

    assert dates[0].value == date(2026, 2, 19)
    assert dates[-1].value == date(2026, 2, 27)
    assert len(dates) == 7


def test_empty_when_start_is_after_end():
    assert build_date_range(today=date(2026, 3, 2), start_offset_days=200) == []
