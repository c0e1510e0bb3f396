"""Unit tests for date helpers"""

from datetime import date, datetime

from finsight_engine.utils.date_utils import (
    add_months,
    days_between,
    days_in_month,
    first_of_month,
    format_month_key,
    generate_date_range,
    hours_between,
    month_key,
    parse_month_key,
    to_date,
)


def test_month_key_round_trip():
    """Test month keys are (year, month) tuples rendered as YYYY-MM"""
    key = month_key(date(2024, 3, 17))
    assert key == (2024, 3)
    assert format_month_key(key) == "2024-03"
    assert parse_month_key("2024-03") == (2024, 3)


def test_month_keys_sort_chronologically():
    keys = [(2024, 1), (2023, 12), (2024, 10)]
    assert sorted(keys) == [(2023, 12), (2024, 1), (2024, 10)]


def test_add_months_clamps_to_month_end():
    """Test Jan 31 + 1 month lands on the last day of February"""
    assert add_months(date(2024, 1, 31), 1) == date(2024, 2, 29)
    assert add_months(date(2023, 1, 31), 1) == date(2023, 2, 28)
    assert add_months(date(2024, 11, 15), 3) == date(2025, 2, 15)
    assert add_months(date(2024, 3, 15), -3) == date(2023, 12, 15)


def test_days_between_is_absolute():
    assert days_between(date(2024, 1, 31), date(2024, 1, 1)) == 30
    assert days_between(date(2024, 1, 1), date(2024, 3, 1)) == 60


def test_hours_between_accepts_datetimes():
    assert hours_between(datetime(2024, 1, 1, 9), datetime(2024, 1, 1, 9, 30)) == 0.5
    assert hours_between(date(2024, 1, 1), date(2024, 1, 2)) == 24


def test_generate_date_range_is_inclusive():
    days = generate_date_range(date(2024, 2, 27), date(2024, 3, 1))
    assert days == [date(2024, 2, 27), date(2024, 2, 28), date(2024, 2, 29), date(2024, 3, 1)]


def test_month_helpers():
    assert first_of_month(date(2024, 5, 19)) == date(2024, 5, 1)
    assert days_in_month(date(2024, 2, 10)) == 29
    assert to_date(datetime(2024, 5, 19, 13, 45)) == date(2024, 5, 19)
