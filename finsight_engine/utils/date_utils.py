"""Date manipulation utilities"""

import calendar
from datetime import date, datetime, time, timedelta
from typing import List

from finsight_engine.domain.models import MonthKey


def generate_date_range(start: date, end: date) -> List[date]:
    """Generate list of dates from start to end (inclusive)"""
    days = (end - start).days + 1
    return [start + timedelta(days=i) for i in range(days)]


def to_date(value: date) -> date:
    """Drop the time component of a datetime; plain dates pass through"""
    if isinstance(value, datetime):
        return value.date()
    return value


def to_datetime(value: date) -> datetime:
    """Promote a plain date to midnight; datetimes pass through"""
    if isinstance(value, datetime):
        return value
    return datetime.combine(value, time.min)


def month_key(value: date) -> MonthKey:
    return (value.year, value.month)


def format_month_key(key: MonthKey) -> str:
    """Render (2024, 3) as '2024-03'"""
    return f"{key[0]:04d}-{key[1]:02d}"


def parse_month_key(text: str) -> MonthKey:
    year, month = text.split("-")
    return (int(year), int(month))


def add_months(value: date, months: int) -> date:
    """
    Shift a date by whole calendar months.

    The day is clamped to the last day of the target month, so Jan 31 + 1
    month is Feb 28 (or 29).
    """
    index = value.year * 12 + (value.month - 1) + months
    year, month = divmod(index, 12)
    month += 1
    day = min(value.day, calendar.monthrange(year, month)[1])
    return value.replace(year=year, month=month, day=day)


def add_days(value: date, days: int) -> date:
    return value + timedelta(days=days)


def days_between(first: date, second: date) -> int:
    """Absolute distance in days, rounded to the nearest whole day"""
    delta = to_datetime(second) - to_datetime(first)
    return round(abs(delta.total_seconds()) / 86400)


def hours_between(first: date, second: date) -> float:
    delta = to_datetime(second) - to_datetime(first)
    return abs(delta.total_seconds()) / 3600


def first_of_month(value: date) -> date:
    return date(value.year, value.month, 1)


def days_in_month(value: date) -> int:
    return calendar.monthrange(value.year, value.month)[1]
