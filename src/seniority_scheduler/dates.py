"""
Calendar helpers shared by the scheduler and the task distributor.

Dates travel through the system as ISO strings ("YYYY-MM-DD"); these helpers
convert between strings, date objects and month keys ("YYYY-MM").
"""

from datetime import date, timedelta
from typing import List, Tuple
import calendar

WEEKDAY_NAMES = ["Monday", "Tuesday", "Wednesday", "Thursday", "Friday", "Saturday", "Sunday"]
WEEKEND_NAMES = ("Saturday", "Sunday")


def date_key(day: date) -> str:
    return day.strftime("%Y-%m-%d")


def parse_date(date_str: str) -> date:
    return date.fromisoformat(date_str)


def parse_month_key(month_key: str) -> Tuple[int, int]:
    """Split "YYYY-MM" into (year, month), raising ValueError on bad input"""
    parts = month_key.split('-')
    if len(parts) != 2:
        raise ValueError(f"Invalid month key: {month_key}")
    year, month = int(parts[0]), int(parts[1])
    if not 1 <= month <= 12:
        raise ValueError(f"Invalid month in key: {month_key}")
    return year, month


def month_key_for(day: date) -> str:
    return f"{day.year}-{day.month:02d}"


def days_in_month(year: int, month: int) -> int:
    return calendar.monthrange(year, month)[1]


def month_days(month_key: str) -> List[date]:
    """All calendar days of the month, in order"""
    year, month = parse_month_key(month_key)
    return [date(year, month, day) for day in range(1, days_in_month(year, month) + 1)]


def weekday_name(day: date) -> str:
    return WEEKDAY_NAMES[day.weekday()]


def is_weekend(day: date) -> bool:
    return day.weekday() >= 5


def ui_weekday_index(day: date) -> int:
    """Weekday index with 0 = Sunday, as stored in task column configs"""
    return (day.weekday() + 1) % 7


def iso_week(day: date) -> Tuple[int, int]:
    iso = day.isocalendar()
    return iso[0], iso[1]


def shift_date(date_str: str, offset_days: int) -> str:
    return date_key(parse_date(date_str) + timedelta(days=offset_days))
