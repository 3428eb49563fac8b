"""
Public holidays skipped by the task distributor.

Fixed civil holidays repeat every year. Religious holidays move with the
lunar calendar and are only known for the years listed in
RELIGIOUS_HOLIDAYS; other years get no religious exclusions.
"""

from datetime import date, timedelta
from typing import Dict, List, Set, Tuple

# (month, day)
FIXED_HOLIDAYS = [
    (1, 1),    # New Year's Day
    (4, 23),   # National Sovereignty and Children's Day
    (5, 1),    # Labour and Solidarity Day
    (5, 19),   # Youth and Sports Day
    (7, 15),   # Democracy and National Unity Day
    (8, 30),   # Victory Day
    (10, 29),  # Republic Day
]

# Inclusive ranges, eve included
RELIGIOUS_HOLIDAYS: Dict[int, List[Tuple[str, str]]] = {
    2024: [("2024-04-09", "2024-04-12"), ("2024-06-15", "2024-06-19")],
    2025: [("2025-03-29", "2025-04-01"), ("2025-06-05", "2025-06-09")],
    2026: [("2026-03-19", "2026-03-22"), ("2026-05-26", "2026-05-30")],
}

SUPPORTED_RELIGIOUS_YEARS = tuple(sorted(RELIGIOUS_HOLIDAYS))


def religious_holidays(year: int) -> Set[date]:
    days = set()
    for start, end in RELIGIOUS_HOLIDAYS.get(year, []):
        current = date.fromisoformat(start)
        last = date.fromisoformat(end)
        while current <= last:
            days.add(current)
            current += timedelta(days=1)
    return days


def is_fixed_holiday(day: date) -> bool:
    return (day.month, day.day) in FIXED_HOLIDAYS


def is_public_holiday(day: date) -> bool:
    return is_fixed_holiday(day) or day in religious_holidays(day.year)
