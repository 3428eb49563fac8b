"""
Mutable state owned by a single schedule generation run.

The scheduler creates one ScheduleContext per call; the availability
filter and scoring function read it, and only the scheduler mutates it.
"""

from dataclasses import dataclass, field
from datetime import date
from enum import Enum
from typing import Dict, List, Optional, Any
import logging
import random

from .data_manager import Constraints, StaffMember
from .dates import WEEKDAY_NAMES, date_key, is_weekend, weekday_name

logger = logging.getLogger(__name__)


class LogLevel(Enum):
    INFO = "info"
    SUCCESS = "success"
    WARNING = "warning"
    ERROR = "error"


_PYTHON_LEVELS = {
    LogLevel.INFO: logging.INFO,
    LogLevel.SUCCESS: logging.INFO,
    LogLevel.WARNING: logging.WARNING,
    LogLevel.ERROR: logging.ERROR,
}


@dataclass
class LogEntry:
    """One human-readable scheduling decision, warning or error"""
    level: LogLevel
    message: str
    date: Optional[str] = None
    staff_id: Optional[int] = None
    category: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "type": self.level.value,
            "message": self.message,
            "date": self.date,
            "staffId": self.staff_id,
            "category": self.category
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'LogEntry':
        return cls(
            level=LogLevel(data.get("type", "info")),
            message=data.get("message", ""),
            date=data.get("date"),
            staff_id=data.get("staffId"),
            category=data.get("category")
        )


@dataclass
class DayInfo:
    """The day currently being filled"""
    day: date
    date_str: str
    day_name: str
    is_weekend: bool

    @classmethod
    def for_date(cls, day: date) -> 'DayInfo':
        return cls(day=day, date_str=date_key(day), day_name=weekday_name(day), is_weekend=is_weekend(day))


@dataclass
class StaffStats:
    """Running per-staff counters for one month"""
    target_shifts: int = 0
    seniority_group: str = ""
    shift_count: int = 0
    last_shift_date: Optional[date] = None
    weekend_shifts: int = 0
    weekday_shifts: int = 0
    days_assigned: Dict[str, int] = field(default_factory=lambda: {name: 0 for name in WEEKDAY_NAMES})

    def record(self, day: DayInfo):
        self.shift_count += 1
        if self.last_shift_date is None or day.day > self.last_shift_date:
            self.last_shift_date = day.day
        self.days_assigned[day.day_name] = self.days_assigned.get(day.day_name, 0) + 1
        if day.is_weekend:
            self.weekend_shifts += 1
        else:
            self.weekday_shifts += 1

    def to_dict(self) -> Dict[str, Any]:
        return {
            "shiftCount": self.shift_count,
            "lastShiftDate": date_key(self.last_shift_date) if self.last_shift_date else None,
            "weekendShifts": self.weekend_shifts,
            "weekdayShifts": self.weekday_shifts,
            "targetShifts": self.target_shifts,
            "seniorityGroup": self.seniority_group,
            "daysAssigned": dict(self.days_assigned)
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'StaffStats':
        last = data.get("lastShiftDate")
        stats = cls(
            target_shifts=int(data.get("targetShifts", 0)),
            seniority_group=data.get("seniorityGroup", ""),
            shift_count=int(data.get("shiftCount", 0)),
            last_shift_date=date.fromisoformat(last) if last else None,
            weekend_shifts=int(data.get("weekendShifts", 0)),
            weekday_shifts=int(data.get("weekdayShifts", 0))
        )
        stats.days_assigned.update(data.get("daysAssigned") or {})
        return stats


@dataclass
class ScheduleContext:
    """Everything one generate_schedule call reads and writes"""
    staff_list: List[StaffMember]
    constraints: Constraints
    month_key: str
    dates: List[date]
    day_gap: int
    rng: random.Random
    days: Dict[str, List[StaffMember]] = field(default_factory=dict)
    stats: Dict[int, StaffStats] = field(default_factory=dict)
    logs: List[LogEntry] = field(default_factory=list)

    def assign(self, staff: StaffMember, day: DayInfo):
        self.days.setdefault(day.date_str, []).append(staff)
        self.stats[staff.id].record(day)

    def is_assigned(self, staff_id: int, date_str: str) -> bool:
        return any(s.id == staff_id for s in self.days.get(date_str, []))

    def log(self, level: LogLevel, message: str, date_str: Optional[str] = None,
            staff_id: Optional[int] = None, category: Optional[str] = None):
        self.logs.append(LogEntry(level, message, date_str, staff_id, category))
        logger.log(_PYTHON_LEVELS[level], message)
