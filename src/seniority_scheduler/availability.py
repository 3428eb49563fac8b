"""
Availability checks for placing a staff member on a date.

All checks are pure predicates over a snapshot of the schedule being built;
the schedule may already hold later dates (locked required days), so the
rest gap is checked in both directions.
"""

from dataclasses import dataclass, field
from typing import Dict, List, Optional, Sequence
import math

from .data_manager import StaffMember
from .dates import shift_date


class AvailabilityReason:
    """Reasons a staff member cannot take a date"""
    UNAVAILABLE = "Staff marked unavailable on this date"
    ON_LEAVE = "Staff on leave on this date"
    MAX_SHIFTS_REACHED = "Monthly shift cap reached"
    REST_VIOLATION = "Too close to another assigned shift"
    ALREADY_ASSIGNED = "Already assigned on this date"


@dataclass
class AvailabilityResult:
    assignable: bool
    reasons: List[str] = field(default_factory=list)

    def __bool__(self) -> bool:
        return self.assignable


def required_day_gap(min_rest_hours: float) -> int:
    """Minimum calendar-day distance between two shifts of the same person"""
    return 1 + math.ceil(max(0, min_rest_hours) / 24)


def _assigned_ids(days: Dict[str, Sequence[StaffMember]], date_str: str) -> List[int]:
    return [staff.id for staff in days.get(date_str, [])]


def find_rest_conflict(staff_id: int, date_str: str,
                       days: Dict[str, Sequence[StaffMember]], day_gap: int) -> Optional[str]:
    """Return the nearest date within the rest window already held by this staff, if any"""
    for offset in range(1, day_gap):
        for candidate in (shift_date(date_str, -offset), shift_date(date_str, offset)):
            if staff_id in _assigned_ids(days, candidate):
                return candidate
    return None


def check_availability(staff: StaffMember, date_str: str,
                       days: Dict[str, Sequence[StaffMember]],
                       shift_count: int, max_shifts: int, day_gap: int) -> AvailabilityResult:
    """
    Decide whether staff may be assigned on date_str.

    Args:
        staff: Candidate staff member
        date_str: ISO date being filled
        days: Current schedule snapshot, date -> assigned staff
        shift_count: Shifts the candidate already holds this month
        max_shifts: Hard monthly cap
        day_gap: Output of required_day_gap()

    Returns:
        AvailabilityResult listing every reason that excludes the date
    """
    reasons = []

    if date_str in staff.unavailability:
        reasons.append(AvailabilityReason.UNAVAILABLE)

    if date_str in staff.leave_days:
        reasons.append(AvailabilityReason.ON_LEAVE)

    if shift_count >= max_shifts:
        reasons.append(AvailabilityReason.MAX_SHIFTS_REACHED)

    conflict = find_rest_conflict(staff.id, date_str, days, day_gap)
    if conflict:
        reasons.append(f"{AvailabilityReason.REST_VIOLATION} ({conflict})")

    return AvailabilityResult(assignable=not reasons, reasons=reasons)


def is_available(staff: StaffMember, date_str: str,
                 days: Dict[str, Sequence[StaffMember]],
                 shift_count: int, max_shifts: int, day_gap: int) -> bool:
    return check_availability(staff, date_str, days, shift_count, max_shifts, day_gap).assignable
