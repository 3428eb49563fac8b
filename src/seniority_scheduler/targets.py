"""
Seniority-weighted shift targets.

Seniority 1 is the most junior and receives the largest share, seniority 10
the smallest. Long leave scales a staff member's share down; short leave
does not.
"""

from dataclasses import dataclass
from typing import Dict, List, Optional, Tuple
import math

from .data_manager import StaffMember

# Leave days in the month at which the target starts shrinking
LEAVE_THRESHOLD = 7


@dataclass
class TargetDetail:
    """How a staff member's target was derived"""
    seniority: int
    weight: int
    leave_days: int
    availability_ratio: float
    adjusted_weight: float
    raw_target: float
    target: int
    target_reduced: bool

    def to_dict(self) -> Dict[str, object]:
        return {
            "seniority": self.seniority,
            "weight": self.weight,
            "leaveDays": self.leave_days,
            "availabilityRatio": self.availability_ratio,
            "adjustedWeight": self.adjusted_weight,
            "rawTarget": self.raw_target,
            "target": self.target,
            "targetReduced": self.target_reduced
        }

    @classmethod
    def from_dict(cls, data: Dict[str, object]) -> 'TargetDetail':
        return cls(
            seniority=int(data["seniority"]),
            weight=int(data["weight"]),
            leave_days=int(data["leaveDays"]),
            availability_ratio=float(data["availabilityRatio"]),
            adjusted_weight=float(data["adjustedWeight"]),
            raw_target=float(data["rawTarget"]),
            target=int(data["target"]),
            target_reduced=bool(data["targetReduced"])
        )


def seniority_weight(seniority: int) -> int:
    return 11 - seniority


def seniority_group(seniority: int) -> str:
    """Reporting label for the workload band a seniority falls in"""
    if seniority <= 2:
        return "Most shifts (1-2)"
    if seniority <= 4:
        return "High (3-4)"
    if seniority <= 6:
        return "Medium (5-6)"
    if seniority <= 8:
        return "Low (7-8)"
    return "Fewest (9-10)"


def count_leave_days(staff: StaffMember, month_key: Optional[str] = None) -> int:
    """Distinct leave days, restricted to month_key ("YYYY-MM") when given"""
    leave = set(staff.leave_days)
    if month_key:
        leave = {d for d in leave if d.startswith(f"{month_key}-")}
    return len(leave)


def availability_ratio(leave_days: int, days_in_month: int) -> float:
    if leave_days < LEAVE_THRESHOLD or days_in_month <= 0:
        return 1.0
    return max(0.0, (days_in_month - leave_days) / days_in_month)


def _round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def calculate_seniority_targets(staff_list: List[StaffMember], total_shifts_needed: int,
                                days_in_month: int,
                                month_key: Optional[str] = None) -> Tuple[Dict[int, int], Dict[int, TargetDetail]]:
    """
    Split the month's total demand across staff by seniority weight.

    Rounding drift is left as is, so the targets may not sum exactly to
    total_shifts_needed.

    Returns:
        Tuple of (targets by staff id, TargetDetail by staff id)
    """
    if not staff_list:
        return {}, {}

    partial = {}
    for staff in staff_list:
        weight = seniority_weight(staff.seniority)
        leave_days = count_leave_days(staff, month_key)
        ratio = availability_ratio(leave_days, days_in_month)
        partial[staff.id] = (staff.seniority, weight, leave_days, ratio, weight * ratio)

    total_weight = sum(entry[4] for entry in partial.values())

    targets = {}
    details = {}
    for staff_id, (seniority, weight, leave_days, ratio, adjusted) in partial.items():
        raw_target = total_shifts_needed * adjusted / total_weight if total_weight > 0 else 0.0
        target = _round_half_up(raw_target)
        targets[staff_id] = target
        details[staff_id] = TargetDetail(
            seniority=seniority,
            weight=weight,
            leave_days=leave_days,
            availability_ratio=ratio,
            adjusted_weight=adjusted,
            raw_target=raw_target,
            target=target,
            target_reduced=ratio < 1.0
        )

    return targets, details
