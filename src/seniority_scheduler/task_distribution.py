"""
Task Column Distributor

Fills one named task column (a secondary duty within a day) with eligible
staff, sharing the column's slots out evenly. Unlike the shift scheduler
this is a single greedy pass per day with no anomaly analysis; problems are
reported to the module logger only.
"""

from dataclasses import dataclass, field
from datetime import date
from typing import Dict, List, Optional, Any
import logging
import random

from .data_manager import Constraints, StaffMember, TaskColumnConfig, normalize_tasks
from .dates import date_key, iso_week, shift_date, ui_weekday_index
from .holidays import is_public_holiday

logger = logging.getLogger(__name__)

# date -> column index -> ordered staff ids
TaskAssignment = Dict[str, Dict[int, List[int]]]


@dataclass
class _ColumnLoad:
    count: int = 0
    weeks: set = field(default_factory=set)


@dataclass
class TaskDaySummary:
    """Per-day overview shown next to the task grid"""
    date: str
    total_available: int
    assigned_count: int
    remaining: int
    unassigned_names: List[str]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "date": self.date,
            "totalAvailable": self.total_available,
            "assignedCount": self.assigned_count,
            "remaining": self.remaining,
            "unassignedNames": list(self.unassigned_names)
        }


def _shift_ids(schedule: Any, date_str: str) -> List[int]:
    """Staff ids on shift that date; accepts a Schedule, its plain dict form, or None"""
    if schedule is None:
        return []
    days = schedule.days if hasattr(schedule, "days") else schedule
    ids = []
    for staff in days.get(date_str) or []:
        ids.append(staff["id"] if isinstance(staff, dict) else staff.id)
    return ids


def _copy_tasks(tasks: Optional[Dict[str, Any]]) -> TaskAssignment:
    return {date_str: {idx: list(ids) for idx, ids in day_tasks.items()}
            for date_str, day_tasks in normalize_tasks(tasks or {}).items()}


def eligible_staff_for_column(staff_list: List[StaffMember], config: TaskColumnConfig) -> List[StaffMember]:
    """Explicit ids win over the seniority allowlist; with neither, nobody is eligible"""
    if config.eligible_staff_ids:
        return [staff for staff in staff_list if staff.id in config.eligible_staff_ids]
    if config.eligible_seniorities:
        return [staff for staff in staff_list if staff.seniority in config.eligible_seniorities]
    return []


def target_days_for_column(days: List[date], config: TaskColumnConfig) -> List[date]:
    """Days on the column's weekdays (all days when none are set), minus public holidays"""
    return [
        day for day in sorted(days)
        if (not config.target_weekdays or ui_weekday_index(day) in config.target_weekdays)
        and not is_public_holiday(day)
    ]


def available_staff_for_task(day: date, candidates: List[StaffMember], schedule: Any,
                             tasks: Dict[str, Dict[int, List[int]]], column_index: int) -> List[StaffMember]:
    """
    Candidates free for column_index on day.

    Excludes staff on leave or unavailable, staff who worked the previous
    day's shift, and staff already holding a different column that day.
    """
    date_str = date_key(day)
    post_shift = set(_shift_ids(schedule, shift_date(date_str, -1)))

    taken_elsewhere = set()
    for idx, ids in tasks.get(date_str, {}).items():
        if int(idx) != column_index:
            taken_elsewhere.update(ids if isinstance(ids, list) else [ids])

    return [
        staff for staff in candidates
        if date_str not in staff.leave_days
        and date_str not in staff.unavailability
        and staff.id not in post_shift
        and staff.id not in taken_elsewhere
    ]


def _select_for_day(available: List[StaffMember], loads: Dict[int, _ColumnLoad], week: tuple,
                    max_per_day: int, target: int, preferred_mix: List[int],
                    rng: random.Random) -> List[StaffMember]:
    candidates = list(available)
    # Shuffle first so the stable sort breaks remaining ties randomly
    rng.shuffle(candidates)
    candidates.sort(key=lambda staff: (
        loads[staff.id].count >= target,
        -staff.seniority,
        loads[staff.id].count,
        week in loads[staff.id].weeks
    ))

    selected: List[StaffMember] = []
    if preferred_mix:
        top = [staff for staff in candidates if loads[staff.id].count <= target]
        for seniority in preferred_mix:
            if len(selected) >= max_per_day:
                break
            match = next((staff for staff in top if staff.seniority == seniority and staff not in selected), None)
            if match is not None:
                selected.append(match)

    for staff in candidates:
        if len(selected) >= max_per_day:
            break
        if staff not in selected:
            selected.append(staff)

    return selected


def distribute_task_column(days: List[date], staff_list: List[StaffMember], schedule: Any,
                           current_tasks: Optional[Dict[str, Any]], column_config: TaskColumnConfig,
                           column_index: int, fill_empty_only: bool = False,
                           rng: Optional[random.Random] = None) -> TaskAssignment:
    """
    Assign staff to one task column across the given days.

    Args:
        days: Days of the month
        staff_list: Full roster
        schedule: Generated shift schedule (Schedule, its dict form, or None)
        current_tasks: Existing assignments; not modified
        column_config: Rules for this column
        column_index: Column being filled; other columns are preserved
        fill_empty_only: Keep existing entries and count them toward fairness

    Returns:
        New task assignment map with this column updated
    """
    rng = rng or random.Random()
    tasks = _copy_tasks(current_tasks)

    eligible = eligible_staff_for_column(staff_list, column_config)
    if not eligible:
        logger.warning(f"No eligible staff found for task column {column_index}")
        return tasks

    target_days = target_days_for_column(days, column_config)
    loads = {staff.id: _ColumnLoad() for staff in eligible}

    if fill_empty_only:
        for day in target_days:
            for staff_id in tasks.get(date_key(day), {}).get(column_index, []):
                if staff_id in loads:
                    loads[staff_id].count += 1
                    loads[staff_id].weeks.add(iso_week(day))
    else:
        for day in target_days:
            tasks.get(date_key(day), {}).pop(column_index, None)

    total_slots = len(target_days) * column_config.max_per_day
    target = total_slots // len(eligible)
    logger.debug(f"Column {column_index}: {len(target_days)} target days, {len(eligible)} eligible, target {target} each")

    for day in target_days:
        date_str = date_key(day)
        if fill_empty_only and tasks.get(date_str, {}).get(column_index):
            continue

        available = available_staff_for_task(day, eligible, schedule, tasks, column_index)
        if not available:
            logger.warning(f"No available staff for {date_str} in task column {column_index}")
            continue

        week = iso_week(day)
        selected = _select_for_day(available, loads, week, column_config.max_per_day, target,
                                   column_config.preferred_seniority_mix, rng)
        tasks.setdefault(date_str, {})[column_index] = [staff.id for staff in selected]
        for staff in selected:
            loads[staff.id].count += 1
            loads[staff.id].weeks.add(week)

    return tasks


def distribute_all_task_columns(days: List[date], staff_list: List[StaffMember], schedule: Any,
                                current_tasks: Optional[Dict[str, Any]], constraints: Constraints,
                                fill_empty_only: bool = False,
                                rng: Optional[random.Random] = None) -> TaskAssignment:
    """Run the distributor for every configured column in index order"""
    rng = rng or random.Random()
    tasks = _copy_tasks(current_tasks)
    for column_index, name in enumerate(constraints.task_columns):
        logger.info(f"Distributing task column {column_index} ({name})")
        tasks = distribute_task_column(days, staff_list, schedule, tasks,
                                       constraints.column_config(column_index), column_index,
                                       fill_empty_only=fill_empty_only, rng=rng)
    return tasks


def summarize_task_day(date_str: str, staff_list: List[StaffMember], schedule: Any,
                       tasks: Optional[Dict[str, Any]]) -> TaskDaySummary:
    """Staff free for tasks that day (not on leave, not post-shift) against slots already filled"""
    day_tasks = normalize_tasks(tasks or {}).get(date_str, {})
    assigned_ids = [staff_id for ids in day_tasks.values() for staff_id in ids]
    post_shift = set(_shift_ids(schedule, shift_date(date_str, -1)))

    available = [staff for staff in staff_list
                 if date_str not in staff.leave_days and staff.id not in post_shift]

    return TaskDaySummary(
        date=date_str,
        total_available=len(available),
        assigned_count=len(assigned_ids),
        remaining=len(available) - len(assigned_ids),
        unassigned_names=[staff.name for staff in available if staff.id not in assigned_ids]
    )
