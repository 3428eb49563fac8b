"""
Scheduler Logic for Shift Scheduling System

Implements the two-pass heuristic that builds a monthly roster: required
days are locked in first across the whole month, then each day is filled
greedily by score, with senior/junior pairing and an optional slot system.
"""

from datetime import date
from typing import Dict, List, Optional, Any, Union
from dataclasses import dataclass, field
import logging
import random
import time

from .availability import AvailabilityReason, check_availability, find_rest_conflict, required_day_gap
from .context import DayInfo, LogEntry, LogLevel, ScheduleContext, StaffStats
from .data_manager import Constraints, DataValidationError, StaffMember, validate_seniority
from .dates import date_key, month_days, month_key_for, parse_date
from .scoring import pairing_adjustment, score_candidate
from .targets import LEAVE_THRESHOLD, TargetDetail, calculate_seniority_targets, count_leave_days, seniority_group

logger = logging.getLogger(__name__)


class LogCategory:
    """Machine-readable tags attached to schedule log entries"""
    REQUIRED = "required"
    REQUIRED_CONFLICT = "required_conflict"
    CAPACITY = "capacity"
    SHORTFALL = "shortfall"
    DEAD_SLOT = "dead_slot"
    ANOMALY = "anomaly"
    SUMMARY = "summary"


@dataclass
class Schedule:
    """Result of schedule generation"""
    month_key: str
    days: Dict[str, List[StaffMember]]
    staff_stats: Dict[int, StaffStats] = field(default_factory=dict)
    logs: List[LogEntry] = field(default_factory=list)
    target_details: Dict[int, TargetDetail] = field(default_factory=dict)
    leave_threshold: int = LEAVE_THRESHOLD
    total_shifts_needed: int = 0

    @property
    def dates(self) -> List[str]:
        return sorted(self.days)

    def staff_on(self, date_str: str) -> List[StaffMember]:
        return list(self.days.get(date_str, []))

    def staff_ids_on(self, date_str: str) -> List[int]:
        return [staff.id for staff in self.days.get(date_str, [])]

    def dates_for(self, staff_id: int) -> List[str]:
        return [d for d in self.dates if staff_id in self.staff_ids_on(d)]

    def count_shifts(self, staff_id: int) -> int:
        return len(self.dates_for(staff_id))

    def logs_of(self, level: Optional[LogLevel] = None, category: Optional[str] = None) -> List[LogEntry]:
        return [entry for entry in self.logs
                if (level is None or entry.level == level)
                and (category is None or entry.category == category)]

    # Manual edits bypass the algorithm; stats are not recomputed
    def add_to_day(self, date_str: str, staff: StaffMember) -> bool:
        if staff.id in self.staff_ids_on(date_str):
            return False
        self.days.setdefault(date_str, []).append(staff)
        return True

    def remove_from_day(self, date_str: str, staff_id: int) -> bool:
        before = self.days.get(date_str, [])
        after = [staff for staff in before if staff.id != staff_id]
        self.days[date_str] = after
        return len(after) != len(before)

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {d: [staff.to_dict() for staff in self.days[d]] for d in self.dates}
        data["_monthKey"] = self.month_key
        data["_staffStats"] = {str(sid): stats.to_dict() for sid, stats in self.staff_stats.items()}
        data["_logs"] = [entry.to_dict() for entry in self.logs]
        data["_targetDetails"] = {str(sid): detail.to_dict() for sid, detail in self.target_details.items()}
        data["_leaveThreshold"] = self.leave_threshold
        data["_totalShiftsNeeded"] = self.total_shifts_needed
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'Schedule':
        days = {key: [StaffMember.from_dict(raw) for raw in value]
                for key, value in data.items() if not key.startswith('_')}
        month_key = data.get("_monthKey") or (min(days)[:7] if days else "")
        return cls(
            month_key=month_key,
            days=days,
            staff_stats={int(sid): StaffStats.from_dict(raw) for sid, raw in (data.get("_staffStats") or {}).items()},
            logs=[LogEntry.from_dict(raw) for raw in data.get("_logs") or []],
            target_details={int(sid): TargetDetail.from_dict(raw)
                            for sid, raw in (data.get("_targetDetails") or {}).items()},
            leave_threshold=int(data.get("_leaveThreshold", LEAVE_THRESHOLD)),
            total_shifts_needed=int(data.get("_totalShiftsNeeded", 0))
        )


class ShiftScheduler:
    """Main scheduler class implementing the two-pass seniority heuristic"""

    def __init__(self, rng: Optional[random.Random] = None):
        self.rng = rng or random.Random()

    def generate_schedule(self, staff_list: List[StaffMember], constraints: Constraints,
                          target_month: Union[str, date, None] = None) -> Schedule:
        """
        Generate the roster for one month.

        Args:
            staff_list: Roster; not modified
            constraints: Staffing needs and rules for the run
            target_month: "YYYY-MM", any date in the month, or None for
                constraints.selected_month

        Returns:
            Schedule covering every day of the month, with stats, logs and
            target details attached
        """
        start_time = time.time()
        month_key = self._resolve_month_key(target_month, constraints)
        self._validate_staff_list(staff_list)
        logger.info(f"Starting schedule generation for {month_key} with {len(staff_list)} staff")

        ctx = self._initialize_context(staff_list, constraints, month_key)
        target_details = self._assign_targets(ctx)

        self._lock_required_days(ctx)
        self._fill_remaining_slots(ctx)
        self._analyze_anomalies(ctx)

        total_needed = sum(constraints.need_for(DayInfo.for_date(d).day_name) for d in ctx.dates)
        filled = sum(len(assigned) for assigned in ctx.days.values())
        ctx.log(LogLevel.INFO, f"Schedule generated: {filled}/{total_needed} shifts filled",
                category=LogCategory.SUMMARY)

        duration = time.time() - start_time
        logger.info(f"Schedule generation for {month_key} completed in {duration:.2f}s")

        return Schedule(
            month_key=month_key,
            days=ctx.days,
            staff_stats=ctx.stats,
            logs=ctx.logs,
            target_details=target_details,
            leave_threshold=LEAVE_THRESHOLD,
            total_shifts_needed=total_needed
        )

    def _resolve_month_key(self, target_month: Union[str, date, None], constraints: Constraints) -> str:
        if isinstance(target_month, date):
            return month_key_for(target_month)
        month_key = target_month or constraints.selected_month
        # Accept a full ISO date as well as "YYYY-MM"
        return month_key[:7]

    def _validate_staff_list(self, staff_list: List[StaffMember]):
        seen = set()
        for staff in staff_list:
            if staff.id in seen:
                raise DataValidationError(f"Duplicate staff id: {staff.id}")
            seen.add(staff.id)
            validate_seniority(staff.seniority)

    def _initialize_context(self, staff_list: List[StaffMember], constraints: Constraints,
                            month_key: str) -> ScheduleContext:
        dates = month_days(month_key)
        ctx = ScheduleContext(
            staff_list=list(staff_list),
            constraints=constraints,
            month_key=month_key,
            dates=dates,
            day_gap=required_day_gap(constraints.min_rest_hours),
            rng=self.rng
        )
        ctx.days = {date_key(d): [] for d in dates}
        return ctx

    def _assign_targets(self, ctx: ScheduleContext) -> Dict[int, TargetDetail]:
        total_needed = sum(ctx.constraints.need_for(DayInfo.for_date(d).day_name) for d in ctx.dates)
        targets, details = calculate_seniority_targets(ctx.staff_list, total_needed, len(ctx.dates), ctx.month_key)

        for staff in ctx.staff_list:
            ctx.stats[staff.id] = StaffStats(
                target_shifts=targets.get(staff.id, 0),
                seniority_group=seniority_group(staff.seniority)
            )
            detail = details[staff.id]
            if detail.target_reduced:
                ctx.log(LogLevel.INFO,
                        f"{staff.name}: target reduced to {detail.target} "
                        f"({detail.leave_days} leave days, ratio {detail.availability_ratio:.2f})",
                        staff_id=staff.id)

        ctx.log(LogLevel.INFO, f"Total shifts needed for {ctx.month_key}: {total_needed}",
                category=LogCategory.SUMMARY)
        return details

    def _lock_required_days(self, ctx: ScheduleContext):
        """Pass 1: assign every required day in chronological order, ignoring needs and caps"""
        for current in ctx.dates:
            day = DayInfo.for_date(current)
            for staff in ctx.staff_list:
                if day.date_str not in staff.required_days or ctx.is_assigned(staff.id, day.date_str):
                    continue

                conflict = find_rest_conflict(staff.id, day.date_str, ctx.days, ctx.day_gap)
                if conflict:
                    ctx.log(LogLevel.ERROR,
                            f"Required day conflict: {staff.name} on {day.date_str} is within "
                            f"{ctx.day_gap - 1} day(s) of required day {conflict}; skipped",
                            date_str=day.date_str, staff_id=staff.id, category=LogCategory.REQUIRED_CONFLICT)
                    continue

                ctx.assign(staff, day)
                ctx.log(LogLevel.SUCCESS, f"Required day locked: {staff.name} on {day.date_str}",
                        date_str=day.date_str, staff_id=staff.id, category=LogCategory.REQUIRED)

    def _fill_remaining_slots(self, ctx: ScheduleContext):
        """Pass 2: fill each day up to its weekday need"""
        constraints = ctx.constraints
        for current in ctx.dates:
            day = DayInfo.for_date(current)
            need = constraints.need_for(day.day_name)
            if len(ctx.days[day.date_str]) >= need:
                continue

            pool = [
                staff for staff in ctx.staff_list
                if not ctx.is_assigned(staff.id, day.date_str)
                and check_availability(staff, day.date_str, ctx.days, ctx.stats[staff.id].shift_count,
                                       constraints.max_shifts_per_month, ctx.day_gap).assignable
            ]

            open_slots = need - len(ctx.days[day.date_str])
            if len(pool) < open_slots:
                ctx.log(LogLevel.WARNING,
                        f"{day.date_str} ({day.day_name}): only {len(pool)} available staff for {open_slots} open slot(s)",
                        date_str=day.date_str, category=LogCategory.CAPACITY)

            if constraints.slot_system.enabled:
                self._fill_day_by_slots(ctx, day, pool, need)
            else:
                self._fill_day_with_pairing(ctx, day, pool, need)

            shortfall = need - len(ctx.days[day.date_str])
            if shortfall > 0:
                ctx.log(LogLevel.ERROR,
                        f"{day.date_str} ({day.day_name}): {shortfall} shift(s) left unfilled",
                        date_str=day.date_str, category=LogCategory.SHORTFALL)

    def _fill_day_by_slots(self, ctx: ScheduleContext, day: DayInfo, pool: List[StaffMember], need: int):
        slot_system = ctx.constraints.slot_system
        for slot_index in range(len(ctx.days[day.date_str]), need):
            allowed = slot_system.allowed_for_slot(slot_index)
            eligible = [staff for staff in pool if allowed is None or staff.seniority in allowed]
            if not eligible:
                ctx.log(LogLevel.WARNING,
                        f"{day.date_str}: no available staff for slot {slot_index + 1} "
                        f"(seniorities {allowed}); slot left empty",
                        date_str=day.date_str, category=LogCategory.DEAD_SLOT)
                continue

            best = max(eligible, key=lambda staff: score_candidate(staff, day, ctx))
            ctx.assign(best, day)
            pool.remove(best)

    def _fill_day_with_pairing(self, ctx: ScheduleContext, day: DayInfo, pool: List[StaffMember], need: int):
        # Re-score after every pick: the pairing term depends on who was added last
        assigned = ctx.days[day.date_str]
        while len(assigned) < need and pool:
            partner = assigned[-1] if assigned else None
            best = max(pool, key=lambda staff: score_candidate(staff, day, ctx) + pairing_adjustment(staff, partner))
            ctx.assign(best, day)
            pool.remove(best)

    def _analyze_anomalies(self, ctx: ScheduleContext):
        """Report juniors who ended up with less total or weekend work than a senior colleague"""
        by_seniority = sorted(ctx.staff_list, key=lambda staff: staff.seniority)
        for junior in by_seniority:
            junior_stats = ctx.stats[junior.id]
            for senior in by_seniority:
                if senior.seniority <= junior.seniority:
                    continue
                senior_stats = ctx.stats[senior.id]

                problems = []
                if junior_stats.shift_count < senior_stats.shift_count:
                    problems.append(f"fewer total shifts ({junior_stats.shift_count} vs {senior_stats.shift_count})")
                if junior_stats.weekend_shifts < senior_stats.weekend_shifts:
                    problems.append(f"fewer weekend shifts ({junior_stats.weekend_shifts} vs {senior_stats.weekend_shifts})")
                if not problems:
                    continue

                ctx.log(LogLevel.WARNING,
                        f"Seniority anomaly: {junior.name} (seniority {junior.seniority}) has "
                        f"{' and '.join(problems)} than {senior.name} (seniority {senior.seniority}). "
                        f"Factors: {self._anomaly_factors(ctx, junior)}",
                        staff_id=junior.id, category=LogCategory.ANOMALY)

    def _anomaly_factors(self, ctx: ScheduleContext, staff: StaffMember) -> str:
        prefix = f"{ctx.month_key}-"
        factors = []
        unavailable = len({d for d in staff.unavailability if d.startswith(prefix)})
        if unavailable:
            factors.append(f"{unavailable} unavailable day(s)")
        leave = count_leave_days(staff, ctx.month_key)
        if leave:
            factors.append(f"{leave} leave day(s)")
        if ctx.stats[staff.id].shift_count >= ctx.constraints.max_shifts_per_month:
            factors.append("monthly shift cap reached")
        conflicts = [e for e in ctx.logs if e.staff_id == staff.id and e.category == LogCategory.REQUIRED_CONFLICT]
        if conflicts:
            factors.append(f"{len(conflicts)} dropped required day(s)")
        return ", ".join(factors) if factors else "no blocking constraint found"

    def validate_manual_assignment(self, staff: StaffMember, date_str: str,
                                   schedule: Schedule, constraints: Constraints) -> List[str]:
        """
        Validate a manual placement against the generation rules.
        Returns list of violations (empty if valid); nothing is changed.
        """
        violations = []
        try:
            parse_date(date_str)
        except ValueError:
            violations.append(f"Invalid date format: {date_str}")
            return violations

        if staff.id in schedule.staff_ids_on(date_str):
            violations.append(AvailabilityReason.ALREADY_ASSIGNED)

        # Count from the day lists: earlier manual edits are not in the stats
        result = check_availability(
            staff, date_str, schedule.days, schedule.count_shifts(staff.id),
            constraints.max_shifts_per_month, required_day_gap(constraints.min_rest_hours)
        )
        violations.extend(result.reasons)
        return violations


def generate_schedule(staff_list: List[StaffMember], constraints: Constraints,
                      target_month: Union[str, date, None] = None,
                      rng: Optional[random.Random] = None) -> Schedule:
    """Convenience wrapper around ShiftScheduler.generate_schedule"""
    return ShiftScheduler(rng=rng).generate_schedule(staff_list, constraints, target_month)
