"""
Candidate scoring for the greedy fill pass.

Higher scores win. The weights are ordered so that a required day outranks
everything, hierarchy protection outranks the over-target penalty, which
outranks urgency, then target deficit, rest spread, weekday variety and
finally the tie-breaking jitter.
"""

from datetime import date, timedelta
from typing import Optional
import random

from .context import DayInfo, ScheduleContext
from .data_manager import StaffMember
from .dates import date_key


class ScoreWeights:
    """Score constants"""
    BASE = 1000
    REQUIRED_DAY_BONUS = 1000000  # above HIERARCHY_PENALTY for a full junior roster
    HIERARCHY_PENALTY = 20000  # per junior colleague with <= weekend load
    OVER_TARGET_PENALTY = 2500  # per shift over target
    URGENCY_WEIGHT = 600
    URGENCY_CRITICAL_RATIO = 0.5
    URGENCY_CRITICAL_MULTIPLIER = 4
    URGENCY_MAX_RATIO = 2.0
    DEFICIT_BONUS = 400  # per shift under target
    BENEFICIAL_DAY_BONUS = 150  # times seniority
    REST_SPREAD_PER_DAY = 30
    REST_SPREAD_MAX_DAYS = 10
    NEVER_ASSIGNED_BONUS = 300
    WEEKEND_SENIORITY_FACTOR = 0.05  # times seniority ** 4
    WEEKEND_REPEAT_PENALTY = 1500
    WEEKDAY_REPEAT_PENALTY = 120
    JITTER = 20
    PAIRING_SAME_SENIORITY_PENALTY = 300
    PAIRING_GAP_BONUS = 60  # per seniority step between pair


def remaining_available_days(staff: StaffMember, day: DayInfo, month_end: date) -> int:
    """Days after `day` through month end not blocked by unavailability or leave"""
    blocked = set(staff.unavailability) | set(staff.leave_days)
    count = 0
    current = day.day + timedelta(days=1)
    while current <= month_end:
        if date_key(current) not in blocked:
            count += 1
        current += timedelta(days=1)
    return count


def last_shift_before(ctx: ScheduleContext, staff_id: int, day: date) -> Optional[date]:
    """Most recent assignment strictly before `day`; later locked days are ignored"""
    for candidate in reversed(ctx.dates):
        if candidate < day and ctx.is_assigned(staff_id, date_key(candidate)):
            return candidate
    return None


def urgency_bonus(remaining_target: int, available_days: int) -> float:
    ratio = min(remaining_target / max(1, available_days), ScoreWeights.URGENCY_MAX_RATIO)
    bonus = ratio * ScoreWeights.URGENCY_WEIGHT
    if ratio > ScoreWeights.URGENCY_CRITICAL_RATIO:
        bonus *= ScoreWeights.URGENCY_CRITICAL_MULTIPLIER * ratio
    return bonus


def score_candidate(staff: StaffMember, day: DayInfo, ctx: ScheduleContext,
                    rng: Optional[random.Random] = None) -> float:
    """
    Score how desirable it is to assign staff on day.

    Pure with respect to ctx: the caller updates stats after selection.
    """
    rng = rng or ctx.rng
    stats = ctx.stats[staff.id]
    constraints = ctx.constraints
    score = float(ScoreWeights.BASE)

    if day.date_str in staff.required_days:
        score += ScoreWeights.REQUIRED_DAY_BONUS

    if (day.day_name in constraints.beneficial_days
            and staff.seniority >= constraints.beneficial_days_threshold):
        score += staff.seniority * ScoreWeights.BENEFICIAL_DAY_BONUS

    remaining_target = stats.target_shifts - stats.shift_count
    if remaining_target > 0:
        available = remaining_available_days(staff, day, ctx.dates[-1])
        score += urgency_bonus(remaining_target, available)
        score += remaining_target * ScoreWeights.DEFICIT_BONUS
    else:
        # Taking this shift would put them (further) over target
        score -= (1 - remaining_target) * ScoreWeights.OVER_TARGET_PENALTY

    previous = last_shift_before(ctx, staff.id, day.day)
    if previous is None:
        score += ScoreWeights.NEVER_ASSIGNED_BONUS
    else:
        gap = min((day.day - previous).days, ScoreWeights.REST_SPREAD_MAX_DAYS)
        score += gap * ScoreWeights.REST_SPREAD_PER_DAY

    if day.is_weekend:
        score -= (staff.seniority ** 4) * ScoreWeights.WEEKEND_SENIORITY_FACTOR
        score -= stats.weekend_shifts * ScoreWeights.WEEKEND_REPEAT_PENALTY
        for other in ctx.staff_list:
            if other.id == staff.id or other.seniority >= staff.seniority:
                continue
            if ctx.stats[other.id].weekend_shifts <= stats.weekend_shifts:
                score -= ScoreWeights.HIERARCHY_PENALTY

    score -= stats.days_assigned.get(day.day_name, 0) * ScoreWeights.WEEKDAY_REPEAT_PENALTY

    score += rng.random() * ScoreWeights.JITTER
    return score


def pairing_adjustment(candidate: StaffMember, partner: Optional[StaffMember]) -> float:
    """Favour senior/junior mixes on the same day over same-seniority pairs"""
    if partner is None:
        return 0.0
    gap = abs(candidate.seniority - partner.seniority)
    if gap == 0:
        return -float(ScoreWeights.PAIRING_SAME_SENIORITY_PENALTY)
    return float(gap * ScoreWeights.PAIRING_GAP_BONUS)
