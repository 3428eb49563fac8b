import pytest
import random
import sys
from datetime import date
from pathlib import Path

# Add src to path
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from seniority_scheduler.context import DayInfo, ScheduleContext, StaffStats
from seniority_scheduler.data_manager import Constraints, StaffMember
from seniority_scheduler.dates import month_days
from seniority_scheduler.scoring import (
    ScoreWeights, last_shift_before, pairing_adjustment, remaining_available_days, score_candidate, urgency_bonus
)


def make_context(staff_list, targets, constraints=None, month_key="2025-03", seed=1):
    ctx = ScheduleContext(
        staff_list=staff_list,
        constraints=constraints or Constraints(selected_month=month_key),
        month_key=month_key,
        dates=month_days(month_key),
        day_gap=2,
        rng=random.Random(seed)
    )
    for staff in staff_list:
        ctx.stats[staff.id] = StaffStats(target_shifts=targets.get(staff.id, 0))
    return ctx


def day(iso):
    return DayInfo.for_date(date.fromisoformat(iso))


def test_weight_ordering():
    """Required outranks hierarchy, which outranks over-target, urgency and deficit."""
    assert ScoreWeights.REQUIRED_DAY_BONUS > 9 * ScoreWeights.HIERARCHY_PENALTY + ScoreWeights.OVER_TARGET_PENALTY * 31
    assert ScoreWeights.HIERARCHY_PENALTY > ScoreWeights.OVER_TARGET_PENALTY
    assert ScoreWeights.OVER_TARGET_PENALTY > ScoreWeights.URGENCY_WEIGHT
    assert ScoreWeights.URGENCY_WEIGHT > ScoreWeights.DEFICIT_BONUS
    assert ScoreWeights.DEFICIT_BONUS > ScoreWeights.WEEKDAY_REPEAT_PENALTY
    assert ScoreWeights.WEEKDAY_REPEAT_PENALTY > ScoreWeights.JITTER


def test_required_day_dominates():
    required = StaffMember(1, "Required", 9, required_days=["2025-03-10"])
    eager = StaffMember(2, "Eager", 1)
    ctx = make_context([required, eager], {1: 0, 2: 10})

    monday = day("2025-03-10")
    assert score_candidate(required, monday, ctx) > score_candidate(eager, monday, ctx)


def test_weekend_required_day_beats_full_hierarchy():
    """A senior's weekend required day wins even when every junior is below them on weekends."""
    senior = StaffMember(10, "Senior", 10, required_days=["2025-03-15"])
    juniors = [StaffMember(i, f"Junior {i}", i) for i in range(1, 10)]
    ctx = make_context([senior] + juniors, {i: 10 for i in range(1, 10)})
    ctx.stats[10].weekend_shifts = 1

    saturday = day("2025-03-15")
    senior_score = score_candidate(senior, saturday, ctx)
    assert all(senior_score > score_candidate(junior, saturday, ctx) for junior in juniors)


def test_under_target_beats_over_target():
    under = StaffMember(1, "Under", 5)
    over = StaffMember(2, "Over", 5)
    ctx = make_context([under, over], {1: 5, 2: 5})
    ctx.stats[2].shift_count = 5

    tuesday = day("2025-03-11")
    assert score_candidate(under, tuesday, ctx) > score_candidate(over, tuesday, ctx)


def test_weekend_prefers_junior():
    junior = StaffMember(1, "Junior", 1)
    senior = StaffMember(2, "Senior", 9)
    ctx = make_context([junior, senior], {1: 6, 2: 6})

    saturday = day("2025-03-15")
    assert score_candidate(junior, saturday, ctx) > score_candidate(senior, saturday, ctx)


def test_hierarchy_penalty_applies_while_junior_not_ahead():
    junior = StaffMember(1, "Junior", 2)
    senior = StaffMember(2, "Senior", 6)
    ctx = make_context([junior, senior], {1: 6, 2: 6})
    saturday = day("2025-03-15")

    blocked = score_candidate(senior, saturday, ctx)
    ctx_unblocked = make_context([junior, senior], {1: 6, 2: 6})
    ctx_unblocked.stats[1].weekend_shifts = 1
    unblocked = score_candidate(senior, saturday, ctx_unblocked)

    assert unblocked - blocked == pytest.approx(ScoreWeights.HIERARCHY_PENALTY, abs=ScoreWeights.JITTER)


def test_beneficial_day_bonus_for_seniors():
    senior = StaffMember(1, "Senior", 8)
    ctx_plain = make_context([senior], {1: 3})
    ctx_bonus = make_context([senior], {1: 3}, Constraints(selected_month="2025-03", beneficial_days=["Wednesday"]))

    wednesday = day("2025-03-12")
    difference = score_candidate(senior, wednesday, ctx_bonus) - score_candidate(senior, wednesday, ctx_plain)
    assert difference == pytest.approx(8 * ScoreWeights.BENEFICIAL_DAY_BONUS)


def test_seeded_scores_are_reproducible():
    staff = StaffMember(1, "Alice", 4)
    friday = day("2025-03-14")

    first = score_candidate(staff, friday, make_context([staff], {1: 4}, seed=42))
    second = score_candidate(staff, friday, make_context([staff], {1: 4}, seed=42))
    assert first == second


def test_remaining_available_days_skips_blocked_dates():
    staff = StaffMember(1, "Alice", 4, unavailability=["2025-03-29"], leave_days=["2025-03-30"])
    current = day("2025-03-27")
    # 28, 29, 30, 31 minus two blocked
    assert remaining_available_days(staff, current, date(2025, 3, 31)) == 2
    assert remaining_available_days(staff, day("2025-03-31"), date(2025, 3, 31)) == 0


def test_urgency_grows_and_is_capped():
    assert urgency_bonus(1, 10) < urgency_bonus(3, 10)
    # zero remaining days is treated as one
    assert urgency_bonus(2, 0) == urgency_bonus(2, 1)
    assert urgency_bonus(10, 1) == urgency_bonus(50, 1)


def test_last_shift_before_ignores_later_days():
    staff = StaffMember(1, "Alice", 4)
    ctx = make_context([staff], {1: 4})
    ctx.days = {"2025-03-05": [staff], "2025-03-20": [staff]}

    assert last_shift_before(ctx, 1, date(2025, 3, 10)) == date(2025, 3, 5)
    assert last_shift_before(ctx, 1, date(2025, 3, 5)) is None


@pytest.mark.parametrize("candidate_seniority, partner_seniority, expected", [
    (5, 5, -ScoreWeights.PAIRING_SAME_SENIORITY_PENALTY),
    (2, 7, 5 * ScoreWeights.PAIRING_GAP_BONUS),
    (8, 7, ScoreWeights.PAIRING_GAP_BONUS),
])
def test_pairing_adjustment(candidate_seniority, partner_seniority, expected):
    candidate = StaffMember(1, "Candidate", candidate_seniority)
    partner = StaffMember(2, "Partner", partner_seniority)
    assert pairing_adjustment(candidate, partner) == expected


def test_no_partner_no_adjustment():
    assert pairing_adjustment(StaffMember(1, "Solo", 5), None) == 0.0
