import pytest
import logging
import random
import sys
from datetime import date
from pathlib import Path

# Add src to path
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from seniority_scheduler.data_manager import Constraints, StaffMember, TaskColumnConfig
from seniority_scheduler.dates import month_days
from seniority_scheduler.holidays import SUPPORTED_RELIGIOUS_YEARS, is_public_holiday
from seniority_scheduler.scheduler_logic import Schedule
from seniority_scheduler.task_distribution import (
    available_staff_for_task, distribute_all_task_columns, distribute_task_column,
    eligible_staff_for_column, summarize_task_day, target_days_for_column
)

JUNE = month_days("2025-06")
# Mondays, Wednesdays, Thursdays and Fridays of June 2025 minus the 5th, 6th and 9th (holiday)
JUNE_TARGET_DAYS = [2, 4, 11, 12, 13, 16, 18, 19, 20, 23, 25, 26, 27, 30]


@pytest.fixture
def staff():
    return [
        StaffMember(1, "Ayse", 3),
        StaffMember(2, "Burak", 5),
        StaffMember(3, "Cem", 7),
        StaffMember(4, "Deniz", 5),
    ]


def column_entries(tasks, column_index):
    return {d: cols[column_index] for d, cols in tasks.items() if column_index in cols}


def test_holidays():
    assert is_public_holiday(date(2025, 1, 1))
    assert is_public_holiday(date(2025, 10, 29))
    assert is_public_holiday(date(2025, 6, 6))
    assert not is_public_holiday(date(2025, 6, 10))
    # religious dates are only known for supported years
    assert 2023 not in SUPPORTED_RELIGIOUS_YEARS
    assert not is_public_holiday(date(2023, 6, 28))
    assert is_public_holiday(date(2023, 5, 1))


def test_target_days_skip_other_weekdays_and_holidays():
    days = target_days_for_column(JUNE, TaskColumnConfig())
    assert [d.day for d in days] == JUNE_TARGET_DAYS


def test_empty_target_weekdays_means_every_day():
    days = target_days_for_column(JUNE, TaskColumnConfig(target_weekdays=[]))
    assert len(days) == 30 - 5


def test_explicit_ids_win_over_seniorities(staff):
    config = TaskColumnConfig(eligible_staff_ids=[3], eligible_seniorities=[5])
    assert [s.id for s in eligible_staff_for_column(staff, config)] == [3]

    config = TaskColumnConfig(eligible_seniorities=[5])
    assert [s.id for s in eligible_staff_for_column(staff, config)] == [2, 4]

    assert eligible_staff_for_column(staff, TaskColumnConfig()) == []


def test_no_eligible_staff_is_a_no_op(staff, caplog):
    current = {"2025-06-02": {1: [2]}}
    with caplog.at_level(logging.WARNING):
        tasks = distribute_task_column(JUNE, staff, None, current, TaskColumnConfig(), 0)

    assert tasks == current
    assert "No eligible staff" in caplog.text


def test_only_eligible_staff_on_leave(staff, caplog):
    """
    The single seniority-5 candidate is on leave all month: every target
    day is logged and the column stays empty.
    """
    staff = [StaffMember(1, "Ayse", 3), StaffMember(2, "Burak", 5, leave_days=[d.isoformat() for d in JUNE])]
    config = TaskColumnConfig(eligible_seniorities=[5], max_per_day=1)

    with caplog.at_level(logging.WARNING):
        tasks = distribute_task_column(JUNE, staff, None, {}, config, 0, rng=random.Random(1))

    assert column_entries(tasks, 0) == {}
    warnings = [r for r in caplog.records if "No available staff" in r.getMessage()]
    assert len(warnings) == len(JUNE_TARGET_DAYS)


def test_max_per_day_and_eligibility(staff):
    config = TaskColumnConfig(eligible_seniorities=[5, 7], max_per_day=2)
    tasks = distribute_task_column(JUNE, staff, None, {}, config, 0, rng=random.Random(2))

    entries = column_entries(tasks, 0)
    assert len(entries) == len(JUNE_TARGET_DAYS)
    for ids in entries.values():
        assert len(ids) == 2
        assert set(ids) <= {2, 3, 4}


def test_equal_share_reached_before_extras(staff):
    config = TaskColumnConfig(eligible_staff_ids=[1, 2, 3, 4], max_per_day=1)
    tasks = distribute_task_column(JUNE, staff, None, {}, config, 0, rng=random.Random(3))

    counts = {staff_id: 0 for staff_id in (1, 2, 3, 4)}
    for ids in column_entries(tasks, 0).values():
        for staff_id in ids:
            counts[staff_id] += 1

    # 14 slots over 4 people: everyone reaches floor(14 / 4) = 3
    assert sum(counts.values()) == 14
    assert min(counts.values()) >= 3


def test_senior_first_among_under_target(staff):
    config = TaskColumnConfig(eligible_staff_ids=[1, 2, 3], max_per_day=2)
    tasks = distribute_task_column(JUNE, staff, None, {}, config, 0, rng=random.Random(4))
    assert tasks["2025-06-02"][0] == [3, 2]


def test_preferred_seniority_mix(staff):
    config = TaskColumnConfig(eligible_staff_ids=[1, 2, 3], max_per_day=2, preferred_seniority_mix=[3])
    tasks = distribute_task_column(JUNE, staff, None, {}, config, 0, rng=random.Random(5))
    assert tasks["2025-06-02"][0] == [1, 3]


def test_post_shift_staff_excluded(staff):
    """Whoever worked the previous day's shift is not given a task the next day."""
    shift_days = {d.isoformat(): [] for d in JUNE}
    shift_days["2025-06-01"] = [staff[2]]
    shift_days["2025-06-10"] = [staff[2]]
    schedule = Schedule(month_key="2025-06", days=shift_days)
    config = TaskColumnConfig(eligible_staff_ids=[3], max_per_day=1)

    tasks = distribute_task_column(JUNE, staff, schedule, {}, config, 0, rng=random.Random(6))

    assert "2025-06-02" not in column_entries(tasks, 0)
    assert "2025-06-11" not in column_entries(tasks, 0)
    assert tasks["2025-06-04"][0] == [3]


def test_plain_schedule_dict_accepted(staff):
    schedule = {"2025-06-01": [staff[2].to_dict()]}
    available = available_staff_for_task(date(2025, 6, 2), staff, schedule, {}, 0)
    assert 3 not in [s.id for s in available]


def test_columns_never_overlap(staff):
    constraints = Constraints(
        selected_month="2025-06",
        task_columns=["Clinic", "Ward"],
        task_column_configs={
            0: TaskColumnConfig(eligible_staff_ids=[1, 2, 3, 4], max_per_day=2),
            1: TaskColumnConfig(eligible_staff_ids=[1, 2, 3, 4], max_per_day=3),
        }
    )

    tasks = distribute_all_task_columns(JUNE, staff, None, {}, constraints, rng=random.Random(7))

    for date_str, columns in tasks.items():
        first = set(columns.get(0, []))
        second = set(columns.get(1, []))
        assert not first & second, date_str
        assert len(second) <= 2


def test_fill_empty_only_keeps_existing(staff):
    current = {
        "2025-06-02": {0: [4], 1: [1]},
        "2025-06-04": {1: [2]},
    }
    config = TaskColumnConfig(eligible_staff_ids=[2, 3, 4], max_per_day=1)

    tasks = distribute_task_column(JUNE, staff, None, current, config, 0,
                                   fill_empty_only=True, rng=random.Random(8))

    assert tasks["2025-06-02"] == {0: [4], 1: [1]}
    assert tasks["2025-06-04"][1] == [2]
    assert 2 not in tasks["2025-06-04"][0]
    # caller's map is untouched
    assert current["2025-06-04"] == {1: [2]}


def test_overwrite_replaces_column(staff):
    current = {"2025-06-02": {0: [1], 1: [2]}, "2025-06-03": {0: [1]}}
    config = TaskColumnConfig(eligible_staff_ids=[3], max_per_day=1)

    tasks = distribute_task_column(JUNE, staff, None, current, config, 0, rng=random.Random(9))

    assert tasks["2025-06-02"] == {0: [3], 1: [2]}
    # Tuesday is not a target day, so its entry is preserved
    assert tasks["2025-06-03"] == {0: [1]}


def test_string_column_keys_accepted(staff):
    current = {"2025-06-02": {"1": [3]}}
    config = TaskColumnConfig(eligible_staff_ids=[3, 4], max_per_day=1)

    tasks = distribute_task_column(JUNE, staff, None, current, config, 0, rng=random.Random(10))

    assert tasks["2025-06-02"] == {1: [3], 0: [4]}


def test_summarize_task_day(staff):
    staff[0].leave_days = ["2025-06-02"]
    schedule = Schedule(month_key="2025-06", days={"2025-06-01": [staff[1]]})
    tasks = {"2025-06-02": {0: [3]}}

    summary = summarize_task_day("2025-06-02", staff, schedule, tasks)

    assert summary.total_available == 2
    assert summary.assigned_count == 1
    assert summary.remaining == 1
    assert summary.unassigned_names == ["Deniz"]
    assert summary.to_dict()["unassignedNames"] == ["Deniz"]
