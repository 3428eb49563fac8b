import pytest
import sys
from pathlib import Path
import tempfile
import os
import json
import random

# Add src directory to path
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from seniority_scheduler.data_manager import DataManager
from seniority_scheduler.reporting import STATISTICS_COLUMNS, ReportGenerator
from seniority_scheduler.scheduler_logic import Schedule, ShiftScheduler


@pytest.fixture
def data_manager():
    """Fixture for a DataManager instance with actual temp file (safe for tests)."""
    with tempfile.NamedTemporaryFile(
        mode="w", suffix=".json", delete=False
    ) as tempfile_obj:
        temp_path = tempfile_obj.name
        # Begin with a minimal valid object
        tempfile_obj.write("{}")
    dm = DataManager(temp_path)
    for name, seniority in [("Ayse", 2), ("Burak", 5), ("Cem", 9), ("Deniz", 1)]:
        dm.add_staff(name, seniority)
    constraints = dm.get_constraints()
    constraints.selected_month = "2025-08"
    dm.set_constraints(constraints)
    yield dm
    os.unlink(temp_path)


@pytest.fixture
def report_generator(data_manager):
    return ReportGenerator(data_manager)


@pytest.fixture
def schedule(data_manager):
    return ShiftScheduler(rng=random.Random(3)).generate_schedule(
        data_manager.get_staff_list(), data_manager.get_constraints(), "2025-08"
    )


def test_statistics_sorted_by_seniority(report_generator, schedule):
    df = report_generator.staff_statistics(schedule)

    assert list(df.columns) == STATISTICS_COLUMNS
    assert df["Seniority"].tolist() == [1, 2, 5, 9]
    assert df["Name"].tolist() == ["Deniz", "Ayse", "Burak", "Cem"]
    assert (df["Total"] == df["Weekday"] + df["Weekend"]).all()
    assert (df["Hours"] == df["Total"] * 8).all()
    assert (df["Difference"] == df["Total"] - df["Target"]).all()


def test_statistics_reflect_manual_edits(report_generator, schedule, data_manager):
    cem = data_manager.get_staff_by_name("Cem")
    before = report_generator.staff_statistics(schedule).set_index("Name").loc["Cem", "Total"]

    removed = [d for d in schedule.dates_for(cem.id)][:1]
    for date_str in removed:
        schedule.remove_from_day(date_str, cem.id)

    after = report_generator.staff_statistics(schedule).set_index("Name").loc["Cem", "Total"]
    assert after == before - len(removed)


def test_team_summary(report_generator, schedule):
    summary = report_generator.team_summary(schedule)

    assert summary["total_staff"] == 4
    assert summary["total_shifts_needed"] == 62
    assert summary["total_shifts_assigned"] + summary["unfilled_shifts"] == 62
    assert summary["total_hours"] == summary["total_shifts_assigned"] * 8


def test_seniority_group_summary(report_generator, schedule):
    groups = report_generator.seniority_group_summary(schedule)
    assert set(groups["Group"]) == {"Most shifts (1-2)", "Medium (5-6)", "Fewest (9-10)"}
    assert groups["Total"].sum() == report_generator.team_summary(schedule)["total_shifts_assigned"]


def test_statistics_from_restored_schedule(report_generator, schedule):
    """Schedules read back from the data file give the same table."""
    restored = Schedule.from_dict(json.loads(json.dumps(schedule.to_dict())))
    original = report_generator.staff_statistics(schedule)
    assert report_generator.staff_statistics(restored).equals(original)


def test_pdf_export_basic(report_generator, schedule):
    """Test PDF export works on a generated schedule."""
    with tempfile.NamedTemporaryFile(suffix=".pdf", delete=False) as tmpfile:
        output_path = tmpfile.name
    success = report_generator.export_schedule_pdf(schedule, output_path)
    assert success
    assert os.path.exists(output_path)
    assert os.path.getsize(output_path) > 200
    os.unlink(output_path)


def test_pdf_export_empty_schedule(report_generator):
    """A month with nobody assigned still renders."""
    empty = Schedule(month_key="2020-01", days={})
    with tempfile.NamedTemporaryFile(suffix=".pdf", delete=False) as tmpfile:
        output_path = tmpfile.name
    assert report_generator.export_schedule_pdf(empty, output_path)
    os.unlink(output_path)


def test_pdf_export_bad_path(report_generator, schedule):
    """Test PDF export failure if path is unwritable (should not throw, just return False)."""
    result = report_generator.export_schedule_pdf(schedule, "/not_a_dir/this_file_should_fail.pdf")
    assert result is False
