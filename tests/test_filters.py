from __future__ import annotations

import datetime
import sys
from pathlib import Path

import pytest

APP_DIR = Path(__file__).resolve().parents[1] / "app"
if str(APP_DIR) not in sys.path:
    sys.path.insert(0, str(APP_DIR))

from aggregation import summarize_shifts  # noqa: E402
from filters import filter_shifts, group_shifts, sort_shifts  # noqa: E402
from schedule_types import EmployeeRecord, ScheduleFilter, SortField, SortSpec, build_shift  # noqa: E402

MONDAY = datetime.date(2024, 7, 8)


@pytest.fixture()
def shifts():
    rows = [
        (1, 1, 0, "08:00", "16:00", "chef", "cuisine", "scheduled"),
        (2, 2, 0, "14:00", "22:00", "serveur", "service", "confirmed"),
        (3, 3, 1, "09:00", "13:00", "chef", "cuisine", "completed"),
        (4, 2, 1, "10:00", "18:00", "serveur", "service", "scheduled"),
        (5, 4, 2, "07:00", "11:00", "nettoyage", "maintenance", "scheduled"),
        (6, 1, 2, "12:00", "20:00", "chef", "cuisine", "cancelled"),
        (7, 5, 3, "09:00", "17:00", "manager", "management", "scheduled"),
        (8, 3, 3, "16:00", "23:00", "chef", "cuisine", "scheduled"),
        (9, 2, 4, "11:00", "15:00", "barista", "service", "scheduled"),
        (10, 1, 4, "06:00", "14:30", "chef", "cuisine", "confirmed"),
    ]
    return [
        build_shift(
            id=shift_id,
            employee_id=employee_id,
            employee_name=f"Employee {employee_id}",
            date=MONDAY + datetime.timedelta(days=offset),
            start_time=start,
            end_time=end,
            position=position,
            department=department,
            status=status,
            hourly_rate=15.0,
        )
        for shift_id, employee_id, offset, start, end, position, department, status in rows
    ]


def test_department_filter_then_total_hours(shifts):
    kitchen = filter_shifts(shifts, ScheduleFilter(departments=("cuisine",)))
    assert {shift.id for shift in kitchen} == {1, 3, 6, 8, 10}
    expected = sum(shift.total_hours for shift in shifts if shift.department == "cuisine")
    assert summarize_shifts(kitchen).total_hours == pytest.approx(expected)
    assert expected == pytest.approx(8 + 4 + 8 + 7 + 8.5)


def test_empty_filter_keeps_everything(shifts):
    assert filter_shifts(shifts, ScheduleFilter()) == shifts


def test_filters_compose_as_and(shifts):
    filters = ScheduleFilter(
        departments=("cuisine", "service"),
        statuses=("scheduled",),
        date_start=MONDAY + datetime.timedelta(days=1),
        date_end=MONDAY + datetime.timedelta(days=3),
    )
    assert [shift.id for shift in filter_shifts(shifts, filters)] == [4, 8]


def test_filter_is_idempotent(shifts):
    filters = ScheduleFilter(employee_ids=(1, 2), positions=("chef",))
    once = filter_shifts(shifts, filters)
    assert filter_shifts(once, filters) == once


def test_only_overtime_and_only_conflicts(shifts):
    overtime = [build_shift(id=11, employee_id=1, date=MONDAY, start_time="16:00", end_time="18:00", overtime_hours=2.0)]
    assert [shift.id for shift in filter_shifts(shifts + overtime, ScheduleFilter(only_overtime=True))] == [11]
    picked = filter_shifts(shifts, ScheduleFilter(only_conflicts=True), conflicting_ids={2, 4})
    assert [shift.id for shift in picked] == [2, 4]
    assert filter_shifts(shifts, ScheduleFilter(only_conflicts=True)) == []


def test_sort_by_date_uses_start_time(shifts):
    same_day = [shifts[1], shifts[0]]  # 14:00 first in input
    ordered = sort_shifts(same_day, SortSpec(SortField.DATE, "asc"))
    assert [shift.start_time for shift in ordered] == ["08:00", "14:00"]
    descending = sort_shifts(shifts, SortSpec(SortField.DATE, "desc"))
    assert descending[0].id == 9 and descending[-1].id == 1


def test_sort_numeric_and_text_fields(shifts):
    by_hours = sort_shifts(shifts, SortSpec(SortField.TOTAL_HOURS, "desc"))
    assert by_hours[0].id == 10
    by_department = sort_shifts(shifts, SortSpec(SortField.DEPARTMENT))
    assert [shift.department for shift in by_department][:5] == ["cuisine"] * 5


def test_sort_is_stable_and_pure(shifts):
    before = list(shifts)
    by_status = sort_shifts(shifts, SortSpec(SortField.STATUS))
    scheduled = [shift.id for shift in by_status if shift.status == "scheduled"]
    assert scheduled == [1, 4, 5, 7, 8, 9]
    assert shifts == before


def test_sort_rejects_unknown_direction(shifts):
    with pytest.raises(ValueError):
        sort_shifts(shifts, SortSpec(SortField.DATE, "up"))


def test_grouping_per_view(shifts):
    employees = [EmployeeRecord(id=1, first_name="Lucas", last_name="Bernard", position="chef", department="cuisine")]
    by_employee = group_shifts(shifts, "employee", employees)
    assert [shift.id for shift in by_employee["Lucas Bernard"]] == [1, 6, 10]
    assert "Employee 2" in by_employee
    by_department = group_shifts(shifts, "list")
    assert set(by_department) == {"cuisine", "service", "maintenance", "management"}
    by_date = group_shifts(shifts, "calendar")
    assert [shift.id for shift in by_date["2024-07-08"]] == [1, 2]
