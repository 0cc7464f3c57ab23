from __future__ import annotations

import datetime
import sys
from pathlib import Path

APP_DIR = Path(__file__).resolve().parents[1] / "app"
if str(APP_DIR) not in sys.path:
    sys.path.insert(0, str(APP_DIR))

from generator.engine import GENERATED_NOTE, ScheduleGenerator  # noqa: E402
from rules import baseline_rules  # noqa: E402
from schedule_types import EmployeeRecord, build_shift  # noqa: E402

MONDAY = datetime.date(2024, 7, 8)
TODAY = datetime.date(2024, 7, 1)


def _staff(count, *, inactive=()):
    return [
        EmployeeRecord(
            id=index,
            first_name=f"Staff{index}",
            last_name="Member",
            position="serveur",
            department="service",
            hourly_rate=15.0,
            is_active=index not in inactive,
        )
        for index in range(1, count + 1)
    ]


def test_week_layout_with_three_employees():
    shifts = ScheduleGenerator(_staff(3), baseline_rules(), today=TODAY).generate(MONDAY)
    by_day = {}
    for shift in shifts:
        by_day.setdefault(shift.date.weekday(), []).append((shift.employee_id, shift.start_time, shift.end_time))
    # The third staggered slot would run 16:00-24:00, past the 20:00 close.
    assert by_day[0] == [(1, "08:00", "16:00"), (2, "12:00", "20:00")]
    assert by_day[5] == [(1, "08:00", "16:00"), (2, "12:00", "20:00")]
    assert 6 not in by_day
    assert len(shifts) == 12
    assert all(shift.notes == GENERATED_NOTE and shift.total_hours == 7.5 for shift in shifts)
    assert shifts[0].break_minutes == 30
    assert shifts[0].total_pay == 112.5


def test_later_close_allows_third_slot():
    rules = baseline_rules()
    rules["business_hours"] = {"start": "06:00", "end": "22:00"}
    shifts = ScheduleGenerator(_staff(3), rules, today=TODAY).generate(MONDAY)
    monday = [shift for shift in shifts if shift.date == MONDAY]
    assert [shift.start_time for shift in monday] == ["06:00", "10:00", "14:00"]
    saturday = [shift for shift in shifts if shift.date.weekday() == 5]
    assert len(saturday) == 2


def test_inactive_employees_are_skipped():
    shifts = ScheduleGenerator(_staff(2, inactive=(1,)), baseline_rules(), today=TODAY).generate(MONDAY)
    assert {shift.employee_id for shift in shifts} == {2}


def test_existing_shifts_block_candidates():
    existing = [
        build_shift(id=50, employee_id=1, date=MONDAY, start_time="10:00", end_time="12:00",
                    position="serveur", department="service")
    ]
    engine = ScheduleGenerator(_staff(1), baseline_rules(), existing=existing, today=TODAY)
    shifts = engine.generate(MONDAY)
    assert MONDAY not in {shift.date for shift in shifts}
    assert engine.skipped == [
        {"employee_id": 1, "date": "2024-07-08", "errors": ["Schedule conflict detected for this employee."]}
    ]


def test_past_week_generates_nothing():
    engine = ScheduleGenerator(_staff(2), baseline_rules(), today=datetime.date(2024, 8, 1))
    assert engine.generate(MONDAY) == []
    assert len(engine.skipped) == 12
