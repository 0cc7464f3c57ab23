from __future__ import annotations

import datetime
import itertools
import sys
import unittest
from pathlib import Path

APP_DIR = Path(__file__).resolve().parents[1] / "app"
if str(APP_DIR) not in sys.path:
    sys.path.insert(0, str(APP_DIR))

from conflicts import (  # noqa: E402
    availability_problem,
    check_shift_conflict,
    conflicting_shift_ids,
    detect_conflicts,
    find_overlapping_shifts,
    next_free_start,
)
from schedule_types import DayAvailability, EmployeeRecord, ShiftRecord, build_shift  # noqa: E402

DAY = datetime.date(2024, 7, 10)  # Wednesday


def _shift(shift_id, start, end, *, employee_id=7, date=DAY, status="scheduled"):
    return build_shift(
        id=shift_id,
        employee_id=employee_id,
        date=date,
        start_time=start,
        end_time=end,
        position="chef",
        department="cuisine",
        status=status,
        hourly_rate=18.0,
    )


class ShiftConflictTests(unittest.TestCase):
    def setUp(self) -> None:
        self.existing = [_shift(1, "09:00", "17:00")]

    def test_end_inside_existing_conflicts(self) -> None:
        self.assertTrue(check_shift_conflict(_shift(None, "16:00", "20:00"), self.existing))

    def test_back_to_back_does_not_conflict(self) -> None:
        self.assertFalse(check_shift_conflict(_shift(None, "17:00", "20:00"), self.existing))
        self.assertFalse(check_shift_conflict(_shift(None, "06:00", "09:00"), self.existing))

    def test_contained_enclosing_and_identical_conflict(self) -> None:
        for start, end in (("10:00", "12:00"), ("08:00", "18:00"), ("09:00", "17:00")):
            with self.subTest(start=start, end=end):
                self.assertTrue(check_shift_conflict(_shift(None, start, end), self.existing))

    def test_relation_is_symmetric(self) -> None:
        windows = [("08:00", "12:00"), ("09:00", "17:00"), ("12:00", "14:00"), ("16:00", "20:00"), ("17:00", "20:00")]
        for (a_start, a_end), (b_start, b_end) in itertools.product(windows, repeat=2):
            first = _shift(1, a_start, a_end)
            second = _shift(2, b_start, b_end)
            with self.subTest(first=(a_start, a_end), second=(b_start, b_end)):
                self.assertEqual(
                    check_shift_conflict(first, [second]),
                    check_shift_conflict(second, [first]),
                )

    def test_other_employee_or_day_is_ignored(self) -> None:
        self.assertFalse(check_shift_conflict(_shift(None, "10:00", "12:00", employee_id=8), self.existing))
        self.assertFalse(
            check_shift_conflict(_shift(None, "10:00", "12:00", date=DAY + datetime.timedelta(days=1)), self.existing)
        )

    def test_cancelled_shift_frees_the_slot(self) -> None:
        existing = [_shift(1, "09:00", "17:00", status="cancelled")]
        self.assertFalse(check_shift_conflict(_shift(None, "10:00", "12:00"), existing))

    def test_editing_a_shift_does_not_conflict_with_itself(self) -> None:
        self.assertFalse(check_shift_conflict(_shift(1, "10:00", "18:00"), self.existing))

    def test_incomplete_candidate_never_conflicts(self) -> None:
        candidate = ShiftRecord(employee_id=7, date=DAY, start_time="10:00")
        self.assertFalse(check_shift_conflict(candidate, self.existing))
        self.assertEqual(find_overlapping_shifts(candidate, self.existing), [])

    def test_next_free_start_suggests_latest_blocking_end(self) -> None:
        existing = self.existing + [_shift(2, "17:00", "19:00")]
        self.assertEqual(next_free_start(_shift(None, "16:00", "18:00"), existing), "19:00")
        self.assertIsNone(next_free_start(_shift(None, "19:00", "21:00"), existing))


class DetectConflictsTests(unittest.TestCase):
    def test_overlapping_pair_reported_once(self) -> None:
        shifts = [_shift(1, "09:00", "17:00"), _shift(2, "16:00", "20:00"), _shift(3, "09:00", "17:00", employee_id=8)]
        conflicts = detect_conflicts(shifts)
        overlaps = [conflict for conflict in conflicts if conflict.type == "overlap"]
        self.assertEqual(len(overlaps), 1)
        self.assertEqual(overlaps[0].severity, "high")
        self.assertEqual(set(overlaps[0].affected_shifts), {1, 2})
        self.assertEqual(conflicting_shift_ids(conflicts), {1, 2})

    def test_weekly_hours_above_threshold(self) -> None:
        monday = datetime.date(2024, 7, 8)
        shifts = [
            _shift(index + 1, "09:00", "17:00", date=monday + datetime.timedelta(days=index))
            for index in range(6)
        ]
        conflicts = detect_conflicts(shifts, rules={"overtime_threshold_hours": 40})
        self.assertEqual([conflict.type for conflict in conflicts], ["overtime"])
        self.assertEqual(len(conflicts[0].affected_shifts), 6)

    def test_employee_weekly_cap_lowers_the_limit(self) -> None:
        monday = datetime.date(2024, 7, 8)
        employee = EmployeeRecord(
            id=7, first_name="Lucas", last_name="Bernard", position="chef", department="cuisine", max_hours_per_week=20
        )
        shifts = [
            _shift(index + 1, "09:00", "17:00", date=monday + datetime.timedelta(days=index))
            for index in range(3)
        ]
        conflicts = detect_conflicts(shifts, [employee])
        self.assertIn("overtime", [conflict.type for conflict in conflicts])

    def test_long_single_shift_flagged(self) -> None:
        conflicts = detect_conflicts([_shift(1, "06:00", "20:00")], rules={"max_shift_hours": 12})
        self.assertEqual([conflict.type for conflict in conflicts], ["overtime"])

    def test_short_rest_between_days(self) -> None:
        shifts = [
            _shift(1, "14:00", "23:00"),
            _shift(2, "07:00", "15:00", date=DAY + datetime.timedelta(days=1)),
        ]
        conflicts = detect_conflicts(shifts, rules={"min_rest_hours": 11})
        self.assertEqual([conflict.type for conflict in conflicts], ["break"])
        self.assertEqual(conflicts[0].severity, "low")

    def test_availability_window(self) -> None:
        employee = EmployeeRecord(
            id=7,
            first_name="Lucas",
            last_name="Bernard",
            position="chef",
            department="cuisine",
            availability={2: DayAvailability(available=True, start_time="10:00", end_time="18:00")},
        )
        early = _shift(1, "09:00", "13:00")
        self.assertIn("from 10:00", availability_problem(early, employee))
        self.assertIsNone(availability_problem(_shift(2, "10:00", "18:00"), employee))
        conflicts = detect_conflicts([early], [employee])
        self.assertEqual([conflict.type for conflict in conflicts], ["availability"])

    def test_day_off_and_unavailable_dates(self) -> None:
        employee = EmployeeRecord(
            id=7,
            first_name="Lucas",
            last_name="Bernard",
            position="chef",
            department="cuisine",
            availability={2: DayAvailability(available=False)},
            unavailable_dates=frozenset({DAY + datetime.timedelta(days=1)}),
        )
        self.assertIn("does not work on Wed", availability_problem(_shift(1, "09:00", "12:00"), employee))
        thursday = _shift(2, "09:00", "12:00", date=DAY + datetime.timedelta(days=1))
        self.assertIn("unavailable on 2024-07-11", availability_problem(thursday, employee))

    def test_inputs_are_not_modified(self) -> None:
        shifts = [_shift(2, "16:00", "20:00"), _shift(1, "09:00", "17:00")]
        before = list(shifts)
        detect_conflicts(shifts)
        self.assertEqual(shifts, before)


if __name__ == "__main__":
    unittest.main()
