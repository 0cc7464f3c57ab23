from __future__ import annotations

import datetime
from collections import defaultdict
from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence, Set, Tuple

from schedule_types import INACTIVE_SHIFT_STATUSES, EmployeeRecord, ShiftConflict, ShiftRecord
from timeutils import WEEKDAY_TOKENS, combine_instant, format_minutes, minutes_of_day, shift_duration_hours, week_start


def _is_schedulable(shift: ShiftRecord) -> bool:
    if shift.status in INACTIVE_SHIFT_STATUSES:
        return False
    return bool(shift.employee_id and shift.date and shift.start_time and shift.end_time)


def _overlaps(new_start: int, new_end: int, start: int, end: int) -> bool:
    # Half-open intervals: a shift ending at 17:00 does not collide with one starting at 17:00.
    return (
        (new_start >= start and new_start < end)
        or (new_end > start and new_end <= end)
        or (new_start <= start and new_end >= end)
    )


def _same_slot_candidates(candidate: ShiftRecord, existing: Iterable[ShiftRecord]) -> Iterable[ShiftRecord]:
    for shift in existing:
        if candidate.id is not None and shift.id == candidate.id:
            continue
        if shift.employee_id != candidate.employee_id or shift.date != candidate.date:
            continue
        if not _is_schedulable(shift):
            continue
        yield shift


def _collides(candidate: ShiftRecord, shift: ShiftRecord) -> bool:
    return _overlaps(
        minutes_of_day(candidate.start_time),
        minutes_of_day(candidate.end_time),
        minutes_of_day(shift.start_time),
        minutes_of_day(shift.end_time),
    )


def check_shift_conflict(candidate: ShiftRecord, existing: Iterable[ShiftRecord]) -> bool:
    """Return True when ``candidate`` overlaps another shift of the same employee on the same day."""
    if not (candidate.employee_id and candidate.date and candidate.start_time and candidate.end_time):
        return False
    return any(_collides(candidate, shift) for shift in _same_slot_candidates(candidate, existing))


def find_overlapping_shifts(candidate: ShiftRecord, existing: Iterable[ShiftRecord]) -> List[ShiftRecord]:
    if not (candidate.employee_id and candidate.date and candidate.start_time and candidate.end_time):
        return []
    return [shift for shift in _same_slot_candidates(candidate, existing) if _collides(candidate, shift)]


def next_free_start(candidate: ShiftRecord, existing: Iterable[ShiftRecord]) -> Optional[str]:
    """Earliest end time among the shifts blocking ``candidate``, as a suggested new start."""
    blocking = find_overlapping_shifts(candidate, existing)
    if not blocking:
        return None
    latest_end = max(minutes_of_day(shift.end_time) for shift in blocking)
    return format_minutes(latest_end)


def _shift_hours(shift: ShiftRecord) -> float:
    if shift.total_hours:
        return float(shift.total_hours)
    return max(0.0, shift_duration_hours(shift.start_time, shift.end_time))


def _ids(shifts: Iterable[ShiftRecord]) -> Tuple[int, ...]:
    return tuple(shift.id for shift in shifts if shift.id is not None)


def _overlap_conflicts(by_employee: Mapping[int, List[ShiftRecord]]) -> List[ShiftConflict]:
    conflicts: List[ShiftConflict] = []
    for employee_id, shifts in by_employee.items():
        for index, first in enumerate(shifts):
            for second in shifts[index + 1:]:
                if second.date != first.date:
                    break
                if not _collides(first, second):
                    continue
                conflicts.append(
                    ShiftConflict(
                        type="overlap",
                        description=(
                            f"Employee {employee_id} has overlapping shifts on {first.date.isoformat()}: "
                            f"{first.start_time}-{first.end_time} and {second.start_time}-{second.end_time}."
                        ),
                        severity="high",
                        affected_shifts=_ids((first, second)),
                        suggestions=(
                            "Move one of the shifts to a free time slot.",
                            "Reassign one of the shifts to another employee.",
                        ),
                    )
                )
    return conflicts


def _overtime_conflicts(
    by_employee: Mapping[int, List[ShiftRecord]],
    employees: Mapping[int, EmployeeRecord],
    rules: Mapping[str, Any],
) -> List[ShiftConflict]:
    conflicts: List[ShiftConflict] = []
    threshold = float(rules.get("overtime_threshold_hours", 40.0))
    max_shift = float(rules.get("max_shift_hours", 12.0))
    for employee_id, shifts in by_employee.items():
        employee = employees.get(employee_id)
        weekly_limit = threshold
        if employee and employee.max_hours_per_week:
            weekly_limit = min(threshold, float(employee.max_hours_per_week))
        weeks: Dict[datetime.date, List[ShiftRecord]] = defaultdict(list)
        for shift in shifts:
            weeks[week_start(shift.date)].append(shift)
            hours = _shift_hours(shift)
            if hours > max_shift:
                conflicts.append(
                    ShiftConflict(
                        type="overtime",
                        description=(
                            f"Shift on {shift.date.isoformat()} lasts {hours:.1f}h, "
                            f"above the {max_shift:g}h maximum."
                        ),
                        severity="medium",
                        affected_shifts=_ids((shift,)),
                        suggestions=("Split the shift between two employees.",),
                    )
                )
        for monday, week_shifts in sorted(weeks.items()):
            total = sum(_shift_hours(shift) for shift in week_shifts)
            if total <= weekly_limit:
                continue
            name = employee.full_name if employee else f"Employee {employee_id}"
            conflicts.append(
                ShiftConflict(
                    type="overtime",
                    description=(
                        f"{name} is scheduled {total:.1f}h in the week of {monday.isoformat()} "
                        f"(limit {weekly_limit:g}h)."
                    ),
                    severity="medium",
                    affected_shifts=_ids(week_shifts),
                    suggestions=(f"Remove {total - weekly_limit:.1f}h from this week.",),
                )
            )
    return conflicts


def _availability_conflicts(shifts: Iterable[ShiftRecord], employees: Mapping[int, EmployeeRecord]) -> List[ShiftConflict]:
    conflicts: List[ShiftConflict] = []
    for shift in shifts:
        employee = employees.get(shift.employee_id)
        if not employee:
            continue
        reason = availability_problem(shift, employee)
        if not reason:
            continue
        conflicts.append(
            ShiftConflict(
                type="availability",
                description=reason,
                severity="medium",
                affected_shifts=_ids((shift,)),
                suggestions=("Pick an employee available at that time.",),
            )
        )
    return conflicts


def availability_problem(shift: ShiftRecord, employee: EmployeeRecord) -> Optional[str]:
    """Describe why ``employee`` cannot work ``shift``, or return None."""
    if shift.date in employee.unavailable_dates:
        return f"{employee.full_name} is unavailable on {shift.date.isoformat()}."
    day = employee.availability.get(shift.date.weekday())
    if day is None:
        return None
    token = WEEKDAY_TOKENS[shift.date.weekday()]
    if not day.available:
        return f"{employee.full_name} does not work on {token}."
    if day.start_time and minutes_of_day(shift.start_time) < minutes_of_day(day.start_time):
        return f"{employee.full_name} is only available from {day.start_time} on {token}."
    if day.end_time and minutes_of_day(shift.end_time) > minutes_of_day(day.end_time):
        return f"{employee.full_name} is only available until {day.end_time} on {token}."
    return None


def _break_conflicts(by_employee: Mapping[int, List[ShiftRecord]], rules: Mapping[str, Any]) -> List[ShiftConflict]:
    conflicts: List[ShiftConflict] = []
    min_rest = float(rules.get("min_rest_hours", 11.0))
    for employee_id, shifts in by_employee.items():
        for previous, following in zip(shifts, shifts[1:]):
            if previous.date == following.date:
                continue
            gap = combine_instant(following.date, following.start_time) - combine_instant(previous.date, previous.end_time)
            rest_hours = gap.total_seconds() / 3600
            if rest_hours < 0 or rest_hours >= min_rest:
                continue
            conflicts.append(
                ShiftConflict(
                    type="break",
                    description=(
                        f"Employee {employee_id} rests only {rest_hours:.1f}h between "
                        f"{previous.date.isoformat()} and {following.date.isoformat()} "
                        f"(minimum {min_rest:g}h)."
                    ),
                    severity="low",
                    affected_shifts=_ids((previous, following)),
                    suggestions=(f"Start the later shift at least {min_rest:g}h after the previous one ends.",),
                )
            )
    return conflicts


def detect_conflicts(
    shifts: Sequence[ShiftRecord],
    employees: Iterable[EmployeeRecord] = (),
    rules: Optional[Mapping[str, Any]] = None,
) -> List[ShiftConflict]:
    """Return every scheduling problem found in ``shifts``.

    Cancelled and no-show shifts are ignored. Results are ordered by type:
    overlap, overtime, availability, break.
    """
    rules = rules or {}
    employee_map = {employee.id: employee for employee in employees}
    active = [shift for shift in shifts if _is_schedulable(shift)]
    by_employee: Dict[int, List[ShiftRecord]] = defaultdict(list)
    for shift in sorted(active, key=lambda item: combine_instant(item.date, item.start_time)):
        by_employee[shift.employee_id].append(shift)

    conflicts: List[ShiftConflict] = []
    conflicts.extend(_overlap_conflicts(by_employee))
    conflicts.extend(_overtime_conflicts(by_employee, employee_map, rules))
    conflicts.extend(_availability_conflicts(active, employee_map))
    conflicts.extend(_break_conflicts(by_employee, rules))
    return conflicts


def conflicting_shift_ids(conflicts: Iterable[ShiftConflict]) -> Set[int]:
    ids: Set[int] = set()
    for conflict in conflicts:
        ids.update(conflict.affected_shifts)
    return ids
