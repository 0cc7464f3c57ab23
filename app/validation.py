from __future__ import annotations

import datetime
from dataclasses import dataclass, field
from typing import Any, Iterable, List, Mapping, Optional, Sequence, Tuple

from conflicts import availability_problem, check_shift_conflict, find_overlapping_shifts, next_free_start
from positions import is_known_department, is_known_position, position_department
from schedule_types import REQUIRED_SHIFT_FIELDS, SHIFT_STATUS_CHOICES, EmployeeRecord, ShiftConflict, ShiftRecord
from timeutils import parse_time, shift_duration_hours

FIELD_LABELS = {
    "employee_id": "Employee",
    "date": "Date",
    "start_time": "Start time",
    "end_time": "End time",
    "position": "Position",
    "department": "Department",
}


@dataclass(frozen=True)
class ValidationResult:
    is_valid: bool
    errors: Tuple[str, ...] = ()


@dataclass(frozen=True)
class ScheduleValidation:
    is_valid: bool
    conflicts: Tuple[ShiftConflict, ...] = ()
    warnings: Tuple[str, ...] = ()
    suggestions: Tuple[str, ...] = ()


def validate_shift_time(start_time: str, end_time: str) -> bool:
    """True when both labels parse and ``start_time`` is strictly before ``end_time``."""
    try:
        return parse_time(start_time) < parse_time(end_time)
    except (TypeError, ValueError):
        return False


def validate_shift_date(date_value: datetime.date, today: Optional[datetime.date] = None) -> bool:
    return date_value >= (today or datetime.date.today())


def _times_parse(shift: ShiftRecord) -> bool:
    try:
        parse_time(shift.start_time)
        parse_time(shift.end_time)
    except (TypeError, ValueError):
        return False
    return True


def validate_shift(
    candidate: ShiftRecord,
    existing: Iterable[ShiftRecord] = (),
    *,
    today: Optional[datetime.date] = None,
) -> ValidationResult:
    """Check a (possibly partial) shift and collect every problem found.

    Checks never short-circuit: missing fields, bad ordering, past dates and
    overlaps are all reported together. Inputs are never modified.
    """
    errors: List[str] = []
    for name in REQUIRED_SHIFT_FIELDS:
        if getattr(candidate, name) in (None, ""):
            errors.append(f"{FIELD_LABELS[name]} is required.")

    times_ok = False
    if candidate.start_time and candidate.end_time:
        times_ok = _times_parse(candidate)
        if not times_ok:
            errors.append("Start and end times must use the HH:MM format.")
        elif not validate_shift_time(candidate.start_time, candidate.end_time):
            errors.append("End time must be after start time.")

    if candidate.date and not validate_shift_date(candidate.date, today):
        errors.append("Shift date cannot be in the past.")

    if candidate.employee_id and candidate.date and times_ok:
        if check_shift_conflict(candidate, existing):
            errors.append("Schedule conflict detected for this employee.")

    return ValidationResult(is_valid=not errors, errors=tuple(errors))


def validate_shift_data(
    candidate: ShiftRecord,
    shifts: Sequence[ShiftRecord],
    employees: Iterable[EmployeeRecord],
    *,
    rules: Optional[Mapping[str, Any]] = None,
    today: Optional[datetime.date] = None,
) -> ScheduleValidation:
    """Validation used before create/update: conflicts, warnings and suggestions."""
    rules = rules or {}
    employee = next((item for item in employees if item.id == candidate.employee_id), None)
    if employee is None:
        return ScheduleValidation(is_valid=False, warnings=("Employee not found.",))

    base = validate_shift(candidate, shifts, today=today)
    warnings: List[str] = list(base.errors)
    conflicts: List[ShiftConflict] = []
    suggestions: List[str] = []

    times_ok = bool(candidate.start_time and candidate.end_time) and _times_parse(candidate)
    if candidate.date and times_ok:
        overlapping = find_overlapping_shifts(candidate, shifts)
        if overlapping:
            conflicts.append(
                ShiftConflict(
                    type="overlap",
                    description=f"{employee.full_name} already works {', '.join(f'{s.start_time}-{s.end_time}' for s in overlapping)} on {candidate.date.isoformat()}.",
                    severity="high",
                    affected_shifts=tuple(s.id for s in overlapping if s.id is not None),
                )
            )
            free_start = next_free_start(candidate, shifts)
            if free_start:
                suggestions.append(f"Start the shift at {free_start} or later.")
        problem = availability_problem(candidate, employee)
        if problem:
            warnings.append(problem)
            conflicts.append(
                ShiftConflict(type="availability", description=problem, severity="medium", affected_shifts=())
            )
        if validate_shift_time(candidate.start_time, candidate.end_time):
            hours = shift_duration_hours(candidate.start_time, candidate.end_time)
            max_hours = float(rules.get("max_shift_hours", 12.0))
            if hours > max_hours:
                warnings.append(f"Shift lasts {hours:.1f}h, above the {max_hours:g}h maximum.")
                suggestions.append("Split the shift between two employees.")

    if not employee.is_active:
        warnings.append(f"{employee.full_name} is inactive.")
    if candidate.status and candidate.status not in SHIFT_STATUS_CHOICES:
        warnings.append(f"Unknown shift status '{candidate.status}'.")
    if candidate.department and not is_known_department(candidate.department):
        warnings.append(f"Unknown department '{candidate.department}'.")
    if candidate.position and not is_known_position(candidate.position):
        warnings.append(f"Unknown position '{candidate.position}'.")
    elif candidate.position and candidate.department:
        expected = position_department(candidate.position)
        if expected != candidate.department:
            suggestions.append(f"Position '{candidate.position}' usually belongs to the {expected} department.")

    # Only the base checks block a save; availability and rule findings are advisory.
    return ScheduleValidation(
        is_valid=base.is_valid,
        conflicts=tuple(conflicts),
        warnings=tuple(warnings),
        suggestions=tuple(suggestions),
    )
