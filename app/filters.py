from __future__ import annotations

import datetime
from typing import Any, Callable, Collection, Dict, Iterable, List, Optional, Sequence

from schedule_types import EmployeeRecord, ScheduleFilter, ShiftRecord, SortField, SortSpec
from timeutils import combine_instant

UNKNOWN_EMPLOYEE = "Unknown"


def _in_range(shift: ShiftRecord, start: Optional[datetime.date], end: Optional[datetime.date]) -> bool:
    if start is None and end is None:
        return True
    if shift.date is None:
        return False
    if start is not None and shift.date < start:
        return False
    if end is not None and shift.date > end:
        return False
    return True


def matches_filter(
    shift: ShiftRecord,
    filters: ScheduleFilter,
    conflicting_ids: Optional[Collection[int]] = None,
) -> bool:
    """True when ``shift`` satisfies every constrained dimension of ``filters``.

    Empty dimensions place no constraint on the shift.
    """
    if filters.departments and shift.department not in filters.departments:
        return False
    if filters.positions and shift.position not in filters.positions:
        return False
    if filters.employee_ids and shift.employee_id not in filters.employee_ids:
        return False
    if filters.statuses and shift.status not in filters.statuses:
        return False
    if not _in_range(shift, filters.date_start, filters.date_end):
        return False
    if filters.only_overtime and not (shift.overtime_hours or 0) > 0:
        return False
    if filters.only_conflicts and shift.id not in (conflicting_ids or ()):
        return False
    return True


def filter_shifts(
    shifts: Iterable[ShiftRecord],
    filters: ScheduleFilter,
    *,
    conflicting_ids: Optional[Collection[int]] = None,
) -> List[ShiftRecord]:
    return [shift for shift in shifts if matches_filter(shift, filters, conflicting_ids)]


def _text(value: Optional[str]) -> str:
    return (value or "").casefold()


def _date_key(shift: ShiftRecord) -> Any:
    if shift.date is None:
        return datetime.datetime.max
    return combine_instant(shift.date, shift.start_time or "00:00")


SORT_KEYS: Dict[SortField, Callable[[ShiftRecord], Any]] = {
    SortField.DATE: _date_key,
    SortField.EMPLOYEE: lambda shift: _text(shift.employee_name),
    SortField.DEPARTMENT: lambda shift: _text(shift.department),
    SortField.POSITION: lambda shift: _text(shift.position),
    SortField.STATUS: lambda shift: _text(shift.status),
    SortField.TOTAL_HOURS: lambda shift: float(shift.total_hours or 0.0),
    SortField.TOTAL_PAY: lambda shift: float(shift.total_pay or 0.0),
    SortField.HOURLY_RATE: lambda shift: float(shift.hourly_rate or 0.0),
    SortField.OVERTIME_HOURS: lambda shift: float(shift.overtime_hours or 0.0),
}


def sort_shifts(shifts: Iterable[ShiftRecord], spec: SortSpec = SortSpec()) -> List[ShiftRecord]:
    """Return a new list ordered by ``spec``; ties keep their input order."""
    field = SortField(spec.field)
    if spec.direction not in ("asc", "desc"):
        raise ValueError(f"Unknown sort direction '{spec.direction}'.")
    return sorted(shifts, key=SORT_KEYS[field], reverse=spec.direction == "desc")


def _group_key(shift: ShiftRecord, view_mode: str, names: Dict[int, str]) -> str:
    if view_mode == "employee":
        return names.get(shift.employee_id) or shift.employee_name or UNKNOWN_EMPLOYEE
    if view_mode == "list":
        return shift.department or ""
    return shift.date.isoformat() if shift.date else ""


def group_shifts(
    shifts: Iterable[ShiftRecord],
    view_mode: str,
    employees: Sequence[EmployeeRecord] = (),
) -> Dict[str, List[ShiftRecord]]:
    """Partition shifts by employee name, date or department depending on the view."""
    names = {employee.id: employee.full_name for employee in employees}
    groups: Dict[str, List[ShiftRecord]] = {}
    for shift in shifts:
        groups.setdefault(_group_key(shift, view_mode, names), []).append(shift)
    return groups
