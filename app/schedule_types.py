"""Plain records shared by the scheduling core.

The core never touches ORM rows directly: ``database`` converts rows into the
frozen dataclasses below, and everything downstream (filters, conflicts,
aggregation, the view controller) works over those snapshots.
"""

from __future__ import annotations

import dataclasses
import datetime
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, FrozenSet, Mapping, Optional, Tuple

from timeutils import parse_date, shift_duration_hours

SHIFT_STATUS_CHOICES = (
    "scheduled",
    "confirmed",
    "in_progress",
    "completed",
    "cancelled",
    "no_show",
)
INACTIVE_SHIFT_STATUSES = frozenset({"cancelled", "no_show"})
SHIFT_STATUS_COLORS: Dict[str, str] = {
    "scheduled": "#6B7280",
    "confirmed": "#10B981",
    "in_progress": "#F59E0B",
    "completed": "#059669",
    "cancelled": "#EF4444",
    "no_show": "#DC2626",
}
VIEW_MODES = ("calendar", "list", "employee", "analytics")
TIME_PERIODS = ("day", "week", "month")
REQUEST_TYPES = ("swap", "cover", "time_off", "overtime")
REQUEST_STATUSES = ("pending", "approved", "rejected")
RECURRENCE_FREQUENCIES = ("weekly", "biweekly", "monthly")
REQUIRED_SHIFT_FIELDS = ("employee_id", "date", "start_time", "end_time", "position", "department")


class SortField(str, Enum):
    DATE = "date"
    EMPLOYEE = "employee"
    DEPARTMENT = "department"
    POSITION = "position"
    STATUS = "status"
    TOTAL_HOURS = "total_hours"
    TOTAL_PAY = "total_pay"
    HOURLY_RATE = "hourly_rate"
    OVERTIME_HOURS = "overtime_hours"


@dataclass(frozen=True)
class DayAvailability:
    available: bool = True
    start_time: Optional[str] = None
    end_time: Optional[str] = None


@dataclass(frozen=True)
class EmployeeRecord:
    id: int
    first_name: str
    last_name: str
    position: str
    department: str
    hourly_rate: float = 0.0
    email: str = ""
    phone: str = ""
    hire_date: Optional[datetime.date] = None
    is_active: bool = True
    skills: FrozenSet[str] = frozenset()
    # 0 = Monday; a missing weekday means no constraint.
    availability: Mapping[int, DayAvailability] = field(default_factory=dict)
    max_hours_per_week: Optional[float] = None
    unavailable_dates: FrozenSet[datetime.date] = frozenset()

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}".strip()


@dataclass(frozen=True)
class RecurrencePattern:
    frequency: str = "weekly"
    days_of_week: Tuple[int, ...] = ()
    end_date: Optional[datetime.date] = None


@dataclass(frozen=True)
class ShiftRecord:
    id: Optional[int] = None
    employee_id: Optional[int] = None
    date: Optional[datetime.date] = None
    start_time: Optional[str] = None
    end_time: Optional[str] = None
    position: Optional[str] = None
    department: Optional[str] = None
    status: str = "scheduled"
    hourly_rate: float = 0.0
    total_hours: float = 0.0
    total_pay: float = 0.0
    overtime_hours: float = 0.0
    notes: str = ""
    break_minutes: int = 0
    break_paid: bool = False
    recurrence: Optional[RecurrencePattern] = None
    employee_name: Optional[str] = None


@dataclass(frozen=True)
class ShiftRequestRecord:
    id: int
    employee_id: int
    request_type: str
    requested_date: datetime.date
    reason: str = ""
    status: str = "pending"
    original_shift_id: Optional[int] = None
    requested_start_time: Optional[str] = None
    requested_end_time: Optional[str] = None
    submitted_at: Optional[datetime.datetime] = None
    reviewed_at: Optional[datetime.datetime] = None
    reviewed_by: Optional[str] = None
    notes: str = ""


@dataclass(frozen=True)
class ScheduleFilter:
    departments: Tuple[str, ...] = ()
    positions: Tuple[str, ...] = ()
    employee_ids: Tuple[int, ...] = ()
    statuses: Tuple[str, ...] = ()
    date_start: Optional[datetime.date] = None
    date_end: Optional[datetime.date] = None
    only_conflicts: bool = False
    only_overtime: bool = False


@dataclass(frozen=True)
class SortSpec:
    field: SortField = SortField.DATE
    direction: str = "asc"


@dataclass(frozen=True)
class ShiftConflict:
    type: str
    description: str
    severity: str
    affected_shifts: Tuple[int, ...] = ()
    suggestions: Tuple[str, ...] = ()


def paid_hours(start_time: str, end_time: str, break_minutes: int = 0, break_paid: bool = False) -> float:
    unpaid = 0 if break_paid else int(break_minutes or 0)
    return round(shift_duration_hours(start_time, end_time, unpaid), 4)


def build_shift(**fields: Any) -> ShiftRecord:
    """Create a shift whose hour and pay totals are derived from its times.

    ``total_hours`` is the wall-clock duration minus any unpaid break and
    ``total_pay`` is that figure at the shift's hourly rate snapshot.
    """
    shift = ShiftRecord(**fields)
    if not shift.start_time or not shift.end_time:
        return shift
    hours = max(0.0, paid_hours(shift.start_time, shift.end_time, shift.break_minutes, shift.break_paid))
    return dataclasses.replace(
        shift,
        total_hours=hours,
        total_pay=round(hours * float(shift.hourly_rate or 0.0), 2),
    )


def shift_from_payload(payload: Mapping[str, Any]) -> ShiftRecord:
    """Build a (possibly partial) shift from a JSON-style mapping.

    Unknown keys are ignored. Missing fields stay ``None`` so the validator can
    report them instead of this function raising.
    """
    known = {item.name for item in dataclasses.fields(ShiftRecord)}
    values: Dict[str, Any] = {key: value for key, value in payload.items() if key in known}
    if values.get("date") not in (None, ""):
        values["date"] = parse_date(values["date"])
    else:
        values.pop("date", None)
    if values.get("employee_id") not in (None, ""):
        values["employee_id"] = int(values["employee_id"])
    else:
        values.pop("employee_id", None)
    for key in ("start_time", "end_time"):
        value = values.get(key)
        if value is not None and not isinstance(value, (str, datetime.time)):
            values[key] = str(value)
    recurrence = values.get("recurrence")
    if isinstance(recurrence, Mapping):
        frequency = str(recurrence.get("frequency") or "weekly").strip().lower()
        if frequency not in RECURRENCE_FREQUENCIES:
            raise ValueError(f"Unsupported recurrence frequency '{recurrence.get('frequency')}'.")
        end_date = recurrence.get("end_date")
        values["recurrence"] = RecurrencePattern(
            frequency=frequency,
            days_of_week=tuple(int(day) for day in recurrence.get("days_of_week") or ()),
            end_date=parse_date(end_date) if end_date else None,
        )
    for key in ("notes",):
        if values.get(key) is None:
            values.pop(key, None)
    return ShiftRecord(**values)
