from __future__ import annotations

import collections.abc
import datetime
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Hashable, Iterable, List, Mapping, Optional, Sequence

from schedule_types import EmployeeRecord, ShiftRecord

WEEKS_PER_MONTH = 52 / 12


@dataclass(frozen=True)
class QuickStats:
    total_shifts: int = 0
    total_hours: float = 0.0
    total_pay: float = 0.0
    unique_employees: int = 0
    overtime_shifts: int = 0
    conflict_count: int = 0
    average_shift_length: float = 0.0


@dataclass(frozen=True)
class ShiftTotals:
    shift_count: int = 0
    total_hours: float = 0.0
    total_pay: float = 0.0
    overtime_hours: float = 0.0
    employee_count: int = 0
    average_shift_length: float = 0.0


def _as_list(shifts: Iterable[ShiftRecord]) -> List[ShiftRecord]:
    if isinstance(shifts, (str, bytes)) or not isinstance(shifts, collections.abc.Iterable):
        raise TypeError("shifts must be an iterable of ShiftRecord")
    return list(shifts)


def _totals(shifts: Sequence[ShiftRecord]) -> ShiftTotals:
    count = len(shifts)
    hours = sum(float(shift.total_hours or 0.0) for shift in shifts)
    return ShiftTotals(
        shift_count=count,
        total_hours=round(hours, 4),
        total_pay=round(sum(float(shift.total_pay or 0.0) for shift in shifts), 2),
        overtime_hours=round(sum(float(shift.overtime_hours or 0.0) for shift in shifts), 4),
        employee_count=len({shift.employee_id for shift in shifts}),
        average_shift_length=hours / count if count else 0.0,
    )


def summarize_shifts(shifts: Iterable[ShiftRecord], conflict_count: int = 0) -> QuickStats:
    items = _as_list(shifts)
    totals = _totals(items)
    return QuickStats(
        total_shifts=totals.shift_count,
        total_hours=totals.total_hours,
        total_pay=totals.total_pay,
        unique_employees=totals.employee_count,
        overtime_shifts=sum(1 for shift in items if (shift.overtime_hours or 0) > 0),
        conflict_count=conflict_count,
        average_shift_length=totals.average_shift_length,
    )


def _breakdown(shifts: Iterable[ShiftRecord], key: Callable[[ShiftRecord], Hashable]) -> Dict[Any, ShiftTotals]:
    buckets: Dict[Any, List[ShiftRecord]] = {}
    for shift in _as_list(shifts):
        buckets.setdefault(key(shift), []).append(shift)
    return {bucket: _totals(items) for bucket, items in buckets.items()}


def per_employee_breakdown(shifts: Iterable[ShiftRecord]) -> Dict[Optional[int], ShiftTotals]:
    return _breakdown(shifts, lambda shift: shift.employee_id)


def per_department_breakdown(shifts: Iterable[ShiftRecord]) -> Dict[Optional[str], ShiftTotals]:
    return _breakdown(shifts, lambda shift: shift.department)


@dataclass(frozen=True)
class DepartmentStats:
    department: str
    employee_count: int
    scheduled_hours: float
    average_hourly_rate: float
    total_cost: float


@dataclass(frozen=True)
class CostAnalysis:
    regular_hours: float
    overtime_hours: float
    regular_cost: float
    overtime_cost: float
    total_cost: float
    projected_monthly_cost: float


@dataclass(frozen=True)
class ScheduleStats:
    total_employees: int
    active_employees: int
    total_shifts: int
    scheduled_hours: float
    overtime_hours: float
    total_payroll: float
    average_hours_per_employee: float
    department_stats: List[DepartmentStats] = field(default_factory=list)
    cost_analysis: Optional[CostAnalysis] = None


def schedule_stats(
    shifts: Iterable[ShiftRecord],
    employees: Sequence[EmployeeRecord],
    rules: Optional[Mapping[str, Any]] = None,
) -> ScheduleStats:
    """Payroll-oriented summary of a shift list.

    Overtime hours are paid at ``overtime_multiplier`` times the shift rate.
    The monthly projection scales the covered period's cost to an average
    month (52/12 weeks).
    """
    rules = rules or {}
    multiplier = float(rules.get("overtime_multiplier", 1.5))
    items = _as_list(shifts)
    active_employees = sum(1 for employee in employees if employee.is_active)

    regular_hours = 0.0
    overtime_hours = 0.0
    regular_cost = 0.0
    overtime_cost = 0.0
    for shift in items:
        overtime = min(float(shift.overtime_hours or 0.0), float(shift.total_hours or 0.0))
        regular = float(shift.total_hours or 0.0) - overtime
        rate = float(shift.hourly_rate or 0.0)
        regular_hours += regular
        overtime_hours += overtime
        regular_cost += regular * rate
        overtime_cost += overtime * rate * multiplier
    total_cost = regular_cost + overtime_cost

    dates = [shift.date for shift in items if shift.date]
    projected = 0.0
    if dates:
        span_days = (max(dates) - min(dates)).days + 1
        weeks = max(span_days, 7) / 7
        projected = total_cost / weeks * WEEKS_PER_MONTH

    department_stats: List[DepartmentStats] = []
    for department, totals in sorted(per_department_breakdown(items).items(), key=lambda pair: str(pair[0])):
        department_shifts = [shift for shift in items if shift.department == department]
        rates = [float(shift.hourly_rate or 0.0) for shift in department_shifts]
        department_stats.append(
            DepartmentStats(
                department=department or "",
                employee_count=totals.employee_count,
                scheduled_hours=totals.total_hours,
                average_hourly_rate=round(sum(rates) / len(rates), 2) if rates else 0.0,
                total_cost=totals.total_pay,
            )
        )

    scheduled_hours = regular_hours + overtime_hours
    return ScheduleStats(
        total_employees=len(employees),
        active_employees=active_employees,
        total_shifts=len(items),
        scheduled_hours=round(scheduled_hours, 4),
        overtime_hours=round(overtime_hours, 4),
        total_payroll=round(total_cost, 2),
        average_hours_per_employee=scheduled_hours / active_employees if active_employees else 0.0,
        department_stats=department_stats,
        cost_analysis=CostAnalysis(
            regular_hours=round(regular_hours, 4),
            overtime_hours=round(overtime_hours, 4),
            regular_cost=round(regular_cost, 2),
            overtime_cost=round(overtime_cost, 2),
            total_cost=round(total_cost, 2),
            projected_monthly_cost=round(projected, 2),
        ),
    )


def employee_performance(shifts: Iterable[ShiftRecord], employees: Sequence[EmployeeRecord]) -> List[Dict[str, Any]]:
    items = _as_list(shifts)
    rows: List[Dict[str, Any]] = []
    for employee in employees:
        own = [shift for shift in items if shift.employee_id == employee.id]
        hours = sum(float(shift.total_hours or 0.0) for shift in own)
        completed = sum(1 for shift in own if shift.status == "completed")
        cancelled = sum(1 for shift in own if shift.status == "cancelled")
        rows.append(
            {
                "employee_id": employee.id,
                "employee": employee.full_name,
                "total_shifts": len(own),
                "total_hours": round(hours, 4),
                "completed_shifts": completed,
                "cancelled_shifts": cancelled,
                "completion_rate": completed / len(own) * 100 if own else 0.0,
                "average_hours_per_shift": hours / len(own) if own else 0.0,
            }
        )
    return rows


def weekly_hours(shifts: Iterable[ShiftRecord], employee_id: int, week_start: datetime.date) -> float:
    week_end = week_start + datetime.timedelta(days=6)
    return sum(
        float(shift.total_hours or 0.0)
        for shift in _as_list(shifts)
        if shift.employee_id == employee_id and shift.date and week_start <= shift.date <= week_end
    )
