"""View state for the schedule screens.

``ScheduleState`` is an immutable snapshot of what the user has selected and
how the shift list is filtered and sorted. The module-level transition
functions return a new state; ``derive_view`` turns a state plus the loaded
shifts and employees into everything a view needs to render. Nothing here is
cached: each state change recomputes the view from scratch.

``ShiftManagement`` wraps the two for hosts that prefer handler methods and
change callbacks over threading state objects through by hand.
"""

from __future__ import annotations

import dataclasses
import datetime
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Iterable, List, Mapping, Optional, Sequence, Tuple

from aggregation import QuickStats, summarize_shifts
from conflicts import conflicting_shift_ids, detect_conflicts
from filters import filter_shifts, group_shifts, sort_shifts
from positions import position_label
from rules import baseline_rules
from schedule_types import (
    SHIFT_STATUS_COLORS,
    TIME_PERIODS,
    VIEW_MODES,
    EmployeeRecord,
    ScheduleFilter,
    ShiftConflict,
    ShiftRecord,
    SortField,
    SortSpec,
)
from timeutils import combine_instant, parse_date, period_dates, period_range, step_date
from validation import ScheduleValidation, validate_shift_data

EMPLOYEE_PALETTE = (
    "#8884d8", "#82ca9d", "#ffc658", "#ff7c7c", "#8dd1e1",
    "#82d982", "#ffb347", "#ff6b6b", "#4ecdc4", "#45b7d1",
    "#f39c12", "#e74c3c", "#9b59b6", "#1abc9c", "#34495e",
)

Listener = Callable[["ScheduleState", "ScheduleView"], None]


@dataclass(frozen=True)
class ScheduleState:
    selected_date: datetime.date
    selected_shift_id: Optional[int] = None
    selected_employee_id: Optional[int] = None
    view_mode: str = "calendar"
    time_period: str = "week"
    filters: ScheduleFilter = field(default_factory=ScheduleFilter)
    sort: SortSpec = field(default_factory=SortSpec)
    is_creating_shift: bool = False
    is_editing_shift: bool = False


@dataclass(frozen=True)
class CalendarEvent:
    id: str
    title: str
    start: datetime.datetime
    end: datetime.datetime
    employee_id: Optional[int]
    position: Optional[str]
    department: Optional[str]
    status: str
    notes: str = ""
    background_color: str = SHIFT_STATUS_COLORS["scheduled"]


@dataclass(frozen=True)
class ScheduleView:
    filtered_shifts: List[ShiftRecord]
    calendar_events: List[CalendarEvent]
    conflicts: List[ShiftConflict]
    quick_stats: QuickStats
    grouped_shifts: Dict[str, List[ShiftRecord]]
    period_dates: List[datetime.date]
    employee_colors: Dict[int, str]


def default_filter(today: Optional[datetime.date] = None, range_days: int = 7) -> ScheduleFilter:
    start = today or datetime.date.today()
    return ScheduleFilter(date_start=start, date_end=start + datetime.timedelta(days=range_days))


def initial_state(
    today: Optional[datetime.date] = None,
    *,
    rules: Optional[Mapping[str, Any]] = None,
    filters: Optional[ScheduleFilter] = None,
) -> ScheduleState:
    rules = rules or baseline_rules()
    today = today or datetime.date.today()
    return ScheduleState(
        selected_date=today,
        time_period=str(rules.get("default_period", "week")),
        filters=filters or default_filter(today, int(rules.get("default_range_days", 7))),
    )


def select_shift(state: ScheduleState, shift: ShiftRecord, employees: Iterable[EmployeeRecord] = ()) -> ScheduleState:
    employee_id = state.selected_employee_id
    if any(employee.id == shift.employee_id for employee in employees):
        employee_id = shift.employee_id
    return dataclasses.replace(state, selected_shift_id=shift.id, selected_employee_id=employee_id)


def select_employee(state: ScheduleState, employee_id: int) -> ScheduleState:
    filters = dataclasses.replace(state.filters, employee_ids=(employee_id,))
    return dataclasses.replace(state, selected_employee_id=employee_id, filters=filters)


def select_date(state: ScheduleState, date_value: Any) -> ScheduleState:
    """Select a date and re-derive the filter's date range for the active period."""
    selected = parse_date(date_value)
    start, end = period_range(selected, state.time_period)
    filters = dataclasses.replace(state.filters, date_start=start, date_end=end)
    return dataclasses.replace(state, selected_date=selected, filters=filters)


def set_view_mode(state: ScheduleState, mode: str) -> ScheduleState:
    if mode not in VIEW_MODES:
        raise ValueError(f"Unknown view mode '{mode}'.")
    return dataclasses.replace(state, view_mode=mode)


def set_time_period(state: ScheduleState, period: str) -> ScheduleState:
    if period not in TIME_PERIODS:
        raise ValueError(f"Unknown time period '{period}'.")
    return select_date(dataclasses.replace(state, time_period=period), state.selected_date)


def _as_tuple(value: Any) -> Tuple[Any, ...]:
    if value is None:
        return ()
    if isinstance(value, (str, int)):
        return (value,)
    return tuple(value)


_TUPLE_FIELDS = ("departments", "positions", "employee_ids", "statuses")


def apply_filter(state: ScheduleState, **changes: Any) -> ScheduleState:
    """Merge ``changes`` into the active filter; list values become tuples."""
    known = {item.name for item in dataclasses.fields(ScheduleFilter)}
    unknown = set(changes) - known
    if unknown:
        raise TypeError(f"Unknown filter fields: {', '.join(sorted(unknown))}")
    for name in _TUPLE_FIELDS:
        if name in changes:
            changes[name] = _as_tuple(changes[name])
    for name in ("date_start", "date_end"):
        if changes.get(name) is not None:
            changes[name] = parse_date(changes[name])
    return dataclasses.replace(state, filters=dataclasses.replace(state.filters, **changes))


def set_sort(state: ScheduleState, sort_field: Any, direction: Optional[str] = None) -> ScheduleState:
    """Sort by ``sort_field``; without a direction, re-selecting the ascending field flips it."""
    chosen = SortField(sort_field)
    if direction is None:
        direction = "desc" if state.sort.field == chosen and state.sort.direction == "asc" else "asc"
    if direction not in ("asc", "desc"):
        raise ValueError(f"Unknown sort direction '{direction}'.")
    return dataclasses.replace(state, sort=SortSpec(field=chosen, direction=direction))


def clear_filters(state: ScheduleState, today: Optional[datetime.date] = None, range_days: int = 7) -> ScheduleState:
    return dataclasses.replace(state, filters=default_filter(today, range_days))


def clear_selection(state: ScheduleState) -> ScheduleState:
    return dataclasses.replace(state, selected_shift_id=None, selected_employee_id=None)


def navigate_time(state: ScheduleState, direction: str) -> ScheduleState:
    return select_date(state, step_date(state.selected_date, state.time_period, direction))


def shifts_to_calendar_events(shifts: Iterable[ShiftRecord], employees: Sequence[EmployeeRecord] = ()) -> List[CalendarEvent]:
    names = {employee.id: employee.full_name for employee in employees}
    events: List[CalendarEvent] = []
    for shift in shifts:
        if not (shift.date and shift.start_time and shift.end_time):
            continue
        name = shift.employee_name or names.get(shift.employee_id) or "Employee"
        events.append(
            CalendarEvent(
                id=str(shift.id),
                title=f"{name} - {position_label(shift.position or '')}",
                start=combine_instant(shift.date, shift.start_time),
                end=combine_instant(shift.date, shift.end_time),
                employee_id=shift.employee_id,
                position=shift.position,
                department=shift.department,
                status=shift.status,
                notes=shift.notes or "",
                background_color=SHIFT_STATUS_COLORS.get(shift.status, SHIFT_STATUS_COLORS["scheduled"]),
            )
        )
    return events


def employee_colors(employees: Sequence[EmployeeRecord]) -> Dict[int, str]:
    return {employee.id: EMPLOYEE_PALETTE[index % len(EMPLOYEE_PALETTE)] for index, employee in enumerate(employees)}


def derive_view(
    state: ScheduleState,
    shifts: Sequence[ShiftRecord],
    employees: Sequence[EmployeeRecord],
    rules: Optional[Mapping[str, Any]] = None,
) -> ScheduleView:
    # Conflicts are detected over the full list so a filtered-out partner still counts.
    all_conflicts = detect_conflicts(shifts, employees, rules)
    filtered = sort_shifts(
        filter_shifts(shifts, state.filters, conflicting_ids=conflicting_shift_ids(all_conflicts)),
        state.sort,
    )
    visible_ids = {shift.id for shift in filtered}
    conflicts = [conflict for conflict in all_conflicts if visible_ids.intersection(conflict.affected_shifts)]
    return ScheduleView(
        filtered_shifts=filtered,
        calendar_events=shifts_to_calendar_events(filtered, employees),
        conflicts=conflicts,
        quick_stats=summarize_shifts(filtered, conflict_count=len(conflicts)),
        grouped_shifts=group_shifts(filtered, state.view_mode, employees),
        period_dates=period_dates(state.selected_date, state.time_period),
        employee_colors=employee_colors(employees),
    )


class ShiftManagement:
    """Stateful front for the schedule screens.

    Each ``handle_*`` call applies one transition, recomputes the view and
    notifies subscribers with ``(state, view)``.
    """

    def __init__(
        self,
        shifts: Sequence[ShiftRecord] = (),
        employees: Sequence[EmployeeRecord] = (),
        *,
        rules: Optional[Mapping[str, Any]] = None,
        state: Optional[ScheduleState] = None,
        today: Optional[datetime.date] = None,
    ) -> None:
        self.rules = dict(rules or baseline_rules())
        self.shifts: List[ShiftRecord] = list(shifts)
        self.employees: List[EmployeeRecord] = list(employees)
        self.state = state or initial_state(today, rules=self.rules)
        self._listeners: List[Listener] = []
        self.view = derive_view(self.state, self.shifts, self.employees, self.rules)

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def _commit(self, state: ScheduleState) -> None:
        self.state = state
        self.view = derive_view(state, self.shifts, self.employees, self.rules)
        for listener in list(self._listeners):
            listener(self.state, self.view)

    def load(self, shifts: Sequence[ShiftRecord], employees: Sequence[EmployeeRecord]) -> None:
        self.shifts = list(shifts)
        self.employees = list(employees)
        self._commit(self.state)

    @property
    def filtered_shifts(self) -> List[ShiftRecord]:
        return self.view.filtered_shifts

    @property
    def calendar_events(self) -> List[CalendarEvent]:
        return self.view.calendar_events

    @property
    def conflicts(self) -> List[ShiftConflict]:
        return self.view.conflicts

    @property
    def quick_stats(self) -> QuickStats:
        return self.view.quick_stats

    @property
    def grouped_shifts(self) -> Dict[str, List[ShiftRecord]]:
        return self.view.grouped_shifts

    @property
    def period_dates(self) -> List[datetime.date]:
        return self.view.period_dates

    @property
    def employee_colors(self) -> Dict[int, str]:
        return self.view.employee_colors

    @property
    def selected_shift(self) -> Optional[ShiftRecord]:
        return next((shift for shift in self.shifts if shift.id == self.state.selected_shift_id), None)

    @property
    def selected_employee(self) -> Optional[EmployeeRecord]:
        return next((employee for employee in self.employees if employee.id == self.state.selected_employee_id), None)

    def handle_shift_select(self, shift: ShiftRecord) -> None:
        self._commit(select_shift(self.state, shift, self.employees))

    def handle_employee_select(self, employee: EmployeeRecord) -> None:
        self._commit(select_employee(self.state, employee.id))

    def handle_date_select(self, date_value: Any) -> None:
        self._commit(select_date(self.state, date_value))

    def handle_view_mode_change(self, mode: str) -> None:
        self._commit(set_view_mode(self.state, mode))

    def handle_time_period_change(self, period: str) -> None:
        self._commit(set_time_period(self.state, period))

    def handle_filter_change(self, **changes: Any) -> None:
        self._commit(apply_filter(self.state, **changes))

    def handle_sort_change(self, sort_field: Any, direction: Optional[str] = None) -> None:
        self._commit(set_sort(self.state, sort_field, direction))

    def navigate_time(self, direction: str) -> None:
        self._commit(navigate_time(self.state, direction))

    def clear_filters(self, today: Optional[datetime.date] = None) -> None:
        self._commit(clear_filters(self.state, today, int(self.rules.get("default_range_days", 7))))

    def clear_selection(self) -> None:
        self._commit(clear_selection(self.state))

    def set_editing(self, *, creating: bool = False, editing: bool = False) -> None:
        self._commit(dataclasses.replace(self.state, is_creating_shift=creating, is_editing_shift=editing))

    def validate_shift_data(self, candidate: ShiftRecord, today: Optional[datetime.date] = None) -> ScheduleValidation:
        return validate_shift_data(candidate, self.shifts, self.employees, rules=self.rules, today=today)
