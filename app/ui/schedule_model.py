from __future__ import annotations

import datetime
from typing import Any, Optional

from PySide6.QtCore import QDate, QObject, Signal

from controller import ScheduleState, ScheduleView, ShiftManagement
from database import EmployeeSessionLocal, SessionLocal, fetch_employees, fetch_shifts
from timeutils import period_range


class ScheduleModel(QObject):
    """Qt front for ``ShiftManagement``.

    Widgets connect to ``stateChanged`` and call the slot-style methods below;
    every controller update is re-emitted with the new state and view.
    """

    stateChanged = Signal(object, object)
    selectionChanged = Signal(object)
    loadFailed = Signal(str)

    def __init__(self, management: Optional[ShiftManagement] = None, parent: Optional[QObject] = None) -> None:
        super().__init__(parent)
        self.management = management or ShiftManagement()
        self._last_selection: Optional[int] = self.management.state.selected_shift_id
        self._unsubscribe = self.management.subscribe(self._forward)

    @property
    def state(self) -> ScheduleState:
        return self.management.state

    @property
    def view(self) -> ScheduleView:
        return self.management.view

    def _forward(self, state: ScheduleState, view: ScheduleView) -> None:
        self.stateChanged.emit(state, view)
        if state.selected_shift_id != self._last_selection:
            self._last_selection = state.selected_shift_id
            self.selectionChanged.emit(state.selected_shift_id)

    def reload(self, session_factory=SessionLocal, employee_session_factory=EmployeeSessionLocal) -> None:
        """Refresh shifts for the selected period plus the employee list."""
        start, end = period_range(self.state.selected_date, self.state.time_period)
        try:
            with session_factory() as session, employee_session_factory() as employee_session:
                employees = fetch_employees(employee_session)
                shifts = fetch_shifts(session, start, end, employee_session=employee_session)
        except Exception as exc:  # noqa: BLE001
            self.loadFailed.emit(str(exc))
            return
        self.management.load(shifts, employees)

    def select_qdate(self, value: QDate) -> None:
        self.management.handle_date_select(datetime.date(value.year(), value.month(), value.day()))

    def select_shift_id(self, shift_id: int) -> None:
        shift = next((item for item in self.management.shifts if item.id == shift_id), None)
        if shift is not None:
            self.management.handle_shift_select(shift)

    def change_view_mode(self, mode: str) -> None:
        self.management.handle_view_mode_change(mode)

    def change_time_period(self, period: str) -> None:
        self.management.handle_time_period_change(period)

    def change_filter(self, **changes: Any) -> None:
        self.management.handle_filter_change(**changes)

    def change_sort(self, field: Any, direction: Optional[str] = None) -> None:
        self.management.handle_sort_change(field, direction)

    def go_previous(self) -> None:
        self.management.navigate_time("prev")

    def go_next(self) -> None:
        self.management.navigate_time("next")

    def detach(self) -> None:
        self._unsubscribe()
