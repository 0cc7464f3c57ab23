from __future__ import annotations

import datetime
import logging
from typing import Any, Dict, List, Mapping, Optional, Sequence

from schedule_types import EmployeeRecord, ShiftRecord, build_shift
from timeutils import format_minutes, minutes_of_day, week_dates, week_start
from validation import validate_shift

SHIFT_LENGTH_HOURS = 8
SLOT_STAGGER_HOURS = 4
WEEKDAY_SLOTS = 3
SATURDAY_SLOTS = 2
SUNDAY = 6
SATURDAY = 5
GENERATED_NOTE = "Generated automatically"

logger = logging.getLogger(__name__)


class ScheduleGenerator:
    """Lay out a default week of shifts for the active staff.

    Monday to Saturday get staggered 8-hour slots (three on weekdays, two on
    Saturday) starting at the business-hours open; Sunday is the rest day.
    Slot ``n`` goes to the ``n``-th active employee. A slot that would end
    after close is dropped, as is any candidate the validator refuses against
    the shifts already on the books. Each shift carries the configured unpaid
    ``break_minutes``.
    """

    def __init__(
        self,
        employees: Sequence[EmployeeRecord],
        rules: Optional[Mapping[str, Any]] = None,
        *,
        existing: Sequence[ShiftRecord] = (),
        today: Optional[datetime.date] = None,
    ) -> None:
        rules = rules or {}
        hours = rules.get("business_hours") or {}
        self.open_minutes = minutes_of_day(hours.get("start", "08:00"))
        self.close_minutes = minutes_of_day(hours.get("end", "20:00"))
        self.break_minutes = int(rules.get("break_minutes") or 0)
        self.employees = [employee for employee in employees if employee.is_active]
        self.existing: List[ShiftRecord] = list(existing)
        self.today = today
        self.skipped: List[Dict[str, Any]] = []

    def slots_for(self, day: datetime.date) -> int:
        weekday = day.weekday()
        if weekday == SUNDAY:
            return 0
        return SATURDAY_SLOTS if weekday == SATURDAY else WEEKDAY_SLOTS

    def _candidate(self, employee: EmployeeRecord, day: datetime.date, slot: int) -> Optional[ShiftRecord]:
        start = self.open_minutes + slot * SLOT_STAGGER_HOURS * 60
        end = start + SHIFT_LENGTH_HOURS * 60
        if end > self.close_minutes:
            return None
        return build_shift(
            employee_id=employee.id,
            employee_name=employee.full_name,
            date=day,
            start_time=format_minutes(start),
            end_time=format_minutes(end),
            position=employee.position,
            department=employee.department,
            status="scheduled",
            hourly_rate=employee.hourly_rate,
            break_minutes=self.break_minutes,
            notes=GENERATED_NOTE,
        )

    def generate(self, week_start_date: datetime.date) -> List[ShiftRecord]:
        accepted: List[ShiftRecord] = []
        for day in week_dates(week_start(week_start_date)):
            for slot, employee in enumerate(self.employees[: self.slots_for(day)]):
                candidate = self._candidate(employee, day, slot)
                if candidate is None:
                    continue
                result = validate_shift(candidate, self.existing + accepted, today=self.today)
                if not result.is_valid:
                    self.skipped.append(
                        {"employee_id": employee.id, "date": day.isoformat(), "errors": list(result.errors)}
                    )
                    continue
                accepted.append(candidate)
        logger.debug("Generated %d shifts, skipped %d", len(accepted), len(self.skipped))
        return accepted
