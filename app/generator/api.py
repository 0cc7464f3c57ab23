from __future__ import annotations

import datetime
from typing import Any, Callable, Dict, Optional

from .engine import ScheduleGenerator
from database import EmployeeSessionLocal, create_shift, fetch_employees, fetch_shifts, record_audit_log
from rules import load_rules
from timeutils import week_start


def generate_schedule_for_week(
    session_factory: Callable,
    week_start_date: datetime.date,
    actor: str,
    *,
    employee_session_factory: Callable = EmployeeSessionLocal,
    rules: Optional[Dict[str, Any]] = None,
    today: Optional[datetime.date] = None,
) -> Dict[str, Any]:
    """Generate and persist a default week, returning a summary payload."""
    if week_start_date is None:
        raise ValueError("week_start_date is required.")
    rules = rules or load_rules()
    monday = week_start(week_start_date)
    sunday = monday + datetime.timedelta(days=6)
    with session_factory() as session, employee_session_factory() as employee_session:
        employees = fetch_employees(employee_session, only_active=True)
        existing = fetch_shifts(session, monday, sunday, employee_session=employee_session)
        engine = ScheduleGenerator(employees, rules, existing=existing, today=today)
        created = [
            create_shift(
                session,
                shift,
                employee_session=employee_session,
                actor=actor or "system",
                overtime_threshold=float(rules.get("overtime_threshold_hours", 40.0)),
            )
            for shift in engine.generate(monday)
        ]
        record_audit_log(
            session,
            actor or "system",
            "SCHEDULE_GENERATE",
            target_type="Week",
            payload={"week_start": monday.isoformat(), "shifts_created": len(created)},
        )
    return {
        "week_start": monday.isoformat(),
        "shifts_created": len(created),
        "shifts": created,
        "skipped": engine.skipped,
    }
