from __future__ import annotations

import csv
import io
import logging
from pathlib import Path
from typing import Iterable, Optional, Sequence

from schedule_types import EmployeeRecord, ShiftRecord
from timeutils import shift_duration_hours


DATA_DIR = Path(__file__).resolve().parent / "data" / "exports"
DATA_DIR.mkdir(parents=True, exist_ok=True)

CSV_HEADERS = ["Date", "Employee", "Position", "Department", "Start", "End", "Duration (h)", "Status", "Notes"]
UNKNOWN_EMPLOYEE = "Unknown employee"
STATUS_LABELS = {
    "scheduled": "Scheduled",
    "confirmed": "Confirmed",
    "in_progress": "In progress",
    "completed": "Completed",
    "cancelled": "Cancelled",
    "no_show": "No show",
}

logger = logging.getLogger(__name__)


def shifts_to_csv(shifts: Iterable[ShiftRecord], employees: Sequence[EmployeeRecord] = ()) -> str:
    """Render shifts as CSV text with one header row."""
    names = {employee.id: employee.full_name for employee in employees}
    buffer = io.StringIO()
    writer = csv.writer(buffer, lineterminator="\n")
    writer.writerow(CSV_HEADERS)
    for shift in shifts:
        duration = ""
        if shift.start_time and shift.end_time:
            duration = f"{shift_duration_hours(shift.start_time, shift.end_time):.1f}"
        writer.writerow(
            [
                shift.date.isoformat() if shift.date else "",
                names.get(shift.employee_id) or shift.employee_name or UNKNOWN_EMPLOYEE,
                shift.position or "",
                shift.department or "",
                shift.start_time or "",
                shift.end_time or "",
                duration,
                STATUS_LABELS.get(shift.status, shift.status),
                shift.notes or "",
            ]
        )
    return buffer.getvalue()


def export_shifts(
    shifts: Iterable[ShiftRecord],
    employees: Sequence[EmployeeRecord] = (),
    *,
    filename: Optional[str] = None,
    directory: Optional[Path] = None,
) -> Path:
    target_dir = Path(directory) if directory else DATA_DIR
    target_dir.mkdir(parents=True, exist_ok=True)
    path = target_dir / (filename or "schedule.csv")
    path.write_text(shifts_to_csv(shifts, employees), encoding="utf-8")
    logger.info("Exported schedule to %s", path)
    return path
