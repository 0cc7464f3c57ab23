from __future__ import annotations

import datetime
import sys
from pathlib import Path
from typing import Dict, List

from sqlalchemy import select

ROOT_DIR = Path(__file__).resolve().parents[1]
if str(ROOT_DIR) not in sys.path:
    sys.path.insert(0, str(ROOT_DIR))

from database import Employee, EmployeeSessionLocal, SessionLocal, create_employee, init_database
from generator.api import generate_schedule_for_week
from positions import is_known_position
from timeutils import WEEKDAY_TOKENS, week_start


SAMPLE_EMPLOYEES: List[Dict] = [
    {
        "first_name": "Camille",
        "last_name": "Martin",
        "position": "serveur",
        "department": "service",
        "hourly_rate": 14.5,
        "skills": ["service", "bar"],
        "availability": {"Sun": None},
    },
    {
        "first_name": "Lucas",
        "last_name": "Bernard",
        "position": "chef",
        "department": "cuisine",
        "hourly_rate": 19.0,
        "skills": ["grill", "prep"],
        "availability": {"Mon": ("10:00", "20:00")},
    },
    {
        "first_name": "Ines",
        "last_name": "Dubois",
        "position": "barista",
        "department": "service",
        "hourly_rate": 13.75,
        "skills": ["coffee"],
    },
    {
        "first_name": "Hugo",
        "last_name": "Petit",
        "position": "caissier",
        "department": "service",
        "hourly_rate": 13.5,
        "max_hours_per_week": 30,
    },
    {
        "first_name": "Sarah",
        "last_name": "Leroy",
        "position": "manager",
        "department": "management",
        "hourly_rate": 22.0,
        "skills": ["planning"],
    },
    {
        "first_name": "Nathan",
        "last_name": "Moreau",
        "position": "nettoyage",
        "department": "maintenance",
        "hourly_rate": 12.5,
        "availability": {"Sat": None, "Sun": None},
    },
]


def build_availability(rows: Dict[str, object]) -> Dict[int, Dict]:
    """Map day tokens to availability windows; ``None`` marks a day off."""
    availability: Dict[int, Dict] = {}
    for token, window in rows.items():
        day_idx = WEEKDAY_TOKENS.index(token)
        if window is None:
            availability[day_idx] = {"available": False}
        else:
            start_label, end_label = window
            availability[day_idx] = {"available": True, "start_time": start_label, "end_time": end_label}
    return availability


def seed_employees() -> int:
    init_database()
    created = 0
    with EmployeeSessionLocal() as session:
        for entry in SAMPLE_EMPLOYEES:
            name = f"{entry['first_name']} {entry['last_name']}"
            if not is_known_position(entry["position"]):
                print(f"[seed] Skipping {name} because position '{entry['position']}' is undefined.")
                continue
            stmt = select(Employee).where(
                Employee.first_name == entry["first_name"],
                Employee.last_name == entry["last_name"],
            )
            if session.scalars(stmt).first():
                continue
            payload = dict(entry)
            payload["availability"] = build_availability(entry.get("availability", {}))
            create_employee(session, payload)
            created += 1
    print(f"[seed] Created {created} employees.")
    return created


def seed_week(start: datetime.date) -> Dict:
    summary = generate_schedule_for_week(SessionLocal, start, "seed")
    print(f"[seed] Generated {summary['shifts_created']} shifts for week of {summary['week_start']}.")
    for skipped in summary["skipped"]:
        print(f"[seed] Skipped employee {skipped['employee_id']} on {skipped['date']}: {'; '.join(skipped['errors'])}")
    return summary


if __name__ == "__main__":
    seed_employees()
    seed_week(week_start(datetime.date.today() + datetime.timedelta(days=7)))
