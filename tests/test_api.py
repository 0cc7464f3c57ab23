from __future__ import annotations

import datetime
import sys
from pathlib import Path

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine, select
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

APP_DIR = Path(__file__).resolve().parents[1] / "app"
if str(APP_DIR) not in sys.path:
    sys.path.insert(0, str(APP_DIR))

import api  # noqa: E402
import database as db  # noqa: E402
from rules import baseline_rules  # noqa: E402
from schedule_types import ShiftRecord  # noqa: E402

WEEK = "2030-07-08"


@pytest.fixture()
def client(monkeypatch):
    engine = create_engine(
        "sqlite://",
        future=True,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Session = sessionmaker(bind=engine, expire_on_commit=False, future=True)
    monkeypatch.setattr(db, "schedule_engine", engine)
    monkeypatch.setattr(db, "employee_engine", engine)
    monkeypatch.setattr(db, "SessionLocal", Session)
    monkeypatch.setattr(db, "EmployeeSessionLocal", Session)
    api.app.dependency_overrides[api.get_rules] = baseline_rules
    try:
        with TestClient(api.app) as test_client:
            yield test_client
    finally:
        api.app.dependency_overrides.clear()


def _employee(client, first_name="Lucas", position="chef", department="cuisine", rate=20.0):
    response = client.post(
        "/api/v1/employees",
        json={"first_name": first_name, "last_name": "Test", "position": position, "department": department, "hourly_rate": rate},
    )
    assert response.status_code == 201, response.text
    return response.json()


def _shift_payload(employee_id, start="09:00", end="17:00", date=WEEK, **extra):
    payload = {"employee_id": employee_id, "date": date, "start_time": start, "end_time": end,
               "position": "chef", "department": "cuisine"}
    payload.update(extra)
    return payload


def test_health(client):
    assert client.get("/health").json() == {"status": "ok"}


def test_employee_endpoints(client):
    employee = _employee(client)
    assert employee["department"] == "cuisine"
    listing = client.get("/api/v1/employees").json()["employees"]
    assert [item["first_name"] for item in listing] == ["Lucas"]
    patched = client.patch(f"/api/v1/employees/{employee['id']}", json={"hourly_rate": 22})
    assert patched.json()["hourly_rate"] == 22
    assert client.patch("/api/v1/employees/999", json={"hourly_rate": 1}).status_code == 404
    assert client.post("/api/v1/employees", json={"first_name": "X", "position": "pilot", "department": "cuisine"}).status_code == 400
    client.post(f"/api/v1/employees/{employee['id']}/deactivate")
    assert client.get("/api/v1/employees", params={"active": True}).json()["employees"] == []


def test_create_shift_and_conflict(client):
    employee = _employee(client)
    created = client.post("/api/v1/shifts", json=_shift_payload(employee["id"]))
    assert created.status_code == 201, created.text
    body = created.json()
    assert body["total_hours"] == 7.5
    assert body["total_pay"] == 150.0

    overlapping = client.post("/api/v1/shifts", json=_shift_payload(employee["id"], "16:00", "20:00"))
    assert overlapping.status_code == 400
    assert overlapping.json()["detail"]["errors"] == ["Schedule conflict detected for this employee."]

    touching = client.post("/api/v1/shifts", json=_shift_payload(employee["id"], "17:00", "20:00"))
    assert touching.status_code == 201


def test_create_shift_reports_every_error(client):
    response = client.post("/api/v1/shifts", json={"date": "2001-01-01", "start_time": "18:00", "end_time": "09:00"})
    assert response.status_code == 400
    errors = response.json()["detail"]["errors"]
    assert "Employee is required." in errors
    assert "End time must be after start time." in errors
    assert "Shift date cannot be in the past." in errors


def test_validate_endpoint(client):
    employee = _employee(client)
    client.post("/api/v1/shifts", json=_shift_payload(employee["id"]))
    report = client.post("/api/v1/shifts/validate", json=_shift_payload(employee["id"], "16:00", "20:00")).json()
    assert report["is_valid"] is False
    assert report["conflicts"][0]["type"] == "overlap"
    assert "Start the shift at 17:00 or later." in report["suggestions"]


def test_list_filter_and_sort(client):
    chef = _employee(client)
    server = _employee(client, "Camille", "serveur", "service", 15.0)
    client.post("/api/v1/shifts", json=_shift_payload(chef["id"], "14:00", "22:00"))
    client.post("/api/v1/shifts", json=_shift_payload(server["id"], "08:00", "12:00", position="serveur", department="service"))
    client.post("/api/v1/shifts", json=_shift_payload(chef["id"], "08:00", "12:00", date="2030-07-09"))

    everything = client.get("/api/v1/shifts").json()
    assert [item["start_time"] for item in everything["shifts"]] == ["08:00", "14:00", "08:00"]
    kitchen = client.get("/api/v1/shifts", params={"department": "cuisine", "sort": "date", "direction": "desc"}).json()
    assert [item["date"] for item in kitchen["shifts"]] == ["2030-07-09", "2030-07-08"]
    ranged = client.get("/api/v1/shifts", params={"start": WEEK, "end": WEEK}).json()
    assert ranged["count"] == 2
    assert client.get("/api/v1/shifts", params={"sort": "colour"}).status_code == 400
    assert client.get("/api/v1/shifts", params={"start": "July"}).status_code == 400


def test_update_and_delete(client):
    employee = _employee(client)
    shift = client.post("/api/v1/shifts", json=_shift_payload(employee["id"])).json()
    updated = client.put(f"/api/v1/shifts/{shift['id']}", json={"end_time": "13:00", "status": "confirmed"})
    assert updated.status_code == 200, updated.text
    assert updated.json()["total_hours"] == 3.5
    assert client.put(f"/api/v1/shifts/{shift['id']}", json={"end_time": "08:00"}).status_code == 400
    assert client.put("/api/v1/shifts/999", json={"notes": "x"}).status_code == 404
    assert client.delete(f"/api/v1/shifts/{shift['id']}").status_code == 204
    assert client.delete(f"/api/v1/shifts/{shift['id']}").status_code == 404


def test_stats_and_export(client):
    employee = _employee(client)
    client.post("/api/v1/shifts", json=_shift_payload(employee["id"], notes="opening"))
    stats = client.get("/api/v1/shifts/stats").json()
    assert stats["quick_stats"]["total_shifts"] == 1
    assert stats["quick_stats"]["total_pay"] == 150.0
    assert stats["by_department"]["cuisine"]["total_hours"] == 7.5
    assert stats["schedule"]["cost_analysis"]["total_cost"] == 150.0

    export = client.get("/api/v1/shifts/export")
    assert export.status_code == 200
    assert export.headers["content-type"].startswith("text/csv")
    lines = export.text.strip().splitlines()
    assert lines[0] == "Date,Employee,Position,Department,Start,End,Duration (h),Status,Notes"
    assert lines[1] == "2030-07-08,Lucas Test,chef,cuisine,09:00,17:00,8.0,Scheduled,opening"


def test_generate_week(client):
    _employee(client)
    _employee(client, "Camille", "serveur", "service", 15.0)
    result = client.post("/api/v1/schedules/generate", json={"weekStart": "2030-07-10"})
    assert result.status_code == 200, result.text
    body = result.json()
    assert body["week_start"] == WEEK
    assert body["shifts_created"] == 12
    dates = {item["date"] for item in body["shifts"]}
    assert "2030-07-14" not in dates
    assert client.post("/api/v1/schedules/generate", json={}).status_code == 400


def test_shift_request_flow(client):
    employee = _employee(client)
    created = client.post(
        "/api/v1/shift-requests",
        json={"employee_id": employee["id"], "request_type": "cover", "requested_date": WEEK, "reason": "exam"},
    )
    assert created.status_code == 201
    request_id = created.json()["id"]
    assert client.post(f"/api/v1/shift-requests/{request_id}/review", json={"decision": "maybe"}).status_code == 400
    reviewed = client.post(f"/api/v1/shift-requests/{request_id}/review", json={"decision": "approve", "actor": "sarah"})
    assert reviewed.json()["status"] == "approved"
    assert reviewed.json()["reviewed_by"] == "sarah"
    assert client.get("/api/v1/shift-requests", params={"status": "approved"}).json()["requests"][0]["id"] == request_id
    assert client.post("/api/v1/shift-requests/999/review", json={"decision": "reject"}).status_code == 404


def test_non_string_times_are_reported_not_raised(client):
    employee = _employee(client)
    payload = _shift_payload(employee["id"], start=900)
    report = client.post("/api/v1/shifts/validate", json=payload)
    assert report.status_code == 200, report.text
    assert report.json()["is_valid"] is False
    assert "Start and end times must use the HH:MM format." in report.json()["warnings"]
    created = client.post("/api/v1/shifts", json=payload)
    assert created.status_code == 400
    assert created.json()["detail"]["errors"] == ["Start and end times must use the HH:MM format."]


def test_past_shift_status_can_change(client):
    employee = _employee(client)
    yesterday = datetime.date.today() - datetime.timedelta(days=1)
    with db.SessionLocal() as session:
        shift = db.create_shift(
            session,
            ShiftRecord(employee_id=employee["id"], date=yesterday, start_time="09:00", end_time="17:00"),
        )
    completed = client.put(f"/api/v1/shifts/{shift.id}", json={"status": "completed", "notes": "closed out"})
    assert completed.status_code == 200, completed.text
    assert completed.json()["status"] == "completed"
    moved = client.put(f"/api/v1/shifts/{shift.id}", json={"start_time": "10:00"})
    assert moved.status_code == 400
    assert moved.json()["detail"]["errors"] == ["Shift date cannot be in the past."]


def test_configured_break_applies_when_omitted(client):
    employee = _employee(client)
    default_break = client.post("/api/v1/shifts", json=_shift_payload(employee["id"], "08:00", "12:00")).json()
    assert default_break["break_minutes"] == 30
    assert default_break["total_hours"] == 3.5
    no_break = client.post("/api/v1/shifts", json=_shift_payload(employee["id"], "13:00", "17:00", break_minutes=0)).json()
    assert no_break["break_minutes"] == 0
    assert no_break["total_hours"] == 4.0


def test_unknown_recurrence_frequency_is_rejected(client):
    employee = _employee(client)
    payload = _shift_payload(employee["id"], recurrence={"frequency": "hourly", "days_of_week": [0]})
    response = client.post("/api/v1/shifts", json=payload)
    assert response.status_code == 400
    assert "hourly" in response.json()["detail"]


def test_non_string_actor_is_recorded(client):
    employee = _employee(client)
    response = client.post("/api/v1/shifts", json=_shift_payload(employee["id"], actor=42))
    assert response.status_code == 201, response.text
    with db.SessionLocal() as session:
        actors = [log.user_id for log in session.scalars(select(db.AuditLog))]
    assert actors == ["42"]
