"""FastAPI surface over the shift desk.

Every endpoint is a thin shell: it loads records through the data layer,
hands them to the scheduling core (validation, filters, aggregation) and
encodes the result. Sessions come from ``database`` at request time so tests
can swap in their own engines.
"""

from __future__ import annotations

from contextlib import asynccontextmanager
import dataclasses
import datetime
import logging
import sys
from pathlib import Path
from typing import Any, Dict, List, Optional

from fastapi import Depends, FastAPI, HTTPException, Query
from fastapi.encoders import jsonable_encoder
from fastapi.responses import JSONResponse, Response

# Ensure absolute imports (e.g., "import database") resolve when served by uvicorn.
APP_DIR = Path(__file__).resolve().parent
if str(APP_DIR) not in sys.path:
    sys.path.insert(0, str(APP_DIR))

import database  # noqa: E402
from aggregation import per_department_breakdown, per_employee_breakdown, schedule_stats, summarize_shifts  # noqa: E402
from conflicts import conflicting_shift_ids, detect_conflicts  # noqa: E402
from database import (  # noqa: E402
    EmployeeNotFoundError,
    ShiftNotFoundError,
    ShiftRequestNotFoundError,
    create_employee,
    create_shift,
    create_shift_request,
    deactivate_employee,
    delete_shift,
    fetch_employees,
    fetch_shift_requests,
    fetch_shifts,
    init_database,
    review_shift_request,
    shift_record,
    update_employee,
    update_shift,
)
from exporter import shifts_to_csv  # noqa: E402
from filters import filter_shifts, sort_shifts  # noqa: E402
from generator.api import generate_schedule_for_week  # noqa: E402
from rules import load_rules  # noqa: E402
from schedule_types import ScheduleFilter, SortField, SortSpec, shift_from_payload  # noqa: E402
from validation import validate_shift, validate_shift_data  # noqa: E402

logger = logging.getLogger(__name__)

SLOT_FIELDS = ("employee_id", "date", "start_time", "end_time")


@asynccontextmanager
async def lifespan(_: FastAPI):
    logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(name)s: %(message)s")
    init_database()
    logger.info("Shift desk API ready")
    yield


app = FastAPI(title="Shift Desk API", version="0.1", lifespan=lifespan)


def get_db():
    db = database.SessionLocal()
    try:
        yield db
    finally:
        db.close()


def get_employee_db():
    db = database.EmployeeSessionLocal()
    try:
        yield db
    finally:
        db.close()


def get_rules() -> Dict[str, Any]:
    return load_rules()


def _parse_date(value: Optional[str], name: str) -> Optional[datetime.date]:
    if not value:
        return None
    try:
        return datetime.date.fromisoformat(value)
    except ValueError:
        raise HTTPException(status_code=400, detail=f"{name} must be YYYY-MM-DD")


def _not_found(exc: LookupError) -> HTTPException:
    return HTTPException(status_code=404, detail=str(exc))


def _bad_request(exc: ValueError) -> HTTPException:
    return HTTPException(status_code=400, detail=str(exc))


def _json(payload: Any) -> JSONResponse:
    return JSONResponse(content=jsonable_encoder(payload))


def _actor(payload: Optional[Dict[str, Any]]) -> str:
    return str((payload or {}).get("actor") or "api").strip() or "api"


def _candidate(payload: Dict[str, Any]):
    try:
        return shift_from_payload(payload)
    except (TypeError, ValueError) as exc:
        raise _bad_request(exc) from exc


def _same_day_shifts(db, employee_db, date_value: Optional[datetime.date]):
    if date_value is None:
        return []
    return fetch_shifts(db, date_value, date_value, employee_session=employee_db)


@app.get("/health")
def health() -> Dict[str, str]:
    return {"status": "ok"}


# --- employees ---------------------------------------------------------------


@app.get("/api/v1/employees")
def list_employees(active: bool = Query(False), employee_db=Depends(get_employee_db)) -> JSONResponse:
    return _json({"employees": fetch_employees(employee_db, only_active=active)})


@app.post("/api/v1/employees", status_code=201)
def add_employee(payload: Dict[str, Any], employee_db=Depends(get_employee_db)) -> JSONResponse:
    try:
        employee = create_employee(employee_db, payload)
    except ValueError as exc:
        raise _bad_request(exc) from exc
    return JSONResponse(status_code=201, content=jsonable_encoder(employee))


@app.patch("/api/v1/employees/{employee_id}")
def patch_employee(employee_id: int, payload: Dict[str, Any], employee_db=Depends(get_employee_db)) -> JSONResponse:
    try:
        employee = update_employee(employee_db, employee_id, payload)
    except EmployeeNotFoundError as exc:
        raise _not_found(exc) from exc
    except ValueError as exc:
        raise _bad_request(exc) from exc
    return _json(employee)


@app.post("/api/v1/employees/{employee_id}/deactivate")
def deactivate(employee_id: int, employee_db=Depends(get_employee_db)) -> JSONResponse:
    try:
        return _json(deactivate_employee(employee_db, employee_id))
    except EmployeeNotFoundError as exc:
        raise _not_found(exc) from exc


# --- shifts ------------------------------------------------------------------


@app.get("/api/v1/shifts")
def list_shifts(
    start: Optional[str] = Query(None),
    end: Optional[str] = Query(None),
    department: Optional[List[str]] = Query(None),
    position: Optional[List[str]] = Query(None),
    status: Optional[List[str]] = Query(None),
    employee_id: Optional[List[int]] = Query(None),
    only_conflicts: bool = Query(False),
    only_overtime: bool = Query(False),
    sort: str = Query("date"),
    direction: str = Query("asc"),
    db=Depends(get_db),
    employee_db=Depends(get_employee_db),
    rules: Dict[str, Any] = Depends(get_rules),
) -> JSONResponse:
    try:
        spec = SortSpec(field=SortField(sort), direction=direction)
    except ValueError as exc:
        raise _bad_request(exc) from exc
    if direction not in ("asc", "desc"):
        raise HTTPException(status_code=400, detail="direction must be 'asc' or 'desc'")
    filters = ScheduleFilter(
        departments=tuple(department or ()),
        positions=tuple(position or ()),
        statuses=tuple(status or ()),
        employee_ids=tuple(employee_id or ()),
        date_start=_parse_date(start, "start"),
        date_end=_parse_date(end, "end"),
        only_conflicts=only_conflicts,
        only_overtime=only_overtime,
    )
    shifts = fetch_shifts(db, filters.date_start, filters.date_end, employee_session=employee_db)
    conflicting = None
    if only_conflicts:
        employees = fetch_employees(employee_db)
        conflicting = conflicting_shift_ids(detect_conflicts(shifts, employees, rules))
    result = sort_shifts(filter_shifts(shifts, filters, conflicting_ids=conflicting), spec)
    return _json({"shifts": result, "count": len(result)})


@app.post("/api/v1/shifts/validate")
def validate_shift_endpoint(
    payload: Dict[str, Any],
    db=Depends(get_db),
    employee_db=Depends(get_employee_db),
    rules: Dict[str, Any] = Depends(get_rules),
) -> JSONResponse:
    candidate = _candidate(payload)
    existing = _same_day_shifts(db, employee_db, candidate.date)
    report = validate_shift_data(candidate, existing, fetch_employees(employee_db), rules=rules)
    return _json(report)


@app.post("/api/v1/shifts", status_code=201)
def add_shift(
    payload: Dict[str, Any],
    db=Depends(get_db),
    employee_db=Depends(get_employee_db),
    rules: Dict[str, Any] = Depends(get_rules),
) -> JSONResponse:
    candidate = _candidate(payload)
    if payload.get("break_minutes") is None:
        candidate = dataclasses.replace(candidate, break_minutes=int(rules.get("break_minutes") or 0))
    result = validate_shift(candidate, _same_day_shifts(db, employee_db, candidate.date))
    if not result.is_valid:
        raise HTTPException(status_code=400, detail={"errors": list(result.errors)})
    try:
        created = create_shift(
            db,
            candidate,
            employee_session=employee_db,
            actor=_actor(payload),
            overtime_threshold=float(rules["overtime_threshold_hours"]),
        )
    except EmployeeNotFoundError as exc:
        raise _not_found(exc) from exc
    except ValueError as exc:
        raise _bad_request(exc) from exc
    return JSONResponse(status_code=201, content=jsonable_encoder(created))


@app.put("/api/v1/shifts/{shift_id}")
def replace_shift(
    shift_id: int,
    payload: Dict[str, Any],
    db=Depends(get_db),
    employee_db=Depends(get_employee_db),
    rules: Dict[str, Any] = Depends(get_rules),
) -> JSONResponse:
    stored = db.get(database.Shift, shift_id)
    if stored is None:
        raise HTTPException(status_code=404, detail=f"Shift with id {shift_id} was not found.")
    candidate = _candidate(payload)
    editable = {item.name for item in dataclasses.fields(candidate)} - {"id", "employee_name"}
    current = shift_record(stored)
    merged = dataclasses.replace(
        current,
        **{key: getattr(candidate, key) for key in payload if key in editable},
    )
    # Status and note edits on a shift that keeps its slot (past ones included) skip the slot checks.
    if any(getattr(merged, name) != getattr(current, name) for name in SLOT_FIELDS):
        result = validate_shift(merged, _same_day_shifts(db, employee_db, merged.date))
        if not result.is_valid:
            raise HTTPException(status_code=400, detail={"errors": list(result.errors)})
    try:
        updated = update_shift(
            db,
            shift_id,
            payload,
            employee_session=employee_db,
            actor=_actor(payload),
            overtime_threshold=float(rules["overtime_threshold_hours"]),
        )
    except (ShiftNotFoundError, EmployeeNotFoundError) as exc:
        raise _not_found(exc) from exc
    except ValueError as exc:
        raise _bad_request(exc) from exc
    return _json(updated)


@app.delete("/api/v1/shifts/{shift_id}", status_code=204)
def remove_shift(
    shift_id: int,
    actor: str = Query("api"),
    db=Depends(get_db),
    rules: Dict[str, Any] = Depends(get_rules),
) -> Response:
    try:
        delete_shift(db, shift_id, actor=actor, overtime_threshold=float(rules["overtime_threshold_hours"]))
    except ShiftNotFoundError as exc:
        raise _not_found(exc) from exc
    return Response(status_code=204)


@app.get("/api/v1/shifts/stats")
def shift_stats(
    start: Optional[str] = Query(None),
    end: Optional[str] = Query(None),
    db=Depends(get_db),
    employee_db=Depends(get_employee_db),
    rules: Dict[str, Any] = Depends(get_rules),
) -> JSONResponse:
    shifts = fetch_shifts(db, _parse_date(start, "start"), _parse_date(end, "end"), employee_session=employee_db)
    employees = fetch_employees(employee_db)
    conflicts = detect_conflicts(shifts, employees, rules)
    return _json(
        {
            "quick_stats": summarize_shifts(shifts, conflict_count=len(conflicts)),
            "by_employee": per_employee_breakdown(shifts),
            "by_department": per_department_breakdown(shifts),
            "schedule": schedule_stats(shifts, employees, rules),
            "conflicts": conflicts,
        }
    )


@app.get("/api/v1/shifts/export")
def export_shifts_csv(
    start: Optional[str] = Query(None),
    end: Optional[str] = Query(None),
    db=Depends(get_db),
    employee_db=Depends(get_employee_db),
) -> Response:
    shifts = fetch_shifts(db, _parse_date(start, "start"), _parse_date(end, "end"), employee_session=employee_db)
    content = shifts_to_csv(shifts, fetch_employees(employee_db))
    return Response(
        content=content,
        media_type="text/csv",
        headers={"Content-Disposition": 'attachment; filename="schedule.csv"'},
    )


@app.post("/api/v1/schedules/generate")
def generate_schedule(payload: Dict[str, Any], rules: Dict[str, Any] = Depends(get_rules)) -> JSONResponse:
    week_start_raw = payload.get("weekStart") or payload.get("week_start")
    if not week_start_raw:
        raise HTTPException(status_code=400, detail="weekStart is required")
    start_date = _parse_date(str(week_start_raw), "weekStart")
    result = generate_schedule_for_week(
        database.SessionLocal,
        start_date,
        _actor(payload),
        employee_session_factory=database.EmployeeSessionLocal,
        rules=rules,
    )
    return _json(result)


# --- shift requests ----------------------------------------------------------


@app.get("/api/v1/shift-requests")
def list_shift_requests(status: Optional[str] = Query(None), db=Depends(get_db)) -> JSONResponse:
    try:
        return _json({"requests": fetch_shift_requests(db, status)})
    except ValueError as exc:
        raise _bad_request(exc) from exc


@app.post("/api/v1/shift-requests", status_code=201)
def add_shift_request(payload: Dict[str, Any], db=Depends(get_db)) -> JSONResponse:
    try:
        request = create_shift_request(db, payload, actor=_actor(payload))
    except ShiftNotFoundError as exc:
        raise _not_found(exc) from exc
    except ValueError as exc:
        raise _bad_request(exc) from exc
    return JSONResponse(status_code=201, content=jsonable_encoder(request))


@app.post("/api/v1/shift-requests/{request_id}/review")
def review_request(request_id: int, payload: Dict[str, Any], db=Depends(get_db)) -> JSONResponse:
    decision = str(payload.get("decision") or "").lower()
    if decision not in ("approve", "reject"):
        raise HTTPException(status_code=400, detail="decision must be 'approve' or 'reject'")
    try:
        request = review_shift_request(
            db,
            request_id,
            approve=decision == "approve",
            reviewer=_actor(payload),
            notes=str(payload.get("notes") or ""),
        )
    except ShiftRequestNotFoundError as exc:
        raise _not_found(exc) from exc
    except ValueError as exc:
        raise _bad_request(exc) from exc
    return _json(request)
