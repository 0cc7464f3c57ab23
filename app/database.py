from __future__ import annotations

import dataclasses
import datetime
import json
import logging
from pathlib import Path
from typing import Any, Dict, Iterable, List, Mapping, Optional

from sqlalchemy import (
    Date,
    DateTime,
    Float,
    ForeignKey,
    Integer,
    String,
    UniqueConstraint,
    create_engine,
    select,
)
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, relationship, selectinload, sessionmaker
from sqlalchemy.types import Time

from positions import canonical, is_known_department, is_known_position
from schedule_types import (
    INACTIVE_SHIFT_STATUSES,
    REQUEST_STATUSES,
    REQUEST_TYPES,
    SHIFT_STATUS_CHOICES,
    DayAvailability,
    EmployeeRecord,
    RecurrencePattern,
    ShiftRecord,
    ShiftRequestRecord,
    paid_hours,
    shift_from_payload,
)
from timeutils import parse_date, parse_time, week_start


DATA_DIR = Path(__file__).resolve().parent / "data"
DATA_DIR.mkdir(parents=True, exist_ok=True)
EMPLOYEE_DATABASE_URL = f"sqlite:///{(DATA_DIR / 'employees.db').as_posix()}"
SCHEDULE_DATABASE_URL = f"sqlite:///{(DATA_DIR / 'schedule.db').as_posix()}"
EMPLOYEE_STATUS_CHOICES = {"active", "inactive"}

logger = logging.getLogger(__name__)


class EmployeeNotFoundError(LookupError):
    pass


class ShiftNotFoundError(LookupError):
    pass


class ShiftRequestNotFoundError(LookupError):
    pass


def _utcnow() -> datetime.datetime:
    return datetime.datetime.now(datetime.timezone.utc)


def _time_label(value: Optional[datetime.time]) -> Optional[str]:
    if value is None:
        return None
    return value.strftime("%H:%M")


class EmployeeBase(DeclarativeBase):
    """Standalone metadata for employee tables living in employees.db."""

    pass


class Base(DeclarativeBase):
    """Metadata for shift, request and audit tables living in schedule.db."""

    pass


class Employee(EmployeeBase):
    __tablename__ = "employees"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    first_name: Mapped[str] = mapped_column(String(60), nullable=False)
    last_name: Mapped[str] = mapped_column(String(60), nullable=False, default="")
    email: Mapped[str] = mapped_column(String(120), nullable=False, default="")
    phone: Mapped[str] = mapped_column(String(40), nullable=False, default="")
    position: Mapped[str] = mapped_column(String(40), nullable=False)
    department: Mapped[str] = mapped_column(String(40), nullable=False)
    hourly_rate: Mapped[float] = mapped_column(Float, nullable=False, default=0.0)
    hire_date: Mapped[datetime.date | None] = mapped_column(Date, nullable=True)
    status: Mapped[str] = mapped_column(String(12), default="active", nullable=False)
    skills: Mapped[str] = mapped_column(String(255), default="", nullable=False)
    max_hours_per_week: Mapped[float | None] = mapped_column(Float, nullable=True)
    unavailable_dates: Mapped[str] = mapped_column(String(2000), default="", nullable=False)
    created_at: Mapped[datetime.datetime] = mapped_column(DateTime(timezone=True), default=_utcnow)
    updated_at: Mapped[datetime.datetime] = mapped_column(DateTime(timezone=True), default=_utcnow, onupdate=_utcnow)

    availability: Mapped[List["EmployeeAvailability"]] = relationship(
        back_populates="employee", cascade="all, delete-orphan"
    )

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}".strip()

    @property
    def skill_list(self) -> List[str]:
        return [skill.strip() for skill in self.skills.split(",") if skill.strip()]

    @skill_list.setter
    def skill_list(self, skills: Iterable[str]) -> None:
        self.skills = ", ".join(sorted({skill.strip() for skill in skills if skill.strip()}))

    @property
    def unavailable_date_list(self) -> List[datetime.date]:
        return [parse_date(token) for token in self.unavailable_dates.split(",") if token.strip()]

    @unavailable_date_list.setter
    def unavailable_date_list(self, dates: Iterable[Any]) -> None:
        self.unavailable_dates = ",".join(sorted({parse_date(value).isoformat() for value in dates}))


class EmployeeAvailability(EmployeeBase):
    __tablename__ = "employee_availability"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    employee_id: Mapped[int] = mapped_column(ForeignKey("employees.id", ondelete="CASCADE"))
    day_of_week: Mapped[int] = mapped_column(Integer, nullable=False)  # 0 = Monday
    available: Mapped[bool] = mapped_column(Integer, nullable=False, default=1)
    start_time: Mapped[datetime.time | None] = mapped_column(Time, nullable=True)
    end_time: Mapped[datetime.time | None] = mapped_column(Time, nullable=True)

    employee: Mapped[Employee] = relationship(back_populates="availability")

    __table_args__ = (UniqueConstraint("employee_id", "day_of_week", name="uq_employee_availability_day"),)


class Shift(Base):
    __tablename__ = "shifts"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    employee_id: Mapped[int] = mapped_column(Integer, nullable=False)
    date: Mapped[datetime.date] = mapped_column(Date, nullable=False)
    start_time: Mapped[datetime.time] = mapped_column(Time, nullable=False)
    end_time: Mapped[datetime.time] = mapped_column(Time, nullable=False)
    position: Mapped[str] = mapped_column(String(40), nullable=False)
    department: Mapped[str] = mapped_column(String(40), nullable=False)
    status: Mapped[str] = mapped_column(String(16), nullable=False, default="scheduled")
    hourly_rate: Mapped[float] = mapped_column(Float, nullable=False, default=0.0)
    total_hours: Mapped[float] = mapped_column(Float, nullable=False, default=0.0)
    total_pay: Mapped[float] = mapped_column(Float, nullable=False, default=0.0)
    overtime_hours: Mapped[float] = mapped_column(Float, nullable=False, default=0.0)
    break_minutes: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    break_paid: Mapped[bool] = mapped_column(Integer, nullable=False, default=0)
    notes: Mapped[str] = mapped_column(String(255), nullable=False, default="")
    recurrenceJSON: Mapped[str] = mapped_column(String(255), nullable=False, default="")
    created_at: Mapped[datetime.datetime] = mapped_column(DateTime(timezone=True), default=_utcnow)
    updated_at: Mapped[datetime.datetime] = mapped_column(DateTime(timezone=True), default=_utcnow, onupdate=_utcnow)


class ShiftRequest(Base):
    __tablename__ = "shift_requests"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    employee_id: Mapped[int] = mapped_column(Integer, nullable=False)
    request_type: Mapped[str] = mapped_column(String(16), nullable=False)
    original_shift_id: Mapped[int | None] = mapped_column(Integer, nullable=True)
    requested_date: Mapped[datetime.date] = mapped_column(Date, nullable=False)
    requested_start_time: Mapped[datetime.time | None] = mapped_column(Time, nullable=True)
    requested_end_time: Mapped[datetime.time | None] = mapped_column(Time, nullable=True)
    reason: Mapped[str] = mapped_column(String(255), nullable=False, default="")
    status: Mapped[str] = mapped_column(String(16), nullable=False, default="pending")
    submitted_at: Mapped[datetime.datetime] = mapped_column(DateTime(timezone=True), default=_utcnow)
    reviewed_at: Mapped[datetime.datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    reviewed_by: Mapped[str | None] = mapped_column(String(60), nullable=True)
    notes: Mapped[str] = mapped_column(String(255), nullable=False, default="")


class AuditLog(Base):
    __tablename__ = "audit_log"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user_id: Mapped[str] = mapped_column(String(60), nullable=False)
    action: Mapped[str] = mapped_column(String(60), nullable=False)
    target_type: Mapped[str] = mapped_column(String(32), nullable=False, default="Shift")
    target_id: Mapped[int | None] = mapped_column(Integer, nullable=True)
    payloadJSON: Mapped[str] = mapped_column(String(2000), nullable=False, default="{}")
    created_at: Mapped[datetime.datetime] = mapped_column(DateTime(timezone=True), default=_utcnow)


employee_engine = create_engine(
    EMPLOYEE_DATABASE_URL,
    echo=False,
    future=True,
)
schedule_engine = create_engine(
    SCHEDULE_DATABASE_URL,
    echo=False,
    future=True,
)
SessionLocal = sessionmaker(bind=schedule_engine, expire_on_commit=False, future=True)
EmployeeSessionLocal = sessionmaker(bind=employee_engine, expire_on_commit=False, future=True)


def init_database() -> None:
    EmployeeBase.metadata.create_all(employee_engine)
    Base.metadata.create_all(schedule_engine)


def _coerce_employee_session(session):
    """Return (employee_session, should_close) ensuring we talk to the employee database."""
    if session is None:
        return EmployeeSessionLocal(), True
    bind = getattr(session, "bind", None)
    if bind is schedule_engine and schedule_engine is not employee_engine:
        return EmployeeSessionLocal(), True
    return session, False


# --- record conversion -----------------------------------------------------


def employee_record(employee: Employee) -> EmployeeRecord:
    availability = {
        row.day_of_week: DayAvailability(
            available=bool(row.available),
            start_time=_time_label(row.start_time),
            end_time=_time_label(row.end_time),
        )
        for row in employee.availability
    }
    return EmployeeRecord(
        id=employee.id,
        first_name=employee.first_name,
        last_name=employee.last_name,
        email=employee.email,
        phone=employee.phone,
        position=employee.position,
        department=employee.department,
        hourly_rate=float(employee.hourly_rate or 0.0),
        hire_date=employee.hire_date,
        is_active=employee.status == "active",
        skills=frozenset(employee.skill_list),
        availability=availability,
        max_hours_per_week=employee.max_hours_per_week,
        unavailable_dates=frozenset(employee.unavailable_date_list),
    )


def _recurrence_from_json(payload: str) -> Optional[RecurrencePattern]:
    if not payload:
        return None
    try:
        value = json.loads(payload)
    except json.JSONDecodeError:
        return None
    if not isinstance(value, dict):
        return None
    end_date = value.get("end_date")
    return RecurrencePattern(
        frequency=value.get("frequency") or "weekly",
        days_of_week=tuple(value.get("days_of_week") or ()),
        end_date=parse_date(end_date) if end_date else None,
    )


def _recurrence_to_json(pattern: Optional[RecurrencePattern]) -> str:
    if pattern is None:
        return ""
    return json.dumps(
        {
            "frequency": pattern.frequency,
            "days_of_week": list(pattern.days_of_week),
            "end_date": pattern.end_date.isoformat() if pattern.end_date else None,
        }
    )


def shift_record(shift: Shift, employee_name: Optional[str] = None) -> ShiftRecord:
    return ShiftRecord(
        id=shift.id,
        employee_id=shift.employee_id,
        date=shift.date,
        start_time=_time_label(shift.start_time),
        end_time=_time_label(shift.end_time),
        position=shift.position,
        department=shift.department,
        status=shift.status,
        hourly_rate=float(shift.hourly_rate or 0.0),
        total_hours=float(shift.total_hours or 0.0),
        total_pay=float(shift.total_pay or 0.0),
        overtime_hours=float(shift.overtime_hours or 0.0),
        notes=shift.notes or "",
        break_minutes=int(shift.break_minutes or 0),
        break_paid=bool(shift.break_paid),
        recurrence=_recurrence_from_json(shift.recurrenceJSON),
        employee_name=employee_name,
    )


def shift_request_record(request: ShiftRequest) -> ShiftRequestRecord:
    return ShiftRequestRecord(
        id=request.id,
        employee_id=request.employee_id,
        request_type=request.request_type,
        requested_date=request.requested_date,
        reason=request.reason,
        status=request.status,
        original_shift_id=request.original_shift_id,
        requested_start_time=_time_label(request.requested_start_time),
        requested_end_time=_time_label(request.requested_end_time),
        submitted_at=request.submitted_at,
        reviewed_at=request.reviewed_at,
        reviewed_by=request.reviewed_by,
        notes=request.notes or "",
    )


# --- employees ---------------------------------------------------------------


def fetch_employees(employee_session=None, only_active: bool = False) -> List[EmployeeRecord]:
    employee_session, close_session = _coerce_employee_session(employee_session)
    try:
        stmt = select(Employee).options(selectinload(Employee.availability))
        if only_active:
            stmt = stmt.where(Employee.status == "active")
        stmt = stmt.order_by(Employee.last_name.asc(), Employee.first_name.asc())
        return [employee_record(employee) for employee in employee_session.scalars(stmt)]
    finally:
        if close_session:
            employee_session.close()


def _get_employee(employee_session, employee_id: int) -> Employee:
    employee = employee_session.get(Employee, employee_id)
    if not employee:
        raise EmployeeNotFoundError(f"Employee with id {employee_id} was not found.")
    return employee


def get_employee(employee_session, employee_id: int) -> EmployeeRecord:
    employee_session, close_session = _coerce_employee_session(employee_session)
    try:
        return employee_record(_get_employee(employee_session, employee_id))
    finally:
        if close_session:
            employee_session.close()


def _apply_availability(employee: Employee, availability: Mapping[Any, Any]) -> None:
    employee.availability.clear()
    for day, window in availability.items():
        day_index = int(day)
        if not 0 <= day_index <= 6:
            raise ValueError(f"Weekday index must be between 0 and 6, got {day_index}.")
        if isinstance(window, DayAvailability):
            window = dataclasses.asdict(window)
        window = window or {}
        start = window.get("start_time")
        end = window.get("end_time")
        employee.availability.append(
            EmployeeAvailability(
                day_of_week=day_index,
                available=1 if window.get("available", True) else 0,
                start_time=parse_time(start) if start else None,
                end_time=parse_time(end) if end else None,
            )
        )


def _apply_employee_fields(employee: Employee, data: Mapping[str, Any]) -> None:
    for name in ("first_name", "last_name", "email", "phone"):
        if name in data and data[name] is not None:
            setattr(employee, name, str(data[name]).strip())
    if "position" in data:
        if not is_known_position(data["position"]):
            raise ValueError(f"Unknown position '{data['position']}'.")
        employee.position = canonical(data["position"])
    if "department" in data:
        if not is_known_department(data["department"]):
            raise ValueError(f"Unknown department '{data['department']}'.")
        employee.department = canonical(data["department"])
    if "hourly_rate" in data:
        rate = float(data["hourly_rate"] or 0.0)
        if rate < 0:
            raise ValueError("Hourly rate cannot be negative.")
        employee.hourly_rate = round(rate, 2)
    if data.get("hire_date"):
        employee.hire_date = parse_date(data["hire_date"])
    if "status" in data:
        status = str(data["status"]).strip().lower()
        if status not in EMPLOYEE_STATUS_CHOICES:
            raise ValueError(f"Unsupported employee status '{data['status']}'.")
        employee.status = status
    if "skills" in data:
        employee.skill_list = data["skills"] or []
    if "max_hours_per_week" in data:
        value = data["max_hours_per_week"]
        employee.max_hours_per_week = float(value) if value not in (None, "") else None
    if "unavailable_dates" in data:
        employee.unavailable_date_list = data["unavailable_dates"] or []
    if "availability" in data:
        _apply_availability(employee, data["availability"] or {})


def create_employee(employee_session, data: Mapping[str, Any]) -> EmployeeRecord:
    for name in ("first_name", "position", "department"):
        if not data.get(name):
            raise ValueError(f"Employee {name.replace('_', ' ')} is required.")
    employee_session, close_session = _coerce_employee_session(employee_session)
    try:
        employee = Employee(first_name="", position="", department="")
        _apply_employee_fields(employee, data)
        employee_session.add(employee)
        employee_session.commit()
        employee_session.refresh(employee)
        logger.info("Created employee %s (%s)", employee.id, employee.full_name)
        return employee_record(employee)
    finally:
        if close_session:
            employee_session.close()


def update_employee(employee_session, employee_id: int, data: Mapping[str, Any]) -> EmployeeRecord:
    employee_session, close_session = _coerce_employee_session(employee_session)
    try:
        employee = _get_employee(employee_session, employee_id)
        _apply_employee_fields(employee, data)
        employee_session.commit()
        employee_session.refresh(employee)
        return employee_record(employee)
    finally:
        if close_session:
            employee_session.close()


def deactivate_employee(employee_session, employee_id: int) -> EmployeeRecord:
    """Employees are never deleted; they are flagged inactive."""
    return update_employee(employee_session, employee_id, {"status": "inactive"})


# --- shifts ------------------------------------------------------------------


def fetch_shifts(
    session,
    start: Optional[datetime.date] = None,
    end: Optional[datetime.date] = None,
    *,
    employee_session=None,
) -> List[ShiftRecord]:
    stmt = select(Shift).order_by(Shift.date, Shift.start_time, Shift.id)
    if start is not None:
        stmt = stmt.where(Shift.date >= parse_date(start))
    if end is not None:
        stmt = stmt.where(Shift.date <= parse_date(end))
    shifts = list(session.scalars(stmt))
    employee_session, close_session = _coerce_employee_session(employee_session)
    try:
        names = {employee.id: employee.full_name for employee in employee_session.scalars(select(Employee))}
    finally:
        if close_session:
            employee_session.close()
    return [shift_record(shift, names.get(shift.employee_id)) for shift in shifts]


def recompute_week_overtime(
    session,
    employee_id: Optional[int],
    date_value: datetime.date,
    overtime_threshold: float = 40.0,
) -> None:
    """Re-spread overtime across an employee's ISO week.

    Active shifts fill the weekly threshold in date and start order; every hour
    past it is overtime. Cancelled and no-show shifts carry none.
    """
    if not employee_id:
        return
    monday = week_start(date_value)
    stmt = (
        select(Shift)
        .where(
            Shift.employee_id == employee_id,
            Shift.date >= monday,
            Shift.date <= monday + datetime.timedelta(days=6),
        )
        .order_by(Shift.date, Shift.start_time, Shift.id)
    )
    worked = 0.0
    for row in session.scalars(stmt):
        if row.status in INACTIVE_SHIFT_STATUSES:
            row.overtime_hours = 0.0
            continue
        hours = float(row.total_hours or 0.0)
        row.overtime_hours = round(min(hours, max(0.0, worked + hours - overtime_threshold)), 4)
        worked += hours
    session.commit()


def _normalize_shift(record: ShiftRecord, employee: Employee) -> ShiftRecord:
    if not record.date or not record.start_time or not record.end_time:
        raise ValueError("Shift date, start time and end time are required.")
    if parse_time(record.end_time) <= parse_time(record.start_time):
        raise ValueError("Shift end time must be after start time.")
    status = (record.status or "scheduled").lower()
    if status not in SHIFT_STATUS_CHOICES:
        raise ValueError(f"Unsupported shift status '{record.status}'.")
    position = canonical(record.position or employee.position)
    department = canonical(record.department or employee.department)
    if not is_known_position(position):
        raise ValueError(f"Unknown position '{record.position}'.")
    if not is_known_department(department):
        raise ValueError(f"Unknown department '{record.department}'.")
    rate = float(record.hourly_rate or employee.hourly_rate or 0.0)
    return dataclasses.replace(
        record,
        status=status,
        position=position,
        department=department,
        hourly_rate=rate,
    )


def _store_shift(
    session,
    db_shift: Shift,
    record: ShiftRecord,
    employee: Employee,
    overtime_threshold: float,
) -> ShiftRecord:
    record = _normalize_shift(record, employee)
    hours = max(0.0, paid_hours(record.start_time, record.end_time, record.break_minutes, record.break_paid))
    previous = (db_shift.employee_id, db_shift.date)
    db_shift.employee_id = record.employee_id
    db_shift.date = record.date
    db_shift.start_time = parse_time(record.start_time)
    db_shift.end_time = parse_time(record.end_time)
    db_shift.position = record.position
    db_shift.department = record.department
    db_shift.status = record.status
    db_shift.hourly_rate = record.hourly_rate
    db_shift.total_hours = hours
    db_shift.total_pay = round(hours * record.hourly_rate, 2)
    db_shift.overtime_hours = 0.0
    db_shift.break_minutes = int(record.break_minutes or 0)
    db_shift.break_paid = 1 if record.break_paid else 0
    db_shift.notes = record.notes or ""
    db_shift.recurrenceJSON = _recurrence_to_json(record.recurrence)
    session.add(db_shift)
    session.commit()
    recompute_week_overtime(session, record.employee_id, record.date, overtime_threshold)
    if previous[1] is not None and (
        previous[0] != record.employee_id or week_start(previous[1]) != week_start(record.date)
    ):
        recompute_week_overtime(session, previous[0], previous[1], overtime_threshold)
    session.refresh(db_shift)
    return shift_record(db_shift, employee.full_name)


def _load_employee_for(employee_session, employee_id: Optional[int]) -> Employee:
    if not employee_id:
        raise ValueError("Shift employee is required.")
    return _get_employee(employee_session, employee_id)


def create_shift(
    session,
    data: ShiftRecord,
    *,
    employee_session=None,
    actor: str = "system",
    overtime_threshold: float = 40.0,
) -> ShiftRecord:
    """Persist a new shift.

    Hours, pay and overtime are recomputed here from the times, the employee's
    rate snapshot and the employee's other shifts in the same ISO week.
    """
    employee_session, close_session = _coerce_employee_session(employee_session)
    try:
        employee = _load_employee_for(employee_session, data.employee_id)
        db_shift = Shift()
        try:
            created = _store_shift(session, db_shift, dataclasses.replace(data, id=None), employee, overtime_threshold)
        except Exception:
            session.rollback()
            raise
    finally:
        if close_session:
            employee_session.close()
    record_audit_log(session, actor, "SHIFT_CREATE", target_id=created.id, payload={"date": created.date.isoformat()})
    logger.info("Created shift %s for employee %s on %s", created.id, created.employee_id, created.date)
    return created


def update_shift(
    session,
    shift_id: int,
    data: Mapping[str, Any],
    *,
    employee_session=None,
    actor: str = "system",
    overtime_threshold: float = 40.0,
) -> ShiftRecord:
    """Apply a partial update; unspecified fields keep their stored values."""
    db_shift = session.get(Shift, shift_id)
    if not db_shift:
        raise ShiftNotFoundError(f"Shift with id {shift_id} was not found.")
    current = shift_record(db_shift)
    known = {item.name for item in dataclasses.fields(ShiftRecord)} - {"id", "employee_name"}
    parsed = shift_from_payload(data)
    changes = {key: getattr(parsed, key) for key in data if key in known}
    if changes.get("hourly_rate") in (None, ""):
        changes.pop("hourly_rate", None)
    merged = dataclasses.replace(current, **changes)
    employee_session, close_session = _coerce_employee_session(employee_session)
    try:
        employee = _load_employee_for(employee_session, merged.employee_id)
        try:
            updated = _store_shift(session, db_shift, merged, employee, overtime_threshold)
        except Exception:
            session.rollback()
            raise
    finally:
        if close_session:
            employee_session.close()
    record_audit_log(session, actor, "SHIFT_UPDATE", target_id=shift_id, payload={"fields": sorted(changes)})
    return updated


def delete_shift(
    session,
    shift_id: int,
    *,
    actor: str = "system",
    overtime_threshold: float = 40.0,
) -> None:
    db_shift = session.get(Shift, shift_id)
    if not db_shift:
        raise ShiftNotFoundError(f"Shift with id {shift_id} was not found.")
    employee_id, shift_date = db_shift.employee_id, db_shift.date
    session.delete(db_shift)
    session.commit()
    recompute_week_overtime(session, employee_id, shift_date, overtime_threshold)
    record_audit_log(session, actor, "SHIFT_DELETE", target_id=shift_id)
    logger.info("Deleted shift %s", shift_id)


# --- shift requests ----------------------------------------------------------


def fetch_shift_requests(session, status: Optional[str] = None) -> List[ShiftRequestRecord]:
    stmt = select(ShiftRequest).order_by(ShiftRequest.submitted_at.desc(), ShiftRequest.id.desc())
    if status and status.lower() != "all":
        if status.lower() not in REQUEST_STATUSES:
            raise ValueError(f"Unsupported request status '{status}'.")
        stmt = stmt.where(ShiftRequest.status == status.lower())
    return [shift_request_record(request) for request in session.scalars(stmt)]


def create_shift_request(session, data: Mapping[str, Any], *, actor: str = "system") -> ShiftRequestRecord:
    request_type = str(data.get("request_type") or "").lower()
    if request_type not in REQUEST_TYPES:
        raise ValueError(f"Unsupported request type '{data.get('request_type')}'.")
    if not data.get("employee_id"):
        raise ValueError("Shift request employee is required.")
    if not data.get("requested_date"):
        raise ValueError("Shift request date is required.")
    original_shift_id = data.get("original_shift_id")
    if original_shift_id and not session.get(Shift, original_shift_id):
        raise ShiftNotFoundError(f"Shift with id {original_shift_id} was not found.")
    start = data.get("requested_start_time")
    end = data.get("requested_end_time")
    request = ShiftRequest(
        employee_id=int(data["employee_id"]),
        request_type=request_type,
        original_shift_id=original_shift_id,
        requested_date=parse_date(data["requested_date"]),
        requested_start_time=parse_time(start) if start else None,
        requested_end_time=parse_time(end) if end else None,
        reason=str(data.get("reason") or ""),
        notes=str(data.get("notes") or ""),
        status="pending",
    )
    session.add(request)
    session.commit()
    session.refresh(request)
    record_audit_log(session, actor, "REQUEST_CREATE", target_type="ShiftRequest", target_id=request.id)
    return shift_request_record(request)


def review_shift_request(
    session,
    request_id: int,
    *,
    approve: bool,
    reviewer: str,
    notes: str = "",
) -> ShiftRequestRecord:
    request = session.get(ShiftRequest, request_id)
    if not request:
        raise ShiftRequestNotFoundError(f"Shift request with id {request_id} was not found.")
    if request.status != "pending":
        raise ValueError(f"Shift request {request_id} was already {request.status}.")
    request.status = "approved" if approve else "rejected"
    request.reviewed_at = _utcnow()
    request.reviewed_by = reviewer
    if notes:
        request.notes = notes
    session.commit()
    session.refresh(request)
    record_audit_log(
        session,
        reviewer,
        "REQUEST_APPROVE" if approve else "REQUEST_REJECT",
        target_type="ShiftRequest",
        target_id=request.id,
    )
    return shift_request_record(request)


def record_audit_log(
    session,
    user_id: str,
    action: str,
    target_type: str = "Shift",
    target_id: Optional[int] = None,
    payload: Optional[Dict[str, Any]] = None,
) -> AuditLog:
    log = AuditLog(
        user_id=user_id,
        action=action,
        target_type=target_type,
        target_id=target_id,
        payloadJSON=json.dumps(payload or {}),
    )
    session.add(log)
    session.commit()
    return log
