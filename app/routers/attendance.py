from fastapi import APIRouter, Depends
from sqlalchemy import func
from sqlalchemy.orm import Session
from datetime import date, datetime, timedelta
from typing import List, Optional
import logging
from app.core.exceptions import ConflictError, NotFoundError
from app.core.schemas import ApiResponse, PageParams
from app.database import get_db
from app.dependencies import (
    check_employee_access, get_current_employee, get_current_user, page_params, require_hr, require_manager,
)
from app.models.attendance import Attendance
from app.models.employee import Employee
from app.models.user import User
from app.schemas.attendance import (
    AttendanceCreate, AttendanceReportRow, AttendanceResponse, AttendanceStats, AttendanceUpdate, CheckInOut,
)
from app.services import attendance_service

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/attendance", tags=["attendance"])


def _get_record(db: Session, attendance_id: int) -> Attendance:
    record = db.get(Attendance, attendance_id)
    if record is None:
        raise NotFoundError("Attendance record")
    return record


# --- Employee self-service ---

@router.post("/check-in", response_model=AttendanceResponse)
def check_in(
    payload: Optional[CheckInOut] = None,
    db: Session = Depends(get_db),
    employee: Employee = Depends(get_current_employee),
):
    record = attendance_service.check_in(db, employee, datetime.now(), payload.notes if payload else None)
    logger.info(f"{employee.employee_code} checked in ({record.status})")
    return record


@router.post("/check-out", response_model=AttendanceResponse)
def check_out(
    payload: Optional[CheckInOut] = None,
    db: Session = Depends(get_db),
    employee: Employee = Depends(get_current_employee),
):
    record = attendance_service.check_out(db, employee, datetime.now(), payload.notes if payload else None)
    logger.info(f"{employee.employee_code} checked out after {record.worked_hours}h")
    return record


@router.get("/my-attendance", response_model=ApiResponse[List[AttendanceResponse]])
def my_attendance(
    page: PageParams = Depends(page_params),
    db: Session = Depends(get_db),
    employee: Employee = Depends(get_current_employee),
):
    query = db.query(Attendance).filter(Attendance.employee_id == employee.id)
    total = query.count()
    items = query.order_by(Attendance.date.desc()).offset(page.offset).limit(page.limit).all()
    return ApiResponse.ok(
        [AttendanceResponse.model_validate(r) for r in items],
        metadata={"pagination": page.pagination(total).model_dump()},
    )


# --- Reports ---

@router.get("/stats/overview", response_model=AttendanceStats)
def attendance_stats(
    date_from: Optional[date] = None,
    date_to: Optional[date] = None,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_manager),
):
    date_to = date_to or date.today()
    date_from = date_from or date_to - timedelta(days=30)
    window = db.query(Attendance).filter(Attendance.date >= date_from, Attendance.date <= date_to)

    by_status = dict(
        window.with_entities(Attendance.status, func.count(Attendance.id)).group_by(Attendance.status).all()
    )
    avg_hours = window.with_entities(func.avg(Attendance.worked_hours)).scalar() or 0.0
    return AttendanceStats(
        date_from=date_from,
        date_to=date_to,
        total_records=sum(by_status.values()),
        by_status=by_status,
        average_worked_hours=round(float(avg_hours), 2),
    )


@router.get("/reports/export", response_model=ApiResponse[List[AttendanceReportRow]])
def attendance_report(
    date_from: Optional[date] = None,
    date_to: Optional[date] = None,
    department_id: Optional[int] = None,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_hr),
):
    """Every matching record, newest first, with the employee and department attached."""
    query = db.query(Attendance).join(Attendance.employee)
    if date_from is not None:
        query = query.filter(Attendance.date >= date_from)
    if date_to is not None:
        query = query.filter(Attendance.date <= date_to)
    if department_id is not None:
        query = query.filter(Employee.department_id == department_id)

    rows = [AttendanceReportRow.from_record(r) for r in query.order_by(Attendance.date.desc(), Attendance.id).all()]
    return ApiResponse.ok(rows, metadata={"count": len(rows)})


# --- HR management ---

@router.get("/", response_model=ApiResponse[List[AttendanceResponse]])
def list_attendance(
    employee_id: Optional[int] = None,
    date_from: Optional[date] = None,
    date_to: Optional[date] = None,
    page: PageParams = Depends(page_params),
    db: Session = Depends(get_db),
    current_user: User = Depends(require_manager),
):
    query = db.query(Attendance)
    if employee_id is not None:
        query = query.filter(Attendance.employee_id == employee_id)
    if date_from is not None:
        query = query.filter(Attendance.date >= date_from)
    if date_to is not None:
        query = query.filter(Attendance.date <= date_to)

    total = query.count()
    items = query.order_by(Attendance.date.desc(), Attendance.id).offset(page.offset).limit(page.limit).all()
    return ApiResponse.ok(
        [AttendanceResponse.model_validate(r) for r in items],
        metadata={"pagination": page.pagination(total).model_dump()},
    )


@router.get("/{attendance_id}", response_model=AttendanceResponse)
def get_attendance(
    attendance_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    record = _get_record(db, attendance_id)
    check_employee_access(current_user, record.employee_id, db)
    return record


@router.post("/", response_model=AttendanceResponse, status_code=201)
def create_attendance(
    payload: AttendanceCreate,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_hr),
):
    if db.get(Employee, payload.employee_id) is None:
        raise NotFoundError("Employee")
    if attendance_service.find_for_day(db, payload.employee_id, payload.date):
        raise ConflictError("Attendance already recorded for this date")

    record = Attendance(**payload.model_dump())
    attendance_service.apply_times(record)
    db.add(record)
    db.commit()
    db.refresh(record)
    return record


@router.put("/{attendance_id}", response_model=AttendanceResponse)
def update_attendance(
    attendance_id: int,
    payload: AttendanceUpdate,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_hr),
):
    record = _get_record(db, attendance_id)
    for field, value in payload.model_dump(exclude_unset=True).items():
        setattr(record, field, value)
    attendance_service.apply_times(record)
    db.commit()
    db.refresh(record)
    return record


@router.delete("/{attendance_id}", response_model=ApiResponse[None])
def delete_attendance(
    attendance_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_hr),
):
    record = _get_record(db, attendance_id)
    db.delete(record)
    db.commit()
    return ApiResponse.ok(None, message="Attendance record deleted successfully")
