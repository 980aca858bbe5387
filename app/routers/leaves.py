from fastapi import APIRouter, Depends
from sqlalchemy import func
from sqlalchemy.orm import Session
from datetime import date
from typing import List, Optional
import logging
from app.core.exceptions import AccessDeniedError, NotFoundError, ValidationFailedError
from app.core.schemas import ApiResponse, PageParams
from app.database import get_db
from app.dependencies import (
    check_employee_access, get_current_employee, get_current_user, page_params, require_hr, require_manager,
)
from app.models.employee import Employee
from app.models.leave_request import LeaveRequest, LeaveStatus, LeaveType
from app.models.user import User
from app.routers.auth_deps import get_employee_profile
from app.schemas.leave import (
    LeaveBalanceResponse, LeaveDecision, LeaveRequestCreate, LeaveRequestResponse, LeaveRequestUpdate, LeaveStats,
)
from app.services import leave_service

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/leaves", tags=["leaves"])


def _get_leave(db: Session, leave_id: int) -> LeaveRequest:
    leave = db.get(LeaveRequest, leave_id)
    if leave is None:
        raise NotFoundError("Leave request")
    return leave


def _ensure_owner_or_hr(db: Session, user: User, leave: LeaveRequest) -> None:
    if user.is_hr:
        return
    employee = get_employee_profile(db, user)
    if employee is None or employee.id != leave.employee_id:
        raise AccessDeniedError("Not authorized to modify this leave request")


# --- Employee self-service ---

@router.get("/my-leaves", response_model=List[LeaveRequestResponse])
def my_leaves(
    status: Optional[LeaveStatus] = None,
    db: Session = Depends(get_db),
    employee: Employee = Depends(get_current_employee),
):
    query = db.query(LeaveRequest).filter(LeaveRequest.employee_id == employee.id)
    if status is not None:
        query = query.filter(LeaveRequest.status == status.value)
    return query.order_by(LeaveRequest.start_date.desc()).all()


@router.get("/my-balance", response_model=List[LeaveBalanceResponse])
def my_balance(
    year: Optional[int] = None,
    db: Session = Depends(get_db),
    employee: Employee = Depends(get_current_employee),
):
    return leave_service.balances(db, employee.id, year or date.today().year)


@router.get("/stats/overview", response_model=LeaveStats)
def leave_stats(
    year: Optional[int] = None,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_hr),
):
    year = year or date.today().year
    window = db.query(LeaveRequest).filter(
        LeaveRequest.start_date >= date(year, 1, 1),
        LeaveRequest.start_date <= date(year, 12, 31),
    )
    by_status = dict(
        window.with_entities(LeaveRequest.status, func.count(LeaveRequest.id)).group_by(LeaveRequest.status).all()
    )
    by_type = dict(
        window.with_entities(LeaveRequest.leave_type, func.count(LeaveRequest.id)).group_by(LeaveRequest.leave_type).all()
    )
    approved_days = (
        window.filter(LeaveRequest.status == LeaveStatus.APPROVED.value)
        .with_entities(func.coalesce(func.sum(LeaveRequest.days_count), 0.0))
        .scalar()
    )
    return LeaveStats(
        total_requests=sum(by_status.values()),
        by_status=by_status,
        by_type=by_type,
        approved_days=float(approved_days),
    )


# --- CRUD ---

@router.get("/", response_model=ApiResponse[List[LeaveRequestResponse]])
def list_leaves(
    employee_id: Optional[int] = None,
    status: Optional[LeaveStatus] = None,
    leave_type: Optional[LeaveType] = None,
    page: PageParams = Depends(page_params),
    db: Session = Depends(get_db),
    current_user: User = Depends(require_manager),
):
    query = db.query(LeaveRequest)
    if employee_id is not None:
        query = query.filter(LeaveRequest.employee_id == employee_id)
    if status is not None:
        query = query.filter(LeaveRequest.status == status.value)
    if leave_type is not None:
        query = query.filter(LeaveRequest.leave_type == leave_type.value)

    total = query.count()
    items = query.order_by(LeaveRequest.start_date.desc()).offset(page.offset).limit(page.limit).all()
    return ApiResponse.ok(
        [LeaveRequestResponse.model_validate(r) for r in items],
        metadata={"pagination": page.pagination(total).model_dump()},
    )


@router.get("/{leave_id}", response_model=LeaveRequestResponse)
def get_leave(
    leave_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    leave = _get_leave(db, leave_id)
    check_employee_access(current_user, leave.employee_id, db)
    return leave


@router.post("/", response_model=LeaveRequestResponse, status_code=201)
def create_leave(
    payload: LeaveRequestCreate,
    db: Session = Depends(get_db),
    employee: Employee = Depends(get_current_employee),
):
    leave_service.ensure_no_overlap(db, employee.id, payload.start_date, payload.end_date)
    leave = LeaveRequest(
        employee_id=employee.id,
        leave_type=payload.leave_type.value,
        start_date=payload.start_date,
        end_date=payload.end_date,
        days_count=leave_service.count_days(payload.start_date, payload.end_date),
        reason=payload.reason,
        status=LeaveStatus.PENDING.value,
    )
    db.add(leave)
    db.commit()
    db.refresh(leave)
    logger.info(f"Leave request {leave.id} submitted by {employee.employee_code}")
    return leave


@router.put("/{leave_id}", response_model=LeaveRequestResponse)
def update_leave(
    leave_id: int,
    payload: LeaveRequestUpdate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    leave = _get_leave(db, leave_id)
    _ensure_owner_or_hr(db, current_user, leave)
    if leave.status != LeaveStatus.PENDING.value:
        raise ValidationFailedError("Only pending leave requests can be updated")

    changes = payload.model_dump(exclude_unset=True)
    start_date = changes.get("start_date", leave.start_date)
    end_date = changes.get("end_date", leave.end_date)
    days = leave_service.count_days(start_date, end_date)
    leave_service.ensure_no_overlap(db, leave.employee_id, start_date, end_date, exclude_id=leave.id)

    if "leave_type" in changes:
        changes["leave_type"] = changes["leave_type"].value
    for field, value in changes.items():
        setattr(leave, field, value)
    leave.days_count = days
    db.commit()
    db.refresh(leave)
    return leave


@router.delete("/{leave_id}", response_model=ApiResponse[None])
def delete_leave(
    leave_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    leave = _get_leave(db, leave_id)
    _ensure_owner_or_hr(db, current_user, leave)
    if leave.status != LeaveStatus.PENDING.value and not current_user.is_hr:
        raise ValidationFailedError("Only pending leave requests can be cancelled")
    db.delete(leave)
    db.commit()
    return ApiResponse.ok(None, message="Leave request deleted successfully")


# --- Approval workflow ---

@router.put("/{leave_id}/approve", response_model=LeaveRequestResponse)
def approve_leave(
    leave_id: int,
    payload: Optional[LeaveDecision] = None,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_manager),
):
    leave = _get_leave(db, leave_id)
    leave = leave_service.decide(db, leave, current_user, True, payload.comment if payload else None)
    logger.info(f"Leave request {leave.id} approved by {current_user.email}")
    return leave


@router.put("/{leave_id}/reject", response_model=LeaveRequestResponse)
def reject_leave(
    leave_id: int,
    payload: Optional[LeaveDecision] = None,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_manager),
):
    leave = _get_leave(db, leave_id)
    leave = leave_service.decide(db, leave, current_user, False, payload.comment if payload else None)
    logger.info(f"Leave request {leave.id} rejected by {current_user.email}")
    return leave
