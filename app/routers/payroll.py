"""
Payroll Router - HTTP Layer

Role-gated endpoints; all pay rules live in app.services.payroll_service.
"""
from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session
from datetime import datetime, timezone
from typing import List, Optional
from app.core.exceptions import AccessDeniedError
from app.core.schemas import ApiResponse, PageParams
from app.database import get_db
from app.dependencies import get_current_employee, get_current_user, page_params, require_admin, require_hr
from app.models.employee import Employee
from app.models.payroll import Payroll, PayrollStatus
from app.models.user import User
from app.routers.auth_deps import get_employee_profile
from app.schemas.payroll import (
    PayrollCalculateRequest, PayrollCreate, PayrollInputs, PayrollResponse, PayrollStats, PayrollUpdate, Payslip,
)
from app.services import payroll_service

router = APIRouter(prefix="/payroll", tags=["payroll"])


@router.get("/my-payroll", response_model=List[PayrollResponse])
def my_payroll(
    year: Optional[int] = None,
    db: Session = Depends(get_db),
    employee: Employee = Depends(get_current_employee),
):
    query = db.query(Payroll).filter(
        Payroll.employee_id == employee.id,
        Payroll.status.in_([PayrollStatus.APPROVED.value, PayrollStatus.PAID.value]),
    )
    if year is not None:
        query = query.filter(Payroll.year == year)
    return query.order_by(Payroll.year.desc(), Payroll.month.desc()).all()


@router.get("/stats/overview", response_model=PayrollStats)
def payroll_stats(
    year: Optional[int] = None,
    month: Optional[int] = None,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_hr),
):
    return payroll_service.payroll_totals(db, year=year, month=month)


@router.post("/calculate/{employee_id}", response_model=PayrollResponse)
def calculate_payroll(
    employee_id: int,
    payload: PayrollCalculateRequest,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_hr),
):
    inputs = PayrollInputs(**payload.model_dump(include=set(PayrollInputs.model_fields)))
    return payroll_service.calculate_payroll(db, employee_id, payload.month, payload.year, inputs)


@router.get("/", response_model=ApiResponse[List[PayrollResponse]])
def list_payrolls(
    employee_id: Optional[int] = None,
    year: Optional[int] = None,
    month: Optional[int] = None,
    status: Optional[PayrollStatus] = None,
    page: PageParams = Depends(page_params),
    db: Session = Depends(get_db),
    current_user: User = Depends(require_hr),
):
    query = db.query(Payroll)
    if employee_id is not None:
        query = query.filter(Payroll.employee_id == employee_id)
    if year is not None:
        query = query.filter(Payroll.year == year)
    if month is not None:
        query = query.filter(Payroll.month == month)
    if status is not None:
        query = query.filter(Payroll.status == status.value)

    total = query.count()
    items = query.order_by(Payroll.year.desc(), Payroll.month.desc(), Payroll.id).offset(page.offset).limit(page.limit).all()
    return ApiResponse.ok(
        [PayrollResponse.model_validate(p) for p in items],
        metadata={"pagination": page.pagination(total).model_dump()},
    )


@router.get("/{payroll_id}", response_model=PayrollResponse)
def get_payroll(
    payroll_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_hr),
):
    return payroll_service.get_payroll(db, payroll_id)


@router.get("/{payroll_id}/payslip", response_model=Payslip)
def get_payslip(
    payroll_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    payroll = payroll_service.get_payroll(db, payroll_id)
    if not current_user.is_hr:
        employee = get_employee_profile(db, current_user)
        if employee is None or employee.id != payroll.employee_id:
            raise AccessDeniedError("Not authorized to view this payslip")
    return payroll_service.build_payslip(payroll, datetime.now(timezone.utc))


@router.post("/", response_model=PayrollResponse, status_code=201)
def create_payroll(
    payload: PayrollCreate,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_hr),
):
    inputs = PayrollInputs(**payload.model_dump(include=set(PayrollInputs.model_fields)))
    return payroll_service.calculate_payroll(
        db, payload.employee_id, payload.month, payload.year, inputs, create_only=True
    )


@router.put("/{payroll_id}", response_model=PayrollResponse)
def update_payroll(
    payroll_id: int,
    payload: PayrollUpdate,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_hr),
):
    payroll = payroll_service.get_payroll(db, payroll_id)
    return payroll_service.update_payroll(db, payroll, payload.model_dump(exclude_unset=True))


@router.put("/{payroll_id}/approve", response_model=PayrollResponse)
def approve_payroll(
    payroll_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_hr),
):
    payroll = payroll_service.get_payroll(db, payroll_id)
    return payroll_service.approve_payroll(db, payroll, current_user)


@router.delete("/{payroll_id}", response_model=ApiResponse[None])
def delete_payroll(
    payroll_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_admin),
):
    payroll = payroll_service.get_payroll(db, payroll_id)
    db.delete(payroll)
    db.commit()
    return ApiResponse.ok(None, message="Payroll record deleted successfully")
