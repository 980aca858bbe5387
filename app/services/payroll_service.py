"""
Payroll Service Layer

This module provides the business logic layer for payroll operations.
It encapsulates salary arithmetic and database access, keeping the router
focused on HTTP request/response handling.

Architecture:
- Router -> Service (this module) -> Models
- All pay rules are implemented here
"""

from sqlalchemy.orm import Session
from sqlalchemy import func
from typing import Any, Dict, Optional
from datetime import datetime, timezone
import logging

from app.core.exceptions import ConflictError, NotFoundError, ValidationFailedError
from app.models.employee import Employee, EmployeeStatus
from app.models.payroll import Payroll, PayrollStatus
from app.models.user import User
from app.schemas.payroll import PayrollInputs, PayrollResponse, Payslip

logger = logging.getLogger(__name__)

# Simplified statutory rates; combined into one withholding rate
TAX_RATES = {
    "federal": 0.15,
    "state": 0.05,
    "local": 0.02,
    "social_security": 0.062,
    "medicare": 0.0145,
}
COMBINED_TAX_RATE = sum(TAX_RATES.values())

STANDARD_HOURS_PER_MONTH = 40 * 52 / 12
OVERTIME_MULTIPLIER = 1.5

# Records in these states may still be recalculated or edited
EDITABLE_STATUSES = (PayrollStatus.DRAFT.value, PayrollStatus.CALCULATED.value)


def compute_pay(annual_salary: float, inputs: PayrollInputs) -> Dict[str, float]:
    """
    Monthly pay breakdown for an annual base salary.

    Returns:
        Dict with base_salary, overtime_pay, gross_salary, tax and net_salary
    """
    monthly_base = annual_salary / 12
    hourly_rate = monthly_base / STANDARD_HOURS_PER_MONTH
    overtime_pay = inputs.overtime_hours * hourly_rate * OVERTIME_MULTIPLIER
    gross = monthly_base + inputs.allowances + overtime_pay + inputs.bonuses
    tax = gross * COMBINED_TAX_RATE
    net = gross - tax - inputs.other_deductions
    return {
        "base_salary": round(monthly_base, 2),
        "overtime_pay": round(overtime_pay, 2),
        "gross_salary": round(gross, 2),
        "tax": round(tax, 2),
        "net_salary": round(net, 2),
    }


def get_payroll(db: Session, payroll_id: int) -> Payroll:
    payroll = db.get(Payroll, payroll_id)
    if payroll is None:
        raise NotFoundError("Payroll record")
    return payroll


def payslip_number(payroll: Payroll) -> str:
    return f"PS-{payroll.year}-{payroll.month}-{payroll.employee.employee_code}"


def build_payslip(payroll: Payroll, generated_at: datetime) -> Payslip:
    return Payslip(
        payroll=PayrollResponse.model_validate(payroll),
        generated_date=generated_at,
        payslip_number=payslip_number(payroll),
    )


def _find_period(db: Session, employee_id: int, month: int, year: int) -> Optional[Payroll]:
    return db.query(Payroll).filter(
        Payroll.employee_id == employee_id,
        Payroll.month == month,
        Payroll.year == year,
    ).first()


def calculate_payroll(
    db: Session,
    employee_id: int,
    month: int,
    year: int,
    inputs: PayrollInputs,
    create_only: bool = False,
) -> Payroll:
    """
    Calculate (or recalculate) an employee's payroll for one month.

    Args:
        db: Database session
        employee_id: ID of the employee
        month, year: Pay period
        inputs: Allowances, overtime hours, bonuses and deductions
        create_only: Refuse to overwrite an existing record for the period
    """
    employee = db.get(Employee, employee_id)
    if employee is None:
        raise NotFoundError("Employee")
    if employee.status == EmployeeStatus.TERMINATED.value:
        raise ValidationFailedError("Cannot run payroll for a terminated employee")

    payroll = _find_period(db, employee_id, month, year)
    if payroll is not None:
        if create_only:
            raise ConflictError("Payroll already exists for this period")
        if payroll.status not in EDITABLE_STATUSES:
            raise ValidationFailedError(f"Payroll is already {payroll.status}")
    else:
        payroll = Payroll(employee_id=employee_id, month=month, year=year)
        db.add(payroll)

    breakdown = compute_pay(employee.base_salary, inputs)
    payroll.allowances = inputs.allowances
    payroll.overtime_hours = inputs.overtime_hours
    payroll.bonuses = inputs.bonuses
    payroll.other_deductions = inputs.other_deductions
    for field, value in breakdown.items():
        setattr(payroll, field, value)
    payroll.status = PayrollStatus.CALCULATED.value

    db.commit()
    db.refresh(payroll)
    logger.info(
        f"Payroll calculated for {employee.employee_code} {month:02d}/{year}",
        extra={"net_salary": payroll.net_salary},
    )
    return payroll


def update_payroll(db: Session, payroll: Payroll, changes: Dict[str, Any]) -> Payroll:
    """Apply edits; pay inputs trigger a recalculation of the breakdown."""
    input_fields = set(PayrollInputs.model_fields)
    edited = {name: value for name, value in changes.items() if name in input_fields and value is not None}
    if edited:
        if payroll.status not in EDITABLE_STATUSES:
            raise ValidationFailedError(f"Payroll is already {payroll.status}")
        inputs = PayrollInputs(**{
            name: edited.get(name, getattr(payroll, name)) for name in input_fields
        })
        employee = db.get(Employee, payroll.employee_id)
        for field, value in inputs.model_dump().items():
            setattr(payroll, field, value)
        for field, value in compute_pay(employee.base_salary, inputs).items():
            setattr(payroll, field, value)

    if "status" in changes and changes["status"] is not None:
        payroll.status = PayrollStatus(changes["status"]).value
        if payroll.status == PayrollStatus.PAID.value and payroll.payment_date is None:
            payroll.payment_date = datetime.now(timezone.utc)
    if changes.get("payment_date") is not None:
        payroll.payment_date = changes["payment_date"]

    db.commit()
    db.refresh(payroll)
    return payroll


def approve_payroll(db: Session, payroll: Payroll, approver: User) -> Payroll:
    if payroll.status != PayrollStatus.CALCULATED.value:
        raise ValidationFailedError("Only calculated payrolls can be approved")
    payroll.status = PayrollStatus.APPROVED.value
    payroll.approved_by = approver.id
    db.commit()
    db.refresh(payroll)
    logger.info(f"Payroll {payroll.id} approved by {approver.email}")
    return payroll


def payroll_totals(db: Session, year: Optional[int] = None, month: Optional[int] = None) -> Dict[str, Any]:
    query = db.query(Payroll)
    if year is not None:
        query = query.filter(Payroll.year == year)
    if month is not None:
        query = query.filter(Payroll.month == month)

    by_status = dict(
        query.with_entities(Payroll.status, func.count(Payroll.id)).group_by(Payroll.status).all()
    )
    gross, net, tax = query.with_entities(
        func.coalesce(func.sum(Payroll.gross_salary), 0.0),
        func.coalesce(func.sum(Payroll.net_salary), 0.0),
        func.coalesce(func.sum(Payroll.tax), 0.0),
    ).one()
    return {
        "total_records": sum(by_status.values()),
        "by_status": by_status,
        "total_gross": round(float(gross), 2),
        "total_net": round(float(net), 2),
        "total_tax": round(float(tax), 2),
    }
