"""
Leave workflow rules: day counting, overlap detection, balances and
approval state transitions.
"""
from datetime import date, datetime, timezone
from typing import List, Optional

from sqlalchemy.orm import Session

from app.core.exceptions import ConflictError, ValidationFailedError
from app.models.leave_request import DEFAULT_LEAVE_ALLOCATIONS, LeaveRequest, LeaveStatus, LeaveType
from app.models.user import User
from app.schemas.leave import LeaveBalanceResponse

# Requests in these states block overlapping requests
ACTIVE_STATUSES = (LeaveStatus.PENDING.value, LeaveStatus.APPROVED.value)


def count_days(start_date: date, end_date: date) -> float:
    """Inclusive calendar day count."""
    if end_date < start_date:
        raise ValidationFailedError("end_date must not be before start_date")
    return float((end_date - start_date).days + 1)


def find_overlap(
    db: Session,
    employee_id: int,
    start_date: date,
    end_date: date,
    exclude_id: Optional[int] = None,
) -> Optional[LeaveRequest]:
    query = db.query(LeaveRequest).filter(
        LeaveRequest.employee_id == employee_id,
        LeaveRequest.status.in_(ACTIVE_STATUSES),
        LeaveRequest.start_date <= end_date,
        LeaveRequest.end_date >= start_date,
    )
    if exclude_id is not None:
        query = query.filter(LeaveRequest.id != exclude_id)
    return query.first()


def ensure_no_overlap(db: Session, employee_id: int, start_date: date, end_date: date, exclude_id: Optional[int] = None) -> None:
    if find_overlap(db, employee_id, start_date, end_date, exclude_id):
        raise ConflictError("Leave request overlaps an existing pending or approved leave")


def used_days(db: Session, employee_id: int, leave_type: LeaveType, year: int) -> float:
    approved = db.query(LeaveRequest).filter(
        LeaveRequest.employee_id == employee_id,
        LeaveRequest.leave_type == leave_type.value,
        LeaveRequest.status == LeaveStatus.APPROVED.value,
    ).all()
    return sum(r.days_count for r in approved if r.start_date.year == year)


def balances(db: Session, employee_id: int, year: int) -> List[LeaveBalanceResponse]:
    result = []
    for leave_type, total in DEFAULT_LEAVE_ALLOCATIONS.items():
        used = used_days(db, employee_id, leave_type, year)
        result.append(LeaveBalanceResponse(
            leave_type=leave_type,
            total_days=float(total),
            used_days=used,
            remaining_days=max(float(total) - used, 0.0),
            year=year,
        ))
    return result


def decide(db: Session, leave: LeaveRequest, approver: User, approve: bool, comment: Optional[str]) -> LeaveRequest:
    if leave.status != LeaveStatus.PENDING.value:
        raise ValidationFailedError(f"Leave request is already {leave.status}")

    if approve and leave.leave_type != LeaveType.UNPAID.value:
        leave_type = LeaveType(leave.leave_type)
        year = leave.start_date.year
        remaining = DEFAULT_LEAVE_ALLOCATIONS[leave_type] - used_days(db, leave.employee_id, leave_type, year)
        if leave.days_count > remaining:
            raise ValidationFailedError(
                f"Insufficient {leave_type.value} leave balance: {remaining:g} day(s) remaining"
            )

    leave.status = (LeaveStatus.APPROVED if approve else LeaveStatus.REJECTED).value
    leave.approved_by = approver.id
    leave.approver_comment = comment
    leave.decided_at = datetime.now(timezone.utc)
    db.commit()
    db.refresh(leave)
    return leave
