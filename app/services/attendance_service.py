"""
Attendance rules shared by the self-service check-in/out endpoints and
the HR management endpoints.
"""
from datetime import date, datetime, time
from typing import Optional

from sqlalchemy.orm import Session

from app.core.exceptions import ConflictError, ValidationFailedError
from app.models.attendance import Attendance, AttendanceStatus
from app.models.employee import Employee

# Check-ins after this time of day are marked late
LATE_AFTER = time(9, 15)
STANDARD_HOURS_PER_DAY = 8.0
HALF_DAY_HOURS = 4.0


def status_for_check_in(check_in: datetime) -> AttendanceStatus:
    return AttendanceStatus.LATE if check_in.time() > LATE_AFTER else AttendanceStatus.PRESENT


def worked_hours(check_in: Optional[datetime], check_out: Optional[datetime]) -> float:
    if check_in is None or check_out is None:
        return 0.0
    if check_out < check_in:
        raise ValidationFailedError("check_out must be after check_in")
    return round((check_out - check_in).total_seconds() / 3600, 2)


def apply_times(record: Attendance) -> None:
    """Recompute worked hours and downgrade short days to half-day."""
    record.worked_hours = worked_hours(record.check_in, record.check_out)
    if record.check_out is not None and 0 < record.worked_hours < HALF_DAY_HOURS:
        record.status = AttendanceStatus.HALF_DAY.value


def find_for_day(db: Session, employee_id: int, day: date) -> Optional[Attendance]:
    return (
        db.query(Attendance)
        .filter(Attendance.employee_id == employee_id, Attendance.date == day)
        .first()
    )


def check_in(db: Session, employee: Employee, now: datetime, notes: Optional[str] = None) -> Attendance:
    record = find_for_day(db, employee.id, now.date())
    if record is not None and record.check_in is not None:
        raise ConflictError("Already checked in today")

    if record is None:
        record = Attendance(employee_id=employee.id, date=now.date())
        db.add(record)
    record.check_in = now
    record.status = status_for_check_in(now).value
    if notes:
        record.notes = notes
    db.commit()
    db.refresh(record)
    return record


def check_out(db: Session, employee: Employee, now: datetime, notes: Optional[str] = None) -> Attendance:
    record = find_for_day(db, employee.id, now.date())
    if record is None or record.check_in is None:
        raise ValidationFailedError("No check-in record found for today")
    if record.check_out is not None:
        raise ConflictError("Already checked out today")

    record.check_out = now
    apply_times(record)
    if notes:
        record.notes = notes
    db.commit()
    db.refresh(record)
    return record
