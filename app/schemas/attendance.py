from pydantic import BaseModel, ConfigDict, Field
from typing import Dict, Optional
from datetime import date, datetime
from app.models.attendance import AttendanceStatus


class AttendanceCreate(BaseModel):
    employee_id: int
    date: date
    check_in: Optional[datetime] = None
    check_out: Optional[datetime] = None
    status: AttendanceStatus = AttendanceStatus.PRESENT
    notes: Optional[str] = None


class AttendanceUpdate(BaseModel):
    check_in: Optional[datetime] = None
    check_out: Optional[datetime] = None
    status: Optional[AttendanceStatus] = None
    notes: Optional[str] = None


class CheckInOut(BaseModel):
    notes: Optional[str] = Field(None, max_length=500)


class AttendanceResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    employee_id: int
    date: date
    check_in: Optional[datetime] = None
    check_out: Optional[datetime] = None
    status: AttendanceStatus
    worked_hours: float
    notes: Optional[str] = None


class AttendanceStats(BaseModel):
    date_from: date
    date_to: date
    total_records: int
    by_status: Dict[str, int]
    average_worked_hours: float


class AttendanceReportRow(AttendanceResponse):
    employee_code: str
    employee_name: str
    department: Optional[str] = None

    @classmethod
    def from_record(cls, record) -> "AttendanceReportRow":
        employee = record.employee
        return cls(
            **AttendanceResponse.model_validate(record).model_dump(),
            employee_code=employee.employee_code,
            employee_name=employee.full_name,
            department=employee.department.name if employee.department else None,
        )
