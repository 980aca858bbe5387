from pydantic import BaseModel, ConfigDict, Field, model_validator
from datetime import date, datetime
from typing import Dict, Optional
from app.models.leave_request import LeaveType, LeaveStatus

class LeaveRequestCreate(BaseModel):
    leave_type: LeaveType
    start_date: date
    end_date: date
    reason: str = Field(..., min_length=10, max_length=500)

    @model_validator(mode="after")
    def check_dates(self):
        if self.end_date < self.start_date:
            raise ValueError("end_date must not be before start_date")
        return self

class LeaveRequestUpdate(BaseModel):
    leave_type: Optional[LeaveType] = None
    start_date: Optional[date] = None
    end_date: Optional[date] = None
    reason: Optional[str] = Field(None, min_length=10, max_length=500)

class LeaveRequestResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    employee_id: int
    leave_type: LeaveType
    start_date: date
    end_date: date
    days_count: float
    reason: str
    status: LeaveStatus
    approved_by: Optional[int] = None
    approver_comment: Optional[str] = None
    decided_at: Optional[datetime] = None

class LeaveDecision(BaseModel):
    comment: Optional[str] = Field(None, max_length=500)

class LeaveBalanceResponse(BaseModel):
    leave_type: LeaveType
    total_days: float
    used_days: float
    remaining_days: float
    year: int

class LeaveStats(BaseModel):
    total_requests: int
    by_status: Dict[str, int]
    by_type: Dict[str, int]
    approved_days: float
