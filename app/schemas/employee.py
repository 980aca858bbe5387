from pydantic import BaseModel, EmailStr, Field, ConfigDict
from typing import Optional
from datetime import date, datetime
from app.models.employee import EmployeeStatus, EmploymentType, WorkLocation


class EmployeeBase(BaseModel):
    first_name: str = Field(..., min_length=2, max_length=50)
    last_name: str = Field(..., min_length=2, max_length=50)
    email: EmailStr
    phone: Optional[str] = None
    department_id: Optional[int] = None
    position: str = Field(..., min_length=2, max_length=100)
    employment_type: EmploymentType = EmploymentType.FULL_TIME
    work_location: WorkLocation = WorkLocation.OFFICE
    join_date: date
    base_salary: float = Field(..., ge=0)
    currency: str = Field("USD", min_length=3, max_length=3)


class EmployeeCreate(EmployeeBase):
    user_id: Optional[int] = None


class EmployeeUpdate(BaseModel):
    first_name: Optional[str] = Field(None, min_length=2, max_length=50)
    last_name: Optional[str] = Field(None, min_length=2, max_length=50)
    email: Optional[EmailStr] = None
    phone: Optional[str] = None
    department_id: Optional[int] = None
    position: Optional[str] = Field(None, min_length=2, max_length=100)
    employment_type: Optional[EmploymentType] = None
    work_location: Optional[WorkLocation] = None
    base_salary: Optional[float] = Field(None, ge=0)
    status: Optional[EmployeeStatus] = None


class EmployeeResponse(EmployeeBase):
    model_config = ConfigDict(from_attributes=True)

    id: int
    employee_code: str
    user_id: Optional[int] = None
    full_name: str
    status: EmployeeStatus
    created_at: Optional[datetime] = None
