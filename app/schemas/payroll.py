from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel
from datetime import datetime
from typing import Dict, Optional
from app.models.payroll import PayrollStatus


class PayrollInputs(BaseModel):
    allowances: float = Field(0.0, ge=0)
    overtime_hours: float = Field(0.0, ge=0)
    bonuses: float = Field(0.0, ge=0)
    other_deductions: float = Field(0.0, ge=0)


class PayrollCalculateRequest(PayrollInputs):
    month: int = Field(..., ge=1, le=12)
    year: int = Field(..., ge=2000, le=2100)


class PayrollCreate(PayrollCalculateRequest):
    employee_id: int


class PayrollUpdate(BaseModel):
    allowances: Optional[float] = Field(None, ge=0)
    overtime_hours: Optional[float] = Field(None, ge=0)
    bonuses: Optional[float] = Field(None, ge=0)
    other_deductions: Optional[float] = Field(None, ge=0)
    status: Optional[PayrollStatus] = None
    payment_date: Optional[datetime] = None


class PayrollResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    employee_id: int
    month: int
    year: int
    base_salary: float
    allowances: float
    overtime_hours: float
    overtime_pay: float
    bonuses: float
    tax: float
    other_deductions: float
    gross_salary: float
    net_salary: float
    status: PayrollStatus
    payment_date: Optional[datetime] = None
    approved_by: Optional[int] = None


class PayrollStats(BaseModel):
    total_records: int
    by_status: Dict[str, int]
    total_gross: float
    total_net: float
    total_tax: float


class Payslip(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    payroll: PayrollResponse
    generated_date: datetime
    payslip_number: str  # PS-<year>-<month>-<employee code>
