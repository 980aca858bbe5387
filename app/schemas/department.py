from pydantic import BaseModel, Field, ConfigDict
from typing import Dict, Optional
from datetime import datetime


class DepartmentBase(BaseModel):
    """Base schema for department data."""
    name: str = Field(..., min_length=2, max_length=50)
    code: str = Field(..., min_length=2, max_length=10, pattern="^[A-Za-z0-9]+$")
    description: Optional[str] = None
    budget: float = Field(0.0, ge=0)
    manager_id: Optional[int] = None


class DepartmentCreate(DepartmentBase):
    """Schema for creating a new department."""
    pass


class DepartmentUpdate(BaseModel):
    """Schema for updating a department."""
    name: Optional[str] = Field(None, min_length=2, max_length=50)
    code: Optional[str] = Field(None, min_length=2, max_length=10, pattern="^[A-Za-z0-9]+$")
    description: Optional[str] = None
    budget: Optional[float] = Field(None, ge=0)
    manager_id: Optional[int] = None
    is_active: Optional[bool] = None


class DepartmentResponse(DepartmentBase):
    """Schema for department response."""
    model_config = ConfigDict(from_attributes=True)

    id: int
    is_active: bool
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    # Computed fields
    employee_count: Optional[int] = None


class DepartmentStats(BaseModel):
    department_id: int
    name: str
    total_employees: int
    by_status: Dict[str, int]
    total_base_salary: float
    budget: float
    budget_utilization: float  # percentage of budget consumed by base salaries
