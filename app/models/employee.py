from sqlalchemy import Column, Integer, String, Float, Date, DateTime, ForeignKey
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from app.database import Base
import enum


class EmployeeStatus(str, enum.Enum):
    ACTIVE = "active"
    INACTIVE = "inactive"
    TERMINATED = "terminated"
    ON_LEAVE = "on-leave"


class EmploymentType(str, enum.Enum):
    FULL_TIME = "full-time"
    PART_TIME = "part-time"
    CONTRACT = "contract"
    INTERN = "intern"


class WorkLocation(str, enum.Enum):
    OFFICE = "office"
    REMOTE = "remote"
    HYBRID = "hybrid"


class Employee(Base):
    __tablename__ = "employees"

    id = Column(Integer, primary_key=True, index=True)
    employee_code = Column(String, unique=True, index=True, nullable=False)  # EMP0001
    user_id = Column(Integer, ForeignKey("users.id"), unique=True, nullable=True)

    first_name = Column(String, nullable=False)
    last_name = Column(String, nullable=False)
    email = Column(String, unique=True, index=True, nullable=False)
    phone = Column(String, nullable=True)

    department_id = Column(Integer, ForeignKey("departments.id"), nullable=True, index=True)
    position = Column(String, nullable=False)
    employment_type = Column(String, default=EmploymentType.FULL_TIME.value, nullable=False)
    work_location = Column(String, default=WorkLocation.OFFICE.value, nullable=False)
    join_date = Column(Date, nullable=False)

    base_salary = Column(Float, nullable=False)  # annual
    currency = Column(String, default="USD", nullable=False)
    status = Column(String, default=EmployeeStatus.ACTIVE.value, nullable=False, index=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())

    user = relationship("User", back_populates="employee_profile")
    department = relationship("Department", foreign_keys=[department_id], back_populates="employees")

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}"

    def __repr__(self):
        return f"<Employee {self.employee_code}: {self.full_name}>"
