from sqlalchemy import Column, Integer, String, Date, Float, ForeignKey, DateTime
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from app.database import Base
import enum

class LeaveType(str, enum.Enum):
    ANNUAL = "annual"
    SICK = "sick"
    PERSONAL = "personal"
    MATERNITY = "maternity"
    PATERNITY = "paternity"
    EMERGENCY = "emergency"
    UNPAID = "unpaid"

class LeaveStatus(str, enum.Enum):
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"
    CANCELLED = "cancelled"

# Annual allocation in days per leave type
DEFAULT_LEAVE_ALLOCATIONS = {
    LeaveType.ANNUAL: 25,
    LeaveType.SICK: 10,
    LeaveType.PERSONAL: 5,
    LeaveType.MATERNITY: 90,
    LeaveType.PATERNITY: 15,
    LeaveType.EMERGENCY: 3,
    LeaveType.UNPAID: 0,
}

class LeaveRequest(Base):
    __tablename__ = "leave_requests"

    id = Column(Integer, primary_key=True, index=True)
    employee_id = Column(Integer, ForeignKey("employees.id"), nullable=False, index=True)
    leave_type = Column(String, nullable=False, index=True)
    start_date = Column(Date, nullable=False)
    end_date = Column(Date, nullable=False)
    days_count = Column(Float, nullable=False)
    reason = Column(String, nullable=False)
    status = Column(String, default=LeaveStatus.PENDING.value, nullable=False)  # enum value as plain string
    approved_by = Column(Integer, ForeignKey("users.id"), nullable=True)
    approver_comment = Column(String, nullable=True)
    decided_at = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    employee = relationship("Employee")
