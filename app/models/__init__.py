# Models package
# Importing modules here ensures they are registered with SQLAlchemy Base
from . import (
    user, department, employee, attendance,
    leave_request, payroll, performance_review,
)

# Explicit class exports for cleaner imports
from .user import User, UserRole
from .department import Department
from .employee import Employee
from .attendance import Attendance
from .leave_request import LeaveRequest
from .payroll import Payroll
from .performance_review import PerformanceReview

__all__ = [
    "User",
    "UserRole",
    "Department",
    "Employee",
    "Attendance",
    "LeaveRequest",
    "Payroll",
    "PerformanceReview",
]
