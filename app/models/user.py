"""
User Model with role-based access.
Every authenticated actor is a User; HR records live on the linked Employee.
"""
from sqlalchemy import Column, Integer, String, Enum, DateTime, Boolean
from sqlalchemy.sql import func
from sqlalchemy.orm import relationship
import enum
from app.database import Base


class UserRole(str, enum.Enum):
    """
    User roles with hierarchical permissions.

    Hierarchy (most to least permissions):
    - ADMIN: Full access, including destructive operations
    - HR: HR staff (employees, payroll, leave, attendance management)
    - MANAGER: Team manager (approvals, reviews)
    - EMPLOYEE: Self-service access
    """
    ADMIN = "admin"
    HR = "hr"
    MANAGER = "manager"
    EMPLOYEE = "employee"


class User(Base):
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)
    email = Column(String, unique=True, index=True, nullable=False)
    hashed_password = Column(String, nullable=False)
    full_name = Column(String, nullable=False)

    role = Column(Enum(UserRole), default=UserRole.EMPLOYEE, nullable=False)

    is_active = Column(Boolean, default=True, nullable=False)
    last_login = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())

    employee_profile = relationship("Employee", back_populates="user", uselist=False)

    def __repr__(self):
        return f"<User {self.email} ({self.role.value})>"

    @property
    def is_hr(self) -> bool:
        """Check if user has an HR-level role."""
        return self.role in [UserRole.ADMIN, UserRole.HR]

    @property
    def can_approve(self) -> bool:
        """Check if user can approve requests (leave, reviews)."""
        return self.role in [UserRole.ADMIN, UserRole.HR, UserRole.MANAGER]
