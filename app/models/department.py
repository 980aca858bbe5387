from sqlalchemy import Column, Integer, String, DateTime, ForeignKey, Boolean, Text, Float
from sqlalchemy.sql import func
from sqlalchemy.orm import relationship
from app.database import Base


class Department(Base):
    __tablename__ = "departments"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String, unique=True, nullable=False, index=True)
    code = Column(String, unique=True, nullable=False, index=True)  # Short code like "ENG", "HR", "FIN"
    description = Column(Text, nullable=True)
    budget = Column(Float, default=0.0, nullable=False)

    # Department head (an employee)
    manager_id = Column(Integer, ForeignKey("employees.id", use_alter=True, name="fk_department_manager_id"), nullable=True)

    is_active = Column(Boolean, default=True, nullable=False)

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())

    manager = relationship("Employee", foreign_keys=[manager_id], post_update=True)
    employees = relationship("Employee", foreign_keys="Employee.department_id", back_populates="department")

    def __repr__(self):
        return f"<Department {self.code}: {self.name}>"
