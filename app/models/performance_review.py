from sqlalchemy import Column, Integer, String, Float, Date, DateTime, Text, ForeignKey
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from app.database import Base
import enum

class ReviewType(str, enum.Enum):
    QUARTERLY = "quarterly"
    SEMI_ANNUAL = "semi-annual"
    ANNUAL = "annual"
    PROBATION = "probation"
    PROJECT_BASED = "project-based"

class ReviewStatus(str, enum.Enum):
    DRAFT = "draft"
    IN_REVIEW = "in-review"
    COMPLETED = "completed"
    ACKNOWLEDGED = "acknowledged"

class PerformanceReview(Base):
    __tablename__ = "performance_reviews"

    id = Column(Integer, primary_key=True, index=True)
    employee_id = Column(Integer, ForeignKey("employees.id"), nullable=False, index=True)
    reviewer_id = Column(Integer, ForeignKey("users.id"), nullable=True)
    review_period = Column(String, nullable=False, index=True)  # label, e.g. "2024-Q1"
    period_start = Column(Date, nullable=True)
    period_end = Column(Date, nullable=True)
    review_type = Column(String, default=ReviewType.QUARTERLY.value, nullable=False)
    overall_score = Column(Float, nullable=False)  # 0-5
    goals_achieved = Column(Integer, default=0, nullable=False)
    total_goals = Column(Integer, default=0, nullable=False)
    achievements = Column(Text, nullable=True)  # comma-separated strengths
    areas_for_improvement = Column(Text, nullable=True)  # comma-separated
    comments = Column(Text, nullable=True)
    status = Column(String, default=ReviewStatus.DRAFT.value, nullable=False)
    submitted_at = Column(DateTime(timezone=True), nullable=True)
    acknowledged_at = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    employee = relationship("Employee", backref="performance_reviews")
