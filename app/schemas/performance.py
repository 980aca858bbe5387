from pydantic import BaseModel, ConfigDict, Field, model_validator
from pydantic.alias_generators import to_camel
from datetime import date, datetime
from typing import Dict, List, Optional
from app.models.performance_review import ReviewType, ReviewStatus


class PerformanceReviewBase(BaseModel):
    review_period: str = Field(..., min_length=1, max_length=50)
    period_start: Optional[date] = None
    period_end: Optional[date] = None
    review_type: ReviewType = ReviewType.QUARTERLY
    overall_score: float = Field(..., ge=0, le=5)
    goals_achieved: int = Field(0, ge=0)
    total_goals: int = Field(0, ge=0)
    achievements: Optional[str] = None
    areas_for_improvement: Optional[str] = None
    comments: Optional[str] = None

    @model_validator(mode="after")
    def check_goals(self):
        if self.goals_achieved > self.total_goals:
            raise ValueError("goals_achieved cannot exceed total_goals")
        return self


class PerformanceReviewCreate(PerformanceReviewBase):
    employee_id: int


class PerformanceReviewUpdate(BaseModel):
    review_period: Optional[str] = Field(None, min_length=1, max_length=50)
    overall_score: Optional[float] = Field(None, ge=0, le=5)
    goals_achieved: Optional[int] = Field(None, ge=0)
    total_goals: Optional[int] = Field(None, ge=0)
    achievements: Optional[str] = None
    areas_for_improvement: Optional[str] = None
    comments: Optional[str] = None


class PerformanceReviewResponse(PerformanceReviewBase):
    model_config = ConfigDict(from_attributes=True)

    id: int
    employee_id: int
    reviewer_id: Optional[int] = None
    status: ReviewStatus
    submitted_at: Optional[datetime] = None
    acknowledged_at: Optional[datetime] = None


class PerformanceStats(BaseModel):
    total_reviews: int
    by_status: Dict[str, int]
    average_score: float
    high_performers: int  # score >= 4
    needs_improvement: int  # score < 3


class ReportData(BaseModel):
    """One employee's aggregated performance metrics, as shown and exported by the dashboard."""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, str_strip_whitespace=True)

    employee: str = Field(..., min_length=1)
    period: str
    evaluations: int = Field(..., ge=0)
    average_score: float = Field(..., ge=0, le=5)
    goal_achievement_rate: int = Field(..., ge=0)
    top_strengths: List[str] = []
    improvement_areas: List[str] = []
