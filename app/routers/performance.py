from fastapi import APIRouter, Depends, Query, Response
from sqlalchemy import func
from sqlalchemy.orm import Session
from datetime import datetime, timezone
from typing import List, Optional
import logging
from app.core.exceptions import AccessDeniedError, NotFoundError, ValidationFailedError
from app.core.schemas import ApiResponse, PageParams
from app.database import get_db
from app.dependencies import (
    check_employee_access, get_current_employee, get_current_user, get_dashboard, page_params, require_hr,
    require_manager,
)
from app.dashboard.modals import DashboardContext
from app.models.employee import Employee
from app.models.performance_review import PerformanceReview, ReviewStatus
from app.models.user import User
from app.schemas.performance import (
    PerformanceReviewCreate, PerformanceReviewResponse, PerformanceReviewUpdate, PerformanceStats, ReportData,
)
from app.services import performance_report

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/performance", tags=["performance"])


def _get_review(db: Session, review_id: int) -> PerformanceReview:
    review = db.get(PerformanceReview, review_id)
    if review is None:
        raise NotFoundError("Performance review")
    return review


def _transition(db: Session, review: PerformanceReview, expected: ReviewStatus, target: ReviewStatus) -> PerformanceReview:
    if review.status != expected.value:
        raise ValidationFailedError(f"Review is not in {expected.value} status")
    review.status = target.value
    now = datetime.now(timezone.utc)
    if target == ReviewStatus.IN_REVIEW:
        review.submitted_at = now
    elif target == ReviewStatus.ACKNOWLEDGED:
        review.acknowledged_at = now
    db.commit()
    db.refresh(review)
    logger.info(f"Performance review {review.id} moved to {review.status}")
    return review


def _report_for(db: Session, employee_id: int, period: str) -> ReportData:
    employee = db.get(Employee, employee_id)
    if employee is None:
        raise NotFoundError("Employee")
    reviews = (
        db.query(PerformanceReview)
        .filter(PerformanceReview.employee_id == employee_id, PerformanceReview.review_period == period)
        .order_by(PerformanceReview.id)
        .all()
    )
    return performance_report.build_report_data(employee.full_name, period, reviews)


def _download(report: ReportData, dashboard: DashboardContext) -> Response:
    export = dashboard.export_report(report)
    return Response(
        content=export.body,
        media_type=export.media_type,
        headers={"Content-Disposition": performance_report.content_disposition(export.filename)},
    )


# --- Employee self-service ---

@router.get("/my-reviews", response_model=List[PerformanceReviewResponse])
def my_reviews(
    db: Session = Depends(get_db),
    employee: Employee = Depends(get_current_employee),
):
    return (
        db.query(PerformanceReview)
        .filter(PerformanceReview.employee_id == employee.id, PerformanceReview.status != ReviewStatus.DRAFT.value)
        .order_by(PerformanceReview.id.desc())
        .all()
    )


# --- Reports ---

@router.get("/stats/overview", response_model=PerformanceStats)
def performance_stats(
    period: Optional[str] = None,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_hr),
):
    query = db.query(PerformanceReview)
    if period:
        query = query.filter(PerformanceReview.review_period == period)
    by_status = dict(
        query.with_entities(PerformanceReview.status, func.count(PerformanceReview.id))
        .group_by(PerformanceReview.status).all()
    )
    average = query.with_entities(func.avg(PerformanceReview.overall_score)).scalar() or 0.0
    return PerformanceStats(
        total_reviews=sum(by_status.values()),
        by_status=by_status,
        average_score=round(float(average), 2),
        high_performers=query.filter(PerformanceReview.overall_score >= 4).count(),
        needs_improvement=query.filter(PerformanceReview.overall_score < 3).count(),
    )


@router.get("/report", response_model=ReportData, response_model_by_alias=True)
def get_report(
    employee_id: int,
    period: str = Query(..., min_length=1),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    check_employee_access(current_user, employee_id, db)
    return _report_for(db, employee_id, period)


@router.get("/report/export")
def export_report(
    employee_id: int,
    period: str = Query(..., min_length=1),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
    dashboard: DashboardContext = Depends(get_dashboard),
):
    check_employee_access(current_user, employee_id, db)
    return _download(_report_for(db, employee_id, period), dashboard)


@router.post("/report/export")
def export_report_data(
    report: ReportData,
    current_user: User = Depends(get_current_user),
    dashboard: DashboardContext = Depends(get_dashboard),
):
    """Export a report the dashboard already holds, without re-aggregating."""
    return _download(report, dashboard)


# --- CRUD ---

@router.get("/", response_model=ApiResponse[List[PerformanceReviewResponse]])
def list_reviews(
    employee_id: Optional[int] = None,
    period: Optional[str] = None,
    status: Optional[ReviewStatus] = None,
    page: PageParams = Depends(page_params),
    db: Session = Depends(get_db),
    current_user: User = Depends(require_manager),
):
    query = db.query(PerformanceReview)
    if employee_id is not None:
        query = query.filter(PerformanceReview.employee_id == employee_id)
    if period:
        query = query.filter(PerformanceReview.review_period == period)
    if status is not None:
        query = query.filter(PerformanceReview.status == status.value)

    total = query.count()
    items = query.order_by(PerformanceReview.id.desc()).offset(page.offset).limit(page.limit).all()
    return ApiResponse.ok(
        [PerformanceReviewResponse.model_validate(r) for r in items],
        metadata={"pagination": page.pagination(total).model_dump()},
    )


@router.get("/{review_id}", response_model=PerformanceReviewResponse)
def get_review(
    review_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    review = _get_review(db, review_id)
    check_employee_access(current_user, review.employee_id, db)
    return review


@router.post("/", response_model=PerformanceReviewResponse, status_code=201)
def create_review(
    payload: PerformanceReviewCreate,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_manager),
):
    if db.get(Employee, payload.employee_id) is None:
        raise NotFoundError("Employee")
    review = PerformanceReview(
        **payload.model_dump(),
        reviewer_id=current_user.id,
        status=ReviewStatus.DRAFT.value,
    )
    db.add(review)
    db.commit()
    db.refresh(review)
    return review


@router.put("/{review_id}", response_model=PerformanceReviewResponse)
def update_review(
    review_id: int,
    payload: PerformanceReviewUpdate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    review = _get_review(db, review_id)
    if review.reviewer_id != current_user.id and not current_user.is_hr:
        raise AccessDeniedError("Not authorized to update this performance review")
    if review.status == ReviewStatus.ACKNOWLEDGED.value:
        raise ValidationFailedError("Acknowledged reviews cannot be changed")

    changes = payload.model_dump(exclude_unset=True)
    achieved = changes.get("goals_achieved", review.goals_achieved)
    total = changes.get("total_goals", review.total_goals)
    if achieved is not None and total is not None and achieved > total:
        raise ValidationFailedError("goals_achieved cannot exceed total_goals")

    for field, value in changes.items():
        setattr(review, field, value)
    db.commit()
    db.refresh(review)
    return review


@router.delete("/{review_id}", response_model=ApiResponse[None])
def delete_review(
    review_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_hr),
):
    review = _get_review(db, review_id)
    db.delete(review)
    db.commit()
    return ApiResponse.ok(None, message="Performance review deleted successfully")


# --- Review workflow ---

@router.put("/{review_id}/submit", response_model=PerformanceReviewResponse)
def submit_review(
    review_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_manager),
):
    return _transition(db, _get_review(db, review_id), ReviewStatus.DRAFT, ReviewStatus.IN_REVIEW)


@router.put("/{review_id}/complete", response_model=PerformanceReviewResponse)
def complete_review(
    review_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_manager),
):
    return _transition(db, _get_review(db, review_id), ReviewStatus.IN_REVIEW, ReviewStatus.COMPLETED)


@router.put("/{review_id}/acknowledge", response_model=PerformanceReviewResponse)
def acknowledge_review(
    review_id: int,
    db: Session = Depends(get_db),
    employee: Employee = Depends(get_current_employee),
):
    review = _get_review(db, review_id)
    if review.employee_id != employee.id:
        raise AccessDeniedError("Not authorized to acknowledge this review")
    return _transition(db, review, ReviewStatus.COMPLETED, ReviewStatus.ACKNOWLEDGED)
