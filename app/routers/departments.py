from fastapi import APIRouter, Depends
from sqlalchemy import func, or_
from sqlalchemy.orm import Session
from typing import List, Optional
import logging
from app.core.exceptions import ConflictError, NotFoundError
from app.core.schemas import ApiResponse
from app.database import get_db
from app.dependencies import get_current_user, require_admin, require_hr
from app.models.department import Department
from app.models.employee import Employee
from app.models.user import User
from app.schemas.department import DepartmentCreate, DepartmentResponse, DepartmentStats, DepartmentUpdate

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/departments", tags=["departments"])


def _get_department(db: Session, department_id: int) -> Department:
    department = db.get(Department, department_id)
    if department is None:
        raise NotFoundError("Department")
    return department


def _to_response(db: Session, department: Department) -> DepartmentResponse:
    response = DepartmentResponse.model_validate(department)
    response.employee_count = db.query(Employee).filter(Employee.department_id == department.id).count()
    return response


def _ensure_unique(db: Session, name: Optional[str], code: Optional[str], exclude_id: Optional[int] = None) -> None:
    clauses = []
    if name:
        clauses.append(Department.name == name)
    if code:
        clauses.append(Department.code == code)
    if not clauses:
        return
    query = db.query(Department).filter(or_(*clauses))
    if exclude_id is not None:
        query = query.filter(Department.id != exclude_id)
    if query.first():
        raise ConflictError("Department with this name or code already exists")


@router.get("/", response_model=List[DepartmentResponse])
def list_departments(
    include_inactive: bool = False,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    query = db.query(Department)
    if not include_inactive:
        query = query.filter(Department.is_active.is_(True))
    return [_to_response(db, d) for d in query.order_by(Department.name).all()]


@router.get("/{department_id}", response_model=DepartmentResponse)
def get_department(
    department_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    return _to_response(db, _get_department(db, department_id))


@router.post("/", response_model=DepartmentResponse, status_code=201)
def create_department(
    payload: DepartmentCreate,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_hr),
):
    code = payload.code.upper()
    _ensure_unique(db, payload.name, code)
    if payload.manager_id is not None and db.get(Employee, payload.manager_id) is None:
        raise NotFoundError("Manager")

    department = Department(**payload.model_dump(exclude={"code"}), code=code)
    db.add(department)
    db.commit()
    db.refresh(department)
    logger.info(f"Created department {department.code}")
    return _to_response(db, department)


@router.put("/{department_id}", response_model=DepartmentResponse)
def update_department(
    department_id: int,
    payload: DepartmentUpdate,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_hr),
):
    department = _get_department(db, department_id)
    changes = payload.model_dump(exclude_unset=True)
    if "code" in changes and changes["code"]:
        changes["code"] = changes["code"].upper()
    _ensure_unique(db, changes.get("name"), changes.get("code"), exclude_id=department.id)
    if changes.get("manager_id") is not None and db.get(Employee, changes["manager_id"]) is None:
        raise NotFoundError("Manager")

    for field, value in changes.items():
        setattr(department, field, value)
    db.commit()
    db.refresh(department)
    return _to_response(db, department)


@router.delete("/{department_id}", response_model=ApiResponse[None])
def delete_department(
    department_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_admin),
):
    department = _get_department(db, department_id)
    if db.query(Employee).filter(Employee.department_id == department.id).count():
        raise ConflictError("Cannot delete department with assigned employees")
    db.delete(department)
    db.commit()
    return ApiResponse.ok(None, message="Department deleted successfully")


@router.get("/{department_id}/stats", response_model=DepartmentStats)
def get_department_stats(
    department_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    department = _get_department(db, department_id)
    rows = (
        db.query(Employee.status, func.count(Employee.id), func.coalesce(func.sum(Employee.base_salary), 0.0))
        .filter(Employee.department_id == department.id)
        .group_by(Employee.status)
        .all()
    )
    by_status = {status: count for status, count, _ in rows}
    total_salary = float(sum(salary for _, _, salary in rows))
    budget = department.budget or 0.0
    return DepartmentStats(
        department_id=department.id,
        name=department.name,
        total_employees=sum(by_status.values()),
        by_status=by_status,
        total_base_salary=round(total_salary, 2),
        budget=budget,
        budget_utilization=round(total_salary / budget * 100, 1) if budget else 0.0,
    )
