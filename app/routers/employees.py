from fastapi import APIRouter, Depends, Query
from sqlalchemy import func, or_
from sqlalchemy.orm import Session
from typing import List, Optional
import logging
from app.core.exceptions import ConflictError, NotFoundError
from app.core.schemas import ApiResponse, PageParams
from app.database import get_db
from app.dependencies import check_employee_access, get_current_user, page_params, require_manager
from app.models.department import Department
from app.models.employee import Employee, EmployeeStatus
from app.models.user import User
from app.schemas.employee import EmployeeCreate, EmployeeResponse, EmployeeUpdate

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/employees", tags=["employees"])


def _get_employee(db: Session, employee_id: int) -> Employee:
    employee = db.get(Employee, employee_id)
    if employee is None:
        raise NotFoundError("Employee")
    return employee


def _next_employee_code(db: Session) -> str:
    last_id = db.query(func.max(Employee.id)).scalar() or 0
    return f"EMP{last_id + 1:04d}"


def _ensure_department(db: Session, department_id: Optional[int]) -> None:
    if department_id is not None and db.get(Department, department_id) is None:
        raise NotFoundError("Department")


@router.get("/", response_model=ApiResponse[List[EmployeeResponse]])
def list_employees(
    department_id: Optional[int] = None,
    status: Optional[EmployeeStatus] = None,
    search: Optional[str] = Query(None, max_length=100),
    page: PageParams = Depends(page_params),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    query = db.query(Employee)
    if department_id is not None:
        query = query.filter(Employee.department_id == department_id)
    if status is not None:
        query = query.filter(Employee.status == status.value)
    if search:
        pattern = f"%{search}%"
        query = query.filter(or_(
            Employee.first_name.ilike(pattern),
            Employee.last_name.ilike(pattern),
            Employee.email.ilike(pattern),
            Employee.employee_code.ilike(pattern),
            Employee.position.ilike(pattern),
        ))

    total = query.count()
    items = query.order_by(Employee.id).offset(page.offset).limit(page.limit).all()
    return ApiResponse.ok(
        [EmployeeResponse.model_validate(e) for e in items],
        metadata={"pagination": page.pagination(total).model_dump()},
    )


@router.get("/department/{department_id}", response_model=List[EmployeeResponse])
def list_department_employees(
    department_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    _ensure_department(db, department_id)
    return (
        db.query(Employee)
        .filter(Employee.department_id == department_id, Employee.status == EmployeeStatus.ACTIVE.value)
        .order_by(Employee.last_name, Employee.first_name)
        .all()
    )


@router.get("/{employee_id}", response_model=EmployeeResponse)
def get_employee(
    employee_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    check_employee_access(current_user, employee_id, db)
    return _get_employee(db, employee_id)


@router.post("/", response_model=EmployeeResponse, status_code=201)
def create_employee(
    payload: EmployeeCreate,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_manager),
):
    if db.query(Employee).filter(Employee.email == payload.email).first():
        raise ConflictError("Employee already exists with this email")
    if payload.user_id is not None:
        if db.get(User, payload.user_id) is None:
            raise NotFoundError("User")
        if db.query(Employee).filter(Employee.user_id == payload.user_id).first():
            raise ConflictError("User already has an employee profile")
    _ensure_department(db, payload.department_id)

    employee = Employee(employee_code=_next_employee_code(db), **payload.model_dump())
    db.add(employee)
    db.commit()
    db.refresh(employee)
    logger.info(f"Created employee {employee.employee_code}", extra={"by": current_user.email})
    return employee


@router.put("/{employee_id}", response_model=EmployeeResponse)
def update_employee(
    employee_id: int,
    payload: EmployeeUpdate,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_manager),
):
    employee = _get_employee(db, employee_id)
    changes = payload.model_dump(exclude_unset=True)

    if "email" in changes and changes["email"] != employee.email:
        if db.query(Employee).filter(Employee.email == changes["email"]).first():
            raise ConflictError("Email already in use")
    if "department_id" in changes:
        _ensure_department(db, changes["department_id"])

    for field, value in changes.items():
        setattr(employee, field, value)
    db.commit()
    db.refresh(employee)
    return employee


@router.delete("/{employee_id}", response_model=ApiResponse[None])
def delete_employee(
    employee_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_manager),
):
    employee = _get_employee(db, employee_id)
    db.delete(employee)
    db.commit()
    logger.info(f"Deleted employee {employee.employee_code}", extra={"by": current_user.email})
    return ApiResponse.ok(None, message="Employee deleted successfully")
