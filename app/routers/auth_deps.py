"""
RBAC Dependencies.
Provides authentication and role-based access control for FastAPI endpoints.
"""
import logging
from fastapi import Depends
from fastapi.security import OAuth2PasswordBearer
from sqlalchemy.orm import Session
from typing import Callable, Optional
from app.core import security
from app.core.exceptions import AccessDeniedError, AuthenticationError, NotFoundError
from app.database import get_db
from app.models.employee import Employee
from app.models.user import User, UserRole
from app.schemas.auth import TokenData

logger = logging.getLogger(__name__)

oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/api/auth/login")


def get_current_user(token: str = Depends(oauth2_scheme), db: Session = Depends(get_db)) -> User:
    """
    Extracts and validates the current user from the JWT token.
    """
    payload = security.decode_access_token(token)

    if payload is None:
        logger.warning("Authentication failed: Invalid token")
        raise AuthenticationError()

    if payload.get("error") == "TOKEN_EXPIRED":
        logger.info("Authentication failed: Token expired")
        raise AuthenticationError("TOKEN_EXPIRED")

    if payload.get("type") != "access":
        logger.warning("Authentication failed: Invalid token type")
        raise AuthenticationError("Invalid token type")

    subject = payload.get("sub")
    if subject is None or not str(subject).isdigit():
        logger.warning("Authentication failed: Missing subject (user id) in token")
        raise AuthenticationError("Missing subject in token")
    token_data = TokenData(user_id=int(subject), role=payload.get("role"))

    # Subject is the user id; the email is editable
    user = db.get(User, token_data.user_id)
    if user is None:
        logger.warning(f"Authentication failed: User {token_data.user_id} not found in database")
        raise AuthenticationError("User not found")
    if not user.is_active:
        logger.warning(f"Authentication failed: User {user.email} is inactive")
        raise AccessDeniedError("User is inactive")
    return user


def require_role(*allowed_roles: UserRole) -> Callable:
    """
    Dependency factory that checks if the user has one of the allowed roles.

    Usage:
        @router.delete("/{id}")
        def delete_item(user: User = Depends(require_role(UserRole.ADMIN))):
            ...
    """
    def role_checker(current_user: User = Depends(get_current_user)) -> User:
        if current_user.role not in allowed_roles:
            raise AccessDeniedError(
                f"User role {current_user.role.value} is not authorized to access this route"
            )
        return current_user
    return role_checker


# Convenience dependencies matching the route table
require_admin = require_role(UserRole.ADMIN)
require_hr = require_role(UserRole.ADMIN, UserRole.HR)
require_manager = require_role(UserRole.ADMIN, UserRole.HR, UserRole.MANAGER)


def get_employee_profile(db: Session, user: User) -> Optional[Employee]:
    return db.query(Employee).filter(Employee.user_id == user.id).first()


def get_current_employee(
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
) -> Employee:
    """Self-service endpoints act on the caller's own employee record."""
    employee = get_employee_profile(db, current_user)
    if employee is None:
        raise NotFoundError("Employee profile")
    return employee


def check_employee_access(user: User, employee_id: int, db: Session) -> None:
    """
    Management roles can read any record; employees only their own.
    """
    if user.can_approve:
        return
    employee = get_employee_profile(db, user)
    if employee is None or employee.id != employee_id:
        raise AccessDeniedError()
