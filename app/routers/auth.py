from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session
from datetime import datetime, timezone
import logging
from app.core import security
from app.core.exceptions import AccessDeniedError, AuthenticationError, ConflictError, ValidationFailedError
from app.core.schemas import ApiResponse
from app.database import get_db
from app.models.user import User, UserRole
from app.routers.auth_deps import get_current_user, get_employee_profile
from app.schemas.auth import LoginRequest, Token, UserCreate, UserResponse, UserUpdate, PasswordChange

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/auth",
    tags=["auth"]
)


def _user_response(db: Session, user: User) -> UserResponse:
    user_data = UserResponse.model_validate(user)
    employee = get_employee_profile(db, user)
    user_data.employee_id = employee.id if employee else None
    return user_data


def _issue_token(db: Session, user: User) -> Token:
    access_token = security.create_access_token(data={
        "sub": str(user.id),
        "role": user.role.value,
        "user_id": user.id,
    })
    return Token(access_token=access_token, user=_user_response(db, user))


@router.post("/register", response_model=Token, status_code=status.HTTP_201_CREATED)
def register(payload: UserCreate, db: Session = Depends(get_db)):
    if db.query(User).filter(User.email == payload.email).first():
        raise ConflictError("User already exists with this email")

    # Privileged accounts are only self-registered while bootstrapping an empty system
    if payload.role != UserRole.EMPLOYEE and db.query(User).count() > 0:
        raise AccessDeniedError("Only the first account may register with an elevated role")

    user = User(
        email=payload.email,
        full_name=payload.full_name,
        hashed_password=security.get_password_hash(payload.password),
        role=payload.role,
        is_active=True,
    )
    db.add(user)
    db.commit()
    db.refresh(user)
    logger.info(f"Registered user {user.email} ({user.role.value})")
    return _issue_token(db, user)


@router.post("/login", response_model=Token)
def login(login_data: LoginRequest, db: Session = Depends(get_db)):
    # JSON body instead of form-data for frontend compatibility
    user = db.query(User).filter(User.email == login_data.email).first()
    if not user or not security.verify_password(login_data.password, user.hashed_password):
        logger.warning("Failed login", extra={"email": login_data.email})
        raise AuthenticationError("Invalid credentials")
    if not user.is_active:
        raise AccessDeniedError("User is inactive")

    user.last_login = datetime.now(timezone.utc)
    db.commit()
    db.refresh(user)
    return _issue_token(db, user)


@router.post("/logout", response_model=ApiResponse[None])
def logout(current_user: User = Depends(get_current_user)):
    # Tokens are stateless; the client discards its copy
    logger.info(f"User {current_user.email} logged out")
    return ApiResponse.ok(None, message="Successfully logged out")


@router.get("/me", response_model=UserResponse)
def get_me(current_user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    return _user_response(db, current_user)


@router.put("/profile", response_model=UserResponse)
def update_profile(
    update_data: UserUpdate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    """Update current user's profile information."""
    if update_data.email:
        # Check if email is already taken by another user
        existing_user = db.query(User).filter(User.email == update_data.email).first()
        if existing_user and existing_user.id != current_user.id:
            raise ConflictError("Email already in use")
        current_user.email = update_data.email

    if update_data.full_name:
        current_user.full_name = update_data.full_name

    db.commit()
    db.refresh(current_user)
    return _user_response(db, current_user)


@router.put("/change-password", response_model=ApiResponse[None])
def change_password(
    data: PasswordChange,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    """Securely update current user's password."""
    if not security.verify_password(data.current_password, current_user.hashed_password):
        raise ValidationFailedError("Incorrect current password")

    current_user.hashed_password = security.get_password_hash(data.new_password)
    db.commit()
    return ApiResponse.ok(None, message="Password updated successfully")
