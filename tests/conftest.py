import pytest
import os
from datetime import date

# Set env before importing app components
os.environ["APP_ENV"] = "testing"
os.environ["DATABASE_URL"] = "sqlite:///:memory:"

from app.core.config import Config
from app.core.security import create_access_token, get_password_hash
from app.database import get_db
from app.main import create_app
from fastapi.testclient import TestClient

# SQLite in-memory database configuration, one database per app instance
SQLALCHEMY_DATABASE_URL = "sqlite:///:memory:"

DEFAULT_PASSWORD = "Password123!"


@pytest.fixture(scope="function")
def test_config():
    return Config(environment="testing", database_url=SQLALCHEMY_DATABASE_URL)


@pytest.fixture(scope="function")
def app(test_config):
    """A fresh application (own database, own rate limiter) for each test."""
    return create_app(test_config)


@pytest.fixture(scope="function")
def client(app):
    """TestClient whose requests share the test session via dependency override."""
    with TestClient(app) as c:
        session = app.state.database.session()

        def override_get_db():
            try:
                yield session
            finally:
                pass

        app.dependency_overrides[get_db] = override_get_db
        c.db_session = session
        yield c
        app.dependency_overrides.clear()
        session.close()


@pytest.fixture(scope="function")
def db_session(client):
    """Session shared with the app under test."""
    return client.db_session


@pytest.fixture(scope="function")
def make_user(db_session):
    """Factory for users with a known password."""
    from app.models.user import User, UserRole

    def _make_user(email, role=UserRole.EMPLOYEE, full_name="Test User", is_active=True):
        user = User(
            email=email,
            hashed_password=get_password_hash(DEFAULT_PASSWORD),
            role=role,
            full_name=full_name,
            is_active=is_active,
        )
        db_session.add(user)
        db_session.commit()
        return user
    return _make_user


@pytest.fixture(scope="function")
def admin_user(make_user):
    from app.models.user import UserRole
    return make_user("admin@acme.com", role=UserRole.ADMIN, full_name="System Admin")


@pytest.fixture(scope="function")
def hr_user(make_user):
    from app.models.user import UserRole
    return make_user("hr@acme.com", role=UserRole.HR, full_name="Harriet Reyes")


@pytest.fixture(scope="function")
def employee_user(make_user):
    from app.models.user import UserRole
    return make_user("jane@acme.com", role=UserRole.EMPLOYEE, full_name="Jane Doe")


@pytest.fixture(scope="function")
def department(db_session):
    from app.models.department import Department
    dept = Department(name="Engineering", code="ENG", description="Builds things", budget=500000)
    db_session.add(dept)
    db_session.commit()
    return dept


@pytest.fixture(scope="function")
def make_employee(db_session):
    from app.models.employee import Employee

    def _make_employee(first_name="Jane", last_name="Doe", user=None, department=None, **overrides):
        count = db_session.query(Employee).count()
        fields = dict(
            employee_code=f"EMP{count + 1:04d}",
            first_name=first_name,
            last_name=last_name,
            email=f"{first_name.lower()}.{last_name.lower()}@acme.com",
            position="Engineer",
            join_date=date(2022, 1, 10),
            base_salary=60000.0,
        )
        fields.update(overrides)
        employee = Employee(
            user_id=user.id if user else None,
            department_id=department.id if department else None,
            **fields,
        )
        db_session.add(employee)
        db_session.commit()
        return employee
    return _make_employee


@pytest.fixture(scope="function")
def employee(make_employee, employee_user, department):
    """Jane Doe, linked to employee_user."""
    return make_employee("Jane", "Doe", user=employee_user, department=department)


@pytest.fixture(scope="function")
def get_token():
    """Helper fixture to create access tokens."""
    def _get_token(user):
        return create_access_token(data={
            "sub": str(user.id),
            "role": user.role.value,
            "user_id": user.id,
        })
    return _get_token


@pytest.fixture(scope="function")
def auth_headers(get_token):
    def _auth_headers(user):
        return {"Authorization": f"Bearer {get_token(user)}"}
    return _auth_headers
