import pytest
from fastapi import status

from app.models.employee import Employee


def new_employee_payload(**overrides):
    payload = {
        "first_name": "Alan",
        "last_name": "Turing",
        "email": "alan.turing@acme.com",
        "position": "Research Engineer",
        "join_date": "2023-03-01",
        "base_salary": 90000,
    }
    payload.update(overrides)
    return payload


def test_create_employee_assigns_code(client, hr_user, department, auth_headers):
    response = client.post(
        "/api/employees/",
        json=new_employee_payload(department_id=department.id),
        headers=auth_headers(hr_user),
    )
    assert response.status_code == status.HTTP_201_CREATED
    data = response.json()
    assert data["employee_code"] == "EMP0001"
    assert data["full_name"] == "Alan Turing"
    assert data["status"] == "active"
    assert data["employment_type"] == "full-time"


def test_create_employee_requires_management_role(client, employee_user, auth_headers):
    response = client.post("/api/employees/", json=new_employee_payload(), headers=auth_headers(employee_user))
    assert response.status_code == status.HTTP_403_FORBIDDEN


def test_create_employee_duplicate_email(client, hr_user, employee, auth_headers):
    response = client.post(
        "/api/employees/",
        json=new_employee_payload(email=employee.email),
        headers=auth_headers(hr_user),
    )
    assert response.status_code == status.HTTP_409_CONFLICT


def test_create_employee_unknown_department(client, hr_user, auth_headers):
    response = client.post(
        "/api/employees/",
        json=new_employee_payload(department_id=999),
        headers=auth_headers(hr_user),
    )
    assert response.status_code == status.HTTP_404_NOT_FOUND
    assert response.json()["message"] == "Department not found"


def test_list_employees_paginates_and_filters(client, hr_user, make_employee, department, auth_headers):
    make_employee("Ada", "Lovelace", department=department)
    make_employee("Grace", "Hopper")
    make_employee("Linus", "Torvalds", department=department, status="inactive")

    response = client.get("/api/employees/?limit=2", headers=auth_headers(hr_user))
    body = response.json()
    assert body["success"] is True
    assert len(body["data"]) == 2
    assert body["metadata"]["pagination"] == {"page": 1, "limit": 2, "total": 3, "pages": 2}

    response = client.get(f"/api/employees/?department_id={department.id}&status=active", headers=auth_headers(hr_user))
    assert [e["first_name"] for e in response.json()["data"]] == ["Ada"]

    response = client.get("/api/employees/?search=hopp", headers=auth_headers(hr_user))
    assert [e["last_name"] for e in response.json()["data"]] == ["Hopper"]


def test_department_employees(client, hr_user, make_employee, department, auth_headers):
    make_employee("Ada", "Lovelace", department=department)
    make_employee("Grace", "Hopper")
    response = client.get(f"/api/employees/department/{department.id}", headers=auth_headers(hr_user))
    assert response.status_code == status.HTTP_200_OK
    assert [e["last_name"] for e in response.json()] == ["Lovelace"]


def test_employee_can_read_own_record_only(client, employee_user, employee, make_employee, auth_headers):
    other = make_employee("Grace", "Hopper")
    headers = auth_headers(employee_user)
    assert client.get(f"/api/employees/{employee.id}", headers=headers).status_code == status.HTTP_200_OK
    assert client.get(f"/api/employees/{other.id}", headers=headers).status_code == status.HTTP_403_FORBIDDEN


def test_get_missing_employee(client, hr_user, auth_headers):
    response = client.get("/api/employees/424242", headers=auth_headers(hr_user))
    assert response.status_code == status.HTTP_404_NOT_FOUND
    assert response.json()["message"] == "Employee not found"


def test_update_employee(client, hr_user, employee, auth_headers):
    response = client.put(
        f"/api/employees/{employee.id}",
        json={"position": "Staff Engineer", "status": "on-leave"},
        headers=auth_headers(hr_user),
    )
    assert response.status_code == status.HTTP_200_OK
    data = response.json()
    assert data["position"] == "Staff Engineer"
    assert data["status"] == "on-leave"


def test_delete_employee(client, hr_user, make_employee, db_session, auth_headers):
    target = make_employee("Grace", "Hopper")
    target_id = target.id
    response = client.delete(f"/api/employees/{target_id}", headers=auth_headers(hr_user))
    assert response.status_code == status.HTTP_200_OK
    assert response.json()["message"] == "Employee deleted successfully"
    assert db_session.get(Employee, target_id) is None
