import re

import pytest
from fastapi import status

from app.models.performance_review import PerformanceReview

FILENAME_PATTERN = r'attachment; filename="performance_report_Jane_Doe_\d{13}\.txt"'


@pytest.fixture
def reviews(db_session, employee):
    db_session.add_all([
        PerformanceReview(
            employee_id=employee.id, review_period="2024-Q1", overall_score=4.0, status="completed",
            goals_achieved=3, total_goals=4, achievements="Teamwork, Ownership", areas_for_improvement="Delegation",
        ),
        PerformanceReview(
            employee_id=employee.id, review_period="2024-Q1", overall_score=5.0, status="completed",
            goals_achieved=4, total_goals=4, achievements="Ownership, Mentoring", areas_for_improvement="Estimation",
        ),
        PerformanceReview(employee_id=employee.id, review_period="2023-Q4", overall_score=2.0, status="completed"),
    ])
    db_session.commit()


def test_report_json_uses_camel_case(client, hr_user, employee, reviews, auth_headers):
    response = client.get(
        f"/api/performance/report?employee_id={employee.id}&period=2024-Q1",
        headers=auth_headers(hr_user),
    )
    assert response.status_code == status.HTTP_200_OK
    assert response.json() == {
        "employee": "Jane Doe",
        "period": "2024-Q1",
        "evaluations": 2,
        "averageScore": 4.5,
        "goalAchievementRate": 88,
        "topStrengths": ["Teamwork", "Ownership", "Mentoring"],
        "improvementAreas": ["Delegation", "Estimation"],
    }


def test_report_for_empty_period(client, hr_user, employee, reviews, auth_headers):
    response = client.get(
        f"/api/performance/report?employee_id={employee.id}&period=2019",
        headers=auth_headers(hr_user),
    )
    assert response.status_code == status.HTTP_404_NOT_FOUND
    assert response.json()["message"] == "No performance data found for the selected criteria"


def test_report_export_download(client, employee_user, employee, reviews, auth_headers):
    response = client.get(
        f"/api/performance/report/export?employee_id={employee.id}&period=2024-Q1",
        headers=auth_headers(employee_user),
    )
    assert response.status_code == status.HTTP_200_OK
    assert response.headers["content-type"].startswith("text/plain")
    assert re.match(FILENAME_PATTERN, response.headers["content-disposition"])
    lines = response.text.splitlines()
    assert lines[0] == "Performance Report"
    assert "Average Score: 4.5/5" in lines
    assert "Goal Achievement Rate: 88%" in lines
    assert re.fullmatch(r"Generated on: \d{2}/\d{2}/\d{4}", lines[-1])


def test_report_of_other_employee_forbidden(client, employee_user, employee, make_employee, auth_headers):
    other = make_employee("Grace", "Hopper")
    response = client.get(
        f"/api/performance/report?employee_id={other.id}&period=2024-Q1",
        headers=auth_headers(employee_user),
    )
    assert response.status_code == status.HTTP_403_FORBIDDEN


def test_export_posted_report_data(client, employee_user, auth_headers):
    body = {
        "employee": "Jane Doe",
        "period": "2024-Q1",
        "evaluations": 2,
        "averageScore": 4.0,
        "goalAchievementRate": 87,
        "topStrengths": ["Teamwork"],
        "improvementAreas": [],
    }
    response = client.post("/api/performance/report/export", json=body, headers=auth_headers(employee_user))
    assert response.status_code == status.HTTP_200_OK
    assert re.match(FILENAME_PATTERN, response.headers["content-disposition"])
    assert "Average Score: 4.0/5\nGoal Achievement Rate: 87%\n" in response.text
    assert "Top Strengths:\n- Teamwork\n\nAreas for Improvement:\n\nGenerated on:" in response.text


def test_export_rejects_out_of_range_score(client, employee_user, auth_headers):
    body = {"employee": "Jane Doe", "period": "2024", "evaluations": 1, "averageScore": 7, "goalAchievementRate": 0}
    response = client.post("/api/performance/report/export", json=body, headers=auth_headers(employee_user))
    assert response.status_code == status.HTTP_400_BAD_REQUEST


def test_review_lifecycle(client, hr_user, employee_user, employee, auth_headers):
    created = client.post("/api/performance/", json={
        "employee_id": employee.id,
        "review_period": "2024-Q2",
        "overall_score": 3.5,
        "goals_achieved": 2,
        "total_goals": 3,
        "achievements": "Reliability",
    }, headers=auth_headers(hr_user))
    assert created.status_code == status.HTTP_201_CREATED
    review = created.json()
    assert review["status"] == "draft"
    assert review["reviewer_id"] == hr_user.id

    # Drafts are invisible to the employee
    assert client.get("/api/performance/my-reviews", headers=auth_headers(employee_user)).json() == []

    # Acknowledging before completion is refused
    early = client.put(f"/api/performance/{review['id']}/acknowledge", headers=auth_headers(employee_user))
    assert early.status_code == status.HTTP_400_BAD_REQUEST

    submitted = client.put(f"/api/performance/{review['id']}/submit", headers=auth_headers(hr_user)).json()
    assert submitted["status"] == "in-review"
    assert submitted["submitted_at"] is not None

    completed = client.put(f"/api/performance/{review['id']}/complete", headers=auth_headers(hr_user)).json()
    assert completed["status"] == "completed"

    acknowledged = client.put(f"/api/performance/{review['id']}/acknowledge", headers=auth_headers(employee_user))
    assert acknowledged.json()["status"] == "acknowledged"

    locked = client.put(
        f"/api/performance/{review['id']}", json={"overall_score": 5}, headers=auth_headers(hr_user)
    )
    assert locked.status_code == status.HTTP_400_BAD_REQUEST


def test_create_review_goal_check(client, hr_user, employee, auth_headers):
    response = client.post("/api/performance/", json={
        "employee_id": employee.id,
        "review_period": "2024-Q2",
        "overall_score": 3,
        "goals_achieved": 5,
        "total_goals": 3,
    }, headers=auth_headers(hr_user))
    assert response.status_code == status.HTTP_400_BAD_REQUEST


def test_update_review_goal_check(client, hr_user, employee, reviews, db_session, auth_headers):
    review = db_session.query(PerformanceReview).filter(PerformanceReview.total_goals == 4).first()
    response = client.put(
        f"/api/performance/{review.id}", json={"goals_achieved": 9}, headers=auth_headers(hr_user)
    )
    assert response.status_code == status.HTTP_400_BAD_REQUEST


def test_list_and_stats(client, hr_user, employee, reviews, auth_headers):
    listing = client.get("/api/performance/?period=2024-Q1", headers=auth_headers(hr_user)).json()
    assert listing["metadata"]["pagination"]["total"] == 2

    stats = client.get("/api/performance/stats/overview", headers=auth_headers(hr_user)).json()
    assert stats["total_reviews"] == 3
    assert stats["by_status"] == {"completed": 3}
    assert stats["average_score"] == pytest.approx(3.67)
    assert stats["high_performers"] == 2
    assert stats["needs_improvement"] == 1


def test_delete_review_requires_hr(client, employee_user, hr_user, employee, reviews, db_session, auth_headers):
    review_id = db_session.query(PerformanceReview).first().id
    assert client.delete(f"/api/performance/{review_id}", headers=auth_headers(employee_user)).status_code == 403
    assert client.delete(f"/api/performance/{review_id}", headers=auth_headers(hr_user)).status_code == 200


def test_export_goes_through_app_dashboard(app, client, employee_user, auth_headers):
    body = {"employee": "  Jane Doe ", "period": "2024", "evaluations": 1, "averageScore": 4, "goalAchievementRate": 50}
    response = client.post("/api/performance/report/export", json=body, headers=auth_headers(employee_user))
    assert response.status_code == status.HTTP_200_OK
    export = app.state.dashboard.events.last_export
    assert export is not None
    assert export.filename.startswith("performance_report_Jane_Doe_")
    assert export.filename in response.headers["content-disposition"]


def test_export_rejects_blank_employee(client, employee_user, auth_headers):
    body = {"employee": "   ", "period": "2024", "evaluations": 1, "averageScore": 4, "goalAchievementRate": 50}
    response = client.post("/api/performance/report/export", json=body, headers=auth_headers(employee_user))
    assert response.status_code == status.HTTP_400_BAD_REQUEST
