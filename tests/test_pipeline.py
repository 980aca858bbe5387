import json

import pytest
from fastapi import status
from fastapi.testclient import TestClient

from app.core.config import Config
from app.core.exceptions import DatabaseConnectionError
from app.main import create_app

RATE_LIMIT_MESSAGE = "Too many requests from this IP, please try again later."


def test_unmatched_route_returns_not_found_shape(client):
    response = client.get("/api/does-not-exist")
    assert response.status_code == status.HTTP_404_NOT_FOUND
    assert response.json() == {"success": False, "message": "Not Found - /api/does-not-exist"}


def test_unmatched_root_route(client):
    response = client.get("/nowhere")
    assert response.status_code == status.HTTP_404_NOT_FOUND
    assert response.json()["message"] == "Not Found - /nowhere"


def test_security_headers_present(client):
    response = client.get("/health")
    assert response.headers["X-Content-Type-Options"] == "nosniff"
    assert response.headers["X-Frame-Options"] == "SAMEORIGIN"
    assert "default-src 'self'" in response.headers["Content-Security-Policy"]
    assert "Strict-Transport-Security" in response.headers


def test_security_headers_on_errors(client):
    response = client.get("/api/does-not-exist")
    assert response.headers["X-Content-Type-Options"] == "nosniff"


def test_docs_skip_content_security_policy(client):
    response = client.get("/docs")
    assert response.status_code == status.HTTP_200_OK
    assert "Content-Security-Policy" not in response.headers
    assert response.headers["X-Content-Type-Options"] == "nosniff"


def test_rate_limit_applies_to_api_prefix(client):
    for _ in range(100):
        response = client.get("/api/auth/me")
        assert response.status_code == status.HTTP_401_UNAUTHORIZED

    response = client.get("/api/auth/me")
    assert response.status_code == status.HTTP_429_TOO_MANY_REQUESTS
    assert response.text == RATE_LIMIT_MESSAGE
    assert response.headers["content-type"].startswith("text/plain")
    # Throttled responses still pass through the outer security layer
    assert response.headers["X-Content-Type-Options"] == "nosniff"


def test_rate_limit_is_per_app(client, app):
    other = create_app(Config(environment="testing", database_url="sqlite:///:memory:"))
    assert other.state.limiter is not app.state.limiter


def test_cors_preflight_allows_client_url(client, test_config):
    response = client.options(
        "/api/auth/login",
        headers={
            "Origin": test_config.client_url,
            "Access-Control-Request-Method": "POST",
            "Access-Control-Request-Headers": "Content-Type",
        },
    )
    assert response.status_code == status.HTTP_200_OK
    assert response.headers["access-control-allow-origin"] == test_config.client_url
    assert response.headers["access-control-allow-credentials"] == "true"
    assert "PATCH" in response.headers["access-control-allow-methods"]


def test_cors_rejects_other_origins(client):
    response = client.get("/health", headers={"Origin": "http://evil.example.org"})
    assert "access-control-allow-origin" not in response.headers


def test_oversized_json_body_rejected(client):
    payload = json.dumps({"email": "a@acme.com", "password": "x" * (10 * 1024 * 1024)})
    response = client.post(
        "/api/auth/login",
        content=payload,
        headers={"Content-Type": "application/json"},
    )
    assert response.status_code == status.HTTP_413_REQUEST_ENTITY_TOO_LARGE
    assert response.json()["success"] is False


def test_small_json_body_reaches_route(client):
    response = client.post("/api/auth/login", json={"email": "a@acme.com", "password": "x"})
    assert response.status_code == status.HTTP_401_UNAUTHORIZED


def test_large_responses_are_compressed(client, admin_user, auth_headers, make_employee):
    for i in range(30):
        make_employee(f"Person{i}", "Example", position="Senior Platform Engineer " * 3)
    response = client.get(
        "/api/employees/?limit=100",
        headers={**auth_headers(admin_user), "Accept-Encoding": "gzip"},
    )
    assert response.status_code == status.HTTP_200_OK
    assert response.headers.get("content-encoding") == "gzip"
    assert len(response.json()["data"]) == 30


def test_unhandled_error_becomes_500(test_config):
    app = create_app(test_config)

    @app.get("/api/explode")
    def explode():
        raise RuntimeError("kaboom")

    with TestClient(app, raise_server_exceptions=False) as c:
        response = c.get("/api/explode")
    assert response.status_code == status.HTTP_500_INTERNAL_SERVER_ERROR
    body = response.json()
    assert body["success"] is False
    assert body["message"] == "Internal server error"
    assert "stack" not in body.get("metadata", {})


def test_unhandled_error_keeps_pipeline_headers(test_config):
    app = create_app(test_config)

    @app.get("/api/explode")
    def explode():
        raise RuntimeError("kaboom")

    with TestClient(app) as c:
        response = c.get("/api/explode", headers={"Origin": test_config.client_url})
    assert response.status_code == status.HTTP_500_INTERNAL_SERVER_ERROR
    assert response.headers["X-Content-Type-Options"] == "nosniff"
    assert response.headers["access-control-allow-origin"] == test_config.client_url


def test_stack_trace_only_in_development():
    app = create_app(Config(environment="development", database_url="sqlite:///:memory:"))

    @app.get("/api/explode")
    def explode():
        raise RuntimeError("kaboom")

    with TestClient(app, raise_server_exceptions=False) as c:
        response = c.get("/api/explode")
        assert response.status_code == status.HTTP_500_INTERNAL_SERVER_ERROR
        assert "kaboom" in response.json()["metadata"]["stack"]
        # Development adds the request logger
        assert "X-Request-ID" in c.get("/health").headers


def test_startup_fails_without_database_url():
    app = create_app(Config(environment="testing", database_url=None))
    with pytest.raises(DatabaseConnectionError):
        with TestClient(app):
            pass


def test_startup_fails_on_unreachable_database(tmp_path):
    url = f"sqlite:///{tmp_path}/missing/dir/hr.db"
    app = create_app(Config(environment="testing", database_url=url))
    with pytest.raises(DatabaseConnectionError):
        with TestClient(app):
            pass
