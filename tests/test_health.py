import pytest
from fastapi import status

def test_health_check(client):
    """Test the /health endpoint returns 200 and up status."""
    response = client.get("/health")
    assert response.status_code == status.HTTP_200_OK
    data = response.json()
    assert data["status"] == "up"
    assert data["database"] == "connected"
    assert data["environment"] == "testing"
    assert "version" in data
    assert "timestamp" in data

def test_root_endpoint(client):
    """Test the API root endpoint."""
    response = client.get("/")
    assert response.status_code == 200
    assert "HR Management API" in response.json()["message"]

def test_health_is_not_rate_limited(client):
    """Operational endpoints sit outside the API prefix."""
    for _ in range(105):
        response = client.get("/health")
    assert response.status_code == status.HTTP_200_OK
