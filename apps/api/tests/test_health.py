"""
Health endpoint and error envelope tests.

These run without the transactional session: /health opens its own
connection.
"""
from fastapi.testclient import TestClient

from main import app


def test_health_ok():
    response = TestClient(app).get("/health")

    assert response.status_code == 200
    assert response.json()["status"] == "healthy"
    assert "X-Process-Time" in response.headers


def test_unknown_route_is_404():
    assert TestClient(app).get("/v1/nothing-here").status_code == 404
