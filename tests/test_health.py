"""Tests for health check endpoint."""

from fastapi.testclient import TestClient

from focus_reports.main import app

client = TestClient(app)


def test_health_check():
    """Test that health endpoint returns 200 OK."""
    response = client.get("/health")
    assert response.status_code == 200
    assert response.json() == {"status": "ok"}
