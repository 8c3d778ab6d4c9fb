"""
Integration test for health endpoint.

Demonstrates:
- Testing critical path (API is reachable)
- Testing contracts (response structure matches HealthResponse schema)
- Minimal integration test that proves the stack works
"""

import pytest
from fastapi.testclient import TestClient


@pytest.fixture
def client():
    """Create FastAPI test client."""
    from canvas_agent.main import app

    return TestClient(app)


def test_health_endpoint_returns_200(client: TestClient):
    """
    Demonstrates: Integration test for critical path.

    The health endpoint needs no providers, so it answers even when no
    command service has been built.
    """
    response = client.get("/health")

    assert response.status_code == 200
    data = response.json()
    assert data["status"] == "healthy"
    assert data["service"] == "canvas-agent"
    assert data["version"]


def test_health_endpoint_uses_correct_content_type(client: TestClient):
    response = client.get("/health")

    assert "application/json" in response.headers["content-type"]
