"""
Integration tests for the canvas, command and AI status endpoints.

Demonstrates:
- Testing the HTTP contract with the real FastAPI app and TestClient
- Swapping the command service through FastAPI dependency overrides
- CommandError kinds surfacing as distinct HTTP statuses

No Docker stack or API keys required: providers are scripted fakes and the
document store is in-process.
"""

import pytest
from fastapi.testclient import TestClient

from canvas_agent.api.deps import get_command_service
from canvas_agent.domain.errors import ProviderError
from canvas_agent.domain.provider_catalog import ProviderCatalog
from canvas_agent.domain.rate_limiter import RateLimiter
from canvas_agent.main import app
from canvas_agent.service import CommandService

from tests.fakes import FakeClock, ScriptedProvider, call


@pytest.fixture
def use_agent():
    """Install a CommandService around the given agent; returns a TestClient."""

    def _install(agent) -> TestClient:
        service = CommandService(agent, ProviderCatalog.from_json_file(), validate_keys=False)
        app.dependency_overrides[get_command_service] = lambda: service
        return TestClient(app)

    yield _install
    app.dependency_overrides.clear()


@pytest.fixture
def client(use_agent, make_agent) -> TestClient:
    return use_agent(make_agent())


def _create_canvas(client: TestClient, name: str = "Board") -> int:
    response = client.post("/canvases", json={"name": name})
    assert response.status_code == 201
    return response.json()["id"]


# =============================================================================
# Canvases
# =============================================================================


def test_create_canvas_returns_201(client: TestClient):
    response = client.post("/canvases", json={"name": "Wireframes"})

    assert response.status_code == 201
    data = response.json()
    assert data["name"] == "Wireframes"
    assert isinstance(data["id"], int)


def test_create_canvas_rejects_empty_name(client: TestClient):
    """Demonstrates: Pydantic contract validation at the boundary."""
    response = client.post("/canvases", json={"name": ""})

    assert response.status_code == 422


def test_objects_of_unknown_canvas_is_404(client: TestClient):
    response = client.get("/canvases/999/objects")

    assert response.status_code == 404
    assert response.json()["detail"]["kind"] == "target_not_found"


# =============================================================================
# Commands
# =============================================================================


def test_command_creates_objects(client: TestClient, fast_provider: ScriptedProvider):
    """
    Demonstrates: Critical path through HTTP.

    The response reports classification, provider and per-call results, and
    the objects endpoint sees the new shape.
    """
    canvas_id = _create_canvas(client)
    fast_provider.queue([call("create_shape", type="circle", x=100, y=100, color="red")])

    response = client.post(
        f"/canvases/{canvas_id}/commands",
        json={"text": "create a red circle at 100, 100", "selection": [], "theme": "dark"},
    )

    assert response.status_code == 200
    data = response.json()
    assert data["classification"] == "fast"
    assert data["provider_used"] == fast_provider.name
    assert data["fallback_used"] is False
    assert (data["succeeded"], data["failed"]) == (1, 0)
    assert data["results"][0]["outcome"]["status"] == "success"

    objects = client.get(f"/canvases/{canvas_id}/objects").json()
    assert objects["count"] == 1
    assert objects["objects"][0]["data"]["fill"] == "#FF0000"


def test_tool_failure_is_reported_not_raised(client: TestClient, fast_provider: ScriptedProvider):
    canvas_id = _create_canvas(client)
    fast_provider.queue([call("delete_object", object_id=999)])

    response = client.post(f"/canvases/{canvas_id}/commands", json={"text": "delete object 999"})

    assert response.status_code == 200
    data = response.json()
    assert (data["succeeded"], data["failed"]) == (0, 1)
    assert data["results"][0]["outcome"]["kind"] == "domain_error"


def test_command_on_unknown_canvas_is_404(client: TestClient):
    response = client.post("/canvases/999/commands", json={"text": "create a circle"})

    assert response.status_code == 404


def test_empty_command_text_is_422(client: TestClient):
    canvas_id = _create_canvas(client)

    response = client.post(f"/canvases/{canvas_id}/commands", json={"text": ""})

    assert response.status_code == 422


def test_rate_limited_command_is_429(use_agent, make_agent, clock: FakeClock):
    client = use_agent(make_agent(limiter=RateLimiter(max_requests=1, window_s=60, clock=clock)))
    canvas_id = _create_canvas(client)
    client.post(f"/canvases/{canvas_id}/commands", json={"text": "create a circle"})

    response = client.post(f"/canvases/{canvas_id}/commands", json={"text": "create a circle"})

    assert response.status_code == 429
    detail = response.json()["detail"]
    assert detail["kind"] == "rate_limited"
    assert detail["message"].startswith("Too many AI requests")


def test_unavailable_providers_are_503(
    client: TestClient, fast_provider: ScriptedProvider, capable_provider: ScriptedProvider
):
    canvas_id = _create_canvas(client)
    fast_provider.queue(ProviderError.http_error(fast_provider.name, 503))
    capable_provider.queue(ProviderError.http_error(capable_provider.name, 500))

    response = client.post(f"/canvases/{canvas_id}/commands", json={"text": "create a circle"})

    assert response.status_code == 503
    assert response.json()["detail"]["kind"] == "provider_unavailable"


def test_malformed_response_is_502(client: TestClient, fast_provider: ScriptedProvider):
    canvas_id = _create_canvas(client)
    fast_provider.queue(ProviderError.malformed_response(fast_provider.name, "not JSON"))

    response = client.post(f"/canvases/{canvas_id}/commands", json={"text": "create a circle"})

    assert response.status_code == 502
    assert response.json()["detail"]["kind"] == "malformed_response"


def test_command_timeout_is_504(use_agent, make_agent):
    slow = ScriptedProvider("groq:llama-3.3-70b-versatile", delay_s=5)
    client = use_agent(make_agent(fast=slow, command_timeout_s=0.05))
    canvas_id = _create_canvas(client)

    response = client.post(f"/canvases/{canvas_id}/commands", json={"text": "create a circle"})

    assert response.status_code == 504


# =============================================================================
# AI status
# =============================================================================


def test_ai_status_lists_both_providers(client: TestClient, fast_provider: ScriptedProvider):
    response = client.get("/ai/status")

    assert response.status_code == 200
    data = response.json()
    assert data["health_monitor_running"] is False
    providers = {entry["role"]: entry for entry in data["providers"]}
    assert providers["fast"]["name"] == fast_provider.name
    assert providers["fast"]["circuit"]["state"] == "closed"
    assert providers["capable"]["health"]["status"] == "unknown"


def test_ai_telemetry_returns_recent_events(client: TestClient):
    canvas_id = _create_canvas(client)
    client.post(f"/canvases/{canvas_id}/commands", json={"text": "create a circle"})
    client.post("/canvases/999/commands", json={"text": "create a circle"})

    response = client.get("/ai/telemetry", params={"limit": 1})

    assert response.status_code == 200
    data = response.json()
    assert data["count"] == 1
    assert data["events"][0]["success"] is False
    assert data["events"][0]["error_kind"] == "target_not_found"


def test_ai_telemetry_limit_is_validated(client: TestClient):
    assert client.get("/ai/telemetry", params={"limit": 0}).status_code == 422


def test_root_redirects_to_docs(client: TestClient):
    response = client.get("/", follow_redirects=False)

    assert response.status_code == 307
    assert response.headers["location"] == "/docs"
