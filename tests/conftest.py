"""
Shared test fixtures and configuration.

Environment strategy:
- Every suite loads .env.test (no provider keys, no Redis, no health loop)
- Providers are scripted fakes or Pydantic AI FunctionModels; nothing leaves the process
"""

from pathlib import Path

import logfire
import pytest
import pytest_asyncio
from dotenv import load_dotenv

ENV_FILE = Path(__file__).parent.parent / ".env.test"
load_dotenv(ENV_FILE, override=True)

logfire.configure(send_to_logfire=False, console=False)

from canvas_agent.domain.agent import CanvasAgent
from canvas_agent.domain.batch import BatchExecutor
from canvas_agent.domain.canvas_tools import build_canvas_registry
from canvas_agent.domain.circuit_breaker import CircuitBreaker
from canvas_agent.domain.domain_value import Canvas
from canvas_agent.domain.rate_limiter import RateLimiter
from canvas_agent.domain.telemetry import TelemetrySink
from canvas_agent.domain.tools import ToolContext, ToolRegistry
from canvas_agent.service.events import LocalEventBus
from canvas_agent.service.storage import InMemoryDocumentStore

from .fakes import FakeClock, ScriptedProvider


@pytest.fixture
def clock() -> FakeClock:
    """Manually advanced monotonic clock."""
    return FakeClock()


@pytest.fixture
def store() -> InMemoryDocumentStore:
    return InMemoryDocumentStore()


@pytest.fixture
def events() -> LocalEventBus:
    return LocalEventBus()


@pytest_asyncio.fixture
async def canvas(store: InMemoryDocumentStore) -> Canvas:
    """An empty canvas in the in-memory store."""
    return await store.create_canvas("Test canvas")


@pytest.fixture
def registry() -> ToolRegistry:
    return build_canvas_registry()


@pytest.fixture
def ctx(canvas: Canvas, store: InMemoryDocumentStore, events: LocalEventBus) -> ToolContext:
    """Tool context for the test canvas with nothing selected."""
    return ToolContext(canvas_id=canvas.id, store=store, events=events)


@pytest.fixture
def fast_provider() -> ScriptedProvider:
    return ScriptedProvider("groq:llama-3.3-70b-versatile", latency_ms=400)


@pytest.fixture
def capable_provider() -> ScriptedProvider:
    return ScriptedProvider("anthropic:claude-3-5-sonnet-20241022", latency_ms=1800)


@pytest.fixture
def make_agent(
    fast_provider: ScriptedProvider,
    capable_provider: ScriptedProvider,
    registry: ToolRegistry,
    store: InMemoryDocumentStore,
    events: LocalEventBus,
    clock: FakeClock,
):
    """Build a CanvasAgent over the fake providers; keyword arguments override any field."""

    def _make(**overrides) -> CanvasAgent:
        fields = {
            "fast": fast_provider,
            "capable": capable_provider,
            "registry": registry,
            "batch": BatchExecutor(registry=registry),
            "store": store,
            "events": events,
            "breaker": CircuitBreaker(threshold=5, cooldown_s=60, clock=clock),
            "limiter": RateLimiter(max_requests=60, window_s=60, clock=clock),
            "telemetry": TelemetrySink(),
        }
        fields.update(overrides)
        return CanvasAgent(**fields)

    return _make
