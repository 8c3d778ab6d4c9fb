"""
Tests for the CanvasAgent orchestration aggregate.

These tests demonstrate:
- End-to-end command flow with scripted providers and the in-memory store
- Fallback rules: which failures switch providers and which do not
- Telemetry emitted for success and failure alike
- Reference normalization and ordered execution of mixed tool calls
"""

import pytest

from canvas_agent.domain.circuit_breaker import CircuitBreaker
from canvas_agent.domain.domain_type import CircuitState, CommandClass, CommandErrorKind, ToolErrorKind
from canvas_agent.domain.domain_value import AmbientOptions, Canvas, Command, EntityDraft, Position
from canvas_agent.domain.errors import CommandError, DomainError, ProviderError
from canvas_agent.domain.provider_health import ProviderHealthMonitor
from canvas_agent.domain.rate_limiter import RateLimiter
from canvas_agent.service.events import LocalEventBus
from canvas_agent.service.storage import InMemoryDocumentStore

from tests.fakes import FakeClock, ScriptedProvider, call


def _command(canvas: Canvas, text: str, **kwargs) -> Command:
    return Command(text=text, canvas_id=canvas.id, **kwargs)


# =============================================================================
# End-to-end scenarios
# =============================================================================


@pytest.mark.asyncio
async def test_simple_command_is_served_by_fast_provider(
    make_agent,
    canvas: Canvas,
    store: InMemoryDocumentStore,
    events: LocalEventBus,
    fast_provider: ScriptedProvider,
    capable_provider: ScriptedProvider,
):
    """
    Demonstrates: The fast path end to end.

    Classification, provider choice, tool execution, persistence and fan-out
    all happen behind one execute() call.
    """
    fast_provider.queue([call("create_shape", type="circle", x=100, y=100, color="red")])
    agent = make_agent()

    outcome = await agent.execute(_command(canvas, "create a red circle at 100, 100"))

    assert outcome.classification == CommandClass.FAST
    assert outcome.provider_used == fast_provider.name
    assert not outcome.fallback_used
    assert outcome.all_succeeded
    assert capable_provider.commands == []

    entities = await store.list_entities(canvas.id)
    assert [(entity.kind, entity.data["fill"]) for entity in entities] == [("circle", "#FF0000")]
    assert len(events.published) == 1

    event = agent.telemetry.recent()[-1]
    assert event.success
    assert event.classification == CommandClass.FAST
    assert event.provider_used == fast_provider.name
    assert event.tool_call_count == 1


@pytest.mark.asyncio
async def test_component_command_is_served_by_capable_provider(
    make_agent,
    canvas: Canvas,
    store: InMemoryDocumentStore,
    fast_provider: ScriptedProvider,
    capable_provider: ScriptedProvider,
):
    capable_provider.queue([call("create_component", type="login_form", x=100, y=100)])
    agent = make_agent()

    outcome = await agent.execute(_command(canvas, "create a login form"))

    assert outcome.classification == CommandClass.CAPABLE
    assert outcome.provider_used == capable_provider.name
    assert fast_provider.commands == []
    assert len(await store.list_entities(canvas.id)) == 8


@pytest.mark.asyncio
async def test_text_only_reply_succeeds_without_results(make_agent, canvas: Canvas, fast_provider: ScriptedProvider):
    fast_provider.queue("I can only draw shapes.")

    outcome = await make_agent().execute(_command(canvas, "hello"))

    assert outcome.results == ()
    assert outcome.reply_text == "I can only draw shapes."


# =============================================================================
# Fallback
# =============================================================================


@pytest.mark.asyncio
async def test_request_failure_falls_back_once(
    make_agent, canvas: Canvas, fast_provider: ScriptedProvider, capable_provider: ScriptedProvider
):
    """Demonstrates: A failed primary call is retried exactly once on the alternate."""
    fast_provider.queue(ProviderError.request_failed(fast_provider.name, "connection reset"))
    capable_provider.queue([call("create_shape", type="rectangle", x=0, y=0)])
    agent = make_agent()

    outcome = await agent.execute(_command(canvas, "create a rectangle"))

    assert outcome.provider_used == capable_provider.name
    assert outcome.fallback_used
    assert len(fast_provider.commands) == 1
    assert len(capable_provider.commands) == 1
    assert agent.breaker.snapshot(fast_provider.name).consecutive_failures == 1
    assert agent.telemetry.recent()[-1].fallback_used


@pytest.mark.asyncio
async def test_primary_timeout_on_fast_command_falls_back(
    make_agent, canvas: Canvas, fast_provider: ScriptedProvider, capable_provider: ScriptedProvider
):
    fast_provider.queue(ProviderError.request_failed(fast_provider.name, "timed out after 5.0s"))
    capable_provider.queue([call("create_shape", type="circle", x=100, y=100, color="red")])
    agent = make_agent()

    outcome = await agent.execute(_command(canvas, "create a red circle at 100, 100"))

    assert outcome.classification == CommandClass.FAST
    assert outcome.all_succeeded
    assert agent.telemetry.recent()[-1].provider_used == capable_provider.name


@pytest.mark.asyncio
async def test_open_circuit_skips_primary_without_calling_it(
    make_agent, canvas: Canvas, fast_provider: ScriptedProvider, capable_provider: ScriptedProvider
):
    capable_provider.queue([call("create_shape", type="circle", x=0, y=0)])
    agent = make_agent()
    for _ in range(5):
        agent.breaker.record_failure(fast_provider.name)

    outcome = await agent.execute(_command(canvas, "create a circle"))

    assert fast_provider.commands == []
    assert outcome.provider_used == capable_provider.name
    assert outcome.fallback_used


@pytest.mark.asyncio
async def test_primary_opens_after_repeated_failures(
    make_agent, canvas: Canvas, fast_provider: ScriptedProvider, capable_provider: ScriptedProvider
):
    """Demonstrates: Failures feed the breaker; the sixth command no longer touches the primary."""
    agent = make_agent()
    for _ in range(5):
        fast_provider.queue(ProviderError.http_error(fast_provider.name, 502))
        capable_provider.queue([call("create_shape", type="circle", x=0, y=0)])
        await agent.execute(_command(canvas, "create a circle"))

    assert agent.breaker.state(fast_provider.name) == CircuitState.OPEN

    capable_provider.queue([call("create_shape", type="circle", x=0, y=0)])
    await agent.execute(_command(canvas, "create a circle"))
    assert len(fast_provider.commands) == 5


@pytest.mark.asyncio
async def test_unexpected_provider_exception_becomes_request_failed(
    make_agent, canvas: Canvas, fast_provider: ScriptedProvider, capable_provider: ScriptedProvider
):
    fast_provider.queue(RuntimeError("sdk bug"))
    capable_provider.queue([call("create_shape", type="circle", x=0, y=0)])

    outcome = await make_agent().execute(_command(canvas, "create a circle"))

    assert outcome.fallback_used


@pytest.mark.asyncio
async def test_both_providers_failing_reports_last_error(
    make_agent, canvas: Canvas, fast_provider: ScriptedProvider, capable_provider: ScriptedProvider
):
    fast_provider.queue(ProviderError.request_failed(fast_provider.name, "reset"))
    capable_provider.queue(ProviderError.http_error(capable_provider.name, 500))
    agent = make_agent()

    with pytest.raises(CommandError) as exc_info:
        await agent.execute(_command(canvas, "create a circle"))

    assert exc_info.value.kind == CommandErrorKind.PROVIDER_UNAVAILABLE
    event = agent.telemetry.recent()[-1]
    assert not event.success
    assert event.error_kind == CommandErrorKind.PROVIDER_UNAVAILABLE


@pytest.mark.asyncio
async def test_both_circuits_open_is_provider_unavailable(
    make_agent, canvas: Canvas, fast_provider: ScriptedProvider, capable_provider: ScriptedProvider
):
    agent = make_agent()
    for provider in (fast_provider, capable_provider):
        for _ in range(5):
            agent.breaker.record_failure(provider.name)

    with pytest.raises(CommandError) as exc_info:
        await agent.execute(_command(canvas, "create a circle"))

    assert exc_info.value.kind == CommandErrorKind.PROVIDER_UNAVAILABLE
    assert fast_provider.commands == capable_provider.commands == []


@pytest.mark.asyncio
async def test_malformed_response_does_not_fall_back(
    make_agent, canvas: Canvas, fast_provider: ScriptedProvider, capable_provider: ScriptedProvider
):
    """Demonstrates: A confused model is reported to the user, not retried elsewhere."""
    fast_provider.queue(ProviderError.malformed_response(fast_provider.name, "arguments are not JSON"))

    with pytest.raises(CommandError) as exc_info:
        await make_agent().execute(_command(canvas, "create a circle"))

    assert exc_info.value.kind == CommandErrorKind.MALFORMED_RESPONSE
    assert "rephras" in exc_info.value.user_message
    assert capable_provider.commands == []


@pytest.mark.asyncio
async def test_missing_credentials_falls_back(
    make_agent, canvas: Canvas, fast_provider: ScriptedProvider, capable_provider: ScriptedProvider
):
    fast_provider.queue(ProviderError.missing_credentials(fast_provider.name))
    capable_provider.queue([call("create_shape", type="circle", x=0, y=0)])

    outcome = await make_agent().execute(_command(canvas, "create a circle"))

    assert outcome.provider_used == capable_provider.name


@pytest.mark.asyncio
async def test_rate_limit_rejection_never_falls_back(
    make_agent,
    canvas: Canvas,
    clock: FakeClock,
    fast_provider: ScriptedProvider,
    capable_provider: ScriptedProvider,
):
    """
    Demonstrates: Rate limiting and circuit breaking are distinct outcomes.

    A full window rejects the command outright; the alternate is not tried.
    """
    agent = make_agent(limiter=RateLimiter(max_requests=1, window_s=60, clock=clock))
    fast_provider.queue([call("create_shape", type="circle", x=0, y=0)])
    await agent.execute(_command(canvas, "create a circle"))

    with pytest.raises(CommandError) as exc_info:
        await agent.execute(_command(canvas, "create a circle"))

    assert exc_info.value.kind == CommandErrorKind.RATE_LIMITED
    assert exc_info.value.provider == fast_provider.name
    assert len(fast_provider.commands) == 1
    assert capable_provider.commands == []


@pytest.mark.asyncio
async def test_open_circuit_falls_back_even_when_primary_window_is_full(
    make_agent,
    canvas: Canvas,
    clock: FakeClock,
    fast_provider: ScriptedProvider,
    capable_provider: ScriptedProvider,
):
    """
    Demonstrates: An open circuit is checked before the rate window.

    Once the primary is open it is skipped, so its exhausted window cannot
    turn a servable command into rate_limited.
    """
    agent = make_agent(
        breaker=CircuitBreaker(threshold=1, cooldown_s=60, clock=clock),
        limiter=RateLimiter(max_requests=3, window_s=60, clock=clock),
    )
    fast_provider.queue(
        [call("create_shape", type="circle", x=0, y=0)],
        [call("create_shape", type="circle", x=50, y=0)],
        ProviderError.request_failed(fast_provider.name, "reset"),
    )

    outcomes = [await agent.execute(_command(canvas, "create a circle")) for _ in range(5)]

    assert [outcome.provider_used for outcome in outcomes[2:]] == [capable_provider.name] * 3
    assert all(outcome.fallback_used for outcome in outcomes[2:])
    assert len(fast_provider.commands) == 3
    assert agent.breaker.state(fast_provider.name) == CircuitState.OPEN


@pytest.mark.asyncio
async def test_rate_limited_trial_is_given_back(
    make_agent,
    canvas: Canvas,
    clock: FakeClock,
    fast_provider: ScriptedProvider,
    capable_provider: ScriptedProvider,
):
    """A half-open trial rejected by the limiter leaves the circuit ready for the next trial."""
    agent = make_agent(
        breaker=CircuitBreaker(threshold=1, cooldown_s=10, clock=clock),
        limiter=RateLimiter(max_requests=1, window_s=60, clock=clock),
    )
    fast_provider.queue(ProviderError.request_failed(fast_provider.name, "reset"))
    first = await agent.execute(_command(canvas, "create a circle"))
    assert first.provider_used == capable_provider.name
    clock.advance(11)

    with pytest.raises(CommandError) as exc_info:
        await agent.execute(_command(canvas, "create a circle"))

    assert exc_info.value.kind == CommandErrorKind.RATE_LIMITED
    assert agent.breaker.state(fast_provider.name) == CircuitState.OPEN

    agent.limiter.reset(fast_provider.name)
    outcome = await agent.execute(_command(canvas, "create a circle"))

    assert outcome.provider_used == fast_provider.name
    assert not outcome.fallback_used
    assert agent.breaker.state(fast_provider.name) == CircuitState.CLOSED


@pytest.mark.asyncio
async def test_unhealthy_primary_is_tried_second(
    make_agent, canvas: Canvas, fast_provider: ScriptedProvider, capable_provider: ScriptedProvider
):
    """Demonstrates: Health reorders the route; it never blocks a call."""
    fast_provider.probe_error = ProviderError.request_failed(fast_provider.name, "down")
    health = ProviderHealthMonitor({p.name: p for p in (fast_provider, capable_provider)})
    await health.check_all()
    capable_provider.queue([call("create_shape", type="circle", x=0, y=0)])

    outcome = await make_agent(health=health).execute(_command(canvas, "create a circle"))

    assert outcome.provider_used == capable_provider.name
    assert not outcome.fallback_used
    assert fast_provider.commands == []


# =============================================================================
# Failures outside provider calls
# =============================================================================


@pytest.mark.asyncio
async def test_unknown_canvas_is_target_not_found(make_agent, fast_provider: ScriptedProvider):
    agent = make_agent()

    with pytest.raises(CommandError) as exc_info:
        await agent.execute(Command(text="create a circle", canvas_id=404))

    assert exc_info.value.kind == CommandErrorKind.TARGET_NOT_FOUND
    assert fast_provider.commands == []
    assert agent.telemetry.recent()[-1].error_kind == CommandErrorKind.TARGET_NOT_FOUND


class _UnreachableStore(InMemoryDocumentStore):
    async def list_entities(self, canvas_id: int):
        raise DomainError(f"Could not list objects of canvas {canvas_id}: Connection refused")


@pytest.mark.asyncio
async def test_store_failure_while_resolving_is_domain_error(
    make_agent, fast_provider: ScriptedProvider, capable_provider: ScriptedProvider
):
    """Demonstrates: A store outage before any provider call is still a typed, recorded failure."""
    store = _UnreachableStore()
    canvas = await store.create_canvas("Board")
    agent = make_agent(store=store)

    with pytest.raises(CommandError) as exc_info:
        await agent.execute(_command(canvas, "create a circle"))

    assert exc_info.value.kind == CommandErrorKind.DOMAIN_ERROR
    assert "Connection refused" in str(exc_info.value)
    assert fast_provider.commands == capable_provider.commands == []
    event = agent.telemetry.recent()[-1]
    assert not event.success
    assert event.error_kind == CommandErrorKind.DOMAIN_ERROR


@pytest.mark.asyncio
async def test_overall_deadline_is_timeout(make_agent, canvas: Canvas, capable_provider: ScriptedProvider):
    """Demonstrates: The command deadline cancels a hanging provider call."""
    slow = ScriptedProvider("groq:llama-3.3-70b-versatile", delay_s=5)
    agent = make_agent(fast=slow, command_timeout_s=0.05)

    with pytest.raises(CommandError) as exc_info:
        await agent.execute(_command(canvas, "create a circle"))

    assert exc_info.value.kind == CommandErrorKind.TIMEOUT
    assert agent.breaker.state(slow.name) == CircuitState.CLOSED
    assert agent.telemetry.recent()[-1].error_kind == CommandErrorKind.TIMEOUT


# =============================================================================
# Context, references and ordering
# =============================================================================


@pytest.mark.asyncio
async def test_context_and_aliases_reach_the_provider(
    make_agent, canvas: Canvas, store: InMemoryDocumentStore, fast_provider: ScriptedProvider
):
    """
    Demonstrates: Selection, ambient color and per-kind aliases are sent to the model,
    and alias references in its tool calls resolve to entity ids.
    """
    for x in (0, 200):
        await store.create_entity(
            canvas.id, EntityDraft(kind="circle", position=Position(x=x, y=0), data={"width": 50, "height": 50})
        )
    fast_provider.queue([call("move_shape", object_id="Circle 2", x=10, y=10)])

    outcome = await make_agent().execute(
        _command(canvas, "move circle 2 to 10, 10", selection=(2,), ambient=AmbientOptions(color="#00FF00"))
    )

    sent = fast_provider.commands[0]
    assert sent.startswith("move circle 2 to 10, 10")
    assert "Circle 2 (id 2) at (200, 0)" in sent
    assert "Current color: #00FF00" in sent
    assert outcome.results[0].input["object_id"] == 2
    moved = await store.get_entity(2)
    assert (moved.position.x, moved.position.y) == (10, 10)


@pytest.mark.asyncio
async def test_digit_string_ids_are_coerced(
    make_agent, canvas: Canvas, store: InMemoryDocumentStore, fast_provider: ScriptedProvider
):
    shape = await store.create_entity(canvas.id, EntityDraft(kind="rectangle", position=Position(x=0, y=0)))
    fast_provider.queue([call("delete_object", object_id=str(shape.id))])

    outcome = await make_agent().execute(_command(canvas, f"delete object {shape.id}"))

    assert outcome.all_succeeded
    assert await store.get_entity(shape.id) is None


@pytest.mark.asyncio
async def test_mixed_calls_execute_in_order(
    make_agent, canvas: Canvas, store: InMemoryDocumentStore, capable_provider: ScriptedProvider
):
    """
    Demonstrates: Consecutive creates form batches, other calls run in between,
    and results come back in the order the model proposed them.
    """
    capable_provider.queue(
        [
            call("create_shape", type="rectangle", x=0, y=0),
            call("create_text", text="Label", x=0, y=120),
            call("move_shape", object_id=1, x=50, y=50),
            call("create_shape", type="circle", x=300, y=0),
        ]
    )

    outcome = await make_agent().execute(_command(canvas, "draw a rectangle and add a label, then move it"))

    assert [result.tool for result in outcome.results] == ["create_shape", "create_text", "move_shape", "create_shape"]
    assert outcome.all_succeeded
    moved = await store.get_entity(1)
    assert (moved.position.x, moved.position.y) == (50, 50)
    assert len(await store.list_entities(canvas.id)) == 3


@pytest.mark.asyncio
async def test_tool_failures_are_isolated_per_call(make_agent, canvas: Canvas, capable_provider: ScriptedProvider):
    capable_provider.queue(
        [
            call("delete_object", object_id=999),
            call("create_shape", type="circle", x=0, y=0),
        ]
    )

    outcome = await make_agent().execute(_command(canvas, "delete object 999 and create a circle"))

    assert outcome.results[0].outcome.kind == ToolErrorKind.DOMAIN_ERROR
    assert outcome.results[1].ok
    assert not outcome.all_succeeded
