"""Canvas Agent - Command Orchestration Aggregate.

Turns one natural-language command into canvas mutations:

    1. Resolve the target canvas (target_not_found otherwise)
    2. Enrich the text with selection, aliases, ambient color/theme, viewport
    3. Classify (fast | capable) and pick primary/alternate providers,
       preferring the alternate when the primary is unhealthy
    4. Gate the call: circuit breaker first (open means "try the alternate"),
       then the rate limiter (rejection is final, an admitted trial is given back)
    5. Call the provider; on an eligible failure fall back exactly once
    6. Normalize object references in the returned tool calls
    7. Execute: consecutive create calls go through the atomic batch
       executor, everything else through the registry, results in order
    8. Emit one telemetry event, whatever happened

Design Principles:
    - Explicit Dependencies: breaker, limiter, health monitor, store, events
      and telemetry sink are passed in, never looked up globally
    - Typed Failures: callers see CommandError with a stable kind
    - Bounded: the whole command runs under one deadline
"""

from __future__ import annotations

import asyncio
import re
import time
from collections.abc import Sequence
from datetime import UTC, datetime
from typing import Any

import logfire
from pydantic import BaseModel, ConfigDict, Field

from .batch import BatchExecutor
from .circuit_breaker import CircuitBreaker
from .classifier import explain
from .domain_type import CommandClass, CommandErrorKind, HealthStatus, ProviderErrorKind
from .domain_value import Command, CommandId, Entity, ToolCall, ToolResult
from .errors import CircuitOpenError, CommandError, DomainError, ProviderError, RateLimitExceeded
from .ports import DocumentStore, EventPublisher
from .provider_health import ProviderHealthMonitor
from .providers import Provider, ProviderReply
from .rate_limiter import RateLimiter
from .telemetry import CommandTelemetry, TelemetrySink
from .tools import ToolContext, ToolRegistry

ID_FIELDS = ("object_id", "shape_id", "id")
ID_LIST_FIELDS = ("object_ids",)
MAX_CONTEXT_OBJECTS = 50


class CommandOutcome(BaseModel):
    """Everything a caller learns about a served command."""

    command_id: CommandId
    classification: CommandClass
    provider_used: str
    fallback_used: bool = False
    results: tuple[ToolResult, ...] = ()
    reply_text: str | None = None
    duration_ms: float

    model_config = ConfigDict(frozen=True)

    @property
    def all_succeeded(self) -> bool:
        return all(result.ok for result in self.results)


# ---------------------------------------------------------------------------
# Context enrichment and reference normalization
# ---------------------------------------------------------------------------


def entity_aliases(entities: Sequence[Entity]) -> dict[str, int]:
    """Human aliases ("circle 2") → entity id, numbered per kind in id order."""
    counts: dict[str, int] = {}
    aliases: dict[str, int] = {}
    for entity in sorted(entities, key=lambda item: item.id):
        counts[entity.kind] = counts.get(entity.kind, 0) + 1
        aliases[f"{entity.kind} {counts[entity.kind]}"] = entity.id
    return aliases


def _describe(entity: Entity, alias: str | None) -> str:
    label = alias.title() if alias else entity.kind.title()
    parts = [f"{label} (id {entity.id}) at ({entity.position.x:g}, {entity.position.y:g})"]
    if "width" in entity.data:
        parts.append(f"size {entity.width:g}x{entity.height:g}")
    color = entity.data.get("fill") or entity.data.get("color")
    if color:
        parts.append(f"color {color}")
    if entity.kind == "text" and entity.data.get("text"):
        parts.append(f"text {entity.data['text']!r}")
    return ", ".join(parts)


def enrich_command(command: Command, entities: Sequence[Entity], aliases: dict[str, int]) -> str:
    """Append canvas context the model needs to resolve references."""
    alias_by_id = {entity_id: alias for alias, entity_id in aliases.items()}
    by_id = {entity.id: entity for entity in entities}
    lines = [command.text.strip(), "", "Canvas context:"]

    selected = [by_id[entity_id] for entity_id in command.selection if entity_id in by_id]
    if selected:
        lines.append("- Selected objects:")
        lines.extend(f"  - {_describe(entity, alias_by_id.get(entity.id))}" for entity in selected)
    else:
        lines.append("- Nothing is selected.")

    if command.ambient.color:
        lines.append(f"- Current color: {command.ambient.color}")
    if command.ambient.theme:
        lines.append(f"- Current theme: {command.ambient.theme}")
    if command.ambient.viewport:
        viewport = command.ambient.viewport
        lines.append(
            f"- Visible area: x {viewport.x:g}..{viewport.x + viewport.width:g}, "
            f"y {viewport.y:g}..{viewport.y + viewport.height:g}"
        )

    if entities:
        shown = sorted(entities, key=lambda item: item.id)[:MAX_CONTEXT_OBJECTS]
        lines.append(f"- Objects on canvas ({len(entities)}):")
        lines.extend(f"  - {_describe(entity, alias_by_id.get(entity.id))}" for entity in shown)
    else:
        lines.append("- The canvas is empty.")
    return "\n".join(lines)


def _normalize_reference(value: Any, aliases: dict[str, int]) -> Any:
    if not isinstance(value, str):
        return value
    text = value.strip()
    if text.isdigit():
        return int(text)
    key = " ".join(re.sub(r"[#_\-]", " ", text.lower()).split())
    return aliases.get(key, value)


def normalize_call(call: ToolCall, aliases: dict[str, int]) -> ToolCall:
    """Rewrite textual object references to numeric ids where they resolve.

    Digit strings become ints and aliases ("Circle 2", "circle_2") become the
    aliased id. Anything unresolvable is left for input validation to reject.
    """
    updated = dict(call.input)
    for field in ID_FIELDS:
        if field in updated:
            updated[field] = _normalize_reference(updated[field], aliases)
    for field in ID_LIST_FIELDS:
        if isinstance(updated.get(field), list):
            updated[field] = [_normalize_reference(item, aliases) for item in updated[field]]
    return call if updated == call.input else call.with_input(updated)


# ---------------------------------------------------------------------------
# Aggregate
# ---------------------------------------------------------------------------


class _Trace:
    __slots__ = ("classification", "provider_used", "fallback_used", "tool_call_count", "error_kind", "success")

    def __init__(self) -> None:
        self.classification: CommandClass | None = None
        self.provider_used: str | None = None
        self.fallback_used = False
        self.tool_call_count = 0
        self.error_kind: CommandErrorKind | None = None
        self.success = False


class CanvasAgent(BaseModel):
    """Orchestrates classification, provider selection, gating and tool execution.

    Attributes:
        fast: Low-latency provider (primary for FAST commands)
        capable: High-capability provider (primary for CAPABLE commands)
        registry: Tools the providers may call
        batch: Atomic executor for runs of create calls
        store: Document store port
        events: Real-time fan-out port
        breaker: Process-wide circuit breaker
        limiter: Process-wide rate limiter
        health: Optional health monitor used to reorder providers
        telemetry: Sink receiving one event per command
        command_timeout_s: Deadline for a whole command

    Example:
        >>> outcome = await agent.execute(Command(text="create a red circle", canvas_id=1))
        >>> outcome.results[0].tool
        'create_shape'
    """

    fast: Provider
    capable: Provider
    registry: ToolRegistry
    batch: BatchExecutor
    store: DocumentStore
    events: EventPublisher
    breaker: CircuitBreaker
    limiter: RateLimiter
    health: ProviderHealthMonitor | None = None
    telemetry: TelemetrySink = Field(default_factory=TelemetrySink)
    command_timeout_s: float = Field(default=30.0, gt=0)

    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    # -- routing -----------------------------------------------------------

    def route(self, classification: CommandClass) -> tuple[Provider, Provider]:
        """Primary and alternate provider for a class, health permitting."""
        primary, alternate = (
            (self.fast, self.capable) if classification == CommandClass.FAST else (self.capable, self.fast)
        )
        if (
            self.health is not None
            and self.health.status(primary.name) == HealthStatus.UNHEALTHY
            and self.health.status(alternate.name) != HealthStatus.UNHEALTHY
        ):
            logfire.info("Primary provider unhealthy, swapping route", primary=primary.name, alternate=alternate.name)
            return alternate, primary
        return primary, alternate

    async def _call_provider(self, provider: Provider, text: str) -> ProviderReply:
        """Gate and perform one provider call, feeding the breaker."""
        name = provider.name
        self.breaker.guard(name)
        try:
            self.limiter.acquire(name)
        except RateLimitExceeded:
            self.breaker.release(name)
            raise
        try:
            reply = await provider.call(text, self.registry.schemas())
        except ProviderError:
            self.breaker.record_failure(name)
            raise
        except asyncio.CancelledError:
            self.breaker.release(name)
            raise
        except Exception as exc:
            self.breaker.record_failure(name)
            logfire.exception("Provider call crashed", provider=name)
            raise ProviderError.request_failed(name, exc) from exc
        self.breaker.record_success(name)
        return reply

    async def call_with_fallback(self, primary: Provider, alternate: Provider, text: str) -> tuple[ProviderReply, bool]:
        """Call the primary, falling back to the alternate at most once.

        Returns:
            (reply, fallback_used)

        Raises:
            CommandError: rate_limited immediately on a limiter rejection;
                malformed_response without fallback; otherwise the error of
                the last provider tried
        """
        last_error: CommandError | None = None
        for attempt, provider in enumerate((primary, alternate)):
            try:
                return await self._call_provider(provider, text), attempt > 0
            except RateLimitExceeded as exc:
                raise CommandError(CommandErrorKind.RATE_LIMITED, str(exc), provider=provider.name) from exc
            except CircuitOpenError as exc:
                last_error = CommandError(CommandErrorKind.PROVIDER_UNAVAILABLE, str(exc), provider=provider.name)
            except ProviderError as exc:
                if exc.kind == ProviderErrorKind.MALFORMED_RESPONSE:
                    raise CommandError.from_provider_error(exc) from exc
                last_error = CommandError.from_provider_error(exc)
            if attempt == 0:
                logfire.warn(
                    "Primary provider failed, falling back",
                    primary=primary.name,
                    alternate=alternate.name,
                    error=str(last_error),
                )
        assert last_error is not None
        raise last_error

    # -- execution -----------------------------------------------------------

    async def execute_tool_calls(self, calls: Sequence[ToolCall], ctx: ToolContext) -> list[ToolResult]:
        """Execute calls in order; consecutive batchable calls share one atomic batch."""
        results: list[ToolResult] = []
        run: list[ToolCall] = []
        for call in calls:
            if self.batch.accepts(call):
                run.append(call)
                continue
            if run:
                results.extend(await self.batch.execute_batch(run, ctx))
                run = []
            results.append(await self.registry.dispatch(call, ctx))
        if run:
            results.extend(await self.batch.execute_batch(run, ctx))
        return results

    async def _run(self, command: Command, trace: _Trace) -> CommandOutcome:
        started = time.perf_counter()
        try:
            canvas = await self.store.get_canvas(command.canvas_id)
            entities = await self.store.list_entities(canvas.id) if canvas is not None else []
        except DomainError as exc:
            raise CommandError(CommandErrorKind.DOMAIN_ERROR, str(exc)) from exc
        if canvas is None:
            raise CommandError(CommandErrorKind.TARGET_NOT_FOUND, f"Canvas {command.canvas_id} does not exist")

        aliases = entity_aliases(entities)
        text = enrich_command(command, entities, aliases)

        classification, reason = explain(command.text)
        trace.classification = classification
        logfire.info("Command classified", classification=classification, reason=reason, text=command.text)

        primary, alternate = self.route(classification)
        reply, fallback_used = await self.call_with_fallback(primary, alternate, text)
        trace.provider_used = reply.provider
        trace.fallback_used = fallback_used
        trace.tool_call_count = len(reply.tool_calls)

        ctx = ToolContext(
            canvas_id=canvas.id,
            selection=command.selection,
            current_color=command.ambient.color,
            theme=command.ambient.theme,
            store=self.store,
            events=self.events,
        )
        calls = [normalize_call(call, aliases) for call in reply.tool_calls]
        results = await self.execute_tool_calls(calls, ctx)

        return CommandOutcome(
            command_id=command.id,
            classification=classification,
            provider_used=reply.provider,
            fallback_used=fallback_used,
            results=tuple(results),
            reply_text=reply.text,
            duration_ms=round((time.perf_counter() - started) * 1000, 1),
        )

    async def execute(self, command: Command) -> CommandOutcome:
        """Serve one command end to end.

        Raises:
            CommandError: with a kind from CommandErrorKind
        """
        trace = _Trace()
        start_time = datetime.now(UTC)
        with logfire.span("canvas command", command_id=str(command.id.root), canvas_id=command.canvas_id):
            try:
                async with asyncio.timeout(self.command_timeout_s):
                    outcome = await self._run(command, trace)
                trace.success = True
                return outcome
            except TimeoutError as exc:
                trace.error_kind = CommandErrorKind.TIMEOUT
                raise CommandError(
                    CommandErrorKind.TIMEOUT, f"Command exceeded {self.command_timeout_s}s"
                ) from exc
            except CommandError as exc:
                trace.error_kind = exc.kind
                raise
            finally:
                self.telemetry.emit(
                    CommandTelemetry(
                        command_id=command.id,
                        canvas_id=command.canvas_id,
                        classification=trace.classification,
                        provider_used=trace.provider_used,
                        fallback_used=trace.fallback_used,
                        success=trace.success,
                        error_kind=trace.error_kind,
                        tool_call_count=trace.tool_call_count,
                        start_time=start_time,
                        end_time=datetime.now(UTC),
                    )
                )


__all__ = [
    "CanvasAgent",
    "CommandOutcome",
    "enrich_command",
    "entity_aliases",
    "normalize_call",
]
