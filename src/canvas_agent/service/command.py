"""Thin orchestration service - wires infrastructure around the CanvasAgent aggregate."""

from __future__ import annotations

from collections.abc import Sequence
from pathlib import Path

import logfire
from pydantic import BaseModel, ConfigDict

from ..config import Settings
from ..domain.agent import CanvasAgent, CommandOutcome
from ..domain.batch import BatchExecutor
from ..domain.canvas_tools import build_canvas_registry
from ..domain.circuit_breaker import CircuitBreaker, CircuitSnapshot
from ..domain.domain_type import AIModelVendor, CommandErrorKind
from ..domain.domain_value import AmbientOptions, Canvas, Command, Entity
from ..domain.errors import CommandError
from ..domain.provider_catalog import DEFAULT_CATALOG_PATH, ProviderCatalog, ProviderRoute
from ..domain.provider_health import HealthRecord, ProviderHealthMonitor
from ..domain.providers import Provider, ProviderAdapter
from ..domain.rate_limiter import RateLimiter
from ..domain.telemetry import CommandTelemetry, TelemetrySink
from .events import RedisEventPublisher, create_event_publisher
from .storage import RedisDocumentStore, create_document_store


class ProviderStatus(BaseModel):
    """Operational view of one configured provider."""

    role: str
    name: str
    average_latency_ms: int
    circuit: CircuitSnapshot
    health: HealthRecord
    requests_in_window: int
    key_problem: str | None = None

    model_config = ConfigDict(frozen=True)


class CommandService:
    """
    Pure infrastructure orchestrator - zero business logic.

    Service responsibilities:
    1. Own the agent and its provider catalog
    2. Validate credentials and start/stop the health monitor
    3. Resolve canvases for read endpoints
    4. Delegate command execution to the CanvasAgent aggregate

    The aggregate owns classification, routing, fallback and tool execution.
    """

    def __init__(self, agent: CanvasAgent, catalog: ProviderCatalog, *, validate_keys: bool = True):
        self.agent = agent
        self.catalog = catalog
        self.validate_keys_on_start = validate_keys
        self._key_problems: dict[str, str | None] = {}

    @property
    def providers(self) -> dict[str, Provider]:
        return {"fast": self.agent.fast, "capable": self.agent.capable}

    def validate_keys(self) -> dict[str, str | None]:
        """Check API key formats against the catalog; problems are logged, never raised."""
        problems: dict[str, str | None] = {}
        for role, provider in self.providers.items():
            if not isinstance(provider, ProviderAdapter):
                continue
            key = provider.api_key.get_secret_value() if provider.api_key else None
            problem = self.catalog.vendor(provider.spec.vendor).key_format_problem(key)
            problems[provider.name] = problem
            if problem:
                logfire.warn("Provider API key problem", role=role, provider=provider.name, problem=problem)
            else:
                logfire.info("Provider API key format ok", role=role, provider=provider.name)
        self._key_problems = problems
        return problems

    async def start(self) -> None:
        if self.validate_keys_on_start:
            self.validate_keys()
        if self.agent.health is not None:
            await self.agent.health.start()

    async def stop(self) -> None:
        if self.agent.health is not None:
            await self.agent.health.stop()
        if isinstance(self.agent.events, RedisEventPublisher):
            await self.agent.events.drain()
        if isinstance(self.agent.store, RedisDocumentStore):
            await self.agent.store.close()

    async def execute_command(
        self,
        text: str,
        canvas_id: int,
        selection: Sequence[int] = (),
        ambient: AmbientOptions | None = None,
    ) -> CommandOutcome:
        """
        Run one natural-language command against a canvas.

        Args:
            text: User instruction
            canvas_id: Target canvas
            selection: Ids of the currently selected objects
            ambient: Current color, theme and viewport

        Returns:
            CommandOutcome with one ToolResult per tool call

        Raises:
            CommandError: with a kind from CommandErrorKind
        """
        command = Command(
            text=text,
            canvas_id=canvas_id,
            selection=tuple(selection),
            ambient=ambient or AmbientOptions(),
        )
        return await self.agent.execute(command)

    async def create_canvas(self, name: str) -> Canvas:
        canvas = await self.agent.store.create_canvas(name)
        logfire.info("Canvas created", canvas_id=canvas.id, name=name)
        return canvas

    async def get_canvas(self, canvas_id: int) -> Canvas:
        canvas = await self.agent.store.get_canvas(canvas_id)
        if canvas is None:
            raise CommandError(CommandErrorKind.TARGET_NOT_FOUND, f"Canvas {canvas_id} does not exist")
        return canvas

    async def list_objects(self, canvas_id: int) -> list[Entity]:
        canvas = await self.get_canvas(canvas_id)
        return await self.agent.store.list_entities(canvas.id)

    def status(self) -> list[ProviderStatus]:
        health = self.agent.health
        return [
            ProviderStatus(
                role=role,
                name=provider.name,
                average_latency_ms=provider.average_latency_ms,
                circuit=self.agent.breaker.snapshot(provider.name),
                health=health.record(provider.name) if health else HealthRecord(provider=provider.name),
                requests_in_window=self.agent.limiter.count(provider.name),
                key_problem=self._key_problems.get(provider.name),
            )
            for role, provider in self.providers.items()
        ]

    def recent_telemetry(self, limit: int | None = None) -> list[CommandTelemetry]:
        return self.agent.telemetry.recent(limit)


def _api_keys(settings: Settings) -> dict[AIModelVendor, str | None]:
    return {
        AIModelVendor.ANTHROPIC: settings.anthropic_api_key,
        AIModelVendor.GROQ: settings.groq_api_key,
        AIModelVendor.OPENAI: settings.openai_api_key,
    }


def create_command_service(settings: Settings) -> CommandService:
    """
    Factory function for creating CommandService.

    Service owns its own construction logic - deps.py just calls this.

    Args:
        settings: Application settings

    Returns:
        Configured CommandService (health monitor not yet started)
    """
    catalog_path = Path(settings.provider_catalog_path) if settings.provider_catalog_path else DEFAULT_CATALOG_PATH
    catalog = ProviderCatalog.from_json_file(catalog_path)
    route = ProviderRoute.from_identifiers(settings.fast_provider, settings.capable_provider, catalog=catalog)
    keys = _api_keys(settings)

    fast = ProviderAdapter.from_catalog(
        route.fast, catalog, api_key=keys[route.fast.vendor], timeout_s=settings.fast_provider_timeout
    )
    capable = ProviderAdapter.from_catalog(
        route.capable, catalog, api_key=keys[route.capable.vendor], timeout_s=settings.capable_provider_timeout
    )

    health = None
    if settings.health_check_enabled:
        health = ProviderHealthMonitor(
            {fast.name: fast, capable.name: capable},
            interval_s=settings.health_check_interval,
            probe_timeout_s=settings.health_probe_timeout,
        )

    registry = build_canvas_registry()
    agent = CanvasAgent(
        fast=fast,
        capable=capable,
        registry=registry,
        batch=BatchExecutor(registry=registry, warn_after_ms=settings.batch_warn_after_ms),
        store=create_document_store(settings),
        events=create_event_publisher(settings),
        breaker=CircuitBreaker(
            settings.circuit_breaker_threshold,
            settings.circuit_breaker_cooldown,
            enabled=settings.circuit_breaker_enabled,
        ),
        limiter=RateLimiter(settings.rate_limit_max_requests, settings.rate_limit_window),
        health=health,
        telemetry=TelemetrySink(settings.telemetry_buffer_size),
        command_timeout_s=settings.command_timeout,
    )
    logfire.info("Command service configured", fast=fast.name, capable=capable.name)
    return CommandService(agent, catalog, validate_keys=settings.validate_keys_on_startup)


__all__ = ["CommandService", "ProviderStatus", "create_command_service"]
