"""Domain Layer - Command Orchestration for an AI Canvas.

Turns natural-language canvas commands into validated tool executions with
predictable latency and graceful degradation when a model provider fails.

Key Components:
    - CanvasAgent: Aggregate that classifies, routes, gates and executes a command
    - classify/explain: Pure heuristic fast | capable classifier
    - ProviderAdapter: Pydantic AI backed vendor calls with typed failures
    - CircuitBreaker / RateLimiter / ProviderHealthMonitor: per-provider resilience
    - ToolRegistry / BatchExecutor: validated dispatch and atomic batch creation
    - ProviderCatalog: configuration-driven model metadata and key formats

Design Principles:
    - Pydantic Native: Tool inputs, values and events are pydantic models
    - Immutable by Default: Values use frozen=True
    - Explicit Dependencies: Store, events and resilience components are injected
    - Typed Failures: Every failure surfaces as a kind from a closed set
"""

from .agent import CanvasAgent, CommandOutcome
from .batch import BatchExecutor
from .canvas_tools import CANVAS_TOOLS, build_canvas_registry
from .circuit_breaker import CircuitBreaker, CircuitSnapshot
from .classifier import classify, explain
from .domain_type import (
    AIModelVendor,
    CircuitState,
    ClassificationReason,
    CommandClass,
    CommandErrorKind,
    HealthStatus,
    ProviderErrorKind,
    ToolErrorKind,
)
from .domain_value import (
    AmbientOptions,
    Canvas,
    CanvasEvent,
    Command,
    CommandId,
    Entity,
    EntityDraft,
    Position,
    ToolCall,
    ToolResult,
    Viewport,
)
from .errors import CircuitOpenError, CommandError, DomainError, ProviderError, RateLimitExceeded
from .ports import DocumentStore, EventPublisher
from .provider_catalog import ProviderCatalog, ProviderRoute, ProviderSpec
from .provider_health import HealthRecord, ProviderHealthMonitor
from .providers import Provider, ProviderAdapter, ProviderReply
from .rate_limiter import RateLimiter
from .telemetry import CommandTelemetry, TelemetrySink
from .tools import Tool, ToolContext, ToolRegistry

__all__ = [
    "CANVAS_TOOLS",
    "AIModelVendor",
    "AmbientOptions",
    "BatchExecutor",
    "Canvas",
    "CanvasAgent",
    "CanvasEvent",
    "CircuitBreaker",
    "CircuitOpenError",
    "CircuitSnapshot",
    "CircuitState",
    "ClassificationReason",
    "Command",
    "CommandClass",
    "CommandError",
    "CommandErrorKind",
    "CommandId",
    "CommandOutcome",
    "CommandTelemetry",
    "DocumentStore",
    "DomainError",
    "Entity",
    "EntityDraft",
    "EventPublisher",
    "HealthRecord",
    "HealthStatus",
    "Position",
    "Provider",
    "ProviderAdapter",
    "ProviderCatalog",
    "ProviderError",
    "ProviderErrorKind",
    "ProviderHealthMonitor",
    "ProviderReply",
    "ProviderRoute",
    "ProviderSpec",
    "RateLimitExceeded",
    "RateLimiter",
    "TelemetrySink",
    "Tool",
    "ToolCall",
    "ToolContext",
    "ToolErrorKind",
    "ToolRegistry",
    "ToolResult",
    "Viewport",
    "build_canvas_registry",
    "classify",
    "explain",
]
