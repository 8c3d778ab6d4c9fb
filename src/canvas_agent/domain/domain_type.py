"""Domain Type System - Core Enumerations.

Defines type-safe constants using Python's StrEnum for domain concepts.
Using StrEnum instead of plain Enum provides automatic string coercion
and better JSON serialization without custom encoders.
"""

from enum import StrEnum


class AIModelVendor(StrEnum):
    """LLM Provider Identifiers.

    Supported vendors for model execution. These values are used as keys
    in the provider catalog and for parsing provider specifications in the
    format "vendor:model-id".

    Note:
        Adding new vendors requires corresponding entries in provider_catalog.json
        and a model builder in providers.py
    """

    ANTHROPIC = "anthropic"
    GROQ = "groq"
    OPENAI = "openai"


class CommandClass(StrEnum):
    """Routing Class of a Natural-Language Command.

    FAST: single, unambiguous primitive operation; served by the low-latency provider
    CAPABLE: multi-step, contextual, compositional or layout work; served by
        the high-capability provider
    """

    FAST = "fast"
    CAPABLE = "capable"


class ClassificationReason(StrEnum):
    """Which classifier rule produced the routing decision (for logs)."""

    SIMPLE_PATTERN = "simple_pattern"
    MULTI_STEP = "multi_step"
    CONTEXTUAL = "contextual"
    COMPONENT = "component"
    LAYOUT = "layout"
    DEFAULT = "default"


class CircuitState(StrEnum):
    """Circuit Breaker States.

    States:
        CLOSED: Calls flow normally, failures are counted
        OPEN: Calls short-circuit until the cool-down elapses
        HALF_OPEN: Exactly one trial call decides the next state
    """

    CLOSED = "closed"
    OPEN = "open"
    HALF_OPEN = "half_open"


class HealthStatus(StrEnum):
    """Provider health derived from the most recent probe latency."""

    HEALTHY = "healthy"
    DEGRADED = "degraded"
    UNHEALTHY = "unhealthy"
    UNKNOWN = "unknown"


class ProviderErrorKind(StrEnum):
    """Closed set of failures a provider adapter may report."""

    MISSING_CREDENTIALS = "missing_credentials"
    REQUEST_FAILED = "request_failed"
    HTTP_ERROR = "http_error"
    MALFORMED_RESPONSE = "malformed_response"


class CommandErrorKind(StrEnum):
    """Caller-visible failure taxonomy for a whole command.

    Each kind maps to a distinct user message and HTTP status so callers
    can present actionable feedback.
    """

    MISSING_CREDENTIALS = "missing_credentials"
    PROVIDER_UNAVAILABLE = "provider_unavailable"
    RATE_LIMITED = "rate_limited"
    REQUEST_FAILED = "request_failed"
    MALFORMED_RESPONSE = "malformed_response"
    VALIDATION_ERROR = "validation_error"
    DOMAIN_ERROR = "domain_error"
    TIMEOUT = "timeout"
    TARGET_NOT_FOUND = "target_not_found"


class ToolErrorKind(StrEnum):
    """Why a single tool call failed (isolated per call)."""

    VALIDATION_ERROR = "validation_error"
    DOMAIN_ERROR = "domain_error"
    UNKNOWN_TOOL = "unknown_tool"
    BATCH_ABORTED = "batch_aborted"


class ToolStatus(StrEnum):
    """Discriminator for tool outcomes."""

    SUCCESS = "success"
    FAILURE = "failure"


class ShapeType(StrEnum):
    RECTANGLE = "rectangle"
    CIRCLE = "circle"
    TRIANGLE = "triangle"


class ComponentType(StrEnum):
    """Composite UI constructs the component builder knows how to lay out."""

    LOGIN_FORM = "login_form"
    NAVBAR = "navbar"
    CARD = "card"
    BUTTON = "button"
    SIDEBAR = "sidebar"


class ThemeName(StrEnum):
    LIGHT = "light"
    DARK = "dark"
    BLUE = "blue"
    GREEN = "green"


class LayoutType(StrEnum):
    """Arrangement strategies for arrange_objects."""

    HORIZONTAL = "horizontal"
    VERTICAL = "vertical"
    GRID = "grid"
    CIRCULAR = "circular"
    STACK = "stack"


class CanvasEventType(StrEnum):
    """Real-time fan-out event types published after mutations."""

    OBJECT_CREATED = "object_created"
    OBJECT_UPDATED = "object_updated"
    OBJECT_DELETED = "object_deleted"
