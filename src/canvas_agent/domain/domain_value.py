"""Value Layer - Immutable Records Flowing Through a Command.

Every value created while serving a command is request-scoped and frozen:
the command itself, the tool calls a provider returned, and the per-call
results. Canvas entities mirror what the document store persisted.

Architecture:
    - Identity: CommandId (RootModel UUID wrapper)
    - Input: Command + AmbientOptions
    - Provider output: ToolCall
    - Execution output: ToolResult with a discriminated outcome (ToolSuccess | ToolFailure)
    - Canvas state: Canvas, Entity, EntityDraft, CanvasEvent
"""

from __future__ import annotations

from datetime import UTC, datetime
from typing import Annotated, Any, Literal
from uuid import UUID, uuid4

from pydantic import BaseModel, ConfigDict, Field, RootModel

from .domain_type import CanvasEventType, ToolErrorKind, ToolStatus


class CommandId(RootModel[UUID]):
    """Unique Identifier for a Single Command Invocation.

    Correlates the telemetry event, log lines and the API response of one
    command. Frozen so it can be used as a dictionary key.

    Usage:
        >>> command_id = CommandId()
        >>> str(command_id.root)
        '550e8400-e29b-41d4-a716-446655440000'
    """

    root: UUID = Field(default_factory=uuid4)
    model_config = ConfigDict(frozen=True)


# ---------------------------------------------------------------------------
# Command input
# ---------------------------------------------------------------------------


class Viewport(BaseModel):
    """Visible region of the canvas (hint for placement)."""

    x: float = 0
    y: float = 0
    width: float = 1200
    height: float = 800

    model_config = ConfigDict(frozen=True)


class AmbientOptions(BaseModel):
    """Context the user did not type but the UI knows.

    Attributes:
        color: Current drawing color, used when a tool call omits one
        theme: Preferred component theme
        viewport: Visible region hint
    """

    color: str | None = None
    theme: str | None = None
    viewport: Viewport | None = None

    model_config = ConfigDict(frozen=True)


class Command(BaseModel):
    """A natural-language instruction targeted at one canvas.

    Attributes:
        text: Free-form instruction ("create a red circle")
        canvas_id: Target document
        selection: Entity ids the user currently has selected
        ambient: Current color, theme and viewport
    """

    id: CommandId = Field(default_factory=CommandId)
    text: str
    canvas_id: int
    selection: tuple[int, ...] = ()
    ambient: AmbientOptions = Field(default_factory=AmbientOptions)

    model_config = ConfigDict(frozen=True)


# ---------------------------------------------------------------------------
# Provider output and execution results
# ---------------------------------------------------------------------------


class ToolCall(BaseModel):
    """A structured operation proposed by a language model."""

    id: str | None = None
    name: str
    input: dict[str, Any] = Field(default_factory=dict)

    model_config = ConfigDict(frozen=True)

    def with_input(self, new_input: dict[str, Any]) -> ToolCall:
        return self.model_copy(update={"input": new_input})


class ToolSuccess(BaseModel):
    status: Literal[ToolStatus.SUCCESS] = ToolStatus.SUCCESS
    payload: Any = None

    model_config = ConfigDict(frozen=True)


class ToolFailure(BaseModel):
    status: Literal[ToolStatus.FAILURE] = ToolStatus.FAILURE
    kind: ToolErrorKind
    reason: str

    model_config = ConfigDict(frozen=True)


ToolOutcome = Annotated[ToolSuccess | ToolFailure, Field(discriminator="status")]


class ToolResult(BaseModel):
    """Outcome of executing one ToolCall.

    Pydantic dispatches the outcome union on its ``status`` field, so a
    result is either a success carrying a payload or a failure carrying a
    kind and reason, never both.
    """

    tool: str
    input: dict[str, Any]
    outcome: ToolOutcome

    model_config = ConfigDict(frozen=True)

    @classmethod
    def success(cls, call: ToolCall, payload: Any) -> ToolResult:
        return cls(tool=call.name, input=call.input, outcome=ToolSuccess(payload=payload))

    @classmethod
    def failure(cls, call: ToolCall, kind: ToolErrorKind, reason: str) -> ToolResult:
        return cls(tool=call.name, input=call.input, outcome=ToolFailure(kind=kind, reason=reason))

    @property
    def ok(self) -> bool:
        return isinstance(self.outcome, ToolSuccess)


# ---------------------------------------------------------------------------
# Canvas state
# ---------------------------------------------------------------------------


class Position(BaseModel):
    x: float
    y: float

    model_config = ConfigDict(frozen=True)


class Canvas(BaseModel):
    id: int
    name: str
    created_at: datetime = Field(default_factory=lambda: datetime.now(UTC))

    model_config = ConfigDict(frozen=True)


class EntityDraft(BaseModel):
    """Attributes of an entity that has not been stored yet."""

    kind: str = Field(min_length=1)
    position: Position
    data: dict[str, Any] = Field(default_factory=dict)

    model_config = ConfigDict(frozen=True)


class Entity(BaseModel):
    """A stored canvas object (shape, text, component part)."""

    id: int
    canvas_id: int
    kind: str
    position: Position
    data: dict[str, Any] = Field(default_factory=dict)
    created_at: datetime = Field(default_factory=lambda: datetime.now(UTC))

    model_config = ConfigDict(frozen=True)

    @property
    def width(self) -> float:
        if "width" in self.data:
            return float(self.data["width"])
        if self.kind == "text":
            return float(self.data.get("font_size", 16)) * 0.6 * len(str(self.data.get("text", "")))
        return 0.0

    @property
    def height(self) -> float:
        if "height" in self.data:
            return float(self.data["height"])
        if self.kind == "text":
            return float(self.data.get("font_size", 16)) * 1.2
        return self.width


class CanvasEvent(BaseModel):
    """Fan-out notification about mutated entities."""

    type: CanvasEventType
    canvas_id: int
    entity_ids: tuple[int, ...]
    entities: tuple[Entity, ...] = ()

    model_config = ConfigDict(frozen=True)


__all__ = [
    "AmbientOptions",
    "Canvas",
    "CanvasEvent",
    "Command",
    "CommandId",
    "Entity",
    "EntityDraft",
    "Position",
    "ToolCall",
    "ToolFailure",
    "ToolOutcome",
    "ToolResult",
    "ToolSuccess",
    "Viewport",
]
