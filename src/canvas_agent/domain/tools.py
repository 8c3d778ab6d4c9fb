"""Tool Registry & Dispatcher.

Tools are the only way a language model can change the canvas. Each tool
couples a name and description (what the model sees), a Pydantic input
model (validation + the JSON schema sent to providers) and an async
executor (what actually runs).

Key Components:
    - ToolContext: per-command execution context (canvas, selection, color, ports)
    - Tool: one registered operation; batchable when it can express its work as drafts
    - ToolRegistry: O(1) name lookup and per-call dispatch with isolated failures

Failure Isolation:
    A ToolCall that names an unknown tool, fails input validation, or is
    rejected by the domain yields a failed ToolResult for that call only.
    Other calls in the same command are unaffected.
"""

from __future__ import annotations

from collections.abc import Awaitable, Callable, Iterable
from typing import Any

import logfire
from pydantic import BaseModel, ConfigDict, Field, ValidationError, model_validator

from .domain_type import ToolErrorKind
from .domain_value import EntityDraft, ToolCall, ToolResult
from .errors import DomainError
from .ports import DocumentStore, EventPublisher

Executor = Callable[[Any, "ToolContext"], Awaitable[Any]]
DraftBuilder = Callable[[Any, "ToolContext"], list[EntityDraft]]


class ToolContext(BaseModel):
    """Everything an executor may touch while serving one command.

    Attributes:
        canvas_id: Target document
        selection: Entity ids selected in the UI (fallback targets)
        current_color: Ambient drawing color, applied when a call omits one
        theme: Ambient component theme
        store: Document store port
        events: Real-time fan-out port
    """

    canvas_id: int
    selection: tuple[int, ...] = ()
    current_color: str | None = None
    theme: str | None = None
    store: DocumentStore
    events: EventPublisher

    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)


class ToolSchema(BaseModel):
    """Provider-facing description of a tool (name, purpose, JSON schema)."""

    name: str
    description: str
    parameters: dict[str, Any]

    model_config = ConfigDict(frozen=True)


class Tool(BaseModel):
    """A registered canvas operation.

    Attributes:
        name: Identifier the model uses in its tool calls
        description: Guidance shown to the model
        input_model: Pydantic model that validates raw call input
        executor: Async callable (validated input, context) -> JSON-able payload
        draft_builder: Present for create-style tools; turns validated input
            into entity drafts so calls can be stored in one atomic batch
    """

    name: str = Field(pattern=r"^[a-z][a-z0-9_]*$")
    description: str
    input_model: type[BaseModel]
    executor: Executor
    draft_builder: DraftBuilder | None = None

    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    @property
    def batchable(self) -> bool:
        return self.draft_builder is not None

    def schema(self) -> ToolSchema:
        return ToolSchema(
            name=self.name,
            description=self.description,
            parameters=self.input_model.model_json_schema(),
        )

    def parse(self, raw: dict[str, Any]) -> BaseModel:
        """Validate raw call input. Raises pydantic.ValidationError."""
        return self.input_model.model_validate(raw)


def describe_validation_error(exc: ValidationError) -> str:
    """Compact one-line summary of a pydantic ValidationError."""
    parts = []
    for error in exc.errors():
        location = ".".join(str(item) for item in error["loc"]) or "input"
        parts.append(f"{location}: {error['msg']}")
    return "; ".join(parts)


class ToolRegistry(BaseModel):
    """Name → Tool mapping with dispatch.

    Lookup is a dict access; there is no chain of name comparisons to
    extend when a tool is added.
    """

    tools: dict[str, Tool]

    model_config = ConfigDict(frozen=True)

    @model_validator(mode="after")
    def _names_match_keys(self) -> ToolRegistry:
        for key, tool in self.tools.items():
            if key != tool.name:
                raise ValueError(f"Tool registered under '{key}' is named '{tool.name}'")
        return self

    @classmethod
    def from_tools(cls, tools: Iterable[Tool]) -> ToolRegistry:
        registered: dict[str, Tool] = {}
        for tool in tools:
            if tool.name in registered:
                raise ValueError(f"Duplicate tool name '{tool.name}'")
            registered[tool.name] = tool
        return cls(tools=registered)

    def __contains__(self, name: object) -> bool:
        return name in self.tools

    def get(self, name: str) -> Tool:
        tool = self.tools.get(name)
        if tool is None:
            raise KeyError(f"Tool '{name}' is not registered")
        return tool

    def schemas(self) -> list[ToolSchema]:
        return [tool.schema() for tool in self.tools.values()]

    def is_batchable(self, name: str) -> bool:
        tool = self.tools.get(name)
        return tool is not None and tool.batchable

    async def dispatch(self, call: ToolCall, ctx: ToolContext) -> ToolResult:
        """Validate and execute one tool call; never raises for per-call failures."""
        tool = self.tools.get(call.name)
        if tool is None:
            logfire.warn("Unknown tool requested", tool=call.name)
            return ToolResult.failure(call, ToolErrorKind.UNKNOWN_TOOL, f"Unknown tool '{call.name}'")

        try:
            params = tool.parse(call.input)
        except ValidationError as exc:
            reason = describe_validation_error(exc)
            logfire.warn("Tool input rejected", tool=call.name, reason=reason)
            return ToolResult.failure(call, ToolErrorKind.VALIDATION_ERROR, reason)

        try:
            payload = await tool.executor(params, ctx)
        except DomainError as exc:
            logfire.warn("Tool execution rejected", tool=call.name, reason=str(exc))
            return ToolResult.failure(call, ToolErrorKind.DOMAIN_ERROR, str(exc))

        logfire.debug("Tool executed", tool=call.name, canvas_id=ctx.canvas_id)
        return ToolResult.success(call, payload)


__all__ = [
    "DraftBuilder",
    "Executor",
    "Tool",
    "ToolContext",
    "ToolRegistry",
    "ToolSchema",
    "describe_validation_error",
]
