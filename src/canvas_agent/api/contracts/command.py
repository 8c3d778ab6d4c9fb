"""Command API contracts."""

from __future__ import annotations

from pydantic import BaseModel, Field

from ...domain.agent import CommandOutcome
from ...domain.domain_type import CommandClass
from ...domain.domain_value import AmbientOptions, CommandId, ToolResult, Viewport


class CommandRequest(BaseModel):
    """Natural-language instruction for one canvas."""

    text: str = Field(
        min_length=1,
        max_length=10_000,
        description="What the AI should do on the canvas",
        examples=["create a login form", "arrange the selected shapes in a grid"],
    )
    selection: list[int] = Field(
        default_factory=list,
        description="Ids of the objects currently selected in the editor",
        examples=[[7, 8]],
    )
    color: str | None = Field(
        default=None,
        description="Current color picker value (hex or name); default fill for new objects",
        examples=["#FF0000"],
    )
    theme: str | None = Field(
        default=None,
        description="Current theme for generated components (light, dark, blue, green)",
        examples=["dark"],
    )
    viewport: Viewport | None = Field(
        default=None,
        description="Visible area of the canvas",
    )

    def ambient(self) -> AmbientOptions:
        return AmbientOptions(color=self.color, theme=self.theme, viewport=self.viewport)


class CommandResponse(BaseModel):
    """Outcome of a served command."""

    command_id: CommandId = Field(description="Correlation id, also present in telemetry")
    classification: CommandClass
    provider_used: str
    fallback_used: bool
    duration_ms: float = Field(ge=0)
    reply_text: str | None = Field(default=None, description="Plain text the model returned, if any")
    results: list[ToolResult]
    succeeded: int = Field(ge=0)
    failed: int = Field(ge=0)

    @classmethod
    def from_outcome(cls, outcome: CommandOutcome) -> CommandResponse:
        succeeded = sum(1 for result in outcome.results if result.ok)
        return cls(
            command_id=outcome.command_id,
            classification=outcome.classification,
            provider_used=outcome.provider_used,
            fallback_used=outcome.fallback_used,
            duration_ms=outcome.duration_ms,
            reply_text=outcome.reply_text,
            results=list(outcome.results),
            succeeded=succeeded,
            failed=len(outcome.results) - succeeded,
        )


class CommandErrorResponse(BaseModel):
    """Body of the ``detail`` field when a command fails."""

    kind: str
    message: str
    provider: str | None = None
