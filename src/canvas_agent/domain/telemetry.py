"""Command Telemetry - One Event per Command, Success or Failure.

Every command invocation produces exactly one CommandTelemetry event, emitted
from the orchestrator's ``finally`` block so failures are never missing from
the record. Events go to Logfire as structured attributes and into a bounded
in-memory buffer that the status API reads.

Key Components:
    - LogfireAttributes: typed wrapper over the dict unpacked into logfire calls
    - CommandTelemetry: immutable event; duration derived from timestamps
    - TelemetrySink: emit + recent-event buffer
"""

from __future__ import annotations

import threading
from collections import deque
from datetime import datetime
from typing import Any

import logfire
from pydantic import BaseModel, ConfigDict, RootModel, computed_field

from .domain_type import CommandClass, CommandErrorKind
from .domain_value import CommandId


class LogfireAttributes(RootModel[dict[str, Any]]):
    """Telemetry exported as Logfire attributes.

    Logfire attributes must be a plain ``dict[str, Any]`` with JSON-compatible
    values; the wrapper keeps the key layout in one place.

    Example:
        >>> attrs = event.to_logfire_attributes()
        >>> logfire.info("command finished", **attrs.root)
    """

    root: dict[str, Any]
    model_config = ConfigDict(frozen=True)


class CommandTelemetry(BaseModel):
    """Outcome of one command for dashboards and tracing.

    Attributes:
        command_id: Correlation id shared with the API response
        canvas_id: Target canvas
        classification: fast or capable (None if the command failed before classifying)
        provider_used: Provider that produced the tool calls (None on failure)
        fallback_used: Whether the alternate provider served the command
        success: Whether the command produced results
        error_kind: Failure kind when success is False
        tool_call_count: Tool calls the provider returned
        start_time / end_time: Wall-clock bounds
    """

    command_id: CommandId
    canvas_id: int
    classification: CommandClass | None = None
    provider_used: str | None = None
    fallback_used: bool = False
    success: bool
    error_kind: CommandErrorKind | None = None
    tool_call_count: int = 0
    start_time: datetime
    end_time: datetime

    model_config = ConfigDict(frozen=True)

    @computed_field
    @property
    def duration_ms(self) -> float:
        return round((self.end_time - self.start_time).total_seconds() * 1000, 1)

    def to_logfire_attributes(self) -> LogfireAttributes:
        return LogfireAttributes(
            {
                "command.id": str(self.command_id.root),
                "command.canvas_id": self.canvas_id,
                "command.classification": self.classification.value if self.classification else None,
                "command.provider_used": self.provider_used,
                "command.fallback_used": self.fallback_used,
                "command.success": self.success,
                "command.error_kind": self.error_kind.value if self.error_kind else None,
                "command.tool_call_count": self.tool_call_count,
                "command.duration_ms": self.duration_ms,
            }
        )


class TelemetrySink:
    """Emits command events to Logfire and keeps the most recent ones."""

    def __init__(self, buffer_size: int = 500):
        self._events: deque[CommandTelemetry] = deque(maxlen=buffer_size)
        self._lock = threading.Lock()

    def emit(self, event: CommandTelemetry) -> None:
        with self._lock:
            self._events.append(event)
        attrs = event.to_logfire_attributes().root
        if event.success:
            logfire.info("AI command completed", **attrs)
        else:
            logfire.warn("AI command failed", **attrs)

    def recent(self, limit: int | None = None) -> list[CommandTelemetry]:
        """Newest-last list of buffered events."""
        with self._lock:
            events = list(self._events)
        return events[-limit:] if limit else events


__all__ = ["CommandTelemetry", "LogfireAttributes", "TelemetrySink"]
