"""
Tests for command telemetry events and the sink buffer.

These tests demonstrate:
- Testing computed fields (duration derived from timestamps)
- The Logfire attribute layout as a contract dashboards rely on
"""

from datetime import UTC, datetime, timedelta

from canvas_agent.domain.domain_type import CommandClass, CommandErrorKind
from canvas_agent.domain.domain_value import CommandId
from canvas_agent.domain.telemetry import CommandTelemetry, TelemetrySink


def _event(success: bool = True, **kwargs) -> CommandTelemetry:
    start = datetime(2024, 1, 1, tzinfo=UTC)
    return CommandTelemetry(
        command_id=CommandId(),
        canvas_id=1,
        success=success,
        start_time=start,
        end_time=start + timedelta(milliseconds=1234.5),
        **kwargs,
    )


def test_duration_is_derived_from_timestamps():
    assert _event().duration_ms == 1234.5


def test_logfire_attributes_layout():
    event = _event(
        classification=CommandClass.FAST,
        provider_used="groq:llama-3.3-70b-versatile",
        fallback_used=True,
        tool_call_count=2,
    )

    attrs = event.to_logfire_attributes().root

    assert attrs["command.id"] == str(event.command_id.root)
    assert attrs["command.classification"] == "fast"
    assert attrs["command.provider_used"] == "groq:llama-3.3-70b-versatile"
    assert attrs["command.fallback_used"] is True
    assert attrs["command.error_kind"] is None
    assert attrs["command.tool_call_count"] == 2
    assert attrs["command.duration_ms"] == 1234.5


def test_failure_attributes_carry_error_kind():
    attrs = _event(success=False, error_kind=CommandErrorKind.TIMEOUT).to_logfire_attributes().root

    assert attrs["command.success"] is False
    assert attrs["command.error_kind"] == "timeout"
    assert attrs["command.classification"] is None


def test_sink_keeps_only_the_newest_events():
    """Demonstrates: The buffer is bounded; old events fall off the front."""
    sink = TelemetrySink(buffer_size=3)
    events = [_event(tool_call_count=index) for index in range(5)]
    for event in events:
        sink.emit(event)

    assert [event.tool_call_count for event in sink.recent()] == [2, 3, 4]
    assert [event.tool_call_count for event in sink.recent(limit=2)] == [3, 4]
