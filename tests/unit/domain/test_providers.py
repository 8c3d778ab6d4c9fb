"""
Tests for the Pydantic AI backed provider adapter.

These tests demonstrate:
- Replacing a real vendor with FunctionModel (no network, no API key)
- Testing the error mapping contract, one failure mode per test
- Asserting on what the model was sent, not on how the request was built
"""

import asyncio

import httpx
import pytest
from pydantic_ai.exceptions import ModelHTTPError
from pydantic_ai.messages import ModelMessage, ModelResponse, TextPart, ToolCallPart
from pydantic_ai.models.function import AgentInfo, FunctionModel

from canvas_agent.domain.canvas_tools import build_canvas_registry
from canvas_agent.domain.domain_type import ProviderErrorKind
from canvas_agent.domain.errors import ProviderError
from canvas_agent.domain.provider_catalog import ProviderCatalog
from canvas_agent.domain.providers import PROBE_PROMPT, ProviderAdapter

PROVIDER = "groq:llama-3.3-70b-versatile"


@pytest.fixture
def catalog() -> ProviderCatalog:
    return ProviderCatalog.from_json_file()


def _adapter(catalog: ProviderCatalog, model: FunctionModel | None = None, **kwargs) -> ProviderAdapter:
    spec = catalog.parse_spec(PROVIDER)
    return ProviderAdapter(spec=spec, variant=spec.variant(catalog), model=model, **kwargs)


def _respond(*parts):
    def handler(messages: list[ModelMessage], info: AgentInfo) -> ModelResponse:
        return ModelResponse(parts=list(parts))

    return FunctionModel(handler)


def _raise(exc: Exception):
    def handler(messages: list[ModelMessage], info: AgentInfo) -> ModelResponse:
        raise exc

    return FunctionModel(handler)


@pytest.mark.asyncio
async def test_tool_calls_are_parsed(catalog: ProviderCatalog):
    """
    Demonstrates: Happy path - the model sees the command and the tool schemas.
    """
    seen: dict[str, object] = {}

    def handler(messages: list[ModelMessage], info: AgentInfo) -> ModelResponse:
        seen["prompt"] = messages[-1].parts[-1].content
        seen["tools"] = {tool.name for tool in info.function_tools}
        return ModelResponse(
            parts=[ToolCallPart(tool_name="create_shape", args={"type": "circle", "x": 100, "y": 100}, tool_call_id="t1")]
        )

    adapter = _adapter(catalog, FunctionModel(handler))

    reply = await adapter.call("create a circle", build_canvas_registry().schemas())

    assert reply.provider == PROVIDER
    assert reply.tool_calls[0].name == "create_shape"
    assert reply.tool_calls[0].input == {"type": "circle", "x": 100, "y": 100}
    assert reply.tool_calls[0].id == "t1"
    assert seen["prompt"] == "create a circle"
    assert "create_shape" in seen["tools"]


@pytest.mark.asyncio
async def test_json_string_arguments_are_decoded(catalog: ProviderCatalog):
    adapter = _adapter(catalog, _respond(ToolCallPart(tool_name="delete_object", args='{"object_id": 4}')))

    reply = await adapter.call("delete object 4", [])

    assert reply.tool_calls[0].input == {"object_id": 4}


@pytest.mark.asyncio
async def test_text_only_reply_is_kept(catalog: ProviderCatalog):
    adapter = _adapter(catalog, _respond(TextPart(content="Nothing to do.")))

    reply = await adapter.call("hello", [])

    assert reply.tool_calls == ()
    assert reply.text == "Nothing to do."


@pytest.mark.asyncio
async def test_unparsable_arguments_are_malformed(catalog: ProviderCatalog):
    """Demonstrates: Bad model output is a typed failure, not a JSONDecodeError."""
    adapter = _adapter(catalog, _respond(ToolCallPart(tool_name="create_shape", args="{not json")))

    with pytest.raises(ProviderError) as exc_info:
        await adapter.call("create a circle", [])

    assert exc_info.value.kind == ProviderErrorKind.MALFORMED_RESPONSE


@pytest.mark.asyncio
async def test_empty_reply_is_malformed(catalog: ProviderCatalog):
    adapter = _adapter(catalog, _respond(TextPart(content="   ")))

    with pytest.raises(ProviderError) as exc_info:
        await adapter.call("create a circle", [])

    assert exc_info.value.kind == ProviderErrorKind.MALFORMED_RESPONSE


@pytest.mark.asyncio
async def test_http_status_is_preserved(catalog: ProviderCatalog):
    adapter = _adapter(catalog, _raise(ModelHTTPError(status_code=503, model_name="llama", body={"error": "overloaded"})))

    with pytest.raises(ProviderError) as exc_info:
        await adapter.call("create a circle", [])

    assert exc_info.value.kind == ProviderErrorKind.HTTP_ERROR
    assert exc_info.value.status == 503
    assert exc_info.value.provider == PROVIDER


@pytest.mark.asyncio
async def test_transport_failure_is_request_failed(catalog: ProviderCatalog):
    adapter = _adapter(catalog, _raise(httpx.ConnectError("connection refused")))

    with pytest.raises(ProviderError) as exc_info:
        await adapter.call("create a circle", [])

    assert exc_info.value.kind == ProviderErrorKind.REQUEST_FAILED


@pytest.mark.asyncio
async def test_timeout_is_request_failed(catalog: ProviderCatalog):
    """Demonstrates: The per-call budget bounds a hanging vendor."""

    async def slow(messages: list[ModelMessage], info: AgentInfo) -> ModelResponse:
        await asyncio.sleep(1)
        return ModelResponse(parts=[TextPart(content="late")])

    adapter = _adapter(catalog, FunctionModel(slow))

    with pytest.raises(ProviderError) as exc_info:
        await adapter.call("create a circle", [], timeout=0.05)

    assert exc_info.value.kind == ProviderErrorKind.REQUEST_FAILED
    assert "timed out" in str(exc_info.value)


@pytest.mark.asyncio
async def test_missing_key_fails_before_any_request(catalog: ProviderCatalog):
    """Demonstrates: No key means missing_credentials, not a network error."""
    adapter = _adapter(catalog, api_key=None)

    with pytest.raises(ProviderError) as exc_info:
        await adapter.call("create a circle", [])

    assert exc_info.value.kind == ProviderErrorKind.MISSING_CREDENTIALS


@pytest.mark.asyncio
async def test_probe_sends_minimal_prompt_without_tools(catalog: ProviderCatalog):
    seen: dict[str, object] = {}

    def handler(messages: list[ModelMessage], info: AgentInfo) -> ModelResponse:
        seen["prompt"] = messages[-1].parts[-1].content
        seen["tools"] = list(info.function_tools)
        return ModelResponse(parts=[TextPart(content="ok")])

    await _adapter(catalog, FunctionModel(handler)).probe(timeout=1)

    assert seen == {"prompt": PROBE_PROMPT, "tools": []}


def test_adapter_exposes_catalog_metadata(catalog: ProviderCatalog):
    adapter = _adapter(catalog)

    assert adapter.name == PROVIDER
    assert adapter.average_latency_ms == 400
    assert adapter.max_output_tokens > 0
