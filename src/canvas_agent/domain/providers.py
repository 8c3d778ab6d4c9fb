"""Provider Adapters - One Request, Parsed Tool Calls, Typed Failures.

Wraps a vendor model behind a uniform contract: send the command text plus
the tool schemas, get back the tool calls (and any plain text) the model
produced. Vendor wire formats (Anthropic Messages, OpenAI-compatible chat
completions for Groq and OpenAI) are handled by Pydantic AI's model classes;
this layer only builds the request, bounds it with a timeout and maps every
failure onto the closed ProviderErrorKind set.

Key Components:
    - Provider: protocol the orchestrator and health monitor depend on
    - ProviderAdapter: Pydantic AI backed implementation for catalog models
    - ProviderReply: parsed tool calls, text and measured latency

Contract:
    - Exactly one request per call, never retried here (fallback is the
      orchestrator's job)
    - Missing API key → missing_credentials, raised before any model is built
    - Non-2xx → http_error; transport failure or timeout → request_failed;
      unparsable output → malformed_response
"""

from __future__ import annotations

import asyncio
import json
import time
from collections.abc import Sequence
from typing import TYPE_CHECKING, Any, Protocol, runtime_checkable

import httpx
import logfire
from pydantic import BaseModel, ConfigDict, PrivateAttr, SecretStr
from pydantic_ai.direct import model_request
from pydantic_ai.exceptions import AgentRunError, ModelHTTPError, UnexpectedModelBehavior
from pydantic_ai.messages import ModelRequest, ModelResponse, SystemPromptPart, TextPart, ToolCallPart, UserPromptPart
from pydantic_ai.models import ModelRequestParameters
from pydantic_ai.settings import ModelSettings
from pydantic_ai.tools import ToolDefinition

from .domain_type import AIModelVendor
from .domain_value import ToolCall
from .errors import ProviderError
from .provider_catalog import ModelVariant, ProviderCatalog, ProviderSpec
from .tools import ToolSchema

if TYPE_CHECKING:
    from pydantic_ai.models import Model

SYSTEM_PROMPT = """You operate a collaborative drawing canvas through tools.
Translate the user's instruction into tool calls; do not describe what you would do.
- Use explicit numeric coordinates and sizes in canvas pixels.
- Colors are hex strings such as #FF0000.
- Refer to existing objects by the numeric ids listed in the context.
- For forms, navigation bars, cards, button groups and sidebars use create_component.
- For rows, columns, grids and circles of existing objects use arrange_objects."""

PROBE_PROMPT = "Reply with the single word: ok"


class ProviderReply(BaseModel):
    """What a provider answered for one command."""

    provider: str
    tool_calls: tuple[ToolCall, ...] = ()
    text: str | None = None
    latency_ms: float

    model_config = ConfigDict(frozen=True)


@runtime_checkable
class Provider(Protocol):
    """Uniform contract over language-model backends."""

    @property
    def name(self) -> str: ...

    @property
    def average_latency_ms(self) -> int: ...

    @property
    def max_output_tokens(self) -> int: ...

    async def call(
        self,
        command: str,
        tools: Sequence[ToolSchema],
        *,
        timeout: float | None = None,
    ) -> ProviderReply: ...

    async def probe(self, *, timeout: float) -> None: ...


def tool_definitions(tools: Sequence[ToolSchema]) -> list[ToolDefinition]:
    return [
        ToolDefinition(name=tool.name, description=tool.description, parameters_json_schema=tool.parameters)
        for tool in tools
    ]


def parse_response(provider: str, response: ModelResponse, latency_ms: float) -> ProviderReply:
    """Extract tool calls and text from a model response.

    Raises:
        ProviderError: malformed_response when arguments are not a JSON object
            or the response carries neither tool calls nor text
    """
    calls: list[ToolCall] = []
    texts: list[str] = []
    for part in response.parts:
        if isinstance(part, ToolCallPart):
            if not part.tool_name:
                raise ProviderError.malformed_response(provider, "tool call without a name")
            raw: Any = part.args
            if isinstance(raw, str):
                try:
                    raw = json.loads(raw) if raw.strip() else {}
                except json.JSONDecodeError as exc:
                    raise ProviderError.malformed_response(provider, f"arguments for {part.tool_name} are not JSON") from exc
            if raw is None:
                raw = {}
            if not isinstance(raw, dict):
                raise ProviderError.malformed_response(provider, f"arguments for {part.tool_name} are not an object")
            calls.append(ToolCall(id=part.tool_call_id, name=part.tool_name, input=raw))
        elif isinstance(part, TextPart) and part.content.strip():
            texts.append(part.content.strip())

    if not calls and not texts:
        raise ProviderError.malformed_response(provider, "empty response")
    return ProviderReply(
        provider=provider,
        tool_calls=tuple(calls),
        text="\n".join(texts) or None,
        latency_ms=round(latency_ms, 1),
    )


class ProviderAdapter(BaseModel):
    """Catalog-described model called through Pydantic AI's direct API.

    Attributes:
        spec: Vendor + variant reference (also the adapter's name)
        variant: Catalog metadata (API id, latency, token budget)
        api_key: Vendor credential; None means calls fail with missing_credentials
        timeout_s: Default per-call timeout
        temperature: Sampling temperature (low, for deterministic tool use)
        system_prompt: Instructions sent ahead of every command
        model: Pre-built Pydantic AI model; skips credential lookup (tests, custom clients)

    Example:
        >>> adapter = ProviderAdapter.from_catalog(catalog.parse_spec("groq:llama-3.3-70b"), catalog, api_key=key)
        >>> reply = await adapter.call("create a red circle", registry.schemas())
        >>> reply.tool_calls[0].name
        'create_shape'
    """

    spec: ProviderSpec
    variant: ModelVariant
    api_key: SecretStr | None = None
    timeout_s: float = 10.0
    temperature: float = 0.1
    system_prompt: str = SYSTEM_PROMPT
    model: Any | None = None

    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    _model: Model | None = PrivateAttr(default=None)

    @classmethod
    def from_catalog(
        cls,
        spec: ProviderSpec,
        catalog: ProviderCatalog,
        *,
        api_key: str | None,
        timeout_s: float = 10.0,
    ) -> ProviderAdapter:
        return cls(
            spec=spec,
            variant=spec.variant(catalog),
            api_key=SecretStr(api_key) if api_key else None,
            timeout_s=timeout_s,
        )

    @property
    def name(self) -> str:
        return self.spec.identifier

    @property
    def average_latency_ms(self) -> int:
        return self.variant.avg_latency_ms

    @property
    def max_output_tokens(self) -> int:
        return self.variant.max_output_tokens

    def _resolve_model(self) -> Model:
        if self.model is not None:
            return self.model
        if self._model is None:
            self._model = self._build_model()
        return self._model

    def _build_model(self) -> Model:
        key = self.api_key.get_secret_value() if self.api_key else ""
        if not key:
            raise ProviderError.missing_credentials(self.name)

        api_id = self.variant.api_id
        if self.spec.vendor == AIModelVendor.ANTHROPIC:
            from pydantic_ai.models.anthropic import AnthropicModel
            from pydantic_ai.providers.anthropic import AnthropicProvider

            return AnthropicModel(api_id, provider=AnthropicProvider(api_key=key))
        if self.spec.vendor == AIModelVendor.GROQ:
            from pydantic_ai.models.groq import GroqModel
            from pydantic_ai.providers.groq import GroqProvider

            return GroqModel(api_id, provider=GroqProvider(api_key=key))
        if self.spec.vendor == AIModelVendor.OPENAI:
            from pydantic_ai.models.openai import OpenAIChatModel
            from pydantic_ai.providers.openai import OpenAIProvider

            return OpenAIChatModel(api_id, provider=OpenAIProvider(api_key=key))
        raise ValueError(f"No model builder for vendor '{self.spec.vendor.value}'")

    async def call(
        self,
        command: str,
        tools: Sequence[ToolSchema],
        *,
        timeout: float | None = None,
    ) -> ProviderReply:
        """Send one request and parse the reply.

        Args:
            command: Enriched command text
            tools: Tool schemas the model may call
            timeout: Overrides the adapter's default timeout for this call

        Raises:
            ProviderError: on any failure (see module docstring for mapping)
        """
        model = self._resolve_model()
        budget = timeout or self.timeout_s
        messages = [
            ModelRequest(parts=[SystemPromptPart(content=self.system_prompt), UserPromptPart(content=command)])
        ]
        settings = ModelSettings(max_tokens=self.max_output_tokens, temperature=self.temperature, timeout=budget)
        parameters = ModelRequestParameters(function_tools=tool_definitions(tools))

        started = time.perf_counter()
        try:
            response = await asyncio.wait_for(
                model_request(model, messages, model_settings=settings, model_request_parameters=parameters),
                timeout=budget,
            )
        except ModelHTTPError as exc:
            logfire.warn("Provider returned HTTP error", provider=self.name, status=exc.status_code)
            raise ProviderError.http_error(self.name, exc.status_code, exc.body) from exc
        except UnexpectedModelBehavior as exc:
            raise ProviderError.malformed_response(self.name, exc.message) from exc
        except TimeoutError as exc:
            raise ProviderError.request_failed(self.name, f"timed out after {budget}s") from exc
        except (httpx.HTTPError, OSError, AgentRunError) as exc:
            raise ProviderError.request_failed(self.name, exc) from exc

        latency_ms = (time.perf_counter() - started) * 1000
        reply = parse_response(self.name, response, latency_ms)
        logfire.debug(
            "Provider replied",
            provider=self.name,
            tool_calls=len(reply.tool_calls),
            latency_ms=reply.latency_ms,
        )
        return reply

    async def probe(self, *, timeout: float) -> None:
        """Minimal request used by the health monitor; raises ProviderError on failure."""
        await self.call(PROBE_PROMPT, (), timeout=timeout)


__all__ = [
    "PROBE_PROMPT",
    "SYSTEM_PROMPT",
    "Provider",
    "ProviderAdapter",
    "ProviderReply",
    "parse_response",
    "tool_definitions",
]
