"""Batch Executor - All-or-Nothing Creation for Runs of Create Calls.

When a model answers "create a red circle, a blue square and a title" with
three create calls, storing them one by one costs three round trips and can
leave the canvas half-drawn if the second write fails. The batch executor
validates every call first, expands them into drafts, and commits all drafts
in a single atomic store operation.

Result Mapping:
    Call i contributed n_i drafts; the created entities come back in draft
    order, so call i receives entities[offset_i : offset_i + n_i]. A call
    with count > 1 reports {count, objects}.

Failure Semantics:
    - Any call fails validation → nothing is stored; that call reports
      validation_error, every sibling reports batch_aborted
    - The store rejects the batch → nothing is stored; every call reports
      domain_error
"""

from __future__ import annotations

import time
from collections.abc import Sequence

import logfire
from pydantic import BaseModel, ConfigDict, Field, ValidationError

from .canvas_tools import creation_payload, publish
from .domain_type import CanvasEventType, ToolErrorKind
from .domain_value import EntityDraft, ToolCall, ToolResult
from .errors import DomainError
from .tools import ToolContext, ToolRegistry, describe_validation_error


class BatchExecutor(BaseModel):
    """Atomic executor for consecutive batchable (create-style) tool calls.

    Attributes:
        registry: Source of tools and their draft builders
        warn_after_ms: Batches slower than this are logged as warnings
    """

    registry: ToolRegistry
    warn_after_ms: float = Field(default=2000.0, gt=0)

    model_config = ConfigDict(frozen=True)

    def accepts(self, call: ToolCall) -> bool:
        return self.registry.is_batchable(call.name)

    async def execute_batch(self, calls: Sequence[ToolCall], ctx: ToolContext) -> list[ToolResult]:
        """Create every entity the calls describe, or none of them.

        Returns:
            One ToolResult per call, in call order
        """
        if not calls:
            return []
        started = time.perf_counter()

        drafts_per_call: list[list[EntityDraft]] = []
        rejected: dict[int, str] = {}
        for index, call in enumerate(calls):
            tool = self.registry.tools.get(call.name)
            if tool is None or tool.draft_builder is None:
                rejected[index] = f"Tool '{call.name}' cannot be batched"
                continue
            try:
                params = tool.parse(call.input)
            except ValidationError as exc:
                rejected[index] = describe_validation_error(exc)
                continue
            drafts_per_call.append(tool.draft_builder(params, ctx))

        if rejected:
            logfire.warn("Batch rejected during validation", calls=len(calls), invalid=sorted(rejected))
            return [
                ToolResult.failure(call, ToolErrorKind.VALIDATION_ERROR, rejected[index])
                if index in rejected
                else ToolResult.failure(
                    call,
                    ToolErrorKind.BATCH_ABORTED,
                    f"Batch rolled back: call {min(rejected) + 1} of {len(calls)} was invalid",
                )
                for index, call in enumerate(calls)
            ]

        drafts = [draft for group in drafts_per_call for draft in group]
        try:
            entities = await ctx.store.create_entities_batch(ctx.canvas_id, drafts)
        except DomainError as exc:
            logfire.error("Batch create failed", calls=len(calls), objects=len(drafts), reason=str(exc))
            return [ToolResult.failure(call, ToolErrorKind.DOMAIN_ERROR, f"Batch create failed: {exc}") for call in calls]

        publish(ctx, CanvasEventType.OBJECT_CREATED, entities)

        results: list[ToolResult] = []
        offset = 0
        for call, group in zip(calls, drafts_per_call, strict=True):
            created = entities[offset : offset + len(group)]
            offset += len(group)
            results.append(ToolResult.success(call, creation_payload(created)))

        elapsed_ms = (time.perf_counter() - started) * 1000
        if elapsed_ms > self.warn_after_ms:
            logfire.warn(
                "Batch create exceeded time budget",
                objects=len(entities),
                duration_ms=round(elapsed_ms, 1),
                budget_ms=self.warn_after_ms,
            )
        else:
            logfire.debug("Batch create finished", objects=len(entities), duration_ms=round(elapsed_ms, 1))
        return results


__all__ = ["BatchExecutor"]
