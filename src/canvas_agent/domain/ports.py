"""Interfaces the domain consumes but does not own.

The document store and the real-time fan-out live outside this package;
tool executors reach them only through these protocols.
"""

from __future__ import annotations

from collections.abc import Sequence
from typing import Any, Protocol, runtime_checkable

from .domain_value import Canvas, CanvasEvent, Entity, EntityDraft, Position


@runtime_checkable
class DocumentStore(Protocol):
    """Persistent canvas store.

    Every method raises DomainError when the store rejects the operation.
    ``create_entities_batch`` is all-or-nothing: on failure no entity of the
    batch is visible to any reader.
    """

    async def get_canvas(self, canvas_id: int) -> Canvas | None: ...

    async def create_canvas(self, name: str) -> Canvas: ...

    async def get_entity(self, entity_id: int) -> Entity | None: ...

    async def list_entities(self, canvas_id: int) -> list[Entity]: ...

    async def create_entity(self, canvas_id: int, draft: EntityDraft) -> Entity: ...

    async def create_entities_batch(self, canvas_id: int, drafts: Sequence[EntityDraft]) -> list[Entity]: ...

    async def update_entity(
        self,
        entity_id: int,
        *,
        position: Position | None = None,
        data: dict[str, Any] | None = None,
    ) -> Entity: ...

    async def delete_entity(self, entity_id: int) -> Entity: ...


@runtime_checkable
class EventPublisher(Protocol):
    """Fire-and-forget notification to everyone watching a canvas."""

    def publish(self, event: CanvasEvent) -> None: ...


__all__ = ["DocumentStore", "EventPublisher"]
