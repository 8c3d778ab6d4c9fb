"""Document store adapters - in-process and Redis backed."""

from __future__ import annotations

import asyncio
from collections.abc import Sequence
from typing import TYPE_CHECKING, Any

import logfire
from pydantic import BaseModel, ConfigDict

from ..domain.domain_value import Canvas, Entity, EntityDraft, Position
from ..domain.errors import DomainError

if TYPE_CHECKING:
    from redis.asyncio import Redis

    from ..config import Settings


def _apply_update(entity: Entity, position: Position | None, data: dict[str, Any] | None) -> Entity:
    changes: dict[str, Any] = {}
    if position is not None:
        changes["position"] = position
    if data is not None:
        changes["data"] = {**entity.data, **data}
    return entity.model_copy(update=changes) if changes else entity


class InMemoryDocumentStore:
    """
    Process-local store for development and tests.

    A single asyncio lock serializes writes, so a batch is applied in one
    critical section and readers never see part of it.
    """

    def __init__(self) -> None:
        self._canvases: dict[int, Canvas] = {}
        self._entities: dict[int, Entity] = {}
        self._next_canvas_id = 1
        self._next_entity_id = 1
        self._lock = asyncio.Lock()

    async def get_canvas(self, canvas_id: int) -> Canvas | None:
        return self._canvases.get(canvas_id)

    async def create_canvas(self, name: str) -> Canvas:
        async with self._lock:
            canvas = Canvas(id=self._next_canvas_id, name=name)
            self._canvases[canvas.id] = canvas
            self._next_canvas_id += 1
        return canvas

    async def get_entity(self, entity_id: int) -> Entity | None:
        return self._entities.get(entity_id)

    async def list_entities(self, canvas_id: int) -> list[Entity]:
        return sorted(
            (entity for entity in self._entities.values() if entity.canvas_id == canvas_id),
            key=lambda entity: entity.id,
        )

    async def create_entity(self, canvas_id: int, draft: EntityDraft) -> Entity:
        entities = await self.create_entities_batch(canvas_id, [draft])
        return entities[0]

    async def create_entities_batch(self, canvas_id: int, drafts: Sequence[EntityDraft]) -> list[Entity]:
        async with self._lock:
            if canvas_id not in self._canvases:
                raise DomainError(f"Canvas {canvas_id} does not exist")
            created = [
                Entity(
                    id=self._next_entity_id + offset,
                    canvas_id=canvas_id,
                    kind=draft.kind,
                    position=draft.position,
                    data=dict(draft.data),
                )
                for offset, draft in enumerate(drafts)
            ]
            self._next_entity_id += len(created)
            self._entities.update((entity.id, entity) for entity in created)
        return created

    async def update_entity(
        self,
        entity_id: int,
        *,
        position: Position | None = None,
        data: dict[str, Any] | None = None,
    ) -> Entity:
        async with self._lock:
            entity = self._entities.get(entity_id)
            if entity is None:
                raise DomainError(f"Object {entity_id} does not exist")
            updated = _apply_update(entity, position, data)
            self._entities[entity_id] = updated
        return updated

    async def delete_entity(self, entity_id: int) -> Entity:
        async with self._lock:
            entity = self._entities.pop(entity_id, None)
        if entity is None:
            raise DomainError(f"Object {entity_id} does not exist")
        return entity


class RedisStoreConfig(BaseModel):
    """Redis connection configuration."""

    url: str
    key_prefix: str = "canvas"

    model_config = ConfigDict(frozen=True)


class RedisDocumentStore:
    """
    Redis-backed store.

    Layout (``p`` = key prefix):
        p:canvas:seq / p:entity:seq      id counters (INCR / INCRBY)
        p:canvas:{id}                    canvas JSON
        p:canvas:{id}:entities           sorted set of entity ids (score = id)
        p:entity:{id}                    entity JSON

    Batches reserve their ids with one INCRBY and write inside MULTI/EXEC,
    so either every entity of the batch lands or none does.
    """

    def __init__(self, config: RedisStoreConfig, client: Redis | None = None):
        self.config = config
        self._client = client

    @property
    def client(self) -> Redis:
        """Get or create Redis client (lazy)."""
        if self._client is None:
            from redis.asyncio import Redis

            self._client = Redis.from_url(self.config.url)
        return self._client

    def _key(self, *parts: object) -> str:
        return ":".join([self.config.key_prefix, *(str(part) for part in parts)])

    async def close(self) -> None:
        if self._client is not None:
            await self._client.aclose()
            self._client = None

    async def get_canvas(self, canvas_id: int) -> Canvas | None:
        raw = await self._read(self._key("canvas", canvas_id))
        return Canvas.model_validate_json(raw) if raw else None

    async def create_canvas(self, name: str) -> Canvas:
        from redis.exceptions import RedisError

        try:
            canvas_id = await self.client.incr(self._key("canvas", "seq"))
            canvas = Canvas(id=canvas_id, name=name)
            await self.client.set(self._key("canvas", canvas.id), canvas.model_dump_json())
        except RedisError as exc:
            raise DomainError(f"Could not create canvas: {exc}") from exc
        return canvas

    async def get_entity(self, entity_id: int) -> Entity | None:
        raw = await self._read(self._key("entity", entity_id))
        return Entity.model_validate_json(raw) if raw else None

    async def list_entities(self, canvas_id: int) -> list[Entity]:
        from redis.exceptions import RedisError

        try:
            ids = await self.client.zrange(self._key("canvas", canvas_id, "entities"), 0, -1)
            if not ids:
                return []
            rows = await self.client.mget([self._key("entity", int(entity_id)) for entity_id in ids])
        except RedisError as exc:
            raise DomainError(f"Could not list objects of canvas {canvas_id}: {exc}") from exc
        return [Entity.model_validate_json(row) for row in rows if row]

    async def create_entity(self, canvas_id: int, draft: EntityDraft) -> Entity:
        entities = await self.create_entities_batch(canvas_id, [draft])
        return entities[0]

    async def create_entities_batch(self, canvas_id: int, drafts: Sequence[EntityDraft]) -> list[Entity]:
        from redis.exceptions import RedisError

        if not drafts:
            return []
        if await self.get_canvas(canvas_id) is None:
            raise DomainError(f"Canvas {canvas_id} does not exist")
        try:
            last_id = await self.client.incrby(self._key("entity", "seq"), len(drafts))
            first_id = last_id - len(drafts) + 1
            created = [
                Entity(id=first_id + offset, canvas_id=canvas_id, kind=draft.kind, position=draft.position, data=dict(draft.data))
                for offset, draft in enumerate(drafts)
            ]
            async with self.client.pipeline(transaction=True) as pipe:
                for entity in created:
                    pipe.set(self._key("entity", entity.id), entity.model_dump_json())
                pipe.zadd(self._key("canvas", canvas_id, "entities"), {str(entity.id): entity.id for entity in created})
                await pipe.execute()
        except RedisError as exc:
            logfire.error("Batch write failed", canvas_id=canvas_id, size=len(drafts), error=str(exc))
            raise DomainError(f"Could not store {len(drafts)} objects: {exc}") from exc
        return created

    async def update_entity(
        self,
        entity_id: int,
        *,
        position: Position | None = None,
        data: dict[str, Any] | None = None,
    ) -> Entity:
        from redis.exceptions import RedisError

        entity = await self.get_entity(entity_id)
        if entity is None:
            raise DomainError(f"Object {entity_id} does not exist")
        updated = _apply_update(entity, position, data)
        try:
            await self.client.set(self._key("entity", entity_id), updated.model_dump_json())
        except RedisError as exc:
            raise DomainError(f"Could not update object {entity_id}: {exc}") from exc
        return updated

    async def delete_entity(self, entity_id: int) -> Entity:
        from redis.exceptions import RedisError

        entity = await self.get_entity(entity_id)
        if entity is None:
            raise DomainError(f"Object {entity_id} does not exist")
        try:
            async with self.client.pipeline(transaction=True) as pipe:
                pipe.delete(self._key("entity", entity_id))
                pipe.zrem(self._key("canvas", entity.canvas_id, "entities"), str(entity_id))
                await pipe.execute()
        except RedisError as exc:
            raise DomainError(f"Could not delete object {entity_id}: {exc}") from exc
        return entity

    async def _read(self, key: str) -> bytes | None:
        from redis.exceptions import RedisError

        try:
            return await self.client.get(key)
        except RedisError as exc:
            raise DomainError(f"Could not read {key}: {exc}") from exc


def create_document_store(settings: Settings) -> InMemoryDocumentStore | RedisDocumentStore:
    """Redis when REDIS_URL is set, otherwise the in-process store."""
    if settings.redis_url:
        logfire.info("Using Redis document store", key_prefix=settings.redis_key_prefix)
        return RedisDocumentStore(RedisStoreConfig(url=settings.redis_url, key_prefix=settings.redis_key_prefix))
    logfire.info("Using in-memory document store")
    return InMemoryDocumentStore()


__all__ = [
    "InMemoryDocumentStore",
    "RedisDocumentStore",
    "RedisStoreConfig",
    "create_document_store",
]
