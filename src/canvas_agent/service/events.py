"""Canvas event fan-out - in-process bus and Redis pub/sub publisher."""

from __future__ import annotations

import asyncio
from collections import deque
from collections.abc import Callable
from typing import TYPE_CHECKING

import logfire

from ..domain.domain_value import CanvasEvent

if TYPE_CHECKING:
    from redis.asyncio import Redis

    from ..config import Settings

Subscriber = Callable[[CanvasEvent], None]


def channel_for(canvas_id: int, prefix: str = "canvas") -> str:
    """Pub/sub channel watched by every client of one canvas."""
    return f"{prefix}:{canvas_id}"


class LocalEventBus:
    """
    In-process fan-out.

    Keeps the most recent ``history_size`` events in ``published`` so tests
    and the single-process dev server can inspect what was broadcast; older
    events are dropped. A failing subscriber is logged and skipped;
    publishing never raises.
    """

    def __init__(self, history_size: int = 1000) -> None:
        self.published: deque[CanvasEvent] = deque(maxlen=history_size)
        self._subscribers: dict[int, list[Subscriber]] = {}

    def subscribe(self, canvas_id: int, callback: Subscriber) -> Callable[[], None]:
        """Register a callback for one canvas; returns the unsubscribe function."""
        self._subscribers.setdefault(canvas_id, []).append(callback)

        def unsubscribe() -> None:
            callbacks = self._subscribers.get(canvas_id, [])
            if callback in callbacks:
                callbacks.remove(callback)

        return unsubscribe

    def publish(self, event: CanvasEvent) -> None:
        self.published.append(event)
        for callback in list(self._subscribers.get(event.canvas_id, [])):
            try:
                callback(event)
            except Exception:
                logfire.exception("Canvas event subscriber failed", canvas_id=event.canvas_id, type=event.type)


class RedisEventPublisher:
    """Publishes events as JSON on ``{prefix}:{canvas_id}`` without awaiting delivery."""

    def __init__(self, url: str, *, prefix: str = "canvas", client: Redis | None = None):
        self.url = url
        self.prefix = prefix
        self._client = client
        self._pending: set[asyncio.Task[None]] = set()

    @property
    def client(self) -> Redis:
        """Get or create Redis client (lazy)."""
        if self._client is None:
            from redis.asyncio import Redis

            self._client = Redis.from_url(self.url)
        return self._client

    def publish(self, event: CanvasEvent) -> None:
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            logfire.warn("Dropping canvas event outside event loop", canvas_id=event.canvas_id, type=event.type)
            return
        task = loop.create_task(self._send(event))
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)

    async def _send(self, event: CanvasEvent) -> None:
        from redis.exceptions import RedisError

        try:
            await self.client.publish(channel_for(event.canvas_id, self.prefix), event.model_dump_json())
        except RedisError as exc:
            logfire.warn("Canvas event publish failed", canvas_id=event.canvas_id, type=event.type, error=str(exc))

    async def drain(self) -> None:
        """Wait for in-flight publishes (shutdown)."""
        if self._pending:
            await asyncio.gather(*self._pending, return_exceptions=True)


def create_event_publisher(settings: Settings) -> LocalEventBus | RedisEventPublisher:
    if settings.redis_url:
        return RedisEventPublisher(settings.redis_url, prefix=settings.redis_key_prefix)
    return LocalEventBus()


__all__ = ["LocalEventBus", "RedisEventPublisher", "channel_for", "create_event_publisher"]
