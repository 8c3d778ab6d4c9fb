"""Service layer exports."""

from .command import CommandService, ProviderStatus, create_command_service
from .events import LocalEventBus, RedisEventPublisher
from .storage import InMemoryDocumentStore, RedisDocumentStore

__all__ = [
    "CommandService",
    "InMemoryDocumentStore",
    "LocalEventBus",
    "ProviderStatus",
    "RedisDocumentStore",
    "RedisEventPublisher",
    "create_command_service",
]
