"""Unified storage provider for collaboration entities.

Automatically selects between in-memory storage (for local-dev)
and Redis storage (for multi-instance production).

Usage:
    from workhorse.components.collaboration.storage_provider import get_collaboration_storage

    storage = get_collaboration_storage()
    storage.save_thread(thread)
    thread = storage.get_thread(thread_id)
"""

import logging
from collections.abc import Callable
from typing import Protocol, TypeVar

from workhorse.components.collaboration.models import Channel, Message, Thread, Workspace
from workhorse.settings import settings

logger = logging.getLogger(__name__)

T = TypeVar("T")


class CollaborationStorageProtocol(Protocol):
    """Protocol defining the collaboration storage interface.

    `update_*` helpers raise NotFoundError when the entity is missing and
    StoreFailure when the write cannot be applied; `save_*` return False.
    """

    def save_workspace(self, workspace: Workspace) -> bool: ...
    def get_workspace(self, workspace_id: str) -> Workspace | None: ...
    def list_workspaces(self, project_id: str | None = None) -> list[Workspace]: ...
    def update_workspace(self, workspace_id: str, mutate: Callable[[Workspace], T]) -> T: ...
    def delete_workspace(self, workspace_id: str) -> bool: ...

    def save_channel(self, channel: Channel) -> bool: ...
    def get_channel(self, channel_id: str) -> Channel | None: ...
    def list_channels(self, workspace_id: str) -> list[Channel]: ...
    def update_channel(self, channel_id: str, mutate: Callable[[Channel], T]) -> T: ...
    def delete_channel(self, channel_id: str) -> bool: ...

    def save_thread(self, thread: Thread) -> bool: ...
    def get_thread(self, thread_id: str) -> Thread | None: ...
    def list_threads(self, channel_id: str) -> list[Thread]: ...
    def update_thread(self, thread_id: str, mutate: Callable[[Thread], T]) -> T: ...

    def append_message(
        self, message: Message, place: Callable[[Message, Thread], None]
    ) -> tuple[Message, Thread]: ...
    def get_message(self, message_id: str) -> Message | None: ...
    def list_messages(self, thread_id: str) -> list[Message]: ...
    def update_message(self, message_id: str, mutate: Callable[[Message], T]) -> T: ...
    def update_message_and_thread(self, message_id: str, mutate: Callable[[Message, Thread], T]) -> T: ...
    def delete_message(self, message_id: str) -> bool: ...

    def clear_all(self) -> None: ...


# Singleton storage instance
_collaboration_storage: CollaborationStorageProtocol | None = None
_storage_type: str | None = None


def get_collaboration_storage() -> CollaborationStorageProtocol:
    """Get the appropriate collaboration storage based on configuration.

    Returns:
        CollaborationStorage for local-dev with use_memory_store=true
        CollaborationRedisStorage for production (multi-instance)
    """
    global _collaboration_storage, _storage_type

    if _collaboration_storage is not None:
        return _collaboration_storage

    if settings.use_memory_store:
        _storage_type = "memory"
        from workhorse.components.collaboration.storage import collaboration_storage
        _collaboration_storage = collaboration_storage
        logger.info("CollaborationStorage: Using in-memory storage (single instance only)")
    else:
        _storage_type = "redis"
        from workhorse.components.collaboration.redis_storage import get_collaboration_redis_storage
        _collaboration_storage = get_collaboration_redis_storage()
        logger.info("CollaborationStorage: Using Redis storage (multi-instance safe)")

    return _collaboration_storage


def get_storage_type() -> str:
    """Get the current storage type ('memory' or 'redis')."""
    if _storage_type is None:
        get_collaboration_storage()  # Initialize storage
    return _storage_type or "unknown"


def reset_collaboration_storage() -> None:
    """Reset the storage singleton (for testing)."""
    global _collaboration_storage, _storage_type
    _collaboration_storage = None
    _storage_type = None
