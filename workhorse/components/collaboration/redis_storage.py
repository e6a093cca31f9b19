"""Redis-backed storage for collaboration entities.

Provides distributed storage for multi-instance deployments:
- Workspaces (teams and settings embedded)
- Channels, indexed per workspace
- Threads, indexed per channel
- Messages, listed per thread in insertion order

Architecture (Single DB + Key Prefix Pattern):
- Single db=0, Redis Cluster compatible
- Keys produced by RedisKeyPrefix, e.g. workhorse:collab:thread:{id}
- Read-modify-write goes through RedisCache.transaction (WATCH/MULTI/EXEC),
  so two instances updating the same thread never lose a write
"""

import logging
from collections.abc import Callable
from typing import TypeVar

from pydantic import BaseModel
from redis.client import Pipeline

from workhorse.components.collaboration.models import Channel, Message, Thread, Workspace
from workhorse.db.redis_cache import RedisCache, get_redis_cache
from workhorse.db.redis_db import RedisKeyPrefix
from workhorse.exceptions import NotFoundError
from workhorse.settings import settings

logger = logging.getLogger(__name__)

T = TypeVar("T")
M = TypeVar("M", bound=BaseModel)


class CollaborationRedisStorage:
    """Redis-backed storage for collaboration data.

    Designed for multi-instance deployments where all pods share the same Redis.
    Each entity is one JSON document; containment is tracked in index sets,
    and a thread's messages in a list.
    """

    def __init__(self, cache: RedisCache | None = None):
        """Initialize with optional cache instance (for testing)."""
        self._cache = cache

    @property
    def cache(self) -> RedisCache:
        """Lazy initialization of Redis cache."""
        if self._cache is None:
            self._cache = get_redis_cache()
        return self._cache

    @property
    def _ttl(self) -> int | None:
        return settings.entity_ttl_seconds or None

    # ==================== Generic helpers ====================

    def _save(self, key: str, entity: BaseModel, index_key: str) -> bool:
        success = self.cache.set_indexed(
            key, entity.model_dump(mode="json"), index_key, entity.id, expire_seconds=self._ttl
        )
        if success:
            logger.debug(f"Saved {type(entity).__name__}: {entity.id}")
        return success

    def _get(self, key: str, model: type[M]) -> M | None:
        data = self.cache.get(key)
        if data:
            return model.model_validate(data)
        return None

    def _list_indexed(self, index_key: str, key_fn: Callable[[str], str], model: type[M]) -> list[M]:
        ids = sorted(self.cache.smembers(index_key))
        items = []
        for item_id, data in zip(ids, self.cache.get_many([key_fn(i) for i in ids])):
            if data:
                items.append(model.model_validate(data))
            else:
                # Clean up stale index entry
                self.cache.srem(index_key, item_id)
        return items

    def _write(self, pipe: Pipeline, key: str, entity: BaseModel) -> None:
        pipe.set(key, self.cache.dump(entity.model_dump(mode="json")), ex=self._ttl)

    def _update(self, key: str, model: type[M], entity: str, entity_id: str, mutate: Callable[[M], T]) -> T:
        def apply(pipe: Pipeline):
            data = self.cache.load(pipe, key)
            if data is None:
                raise NotFoundError(entity, entity_id)
            current = model.model_validate(data)
            updated = current.model_copy(deep=True)
            result = mutate(updated)
            if updated == current:
                return result, None
            return result, lambda p: self._write(p, key, updated)

        return self.cache.transaction([key], apply)

    # ==================== Workspace Operations ====================

    def save_workspace(self, workspace: Workspace) -> bool:
        return self._save(
            RedisKeyPrefix.workspace_key(workspace.id), workspace, RedisKeyPrefix.workspace_index_key()
        )

    def get_workspace(self, workspace_id: str) -> Workspace | None:
        return self._get(RedisKeyPrefix.workspace_key(workspace_id), Workspace)

    def list_workspaces(self, project_id: str | None = None) -> list[Workspace]:
        workspaces = self._list_indexed(
            RedisKeyPrefix.workspace_index_key(), RedisKeyPrefix.workspace_key, Workspace
        )
        if project_id is not None:
            workspaces = [w for w in workspaces if w.project_id == project_id]
        return sorted(workspaces, key=lambda w: w.created_at)

    def update_workspace(self, workspace_id: str, mutate: Callable[[Workspace], T]) -> T:
        return self._update(RedisKeyPrefix.workspace_key(workspace_id), Workspace, "Workspace", workspace_id, mutate)

    def delete_workspace(self, workspace_id: str) -> bool:
        deleted = self.cache.delete(RedisKeyPrefix.workspace_key(workspace_id))
        if deleted:
            self.cache.srem(RedisKeyPrefix.workspace_index_key(), workspace_id)
            self.cache.delete(RedisKeyPrefix.workspace_channels_key(workspace_id))
            logger.debug(f"Deleted workspace: {workspace_id}")
        return deleted

    # ==================== Channel Operations ====================

    def save_channel(self, channel: Channel) -> bool:
        return self._save(
            RedisKeyPrefix.channel_key(channel.id),
            channel,
            RedisKeyPrefix.workspace_channels_key(channel.workspace_id),
        )

    def get_channel(self, channel_id: str) -> Channel | None:
        return self._get(RedisKeyPrefix.channel_key(channel_id), Channel)

    def list_channels(self, workspace_id: str) -> list[Channel]:
        channels = self._list_indexed(
            RedisKeyPrefix.workspace_channels_key(workspace_id), RedisKeyPrefix.channel_key, Channel
        )
        return sorted(channels, key=lambda c: c.created_at)

    def update_channel(self, channel_id: str, mutate: Callable[[Channel], T]) -> T:
        return self._update(RedisKeyPrefix.channel_key(channel_id), Channel, "Channel", channel_id, mutate)

    def delete_channel(self, channel_id: str) -> bool:
        channel = self.get_channel(channel_id)
        if channel is None:
            return False
        deleted = self.cache.delete(RedisKeyPrefix.channel_key(channel_id))
        if deleted:
            self.cache.srem(RedisKeyPrefix.workspace_channels_key(channel.workspace_id), channel_id)
            logger.debug(f"Deleted channel: {channel_id}")
        return deleted

    # ==================== Thread Operations ====================

    def save_thread(self, thread: Thread) -> bool:
        return self._save(
            RedisKeyPrefix.thread_key(thread.id),
            thread,
            RedisKeyPrefix.channel_threads_key(thread.channel_id),
        )

    def get_thread(self, thread_id: str) -> Thread | None:
        return self._get(RedisKeyPrefix.thread_key(thread_id), Thread)

    def list_threads(self, channel_id: str) -> list[Thread]:
        return self._list_indexed(
            RedisKeyPrefix.channel_threads_key(channel_id), RedisKeyPrefix.thread_key, Thread
        )

    def update_thread(self, thread_id: str, mutate: Callable[[Thread], T]) -> T:
        return self._update(RedisKeyPrefix.thread_key(thread_id), Thread, "Thread", thread_id, mutate)

    # ==================== Message Operations ====================

    def append_message(self, message: Message, place: Callable[[Message, Thread], None]) -> tuple[Message, Thread]:
        """Insert a message and update its thread in one MULTI/EXEC."""
        thread_key = RedisKeyPrefix.thread_key(message.thread_id)
        message_key = RedisKeyPrefix.message_key(message.id)
        list_key = RedisKeyPrefix.thread_messages_key(message.thread_id)

        def apply(pipe: Pipeline):
            data = self.cache.load(pipe, thread_key)
            if data is None:
                raise NotFoundError("Thread", message.thread_id)
            thread = Thread.model_validate(data)
            placed = message.model_copy(deep=True)
            place(placed, thread)

            def write(p: Pipeline) -> None:
                self._write(p, thread_key, thread)
                self._write(p, message_key, placed)
                p.rpush(list_key, placed.id)

            return (placed, thread), write

        placed, thread = self.cache.transaction([thread_key], apply)
        logger.debug(f"Appended message {placed.id} to thread {thread.id} (seq={placed.sequence})")
        return placed, thread

    def get_message(self, message_id: str) -> Message | None:
        return self._get(RedisKeyPrefix.message_key(message_id), Message)

    def list_messages(self, thread_id: str) -> list[Message]:
        """List a thread's messages ordered by (created_at, sequence)."""
        ids = self.cache.lrange(RedisKeyPrefix.thread_messages_key(thread_id), 0, -1)
        documents = self.cache.get_many([RedisKeyPrefix.message_key(i) for i in ids])
        messages = [Message.model_validate(data) for data in documents if data]
        return sorted(messages, key=lambda m: m.sort_key())

    def update_message(self, message_id: str, mutate: Callable[[Message], T]) -> T:
        return self._update(RedisKeyPrefix.message_key(message_id), Message, "Message", message_id, mutate)

    def update_message_and_thread(self, message_id: str, mutate: Callable[[Message, Thread], T]) -> T:
        """Apply `mutate` to a message and its thread in one MULTI/EXEC."""
        existing = self.get_message(message_id)
        if existing is None:
            raise NotFoundError("Message", message_id)
        message_key = RedisKeyPrefix.message_key(message_id)
        thread_key = RedisKeyPrefix.thread_key(existing.thread_id)

        def apply(pipe: Pipeline):
            message_data = self.cache.load(pipe, message_key)
            if message_data is None:
                raise NotFoundError("Message", message_id)
            thread_data = self.cache.load(pipe, thread_key)
            if thread_data is None:
                raise NotFoundError("Thread", existing.thread_id)

            current_message = Message.model_validate(message_data)
            current_thread = Thread.model_validate(thread_data)
            message = current_message.model_copy(deep=True)
            thread = current_thread.model_copy(deep=True)
            result = mutate(message, thread)

            message_changed = message != current_message
            thread_changed = thread != current_thread
            if not (message_changed or thread_changed):
                return result, None

            def write(p: Pipeline) -> None:
                if message_changed:
                    self._write(p, message_key, message)
                if thread_changed:
                    self._write(p, thread_key, thread)

            return result, write

        return self.cache.transaction([message_key, thread_key], apply)

    def delete_message(self, message_id: str) -> bool:
        message = self.get_message(message_id)
        if message is None:
            return False
        deleted = self.cache.delete(RedisKeyPrefix.message_key(message_id))
        if deleted:
            self.cache.client.lrem(RedisKeyPrefix.thread_messages_key(message.thread_id), 0, message_id)
            logger.debug(f"Deleted message: {message_id}")
        return deleted

    # ==================== Utility ====================

    def clear_all(self) -> None:
        """Clear all collaboration data (useful for testing)."""
        client = self.cache.client
        for prefix in (
            RedisKeyPrefix.COLLAB_WORKSPACE,
            RedisKeyPrefix.COLLAB_CHANNEL,
            RedisKeyPrefix.COLLAB_THREAD,
            RedisKeyPrefix.COLLAB_MESSAGE,
            RedisKeyPrefix.COLLAB_INDEX,
        ):
            keys = list(client.scan_iter(match=f"{prefix.value}:*"))
            if keys:
                client.delete(*keys)
        logger.info("Cleared all collaboration data from Redis")


# Singleton instance
_collaboration_redis_storage: CollaborationRedisStorage | None = None


def get_collaboration_redis_storage() -> CollaborationRedisStorage:
    """Get singleton collaboration Redis storage instance."""
    global _collaboration_redis_storage
    if _collaboration_redis_storage is None:
        _collaboration_redis_storage = CollaborationRedisStorage()
    return _collaboration_redis_storage
