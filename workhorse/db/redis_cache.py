"""
Redis-based shared cache for multi-instance deployments

JSON-serializing wrapper around a redis client. Every backend instance
sharing the same Redis sees the same workspaces, threads, presence and
project state.

Architecture (Single DB + Key Prefix Pattern):
- All data in db=0, isolated by RedisKeyPrefix
- MULTI/EXEC transactions may span any keys
- Optimistic concurrency via WATCH for read-modify-write updates

Usage:
    from workhorse.db.redis_cache import get_redis_cache
    from workhorse.db.redis_db import RedisKeyPrefix

    cache = get_redis_cache()
    key = RedisKeyPrefix.thread_key("thread_abc123")
    cache.set(key, {"status": "active"})
    data = cache.get(key)

    def apply(pipe):
        current = cache.load(pipe, key)
        updated = {**current, "status": "resolved"}
        return updated, lambda p: p.set(key, cache.dump(updated))

    cache.transaction([key], apply)
"""

import json
import logging
from collections.abc import Callable
from typing import Any, TypeVar

import redis
from redis.client import Pipeline

from workhorse.db.redis_factory import create_redis_client
from workhorse.exceptions import StoreFailure
from workhorse.settings import settings

logger = logging.getLogger(__name__)

T = TypeVar("T")


class RedisCache:
    """
    Redis-backed JSON document cache (Single DB + Key Prefix Pattern)

    Features:
    - Shared: all instances read and write the same keys
    - TTL support via SETEX
    - JSON serialization of documents
    - Set/List helpers for containment indexes
    - Optimistic WATCH/MULTI/EXEC transactions
    """

    def __init__(self, client: redis.Redis | None = None):
        """
        Initialize Redis cache

        Args:
            client: Optional pre-configured Redis client (for testing with fakeredis)
        """
        self._client: redis.Redis | None = client

    @property
    def client(self) -> redis.Redis:
        """Lazy initialization of the Redis client."""
        if self._client is None:
            self._client = create_redis_client()
            logger.info("RedisCache initialized (single DB + key prefix pattern)")
        return self._client

    # ==================== Serialization ====================

    @staticmethod
    def dump(value: Any) -> str:
        return json.dumps(value, default=str)

    @staticmethod
    def load(source: redis.Redis | Pipeline, key: str) -> Any | None:
        """Read and decode a JSON document through a client or a watching pipeline."""
        data = source.get(key)
        if data is None:
            return None
        return json.loads(data)

    # ==================== String Operations ====================

    def get(self, key: str) -> Any | None:
        """
        Get cached value

        Returns:
            Deserialized value, or None if missing, expired or unreadable
        """
        try:
            data = self.client.get(key)
            if data:
                return json.loads(data)
            logger.debug(f"Cache miss: {key}")
            return None
        except redis.RedisError as e:
            logger.error(f"Redis get error for key {key}: {e}")
            return None
        except json.JSONDecodeError as e:
            logger.error(f"JSON decode error for key {key}: {e}")
            return None

    def get_many(self, keys: list[str]) -> list[Any | None]:
        """Get several documents in one round trip, preserving order."""
        if not keys:
            return []
        try:
            raw = self.client.mget(keys)
        except redis.RedisError as e:
            logger.error(f"Redis mget error for {len(keys)} keys: {e}")
            return [None] * len(keys)

        result = []
        for key, data in zip(keys, raw):
            if data is None:
                result.append(None)
                continue
            try:
                result.append(json.loads(data))
            except json.JSONDecodeError as e:
                logger.error(f"JSON decode error for key {key}: {e}")
                result.append(None)
        return result

    def set(self, key: str, value: Any, expire_seconds: int | None = None) -> bool:
        """
        Set cached value with optional TTL

        Returns:
            True if successful, False otherwise
        """
        try:
            serialized = self.dump(value)
            if expire_seconds:
                result = self.client.setex(key, expire_seconds, serialized)
            else:
                result = self.client.set(key, serialized)
            logger.debug(f"Cache set: {key}" + (f", expires in {expire_seconds}s" if expire_seconds else ""))
            return bool(result)
        except redis.RedisError as e:
            logger.error(f"Redis set error for key {key}: {e}")
            return False
        except (TypeError, ValueError) as e:
            logger.error(f"Serialization error for key {key}: {e}")
            return False

    def delete(self, *keys: str) -> bool:
        """
        Delete cached values

        Returns:
            True if at least one key was deleted
        """
        if not keys:
            return False
        try:
            result = self.client.delete(*keys)
            if result:
                logger.debug(f"Cache deleted: {', '.join(keys)}")
            return bool(result)
        except redis.RedisError as e:
            logger.error(f"Redis delete error for keys {keys}: {e}")
            return False

    def exists(self, key: str) -> bool:
        try:
            return bool(self.client.exists(key))
        except redis.RedisError as e:
            logger.error(f"Redis exists error for key {key}: {e}")
            return False

    # ==================== Set / List Operations (indexes) ====================

    def sadd(self, key: str, *members: str) -> bool:
        try:
            self.client.sadd(key, *members)
            return True
        except redis.RedisError as e:
            logger.error(f"Redis sadd error for key {key}: {e}")
            return False

    def set_indexed(
        self, key: str, value: Any, index_key: str, member: str, expire_seconds: int | None = None
    ) -> bool:
        """
        Write a document and add it to an index set in one MULTI/EXEC.

        Redis does not roll back a failed command inside EXEC, so on any
        error the document is deleted again and nothing half-created remains.
        """
        try:
            with self.client.pipeline() as pipe:
                pipe.set(key, self.dump(value), ex=expire_seconds)
                pipe.sadd(index_key, member)
                pipe.execute()
            return True
        except redis.RedisError as e:
            logger.error(f"Redis indexed set error for key {key} (index {index_key}): {e}")
            self.delete(key)
            return False

    def srem(self, key: str, *members: str) -> int:
        try:
            return self.client.srem(key, *members)
        except redis.RedisError as e:
            logger.error(f"Redis srem error for key {key}: {e}")
            return 0

    def smembers(self, key: str) -> "set[str]":
        try:
            return set(self.client.smembers(key))
        except redis.RedisError as e:
            logger.error(f"Redis smembers error for key {key}: {e}")
            return set()

    def lrange(self, key: str, start: int, stop: int) -> list[str]:
        try:
            return list(self.client.lrange(key, start, stop))
        except redis.RedisError as e:
            logger.error(f"Redis lrange error for key {key}: {e}")
            return []

    # ==================== Transactions ====================

    def transaction(
        self,
        keys: list[str],
        apply: Callable[[Pipeline], tuple[T, Callable[[Pipeline], Any] | None]],
        max_retries: int | None = None,
    ) -> T:
        """
        Run an optimistic read-modify-write over the watched keys.

        `apply` receives a pipeline already WATCHing `keys` and reads through
        it (immediate mode). It returns `(result, write)`; `write` queues the
        writes inside MULTI/EXEC, or is None when nothing should be written.
        A concurrent write to any watched key restarts `apply`.

        Domain exceptions raised by `apply` propagate unchanged.

        Raises:
            StoreFailure: on Redis errors or when retries are exhausted
        """
        retries = max_retries if max_retries is not None else settings.redis_max_retries
        try:
            with self.client.pipeline() as pipe:
                for attempt in range(1, retries + 1):
                    try:
                        pipe.watch(*keys)
                        result, write = apply(pipe)
                        if write is None:
                            pipe.unwatch()
                            return result
                        pipe.multi()
                        write(pipe)
                        pipe.execute()
                        return result
                    except redis.WatchError:
                        logger.debug(f"Watched keys changed, retrying ({attempt}/{retries}): {keys}")
                        continue
        except redis.RedisError as e:
            logger.error(f"Redis transaction error for keys {keys}: {e}")
            raise StoreFailure(f"Redis transaction failed: {e}") from e

        logger.error(f"Redis transaction gave up after {retries} retries: {keys}")
        raise StoreFailure(f"Concurrent modification of {keys}")

    # ==================== Utility Methods ====================

    def ping(self) -> bool:
        try:
            return self.client.ping()
        except redis.RedisError as e:
            logger.error(f"Redis ping failed: {e}")
            return False

    def flush_db(self) -> bool:
        """Flush current database (tests and development only)."""
        try:
            self.client.flushdb()
            logger.warning("Redis DB flushed!")
            return True
        except redis.RedisError as e:
            logger.error(f"Redis flushdb error: {e}")
            return False

    def close(self) -> None:
        if self._client:
            self._client.close()
            self._client = None
            logger.info("RedisCache closed")


# ==================== Singleton Instance ====================

_redis_cache: RedisCache | None = None


def get_redis_cache() -> RedisCache:
    """Get singleton Redis cache instance (db=0)."""
    global _redis_cache
    if _redis_cache is None:
        _redis_cache = RedisCache()
    return _redis_cache


def reset_redis_cache() -> None:
    """Drop the singleton (for testing)."""
    global _redis_cache
    if _redis_cache is not None:
        _redis_cache.close()
    _redis_cache = None
