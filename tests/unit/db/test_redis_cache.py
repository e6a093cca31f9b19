"""
Unit tests for Redis cache module

Tests cover:
- RedisKeyPrefix key layout
- RedisCache basic operations (string, set, list, indexed documents)
- Optimistic transactions (retry on conflict, no-op, domain errors, give-up)
- Singleton instance management
"""

import pytest

from workhorse.db.redis_cache import RedisCache, get_redis_cache, reset_redis_cache
from workhorse.db.redis_db import RedisKeyPrefix
from workhorse.exceptions import InvalidStateError, StoreFailure


class TestRedisKeyPrefix:
    """Test suite for RedisKeyPrefix enum"""

    def test_keys_are_namespaced(self):
        assert RedisKeyPrefix.thread_key("t1") == "workhorse:collab:thread:t1"
        assert RedisKeyPrefix.phase_key("p1", "design") == "workhorse:workflow:phase:p1:design"
        assert RedisKeyPrefix.presence_key("t1").startswith(RedisKeyPrefix.PRESENCE_THREAD.value)

    def test_all_prefixes_described(self):
        for prefix in RedisKeyPrefix:
            assert prefix.value.startswith("workhorse:")
            assert RedisKeyPrefix.get_description(prefix)


class TestRedisCacheOperations:
    """Test basic operations"""

    def test_string_operations(self, redis_cache: RedisCache):
        """Test string set/get/delete operations"""
        key = "test:string_key"
        value = {"name": "test", "count": 42}

        assert redis_cache.set(key, value) is True
        assert redis_cache.get(key) == value
        assert redis_cache.exists(key)

        assert redis_cache.delete(key) is True
        assert redis_cache.get(key) is None
        assert redis_cache.delete(key) is False

    def test_set_with_ttl(self, redis_cache: RedisCache, fake_redis_client):
        redis_cache.set("test:ttl", {"a": 1}, expire_seconds=60)
        assert 0 < fake_redis_client.ttl("test:ttl") <= 60

    def test_get_many(self, redis_cache: RedisCache, fake_redis_client):
        redis_cache.set("test:a", {"v": 1})
        fake_redis_client.set("test:broken", "{not json")

        assert redis_cache.get_many(["test:a", "test:missing", "test:broken"]) == [{"v": 1}, None, None]
        assert redis_cache.get_many([]) == []

    def test_invalid_json_returns_none(self, redis_cache: RedisCache, fake_redis_client):
        fake_redis_client.set("test:bad", "not-json")
        assert redis_cache.get("test:bad") is None

    def test_set_operations(self, redis_cache: RedisCache):
        key = "test:set"
        assert redis_cache.sadd(key, "a", "b")
        assert redis_cache.smembers(key) == {"a", "b"}
        assert redis_cache.srem(key, "a") == 1
        assert redis_cache.smembers(key) == {"b"}

    def test_set_indexed(self, redis_cache: RedisCache):
        assert redis_cache.set_indexed("test:doc", {"v": 1}, "test:index", "doc")
        assert redis_cache.get("test:doc") == {"v": 1}
        assert redis_cache.smembers("test:index") == {"doc"}

    def test_set_indexed_failure_removes_document(self, redis_cache: RedisCache, fake_redis_client):
        """A failed index write leaves no orphan document"""
        fake_redis_client.set("test:index", "not-a-set")

        assert redis_cache.set_indexed("test:doc", {"v": 1}, "test:index", "doc") is False
        assert not redis_cache.exists("test:doc")

    def test_list_range(self, redis_cache: RedisCache, fake_redis_client):
        fake_redis_client.rpush("test:list", "m1", "m2", "m3")
        assert redis_cache.lrange("test:list", 0, -1) == ["m1", "m2", "m3"]

    def test_ping(self, redis_cache: RedisCache):
        assert redis_cache.ping() is True


class TestRedisCacheTransaction:
    """Test optimistic WATCH/MULTI/EXEC transactions"""

    def test_read_modify_write(self, redis_cache: RedisCache):
        key = "test:counter"
        redis_cache.set(key, {"count": 1})

        def apply(pipe):
            current = redis_cache.load(pipe, key)
            updated = {"count": current["count"] + 1}
            return updated["count"], lambda p: p.set(key, redis_cache.dump(updated))

        assert redis_cache.transaction([key], apply) == 2
        assert redis_cache.get(key) == {"count": 2}

    def test_retries_after_concurrent_write(self, redis_cache: RedisCache, fake_redis_client):
        """A write to a watched key between read and EXEC restarts the update"""
        key = "test:contended"
        redis_cache.set(key, {"count": 0})
        attempts = []

        def apply(pipe):
            current = redis_cache.load(pipe, key)
            attempts.append(current["count"])
            if len(attempts) == 1:
                # Another instance writes after our read
                fake_redis_client.set(key, redis_cache.dump({"count": 10}))
            updated = {"count": current["count"] + 1}
            return updated, lambda p: p.set(key, redis_cache.dump(updated))

        result = redis_cache.transaction([key], apply)

        assert attempts == [0, 10]
        assert result == {"count": 11}
        assert redis_cache.get(key) == {"count": 11}

    def test_no_write(self, redis_cache: RedisCache):
        key = "test:untouched"

        result = redis_cache.transaction([key], lambda pipe: ("nothing", None))

        assert result == "nothing"
        assert not redis_cache.exists(key)

    def test_domain_error_propagates(self, redis_cache: RedisCache):
        key = "test:guarded"
        redis_cache.set(key, {"state": "final"})

        def apply(pipe):
            raise InvalidStateError("already final")

        with pytest.raises(InvalidStateError):
            redis_cache.transaction([key], apply)
        assert redis_cache.get(key) == {"state": "final"}

    def test_gives_up_after_retries(self, redis_cache: RedisCache, fake_redis_client):
        key = "test:hot"
        redis_cache.set(key, {"count": 0})

        def apply(pipe):
            redis_cache.load(pipe, key)
            fake_redis_client.set(key, redis_cache.dump({"count": -1}))
            return None, lambda p: p.set(key, redis_cache.dump({"count": 1}))

        with pytest.raises(StoreFailure):
            redis_cache.transaction([key], apply, max_retries=3)
        assert redis_cache.get(key) == {"count": -1}


class TestSingletonInstances:
    """Test singleton instance management"""

    def test_get_redis_cache_singleton(self):
        reset_redis_cache()
        try:
            assert get_redis_cache() is get_redis_cache()
        finally:
            reset_redis_cache()
