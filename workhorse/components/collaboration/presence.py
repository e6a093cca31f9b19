"""Live presence and typing state per thread.

CollaborationStatus documents are ephemeral: they are kept in a
PresenceStore (in-process or Redis) and pruned on every update, so an entry
older than the staleness window never survives the next update on its
thread. Threads are independent: an update only waits on its own thread.

Usage:
    from workhorse.components.collaboration.presence import get_presence_tracker

    tracker = get_presence_tracker()
    status = tracker.update_presence(thread_id, user_id, "Ada", is_typing=True)
"""

import logging
import threading
from collections.abc import Callable, Iterator
from contextlib import contextmanager
from datetime import datetime, timedelta
from typing import Protocol

from redis.client import Pipeline

from workhorse.components.collaboration.models import ActiveParticipant, CollaborationStatus
from workhorse.db.redis_cache import RedisCache, get_redis_cache
from workhorse.db.redis_db import RedisKeyPrefix
from workhorse.settings import settings
from workhorse.utils import utc_now

logger = logging.getLogger(__name__)

StatusMutation = Callable[[CollaborationStatus | None], CollaborationStatus | None]


class PresenceStore(Protocol):
    """Per-thread presence storage with atomic read-modify-write."""

    def get(self, thread_id: str) -> CollaborationStatus | None: ...

    def update(self, thread_id: str, mutate: StatusMutation) -> CollaborationStatus | None:
        """Apply `mutate` atomically. A None result removes the thread's entry."""
        ...

    def clear_all(self) -> None: ...


class MemoryPresenceStore:
    """In-process expiring presence store with one lock per thread.

    A status expires `ttl_seconds` after its last write, like the Redis
    document TTL. Expired statuses are dropped when read and swept on every
    update. A thread's lock exists only while a caller holds or awaits it.
    """

    def __init__(self, ttl_seconds: int | None = None, clock: Callable[[], datetime] = utc_now):
        self._ttl = timedelta(seconds=ttl_seconds or settings.presence_stale_seconds)
        self._clock = clock
        self._guard = threading.Lock()
        self._locks: dict[str, tuple[threading.Lock, int]] = {}
        self._statuses: dict[str, tuple[CollaborationStatus, datetime]] = {}

    @contextmanager
    def _thread_lock(self, thread_id: str) -> Iterator[None]:
        with self._guard:
            lock, holders = self._locks.get(thread_id, (threading.Lock(), 0))
            self._locks[thread_id] = (lock, holders + 1)
        try:
            with lock:
                yield
        finally:
            with self._guard:
                lock, holders = self._locks[thread_id]
                if holders == 1:
                    del self._locks[thread_id]
                else:
                    self._locks[thread_id] = (lock, holders - 1)

    def _live(self, thread_id: str, now: datetime) -> CollaborationStatus | None:
        """Return the thread's status unless expired. Caller holds the guard."""
        entry = self._statuses.get(thread_id)
        if entry is None:
            return None
        status, expires_at = entry
        if expires_at <= now:
            del self._statuses[thread_id]
            return None
        return status

    def sweep(self) -> int:
        """Drop every expired status. Returns how many were removed."""
        now = self._clock()
        with self._guard:
            expired = [tid for tid, (_, expires_at) in self._statuses.items() if expires_at <= now]
            for thread_id in expired:
                del self._statuses[thread_id]
        if expired:
            logger.debug(f"Swept {len(expired)} expired presence statuses")
        return len(expired)

    def get(self, thread_id: str) -> CollaborationStatus | None:
        with self._guard:
            status = self._live(thread_id, self._clock())
            return status.model_copy(deep=True) if status else None

    def update(self, thread_id: str, mutate: StatusMutation) -> CollaborationStatus | None:
        self.sweep()
        with self._thread_lock(thread_id):
            with self._guard:
                current = self._live(thread_id, self._clock())
            updated = mutate(current.model_copy(deep=True) if current else None)
            with self._guard:
                if updated is None:
                    self._statuses.pop(thread_id, None)
                    return None
                self._statuses[thread_id] = (updated, self._clock() + self._ttl)
            return updated.model_copy(deep=True)

    def size(self) -> int:
        """Number of live and not yet swept statuses."""
        with self._guard:
            return len(self._statuses)

    def clear_all(self) -> None:
        with self._guard:
            self._statuses.clear()


class RedisPresenceStore:
    """Presence shared by every instance through Redis.

    Each thread's status is one JSON document whose TTL is the staleness
    window, so a thread nobody touches disappears on its own.
    """

    def __init__(self, cache: RedisCache | None = None, ttl_seconds: int | None = None):
        self._cache = cache
        self._ttl = ttl_seconds or settings.presence_stale_seconds

    @property
    def cache(self) -> RedisCache:
        """Lazy initialization of Redis cache."""
        if self._cache is None:
            self._cache = get_redis_cache()
        return self._cache

    def get(self, thread_id: str) -> CollaborationStatus | None:
        data = self.cache.get(RedisKeyPrefix.presence_key(thread_id))
        if data:
            return CollaborationStatus.model_validate(data)
        return None

    def update(self, thread_id: str, mutate: StatusMutation) -> CollaborationStatus | None:
        key = RedisKeyPrefix.presence_key(thread_id)

        def apply(pipe: Pipeline):
            data = self.cache.load(pipe, key)
            current = CollaborationStatus.model_validate(data) if data else None
            updated = mutate(current)
            if updated is None:
                return None, lambda p: p.delete(key)
            payload = self.cache.dump(updated.model_dump(mode="json"))
            return updated, lambda p: p.setex(key, self._ttl, payload)

        return self.cache.transaction([key], apply)

    def clear_all(self) -> None:
        client = self.cache.client
        keys = list(client.scan_iter(match=f"{RedisKeyPrefix.PRESENCE_THREAD.value}:*"))
        if keys:
            client.delete(*keys)


class PresenceTracker:
    """Maintains CollaborationStatus for threads.

    Args:
        store: Where statuses live (defaults by settings.use_memory_store)
        stale_seconds: Entries idle longer than this are pruned
        clock: Source of "now", injectable for tests
    """

    def __init__(
        self,
        store: PresenceStore | None = None,
        stale_seconds: int | None = None,
        clock: Callable[[], datetime] = utc_now,
    ):
        self._store = store
        self.stale_after = timedelta(seconds=stale_seconds or settings.presence_stale_seconds)
        self._clock = clock

    @property
    def store(self) -> PresenceStore:
        if self._store is None:
            if settings.use_memory_store:
                ttl = int(self.stale_after.total_seconds())
                self._store = MemoryPresenceStore(ttl_seconds=ttl, clock=self._clock)
            else:
                self._store = RedisPresenceStore()
        return self._store

    def _prune(self, status: CollaborationStatus, now: datetime) -> None:
        cutoff = now - self.stale_after
        status.active_participants = [p for p in status.active_participants if p.last_activity > cutoff]

    @staticmethod
    def _recompute_typing(status: CollaborationStatus) -> None:
        status.currently_typing = [p.user_id for p in status.active_participants if p.is_typing]

    def update_presence(
        self,
        thread_id: str,
        user_id: str,
        name: str,
        is_typing: bool = False,
        viewing_message_id: str | None = None,
        avatar: str | None = None,
    ) -> CollaborationStatus:
        """Record activity from `user_id` on a thread and return the new snapshot.

        Stale entries are pruned first, then the caller's entry is upserted
        and `currently_typing` is recomputed, all in one atomic step.
        """
        now = self._clock()

        def mutate(status: CollaborationStatus | None) -> CollaborationStatus:
            status = status or CollaborationStatus(thread_id=thread_id)
            self._prune(status, now)

            entry = next((p for p in status.active_participants if p.user_id == user_id), None)
            if entry is None:
                status.active_participants.append(
                    ActiveParticipant(
                        user_id=user_id,
                        name=name,
                        avatar=avatar,
                        is_typing=is_typing,
                        last_activity=now,
                        current_viewing_message_id=viewing_message_id,
                    )
                )
            else:
                entry.is_typing = is_typing
                entry.last_activity = now
                entry.current_viewing_message_id = viewing_message_id
                if avatar is not None:
                    entry.avatar = avatar

            self._recompute_typing(status)
            return status

        status = self.store.update(thread_id, mutate)
        logger.debug(
            f"Presence {thread_id}: {len(status.active_participants)} active, typing={status.currently_typing}"
        )
        return status

    def get_status(self, thread_id: str) -> CollaborationStatus | None:
        """Current snapshot, or None if the thread has no tracked activity."""
        return self.store.get(thread_id)

    def leave_thread(self, thread_id: str, user_id: str) -> CollaborationStatus | None:
        """Drop a user's entry, pruning stale ones too. Removes empty statuses."""
        now = self._clock()

        def mutate(status: CollaborationStatus | None) -> CollaborationStatus | None:
            if status is None:
                return None
            self._prune(status, now)
            status.active_participants = [p for p in status.active_participants if p.user_id != user_id]
            if not status.active_participants:
                return None
            self._recompute_typing(status)
            return status

        return self.store.update(thread_id, mutate)


# Singleton instance
_presence_tracker: PresenceTracker | None = None


def get_presence_tracker() -> PresenceTracker:
    global _presence_tracker
    if _presence_tracker is None:
        _presence_tracker = PresenceTracker()
    return _presence_tracker


def reset_presence_tracker() -> None:
    """Drop the singleton (for testing)."""
    global _presence_tracker
    _presence_tracker = None
