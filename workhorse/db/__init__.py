"""Database module for the workhorse core.

Redis is the shared store for multi-instance deployments:
- Collaboration documents and containment indexes
- Ephemeral presence
- Project, phase and artifact documents
"""

from workhorse.db.redis_cache import RedisCache, get_redis_cache, reset_redis_cache
from workhorse.db.redis_db import RedisKeyPrefix
from workhorse.db.redis_factory import create_redis_client

__all__ = [
    "RedisCache",
    "RedisKeyPrefix",
    "create_redis_client",
    "get_redis_cache",
    "reset_redis_cache",
]
