"""Redis client factory for different deployment modes.

Creates an in-process fakeredis client for local development and tests,
or a real Redis client for shared deployments.
"""

import logging

import fakeredis
import redis

from workhorse.settings import settings

logger = logging.getLogger(__name__)

# One fake server per process so every fake client sees the same data
_fake_server: fakeredis.FakeServer | None = None


def create_redis_client(db: int = 0) -> redis.Redis:
    """Create Redis client based on settings.

    Args:
        db: Database index (default: 0)

    Returns:
        Redis client (either fakeredis or real redis)
    """
    global _fake_server

    if settings.redis_type == "fake":
        if _fake_server is None:
            _fake_server = fakeredis.FakeServer()
        client = fakeredis.FakeRedis(server=_fake_server, db=db, decode_responses=True)
        logger.info(f"Using FakeRedis (in-memory): db={db}")
        return client

    redis_config = {
        "host": settings.redis_host,
        "port": settings.redis_port,
        "db": db,
        "socket_connect_timeout": settings.redis_socket_connect_timeout,
        "socket_timeout": settings.redis_socket_timeout,
        "decode_responses": True,
    }
    if settings.redis_password:
        redis_config["password"] = settings.redis_password

    client = redis.Redis(**redis_config)
    logger.info(f"Using real Redis: {settings.redis_host}:{settings.redis_port}, db={db}")
    return client
