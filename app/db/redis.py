# app/db/redis.py
import logging
import redis.asyncio as redis
from redis.exceptions import RedisError
from app.core.config import get_settings

logger = logging.getLogger(__name__)
redis_client: redis.Redis | None = None


async def connect():
    """
    Connect the shared ranking cache. Redis is optional: without REDIS_URL, or
    when the first ping fails, rankings are cached in process memory instead.
    """
    global redis_client
    settings = get_settings()
    if not settings.REDIS_URL:
        logger.warning("No REDIS_URL configured, rankings cached in process memory")
        redis_client = None
        return

    timeout = settings.store_timeout_ms / 1000
    client = redis.from_url(
        settings.REDIS_URL,
        decode_responses=True,
        socket_timeout=timeout,
        socket_connect_timeout=timeout,
    )
    try:
        await client.ping()
    except (RedisError, OSError) as e:
        logger.warning("Redis unreachable, rankings cached in process memory: %s", e)
        await client.aclose()
        redis_client = None
        return
    redis_client = client
    logger.info("Redis connected, ranking cache shared across workers")


async def disconnect():
    global redis_client
    if redis_client:
        await redis_client.aclose()
        redis_client = None
        logger.info("Redis disconnected")


def get_redis() -> redis.Redis | None:
    """Shared ranking cache client, or None (in-memory fallback)."""
    return redis_client
