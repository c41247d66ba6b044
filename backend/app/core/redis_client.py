"""
Shared async Redis connection.

Only the revoked-token blacklist lives in Redis; nothing else depends on it
being up.
"""

import logging
import redis.asyncio as redis
from redis.exceptions import RedisError
from backend.app.core.config import settings

logger = logging.getLogger(__name__)

redis_client = redis.from_url(
    settings.redis_url,
    decode_responses=settings.redis_decode_responses,
)


async def get_redis():
    """FastAPI dependency returning the shared client."""
    return redis_client


async def ping_redis() -> bool:
    try:
        return bool(await redis_client.ping())
    except (RedisError, OSError) as exc:
        logger.warning("Redis ping failed: %s", exc)
        return False


async def close_redis() -> None:
    try:
        await redis_client.aclose()
    except (RedisError, OSError) as exc:
        logger.warning("Error closing Redis connection: %s", exc)
