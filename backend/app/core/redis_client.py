"""Redis client shared by the price cache and the cron counters."""

import json
import logging
from typing import Any, Optional

import redis.asyncio as aioredis

from app.core.config import settings

logger = logging.getLogger(__name__)

# Async Redis client singleton
_redis: Optional[aioredis.Redis] = None


async def get_redis() -> aioredis.Redis:
    global _redis
    if _redis is None:
        _redis = aioredis.from_url(
            settings.REDIS_URL,
            decode_responses=True,
            socket_timeout=5,
        )
    return _redis


async def close_redis() -> None:
    global _redis
    if _redis is not None:
        await _redis.aclose()
        _redis = None


async def cache_get(key: str, redis: Optional[aioredis.Redis] = None) -> Optional[Any]:
    """Read a JSON value, None on miss or Redis error."""
    try:
        r = redis or await get_redis()
        data = await r.get(key)
        if data is not None:
            return json.loads(data)
    except Exception as e:
        logger.debug("Redis cache miss for %s: %s", key, e)
    return None


async def cache_set(
    key: str, value: Any, ttl: int, redis: Optional[aioredis.Redis] = None
) -> None:
    """Write a JSON value with a TTL in seconds."""
    try:
        r = redis or await get_redis()
        await r.setex(key, ttl, json.dumps(value, default=str))
    except Exception as e:
        logger.warning("Failed to cache %s: %s", key, e)
