"""Redis caching utilities for DriveDock.

Caches tracker snapshots between dashboard requests and provides pattern
invalidation for when a commit or company change makes them stale.
Redis problems never fail a request: reads fall back to the wrapped
function and invalidation failures are logged.
"""

import functools
import json
import logging
from typing import Callable, Optional

import redis.asyncio as redis

from drivedock.config import settings

logger = logging.getLogger(__name__)

# Global Redis connection pool
_redis_client: Optional[redis.Redis] = None


async def get_redis() -> redis.Redis:
    """Get or create Redis client connection."""
    global _redis_client
    if _redis_client is None:
        _redis_client = redis.from_url(
            settings.redis_url,
            encoding="utf-8",
            decode_responses=True,
            max_connections=50,
        )
    return _redis_client


async def close_redis():
    """Close Redis connection (call on app shutdown)."""
    global _redis_client
    if _redis_client:
        await _redis_client.aclose()
        _redis_client = None


def tracker_key(tracker_id: str) -> str:
    return f"tracker:{tracker_id}"


def cached(key_builder: Callable[..., str], ttl: int = 300):
    """Decorator to cache an async function's JSON-able result in Redis.

    Args:
        key_builder: Builds the cache key from the wrapped function's args
        ttl: Time-to-live in seconds

    Example:
        @cached(key_builder=lambda api, tracker_id: tracker_key(tracker_id), ttl=30)
        async def load_tracker_data(api, tracker_id: str) -> dict:
            ...
    """

    def decorator(func: Callable) -> Callable:
        @functools.wraps(func)
        async def wrapper(*args, **kwargs):
            key = key_builder(*args, **kwargs)

            try:
                redis_client = await get_redis()
                cached_value = await redis_client.get(key)
            except redis.RedisError as e:
                logger.warning(f"Redis error (falling back to uncached): {e}")
                return await func(*args, **kwargs)

            if cached_value:
                logger.debug(f"Cache HIT: {key}")
                return json.loads(cached_value)

            logger.debug(f"Cache MISS: {key}")
            result = await func(*args, **kwargs)

            if hasattr(result, "model_dump"):
                serialized = result.model_dump(mode="json", by_alias=True)
            else:
                serialized = result

            try:
                await redis_client.setex(key, ttl, json.dumps(serialized))
            except redis.RedisError as e:
                logger.warning(f"Redis error while storing {key}: {e}")
            return serialized

        return wrapper

    return decorator


async def invalidate_cache(pattern: str):
    """Delete cache keys matching a pattern (e.g. "tracker:abc123*")."""
    try:
        redis_client = await get_redis()
        keys = []
        async for key in redis_client.scan_iter(match=pattern):
            keys.append(key)

        if keys:
            await redis_client.delete(*keys)
            logger.info(f"Invalidated {len(keys)} cache keys matching {pattern}")
    except redis.RedisError as e:
        logger.warning(f"Failed to invalidate cache: {e}")
