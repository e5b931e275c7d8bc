"""Redis caching utilities for CupTrace.

Provides a decorator for caching read-heavy list endpoints, plus the
shared Redis client used by token revocation and rate limiting.
"""

import functools
import hashlib
import json
import logging
from datetime import date, datetime
from typing import Callable, Optional

import redis.asyncio as redis

from cuptrace.config import settings

logger = logging.getLogger(__name__)

# Global Redis connection pool
_redis_client: Optional[redis.Redis] = None


async def get_redis() -> redis.Redis:
    """Get or create the shared Redis client."""
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


def cache_key(*args, **kwargs) -> str:
    """Deterministic md5 of the arguments."""
    if not args and not kwargs:
        return "default"

    key_data = json.dumps({"args": args, "kwargs": kwargs}, sort_keys=True)
    return hashlib.md5(key_data.encode()).hexdigest()


def _serialize(result):
    if hasattr(result, "model_dump"):
        return result.model_dump(mode="json")
    if isinstance(result, list) and result and hasattr(result[0], "model_dump"):
        return [item.model_dump(mode="json") for item in result]
    return result


def cached(
    ttl: int = 300,
    prefix: str = "cache",
    key_builder: Optional[Callable] = None,
):
    """Decorator to cache function results in Redis.

    Example:
        @cached(ttl=60, prefix="cooperatives")
        async def list_cooperatives(page: int = 1, limit: int = 10, db=...):
            ...

    Cache keys: {prefix}:{function_name}:{kwargs_hash}

    Only simple keyword arguments take part in the key; positional args and
    injected objects (sessions, users) are ignored.  A Redis failure falls
    back to calling the function uncached.
    """

    def decorator(func: Callable) -> Callable:
        @functools.wraps(func)
        async def wrapper(*args, **kwargs):
            if key_builder:
                key = key_builder(*args, **kwargs)
            else:
                cache_kwargs = {}
                for k, v in kwargs.items():
                    if k.startswith("_"):
                        continue
                    if isinstance(v, (int, str, bool, float, type(None))):
                        cache_kwargs[k] = v
                    elif isinstance(v, (date, datetime)):
                        cache_kwargs[k] = v.isoformat()
                key = f"{prefix}:{func.__name__}:{cache_key(**cache_kwargs)}"

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

            try:
                await redis_client.setex(key, ttl, json.dumps(_serialize(result)))
            except redis.RedisError as e:
                logger.warning(f"Failed to store cache entry {key}: {e}")

            return result

        return wrapper

    return decorator


async def invalidate_cache(pattern: str):
    """Delete every key matching ``pattern``, e.g. ``"batches:*"``."""
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


# ── Commit-aware invalidation ────────────────────────────────
# Writers queue patterns on their session; get_db() clears them only once
# the transaction has committed, so a concurrent read cannot re-cache rows
# that are about to change.

_PENDING_KEY = "cache_invalidations"


def invalidate_on_commit(db, pattern: str) -> None:
    """Queue ``pattern`` for invalidation after ``db`` commits."""
    db.info.setdefault(_PENDING_KEY, set()).add(pattern)


async def run_pending_invalidations(db) -> None:
    """Invalidate every pattern queued on ``db``.  Call after commit."""
    for pattern in sorted(db.info.pop(_PENDING_KEY, ())):
        await invalidate_cache(pattern)


def discard_pending_invalidations(db) -> None:
    db.info.pop(_PENDING_KEY, None)
