"""
Redis caching service for the public charger listing.

CACHING STRATEGY
================

What we cache:
  - Charger listing responses (paginated, JSON-serialized)
  - Cache key pattern: "chargers:list:page={page}&size={size}"

Why:
  - The map view polls the listing every ~30 seconds per open client
  - Slot counters change only on reservation transitions

Invalidation strategy:
  - On every slot change (booking create/complete/cancel, request
    approve/session cancel) and every charger create/update/delete:
    delete all "chargers:list:*" keys
  - Short TTL as safety net

Why NOT cache single chargers:
  - Drivers decide whether to book from the single-charger view
  - The reservation engine never reads through this cache; capacity is
    always decided by the database

Redis is optional. When disabled or unreachable every call is a no-op
and the listing is served from the database.
"""

import json
from typing import Optional

import redis.asyncio as redis
from redis.exceptions import RedisError
from chargeshare.core.config import get_settings
from chargeshare.core.logging import get_logger
from chargeshare.core.metrics import record_cache_operation, redis_connection_errors, redis_available

logger = get_logger(__name__)
settings = get_settings()

LIST_KEY_PREFIX = "chargers:list:"

_redis_client: Optional[redis.Redis] = None


async def get_redis() -> Optional[redis.Redis]:
    """Get or create Redis connection. Returns None if Redis is disabled."""
    global _redis_client

    if not settings.REDIS_ENABLED:
        redis_available.set(0)
        return None

    if _redis_client is None:
        client = redis.from_url(
            settings.REDIS_URL,
            encoding="utf-8",
            decode_responses=True,
            socket_connect_timeout=5,
            socket_timeout=5,
            retry_on_timeout=True,
        )
        try:
            await client.ping()
        except RedisError as e:
            logger.error("redis_connection_failed", error=str(e))
            redis_connection_errors.inc()
            redis_available.set(0)
            await client.aclose()
            return None
        _redis_client = client
        redis_available.set(1)
        logger.info("redis_connected", url=settings.REDIS_URL)

    return _redis_client


async def close_redis() -> None:
    """Close Redis connection on shutdown."""
    global _redis_client
    if _redis_client:
        await _redis_client.aclose()
        _redis_client = None


def _make_charger_list_key(page: int, page_size: int) -> str:
    return f"{LIST_KEY_PREFIX}page={page}&size={page_size}"


async def get_cached_chargers(page: int, page_size: int) -> Optional[dict]:
    """Retrieve cached charger list response."""
    client = await get_redis()
    if not client:
        return None

    key = _make_charger_list_key(page, page_size)
    try:
        data = await client.get(key)
    except RedisError as e:
        logger.error("cache_get_error", key=key, error=str(e))
        return None

    record_cache_operation("get", hit=data is not None)
    if data:
        logger.debug("cache_hit", key=key)
        return json.loads(data)
    logger.debug("cache_miss", key=key)
    return None


async def set_cached_chargers(page: int, page_size: int, data: dict) -> None:
    """Cache charger list response with TTL."""
    client = await get_redis()
    if not client:
        return

    key = _make_charger_list_key(page, page_size)
    try:
        await client.setex(key, settings.REDIS_CACHE_TTL, json.dumps(data, default=str))
        record_cache_operation("set", hit=False)
        logger.debug("cache_set", key=key, ttl=settings.REDIS_CACHE_TTL)
    except RedisError as e:
        logger.error("cache_set_error", key=key, error=str(e))


async def invalidate_charger_cache() -> None:
    """
    Invalidate all cached charger listings.
    Uses SCAN to find and delete all keys matching the prefix.
    """
    client = await get_redis()
    if not client:
        return

    try:
        deleted = 0
        async for key in client.scan_iter(match=f"{LIST_KEY_PREFIX}*", count=100):
            await client.delete(key)
            deleted += 1
        logger.info("cache_invalidated", keys_deleted=deleted)
    except RedisError as e:
        logger.error("cache_invalidation_error", error=str(e))


async def get_cache_stats() -> dict:
    """Get Redis cache statistics for monitoring."""
    client = await get_redis()
    if not client:
        return {"status": "disabled"}

    try:
        info = await client.info("stats")
    except RedisError as e:
        return {"status": "error", "error": str(e)}

    hits = info.get("keyspace_hits", 0)
    misses = info.get("keyspace_misses", 0)
    return {
        "status": "connected",
        "hits": hits,
        "misses": misses,
        "hit_rate": round(hits / max(hits + misses, 1) * 100, 2),
    }
