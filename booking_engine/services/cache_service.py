"""
Redis caching for published-resource listings.

What we cache:
  - Listing pages, JSON-serialized
  - Key pattern: "resources:list:page={page}&size={size}"

Invalidation:
  - Any resource lifecycle change or booking admission/cancellation deletes
    every "resources:list:*" key (SCAN over a small keyspace)
  - TTL-based expiry as safety net

Not cached:
  - Available units. Those come from the ledger on every request; a stale
    count must never reach the admission path.

Cache failures are logged and treated as a miss; the listing still works
without Redis.
"""

import json
from typing import Optional

import redis.asyncio as redis

from booking_engine.core.config import get_settings
from booking_engine.core.logging import get_logger
from booking_engine.core.metrics import record_cache_operation
from booking_engine.infrastructure.redis_client import get_redis

logger = get_logger(__name__)
settings = get_settings()

LIST_KEY_PREFIX = "resources:list:"


def _make_list_key(page: int, page_size: int) -> str:
    return f"{LIST_KEY_PREFIX}page={page}&size={page_size}"


async def get_cached_resources(page: int, page_size: int) -> Optional[dict]:
    client = await get_redis()
    if not client:
        return None

    key = _make_list_key(page, page_size)
    try:
        data = await client.get(key)
    except redis.RedisError as e:
        logger.error("cache_get_error", key=key, error=str(e))
        return None

    record_cache_operation("get", hit=data is not None)
    if data:
        logger.debug("cache_hit", key=key)
        return json.loads(data)
    logger.debug("cache_miss", key=key)
    return None


async def set_cached_resources(page: int, page_size: int, data: dict) -> None:
    client = await get_redis()
    if not client:
        return

    key = _make_list_key(page, page_size)
    try:
        await client.setex(key, settings.REDIS_CACHE_TTL, json.dumps(data, default=str))
        record_cache_operation("set", hit=False)
        logger.debug("cache_set", key=key, ttl=settings.REDIS_CACHE_TTL)
    except redis.RedisError as e:
        logger.error("cache_set_error", key=key, error=str(e))


async def invalidate_resource_cache() -> None:
    client = await get_redis()
    if not client:
        return

    try:
        deleted = 0
        async for key in client.scan_iter(match=f"{LIST_KEY_PREFIX}*", count=100):
            await client.delete(key)
            deleted += 1
        logger.info("cache_invalidated", keys_deleted=deleted)
    except redis.RedisError as e:
        logger.error("cache_invalidation_error", error=str(e))


async def get_cache_stats() -> dict:
    """Redis statistics for the health endpoint."""
    client = await get_redis()
    if not client:
        return {"status": "disabled"}

    try:
        info = await client.info("stats")
        hits = info.get("keyspace_hits", 0)
        misses = info.get("keyspace_misses", 0)
        return {
            "status": "connected",
            "hits": hits,
            "misses": misses,
            "hit_rate": round(hits / max(hits + misses, 1) * 100, 2),
        }
    except redis.RedisError as e:
        return {"status": "error", "error": str(e)}
