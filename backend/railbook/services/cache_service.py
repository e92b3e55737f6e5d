"""
Redis caching service for the availability snapshot.

CACHING STRATEGY
================

What we cache:
  - The GET /available payload under a single key, "railbook:availability"

Why:
  - Availability is the most frequent read and is a handful of COUNT queries
  - It never feeds a write decision (the allocation engine recounts inside
    its own transaction), so a slightly stale value is harmless

Invalidation strategy:
  - After every committed booking or cancellation, bump a generation
    counter and delete the key in one MULTI/EXEC
  - A reader notes the generation before it queries the ledger and only
    stores its result if the generation is unchanged (compare-and-set in
    Lua). A document computed before a commit can therefore never be
    written back after that commit's invalidation.
  - Short TTL as safety net (REDIS_CACHE_TTL, seconds)

The cache is advisory. Any Redis failure is logged and treated as a miss;
the ledger stays authoritative.
"""

import json
from typing import Optional

import redis.asyncio as redis
from redis.exceptions import RedisError
from railbook.core.config import get_settings
from railbook.core.logging import get_logger
from railbook.core.metrics import record_cache_operation

logger = get_logger(__name__)

AVAILABILITY_KEY = "railbook:availability"
GENERATION_KEY = "railbook:availability:generation"

# KEYS[1] document, KEYS[2] generation; ARGV: expected generation, payload, ttl
_SET_IF_GENERATION = """
if (redis.call("get", KEYS[2]) or "0") == ARGV[1] then
    redis.call("set", KEYS[1], ARGV[2], "EX", ARGV[3])
    return 1
end
return 0
"""

_redis_client: Optional[redis.Redis] = None


async def get_redis() -> Optional[redis.Redis]:
    """Get or create Redis connection. Returns None if Redis is disabled or unreachable."""
    global _redis_client
    settings = get_settings()

    if not settings.REDIS_ENABLED:
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
            await client.aclose()
            return None
        logger.info("redis_connected", url=settings.REDIS_URL)
        _redis_client = client

    return _redis_client


async def close_redis() -> None:
    """Close Redis connection on shutdown."""
    global _redis_client
    if _redis_client:
        await _redis_client.aclose()
        _redis_client = None


async def get_cached_availability() -> Optional[dict]:
    client = await get_redis()
    if not client:
        return None

    try:
        data = await client.get(AVAILABILITY_KEY)
    except RedisError as e:
        logger.error("cache_get_error", key=AVAILABILITY_KEY, error=str(e))
        return None

    record_cache_operation("get", "hit" if data is not None else "miss")
    if data:
        logger.debug("cache_hit", key=AVAILABILITY_KEY)
        return json.loads(data)
    logger.debug("cache_miss", key=AVAILABILITY_KEY)
    return None


async def get_availability_generation() -> Optional[str]:
    """Current invalidation generation; read it before querying the ledger."""
    client = await get_redis()
    if not client:
        return None

    try:
        return await client.get(GENERATION_KEY) or "0"
    except RedisError as e:
        logger.error("cache_get_error", key=GENERATION_KEY, error=str(e))
        return None


async def set_cached_availability(data: dict, generation: Optional[str]) -> bool:
    """
    Store a freshly computed document unless an invalidation happened since
    `generation` was read. Returns True when the document was stored.
    """
    if generation is None:
        return False
    client = await get_redis()
    if not client:
        return False

    ttl = get_settings().REDIS_CACHE_TTL
    try:
        stored = await client.eval(
            _SET_IF_GENERATION, 2, AVAILABILITY_KEY, GENERATION_KEY, generation, json.dumps(data), ttl
        )
    except RedisError as e:
        logger.error("cache_set_error", key=AVAILABILITY_KEY, error=str(e))
        return False

    if stored:
        record_cache_operation("set", "stored")
        logger.debug("cache_set", key=AVAILABILITY_KEY, ttl=ttl, generation=generation)
        return True
    record_cache_operation("set", "stale")
    logger.debug("cache_set_skipped", key=AVAILABILITY_KEY, generation=generation)
    return False


async def invalidate_availability_cache() -> None:
    """Drop the cached document after a committed booking or cancellation."""
    client = await get_redis()
    if not client:
        return

    try:
        async with client.pipeline(transaction=True) as pipe:
            pipe.incr(GENERATION_KEY)
            pipe.delete(AVAILABILITY_KEY)
            generation, _ = await pipe.execute()
    except RedisError as e:
        logger.error("cache_invalidation_error", key=AVAILABILITY_KEY, error=str(e))
        return

    record_cache_operation("invalidate", "ok")
    logger.debug("cache_invalidated", key=AVAILABILITY_KEY, generation=generation)


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
