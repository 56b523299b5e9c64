"""Optional Redis connection pool.

Redis holds only the quiz seeds handed out by GET /v1/rng-seed, each with a
SEED_TTL_SECONDS expiry, so several API instances agree on which seeds are
live.  Without REDIS_URL ``redis_pool`` is None and seeds stay in process
memory (see services.seed_registry).  Losing Redis costs a candidate a
fresh seed request, nothing more.
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager

import redis.asyncio as aioredis

from vcanchor.core.config import SETTINGS

logger = logging.getLogger(__name__)

redis_pool: aioredis.Redis | None = (  # type: ignore[type-arg]
    aioredis.from_url(SETTINGS.redis_url, decode_responses=True, max_connections=20)
    if SETTINGS.redis_url
    else None
)


async def ping_redis() -> bool:
    """Readiness probe helper.  True when Redis is unconfigured or reachable."""
    if redis_pool is None:
        return True
    try:
        return bool(await redis_pool.ping())  # type: ignore[misc]
    except aioredis.RedisError:
        logger.warning("Redis ping failed", exc_info=True)
        return False


@asynccontextmanager
async def lifespan_redis():
    if redis_pool is None:
        logger.info("No REDIS_URL configured - seeds are kept in process memory")
        yield
        return

    # An unreachable Redis does not block startup: /ready reports it and
    # seed requests fail until it is back.
    if await ping_redis():
        logger.info("Redis connected")
    else:
        logger.error("Redis unreachable on startup")
    try:
        yield
    finally:
        await redis_pool.aclose()
        logger.info("Redis connection pool closed")
