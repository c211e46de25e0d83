"""Redis connection lifecycle.

Mirrors lms.db.engine: the client is created in the lifespan (never at
import time) and handed to whatever needs it.  Redis is optional; when
REDIS_URL is unset, or Redis is unreachable at startup, the lifespan
yields None and callers fall back to in-memory implementations.

Only the rate limiter uses Redis today, so that every API replica draws
from the same token buckets.
"""

from __future__ import annotations

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

import redis.asyncio as aioredis

from lms.core.config import Settings

logger = logging.getLogger(__name__)


def create_redis(url: str) -> aioredis.Redis:  # type: ignore[type-arg]
    return aioredis.from_url(
        url,
        decode_responses=True,
        max_connections=20,
    )


@asynccontextmanager
async def lifespan_redis(settings: Settings) -> AsyncIterator[aioredis.Redis | None]:
    if not settings.redis_url:
        logger.info("No REDIS_URL configured; rate limits use in-memory buckets")
        yield None
        return

    client = create_redis(settings.redis_url)
    try:
        await client.ping()  # type: ignore[misc]
    except Exception:
        logger.exception("Redis connection failed on startup; using in-memory buckets")
        await client.aclose()
        yield None
        return

    logger.info("Redis connected")
    try:
        yield client
    finally:
        await client.aclose()
        logger.info("Redis connection pool closed")
