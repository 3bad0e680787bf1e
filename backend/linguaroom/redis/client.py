"""
Redis async client for room presence.

One client per process, opened in the app lifespan.  When REDIS_URL is empty
or the server does not answer, the client stays None and every presence
helper reports empty rooms instead of failing the request.
"""

import logging

import redis.asyncio as aioredis

from linguaroom.config import settings

logger = logging.getLogger(__name__)

_client: aioredis.Redis | None = None


async def init_redis() -> aioredis.Redis | None:
    """Connect and ping.  Call once at app startup."""
    global _client
    if not settings.REDIS_URL:
        logger.info("REDIS_URL is empty, room presence disabled")
        return None

    # from_url gives the client its own pool, released by aclose().
    client = aioredis.from_url(
        settings.REDIS_URL,
        decode_responses=True,
        max_connections=settings.REDIS_MAX_CONNECTIONS,
    )
    try:
        await client.ping()
    except Exception as exc:
        logger.warning("Redis unavailable (%s), room presence disabled", exc)
        await client.aclose()
        return None

    _client = client
    logger.info("Redis connected: %s", settings.REDIS_URL)
    return _client


async def close_redis() -> None:
    """Release the client.  Call once at app shutdown."""
    global _client
    client, _client = _client, None
    if client is not None:
        await client.aclose()


def get_redis() -> aioredis.Redis | None:
    """The live client, or None while presence is disabled."""
    return _client
