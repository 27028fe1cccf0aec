"""
Shared async Redis client.

Other modules read ``redis_client`` through this module at call time, so
replacing the attribute swaps the client everywhere.
"""

import logging
import redis.asyncio as redis
from bizos.app.core.config import settings

logger = logging.getLogger("bizos.redis")

redis_client = redis.from_url(
    settings.redis_url,
    decode_responses=settings.redis_decode_responses,
)


async def ping_redis() -> bool:
    """True when Redis answers a PING."""
    try:
        return bool(await redis_client.ping())
    except Exception as e:
        logger.warning("Redis ping failed: %s", e)
        return False


async def close_redis() -> None:
    await redis_client.aclose()
