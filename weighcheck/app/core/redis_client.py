"""
Redis client initialization and connection management.

Redis holds the shared, cross-session state of the service: the per-worker
location permission flag, the reverse geocode cache and per-client rate
limits.
"""

import redis.asyncio as redis
from weighcheck.app.core.config import settings


# Create async Redis client
redis_client = redis.from_url(
    settings.redis_url,
    decode_responses=settings.redis_decode_responses,
)


async def get_redis():
    """
    Get Redis client instance.

    Used as a FastAPI dependency so tests can swap in a double.
    """
    return redis_client


async def ping_redis(client=None) -> bool:
    """
    Test Redis connection.

    Args:
        client: Client to ping, the shared client when omitted

    Returns:
        True if connection successful, False otherwise
    """
    try:
        return await (client or redis_client).ping()
    except Exception:
        return False
