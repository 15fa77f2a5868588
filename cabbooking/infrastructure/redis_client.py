"""Redis async connection pool, shared by every lock in the process."""

import redis.asyncio as aioredis

from cabbooking.config import settings

_pool = aioredis.ConnectionPool.from_url(
    settings.redis_url, decode_responses=True
)


async def get_redis() -> aioredis.Redis:
    return aioredis.Redis(connection_pool=_pool)
