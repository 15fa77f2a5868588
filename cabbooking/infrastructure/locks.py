"""
Redis-based distributed lock.

Guards the scheduled-trip sweep: with several API processes running the
scheduler loop, only the holder of ``lock:scheduled_trip_sweep`` sweeps in a
given interval.  The others skip that tick.

SET NX EX to acquire.  Extend and release are atomic compare-and-set scripts
in Lua, so a process never refreshes or drops a lock that expired and was
re-taken by someone else.
"""

from __future__ import annotations

import uuid

import redis.asyncio as aioredis

_RELEASE_SCRIPT = """
if redis.call("get", KEYS[1]) == ARGV[1] then
    return redis.call("del", KEYS[1])
else
    return 0
end
"""

_EXTEND_SCRIPT = """
if redis.call("get", KEYS[1]) == ARGV[1] then
    return redis.call("expire", KEYS[1], ARGV[2])
else
    return 0
end
"""


class LockNotAcquired(RuntimeError):
    pass


class DistributedLock:
    def __init__(
        self, client: aioredis.Redis, name: str, ttl_seconds: int = 60
    ):
        self.redis = client
        self.key = f"lock:{name}"
        self.ttl = ttl_seconds
        self.token = uuid.uuid4().hex

    async def acquire(self) -> bool:
        """Try once; True if this instance now holds the lock."""
        return bool(
            await self.redis.set(self.key, self.token, nx=True, ex=self.ttl)
        )

    async def release(self) -> bool:
        """Delete the key only if it still carries our token."""
        return bool(await self.redis.eval(_RELEASE_SCRIPT, 1, self.key, self.token))

    async def extend(self) -> bool:
        """Reset the TTL if we still hold the lock; False once it was lost."""
        return bool(
            await self.redis.eval(_EXTEND_SCRIPT, 1, self.key, self.token, self.ttl)
        )

    async def __aenter__(self):
        if not await self.acquire():
            raise LockNotAcquired(f"Could not acquire lock: {self.key}")
        return self

    async def __aexit__(self, *args):
        await self.release()
