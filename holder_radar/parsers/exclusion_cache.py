"""Redis cache of owner wallet → owning program.

Program ownership of a wallet practically never changes, so repeated
snapshots of the same mint reuse earlier getMultipleAccounts results.
Redis failures degrade to cache misses.
"""

from loguru import logger
from redis.asyncio import Redis
from redis.exceptions import RedisError

KEY_PREFIX = "holders:owner_program:"


class OwnerProgramCache:
    def __init__(self, redis: Redis, *, ttl_sec: int = 86400) -> None:
        self._redis = redis
        self._ttl_sec = ttl_sec

    async def get_many(self, owners: list[str]) -> dict[str, str]:
        if not owners:
            return {}
        try:
            values = await self._redis.mget([KEY_PREFIX + o for o in owners])
        except RedisError as e:
            logger.warning(f"[CACHE] Owner lookup failed, falling back to RPC: {e}")
            return {}

        cached: dict[str, str] = {}
        for owner, value in zip(owners, values):
            if value is None:
                continue
            cached[owner] = value.decode() if isinstance(value, bytes) else value
        if cached:
            logger.debug(f"[CACHE] {len(cached)}/{len(owners)} owner programs cached")
        return cached

    async def set_many(self, programs: dict[str, str]) -> None:
        if not programs:
            return
        try:
            async with self._redis.pipeline(transaction=False) as pipe:
                for owner, program_id in programs.items():
                    pipe.set(KEY_PREFIX + owner, program_id, ex=self._ttl_sec)
                await pipe.execute()
        except RedisError as e:
            logger.warning(f"[CACHE] Failed to store {len(programs)} owner programs: {e}")
