"""Process-wide Redis connection (owner-program cache)."""

from redis.asyncio import Redis
from redis.exceptions import RedisError

from config.settings import settings

_redis_client: Redis | None = None


def get_redis() -> Redis:
    """Lazily create the shared client. Connects on first command."""
    global _redis_client
    if _redis_client is None:
        _redis_client = Redis.from_url(settings.redis_url, decode_responses=True)
    return _redis_client


async def redis_ok() -> bool:
    try:
        return bool(await get_redis().ping())
    except (RedisError, OSError):
        return False


async def close_redis() -> None:
    global _redis_client
    if _redis_client:
        await _redis_client.aclose()
        _redis_client = None
