"""Tests for the Redis owner → program cache."""

from unittest.mock import AsyncMock, MagicMock

import pytest
from redis.exceptions import ConnectionError as RedisConnectionError

from holder_radar.parsers.exclusion_cache import KEY_PREFIX, OwnerProgramCache


class _FakePipeline:
    def __init__(self, fail: bool = False) -> None:
        self.calls: list[tuple[str, str, int]] = []
        self._fail = fail

    async def __aenter__(self) -> "_FakePipeline":
        return self

    async def __aexit__(self, *exc) -> None:
        return None

    def set(self, key: str, value: str, ex: int) -> None:
        self.calls.append((key, value, ex))

    async def execute(self) -> list:
        if self._fail:
            raise RedisConnectionError("down")
        return [True] * len(self.calls)


class TestOwnerProgramCache:
    @pytest.mark.asyncio
    async def test_get_many(self) -> None:
        redis = MagicMock()
        redis.mget = AsyncMock(return_value=["ProgA", None, b"ProgC"])
        cache = OwnerProgramCache(redis)

        cached = await cache.get_many(["a", "b", "c"])

        assert cached == {"a": "ProgA", "c": "ProgC"}
        redis.mget.assert_awaited_once_with([KEY_PREFIX + "a", KEY_PREFIX + "b", KEY_PREFIX + "c"])

    @pytest.mark.asyncio
    async def test_get_many_empty(self) -> None:
        redis = MagicMock()
        redis.mget = AsyncMock()
        assert await OwnerProgramCache(redis).get_many([]) == {}
        redis.mget.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_redis_down_is_a_miss(self) -> None:
        redis = MagicMock()
        redis.mget = AsyncMock(side_effect=RedisConnectionError("refused"))
        assert await OwnerProgramCache(redis).get_many(["a"]) == {}

    @pytest.mark.asyncio
    async def test_set_many_uses_ttl(self) -> None:
        pipe = _FakePipeline()
        redis = MagicMock()
        redis.pipeline = MagicMock(return_value=pipe)

        await OwnerProgramCache(redis, ttl_sec=600).set_many({"a": "ProgA"})

        assert pipe.calls == [(KEY_PREFIX + "a", "ProgA", 600)]
        redis.pipeline.assert_called_once_with(transaction=False)

    @pytest.mark.asyncio
    async def test_set_many_failure_is_swallowed(self) -> None:
        redis = MagicMock()
        redis.pipeline = MagicMock(return_value=_FakePipeline(fail=True))
        await OwnerProgramCache(redis).set_many({"a": "ProgA"})

    @pytest.mark.asyncio
    async def test_set_many_empty(self) -> None:
        redis = MagicMock()
        redis.pipeline = MagicMock()
        await OwnerProgramCache(redis).set_many({})
        redis.pipeline.assert_not_called()
