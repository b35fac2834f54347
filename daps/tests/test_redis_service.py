"""
Tests for the optional Redis client and the refresh lock helpers.
"""
from unittest.mock import AsyncMock

import pytest

from daps.services import redis_service


@pytest.fixture
def fake_redis(monkeypatch):
    client = AsyncMock()
    client.ping = AsyncMock(return_value=True)
    client.set = AsyncMock(return_value=True)
    client.eval = AsyncMock(return_value=1)
    client.aclose = AsyncMock()
    monkeypatch.setattr(redis_service, "ENABLE_REDIS", True)
    monkeypatch.setattr(redis_service, "_client", None)
    monkeypatch.setattr(redis_service, "_build_client", lambda: client)
    return client


class TestRedisDisabled:
    @pytest.mark.asyncio
    async def test_no_client(self, monkeypatch):
        monkeypatch.setattr(redis_service, "ENABLE_REDIS", False)
        assert await redis_service.get_redis_client() is None

    @pytest.mark.asyncio
    async def test_lock_reports_acquired_without_token(self, monkeypatch):
        monkeypatch.setattr(redis_service, "ENABLE_REDIS", False)
        assert await redis_service.acquire_lock("schedule-refresh:1", 60) == (True, None)
        assert await redis_service.release_lock("schedule-refresh:1", None) is False


@pytest.mark.asyncio
async def test_acquire_sets_key_with_expiry(fake_redis):
    acquired, token = await redis_service.acquire_lock("schedule-refresh:7", 60)

    assert acquired is True
    assert token
    fake_redis.set.assert_awaited_once_with("schedule-refresh:7", token, nx=True, ex=60)


@pytest.mark.asyncio
async def test_acquire_when_held_elsewhere(fake_redis):
    fake_redis.set.return_value = None

    assert await redis_service.acquire_lock("schedule-refresh:7", 60) == (False, None)


@pytest.mark.asyncio
async def test_acquire_survives_command_error(fake_redis):
    fake_redis.set.side_effect = ConnectionError("reset by peer")

    assert await redis_service.acquire_lock("schedule-refresh:7", 60) == (True, None)


@pytest.mark.asyncio
async def test_release_compares_token(fake_redis):
    released = await redis_service.release_lock("schedule-refresh:7", "abc")

    assert released is True
    args = fake_redis.eval.await_args.args
    assert args[1:] == (1, "schedule-refresh:7", "abc")


@pytest.mark.asyncio
async def test_unreachable_server_falls_back(fake_redis):
    fake_redis.ping.side_effect = ConnectionError("refused")

    assert await redis_service.get_redis_client() is None
    fake_redis.aclose.assert_awaited_once()
    assert await redis_service.acquire_lock("schedule-refresh:7", 60) == (True, None)


@pytest.mark.asyncio
async def test_client_is_cached_and_closed(fake_redis):
    first = await redis_service.get_redis_client()
    second = await redis_service.get_redis_client()
    assert first is second is fake_redis

    await redis_service.close_redis_connection()

    fake_redis.aclose.assert_awaited_once()
    assert redis_service._client is None
