"""
Optional Redis connection and a small distributed lock on top of it.

Redis is off unless ENABLE_REDIS is set. When it is off or unreachable the
lock helpers report success, so a single worker still serializes schedule
refreshes with its own in-process locks. With several workers, the shared lock
keeps two of them from refetching the same athlete's schedule at once.

Usage:
    from daps.services.redis_service import acquire_lock, release_lock

    acquired, token = await acquire_lock("schedule-refresh:42", ttl_seconds=60)
    if acquired:
        try:
            ...
        finally:
            await release_lock("schedule-refresh:42", token)
"""

import logging
import os
import uuid
from typing import Optional, Tuple

from dotenv import load_dotenv
from redis.asyncio import Redis

from daps.utils.constants import get_bool_env

load_dotenv()

logger = logging.getLogger(__name__)

ENABLE_REDIS = get_bool_env("ENABLE_REDIS", default=False)
# REDIS_URL wins over the individual host settings when both are present
REDIS_URL = os.getenv("REDIS_URL")
REDIS_HOST = os.getenv("REDIS_HOST", "localhost")
REDIS_PORT = int(os.getenv("REDIS_PORT", "6379"))
REDIS_DB = int(os.getenv("REDIS_DB", "0"))
REDIS_PASSWORD = os.getenv("REDIS_PASSWORD") or None

CONNECT_TIMEOUT_SECONDS = 2
COMMAND_TIMEOUT_SECONDS = 5

# Compare-and-delete: never remove a lock another worker re-took after expiry
_RELEASE_SCRIPT = """
if redis.call("get", KEYS[1]) == ARGV[1] then
    return redis.call("del", KEYS[1])
end
return 0
"""

_client: Optional[Redis] = None


def _describe_target() -> str:
    if REDIS_URL:
        return REDIS_URL.rsplit("@", 1)[-1]
    return f"{REDIS_HOST}:{REDIS_PORT}/{REDIS_DB}"


def _build_client() -> Redis:
    options = dict(
        decode_responses=True,
        socket_connect_timeout=CONNECT_TIMEOUT_SECONDS,
        socket_timeout=COMMAND_TIMEOUT_SECONDS,
        retry_on_timeout=True,
    )
    if REDIS_URL:
        return Redis.from_url(REDIS_URL, **options)
    return Redis(host=REDIS_HOST, port=REDIS_PORT, db=REDIS_DB, password=REDIS_PASSWORD, **options)


async def get_redis_client() -> Optional[Redis]:
    """
    Return a live client, or None when Redis is disabled or down.

    The cached client is pinged on every call and rebuilt once if the ping fails.
    """
    global _client

    if not ENABLE_REDIS:
        return None

    if _client is not None:
        try:
            await _client.ping()
            return _client
        except Exception as e:
            logger.warning(f"Redis connection lost, reconnecting: {e}")
            await close_redis_connection()

    client = _build_client()
    try:
        await client.ping()
    except Exception as e:
        logger.warning(f"Redis unavailable at {_describe_target()}: {e}")
        await client.aclose()
        return None

    logger.info(f"Connected to Redis at {_describe_target()}")
    _client = client
    return _client


async def close_redis_connection() -> None:
    """Drop the cached client. Called from the FastAPI lifespan on shutdown."""
    global _client

    client, _client = _client, None
    if client is None:
        return
    try:
        await client.aclose()
        logger.info("Closed Redis connection")
    except Exception as e:
        logger.warning(f"Error closing Redis connection: {e}")


async def acquire_lock(key: str, ttl_seconds: int) -> Tuple[bool, Optional[str]]:
    """
    Try to take a short-lived distributed lock (SET NX EX).

    Args:
        key: Lock key
        ttl_seconds: Lock expiry, so a crashed holder cannot wedge the key

    Returns:
        (acquired, token). When Redis is disabled or unreachable the lock is
        reported as acquired with a None token; in-process locking still applies.
    """
    client = await get_redis_client()
    if client is None:
        return True, None

    token = uuid.uuid4().hex
    try:
        acquired = await client.set(key, token, nx=True, ex=ttl_seconds)
    except Exception as e:
        logger.warning(f"Redis lock error for key {key}, continuing without it: {e}")
        return True, None

    if not acquired:
        logger.info(f"Redis lock {key} is held by another worker")
        return False, None
    return True, token


async def release_lock(key: str, token: Optional[str]) -> bool:
    """
    Release a lock taken with acquire_lock.

    Returns:
        True if the key was deleted
    """
    if token is None:
        return False
    client = await get_redis_client()
    if client is None:
        return False
    try:
        return bool(await client.eval(_RELEASE_SCRIPT, 1, key, token))
    except Exception as e:
        logger.warning(f"Redis unlock error for key {key}: {e}")
        return False
