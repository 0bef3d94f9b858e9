"""Process-wide Redis client for the settings cache.

``REDIS_URL`` set to an empty string, "none", "disabled", "false" or "0"
switches caching off; callers then receive a ``_NullRedis`` and every read is
a miss.
"""

import logging
import os
from typing import Optional, Union

import redis

from fulfillment.core.config import settings

logger = logging.getLogger(__name__)

_DISABLED_URLS = {"", "none", "disabled", "false", "0"}


class _NullRedis:
    """Cache that never holds anything."""

    def get(self, key: str) -> None:
        return None

    def setex(self, key: str, expire: int, value: str) -> None:
        return None

    def delete(self, *keys: str) -> int:
        return 0

    def close(self) -> None:
        return None


RedisLike = Union[redis.Redis, _NullRedis]

_redis_client: Optional[RedisLike] = None


def _timeout(env_name: str) -> float:
    return float(os.getenv(env_name, "0.5"))


def _connect(url: str) -> RedisLike:
    # Short socket timeouts keep a slow Redis from stalling availability checks
    try:
        return redis.from_url(
            url,
            decode_responses=True,
            socket_connect_timeout=_timeout("REDIS_CONNECT_TIMEOUT"),
            socket_timeout=_timeout("REDIS_SOCKET_TIMEOUT"),
        )
    except (redis.exceptions.RedisError, ValueError) as exc:
        logger.warning("Redis client creation failed, caching disabled: %s", exc)
        return _NullRedis()


def get_redis_client() -> RedisLike:
    global _redis_client
    if _redis_client is None:
        url = (settings.REDIS_URL or "").strip()
        if url.lower() in _DISABLED_URLS:
            logger.info("Redis disabled; system settings are read from the database")
            _redis_client = _NullRedis()
        else:
            _redis_client = _connect(url)
    return _redis_client


def close_redis_client() -> None:
    """Close and forget the global client; the next call reconnects."""
    global _redis_client
    client, _redis_client = _redis_client, None
    if client is None:
        return
    try:
        client.close()
    except redis.exceptions.RedisError as exc:
        logger.warning("Error closing Redis client: %s", exc)
