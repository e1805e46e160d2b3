"""
Redis Connection Management

Redis connection singleton with retries and timeouts. Callers get None
when Redis is unreachable and decide how to degrade.
"""

import logging
from typing import Optional

import redis.asyncio as redis
from redis.asyncio import Redis
from redis.asyncio.retry import Retry
from redis.backoff import ExponentialBackoff
from redis.exceptions import ConnectionError, TimeoutError, RedisError

from app.config import settings

# Logger
logger = logging.getLogger(__name__)

# App prefix for namespacing (allows multiple apps/versions on same Redis)
APP_PREFIX = "scheduler:v1:"


class RedisClient:
    """
    Manages Redis connection as a singleton.

    Features:
    - Connection pooling
    - Automatic retries
    - Timeouts
    - Graceful failure handling
    """

    _client: Optional[Redis] = None
    _connected: bool = False

    @classmethod
    async def get_client(cls) -> Optional[Redis]:
        """
        Get or create Redis client.

        Returns:
            Redis client or None if connection fails
        """
        if cls._client is not None and cls._connected:
            return cls._client

        try:
            # Retry configuration: 3 retries with exponential backoff
            retry = Retry(ExponentialBackoff(), retries=3)

            cls._client = redis.from_url(
                settings.redis_url,
                encoding="utf-8",
                decode_responses=True,
                socket_connect_timeout=5.0,
                socket_timeout=5.0,
                retry_on_timeout=True,
                retry=retry,
            )

            # Test connection
            await cls._client.ping()
            cls._connected = True
            logger.info("Redis connection established successfully")
            return cls._client

        except (ConnectionError, TimeoutError, RedisError) as e:
            logger.error(f"Failed to connect to Redis: {e}")
            cls._connected = False
            cls._client = None
            return None

    @classmethod
    async def close(cls) -> None:
        """Close Redis connection."""
        if cls._client is not None:
            try:
                await cls._client.aclose()
                logger.info("Redis connection closed")
            except RedisError as e:
                logger.error(f"Error closing Redis connection: {e}")
            finally:
                cls._client = None
                cls._connected = False

    @classmethod
    def is_connected(cls) -> bool:
        """Check if Redis is connected."""
        return cls._connected


async def get_redis() -> Optional[Redis]:
    """
    Get the shared Redis client.

    Returns None if Redis is unavailable.
    """
    return await RedisClient.get_client()


async def check_redis_health() -> bool:
    """
    Check Redis connectivity for health checks.

    Returns:
        True if Redis is accessible and responding, False otherwise
    """
    try:
        client = await get_redis()
        if client is None:
            return False

        await client.ping()
        return True

    except RedisError as e:
        logger.error(f"Redis health check failed: {e}")
        return False
