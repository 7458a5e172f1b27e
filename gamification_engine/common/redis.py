"""
Redis Client Utility Module

This module provides a singleton asyncio Redis client for the Redis-backed
user state store.
"""

import logging
from typing import Optional, Dict, Any

from redis.asyncio import Redis as AsyncRedis
from redis.exceptions import RedisError

from gamification_engine.common.config import RedisConfig, get_config

# Setup logging
logger = logging.getLogger(__name__)

# Singleton Redis client instance
_redis_client: Optional[AsyncRedis] = None


def get_redis_settings(redis_config: Optional[RedisConfig] = None) -> Dict[str, Any]:
    """
    Get Redis connection settings from the application configuration.

    Returns:
        Dictionary with Redis connection settings
    """
    redis_config = redis_config or get_config().redis
    return {
        "host": redis_config.host,
        "port": redis_config.port,
        "db": redis_config.db,
        "password": redis_config.password,
        "ssl": redis_config.use_ssl,
        "decode_responses": False  # Let client code handle decoding as needed
    }


def get_redis_client(redis_config: Optional[RedisConfig] = None) -> AsyncRedis:
    """
    Get the Redis client instance, creating it on first use.

    The connection itself is opened lazily by the first command.

    Returns:
        Redis client instance
    """
    global _redis_client

    if _redis_client is None:
        settings = get_redis_settings(redis_config)
        _redis_client = AsyncRedis(**settings)
        logger.info(f"Created Redis client for {settings['host']}:{settings['port']}")

    return _redis_client


async def reset_redis_client() -> None:
    """
    Close and drop the Redis client.

    This forces a new connection on the next call to get_redis_client().
    """
    global _redis_client

    if _redis_client is not None:
        try:
            await _redis_client.aclose()
        except RedisError as e:
            logger.error(f"Error closing Redis connection: {e}")

        _redis_client = None
        logger.info("Redis client reset")
