"""
Cache Service Factory

Provides a single entry point for obtaining a cache service instance.
The factory pattern allows the menu services to remain agnostic
about which backend is being used.

Usage:
    from takeaway.services.cache import get_cache_service

    # Returns MockCacheService or RedisCacheService based on ENV_MODE
    cache = get_cache_service()

    await cache.delete_pattern("dish_*")

Environment Switching:
    - ENV_MODE=development → MockCacheService (process memory)
    - ENV_MODE=staging → RedisCacheService
    - ENV_MODE=production → RedisCacheService
"""

import logging
from functools import lru_cache

from takeaway.core.config import get_settings
from takeaway.services.cache.base import BaseCacheService, InvalidationResult
from takeaway.services.cache.mock import MockCacheService
from takeaway.services.cache.real import RedisCacheService

logger = logging.getLogger(__name__)


@lru_cache()
def get_cache_service() -> BaseCacheService:
    """
    Get the configured cache service instance.

    The instance is cached (singleton pattern) so every request shares
    the same in-memory store or Redis connection pool.

    Returns:
        BaseCacheService: Configured cache service instance
    """
    settings = get_settings()

    if settings.is_development:
        logger.info("Cache Service: Using MockCacheService (development mode)")
        return MockCacheService()
    else:
        logger.info(
            f"Cache Service: Using RedisCacheService "
            f"({settings.env_mode.value} mode)"
        )
        return RedisCacheService()


def reset_cache_service() -> None:
    """
    Clear the cached cache service instance.

    Useful for testing or when configuration changes at runtime.
    The next call to get_cache_service() will create a new instance.
    """
    get_cache_service.cache_clear()
    logger.debug("Cache service instance cleared")


__all__ = [
    "get_cache_service",
    "reset_cache_service",
    "BaseCacheService",
    "InvalidationResult",
    "MockCacheService",
    "RedisCacheService",
]
