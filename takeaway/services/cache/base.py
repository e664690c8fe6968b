"""
Cache Service Abstract Base Class

Defines the interface contract for all cache backends.
Both MockCacheService and RedisCacheService implement these methods,
so the menu services behave identically regardless of which one is active.

Design Pattern: Strategy Pattern
    - In-memory cache for development and tests
    - Redis for staging and production
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Optional


@dataclass
class InvalidationResult:
    """
    Outcome of a pattern invalidation.

    Attributes:
        pattern: Glob pattern that was invalidated (e.g. "dish_*")
        deleted: Number of keys removed
        response_time_ms: Time taken by the backend
    """
    pattern: str
    deleted: int = 0
    response_time_ms: float = 0.0


class BaseCacheService(ABC):
    """
    Abstract base class for cache services.

    Values are JSON-compatible structures (dicts, lists, strings, numbers).
    Implementations are responsible for serialisation.

    Example:
        >>> cache = get_cache_service()
        >>> await cache.set("dish_1_1", [{"id": 3, "name": "Tofu"}], ttl_seconds=60)
        >>> await cache.get("dish_1_1")
        [{'id': 3, 'name': 'Tofu'}]
        >>> (await cache.delete_pattern("dish_*")).deleted
        1
    """

    @property
    @abstractmethod
    def provider_name(self) -> str:
        """
        Return the name of the cache backend.

        Returns:
            str: Provider name (e.g., "memory", "redis")
        """
        pass

    @abstractmethod
    async def get(self, key: str) -> Optional[Any]:
        """
        Fetch a cached value.

        Args:
            key: Cache key

        Returns:
            The decoded value, or None on a miss or an expired entry
        """
        pass

    @abstractmethod
    async def set(self, key: str, value: Any, ttl_seconds: int) -> None:
        """
        Store a value with an expiry.

        Args:
            key: Cache key
            value: JSON-compatible value
            ttl_seconds: Lifetime of the entry
        """
        pass

    @abstractmethod
    async def delete_pattern(self, pattern: str) -> InvalidationResult:
        """
        Delete every key matching a glob pattern.

        Args:
            pattern: Glob pattern, e.g. "dish_*"

        Returns:
            InvalidationResult: How many keys were removed
        """
        pass

    @abstractmethod
    async def health_check(self) -> bool:
        """
        Verify the backend is reachable.

        Returns:
            bool: True if the cache can serve requests
        """
        pass

    async def close(self) -> None:
        """Release backend resources. No-op by default."""
        return None
