"""
Mock Cache Service Implementation

Keeps cache entries in process memory, without a Redis server.
Used in development mode (ENV_MODE=development) and by the test-suite to:
    - Run the API locally with nothing but a database
    - Observe hits, misses and invalidations deterministically

Behavior:
    - Values are stored JSON-encoded, so callers never share mutable state
      with the cache (same as a round-trip through Redis)
    - Entries expire after their TTL, checked lazily on read
    - Pattern deletion follows Redis glob semantics via fnmatch
"""

import fnmatch
import json
import logging
import time
from datetime import datetime
from typing import Any, Optional

from takeaway.services.cache.base import BaseCacheService, InvalidationResult

logger = logging.getLogger(__name__)


class MockCacheService(BaseCacheService):
    """
    In-memory implementation of the cache service.

    Attributes:
        hits: Number of successful reads
        misses: Number of reads that found nothing (or an expired entry)

    Example:
        >>> cache = MockCacheService()
        >>> await cache.set("dish_all_1", [], ttl_seconds=10)
        >>> await cache.get("dish_all_1")
        []
    """

    def __init__(self, clock=time.monotonic):
        """
        Initialize the mock cache.

        Args:
            clock: Monotonic time source, replaceable in tests
        """
        self._clock = clock
        self._store: dict[str, tuple[float, str]] = {}
        self.hits = 0
        self.misses = 0

        logger.info("MockCacheService initialized")

    @property
    def provider_name(self) -> str:
        """Return the provider name."""
        return "memory"

    async def get(self, key: str) -> Optional[Any]:
        entry = self._store.get(key)
        if entry is None:
            self.misses += 1
            return None

        expires_at, payload = entry
        if expires_at <= self._clock():
            del self._store[key]
            self.misses += 1
            return None

        self.hits += 1
        return json.loads(payload)

    async def set(self, key: str, value: Any, ttl_seconds: int) -> None:
        self._store[key] = (self._clock() + ttl_seconds, json.dumps(value))

    async def delete_pattern(self, pattern: str) -> InvalidationResult:
        start_time = datetime.now()

        matched = [key for key in self._store if fnmatch.fnmatchcase(key, pattern)]
        for key in matched:
            del self._store[key]

        elapsed = (datetime.now() - start_time).total_seconds() * 1000
        return InvalidationResult(
            pattern=pattern,
            deleted=len(matched),
            response_time_ms=elapsed,
        )

    async def health_check(self) -> bool:
        """Memory is always available."""
        return True

    def keys(self) -> list[str]:
        """Return the live keys (expired entries excluded)."""
        now = self._clock()
        return [key for key, (expires_at, _) in self._store.items() if expires_at > now]

    def clear(self) -> None:
        """Drop every entry and reset counters."""
        self._store.clear()
        self.hits = 0
        self.misses = 0
