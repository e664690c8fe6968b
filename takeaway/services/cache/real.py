"""
Redis Cache Service

Production implementation backed by Redis (``redis.asyncio``).

Keys are plain strings such as ``dish_3_1``; values are JSON documents
written with ``SET key value EX ttl``. Pattern invalidation walks the
keyspace with ``SCAN`` rather than ``KEYS`` so it never blocks the server.
"""

import json
import logging
from datetime import datetime
from typing import Any, Optional

import redis.asyncio as aioredis
from redis.exceptions import RedisError

from takeaway.core.config import get_settings
from takeaway.services.cache.base import BaseCacheService, InvalidationResult

logger = logging.getLogger(__name__)

# Keys removed per DEL round-trip during invalidation
DELETE_BATCH_SIZE = 500


class RedisCacheService(BaseCacheService):
    """Production cache service using Redis."""

    def __init__(self, client: Optional[aioredis.Redis] = None):
        """
        Initialize the Redis cache service.

        Args:
            client: Redis client instance. If None, one is created from REDIS_URL.
        """
        settings = get_settings()
        self._client = client or aioredis.from_url(
            settings.redis_url,
            decode_responses=True,
            socket_timeout=2,
        )
        logger.info("RedisCacheService initialized")

    @property
    def provider_name(self) -> str:
        return "redis"

    @property
    def client(self) -> aioredis.Redis:
        """Get the Redis client."""
        return self._client

    async def get(self, key: str) -> Optional[Any]:
        payload = await self._client.get(key)
        if payload is None:
            return None
        return json.loads(payload)

    async def set(self, key: str, value: Any, ttl_seconds: int) -> None:
        await self._client.set(key, json.dumps(value), ex=ttl_seconds)

    async def delete_pattern(self, pattern: str) -> InvalidationResult:
        start_time = datetime.now()
        deleted = 0
        batch: list[str] = []

        async for key in self._client.scan_iter(match=pattern, count=DELETE_BATCH_SIZE):
            batch.append(key)
            if len(batch) >= DELETE_BATCH_SIZE:
                deleted += await self._client.delete(*batch)
                batch = []

        if batch:
            deleted += await self._client.delete(*batch)

        elapsed = (datetime.now() - start_time).total_seconds() * 1000
        return InvalidationResult(pattern=pattern, deleted=deleted, response_time_ms=elapsed)

    async def health_check(self) -> bool:
        """Check Redis connectivity."""
        try:
            return bool(await self._client.ping())
        except RedisError as e:
            logger.error(f"Redis health check failed: {e}")
            return False

    async def close(self) -> None:
        await self._client.aclose()
