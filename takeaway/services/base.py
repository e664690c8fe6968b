"""
Shared plumbing for the menu services: the request's database session,
the cache backend, and the read-through / invalidate helpers around it.
"""

import logging
from typing import Any, Optional

from sqlalchemy.ext.asyncio import AsyncSession

from takeaway.core.config import get_settings
from takeaway.services.cache import BaseCacheService

logger = logging.getLogger(__name__)


class MenuService:
    """Base class for services that cache list queries."""

    def __init__(self, db: AsyncSession, cache: BaseCacheService):
        self.db = db
        self.cache = cache
        self.settings = get_settings()

    async def _cache_get(self, key: str) -> Optional[Any]:
        """Read a cached list; a broken cache counts as a miss."""
        try:
            value = await self.cache.get(key)
        except Exception as e:
            logger.warning(f"Cache read failed for {key}, falling back to database: {e}")
            return None

        if value is None:
            logger.debug(f"Cache miss: {key}")
        else:
            logger.debug(f"Cache hit: {key}")
        return value

    async def _cache_set(self, key: str, value: Any) -> None:
        try:
            await self.cache.set(key, value, ttl_seconds=self.settings.cache_ttl_seconds)
        except Exception as e:
            logger.warning(f"Cache write failed for {key}: {e}")

    async def _invalidate(self, *prefixes: str) -> int:
        """
        Drop every cached list under the given key prefixes.

        Called after a successful commit. Errors propagate: serving a stale
        list after a write is worse than failing the request.
        """
        deleted = 0
        for prefix in prefixes:
            result = await self.cache.delete_pattern(f"{prefix}*")
            logger.info(
                f"Cache invalidated: {result.pattern} "
                f"({result.deleted} keys, {result.response_time_ms:.1f}ms)"
            )
            deleted += result.deleted
        return deleted

    @staticmethod
    def _list_key(prefix: str, category_id: Optional[int], status: int) -> str:
        scope = "all" if category_id is None else category_id
        return f"{prefix}{scope}_{status}"
