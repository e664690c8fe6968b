"""
FastAPI dependencies: services bound to the request's database session,
the shared cache backend, and the comma-separated ``ids`` parameter.
"""

from fastapi import Depends, HTTPException, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from takeaway.database import get_db
from takeaway.services.cache import BaseCacheService, get_cache_service
from takeaway.services.category_service import CategoryService
from takeaway.services.dish_service import DishService
from takeaway.services.setmeal_service import SetmealService


def get_cache() -> BaseCacheService:
    """Get the process-wide cache service."""
    return get_cache_service()


def get_category_service(
    db: AsyncSession = Depends(get_db),
    cache: BaseCacheService = Depends(get_cache),
) -> CategoryService:
    return CategoryService(db, cache)


def get_dish_service(
    db: AsyncSession = Depends(get_db),
    cache: BaseCacheService = Depends(get_cache),
) -> DishService:
    return DishService(db, cache)


def get_setmeal_service(
    db: AsyncSession = Depends(get_db),
    cache: BaseCacheService = Depends(get_cache),
) -> SetmealService:
    return SetmealService(db, cache)


def parse_ids(ids: str) -> list[int]:
    """
    Parse a comma-separated id list such as ``"3,5,8"``.

    Raises:
        ValueError: An element (possibly empty) is not a positive integer
    """
    parsed = []
    for part in ids.split(","):
        part = part.strip()
        if not part.isdigit() or int(part) < 1:
            raise ValueError(f"Invalid id: {part!r}")
        parsed.append(int(part))
    return list(dict.fromkeys(parsed))


def ids_query(
    ids: str = Query(..., min_length=1, examples=["1,2,3"], description="Comma-separated ids"),
) -> list[int]:
    """Query parameter ``ids`` as a list of unique integers."""
    try:
        return parse_ids(ids)
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
