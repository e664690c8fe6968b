"""
Category Service

Category CRUD. A category can only be removed once no live dish or
set meal points at it.
"""

import logging
from typing import Optional

from sqlalchemy import func, select

from takeaway.core.exceptions import BusinessError, NotFoundError
from takeaway.database import atomic
from takeaway.models import Category, Dish, Setmeal
from takeaway.schemas import CategoryCreate, CategoryUpdate
from takeaway.services.base import MenuService

logger = logging.getLogger(__name__)


class CategoryService(MenuService):
    """Business logic for menu categories."""

    async def save(self, data: CategoryCreate) -> Category:
        """Insert a new category."""
        logger.info(f"Adding category: {data.name} (type={int(data.type)}, sort={data.sort})")

        category = Category(type=int(data.type), name=data.name, sort=data.sort)
        async with atomic(self.db):
            self.db.add(category)

        logger.info(f"Category #{category.id} added")
        return category

    async def page(
        self,
        page: int,
        page_size: int,
        name: Optional[str] = None,
    ) -> tuple[int, list[Category]]:
        """Return (total, records) for one page ordered by sort."""
        filters = []
        if name:
            filters.append(Category.name.contains(name))

        total_result = await self.db.execute(
            select(func.count(Category.id)).where(*filters)
        )
        total = total_result.scalar() or 0

        result = await self.db.execute(
            select(Category)
            .where(*filters)
            .order_by(Category.sort.asc(), Category.updated_at.desc())
            .offset((page - 1) * page_size)
            .limit(page_size)
        )
        return total, list(result.scalars().all())

    async def get(self, category_id: int) -> Category:
        category = await self.db.get(Category, category_id)
        if category is None:
            raise NotFoundError("Category", category_id)
        return category

    async def remove(self, category_id: int) -> None:
        """
        Delete a category.

        Raises:
            NotFoundError: No such category
            BusinessError: Live dishes or set meals still use it
        """
        category = await self.get(category_id)

        dish_count = await self.db.scalar(
            select(func.count(Dish.id)).where(
                Dish.category_id == category_id,
                Dish.is_deleted.is_(False),
            )
        )
        if dish_count:
            raise BusinessError(
                "Category is linked to dishes and cannot be deleted",
                detail=f"{dish_count} dish(es) in category #{category_id}",
            )

        setmeal_count = await self.db.scalar(
            select(func.count(Setmeal.id)).where(
                Setmeal.category_id == category_id,
                Setmeal.is_deleted.is_(False),
            )
        )
        if setmeal_count:
            raise BusinessError(
                "Category is linked to set meals and cannot be deleted",
                detail=f"{setmeal_count} set meal(s) in category #{category_id}",
            )

        async with atomic(self.db):
            await self.db.delete(category)

        logger.info(f"Category #{category_id} deleted")
        await self._invalidate(
            self.settings.cache_key_prefix_dish,
            self.settings.cache_key_prefix_setmeal,
        )

    async def update(self, data: CategoryUpdate) -> Category:
        """Apply the submitted fields to an existing category."""
        category = await self.get(data.id)

        changes = data.model_dump(exclude={"id"}, exclude_none=True)
        logger.info(f"Updating category #{data.id}: {changes}")

        async with atomic(self.db):
            for field, value in changes.items():
                setattr(category, field, int(value) if field == "type" else value)

        # Cached dish and set meal lists carry the category name
        await self._invalidate(
            self.settings.cache_key_prefix_dish,
            self.settings.cache_key_prefix_setmeal,
        )
        return category

    async def list_by_type(self, category_type: Optional[int] = None) -> list[Category]:
        """All categories, optionally of one type, in display order."""
        query = select(Category).order_by(Category.sort.asc(), Category.updated_at.desc())
        if category_type is not None:
            query = query.where(Category.type == category_type)

        result = await self.db.execute(query)
        return list(result.scalars().all())
