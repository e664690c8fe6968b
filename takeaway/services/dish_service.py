"""
Dish Service

Dish CRUD with flavors. A dish and its flavors are written in one
transaction; every successful write drops all cached dish lists
(``dish_*``), which are filled again lazily by ``list_with_flavors``.
"""

import logging
from collections import defaultdict
from typing import Optional

from sqlalchemy import delete, func, select, update

from takeaway.core.exceptions import BusinessError, NotFoundError
from takeaway.database import atomic
from takeaway.models import Category, Dish, DishFlavor, SaleStatus
from takeaway.schemas import (
    DishCreate,
    DishResponse,
    DishUpdate,
    FlavorCreate,
    FlavorResponse,
)
from takeaway.services.base import MenuService

logger = logging.getLogger(__name__)


class DishService(MenuService):
    """Business logic for dishes and their flavors."""

    # =========================================================================
    # HELPERS
    # =========================================================================

    @property
    def _prefix(self) -> str:
        return self.settings.cache_key_prefix_dish

    async def _ensure_category(self, category_id: int) -> None:
        if await self.db.get(Category, category_id) is None:
            raise BusinessError(f"Category #{category_id} does not exist")

    async def _get_live_dish(self, dish_id: int) -> Dish:
        result = await self.db.execute(
            select(Dish).where(Dish.id == dish_id, Dish.is_deleted.is_(False))
        )
        dish = result.scalar_one_or_none()
        if dish is None:
            raise NotFoundError("Dish", dish_id)
        return dish

    async def _load_flavors(self, dish_ids: list[int]) -> dict[int, list[DishFlavor]]:
        """Flavors of several dishes in one query, grouped by dish id."""
        grouped: dict[int, list[DishFlavor]] = defaultdict(list)
        if not dish_ids:
            return grouped

        result = await self.db.execute(
            select(DishFlavor)
            .where(DishFlavor.dish_id.in_(dish_ids))
            .order_by(DishFlavor.id.asc())
        )
        for flavor in result.scalars().all():
            grouped[flavor.dish_id].append(flavor)
        return grouped

    async def _to_responses(self, rows: list[tuple[Dish, Optional[str]]]) -> list[DishResponse]:
        flavors = await self._load_flavors([dish.id for dish, _ in rows])
        return [
            DishResponse.model_validate(dish).model_copy(update={
                "category_name": category_name,
                "flavors": [FlavorResponse.model_validate(f) for f in flavors.get(dish.id, [])],
            })
            for dish, category_name in rows
        ]

    @staticmethod
    def _stamp_flavors(dish_id: int, flavors: list[FlavorCreate]) -> list[DishFlavor]:
        """Build flavor rows owned by the given dish."""
        return [DishFlavor(dish_id=dish_id, name=f.name, value=f.value) for f in flavors]

    # =========================================================================
    # WRITES
    # =========================================================================

    async def save_with_flavors(self, data: DishCreate) -> DishResponse:
        """
        Insert a dish and its flavors in one transaction.

        The dish is flushed first so its generated id can be stamped on
        every flavor before the flavors are inserted.
        """
        logger.info(f"Adding dish: {data.name} ({len(data.flavors)} flavors)")
        await self._ensure_category(data.category_id)

        dish = Dish(
            name=data.name,
            category_id=data.category_id,
            price=data.price,
            code=data.code,
            image=data.image,
            description=data.description,
            status=int(data.status),
            sort=data.sort,
        )

        async with atomic(self.db):
            self.db.add(dish)
            await self.db.flush()
            self.db.add_all(self._stamp_flavors(dish.id, data.flavors))

        logger.info(f"Dish #{dish.id} added with {len(data.flavors)} flavors")
        await self._invalidate(self._prefix)
        return await self.get_by_id_with_flavors(dish.id)

    async def update_with_flavors(self, data: DishUpdate) -> DishResponse:
        """
        Update a dish and replace its flavors in one transaction.

        Raises:
            NotFoundError: The dish does not exist or was deleted
        """
        dish = await self._get_live_dish(data.id)
        if data.category_id != dish.category_id:
            await self._ensure_category(data.category_id)

        async with atomic(self.db):
            dish.name = data.name
            dish.category_id = data.category_id
            dish.price = data.price
            dish.code = data.code
            dish.image = data.image
            dish.description = data.description
            dish.status = int(data.status)
            dish.sort = data.sort

            await self.db.execute(delete(DishFlavor).where(DishFlavor.dish_id == dish.id))
            self.db.add_all(self._stamp_flavors(dish.id, data.flavors))

        logger.info(f"Dish #{dish.id} updated with {len(data.flavors)} flavors")
        await self._invalidate(self._prefix)
        return await self.get_by_id_with_flavors(dish.id)

    async def update_status(self, ids: list[int], status: int) -> int:
        """Put dishes on sale (1) or stop selling them (0). Returns rows changed."""
        async with atomic(self.db):
            result = await self.db.execute(
                update(Dish)
                .where(Dish.id.in_(ids), Dish.is_deleted.is_(False))
                .values(status=status)
            )

        logger.info(f"Dish status set to {status} for ids={ids} ({result.rowcount} rows)")
        await self._invalidate(self._prefix)
        return result.rowcount

    async def delete_by_ids(self, ids: list[int]) -> int:
        """
        Logically delete dishes: stop selling them and flag them deleted.
        Flavor rows are kept. Returns rows changed.
        """
        async with atomic(self.db):
            result = await self.db.execute(
                update(Dish)
                .where(Dish.id.in_(ids), Dish.is_deleted.is_(False))
                .values(status=SaleStatus.STOPPED.value, is_deleted=True)
            )

        logger.info(f"Dishes deleted: ids={ids} ({result.rowcount} rows)")
        await self._invalidate(self._prefix)
        return result.rowcount

    # =========================================================================
    # READS
    # =========================================================================

    async def get_by_id_with_flavors(self, dish_id: int) -> DishResponse:
        """A live dish with its flavors and category name."""
        result = await self.db.execute(
            select(Dish, Category.name)
            .outerjoin(Category, Category.id == Dish.category_id)
            .where(Dish.id == dish_id, Dish.is_deleted.is_(False))
            .execution_options(populate_existing=True)
        )
        row = result.first()
        if row is None:
            raise NotFoundError("Dish", dish_id)

        responses = await self._to_responses([tuple(row)])
        return responses[0]

    async def list_with_flavors(
        self,
        category_id: Optional[int] = None,
        status: int = SaleStatus.ON_SALE.value,
    ) -> list[DishResponse]:
        """
        Dishes of a category (or of every category) with a given status.

        Read-through cached under ``dish_{category_id}_{status}`` for
        ``CACHE_TTL_SECONDS``.
        """
        key = self._list_key(self._prefix, category_id, status)

        cached = await self._cache_get(key)
        if cached is not None:
            return [DishResponse.model_validate(item) for item in cached]

        query = (
            select(Dish, Category.name)
            .outerjoin(Category, Category.id == Dish.category_id)
            .where(Dish.status == status, Dish.is_deleted.is_(False))
            .order_by(Dish.sort.asc(), Dish.updated_at.desc())
        )
        if category_id is not None:
            query = query.where(Dish.category_id == category_id)

        result = await self.db.execute(query)
        dishes = await self._to_responses([tuple(row) for row in result.all()])

        await self._cache_set(key, [dish.model_dump(mode="json") for dish in dishes])
        return dishes

    async def page(
        self,
        page: int,
        page_size: int,
        name: Optional[str] = None,
    ) -> tuple[int, list[DishResponse]]:
        """Return (total, records) for one page, most recently changed first."""
        filters = [Dish.is_deleted.is_(False)]
        if name:
            filters.append(Dish.name.contains(name))

        total = await self.db.scalar(select(func.count(Dish.id)).where(*filters)) or 0

        result = await self.db.execute(
            select(Dish, Category.name)
            .outerjoin(Category, Category.id == Dish.category_id)
            .where(*filters)
            .order_by(Dish.updated_at.desc(), Dish.id.desc())
            .offset((page - 1) * page_size)
            .limit(page_size)
        )
        records = await self._to_responses([tuple(row) for row in result.all()])
        return total, records

    async def menu_snapshot(self) -> list[dict]:
        """Flat rows describing every on-sale dish, for the spreadsheet export."""
        dishes = await self.list_with_flavors(category_id=None, status=SaleStatus.ON_SALE.value)
        return [
            {
                "dish_id": dish.id,
                "name": dish.name,
                "category": dish.category_name,
                "price": dish.price,
                "status": dish.status,
                "flavors": "; ".join(
                    f"{flavor.name}: {flavor.value}" for flavor in dish.flavors
                ),
                "description": dish.description,
            }
            for dish in dishes
        ]
