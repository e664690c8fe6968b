"""
Set Meal Service

Set meal CRUD with member dishes, following the same parent/child
transaction and ``setmeal_*`` cache invalidation rules as dishes.
"""

import logging
from collections import defaultdict
from typing import Optional

from sqlalchemy import delete, func, select, update

from takeaway.core.exceptions import BusinessError, NotFoundError
from takeaway.database import atomic
from takeaway.models import Category, Dish, SaleStatus, Setmeal, SetmealDish
from takeaway.schemas import (
    SetmealCreate,
    SetmealDishCreate,
    SetmealDishResponse,
    SetmealResponse,
    SetmealUpdate,
)
from takeaway.services.base import MenuService

logger = logging.getLogger(__name__)


class SetmealService(MenuService):
    """Business logic for set meals and the dishes they bundle."""

    @property
    def _prefix(self) -> str:
        return self.settings.cache_key_prefix_setmeal

    async def _ensure_category(self, category_id: int) -> None:
        if await self.db.get(Category, category_id) is None:
            raise BusinessError(f"Category #{category_id} does not exist")

    async def _get_live_setmeal(self, setmeal_id: int) -> Setmeal:
        result = await self.db.execute(
            select(Setmeal).where(Setmeal.id == setmeal_id, Setmeal.is_deleted.is_(False))
        )
        setmeal = result.scalar_one_or_none()
        if setmeal is None:
            raise NotFoundError("Set meal", setmeal_id)
        return setmeal

    async def _build_members(
        self,
        setmeal_id: int,
        members: list[SetmealDishCreate],
    ) -> list[SetmealDish]:
        """
        Member rows for a set meal. Name and price default to the dish's
        current values when the request leaves them out.
        """
        dish_ids = {m.dish_id for m in members}
        result = await self.db.execute(
            select(Dish).where(Dish.id.in_(dish_ids), Dish.is_deleted.is_(False))
        )
        dishes = {dish.id: dish for dish in result.scalars().all()}

        missing = sorted(dish_ids - dishes.keys())
        if missing:
            raise BusinessError(f"Dishes not found: {missing}")

        return [
            SetmealDish(
                setmeal_id=setmeal_id,
                dish_id=m.dish_id,
                name=m.name or dishes[m.dish_id].name,
                price=m.price if m.price is not None else dishes[m.dish_id].price,
                copies=m.copies,
                sort=m.sort,
            )
            for m in members
        ]

    async def _load_members(self, setmeal_ids: list[int]) -> dict[int, list[SetmealDish]]:
        grouped: dict[int, list[SetmealDish]] = defaultdict(list)
        if not setmeal_ids:
            return grouped

        result = await self.db.execute(
            select(SetmealDish)
            .where(SetmealDish.setmeal_id.in_(setmeal_ids))
            .order_by(SetmealDish.sort.asc(), SetmealDish.id.asc())
        )
        for member in result.scalars().all():
            grouped[member.setmeal_id].append(member)
        return grouped

    async def _to_responses(
        self,
        rows: list[tuple[Setmeal, Optional[str]]],
    ) -> list[SetmealResponse]:
        members = await self._load_members([setmeal.id for setmeal, _ in rows])
        return [
            SetmealResponse.model_validate(setmeal).model_copy(update={
                "category_name": category_name,
                "setmeal_dishes": [
                    SetmealDishResponse.model_validate(m) for m in members.get(setmeal.id, [])
                ],
            })
            for setmeal, category_name in rows
        ]

    # =========================================================================
    # WRITES
    # =========================================================================

    async def save_with_dishes(self, data: SetmealCreate) -> SetmealResponse:
        """Insert a set meal and its member dishes in one transaction."""
        logger.info(f"Adding set meal: {data.name} ({len(data.setmeal_dishes)} dishes)")
        await self._ensure_category(data.category_id)

        setmeal = Setmeal(
            name=data.name,
            category_id=data.category_id,
            price=data.price,
            status=int(data.status),
            code=data.code,
            description=data.description,
            image=data.image,
        )

        async with atomic(self.db):
            self.db.add(setmeal)
            await self.db.flush()
            self.db.add_all(await self._build_members(setmeal.id, data.setmeal_dishes))

        logger.info(f"Set meal #{setmeal.id} added")
        await self._invalidate(self._prefix)
        return await self.get_by_id_with_dishes(setmeal.id)

    async def update_with_dishes(self, data: SetmealUpdate) -> SetmealResponse:
        """Update a set meal and replace its member dishes in one transaction."""
        setmeal = await self._get_live_setmeal(data.id)
        if data.category_id != setmeal.category_id:
            await self._ensure_category(data.category_id)

        async with atomic(self.db):
            members = await self._build_members(setmeal.id, data.setmeal_dishes)

            setmeal.name = data.name
            setmeal.category_id = data.category_id
            setmeal.price = data.price
            setmeal.status = int(data.status)
            setmeal.code = data.code
            setmeal.description = data.description
            setmeal.image = data.image

            await self.db.execute(delete(SetmealDish).where(SetmealDish.setmeal_id == setmeal.id))
            self.db.add_all(members)

        logger.info(f"Set meal #{setmeal.id} updated with {len(data.setmeal_dishes)} dishes")
        await self._invalidate(self._prefix)
        return await self.get_by_id_with_dishes(setmeal.id)

    async def update_status(self, ids: list[int], status: int) -> int:
        async with atomic(self.db):
            result = await self.db.execute(
                update(Setmeal)
                .where(Setmeal.id.in_(ids), Setmeal.is_deleted.is_(False))
                .values(status=status)
            )

        logger.info(f"Set meal status set to {status} for ids={ids} ({result.rowcount} rows)")
        await self._invalidate(self._prefix)
        return result.rowcount

    async def remove_with_dishes(self, ids: list[int]) -> int:
        """
        Delete set meals that are no longer on sale.

        The set meal rows are flagged deleted and their member rows are
        removed, in one transaction.

        Raises:
            BusinessError: At least one of the set meals is still on sale
        """
        on_sale = await self.db.scalar(
            select(func.count(Setmeal.id)).where(
                Setmeal.id.in_(ids),
                Setmeal.is_deleted.is_(False),
                Setmeal.status == SaleStatus.ON_SALE.value,
            )
        )
        if on_sale:
            raise BusinessError(
                "Set meal is on sale and cannot be deleted",
                detail=f"{on_sale} of the selected set meals are on sale",
            )

        async with atomic(self.db):
            result = await self.db.execute(
                update(Setmeal)
                .where(Setmeal.id.in_(ids), Setmeal.is_deleted.is_(False))
                .values(is_deleted=True)
            )
            await self.db.execute(delete(SetmealDish).where(SetmealDish.setmeal_id.in_(ids)))

        logger.info(f"Set meals deleted: ids={ids} ({result.rowcount} rows)")
        await self._invalidate(self._prefix)
        return result.rowcount

    # =========================================================================
    # READS
    # =========================================================================

    async def get_by_id_with_dishes(self, setmeal_id: int) -> SetmealResponse:
        result = await self.db.execute(
            select(Setmeal, Category.name)
            .outerjoin(Category, Category.id == Setmeal.category_id)
            .where(Setmeal.id == setmeal_id, Setmeal.is_deleted.is_(False))
            .execution_options(populate_existing=True)
        )
        row = result.first()
        if row is None:
            raise NotFoundError("Set meal", setmeal_id)

        responses = await self._to_responses([tuple(row)])
        return responses[0]

    async def list_with_dishes(
        self,
        category_id: Optional[int] = None,
        status: int = SaleStatus.ON_SALE.value,
    ) -> list[SetmealResponse]:
        """Read-through cached under ``setmeal_{category_id}_{status}``."""
        key = self._list_key(self._prefix, category_id, status)

        cached = await self._cache_get(key)
        if cached is not None:
            return [SetmealResponse.model_validate(item) for item in cached]

        query = (
            select(Setmeal, Category.name)
            .outerjoin(Category, Category.id == Setmeal.category_id)
            .where(Setmeal.status == status, Setmeal.is_deleted.is_(False))
            .order_by(Setmeal.updated_at.desc())
        )
        if category_id is not None:
            query = query.where(Setmeal.category_id == category_id)

        result = await self.db.execute(query)
        setmeals = await self._to_responses([tuple(row) for row in result.all()])

        await self._cache_set(key, [s.model_dump(mode="json") for s in setmeals])
        return setmeals

    async def page(
        self,
        page: int,
        page_size: int,
        name: Optional[str] = None,
    ) -> tuple[int, list[SetmealResponse]]:
        filters = [Setmeal.is_deleted.is_(False)]
        if name:
            filters.append(Setmeal.name.contains(name))

        total = await self.db.scalar(select(func.count(Setmeal.id)).where(*filters)) or 0

        result = await self.db.execute(
            select(Setmeal, Category.name)
            .outerjoin(Category, Category.id == Setmeal.category_id)
            .where(*filters)
            .order_by(Setmeal.updated_at.desc(), Setmeal.id.desc())
            .offset((page - 1) * page_size)
            .limit(page_size)
        )
        records = await self._to_responses([tuple(row) for row in result.all()])
        return total, records
