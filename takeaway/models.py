"""
SQLAlchemy Database Models

Menu administration tables:
- Categories (dish categories and set meal categories)
- Dishes and their flavor options
- Set meals and their member dishes

Dishes and set meals are deleted logically (``is_deleted``); every read
filters them out. Child rows (flavors, set meal dishes) are owned by
their parent and rewritten as a whole on update.
"""

from datetime import datetime, timezone
import enum

from sqlalchemy import (
    Boolean,
    Column,
    DateTime,
    ForeignKey,
    Integer,
    Numeric,
    String,
    Text,
)
from takeaway.database import Base


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class CategoryType(int, enum.Enum):
    """What a category groups."""
    DISH = 1
    SETMEAL = 2


class SaleStatus(int, enum.Enum):
    """Sale status shared by dishes and set meals."""
    STOPPED = 0
    ON_SALE = 1


class Category(Base):
    """Menu category shown in the admin dropdowns and the customer menu."""
    __tablename__ = "category"

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    type = Column(Integer, nullable=False, default=CategoryType.DISH.value, index=True)
    name = Column(String(64), nullable=False, unique=True)
    sort = Column(Integer, nullable=False, default=0)

    created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)
    updated_at = Column(DateTime(timezone=True), default=utcnow, onupdate=utcnow, nullable=False)

    def __repr__(self):
        return f"<Category #{self.id} - {self.name}>"


class Dish(Base):
    """
    A single dish on the menu.

    ``status`` is 1 while on sale and 0 when stopped. A deleted dish keeps
    its row with ``is_deleted`` set and ``status`` forced to 0.
    """
    __tablename__ = "dish"

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    name = Column(String(64), nullable=False, unique=True)
    # Plain column: logically deleted rows keep pointing at removed categories
    category_id = Column(Integer, nullable=False, index=True)
    price = Column(Numeric(10, 2, asdecimal=False), nullable=False)
    code = Column(String(64), nullable=True)
    image = Column(String(200), nullable=True)
    description = Column(String(400), nullable=True)
    status = Column(Integer, nullable=False, default=SaleStatus.ON_SALE.value, index=True)
    sort = Column(Integer, nullable=False, default=0)
    is_deleted = Column(Boolean, nullable=False, default=False)

    created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)
    updated_at = Column(DateTime(timezone=True), default=utcnow, onupdate=utcnow, nullable=False)

    def __repr__(self):
        return f"<Dish #{self.id} - {self.name}>"


class DishFlavor(Base):
    """
    One flavor option group of a dish, e.g. ``name="Spiciness"`` with
    ``value='["mild","medium","hot"]'``.
    """
    __tablename__ = "dish_flavor"

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    dish_id = Column(Integer, ForeignKey("dish.id"), nullable=False, index=True)
    name = Column(String(64), nullable=False)
    value = Column(Text, nullable=True)  # JSON list of options

    created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)
    updated_at = Column(DateTime(timezone=True), default=utcnow, onupdate=utcnow, nullable=False)

    def __repr__(self):
        return f"<DishFlavor #{self.id} - dish {self.dish_id} - {self.name}>"


class Setmeal(Base):
    """A combo of dishes sold at one price."""
    __tablename__ = "setmeal"

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    # Plain column: logically deleted rows keep pointing at removed categories
    category_id = Column(Integer, nullable=False, index=True)
    name = Column(String(64), nullable=False, unique=True)
    price = Column(Numeric(10, 2, asdecimal=False), nullable=False)
    status = Column(Integer, nullable=False, default=SaleStatus.ON_SALE.value, index=True)
    code = Column(String(32), nullable=True)
    description = Column(String(512), nullable=True)
    image = Column(String(255), nullable=True)
    is_deleted = Column(Boolean, nullable=False, default=False)

    created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)
    updated_at = Column(DateTime(timezone=True), default=utcnow, onupdate=utcnow, nullable=False)

    def __repr__(self):
        return f"<Setmeal #{self.id} - {self.name}>"


class SetmealDish(Base):
    """A dish included in a set meal, with the number of copies."""
    __tablename__ = "setmeal_dish"

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    setmeal_id = Column(Integer, ForeignKey("setmeal.id"), nullable=False, index=True)
    dish_id = Column(Integer, ForeignKey("dish.id"), nullable=False)
    name = Column(String(64), nullable=True)  # Dish name at the time it was added
    price = Column(Numeric(10, 2, asdecimal=False), nullable=True)
    copies = Column(Integer, nullable=False, default=1)
    sort = Column(Integer, nullable=False, default=0)

    def __repr__(self):
        return f"<SetmealDish setmeal {self.setmeal_id} - dish {self.dish_id} x{self.copies}>"
