"""
Pydantic Schemas for Request/Response Validation

Menu administration payloads:
- Categories
- Dishes with flavors
- Set meals with member dishes
- Paged results, message/error envelopes, health
"""

from pydantic import BaseModel, Field, field_validator
from typing import Optional, List, Any
from datetime import datetime
from enum import IntEnum
import json


# =============================================================================
# ENUMS
# =============================================================================

class CategoryTypeEnum(IntEnum):
    DISH = 1
    SETMEAL = 2


class SaleStatusEnum(IntEnum):
    STOPPED = 0
    ON_SALE = 1


# =============================================================================
# CATEGORY SCHEMAS
# =============================================================================

class CategoryCreate(BaseModel):
    """Request schema for adding a category."""
    type: CategoryTypeEnum = Field(default=CategoryTypeEnum.DISH, examples=[1])
    name: str = Field(..., min_length=1, max_length=64, examples=["Sichuan Dishes"])
    sort: int = Field(default=0, ge=0, examples=[1])


class CategoryUpdate(BaseModel):
    """Request schema for editing a category. Omitted fields stay unchanged."""
    id: int = Field(..., ge=1)
    type: Optional[CategoryTypeEnum] = None
    name: Optional[str] = Field(None, min_length=1, max_length=64)
    sort: Optional[int] = Field(None, ge=0)


class CategoryResponse(BaseModel):
    """Response schema for a single category."""
    id: int
    type: int
    name: str
    sort: int
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


class CategoryPage(BaseModel):
    """One page of categories."""
    total: int
    records: List[CategoryResponse]


# =============================================================================
# DISH SCHEMAS
# =============================================================================

class FlavorCreate(BaseModel):
    """One flavor option group of a dish."""
    name: str = Field(..., min_length=1, max_length=64, examples=["Spiciness"])
    value: Optional[str] = Field(None, examples=['["mild","medium","hot"]'])

    @field_validator("value", mode="before")
    @classmethod
    def validate_value(cls, v: Any) -> Optional[str]:
        if v is None:
            return v
        if isinstance(v, list):
            return json.dumps(v, ensure_ascii=False)
        try:
            options = json.loads(v)
        except (TypeError, ValueError):
            raise ValueError("Flavor value must be a JSON list of options")
        if not isinstance(options, list):
            raise ValueError("Flavor value must be a JSON list of options")
        return v


class FlavorResponse(BaseModel):
    id: int
    dish_id: int
    name: str
    value: Optional[str]

    class Config:
        from_attributes = True


class DishCreate(BaseModel):
    """Request schema for adding a dish together with its flavors."""
    name: str = Field(..., min_length=1, max_length=64, examples=["Kung Pao Chicken"])
    category_id: int = Field(..., ge=1, examples=[1])
    price: float = Field(..., gt=0, examples=[38.0])
    code: Optional[str] = Field(None, max_length=64)
    image: Optional[str] = Field(None, max_length=200)
    description: Optional[str] = Field(None, max_length=400)
    status: SaleStatusEnum = Field(default=SaleStatusEnum.ON_SALE)
    sort: int = Field(default=0, ge=0)
    flavors: List[FlavorCreate] = Field(default_factory=list)


class DishUpdate(DishCreate):
    """Request schema for editing a dish. The submitted flavors replace the old ones."""
    id: int = Field(..., ge=1)


class DishResponse(BaseModel):
    """A dish with its flavors."""
    id: int
    name: str
    category_id: int
    category_name: Optional[str] = None
    price: float
    code: Optional[str]
    image: Optional[str]
    description: Optional[str]
    status: int
    sort: int
    updated_at: datetime
    flavors: List[FlavorResponse] = Field(default_factory=list)

    class Config:
        from_attributes = True


class DishPage(BaseModel):
    """One page of dishes."""
    total: int
    records: List[DishResponse]


# =============================================================================
# SET MEAL SCHEMAS
# =============================================================================

class SetmealDishCreate(BaseModel):
    """A dish included in a set meal."""
    dish_id: int = Field(..., ge=1)
    name: Optional[str] = Field(None, max_length=64)
    price: Optional[float] = Field(None, ge=0)
    copies: int = Field(default=1, ge=1, le=99)
    sort: int = Field(default=0, ge=0)


class SetmealDishResponse(BaseModel):
    id: int
    setmeal_id: int
    dish_id: int
    name: Optional[str]
    price: Optional[float]
    copies: int
    sort: int

    class Config:
        from_attributes = True


class SetmealCreate(BaseModel):
    """Request schema for adding a set meal together with its dishes."""
    name: str = Field(..., min_length=1, max_length=64, examples=["Business Lunch A"])
    category_id: int = Field(..., ge=1)
    price: float = Field(..., gt=0)
    status: SaleStatusEnum = Field(default=SaleStatusEnum.ON_SALE)
    code: Optional[str] = Field(None, max_length=32)
    description: Optional[str] = Field(None, max_length=512)
    image: Optional[str] = Field(None, max_length=255)
    setmeal_dishes: List[SetmealDishCreate] = Field(..., min_length=1)


class SetmealUpdate(SetmealCreate):
    """Request schema for editing a set meal. The submitted dishes replace the old ones."""
    id: int = Field(..., ge=1)


class SetmealResponse(BaseModel):
    """A set meal with its member dishes."""
    id: int
    name: str
    category_id: int
    category_name: Optional[str] = None
    price: float
    status: int
    code: Optional[str]
    description: Optional[str]
    image: Optional[str]
    updated_at: datetime
    setmeal_dishes: List[SetmealDishResponse] = Field(default_factory=list)

    class Config:
        from_attributes = True


class SetmealPage(BaseModel):
    """One page of set meals."""
    total: int
    records: List[SetmealResponse]


# =============================================================================
# GENERIC RESPONSES
# =============================================================================

class MessageResponse(BaseModel):
    """Response after a successful mutation."""
    success: bool = True
    message: str


class ExportResponse(BaseModel):
    """Response after queueing a menu export."""
    success: bool = True
    message: str
    task_id: Optional[str] = None


class ErrorResponse(BaseModel):
    """Standard error response."""
    success: bool = False
    error: str
    detail: Optional[str] = None


class HealthResponse(BaseModel):
    """Health check response."""
    status: str
    database: str
    cache: str
    cache_provider: str
    timestamp: datetime
