"""
Takeaway Admin HTTP API.

Routes:
    /category    category CRUD
    /dish        dishes with flavors: CRUD, sale status, cached list, export
    /setmeal     set meals with member dishes
    /health      database and cache reachability
"""

import asyncio
import logging
import sys
from contextlib import asynccontextmanager
from datetime import datetime
from typing import Optional

from fastapi import Depends, FastAPI, Path, Query, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

# psycopg's async mode cannot run on the Proactor loop
if sys.platform == "win32":
    asyncio.set_event_loop_policy(asyncio.WindowsSelectorEventLoopPolicy())

from takeaway.core.config import get_settings, setup_logging
from takeaway.core.exceptions import BusinessError
from takeaway.database import engine, get_db, init_db
from takeaway.dependencies import (
    get_cache,
    get_category_service,
    get_dish_service,
    get_setmeal_service,
    ids_query,
)
from takeaway.schemas import (
    CategoryCreate,
    CategoryPage,
    CategoryResponse,
    CategoryUpdate,
    DishCreate,
    DishPage,
    DishResponse,
    DishUpdate,
    ErrorResponse,
    ExportResponse,
    HealthResponse,
    MessageResponse,
    SetmealCreate,
    SetmealPage,
    SetmealResponse,
    SetmealUpdate,
)
from takeaway.services.cache import BaseCacheService, get_cache_service
from takeaway.services.category_service import CategoryService
from takeaway.services.dish_service import DishService
from takeaway.services.setmeal_service import SetmealService
from takeaway.tasks import export_menu_to_excel

settings = get_settings()
setup_logging()
logger = logging.getLogger(__name__)

ERROR_RESPONSES = {400: {"model": ErrorResponse}, 404: {"model": ErrorResponse}}


# =============================================================================
# LIFESPAN
# =============================================================================

@asynccontextmanager
async def lifespan(app: FastAPI):
    """Create tables and the cache client on startup; release both on shutdown."""
    logger.info(
        f"{settings.app_name} {settings.app_version} starting "
        f"(env={settings.env_mode.value}, debug={settings.debug})"
    )

    await init_db()

    cache = get_cache_service()
    logger.info(f"Caching list queries in {cache.provider_name} (ttl={settings.cache_ttl_seconds}s)")

    missing = settings.validate_production_config()
    if missing:
        logger.warning(f"Running {settings.env_mode.value} with local defaults for: {missing}")

    yield

    logger.info("Stopping: closing cache client and database pool")
    await cache.close()
    await engine.dispose()


# =============================================================================
# APP
# =============================================================================

app = FastAPI(
    title=settings.app_name,
    description=(
        "Menu administration backend: categories, dishes with flavors and "
        "set meals, with cached list queries."
    ),
    version=settings.app_version,
    lifespan=lifespan,
)

# The admin front-end is served from another origin
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.get("/", tags=["Root"])
async def root() -> dict[str, str]:
    return {
        "name": settings.app_name,
        "version": settings.app_version,
        "docs": "/docs",
    }


@app.get(
    "/health",
    response_model=HealthResponse,
    tags=["Health"],
    summary="Database and Cache Health",
)
async def health(
    db: AsyncSession = Depends(get_db),
    cache: BaseCacheService = Depends(get_cache),
) -> HealthResponse:
    """Reports ``degraded`` when either the database or the cache is unreachable."""
    try:
        await db.execute(select(func.now()))
        database = "healthy"
    except SQLAlchemyError as e:
        logger.error(f"Health: database unreachable: {e}")
        database = "unhealthy"

    cache_state = "healthy" if await cache.health_check() else "unhealthy"
    degraded = "unhealthy" in (database, cache_state)

    return HealthResponse(
        status="degraded" if degraded else "operational",
        database=database,
        cache=cache_state,
        cache_provider=cache.provider_name,
        timestamp=datetime.now(),
    )


# =============================================================================
# CATEGORY ENDPOINTS
# =============================================================================

@app.post(
    "/category",
    response_model=CategoryResponse,
    status_code=status.HTTP_201_CREATED,
    responses=ERROR_RESPONSES,
    tags=["Categories"],
    summary="Add Category",
)
async def save_category(
    data: CategoryCreate,
    service: CategoryService = Depends(get_category_service),
) -> CategoryResponse:
    category = await service.save(data)
    return CategoryResponse.model_validate(category)


@app.get(
    "/category/page",
    response_model=CategoryPage,
    tags=["Categories"],
    summary="List Categories (paged)",
)
async def page_categories(
    page: int = Query(1, ge=1),
    page_size: int = Query(10, ge=1, le=100),
    name: Optional[str] = Query(None, max_length=64),
    service: CategoryService = Depends(get_category_service),
) -> CategoryPage:
    """Categories in display order (sort ascending)."""
    total, records = await service.page(page, page_size, name)
    return CategoryPage(
        total=total,
        records=[CategoryResponse.model_validate(c) for c in records],
    )


@app.get(
    "/category/list",
    response_model=list[CategoryResponse],
    tags=["Categories"],
    summary="List Categories",
)
async def list_categories(
    category_type: Optional[int] = Query(None, alias="type", ge=1, le=2),
    service: CategoryService = Depends(get_category_service),
) -> list[CategoryResponse]:
    """All categories, optionally only dish (1) or set meal (2) categories."""
    categories = await service.list_by_type(category_type)
    return [CategoryResponse.model_validate(c) for c in categories]


@app.put(
    "/category",
    response_model=CategoryResponse,
    responses=ERROR_RESPONSES,
    tags=["Categories"],
    summary="Edit Category",
)
async def update_category(
    data: CategoryUpdate,
    service: CategoryService = Depends(get_category_service),
) -> CategoryResponse:
    category = await service.update(data)
    return CategoryResponse.model_validate(category)


@app.delete(
    "/category",
    response_model=MessageResponse,
    responses=ERROR_RESPONSES,
    tags=["Categories"],
    summary="Delete Category",
)
async def delete_category(
    id: int = Query(..., ge=1),
    service: CategoryService = Depends(get_category_service),
) -> MessageResponse:
    """Refused while live dishes or set meals still belong to the category."""
    await service.remove(id)
    return MessageResponse(message=f"Category #{id} deleted")


# =============================================================================
# DISH ENDPOINTS
# =============================================================================

@app.post(
    "/dish",
    response_model=DishResponse,
    status_code=status.HTTP_201_CREATED,
    responses=ERROR_RESPONSES,
    tags=["Dishes"],
    summary="Add Dish (with flavors)",
)
async def save_dish(
    data: DishCreate,
    service: DishService = Depends(get_dish_service),
) -> DishResponse:
    return await service.save_with_flavors(data)


@app.put(
    "/dish",
    response_model=DishResponse,
    responses=ERROR_RESPONSES,
    tags=["Dishes"],
    summary="Edit Dish (replaces flavors)",
)
async def update_dish(
    data: DishUpdate,
    service: DishService = Depends(get_dish_service),
) -> DishResponse:
    return await service.update_with_flavors(data)


@app.get(
    "/dish/page",
    response_model=DishPage,
    tags=["Dishes"],
    summary="List Dishes (paged)",
)
async def page_dishes(
    page: int = Query(1, ge=1),
    page_size: int = Query(10, ge=1, le=100),
    name: Optional[str] = Query(None, max_length=64),
    service: DishService = Depends(get_dish_service),
) -> DishPage:
    total, records = await service.page(page, page_size, name)
    return DishPage(total=total, records=records)


@app.get(
    "/dish/list",
    response_model=list[DishResponse],
    tags=["Dishes"],
    summary="List Dishes with flavors (cached)",
)
async def list_dishes(
    category_id: Optional[int] = Query(None, ge=1),
    dish_status: int = Query(1, alias="status", ge=0, le=1),
    service: DishService = Depends(get_dish_service),
) -> list[DishResponse]:
    """Served from the cache when possible; any dish write clears it."""
    return await service.list_with_flavors(category_id, dish_status)


@app.post(
    "/dish/status/{dish_status}",
    response_model=MessageResponse,
    tags=["Dishes"],
    summary="Start / Stop Selling Dishes",
)
async def update_dish_status(
    dish_status: int = Path(..., ge=0, le=1),
    ids: list[int] = Depends(ids_query),
    service: DishService = Depends(get_dish_service),
) -> MessageResponse:
    changed = await service.update_status(ids, dish_status)
    return MessageResponse(message=f"{changed} dish(es) updated")


@app.delete(
    "/dish",
    response_model=MessageResponse,
    tags=["Dishes"],
    summary="Delete Dishes",
)
async def delete_dishes(
    ids: list[int] = Depends(ids_query),
    service: DishService = Depends(get_dish_service),
) -> MessageResponse:
    changed = await service.delete_by_ids(ids)
    return MessageResponse(message=f"{changed} dish(es) deleted")


@app.post(
    "/dish/export",
    response_model=ExportResponse,
    status_code=status.HTTP_202_ACCEPTED,
    tags=["Dishes"],
    summary="Export Menu to Excel",
)
async def export_menu(
    service: DishService = Depends(get_dish_service),
) -> ExportResponse:
    """Queue a spreadsheet snapshot of every on-sale dish."""
    rows = await service.menu_snapshot()
    task = export_menu_to_excel.delay(rows)
    logger.info(f"Menu export queued: task {task.id} ({len(rows)} dishes)")
    return ExportResponse(
        message=f"Export of {len(rows)} dishes queued",
        task_id=task.id,
    )


@app.get(
    "/dish/{dish_id}",
    response_model=DishResponse,
    responses=ERROR_RESPONSES,
    tags=["Dishes"],
    summary="Get Dish (with flavors)",
)
async def get_dish(
    dish_id: int = Path(..., ge=1),
    service: DishService = Depends(get_dish_service),
) -> DishResponse:
    return await service.get_by_id_with_flavors(dish_id)


# =============================================================================
# SET MEAL ENDPOINTS
# =============================================================================

@app.post(
    "/setmeal",
    response_model=SetmealResponse,
    status_code=status.HTTP_201_CREATED,
    responses=ERROR_RESPONSES,
    tags=["Set Meals"],
    summary="Add Set Meal (with dishes)",
)
async def save_setmeal(
    data: SetmealCreate,
    service: SetmealService = Depends(get_setmeal_service),
) -> SetmealResponse:
    return await service.save_with_dishes(data)


@app.put(
    "/setmeal",
    response_model=SetmealResponse,
    responses=ERROR_RESPONSES,
    tags=["Set Meals"],
    summary="Edit Set Meal (replaces dishes)",
)
async def update_setmeal(
    data: SetmealUpdate,
    service: SetmealService = Depends(get_setmeal_service),
) -> SetmealResponse:
    return await service.update_with_dishes(data)


@app.get(
    "/setmeal/page",
    response_model=SetmealPage,
    tags=["Set Meals"],
    summary="List Set Meals (paged)",
)
async def page_setmeals(
    page: int = Query(1, ge=1),
    page_size: int = Query(10, ge=1, le=100),
    name: Optional[str] = Query(None, max_length=64),
    service: SetmealService = Depends(get_setmeal_service),
) -> SetmealPage:
    total, records = await service.page(page, page_size, name)
    return SetmealPage(total=total, records=records)


@app.get(
    "/setmeal/list",
    response_model=list[SetmealResponse],
    tags=["Set Meals"],
    summary="List Set Meals (cached)",
)
async def list_setmeals(
    category_id: Optional[int] = Query(None, ge=1),
    setmeal_status: int = Query(1, alias="status", ge=0, le=1),
    service: SetmealService = Depends(get_setmeal_service),
) -> list[SetmealResponse]:
    return await service.list_with_dishes(category_id, setmeal_status)


@app.post(
    "/setmeal/status/{setmeal_status}",
    response_model=MessageResponse,
    tags=["Set Meals"],
    summary="Start / Stop Selling Set Meals",
)
async def update_setmeal_status(
    setmeal_status: int = Path(..., ge=0, le=1),
    ids: list[int] = Depends(ids_query),
    service: SetmealService = Depends(get_setmeal_service),
) -> MessageResponse:
    changed = await service.update_status(ids, setmeal_status)
    return MessageResponse(message=f"{changed} set meal(s) updated")


@app.delete(
    "/setmeal",
    response_model=MessageResponse,
    responses=ERROR_RESPONSES,
    tags=["Set Meals"],
    summary="Delete Set Meals",
)
async def delete_setmeals(
    ids: list[int] = Depends(ids_query),
    service: SetmealService = Depends(get_setmeal_service),
) -> MessageResponse:
    """Only set meals that are no longer on sale can be deleted."""
    changed = await service.remove_with_dishes(ids)
    return MessageResponse(message=f"{changed} set meal(s) deleted")


@app.get(
    "/setmeal/{setmeal_id}",
    response_model=SetmealResponse,
    responses=ERROR_RESPONSES,
    tags=["Set Meals"],
    summary="Get Set Meal (with dishes)",
)
async def get_setmeal(
    setmeal_id: int = Path(..., ge=1),
    service: SetmealService = Depends(get_setmeal_service),
) -> SetmealResponse:
    return await service.get_by_id_with_dishes(setmeal_id)


# =============================================================================
# ERROR HANDLERS
# =============================================================================

@app.exception_handler(BusinessError)
async def business_error_handler(request: Request, exc: BusinessError) -> JSONResponse:
    """Business rule violations (400) and missing entities (404)."""
    logger.warning(f"{request.method} {request.url.path} refused: {exc.message}")

    return JSONResponse(
        status_code=exc.status_code,
        content=ErrorResponse(error=exc.message, detail=exc.detail).model_dump(),
    )


@app.exception_handler(IntegrityError)
async def integrity_error_handler(request: Request, exc: IntegrityError) -> JSONResponse:
    """Unique names and foreign keys enforced by the database."""
    message = str(exc.orig)
    logger.warning(f"{request.method} {request.url.path} integrity error: {message}")

    if "unique" in message.lower() or "duplicate" in message.lower():
        error = "Name already exists"
    else:
        error = "Data integrity violation"

    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content=ErrorResponse(
            error=error,
            detail=message if settings.debug else None,
        ).model_dump(),
    )


@app.exception_handler(Exception)
async def unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception(f"{request.method} {request.url.path} failed")

    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content=ErrorResponse(
            error="Internal server error",
            detail=str(exc) if settings.debug else None,
        ).model_dump(),
    )
