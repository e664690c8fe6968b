"""
Pytest Configuration and Shared Fixtures

Every test gets its own SQLite database file and a fresh in-memory
cache, wired into the app through FastAPI dependency overrides.
"""

import os
import tempfile
from pathlib import Path
from typing import AsyncGenerator

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient

# Test environment setup (must happen before the app reads its settings)
os.environ["ENV_MODE"] = "development"
os.environ["DATABASE_URL"] = "sqlite+aiosqlite:///:memory:"
os.environ["DATA_DIRECTORY"] = tempfile.mkdtemp(prefix="takeaway-test-")
os.environ["CELERY_TASK_ALWAYS_EAGER"] = "true"

from sqlalchemy import event
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker

from takeaway.core.config import get_settings
from takeaway.database import build_engine, get_db, init_db
from takeaway.dependencies import get_cache
from takeaway.main import app
from takeaway.services.cache import MockCacheService


# =============================================================================
# Database Fixtures
# =============================================================================

def enforce_foreign_keys(dbapi_connection, connection_record) -> None:
    """SQLite ignores foreign keys unless asked; PostgreSQL always checks them."""
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


@pytest_asyncio.fixture
async def engine(tmp_path: Path) -> AsyncGenerator[AsyncEngine, None]:
    """A fresh database with all tables created."""
    test_engine = build_engine(f"sqlite+aiosqlite:///{tmp_path / 'test.db'}")
    event.listen(test_engine.sync_engine, "connect", enforce_foreign_keys)
    await init_db(bind=test_engine)
    yield test_engine
    await test_engine.dispose()


@pytest.fixture
def session_maker(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(bind=engine, class_=AsyncSession, expire_on_commit=False)


@pytest_asyncio.fixture
async def db(session_maker) -> AsyncGenerator[AsyncSession, None]:
    async with session_maker() as session:
        yield session


# =============================================================================
# Cache Fixtures
# =============================================================================

@pytest.fixture
def cache() -> MockCacheService:
    return MockCacheService()


@pytest.fixture
def data_dir(tmp_path: Path, monkeypatch) -> Path:
    """Point the menu export at a per-test directory."""
    directory = tmp_path / "data"
    monkeypatch.setattr(get_settings(), "data_directory", str(directory))
    return directory


# =============================================================================
# HTTP Client
# =============================================================================

@pytest_asyncio.fixture
async def client(session_maker, cache) -> AsyncGenerator[AsyncClient, None]:
    """HTTP client talking to the app in-process."""

    async def override_get_db() -> AsyncGenerator[AsyncSession, None]:
        async with session_maker() as session:
            yield session

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_cache] = lambda: cache

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()


# =============================================================================
# Menu Data Helpers
# =============================================================================

@pytest_asyncio.fixture
async def dish_category(client: AsyncClient) -> dict:
    response = await client.post("/category", json={"type": 1, "name": "Sichuan", "sort": 1})
    assert response.status_code == 201
    return response.json()


@pytest_asyncio.fixture
async def setmeal_category(client: AsyncClient) -> dict:
    response = await client.post("/category", json={"type": 2, "name": "Lunch Combos", "sort": 2})
    assert response.status_code == 201
    return response.json()


def dish_payload(category_id: int, name: str = "Mapo Tofu", **overrides) -> dict:
    payload = {
        "name": name,
        "category_id": category_id,
        "price": 28.5,
        "description": "Silken tofu, chili bean paste",
        "flavors": [
            {"name": "Spiciness", "value": '["mild","medium","hot"]'},
            {"name": "Portion", "value": '["small","large"]'},
        ],
    }
    payload.update(overrides)
    return payload


@pytest_asyncio.fixture
async def dish(client: AsyncClient, dish_category: dict) -> dict:
    response = await client.post("/dish", json=dish_payload(dish_category["id"]))
    assert response.status_code == 201
    return response.json()
