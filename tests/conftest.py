"""Shared pytest fixtures for store, allocator, service and API tests.

Every test gets its own SQLite database file under ``tmp_path``.
"""

from collections.abc import Awaitable, Callable
from typing import AsyncGenerator

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncEngine

from shorturl.allocator import IdAllocator
from shorturl.config import Settings
from shorturl.database import build_engine, build_sessionmaker
from shorturl.dependencies import _service_manager
from shorturl.main import app
from shorturl.models import UrlMapping
from shorturl.service import ShorteningService
from shorturl.store import MappingStore


@pytest.fixture
def settings(tmp_path) -> Settings:
    return Settings(
        APP_ENV="test",
        DATABASE_URL=f"sqlite+aiosqlite:///{tmp_path / 'shorturl.db'}",
    )


@pytest_asyncio.fixture(scope="function")
async def engine(settings: Settings) -> AsyncGenerator[AsyncEngine, None]:
    test_engine = build_engine(settings)
    yield test_engine
    await test_engine.dispose()


@pytest_asyncio.fixture(scope="function")
async def store(engine: AsyncEngine) -> MappingStore:
    mapping_store = MappingStore(engine, build_sessionmaker(engine))
    await mapping_store.ensure_schema()
    return mapping_store


@pytest_asyncio.fixture(scope="function")
async def allocator(store: MappingStore) -> IdAllocator:
    id_allocator = IdAllocator()
    await id_allocator.initialize(store)
    return id_allocator


@pytest.fixture
def service(store: MappingStore, allocator: IdAllocator) -> ShorteningService:
    return ShorteningService(store, allocator)


@pytest.fixture
def count_mappings(engine: AsyncEngine) -> Callable[[], Awaitable[int]]:
    async def _count() -> int:
        async with engine.connect() as conn:
            return await conn.scalar(select(func.count()).select_from(UrlMapping))

    return _count


@pytest_asyncio.fixture(scope="function")
async def client(settings: Settings) -> AsyncGenerator[AsyncClient, None]:
    # ASGITransport does not run the lifespan, so initialize the manager here.
    await _service_manager.initialize(settings)

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac

    await _service_manager.cleanup()
