"""
Pytest configuration and shared fixtures for the booking-intake test suite.

This module provides:
- Database fixtures (file-backed SQLite per test, shared by bookings and centers)
- Background task pool and center mirror fixtures
- FastAPI async client with dependency overrides
- Service center seeding helper
"""

import os

# Engines are created at import of core.db: keep them off Postgres in tests
os.environ["DATABASE_URL"] = "sqlite+aiosqlite:///:memory:"
os.environ.pop("CENTERS_DATABASE_URL", None)
os.environ["CENTER_DIRECTORY_BACKEND"] = "database"
os.environ["CENTER_SELECTION_POLICY"] = "least_load"
os.environ["CENTER_SCOPE_BY_COMPANY"] = "true"
os.environ["FALLBACK_CENTER_ID"] = "SC_DEFAULT"
os.environ["AUTO_CREATE_TABLES"] = "false"

from typing import AsyncGenerator, Callable, List

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

import models  # noqa: F401  (registers tables on Base.metadata)
from core.db import Base, get_centers_db, get_db
from core.dependencies import get_center_mirror
from core.tasks import BackgroundTaskPool
from main import app
from models.service_center import ServiceCenter
from services.center_mirror import CenterMirrorUpdater


@pytest_asyncio.fixture
async def async_engine(tmp_path):
    """Create async engine on a throwaway SQLite file."""
    engine = create_async_engine(
        f"sqlite+aiosqlite:///{tmp_path / 'booking_intake.db'}",
        echo=False
    )

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    await engine.dispose()


@pytest.fixture
def session_factory(async_engine) -> async_sessionmaker:
    return async_sessionmaker(async_engine, class_=AsyncSession, expire_on_commit=False)


@pytest_asyncio.fixture
async def async_db_session(session_factory) -> AsyncGenerator[AsyncSession, None]:
    """Create async database session for testing."""
    async with session_factory() as session:
        yield session


@pytest_asyncio.fixture
async def task_pool() -> AsyncGenerator[BackgroundTaskPool, None]:
    pool = BackgroundTaskPool(default_timeout=5.0)
    yield pool
    await pool.drain(timeout=5.0)


@pytest.fixture
def center_mirror(session_factory, task_pool) -> CenterMirrorUpdater:
    return CenterMirrorUpdater(session_factory, task_pool, timeout=5.0)


@pytest.fixture
def seed_centers(session_factory) -> Callable:
    """Insert service centers into the centers store."""
    async def _seed(centers: List[dict]):
        async with session_factory() as session:
            for data in centers:
                session.add(ServiceCenter(**data))
            await session.commit()
    return _seed


@pytest.fixture
def read_center(session_factory) -> Callable:
    async def _read(center_id: str):
        async with session_factory() as session:
            return await session.get(ServiceCenter, center_id)
    return _read


@pytest_asyncio.fixture
async def test_app(session_factory, center_mirror):
    """The real app with both stores and the mirror pointed at the test database."""
    async def override_get_db():
        async with session_factory() as session:
            yield session

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_centers_db] = override_get_db
    app.dependency_overrides[get_center_mirror] = lambda: center_mirror

    yield app

    app.dependency_overrides.clear()


@pytest_asyncio.fixture
async def async_client(test_app) -> AsyncGenerator[AsyncClient, None]:
    """Create async HTTP client with database dependency override."""
    async with AsyncClient(transport=ASGITransport(app=test_app), base_url="http://test") as client:
        yield client
