"""Shared fixtures for database-backed tests.

Tests run against a temporary SQLite file through aiosqlite; the reading
table lock is PostgreSQL-only, so serialization here comes from the
service's in-process lock.
"""

from datetime import datetime, timedelta
from typing import AsyncGenerator, List, Optional

import pytest
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from catlocator.config.settings import Settings
from catlocator.domain.models import InferenceResult
from catlocator.infrastructure.database.models import Base
from catlocator.infrastructure.database.repositories import DeviceRepository

from ..fixtures.sample_data import BASE_TIME, sample_assignments, settings_kwargs


class FakeNotifier:
    """Records notifications instead of posting them."""

    def __init__(self) -> None:
        self.boots: List[str] = []
        self.locations: List[InferenceResult] = []
        self.started = False
        self.closed = False

    async def start(self) -> None:
        self.started = True

    async def close(self) -> None:
        self.closed = True

    async def notify_boot(self, room: str) -> bool:
        self.boots.append(room)
        return True

    async def notify_location(self, result: InferenceResult) -> bool:
        self.locations.append(result)
        return True


class FakeClock:
    """Settable clock for the inference window."""

    def __init__(self, now: datetime = BASE_TIME) -> None:
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> None:
        self.now = self.now + timedelta(**kwargs)


@pytest.fixture
def test_settings(tmp_path) -> Settings:
    return Settings(
        **settings_kwargs(database_url=f"sqlite+aiosqlite:///{tmp_path / 'catlocator.db'}")
    )


@pytest.fixture
async def database_engine(test_settings: Settings) -> AsyncGenerator[AsyncEngine, None]:
    engine = create_async_engine(test_settings.database_url)

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    await engine.dispose()


@pytest.fixture
def session_factory(database_engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(database_engine, class_=AsyncSession, expire_on_commit=False)


@pytest.fixture
async def provisioned(session_factory: async_sessionmaker[AsyncSession]) -> None:
    """Assign one device to each sample room."""
    async with session_factory() as session:
        repository = DeviceRepository(session)
        for assignment in sample_assignments():
            await repository.save(assignment)
        await session.commit()


@pytest.fixture
def notifier() -> FakeNotifier:
    return FakeNotifier()


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()
