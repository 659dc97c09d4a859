"""Test fixtures for Taskiq, the async runtime and an in-memory database."""

import os
import sys
from collections.abc import AsyncIterator
from pathlib import Path

os.environ["TASKIQ_TESTING"] = "1"

ROOT_DIR = Path(__file__).resolve().parents[1]
if str(ROOT_DIR) not in sys.path:
    sys.path.insert(0, str(ROOT_DIR))

import pytest
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.pool import StaticPool

import spiceboard.models  # noqa: F401
from spiceboard.models.base import Base
from spiceboard.taskiq_app.broker import broker
from spiceboard.taskiq_app.dedup import _MEMORY_LOCKS

FIXTURE_DIR = Path(__file__).resolve().parent / "fixtures"


@pytest.fixture(scope="function", autouse=True)
async def init_taskiq() -> AsyncIterator[None]:
    """Initialize broker per test when using InMemoryBroker."""

    _MEMORY_LOCKS.clear()
    await broker.startup()
    yield
    await broker.shutdown()
    _MEMORY_LOCKS.clear()


@pytest.fixture
def anyio_backend() -> str:
    return "asyncio"


@pytest.fixture
def load_fixture():
    def _load(name: str) -> str:
        return (FIXTURE_DIR / name).read_text(encoding="utf-8")

    return _load


@pytest.fixture
async def db_engine() -> AsyncIterator[AsyncEngine]:
    """SQLite engine sharing one connection so the in-memory schema persists."""

    engine = create_async_engine(
        "sqlite+aiosqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def db_sessionmaker(db_engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(db_engine, expire_on_commit=False)


@pytest.fixture
async def db_session(
    db_sessionmaker: async_sessionmaker[AsyncSession],
) -> AsyncIterator[AsyncSession]:
    async with db_sessionmaker() as session:
        yield session
