"""Shared fixtures: an isolated file-backed SQLite registry per test."""

import pytest_asyncio
from sqlalchemy.ext.asyncio import create_async_engine, async_sessionmaker, AsyncSession

import timeboard.entities  # noqa: F401  (register tables)
from timeboard.database import Base


@pytest_asyncio.fixture
async def session_factory(tmp_path):
    # File-backed so concurrent sessions really use separate connections
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'registry.db'}", echo=False)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)
    await engine.dispose()
