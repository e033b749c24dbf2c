"""Database connection and session management."""

import logging
from pathlib import Path

from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, create_async_engine, async_sessionmaker
from sqlalchemy.orm import DeclarativeBase

from timeboard.config import settings

logger = logging.getLogger(__name__)


def _ensure_sqlite_directory(database_url: str) -> None:
    """Ensure parent directory exists for file-backed sqlite URLs."""
    if not database_url.startswith("sqlite+aiosqlite:///"):
        return

    sqlite_path = database_url.removeprefix("sqlite+aiosqlite:///")

    # Ignore in-memory sqlite URLs.
    if sqlite_path in {"", ":memory:"}:
        return

    db_file = Path(sqlite_path)
    db_parent = db_file.parent
    if db_parent and str(db_parent) != ".":
        db_parent.mkdir(parents=True, exist_ok=True)


_ensure_sqlite_directory(settings.database_url)

if "sqlite" in settings.database_url and "mode=memory" not in settings.database_url:
    logger.warning(
        "SQLite detected — concurrent writers serialize on the database lock. "
        "Set TIMEBOARD_DATABASE_URL to a Postgres URL for production."
    )

engine = create_async_engine(settings.database_url, echo=settings.debug)
async_session = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


class Base(DeclarativeBase):
    pass


def get_session_factory() -> async_sessionmaker[AsyncSession]:
    """Session factory used by the registry stores.

    Stores open their own short-lived sessions so that every write is its own
    transaction; tests override this dependency with an isolated engine.
    """
    return async_session


async def init_db():
    # Make sure every entity is registered on Base.metadata
    import timeboard.entities  # noqa: F401

    if "sqlite" in settings.database_url:
        # For SQLite (tests, dev), use create_all for fast setup
        async with engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)
    else:
        # For production (Postgres), run Alembic migrations
        await upgrade_schema(engine)


def _run_upgrade(connection, alembic_cfg) -> None:
    from alembic import command

    alembic_cfg.attributes["connection"] = connection
    command.upgrade(alembic_cfg, "head")


async def upgrade_schema(bind: AsyncEngine, config_path: str = "alembic.ini") -> None:
    """Apply Alembic migrations over ``bind`` from inside the running loop.

    The connection is handed to alembic/env.py, which then migrates on it
    directly instead of starting an event loop of its own.
    """
    from alembic.config import Config

    alembic_cfg = Config(config_path)
    async with bind.begin() as conn:
        await conn.run_sync(_run_upgrade, alembic_cfg)


async def close_db() -> None:
    await engine.dispose()
