from __future__ import annotations

from contextlib import asynccontextmanager
from functools import lru_cache
from typing import Any, AsyncIterator

from sqlalchemy import event
from sqlalchemy.ext.asyncio import AsyncEngine, async_sessionmaker, create_async_engine
from sqlmodel import SQLModel
from sqlmodel.ext.asyncio.session import AsyncSession

from vault_backend.config import settings


def _normalize_postgres_scheme(url: str) -> str:
    # Accept postgres:// and the psycopg2 default; always run on psycopg3.
    if url.startswith("postgres://"):
        url = "postgresql://" + url[len("postgres://") :]
    if url.startswith("postgresql+psycopg2://"):
        url = "postgresql://" + url[len("postgresql+psycopg2://") :]
    if url.startswith("postgresql://"):
        return "postgresql+psycopg://" + url[len("postgresql://") :]
    return url


def normalize_database_url_for_async(database_url: str) -> str:
    """Map DATABASE_URL to the async driver used at runtime.

    - SQLite: sqlite+aiosqlite://...
    - PostgreSQL: postgresql+psycopg://... (psycopg3 supports asyncio natively)
    """
    url = (database_url or "").strip()
    if not url:
        return url
    if url.startswith("sqlite://"):
        return url.replace("sqlite://", "sqlite+aiosqlite://", 1)
    return _normalize_postgres_scheme(url)


def normalize_database_url_for_alembic(database_url: str) -> str:
    """Map DATABASE_URL to a sync driver; Alembic runs on engine_from_config."""
    url = (database_url or "").strip()
    if not url:
        return url
    if url.startswith("sqlite+aiosqlite://"):
        return url.replace("sqlite+aiosqlite://", "sqlite://", 1)
    return _normalize_postgres_scheme(url)


def _enable_sqlite_foreign_keys(dbapi_connection: Any, _connection_record: Any) -> None:
    # SQLite ignores ON DELETE CASCADE unless enabled per connection.
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


def _create_async_engine(database_url: str) -> AsyncEngine:
    url = normalize_database_url_for_async(database_url)
    engine = create_async_engine(url, echo=False, pool_pre_ping=True)
    if url.startswith("sqlite"):
        event.listen(engine.sync_engine, "connect", _enable_sqlite_foreign_keys)
    return engine


@lru_cache(maxsize=4)
def get_engine() -> AsyncEngine:
    # Tests override settings.database_url and call reset_engine_cache().
    return _create_async_engine(settings.database_url)


def reset_engine_cache() -> None:
    dispose_engine_cache()


def dispose_engine_cache() -> None:
    if get_engine.cache_info().currsize:
        # Sync dispose of the underlying pool; aiosqlite threads exit with their connections.
        get_engine().sync_engine.dispose()
    get_engine.cache_clear()


async def init_db() -> None:
    # Local/test bootstrap only; production schema is owned by Alembic.
    from vault_backend import models  # noqa: F401

    engine = get_engine()
    async with engine.begin() as conn:
        await conn.run_sync(SQLModel.metadata.create_all)


@asynccontextmanager
async def session_scope() -> AsyncIterator[AsyncSession]:
    session_maker = async_sessionmaker(get_engine(), class_=AsyncSession, expire_on_commit=False)
    async with session_maker() as session:
        yield session
