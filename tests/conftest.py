from __future__ import annotations

import inspect
from collections.abc import AsyncGenerator
from datetime import datetime, timedelta
from pathlib import Path

import pytest

from vault_backend.config import settings
from vault_backend.db import dispose_engine_cache, get_engine, init_db, reset_engine_cache, session_scope
from vault_backend.models import Company, Document, Folder, User, utc_now
from vault_backend.services.shares_service import ShareLinkManager


@pytest.fixture
def anyio_backend() -> str:
    return "asyncio"


@pytest.fixture(autouse=True)
async def _dispose_engine_cache_per_test(  # pyright: ignore[reportUnusedFunction]
    anyio_backend: object,  # noqa: ARG001
) -> AsyncGenerator[None, None]:
    _ = anyio_backend
    yield

    # Dispose the async engine while the event loop is still alive so aiosqlite
    # worker threads shut down cleanly.
    if get_engine.cache_info().currsize:
        try:
            result = get_engine().dispose()
            if inspect.isawaitable(result):
                await result
        except Exception:
            # Best-effort: fall back to sync pool dispose below.
            pass

    dispose_engine_cache()


def pytest_sessionfinish(session: object, exitstatus: int) -> None:  # noqa: ARG001
    # Safety net: close cached engine so CI can exit cleanly.
    _ = session, exitstatus
    dispose_engine_cache()


class FakeClock:
    def __init__(self, now: datetime) -> None:
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs: float) -> None:
        self.now = self.now + timedelta(**kwargs)


class Seeder:
    """Inserts store rows (users, companies, folders, documents) for tests."""

    async def user(self, email: str, name: str = "") -> int:
        async with session_scope() as session:
            user = User(email=email.lower(), name=name or email.split("@")[0])
            session.add(user)
            await session.commit()
            await session.refresh(user)
            assert user.id is not None
            return int(user.id)

    async def company(self, user_id: int, name: str) -> int:
        async with session_scope() as session:
            company = Company(user_id=user_id, name=name, edrpou="12345678")
            session.add(company)
            await session.commit()
            await session.refresh(company)
            assert company.id is not None
            return int(company.id)

    async def folder(self, user_id: int, name: str, *, company_id: int | None = None) -> int:
        async with session_scope() as session:
            folder = Folder(user_id=user_id, name=name, category="tax", company_id=company_id)
            session.add(folder)
            await session.commit()
            await session.refresh(folder)
            assert folder.id is not None
            return int(folder.id)

    async def document(
        self,
        user_id: int,
        name: str,
        *,
        company_id: int | None = None,
        folder_id: int | None = None,
        created_at: datetime | None = None,
    ) -> int:
        async with session_scope() as session:
            document = Document(
                user_id=user_id,
                name=name,
                category="statutory",
                company_id=company_id,
                folder_id=folder_id,
                file_url=f"https://files.example.com/{name}",
                mime_type="application/pdf",
                created_at=created_at or utc_now(),
            )
            session.add(document)
            await session.commit()
            await session.refresh(document)
            assert document.id is not None
            return int(document.id)

    async def delete_document(self, document_id: int) -> None:
        async with session_scope() as session:
            document = await session.get(Document, document_id)
            assert document is not None
            await session.delete(document)
            await session.commit()


@pytest.fixture
async def db(tmp_path: Path, anyio_backend: object) -> AsyncGenerator[None, None]:  # noqa: ARG001
    _ = anyio_backend
    old_db = settings.database_url
    old_public = settings.public_base_url
    try:
        settings.database_url = f"sqlite:///{tmp_path / 'test-vault.db'}"
        settings.public_base_url = "http://frontend.test"
        reset_engine_cache()
        await init_db()
        yield
    finally:
        settings.database_url = old_db
        settings.public_base_url = old_public


@pytest.fixture
def seed() -> Seeder:
    return Seeder()


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock(utc_now())


@pytest.fixture
def manager(clock: FakeClock) -> ShareLinkManager:
    return ShareLinkManager(session_factory=session_scope, settings=settings, clock=clock)
