from __future__ import annotations

from typing import cast

from sqlalchemy import func
from sqlalchemy.sql.elements import ColumnElement
from sqlmodel import select
from sqlmodel.ext.asyncio.session import AsyncSession

from vault_backend.models import Company, Document, Folder, User


async def get_document_owned(
    session: AsyncSession, *, user_id: int, document_id: int
) -> Document | None:
    stmt = select(Document).where(Document.user_id == user_id).where(Document.id == document_id)
    return (await session.exec(stmt)).first()


async def get_folder_owned(
    session: AsyncSession, *, user_id: int, folder_id: int
) -> Folder | None:
    stmt = select(Folder).where(Folder.user_id == user_id).where(Folder.id == folder_id)
    return (await session.exec(stmt)).first()


async def list_documents_owned(
    session: AsyncSession, *, user_id: int, document_ids: list[int]
) -> list[Document]:
    if not document_ids:
        return []
    stmt = (
        select(Document)
        .where(Document.user_id == user_id)
        .where(cast(ColumnElement[object], cast(object, Document.id)).in_(document_ids))
    )
    return list((await session.exec(stmt)).all())


async def count_folder_documents(session: AsyncSession, *, folder_id: int) -> int:
    stmt = select(func.count()).select_from(Document).where(Document.folder_id == folder_id)
    return int((await session.exec(stmt)).one())


async def get_document(session: AsyncSession, *, document_id: int) -> Document | None:
    return await session.get(Document, document_id)


async def get_folder(session: AsyncSession, *, folder_id: int) -> Folder | None:
    return await session.get(Folder, folder_id)


async def list_folder_documents(session: AsyncSession, *, folder_id: int) -> list[Document]:
    stmt = (
        select(Document)
        .where(Document.folder_id == folder_id)
        .order_by(
            cast(ColumnElement[object], cast(object, Document.created_at)).asc(),
            cast(ColumnElement[object], cast(object, Document.id)).asc(),
        )
    )
    return list((await session.exec(stmt)).all())


async def list_documents_by_ids(session: AsyncSession, *, document_ids: list[int]) -> list[Document]:
    """Fetch documents by id, preserving the order of ``document_ids``.

    Ids that no longer exist are skipped.
    """

    if not document_ids:
        return []
    stmt = select(Document).where(
        cast(ColumnElement[object], cast(object, Document.id)).in_(document_ids)
    )
    by_id = {int(d.id): d for d in (await session.exec(stmt)).all() if d.id is not None}
    return [by_id[i] for i in document_ids if i in by_id]


async def get_company_names(session: AsyncSession, *, company_ids: list[int]) -> dict[int, str]:
    ids = sorted({i for i in company_ids if i is not None})
    if not ids:
        return {}
    stmt = select(Company).where(cast(ColumnElement[object], cast(object, Company.id)).in_(ids))
    return {int(c.id): c.name for c in (await session.exec(stmt)).all() if c.id is not None}


async def get_users_by_ids(session: AsyncSession, *, user_ids: list[int]) -> dict[int, User]:
    ids = sorted(set(user_ids))
    if not ids:
        return {}
    stmt = select(User).where(cast(ColumnElement[object], cast(object, User.id)).in_(ids))
    return {int(u.id): u for u in (await session.exec(stmt)).all() if u.id is not None}
