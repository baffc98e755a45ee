from __future__ import annotations

from typing import cast

import sqlalchemy as sa
from sqlalchemy.sql.elements import ColumnElement
from sqlmodel import SQLModel, select
from sqlmodel.ext.asyncio.session import AsyncSession

from vault_backend.models_shares import Share, ShareDocument


async def get_share_by_token(session: AsyncSession, *, token: str) -> Share | None:
    stmt = select(Share).where(Share.token == token)
    return (await session.exec(stmt)).first()


async def add_share(
    session: AsyncSession, *, share: Share, document_ids: list[int] | None = None
) -> Share:
    """Stage a share (and its document set) in the caller's transaction."""

    session.add(share)
    if document_ids:
        # Need the generated primary key for the join rows.
        await session.flush()
        share_id = cast(int, share.id)
        for position, document_id in enumerate(document_ids):
            session.add(
                ShareDocument(share_id=share_id, document_id=document_id, position=position)
            )
    return share


async def list_share_document_ids(session: AsyncSession, *, share_id: int) -> list[int]:
    stmt = (
        select(ShareDocument.document_id)
        .where(ShareDocument.share_id == share_id)
        .order_by(cast(ColumnElement[object], cast(object, ShareDocument.position)).asc())
    )
    return [int(v) for v in (await session.exec(stmt)).all()]


async def increment_access_count(session: AsyncSession, *, share_id: int) -> None:
    # Single UPDATE; concurrent increments never lose a count.
    table = SQLModel.metadata.tables["shares"]
    await session.exec(
        sa.update(table)
        .where(table.c.id == share_id)
        .values(access_count=table.c.access_count + 1)
    )  # pyright: ignore[reportCallIssue,reportArgumentType]


async def list_private_shares_for_email(
    session: AsyncSession, *, email: str, types: list[str]
) -> list[Share]:
    stmt = (
        select(Share)
        .where(Share.target_email == email)
        .where(cast(ColumnElement[object], cast(object, Share.type)).in_(types))
        .order_by(
            cast(ColumnElement[object], cast(object, Share.created_at)).desc(),
            cast(ColumnElement[object], cast(object, Share.id)).desc(),
        )
    )
    return list((await session.exec(stmt)).all())
