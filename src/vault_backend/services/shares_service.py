from __future__ import annotations

import logging
import secrets
from collections.abc import Callable
from contextlib import AbstractAsyncContextManager
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import cast

from sqlmodel.ext.asyncio.session import AsyncSession

from vault_backend.config import Settings
from vault_backend.errors import NotFoundError, ValidationError
from vault_backend.models import Document, Folder, User, assume_utc, utc_now
from vault_backend.models_shares import (
    Share,
    UNLIMITED_EXPIRY_MINUTES,
    ShareKind,
    ShareVisibility,
    build_share_type,
    private_share_types,
)
from vault_backend.repositories import documents_repo, shares_repo


logger = logging.getLogger(__name__)

SessionFactory = Callable[[], AbstractAsyncContextManager[AsyncSession]]
Clock = Callable[[], datetime]

_TOKEN_BYTES = 32
_TOKEN_LOG_PREFIX_LEN = 8
_SHARE_NOT_FOUND = "Share link not found"


def generate_share_token() -> str:
    return secrets.token_hex(_TOKEN_BYTES)


def compute_expires_at(
    expires_in_minutes: int | None, *, now: datetime, unlimited_years: int = 100
) -> datetime:
    """Absolute expiry for a new share.

    -1 means unlimited and is stored as ``unlimited_years`` from now, so expiry
    checks stay a plain timestamp comparison. Positive values are minutes.
    Anything else (omitted, 0, other negatives) also falls back to unlimited.
    """

    unlimited = timedelta(days=365 * unlimited_years)
    if expires_in_minutes == UNLIMITED_EXPIRY_MINUTES:
        return now + unlimited
    if expires_in_minutes is not None and expires_in_minutes > 0:
        return now + timedelta(minutes=expires_in_minutes)
    return now + unlimited


def _normalize_target_email(visibility: ShareVisibility, target_email: str | None) -> str | None:
    if visibility != "private":
        return None
    email = (target_email or "").strip().lower()
    if not email:
        raise ValidationError("Target email is required for private share")
    return email


@dataclass(frozen=True)
class CreatedShare:
    token: str
    url: str
    type: str
    target_email: str | None
    expires_at: datetime
    documents_count: int | None = None


@dataclass
class ResolvedShare:
    share: Share
    document: Document | None = None
    folder: Folder | None = None
    # Folder contents for `folder`, the surviving document set for `multiple`.
    documents: list[Document] = field(default_factory=list)
    company_names: dict[int, str] = field(default_factory=dict)

    def company_name(self, company_id: int | None) -> str | None:
        if company_id is None:
            return None
        return self.company_names.get(company_id)


@dataclass(frozen=True)
class ReceivedShareEntry:
    sender: User
    content: ResolvedShare


class ShareLinkManager:
    """Creates, resolves and counts accesses to expiring share links.

    Built once at startup with an explicit store handle (``session_factory``)
    and handed to request handlers through ``vault_backend.deps``.
    """

    def __init__(
        self,
        *,
        session_factory: SessionFactory,
        settings: Settings,
        clock: Clock = utc_now,
    ) -> None:
        self._session_factory = session_factory
        self._settings = settings
        self._clock = clock

    def build_share_url(self, token: str) -> str:
        base = self._settings.public_base_url.rstrip("/")
        # Frontend route; the SPA calls GET /api/shares/{token}.
        return f"{base}/share/{token}"

    def _new_share(
        self,
        *,
        kind: ShareKind,
        visibility: ShareVisibility,
        owner_user_id: int,
        target_email: str | None,
        expires_in_minutes: int | None,
        document_id: int | None = None,
        folder_id: int | None = None,
    ) -> Share:
        now = self._clock()
        return Share(
            token=generate_share_token(),
            type=build_share_type(kind, visibility),
            user_id=owner_user_id,
            target_email=_normalize_target_email(visibility, target_email),
            document_id=document_id,
            folder_id=folder_id,
            expires_at=compute_expires_at(
                expires_in_minutes,
                now=now,
                unlimited_years=self._settings.share_unlimited_years,
            ),
            access_count=0,
            created_at=now,
        )

    def _created(self, share: Share, *, documents_count: int | None = None) -> CreatedShare:
        return CreatedShare(
            token=share.token,
            url=self.build_share_url(share.token),
            type=share.type,
            target_email=share.target_email,
            expires_at=assume_utc(share.expires_at),
            documents_count=documents_count,
        )

    async def create_document_share(
        self,
        *,
        visibility: ShareVisibility,
        owner_user_id: int,
        document_id: int,
        target_email: str | None = None,
        expires_in_minutes: int | None = None,
    ) -> CreatedShare:
        async with self._session_factory() as session:
            async with session.begin():
                document = await documents_repo.get_document_owned(
                    session, user_id=owner_user_id, document_id=document_id
                )
                if document is None:
                    raise NotFoundError("Document not found")

                share = self._new_share(
                    kind="document",
                    visibility=visibility,
                    owner_user_id=owner_user_id,
                    target_email=target_email,
                    expires_in_minutes=expires_in_minutes,
                    document_id=document.id,
                )
                await shares_repo.add_share(session, share=share)

        logger.info(
            "share link created type=%s document_id=%s owner=%s",
            share.type,
            document_id,
            owner_user_id,
        )
        return self._created(share)

    async def create_folder_share(
        self,
        *,
        visibility: ShareVisibility,
        owner_user_id: int,
        folder_id: int,
        target_email: str | None = None,
        expires_in_minutes: int | None = None,
    ) -> CreatedShare:
        async with self._session_factory() as session:
            async with session.begin():
                folder = await documents_repo.get_folder_owned(
                    session, user_id=owner_user_id, folder_id=folder_id
                )
                if folder is None:
                    raise NotFoundError("Folder not found")

                share = self._new_share(
                    kind="folder",
                    visibility=visibility,
                    owner_user_id=owner_user_id,
                    target_email=target_email,
                    expires_in_minutes=expires_in_minutes,
                    folder_id=folder.id,
                )
                documents_count = await documents_repo.count_folder_documents(
                    session, folder_id=folder_id
                )
                await shares_repo.add_share(session, share=share)

        logger.info(
            "share link created type=%s folder_id=%s documents=%s owner=%s",
            share.type,
            folder_id,
            documents_count,
            owner_user_id,
        )
        return self._created(share, documents_count=documents_count)

    async def create_multiple_share(
        self,
        *,
        visibility: ShareVisibility,
        owner_user_id: int,
        document_ids: list[int],
        target_email: str | None = None,
        expires_in_minutes: int | None = None,
    ) -> CreatedShare:
        # Collapse duplicates, keep the caller's order.
        unique_ids = list(dict.fromkeys(int(i) for i in document_ids))
        if not unique_ids:
            raise ValidationError("documentIds must be a non-empty array")

        async with self._session_factory() as session:
            async with session.begin():
                owned = await documents_repo.list_documents_owned(
                    session, user_id=owner_user_id, document_ids=unique_ids
                )
                if len(owned) != len(unique_ids):
                    raise NotFoundError("Some documents not found or not owned by user")

                share = self._new_share(
                    kind="multiple",
                    visibility=visibility,
                    owner_user_id=owner_user_id,
                    target_email=target_email,
                    expires_in_minutes=expires_in_minutes,
                )
                await shares_repo.add_share(session, share=share, document_ids=unique_ids)

        logger.info(
            "share link created type=%s documents=%s owner=%s",
            share.type,
            len(unique_ids),
            owner_user_id,
        )
        return self._created(share, documents_count=len(unique_ids))

    async def lookup(self, token: str) -> ResolvedShare:
        """Find an active share and hydrate its subject, without counting the access.

        Missing and expired tokens fail with the same NotFoundError.
        """

        token = (token or "").strip()
        if not token:
            raise NotFoundError(_SHARE_NOT_FOUND)

        async with self._session_factory() as session:
            share = await shares_repo.get_share_by_token(session, token=token)
            if share is None:
                raise NotFoundError(_SHARE_NOT_FOUND)

            if assume_utc(share.expires_at) <= self._clock():
                logger.info("share link expired token_prefix=%s", token[:_TOKEN_LOG_PREFIX_LEN])
                raise NotFoundError(_SHARE_NOT_FOUND)

            return await self._hydrate(session, share)

    async def record_access(self, share_id: int) -> None:
        # Best-effort: a failed counter write must not fail the read.
        try:
            async with self._session_factory() as session:
                await shares_repo.increment_access_count(session, share_id=share_id)
                await session.commit()
        except Exception:
            logger.error(
                "share access count increment failed share_id=%s", share_id, exc_info=True
            )

    async def resolve_share(self, token: str) -> ResolvedShare:
        resolved = await self.lookup(token)
        await self.record_access(cast(int, resolved.share.id))
        return resolved

    async def list_received_shares(self, email: str) -> list[ReceivedShareEntry]:
        """Private shares addressed to ``email``, newest first, with their sender."""

        normalized = (email or "").strip().lower()
        if not normalized:
            return []

        async with self._session_factory() as session:
            shares = await shares_repo.list_private_shares_for_email(
                session, email=normalized, types=private_share_types()
            )
            senders = await documents_repo.get_users_by_ids(
                session, user_ids=[s.user_id for s in shares]
            )

            entries: list[ReceivedShareEntry] = []
            for share in shares:
                sender = senders.get(share.user_id)
                if sender is None:
                    continue
                try:
                    content = await self._hydrate(session, share)
                except NotFoundError:
                    # Subject vanished; nothing left to show.
                    continue
                entries.append(ReceivedShareEntry(sender=sender, content=content))
            return entries

    async def _hydrate(self, session: AsyncSession, share: Share) -> ResolvedShare:
        resolved = ResolvedShare(share=share)
        kind = share.kind

        if kind == "document":
            document = None
            if share.document_id is not None:
                document = await documents_repo.get_document(session, document_id=share.document_id)
            if document is None:
                raise NotFoundError("Document not found for this share link")
            resolved.document = document
        elif kind == "folder":
            folder = None
            if share.folder_id is not None:
                folder = await documents_repo.get_folder(session, folder_id=share.folder_id)
            if folder is None or folder.id is None:
                raise NotFoundError("Folder not found for this share link")
            resolved.folder = folder
            resolved.documents = await documents_repo.list_folder_documents(
                session, folder_id=folder.id
            )
        else:
            document_ids = await shares_repo.list_share_document_ids(
                session, share_id=cast(int, share.id)
            )
            # Documents deleted since the share was created are dropped silently.
            resolved.documents = await documents_repo.list_documents_by_ids(
                session, document_ids=document_ids
            )

        company_ids = [d.company_id for d in resolved.documents if d.company_id is not None]
        if resolved.document is not None and resolved.document.company_id is not None:
            company_ids.append(resolved.document.company_id)
        if resolved.folder is not None and resolved.folder.company_id is not None:
            company_ids.append(resolved.folder.company_id)
        resolved.company_names = await documents_repo.get_company_names(
            session, company_ids=company_ids
        )
        return resolved
