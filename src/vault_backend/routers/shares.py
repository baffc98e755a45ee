"""Share links: creation (owner), resolution (anyone with the token), inbox."""

from __future__ import annotations

from typing import cast

from fastapi import APIRouter, Depends, Path, status

from vault_backend.deps import get_current_identity, get_optional_identity, get_share_manager
from vault_backend.errors import ForbiddenError, UnauthorizedError
from vault_backend.models import Document, assume_utc
from vault_backend.models_shares import Share
from vault_backend.schemas_common import DataResponse
from vault_backend.schemas_shares import (
    MAX_ROW_ID,
    CompanyRef,
    MultipleShareCreateRequest,
    ReceivedShare,
    ShareCreateRequest,
    ShareCreated,
    SharedContent,
    SharedDocument,
    SharedFolder,
    ShareMeta,
    ShareSender,
)
from vault_backend.security import Identity
from vault_backend.services.shares_service import CreatedShare, ResolvedShare, ShareLinkManager

router = APIRouter(prefix="/shares", tags=["shares"])


def enforce_private_target(share: Share, requester: Identity | None) -> None:
    """Refuse a private share to an authenticated caller with another email.

    Anonymous callers are let through: the token alone grants access unless
    the caller proves to be someone else.
    """

    if not share.is_private or requester is None or not requester.email:
        return
    target = (share.target_email or "").lower()
    if not target or target != requester.email.lower():
        raise ForbiddenError("Access denied. This content is intended for another user.")


def _company_ref(resolved: ResolvedShare, company_id: int | None) -> CompanyRef | None:
    name = resolved.company_name(company_id)
    if company_id is None or name is None:
        return None
    return CompanyRef(id=company_id, name=name)


def _shared_document(resolved: ResolvedShare, document: Document) -> SharedDocument:
    return SharedDocument(
        id=cast(int, document.id),
        name=document.name,
        category=document.category,
        file_url=document.file_url,
        mime_type=document.mime_type,
        created_at=document.created_at,
        company=_company_ref(resolved, document.company_id),
    )


def _subject_fields(resolved: ResolvedShare) -> dict[str, object]:
    kind = resolved.share.kind
    if kind == "document" and resolved.document is not None:
        return {"document": _shared_document(resolved, resolved.document)}
    if kind == "folder" and resolved.folder is not None:
        folder = resolved.folder
        return {
            "folder": SharedFolder(
                id=cast(int, folder.id),
                name=folder.name,
                category=folder.category,
                created_at=folder.created_at,
                company=_company_ref(resolved, folder.company_id),
                documents=[_shared_document(resolved, d) for d in resolved.documents],
            )
        }
    return {"documents": [_shared_document(resolved, d) for d in resolved.documents]}


def _share_created(created: CreatedShare) -> ShareCreated:
    return ShareCreated(
        token=created.token,
        url=created.url,
        type=created.type,
        target_email=created.target_email,
        expires_at=created.expires_at,
        documents_count=created.documents_count,
    )


@router.post(
    "/document/{document_id}",
    response_model=DataResponse[ShareCreated],
    status_code=status.HTTP_201_CREATED,
)
async def create_document_share(
    payload: ShareCreateRequest,
    document_id: int = Path(ge=1, le=MAX_ROW_ID),
    identity: Identity = Depends(get_current_identity),
    manager: ShareLinkManager = Depends(get_share_manager),
) -> DataResponse[ShareCreated]:
    created = await manager.create_document_share(
        visibility=payload.visibility,
        owner_user_id=identity.user_id,
        document_id=document_id,
        target_email=payload.email,
        expires_in_minutes=payload.expires_in_minutes,
    )
    return DataResponse[ShareCreated](data=_share_created(created))


@router.post(
    "/folder/{folder_id}",
    response_model=DataResponse[ShareCreated],
    status_code=status.HTTP_201_CREATED,
)
async def create_folder_share(
    payload: ShareCreateRequest,
    folder_id: int = Path(ge=1, le=MAX_ROW_ID),
    identity: Identity = Depends(get_current_identity),
    manager: ShareLinkManager = Depends(get_share_manager),
) -> DataResponse[ShareCreated]:
    created = await manager.create_folder_share(
        visibility=payload.visibility,
        owner_user_id=identity.user_id,
        folder_id=folder_id,
        target_email=payload.email,
        expires_in_minutes=payload.expires_in_minutes,
    )
    return DataResponse[ShareCreated](data=_share_created(created))


@router.post(
    "/multiple",
    response_model=DataResponse[ShareCreated],
    status_code=status.HTTP_201_CREATED,
)
async def create_multiple_share(
    payload: MultipleShareCreateRequest,
    identity: Identity = Depends(get_current_identity),
    manager: ShareLinkManager = Depends(get_share_manager),
) -> DataResponse[ShareCreated]:
    created = await manager.create_multiple_share(
        visibility=payload.visibility,
        owner_user_id=identity.user_id,
        document_ids=payload.document_ids,
        target_email=payload.email,
        expires_in_minutes=payload.expires_in_minutes,
    )
    return DataResponse[ShareCreated](data=_share_created(created))


# Declared before /{token} so "received" is never taken for a token.
@router.get(
    "/received",
    response_model=DataResponse[list[ReceivedShare]],
    response_model_exclude_none=True,
)
async def list_received_shares(
    identity: Identity = Depends(get_current_identity),
    manager: ShareLinkManager = Depends(get_share_manager),
) -> DataResponse[list[ReceivedShare]]:
    if not identity.email:
        raise UnauthorizedError("Unauthorized")

    entries = await manager.list_received_shares(identity.email)
    items: list[ReceivedShare] = []
    for entry in entries:
        share = entry.content.share
        sender = entry.sender
        items.append(
            ReceivedShare(
                id=cast(int, share.id),
                token=share.token,
                type=share.type,
                created_at=assume_utc(share.created_at),
                expires_at=assume_utc(share.expires_at),
                access_count=share.access_count,
                sender=ShareSender(id=cast(int, sender.id), email=sender.email, name=sender.name),
                **_subject_fields(entry.content),
            )
        )
    return DataResponse[list[ReceivedShare]](data=items)


# Only the key for the share kind is sent (document, folder or documents).
@router.get(
    "/{token}",
    response_model=DataResponse[SharedContent],
    response_model_exclude_none=True,
)
async def get_shared_content(
    token: str,
    identity: Identity | None = Depends(get_optional_identity),
    manager: ShareLinkManager = Depends(get_share_manager),
) -> DataResponse[SharedContent]:
    resolved = await manager.lookup(token)
    share = resolved.share
    enforce_private_target(share, identity)

    await manager.record_access(cast(int, share.id))

    content = SharedContent(
        share=ShareMeta(
            token=share.token,
            type=share.type,
            expires_at=assume_utc(share.expires_at),
            access_count=share.access_count,
            target_email=share.target_email,
        ),
        **_subject_fields(resolved),
    )
    return DataResponse[SharedContent](data=content)
