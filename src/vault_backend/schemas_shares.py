from __future__ import annotations

from datetime import datetime
from typing import Annotated

from pydantic import EmailStr, Field, field_validator

from vault_backend.config import settings
from vault_backend.models_shares import UNLIMITED_EXPIRY_MINUTES, ShareVisibility
from vault_backend.schemas_common import ApiModel


# Row ids are 32-bit integer columns; larger values can never match a row.
MAX_ROW_ID = 2**31 - 1

RowId = Annotated[int, Field(ge=1, le=MAX_ROW_ID)]


class ShareCreateRequest(ApiModel):
    visibility: ShareVisibility
    email: EmailStr | None = None
    # -1 = unlimited; upper bound is SHARE_MAX_EXPIRES_IN_MINUTES.
    expires_in_minutes: int | None = Field(default=None, ge=UNLIMITED_EXPIRY_MINUTES)

    @field_validator("expires_in_minutes")
    @classmethod
    def _check_expiry_upper_bound(cls, v: int | None) -> int | None:
        if v is not None and v > settings.share_max_expires_in_minutes:
            raise ValueError(
                "expiresInMinutes must be -1 (unlimited) or between 1 minute and "
                f"{settings.share_max_expires_in_minutes} minutes"
            )
        return v


class MultipleShareCreateRequest(ShareCreateRequest):
    document_ids: list[RowId] = Field(min_length=1, max_length=500)


class ShareCreated(ApiModel):
    token: str
    url: str
    type: str
    target_email: str | None = None
    expires_at: datetime
    documents_count: int | None = None


class CompanyRef(ApiModel):
    id: int
    name: str


class SharedDocument(ApiModel):
    id: int
    name: str
    category: str
    file_url: str | None = None
    mime_type: str | None = None
    created_at: datetime
    company: CompanyRef | None = None


class SharedFolder(ApiModel):
    id: int
    name: str
    category: str
    created_at: datetime
    company: CompanyRef | None = None
    documents: list[SharedDocument] = Field(default_factory=list)


class ShareMeta(ApiModel):
    token: str
    type: str
    expires_at: datetime
    access_count: int
    target_email: str | None = None


class SharedContent(ApiModel):
    share: ShareMeta
    document: SharedDocument | None = None
    folder: SharedFolder | None = None
    documents: list[SharedDocument] | None = None


class ShareSender(ApiModel):
    id: int
    email: str
    name: str


class ReceivedShare(ApiModel):
    id: int
    token: str
    type: str
    created_at: datetime
    expires_at: datetime
    access_count: int
    # "from" is a keyword; the wire name is set explicitly.
    sender: ShareSender = Field(alias="from")
    document: SharedDocument | None = None
    folder: SharedFolder | None = None
    documents: list[SharedDocument] | None = None
