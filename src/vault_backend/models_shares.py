from __future__ import annotations

from datetime import datetime
from typing import Literal, Optional, cast

from sqlalchemy import DateTime
from sqlmodel import Field, SQLModel

from vault_backend.models import utc_now


ShareKind = Literal["document", "folder", "multiple"]
ShareVisibility = Literal["public", "private"]
ShareType = Literal[
    "document_public",
    "document_private",
    "folder_public",
    "folder_private",
    "multiple_public",
    "multiple_private",
]

# Sentinel for "never expires" in share creation requests.
UNLIMITED_EXPIRY_MINUTES = -1

SHARE_KINDS: tuple[ShareKind, ...] = ("document", "folder", "multiple")


def build_share_type(kind: ShareKind, visibility: ShareVisibility) -> ShareType:
    return cast(ShareType, f"{kind}_{visibility}")


def private_share_types() -> list[str]:
    return [build_share_type(k, "private") for k in SHARE_KINDS]


class Share(SQLModel, table=True):
    __tablename__ = "shares"  # pyright: ignore[reportAssignmentType]

    id: Optional[int] = Field(default=None, primary_key=True)

    # Capability token: 32 random bytes, hex encoded.
    token: str = Field(unique=True, index=True, min_length=64, max_length=64)
    type: str = Field(index=True, max_length=32)

    # Owner; checked only when the share is created.
    user_id: int = Field(index=True, foreign_key="users.id", ondelete="CASCADE")
    # Lowercased; set iff the share is private.
    target_email: Optional[str] = Field(default=None, index=True, max_length=255)

    # Exactly one subject per kind; `multiple` uses ShareDocument rows.
    document_id: Optional[int] = Field(
        default=None, index=True, foreign_key="documents.id", ondelete="CASCADE"
    )
    folder_id: Optional[int] = Field(
        default=None, index=True, foreign_key="folders.id", ondelete="CASCADE"
    )

    expires_at: datetime = Field(sa_type=DateTime(timezone=True), index=True)  # pyright: ignore[reportArgumentType]
    access_count: int = Field(default=0)
    created_at: datetime = Field(
        default_factory=utc_now,
        sa_type=DateTime(timezone=True),  # pyright: ignore[reportArgumentType]
        index=True,
    )

    @property
    def kind(self) -> ShareKind:
        return cast(ShareKind, self.type.rsplit("_", 1)[0])

    @property
    def visibility(self) -> ShareVisibility:
        return cast(ShareVisibility, self.type.rsplit("_", 1)[1])

    @property
    def is_private(self) -> bool:
        return self.visibility == "private"


class ShareDocument(SQLModel, table=True):
    __tablename__ = "share_documents"  # pyright: ignore[reportAssignmentType]

    share_id: int = Field(primary_key=True, foreign_key="shares.id", ondelete="CASCADE")
    document_id: int = Field(
        primary_key=True, index=True, foreign_key="documents.id", ondelete="CASCADE"
    )
    # Preserves the order the owner listed the documents in.
    position: int = Field(default=0)
