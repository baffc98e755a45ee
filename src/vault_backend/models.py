# basedpyright: reportAssignmentType=false
# basedpyright: reportIncompatibleVariableOverride=false
# basedpyright: reportUnusedImport=false

from __future__ import annotations

from datetime import datetime, timezone
from typing import Optional

from sqlmodel import Field, SQLModel


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def assume_utc(dt: datetime) -> datetime:
    # SQLite returns naive datetimes even for timezone=True columns.
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt


class User(SQLModel, table=True):
    __tablename__ = "users"  # pyright: ignore[reportAssignmentType,reportIncompatibleVariableOverride]

    id: Optional[int] = Field(default=None, primary_key=True)
    # Stored lowercase; matched against share target emails.
    email: str = Field(index=True, unique=True, min_length=3, max_length=255)
    name: str = Field(default="", max_length=200)
    created_at: datetime = Field(default_factory=utc_now, index=True)


class OwnedRow(SQLModel):
    user_id: int = Field(index=True, foreign_key="users.id", ondelete="CASCADE")
    created_at: datetime = Field(default_factory=utc_now, index=True)


class Company(OwnedRow, table=True):
    __tablename__ = "companies"  # pyright: ignore[reportAssignmentType,reportIncompatibleVariableOverride]

    id: Optional[int] = Field(default=None, primary_key=True)
    name: str = Field(min_length=1, max_length=255)
    edrpou: str = Field(default="", max_length=32)
    director: str = Field(default="", max_length=255)
    accountant: str = Field(default="", max_length=255)
    phone: str = Field(default="", max_length=64)
    email: str = Field(default="", max_length=255)


class Folder(OwnedRow, table=True):
    __tablename__ = "folders"  # pyright: ignore[reportAssignmentType,reportIncompatibleVariableOverride]

    id: Optional[int] = Field(default=None, primary_key=True)
    company_id: Optional[int] = Field(
        default=None, index=True, foreign_key="companies.id", ondelete="CASCADE"
    )
    name: str = Field(min_length=1, max_length=255)
    category: str = Field(default="", max_length=64)


class Document(OwnedRow, table=True):
    __tablename__ = "documents"  # pyright: ignore[reportAssignmentType,reportIncompatibleVariableOverride]

    id: Optional[int] = Field(default=None, primary_key=True)
    company_id: Optional[int] = Field(
        default=None, index=True, foreign_key="companies.id", ondelete="CASCADE"
    )
    # A folder's documents are the rows pointing at it.
    folder_id: Optional[int] = Field(
        default=None, index=True, foreign_key="folders.id", ondelete="SET NULL"
    )
    name: str = Field(min_length=1, max_length=255)
    category: str = Field(default="", max_length=64, index=True)
    # Object-store reference only; bytes never pass through this service.
    file_url: Optional[str] = Field(default=None, max_length=1024)
    mime_type: Optional[str] = Field(default=None, max_length=255)
    updated_at: datetime = Field(default_factory=utc_now, index=True)


# Import share models so Alembic sees them via `vault_backend.models`.
from . import models_shares as _models_shares  # noqa: E402,F401  # type: ignore
