from __future__ import annotations

import asyncio
import logging
from datetime import timedelta

import pytest
from sqlmodel import select

from vault_backend.db import session_scope
from vault_backend.errors import NotFoundError, ValidationError
from vault_backend.models_shares import Share, ShareDocument
from vault_backend.repositories import shares_repo
from vault_backend.services.shares_service import ShareLinkManager

from conftest import FakeClock, Seeder


async def _share_row(token: str) -> Share:
    async with session_scope() as session:
        row = (await session.exec(select(Share).where(Share.token == token))).first()
        assert row is not None
        return row


async def _count_shares() -> int:
    async with session_scope() as session:
        return len(list((await session.exec(select(Share))).all()))


@pytest.mark.anyio
async def test_create_public_document_share(db, seed: Seeder, manager: ShareLinkManager, clock: FakeClock):
    owner = await seed.user("a@x.com")
    doc = await seed.document(owner, "charter.pdf")

    created = await manager.create_document_share(
        visibility="public", owner_user_id=owner, document_id=doc, expires_in_minutes=60
    )

    assert len(created.token) == 64
    assert created.url == f"http://frontend.test/share/{created.token}"
    assert created.type == "document_public"
    assert created.target_email is None
    assert created.expires_at == clock.now + timedelta(minutes=60)
    assert created.documents_count is None

    row = await _share_row(created.token)
    assert row.user_id == owner
    assert row.document_id == doc
    assert row.folder_id is None
    assert row.access_count == 0


@pytest.mark.anyio
async def test_public_share_ignores_supplied_email(db, seed: Seeder, manager: ShareLinkManager):
    owner = await seed.user("a@x.com")
    doc = await seed.document(owner, "charter.pdf")

    created = await manager.create_document_share(
        visibility="public", owner_user_id=owner, document_id=doc, target_email="b@x.com"
    )
    assert created.target_email is None


@pytest.mark.anyio
async def test_private_share_requires_email_and_lowercases_it(
    db, seed: Seeder, manager: ShareLinkManager
):
    owner = await seed.user("a@x.com")
    doc = await seed.document(owner, "charter.pdf")

    with pytest.raises(ValidationError) as exc:
        await manager.create_document_share(
            visibility="private", owner_user_id=owner, document_id=doc
        )
    assert exc.value.status_code == 400
    assert await _count_shares() == 0

    created = await manager.create_document_share(
        visibility="private", owner_user_id=owner, document_id=doc, target_email="  Bob@X.COM "
    )
    assert created.type == "document_private"
    assert created.target_email == "bob@x.com"
    assert (await _share_row(created.token)).target_email == "bob@x.com"


@pytest.mark.anyio
async def test_create_share_for_foreign_document_is_not_found(
    db, seed: Seeder, manager: ShareLinkManager
):
    owner = await seed.user("a@x.com")
    other = await seed.user("c@x.com")
    doc = await seed.document(owner, "charter.pdf")

    with pytest.raises(NotFoundError):
        await manager.create_document_share(
            visibility="public", owner_user_id=other, document_id=doc
        )
    with pytest.raises(NotFoundError):
        await manager.create_document_share(
            visibility="public", owner_user_id=owner, document_id=doc + 100
        )
    # Ownership is checked before the email rule.
    with pytest.raises(NotFoundError):
        await manager.create_document_share(
            visibility="private", owner_user_id=other, document_id=doc
        )
    assert await _count_shares() == 0


@pytest.mark.anyio
async def test_unlimited_and_zero_expiry(db, seed: Seeder, manager: ShareLinkManager, clock: FakeClock):
    owner = await seed.user("a@x.com")
    doc = await seed.document(owner, "charter.pdf")

    unlimited = await manager.create_document_share(
        visibility="public", owner_user_id=owner, document_id=doc, expires_in_minutes=-1
    )
    zero = await manager.create_document_share(
        visibility="public", owner_user_id=owner, document_id=doc, expires_in_minutes=0
    )
    assert unlimited.expires_at - clock.now > timedelta(days=365 * 50)
    assert zero.expires_at == unlimited.expires_at


@pytest.mark.anyio
async def test_resolve_counts_each_access(db, seed: Seeder, manager: ShareLinkManager):
    owner = await seed.user("a@x.com")
    company = await seed.company(owner, "Acme LLC")
    doc = await seed.document(owner, "charter.pdf", company_id=company)
    created = await manager.create_document_share(
        visibility="public", owner_user_id=owner, document_id=doc
    )

    first = await manager.resolve_share(created.token)
    assert first.document is not None
    assert first.document.id == doc
    assert first.company_name(company) == "Acme LLC"
    assert first.share.access_count == 0

    second = await manager.resolve_share(created.token)
    assert second.share.access_count == 1
    assert (await _share_row(created.token)).access_count == 2


@pytest.mark.anyio
async def test_concurrent_resolutions_are_all_counted(db, seed: Seeder, manager: ShareLinkManager):
    owner = await seed.user("a@x.com")
    doc = await seed.document(owner, "charter.pdf")
    created = await manager.create_document_share(
        visibility="public", owner_user_id=owner, document_id=doc
    )

    n = 5
    await asyncio.gather(*(manager.resolve_share(created.token) for _ in range(n)))
    assert (await _share_row(created.token)).access_count == n


@pytest.mark.anyio
async def test_counter_failure_does_not_fail_resolution(
    db, seed: Seeder, manager: ShareLinkManager, monkeypatch: pytest.MonkeyPatch, caplog
):
    owner = await seed.user("a@x.com")
    doc = await seed.document(owner, "charter.pdf")
    created = await manager.create_document_share(
        visibility="public", owner_user_id=owner, document_id=doc
    )

    async def _boom(*_args: object, **_kwargs: object) -> None:
        raise RuntimeError("counter store down")

    monkeypatch.setattr(shares_repo, "increment_access_count", _boom)
    with caplog.at_level(logging.ERROR, logger="vault_backend.services.shares_service"):
        resolved = await manager.resolve_share(created.token)

    assert resolved.document is not None
    assert "access count increment failed" in caplog.text
    assert any(r.levelno == logging.ERROR for r in caplog.records)
    assert (await _share_row(created.token)).access_count == 0


@pytest.mark.anyio
async def test_expired_share_is_indistinguishable_from_missing(
    db, seed: Seeder, manager: ShareLinkManager, clock: FakeClock
):
    owner = await seed.user("a@x.com")
    doc = await seed.document(owner, "charter.pdf")
    created = await manager.create_document_share(
        visibility="public", owner_user_id=owner, document_id=doc, expires_in_minutes=60
    )

    clock.advance(minutes=59)
    await manager.resolve_share(created.token)

    clock.advance(minutes=1)
    with pytest.raises(NotFoundError) as expired:
        await manager.resolve_share(created.token)
    with pytest.raises(NotFoundError) as missing:
        await manager.resolve_share("0" * 64)
    with pytest.raises(NotFoundError):
        await manager.resolve_share("   ")

    assert expired.value.message == missing.value.message
    assert expired.value.kind == missing.value.kind
    # Expired lookups are not counted.
    assert (await _share_row(created.token)).access_count == 1


@pytest.mark.anyio
async def test_folder_share_resolves_all_documents(db, seed: Seeder, manager: ShareLinkManager, clock: FakeClock):
    owner = await seed.user("a@x.com")
    company = await seed.company(owner, "Acme LLC")
    folder = await seed.folder(owner, "Taxes 2026", company_id=company)
    base = clock.now
    for i in range(3):
        await seed.document(
            owner,
            f"tax-{i}.pdf",
            company_id=company,
            folder_id=folder,
            created_at=base + timedelta(seconds=i),
        )
    await seed.document(owner, "elsewhere.pdf")

    created = await manager.create_folder_share(
        visibility="public", owner_user_id=owner, folder_id=folder
    )
    assert created.type == "folder_public"
    assert created.documents_count == 3

    resolved = await manager.resolve_share(created.token)
    assert resolved.folder is not None
    assert resolved.folder.id == folder
    assert [d.name for d in resolved.documents] == ["tax-0.pdf", "tax-1.pdf", "tax-2.pdf"]
    assert resolved.company_name(company) == "Acme LLC"


@pytest.mark.anyio
async def test_folder_share_for_foreign_folder_is_not_found(
    db, seed: Seeder, manager: ShareLinkManager
):
    owner = await seed.user("a@x.com")
    other = await seed.user("c@x.com")
    folder = await seed.folder(owner, "Taxes 2026")

    with pytest.raises(NotFoundError):
        await manager.create_folder_share(visibility="public", owner_user_id=other, folder_id=folder)


@pytest.mark.anyio
async def test_multiple_share_all_or_nothing(db, seed: Seeder, manager: ShareLinkManager):
    owner = await seed.user("a@x.com")
    other = await seed.user("c@x.com")
    mine_1 = await seed.document(owner, "one.pdf")
    mine_2 = await seed.document(owner, "two.pdf")
    theirs = await seed.document(other, "theirs.pdf")

    with pytest.raises(NotFoundError) as exc:
        await manager.create_multiple_share(
            visibility="public", owner_user_id=owner, document_ids=[mine_1, theirs, mine_2]
        )
    assert exc.value.message == "Some documents not found or not owned by user"
    assert await _count_shares() == 0

    async with session_scope() as session:
        assert list((await session.exec(select(ShareDocument))).all()) == []


@pytest.mark.anyio
async def test_multiple_share_dedupes_and_drops_deleted_documents(
    db, seed: Seeder, manager: ShareLinkManager
):
    owner = await seed.user("a@x.com")
    d1 = await seed.document(owner, "one.pdf")
    d2 = await seed.document(owner, "two.pdf")
    d3 = await seed.document(owner, "three.pdf")

    created = await manager.create_multiple_share(
        visibility="private",
        owner_user_id=owner,
        document_ids=[d3, d1, d3, d2],
        target_email="b@x.com",
    )
    assert created.type == "multiple_private"
    assert created.documents_count == 3

    resolved = await manager.resolve_share(created.token)
    assert [d.id for d in resolved.documents] == [d3, d1, d2]

    await seed.delete_document(d1)
    resolved = await manager.resolve_share(created.token)
    assert [d.id for d in resolved.documents] == [d3, d2]


@pytest.mark.anyio
async def test_multiple_share_rejects_empty_list(db, seed: Seeder, manager: ShareLinkManager):
    owner = await seed.user("a@x.com")
    with pytest.raises(ValidationError):
        await manager.create_multiple_share(visibility="public", owner_user_id=owner, document_ids=[])


@pytest.mark.anyio
async def test_deleting_document_cascades_to_its_shares(db, seed: Seeder, manager: ShareLinkManager):
    owner = await seed.user("a@x.com")
    doc = await seed.document(owner, "charter.pdf")
    created = await manager.create_document_share(
        visibility="public", owner_user_id=owner, document_id=doc
    )

    await seed.delete_document(doc)

    assert await _count_shares() == 0
    with pytest.raises(NotFoundError):
        await manager.resolve_share(created.token)


@pytest.mark.anyio
async def test_received_shares_lists_private_shares_newest_first(
    db, seed: Seeder, manager: ShareLinkManager, clock: FakeClock
):
    alice = await seed.user("alice@x.com", name="Alice")
    await seed.user("bob@x.com", name="Bob")
    doc = await seed.document(alice, "charter.pdf")
    folder = await seed.folder(alice, "Taxes 2026")
    await seed.document(alice, "tax.pdf", folder_id=folder)

    doc_share = await manager.create_document_share(
        visibility="private", owner_user_id=alice, document_id=doc, target_email="Bob@x.com"
    )
    clock.advance(minutes=1)
    folder_share = await manager.create_folder_share(
        visibility="private", owner_user_id=alice, folder_id=folder, target_email="bob@x.com"
    )
    clock.advance(minutes=1)
    await manager.create_document_share(visibility="public", owner_user_id=alice, document_id=doc)
    await manager.create_document_share(
        visibility="private", owner_user_id=alice, document_id=doc, target_email="carol@x.com"
    )

    entries = await manager.list_received_shares("BOB@X.COM")

    assert [e.content.share.token for e in entries] == [folder_share.token, doc_share.token]
    assert all(e.sender.email == "alice@x.com" for e in entries)
    assert entries[0].content.folder is not None
    assert len(entries[0].content.documents) == 1
    assert entries[1].content.document is not None

    # Listing is not an access.
    assert (await _share_row(doc_share.token)).access_count == 0
    assert await manager.list_received_shares("") == []
