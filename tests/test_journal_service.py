from __future__ import annotations

from decimal import Decimal

import pytest
from pydantic import ValidationError as SchemaValidationError
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from app.api.errors import ConflictError, NotFoundError, UnbalancedEntryError, ValidationError
from app.database.models import AuditLog, GLTransaction, GLTransactionStatus
from app.schemas.common import Actor
from app.schemas.gl import ManualJournalEntryCreate
from app.services.gl_account_service import GLAccountService
from app.services.journal_service import JournalService


async def _entry(session_factory: async_sessionmaker[AsyncSession], branch_id: int, **overrides) -> ManualJournalEntryCreate:
    async with session_factory() as session:
        accounts = GLAccountService()
        bank = await accounts.get_by_code(session, "1001")
        capital = await accounts.get_by_code(session, "3001")
    data = {
        "description": "Bank deposit of share capital",
        "branch_id": branch_id,
        "lines": [
            {"account_id": bank.id, "side": "debit", "amount": "1000"},
            {"account_id": capital.id, "side": "credit", "amount": "1000"},
        ],
    }
    data.update(overrides)
    return ManualJournalEntryCreate(**data)


def test_manual_entry_needs_two_lines() -> None:
    with pytest.raises(SchemaValidationError):
        ManualJournalEntryCreate(
            description="One-legged",
            branch_id=1,
            lines=[{"account_id": 1, "side": "debit", "amount": "10"}],
        )


@pytest.mark.asyncio
async def test_manual_entry_is_idempotent_by_reference(
    session_factory: async_sessionmaker[AsyncSession], branch_setup: dict[str, int], actor: Actor
) -> None:
    service = JournalService()
    payload = await _entry(session_factory, branch_setup["branch_id"], reference="JE-2026-001")

    async with session_factory() as session:
        first = await service.create_manual_entry(session, payload, actor)
    async with session_factory() as session:
        second = await service.create_manual_entry(session, payload, actor)

    assert first.id == second.id
    assert first.reference == "JE-2026-001"
    async with session_factory() as session:
        audits = await session.execute(
            select(func.count(AuditLog.id)).where(AuditLog.action == "gl_manual_entry")
        )
        assert audits.scalar_one() == 1


@pytest.mark.asyncio
async def test_unbalanced_manual_entry_is_rejected(
    session_factory: async_sessionmaker[AsyncSession], branch_setup: dict[str, int], actor: Actor
) -> None:
    payload = await _entry(session_factory, branch_setup["branch_id"])
    payload.lines[1].amount = Decimal("999.99")

    async with session_factory() as session:
        with pytest.raises(UnbalancedEntryError):
            await JournalService().create_manual_entry(session, payload, actor)


@pytest.mark.asyncio
async def test_manual_entry_for_unknown_branch(
    session_factory: async_sessionmaker[AsyncSession], branch_setup: dict[str, int], actor: Actor
) -> None:
    payload = await _entry(session_factory, branch_setup["branch_id"] + 100)

    async with session_factory() as session:
        with pytest.raises(NotFoundError):
            await JournalService().create_manual_entry(session, payload, actor)


@pytest.mark.asyncio
async def test_only_manual_postings_can_be_reversed_here(
    session_factory: async_sessionmaker[AsyncSession], branch_setup: dict[str, int], actor: Actor
) -> None:
    service = JournalService()
    payload = await _entry(session_factory, branch_setup["branch_id"])

    async with session_factory() as session:
        manual = await service.create_manual_entry(session, payload, actor)
    async with session_factory() as session:
        reversal = await service.reverse_manual_entry(session, manual.id, actor, reason="Posted twice")

    assert reversal.reversal_of_id == manual.id
    async with session_factory() as session:
        original = await session.get(GLTransaction, manual.id)
        opening = await session.execute(
            select(GLTransaction).where(GLTransaction.source_module == "float_operations").limit(1)
        )
        float_posting = opening.scalar_one()
    assert original.status == GLTransactionStatus.REVERSED.value

    async with session_factory() as session:
        with pytest.raises(ValidationError):
            await service.reverse_manual_entry(session, float_posting.id, actor)


@pytest.mark.asyncio
async def test_reference_owned_by_module_posting_is_rejected(
    session_factory: async_sessionmaker[AsyncSession], branch_setup: dict[str, int], actor: Actor
) -> None:
    async with session_factory() as session:
        opening = await session.execute(
            select(GLTransaction.reference).where(GLTransaction.source_module == "float_operations").limit(1)
        )
        taken_reference = opening.scalar_one()

    payload = await _entry(session_factory, branch_setup["branch_id"], reference=taken_reference)
    async with session_factory() as session:
        with pytest.raises(ConflictError):
            await JournalService().create_manual_entry(session, payload, actor)

    async with session_factory() as session:
        manual = await session.execute(
            select(func.count(GLTransaction.id)).where(GLTransaction.source_module == "manual")
        )
    assert manual.scalar_one() == 0
