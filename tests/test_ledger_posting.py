from __future__ import annotations

from decimal import Decimal

import pytest
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from app.api.errors import ConflictError, UnbalancedEntryError, ValidationError
from app.database.models import GLJournalEntry, GLTransaction, GLTransactionStatus
from app.database.session import unit_of_work
from app.ledger.service import JournalLine, LedgerService, PostingRequest, normal_balance, validate_lines
from app.services.gl_account_service import GLAccountService


def test_validate_lines_returns_totals() -> None:
    total_debit, total_credit = validate_lines(
        [JournalLine.dr(1, Decimal("150")), JournalLine.cr(2, Decimal("100")), JournalLine.cr(3, Decimal("50"))]
    )
    assert total_debit == Decimal("150.00")
    assert total_credit == Decimal("150.00")


@pytest.mark.parametrize(
    "lines, error",
    [
        ([JournalLine.dr(1, Decimal("10"))], ValidationError),
        ([JournalLine(1, Decimal("10"), Decimal("10")), JournalLine.cr(2, Decimal("10"))], ValidationError),
        ([JournalLine(1), JournalLine.cr(2, Decimal("10"))], ValidationError),
        ([JournalLine.dr(1, Decimal("10")), JournalLine.cr(2, Decimal("9.99"))], UnbalancedEntryError),
    ],
)
def test_validate_lines_rejects_malformed_entries(lines: list[JournalLine], error: type) -> None:
    with pytest.raises(error):
        validate_lines(lines)


def test_signed_line_picks_side() -> None:
    assert JournalLine.signed(1, Decimal("5")).debit == Decimal("5.00")
    credit = JournalLine.signed(1, Decimal("-5"))
    assert credit.credit == Decimal("5.00")
    assert credit.debit == Decimal("0")


def test_normal_balance_follows_account_type() -> None:
    assert normal_balance("Asset", Decimal("100"), Decimal("30")) == Decimal("70")
    assert normal_balance("Revenue", Decimal("10"), Decimal("60")) == Decimal("50")


async def _accounts(session: AsyncSession) -> tuple[int, int]:
    service = GLAccountService()
    await service.seed_default_chart(session)
    cash = await service.get_by_code(session, "1001")
    capital = await service.get_by_code(session, "3001")
    return cash.id, capital.id


@pytest.mark.asyncio
async def test_post_is_idempotent_on_source_key(session_factory: async_sessionmaker[AsyncSession]) -> None:
    ledger = LedgerService()

    async with session_factory() as session:
        cash_id, capital_id = await _accounts(session)
        request = PostingRequest(
            source_module="manual",
            source_transaction_type="journal_entry",
            source_transaction_id="JE-1",
            description="Capital injection",
            created_by="1001",
            lines=[JournalLine.dr(cash_id, Decimal("250")), JournalLine.cr(capital_id, Decimal("250"))],
        )
        async with unit_of_work(session):
            first = await ledger.post(session, request)
        async with unit_of_work(session):
            second = await ledger.post(session, request)

        assert first.id == second.id
        count = await session.execute(select(GLTransaction.id))
        assert len(count.scalars().all()) == 1
        assert await ledger.account_balance(session, cash_id) == Decimal("250.00")
        assert await ledger.account_balance(session, capital_id) == Decimal("250.00")


@pytest.mark.asyncio
async def test_reverse_posts_mirror_and_blocks_second_reversal(
    session_factory: async_sessionmaker[AsyncSession],
) -> None:
    ledger = LedgerService()

    async with session_factory() as session:
        cash_id, capital_id = await _accounts(session)
        async with unit_of_work(session):
            original = await ledger.post(
                session,
                PostingRequest(
                    source_module="manual",
                    source_transaction_type="journal_entry",
                    source_transaction_id="JE-2",
                    description="Capital injection",
                    created_by="1001",
                    lines=[JournalLine.dr(cash_id, Decimal("80")), JournalLine.cr(capital_id, Decimal("80"))],
                ),
            )
        async with unit_of_work(session):
            reversal = await ledger.reverse(session, original.id, created_by="1002", reason="typo")

        assert reversal.reversal_of_id == original.id
        refreshed = await ledger.get_transaction(session, original.id)
        assert refreshed.status == GLTransactionStatus.REVERSED.value

        lines = await session.execute(
            select(GLJournalEntry).where(GLJournalEntry.transaction_id == reversal.id).order_by(GLJournalEntry.id)
        )
        mirrored = [(row.account_id, row.debit, row.credit) for row in lines.scalars().all()]
        assert mirrored == [(cash_id, Decimal("0.00"), Decimal("80.00")), (capital_id, Decimal("80.00"), Decimal("0.00"))]
        assert await ledger.account_balance(session, cash_id) == Decimal("0.00")

        # A rollback expires loaded instances, so keep plain ids for the failing calls.
        original_id, reversal_id = original.id, reversal.id
        with pytest.raises(ConflictError):
            async with unit_of_work(session):
                await ledger.reverse(session, original_id, created_by="1002")
        with pytest.raises(ConflictError):
            async with unit_of_work(session):
                await ledger.reverse(session, reversal_id, created_by="1002")


@pytest.mark.asyncio
async def test_journal_lines_are_append_only(session_factory: async_sessionmaker[AsyncSession]) -> None:
    ledger = LedgerService()

    async with session_factory() as session:
        cash_id, capital_id = await _accounts(session)
        async with unit_of_work(session):
            posted = await ledger.post(
                session,
                PostingRequest(
                    source_module="manual",
                    source_transaction_type="journal_entry",
                    source_transaction_id="JE-3",
                    description="Capital injection",
                    created_by="1001",
                    lines=[JournalLine.dr(cash_id, Decimal("5")), JournalLine.cr(capital_id, Decimal("5"))],
                ),
            )
        line = (await ledger.lines_for(session, posted.id))[0]
        line.debit = Decimal("6")
        with pytest.raises(ValueError):
            await session.flush()
        await session.rollback()
