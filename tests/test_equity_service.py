from __future__ import annotations

from decimal import Decimal

import pytest
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from app.api.errors import InsufficientFundsError, ValidationError
from app.database.models import EntrySide, EquityLedgerType, FloatAccount
from app.schemas.common import Actor
from app.schemas.equity import EquityTransactionCreate
from app.services.equity_service import EquityService


@pytest.mark.asyncio
async def test_contribution_and_drawing_update_float_and_ledger(
    session_factory: async_sessionmaker[AsyncSession], branch_setup: dict[str, int], actor: Actor
) -> None:
    service = EquityService()

    async with session_factory() as session:
        contribution = await service.record_transaction(
            session,
            EquityTransactionCreate(
                branch_id=branch_setup["branch_id"],
                ledger_type=EquityLedgerType.OTHER_FUND,
                direction=EntrySide.CREDIT,
                amount=Decimal("400"),
                float_account_id=branch_setup["till_id"],
                particulars="Owner top-up",
            ),
            actor,
        )
    async with session_factory() as session:
        await service.record_transaction(
            session,
            EquityTransactionCreate(
                branch_id=branch_setup["branch_id"],
                ledger_type=EquityLedgerType.OTHER_FUND,
                direction=EntrySide.DEBIT,
                amount=Decimal("150"),
                float_account_id=branch_setup["till_id"],
                particulars="Owner drawing",
            ),
            actor,
        )

    assert contribution.gl_transaction_id is not None
    async with session_factory() as session:
        till = await session.get(FloatAccount, branch_setup["till_id"])
        balances = await service.balances(session, branch_id=branch_setup["branch_id"])
        total, items = await service.list_transactions(
            session, offset=0, limit=10, ledger_type=EquityLedgerType.OTHER_FUND
        )

    assert till.current_balance == Decimal("1250.00")
    by_ledger = {item.ledger_type: item.balance for item in balances.balances}
    assert by_ledger[EquityLedgerType.OTHER_FUND] == Decimal("250.00")
    # Opening balances were booked to share capital.
    assert by_ledger[EquityLedgerType.SHARE_CAPITAL] == Decimal("1500.00")
    assert balances.total == Decimal("1750.00")
    assert total == 2
    assert {item.direction for item in items} == {"credit", "debit"}


@pytest.mark.asyncio
async def test_drawing_beyond_float_is_rejected(
    session_factory: async_sessionmaker[AsyncSession], branch_setup: dict[str, int], actor: Actor
) -> None:
    service = EquityService()

    async with session_factory() as session:
        with pytest.raises(InsufficientFundsError):
            await service.record_transaction(
                session,
                EquityTransactionCreate(
                    branch_id=branch_setup["branch_id"],
                    ledger_type=EquityLedgerType.SHARE_CAPITAL,
                    direction=EntrySide.DEBIT,
                    amount=Decimal("600"),
                    float_account_id=branch_setup["momo_id"],
                    particulars="Too large",
                ),
                actor,
            )

    async with session_factory() as session:
        total, _ = await service.list_transactions(session, offset=0, limit=10)
    assert total == 0


@pytest.mark.asyncio
async def test_float_account_must_belong_to_branch(
    session_factory: async_sessionmaker[AsyncSession], branch_setup: dict[str, int], actor: Actor
) -> None:
    async with session_factory() as session:
        with pytest.raises(ValidationError):
            await EquityService().record_transaction(
                session,
                EquityTransactionCreate(
                    branch_id=branch_setup["branch_id"] + 1,
                    ledger_type=EquityLedgerType.SHARE_CAPITAL,
                    direction=EntrySide.CREDIT,
                    amount=Decimal("10"),
                    float_account_id=branch_setup["till_id"],
                    particulars="Wrong branch",
                ),
                actor,
            )
