from __future__ import annotations

from datetime import date
from decimal import Decimal

import pytest
from pydantic import ValidationError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from app.api.errors import ConflictError, InsufficientFundsError
from app.database.models import ExpenseStatus, FloatAccount, GLTransaction
from app.ledger.service import LedgerService
from app.schemas.common import Actor
from app.schemas.expense import ExpenseCreate, ExpenseReject
from app.services.expense_service import ExpenseService
from app.services.gl_account_service import GLAccountService


def test_expense_category_is_normalized_and_checked() -> None:
    payload = ExpenseCreate(
        branch_id=1, category="Office Supplies", amount="12.40", description="Paper", float_account_id=1
    )
    assert payload.category == "office_supplies"

    with pytest.raises(ValidationError):
        ExpenseCreate(branch_id=1, category="parties", amount="12.40", description="Cake", float_account_id=1)


@pytest.mark.asyncio
async def test_approval_pays_expense_from_float(
    session_factory: async_sessionmaker[AsyncSession], branch_setup: dict[str, int], actor: Actor
) -> None:
    service = ExpenseService()

    async with session_factory() as session:
        expense = await service.create_expense(
            session,
            ExpenseCreate(
                branch_id=branch_setup["branch_id"],
                category="utilities",
                amount=Decimal("120"),
                description="Electricity September",
                float_account_id=branch_setup["till_id"],
                expense_date=date(2026, 9, 30),
            ),
            actor,
        )
    assert expense.status == ExpenseStatus.PENDING.value
    assert expense.gl_transaction_id is None

    async with session_factory() as session:
        approved = await service.approve(session, expense.id, actor)

    assert approved.status == ExpenseStatus.APPROVED.value
    async with session_factory() as session:
        till = await session.get(FloatAccount, branch_setup["till_id"])
        posting = await session.get(GLTransaction, approved.gl_transaction_id)
        utilities = await GLAccountService().get_by_code(session, "5005")
        utilities_balance = await LedgerService().account_balance(session, utilities.id)

    assert till.current_balance == Decimal("880.00")
    assert posting.entry_date == date(2026, 9, 30)
    assert utilities_balance == Decimal("120.00")

    async with session_factory() as session:
        with pytest.raises(ConflictError):
            await service.approve(session, expense.id, actor)


@pytest.mark.asyncio
async def test_insufficient_float_leaves_expense_pending(
    session_factory: async_sessionmaker[AsyncSession], branch_setup: dict[str, int], actor: Actor
) -> None:
    service = ExpenseService()

    async with session_factory() as session:
        expense = await service.create_expense(
            session,
            ExpenseCreate(
                branch_id=branch_setup["branch_id"],
                category="rent",
                amount=Decimal("2500"),
                description="Quarterly rent",
                float_account_id=branch_setup["till_id"],
            ),
            actor,
        )
    async with session_factory() as session:
        with pytest.raises(InsufficientFundsError):
            await service.approve(session, expense.id, actor)

    async with session_factory() as session:
        stored = await service.get_expense(session, expense.id)
        till = await session.get(FloatAccount, branch_setup["till_id"])
    assert stored.status == ExpenseStatus.PENDING.value
    assert till.current_balance == Decimal("1000.00")

    async with session_factory() as session:
        rejected = await service.reject(session, expense.id, ExpenseReject(reason="Landlord not paid yet"), actor)
    assert rejected.status == ExpenseStatus.REJECTED.value
    assert rejected.gl_transaction_id is None

    async with session_factory() as session:
        total, items = await service.list_expenses(session, offset=0, limit=10, category="rent")
    assert total == 1
    assert items[0].rejection_reason == "Landlord not paid yet"
