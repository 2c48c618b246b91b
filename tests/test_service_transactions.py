from __future__ import annotations

from decimal import Decimal

import pytest
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from app.api.errors import ConflictError, InsufficientFundsError, NotFoundError, ValidationError
from app.database.models import (
    FloatAccount,
    FloatAccountType,
    GLTransaction,
    GLTransactionStatus,
    ServiceTransaction,
    ServiceTransactionStatus,
)
from app.ledger.service import LedgerService
from app.schemas.common import Actor
from app.schemas.float_account import FloatAccountCreate
from app.schemas.service_transaction import ServiceTransactionCreate
from app.services.float_service import FloatService
from app.services.gl_account_service import GLAccountService
from app.services.service_transaction_service import ServiceTransactionService


async def _balances(session_factory: async_sessionmaker[AsyncSession], *account_ids: int) -> list[Decimal]:
    async with session_factory() as session:
        return [(await session.get(FloatAccount, account_id)).current_balance for account_id in account_ids]


@pytest.mark.asyncio
async def test_momo_cash_in_moves_float_to_till(
    session_factory: async_sessionmaker[AsyncSession], branch_setup: dict[str, int], actor: Actor
) -> None:
    async with session_factory() as session:
        transaction = await ServiceTransactionService().create_transaction(
            session,
            ServiceTransactionCreate(
                branch_id=branch_setup["branch_id"],
                service="momo",
                transaction_type="cash-in",
                amount=Decimal("200"),
                phone_number="0240000000",
            ),
            actor,
        )

    assert transaction.status == ServiceTransactionStatus.COMPLETED.value
    assert transaction.fee == Decimal("0.00")
    assert transaction.provider == "MTN"
    assert transaction.reference.startswith("MOMO-")
    assert await _balances(session_factory, branch_setup["momo_id"], branch_setup["till_id"]) == [
        Decimal("300.00"),
        Decimal("1200.00"),
    ]


@pytest.mark.asyncio
async def test_cash_out_fee_is_booked_as_revenue(
    session_factory: async_sessionmaker[AsyncSession], branch_setup: dict[str, int], actor: Actor
) -> None:
    async with session_factory() as session:
        transaction = await ServiceTransactionService().create_transaction(
            session,
            ServiceTransactionCreate(
                branch_id=branch_setup["branch_id"],
                service="momo",
                transaction_type="cash-out",
                amount=Decimal("100"),
                fee=Decimal("2"),
            ),
            actor,
        )

    async with session_factory() as session:
        revenue = await GLAccountService().get_by_code(session, "4001")
        revenue_balance = await LedgerService().account_balance(session, revenue.id)
        lines = await LedgerService().lines_for(session, transaction.gl_transaction_id)

    assert revenue_balance == Decimal("2.00")
    assert sum(line.debit for line in lines) == sum(line.credit for line in lines) == Decimal("102.00")
    assert await _balances(session_factory, branch_setup["momo_id"], branch_setup["till_id"]) == [
        Decimal("600.00"),
        Decimal("902.00"),
    ]


@pytest.mark.asyncio
async def test_insufficient_float_rolls_back_everything(
    session_factory: async_sessionmaker[AsyncSession], branch_setup: dict[str, int], actor: Actor
) -> None:
    async with session_factory() as session:
        with pytest.raises(InsufficientFundsError):
            await ServiceTransactionService().create_transaction(
                session,
                ServiceTransactionCreate(
                    branch_id=branch_setup["branch_id"],
                    service="momo",
                    transaction_type="cash-in",
                    amount=Decimal("600"),
                    reference="MOMO-FAIL-1",
                ),
                actor,
            )

    async with session_factory() as session:
        stored = await session.execute(select(func.count(ServiceTransaction.id)))
        postings = await session.execute(select(func.count(GLTransaction.id)))
        assert stored.scalar_one() == 0
        assert postings.scalar_one() == 2
    assert await _balances(session_factory, branch_setup["momo_id"], branch_setup["till_id"]) == [
        Decimal("500.00"),
        Decimal("1000.00"),
    ]


@pytest.mark.asyncio
async def test_jumia_collection_and_settlement_use_liability(
    session_factory: async_sessionmaker[AsyncSession], branch_setup: dict[str, int], actor: Actor
) -> None:
    service = ServiceTransactionService()

    async with session_factory() as session:
        await service.create_transaction(
            session,
            ServiceTransactionCreate(
                branch_id=branch_setup["branch_id"],
                service="jumia",
                transaction_type="pod_collection",
                amount=Decimal("300"),
            ),
            actor,
        )
    async with session_factory() as session:
        liability = await GLAccountService().get_by_code(session, "2500")
        collected = await LedgerService().account_balance(session, liability.id)
    assert collected == Decimal("300.00")

    async with session_factory() as session:
        settlement = await service.create_transaction(
            session,
            ServiceTransactionCreate(
                branch_id=branch_setup["branch_id"],
                service="jumia",
                transaction_type="settlement",
                amount=Decimal("120"),
            ),
            actor,
        )
    async with session_factory() as session:
        remaining = await LedgerService().account_balance(session, liability.id)

    assert settlement.float_account_id is None
    assert remaining == Decimal("180.00")
    assert await _balances(session_factory, branch_setup["till_id"]) == [Decimal("1180.00")]


@pytest.mark.asyncio
async def test_ezwich_withdrawal_charges_default_fee(
    session_factory: async_sessionmaker[AsyncSession], branch_setup: dict[str, int], actor: Actor
) -> None:
    async with session_factory() as session:
        ezwich = await FloatService().create_float_account(
            session,
            FloatAccountCreate(
                branch_id=branch_setup["branch_id"], account_type=FloatAccountType.E_ZWICH, provider="E-Zwich"
            ),
            actor,
        )
    async with session_factory() as session:
        transaction = await ServiceTransactionService().create_transaction(
            session,
            ServiceTransactionCreate(
                branch_id=branch_setup["branch_id"],
                service="E-Zwich",
                transaction_type="withdrawal",
                amount=Decimal("400"),
            ),
            actor,
        )

    assert transaction.service == "e_zwich"
    assert transaction.fee == Decimal("6.00")
    assert await _balances(session_factory, ezwich.id, branch_setup["till_id"]) == [
        Decimal("400.00"),
        Decimal("606.00"),
    ]


@pytest.mark.asyncio
async def test_reversal_restores_balances_and_marks_postings(
    session_factory: async_sessionmaker[AsyncSession], branch_setup: dict[str, int], actor: Actor
) -> None:
    service = ServiceTransactionService()

    async with session_factory() as session:
        transaction = await service.create_transaction(
            session,
            ServiceTransactionCreate(
                branch_id=branch_setup["branch_id"],
                service="momo",
                transaction_type="cash-out",
                amount=Decimal("100"),
                fee=Decimal("2"),
            ),
            actor,
        )
    async with session_factory() as session:
        reversed_transaction = await service.reverse_transaction(session, transaction.id, actor, "Customer dispute")

    assert reversed_transaction.status == ServiceTransactionStatus.REVERSED.value
    assert await _balances(session_factory, branch_setup["momo_id"], branch_setup["till_id"]) == [
        Decimal("500.00"),
        Decimal("1000.00"),
    ]

    async with session_factory() as session:
        original_gl = await session.get(GLTransaction, transaction.gl_transaction_id)
        reversal_gl = await session.get(GLTransaction, reversed_transaction.reversal_gl_transaction_id)
        revenue = await GLAccountService().get_by_code(session, "4001")
        revenue_balance = await LedgerService().account_balance(session, revenue.id)

    assert original_gl.status == GLTransactionStatus.REVERSED.value
    assert reversal_gl.reversal_of_id == original_gl.id
    assert revenue_balance == Decimal("0.00")

    async with session_factory() as session:
        with pytest.raises(ConflictError):
            await service.reverse_transaction(session, transaction.id, actor, "Again")


@pytest.mark.asyncio
async def test_duplicate_reference_is_rejected(
    session_factory: async_sessionmaker[AsyncSession], branch_setup: dict[str, int], actor: Actor
) -> None:
    service = ServiceTransactionService()
    payload = ServiceTransactionCreate(
        branch_id=branch_setup["branch_id"],
        service="momo",
        transaction_type="cash-in",
        amount=Decimal("10"),
        reference="CLIENT-REF-1",
    )

    async with session_factory() as session:
        await service.create_transaction(session, payload, actor)
    async with session_factory() as session:
        with pytest.raises(ConflictError):
            await service.create_transaction(session, payload, actor)

    assert await _balances(session_factory, branch_setup["momo_id"]) == [Decimal("490.00")]


@pytest.mark.asyncio
async def test_unknown_service_and_type_are_rejected(
    session_factory: async_sessionmaker[AsyncSession], branch_setup: dict[str, int], actor: Actor
) -> None:
    service = ServiceTransactionService()

    async with session_factory() as session:
        with pytest.raises(ValidationError):
            await service.create_transaction(
                session,
                ServiceTransactionCreate(
                    branch_id=branch_setup["branch_id"], service="lottery", transaction_type="sale", amount="5"
                ),
                actor,
            )
        with pytest.raises(ValidationError):
            await service.create_transaction(
                session,
                ServiceTransactionCreate(
                    branch_id=branch_setup["branch_id"], service="momo", transaction_type="refund", amount="5"
                ),
                actor,
            )
        with pytest.raises(NotFoundError):
            await service.create_transaction(
                session,
                ServiceTransactionCreate(
                    branch_id=branch_setup["branch_id"], service="power", transaction_type="sale", amount="5"
                ),
                actor,
            )


@pytest.mark.asyncio
async def test_reference_taken_by_concurrent_writer_returns_conflict(
    session_factory: async_sessionmaker[AsyncSession],
    branch_setup: dict[str, int],
    actor: Actor,
    monkeypatch: pytest.MonkeyPatch,
) -> None:
    service = ServiceTransactionService()
    lookup_till = service.float_service.cash_in_till

    async def cash_in_till_after_competing_insert(session: AsyncSession, branch_id: int) -> FloatAccount:
        # Another request commits the same reference after the duplicate check ran.
        session.add(
            ServiceTransaction(
                branch_id=branch_id,
                service="momo",
                transaction_type="cash-in",
                amount=Decimal("10"),
                fee=Decimal("0"),
                reference="CLIENT-REF-RACE",
                processed_by="1002",
            )
        )
        await session.flush()
        return await lookup_till(session, branch_id)

    monkeypatch.setattr(service.float_service, "cash_in_till", cash_in_till_after_competing_insert)

    async with session_factory() as session:
        with pytest.raises(ConflictError):
            await service.create_transaction(
                session,
                ServiceTransactionCreate(
                    branch_id=branch_setup["branch_id"],
                    service="momo",
                    transaction_type="cash-in",
                    amount=Decimal("25"),
                    reference="CLIENT-REF-RACE",
                ),
                actor,
            )

    assert await _balances(session_factory, branch_setup["momo_id"], branch_setup["till_id"]) == [
        Decimal("500.00"),
        Decimal("1000.00"),
    ]
    async with session_factory() as session:
        stored = await session.execute(select(func.count(ServiceTransaction.id)))
    assert stored.scalar_one() == 0
