from __future__ import annotations

from decimal import Decimal

import pytest
from pydantic import ValidationError
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from app.api.errors import ConflictError, InsufficientFundsError
from app.database.models import CardBatchStatus, EZwichCardBatch, FloatAccount, GLTransaction
from app.ledger.service import LedgerService
from app.schemas.common import Actor
from app.schemas.ezwich import CardBatchCreate, CardIssuanceCreate
from app.services.ezwich_card_service import EZwichCardService
from app.services.gl_account_service import GLAccountService


async def _balance_of(session: AsyncSession, code: str) -> Decimal:
    account = await GLAccountService().get_by_code(session, code)
    return await LedgerService().account_balance(session, account.id)


async def _receive_batch(
    session_factory: async_sessionmaker[AsyncSession],
    branch_setup: dict[str, int],
    actor: Actor,
    *,
    code: str = "b-001",
    quantity: int = 10,
    unit_cost: str = "8.00",
) -> EZwichCardBatch:
    async with session_factory() as session:
        return await EZwichCardService().create_batch(
            session,
            CardBatchCreate(
                branch_id=branch_setup["branch_id"],
                batch_code=code,
                quantity_received=quantity,
                unit_cost=Decimal(unit_cost),
                partner_bank="GCB Bank",
                payment_float_account_id=branch_setup["momo_id"],
            ),
            actor,
        )


def _issue(branch_setup: dict[str, int], card_number: str, **overrides) -> CardIssuanceCreate:
    fields = {
        "branch_id": branch_setup["branch_id"],
        "card_number": card_number,
        "customer_name": "Ama Mensah",
        "customer_phone": "024 555 0101",
    }
    fields.update(overrides)
    return CardIssuanceCreate(**fields)


def test_paid_batch_needs_payment_float() -> None:
    with pytest.raises(ValidationError):
        CardBatchCreate(branch_id=1, batch_code="b-1", quantity_received=5, unit_cost="2.00", partner_bank="GCB")

    free = CardBatchCreate(
        branch_id=1, batch_code=" b-1 ", quantity_received=5, partner_bank="GCB", card_type="Gold Plus"
    )
    assert free.batch_code == "B-1"
    assert free.card_type == "gold_plus"


@pytest.mark.asyncio
async def test_batch_purchase_pays_from_float_into_inventory(
    session_factory: async_sessionmaker[AsyncSession], branch_setup: dict[str, int], actor: Actor
) -> None:
    batch = await _receive_batch(session_factory, branch_setup, actor)

    assert batch.batch_code == "B-001"
    assert batch.total_cost == Decimal("80.00")
    assert batch.quantity_available == 10
    assert batch.gl_transaction_id is not None

    async with session_factory() as session:
        momo = await session.get(FloatAccount, branch_setup["momo_id"])
        inventory = await _balance_of(session, "1300")

    assert momo.current_balance == Decimal("420.00")
    assert inventory == Decimal("80.00")

    with pytest.raises(ConflictError):
        await _receive_batch(session_factory, branch_setup, actor)


@pytest.mark.asyncio
async def test_batch_larger_than_float_is_not_recorded(
    session_factory: async_sessionmaker[AsyncSession], branch_setup: dict[str, int], actor: Actor
) -> None:
    with pytest.raises(InsufficientFundsError):
        await _receive_batch(session_factory, branch_setup, actor, quantity=100, unit_cost="6.00")

    async with session_factory() as session:
        batches = await session.execute(select(func.count(EZwichCardBatch.id)))
        momo = await session.get(FloatAccount, branch_setup["momo_id"])

    assert batches.scalar_one() == 0
    assert momo.current_balance == Decimal("500.00")


@pytest.mark.asyncio
async def test_issuing_a_card_takes_stock_and_books_fee_and_cost(
    session_factory: async_sessionmaker[AsyncSession], branch_setup: dict[str, int], actor: Actor
) -> None:
    batch = await _receive_batch(session_factory, branch_setup, actor)
    service = EZwichCardService()

    async with session_factory() as session:
        issuance = await service.issue_card(session, _issue(branch_setup, "6280 0000 1111"), actor)

    assert issuance.card_number == "628000001111"
    assert issuance.batch_id == batch.id
    assert issuance.fee_charged == Decimal("15.00")
    assert issuance.float_account_id == branch_setup["till_id"]
    assert issuance.expiry_date.year == issuance.issue_date.year + 3

    async with session_factory() as session:
        stock = await service.get_batch(session, batch.id)
        till = await session.get(FloatAccount, branch_setup["till_id"])
        lines = await LedgerService().lines_for(session, issuance.gl_transaction_id)
        revenue = await _balance_of(session, "4002")
        cost = await _balance_of(session, "5011")
        inventory = await _balance_of(session, "1300")

    assert stock.quantity_issued == 1
    assert stock.quantity_available == 9
    assert till.current_balance == Decimal("1015.00")
    assert sum(line.debit for line in lines) == sum(line.credit for line in lines) == Decimal("23.00")
    assert len(lines) == 4
    assert revenue == Decimal("15.00")
    assert cost == Decimal("8.00")
    assert inventory == Decimal("72.00")

    async with session_factory() as session:
        with pytest.raises(ConflictError):
            await service.issue_card(session, _issue(branch_setup, "628000001111"), actor)


@pytest.mark.asyncio
async def test_last_card_depletes_batch_and_next_issue_is_refused(
    session_factory: async_sessionmaker[AsyncSession], branch_setup: dict[str, int], actor: Actor
) -> None:
    await _receive_batch(session_factory, branch_setup, actor, code="small", quantity=1, unit_cost="0")
    service = EZwichCardService()
    async with session_factory() as session:
        postings_before = (await session.execute(select(func.count(GLTransaction.id)))).scalar_one()

    async with session_factory() as session:
        await service.issue_card(session, _issue(branch_setup, "628000002222", fee=Decimal("0")), actor)

    async with session_factory() as session:
        batches = await service.list_batches(session, branch_id=branch_setup["branch_id"])
        in_stock = await service.list_batches(session, branch_id=branch_setup["branch_id"], in_stock_only=True)
        total, _ = await service.list_issuances(session, offset=0, limit=10, branch_id=branch_setup["branch_id"])
        postings = await session.execute(select(func.count(GLTransaction.id)))

    assert batches[0].status == CardBatchStatus.DEPLETED.value
    assert in_stock == []
    assert total == 1
    # A free card from a free batch posts nothing.
    assert postings.scalar_one() == postings_before

    async with session_factory() as session:
        with pytest.raises(ConflictError):
            await service.issue_card(session, _issue(branch_setup, "628000003333"), actor)


@pytest.mark.asyncio
async def test_oldest_batch_with_stock_is_used_first(
    session_factory: async_sessionmaker[AsyncSession], branch_setup: dict[str, int], actor: Actor
) -> None:
    first = await _receive_batch(session_factory, branch_setup, actor, code="first", quantity=1, unit_cost="0")
    second = await _receive_batch(session_factory, branch_setup, actor, code="second", quantity=5, unit_cost="0")
    service = EZwichCardService()

    issued = []
    for number in ("628000004441", "628000004442"):
        async with session_factory() as session:
            issuance = await service.issue_card(session, _issue(branch_setup, number), actor)
        issued.append(issuance.batch_id)

    assert issued == [first.id, second.id]

    async with session_factory() as session:
        with pytest.raises(ConflictError):
            await service.issue_card(session, _issue(branch_setup, "628000004443", batch_id=first.id), actor)


@pytest.mark.asyncio
async def test_failed_fee_posting_keeps_card_in_stock(
    session_factory: async_sessionmaker[AsyncSession], branch_setup: dict[str, int], actor: Actor
) -> None:
    batch = await _receive_batch(session_factory, branch_setup, actor, code="keep", quantity=2, unit_cost="0")
    service = EZwichCardService()

    async with session_factory() as session:
        till = await session.get(FloatAccount, branch_setup["till_id"])
        till.is_active = False
        await session.commit()

    async with session_factory() as session:
        with pytest.raises(ConflictError):
            await service.issue_card(
                session, _issue(branch_setup, "628000005555", float_account_id=branch_setup["till_id"]), actor
            )

    async with session_factory() as session:
        stock = await service.get_batch(session, batch.id)
        total, _ = await service.list_issuances(session, offset=0, limit=10)

    assert stock.quantity_issued == 0
    assert total == 0
