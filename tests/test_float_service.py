from __future__ import annotations

from decimal import Decimal

import pytest
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from app.api.errors import ConflictError, InsufficientFundsError, ValidationError
from app.database.models import FloatAccount, FloatAccountType, FloatTransaction, GLTransaction
from app.ledger.service import LedgerService
from app.schemas.common import Actor
from app.schemas.float_account import (
    BalanceAdjustmentRequest,
    FloatAccountCreate,
    FloatThresholdUpdate,
    RechargeRequest,
    WithdrawRequest,
)
from app.services.branch_service import BranchService
from app.services.float_service import FloatService
from app.services.mapping_service import MappingService
from app.services.report_service import ReportService


@pytest.mark.asyncio
async def test_opening_balance_is_booked_against_capital(
    session_factory: async_sessionmaker[AsyncSession], branch_setup: dict[str, int]
) -> None:
    ledger = LedgerService()

    async with session_factory() as session:
        till = await session.get(FloatAccount, branch_setup["till_id"])
        assert till.current_balance == Decimal("1000.00")
        assert await ledger.account_balance(session, till.gl_account_id) == Decimal("1000.00")

        capital = await MappingService().resolve(session, "float_operations", "initial", branch_setup["branch_id"])
        assert capital.code == "3001"
        assert await ledger.account_balance(session, capital.id) == Decimal("1500.00")

        moves = await session.execute(
            select(FloatTransaction).where(FloatTransaction.float_account_id == till.id)
        )
        (opening,) = moves.scalars().all()
        assert opening.transaction_type == "initial_balance"
        assert opening.balance_before == Decimal("0.00")
        assert opening.balance_after == Decimal("1000.00")


@pytest.mark.asyncio
async def test_duplicate_float_account_is_rejected(
    session_factory: async_sessionmaker[AsyncSession], branch_setup: dict[str, int], actor: Actor
) -> None:
    async with session_factory() as session:
        with pytest.raises(ConflictError):
            await FloatService().create_float_account(
                session,
                FloatAccountCreate(
                    branch_id=branch_setup["branch_id"], account_type=FloatAccountType.MOMO, provider="MTN"
                ),
                actor,
            )


@pytest.mark.asyncio
async def test_recharge_moves_float_between_accounts(
    session_factory: async_sessionmaker[AsyncSession], branch_setup: dict[str, int], actor: Actor
) -> None:
    service = FloatService()

    async with session_factory() as session:
        result = await service.recharge(
            session,
            branch_setup["momo_id"],
            RechargeRequest(source_account_id=branch_setup["till_id"], amount=Decimal("200")),
            actor,
        )

    assert result.balance_of(branch_setup["till_id"]) == Decimal("800.00")
    assert result.balance_of(branch_setup["momo_id"]) == Decimal("700.00")
    assert {move.amount for move in result.float_transactions} == {Decimal("-200.00"), Decimal("200.00")}
    assert all(move.gl_transaction_id == result.gl_transaction.id for move in result.float_transactions)


@pytest.mark.asyncio
async def test_recharge_with_insufficient_source_changes_nothing(
    session_factory: async_sessionmaker[AsyncSession], branch_setup: dict[str, int], actor: Actor
) -> None:
    service = FloatService()

    async with session_factory() as session:
        with pytest.raises(InsufficientFundsError):
            await service.recharge(
                session,
                branch_setup["till_id"],
                RechargeRequest(source_account_id=branch_setup["momo_id"], amount=Decimal("500.01")),
                actor,
            )

    async with session_factory() as session:
        momo = await session.get(FloatAccount, branch_setup["momo_id"])
        till = await session.get(FloatAccount, branch_setup["till_id"])
        gl_count = len((await session.execute(select(GLTransaction.id))).scalars().all())
    assert momo.current_balance == Decimal("500.00")
    assert till.current_balance == Decimal("1000.00")
    assert gl_count == 2


@pytest.mark.asyncio
async def test_recharge_into_itself_is_rejected(
    session_factory: async_sessionmaker[AsyncSession], branch_setup: dict[str, int], actor: Actor
) -> None:
    async with session_factory() as session:
        with pytest.raises(ValidationError):
            await FloatService().recharge(
                session,
                branch_setup["momo_id"],
                RechargeRequest(source_account_id=branch_setup["momo_id"], amount=Decimal("1")),
                actor,
            )


@pytest.mark.asyncio
async def test_withdraw_moves_float_into_till(
    session_factory: async_sessionmaker[AsyncSession], branch_setup: dict[str, int], actor: Actor
) -> None:
    async with session_factory() as session:
        result = await FloatService().withdraw(
            session, branch_setup["momo_id"], WithdrawRequest(amount=Decimal("150")), actor
        )

    assert result.balance_of(branch_setup["momo_id"]) == Decimal("350.00")
    assert result.balance_of(branch_setup["till_id"]) == Decimal("1150.00")


@pytest.mark.asyncio
async def test_negative_adjustment_debits_adjustment_account(
    session_factory: async_sessionmaker[AsyncSession], branch_setup: dict[str, int], actor: Actor
) -> None:
    ledger = LedgerService()

    async with session_factory() as session:
        result = await FloatService().adjust_balance(
            session,
            branch_setup["momo_id"],
            BalanceAdjustmentRequest(amount=Decimal("-20"), description="Count shortfall"),
            actor,
        )
        adjustments = await MappingService().resolve(
            session, "float_operations", "adjustment", branch_setup["branch_id"]
        )
        adjustment_balance = await ledger.account_balance(session, adjustments.id)

    assert result.balance_of(branch_setup["momo_id"]) == Decimal("480.00")
    assert result.float_transactions[0].transaction_type == "adjustment_debit"
    assert adjustments.code == "3300"
    assert adjustment_balance == Decimal("-20.00")


@pytest.mark.asyncio
async def test_statement_totals_and_low_balance_alert(
    session_factory: async_sessionmaker[AsyncSession], branch_setup: dict[str, int], actor: Actor
) -> None:
    service = FloatService()

    async with session_factory() as session:
        await service.withdraw(session, branch_setup["momo_id"], WithdrawRequest(amount=Decimal("450")), actor)

    async with session_factory() as session:
        account, opening, rows = await service.statement(session, branch_setup["momo_id"])
        alerts = await service.low_balance_alerts(session, branch_id=branch_setup["branch_id"])

    assert opening == Decimal("0")
    assert [row.amount for row in rows] == [Decimal("500.00"), Decimal("-450.00")]
    assert rows[-1].balance_after == account.current_balance == Decimal("50.00")
    assert [alert.id for alert in alerts] == [branch_setup["momo_id"]]


@pytest.mark.asyncio
async def test_deactivate_requires_empty_account(
    session_factory: async_sessionmaker[AsyncSession], branch_setup: dict[str, int], actor: Actor
) -> None:
    service = FloatService()

    async with session_factory() as session:
        with pytest.raises(ConflictError):
            await service.deactivate(session, branch_setup["momo_id"], actor)

    async with session_factory() as session:
        await service.withdraw(session, branch_setup["momo_id"], WithdrawRequest(amount=Decimal("500")), actor)

    async with session_factory() as session:
        account = await service.deactivate(session, branch_setup["momo_id"], actor)
    assert account.is_active is False

    async with session_factory() as session:
        with pytest.raises(ConflictError):
            await service.recharge(
                session,
                branch_setup["momo_id"],
                RechargeRequest(source_account_id=branch_setup["till_id"], amount=Decimal("10")),
                actor,
            )


@pytest.mark.asyncio
async def test_update_thresholds(
    session_factory: async_sessionmaker[AsyncSession], branch_setup: dict[str, int], actor: Actor
) -> None:
    async with session_factory() as session:
        account = await FloatService().update_thresholds(
            session,
            branch_setup["till_id"],
            FloatThresholdUpdate(min_threshold=Decimal("50"), max_threshold=Decimal("5000")),
            actor,
        )
    assert account.min_threshold == Decimal("50")
    assert account.max_threshold == Decimal("5000")


@pytest.mark.asyncio
async def test_initialize_branch_is_repeatable(
    session_factory: async_sessionmaker[AsyncSession], branch_setup: dict[str, int], actor: Actor
) -> None:
    service = BranchService()

    async with session_factory() as session:
        created, accounts = await service.initialize_branch(session, branch_setup["branch_id"], actor)
    async with session_factory() as session:
        created_again, accounts_again = await service.initialize_branch(session, branch_setup["branch_id"], actor)

    # Cash and MTN already existed.
    assert created == 7
    assert created_again == 0
    assert len(accounts) == len(accounts_again) == 9


@pytest.mark.asyncio
@pytest.mark.parametrize("provider", ["mtn", "M-T-N", " Mtn "])
async def test_provider_spelling_variant_is_rejected(
    session_factory: async_sessionmaker[AsyncSession], branch_setup: dict[str, int], actor: Actor, provider: str
) -> None:
    async with session_factory() as session:
        with pytest.raises(ConflictError):
            await FloatService().create_float_account(
                session,
                FloatAccountCreate(
                    branch_id=branch_setup["branch_id"],
                    account_type=FloatAccountType.MOMO,
                    provider=provider,
                    opening_balance=Decimal("200.00"),
                ),
                actor,
            )

    async with session_factory() as session:
        momo_accounts = await FloatService().list_accounts(session, account_type=FloatAccountType.MOMO)
        report = await ReportService().reconciliation(session, branch_id=branch_setup["branch_id"])
    assert [account.id for account in momo_accounts] == [branch_setup["momo_id"]]
    assert report.discrepancies == 0


@pytest.mark.asyncio
async def test_every_float_account_keeps_its_own_gl_account(
    session_factory: async_sessionmaker[AsyncSession], branch_setup: dict[str, int], actor: Actor
) -> None:
    async with session_factory() as session:
        await FloatService().create_float_account(
            session,
            FloatAccountCreate(
                branch_id=branch_setup["branch_id"],
                account_type=FloatAccountType.MOMO,
                provider="zpay",
                opening_balance=Decimal("200.00"),
            ),
            actor,
        )
    async with session_factory() as session:
        # The standard "Z-Pay" float maps to the same GL code as "zpay" and is skipped.
        created, accounts = await BranchService().initialize_branch(session, branch_setup["branch_id"], actor)
    async with session_factory() as session:
        report = await ReportService().reconciliation(session, branch_id=branch_setup["branch_id"])

    assert created == 6
    assert len({account.gl_account_id for account in accounts}) == len(accounts) == 9
    assert report.discrepancies == 0
    assert all(item.gl_drift == Decimal("0.00") for item in report.items)


@pytest.mark.asyncio
async def test_float_movements_are_append_only(
    session_factory: async_sessionmaker[AsyncSession], branch_setup: dict[str, int]
) -> None:
    async with session_factory() as session:
        moves = await session.execute(
            select(FloatTransaction).where(FloatTransaction.float_account_id == branch_setup["till_id"])
        )
        (opening,) = moves.scalars().all()
        opening_id = opening.id
        opening.amount = Decimal("1.00")
        with pytest.raises(ValueError):
            await session.flush()
        await session.rollback()

    async with session_factory() as session:
        opening = await session.get(FloatTransaction, opening_id)
        await session.delete(opening)
        with pytest.raises(ValueError):
            await session.flush()
        await session.rollback()

    async with session_factory() as session:
        stored = await session.execute(
            select(FloatTransaction.amount).where(FloatTransaction.float_account_id == branch_setup["till_id"])
        )
    assert stored.scalars().all() == [Decimal("1000.00")]
