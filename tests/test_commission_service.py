from __future__ import annotations

from datetime import date
from decimal import Decimal

import pytest
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from app.api.errors import ConflictError
from app.database.models import CommissionStatus, FloatAccount
from app.ledger.service import LedgerService
from app.schemas.commission import CommissionApprove, CommissionCreate, CommissionMarkPaid, CommissionReject
from app.schemas.common import Actor
from app.services.commission_service import CommissionService, revenue_mapping_type
from app.services.gl_account_service import GLAccountService


def test_revenue_mapping_type_falls_back_to_other() -> None:
    assert revenue_mapping_type("mtn") == "revenue:mtn"
    assert revenue_mapping_type("lotto") == "revenue:other"


def _payload(branch_setup: dict[str, int], **overrides) -> CommissionCreate:
    data = {
        "branch_id": branch_setup["branch_id"],
        "source": "MTN",
        "source_name": "MTN Ghana",
        "float_account_id": branch_setup["momo_id"],
        "amount": Decimal("75.50"),
        "month": date(2026, 9, 17),
    }
    data.update(overrides)
    return CommissionCreate(**data)


async def _code_balance(session_factory: async_sessionmaker[AsyncSession], code: str) -> Decimal:
    async with session_factory() as session:
        account = await GLAccountService().get_by_code(session, code)
        return await LedgerService().account_balance(session, account.id)


@pytest.mark.asyncio
async def test_commission_lifecycle_recognize_approve_pay(
    session_factory: async_sessionmaker[AsyncSession], branch_setup: dict[str, int], actor: Actor
) -> None:
    service = CommissionService()

    async with session_factory() as session:
        commission = await service.create_commission(session, _payload(branch_setup), actor)

    assert commission.status == CommissionStatus.PENDING.value
    assert commission.month == date(2026, 9, 1)
    assert await _code_balance(session_factory, "1200") == Decimal("75.50")
    assert await _code_balance(session_factory, "4001") == Decimal("75.50")

    async with session_factory() as session:
        with pytest.raises(ConflictError):
            await service.mark_paid(session, commission.id, CommissionMarkPaid(), actor)

    async with session_factory() as session:
        approved = await service.approve(session, commission.id, CommissionApprove(notes="Statement matched"), actor)
    assert approved.status == CommissionStatus.APPROVED.value
    assert approved.approved_by == actor.id

    async with session_factory() as session:
        paid = await service.mark_paid(
            session, commission.id, CommissionMarkPaid(payment_reference="MTN-STMT-09"), actor
        )
    assert paid.status == CommissionStatus.PAID.value
    assert paid.payment_method == "float"

    assert await _code_balance(session_factory, "1200") == Decimal("0.00")
    assert await _code_balance(session_factory, "4001") == Decimal("75.50")
    async with session_factory() as session:
        momo = await session.get(FloatAccount, branch_setup["momo_id"])
    assert momo.current_balance == Decimal("575.50")

    async with session_factory() as session:
        with pytest.raises(ConflictError):
            await service.reject(session, commission.id, CommissionReject(reason="late"), actor)


@pytest.mark.asyncio
async def test_rejecting_commission_reverses_revenue(
    session_factory: async_sessionmaker[AsyncSession], branch_setup: dict[str, int], actor: Actor
) -> None:
    service = CommissionService()

    async with session_factory() as session:
        commission = await service.create_commission(
            session, _payload(branch_setup, source="lotto", source_name="Lotto Partner"), actor
        )
    assert await _code_balance(session_factory, "4300") == Decimal("75.50")

    async with session_factory() as session:
        rejected = await service.reject(session, commission.id, CommissionReject(reason="Not our branch"), actor)

    assert rejected.status == CommissionStatus.REJECTED.value
    assert rejected.approval_notes == "Not our branch"
    assert await _code_balance(session_factory, "4300") == Decimal("0.00")
    assert await _code_balance(session_factory, "1200") == Decimal("0.00")

    async with session_factory() as session:
        total, items = await service.list_commissions(
            session, offset=0, limit=10, status=CommissionStatus.REJECTED
        )
    assert total == 1
    assert items[0].id == commission.id


@pytest.mark.asyncio
async def test_duplicate_commission_reference_is_rejected(
    session_factory: async_sessionmaker[AsyncSession], branch_setup: dict[str, int], actor: Actor
) -> None:
    service = CommissionService()

    async with session_factory() as session:
        await service.create_commission(session, _payload(branch_setup, reference="COM-SEP-MTN"), actor)
    async with session_factory() as session:
        with pytest.raises(ConflictError):
            await service.create_commission(session, _payload(branch_setup, reference="COM-SEP-MTN"), actor)
