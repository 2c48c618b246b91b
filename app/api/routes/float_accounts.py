"""Float account endpoints."""

from __future__ import annotations

from datetime import date
from decimal import Decimal
from typing import Optional

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.accounting.engine import OperationResult
from app.api.deps import get_float_service, get_session
from app.database.models import FloatAccountType
from app.schemas.common import Actor
from app.schemas.float_account import (
    BalanceAdjustmentRequest,
    FloatAccountCreate,
    FloatAccountRead,
    FloatOperationResponse,
    FloatStatement,
    FloatThresholdUpdate,
    FloatTransactionRead,
    RechargeRequest,
    WithdrawRequest,
)
from app.security.auth import get_request_user
from app.services.float_service import FloatService

router = APIRouter(prefix="/float-accounts", tags=["float-accounts"])


def _operation_response(result: OperationResult) -> FloatOperationResponse:
    return FloatOperationResponse(
        reference=result.float_transactions[0].reference,
        gl_transaction_id=result.gl_transaction.id,
        accounts=[FloatAccountRead.model_validate(account) for account in result.accounts.values()],
        transactions=[FloatTransactionRead.model_validate(row) for row in result.float_transactions],
    )


@router.post("", response_model=FloatAccountRead, status_code=status.HTTP_201_CREATED)
async def create_float_account(
    payload: FloatAccountCreate,
    session: AsyncSession = Depends(get_session),
    service: FloatService = Depends(get_float_service),
    actor: Actor = Depends(get_request_user),
) -> FloatAccountRead:
    """Create a float account; a positive opening balance is posted against share capital."""

    account = await service.create_float_account(session, payload, actor)
    return FloatAccountRead.model_validate(account)


@router.get("", response_model=list[FloatAccountRead])
async def list_float_accounts(
    branch_id: Optional[int] = Query(default=None),
    account_type: Optional[FloatAccountType] = Query(default=None),
    active_only: bool = Query(default=False),
    session: AsyncSession = Depends(get_session),
    service: FloatService = Depends(get_float_service),
) -> list[FloatAccountRead]:
    rows = await service.list_accounts(session, branch_id=branch_id, account_type=account_type, active_only=active_only)
    return [FloatAccountRead.model_validate(row) for row in rows]


@router.get("/alerts/low-balance", response_model=list[FloatAccountRead])
async def low_balance_alerts(
    branch_id: Optional[int] = Query(default=None),
    session: AsyncSession = Depends(get_session),
    service: FloatService = Depends(get_float_service),
) -> list[FloatAccountRead]:
    """Active accounts below their minimum threshold."""

    rows = await service.low_balance_alerts(session, branch_id=branch_id)
    return [FloatAccountRead.model_validate(row) for row in rows]


@router.get("/{account_id}", response_model=FloatAccountRead)
async def get_float_account(
    account_id: int,
    session: AsyncSession = Depends(get_session),
    service: FloatService = Depends(get_float_service),
) -> FloatAccountRead:
    account = await service.get_account(session, account_id)
    return FloatAccountRead.model_validate(account)


@router.post("/{account_id}/recharge", response_model=FloatOperationResponse)
async def recharge(
    account_id: int,
    payload: RechargeRequest,
    session: AsyncSession = Depends(get_session),
    service: FloatService = Depends(get_float_service),
    actor: Actor = Depends(get_request_user),
) -> FloatOperationResponse:
    result = await service.recharge(session, account_id, payload, actor)
    return _operation_response(result)


@router.post("/{account_id}/withdraw", response_model=FloatOperationResponse)
async def withdraw(
    account_id: int,
    payload: WithdrawRequest,
    session: AsyncSession = Depends(get_session),
    service: FloatService = Depends(get_float_service),
    actor: Actor = Depends(get_request_user),
) -> FloatOperationResponse:
    result = await service.withdraw(session, account_id, payload, actor)
    return _operation_response(result)


@router.post("/{account_id}/adjust", response_model=FloatOperationResponse)
async def adjust_balance(
    account_id: int,
    payload: BalanceAdjustmentRequest,
    session: AsyncSession = Depends(get_session),
    service: FloatService = Depends(get_float_service),
    actor: Actor = Depends(get_request_user),
) -> FloatOperationResponse:
    result = await service.adjust_balance(session, account_id, payload, actor)
    return _operation_response(result)


@router.put("/{account_id}/thresholds", response_model=FloatAccountRead)
async def update_thresholds(
    account_id: int,
    payload: FloatThresholdUpdate,
    session: AsyncSession = Depends(get_session),
    service: FloatService = Depends(get_float_service),
    actor: Actor = Depends(get_request_user),
) -> FloatAccountRead:
    account = await service.update_thresholds(session, account_id, payload, actor)
    return FloatAccountRead.model_validate(account)


@router.post("/{account_id}/deactivate", response_model=FloatAccountRead)
async def deactivate(
    account_id: int,
    session: AsyncSession = Depends(get_session),
    service: FloatService = Depends(get_float_service),
    actor: Actor = Depends(get_request_user),
) -> FloatAccountRead:
    account = await service.deactivate(session, account_id, actor)
    return FloatAccountRead.model_validate(account)


@router.get("/{account_id}/statement", response_model=FloatStatement)
async def statement(
    account_id: int,
    date_from: Optional[date] = Query(default=None),
    date_to: Optional[date] = Query(default=None),
    session: AsyncSession = Depends(get_session),
    service: FloatService = Depends(get_float_service),
) -> FloatStatement:
    """Movements in the period with opening and closing balances."""

    account, opening, rows = await service.statement(session, account_id, date_from=date_from, date_to=date_to)
    credits = sum((row.amount for row in rows if row.amount > 0), Decimal("0"))
    debits = sum((-row.amount for row in rows if row.amount < 0), Decimal("0"))
    return FloatStatement(
        account=FloatAccountRead.model_validate(account),
        date_from=date_from,
        date_to=date_to,
        opening_balance=opening,
        total_credits=credits,
        total_debits=debits,
        closing_balance=opening + credits - debits,
        transactions=[FloatTransactionRead.model_validate(row) for row in rows],
    )
