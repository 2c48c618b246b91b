"""Equity endpoints."""

from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.deps import get_equity_service, get_session
from app.database.models import EquityLedgerType
from app.schemas.common import Actor
from app.schemas.equity import (
    EquityBalancesResponse,
    EquityTransactionCreate,
    EquityTransactionListResponse,
    EquityTransactionRead,
)
from app.security.auth import get_request_user
from app.services.equity_service import EquityService

router = APIRouter(prefix="/equity", tags=["equity"])


@router.post("/transactions", response_model=EquityTransactionRead, status_code=status.HTTP_201_CREATED)
async def record_equity_transaction(
    payload: EquityTransactionCreate,
    session: AsyncSession = Depends(get_session),
    service: EquityService = Depends(get_equity_service),
    actor: Actor = Depends(get_request_user),
) -> EquityTransactionRead:
    row = await service.record_transaction(session, payload, actor)
    return EquityTransactionRead.model_validate(row)


@router.get("/transactions", response_model=EquityTransactionListResponse)
async def list_equity_transactions(
    offset: int = Query(default=0, ge=0),
    limit: int = Query(default=50, ge=1, le=500),
    branch_id: Optional[int] = Query(default=None),
    ledger_type: Optional[EquityLedgerType] = Query(default=None),
    session: AsyncSession = Depends(get_session),
    service: EquityService = Depends(get_equity_service),
) -> EquityTransactionListResponse:
    total, items = await service.list_transactions(
        session, offset=offset, limit=limit, branch_id=branch_id, ledger_type=ledger_type
    )
    return EquityTransactionListResponse(
        total=total,
        items=[EquityTransactionRead.model_validate(row) for row in items],
    )


@router.get("/balances", response_model=EquityBalancesResponse)
async def equity_balances(
    branch_id: Optional[int] = Query(default=None),
    session: AsyncSession = Depends(get_session),
    service: EquityService = Depends(get_equity_service),
) -> EquityBalancesResponse:
    """Balance of each equity ledger as recorded in the GL."""

    return await service.balances(session, branch_id=branch_id)
