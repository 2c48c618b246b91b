"""Service transaction endpoints."""

from __future__ import annotations

from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.deps import get_service_transaction_service, get_session
from app.schemas.common import Actor
from app.schemas.fee import normalize_service_name
from app.schemas.service_transaction import (
    ServiceTransactionCreate,
    ServiceTransactionListResponse,
    ServiceTransactionRead,
    ServiceTransactionReverseRequest,
)
from app.security.auth import get_request_user
from app.services.service_transaction_service import ServiceTransactionService

router = APIRouter(prefix="/transactions", tags=["transactions"])


@router.post("", response_model=ServiceTransactionRead, status_code=status.HTTP_201_CREATED)
async def create_transaction(
    payload: ServiceTransactionCreate,
    session: AsyncSession = Depends(get_session),
    service: ServiceTransactionService = Depends(get_service_transaction_service),
    actor: Actor = Depends(get_request_user),
) -> ServiceTransactionRead:
    """Record a counter transaction and move float for it."""

    transaction = await service.create_transaction(session, payload, actor)
    return ServiceTransactionRead.model_validate(transaction)


@router.get("", response_model=ServiceTransactionListResponse)
async def list_transactions(
    offset: int = Query(default=0, ge=0),
    limit: int = Query(default=50, ge=1, le=500),
    branch_id: Optional[int] = Query(default=None),
    service_name: Optional[str] = Query(default=None, alias="service"),
    status_filter: Optional[str] = Query(default=None, alias="status"),
    date_from: Optional[date] = Query(default=None),
    date_to: Optional[date] = Query(default=None),
    session: AsyncSession = Depends(get_session),
    service: ServiceTransactionService = Depends(get_service_transaction_service),
) -> ServiceTransactionListResponse:
    total, items = await service.list_transactions(
        session,
        offset=offset,
        limit=limit,
        branch_id=branch_id,
        service=normalize_service_name(service_name) if service_name else None,
        status=status_filter,
        date_from=date_from,
        date_to=date_to,
    )
    return ServiceTransactionListResponse(
        total=total,
        items=[ServiceTransactionRead.model_validate(row) for row in items],
    )


@router.get("/{transaction_id}", response_model=ServiceTransactionRead)
async def get_transaction(
    transaction_id: int,
    session: AsyncSession = Depends(get_session),
    service: ServiceTransactionService = Depends(get_service_transaction_service),
) -> ServiceTransactionRead:
    transaction = await service.get_transaction(session, transaction_id)
    return ServiceTransactionRead.model_validate(transaction)


@router.post("/{transaction_id}/reverse", response_model=ServiceTransactionRead)
async def reverse_transaction(
    transaction_id: int,
    payload: ServiceTransactionReverseRequest,
    session: AsyncSession = Depends(get_session),
    service: ServiceTransactionService = Depends(get_service_transaction_service),
    actor: Actor = Depends(get_request_user),
) -> ServiceTransactionRead:
    """Undo a completed transaction's float movements and GL posting."""

    transaction = await service.reverse_transaction(session, transaction_id, actor, payload.reason)
    return ServiceTransactionRead.model_validate(transaction)
