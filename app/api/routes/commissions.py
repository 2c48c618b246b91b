"""Commission endpoints."""

from __future__ import annotations

from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.deps import get_commission_service, get_session
from app.database.models import CommissionStatus
from app.schemas.commission import (
    CommissionApprove,
    CommissionCreate,
    CommissionListResponse,
    CommissionMarkPaid,
    CommissionRead,
    CommissionReject,
)
from app.schemas.common import Actor
from app.security.auth import get_request_user
from app.services.commission_service import CommissionService

router = APIRouter(prefix="/commissions", tags=["commissions"])


@router.post("", response_model=CommissionRead, status_code=status.HTTP_201_CREATED)
async def create_commission(
    payload: CommissionCreate,
    session: AsyncSession = Depends(get_session),
    service: CommissionService = Depends(get_commission_service),
    actor: Actor = Depends(get_request_user),
) -> CommissionRead:
    """Record a commission and recognize it as receivable revenue."""

    commission = await service.create_commission(session, payload, actor)
    return CommissionRead.model_validate(commission)


@router.get("", response_model=CommissionListResponse)
async def list_commissions(
    offset: int = Query(default=0, ge=0),
    limit: int = Query(default=50, ge=1, le=500),
    branch_id: Optional[int] = Query(default=None),
    status_filter: Optional[CommissionStatus] = Query(default=None, alias="status"),
    source: Optional[str] = Query(default=None),
    month: Optional[date] = Query(default=None),
    session: AsyncSession = Depends(get_session),
    service: CommissionService = Depends(get_commission_service),
) -> CommissionListResponse:
    total, items = await service.list_commissions(
        session,
        offset=offset,
        limit=limit,
        branch_id=branch_id,
        status=status_filter,
        source=source,
        month=month,
    )
    return CommissionListResponse(total=total, items=[CommissionRead.model_validate(row) for row in items])


@router.get("/{commission_id}", response_model=CommissionRead)
async def get_commission(
    commission_id: int,
    session: AsyncSession = Depends(get_session),
    service: CommissionService = Depends(get_commission_service),
) -> CommissionRead:
    commission = await service.get_commission(session, commission_id)
    return CommissionRead.model_validate(commission)


@router.post("/{commission_id}/approve", response_model=CommissionRead)
async def approve_commission(
    commission_id: int,
    payload: CommissionApprove,
    session: AsyncSession = Depends(get_session),
    service: CommissionService = Depends(get_commission_service),
    actor: Actor = Depends(get_request_user),
) -> CommissionRead:
    commission = await service.approve(session, commission_id, payload, actor)
    return CommissionRead.model_validate(commission)


@router.post("/{commission_id}/reject", response_model=CommissionRead)
async def reject_commission(
    commission_id: int,
    payload: CommissionReject,
    session: AsyncSession = Depends(get_session),
    service: CommissionService = Depends(get_commission_service),
    actor: Actor = Depends(get_request_user),
) -> CommissionRead:
    commission = await service.reject(session, commission_id, payload, actor)
    return CommissionRead.model_validate(commission)


@router.post("/{commission_id}/mark-paid", response_model=CommissionRead)
async def mark_commission_paid(
    commission_id: int,
    payload: CommissionMarkPaid,
    session: AsyncSession = Depends(get_session),
    service: CommissionService = Depends(get_commission_service),
    actor: Actor = Depends(get_request_user),
) -> CommissionRead:
    """Settle an approved commission into its float account."""

    commission = await service.mark_paid(session, commission_id, payload, actor)
    return CommissionRead.model_validate(commission)
