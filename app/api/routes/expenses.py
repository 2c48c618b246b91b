"""Expense endpoints."""

from __future__ import annotations

from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.deps import get_expense_service, get_session
from app.database.models import ExpenseStatus
from app.schemas.common import Actor
from app.schemas.expense import ExpenseCreate, ExpenseListResponse, ExpenseRead, ExpenseReject
from app.security.auth import get_request_user
from app.services.expense_service import ExpenseService

router = APIRouter(prefix="/expenses", tags=["expenses"])


@router.post("", response_model=ExpenseRead, status_code=status.HTTP_201_CREATED)
async def create_expense(
    payload: ExpenseCreate,
    session: AsyncSession = Depends(get_session),
    service: ExpenseService = Depends(get_expense_service),
    actor: Actor = Depends(get_request_user),
) -> ExpenseRead:
    expense = await service.create_expense(session, payload, actor)
    return ExpenseRead.model_validate(expense)


@router.get("", response_model=ExpenseListResponse)
async def list_expenses(
    offset: int = Query(default=0, ge=0),
    limit: int = Query(default=50, ge=1, le=500),
    branch_id: Optional[int] = Query(default=None),
    status_filter: Optional[ExpenseStatus] = Query(default=None, alias="status"),
    category: Optional[str] = Query(default=None),
    date_from: Optional[date] = Query(default=None),
    date_to: Optional[date] = Query(default=None),
    session: AsyncSession = Depends(get_session),
    service: ExpenseService = Depends(get_expense_service),
) -> ExpenseListResponse:
    total, items = await service.list_expenses(
        session,
        offset=offset,
        limit=limit,
        branch_id=branch_id,
        status=status_filter,
        category=category,
        date_from=date_from,
        date_to=date_to,
    )
    return ExpenseListResponse(total=total, items=[ExpenseRead.model_validate(row) for row in items])


@router.get("/{expense_id}", response_model=ExpenseRead)
async def get_expense(
    expense_id: int,
    session: AsyncSession = Depends(get_session),
    service: ExpenseService = Depends(get_expense_service),
) -> ExpenseRead:
    expense = await service.get_expense(session, expense_id)
    return ExpenseRead.model_validate(expense)


@router.post("/{expense_id}/approve", response_model=ExpenseRead)
async def approve_expense(
    expense_id: int,
    session: AsyncSession = Depends(get_session),
    service: ExpenseService = Depends(get_expense_service),
    actor: Actor = Depends(get_request_user),
) -> ExpenseRead:
    """Approve and pay the expense from its float account."""

    expense = await service.approve(session, expense_id, actor)
    return ExpenseRead.model_validate(expense)


@router.post("/{expense_id}/reject", response_model=ExpenseRead)
async def reject_expense(
    expense_id: int,
    payload: ExpenseReject,
    session: AsyncSession = Depends(get_session),
    service: ExpenseService = Depends(get_expense_service),
    actor: Actor = Depends(get_request_user),
) -> ExpenseRead:
    expense = await service.reject(session, expense_id, payload, actor)
    return ExpenseRead.model_validate(expense)
