"""Financial report endpoints."""

from __future__ import annotations

from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.deps import get_report_service, get_session
from app.api.errors import ValidationError
from app.schemas.report import BalanceSheetReport, ProfitLossReport, ReconciliationReport, TrialBalanceReport
from app.services.report_service import ReportService

router = APIRouter(prefix="/reports", tags=["reports"])


@router.get("/trial-balance", response_model=TrialBalanceReport)
async def trial_balance_report(
    as_of: Optional[date] = Query(default=None),
    branch_id: Optional[int] = Query(default=None),
    session: AsyncSession = Depends(get_session),
    service: ReportService = Depends(get_report_service),
) -> TrialBalanceReport:
    return await service.trial_balance(session, as_of=as_of, branch_id=branch_id)


@router.get("/profit-loss", response_model=ProfitLossReport)
async def profit_loss_report(
    date_from: Optional[date] = Query(default=None),
    date_to: Optional[date] = Query(default=None),
    branch_id: Optional[int] = Query(default=None),
    session: AsyncSession = Depends(get_session),
    service: ReportService = Depends(get_report_service),
) -> ProfitLossReport:
    """Revenue and expenses for the period."""

    if date_from is not None and date_to is not None and date_from > date_to:
        raise ValidationError("date_from must not be after date_to")
    return await service.profit_and_loss(session, date_from=date_from, date_to=date_to, branch_id=branch_id)


@router.get("/balance-sheet", response_model=BalanceSheetReport)
async def balance_sheet_report(
    as_of: Optional[date] = Query(default=None),
    branch_id: Optional[int] = Query(default=None),
    session: AsyncSession = Depends(get_session),
    service: ReportService = Depends(get_report_service),
) -> BalanceSheetReport:
    return await service.balance_sheet(session, as_of=as_of, branch_id=branch_id)


@router.get("/reconciliation", response_model=ReconciliationReport)
async def reconciliation_report(
    branch_id: Optional[int] = Query(default=None),
    session: AsyncSession = Depends(get_session),
    service: ReportService = Depends(get_report_service),
) -> ReconciliationReport:
    """Float balances checked against their movements and their GL accounts."""

    return await service.reconciliation(session, branch_id=branch_id)
