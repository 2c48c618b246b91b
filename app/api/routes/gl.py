"""General-ledger endpoints: chart of accounts, mappings, postings."""

from __future__ import annotations

from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.deps import (
    get_gl_account_service,
    get_journal_service,
    get_ledger_service,
    get_mapping_service,
    get_report_service,
    get_session,
)
from app.database.models import AccountType
from app.ledger.service import AccountBalance, LedgerService
from app.schemas.common import Actor
from app.schemas.gl import (
    GLAccountBalanceRead,
    GLAccountCreate,
    GLAccountRead,
    GLMappingRead,
    GLMappingUpsert,
    GLReverseRequest,
    GLTransactionDetail,
    GLTransactionHistoryResponse,
    GLTransactionRead,
    JournalEntryRead,
    ManualJournalEntryCreate,
    SeedChartResponse,
)
from app.schemas.report import TrialBalanceReport
from app.security.auth import get_request_user
from app.services.gl_account_service import GLAccountService
from app.services.journal_service import JournalService
from app.services.mapping_service import MappingService
from app.services.report_service import ReportService

router = APIRouter(prefix="/gl", tags=["general-ledger"])


def _balance_read(row: AccountBalance) -> GLAccountBalanceRead:
    return GLAccountBalanceRead(
        **GLAccountRead.model_validate(row.account).model_dump(),
        total_debit=row.total_debit,
        total_credit=row.total_credit,
        balance=row.balance,
    )


async def _transaction_detail(
    session: AsyncSession,
    ledger: LedgerService,
    gl_transaction_id: int,
) -> GLTransactionDetail:
    transaction = await ledger.get_transaction(session, gl_transaction_id)
    lines = await ledger.lines_for(session, transaction.id)
    return GLTransactionDetail(
        **GLTransactionRead.model_validate(transaction).model_dump(),
        lines=[JournalEntryRead.model_validate(line) for line in lines],
    )


@router.get("/accounts", response_model=list[GLAccountBalanceRead])
async def list_accounts(
    branch_id: Optional[int] = Query(default=None),
    account_type: Optional[AccountType] = Query(default=None),
    include_inactive: bool = Query(default=False),
    session: AsyncSession = Depends(get_session),
    service: GLAccountService = Depends(get_gl_account_service),
) -> list[GLAccountBalanceRead]:
    """Chart of accounts with balances."""

    rows = await service.list_with_balances(
        session, branch_id=branch_id, account_type=account_type, include_inactive=include_inactive
    )
    return [_balance_read(row) for row in rows]


@router.post("/accounts", response_model=GLAccountRead, status_code=status.HTTP_201_CREATED)
async def create_account(
    payload: GLAccountCreate,
    session: AsyncSession = Depends(get_session),
    service: GLAccountService = Depends(get_gl_account_service),
    actor: Actor = Depends(get_request_user),
) -> GLAccountRead:
    account = await service.create_account(session, payload, actor)
    return GLAccountRead.model_validate(account)


@router.post("/accounts/seed", response_model=SeedChartResponse)
async def seed_chart(
    session: AsyncSession = Depends(get_session),
    service: GLAccountService = Depends(get_gl_account_service),
    _actor: Actor = Depends(get_request_user),
) -> SeedChartResponse:
    """Insert the default chart of accounts; existing codes are left alone."""

    created = await service.seed_default_chart(session)
    return SeedChartResponse(created=created)


@router.get("/accounts/{account_id}", response_model=GLAccountBalanceRead)
async def get_account(
    account_id: int,
    session: AsyncSession = Depends(get_session),
    service: GLAccountService = Depends(get_gl_account_service),
) -> GLAccountBalanceRead:
    row = await service.get_with_balance(session, account_id)
    return _balance_read(row)


@router.get("/mappings", response_model=list[GLMappingRead])
async def list_mappings(
    branch_id: Optional[int] = Query(default=None),
    source_module: Optional[str] = Query(default=None),
    session: AsyncSession = Depends(get_session),
    service: MappingService = Depends(get_mapping_service),
) -> list[GLMappingRead]:
    rows = await service.list_mappings(session, branch_id=branch_id, source_module=source_module)
    return [GLMappingRead.model_validate(row) for row in rows]


@router.put("/mappings", response_model=GLMappingRead)
async def upsert_mapping(
    payload: GLMappingUpsert,
    session: AsyncSession = Depends(get_session),
    service: MappingService = Depends(get_mapping_service),
    actor: Actor = Depends(get_request_user),
) -> GLMappingRead:
    mapping = await service.upsert_mapping(session, payload, actor)
    return GLMappingRead.model_validate(mapping)


@router.post("/journal-entries", response_model=GLTransactionDetail, status_code=status.HTTP_201_CREATED)
async def create_journal_entry(
    payload: ManualJournalEntryCreate,
    session: AsyncSession = Depends(get_session),
    service: JournalService = Depends(get_journal_service),
    ledger: LedgerService = Depends(get_ledger_service),
    actor: Actor = Depends(get_request_user),
) -> GLTransactionDetail:
    """Post a balanced manual entry."""

    transaction = await service.create_manual_entry(session, payload, actor)
    return await _transaction_detail(session, ledger, transaction.id)


@router.get("/transactions", response_model=GLTransactionHistoryResponse)
async def list_transactions(
    offset: int = Query(default=0, ge=0),
    limit: int = Query(default=50, ge=1, le=500),
    branch_id: Optional[int] = Query(default=None),
    source_module: Optional[str] = Query(default=None),
    date_from: Optional[date] = Query(default=None),
    date_to: Optional[date] = Query(default=None),
    session: AsyncSession = Depends(get_session),
    ledger: LedgerService = Depends(get_ledger_service),
) -> GLTransactionHistoryResponse:
    total, items = await ledger.transaction_history(
        session,
        offset=offset,
        limit=limit,
        branch_id=branch_id,
        source_module=source_module,
        date_from=date_from,
        date_to=date_to,
    )
    return GLTransactionHistoryResponse(total=total, items=[GLTransactionRead.model_validate(row) for row in items])


@router.get("/transactions/{gl_transaction_id}", response_model=GLTransactionDetail)
async def get_transaction(
    gl_transaction_id: int,
    session: AsyncSession = Depends(get_session),
    ledger: LedgerService = Depends(get_ledger_service),
) -> GLTransactionDetail:
    return await _transaction_detail(session, ledger, gl_transaction_id)


@router.post("/transactions/{gl_transaction_id}/reverse", response_model=GLTransactionDetail)
async def reverse_transaction(
    gl_transaction_id: int,
    payload: GLReverseRequest,
    session: AsyncSession = Depends(get_session),
    service: JournalService = Depends(get_journal_service),
    ledger: LedgerService = Depends(get_ledger_service),
    actor: Actor = Depends(get_request_user),
) -> GLTransactionDetail:
    """Reverse a manual entry; returns the reversing transaction."""

    reversal = await service.reverse_manual_entry(session, gl_transaction_id, actor, payload.reason)
    return await _transaction_detail(session, ledger, reversal.id)


@router.get("/trial-balance", response_model=TrialBalanceReport)
async def trial_balance(
    as_of: Optional[date] = Query(default=None),
    branch_id: Optional[int] = Query(default=None),
    session: AsyncSession = Depends(get_session),
    service: ReportService = Depends(get_report_service),
) -> TrialBalanceReport:
    return await service.trial_balance(session, as_of=as_of, branch_id=branch_id)
