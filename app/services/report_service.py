"""Financial statements and float-to-GL reconciliation."""

from __future__ import annotations

import logging
from datetime import date, datetime, timezone
from decimal import Decimal
from typing import Optional

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.database.models import AccountType, FloatAccount, FloatTransaction
from app.ledger.service import AccountBalance, LedgerService
from app.schemas.report import (
    BalanceSheetReport,
    ProfitLossReport,
    ReconciliationItem,
    ReconciliationReport,
    StatementLine,
    TrialBalanceReport,
    TrialBalanceRow,
)
from app.validators.business import to_money

logger = logging.getLogger(__name__)

ZERO = Decimal("0.00")


def _lines(balances: list[AccountBalance], account_type: AccountType) -> list[StatementLine]:
    return [
        StatementLine(account_id=row.account.id, code=row.account.code, name=row.account.name, amount=row.balance)
        for row in balances
        if row.account.account_type == account_type.value and row.balance != 0
    ]


def _total(lines: list[StatementLine]) -> Decimal:
    return sum((line.amount for line in lines), ZERO)


class ReportService:
    """Compose reports from journal totals."""

    def __init__(self) -> None:
        self.ledger = LedgerService()

    async def trial_balance(
        self,
        session: AsyncSession,
        *,
        as_of: Optional[date] = None,
        branch_id: Optional[int] = None,
    ) -> TrialBalanceReport:
        balances = await self.ledger.account_balances(session, branch_id=branch_id, as_of=as_of)
        rows = [
            TrialBalanceRow(
                account_id=row.account.id,
                code=row.account.code,
                name=row.account.name,
                account_type=AccountType(row.account.account_type),
                total_debit=row.total_debit,
                total_credit=row.total_credit,
                balance=row.balance,
            )
            for row in balances
            if row.total_debit or row.total_credit
        ]
        total_debit = sum((row.total_debit for row in rows), ZERO)
        total_credit = sum((row.total_credit for row in rows), ZERO)
        if total_debit != total_credit:
            logger.error("Trial balance out of balance: debits %s, credits %s", total_debit, total_credit)
        return TrialBalanceReport(
            as_of=as_of,
            branch_id=branch_id,
            rows=rows,
            total_debit=total_debit,
            total_credit=total_credit,
            balanced=total_debit == total_credit,
        )

    async def profit_and_loss(
        self,
        session: AsyncSession,
        *,
        date_from: Optional[date] = None,
        date_to: Optional[date] = None,
        branch_id: Optional[int] = None,
    ) -> ProfitLossReport:
        balances = await self.ledger.account_balances(
            session, branch_id=branch_id, date_from=date_from, as_of=date_to
        )
        revenue = _lines(balances, AccountType.REVENUE)
        expenses = _lines(balances, AccountType.EXPENSE)
        total_revenue = _total(revenue)
        total_expenses = _total(expenses)
        return ProfitLossReport(
            date_from=date_from,
            date_to=date_to,
            branch_id=branch_id,
            revenue=revenue,
            expenses=expenses,
            total_revenue=total_revenue,
            total_expenses=total_expenses,
            net_income=total_revenue - total_expenses,
        )

    async def balance_sheet(
        self,
        session: AsyncSession,
        *,
        as_of: Optional[date] = None,
        branch_id: Optional[int] = None,
    ) -> BalanceSheetReport:
        balances = await self.ledger.account_balances(session, branch_id=branch_id, as_of=as_of)
        assets = _lines(balances, AccountType.ASSET)
        liabilities = _lines(balances, AccountType.LIABILITY)
        equity = _lines(balances, AccountType.EQUITY)
        current_earnings = _total(_lines(balances, AccountType.REVENUE)) - _total(
            _lines(balances, AccountType.EXPENSE)
        )

        total_assets = _total(assets)
        total_liabilities = _total(liabilities)
        total_equity = _total(equity)
        total_liabilities_and_equity = total_liabilities + total_equity + current_earnings
        return BalanceSheetReport(
            as_of=as_of,
            branch_id=branch_id,
            assets=assets,
            liabilities=liabilities,
            equity=equity,
            total_assets=total_assets,
            total_liabilities=total_liabilities,
            total_equity=total_equity,
            current_earnings=current_earnings,
            total_liabilities_and_equity=total_liabilities_and_equity,
            balanced=total_assets == total_liabilities_and_equity,
        )

    async def reconciliation(self, session: AsyncSession, *, branch_id: Optional[int] = None) -> ReconciliationReport:
        """Compare each float balance with the sum of its movements and with its GL account."""

        query = select(FloatAccount).order_by(FloatAccount.branch_id.asc(), FloatAccount.id.asc())
        if branch_id is not None:
            query = query.where(FloatAccount.branch_id == branch_id)
        accounts = list((await session.execute(query)).scalars().all())

        totals_result = await session.execute(
            select(FloatTransaction.float_account_id, func.coalesce(func.sum(FloatTransaction.amount), 0))
            .where(FloatTransaction.float_account_id.in_([account.id for account in accounts]))
            .group_by(FloatTransaction.float_account_id)
        )
        movement_totals = {account_id: to_money(Decimal(total)) for account_id, total in totals_result.all()}

        gl_rows = await self.ledger.account_balances(
            session, account_ids=sorted({account.gl_account_id for account in accounts})
        )
        gl_balances = {row.account.id: row.balance for row in gl_rows}

        items = []
        for account in accounts:
            current = to_money(account.current_balance)
            transactions_total = movement_totals.get(account.id, ZERO)
            gl_balance = gl_balances.get(account.gl_account_id, ZERO)
            items.append(
                ReconciliationItem(
                    float_account_id=account.id,
                    branch_id=account.branch_id,
                    account_type=account.account_type,
                    provider=account.provider,
                    gl_account_id=account.gl_account_id,
                    current_balance=current,
                    transactions_total=transactions_total,
                    gl_balance=gl_balance,
                    transactions_drift=current - transactions_total,
                    gl_drift=current - gl_balance,
                    in_balance=current == transactions_total == gl_balance,
                )
            )

        discrepancies = sum(1 for item in items if not item.in_balance)
        if discrepancies:
            logger.warning("Reconciliation found %s float accounts out of balance", discrepancies)
        return ReconciliationReport(
            branch_id=branch_id,
            generated_at=datetime.now(timezone.utc),
            items=items,
            discrepancies=discrepancies,
        )
