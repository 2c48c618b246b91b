"""Financial report schemas."""

from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal
from typing import Optional

from pydantic import BaseModel

from app.database.models import AccountType


class TrialBalanceRow(BaseModel):
    account_id: int
    code: str
    name: str
    account_type: AccountType
    total_debit: Decimal
    total_credit: Decimal
    balance: Decimal


class TrialBalanceReport(BaseModel):
    """Per-account journal totals; debits and credits must agree."""

    as_of: Optional[date]
    branch_id: Optional[int]
    rows: list[TrialBalanceRow]
    total_debit: Decimal
    total_credit: Decimal
    balanced: bool


class StatementLine(BaseModel):
    account_id: int
    code: str
    name: str
    amount: Decimal


class ProfitLossReport(BaseModel):
    date_from: Optional[date]
    date_to: Optional[date]
    branch_id: Optional[int]
    revenue: list[StatementLine]
    expenses: list[StatementLine]
    total_revenue: Decimal
    total_expenses: Decimal
    net_income: Decimal


class BalanceSheetReport(BaseModel):
    """Assets against liabilities, equity and the earnings not yet closed to equity."""

    as_of: Optional[date]
    branch_id: Optional[int]
    assets: list[StatementLine]
    liabilities: list[StatementLine]
    equity: list[StatementLine]
    total_assets: Decimal
    total_liabilities: Decimal
    total_equity: Decimal
    current_earnings: Decimal
    total_liabilities_and_equity: Decimal
    balanced: bool


class ReconciliationItem(BaseModel):
    """One float account compared with its movement history and its GL account."""

    float_account_id: int
    branch_id: int
    account_type: str
    provider: str
    gl_account_id: int
    current_balance: Decimal
    transactions_total: Decimal
    gl_balance: Decimal
    transactions_drift: Decimal
    gl_drift: Decimal
    in_balance: bool


class ReconciliationReport(BaseModel):
    branch_id: Optional[int]
    generated_at: datetime
    items: list[ReconciliationItem]
    discrepancies: int
