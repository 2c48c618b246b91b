"""Equity schemas."""

from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, Field

from app.database.models import EntrySide, EquityLedgerType
from app.schemas.common import ORMBaseSchema, PositiveMoney


class EquityTransactionCreate(BaseModel):
    """Owner movement: ``credit`` contributes into float, ``debit`` draws from it."""

    branch_id: int
    ledger_type: EquityLedgerType
    direction: EntrySide
    amount: PositiveMoney
    float_account_id: int
    particulars: str = Field(min_length=1, max_length=512)
    transaction_date: date = Field(default_factory=date.today)


class EquityTransactionRead(ORMBaseSchema):
    id: int
    branch_id: int
    ledger_type: EquityLedgerType
    direction: EntrySide
    amount: Decimal
    float_account_id: int
    particulars: str
    transaction_date: date
    created_by: str
    gl_transaction_id: Optional[int]
    created_at: datetime


class EquityTransactionListResponse(BaseModel):
    total: int
    items: list[EquityTransactionRead]


class EquityBalanceRead(BaseModel):
    ledger_type: EquityLedgerType
    gl_account_id: int
    gl_account_code: str
    balance: Decimal


class EquityBalancesResponse(BaseModel):
    branch_id: Optional[int]
    balances: list[EquityBalanceRead]
    total: Decimal
