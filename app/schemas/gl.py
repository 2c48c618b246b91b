"""General-ledger schemas."""

from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, Field, field_validator

from app.database.models import AccountType, EntrySide
from app.schemas.common import ORMBaseSchema, PositiveMoney


class GLAccountCreate(BaseModel):
    """Create payload for a chart-of-accounts row."""

    code: str = Field(min_length=1, max_length=32)
    name: str = Field(min_length=1, max_length=128)
    account_type: AccountType
    branch_id: Optional[int] = None

    @field_validator("code")
    @classmethod
    def strip_code(cls, value: str) -> str:
        return value.strip()


class GLAccountRead(ORMBaseSchema):
    """Read model for GL accounts."""

    id: int
    code: str
    name: str
    account_type: AccountType
    branch_id: Optional[int]
    is_active: bool


class GLAccountBalanceRead(GLAccountRead):
    """GL account with its journal totals."""

    total_debit: Decimal
    total_credit: Decimal
    balance: Decimal


class SeedChartResponse(BaseModel):
    created: int


class GLMappingUpsert(BaseModel):
    """Point a posting role at a GL account."""

    source_module: str = Field(min_length=1, max_length=32)
    mapping_type: str = Field(min_length=1, max_length=32)
    gl_account_id: int
    branch_id: Optional[int] = None
    is_active: bool = True


class GLMappingRead(ORMBaseSchema):
    id: int
    branch_id: Optional[int]
    source_module: str
    mapping_type: str
    gl_account_id: int
    is_active: bool


class JournalLineInput(BaseModel):
    """One line of a manual journal entry."""

    account_id: int
    side: EntrySide
    amount: PositiveMoney
    description: Optional[str] = Field(default=None, max_length=512)


class ManualJournalEntryCreate(BaseModel):
    """Manual balanced journal entry."""

    entry_date: date = Field(default_factory=date.today)
    description: str = Field(min_length=1, max_length=512)
    reference: Optional[str] = Field(default=None, max_length=64)
    branch_id: int
    lines: list[JournalLineInput] = Field(min_length=2)


class JournalEntryRead(ORMBaseSchema):
    id: int
    account_id: int
    debit: Decimal
    credit: Decimal
    description: Optional[str]


class GLTransactionRead(ORMBaseSchema):
    """GL transaction header."""

    id: int
    reference: str
    entry_date: date
    description: str
    source_module: str
    source_transaction_type: str
    source_transaction_id: str
    status: str
    branch_id: Optional[int]
    created_by: str
    reversal_of_id: Optional[int]
    created_at: datetime


class GLTransactionDetail(GLTransactionRead):
    """GL transaction with its journal lines."""

    lines: list[JournalEntryRead]


class GLTransactionHistoryResponse(BaseModel):
    """Paginated GL transaction history."""

    total: int
    items: list[GLTransactionRead]


class GLReverseRequest(BaseModel):
    reason: Optional[str] = Field(default=None, max_length=256)
