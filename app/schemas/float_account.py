"""Float account schemas."""

from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, Field, model_validator

from app.database.models import FloatAccountType
from app.schemas.common import ORMBaseSchema, PositiveMoney, SignedMoney


class FloatAccountCreate(BaseModel):
    """Create payload for a float account."""

    branch_id: int
    account_type: FloatAccountType
    provider: str = Field(min_length=1, max_length=64)
    account_number: Optional[str] = Field(default=None, max_length=64)
    opening_balance: Decimal = Field(default=Decimal("0"), ge=0, decimal_places=2)
    min_threshold: Decimal = Field(default=Decimal("0"), ge=0, decimal_places=2)
    max_threshold: Optional[Decimal] = Field(default=None, gt=0, decimal_places=2)

    @model_validator(mode="after")
    def thresholds_ordered(self) -> "FloatAccountCreate":
        if self.max_threshold is not None and self.max_threshold < self.min_threshold:
            raise ValueError("max_threshold must not be below min_threshold")
        return self


class FloatThresholdUpdate(BaseModel):
    """Alert thresholds for a float account."""

    min_threshold: Decimal = Field(ge=0, decimal_places=2)
    max_threshold: Optional[Decimal] = Field(default=None, gt=0, decimal_places=2)

    @model_validator(mode="after")
    def thresholds_ordered(self) -> "FloatThresholdUpdate":
        if self.max_threshold is not None and self.max_threshold < self.min_threshold:
            raise ValueError("max_threshold must not be below min_threshold")
        return self


class FloatAccountRead(ORMBaseSchema):
    """Read model for float accounts."""

    id: int
    branch_id: int
    account_type: FloatAccountType
    provider: str
    account_number: Optional[str]
    current_balance: Decimal
    min_threshold: Decimal
    max_threshold: Optional[Decimal]
    gl_account_id: int
    is_active: bool
    created_at: datetime
    updated_at: datetime


class RechargeRequest(BaseModel):
    """Move float from a source account into the target account."""

    source_account_id: int
    amount: PositiveMoney
    description: Optional[str] = Field(default=None, max_length=512)


class WithdrawRequest(BaseModel):
    """Move float out of an account into the branch cash-in-till."""

    amount: PositiveMoney
    description: Optional[str] = Field(default=None, max_length=512)


class BalanceAdjustmentRequest(BaseModel):
    """Signed correction of a float balance."""

    amount: SignedMoney
    description: str = Field(min_length=1, max_length=512)


class FloatTransactionRead(ORMBaseSchema):
    id: int
    float_account_id: int
    transaction_type: str
    amount: Decimal
    balance_before: Decimal
    balance_after: Decimal
    reference: str
    description: Optional[str]
    processed_by: str
    gl_transaction_id: Optional[int]
    created_at: datetime


class FloatOperationResponse(BaseModel):
    """Outcome of a balance-changing float operation."""

    reference: str
    gl_transaction_id: int
    accounts: list[FloatAccountRead]
    transactions: list[FloatTransactionRead]


class FloatStatement(BaseModel):
    """Movements of one account over a period with opening and closing balances."""

    account: FloatAccountRead
    date_from: Optional[date]
    date_to: Optional[date]
    opening_balance: Decimal
    total_credits: Decimal
    total_debits: Decimal
    closing_balance: Decimal
    transactions: list[FloatTransactionRead]
