"""Expense schemas."""

from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, Field, field_validator

from app.accounting.chart import EXPENSE_CATEGORY_CODES
from app.database.models import ExpenseStatus
from app.schemas.common import ORMBaseSchema, PositiveMoney


class ExpenseCreate(BaseModel):
    """Expense request awaiting approval."""

    branch_id: int
    category: str = Field(min_length=1, max_length=32)
    amount: PositiveMoney
    description: str = Field(min_length=1, max_length=512)
    float_account_id: int
    expense_date: date = Field(default_factory=date.today)
    reference: Optional[str] = Field(default=None, min_length=1, max_length=64)

    @field_validator("category")
    @classmethod
    def known_category(cls, value: str) -> str:
        normalized = value.strip().lower().replace(" ", "_")
        if normalized not in EXPENSE_CATEGORY_CODES:
            raise ValueError(f"category must be one of: {', '.join(sorted(EXPENSE_CATEGORY_CODES))}")
        return normalized


class ExpenseReject(BaseModel):
    reason: str = Field(min_length=1, max_length=512)


class ExpenseRead(ORMBaseSchema):
    id: int
    branch_id: int
    category: str
    amount: Decimal
    description: str
    float_account_id: int
    expense_date: date
    reference: str
    status: ExpenseStatus
    created_by: str
    approved_by: Optional[str]
    approved_at: Optional[datetime]
    rejection_reason: Optional[str]
    gl_transaction_id: Optional[int]
    created_at: datetime


class ExpenseListResponse(BaseModel):
    total: int
    items: list[ExpenseRead]
