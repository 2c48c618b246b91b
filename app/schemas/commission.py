"""Commission schemas."""

from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, Field, field_validator

from app.database.models import CommissionStatus
from app.schemas.common import ORMBaseSchema, PositiveMoney


class CommissionCreate(BaseModel):
    """Commission earned from a partner for one month."""

    branch_id: int
    source: str = Field(min_length=1, max_length=32)
    source_name: str = Field(min_length=1, max_length=128)
    float_account_id: int
    amount: PositiveMoney
    month: date
    reference: Optional[str] = Field(default=None, min_length=1, max_length=64)
    description: Optional[str] = Field(default=None, max_length=512)

    @field_validator("source")
    @classmethod
    def normalize_source(cls, value: str) -> str:
        return value.strip().lower()

    @field_validator("month")
    @classmethod
    def first_of_month(cls, value: date) -> date:
        return value.replace(day=1)


class CommissionApprove(BaseModel):
    notes: Optional[str] = Field(default=None, max_length=512)


class CommissionReject(BaseModel):
    reason: str = Field(min_length=1, max_length=512)


class CommissionMarkPaid(BaseModel):
    payment_method: str = Field(default="float", min_length=1, max_length=32)
    payment_reference: Optional[str] = Field(default=None, max_length=64)


class CommissionRead(ORMBaseSchema):
    id: int
    branch_id: int
    source: str
    source_name: str
    float_account_id: int
    amount: Decimal
    month: date
    reference: str
    description: Optional[str]
    status: CommissionStatus
    created_by: str
    approved_by: Optional[str]
    approved_at: Optional[datetime]
    approval_notes: Optional[str]
    paid_by: Optional[str]
    paid_at: Optional[datetime]
    payment_method: Optional[str]
    payment_reference: Optional[str]
    created_at: datetime
    updated_at: datetime


class CommissionListResponse(BaseModel):
    total: int
    items: list[CommissionRead]
