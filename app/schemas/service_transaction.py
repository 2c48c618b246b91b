"""Service transaction schemas."""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, Field, field_validator

from app.schemas.common import ORMBaseSchema, PositiveMoney
from app.schemas.fee import normalize_service_name


class ServiceTransactionCreate(BaseModel):
    """A customer operation at the counter.

    ``fee`` is calculated from the fee rules when omitted. ``reference`` is the
    client's idempotency key; a reused reference is rejected.
    """

    branch_id: int
    service: str = Field(min_length=1, max_length=32)
    transaction_type: str = Field(min_length=1, max_length=32)
    amount: PositiveMoney
    fee: Optional[Decimal] = Field(default=None, ge=0, decimal_places=2)
    provider: Optional[str] = Field(default=None, max_length=64)
    float_account_id: Optional[int] = None
    customer_name: Optional[str] = Field(default=None, max_length=128)
    phone_number: Optional[str] = Field(default=None, max_length=32)
    reference: Optional[str] = Field(default=None, min_length=1, max_length=64)

    @field_validator("service")
    @classmethod
    def normalize_service(cls, value: str) -> str:
        return normalize_service_name(value)

    @field_validator("transaction_type")
    @classmethod
    def normalize_type(cls, value: str) -> str:
        return value.strip().lower()


class ServiceTransactionRead(ORMBaseSchema):
    id: int
    branch_id: int
    service: str
    transaction_type: str
    provider: Optional[str]
    float_account_id: Optional[int]
    amount: Decimal
    fee: Decimal
    customer_name: Optional[str]
    phone_number: Optional[str]
    reference: str
    status: str
    processed_by: str
    gl_transaction_id: Optional[int]
    reversal_gl_transaction_id: Optional[int]
    created_at: datetime


class ServiceTransactionListResponse(BaseModel):
    total: int
    items: list[ServiceTransactionRead]


class ServiceTransactionReverseRequest(BaseModel):
    reason: str = Field(min_length=1, max_length=256)
