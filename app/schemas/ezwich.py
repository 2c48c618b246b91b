"""E-zwich card inventory and issuance schemas."""

from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal
from typing import Annotated, Optional

from pydantic import BaseModel, Field, field_validator, model_validator

from app.database.models import CardBatchStatus
from app.schemas.common import ORMBaseSchema

NonNegativeMoney = Annotated[Decimal, Field(ge=0, lt=Decimal("1000000000"), decimal_places=2)]


def _normalize_card_type(value: str) -> str:
    return value.strip().lower().replace(" ", "_")


class CardBatchCreate(BaseModel):
    """Blank cards received from a partner bank, paid for out of float."""

    branch_id: int
    batch_code: str = Field(min_length=1, max_length=64)
    card_type: str = Field(default="standard", min_length=1, max_length=32)
    quantity_received: int = Field(gt=0, le=100000)
    unit_cost: NonNegativeMoney = Decimal("0")
    partner_bank: str = Field(min_length=1, max_length=128)
    payment_float_account_id: Optional[int] = None
    expiry_date: Optional[date] = None
    notes: Optional[str] = Field(default=None, max_length=512)

    @field_validator("batch_code")
    @classmethod
    def normalize_code(cls, value: str) -> str:
        return value.strip().upper()

    @field_validator("card_type")
    @classmethod
    def normalize_card_type(cls, value: str) -> str:
        return _normalize_card_type(value)

    @model_validator(mode="after")
    def paid_batches_need_float(self) -> "CardBatchCreate":
        if self.unit_cost > 0 and self.payment_float_account_id is None:
            raise ValueError("payment_float_account_id is required when unit_cost is above zero")
        return self


class CardBatchRead(ORMBaseSchema):
    id: int
    branch_id: int
    batch_code: str
    card_type: str
    quantity_received: int
    quantity_issued: int
    quantity_available: int
    unit_cost: Decimal
    total_cost: Decimal
    partner_bank: str
    payment_float_account_id: Optional[int]
    expiry_date: Optional[date]
    status: CardBatchStatus
    notes: Optional[str]
    created_by: str
    gl_transaction_id: Optional[int]
    created_at: datetime


class CardIssuanceCreate(BaseModel):
    """Issue one card to a customer.

    ``batch_id`` may be left out, in which case the oldest batch of the card
    type that still has stock is used. ``fee`` defaults to the configured card
    fee and is received into ``float_account_id`` (the branch cash-in-till when
    omitted).
    """

    branch_id: int
    card_number: str = Field(min_length=4, max_length=32)
    customer_name: str = Field(min_length=1, max_length=128)
    customer_phone: str = Field(min_length=6, max_length=32)
    id_type: Optional[str] = Field(default=None, max_length=32)
    id_number: Optional[str] = Field(default=None, max_length=64)
    card_type: str = Field(default="standard", min_length=1, max_length=32)
    batch_id: Optional[int] = None
    fee: Optional[NonNegativeMoney] = None
    float_account_id: Optional[int] = None

    @field_validator("card_number", "customer_phone")
    @classmethod
    def strip_spaces(cls, value: str) -> str:
        return "".join(value.split())

    @field_validator("card_type")
    @classmethod
    def normalize_card_type(cls, value: str) -> str:
        return _normalize_card_type(value)


class CardIssuanceRead(ORMBaseSchema):
    id: int
    branch_id: int
    batch_id: int
    card_number: str
    customer_name: str
    customer_phone: str
    id_type: Optional[str]
    id_number: Optional[str]
    fee_charged: Decimal
    float_account_id: Optional[int]
    issue_date: date
    expiry_date: date
    issued_by: str
    gl_transaction_id: Optional[int]
    created_at: datetime


class CardIssuanceListResponse(BaseModel):
    total: int
    items: list[CardIssuanceRead]
