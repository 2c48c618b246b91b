"""Fee configuration schemas."""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field, field_validator, model_validator

from app.schemas.common import ORMBaseSchema, PositiveMoney


def normalize_service_name(value: str) -> str:
    """``E-Zwich`` and ``e_zwich`` name the same service."""

    return value.strip().lower().replace("-", "_")


class FeeType(str, Enum):
    PERCENTAGE = "percentage"
    FIXED = "fixed"


class FeeConfigUpsert(BaseModel):
    """Create or replace the fee rule for one service transaction type."""

    service: str = Field(min_length=1, max_length=32)
    transaction_type: str = Field(min_length=1, max_length=32)
    fee_type: FeeType
    fee_value: Decimal = Field(ge=0, decimal_places=4)
    minimum_fee: Optional[Decimal] = Field(default=None, ge=0, decimal_places=2)
    maximum_fee: Optional[Decimal] = Field(default=None, ge=0, decimal_places=2)
    is_active: bool = True

    @field_validator("service")
    @classmethod
    def normalize_service(cls, value: str) -> str:
        return normalize_service_name(value)

    @field_validator("transaction_type")
    @classmethod
    def normalize_type(cls, value: str) -> str:
        return value.strip().lower()

    @model_validator(mode="after")
    def limits_ordered(self) -> "FeeConfigUpsert":
        if self.minimum_fee is not None and self.maximum_fee is not None and self.maximum_fee < self.minimum_fee:
            raise ValueError("maximum_fee must not be below minimum_fee")
        return self


class FeeConfigRead(ORMBaseSchema):
    id: int
    service: str
    transaction_type: str
    fee_type: FeeType
    fee_value: Decimal
    minimum_fee: Optional[Decimal]
    maximum_fee: Optional[Decimal]
    is_active: bool
    updated_at: datetime


class FeeCalculationRequest(BaseModel):
    service: str = Field(min_length=1, max_length=32)
    transaction_type: str = Field(min_length=1, max_length=32)
    amount: PositiveMoney

    @field_validator("service")
    @classmethod
    def normalize_service(cls, value: str) -> str:
        return normalize_service_name(value)

    @field_validator("transaction_type")
    @classmethod
    def normalize_type(cls, value: str) -> str:
        return value.strip().lower()


class FeeCalculationResponse(BaseModel):
    """Computed fee and the rule that produced it."""

    service: str
    transaction_type: str
    amount: Decimal
    fee: Decimal
    fee_type: str
    fee_source: str
    minimum_fee: Optional[Decimal] = None
    maximum_fee: Optional[Decimal] = None
