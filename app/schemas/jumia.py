"""Jumia package custody schemas."""

from __future__ import annotations

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field, field_validator

from app.database.models import JumiaPackageStatus
from app.schemas.common import ORMBaseSchema


class JumiaPackageCreate(BaseModel):
    branch_id: int
    tracking_id: str = Field(min_length=1, max_length=64)
    customer_name: str = Field(min_length=1, max_length=128)
    customer_phone: Optional[str] = Field(default=None, max_length=32)
    notes: Optional[str] = Field(default=None, max_length=512)

    @field_validator("tracking_id")
    @classmethod
    def normalize_tracking_id(cls, value: str) -> str:
        return value.strip().upper()


class JumiaPackageStatusUpdate(BaseModel):
    """Move a package forward: received -> delivered -> settled."""

    status: JumiaPackageStatus
    settlement_reference: Optional[str] = Field(default=None, max_length=64)
    notes: Optional[str] = Field(default=None, max_length=512)


class JumiaPackageRead(ORMBaseSchema):
    id: int
    branch_id: int
    tracking_id: str
    customer_name: str
    customer_phone: Optional[str]
    status: JumiaPackageStatus
    received_by: str
    received_at: datetime
    delivered_at: Optional[datetime]
    settled_at: Optional[datetime]
    settlement_reference: Optional[str]
    notes: Optional[str]


class JumiaPackageListResponse(BaseModel):
    total: int
    items: list[JumiaPackageRead]
