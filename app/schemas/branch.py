"""Branch schemas."""

from __future__ import annotations

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field, field_validator

from app.schemas.common import ORMBaseSchema
from app.schemas.float_account import FloatAccountRead


class BranchCreate(BaseModel):
    """Create payload for a branch."""

    code: str = Field(min_length=2, max_length=32)
    name: str = Field(min_length=1, max_length=128)
    location: Optional[str] = Field(default=None, max_length=256)

    @field_validator("code")
    @classmethod
    def normalize_code(cls, value: str) -> str:
        return value.strip().upper()


class BranchRead(ORMBaseSchema):
    """Read model for branches."""

    id: int
    code: str
    name: str
    location: Optional[str]
    is_active: bool
    created_at: datetime


class BranchInitializeResponse(BaseModel):
    """Float accounts that exist for a branch after initialization."""

    branch_id: int
    created: int
    accounts: list[FloatAccountRead]
