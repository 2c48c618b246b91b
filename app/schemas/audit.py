"""Audit log schemas."""

from __future__ import annotations

from datetime import datetime
from typing import Any, Optional

from pydantic import BaseModel

from app.schemas.common import ORMBaseSchema


class AuditLogRead(ORMBaseSchema):
    id: int
    actor_id: str
    actor_name: Optional[str]
    action: str
    entity_type: str
    entity_id: str
    severity: str
    details: dict[str, Any]
    branch_id: Optional[int]
    created_at: datetime


class AuditLogListResponse(BaseModel):
    total: int
    items: list[AuditLogRead]
