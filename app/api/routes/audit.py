"""Audit log endpoints."""

from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.deps import get_audit_service, get_session
from app.schemas.audit import AuditLogListResponse, AuditLogRead
from app.services.audit_service import AuditService

router = APIRouter(prefix="/audit-logs", tags=["audit"])


@router.get("", response_model=AuditLogListResponse)
async def list_audit_logs(
    offset: int = Query(default=0, ge=0),
    limit: int = Query(default=50, ge=1, le=500),
    entity_type: Optional[str] = Query(default=None),
    entity_id: Optional[str] = Query(default=None),
    actor_id: Optional[str] = Query(default=None),
    branch_id: Optional[int] = Query(default=None),
    session: AsyncSession = Depends(get_session),
    service: AuditService = Depends(get_audit_service),
) -> AuditLogListResponse:
    total, items = await service.list_entries(
        session,
        offset=offset,
        limit=limit,
        entity_type=entity_type,
        entity_id=entity_id,
        actor_id=actor_id,
        branch_id=branch_id,
    )
    return AuditLogListResponse(total=total, items=[AuditLogRead.model_validate(row) for row in items])
