"""Audit trail written inside the operation's own transaction."""

from __future__ import annotations

from decimal import Decimal
from typing import Any, Optional

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.config import get_settings
from app.database.models import AuditLog
from app.schemas.common import Actor


def severity_for(amount: Optional[Decimal]) -> str:
    """Large amounts are flagged high, any other money movement medium."""

    if amount is None:
        return "low"
    if amount > get_settings().large_amount_threshold:
        return "high"
    return "medium"


class AuditService:
    """Record and query audit entries."""

    async def record(
        self,
        session: AsyncSession,
        *,
        actor: Actor,
        action: str,
        entity_type: str,
        entity_id: Any,
        amount: Optional[Decimal] = None,
        branch_id: Optional[int] = None,
        details: Optional[dict[str, Any]] = None,
    ) -> AuditLog:
        payload = dict(details or {})
        if amount is not None:
            payload["amount"] = str(amount)

        entry = AuditLog(
            actor_id=actor.id,
            actor_name=actor.name,
            action=action,
            entity_type=entity_type,
            entity_id=str(entity_id),
            severity=severity_for(abs(amount) if amount is not None else None),
            details=payload,
            branch_id=branch_id,
        )
        session.add(entry)
        await session.flush()
        return entry

    async def list_entries(
        self,
        session: AsyncSession,
        *,
        offset: int,
        limit: int,
        entity_type: Optional[str] = None,
        entity_id: Optional[str] = None,
        actor_id: Optional[str] = None,
        branch_id: Optional[int] = None,
    ) -> tuple[int, list[AuditLog]]:
        """Return filtered paginated audit entries newest first, and the total."""

        filters = []
        if entity_type:
            filters.append(AuditLog.entity_type == entity_type)
        if entity_id:
            filters.append(AuditLog.entity_id == entity_id)
        if actor_id:
            filters.append(AuditLog.actor_id == actor_id)
        if branch_id is not None:
            filters.append(AuditLog.branch_id == branch_id)

        total_result = await session.execute(select(func.count(AuditLog.id)).where(*filters))
        total = int(total_result.scalar_one())

        result = await session.execute(
            select(AuditLog)
            .where(*filters)
            .order_by(AuditLog.created_at.desc(), AuditLog.id.desc())
            .offset(offset)
            .limit(limit)
        )
        return total, list(result.scalars().all())
