"""Resolve which GL account a business event posts to."""

from __future__ import annotations

from typing import Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.accounting.chart import DEFAULT_MAPPINGS
from app.api.errors import NotFoundError, ValidationError
from app.database.models import GLAccount, GLMapping
from app.database.session import unit_of_work
from app.schemas.common import Actor
from app.schemas.gl import GLMappingUpsert
from app.services.audit_service import AuditService
from app.services.gl_account_service import GLAccountService


class MappingService:
    """Branch mapping, then global mapping, then the default chart code."""

    def __init__(self) -> None:
        self.accounts = GLAccountService()
        self.audit = AuditService()

    async def resolve(
        self,
        session: AsyncSession,
        source_module: str,
        mapping_type: str,
        branch_id: Optional[int],
    ) -> GLAccount:
        """Return the active GL account for a posting role."""

        for scope in ([branch_id, None] if branch_id is not None else [None]):
            mapping = await self._find(session, source_module, mapping_type, scope)
            if mapping is not None and mapping.is_active:
                account = await self.accounts.get_account(session, mapping.gl_account_id)
                if account.is_active:
                    return account

        code = DEFAULT_MAPPINGS.get((source_module, mapping_type))
        if code is None:
            raise NotFoundError(f"No GL account mapped for {source_module}/{mapping_type}")
        return await self.accounts.get_by_code(session, code, branch_id)

    async def list_mappings(
        self,
        session: AsyncSession,
        *,
        branch_id: Optional[int] = None,
        source_module: Optional[str] = None,
    ) -> list[GLMapping]:
        query = select(GLMapping).order_by(GLMapping.source_module.asc(), GLMapping.mapping_type.asc())
        if branch_id is not None:
            query = query.where(GLMapping.branch_id == branch_id)
        if source_module:
            query = query.where(GLMapping.source_module == source_module)
        result = await session.execute(query)
        return list(result.scalars().all())

    async def upsert_mapping(self, session: AsyncSession, payload: GLMappingUpsert, actor: Actor) -> GLMapping:
        """Point a posting role at an account, replacing any previous mapping in the same scope."""

        async with unit_of_work(session):
            account = await self.accounts.get_account(session, payload.gl_account_id)
            if not account.is_active:
                raise ValidationError(f"GL account {account.code} is inactive")
            if account.branch_id is not None and account.branch_id != payload.branch_id:
                raise ValidationError(f"GL account {account.code} belongs to another branch")

            mapping = await self._find(session, payload.source_module, payload.mapping_type, payload.branch_id)
            if mapping is None:
                mapping = GLMapping(
                    branch_id=payload.branch_id,
                    source_module=payload.source_module,
                    mapping_type=payload.mapping_type,
                    gl_account_id=account.id,
                    is_active=payload.is_active,
                )
                session.add(mapping)
            else:
                mapping.gl_account_id = account.id
                mapping.is_active = payload.is_active
            await session.flush()
            await self.audit.record(
                session,
                actor=actor,
                action="gl_mapping_upsert",
                entity_type="gl_mapping",
                entity_id=mapping.id,
                branch_id=payload.branch_id,
                details={
                    "source_module": payload.source_module,
                    "mapping_type": payload.mapping_type,
                    "gl_account_code": account.code,
                },
            )
        return mapping

    async def _find(
        self,
        session: AsyncSession,
        source_module: str,
        mapping_type: str,
        branch_id: Optional[int],
    ) -> Optional[GLMapping]:
        branch_filter = GLMapping.branch_id.is_(None) if branch_id is None else GLMapping.branch_id == branch_id
        result = await session.execute(
            select(GLMapping)
            .where(
                GLMapping.source_module == source_module,
                GLMapping.mapping_type == mapping_type,
                branch_filter,
            )
            .limit(1)
        )
        return result.scalar_one_or_none()
