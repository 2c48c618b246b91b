"""Branch CRUD and float-account initialization."""

from __future__ import annotations

import logging

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.accounting.chart import STANDARD_FLOAT_PROVIDERS, float_gl_code
from app.api.errors import ConflictError, NotFoundError
from app.database.models import Branch, FloatAccount, FloatAccountType
from app.database.session import unit_of_work
from app.schemas.branch import BranchCreate
from app.schemas.common import Actor
from app.schemas.float_account import FloatAccountCreate
from app.services.audit_service import AuditService
from app.services.float_service import FloatService

logger = logging.getLogger(__name__)


class BranchService:
    """Service for creating branches and giving them their standard float accounts."""

    def __init__(self) -> None:
        self.float_service = FloatService()
        self.audit = AuditService()

    async def create_branch(self, session: AsyncSession, payload: BranchCreate, actor: Actor) -> Branch:
        async with unit_of_work(session):
            existing = await session.execute(select(Branch.id).where(Branch.code == payload.code))
            if existing.scalar_one_or_none() is not None:
                raise ConflictError(f"Branch code already exists: {payload.code}")

            branch = Branch(code=payload.code, name=payload.name.strip(), location=payload.location, is_active=True)
            session.add(branch)
            await session.flush()
            await self.audit.record(
                session,
                actor=actor,
                action="branch_create",
                entity_type="branch",
                entity_id=branch.id,
                branch_id=branch.id,
                details={"code": branch.code},
            )
        logger.info("Branch %s created", branch.code)
        return branch

    async def list_branches(self, session: AsyncSession, active_only: bool = False) -> list[Branch]:
        query = select(Branch).order_by(Branch.code.asc())
        if active_only:
            query = query.where(Branch.is_active.is_(True))
        result = await session.execute(query)
        return list(result.scalars().all())

    async def get_branch(self, session: AsyncSession, branch_id: int) -> Branch:
        branch = await session.get(Branch, branch_id)
        if branch is None:
            raise NotFoundError(f"Branch not found: {branch_id}")
        return branch

    async def initialize_branch(
        self,
        session: AsyncSession,
        branch_id: int,
        actor: Actor,
    ) -> tuple[int, list[FloatAccount]]:
        """Create any missing standard float accounts. Safe to call repeatedly."""

        async with unit_of_work(session):
            branch = await self.get_branch(session, branch_id)
            result = await session.execute(
                select(FloatAccount.account_type, FloatAccount.provider).where(FloatAccount.branch_id == branch.id)
            )
            present = {
                float_gl_code(FloatAccountType(account_type), provider) for account_type, provider in result.all()
            }

            created = 0
            for account_type, providers in STANDARD_FLOAT_PROVIDERS.items():
                for provider in providers:
                    if float_gl_code(account_type, provider) in present:
                        continue
                    await self.float_service.create_account_row(
                        session,
                        FloatAccountCreate(branch_id=branch.id, account_type=account_type, provider=provider),
                    )
                    created += 1

            if created:
                await self.audit.record(
                    session,
                    actor=actor,
                    action="branch_initialize",
                    entity_type="branch",
                    entity_id=branch.id,
                    branch_id=branch.id,
                    details={"float_accounts_created": created},
                )

        accounts = await self.float_service.list_accounts(session, branch_id=branch_id)
        logger.info("Branch %s initialized: %s float accounts created", branch_id, created)
        return created, accounts
