"""Chart-of-accounts CRUD and seeding."""

from __future__ import annotations

import logging
from typing import Optional

from sqlalchemy import or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.accounting.chart import DEFAULT_CHART, float_gl_code, float_gl_name
from app.api.errors import ConflictError, NotFoundError
from app.database.models import AccountType, Branch, FloatAccountType, GLAccount
from app.database.session import unit_of_work
from app.ledger.service import AccountBalance, LedgerService
from app.schemas.common import Actor
from app.schemas.gl import GLAccountCreate
from app.services.audit_service import AuditService

logger = logging.getLogger(__name__)


class GLAccountService:
    """Service for creating, resolving and seeding GL accounts."""

    def __init__(self) -> None:
        self.audit = AuditService()
        self.ledger = LedgerService()

    async def create_account(self, session: AsyncSession, payload: GLAccountCreate, actor: Actor) -> GLAccount:
        """Create one account; the code must be unique within its branch scope."""

        async with unit_of_work(session):
            if payload.branch_id is not None and await session.get(Branch, payload.branch_id) is None:
                raise NotFoundError(f"Branch not found: {payload.branch_id}")
            existing = await self._find_exact(session, payload.code, payload.branch_id)
            if existing is not None:
                raise ConflictError(f"GL account code already exists: {payload.code}")

            account = GLAccount(
                code=payload.code,
                name=payload.name,
                account_type=payload.account_type.value,
                branch_id=payload.branch_id,
                is_active=True,
            )
            session.add(account)
            await session.flush()
            await self.audit.record(
                session,
                actor=actor,
                action="gl_account_create",
                entity_type="gl_account",
                entity_id=account.id,
                branch_id=account.branch_id,
                details={"code": account.code, "account_type": account.account_type},
            )
        logger.info("GL account %s (%s) created", account.code, account.account_type)
        return account

    async def get_account(self, session: AsyncSession, account_id: int) -> GLAccount:
        account = await session.get(GLAccount, account_id)
        if account is None:
            raise NotFoundError(f"GL account not found: {account_id}")
        return account

    async def list_accounts(
        self,
        session: AsyncSession,
        *,
        branch_id: Optional[int] = None,
        account_type: Optional[AccountType] = None,
        include_inactive: bool = False,
    ) -> list[GLAccount]:
        """List accounts visible to a branch (its own plus global ones), ordered by code."""

        query = select(GLAccount).order_by(GLAccount.code.asc(), GLAccount.id.asc())
        if branch_id is not None:
            query = query.where(or_(GLAccount.branch_id == branch_id, GLAccount.branch_id.is_(None)))
        if account_type is not None:
            query = query.where(GLAccount.account_type == account_type.value)
        if not include_inactive:
            query = query.where(GLAccount.is_active.is_(True))
        result = await session.execute(query)
        return list(result.scalars().all())

    async def list_with_balances(
        self,
        session: AsyncSession,
        *,
        branch_id: Optional[int] = None,
        account_type: Optional[AccountType] = None,
        include_inactive: bool = False,
    ) -> list[AccountBalance]:
        """Visible accounts with journal totals; totals are scoped to the branch's postings."""

        accounts = await self.list_accounts(
            session, branch_id=branch_id, account_type=account_type, include_inactive=include_inactive
        )
        return await self.ledger.account_balances(
            session, branch_id=branch_id, account_ids=[account.id for account in accounts]
        )

    async def get_with_balance(self, session: AsyncSession, account_id: int) -> AccountBalance:
        account = await self.get_account(session, account_id)
        rows = await self.ledger.account_balances(session, account_ids=[account.id])
        return rows[0]

    async def get_by_code(self, session: AsyncSession, code: str, branch_id: Optional[int] = None) -> GLAccount:
        """Resolve a code, preferring the branch's own account over the global one."""

        if branch_id is not None:
            scoped = await self._find_exact(session, code, branch_id)
            if scoped is not None:
                return scoped
        account = await self._find_exact(session, code, None)
        if account is None:
            raise NotFoundError(f"GL account not found for code {code}; seed the chart of accounts first")
        return account

    async def seed_default_chart(self, session: AsyncSession) -> int:
        """Insert missing global accounts from the default chart. Returns how many were created."""

        async with unit_of_work(session):
            result = await session.execute(select(GLAccount.code).where(GLAccount.branch_id.is_(None)))
            existing_codes = set(result.scalars().all())

            created = 0
            for code, name, account_type in DEFAULT_CHART:
                if code in existing_codes:
                    continue
                session.add(GLAccount(code=code, name=name, account_type=account_type.value, branch_id=None))
                created += 1
        logger.info("Default chart seeded: %s new accounts", created)
        return created

    async def get_or_create_float_account_gl(
        self,
        session: AsyncSession,
        *,
        branch_id: int,
        account_type: FloatAccountType,
        provider: str,
    ) -> GLAccount:
        """Return the branch-scoped asset account that mirrors one float account."""

        code = float_gl_code(account_type, provider)
        existing = await self._find_exact(session, code, branch_id)
        if existing is not None:
            return existing

        account = GLAccount(
            code=code,
            name=float_gl_name(account_type, provider),
            account_type=AccountType.ASSET.value,
            branch_id=branch_id,
        )
        session.add(account)
        await session.flush()
        return account

    async def _find_exact(self, session: AsyncSession, code: str, branch_id: Optional[int]) -> Optional[GLAccount]:
        branch_filter = GLAccount.branch_id.is_(None) if branch_id is None else GLAccount.branch_id == branch_id
        result = await session.execute(select(GLAccount).where(GLAccount.code == code, branch_filter).limit(1))
        return result.scalar_one_or_none()
