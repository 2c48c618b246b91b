"""Float account lifecycle and balance-changing operations."""

from __future__ import annotations

import logging
from datetime import date
from decimal import Decimal
from typing import Optional

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.accounting.chart import float_gl_code
from app.accounting.engine import AccountingEngine, FloatMovement, FloatOperation, OperationResult
from app.api.errors import ConflictError, NotFoundError, ValidationError
from app.database.models import Branch, FloatAccount, FloatAccountType, FloatTransaction, GLAccount, SourceModule
from app.database.session import unit_of_work
from app.ledger.service import JournalLine
from app.schemas.common import Actor
from app.schemas.float_account import (
    BalanceAdjustmentRequest,
    FloatAccountCreate,
    FloatThresholdUpdate,
    RechargeRequest,
    WithdrawRequest,
)
from app.services.audit_service import AuditService
from app.services.gl_account_service import GLAccountService
from app.services.mapping_service import MappingService
from app.utils.dates import local_day_range
from app.utils.references import generate_reference
from app.validators.business import ensure_distinct_values, to_money

logger = logging.getLogger(__name__)

ZERO = Decimal("0")


class FloatService:
    """Create float accounts and move their balances with matching GL postings."""

    def __init__(self) -> None:
        self.engine = AccountingEngine()
        self.gl_accounts = GLAccountService()
        self.mappings = MappingService()
        self.audit = AuditService()

    async def create_float_account(
        self,
        session: AsyncSession,
        payload: FloatAccountCreate,
        actor: Actor,
    ) -> FloatAccount:
        """Create an account, its GL mirror, and book any opening balance."""

        async with unit_of_work(session):
            account = await self.create_account_row(session, payload)
            if payload.opening_balance > 0:
                await self._post_opening_balance(session, account, payload.opening_balance, actor)
            await self.audit.record(
                session,
                actor=actor,
                action="float_account_create",
                entity_type="float_account",
                entity_id=account.id,
                amount=payload.opening_balance,
                branch_id=account.branch_id,
                details={"account_type": account.account_type, "provider": account.provider},
            )
        return account

    async def get_account(self, session: AsyncSession, account_id: int) -> FloatAccount:
        account = await session.get(FloatAccount, account_id)
        if account is None:
            raise NotFoundError(f"Float account not found: {account_id}")
        return account

    async def list_accounts(
        self,
        session: AsyncSession,
        *,
        branch_id: Optional[int] = None,
        account_type: Optional[FloatAccountType] = None,
        active_only: bool = False,
    ) -> list[FloatAccount]:
        query = select(FloatAccount).order_by(FloatAccount.branch_id.asc(), FloatAccount.id.asc())
        if branch_id is not None:
            query = query.where(FloatAccount.branch_id == branch_id)
        if account_type is not None:
            query = query.where(FloatAccount.account_type == account_type.value)
        if active_only:
            query = query.where(FloatAccount.is_active.is_(True))
        result = await session.execute(query)
        return list(result.scalars().all())

    async def cash_in_till(self, session: AsyncSession, branch_id: int) -> FloatAccount:
        """Return the branch's active cash-in-till account."""

        result = await session.execute(
            select(FloatAccount)
            .where(
                FloatAccount.branch_id == branch_id,
                FloatAccount.account_type == FloatAccountType.CASH_IN_TILL.value,
                FloatAccount.is_active.is_(True),
            )
            .order_by(FloatAccount.id.asc())
            .limit(1)
        )
        account = result.scalar_one_or_none()
        if account is None:
            raise NotFoundError(f"Branch {branch_id} has no active cash-in-till account")
        return account

    async def recharge(
        self,
        session: AsyncSession,
        account_id: int,
        payload: RechargeRequest,
        actor: Actor,
    ) -> OperationResult:
        """Transfer float from the source account into ``account_id``."""

        ensure_distinct_values(account_id, payload.source_account_id, "source and target account")

        async with unit_of_work(session):
            target = await self.get_account(session, account_id)
            source = await self.get_account(session, payload.source_account_id)
            if source.branch_id != target.branch_id:
                raise ValidationError("Recharge source and target must belong to the same branch")

            reference = generate_reference("RCH")
            result = await self.engine.execute(
                session,
                FloatOperation(
                    source_module=SourceModule.FLOAT_OPERATIONS.value,
                    source_transaction_type="recharge",
                    source_transaction_id=reference,
                    reference=reference,
                    description=payload.description or f"Recharge {target.provider} from {source.provider}",
                    branch_id=target.branch_id,
                    processed_by=actor.id,
                    movements=[
                        FloatMovement(source.id, -payload.amount, "transfer_out", f"Transfer to {target.provider}"),
                        FloatMovement(target.id, payload.amount, "recharge", f"Recharge from {source.provider}"),
                    ],
                ),
            )
            await self.audit.record(
                session,
                actor=actor,
                action="float_recharge",
                entity_type="float_account",
                entity_id=target.id,
                amount=payload.amount,
                branch_id=target.branch_id,
                details={"source_account_id": source.id, "reference": reference},
            )
        return result

    async def withdraw(
        self,
        session: AsyncSession,
        account_id: int,
        payload: WithdrawRequest,
        actor: Actor,
    ) -> OperationResult:
        """Move float out of ``account_id`` into the branch cash-in-till."""

        async with unit_of_work(session):
            account = await self.get_account(session, account_id)
            till = await self.cash_in_till(session, account.branch_id)
            if till.id == account.id:
                raise ValidationError("Cannot withdraw from the cash-in-till into itself")

            reference = generate_reference("WDR")
            result = await self.engine.execute(
                session,
                FloatOperation(
                    source_module=SourceModule.FLOAT_OPERATIONS.value,
                    source_transaction_type="withdrawal",
                    source_transaction_id=reference,
                    reference=reference,
                    description=payload.description or f"Withdrawal from {account.provider} float",
                    branch_id=account.branch_id,
                    processed_by=actor.id,
                    movements=[
                        FloatMovement(account.id, -payload.amount, "withdrawal"),
                        FloatMovement(till.id, payload.amount, "transfer_in"),
                    ],
                ),
            )
            await self.audit.record(
                session,
                actor=actor,
                action="float_withdrawal",
                entity_type="float_account",
                entity_id=account.id,
                amount=payload.amount,
                branch_id=account.branch_id,
                details={"reference": reference},
            )
        return result

    async def adjust_balance(
        self,
        session: AsyncSession,
        account_id: int,
        payload: BalanceAdjustmentRequest,
        actor: Actor,
    ) -> OperationResult:
        """Correct a balance by a signed amount against the float adjustment account."""

        async with unit_of_work(session):
            account = await self.get_account(session, account_id)
            counter = await self.mappings.resolve(
                session, SourceModule.FLOAT_OPERATIONS.value, "adjustment", account.branch_id
            )

            reference = generate_reference("ADJ")
            result = await self.engine.execute(
                session,
                FloatOperation(
                    source_module=SourceModule.FLOAT_OPERATIONS.value,
                    source_transaction_type="balance_adjustment",
                    source_transaction_id=reference,
                    reference=reference,
                    description=payload.description,
                    branch_id=account.branch_id,
                    processed_by=actor.id,
                    movements=[
                        FloatMovement(
                            account.id,
                            payload.amount,
                            "adjustment_credit" if payload.amount > 0 else "adjustment_debit",
                        )
                    ],
                    counter_lines=[JournalLine.signed(counter.id, -payload.amount, payload.description)],
                ),
            )
            await self.audit.record(
                session,
                actor=actor,
                action="float_balance_adjustment",
                entity_type="float_account",
                entity_id=account.id,
                amount=payload.amount,
                branch_id=account.branch_id,
                details={"reference": reference, "description": payload.description},
            )
        return result

    async def update_thresholds(
        self,
        session: AsyncSession,
        account_id: int,
        payload: FloatThresholdUpdate,
        actor: Actor,
    ) -> FloatAccount:
        async with unit_of_work(session):
            account = await self.get_account(session, account_id)
            account.min_threshold = payload.min_threshold
            account.max_threshold = payload.max_threshold
            await self.audit.record(
                session,
                actor=actor,
                action="float_thresholds_update",
                entity_type="float_account",
                entity_id=account.id,
                branch_id=account.branch_id,
                details={
                    "min_threshold": str(payload.min_threshold),
                    "max_threshold": str(payload.max_threshold) if payload.max_threshold is not None else None,
                },
            )
        return account

    async def deactivate(self, session: AsyncSession, account_id: int, actor: Actor) -> FloatAccount:
        """Deactivate an empty account. Accounts holding float must be emptied first."""

        async with unit_of_work(session):
            accounts = await self.engine.lock_accounts(session, [account_id])
            account = accounts[account_id]
            if account.current_balance != 0:
                raise ConflictError(
                    f"Float account {account.id} still holds {account.current_balance}; transfer it out first"
                )
            account.is_active = False
            await self.audit.record(
                session,
                actor=actor,
                action="float_account_deactivate",
                entity_type="float_account",
                entity_id=account.id,
                branch_id=account.branch_id,
            )
        return account

    async def low_balance_alerts(self, session: AsyncSession, branch_id: Optional[int] = None) -> list[FloatAccount]:
        """Active accounts whose balance is below their minimum threshold."""

        query = (
            select(FloatAccount)
            .where(
                FloatAccount.is_active.is_(True),
                FloatAccount.current_balance < FloatAccount.min_threshold,
            )
            .order_by(FloatAccount.branch_id.asc(), FloatAccount.id.asc())
        )
        if branch_id is not None:
            query = query.where(FloatAccount.branch_id == branch_id)
        result = await session.execute(query)
        return list(result.scalars().all())

    async def statement(
        self,
        session: AsyncSession,
        account_id: int,
        *,
        date_from: Optional[date] = None,
        date_to: Optional[date] = None,
    ) -> tuple[FloatAccount, Decimal, list[FloatTransaction]]:
        """Return the account, its opening balance at ``date_from`` and the movements in range."""

        account = await self.get_account(session, account_id)
        start_dt, end_dt = local_day_range(date_from, date_to)

        opening = ZERO
        if start_dt is not None:
            opening_result = await session.execute(
                select(func.coalesce(func.sum(FloatTransaction.amount), 0)).where(
                    FloatTransaction.float_account_id == account.id,
                    FloatTransaction.created_at < start_dt,
                )
            )
            opening = to_money(Decimal(opening_result.scalar_one()))

        query = (
            select(FloatTransaction)
            .where(FloatTransaction.float_account_id == account.id)
            .order_by(FloatTransaction.created_at.asc(), FloatTransaction.id.asc())
        )
        if start_dt is not None:
            query = query.where(FloatTransaction.created_at >= start_dt)
        if end_dt is not None:
            query = query.where(FloatTransaction.created_at < end_dt)
        result = await session.execute(query)
        return account, opening, list(result.scalars().all())

    async def create_account_row(self, session: AsyncSession, payload: FloatAccountCreate) -> FloatAccount:
        branch = await session.get(Branch, payload.branch_id)
        if branch is None:
            raise NotFoundError(f"Branch not found: {payload.branch_id}")
        if not branch.is_active:
            raise ConflictError(f"Branch {branch.code} is not active")

        # Providers that differ only in case or punctuation would share one GL mirror.
        gl_code = float_gl_code(payload.account_type, payload.provider)
        clash = await session.execute(
            select(FloatAccount.provider)
            .join(GLAccount, GLAccount.id == FloatAccount.gl_account_id)
            .where(FloatAccount.branch_id == payload.branch_id, GLAccount.code == gl_code)
            .limit(1)
        )
        existing_provider = clash.scalar_one_or_none()
        if existing_provider is not None:
            raise ConflictError(
                f"Branch {branch.code} already has a {payload.account_type.value} account for "
                f"{existing_provider} (GL {gl_code})"
            )

        gl_account = await self.gl_accounts.get_or_create_float_account_gl(
            session,
            branch_id=branch.id,
            account_type=payload.account_type,
            provider=payload.provider,
        )
        account = FloatAccount(
            branch_id=branch.id,
            account_type=payload.account_type.value,
            provider=payload.provider,
            account_number=payload.account_number,
            current_balance=ZERO,
            min_threshold=payload.min_threshold,
            max_threshold=payload.max_threshold,
            gl_account_id=gl_account.id,
            is_active=True,
        )
        session.add(account)
        await session.flush()
        logger.info("Float account %s created for branch %s (%s)", account.id, branch.code, gl_account.code)
        return account

    async def _post_opening_balance(
        self,
        session: AsyncSession,
        account: FloatAccount,
        amount: Decimal,
        actor: Actor,
    ) -> OperationResult:
        counter = await self.mappings.resolve(session, SourceModule.FLOAT_OPERATIONS.value, "initial", account.branch_id)
        reference = generate_reference("INIT")
        return await self.engine.execute(
            session,
            FloatOperation(
                source_module=SourceModule.FLOAT_OPERATIONS.value,
                source_transaction_type="initial_balance",
                source_transaction_id=f"float-account-{account.id}",
                reference=reference,
                description=f"Opening balance for {account.provider} float",
                branch_id=account.branch_id,
                processed_by=actor.id,
                movements=[FloatMovement(account.id, amount, "initial_balance")],
                counter_lines=[JournalLine.cr(counter.id, amount, "Opening float capital")],
            ),
        )

