"""Expense approval workflow; approval pays the expense out of float."""

from __future__ import annotations

import logging
from datetime import date, datetime, timezone
from typing import Optional

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.accounting.engine import AccountingEngine, FloatMovement, FloatOperation
from app.api.errors import ConflictError, NotFoundError, ValidationError
from app.database.models import Expense, ExpenseStatus, SourceModule
from app.database.session import unit_of_work
from app.ledger.service import JournalLine
from app.schemas.common import Actor
from app.schemas.expense import ExpenseCreate, ExpenseReject
from app.services.audit_service import AuditService
from app.services.float_service import FloatService
from app.services.mapping_service import MappingService
from app.utils.references import generate_reference

logger = logging.getLogger(__name__)

MODULE = SourceModule.EXPENSES.value


class ExpenseService:
    def __init__(self) -> None:
        self.engine = AccountingEngine()
        self.float_service = FloatService()
        self.mappings = MappingService()
        self.audit = AuditService()

    async def create_expense(self, session: AsyncSession, payload: ExpenseCreate, actor: Actor) -> Expense:
        """Record a pending expense. Nothing is posted until approval."""

        async with unit_of_work(session):
            account = await self.float_service.get_account(session, payload.float_account_id)
            if account.branch_id != payload.branch_id:
                raise ValidationError(f"Float account {account.id} belongs to another branch")
            if payload.reference is not None:
                duplicate = await session.execute(select(Expense.id).where(Expense.reference == payload.reference))
                if duplicate.scalar_one_or_none() is not None:
                    raise ConflictError(f"Expense reference already used: {payload.reference}")

            expense = Expense(
                branch_id=payload.branch_id,
                category=payload.category,
                amount=payload.amount,
                description=payload.description,
                float_account_id=account.id,
                expense_date=payload.expense_date,
                reference=payload.reference or generate_reference("EXP"),
                status=ExpenseStatus.PENDING.value,
                created_by=actor.id,
            )
            session.add(expense)
            await session.flush()
            await self.audit.record(
                session,
                actor=actor,
                action="expense_create",
                entity_type="expense",
                entity_id=expense.id,
                amount=expense.amount,
                branch_id=expense.branch_id,
                details={"category": expense.category, "reference": expense.reference},
            )
        return expense

    async def approve(self, session: AsyncSession, expense_id: int, actor: Actor) -> Expense:
        """Pay the expense from its float account. Insufficient float leaves it pending."""

        async with unit_of_work(session):
            expense = await self._lock(session, expense_id)
            self._require_pending(expense)
            expense_account = await self.mappings.resolve(session, MODULE, expense.category, expense.branch_id)

            result = await self.engine.execute(
                session,
                FloatOperation(
                    source_module=MODULE,
                    source_transaction_type="payment",
                    source_transaction_id=str(expense.id),
                    reference=expense.reference,
                    description=expense.description,
                    branch_id=expense.branch_id,
                    processed_by=actor.id,
                    entry_date=expense.expense_date,
                    movements=[FloatMovement(expense.float_account_id, -expense.amount, "expense")],
                    counter_lines=[JournalLine.dr(expense_account.id, expense.amount, expense.description)],
                ),
            )
            expense.status = ExpenseStatus.APPROVED.value
            expense.approved_by = actor.id
            expense.approved_at = datetime.now(timezone.utc)
            expense.gl_transaction_id = result.gl_transaction.id
            await session.flush()
            await self.audit.record(
                session,
                actor=actor,
                action="expense_approve",
                entity_type="expense",
                entity_id=expense.id,
                amount=expense.amount,
                branch_id=expense.branch_id,
                details={"gl_transaction_id": result.gl_transaction.id},
            )
        return expense

    async def reject(self, session: AsyncSession, expense_id: int, payload: ExpenseReject, actor: Actor) -> Expense:
        async with unit_of_work(session):
            expense = await self._lock(session, expense_id)
            self._require_pending(expense)
            expense.status = ExpenseStatus.REJECTED.value
            expense.approved_by = actor.id
            expense.approved_at = datetime.now(timezone.utc)
            expense.rejection_reason = payload.reason
            await session.flush()
            await self.audit.record(
                session,
                actor=actor,
                action="expense_reject",
                entity_type="expense",
                entity_id=expense.id,
                amount=expense.amount,
                branch_id=expense.branch_id,
                details={"reason": payload.reason},
            )
        logger.info("Expense %s rejected by %s", expense.reference, actor.id)
        return expense

    async def get_expense(self, session: AsyncSession, expense_id: int) -> Expense:
        expense = await session.get(Expense, expense_id)
        if expense is None:
            raise NotFoundError(f"Expense not found: {expense_id}")
        return expense

    async def list_expenses(
        self,
        session: AsyncSession,
        *,
        offset: int,
        limit: int,
        branch_id: Optional[int] = None,
        status: Optional[ExpenseStatus] = None,
        category: Optional[str] = None,
        date_from: Optional[date] = None,
        date_to: Optional[date] = None,
    ) -> tuple[int, list[Expense]]:
        filters = []
        if branch_id is not None:
            filters.append(Expense.branch_id == branch_id)
        if status is not None:
            filters.append(Expense.status == status.value)
        if category:
            filters.append(Expense.category == category)
        if date_from is not None:
            filters.append(Expense.expense_date >= date_from)
        if date_to is not None:
            filters.append(Expense.expense_date <= date_to)

        total_result = await session.execute(select(func.count(Expense.id)).where(*filters))
        total = int(total_result.scalar_one())

        result = await session.execute(
            select(Expense)
            .where(*filters)
            .order_by(Expense.expense_date.desc(), Expense.id.desc())
            .offset(offset)
            .limit(limit)
        )
        return total, list(result.scalars().all())

    async def _lock(self, session: AsyncSession, expense_id: int) -> Expense:
        result = await session.execute(
            select(Expense)
            .where(Expense.id == expense_id)
            .with_for_update()
            .execution_options(populate_existing=True)
        )
        expense = result.scalar_one_or_none()
        if expense is None:
            raise NotFoundError(f"Expense not found: {expense_id}")
        return expense

    @staticmethod
    def _require_pending(expense: Expense) -> None:
        if expense.status != ExpenseStatus.PENDING.value:
            raise ConflictError(f"Expense {expense.reference} is already {expense.status}")
