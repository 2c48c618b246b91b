"""Core engine that moves float balances and posts the matching GL entry together."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal
from typing import Optional, Sequence

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.errors import ConflictError, InsufficientFundsError, NotFoundError, ValidationError
from app.database.models import FloatAccount, FloatTransaction, GLTransaction
from app.ledger.service import JournalLine, LedgerService, PostingRequest
from app.validators.business import ensure_non_zero_decimal, to_money

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class FloatMovement:
    """Signed change to one float account. Positive adds float, negative removes it."""

    account_id: int
    amount: Decimal
    transaction_type: str
    description: Optional[str] = None


@dataclass
class FloatOperation:
    """A business event expressed as float movements plus any non-float GL lines."""

    source_module: str
    source_transaction_type: str
    source_transaction_id: str
    reference: str
    description: str
    branch_id: int
    processed_by: str
    movements: list[FloatMovement]
    counter_lines: list[JournalLine] = field(default_factory=list)
    entry_date: Optional[date] = None
    reversal_of_id: Optional[int] = None


@dataclass
class OperationResult:
    """What an operation wrote."""

    gl_transaction: GLTransaction
    accounts: dict[int, FloatAccount]
    float_transactions: list[FloatTransaction]

    def balance_of(self, account_id: int) -> Decimal:
        return self.accounts[account_id].current_balance


class AccountingEngine:
    """Apply float movements and their GL posting inside the caller's transaction.

    Float rows are locked with ``SELECT ... FOR UPDATE`` in ascending id order,
    so two operations touching the same accounts serialize instead of racing on
    ``current_balance``, and cannot deadlock on each other.
    """

    def __init__(self) -> None:
        self.ledger_service = LedgerService()

    async def lock_accounts(self, session: AsyncSession, account_ids: Sequence[int]) -> dict[int, FloatAccount]:
        """Lock and return float accounts by id."""

        wanted = sorted(set(account_ids))
        result = await session.execute(
            select(FloatAccount)
            .where(FloatAccount.id.in_(wanted))
            .order_by(FloatAccount.id.asc())
            .with_for_update()
            .execution_options(populate_existing=True)
        )
        accounts = {account.id: account for account in result.scalars().all()}
        for account_id in wanted:
            if account_id not in accounts:
                raise NotFoundError(f"Float account not found: {account_id}")
        return accounts

    async def execute(self, session: AsyncSession, operation: FloatOperation) -> OperationResult:
        """Validate, move balances, write float transactions and post GL as one unit."""

        if not operation.movements:
            raise ValidationError("An operation needs at least one float movement")
        for movement in operation.movements:
            ensure_non_zero_decimal(movement.amount, "amount")

        already_posted = await self.ledger_service.find_posting(
            session,
            operation.source_module,
            operation.source_transaction_type,
            operation.source_transaction_id,
        )
        if already_posted is not None:
            raise ConflictError(f"Operation {operation.reference} has already been processed")

        accounts = await self.lock_accounts(session, [movement.account_id for movement in operation.movements])

        projected = {account_id: account.current_balance for account_id, account in accounts.items()}
        planned: list[tuple[FloatMovement, Decimal, Decimal]] = []
        for movement in operation.movements:
            account = accounts[movement.account_id]
            if not account.is_active:
                raise ConflictError(f"Float account {account.id} ({account.provider}) is not active")
            amount = to_money(movement.amount)
            before = projected[account.id]
            after = before + amount
            if after < 0:
                raise InsufficientFundsError(
                    f"Insufficient balance on float account {account.id} ({account.provider}): "
                    f"balance {before}, requested {-amount}"
                )
            projected[account.id] = after
            planned.append((movement, before, after))

        lines = [
            JournalLine.signed(
                accounts[movement.account_id].gl_account_id,
                to_money(movement.amount),
                movement.description or operation.description,
            )
            for movement, _, _ in planned
        ]
        lines.extend(operation.counter_lines)

        gl_transaction = await self.ledger_service.post(
            session,
            PostingRequest(
                source_module=operation.source_module,
                source_transaction_type=operation.source_transaction_type,
                source_transaction_id=operation.source_transaction_id,
                description=operation.description,
                created_by=operation.processed_by,
                lines=lines,
                branch_id=operation.branch_id,
                entry_date=operation.entry_date,
                reversal_of_id=operation.reversal_of_id,
            ),
        )

        float_transactions = []
        for movement, before, after in planned:
            account = accounts[movement.account_id]
            account.current_balance = after
            float_transactions.append(
                FloatTransaction(
                    float_account_id=account.id,
                    transaction_type=movement.transaction_type,
                    amount=to_money(movement.amount),
                    balance_before=before,
                    balance_after=after,
                    reference=operation.reference,
                    description=movement.description or operation.description,
                    processed_by=operation.processed_by,
                    branch_id=account.branch_id,
                    gl_transaction_id=gl_transaction.id,
                )
            )
        session.add_all(float_transactions)
        await session.flush()

        logger.info(
            "%s %s applied: %s",
            operation.source_module,
            operation.reference,
            ", ".join(f"float {m.account_id} {m.amount:+}" for m, _, _ in planned),
        )
        return OperationResult(gl_transaction=gl_transaction, accounts=accounts, float_transactions=float_transactions)
