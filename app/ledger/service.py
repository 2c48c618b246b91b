"""Double-entry posting, reversal and balance projections."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from typing import Optional, Sequence

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.errors import ConflictError, NotFoundError, UnbalancedEntryError, ValidationError
from app.database.models import AccountType, GLAccount, GLJournalEntry, GLTransaction, GLTransactionStatus
from app.utils.references import generate_reference
from app.validators.business import to_money

logger = logging.getLogger(__name__)

ZERO = Decimal("0")


@dataclass(frozen=True)
class JournalLine:
    """One side of a posting. Exactly one of debit/credit is positive."""

    account_id: int
    debit: Decimal = ZERO
    credit: Decimal = ZERO
    description: Optional[str] = None

    @classmethod
    def dr(cls, account_id: int, amount: Decimal, description: Optional[str] = None) -> JournalLine:
        return cls(account_id=account_id, debit=to_money(amount), description=description)

    @classmethod
    def cr(cls, account_id: int, amount: Decimal, description: Optional[str] = None) -> JournalLine:
        return cls(account_id=account_id, credit=to_money(amount), description=description)

    @classmethod
    def signed(cls, account_id: int, amount: Decimal, description: Optional[str] = None) -> JournalLine:
        """Positive amounts debit the account, negative amounts credit it."""

        if amount >= 0:
            return cls.dr(account_id, amount, description)
        return cls.cr(account_id, -amount, description)


@dataclass
class PostingRequest:
    """Everything needed to post one GL transaction."""

    source_module: str
    source_transaction_type: str
    source_transaction_id: str
    description: str
    created_by: str
    lines: list[JournalLine]
    branch_id: Optional[int] = None
    entry_date: Optional[date] = None
    reference: Optional[str] = None
    reversal_of_id: Optional[int] = None


@dataclass
class AccountBalance:
    """Debit/credit totals and normal-side balance of one account."""

    account: GLAccount
    total_debit: Decimal = ZERO
    total_credit: Decimal = ZERO
    balance: Decimal = ZERO


def validate_lines(lines: Sequence[JournalLine]) -> tuple[Decimal, Decimal]:
    """Check the double-entry rules and return (total_debit, total_credit)."""

    if len(lines) < 2:
        raise ValidationError("A journal entry needs at least two lines")

    total_debit = ZERO
    total_credit = ZERO
    for index, line in enumerate(lines, start=1):
        debit, credit = to_money(line.debit), to_money(line.credit)
        if debit < 0 or credit < 0:
            raise ValidationError(f"Line {index}: amounts must not be negative")
        if (debit > 0) == (credit > 0):
            raise ValidationError(f"Line {index}: exactly one of debit or credit must be positive")
        total_debit += debit
        total_credit += credit

    if total_debit != total_credit:
        raise UnbalancedEntryError(f"Journal entry does not balance: debits {total_debit}, credits {total_credit}")
    return total_debit, total_credit


def normal_balance(account_type: str, total_debit: Decimal, total_credit: Decimal) -> Decimal:
    """Balance on the account's normal side."""

    if AccountType(account_type).is_debit_normal:
        return total_debit - total_credit
    return total_credit - total_debit


class LedgerService:
    """Service focused on immutable ledger operations and projections."""

    async def find_posting(
        self,
        session: AsyncSession,
        source_module: str,
        source_transaction_type: str,
        source_transaction_id: str,
    ) -> Optional[GLTransaction]:
        result = await session.execute(
            select(GLTransaction).where(
                GLTransaction.source_module == source_module,
                GLTransaction.source_transaction_type == source_transaction_type,
                GLTransaction.source_transaction_id == source_transaction_id,
            )
        )
        return result.scalar_one_or_none()

    async def post(self, session: AsyncSession, request: PostingRequest) -> GLTransaction:
        """Validate and persist a balanced posting.

        A posting whose source key already exists is returned unchanged, so a
        retried request never books the same business event twice.
        """

        validate_lines(request.lines)

        existing = await self.find_posting(
            session,
            request.source_module,
            request.source_transaction_type,
            request.source_transaction_id,
        )
        if existing is not None:
            logger.info(
                "Posting %s/%s/%s already exists as GL %s",
                request.source_module,
                request.source_transaction_type,
                request.source_transaction_id,
                existing.id,
            )
            return existing

        await self._ensure_accounts_usable(session, {line.account_id for line in request.lines})

        transaction = GLTransaction(
            reference=request.reference or generate_reference("GL"),
            entry_date=request.entry_date or date.today(),
            description=request.description,
            source_module=request.source_module,
            source_transaction_type=request.source_transaction_type,
            source_transaction_id=request.source_transaction_id,
            status=GLTransactionStatus.POSTED.value,
            branch_id=request.branch_id,
            created_by=request.created_by,
            reversal_of_id=request.reversal_of_id,
        )
        session.add(transaction)
        await session.flush()

        session.add_all(
            [
                GLJournalEntry(
                    transaction_id=transaction.id,
                    account_id=line.account_id,
                    debit=to_money(line.debit),
                    credit=to_money(line.credit),
                    description=line.description,
                )
                for line in request.lines
            ]
        )
        await session.flush()
        logger.info(
            "GL %s posted: %s/%s %s lines",
            transaction.reference,
            request.source_module,
            request.source_transaction_type,
            len(request.lines),
        )
        return transaction

    async def reverse(
        self,
        session: AsyncSession,
        gl_transaction_id: int,
        *,
        created_by: str,
        reason: Optional[str] = None,
    ) -> GLTransaction:
        """Post the mirror image of a transaction and mark the original reversed."""

        result = await session.execute(
            select(GLTransaction)
            .where(GLTransaction.id == gl_transaction_id)
            .with_for_update()
            .execution_options(populate_existing=True)
        )
        original = result.scalar_one_or_none()
        if original is None:
            raise NotFoundError(f"GL transaction not found: {gl_transaction_id}")
        if original.reversal_of_id is not None:
            raise ConflictError(f"GL transaction {original.reference} is itself a reversal")
        if original.status == GLTransactionStatus.REVERSED.value:
            raise ConflictError(f"GL transaction {original.reference} is already reversed")

        lines = await self.lines_for(session, original.id)
        reversal = await self.post(
            session,
            PostingRequest(
                source_module=original.source_module,
                source_transaction_type=f"{original.source_transaction_type}_reversal",
                source_transaction_id=original.source_transaction_id,
                description=f"Reversal of {original.reference}" + (f": {reason}" if reason else ""),
                created_by=created_by,
                branch_id=original.branch_id,
                lines=[
                    JournalLine(
                        account_id=line.account_id,
                        debit=line.credit,
                        credit=line.debit,
                        description=line.description,
                    )
                    for line in lines
                ],
                reversal_of_id=original.id,
            ),
        )
        original.status = GLTransactionStatus.REVERSED.value
        await session.flush()
        return reversal

    async def get_transaction(self, session: AsyncSession, gl_transaction_id: int) -> GLTransaction:
        transaction = await session.get(GLTransaction, gl_transaction_id)
        if transaction is None:
            raise NotFoundError(f"GL transaction not found: {gl_transaction_id}")
        return transaction

    async def lines_for(self, session: AsyncSession, gl_transaction_id: int) -> list[GLJournalEntry]:
        result = await session.execute(
            select(GLJournalEntry)
            .where(GLJournalEntry.transaction_id == gl_transaction_id)
            .order_by(GLJournalEntry.id.asc())
        )
        return list(result.scalars().all())

    async def transaction_history(
        self,
        session: AsyncSession,
        *,
        offset: int,
        limit: int,
        branch_id: Optional[int] = None,
        source_module: Optional[str] = None,
        date_from: Optional[date] = None,
        date_to: Optional[date] = None,
    ) -> tuple[int, list[GLTransaction]]:
        """Return filtered paginated GL transactions newest first, and the total."""

        filters = []
        if branch_id is not None:
            filters.append(GLTransaction.branch_id == branch_id)
        if source_module:
            filters.append(GLTransaction.source_module == source_module)
        if date_from is not None:
            filters.append(GLTransaction.entry_date >= date_from)
        if date_to is not None:
            filters.append(GLTransaction.entry_date <= date_to)

        total_result = await session.execute(select(func.count(GLTransaction.id)).where(*filters))
        total = int(total_result.scalar_one())

        result = await session.execute(
            select(GLTransaction)
            .where(*filters)
            .order_by(GLTransaction.entry_date.desc(), GLTransaction.id.desc())
            .offset(offset)
            .limit(limit)
        )
        return total, list(result.scalars().all())

    async def account_balances(
        self,
        session: AsyncSession,
        *,
        branch_id: Optional[int] = None,
        date_from: Optional[date] = None,
        as_of: Optional[date] = None,
        account_ids: Optional[Sequence[int]] = None,
    ) -> list[AccountBalance]:
        """Aggregate journal lines per account, optionally scoped by posting branch and date."""

        totals = (
            select(
                GLJournalEntry.account_id.label("account_id"),
                func.coalesce(func.sum(GLJournalEntry.debit), 0).label("total_debit"),
                func.coalesce(func.sum(GLJournalEntry.credit), 0).label("total_credit"),
            )
            .join(GLTransaction, GLTransaction.id == GLJournalEntry.transaction_id)
            .group_by(GLJournalEntry.account_id)
        )
        if branch_id is not None:
            totals = totals.where(GLTransaction.branch_id == branch_id)
        if date_from is not None:
            totals = totals.where(GLTransaction.entry_date >= date_from)
        if as_of is not None:
            totals = totals.where(GLTransaction.entry_date <= as_of)
        totals_sq = totals.subquery()

        query = (
            select(GLAccount, totals_sq.c.total_debit, totals_sq.c.total_credit)
            .outerjoin(totals_sq, totals_sq.c.account_id == GLAccount.id)
            .order_by(GLAccount.code.asc(), GLAccount.id.asc())
        )
        if account_ids is not None:
            query = query.where(GLAccount.id.in_(list(account_ids)))

        result = await session.execute(query)
        balances: list[AccountBalance] = []
        for account, total_debit, total_credit in result.all():
            debit = to_money(Decimal(total_debit or 0))
            credit = to_money(Decimal(total_credit or 0))
            balances.append(
                AccountBalance(
                    account=account,
                    total_debit=debit,
                    total_credit=credit,
                    balance=normal_balance(account.account_type, debit, credit),
                )
            )
        return balances

    async def account_balance(
        self,
        session: AsyncSession,
        account_id: int,
        *,
        as_of: Optional[date] = None,
    ) -> Decimal:
        """Normal-side balance of one account."""

        rows = await self.account_balances(session, as_of=as_of, account_ids=[account_id])
        if not rows:
            raise NotFoundError(f"GL account not found: {account_id}")
        return rows[0].balance

    async def _ensure_accounts_usable(self, session: AsyncSession, account_ids: set[int]) -> None:
        result = await session.execute(select(GLAccount).where(GLAccount.id.in_(account_ids)))
        accounts = {account.id: account for account in result.scalars().all()}
        missing = sorted(account_ids - accounts.keys())
        if missing:
            raise NotFoundError(f"GL account not found: {missing[0]}")
        inactive = sorted(account.code for account in accounts.values() if not account.is_active)
        if inactive:
            raise ValidationError(f"GL account {inactive[0]} is inactive")
