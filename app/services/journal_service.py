"""Manual journal entries and reversal of manual postings."""

from __future__ import annotations

import logging
from decimal import Decimal
from typing import Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.errors import ConflictError, NotFoundError, ValidationError
from app.database.models import Branch, EntrySide, GLTransaction, SourceModule
from app.database.session import unit_of_work
from app.ledger.service import JournalLine, LedgerService, PostingRequest
from app.schemas.common import Actor
from app.schemas.gl import ManualJournalEntryCreate
from app.services.audit_service import AuditService
from app.utils.references import generate_reference

logger = logging.getLogger(__name__)


class JournalService:
    """Service for hand-keyed balanced entries."""

    def __init__(self) -> None:
        self.ledger = LedgerService()
        self.audit = AuditService()

    async def create_manual_entry(
        self,
        session: AsyncSession,
        payload: ManualJournalEntryCreate,
        actor: Actor,
    ) -> GLTransaction:
        """Post a manual entry. Re-submitting the same reference returns the first posting."""

        lines = [
            JournalLine.dr(line.account_id, line.amount, line.description)
            if line.side == EntrySide.DEBIT
            else JournalLine.cr(line.account_id, line.amount, line.description)
            for line in payload.lines
        ]
        reference = payload.reference.strip() if payload.reference else generate_reference("JE")

        async with unit_of_work(session):
            branch = await session.get(Branch, payload.branch_id)
            if branch is None:
                raise NotFoundError(f"Branch not found: {payload.branch_id}")

            existing = await self.ledger.find_posting(session, SourceModule.MANUAL.value, "journal_entry", reference)
            if existing is None:
                taken = await session.execute(
                    select(GLTransaction.source_module).where(GLTransaction.reference == reference).limit(1)
                )
                owner = taken.scalar_one_or_none()
                if owner is not None:
                    raise ConflictError(f"GL reference {reference} is already used by a {owner} posting")
            transaction = await self.ledger.post(
                session,
                PostingRequest(
                    source_module=SourceModule.MANUAL.value,
                    source_transaction_type="journal_entry",
                    source_transaction_id=reference,
                    description=payload.description,
                    created_by=actor.id,
                    lines=lines,
                    branch_id=branch.id,
                    entry_date=payload.entry_date,
                    reference=reference,
                ),
            )
            if existing is None:
                await self.audit.record(
                    session,
                    actor=actor,
                    action="gl_manual_entry",
                    entity_type="gl_transaction",
                    entity_id=transaction.id,
                    amount=sum((line.debit for line in lines), Decimal("0")),
                    branch_id=branch.id,
                    details={"reference": reference, "lines": len(lines)},
                )
        return transaction

    async def reverse_manual_entry(
        self,
        session: AsyncSession,
        gl_transaction_id: int,
        actor: Actor,
        reason: Optional[str] = None,
    ) -> GLTransaction:
        """Reverse a manual posting.

        Postings owned by a business module also moved float balances; those are
        reversed through their own module so float and GL stay in step.
        """

        async with unit_of_work(session):
            original = await self.ledger.get_transaction(session, gl_transaction_id)
            if original.source_module != SourceModule.MANUAL.value:
                raise ValidationError(
                    f"GL transaction {original.reference} belongs to {original.source_module}; "
                    "reverse it through that module"
                )
            reversal = await self.ledger.reverse(session, original.id, created_by=actor.id, reason=reason)
            await self.audit.record(
                session,
                actor=actor,
                action="gl_reversal",
                entity_type="gl_transaction",
                entity_id=original.id,
                branch_id=original.branch_id,
                details={"reversal_id": reversal.id, "reason": reason},
            )
        logger.info("Manual GL %s reversed by %s", original.reference, reversal.reference)
        return reversal
