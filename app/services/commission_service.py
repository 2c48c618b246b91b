"""Commission lifecycle: recognize, approve, reject, settle into float."""

from __future__ import annotations

import logging
from datetime import date, datetime, timezone
from typing import Optional

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.accounting.chart import COMMISSION_REVENUE_CODES
from app.accounting.engine import AccountingEngine, FloatMovement, FloatOperation
from app.api.errors import ConflictError, NotFoundError, ValidationError
from app.database.models import Commission, CommissionStatus, SourceModule
from app.database.session import unit_of_work
from app.ledger.service import JournalLine, LedgerService, PostingRequest
from app.schemas.commission import CommissionApprove, CommissionCreate, CommissionMarkPaid, CommissionReject
from app.schemas.common import Actor
from app.services.audit_service import AuditService
from app.services.float_service import FloatService
from app.services.mapping_service import MappingService
from app.utils.references import generate_reference

logger = logging.getLogger(__name__)

MODULE = SourceModule.COMMISSIONS.value


def revenue_mapping_type(source: str) -> str:
    """Posting role of the revenue account for a commission source."""

    return f"revenue:{source if source in COMMISSION_REVENUE_CODES else 'other'}"


class CommissionService:
    """Commission receivables.

    Revenue is recognized once, when the commission is recorded
    (Dr receivable / Cr revenue). Payment moves the money into float and
    clears the receivable; rejection reverses the recognition.
    """

    def __init__(self) -> None:
        self.engine = AccountingEngine()
        self.ledger = LedgerService()
        self.float_service = FloatService()
        self.mappings = MappingService()
        self.audit = AuditService()

    async def create_commission(self, session: AsyncSession, payload: CommissionCreate, actor: Actor) -> Commission:
        async with unit_of_work(session):
            account = await self.float_service.get_account(session, payload.float_account_id)
            if account.branch_id != payload.branch_id:
                raise ValidationError(f"Float account {account.id} belongs to another branch")
            if payload.reference is not None:
                duplicate = await session.execute(
                    select(Commission.id).where(Commission.reference == payload.reference)
                )
                if duplicate.scalar_one_or_none() is not None:
                    raise ConflictError(f"Commission reference already used: {payload.reference}")

            receivable = await self.mappings.resolve(session, MODULE, "receivable", payload.branch_id)
            revenue = await self.mappings.resolve(
                session, MODULE, revenue_mapping_type(payload.source), payload.branch_id
            )

            commission = Commission(
                branch_id=payload.branch_id,
                source=payload.source,
                source_name=payload.source_name,
                float_account_id=account.id,
                amount=payload.amount,
                month=payload.month,
                reference=payload.reference or generate_reference("COM"),
                description=payload.description,
                status=CommissionStatus.PENDING.value,
                created_by=actor.id,
            )
            session.add(commission)
            await session.flush()

            description = f"{payload.source_name} commission {payload.month:%Y-%m}"
            await self.ledger.post(
                session,
                PostingRequest(
                    source_module=MODULE,
                    source_transaction_type="recognition",
                    source_transaction_id=str(commission.id),
                    description=description,
                    created_by=actor.id,
                    branch_id=commission.branch_id,
                    lines=[
                        JournalLine.dr(receivable.id, commission.amount, description),
                        JournalLine.cr(revenue.id, commission.amount, description),
                    ],
                ),
            )
            await self.audit.record(
                session,
                actor=actor,
                action="commission_create",
                entity_type="commission",
                entity_id=commission.id,
                amount=commission.amount,
                branch_id=commission.branch_id,
                details={"reference": commission.reference, "source": commission.source},
            )
        return commission

    async def approve(
        self,
        session: AsyncSession,
        commission_id: int,
        payload: CommissionApprove,
        actor: Actor,
    ) -> Commission:
        async with unit_of_work(session):
            commission = await self._lock(session, commission_id)
            self._require_status(commission, CommissionStatus.PENDING)
            commission.status = CommissionStatus.APPROVED.value
            commission.approved_by = actor.id
            commission.approved_at = datetime.now(timezone.utc)
            commission.approval_notes = payload.notes
            await session.flush()
            await self.audit.record(
                session,
                actor=actor,
                action="commission_approve",
                entity_type="commission",
                entity_id=commission.id,
                amount=commission.amount,
                branch_id=commission.branch_id,
            )
        return commission

    async def reject(
        self,
        session: AsyncSession,
        commission_id: int,
        payload: CommissionReject,
        actor: Actor,
    ) -> Commission:
        """Reject a pending or approved commission and reverse its revenue."""

        async with unit_of_work(session):
            commission = await self._lock(session, commission_id)
            self._require_status(commission, CommissionStatus.PENDING, CommissionStatus.APPROVED)

            recognition = await self.ledger.find_posting(session, MODULE, "recognition", str(commission.id))
            if recognition is not None:
                await self.ledger.reverse(session, recognition.id, created_by=actor.id, reason=payload.reason)

            commission.status = CommissionStatus.REJECTED.value
            commission.approved_by = actor.id
            commission.approved_at = datetime.now(timezone.utc)
            commission.approval_notes = payload.reason
            await session.flush()
            await self.audit.record(
                session,
                actor=actor,
                action="commission_reject",
                entity_type="commission",
                entity_id=commission.id,
                amount=commission.amount,
                branch_id=commission.branch_id,
                details={"reason": payload.reason},
            )
        return commission

    async def mark_paid(
        self,
        session: AsyncSession,
        commission_id: int,
        payload: CommissionMarkPaid,
        actor: Actor,
    ) -> Commission:
        """Credit the commission to its float account and clear the receivable."""

        async with unit_of_work(session):
            commission = await self._lock(session, commission_id)
            self._require_status(commission, CommissionStatus.APPROVED)
            receivable = await self.mappings.resolve(session, MODULE, "receivable", commission.branch_id)

            description = f"{commission.source_name} commission payment {commission.reference}"
            await self.engine.execute(
                session,
                FloatOperation(
                    source_module=MODULE,
                    source_transaction_type="payment",
                    source_transaction_id=str(commission.id),
                    reference=commission.reference,
                    description=description,
                    branch_id=commission.branch_id,
                    processed_by=actor.id,
                    movements=[FloatMovement(commission.float_account_id, commission.amount, "commission")],
                    counter_lines=[JournalLine.cr(receivable.id, commission.amount, description)],
                ),
            )
            commission.status = CommissionStatus.PAID.value
            commission.paid_by = actor.id
            commission.paid_at = datetime.now(timezone.utc)
            commission.payment_method = payload.payment_method
            commission.payment_reference = payload.payment_reference
            await session.flush()
            await self.audit.record(
                session,
                actor=actor,
                action="commission_paid",
                entity_type="commission",
                entity_id=commission.id,
                amount=commission.amount,
                branch_id=commission.branch_id,
                details={"payment_method": payload.payment_method},
            )
        return commission

    async def get_commission(self, session: AsyncSession, commission_id: int) -> Commission:
        commission = await session.get(Commission, commission_id)
        if commission is None:
            raise NotFoundError(f"Commission not found: {commission_id}")
        return commission

    async def list_commissions(
        self,
        session: AsyncSession,
        *,
        offset: int,
        limit: int,
        branch_id: Optional[int] = None,
        status: Optional[CommissionStatus] = None,
        source: Optional[str] = None,
        month: Optional[date] = None,
    ) -> tuple[int, list[Commission]]:
        filters = []
        if branch_id is not None:
            filters.append(Commission.branch_id == branch_id)
        if status is not None:
            filters.append(Commission.status == status.value)
        if source:
            filters.append(Commission.source == source.strip().lower())
        if month is not None:
            filters.append(Commission.month == month.replace(day=1))

        total_result = await session.execute(select(func.count(Commission.id)).where(*filters))
        total = int(total_result.scalar_one())

        result = await session.execute(
            select(Commission)
            .where(*filters)
            .order_by(Commission.month.desc(), Commission.id.desc())
            .offset(offset)
            .limit(limit)
        )
        return total, list(result.scalars().all())

    async def _lock(self, session: AsyncSession, commission_id: int) -> Commission:
        result = await session.execute(
            select(Commission)
            .where(Commission.id == commission_id)
            .with_for_update()
            .execution_options(populate_existing=True)
        )
        commission = result.scalar_one_or_none()
        if commission is None:
            raise NotFoundError(f"Commission not found: {commission_id}")
        return commission

    @staticmethod
    def _require_status(commission: Commission, *allowed: CommissionStatus) -> None:
        if commission.status not in {status.value for status in allowed}:
            logger.warning("Commission %s rejected transition from %s", commission.id, commission.status)
            raise ConflictError(
                f"Commission {commission.reference} is {commission.status}; "
                f"expected {' or '.join(status.value for status in allowed)}"
            )
