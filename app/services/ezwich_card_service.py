"""E-zwich card stock: batch purchases out of float and card issuance to customers."""

from __future__ import annotations

import logging
from datetime import date
from typing import Optional

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.accounting.engine import AccountingEngine, FloatMovement, FloatOperation
from app.api.errors import ConflictError, NotFoundError, ValidationError
from app.config import get_settings
from app.database.models import (
    Branch,
    CardBatchStatus,
    EZwichCardBatch,
    EZwichCardIssuance,
    GLTransaction,
    SourceModule,
)
from app.database.session import unit_of_work
from app.ledger.service import JournalLine, PostingRequest
from app.schemas.common import Actor
from app.schemas.ezwich import CardBatchCreate, CardIssuanceCreate
from app.services.audit_service import AuditService
from app.services.float_service import FloatService
from app.services.mapping_service import MappingService
from app.utils.references import generate_reference
from app.validators.business import to_money

logger = logging.getLogger(__name__)

MODULE = SourceModule.E_ZWICH.value


class EZwichCardService:
    """Card batches are inventory; issuing a card earns the fee and expenses the card's cost."""

    def __init__(self) -> None:
        self.engine = AccountingEngine()
        self.float_service = FloatService()
        self.mappings = MappingService()
        self.audit = AuditService()

    async def create_batch(self, session: AsyncSession, payload: CardBatchCreate, actor: Actor) -> EZwichCardBatch:
        """Record received stock and pay for it from float in the same transaction."""

        total_cost = to_money(payload.unit_cost * payload.quantity_received)

        async with unit_of_work(session):
            branch = await session.get(Branch, payload.branch_id)
            if branch is None:
                raise NotFoundError(f"Branch not found: {payload.branch_id}")
            duplicate = await session.execute(
                select(EZwichCardBatch.id).where(EZwichCardBatch.batch_code == payload.batch_code)
            )
            if duplicate.scalar_one_or_none() is not None:
                raise ConflictError(f"Card batch code already exists: {payload.batch_code}")

            payment_account = None
            if payload.payment_float_account_id is not None:
                payment_account = await self.float_service.get_account(session, payload.payment_float_account_id)
                if payment_account.branch_id != branch.id:
                    raise ValidationError(f"Float account {payment_account.id} belongs to another branch")

            batch = EZwichCardBatch(
                branch_id=branch.id,
                batch_code=payload.batch_code,
                card_type=payload.card_type,
                quantity_received=payload.quantity_received,
                quantity_issued=0,
                unit_cost=payload.unit_cost,
                total_cost=total_cost,
                partner_bank=payload.partner_bank,
                payment_float_account_id=payment_account.id if payment_account is not None else None,
                expiry_date=payload.expiry_date,
                status=CardBatchStatus.ACTIVE.value,
                notes=payload.notes,
                created_by=actor.id,
            )
            session.add(batch)
            await session.flush()

            if total_cost > 0:
                inventory = await self.mappings.resolve(session, MODULE, "card_inventory", branch.id)
                description = f"Card batch {batch.batch_code}: {batch.quantity_received} cards from {batch.partner_bank}"
                result = await self.engine.execute(
                    session,
                    FloatOperation(
                        source_module=MODULE,
                        source_transaction_type="card_batch_purchase",
                        source_transaction_id=str(batch.id),
                        reference=batch.batch_code,
                        description=description,
                        branch_id=branch.id,
                        processed_by=actor.id,
                        movements=[FloatMovement(payment_account.id, -total_cost, "card_batch_purchase")],
                        counter_lines=[JournalLine.dr(inventory.id, total_cost, description)],
                    ),
                )
                batch.gl_transaction_id = result.gl_transaction.id

            await self.audit.record(
                session,
                actor=actor,
                action="ezwich_card_batch_create",
                entity_type="ezwich_card_batch",
                entity_id=batch.id,
                amount=total_cost,
                branch_id=branch.id,
                details={
                    "batch_code": batch.batch_code,
                    "quantity_received": batch.quantity_received,
                    "partner_bank": batch.partner_bank,
                },
            )
        logger.info("Card batch %s received at branch %s (%s cards)", batch.batch_code, branch.code, batch.quantity_received)
        return batch

    async def get_batch(self, session: AsyncSession, batch_id: int) -> EZwichCardBatch:
        batch = await session.get(EZwichCardBatch, batch_id)
        if batch is None:
            raise NotFoundError(f"Card batch not found: {batch_id}")
        return batch

    async def list_batches(
        self,
        session: AsyncSession,
        *,
        branch_id: Optional[int] = None,
        card_type: Optional[str] = None,
        in_stock_only: bool = False,
    ) -> list[EZwichCardBatch]:
        query = select(EZwichCardBatch).order_by(EZwichCardBatch.created_at.asc(), EZwichCardBatch.id.asc())
        if branch_id is not None:
            query = query.where(EZwichCardBatch.branch_id == branch_id)
        if card_type:
            query = query.where(EZwichCardBatch.card_type == card_type)
        if in_stock_only:
            query = query.where(EZwichCardBatch.quantity_issued < EZwichCardBatch.quantity_received)
        result = await session.execute(query)
        return list(result.scalars().all())

    async def issue_card(
        self,
        session: AsyncSession,
        payload: CardIssuanceCreate,
        actor: Actor,
    ) -> EZwichCardIssuance:
        """Take one card out of stock, collect the fee into float and post both effects.

        Stock decrement, fee collection and cost recognition commit together or
        not at all.
        """

        settings = get_settings()
        fee = to_money(payload.fee if payload.fee is not None else settings.ezwich_card_fee)

        async with unit_of_work(session):
            duplicate = await session.execute(
                select(EZwichCardIssuance.id).where(EZwichCardIssuance.card_number == payload.card_number)
            )
            if duplicate.scalar_one_or_none() is not None:
                raise ConflictError(f"Card number already issued: {payload.card_number}")

            batch = await self._lock_batch_for_issue(session, payload)

            fee_account = None
            if fee > 0:
                if payload.float_account_id is not None:
                    fee_account = await self.float_service.get_account(session, payload.float_account_id)
                    if fee_account.branch_id != payload.branch_id:
                        raise ValidationError(f"Float account {fee_account.id} belongs to another branch")
                else:
                    fee_account = await self.float_service.cash_in_till(session, payload.branch_id)

            batch.quantity_issued += 1
            if batch.quantity_available == 0:
                batch.status = CardBatchStatus.DEPLETED.value

            issue_date = date.today()
            issuance = EZwichCardIssuance(
                branch_id=payload.branch_id,
                batch_id=batch.id,
                card_number=payload.card_number,
                customer_name=payload.customer_name,
                customer_phone=payload.customer_phone,
                id_type=payload.id_type,
                id_number=payload.id_number,
                fee_charged=fee,
                float_account_id=fee_account.id if fee_account is not None else None,
                issue_date=issue_date,
                expiry_date=_add_years(issue_date, settings.ezwich_card_validity_years),
                issued_by=actor.id,
            )
            session.add(issuance)
            await session.flush()

            posting = await self._post_issuance(session, issuance, batch, fee_account.id if fee_account else None, actor)
            if posting is not None:
                issuance.gl_transaction_id = posting.id
                await session.flush()

            await self.audit.record(
                session,
                actor=actor,
                action="ezwich_card_issue",
                entity_type="ezwich_card",
                entity_id=issuance.id,
                amount=fee,
                branch_id=issuance.branch_id,
                details={
                    "card_number": issuance.card_number,
                    "batch_code": batch.batch_code,
                    "remaining": batch.quantity_available,
                },
            )
        logger.info("Card %s issued from batch %s", issuance.card_number, batch.batch_code)
        return issuance

    async def get_issuance(self, session: AsyncSession, issuance_id: int) -> EZwichCardIssuance:
        issuance = await session.get(EZwichCardIssuance, issuance_id)
        if issuance is None:
            raise NotFoundError(f"Card issuance not found: {issuance_id}")
        return issuance

    async def list_issuances(
        self,
        session: AsyncSession,
        *,
        offset: int,
        limit: int,
        branch_id: Optional[int] = None,
        batch_id: Optional[int] = None,
    ) -> tuple[int, list[EZwichCardIssuance]]:
        filters = []
        if branch_id is not None:
            filters.append(EZwichCardIssuance.branch_id == branch_id)
        if batch_id is not None:
            filters.append(EZwichCardIssuance.batch_id == batch_id)

        total_result = await session.execute(select(func.count(EZwichCardIssuance.id)).where(*filters))
        total = int(total_result.scalar_one())

        result = await session.execute(
            select(EZwichCardIssuance)
            .where(*filters)
            .order_by(EZwichCardIssuance.created_at.desc(), EZwichCardIssuance.id.desc())
            .offset(offset)
            .limit(limit)
        )
        return total, list(result.scalars().all())

    async def _lock_batch_for_issue(self, session: AsyncSession, payload: CardIssuanceCreate) -> EZwichCardBatch:
        query = select(EZwichCardBatch).with_for_update().execution_options(populate_existing=True)
        if payload.batch_id is not None:
            result = await session.execute(query.where(EZwichCardBatch.id == payload.batch_id))
            batch = result.scalar_one_or_none()
            if batch is None:
                raise NotFoundError(f"Card batch not found: {payload.batch_id}")
            if batch.branch_id != payload.branch_id:
                raise ValidationError(f"Card batch {batch.batch_code} belongs to another branch")
            if batch.card_type != payload.card_type:
                raise ValidationError(
                    f"Card batch {batch.batch_code} holds {batch.card_type} cards, not {payload.card_type}"
                )
        else:
            result = await session.execute(
                query.where(
                    EZwichCardBatch.branch_id == payload.branch_id,
                    EZwichCardBatch.card_type == payload.card_type,
                    EZwichCardBatch.quantity_issued < EZwichCardBatch.quantity_received,
                )
                .order_by(EZwichCardBatch.created_at.asc(), EZwichCardBatch.id.asc())
                .limit(1)
            )
            batch = result.scalar_one_or_none()
            if batch is None:
                raise ConflictError(f"No {payload.card_type} cards in stock at branch {payload.branch_id}")

        if batch.quantity_available <= 0:
            raise ConflictError(f"Card batch {batch.batch_code} has no cards left")
        return batch

    async def _post_issuance(
        self,
        session: AsyncSession,
        issuance: EZwichCardIssuance,
        batch: EZwichCardBatch,
        fee_account_id: Optional[int],
        actor: Actor,
    ) -> Optional[GLTransaction]:
        """Fee: Dr float / Cr card fee revenue. Card cost: Dr card cost / Cr inventory."""

        description = f"E-zwich card {issuance.card_number} for {issuance.customer_name}"
        cost_lines: list[JournalLine] = []
        if batch.unit_cost > 0:
            cost = await self.mappings.resolve(session, MODULE, "card_cost", issuance.branch_id)
            inventory = await self.mappings.resolve(session, MODULE, "card_inventory", issuance.branch_id)
            cost_lines = [
                JournalLine.dr(cost.id, batch.unit_cost, description),
                JournalLine.cr(inventory.id, batch.unit_cost, description),
            ]

        if fee_account_id is not None:
            revenue = await self.mappings.resolve(session, MODULE, "card_fee", issuance.branch_id)
            result = await self.engine.execute(
                session,
                FloatOperation(
                    source_module=MODULE,
                    source_transaction_type="card_issuance",
                    source_transaction_id=str(issuance.id),
                    reference=generate_reference("EZC"),
                    description=description,
                    branch_id=issuance.branch_id,
                    processed_by=actor.id,
                    movements=[FloatMovement(fee_account_id, issuance.fee_charged, "card_issuance_fee")],
                    counter_lines=[JournalLine.cr(revenue.id, issuance.fee_charged, description), *cost_lines],
                ),
            )
            return result.gl_transaction

        if cost_lines:
            # No fee means no float moves; only the stock leaves inventory.
            return await self.engine.ledger_service.post(
                session,
                PostingRequest(
                    source_module=MODULE,
                    source_transaction_type="card_issuance",
                    source_transaction_id=str(issuance.id),
                    description=description,
                    created_by=actor.id,
                    lines=cost_lines,
                    branch_id=issuance.branch_id,
                ),
            )
        return None


def _add_years(start: date, years: int) -> date:
    try:
        return start.replace(year=start.year + years)
    except ValueError:
        # 29 February
        return start.replace(year=start.year + years, day=28)
