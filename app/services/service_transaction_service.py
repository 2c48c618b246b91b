"""Counter operations for MoMo, agency banking, e-zwich, power and Jumia."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date
from typing import Optional

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.accounting.chart import FLOAT_TYPE_CODES
from app.accounting.engine import AccountingEngine, FloatMovement, FloatOperation
from app.api.errors import ConflictError, NotFoundError, ValidationError
from app.database.models import (
    FloatAccount,
    FloatAccountType,
    FloatTransaction,
    GLTransaction,
    GLTransactionStatus,
    ServiceTransaction,
    ServiceTransactionStatus,
    SourceModule,
)
from app.database.session import unit_of_work
from app.ledger.service import JournalLine
from app.schemas.common import Actor
from app.schemas.service_transaction import ServiceTransactionCreate
from app.services.audit_service import AuditService
from app.services.fee_service import FeeService
from app.services.float_service import FloatService
from app.services.mapping_service import MappingService
from app.utils.dates import local_day_range
from app.utils.references import generate_reference

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ServiceEffect:
    """Direction each party moves for one unit of principal.

    ``service_float`` and ``till`` are +1 (float added), -1 (float removed) or 0.
    ``liability`` is +1 to credit the module's liability account, -1 to debit it.
    """

    service_float: int
    till: int
    liability: int = 0


SERVICE_FLOAT_TYPES: dict[str, FloatAccountType] = {
    SourceModule.MOMO.value: FloatAccountType.MOMO,
    SourceModule.AGENCY_BANKING.value: FloatAccountType.AGENCY_BANKING,
    SourceModule.E_ZWICH.value: FloatAccountType.E_ZWICH,
    SourceModule.POWER.value: FloatAccountType.POWER,
    SourceModule.JUMIA.value: FloatAccountType.JUMIA,
}

SERVICE_EFFECTS: dict[tuple[str, str], ServiceEffect] = {
    (SourceModule.MOMO.value, "cash-in"): ServiceEffect(service_float=-1, till=1),
    (SourceModule.MOMO.value, "cash-out"): ServiceEffect(service_float=1, till=-1),
    (SourceModule.AGENCY_BANKING.value, "deposit"): ServiceEffect(service_float=-1, till=1),
    (SourceModule.AGENCY_BANKING.value, "withdrawal"): ServiceEffect(service_float=1, till=-1),
    (SourceModule.E_ZWICH.value, "withdrawal"): ServiceEffect(service_float=1, till=-1),
    (SourceModule.POWER.value, "sale"): ServiceEffect(service_float=-1, till=1),
    (SourceModule.JUMIA.value, "pod_collection"): ServiceEffect(service_float=0, till=1, liability=1),
    (SourceModule.JUMIA.value, "settlement"): ServiceEffect(service_float=0, till=-1, liability=-1),
}


def supported_types(service: str) -> list[str]:
    return sorted(transaction_type for name, transaction_type in SERVICE_EFFECTS if name == service)


class ServiceTransactionService:
    """Record service transactions and their float and GL effects as one unit."""

    def __init__(self) -> None:
        self.engine = AccountingEngine()
        self.float_service = FloatService()
        self.fees = FeeService()
        self.mappings = MappingService()
        self.audit = AuditService()

    async def create_transaction(
        self,
        session: AsyncSession,
        payload: ServiceTransactionCreate,
        actor: Actor,
    ) -> ServiceTransaction:
        effect = SERVICE_EFFECTS.get((payload.service, payload.transaction_type))
        if effect is None:
            if payload.service not in SERVICE_FLOAT_TYPES:
                raise ValidationError(f"Unknown service: {payload.service}")
            raise ValidationError(
                f"Unsupported {payload.service} transaction type {payload.transaction_type!r}; "
                f"expected one of {', '.join(supported_types(payload.service))}"
            )

        async with unit_of_work(session):
            if payload.reference is not None:
                duplicate = await session.execute(
                    select(ServiceTransaction.id).where(ServiceTransaction.reference == payload.reference)
                )
                if duplicate.scalar_one_or_none() is not None:
                    raise ConflictError(f"Transaction reference already used: {payload.reference}")

            till = await self.float_service.cash_in_till(session, payload.branch_id)
            service_account = None
            if effect.service_float:
                service_account = await self._service_account(session, payload)

            if payload.fee is not None:
                fee = payload.fee
            else:
                quote = await self.fees.calculate_fee(
                    session, payload.service, payload.transaction_type, payload.amount
                )
                fee = quote.fee

            fee_account = None
            if fee > 0:
                fee_account = await self.mappings.resolve(session, payload.service, "fee", payload.branch_id)
            liability_account = None
            if effect.liability:
                liability_account = await self.mappings.resolve(
                    session, payload.service, "liability", payload.branch_id
                )

            float_type = SERVICE_FLOAT_TYPES[payload.service]
            reference = payload.reference or generate_reference(FLOAT_TYPE_CODES[float_type])
            transaction = ServiceTransaction(
                branch_id=payload.branch_id,
                service=payload.service,
                transaction_type=payload.transaction_type,
                provider=payload.provider or (service_account.provider if service_account else None),
                float_account_id=service_account.id if service_account else None,
                amount=payload.amount,
                fee=fee,
                customer_name=payload.customer_name,
                phone_number=payload.phone_number,
                reference=reference,
                status=ServiceTransactionStatus.COMPLETED.value,
                processed_by=actor.id,
            )
            session.add(transaction)
            await session.flush()

            description = f"{payload.service} {payload.transaction_type} {reference}"
            movements: list[FloatMovement] = []
            counter_lines: list[JournalLine] = []
            if service_account is not None:
                movements.append(
                    FloatMovement(
                        service_account.id,
                        payload.amount * effect.service_float,
                        payload.transaction_type,
                        f"{description} ({service_account.provider})",
                    )
                )
            movements.append(FloatMovement(till.id, payload.amount * effect.till, payload.transaction_type))
            if liability_account is not None:
                counter_lines.append(JournalLine.signed(liability_account.id, -payload.amount * effect.liability))
            if fee_account is not None:
                movements.append(FloatMovement(till.id, fee, "fee", f"Fee on {reference}"))
                counter_lines.append(JournalLine.cr(fee_account.id, fee, f"Fee on {reference}"))

            result = await self.engine.execute(
                session,
                FloatOperation(
                    source_module=payload.service,
                    source_transaction_type=payload.transaction_type,
                    source_transaction_id=reference,
                    reference=reference,
                    description=description,
                    branch_id=payload.branch_id,
                    processed_by=actor.id,
                    movements=movements,
                    counter_lines=counter_lines,
                ),
            )
            transaction.gl_transaction_id = result.gl_transaction.id
            await session.flush()
            await self.audit.record(
                session,
                actor=actor,
                action=f"{payload.service}_{payload.transaction_type}",
                entity_type="service_transaction",
                entity_id=transaction.id,
                amount=payload.amount,
                branch_id=payload.branch_id,
                details={"reference": reference, "fee": str(fee)},
            )
        return transaction

    async def reverse_transaction(
        self,
        session: AsyncSession,
        transaction_id: int,
        actor: Actor,
        reason: str,
    ) -> ServiceTransaction:
        """Undo a completed transaction: opposite float movements and a mirror GL posting."""

        async with unit_of_work(session):
            result = await session.execute(
                select(ServiceTransaction)
                .where(ServiceTransaction.id == transaction_id)
                .with_for_update()
                .execution_options(populate_existing=True)
            )
            transaction = result.scalar_one_or_none()
            if transaction is None:
                raise NotFoundError(f"Transaction not found: {transaction_id}")
            if transaction.status == ServiceTransactionStatus.REVERSED.value:
                raise ConflictError(f"Transaction {transaction.reference} is already reversed")

            original_gl = await session.get(GLTransaction, transaction.gl_transaction_id)
            moves_result = await session.execute(
                select(FloatTransaction)
                .where(FloatTransaction.gl_transaction_id == original_gl.id)
                .order_by(FloatTransaction.id.asc())
            )
            original_moves = list(moves_result.scalars().all())
            float_gl_result = await session.execute(
                select(FloatAccount.gl_account_id).where(
                    FloatAccount.id.in_({move.float_account_id for move in original_moves})
                )
            )
            float_gl_ids = set(float_gl_result.scalars().all())
            original_lines = await self.engine.ledger_service.lines_for(session, original_gl.id)

            operation = await self.engine.execute(
                session,
                FloatOperation(
                    source_module=transaction.service,
                    source_transaction_type=f"{transaction.transaction_type}_reversal",
                    source_transaction_id=transaction.reference,
                    reference=transaction.reference,
                    description=f"Reversal of {transaction.reference}: {reason}",
                    branch_id=transaction.branch_id,
                    processed_by=actor.id,
                    movements=[
                        FloatMovement(move.float_account_id, -move.amount, f"{move.transaction_type}_reversal")
                        for move in original_moves
                    ],
                    counter_lines=[
                        JournalLine(
                            account_id=line.account_id,
                            debit=line.credit,
                            credit=line.debit,
                            description=line.description,
                        )
                        for line in original_lines
                        if line.account_id not in float_gl_ids
                    ],
                    reversal_of_id=original_gl.id,
                ),
            )
            original_gl.status = GLTransactionStatus.REVERSED.value
            transaction.status = ServiceTransactionStatus.REVERSED.value
            transaction.reversal_gl_transaction_id = operation.gl_transaction.id
            await session.flush()
            await self.audit.record(
                session,
                actor=actor,
                action="service_transaction_reversal",
                entity_type="service_transaction",
                entity_id=transaction.id,
                amount=transaction.amount,
                branch_id=transaction.branch_id,
                details={"reference": transaction.reference, "reason": reason},
            )
        logger.info("Transaction %s reversed by GL %s", transaction.reference, operation.gl_transaction.reference)
        return transaction

    async def get_transaction(self, session: AsyncSession, transaction_id: int) -> ServiceTransaction:
        transaction = await session.get(ServiceTransaction, transaction_id)
        if transaction is None:
            raise NotFoundError(f"Transaction not found: {transaction_id}")
        return transaction

    async def list_transactions(
        self,
        session: AsyncSession,
        *,
        offset: int,
        limit: int,
        branch_id: Optional[int] = None,
        service: Optional[str] = None,
        status: Optional[str] = None,
        date_from: Optional[date] = None,
        date_to: Optional[date] = None,
    ) -> tuple[int, list[ServiceTransaction]]:
        """Return filtered paginated transactions newest first, and the total."""

        start_dt, end_dt = local_day_range(date_from, date_to)
        filters = []
        if branch_id is not None:
            filters.append(ServiceTransaction.branch_id == branch_id)
        if service:
            filters.append(ServiceTransaction.service == service)
        if status:
            filters.append(ServiceTransaction.status == status)
        if start_dt is not None:
            filters.append(ServiceTransaction.created_at >= start_dt)
        if end_dt is not None:
            filters.append(ServiceTransaction.created_at < end_dt)

        total_result = await session.execute(select(func.count(ServiceTransaction.id)).where(*filters))
        total = int(total_result.scalar_one())

        result = await session.execute(
            select(ServiceTransaction)
            .where(*filters)
            .order_by(ServiceTransaction.created_at.desc(), ServiceTransaction.id.desc())
            .offset(offset)
            .limit(limit)
        )
        return total, list(result.scalars().all())

    async def _service_account(self, session: AsyncSession, payload: ServiceTransactionCreate) -> FloatAccount:
        """Pick the service float: explicit id, else the branch's account for the provider."""

        float_type = SERVICE_FLOAT_TYPES[payload.service]
        if payload.float_account_id is not None:
            account = await self.float_service.get_account(session, payload.float_account_id)
            if account.branch_id != payload.branch_id:
                raise ValidationError(f"Float account {account.id} belongs to another branch")
            if account.account_type != float_type.value:
                raise ValidationError(
                    f"Float account {account.id} is a {account.account_type} account, not {float_type.value}"
                )
            return account

        query = select(FloatAccount).where(
            FloatAccount.branch_id == payload.branch_id,
            FloatAccount.account_type == float_type.value,
            FloatAccount.is_active.is_(True),
        )
        if payload.provider:
            query = query.where(func.lower(FloatAccount.provider) == payload.provider.strip().lower())
        result = await session.execute(query.order_by(FloatAccount.id.asc()))
        accounts = list(result.scalars().all())
        if not accounts:
            raise NotFoundError(
                f"No active {float_type.value} float account"
                + (f" for {payload.provider}" if payload.provider else "")
                + f" in branch {payload.branch_id}"
            )
        if len(accounts) > 1:
            raise ValidationError(
                f"Branch {payload.branch_id} has several {float_type.value} accounts; pass provider or float_account_id"
            )
        return accounts[0]
