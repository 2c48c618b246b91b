"""Owner contributions and drawings against the equity ledgers."""

from __future__ import annotations

from decimal import Decimal
from typing import Optional

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.accounting.engine import AccountingEngine, FloatMovement, FloatOperation
from app.api.errors import ValidationError
from app.database.models import EntrySide, EquityLedgerType, EquityTransaction, SourceModule
from app.database.session import unit_of_work
from app.ledger.service import JournalLine, LedgerService
from app.schemas.common import Actor
from app.schemas.equity import EquityBalanceRead, EquityBalancesResponse, EquityTransactionCreate
from app.services.audit_service import AuditService
from app.services.float_service import FloatService
from app.services.mapping_service import MappingService

MODULE = SourceModule.EQUITY.value


class EquityService:
    def __init__(self) -> None:
        self.engine = AccountingEngine()
        self.ledger = LedgerService()
        self.float_service = FloatService()
        self.mappings = MappingService()
        self.audit = AuditService()

    async def record_transaction(
        self,
        session: AsyncSession,
        payload: EquityTransactionCreate,
        actor: Actor,
    ) -> EquityTransaction:
        """Move float and post Dr float / Cr equity (contribution) or the reverse (drawing)."""

        async with unit_of_work(session):
            account = await self.float_service.get_account(session, payload.float_account_id)
            if account.branch_id != payload.branch_id:
                raise ValidationError(f"Float account {account.id} belongs to another branch")
            equity_account = await self.mappings.resolve(
                session, MODULE, payload.ledger_type.value, payload.branch_id
            )

            row = EquityTransaction(
                branch_id=payload.branch_id,
                ledger_type=payload.ledger_type.value,
                direction=payload.direction.value,
                amount=payload.amount,
                float_account_id=account.id,
                particulars=payload.particulars,
                transaction_date=payload.transaction_date,
                created_by=actor.id,
            )
            session.add(row)
            await session.flush()

            contribution = payload.direction == EntrySide.CREDIT
            result = await self.engine.execute(
                session,
                FloatOperation(
                    source_module=MODULE,
                    source_transaction_type="contribution" if contribution else "drawing",
                    source_transaction_id=str(row.id),
                    reference=f"EQ-{row.id}",
                    description=payload.particulars,
                    branch_id=payload.branch_id,
                    processed_by=actor.id,
                    entry_date=payload.transaction_date,
                    movements=[
                        FloatMovement(
                            account.id,
                            payload.amount if contribution else -payload.amount,
                            "equity_contribution" if contribution else "equity_drawing",
                        )
                    ],
                    counter_lines=[
                        JournalLine.cr(equity_account.id, payload.amount, payload.particulars)
                        if contribution
                        else JournalLine.dr(equity_account.id, payload.amount, payload.particulars)
                    ],
                ),
            )
            row.gl_transaction_id = result.gl_transaction.id
            await session.flush()
            await self.audit.record(
                session,
                actor=actor,
                action=f"equity_{payload.direction.value}",
                entity_type="equity_transaction",
                entity_id=row.id,
                amount=payload.amount,
                branch_id=payload.branch_id,
                details={"ledger_type": payload.ledger_type.value},
            )
        return row

    async def list_transactions(
        self,
        session: AsyncSession,
        *,
        offset: int,
        limit: int,
        branch_id: Optional[int] = None,
        ledger_type: Optional[EquityLedgerType] = None,
    ) -> tuple[int, list[EquityTransaction]]:
        filters = []
        if branch_id is not None:
            filters.append(EquityTransaction.branch_id == branch_id)
        if ledger_type is not None:
            filters.append(EquityTransaction.ledger_type == ledger_type.value)

        total_result = await session.execute(select(func.count(EquityTransaction.id)).where(*filters))
        total = int(total_result.scalar_one())

        result = await session.execute(
            select(EquityTransaction)
            .where(*filters)
            .order_by(EquityTransaction.transaction_date.desc(), EquityTransaction.id.desc())
            .offset(offset)
            .limit(limit)
        )
        return total, list(result.scalars().all())

    async def balances(self, session: AsyncSession, branch_id: Optional[int] = None) -> EquityBalancesResponse:
        """Per-ledger balances taken from the GL, not from equity_transactions."""

        accounts = {
            ledger_type: await self.mappings.resolve(session, MODULE, ledger_type.value, branch_id)
            for ledger_type in EquityLedgerType
        }
        rows = await self.ledger.account_balances(
            session,
            branch_id=branch_id,
            account_ids=[account.id for account in accounts.values()],
        )
        by_account = {row.account.id: row.balance for row in rows}

        balances = [
            EquityBalanceRead(
                ledger_type=ledger_type,
                gl_account_id=account.id,
                gl_account_code=account.code,
                balance=by_account.get(account.id, Decimal("0.00")),
            )
            for ledger_type, account in accounts.items()
        ]
        return EquityBalancesResponse(
            branch_id=branch_id,
            balances=balances,
            total=sum((item.balance for item in balances), Decimal("0.00")),
        )
