"""Service fee rules and calculation."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from decimal import Decimal
from typing import Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.database.models import FeeConfig, SourceModule
from app.database.session import unit_of_work
from app.schemas.common import Actor
from app.schemas.fee import FeeConfigUpsert, FeeType
from app.services.audit_service import AuditService
from app.validators.business import to_money

logger = logging.getLogger(__name__)

ZERO = Decimal("0")
HUNDRED = Decimal("100")

# Applied when no active rule exists for an e-zwich withdrawal.
EZWICH_WITHDRAWAL_RATE = Decimal("0.015")
EZWICH_WITHDRAWAL_MIN_AMOUNT = Decimal("100")
EZWICH_WITHDRAWAL_MIN_FEE = Decimal("1.50")
EZWICH_WITHDRAWAL_MAX_FEE = Decimal("50.00")


@dataclass(frozen=True)
class FeeQuote:
    fee: Decimal
    fee_type: str
    fee_source: str
    minimum_fee: Optional[Decimal] = None
    maximum_fee: Optional[Decimal] = None


def apply_rule(
    amount: Decimal,
    fee_type: str,
    fee_value: Decimal,
    minimum_fee: Optional[Decimal],
    maximum_fee: Optional[Decimal],
) -> Decimal:
    """Percentage values are in percent (``1.5`` means 1.5 %)."""

    if fee_type == FeeType.PERCENTAGE.value:
        fee = amount * fee_value / HUNDRED
    else:
        fee = fee_value
    if minimum_fee is not None and fee < minimum_fee:
        fee = minimum_fee
    if maximum_fee is not None and fee > maximum_fee:
        fee = maximum_fee
    return to_money(fee)


class FeeService:
    """Look up fee rules and price service transactions."""

    def __init__(self) -> None:
        self.audit = AuditService()

    async def get_config(self, session: AsyncSession, service: str, transaction_type: str) -> Optional[FeeConfig]:
        result = await session.execute(
            select(FeeConfig)
            .where(FeeConfig.service == service, FeeConfig.transaction_type == transaction_type)
            .limit(1)
        )
        return result.scalar_one_or_none()

    async def list_configs(self, session: AsyncSession, service: Optional[str] = None) -> list[FeeConfig]:
        query = select(FeeConfig).order_by(FeeConfig.service.asc(), FeeConfig.transaction_type.asc())
        if service:
            query = query.where(FeeConfig.service == service)
        result = await session.execute(query)
        return list(result.scalars().all())

    async def upsert_config(self, session: AsyncSession, payload: FeeConfigUpsert, actor: Actor) -> FeeConfig:
        async with unit_of_work(session):
            config = await self.get_config(session, payload.service, payload.transaction_type)
            if config is None:
                config = FeeConfig(service=payload.service, transaction_type=payload.transaction_type)
                session.add(config)
            config.fee_type = payload.fee_type.value
            config.fee_value = payload.fee_value
            config.minimum_fee = payload.minimum_fee
            config.maximum_fee = payload.maximum_fee
            config.is_active = payload.is_active
            await session.flush()
            await self.audit.record(
                session,
                actor=actor,
                action="fee_config_upsert",
                entity_type="fee_config",
                entity_id=config.id,
                details={
                    "service": config.service,
                    "transaction_type": config.transaction_type,
                    "fee_type": config.fee_type,
                    "fee_value": str(config.fee_value),
                },
            )
        logger.info(
            "Fee rule %s/%s set to %s %s",
            payload.service,
            payload.transaction_type,
            payload.fee_type.value,
            payload.fee_value,
        )
        return config

    async def calculate_fee(
        self,
        session: AsyncSession,
        service: str,
        transaction_type: str,
        amount: Decimal,
    ) -> FeeQuote:
        """Price a transaction from its active rule, falling back to the built-in defaults."""

        config = await self.get_config(session, service, transaction_type)
        if config is not None and config.is_active:
            return FeeQuote(
                fee=apply_rule(amount, config.fee_type, config.fee_value, config.minimum_fee, config.maximum_fee),
                fee_type=config.fee_type,
                fee_source="config",
                minimum_fee=config.minimum_fee,
                maximum_fee=config.maximum_fee,
            )

        if service == SourceModule.E_ZWICH.value and transaction_type == "withdrawal":
            if amount < EZWICH_WITHDRAWAL_MIN_AMOUNT:
                return FeeQuote(fee=to_money(ZERO), fee_type="free", fee_source="default")
            return FeeQuote(
                fee=apply_rule(
                    amount,
                    FeeType.PERCENTAGE.value,
                    EZWICH_WITHDRAWAL_RATE * HUNDRED,
                    EZWICH_WITHDRAWAL_MIN_FEE,
                    EZWICH_WITHDRAWAL_MAX_FEE,
                ),
                fee_type=FeeType.PERCENTAGE.value,
                fee_source="default",
                minimum_fee=EZWICH_WITHDRAWAL_MIN_FEE,
                maximum_fee=EZWICH_WITHDRAWAL_MAX_FEE,
            )

        return FeeQuote(fee=to_money(ZERO), fee_type="none", fee_source="default")
