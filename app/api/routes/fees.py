"""Fee configuration and calculation endpoints."""

from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.deps import get_fee_service, get_session
from app.schemas.common import Actor
from app.schemas.fee import (
    FeeCalculationRequest,
    FeeCalculationResponse,
    FeeConfigRead,
    FeeConfigUpsert,
    normalize_service_name,
)
from app.security.auth import get_request_user
from app.services.fee_service import FeeService

router = APIRouter(prefix="/fees", tags=["fees"])


@router.post("/calculate", response_model=FeeCalculationResponse)
async def calculate_fee(
    payload: FeeCalculationRequest,
    session: AsyncSession = Depends(get_session),
    service: FeeService = Depends(get_fee_service),
) -> FeeCalculationResponse:
    quote = await service.calculate_fee(session, payload.service, payload.transaction_type, payload.amount)
    return FeeCalculationResponse(
        service=payload.service,
        transaction_type=payload.transaction_type,
        amount=payload.amount,
        fee=quote.fee,
        fee_type=quote.fee_type,
        fee_source=quote.fee_source,
        minimum_fee=quote.minimum_fee,
        maximum_fee=quote.maximum_fee,
    )


@router.get("/config", response_model=list[FeeConfigRead])
async def list_fee_configs(
    service_name: Optional[str] = Query(default=None, alias="service"),
    session: AsyncSession = Depends(get_session),
    service: FeeService = Depends(get_fee_service),
) -> list[FeeConfigRead]:
    rows = await service.list_configs(session, normalize_service_name(service_name) if service_name else None)
    return [FeeConfigRead.model_validate(row) for row in rows]


@router.put("/config", response_model=FeeConfigRead)
async def upsert_fee_config(
    payload: FeeConfigUpsert,
    session: AsyncSession = Depends(get_session),
    service: FeeService = Depends(get_fee_service),
    actor: Actor = Depends(get_request_user),
) -> FeeConfigRead:
    config = await service.upsert_config(session, payload, actor)
    return FeeConfigRead.model_validate(config)
