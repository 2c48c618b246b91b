"""E-zwich card batch and issuance endpoints."""

from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.deps import get_ezwich_card_service, get_session
from app.schemas.common import Actor
from app.schemas.ezwich import (
    CardBatchCreate,
    CardBatchRead,
    CardIssuanceCreate,
    CardIssuanceListResponse,
    CardIssuanceRead,
)
from app.security.auth import get_request_user
from app.services.ezwich_card_service import EZwichCardService

router = APIRouter(prefix="/ezwich", tags=["ezwich"])


@router.post("/card-batches", response_model=CardBatchRead, status_code=status.HTTP_201_CREATED)
async def create_card_batch(
    payload: CardBatchCreate,
    session: AsyncSession = Depends(get_session),
    service: EZwichCardService = Depends(get_ezwich_card_service),
    actor: Actor = Depends(get_request_user),
) -> CardBatchRead:
    """Receive a batch of cards, paying for it from the given float account."""

    batch = await service.create_batch(session, payload, actor)
    return CardBatchRead.model_validate(batch)


@router.get("/card-batches", response_model=list[CardBatchRead])
async def list_card_batches(
    branch_id: Optional[int] = Query(default=None),
    card_type: Optional[str] = Query(default=None),
    in_stock_only: bool = Query(default=False),
    session: AsyncSession = Depends(get_session),
    service: EZwichCardService = Depends(get_ezwich_card_service),
) -> list[CardBatchRead]:
    batches = await service.list_batches(session, branch_id=branch_id, card_type=card_type, in_stock_only=in_stock_only)
    return [CardBatchRead.model_validate(batch) for batch in batches]


@router.get("/card-batches/{batch_id}", response_model=CardBatchRead)
async def get_card_batch(
    batch_id: int,
    session: AsyncSession = Depends(get_session),
    service: EZwichCardService = Depends(get_ezwich_card_service),
) -> CardBatchRead:
    batch = await service.get_batch(session, batch_id)
    return CardBatchRead.model_validate(batch)


@router.post("/card-issuances", response_model=CardIssuanceRead, status_code=status.HTTP_201_CREATED)
async def issue_card(
    payload: CardIssuanceCreate,
    session: AsyncSession = Depends(get_session),
    service: EZwichCardService = Depends(get_ezwich_card_service),
    actor: Actor = Depends(get_request_user),
) -> CardIssuanceRead:
    issuance = await service.issue_card(session, payload, actor)
    return CardIssuanceRead.model_validate(issuance)


@router.get("/card-issuances", response_model=CardIssuanceListResponse)
async def list_card_issuances(
    offset: int = Query(default=0, ge=0),
    limit: int = Query(default=50, ge=1, le=500),
    branch_id: Optional[int] = Query(default=None),
    batch_id: Optional[int] = Query(default=None),
    session: AsyncSession = Depends(get_session),
    service: EZwichCardService = Depends(get_ezwich_card_service),
) -> CardIssuanceListResponse:
    total, items = await service.list_issuances(
        session, offset=offset, limit=limit, branch_id=branch_id, batch_id=batch_id
    )
    return CardIssuanceListResponse(total=total, items=[CardIssuanceRead.model_validate(row) for row in items])


@router.get("/card-issuances/{issuance_id}", response_model=CardIssuanceRead)
async def get_card_issuance(
    issuance_id: int,
    session: AsyncSession = Depends(get_session),
    service: EZwichCardService = Depends(get_ezwich_card_service),
) -> CardIssuanceRead:
    issuance = await service.get_issuance(session, issuance_id)
    return CardIssuanceRead.model_validate(issuance)
