"""Branch endpoints."""

from __future__ import annotations

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.deps import get_branch_service, get_session
from app.schemas.branch import BranchCreate, BranchInitializeResponse, BranchRead
from app.schemas.common import Actor
from app.schemas.float_account import FloatAccountRead
from app.security.auth import get_request_user
from app.services.branch_service import BranchService

router = APIRouter(prefix="/branches", tags=["branches"])


@router.post("", response_model=BranchRead, status_code=status.HTTP_201_CREATED)
async def create_branch(
    payload: BranchCreate,
    session: AsyncSession = Depends(get_session),
    service: BranchService = Depends(get_branch_service),
    actor: Actor = Depends(get_request_user),
) -> BranchRead:
    branch = await service.create_branch(session, payload, actor)
    return BranchRead.model_validate(branch)


@router.get("", response_model=list[BranchRead])
async def list_branches(
    active_only: bool = Query(default=False),
    session: AsyncSession = Depends(get_session),
    service: BranchService = Depends(get_branch_service),
) -> list[BranchRead]:
    rows = await service.list_branches(session, active_only=active_only)
    return [BranchRead.model_validate(row) for row in rows]


@router.get("/{branch_id}", response_model=BranchRead)
async def get_branch(
    branch_id: int,
    session: AsyncSession = Depends(get_session),
    service: BranchService = Depends(get_branch_service),
) -> BranchRead:
    branch = await service.get_branch(session, branch_id)
    return BranchRead.model_validate(branch)


@router.post("/{branch_id}/initialize", response_model=BranchInitializeResponse)
async def initialize_branch(
    branch_id: int,
    session: AsyncSession = Depends(get_session),
    service: BranchService = Depends(get_branch_service),
    actor: Actor = Depends(get_request_user),
) -> BranchInitializeResponse:
    """Create the standard float accounts the branch is missing."""

    created, accounts = await service.initialize_branch(session, branch_id, actor)
    return BranchInitializeResponse(
        branch_id=branch_id,
        created=created,
        accounts=[FloatAccountRead.model_validate(account) for account in accounts],
    )
