"""Jumia package custody endpoints."""

from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.deps import get_jumia_package_service, get_session
from app.database.models import JumiaPackageStatus
from app.schemas.common import Actor
from app.schemas.jumia import (
    JumiaPackageCreate,
    JumiaPackageListResponse,
    JumiaPackageRead,
    JumiaPackageStatusUpdate,
)
from app.security.auth import get_request_user
from app.services.jumia_package_service import JumiaPackageService

router = APIRouter(prefix="/jumia", tags=["jumia"])


@router.post("/packages", response_model=JumiaPackageRead, status_code=status.HTTP_201_CREATED)
async def register_package(
    payload: JumiaPackageCreate,
    session: AsyncSession = Depends(get_session),
    service: JumiaPackageService = Depends(get_jumia_package_service),
    actor: Actor = Depends(get_request_user),
) -> JumiaPackageRead:
    package = await service.register_package(session, payload, actor)
    return JumiaPackageRead.model_validate(package)


@router.get("/packages", response_model=JumiaPackageListResponse)
async def list_packages(
    offset: int = Query(default=0, ge=0),
    limit: int = Query(default=50, ge=1, le=500),
    branch_id: Optional[int] = Query(default=None),
    status_filter: Optional[JumiaPackageStatus] = Query(default=None, alias="status"),
    session: AsyncSession = Depends(get_session),
    service: JumiaPackageService = Depends(get_jumia_package_service),
) -> JumiaPackageListResponse:
    total, items = await service.list_packages(
        session, offset=offset, limit=limit, branch_id=branch_id, status=status_filter
    )
    return JumiaPackageListResponse(total=total, items=[JumiaPackageRead.model_validate(row) for row in items])


@router.get("/packages/{package_id}", response_model=JumiaPackageRead)
async def get_package(
    package_id: int,
    session: AsyncSession = Depends(get_session),
    service: JumiaPackageService = Depends(get_jumia_package_service),
) -> JumiaPackageRead:
    package = await service.get_package(session, package_id)
    return JumiaPackageRead.model_validate(package)


@router.post("/packages/{package_id}/status", response_model=JumiaPackageRead)
async def update_package_status(
    package_id: int,
    payload: JumiaPackageStatusUpdate,
    session: AsyncSession = Depends(get_session),
    service: JumiaPackageService = Depends(get_jumia_package_service),
    actor: Actor = Depends(get_request_user),
) -> JumiaPackageRead:
    """Mark a package delivered, then settled."""

    package = await service.update_status(session, package_id, payload, actor)
    return JumiaPackageRead.model_validate(package)
