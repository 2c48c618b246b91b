"""Custody of Jumia parcels held at branches until pickup and settlement."""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.errors import ConflictError, NotFoundError
from app.database.models import Branch, JumiaPackage, JumiaPackageStatus
from app.database.session import unit_of_work
from app.schemas.common import Actor
from app.schemas.jumia import JumiaPackageCreate, JumiaPackageStatusUpdate
from app.services.audit_service import AuditService

logger = logging.getLogger(__name__)

# Packages only move forward; settlement is the last step.
NEXT_STATUS = {
    JumiaPackageStatus.RECEIVED.value: JumiaPackageStatus.DELIVERED.value,
    JumiaPackageStatus.DELIVERED.value: JumiaPackageStatus.SETTLED.value,
}


class JumiaPackageService:
    """Track package status. Money for packages moves through Jumia service transactions."""

    def __init__(self) -> None:
        self.audit = AuditService()

    async def register_package(self, session: AsyncSession, payload: JumiaPackageCreate, actor: Actor) -> JumiaPackage:
        async with unit_of_work(session):
            branch = await session.get(Branch, payload.branch_id)
            if branch is None:
                raise NotFoundError(f"Branch not found: {payload.branch_id}")
            duplicate = await session.execute(
                select(JumiaPackage.id).where(
                    JumiaPackage.branch_id == branch.id,
                    JumiaPackage.tracking_id == payload.tracking_id,
                )
            )
            if duplicate.scalar_one_or_none() is not None:
                raise ConflictError(f"Package {payload.tracking_id} is already registered at branch {branch.code}")

            package = JumiaPackage(
                branch_id=branch.id,
                tracking_id=payload.tracking_id,
                customer_name=payload.customer_name,
                customer_phone=payload.customer_phone,
                status=JumiaPackageStatus.RECEIVED.value,
                received_by=actor.id,
                notes=payload.notes,
            )
            session.add(package)
            await session.flush()
            await self.audit.record(
                session,
                actor=actor,
                action="jumia_package_receive",
                entity_type="jumia_package",
                entity_id=package.id,
                branch_id=branch.id,
                details={"tracking_id": package.tracking_id},
            )
        logger.info("Jumia package %s received at branch %s", package.tracking_id, branch.code)
        return package

    async def update_status(
        self,
        session: AsyncSession,
        package_id: int,
        payload: JumiaPackageStatusUpdate,
        actor: Actor,
    ) -> JumiaPackage:
        """Advance a package one step: received to delivered, delivered to settled."""

        target = payload.status.value
        async with unit_of_work(session):
            package = await self._lock(session, package_id)
            previous = package.status
            if NEXT_STATUS.get(previous) != target:
                raise ConflictError(f"Package {package.tracking_id} cannot move from {previous} to {target}")

            now = datetime.now(timezone.utc)
            if target == JumiaPackageStatus.DELIVERED.value:
                package.delivered_at = now
            else:
                package.settled_at = now
                package.settlement_reference = payload.settlement_reference
            if payload.notes is not None:
                package.notes = payload.notes
            package.status = target
            await session.flush()
            await self.audit.record(
                session,
                actor=actor,
                action=f"jumia_package_{target}",
                entity_type="jumia_package",
                entity_id=package.id,
                branch_id=package.branch_id,
                details={"tracking_id": package.tracking_id, "from": previous, "to": target},
            )
        return package

    async def get_package(self, session: AsyncSession, package_id: int) -> JumiaPackage:
        package = await session.get(JumiaPackage, package_id)
        if package is None:
            raise NotFoundError(f"Jumia package not found: {package_id}")
        return package

    async def list_packages(
        self,
        session: AsyncSession,
        *,
        offset: int,
        limit: int,
        branch_id: Optional[int] = None,
        status: Optional[JumiaPackageStatus] = None,
    ) -> tuple[int, list[JumiaPackage]]:
        filters = []
        if branch_id is not None:
            filters.append(JumiaPackage.branch_id == branch_id)
        if status is not None:
            filters.append(JumiaPackage.status == status.value)

        total_result = await session.execute(select(func.count(JumiaPackage.id)).where(*filters))
        total = int(total_result.scalar_one())

        result = await session.execute(
            select(JumiaPackage)
            .where(*filters)
            .order_by(JumiaPackage.received_at.desc(), JumiaPackage.id.desc())
            .offset(offset)
            .limit(limit)
        )
        return total, list(result.scalars().all())

    async def _lock(self, session: AsyncSession, package_id: int) -> JumiaPackage:
        result = await session.execute(
            select(JumiaPackage)
            .where(JumiaPackage.id == package_id)
            .with_for_update()
            .execution_options(populate_existing=True)
        )
        package = result.scalar_one_or_none()
        if package is None:
            raise NotFoundError(f"Jumia package not found: {package_id}")
        return package
