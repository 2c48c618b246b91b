from __future__ import annotations

import pytest
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from app.api.errors import ConflictError, NotFoundError
from app.database.models import AuditLog, JumiaPackageStatus
from app.schemas.branch import BranchCreate
from app.schemas.common import Actor
from app.schemas.jumia import JumiaPackageCreate, JumiaPackageStatusUpdate
from app.services.branch_service import BranchService
from app.services.jumia_package_service import JumiaPackageService


async def _register(
    session_factory: async_sessionmaker[AsyncSession], branch_id: int, actor: Actor, tracking_id: str = "jm-0001"
):
    async with session_factory() as session:
        return await JumiaPackageService().register_package(
            session,
            JumiaPackageCreate(branch_id=branch_id, tracking_id=tracking_id, customer_name="Yaw Asante"),
            actor,
        )


@pytest.mark.asyncio
async def test_package_moves_from_received_to_settled(
    session_factory: async_sessionmaker[AsyncSession], branch_setup: dict[str, int], actor: Actor
) -> None:
    service = JumiaPackageService()
    package = await _register(session_factory, branch_setup["branch_id"], actor)
    assert package.tracking_id == "JM-0001"
    assert package.status == JumiaPackageStatus.RECEIVED.value

    async with session_factory() as session:
        delivered = await service.update_status(
            session, package.id, JumiaPackageStatusUpdate(status=JumiaPackageStatus.DELIVERED), actor
        )
    assert delivered.delivered_at is not None
    assert delivered.settled_at is None

    async with session_factory() as session:
        settled = await service.update_status(
            session,
            package.id,
            JumiaPackageStatusUpdate(status=JumiaPackageStatus.SETTLED, settlement_reference="JSET-77"),
            actor,
        )
    assert settled.status == JumiaPackageStatus.SETTLED.value
    assert settled.settlement_reference == "JSET-77"

    async with session_factory() as session:
        trail = await session.execute(
            select(AuditLog.action).where(AuditLog.entity_type == "jumia_package").order_by(AuditLog.id.asc())
        )
    assert list(trail.scalars().all()) == [
        "jumia_package_receive",
        "jumia_package_delivered",
        "jumia_package_settled",
    ]


@pytest.mark.parametrize(
    ("steps", "target"),
    [
        ([], JumiaPackageStatus.SETTLED),
        ([], JumiaPackageStatus.RECEIVED),
        ([JumiaPackageStatus.DELIVERED], JumiaPackageStatus.RECEIVED),
        ([JumiaPackageStatus.DELIVERED], JumiaPackageStatus.DELIVERED),
        ([JumiaPackageStatus.DELIVERED, JumiaPackageStatus.SETTLED], JumiaPackageStatus.DELIVERED),
    ],
)
@pytest.mark.asyncio
async def test_package_cannot_skip_or_go_back(
    session_factory: async_sessionmaker[AsyncSession],
    branch_setup: dict[str, int],
    actor: Actor,
    steps: list[JumiaPackageStatus],
    target: JumiaPackageStatus,
) -> None:
    service = JumiaPackageService()
    package = await _register(session_factory, branch_setup["branch_id"], actor)
    for step in steps:
        async with session_factory() as session:
            await service.update_status(session, package.id, JumiaPackageStatusUpdate(status=step), actor)

    async with session_factory() as session:
        with pytest.raises(ConflictError):
            await service.update_status(session, package.id, JumiaPackageStatusUpdate(status=target), actor)

    async with session_factory() as session:
        current = await service.get_package(session, package.id)
    expected = steps[-1].value if steps else JumiaPackageStatus.RECEIVED.value
    assert current.status == expected


@pytest.mark.asyncio
async def test_tracking_id_is_unique_per_branch(
    session_factory: async_sessionmaker[AsyncSession], branch_setup: dict[str, int], actor: Actor
) -> None:
    await _register(session_factory, branch_setup["branch_id"], actor, "JM-0002")
    with pytest.raises(ConflictError):
        await _register(session_factory, branch_setup["branch_id"], actor, " jm-0002 ")

    async with session_factory() as session:
        other = await BranchService().create_branch(session, BranchCreate(code="tkd01", name="Takoradi"), actor)
    await _register(session_factory, other.id, actor, "JM-0002")

    with pytest.raises(NotFoundError):
        await _register(session_factory, 9999, actor, "JM-0003")

    async with session_factory() as session:
        total, items = await JumiaPackageService().list_packages(
            session, offset=0, limit=10, branch_id=branch_setup["branch_id"]
        )
    assert total == 1
    assert [item.tracking_id for item in items] == ["JM-0002"]
