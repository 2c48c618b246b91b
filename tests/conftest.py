from __future__ import annotations

from decimal import Decimal
from pathlib import Path

import httpx
import pytest
import pytest_asyncio
from fastapi import Depends, FastAPI
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from app.api.deps import get_session
from app.api.errors import register_exception_handlers
from app.api.router import api_router
from app.config import get_settings
from app.database.base import Base
from app.database.models import FloatAccountType
from app.schemas.branch import BranchCreate
from app.schemas.common import Actor
from app.schemas.float_account import FloatAccountCreate
from app.security.auth import require_api_auth
from app.services.branch_service import BranchService
from app.services.float_service import FloatService
from app.services.gl_account_service import GLAccountService


@pytest.fixture(autouse=True)
def _settings_env(monkeypatch: pytest.MonkeyPatch) -> None:
    """Set deterministic test env and reset cached Settings."""

    monkeypatch.setenv("DEBUG", "true")
    monkeypatch.setenv("ALLOWED_USER_IDS", "1001,1002")
    monkeypatch.setenv("AUTH_ENFORCE", "false")
    monkeypatch.setenv("TIMEZONE", "Africa/Accra")
    monkeypatch.setenv("LARGE_AMOUNT_THRESHOLD", "10000")
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


@pytest_asyncio.fixture
async def session_factory(tmp_path: Path) -> async_sessionmaker[AsyncSession]:
    """Provide isolated sqlite session factory per test."""

    db_path = tmp_path / "test.db"
    engine = create_async_engine(f"sqlite+aiosqlite:///{db_path}")
    async with engine.begin() as connection:
        await connection.run_sync(Base.metadata.create_all)

    factory = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False, autoflush=False)
    try:
        yield factory
    finally:
        await engine.dispose()


@pytest.fixture
def actor() -> Actor:
    return Actor(id="1001", name="Teller One")


@pytest_asyncio.fixture
async def branch_setup(session_factory: async_sessionmaker[AsyncSession], actor: Actor) -> dict[str, int]:
    """Seeded chart plus one branch holding a funded till and an MTN MoMo float."""

    async with session_factory() as session:
        await GLAccountService().seed_default_chart(session)

    async with session_factory() as session:
        branch = await BranchService().create_branch(
            session, BranchCreate(code="acc01", name="Accra Central"), actor
        )

    float_service = FloatService()
    async with session_factory() as session:
        till = await float_service.create_float_account(
            session,
            FloatAccountCreate(
                branch_id=branch.id,
                account_type=FloatAccountType.CASH_IN_TILL,
                provider="Cash",
                opening_balance=Decimal("1000.00"),
            ),
            actor,
        )
    async with session_factory() as session:
        momo = await float_service.create_float_account(
            session,
            FloatAccountCreate(
                branch_id=branch.id,
                account_type=FloatAccountType.MOMO,
                provider="MTN",
                opening_balance=Decimal("500.00"),
                min_threshold=Decimal("100.00"),
            ),
            actor,
        )
    return {"branch_id": branch.id, "till_id": till.id, "momo_id": momo.id}


@pytest.fixture
def api_app(session_factory: async_sessionmaker[AsyncSession]) -> FastAPI:
    """Build API app with test DB dependency override."""

    app = FastAPI()
    app.include_router(api_router, prefix="/api/v1", dependencies=[Depends(require_api_auth)])
    register_exception_handlers(app)

    async def override_get_session() -> AsyncSession:
        async with session_factory() as session:
            yield session

    app.dependency_overrides[get_session] = override_get_session
    return app


@pytest_asyncio.fixture
async def api_client(api_app: FastAPI) -> httpx.AsyncClient:
    """ASGI client for API integration tests."""

    transport = httpx.ASGITransport(app=api_app)
    async with httpx.AsyncClient(transport=transport, base_url="http://testserver") as client:
        yield client


@pytest.fixture
def allowed_headers() -> dict[str, str]:
    return {"X-User-Id": "1001", "X-User-Name": "Teller One"}


@pytest.fixture
def denied_headers() -> dict[str, str]:
    return {"X-User-Id": "9999"}
