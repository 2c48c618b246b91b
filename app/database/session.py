"""Async database engine/session management."""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator

from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from app.api.errors import ConflictError
from app.config import get_settings

logger = logging.getLogger(__name__)


class DatabaseManager:
    """Lifecycle manager for SQLAlchemy async engine."""

    def __init__(self) -> None:
        settings = get_settings()
        self._engine = create_async_engine(settings.database_url, echo=settings.debug, pool_pre_ping=True)
        self._session_factory = async_sessionmaker(
            self._engine,
            class_=AsyncSession,
            expire_on_commit=False,
            autoflush=False,
            autocommit=False,
        )

    async def dispose(self) -> None:
        """Dispose engine cleanly on shutdown."""

        await self._engine.dispose()

    @property
    def session_factory(self) -> async_sessionmaker[AsyncSession]:
        """Expose the configured sessionmaker for use in services and scripts."""

        return self._session_factory


db_manager = DatabaseManager()


async def get_db_session() -> AsyncIterator[AsyncSession]:
    """FastAPI dependency that yields an async DB session."""

    async with db_manager.session_factory() as session:
        yield session


@asynccontextmanager
async def unit_of_work(session: AsyncSession) -> AsyncIterator[AsyncSession]:
    """Run the block as one database transaction.

    Reads issued earlier on the same session autobegin a transaction; in that
    case the block joins it and the whole thing is committed (or rolled back)
    when the block exits.

    Unique and foreign-key violations surface as ``ConflictError``: two writers
    can both pass a uniqueness pre-check and only one of them wins the insert.
    """

    try:
        if not session.in_transaction():
            async with session.begin():
                yield session
            return

        try:
            yield session
            await session.commit()
        except BaseException:
            await session.rollback()
            raise
    except IntegrityError as exc:
        logger.warning("Write rejected by database constraint: %s", exc.orig)
        raise ConflictError("Record conflicts with existing data (duplicate reference or code)") from exc
