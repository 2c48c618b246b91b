"""Seed the default chart of accounts for the branch ledger."""

from __future__ import annotations

import asyncio

from app.database.session import db_manager
from app.services.gl_account_service import GLAccountService


async def seed() -> None:
    """Insert global GL accounts if they do not already exist."""

    async with db_manager.session_factory() as session:
        created = await GLAccountService().seed_default_chart(session)

    await db_manager.dispose()
    print(f"Chart of accounts seed completed: {created} new accounts")


if __name__ == "__main__":
    asyncio.run(seed())
