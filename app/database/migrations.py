"""Programmatic Alembic upgrades for the ledger schema."""

from __future__ import annotations

import asyncio
import logging
from pathlib import Path
from typing import Optional

from alembic import command
from alembic.config import Config
from alembic.script import ScriptDirectory

from app.config import get_settings

PROJECT_ROOT = Path(__file__).resolve().parents[2]

logger = logging.getLogger(__name__)


def alembic_config() -> Config:
    """Alembic config pointing at the bundled scripts and the runtime database."""

    cfg = Config(str(PROJECT_ROOT / "alembic.ini"))
    cfg.set_main_option("script_location", str(PROJECT_ROOT / "alembic"))
    # ConfigParser interpolation treats "%" specially; URL-encoded passwords contain it.
    cfg.set_main_option("sqlalchemy.url", get_settings().database_url.replace("%", "%%"))
    return cfg


def head_revision() -> Optional[str]:
    return ScriptDirectory.from_config(alembic_config()).get_current_head()


def should_run_migrations() -> bool:
    """Run on startup only when explicitly enabled."""

    return get_settings().run_migrations_on_startup


async def run_migrations(revision: str = "head") -> None:
    """Upgrade the database to ``revision``."""

    cfg = alembic_config()
    logger.info("Upgrading database schema to %s", head_revision() if revision == "head" else revision)
    # Alembic is synchronous; offload to a worker thread to avoid blocking the event loop.
    await asyncio.to_thread(command.upgrade, cfg, revision)
