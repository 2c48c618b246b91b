"""FastAPI application entrypoint."""

import logging
from contextlib import asynccontextmanager

from fastapi import Depends, FastAPI

from app.api.errors import register_exception_handlers
from app.api.router import api_router
from app.config import get_settings
from app.database.migrations import run_migrations, should_run_migrations
from app.database.session import db_manager
from app.logger_config import configure_logging
from app.security.auth import require_api_auth

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Apply pending migrations on startup when enabled; dispose the engine on shutdown."""

    if should_run_migrations():
        logger.info("Applying database migrations")
        await run_migrations()

    try:
        yield
    finally:
        await db_manager.dispose()


settings = get_settings()
configure_logging(settings)
app = FastAPI(title=settings.app_name, debug=settings.debug, lifespan=lifespan)
app.include_router(api_router, prefix=settings.api_prefix, dependencies=[Depends(require_api_auth)])
register_exception_handlers(app)


@app.get("/health", tags=["system"])
async def health() -> dict[str, str]:
    """Liveness endpoint for uptime checks."""

    return {"status": "ok"}
