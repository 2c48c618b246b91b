"""Caller identification for API routes."""

from __future__ import annotations

from typing import Optional

from fastapi import Depends, Request

from app.api.errors import AppError, ForbiddenError
from app.config import Settings, get_settings
from app.schemas.common import Actor

SYSTEM_ACTOR_ID = "system"


def parse_allowed_ids(raw: str) -> set[str]:
    """Parse comma-separated allowed user IDs from config."""

    return {chunk.strip() for chunk in raw.split(",") if chunk.strip()}


def is_user_allowed(user_id: str, settings: Settings) -> bool:
    """Return whether a user is allowed by the configured whitelist."""

    allowed = parse_allowed_ids(settings.allowed_user_ids)
    if not allowed:
        return True
    return user_id in allowed


async def require_api_auth(
    request: Request,
    settings: Settings = Depends(get_settings),
) -> Optional[str]:
    """Enforce request-level caller identification for API routes."""

    allowed = parse_allowed_ids(settings.allowed_user_ids)
    enforce = settings.auth_enforce or bool(allowed)

    user_id = (request.headers.get("X-User-Id") or "").strip() or None

    if enforce and user_id is None:
        raise AppError("User identification required", status_code=401)

    if user_id is not None and not is_user_allowed(user_id, settings):
        raise ForbiddenError("Access denied for this user")

    request.state.user_id = user_id
    request.state.user_name = (request.headers.get("X-User-Name") or "").strip() or None
    request.state.auth_enforced = enforce
    return user_id


async def get_request_user(
    request: Request,
    _auth: Optional[str] = Depends(require_api_auth),
) -> Actor:
    """Return the caller performing a write operation."""

    user_id = getattr(request.state, "user_id", None)
    if user_id is None and not getattr(request.state, "auth_enforced", False):
        # Development fallback when identification is not enforced.
        return Actor(id=SYSTEM_ACTOR_ID, name="System")
    if user_id is None:
        raise AppError("User identification is required for this operation", status_code=401)
    return Actor(id=user_id, name=getattr(request.state, "user_name", None))
