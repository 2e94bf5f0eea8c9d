"""Shared FastAPI dependencies injected into route handlers."""

from __future__ import annotations

from dataclasses import dataclass
from functools import lru_cache
from pathlib import Path
from typing import Annotated

from fastapi import Depends, HTTPException, Request

from src.config import Settings, get_settings
from src.insights.config_loader import get_insights_config, load_insights_config
from src.services.insights import InsightsService
from src.services.store import PostgresKeyValueStore


@dataclass(frozen=True)
class AuthContext:
    """Caller identity forwarded by the authenticating gateway."""

    user_id: str


async def get_current_user(request: Request) -> AuthContext:
    """Read the verified user id from the gateway header.

    Authentication itself happens upstream; requests without the header
    never reached a logged-in session and are rejected.
    """
    settings = get_settings()
    user_id = request.headers.get(settings.user_header, "").strip()
    if not user_id:
        raise HTTPException(status_code=401, detail="Not authenticated")
    return AuthContext(user_id=user_id)


@lru_cache
def get_insights_service() -> InsightsService:
    """Process-wide service; its per-user locks must be shared by all requests."""
    settings = get_settings()
    if settings.insights_config_path:
        config = load_insights_config(Path(settings.insights_config_path))
    else:
        config = get_insights_config()
    return InsightsService(PostgresKeyValueStore(), config)


# Annotated shortcuts for route signatures
CurrentUser = Annotated[AuthContext, Depends(get_current_user)]
AppSettings = Annotated[Settings, Depends(get_settings)]
Insights = Annotated[InsightsService, Depends(get_insights_service)]
