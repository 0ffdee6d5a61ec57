"""Health check endpoints."""

from fastapi import APIRouter, Request

from comment_moderation.config import get_settings
from comment_moderation.core.database import AsyncCassandraConnection


router = APIRouter(prefix="/health", tags=["health"])


@router.get("/live")
async def liveness() -> dict[str, str]:
    """Liveness check: the process answers."""
    return {"status": "alive"}


@router.get("/ready")
async def readiness(request: Request) -> dict[str, str | bool]:
    """Readiness check: reports whether comments can be served."""
    settings = get_settings()
    comments_ready = getattr(request.app.state, "moderation_workflow", None) is not None
    return {
        "status": "ready" if comments_ready else "degraded",
        "environment": settings.environment,
        "debug": settings.debug,
        "database": AsyncCassandraConnection.is_connected(),
        "comments": comments_ready,
    }


@router.get("")
async def health() -> dict[str, str]:
    settings = get_settings()
    return {
        "status": "healthy",
        "app_name": settings.app_name,
        "version": settings.app_version,
        "environment": settings.environment,
    }
