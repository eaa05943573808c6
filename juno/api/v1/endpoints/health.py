"""Health check endpoints."""

from fastapi import APIRouter

from juno.core.config import settings
from juno.infra.database import db_manager
from juno.infra.redis import redis_manager

router = APIRouter()


@router.get("/health")
async def health_check() -> dict[str, str]:
    """Report reachability of the database (trips) and Redis (conversations)."""
    database_ok = await db_manager.health_check()
    redis_ok = await redis_manager.health_check()
    return {
        "status": "healthy" if database_ok and redis_ok else "degraded",
        "database": "ok" if database_ok else "unavailable",
        "conversations": "ok" if redis_ok else "unavailable",
        "version": settings.APP_VERSION,
    }
