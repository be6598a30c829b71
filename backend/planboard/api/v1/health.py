"""Health check endpoints."""

from fastapi import APIRouter
from sqlalchemy import text

from planboard.config import get_settings
from planboard.db.guards import BACKEND_ERRORS
from planboard.db.session import DBSession

router = APIRouter()
settings = get_settings()


@router.get("/health")
async def health_check() -> dict[str, str]:
    """Basic health check."""
    return {
        "status": "healthy",
        "version": settings.app_version,
        "environment": settings.environment,
    }


@router.get("/health/ready")
async def readiness_check(db: DBSession) -> dict[str, str | dict[str, str]]:
    """Readiness check including database connectivity.

    Without a configured database the service still answers reads (empty
    results), so it reports ``degraded`` rather than failing.
    """
    checks: dict[str, str] = {}

    if db is None:
        checks["database"] = "not configured"
    else:
        try:
            await db.execute(text("SELECT 1"))
            checks["database"] = "healthy"
        except BACKEND_ERRORS as e:
            checks["database"] = f"unhealthy: {str(e)}"

    if all(v == "healthy" for v in checks.values()):
        overall_status = "healthy"
    elif checks["database"] == "not configured":
        overall_status = "degraded"
    else:
        overall_status = "unhealthy"

    return {
        "status": overall_status,
        "version": settings.app_version,
        "checks": checks,
    }
