"""Health, readiness, and version endpoints."""

from fastapi import APIRouter, Depends, Request
from sqlalchemy import text

from picnicquest.achievements.catalog import BadgeCatalog
from picnicquest.config import get_settings
from picnicquest.dependencies import get_catalog, get_redis

router = APIRouter()


@router.get("/health")
async def health() -> dict[str, str]:
    """Liveness probe: returns 200 if the process is alive."""
    return {"status": "healthy"}


@router.get("/ready")
async def readiness(
    request: Request,
    redis: object = Depends(get_redis),
    catalog: BadgeCatalog = Depends(get_catalog),
) -> dict[str, object]:
    """Readiness probe: checks the database and Redis, reports the catalog in use."""
    checks: dict[str, object] = {}

    session_factory = getattr(request.app.state, "session_factory", None)
    if session_factory is None:
        checks["database"] = "not configured"
    else:
        try:
            async with session_factory() as db:
                await db.execute(text("SELECT 1"))
            checks["database"] = "ok"
        except Exception as exc:
            checks["database"] = f"error: {exc}"

    if redis is None:
        checks["redis"] = "not configured"
    else:
        try:
            await redis.ping()  # type: ignore[attr-defined]
            checks["redis"] = "ok"
        except Exception as exc:
            checks["redis"] = f"error: {exc}"

    all_ok = all(v == "ok" for v in checks.values())
    return {
        "status": "ready" if all_ok else "degraded",
        "checks": checks,
        "catalog": {"version": catalog.version, "badges": len(catalog)},
    }


@router.get("/version")
async def version(catalog: BadgeCatalog = Depends(get_catalog)) -> dict[str, str]:
    """API version, environment and the badge catalog version being served."""
    settings = get_settings()
    return {
        "version": settings.app_version,
        "environment": settings.environment,
        "catalog_version": catalog.version,
    }
