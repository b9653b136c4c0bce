from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse

from editorial_ai.db.redis import redis_is_reachable

router = APIRouter()


@router.get("/health")
async def health_check(request: Request):
    """Liveness probe. Returns 503 while the process drains on shutdown."""
    if getattr(request.app.state, "shutting_down", False):
        return JSONResponse(
            status_code=503,
            content={"status": "shutting_down", "service": "editorial-ai"},
        )
    return {"status": "healthy", "service": "editorial-ai"}


@router.get("/ready")
async def readiness_check():
    """Readiness probe - the attempt store must answer."""
    checks = {"redis": await redis_is_reachable()}
    all_healthy = all(checks.values())

    return JSONResponse(
        status_code=200 if all_healthy else 503,
        content={"status": "ready" if all_healthy else "degraded", "checks": checks},
    )
