"""Health check endpoints."""

from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse

router = APIRouter()


@router.get("/health")
async def health_check():
    """Return service health status."""
    return {"ok": True, "message": "Server is running"}


@router.get("/health/ready")
async def readiness(request: Request):
    """Readiness probe; checks Redis when the stores are Redis-backed."""
    checks: dict[str, str] = {"token_store": request.app.state.token_store.backend}
    overall_ok = True

    redis = getattr(request.app.state, "redis", None)
    if redis is not None:
        try:
            await redis.ping()
            checks["redis"] = "ok"
        except Exception as exc:
            checks["redis"] = f"error: {exc}"
            overall_ok = False
    else:
        checks["redis"] = "disabled"

    checks["apns"] = "enabled" if request.app.state.dispatcher.apns is not None else "disabled"

    return JSONResponse(
        status_code=200 if overall_ok else 503,
        content={"status": "ready" if overall_ok else "not_ready", "checks": checks},
    )
