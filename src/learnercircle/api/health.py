"""Health check endpoint.

Learn: Reports whether the database and Redis are reachable. Redis only
backs rate limiting, so a Redis outage degrades the status but never
fails the check.
"""

from fastapi import APIRouter
from fastapi.responses import JSONResponse
from sqlalchemy import text

from learnercircle import __version__
from learnercircle.config import settings
from learnercircle.db.engine import engine

router = APIRouter()


@router.get("/health")
async def health_check():
    checks = {
        "server": "ok",
        "version": __version__,
        "environment": settings.environment,
    }

    try:
        async with engine.connect() as conn:
            await conn.execute(text("SELECT 1"))
        checks["database"] = "ok"
    except Exception as e:
        checks["database"] = f"error: {e}"

    try:
        from redis.asyncio import from_url

        r = from_url(settings.redis_url)
        await r.ping()
        await r.aclose()
        checks["redis"] = "ok"
    except Exception as e:
        checks["redis"] = f"error: {e}"

    if checks["database"] != "ok":
        return JSONResponse(status_code=503, content={"status": "error", **checks})

    status = "healthy" if checks["redis"] == "ok" else "degraded"
    return {"status": status, **checks}
