"""Health check endpoint.

Learn: Simple GET endpoint that verifies the server is running and the
database is reachable. Redis is reported but optional — without it only
rate limiting is lost, so it does not degrade the status.
"""

from fastapi import APIRouter, Depends
from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession

from tasktrack import __version__
from tasktrack.db.engine import get_db
from tasktrack.redis_client import get_redis

router = APIRouter()


@router.get("/health")
async def health_check(db: AsyncSession = Depends(get_db)):
    """Check server health and dependency connectivity."""
    checks = {"server": "ok", "version": __version__}

    try:
        await db.execute(text("SELECT 1"))
        checks["database"] = "ok"
    except Exception as e:
        checks["database"] = f"error: {e}"

    try:
        await get_redis().ping()
        checks["redis"] = "ok"
    except RuntimeError:
        checks["redis"] = "disabled"
    except Exception as e:
        checks["redis"] = f"error: {e}"

    status = "healthy" if checks["database"] == "ok" else "degraded"
    return {"status": status, **checks}
