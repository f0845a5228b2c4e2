"""
Cafeteria Queue — Health endpoint
"""
import asyncio
from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse
from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import get_settings
from app.core import redis_client
from app.db.database import get_db

settings = get_settings()
router = APIRouter(tags=["health"])


@router.get("/health")
async def health_check(db: AsyncSession = Depends(get_db)):
    deps: dict[str, str] = {}
    healthy = True

    try:
        await asyncio.wait_for(db.execute(text("SELECT 1")), timeout=settings.HEALTH_CHECK_TIMEOUT)
        deps["database"] = "ok"
    except Exception as e:
        deps["database"] = f"error: {str(e)[:100]}"
        healthy = False

    try:
        redis = redis_client.get_redis()
        await asyncio.wait_for(redis.ping(), timeout=settings.HEALTH_CHECK_TIMEOUT)
        deps["redis"] = "ok"
    except Exception as e:
        deps["redis"] = f"error: {str(e)[:100]}"
        healthy = False

    return JSONResponse(
        content={
            "status": "healthy" if healthy else "degraded",
            "service": settings.SERVICE_NAME,
            "version": settings.SERVICE_VERSION,
            "dependencies": deps,
        },
        status_code=200 if healthy else 503,
    )
