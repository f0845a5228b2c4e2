"""
Cafeteria Queue — FastAPI entrypoint
"""
import logging
from contextlib import asynccontextmanager
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from prometheus_fastapi_instrumentator import Instrumentator
from sqlalchemy.exc import SQLAlchemyError

from app.core.config import get_settings
from app.core.errors import (
    QueueError,
    NotFoundError,
    ForbiddenError,
    InvalidStateError,
    CapacityExceededError,
)
from app.core.redis_client import close_redis
from app.db.database import engine, Base, SessionLocal
from app.models import booking as booking_models, catalog as catalog_models, crowd as crowd_models  # noqa: F401
from app.tasks.crowd_tracker import CrowdTracker
from app.api import bookings, staff, crowd as crowd_api, catalog as catalog_api, health
from app.middleware.auth import JWTAuthMiddleware
from app.middleware.idempotency import IdempotencyMiddleware

settings = get_settings()

logging.basicConfig(
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    level=settings.LOG_LEVEL,
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    # Startup: create tables (Alembic handles migrations in production)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    tracker = CrowdTracker(SessionLocal, interval_seconds=settings.CROWD_SNAPSHOT_INTERVAL_MINUTES * 60)
    app.state.crowd_tracker = tracker
    if settings.CROWD_TRACKING_ENABLED:
        tracker.start()
    yield
    # Shutdown
    await tracker.stop()
    await close_redis()
    await engine.dispose()


app = FastAPI(
    title="Cafeteria Queue",
    description="Meal-slot bookings with per-slot token numbers, gap-free queue positions and crowd tracking.",
    version=settings.SERVICE_VERSION,
    lifespan=lifespan,
    docs_url="/docs" if settings.DEBUG else None,
    redoc_url=None,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Last added runs first: Auth wraps Idempotency so replay keys are per caller
app.add_middleware(IdempotencyMiddleware)
app.add_middleware(JWTAuthMiddleware)

if settings.METRICS_ENABLED:
    Instrumentator().instrument(app).expose(app, endpoint="/metrics")


# ── Error mapping ─────────────────────────────────────────────────────────────
ERROR_STATUS: dict[type[QueueError], int] = {
    NotFoundError: 404,
    ForbiddenError: 403,
    InvalidStateError: 400,
    CapacityExceededError: 409,
}


@app.exception_handler(QueueError)
async def queue_error_handler(request: Request, exc: QueueError):
    content = {"detail": exc.detail, "error": type(exc).__name__}
    if isinstance(exc, InvalidStateError) and exc.status:
        content["current_status"] = exc.status
    return JSONResponse(status_code=ERROR_STATUS.get(type(exc), 400), content=content)


@app.exception_handler(SQLAlchemyError)
async def storage_error_handler(request: Request, exc: SQLAlchemyError):
    logger.exception("Storage failure on %s %s", request.method, request.url.path)
    return JSONResponse(status_code=503, content={"detail": "Storage unavailable. Please retry."})


app.include_router(bookings.router)
app.include_router(staff.router)
app.include_router(crowd_api.router)
app.include_router(catalog_api.router)
app.include_router(health.router)


@app.get("/")
async def root():
    return {"service": settings.SERVICE_NAME, "version": settings.SERVICE_VERSION}
