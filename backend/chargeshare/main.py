"""
ChargeShare Reservation API - Main Application Entry Point

Reservation engine for shared EV charger slots:
- Owner-approved booking requests and direct driver bookings
- Slot inventory guarded by conditional updates (no over-commit)
- Green score ledger kept in step with every booking transition
- Structured logging with request correlation, Prometheus metrics
"""

from contextlib import asynccontextmanager
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError

from chargeshare.core.config import get_settings
from chargeshare.core.exceptions import (
    ReservationError,
    ReservationValidationError,
    NotFoundError,
    ForbiddenError,
    InvalidStateError,
    NoCapacityError,
)
from chargeshare.core.logging import setup_logging, get_logger
from chargeshare.core.metrics import metrics_endpoint
from chargeshare.api.router import api_router
from chargeshare.api.middleware import RequestLoggingMiddleware
from chargeshare.services.cache_service import get_redis, close_redis, get_cache_stats

settings = get_settings()
logger = get_logger(__name__)

ERROR_STATUS = {
    ReservationValidationError: 400,
    ForbiddenError: 403,
    NotFoundError: 404,
    InvalidStateError: 409,
    NoCapacityError: 409,
}


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifecycle: startup and shutdown hooks."""
    setup_logging()

    logger.info(
        "application_starting",
        app=settings.APP_NAME,
        version=settings.APP_VERSION,
        environment=settings.ENVIRONMENT,
    )

    redis_client = await get_redis()
    if redis_client:
        logger.info("redis_ready")
    else:
        logger.warning("redis_unavailable", message="Running without cache")

    yield

    await close_redis()
    logger.info("application_shutdown")


app = FastAPI(
    title=settings.APP_NAME,
    version=settings.APP_VERSION,
    description="Reservation and slot-inventory API for shared EV chargers",
    lifespan=lifespan,
    docs_url="/docs",
    redoc_url="/redoc",
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],  # Restrict in production
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)
app.add_middleware(RequestLoggingMiddleware)

app.include_router(api_router)


@app.exception_handler(ReservationError)
async def reservation_error_handler(request: Request, exc: ReservationError):
    status_code = ERROR_STATUS.get(type(exc), 400)
    body = {"detail": exc.message, "error": exc.kind, "retryable": exc.retryable}
    if isinstance(exc, InvalidStateError):
        body["current_status"] = exc.current_status
    return JSONResponse(status_code=status_code, content=body)


@app.exception_handler(SQLAlchemyError)
async def database_error_handler(request: Request, exc: SQLAlchemyError):
    logger.error("database_error", error_type=type(exc).__name__, error=str(exc))
    return JSONResponse(
        status_code=500,
        content={"detail": "Internal error", "error": "internal_error", "retryable": True},
    )


@app.get("/health", tags=["Health"])
async def health_check():
    """Health check endpoint for Docker and load balancers."""
    cache_stats = await get_cache_stats()
    return {
        "status": "healthy",
        "version": settings.APP_VERSION,
        "environment": settings.ENVIRONMENT,
        "cache": cache_stats,
    }


@app.get("/metrics", tags=["Health"], include_in_schema=False)
async def metrics():
    return metrics_endpoint()


@app.get("/", tags=["Root"])
async def root():
    return {
        "message": f"Welcome to {settings.APP_NAME}",
        "version": settings.APP_VERSION,
        "docs": "/docs",
    }
