"""
Booking Admission Engine - Main Application Entry Point

Capacity-limited, time-boxed resources booked concurrently:
- Per-resource atomic ledger (in-process or Redis) that never oversells
- Unique human-readable booking codes with bounded collision retry
- Cancellation window policy and resource lifecycle state machines
- Periodic sweep finishing elapsed resources
- Structured logging with request correlation and Prometheus metrics
"""

from contextlib import asynccontextmanager
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from booking_engine.core.config import get_settings
from booking_engine.core.logging import setup_logging, get_logger
from booking_engine.core.metrics import metrics_endpoint
from booking_engine.api.router import api_router
from booking_engine.api.middleware import RequestLoggingMiddleware
from booking_engine.api.exception_handlers import register_exception_handlers
from booking_engine.db.session import SessionLocal
from booking_engine.infrastructure.redis_client import get_redis, close_redis
from booking_engine.services.cache_service import get_cache_stats
from booking_engine.services.scheduler import LifecycleScheduler
from booking_engine.services.strategy_factory import get_ledger

settings = get_settings()


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifecycle: startup and shutdown hooks."""
    setup_logging()
    logger = get_logger(__name__)

    logger.info(
        "application_starting",
        app=settings.APP_NAME,
        version=settings.APP_VERSION,
        environment=settings.ENVIRONMENT,
        ledger_backend=settings.LEDGER_BACKEND,
    )

    redis_client = await get_redis()
    if redis_client:
        logger.info("redis_ready")
    else:
        logger.warning("redis_unavailable", message="Running without listing cache")

    scheduler = None
    if settings.SCHEDULER_ENABLED:
        scheduler = LifecycleScheduler(SessionLocal, get_ledger(), interval=settings.SCHEDULER_INTERVAL_SECONDS)
        scheduler.start()

    yield

    if scheduler is not None:
        await scheduler.stop()
    await close_redis()
    logger.info("application_shutdown")


app = FastAPI(
    title=settings.APP_NAME,
    version=settings.APP_VERSION,
    description="Booking admission engine with an oversell-proof per-resource ledger",
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

register_exception_handlers(app)
app.include_router(api_router)


@app.get("/health", tags=["Health"])
async def health_check():
    """Health check endpoint for Docker and load balancers."""
    cache_stats = await get_cache_stats()
    return {
        "status": "healthy",
        "version": settings.APP_VERSION,
        "environment": settings.ENVIRONMENT,
        "ledger": settings.LEDGER_BACKEND,
        "cache": cache_stats,
    }


@app.get("/metrics", tags=["Health"], include_in_schema=False)
async def metrics():
    return metrics_endpoint()
