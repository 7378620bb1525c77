from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from contextlib import asynccontextmanager
from slowapi.errors import RateLimitExceeded

from freegym.core.limits import limiter, rate_limit_handler
from freegym.core.init_db import init_database
from freegym.core.error_handlers import setup_exception_handlers
from freegym.core.database import db_manager
from freegym.core.middleware import setup_middleware
from freegym.core.logging_utils import (
    setup_logging,
    get_logger,
    log_business_event,
    error_tracker,
)
from freegym.core.config import (
    validate_config,
    APP_NAME,
    APP_VERSION,
    DEBUG,
    ENVIRONMENT,
    LOG_LEVEL,
    LOG_FORMAT,
)

from freegym.members.routers import members
from freegym.billing.routers import packages, memberships, payments, admin_payments
from freegym.schedule.routers import lessons, bookings
from freegym.referrals.routers import referrals

setup_logging(LOG_LEVEL, LOG_FORMAT)
logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application startup and shutdown"""

    logger.info(f"Starting {APP_NAME} v{APP_VERSION}")

    try:
        validate_config()
        logger.info("✅ Configuration validated")

        await db_manager.check_connection()
        logger.info("✅ Database connection established")

        await init_database()
        logger.info("✅ Database initialized")

        log_business_event(
            "application_started",
            "system",
            0,
            {"version": APP_VERSION, "environment": ENVIRONMENT},
        )

        logger.info("🚀 Application startup completed")

    except Exception as e:
        logger.error(f"❌ Application startup failed: {str(e)}")
        error_tracker.track_error(
            "STARTUP_ERROR",
            str(e),
            {"component": "application_startup", "version": APP_VERSION},
        )
        raise

    yield

    logger.info("🛑 Shutting down application...")

    try:
        await db_manager.close_connections()
        logger.info("✅ Database connections closed")

    except Exception as e:
        logger.error(f"❌ Error during shutdown: {str(e)}")

    logger.info("👋 Application shutdown completed")


app = FastAPI(
    title=APP_NAME,
    description="FreeGym bookings, credits and membership payments",
    version=APP_VERSION,
    lifespan=lifespan,
    debug=DEBUG,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=[
        "http://localhost:3000",
        "http://localhost:5173",
        "http://localhost:8080",
    ],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

setup_exception_handlers(app)

setup_middleware(
    app,
    {
        "slow_request_threshold": 5.0,
        "exclude_paths": [
            "/health",
            "/docs",
            "/openapi.json",
            "/redoc",
            "/favicon.ico",
        ],
    },
)

app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, rate_limit_handler)

app.include_router(members.router, prefix="/api/v1")
app.include_router(packages.router, prefix="/api/v1")
app.include_router(memberships.router, prefix="/api/v1")
app.include_router(payments.router, prefix="/api/v1")
app.include_router(admin_payments.router, prefix="/api/v1")
app.include_router(lessons.router, prefix="/api/v1")
app.include_router(bookings.router, prefix="/api/v1")
app.include_router(referrals.router, prefix="/api/v1")


@app.get("/health", tags=["System"])
async def health_check():
    """Liveness probe with database status and error counters"""
    try:
        await db_manager.check_connection()
        database = "ok"
    except Exception as e:
        logger.error(f"Health check database failure: {str(e)}")
        database = "unavailable"

    return {
        "status": "healthy" if database == "ok" else "degraded",
        "app": APP_NAME,
        "version": APP_VERSION,
        "environment": ENVIRONMENT,
        "database": database,
        "errors": error_tracker.get_stats()["total_errors"],
    }
