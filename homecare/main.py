"""
Main FastAPI Application

Entry point for the home-maintenance marketplace API.
Configures middleware, routes, error handlers, and startup/shutdown events.
"""
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from fastapi.middleware.cors import CORSMiddleware
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
import time
from contextlib import asynccontextmanager

from homecare.config import get_settings
from homecare.database import engine, init_db
from homecare.middleware.rate_limit import RateLimitMiddleware
from homecare.utils.logging import setup_logging, get_logger
from homecare.core.exceptions import (
    NotFoundError,
    AuthenticationError,
    PermissionDenied,
    PlanLimitError,
    InvalidInputError,
    ConflictError,
    PaymentsNotConfigured,
    PaymentGatewayError,
    RateLimitExceeded,
)

from homecare.api.endpoints import (
    admin,
    applications,
    auth,
    billing,
    bookings,
    discount_codes,
    notifications,
    onboarding,
    plans,
    properties,
    provider_documents,
    provider_onboarding,
    providers,
    reports,
    reviews,
    schedule,
    tasks,
    users,
)

VERSION = "1.0.0"

settings = get_settings()

setup_logging(
    log_level=settings.LOG_LEVEL,
    json_format=(settings.ENVIRONMENT == "production")
)
logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info(f"Starting application in {settings.ENVIRONMENT} mode")

    # Dev only; production schemas are managed outside the app
    if settings.ENVIRONMENT == "development":
        logger.warning("Initializing database tables (dev mode)")
        init_db()

    if not settings.stripe_configured:
        logger.warning("Stripe is not configured - billing routes will return 503")

    logger.info("Application startup complete")

    yield

    logger.info("Shutting down application")
    engine.dispose()
    logger.info("Application shutdown complete")


app = FastAPI(
    title="HomeCare Marketplace API",
    description="Home maintenance tracking, provider marketplace, bookings and subscription billing",
    version=VERSION,
    docs_url="/docs",
    redoc_url="/redoc",
    lifespan=lifespan
)


# ============================================================================
# MIDDLEWARE CONFIGURATION
# ============================================================================

allowed_origins = [
    settings.SITE_URL,
    "http://localhost:3000",
    "http://localhost:8000",
]

app.add_middleware(
    CORSMiddleware,
    allow_origins=allowed_origins if settings.ENVIRONMENT == "production" else ["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.middleware("http")
async def add_process_time_header(request: Request, call_next):
    """Add X-Process-Time header to track request duration."""
    start_time = time.time()
    response = await call_next(request)
    process_time = time.time() - start_time
    response.headers["X-Process-Time"] = str(process_time)
    return response


app.add_middleware(RateLimitMiddleware)


# ============================================================================
# EXCEPTION HANDLERS
# ============================================================================

ERROR_TYPES = {
    AuthenticationError: "authentication_error",
    NotFoundError: "not_found",
    PermissionDenied: "permission_denied",
    PlanLimitError: "plan_limit",
    InvalidInputError: "invalid_input",
    ConflictError: "conflict",
    PaymentsNotConfigured: "payments_not_configured",
    PaymentGatewayError: "payment_gateway_error",
    RateLimitExceeded: "rate_limit_exceeded",
}


async def app_error_handler(request: Request, exc):
    return JSONResponse(
        status_code=exc.status_code,
        content={"detail": exc.detail, "type": ERROR_TYPES[type(exc)]},
        headers=exc.headers or {}
    )


for exc_class in ERROR_TYPES:
    app.add_exception_handler(exc_class, app_error_handler)


@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    """
    Catch-all exception handler.

    SECURITY: Don't expose internal errors in production.
    """
    logger.error(
        f"Unhandled exception: {type(exc).__name__}: {str(exc)}",
        exc_info=True,
        extra={
            "path": request.url.path,
            "method": request.method,
            "user_id": getattr(request.state, "user_id", None)
        }
    )

    if settings.DEBUG:
        return JSONResponse(
            status_code=500,
            content={"detail": str(exc), "type": type(exc).__name__}
        )
    return JSONResponse(
        status_code=500,
        content={"detail": "Internal server error", "type": "internal_error"}
    )


# ============================================================================
# ROUTES
# ============================================================================

@app.get("/health", tags=["health"])
async def health_check():
    """Health check for load balancers, including database connectivity."""
    database = "ok"
    try:
        with engine.connect() as connection:
            connection.execute(text("SELECT 1"))
    except SQLAlchemyError as e:
        logger.error(f"Health check database failure: {e}")
        database = "unavailable"

    return JSONResponse(
        status_code=200 if database == "ok" else 503,
        content={
            "status": "healthy" if database == "ok" else "degraded",
            "environment": settings.ENVIRONMENT,
            "version": VERSION,
            "database": database,
        }
    )


@app.get("/", tags=["root"])
async def root():
    return {
        "message": "HomeCare Marketplace API",
        "version": VERSION,
        "docs": "/docs",
        "health": "/health"
    }


API_ROUTERS = (
    auth.router,
    users.router,
    users.admin_router,
    plans.router,
    properties.router,
    reports.router,
    tasks.router,
    onboarding.router,
    billing.router,
    billing.webhook_router,
    provider_onboarding.router,
    provider_documents.router,
    providers.service_types_router,
    providers.router,
    applications.router,
    applications.admin_router,
    admin.router,
    schedule.router,
    bookings.router,
    reviews.router,
    discount_codes.router,
    notifications.router,
)

for api_router in API_ROUTERS:
    app.include_router(api_router, prefix="/api/v1")


if __name__ == "__main__":
    import uvicorn

    logger.info(f"Serving HomeCare Marketplace API v{VERSION} ({settings.ENVIRONMENT})")

    uvicorn.run(
        "homecare.main:app",
        host="0.0.0.0",
        port=8000,
        reload=settings.DEBUG,
        log_level=settings.LOG_LEVEL.lower()
    )
