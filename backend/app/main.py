"""
PortGuard - Backend API
Alert evaluation, notifications and scheduler endpoints for the DeFi portfolio dashboard
"""

import time
import traceback
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy import text
from starlette.middleware.base import BaseHTTPMiddleware

from app.api.v1.router import api_router
from app.core.config import settings
from app.core.database import engine
from app.core.logging import get_logger, setup_logging
from app.core.redis_client import close_redis, get_redis
from app.models import Base

# Setup structured logging
setup_logging()
logger = get_logger(__name__)


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """Middleware for logging HTTP requests with timing."""

    async def dispatch(self, request: Request, call_next):
        """Log request details and timing."""
        start_time = time.perf_counter()

        response = await call_next(request)

        duration_ms = (time.perf_counter() - start_time) * 1000
        log_data = {
            "method": request.method,
            "path": request.url.path,
            "status": response.status_code,
            "duration_ms": round(duration_ms, 2),
            "client_ip": request.client.host if request.client else "unknown",
        }

        # Skip health check logs to reduce noise
        if request.url.path != "/health":
            if response.status_code >= 500:
                logger.error("Request failed", extra=log_data)
            elif response.status_code >= 400:
                logger.warning("Request error", extra=log_data)
            elif duration_ms > 1000:  # Log slow requests (>1s)
                logger.warning("Slow request", extra=log_data)
            else:
                logger.debug("Request completed", extra=log_data)

        return response


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan events."""
    # Startup
    logger.info(f"Starting {settings.APP_NAME} (env={settings.APP_ENV}, debug={settings.DEBUG})")
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    if not settings.ALERTS_CRON_API_KEY:
        logger.warning("ALERTS_CRON_API_KEY is not set, cron endpoints will reject every call")
    if not settings.email_enabled:
        logger.warning("RESEND_API_KEY is not set, alert emails are disabled")
    yield
    # Shutdown
    logger.info(f"Shutting down {settings.APP_NAME}")
    await close_redis()
    await engine.dispose()


# Conditionally expose OpenAPI docs (only in development/debug mode)
app = FastAPI(
    title=settings.APP_NAME,
    description="Alert engine and notifications API for DeFi portfolio tracking",
    version="1.0.0",
    openapi_url=f"{settings.API_V1_PREFIX}/openapi.json" if settings.DEBUG else None,
    docs_url=f"{settings.API_V1_PREFIX}/docs" if settings.DEBUG else None,
    redoc_url=f"{settings.API_V1_PREFIX}/redoc" if settings.DEBUG else None,
    lifespan=lifespan,
)


# Global exception handler to log errors
@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    """Catch all unhandled exceptions and log them."""
    logger.error(f"Unhandled exception: {type(exc).__name__}: {exc}")
    logger.error(f"Traceback:\n{traceback.format_exc()}")
    return JSONResponse(
        status_code=500,
        content={"detail": "Internal server error"},
    )


# CORS middleware with restricted methods and headers
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=settings.CORS_ALLOWED_METHODS,
    allow_headers=settings.CORS_ALLOWED_HEADERS,
    max_age=600,  # Cache preflight for 10 minutes
)

# Request logging middleware
app.add_middleware(RequestLoggingMiddleware)

# Include API router
app.include_router(api_router, prefix=settings.API_V1_PREFIX)


@app.get("/health")
async def health_check():
    """Health check endpoint with DB and Redis connectivity."""
    status = {"app": settings.APP_NAME, "status": "healthy"}

    # Check database
    try:
        async with engine.connect() as conn:
            await conn.execute(text("SELECT 1"))
        status["database"] = "ok"
    except Exception:
        status["database"] = "error"
        status["status"] = "degraded"

    # Check Redis
    try:
        r = await get_redis()
        await r.ping()
        status["redis"] = "ok"
    except Exception:
        status["redis"] = "error"
        status["status"] = "degraded"

    return status
