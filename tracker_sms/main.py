import logging
import os
import platform
import sys
import time
from contextlib import asynccontextmanager
from datetime import datetime, timezone

from fastapi import FastAPI, Request, Response, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from tracker_sms import __version__
from tracker_sms.api import routers
from tracker_sms.config import settings
from tracker_sms.errors import ServiceError
from tracker_sms.logging_utils import setup_logging, RequestLoggingMiddleware
from tracker_sms.metrics import get_metrics, get_metrics_content_type
from tracker_sms.rate_limit import RateLimiter, RateLimitMiddleware
from tracker_sms.schemas import HealthResponse
from tracker_sms.storage import check_db_health, dispose_engine, init_db, seed_db, wait_for_db
from tracker_sms.utils import memory_usage


# Setup structured JSON logging
setup_logging(settings.LOG_LEVEL)
logger = logging.getLogger(__name__)

STARTED_AT = time.monotonic()


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Lifespan context manager for startup and shutdown events.
    - Startup: wait for the database, create tables, apply seed data
    - Shutdown: drain the connection pool
    """
    wait_for_db()
    init_db()
    if settings.SEED_DATABASE:
        seed_db()
    logger.info(f"Tracker SMS API started (environment={settings.ENVIRONMENT})")
    yield
    logger.info("Shutting down, closing database connections")
    dispose_engine()


app = FastAPI(
    title="Tracker SMS API",
    description="SMS command dispatch and history tracking for GPS tracker fleets",
    version=__version__,
    lifespan=lifespan,
)

app.state.rate_limiter = RateLimiter(
    max_requests=settings.RATE_LIMIT_MAX,
    window_seconds=settings.RATE_LIMIT_WINDOW_SECONDS,
    max_entries=settings.RATE_LIMIT_MAX_ENTRIES,
)

# Starlette runs the most recently added middleware first:
# request logging -> CORS -> rate limiting -> routes
app.add_middleware(
    RateLimitMiddleware,
    limiter=app.state.rate_limiter,
    exempt_prefixes=("/health", "/metrics"),
)
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.allowed_origins,
    allow_credentials=True,
    allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
    allow_headers=["Content-Type", "Authorization", "X-Requested-With", "X-API-Key"],
)
app.add_middleware(RequestLoggingMiddleware)

for router in routers:
    app.include_router(router)


# =============================================================================
# Exception Handlers
# =============================================================================

@app.exception_handler(ServiceError)
async def service_error_handler(request: Request, exc: ServiceError) -> JSONResponse:
    return JSONResponse(status_code=exc.status_code, content=exc.to_body())


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Pydantic body/query/path validation failures are client errors (400)."""
    errors = exc.errors()
    first = errors[0] if errors else {}
    location = ".".join(str(part) for part in first.get("loc", ()))
    message = f"{location}: {first.get('msg')}" if location else first.get("msg")
    logger.info(f"Validation failed on {request.url.path}: {message}")
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content={
            "success": False,
            "error": "Validation failed",
            "message": message,
            "details": [
                {"loc": list(err.get("loc", ())), "msg": err.get("msg"), "type": err.get("type")}
                for err in errors
            ],
        },
    )


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    if exc.status_code == status.HTTP_404_NOT_FOUND and exc.detail == "Not Found":
        return JSONResponse(
            status_code=exc.status_code,
            content={
                "success": False,
                "error": "Route not found",
                "path": request.url.path,
                "method": request.method,
                "timestamp": datetime.now(timezone.utc).isoformat(),
                "suggestion": "Check the API documentation at /api",
            },
        )
    return JSONResponse(
        status_code=exc.status_code,
        content={"success": False, "error": str(exc.detail)},
        headers=getattr(exc, "headers", None),
    )


@app.exception_handler(Exception)
async def unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception(f"Unhandled error on {request.method} {request.url.path}")
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={
            "success": False,
            "error": "Internal server error",
            "message": str(exc) if settings.is_development else "Internal server error",
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "requestId": getattr(request.state, "request_id", None),
        },
    )


# =============================================================================
# Health Check Routes
# =============================================================================

@app.get("/health/live", response_model=HealthResponse)
async def health_live() -> HealthResponse:
    """
    Liveness probe - always returns 200 once the app is running.
    """
    return HealthResponse(status="ok")


@app.get("/health", response_model=HealthResponse, response_model_exclude_none=True)
async def health(response: Response) -> HealthResponse:
    """
    Readiness check with a database round-trip.

    Returns 503 (Service Unavailable) when the database cannot be reached.
    """
    now = datetime.now(timezone.utc).isoformat()
    uptime = round(time.monotonic() - STARTED_AT, 2)

    try:
        database = check_db_health()
    except Exception as e:
        logger.error(f"Health check failed: {e}")
        response.status_code = status.HTTP_503_SERVICE_UNAVAILABLE
        return HealthResponse(
            status="unhealthy",
            timestamp=now,
            uptime=uptime,
            error="Database connection failed",
            details=str(e) if settings.is_development else "Service unavailable",
        )

    return HealthResponse(
        status="healthy",
        timestamp=now,
        uptime=uptime,
        environment=settings.ENVIRONMENT,
        version=__version__,
        database=database,
        memory=memory_usage(),
        system={
            "platform": sys.platform,
            "python_version": platform.python_version(),
            "pid": os.getpid(),
        },
    )


# =============================================================================
# API Information Route
# =============================================================================

@app.get("/api")
async def api_info() -> dict:
    """Index of the available endpoints."""
    return {
        "name": "Tracker SMS API",
        "version": __version__,
        "description": "SMS command system for GPS trackers",
        "endpoints": {
            "models": {
                "GET /api/models": "List device models",
                "POST /api/models": "Add a device model",
                "GET /api/models/{id}": "Get a device model",
                "PUT /api/models/{id}": "Update a device model",
                "DELETE /api/models/{id}": "Delete a device model",
            },
            "commands": {
                "GET /api/models/{modelId}/commands": "List commands of a model",
                "GET /api/commands": "List all commands",
                "POST /api/commands": "Add a command",
                "PUT /api/commands/{id}": "Update a command",
                "DELETE /api/commands/{id}": "Delete a command",
            },
            "sms": {
                "POST /api/sms/send": "Send an SMS command",
                "GET /api/sms/history": "Send history",
                "GET /api/sms/stats": "Send statistics",
            },
            "reports": {
                "GET /api/reports/pdf": "PDF report (not implemented)",
                "GET /api/reports/csv": "Export CSV data",
            },
        },
    }


# =============================================================================
# Metrics Route
# =============================================================================

@app.get("/metrics")
async def metrics() -> Response:
    """
    Expose Prometheus-style metrics.
    """
    return Response(
        content=get_metrics(),
        media_type=get_metrics_content_type()
    )
