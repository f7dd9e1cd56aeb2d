"""FastAPI main application for the voter-engagement dashboard."""
# type: ignore

from contextlib import asynccontextmanager

import asyncpg
from fastapi import APIRouter, FastAPI, HTTPException, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from starlette.middleware.base import BaseHTTPMiddleware

from app.api.routes import dashboard
from app.core.config import settings
from app.core.database import close_db_pool, init_db_pool
from app.core.exceptions import DashboardError
from app.core.logging_config import get_logger, setup_logging
from app.core.responses import (
    dashboard_error_response,
    error_body,
    error_response,
    error_response_dict,
    success_response,
)

# Setup logging
setup_logging()
logger = get_logger(__name__)


class SecurityHeadersMiddleware(BaseHTTPMiddleware):
    """Add security headers to all responses."""

    async def dispatch(self, request: Request, call_next):
        response = await call_next(request)

        response.headers["X-Content-Type-Options"] = "nosniff"
        response.headers["X-Frame-Options"] = "DENY"
        response.headers["Referrer-Policy"] = "strict-origin-when-cross-origin"
        response.headers["Content-Security-Policy"] = (
            "default-src 'none'; frame-ancestors 'none'"
        )

        # HSTS only in production with HTTPS
        if settings.ENVIRONMENT == "production":
            response.headers["Strict-Transport-Security"] = (
                "max-age=31536000; includeSubDomains; preload"
            )

        return response


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan manager - runs on startup and shutdown."""
    logger.info("Starting voter-engagement dashboard API...")
    logger.info(f"Environment: {settings.ENVIRONMENT}")

    # Initialize async database pool (skip in test environment)
    if settings.ENVIRONMENT != "test":
        await init_db_pool(settings)

    yield

    if settings.ENVIRONMENT != "test":
        await close_db_pool()
    logger.info("Shutting down voter-engagement dashboard API...")


app = FastAPI(
    title="Voter Engagement Dashboard",
    description="""
    **Voter Engagement Dashboard** - hierarchical member rollups for coordinators

    Member counts are grouped by voting location (State -> LGA -> Ward ->
    Polling Unit) and compared against INEC registered-voter totals.

    ## Authentication

    Include the JWT issued by the auth service in the Authorization header:

    ```
    Authorization: Bearer <your_jwt_token>
    ```

    ## Designations

    - **National Coordinator** / admin: all states
    - **State Coordinator**: LGAs of the assigned state
    - **LGA Coordinator**: wards of the assigned LGA
    - **Ward Coordinator**: polling units of the assigned ward

    ## API Versioning

    - `/v1/*` - Version 1 (current stable)
    - `/*` - Latest version (may change)
    """,
    version="1.0.0",
    lifespan=lifespan,
    docs_url="/docs",
    redoc_url="/redoc",
)

# Add security headers middleware FIRST (before CORS)
app.add_middleware(SecurityHeadersMiddleware)

if settings.ENVIRONMENT == "development":
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["GET", "OPTIONS"],
        allow_headers=["*"],
    )
else:
    logger.info(f"CORS allowed origins: {settings.cors_origins_list}")
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins_list,
        allow_credentials=True,
        allow_methods=["GET", "OPTIONS"],
        allow_headers=["Authorization", "Content-Type", "Accept", "Origin"],
    )


# Exception handlers
@app.exception_handler(DashboardError)
async def dashboard_exception_handler(request: Request, exc: DashboardError):
    """Render domain errors with their own status code."""
    if exc.status_code >= 500:
        logger.error(f"{type(exc).__name__}: {exc.message}", exc_info=exc.__cause__)
    return dashboard_error_response(exc)


@app.exception_handler(HTTPException)
async def http_exception_handler(request: Request, exc: HTTPException):
    """Handle HTTP exceptions with standardized error responses."""
    # If the detail is already a dict (from our error_response), use it directly
    if isinstance(exc.detail, dict):
        return error_response_dict(exc.detail, exc.status_code, exc.headers)
    return error_response_dict(error_body(exc.detail), exc.status_code, exc.headers)


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    """Handle Pydantic validation errors."""
    errors = {}
    for error in exc.errors():
        field = ".".join(str(loc) for loc in error["loc"])
        errors[field] = error["msg"]

    return error_response_dict(error_body("Validation failed", errors=errors), 422)


@app.exception_handler(asyncpg.exceptions.PostgresError)
async def database_exception_handler(
    request: Request, exc: asyncpg.exceptions.PostgresError
):
    """Handle database errors."""
    logger.error(f"Database error: {exc}", exc_info=True)
    return error_response_dict(error_body("Server error while fetching dashboard data"), 500)


@app.exception_handler(Exception)
async def general_exception_handler(request: Request, exc: Exception):
    """Handle unexpected errors."""
    logger.error(f"Unexpected error: {exc}", exc_info=True)
    return error_response_dict(error_body("An unexpected error occurred"), 500)


# Create versioned API router
v1_router = APIRouter(prefix="/v1")
v1_router.include_router(dashboard.router)
app.include_router(v1_router)

# Also include routers at root level for backward compatibility (latest version)
app.include_router(dashboard.router)


@app.get("/health")
async def health_check():
    """
    Health check endpoint for monitoring and load balancers.

    Returns 200 when the API and database are reachable, 503 otherwise.
    """
    import time

    from app.core.database import get_db_connection, get_pool

    health_status = {"status": "healthy", "timestamp": time.time(), "checks": {}}
    health_status["checks"]["api"] = {"status": "healthy", "message": "API is running"}

    try:
        async with get_db_connection() as conn:
            await conn.fetchval("SELECT 1")

        pool = get_pool()
        pool_size = pool.get_size()
        pool_idle = pool.get_idle_size()
        health_status["checks"]["database"] = {
            "status": "healthy",
            "message": "Database is accessible",
            "pool": {
                "size": pool_size,
                "max": pool.get_max_size(),
                "idle": pool_idle,
                "active": pool_size - pool_idle,
            },
        }
    except (DashboardError, asyncpg.PostgresError, OSError) as e:
        health_status["status"] = "unhealthy"
        health_status["checks"]["database"] = {
            "status": "unhealthy",
            "message": f"Database check failed: {e!s}",
        }
        return error_response(
            message="Health check failed", data=health_status, status_code=503
        )

    return success_response(data=health_status)
