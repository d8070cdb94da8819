"""
FastAPI backend for the Code Tutor application.

This main file handles app initialization and router mounting.
All resource endpoints are organized in the routers/ directory.
"""

import uuid
import logging
from pathlib import Path
from datetime import datetime, timezone
from contextlib import asynccontextmanager

from dotenv import load_dotenv

# Load environment variables
env_paths = [
    Path.cwd() / '.env',
    Path(__file__).parent.parent / '.env',
]
for env_path in env_paths:
    if env_path.exists():
        load_dotenv(env_path)
        break

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware

# Import routers
from .routers import auth, users, chat, code_analysis, uploads

# Import dependencies and shared state
from . import dependencies
from .config import settings
from .constants import API_VERSION
from .database import init_db, check_database_health
from .exceptions import ResourceNotFoundError, register_exception_handlers
from .models import HealthResponse
from .security_middleware import SecurityHeadersMiddleware
from .upload_store import MemoryUploadStore, UploadSweeper

# =============================================================================
# Configuration
# =============================================================================

# Logging setup (configurable via environment variable)
LOG_LEVEL = settings.log_level
logging.basicConfig(level=getattr(logging, LOG_LEVEL, logging.INFO))
logger = logging.getLogger(__name__)


def _utc_timestamp() -> str:
    return datetime.now(timezone.utc).isoformat()

# =============================================================================
# Lifespan Event Handler
# =============================================================================

@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Lifespan event handler for FastAPI application.
    Creates tables on startup and runs the upload sweeper while serving.
    """
    init_db()
    logger.info("Database initialized")

    sweeper = None
    if isinstance(dependencies.upload_store, MemoryUploadStore):
        sweeper = UploadSweeper(dependencies.upload_store, settings.upload_sweep_interval_seconds)
        sweeper.start()

    yield  # Application runs here

    if sweeper:
        sweeper.stop()
    logger.info("Application shutting down")

# =============================================================================
# FastAPI Application
# =============================================================================

app = FastAPI(
    title="Code Tutor API",
    description="Users, chat history, code analyses and avatars for the Code Tutor frontend",
    version=API_VERSION,
    lifespan=lifespan
)

# Rate limiting
app.state.limiter = dependencies.limiter
if settings.testing:
    logger.info("Rate limits relaxed (test mode)")

# Error handlers ({"error": ..., "message": ...} bodies)
register_exception_handlers(app)

# CORS
origins = settings.cors_origins

# Warn if using wildcard CORS in production
if origins == ['*'] and settings.is_production:
    logger.warning(
        "SECURITY WARNING: CORS is set to allow ALL origins (*). "
        "Set ALLOWED_ORIGINS to specific domains."
    )

app.add_middleware(
    CORSMiddleware,
    allow_origins=origins,
    # Browsers reject credentialed requests to a wildcard origin
    allow_credentials=origins != ['*'],
    allow_methods=["*"],
    allow_headers=["*"],
)

# Add security headers to all responses
logger.info(f"Running in {settings.environment} environment")
app.add_middleware(SecurityHeadersMiddleware, environment=settings.environment)

# Request ID middleware
@app.middleware("http")
async def add_request_id(request: Request, call_next):
    """
    Add unique request ID to each request for tracing.
    A client-supplied X-Request-ID is echoed back.
    """
    request_id = request.headers.get("X-Request-ID") or str(uuid.uuid4())
    request.state.request_id = request_id

    response = await call_next(request)
    response.headers["X-Request-ID"] = request_id
    return response

# =============================================================================
# Mount Routers
# =============================================================================

app.include_router(auth.router)
app.include_router(users.router)
app.include_router(chat.router)
app.include_router(code_analysis.router)
app.include_router(uploads.router)

# =============================================================================
# Service Endpoints
# =============================================================================

@app.get("/", tags=["health"])
async def root():
    """API banner listing the resource prefixes."""
    return {
        "message": "Code Tutor API",
        "status": "running",
        "timestamp": _utc_timestamp(),
        "version": API_VERSION,
        "endpoints": {
            "auth": "/auth",
            "users": "/users",
            "chat": "/chat",
            "code_analysis": "/code-analysis",
            "upload": "/upload",
            "health": "/health",
        },
    }


@app.get("/health", response_model=HealthResponse, tags=["health"])
async def health_check() -> HealthResponse:
    """
    Health check endpoint.

    Reports "ok" when the database answers, "degraded" otherwise.
    """
    db_health = check_database_health()
    return HealthResponse(
        status="ok" if db_health.get("database_connected") else "degraded",
        timestamp=_utc_timestamp(),
        database=db_health,
    )


@app.get("/debug/env", tags=["health"])
async def debug_env():
    """
    Show which settings are configured, without their secret values.
    Not available in production.
    """
    if settings.is_production:
        raise ResourceNotFoundError("Endpoint")

    return {
        "environment": settings.environment,
        "testing": settings.testing,
        "jwt_secret_set": bool(settings.jwt_secret),
        "jwt_expires_in": settings.jwt_expires_in,
        "database_type": "postgresql" if settings.database_url.startswith("postgresql") else "sqlite",
        "frontend_url": settings.frontend_url,
        "backend_url": settings.backend_url,
        "upload_storage": settings.upload_storage,
    }


def run():
    """Console entry point: serve the app with uvicorn."""
    import uvicorn

    uvicorn.run(app, host=settings.host, port=settings.port, log_level=settings.log_level.lower())


if __name__ == "__main__":
    run()
