"""
B.O.P Stack Configurator FastAPI Application
Main entry point for the backend server
"""

import logging
from contextlib import asynccontextmanager
from datetime import datetime

from fastapi import FastAPI, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from bop_stack.api import ingest, options, reports, stacks
from bop_stack.config import settings
from bop_stack.db.database import close_db, health_check_db, init_db
from bop_stack.exceptions import (
    AmbiguousSelectionError,
    CatalogParseError,
    DataIntegrityError,
    NoMatchError,
    NotFoundError,
    PreconditionViolationError,
    StackConfigError,
    UnknownPartTypeError,
)
from bop_stack.logging_config import setup_logging
from bop_stack.messages import SystemMessages

setup_logging(settings.LOG_LEVEL, settings.LOG_DIR)

logger = logging.getLogger(__name__)

API_VERSION = "1.0.0"

# ============================================================================
# STARTUP & SHUTDOWN EVENTS
# ============================================================================


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Manage application lifecycle - startup and shutdown.

    Startup: Initialize database, log startup info
    Shutdown: Close connections, log shutdown info
    """
    # === STARTUP ===
    logger.info("🚀 Starting B.O.P Stack API...")
    logger.info(f"Environment: {settings.ENVIRONMENT}")
    logger.info(f"Database: {settings.DATABASE_URL.split('@')[1] if '@' in settings.DATABASE_URL else settings.DATABASE_URL}")

    try:
        init_db()
        logger.info("✅ Database initialized successfully")
    except Exception as e:
        logger.error(f"❌ Database initialization failed: {str(e)}")
        raise

    yield

    # === SHUTDOWN ===
    logger.info("🛑 Shutting down B.O.P Stack API...")
    close_db()


# ============================================================================
# CREATE FASTAPI APPLICATION
# ============================================================================

app = FastAPI(
    title="B.O.P Stack Configurator API",
    description="Resolve flange specifications, build B.O.P stacks and generate reports",
    version=API_VERSION,
    docs_url="/docs",
    redoc_url="/redoc",
    openapi_url="/openapi.json",
    lifespan=lifespan,
)

# ============================================================================
# MIDDLEWARE
# ============================================================================

# 1. CORS Middleware - Allow frontend to call backend
app.add_middleware(
    CORSMiddleware,
    allow_origins=[
        settings.FRONTEND_URL,
        "http://localhost:5173",  # Development frontend
        "http://localhost:3000",  # Alternative port
    ],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
    expose_headers=["Content-Type", "Content-Disposition"],
)


# 2. Request logging middleware
@app.middleware("http")
async def log_requests(request: Request, call_next):
    """Log all incoming requests and responses"""
    start_time = datetime.utcnow()

    logger.debug(f"{request.method} {request.url.path}")

    response = await call_next(request)

    duration = (datetime.utcnow() - start_time).total_seconds()

    logger.info(
        f"{request.method} {request.url.path} - {response.status_code} ({duration:.3f}s)"
    )

    return response


# ============================================================================
# EXCEPTION HANDLERS
# ============================================================================

# Service outcome -> (HTTP status, error code)
ERROR_STATUS = [
    (NoMatchError, status.HTTP_404_NOT_FOUND, "NO_MATCH"),
    (AmbiguousSelectionError, status.HTTP_409_CONFLICT, "AMBIGUOUS_SELECTION"),
    (UnknownPartTypeError, status.HTTP_400_BAD_REQUEST, "UNKNOWN_PART_TYPE"),
    (PreconditionViolationError, status.HTTP_422_UNPROCESSABLE_ENTITY, "PRECONDITION_VIOLATION"),
    (NotFoundError, status.HTTP_404_NOT_FOUND, "NOT_FOUND"),
    (CatalogParseError, status.HTTP_400_BAD_REQUEST, "CATALOG_PARSE_ERROR"),
    (DataIntegrityError, status.HTTP_500_INTERNAL_SERVER_ERROR, "DATA_INTEGRITY"),
]


def _error_status(exc: StackConfigError):
    for error_type, status_code, error_code in ERROR_STATUS:
        if isinstance(exc, error_type):
            return status_code, error_code
    return status.HTTP_400_BAD_REQUEST, "STACK_CONFIG_ERROR"


@app.exception_handler(StackConfigError)
async def stack_config_exception_handler(request: Request, exc: StackConfigError):
    """Translate service outcomes that routes didn't handle themselves"""
    status_code, error_code = _error_status(exc)

    content = {
        "detail": exc.message,
        "error_code": error_code,
        "timestamp": datetime.utcnow().isoformat(),
    }

    if isinstance(exc, AmbiguousSelectionError):
        content["varying_attributes"] = exc.varying_attributes
        content["candidate_count"] = exc.candidate_count

    if isinstance(exc, DataIntegrityError):
        logger.error(f"Data integrity fault on {request.url.path}: {exc.message}")
        content["detail"] = SystemMessages.DATA_INTEGRITY
    else:
        logger.info(f"{request.method} {request.url.path} -> {error_code}: {exc.message}")

    return JSONResponse(status_code=status_code, content=content)


@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    """Handle any unhandled exceptions globally"""
    logger.error(f"Global exception handler: {str(exc)}", exc_info=True)

    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={
            "detail": SystemMessages.INTERNAL_ERROR,
            "error_code": "INTERNAL_ERROR",
            "timestamp": datetime.utcnow().isoformat(),
        },
    )


# ============================================================================
# HEALTH CHECK ENDPOINTS
# ============================================================================


@app.get("/", tags=["Root"])
async def root():
    """Root endpoint - API is running"""
    return {
        "message": "Welcome to B.O.P Stack Configurator API",
        "version": API_VERSION,
        "docs": "/docs",
        "status": "running",
    }


@app.get("/health", tags=["Health"])
async def health_check():
    """Health check endpoint for monitoring"""
    database_ok = health_check_db()
    return {
        "status": "healthy" if database_ok else "degraded",
        "database": "connected" if database_ok else "unavailable",
        "timestamp": datetime.utcnow().isoformat(),
        "environment": settings.ENVIRONMENT,
    }


# ============================================================================
# API ROUTERS
# ============================================================================

app.include_router(options.router, prefix="/api/options", tags=["Options"])
app.include_router(stacks.router, prefix="/api/stack", tags=["Stacks"])
app.include_router(reports.stack_router, prefix="/api/stack", tags=["Reports"])
app.include_router(reports.router, prefix="/api/reports", tags=["Reports"])
app.include_router(ingest.router, prefix="/api/ingest", tags=["Ingestion"])

logger.info("[OK] All routers registered")


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "bop_stack.main:app",
        host="0.0.0.0",
        port=8000,
        reload=settings.ENVIRONMENT == "development",
    )
