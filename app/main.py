"""
WERK Payroll Platform - FastAPI Application

Layout:
1. /docs and /openapi.json at root level (no API prefix)
2. Middleware order: CORS → CorrelationId → Logging → SecureHeaders
3. init_db() only at startup, inside the lifespan
4. Every error leaves as {"success": false, "errors": [...]}
5. Routers are aggregated in app.routers.api_router
"""
import logging
import os
import shutil
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import Union

from fastapi import FastAPI, HTTPException, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy import text
from starlette.exceptions import HTTPException as StarletteHTTPException

from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded

# Core imports (leaf modules - safe for circular imports)
import app.models  # noqa: F401  Force model registration with SQLAlchemy
from app.core.config import settings
from app.core.exceptions import AppException
from app.core.limiter import limiter
from app.core.logging import setup_logging
from app.core.middleware import CorrelationIdMiddleware, LoggingMiddleware, SecureHeadersMiddleware
from app.core.schemas import ErrorItem, ErrorResponse
from app.database import SessionLocal, init_db
from app.routers.api_router import api_router

# ============================================================================
# LOGGING SETUP
# ============================================================================
setup_logging()
logger = logging.getLogger(__name__)


# ============================================================================
# LIFESPAN MANAGEMENT
# ============================================================================
@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Application lifecycle manager.
    - Startup: Initialize database once
    - Shutdown: nothing to release; sessions are request-scoped
    """
    logger.info(f"Starting {settings.app_name} v{settings.version} ({settings.environment})")

    try:
        init_db()
        logger.info("Database initialized successfully")
    except Exception as e:
        logger.error(f"Database initialization failed: {e}")
        raise

    yield

    logger.info("Gracefully shutting down...")


# ============================================================================
# FASTAPI INSTANCE
# ============================================================================
app = FastAPI(
    title=settings.app_name,
    version=settings.version,
    description="Payroll settlement and attendance integrity API",
    docs_url="/docs",
    openapi_url="/openapi.json",
    lifespan=lifespan,
)

# ============================================================================
# RATE LIMITER
# ============================================================================
app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)

# ============================================================================
# MIDDLEWARE STACK
# Add in REVERSE order (last added runs first)
# ============================================================================
app.add_middleware(SecureHeadersMiddleware)
app.add_middleware(LoggingMiddleware)
app.add_middleware(CorrelationIdMiddleware)

# CORS (outermost - runs first on requests, last on responses)
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
    expose_headers=[settings.request_id_header, "X-Process-Time"],
)


# ============================================================================
# EXCEPTION HANDLERS
# ============================================================================
@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    """Handle FastAPI validation errors (422) with structured format."""
    errors = []
    for error in exc.errors():
        # loc is usually ('body', 'field_name')
        field = error["loc"][-1] if len(error["loc"]) > 0 else "unknown"
        errors.append(ErrorItem(field=str(field), msg=error["msg"], code="VALIDATION_ERROR"))

    logger.warning(f"Validation Error: {[e.msg for e in errors]}", extra={"path": request.url.path})
    return JSONResponse(
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        content=ErrorResponse(errors=errors).to_dict(),
    )


@app.exception_handler(AppException)
async def app_exception_handler(request: Request, exc: AppException):
    """Handle domain-specific application exceptions."""
    log = logger.error if exc.status_code >= 500 else logger.warning
    log(f"AppException: {exc.message}", extra={"code": exc.error_code, "path": request.url.path})
    return JSONResponse(
        status_code=exc.status_code,
        content=ErrorResponse(
            errors=[ErrorItem(msg=exc.message, code=exc.error_code)],
            retryable=exc.retryable,
        ).to_dict(),
    )


@app.exception_handler(StarletteHTTPException)
@app.exception_handler(HTTPException)
async def http_exception_handler(request: Request, exc: Union[HTTPException, StarletteHTTPException]):
    """Handle standard HTTP exceptions."""
    return JSONResponse(
        status_code=exc.status_code,
        content=ErrorResponse(
            errors=[ErrorItem(msg=exc.detail if isinstance(exc.detail, str) else "Request failed")]
        ).to_dict(),
        headers=getattr(exc, "headers", None),
    )


@app.exception_handler(Exception)
async def general_exception_handler(request: Request, exc: Exception):
    """Fallback handler for unhandled server errors."""
    logger.exception("Unhandled server error", extra={"path": request.url.path})
    return JSONResponse(
        status_code=500,
        content=ErrorResponse(errors=[ErrorItem(msg="An unexpected server error occurred.")]).to_dict(),
    )


# ============================================================================
# ROUTER INCLUSION
# API prefix applied ONLY to routers, not to docs
# ============================================================================
app.include_router(api_router, prefix=settings.api_prefix)


# ============================================================================
# OPERATIONAL ENDPOINTS (at root level)
# ============================================================================
@app.get("/", tags=["Health"])
def root():
    """API root endpoint."""
    return {
        "message": f"{settings.app_name} API",
        "version": settings.version,
        "docs": "/docs",
    }


@app.get("/health", tags=["Health"])
def health_check():
    """Liveness probe for load balancers and orchestrators."""
    return {
        "status": "up",
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "version": settings.version,
        "environment": settings.environment,
    }


@app.get("/readiness", tags=["Health"])
def readiness_check():
    """
    Readiness probe. The database must answer; payslip storage must be
    writable, and a qpdf encryptor must find its binary.
    """
    components = {}
    try:
        with SessionLocal() as session:
            session.execute(text("SELECT 1"))
        components["database"] = "connected"
    except Exception as e:
        logger.error(f"Readiness check failed: {e}")
        raise HTTPException(status_code=503, detail="Service not ready")

    payslip_dir = settings.payroll.payslip_dir
    os.makedirs(payslip_dir, exist_ok=True)
    components["payslip_storage"] = "writable" if os.access(payslip_dir, os.W_OK) else "read-only"

    encryptor = settings.payroll.pdf_encryptor
    if encryptor == "qpdf" and shutil.which(settings.payroll.qpdf_binary) is None:
        components["pdf_encryptor"] = "qpdf missing"
    else:
        components["pdf_encryptor"] = encryptor

    ready = components["payslip_storage"] == "writable" and components["pdf_encryptor"] != "qpdf missing"
    if not ready:
        logger.error("Readiness check failed", extra={"components": components})
        return JSONResponse(status_code=503, content={"status": "not ready", "components": components})
    return {"status": "ready", "components": components}
