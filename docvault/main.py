"""
FastAPI Application Entry Point
Main application with all routes and middleware
"""

import time
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import AsyncGenerator

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.gzip import GZipMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from docvault.api.v1 import admin, documents, downloads, metadata, permissions
from docvault.core.config import settings
from docvault.core.exceptions import AppException
from docvault.core.logging import get_logger, setup_logging
from docvault.db import session as db_session
from docvault.models.common import ErrorResponse, HealthResponse
from docvault.monitoring import errors_total, record_request
from docvault.services.maintenance import TokenCleanupScheduler

# Setup logging
setup_logging()
logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator:
    """Application lifespan management"""
    logger.info(f"Starting {settings.APP_NAME} {settings.APP_VERSION}...")
    logger.info(f"Environment: {settings.ENVIRONMENT}")

    await db_session.init_db()

    scheduler = TokenCleanupScheduler(
        session_factory=db_session.async_session_maker,
        interval_seconds=settings.TOKEN_CLEANUP_INTERVAL_SECONDS,
    )
    scheduler.start()
    app.state.token_cleanup = scheduler

    yield

    # Shutdown
    logger.info("Shutting down...")
    await scheduler.stop()
    await db_session.close_db()
    logger.info("Shutdown complete")


# Create FastAPI application
app = FastAPI(
    title=settings.APP_NAME,
    description="Document storage with sharing, single-use download links and search",
    version=settings.APP_VERSION,
    docs_url="/docs" if settings.DEBUG else None,
    redoc_url="/redoc" if settings.DEBUG else None,
    openapi_url="/openapi.json" if settings.DEBUG else None,
    responses={code: {"model": ErrorResponse} for code in (400, 401, 403, 404, 409, 503)},
    lifespan=lifespan,
)


# CORS Middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# GZip Middleware
app.add_middleware(GZipMiddleware, minimum_size=1000)


def _endpoint(request: Request) -> str:
    """Route template, so path parameters such as token secrets stay out of labels"""
    route = request.scope.get("route")
    return getattr(route, "path", "unmatched")


@app.middleware("http")
async def record_metrics(request: Request, call_next):
    start_time = time.time()
    response = await call_next(request)
    record_request(request.method, _endpoint(request), response.status_code, time.time() - start_time)
    return response


# Exception Handlers
@app.exception_handler(AppException)
async def app_exception_handler(request: Request, exc: AppException) -> JSONResponse:
    """Handle application-specific exceptions"""
    errors_total.labels(error_type=exc.code, endpoint=_endpoint(request)).inc()
    if exc.status_code >= 500:
        logger.error(f"{request.method} {request.url.path} failed: {exc.code} {exc.message}")
    return JSONResponse(
        status_code=exc.status_code,
        content={
            "error": {
                "code": exc.code,
                "message": exc.message,
                "details": exc.details,
                "timestamp": exc.timestamp,
            }
        },
    )


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    """Handle HTTP exceptions"""
    if isinstance(exc.detail, dict):
        error_code = exc.detail.get("code", "http_error")
        error_message = exc.detail.get("message", str(exc.detail))
    else:
        error_code = str(exc.detail).lower().replace(" ", "_")
        error_message = str(exc.detail)

    return JSONResponse(
        status_code=exc.status_code,
        content={
            "error": {
                "code": error_code,
                "message": error_message,
                "details": None,
                "timestamp": datetime.now(timezone.utc).isoformat(),
            }
        },
    )


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Handle validation errors"""
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content={
            "error": {
                "code": "validation_error",
                "message": "Invalid request parameters",
                "details": {"errors": exc.errors()},
                "timestamp": datetime.now(timezone.utc).isoformat(),
            }
        },
    )


# Include routers (each router carries its mount prefix, so route.path is the full template)
app.include_router(documents.router)
app.include_router(metadata.router)
app.include_router(permissions.router)
app.include_router(downloads.router)
app.include_router(admin.router)


# Root endpoint
@app.get("/", tags=["Root"])
async def root():
    """Root endpoint"""
    return {
        "name": settings.APP_NAME,
        "version": settings.APP_VERSION,
        "environment": settings.ENVIRONMENT,
        "docs_url": "/docs" if settings.DEBUG else None,
    }


# Health check endpoint
@app.get("/health", response_model=HealthResponse, tags=["Health"])
async def health_check():
    """Health check endpoint"""
    services = {}
    healthy = True
    try:
        if await db_session.ping():
            services["database"] = "healthy"
        else:
            healthy = False
            services["database"] = "unhealthy: not initialized"
    except Exception as e:
        healthy = False
        services["database"] = f"unhealthy: {e}"

    return HealthResponse(
        status="healthy" if healthy else "degraded",
        version=settings.APP_VERSION,
        timestamp=datetime.now(timezone.utc).isoformat(),
        services=services,
    )


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "docvault.main:app",
        host=settings.HOST,
        port=settings.PORT,
        reload=settings.DEBUG,
        log_level=settings.LOG_LEVEL.lower(),
    )
