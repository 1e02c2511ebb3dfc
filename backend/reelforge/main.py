"""
ReelForge Backend API
FastAPI application for turning a topic idea into a captioned short-form reel

This is the main entry point that wires together all routes and services.
"""

import os
import shutil
import uuid
from contextlib import asynccontextmanager
from pathlib import Path

from fastapi import FastAPI, HTTPException, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from .config import (
    API_DESCRIPTION,
    API_TITLE,
    API_VERSION,
    CORS_ORIGINS,
    OUTPUT_DIR,
    PROJECT_DATA_DIR,
    UPLOAD_DIR,
)
from .core import (
    REQUIRED_MEDIA_TOOLS,
    ReelForgeError,
    clear_context,
    get_logger,
    missing_runtime_tools,
    parse_bool_env,
    run_startup_runtime_checks,
    set_request_id,
    setup_logging,
)
from .routes import pipeline_router, projects_router, timeline_router
from .services.storage import get_project_repository

# Initialize logging
log_level = os.getenv("LOG_LEVEL", "INFO")
log_file = os.getenv("LOG_FILE")
use_json_logs = os.getenv("JSON_LOGS", "false").lower() == "true"

setup_logging(
    level=log_level,
    log_file=Path(log_file) if log_file else None,
    use_json=use_json_logs,
)

logger = get_logger(__name__, service="api")
logger.info("Starting ReelForge Backend API", extra={
    "log_level": log_level,
    "json_logs": use_json_logs
})


async def _run_startup() -> None:
    """Check the runtime and fail projects left mid-stage by a restart."""
    strict_runtime = parse_bool_env(
        os.getenv("STARTUP_STRICT_RUNTIME_CHECKS"),
        default=os.getenv("ENV", "").lower() == "production",
    )
    runtime_report = run_startup_runtime_checks(
        directories={
            "uploads": UPLOAD_DIR,
            "outputs": OUTPUT_DIR,
            "projects": PROJECT_DATA_DIR,
        },
        strict_tools=strict_runtime,
        strict_dirs=True,
    )
    app.state.runtime_report = runtime_report
    logger.info("Startup runtime checks complete", extra={"runtime_report": runtime_report})

    get_project_repository().mark_interrupted_projects_failed()


@asynccontextmanager
async def lifespan(_app: FastAPI):
    await _run_startup()
    yield


# Create FastAPI app
app = FastAPI(
    title=API_TITLE,
    description=API_DESCRIPTION,
    version=API_VERSION,
    lifespan=lifespan,
)


@app.middleware("http")
async def add_request_correlation(request: Request, call_next):
    """Add correlation ID to every request and its log lines."""
    request_id = request.headers.get("X-Request-ID", str(uuid.uuid4()))
    set_request_id(request_id)
    path = request.url.path

    logger.info(f"{request.method} {path}", extra={
        "method": request.method,
        "path": path,
    })

    try:
        response = await call_next(request)
        response.headers["X-Request-ID"] = request_id
        logger.info(f"Response: {response.status_code}", extra={
            "status_code": response.status_code,
            "method": request.method,
            "path": path,
        })
        return response
    finally:
        clear_context()


@app.exception_handler(ReelForgeError)
async def reelforge_error_handler(request: Request, exc: ReelForgeError):
    """Precondition, provider and assembly errors keep their message verbatim."""
    if exc.status_code >= 500:
        logger.error("Request failed", extra={
            "path": request.url.path,
            "error_type": type(exc).__name__,
            "error": exc.message,
        })
    return JSONResponse(status_code=exc.status_code, content={"detail": exc.message})


# CORS middleware for frontend
app.add_middleware(
    CORSMiddleware,
    allow_origins=CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Include routers
app.include_router(projects_router)
app.include_router(pipeline_router)
app.include_router(timeline_router)


@app.get("/")
async def root():
    """Root endpoint - API info"""
    return {
        "message": "ReelForge API - Generate captioned short-form reels",
        "version": API_VERSION
    }


@app.get("/health")
async def health_check():
    """
    Health check endpoint for container orchestration.

    Validates:
    - Encoder binaries (ffmpeg, ffprobe)
    - Disk space availability

    Returns 200 if healthy, 503 if any check fails.
    """
    checks = {
        "status": "healthy",
        "checks": {}
    }
    all_healthy = True

    missing = missing_runtime_tools(REQUIRED_MEDIA_TOOLS)
    for tool in REQUIRED_MEDIA_TOOLS:
        available = tool not in missing
        checks["checks"][Path(tool).name] = {
            "available": available,
            "required": True,
            "path": shutil.which(tool) if available else None
        }
        if not available:
            all_healthy = False
            logger.warning(f"Health check: {tool} not found in PATH (REQUIRED)")

    # Warn if < 1GB available
    try:
        disk_stats = shutil.disk_usage(OUTPUT_DIR)
        free_space_gb = disk_stats.free / (1024 ** 3)
        checks["checks"]["disk_space"] = {
            "available_gb": round(free_space_gb, 2),
            "sufficient": free_space_gb > 1.0
        }
        if free_space_gb < 1.0:
            logger.warning(f"Health check: Low disk space ({free_space_gb:.2f} GB)")
    except OSError as e:
        checks["checks"]["disk_space"] = {
            "error": str(e),
            "sufficient": False
        }
        logger.error(f"Health check: Failed to check disk space: {e}")

    runtime_report = getattr(app.state, "runtime_report", None)
    if runtime_report is not None:
        checks["checks"]["runtime_startup"] = runtime_report

    if not all_healthy:
        checks["status"] = "unhealthy"
        raise HTTPException(status_code=503, detail=checks)

    return checks


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "reelforge.main:app",
        host="0.0.0.0",
        port=8000,
        reload=True,
        reload_excludes=["outputs/*", "project_data/*", "uploads/*", "*.pyc", "__pycache__/*"]
    )
