"""
Vendor Deduplication API

REST API for reviewing vendor records, finding likely duplicates and
linking duplicates to their canonical vendor.

Run with: uvicorn api.main:app --port 8001 --reload
"""
import os
import sqlite3
import time as _time_module
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.middleware.gzip import GZipMiddleware

# Configure structured logging FIRST (before any logger calls)
from .middleware.structlog_config import configure as configure_logging
configure_logging()

import structlog

from . import dependencies
from .dependencies import get_db, verify_database_exists
from .middleware import RequestLoggingMiddleware, register_error_handlers
from .routers import vendors_router
from .schema import ensure_schema, table_exists

logger = structlog.get_logger("vendordedup.api")

# Track server start time for uptime reporting
_server_start_time = _time_module.time()


def _startup_checks():
    """Create missing tables and report the state of the vendor data."""
    checks = []

    with get_db() as conn:
        ensure_schema(conn)

        for table in ("vendors", "vendor_duplicate_analyses"):
            if not table_exists(conn, table):
                checks.append(f"table missing: {table}")

        vendor_count = conn.execute("SELECT COUNT(*) FROM vendors").fetchone()[0]
        if vendor_count == 0:
            checks.append("vendors table is empty")

        in_flight = conn.execute(
            "SELECT id, status, created_at FROM vendor_duplicate_analyses "
            "WHERE status IN ('pending', 'processing')"
        ).fetchall()
        for row in in_flight:
            # Left over from a previous process; blocks new analyses until failed
            checks.append(f"analysis {row['id']} still {row['status']} since {row['created_at']}")

    if checks:
        for c in checks:
            logger.warning("startup_check_warning", issue=c)
    else:
        logger.info("startup_checks_passed", vendor_count=vendor_count)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup: ensure schema and run checks."""
    _startup_checks()
    yield
    logger.info("Shutting down.")


# API metadata
API_TITLE = "Vendor Deduplication API"
API_DESCRIPTION = """
Find and merge duplicate vendor records.

### Core Endpoints

- **Vendors** - Canonical vendor listing and details
- **Potential duplicates** - On-demand similarity scan
- **Duplicate analysis** - Tracked background scan over all vendors
- **Links** - Mark a vendor as duplicate of, or detach it from, a canonical vendor
"""
API_VERSION = "1.0.0"

# Create FastAPI app
_docs_enabled = os.environ.get("ENABLE_DOCS", "true").lower() == "true"
app = FastAPI(
    title=API_TITLE,
    description=API_DESCRIPTION,
    version=API_VERSION,
    docs_url="/docs" if _docs_enabled else None,
    redoc_url="/redoc" if _docs_enabled else None,
    lifespan=lifespan,
)

# Register global error handlers
register_error_handlers(app)

# Request logging middleware (must be added before CORS/GZip so it wraps them)
app.add_middleware(RequestLoggingMiddleware)

# CORS middleware for frontend access
cors_origins = os.environ.get(
    "CORS_ORIGINS", "http://localhost:3000,http://127.0.0.1:3000"
).split(",")
if "*" in cors_origins:
    logger.warning("Wildcard CORS origin rejected for security; falling back to localhost defaults")
    cors_origins = ["http://localhost:3000", "http://127.0.0.1:3000"]
app.add_middleware(
    CORSMiddleware,
    allow_origins=cors_origins,
    allow_credentials=True,
    allow_methods=["GET", "POST"],
    allow_headers=["Content-Type", "Authorization", "Accept", "X-User-Id", "X-Request-ID"],
    expose_headers=["X-Request-ID"],
)

# Security headers middleware
@app.middleware("http")
async def security_headers(request: Request, call_next):
    response = await call_next(request)
    response.headers["X-Content-Type-Options"] = "nosniff"
    response.headers["X-Frame-Options"] = "DENY"
    response.headers["Referrer-Policy"] = "strict-origin-when-cross-origin"
    return response

# GZip compression for responses > 1KB (duplicate pair lists get large)
app.add_middleware(GZipMiddleware, minimum_size=1000)

# Include routers
app.include_router(vendors_router, prefix="/api/v1")


@app.get("/", tags=["root"])
async def root():
    """API root - returns basic info and links."""
    return {
        "name": API_TITLE,
        "version": API_VERSION,
        "docs": "/docs",
        "endpoints": {
            "vendors": "/api/v1/vendors",
            "vendor_detail": "/api/v1/vendors/{vendor_id}",
            "potential_duplicates": "/api/v1/vendors/potential-duplicates",
            "duplicate_analysis": "/api/v1/vendors/duplicate-analysis",
            "duplicate_analysis_latest": "/api/v1/vendors/duplicate-analysis/latest",
            "mark_duplicate": "/api/v1/vendors/{vendor_id}/mark-duplicate",
            "mark_canonical": "/api/v1/vendors/{vendor_id}/mark-canonical",
            "vendor_duplicates": "/api/v1/vendors/{vendor_id}/duplicates",
        },
    }


@app.get("/health", tags=["root"])
async def health_check():
    """Health check endpoint with database and uptime status."""
    uptime_seconds = round(_time_module.time() - _server_start_time)

    db_info = {"status": "not found"}
    db_reachable = False
    if verify_database_exists():
        try:
            conn = sqlite3.connect(str(dependencies.DB_PATH), timeout=5)
            cursor = conn.cursor()
            cursor.execute("SELECT COUNT(*) FROM vendors")
            vendor_count = cursor.fetchone()[0]
            cursor.execute(
                "SELECT COUNT(*) FROM vendor_duplicate_analyses "
                "WHERE status IN ('pending', 'processing')"
            )
            analyses_in_flight = cursor.fetchone()[0]
            conn.close()
            db_info = {
                "status": "connected",
                "vendor_count": vendor_count,
                "analyses_in_flight": analyses_in_flight,
            }
            db_reachable = True
        except sqlite3.Error:
            db_info = {"status": "error"}

    return JSONResponse(
        status_code=200 if db_reachable else 503,
        content={
            "status": "healthy" if db_reachable else "unavailable",
            "version": API_VERSION,
            "database": db_info,
            "uptime_seconds": uptime_seconds,
        },
    )
