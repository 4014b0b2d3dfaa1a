"""
Request logging middleware with structured JSON output.

Logs every request with method, path, status and duration, plus the
requester (X-User-Id) that analyses and link changes are attributed to.
A caller-supplied X-Request-ID is kept so a UI action can be followed
through to the analysis it started; otherwise a new id is issued.
Warns on slow requests, which usually means a large synchronous
duplicate scan that belongs in a background analysis.
"""
import os
import re
import time
import uuid

import structlog
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response

from .structlog_config import REDACTED, SENSITIVE_FIELDS

logger = structlog.get_logger("vendordedup.api.requests")

SLOW_REQUEST_MS = float(os.environ.get("SLOW_REQUEST_MS", "2000"))
QUIET_PATHS = ("/health", "/", "/docs", "/openapi.json")

# Repeated filters are summarized by count instead of listed
LIST_PARAMS = {"vendor_ids"}

_REQUEST_ID_RE = re.compile(r"^[A-Za-z0-9._-]{1,64}$")


def _request_id(request: Request) -> str:
    supplied = request.headers.get("x-request-id", "")
    if _REQUEST_ID_RE.match(supplied):
        return supplied
    return str(uuid.uuid4())[:8]


def _loggable_params(request: Request) -> dict:
    params: dict = {}
    for key, value in request.query_params.multi_items():
        if key in LIST_PARAMS:
            params[f"{key}_count"] = params.get(f"{key}_count", 0) + 1
        elif key.lower() in SENSITIVE_FIELDS:
            params[key] = REDACTED
        else:
            params[key] = value
    return params


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """Log all API requests with timing, requester and tracing id."""

    async def dispatch(self, request: Request, call_next) -> Response:
        request_id = _request_id(request)
        start_time = time.perf_counter()

        structlog.contextvars.clear_contextvars()
        structlog.contextvars.bind_contextvars(
            request_id=request_id,
            method=request.method,
            path=request.url.path,
        )
        requested_by = request.headers.get("x-user-id")
        if requested_by:
            structlog.contextvars.bind_contextvars(requested_by=requested_by)

        try:
            response = await call_next(request)
        except Exception:
            duration_ms = round((time.perf_counter() - start_time) * 1000, 1)
            logger.error("request_failed", duration_ms=duration_ms, status=500)
            raise

        duration_ms = round((time.perf_counter() - start_time) * 1000, 1)
        response.headers["X-Request-ID"] = request_id

        log_data = {
            "duration_ms": duration_ms,
            "status": response.status_code,
        }
        if request.url.path not in QUIET_PATHS:
            params = _loggable_params(request)
            if params:
                log_data["query_params"] = params

        if response.status_code >= 500:
            logger.error("request_completed", **log_data)
        elif duration_ms > SLOW_REQUEST_MS:
            logger.warning("slow_request", **log_data)
        elif response.status_code >= 400:
            logger.warning("request_completed", **log_data)
        else:
            logger.info("request_completed", **log_data)

        return response
