"""
Structlog configuration for the vendor deduplication backend.

One pipeline serves the API, the analysis job threads and anything
logging through stdlib (uvicorn, the operator scripts when imported).
Every event carries service, logger name, level and ISO timestamp, plus
the request context bound by the middleware (request_id, requested_by)
or the analysis_id bound by the job.

LOG_FORMAT picks the renderer: "json" for log shippers, "console" for
humans, unset means console on a terminal and JSON otherwise.
Call configure() once at app startup.
"""
import logging
import os
import sys

import structlog

LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO")
LOG_FORMAT = os.environ.get("LOG_FORMAT", "").lower()

SERVICE_NAME = "vendor-dedup"

# Vendor contact fields; masked wherever they show up as event keys
SENSITIVE_FIELDS = frozenset({"email", "phone", "contact_name"})
REDACTED = "[REDACTED]"


def add_service_name(logger, method_name, event_dict):
    event_dict.setdefault("service", SERVICE_NAME)
    return event_dict


def redact_contact_details(logger, method_name, event_dict):
    """Mask vendor contact fields, including inside vendor_a/vendor_b dicts."""
    for key, value in event_dict.items():
        if key in SENSITIVE_FIELDS and value:
            event_dict[key] = REDACTED
        elif isinstance(value, dict):
            event_dict[key] = {
                k: (REDACTED if k in SENSITIVE_FIELDS and v else v)
                for k, v in value.items()
            }
    return event_dict


def _render_processors() -> list:
    if LOG_FORMAT != "json" and (LOG_FORMAT == "console" or sys.stderr.isatty()):
        return [structlog.dev.ConsoleRenderer()]
    return [structlog.processors.format_exc_info, structlog.processors.JSONRenderer()]


def configure(log_level: str = LOG_LEVEL) -> None:
    """Configure structlog and route stdlib logging through it."""

    shared_processors = [
        structlog.contextvars.merge_contextvars,
        add_service_name,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.UnicodeDecoder(),
        redact_contact_details,
    ]

    structlog.configure(
        processors=[
            *shared_processors,
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    formatter = structlog.stdlib.ProcessorFormatter(
        processors=[
            structlog.stdlib.ProcessorFormatter.remove_processors_meta,
            *_render_processors(),
        ],
        foreign_pre_chain=shared_processors,
    )

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(formatter)

    root = logging.getLogger()
    root.handlers.clear()
    root.addHandler(handler)
    root.setLevel(getattr(logging, log_level.upper(), logging.INFO))

    # Request lines come from RequestLoggingMiddleware instead
    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)
    logging.getLogger("uvicorn.error").setLevel(logging.INFO)
