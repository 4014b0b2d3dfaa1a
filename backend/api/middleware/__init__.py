"""Middleware package for the vendor deduplication API."""
from .logging_middleware import RequestLoggingMiddleware
from .error_handler import register_error_handlers

__all__ = ["RequestLoggingMiddleware", "register_error_handlers"]
