"""Common Pydantic models for pagination and error responses."""
from pydantic import BaseModel, Field
from typing import Any, Dict, Optional


class PaginationMeta(BaseModel):
    """Pagination metadata for list responses."""

    page: int = Field(..., description="Current page number (1-indexed)")
    per_page: int = Field(..., description="Items per page")
    total: int = Field(..., description="Total number of items")
    total_pages: int = Field(..., description="Total number of pages")
    has_next: bool = Field(False, description="A later page exists")
    has_prev: bool = Field(False, description="An earlier page exists")


class ErrorBody(BaseModel):
    code: str = Field(..., description="Machine-readable error code")
    message: str = Field(..., description="Human-readable message")
    details: Optional[Dict[str, Any]] = Field(None, description="Extra context, e.g. the offending ids")


class ErrorResponse(BaseModel):
    """Envelope produced by the global error handlers."""

    error: ErrorBody
