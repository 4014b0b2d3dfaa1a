"""
Service layer for the vendor deduplication API.

Domain services encapsulate business logic, query construction,
and data mapping. Routers become thin: parse request → call service → return response.
"""
from .query_builder import QueryBuilder
from .pagination import paginate_query, PaginatedResult
from .vendor_service import vendor_service
from .link_service import link_service, LinkResult
from .duplicate_service import duplicate_service
from .analysis_job import DuplicateAnalysisJob, run_duplicate_analysis

__all__ = [
    "QueryBuilder",
    "paginate_query",
    "PaginatedResult",
    "vendor_service",
    "link_service",
    "LinkResult",
    "duplicate_service",
    "DuplicateAnalysisJob",
    "run_duplicate_analysis",
]
