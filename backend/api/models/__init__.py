# Pydantic models for API request/response
from .common import PaginationMeta, ErrorResponse
from .vendor import (
    VendorSummary,
    VendorListItem,
    VendorListResponse,
    VendorDetailResponse,
    MarkDuplicateRequest,
    LinkResponse,
    VendorDuplicatesResponse,
)
from .analysis import (
    ScoredPairResponse,
    PotentialDuplicatesResponse,
    StartAnalysisRequest,
    AnalysisSummary,
    AnalysisResponse,
    AnalysisListResponse,
)

__all__ = [
    "PaginationMeta",
    "ErrorResponse",
    "VendorSummary",
    "VendorListItem",
    "VendorListResponse",
    "VendorDetailResponse",
    "MarkDuplicateRequest",
    "LinkResponse",
    "VendorDuplicatesResponse",
    "ScoredPairResponse",
    "PotentialDuplicatesResponse",
    "StartAnalysisRequest",
    "AnalysisSummary",
    "AnalysisResponse",
    "AnalysisListResponse",
]
