"""Pydantic models for duplicate scans and duplicate analyses."""
from pydantic import BaseModel, Field
from typing import List, Optional

from ..config.constants import (
    ANALYSIS_MAX_THRESHOLD,
    ANALYSIS_MIN_THRESHOLD,
    AnalysisStatus,
    DEFAULT_LIMIT,
    DEFAULT_THRESHOLD,
    MAX_LIMIT,
    MIN_LIMIT,
)
from .vendor import VendorSummary


class ScoredPairResponse(BaseModel):
    """A candidate duplicate pair."""

    vendor_a: VendorSummary
    vendor_b: VendorSummary
    similarity: float = Field(..., ge=0, le=1, description="Weighted similarity, 3 decimals")
    match_reasons: List[str] = Field(default_factory=list, description="Why the pair matched")


class ScanMeta(BaseModel):
    total_vendors: int = Field(..., description="Canonical vendors compared")
    comparisons_made: int = Field(..., description="Pairs scored")
    potential_duplicates_count: int = Field(..., description="Pairs returned")
    threshold: float
    limit: int


class PotentialDuplicatesResponse(BaseModel):
    """Synchronous duplicate scan result."""

    data: List[ScoredPairResponse]
    meta: ScanMeta


class StartAnalysisRequest(BaseModel):
    """Body for POST /vendors/duplicate-analysis. All fields optional."""

    threshold: float = Field(
        DEFAULT_THRESHOLD,
        ge=ANALYSIS_MIN_THRESHOLD,
        le=ANALYSIS_MAX_THRESHOLD,
        description="Minimum similarity for a pair to be reported",
    )
    limit: int = Field(DEFAULT_LIMIT, ge=MIN_LIMIT, le=MAX_LIMIT, description="Maximum pairs stored")


class AnalysisSummary(BaseModel):
    """Analysis record without its result payload."""

    id: str
    requested_by: str
    status: AnalysisStatus
    threshold: float
    limit: int
    total_vendors: Optional[int] = None
    comparisons_made: Optional[int] = None
    duplicates_found: Optional[int] = None
    error_message: Optional[str] = None
    started_at: Optional[str] = None
    completed_at: Optional[str] = None
    created_at: str

    class Config:
        from_attributes = True


class AnalysisResponse(AnalysisSummary):
    """Analysis record; results is set once the analysis completed."""

    results: Optional[List[ScoredPairResponse]] = None


class AnalysisListResponse(BaseModel):
    data: List[AnalysisSummary]
    total: int
