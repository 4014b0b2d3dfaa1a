"""
API router for vendor endpoints.

Provides vendor listing and details, duplicate detection (synchronous
scan and tracked background analyses), and canonical/duplicate linking.

Thin router: business logic lives in the services.
Static paths are declared before /{vendor_id} so they are not captured by it.
"""
from typing import List, Optional

import structlog
from fastapi import APIRouter, BackgroundTasks, Header, Path, Query

from ..config.constants import (
    ANONYMOUS_REQUESTER,
    DEFAULT_LIMIT,
    DEFAULT_THRESHOLD,
    MAX_LIMIT,
    MIN_LIMIT,
)
from ..dependencies import get_db
from ..middleware.error_handler import NotFoundError
from ..models.analysis import (
    AnalysisListResponse,
    AnalysisResponse,
    PotentialDuplicatesResponse,
    StartAnalysisRequest,
)
from ..models.common import ErrorResponse, PaginationMeta
from ..models.vendor import (
    LinkResponse,
    MarkDuplicateRequest,
    VendorDetailResponse,
    VendorDuplicatesResponse,
    VendorListItem,
    VendorListResponse,
)
from ..services.analysis_job import run_duplicate_analysis
from ..services.duplicate_service import duplicate_service
from ..services.link_service import LinkResult, link_service
from ..services.vendor_service import vendor_service

logger = structlog.get_logger("vendordedup.api.vendors")

router = APIRouter(
    prefix="/vendors",
    tags=["vendors"],
    responses={404: {"model": ErrorResponse}, 422: {"model": ErrorResponse}},
)


def _link_response(result: LinkResult) -> LinkResponse:
    return LinkResponse(
        message=result.message,
        changed=result.changed,
        vendor=result.vendor.to_dict(),
        canonical_vendor_id=result.vendor.canonical_vendor_id,
        redirected_from=result.redirected_from,
    )


# =============================================================================
# VENDOR LIST
# =============================================================================

@router.get("", response_model=VendorListResponse)
def list_vendors(
    page: int = Query(1, ge=1, description="Page number (1-indexed)"),
    per_page: int = Query(50, ge=1, le=200, description="Items per page"),
    search: Optional[str] = Query(None, min_length=2, description="Search company, contact or email"),
    include_duplicates: bool = Query(False, description="Also list vendors marked as duplicates"),
    active: Optional[bool] = Query(None, description="Filter by active flag"),
    sort_by: str = Query("company_name", description="Sort field: company_name, created_at, duplicate_count"),
    sort_order: str = Query("asc", pattern="^(asc|desc)$", description="Sort order"),
):
    """
    List vendors with pagination and filters.

    Canonical vendors only unless include_duplicates is set. Each vendor
    carries the number of duplicates linked to it.
    """
    with get_db() as conn:
        result = vendor_service.list_vendors(
            conn,
            page=page,
            per_page=per_page,
            search=search,
            include_duplicates=include_duplicates,
            is_active=active,
            sort_by=sort_by,
            sort_order=sort_order,
        )

    filters_applied = {}
    if search:
        filters_applied["search"] = search
    if include_duplicates:
        filters_applied["include_duplicates"] = True
    if active is not None:
        filters_applied["active"] = active

    return VendorListResponse(
        data=[VendorListItem(**row) for row in result.data],
        pagination=PaginationMeta(**result.pagination),
        filters_applied=filters_applied,
    )


# =============================================================================
# DUPLICATE DETECTION
# =============================================================================

@router.get("/potential-duplicates", response_model=PotentialDuplicatesResponse)
def get_potential_duplicates(
    threshold: float = Query(DEFAULT_THRESHOLD, ge=0.0, le=1.0, description="Minimum similarity (0-1)"),
    limit: int = Query(DEFAULT_LIMIT, ge=MIN_LIMIT, le=MAX_LIMIT, description="Maximum pairs returned"),
    vendor_ids: Optional[List[str]] = Query(None, description="Restrict the scan to these vendors"),
):
    """
    Score canonical vendors pairwise and return likely duplicates, best first.

    Runs inside the request; use the duplicate-analysis endpoints for the
    full vendor list.
    """
    with get_db() as conn:
        return duplicate_service.find_duplicates(
            conn,
            threshold=threshold,
            limit=limit,
            vendor_ids=vendor_ids,
        )


@router.post(
    "/duplicate-analysis",
    response_model=AnalysisResponse,
    status_code=202,
    responses={409: {"model": ErrorResponse}},
)
def start_duplicate_analysis(
    background_tasks: BackgroundTasks,
    request: Optional[StartAnalysisRequest] = None,
    x_user_id: Optional[str] = Header(None, description="Requesting user"),
):
    """
    Start a background duplicate analysis over all canonical vendors.

    Returns the pending analysis (202). Poll GET /duplicate-analysis/{id}
    for the outcome. 409 while another analysis is pending or processing.
    """
    params = request or StartAnalysisRequest()
    with get_db() as conn:
        return duplicate_service.start_analysis(
            conn,
            requested_by=x_user_id or ANONYMOUS_REQUESTER,
            threshold=params.threshold,
            limit=params.limit,
            schedule=lambda analysis_id: background_tasks.add_task(run_duplicate_analysis, analysis_id),
        )


@router.get("/duplicate-analysis", response_model=AnalysisListResponse)
def list_duplicate_analyses(
    limit: int = Query(20, ge=1, le=100, description="Maximum analyses returned"),
):
    """Recent analyses, newest first, without their result payloads."""
    with get_db() as conn:
        analyses = duplicate_service.list_analyses(conn, limit=limit)
    return {"data": analyses, "total": len(analyses)}


@router.get("/duplicate-analysis/latest", response_model=AnalysisResponse)
def get_latest_duplicate_analysis():
    """Most recently requested analysis, whatever its status."""
    with get_db() as conn:
        return duplicate_service.get_latest_analysis(conn)


@router.get("/duplicate-analysis/{analysis_id}", response_model=AnalysisResponse)
def get_duplicate_analysis(
    analysis_id: str = Path(..., description="Analysis ID"),
):
    with get_db() as conn:
        return duplicate_service.get_analysis(conn, analysis_id)


# =============================================================================
# VENDOR DETAIL AND LINKS
# =============================================================================

@router.get("/{vendor_id}", response_model=VendorDetailResponse)
def get_vendor(
    vendor_id: str = Path(..., description="Vendor ID"),
):
    """Get one vendor, its canonical vendor (for duplicates) and duplicate count."""
    with get_db() as conn:
        detail = vendor_service.get_vendor_detail(conn, vendor_id)
    if not detail:
        raise NotFoundError(f"Vendor {vendor_id} not found", details={"vendor_id": vendor_id})
    return detail


@router.post("/{vendor_id}/mark-duplicate", response_model=LinkResponse)
def mark_vendor_duplicate(
    body: MarkDuplicateRequest,
    vendor_id: str = Path(..., description="Vendor to mark as duplicate"),
):
    """
    Mark a vendor as a duplicate of another vendor.

    422 with code SELF_REFERENCE or CHAIN_CREATION when the link would
    break the canonical/duplicate structure. A target that is itself a
    duplicate is replaced by its canonical vendor.
    """
    with get_db() as conn:
        result = link_service.mark_as_duplicate_of(conn, vendor_id, body.canonical_vendor_id)
    return _link_response(result)


@router.post("/{vendor_id}/mark-canonical", response_model=LinkResponse)
def mark_vendor_canonical(
    vendor_id: str = Path(..., description="Vendor to detach"),
):
    """Detach a vendor from its canonical vendor. No-op when already canonical."""
    with get_db() as conn:
        result = link_service.mark_as_canonical(conn, vendor_id)
    return _link_response(result)


@router.get("/{vendor_id}/duplicates", response_model=VendorDuplicatesResponse)
def get_vendor_duplicates(
    vendor_id: str = Path(..., description="Canonical vendor ID"),
):
    """Vendors linked to this vendor. Empty for a vendor that is itself a duplicate."""
    with get_db() as conn:
        duplicates = link_service.duplicates_of(conn, vendor_id)
    return {
        "vendor_id": vendor_id,
        "data": [vendor.to_dict() for vendor in duplicates],
        "total": len(duplicates),
    }
