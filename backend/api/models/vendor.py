"""Pydantic models for vendor and canonical link endpoints."""
from pydantic import BaseModel, Field
from typing import Any, Dict, List, Optional
from .common import PaginationMeta


class VendorSummary(BaseModel):
    """Matching projection of a vendor, as shown in duplicate pairs."""

    id: str = Field(..., description="Vendor ID")
    company_name: str = Field(..., description="Company name")
    contact_name: Optional[str] = Field(None, description="Primary contact")
    email: Optional[str] = Field(None, description="Contact email")
    phone: Optional[str] = Field(None, description="Contact phone as entered")
    vendor_trades: Optional[str] = Field(None, description="Comma-separated trades")

    class Config:
        from_attributes = True


class VendorListItem(BaseModel):
    """Vendor item for list responses."""

    id: str = Field(..., description="Vendor ID")
    company_name: str = Field(..., description="Company name")
    contact_name: Optional[str] = Field(None, description="Primary contact")
    email: Optional[str] = Field(None, description="Contact email")
    phone: Optional[str] = Field(None, description="Contact phone")
    vendor_type: Optional[str] = Field(None, description="Vendor type")
    vendor_trades: Optional[str] = Field(None, description="Comma-separated trades")
    canonical_vendor_id: Optional[str] = Field(None, description="Canonical vendor (set for duplicates)")
    is_canonical: bool = Field(..., description="True when the vendor is not a duplicate")
    is_duplicate: bool = Field(..., description="True when linked to a canonical vendor")
    duplicate_count: int = Field(0, description="Vendors linked to this one as duplicates")
    do_not_use: bool = Field(False, description="Flagged as do-not-use")
    is_active: bool = Field(True, description="Active vendor")

    class Config:
        from_attributes = True


class VendorListResponse(BaseModel):
    """Paginated vendor list."""

    data: List[VendorListItem]
    pagination: PaginationMeta
    filters_applied: Dict[str, Any] = Field(default_factory=dict)


class VendorDetailResponse(VendorListItem):
    """Full vendor detail response."""

    external_id: Optional[str] = Field(None, description="ID in the source system")
    address_street: Optional[str] = None
    address_city: Optional[str] = None
    address_state: Optional[str] = None
    address_zip: Optional[str] = None
    workers_comp_expires: Optional[str] = Field(None, description="Workers' comp expiry date")
    liability_ins_expires: Optional[str] = Field(None, description="Liability insurance expiry date")
    auto_ins_expires: Optional[str] = Field(None, description="Auto insurance expiry date")
    state_lic_expires: Optional[str] = Field(None, description="State license expiry date")
    created_at: Optional[str] = None
    updated_at: Optional[str] = None
    canonical_vendor: Optional[VendorSummary] = Field(None, description="Canonical vendor, for duplicates")
    group_vendor_ids: List[str] = Field(
        default_factory=list, description="Canonical vendor id followed by the ids of its duplicates"
    )


class MarkDuplicateRequest(BaseModel):
    """Body for POST /vendors/{id}/mark-duplicate."""

    canonical_vendor_id: str = Field(..., min_length=1, description="Vendor to link to")


class LinkResponse(BaseModel):
    """Result of a mark-duplicate or mark-canonical request."""

    message: str
    changed: bool = Field(..., description="False when the link was already in place")
    vendor: VendorSummary
    canonical_vendor_id: Optional[str] = Field(None, description="Canonical vendor after the change")
    redirected_from: Optional[str] = Field(
        None, description="Requested target, when it was a duplicate and the link went to its canonical vendor"
    )


class VendorDuplicatesResponse(BaseModel):
    """Vendors linked to a canonical vendor."""

    vendor_id: str
    data: List[VendorSummary]
    total: int
