"""
Vendor domain service.

Read-side vendor queries: listing, detail, and the canonical-vendor
projection consumed by the duplicate finder. Vendors are written by
ingestion; the only column this backend changes is canonical_vendor_id
(see link_service).
"""
from __future__ import annotations

import sqlite3

import structlog

from matching import VendorRecord
from matching.records import MATCH_COLUMNS

from ..middleware.error_handler import NotFoundError
from .base_service import BaseService
from .query_builder import QueryBuilder
from .pagination import PaginatedResult

logger = structlog.get_logger("vendordedup.services.vendor")

# Sort field whitelist for vendor listing
VENDOR_SORT_WHITELIST = {
    "company_name": "v.company_name",
    "name": "v.company_name",
    "created_at": "v.created_at",
    "duplicate_count": "duplicate_count",
}

VENDOR_COLUMNS = """
    v.id, v.external_id, v.canonical_vendor_id, v.company_name, v.contact_name,
    v.email, v.phone, v.address_street, v.address_city, v.address_state,
    v.address_zip, v.vendor_type, v.vendor_trades, v.workers_comp_expires,
    v.liability_ins_expires, v.auto_ins_expires, v.state_lic_expires,
    v.do_not_use, v.is_active, v.created_at, v.updated_at,
    (SELECT COUNT(*) FROM vendors d WHERE d.canonical_vendor_id = v.id) AS duplicate_count
"""


class VendorService(BaseService):
    """Business logic for vendor queries."""

    def list_vendors(
        self,
        conn: sqlite3.Connection,
        *,
        page: int = 1,
        per_page: int = 50,
        search: str | None = None,
        include_duplicates: bool = False,
        is_active: bool | None = None,
        sort_by: str = "company_name",
        sort_order: str = "asc",
    ) -> PaginatedResult:
        """
        List vendors with pagination and filters.

        Canonical vendors only by default, each with its duplicate count.
        """
        qb = QueryBuilder("vendors v")
        qb.filter_canonical(include_duplicates, column="v.canonical_vendor_id")
        qb.filter_search(search, ["v.company_name", "v.contact_name", "v.email"])
        qb.filter_boolean(is_active, "v.is_active")
        qb.sort(
            sort_by,
            sort_order,
            whitelist=VENDOR_SORT_WHITELIST,
            default="v.company_name ASC, v.id ASC",
        )

        return self._paginated_list(
            conn, qb, VENDOR_COLUMNS, page, per_page,
            row_mapper=self.map_vendor_row,
        )

    @staticmethod
    def map_vendor_row(row: sqlite3.Row) -> dict:
        """Map a vendor database row to API response dict."""
        data = dict(row)
        for flag in ("do_not_use", "is_active"):
            if flag in data and data[flag] is not None:
                data[flag] = bool(data[flag])
        canonical_id = data.get("canonical_vendor_id")
        data["is_canonical"] = canonical_id is None
        data["is_duplicate"] = canonical_id is not None
        return data

    def get_vendor_detail(
        self,
        conn: sqlite3.Connection,
        vendor_id: str,
    ) -> dict | None:
        """Get one vendor with its canonical vendor, duplicate count and group."""
        row = self._execute_one(
            conn,
            f"SELECT {VENDOR_COLUMNS} FROM vendors v WHERE v.id = ?",
            (vendor_id,),
        )
        if row is None:
            return None

        vendor = self.map_vendor_row(row)
        vendor["canonical_vendor"] = None
        if vendor["canonical_vendor_id"]:
            canonical = self.get_vendor_record(conn, vendor["canonical_vendor_id"])
            vendor["canonical_vendor"] = canonical.to_dict() if canonical else None
        vendor["group_vendor_ids"] = self.group_vendor_ids(conn, vendor_id)
        return vendor

    def get_vendor_record(
        self,
        conn: sqlite3.Connection,
        vendor_id: str,
    ) -> VendorRecord | None:
        row = self._execute_one(
            conn,
            f"SELECT {', '.join(MATCH_COLUMNS)} FROM vendors WHERE id = ?",
            (vendor_id,),
        )
        return VendorRecord.from_row(row) if row else None

    def require_vendor_record(
        self,
        conn: sqlite3.Connection,
        vendor_id: str,
    ) -> VendorRecord:
        """Like get_vendor_record but raises NotFoundError for unknown ids."""
        vendor = self.get_vendor_record(conn, vendor_id)
        if vendor is None:
            raise NotFoundError(
                f"Vendor {vendor_id} not found",
                details={"vendor_id": vendor_id},
            )
        return vendor

    def load_canonical_vendors(
        self,
        conn: sqlite3.Connection,
        vendor_ids: list[str] | None = None,
    ) -> list[VendorRecord]:
        """
        Canonical vendors in a stable order (company name, then id).

        Args:
            vendor_ids: Optional working set; duplicates in it are ignored
        """
        qb = QueryBuilder("vendors")
        qb.filter_canonical()
        qb.filter_ids(vendor_ids)
        qb.order_by("company_name ASC, id ASC")
        sql, params = qb.build_select(", ".join(MATCH_COLUMNS))
        rows = self._execute_many(conn, sql, params)
        return [VendorRecord.from_row(row) for row in rows]

    def group_vendor_ids(
        self,
        conn: sqlite3.Connection,
        vendor_id: str,
    ) -> list[str]:
        """
        All vendor ids in the vendor's canonical group.

        The canonical vendor's id comes first, followed by its duplicates.
        """
        vendor = self.require_vendor_record(conn, vendor_id)
        canonical_id = vendor.effective_vendor_id
        rows = self._execute_many(
            conn,
            "SELECT id FROM vendors WHERE canonical_vendor_id = ? ORDER BY company_name, id",
            (canonical_id,),
        )
        return [canonical_id] + [row["id"] for row in rows]


# Singleton instance for router use
vendor_service = VendorService()
