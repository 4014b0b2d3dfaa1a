"""
Canonical link service: merges and unmerges vendor records.

The canonical/duplicate relationship is a flat map from vendor id to an
optional canonical id. It stays a forest of depth 1 because every write
goes through two checks:

1. a vendor never points at itself (SELF_REFERENCE)
2. a vendor that others point at never becomes a duplicate (CHAIN_CREATION)

A target that is itself a duplicate is resolved to its own canonical
vendor before linking. Checks and write share one IMMEDIATE transaction.
"""
from __future__ import annotations

import sqlite3
from dataclasses import dataclass
from datetime import datetime, timezone

import structlog

from matching import VendorRecord

from ..dependencies import immediate_transaction
from ..middleware.error_handler import LinkValidationError
from .base_service import BaseService
from .vendor_service import vendor_service

logger = structlog.get_logger("vendordedup.services.links")


@dataclass
class LinkResult:
    """Outcome of a link change. changed=False means it was already in place."""
    vendor: VendorRecord
    changed: bool
    message: str
    redirected_from: str | None = None


class CanonicalLinkService(BaseService):
    """Enforces the depth-1 canonical/duplicate structure."""

    def is_canonical(self, vendor: VendorRecord) -> bool:
        return vendor.canonical_vendor_id is None

    def is_duplicate(self, vendor: VendorRecord) -> bool:
        return not self.is_canonical(vendor)

    def _duplicate_count(self, conn: sqlite3.Connection, vendor_id: str) -> int:
        row = self._execute_one(
            conn,
            "SELECT COUNT(*) FROM vendors WHERE canonical_vendor_id = ?",
            (vendor_id,),
        )
        return row[0]

    def mark_as_duplicate_of(
        self,
        conn: sqlite3.Connection,
        vendor_id: str,
        canonical_vendor_id: str,
    ) -> LinkResult:
        """
        Point a vendor at its canonical vendor.

        Raises:
            NotFoundError: either vendor does not exist
            LinkValidationError: SELF_REFERENCE or CHAIN_CREATION
        """
        with immediate_transaction(conn):
            vendor = vendor_service.require_vendor_record(conn, vendor_id)
            target = vendor_service.require_vendor_record(conn, canonical_vendor_id)

            if vendor.id == target.id:
                self._reject(
                    LinkValidationError.SELF_REFERENCE,
                    "A vendor cannot be marked as a duplicate of itself.",
                    vendor.id, target.id,
                )

            duplicate_count = self._duplicate_count(conn, vendor.id)
            if duplicate_count > 0:
                self._reject(
                    LinkValidationError.CHAIN_CREATION,
                    "This vendor has duplicates linked to it. Reassign those duplicates first.",
                    vendor.id, target.id,
                    duplicate_count=duplicate_count,
                )

            redirected_from = None
            if target.is_duplicate:
                redirected_from = target.id
                # Cannot be the vendor itself: it has no duplicates
                target = vendor_service.require_vendor_record(conn, target.canonical_vendor_id)

            if vendor.canonical_vendor_id == target.id:
                return LinkResult(
                    vendor=vendor,
                    changed=False,
                    message="Vendor is already a duplicate of this canonical vendor.",
                    redirected_from=redirected_from,
                )

            self._execute_write(
                conn,
                "UPDATE vendors SET canonical_vendor_id = ?, updated_at = ? WHERE id = ?",
                (target.id, _now(), vendor.id),
            )
            updated = vendor_service.require_vendor_record(conn, vendor.id)

        logger.info(
            "vendor_marked_duplicate",
            vendor_id=vendor.id,
            canonical_vendor_id=target.id,
            previous_canonical_vendor_id=vendor.canonical_vendor_id,
            redirected_from=redirected_from,
        )
        return LinkResult(
            vendor=updated,
            changed=True,
            message="Vendor marked as duplicate successfully.",
            redirected_from=redirected_from,
        )

    def mark_as_canonical(
        self,
        conn: sqlite3.Connection,
        vendor_id: str,
    ) -> LinkResult:
        """Detach a vendor from its canonical vendor. No-op if already canonical."""
        with immediate_transaction(conn):
            vendor = vendor_service.require_vendor_record(conn, vendor_id)
            if self.is_canonical(vendor):
                return LinkResult(
                    vendor=vendor,
                    changed=False,
                    message="Vendor is already canonical.",
                )

            self._execute_write(
                conn,
                "UPDATE vendors SET canonical_vendor_id = NULL, updated_at = ? WHERE id = ?",
                (_now(), vendor.id),
            )
            updated = vendor_service.require_vendor_record(conn, vendor.id)

        logger.info(
            "vendor_marked_canonical",
            vendor_id=vendor.id,
            previous_canonical_vendor_id=vendor.canonical_vendor_id,
        )
        return LinkResult(
            vendor=updated,
            changed=True,
            message="Vendor marked as canonical successfully.",
        )

    def duplicates_of(
        self,
        conn: sqlite3.Connection,
        vendor_id: str,
    ) -> list[VendorRecord]:
        """
        Vendors pointing at this vendor.

        Empty for a vendor that is itself a duplicate.
        """
        vendor = vendor_service.require_vendor_record(conn, vendor_id)
        if self.is_duplicate(vendor):
            return []

        rows = self._execute_many(
            conn,
            """
            SELECT id, canonical_vendor_id, company_name, contact_name,
                   email, phone, vendor_trades
            FROM vendors
            WHERE canonical_vendor_id = ?
            ORDER BY company_name, id
            """,
            (vendor.id,),
        )
        return [VendorRecord.from_row(row) for row in rows]

    def _reject(
        self,
        rule: str,
        message: str,
        vendor_id: str,
        canonical_vendor_id: str,
        **extra,
    ) -> None:
        details = {"rule": rule, "vendor_id": vendor_id, "canonical_vendor_id": canonical_vendor_id, **extra}
        logger.warning("vendor_link_rejected", **details)
        raise LinkValidationError(rule, message, details=details)


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


# Singleton instance for router use
link_service = CanonicalLinkService()
