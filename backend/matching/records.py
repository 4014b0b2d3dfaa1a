"""
Vendor record projection used by the matching engine.

Only the columns needed for comparison are carried; the full vendor row
lives in the database and is never required by the scorer or finder.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Mapping

# Columns loaded for duplicate scanning
MATCH_COLUMNS = (
    "id",
    "canonical_vendor_id",
    "company_name",
    "contact_name",
    "email",
    "phone",
    "vendor_trades",
)


@dataclass(frozen=True)
class VendorRecord:
    """Immutable comparison view of a vendor."""

    id: str
    company_name: str | None = None
    contact_name: str | None = None
    email: str | None = None
    phone: str | None = None
    vendor_trades: str | None = None
    canonical_vendor_id: str | None = field(default=None, compare=False)

    @classmethod
    def from_row(cls, row: Mapping[str, Any]) -> VendorRecord:
        """Build a record from a sqlite3.Row or dict, ignoring extra columns."""
        keys = set(row.keys())
        values = {name: row[name] for name in MATCH_COLUMNS if name in keys}
        values["id"] = str(values["id"])
        return cls(**values)

    @property
    def is_canonical(self) -> bool:
        return self.canonical_vendor_id is None

    @property
    def is_duplicate(self) -> bool:
        return not self.is_canonical

    @property
    def effective_vendor_id(self) -> str:
        """Id used for grouping: the canonical vendor's id for duplicates."""
        return self.canonical_vendor_id or self.id

    def to_dict(self) -> dict:
        """Projection stored alongside scored pairs."""
        return {
            "id": self.id,
            "company_name": self.company_name,
            "contact_name": self.contact_name,
            "email": self.email,
            "phone": self.phone,
            "vendor_trades": self.vendor_trades,
        }
