"""
Database schema for the vendor deduplication backend.

Tables:
- vendors: vendor records populated by ingestion; canonical_vendor_id is a
  nullable self-reference (NULL = canonical, set = duplicate of that vendor)
- vendor_duplicate_analyses: tracked background duplicate scans

ensure_schema() is idempotent and runs at application startup.
"""
import sqlite3

import structlog

logger = structlog.get_logger("vendordedup.schema")

SCHEMA_DDL = """
CREATE TABLE IF NOT EXISTS vendors (
    id TEXT PRIMARY KEY,
    external_id TEXT,
    canonical_vendor_id TEXT REFERENCES vendors(id) ON DELETE SET NULL,
    company_name TEXT NOT NULL,
    contact_name TEXT,
    email TEXT,
    phone TEXT,
    address_street TEXT,
    address_city TEXT,
    address_state TEXT,
    address_zip TEXT,
    vendor_type TEXT,
    vendor_trades TEXT,
    workers_comp_expires DATE,
    liability_ins_expires DATE,
    auto_ins_expires DATE,
    state_lic_expires DATE,
    do_not_use INTEGER NOT NULL DEFAULT 0,
    is_active INTEGER NOT NULL DEFAULT 1,
    created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
    updated_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
    CHECK (canonical_vendor_id IS NULL OR canonical_vendor_id != id)
);

CREATE INDEX IF NOT EXISTS idx_vendors_canonical ON vendors(canonical_vendor_id);
CREATE INDEX IF NOT EXISTS idx_vendors_company_name ON vendors(company_name);
CREATE UNIQUE INDEX IF NOT EXISTS idx_vendors_external_id ON vendors(external_id)
    WHERE external_id IS NOT NULL;

CREATE TABLE IF NOT EXISTS vendor_duplicate_analyses (
    id TEXT PRIMARY KEY,
    requested_by TEXT NOT NULL,
    status TEXT NOT NULL DEFAULT 'pending'
        CHECK (status IN ('pending', 'processing', 'completed', 'failed')),
    threshold REAL NOT NULL DEFAULT 0.6,
    result_limit INTEGER NOT NULL DEFAULT 50,
    results TEXT,
    total_vendors INTEGER,
    comparisons_made INTEGER,
    duplicates_found INTEGER,
    error_message TEXT,
    started_at TIMESTAMP,
    completed_at TIMESTAMP,
    created_at TIMESTAMP NOT NULL
);

CREATE INDEX IF NOT EXISTS idx_vda_status ON vendor_duplicate_analyses(status);
CREATE INDEX IF NOT EXISTS idx_vda_requested ON vendor_duplicate_analyses(requested_by, created_at);

-- At most one pending/processing analysis: every in-flight row indexes the same value
CREATE UNIQUE INDEX IF NOT EXISTS idx_vda_single_in_flight
    ON vendor_duplicate_analyses((status IN ('pending', 'processing')))
    WHERE status IN ('pending', 'processing');
"""


def ensure_schema(conn: sqlite3.Connection) -> None:
    """Create tables and indexes if they do not exist yet."""
    conn.executescript(SCHEMA_DDL)
    conn.commit()
    logger.debug("schema_ready")


def table_exists(conn: sqlite3.Connection, table_name: str) -> bool:
    """Check if a table exists in the database."""
    row = conn.execute(
        "SELECT name FROM sqlite_master WHERE type='table' AND name=?",
        (table_name,),
    ).fetchone()
    return row is not None
