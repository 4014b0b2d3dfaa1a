"""
Load vendor records from a CSV export.

Header names are matched case-insensitively against a few common
spellings. Rows with an external id already in the database update that
vendor in place; everything else is inserted as a new canonical vendor.
Existing canonical/duplicate links are never touched.

Usage:
    python -m scripts.load_vendors vendors.csv [--dry-run]
"""
import argparse
import csv
import logging
import sqlite3
import sys
import uuid
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional

from api import dependencies
from api.schema import ensure_schema

logger = logging.getLogger(__name__)
logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(message)s")

COLUMN_MAP = {
    "external_id": ["external_id", "vendor_id", "vendor_number", "id"],
    "company_name": ["company_name", "company", "vendor_name", "name"],
    "contact_name": ["contact_name", "contact", "primary_contact"],
    "email": ["email", "email_address", "contact_email"],
    "phone": ["phone", "phone_number", "telephone"],
    "address_street": ["address_street", "street", "address"],
    "address_city": ["address_city", "city"],
    "address_state": ["address_state", "state"],
    "address_zip": ["address_zip", "zip", "zip_code", "postal_code"],
    "vendor_type": ["vendor_type", "type"],
    "vendor_trades": ["vendor_trades", "trades"],
    "workers_comp_expires": ["workers_comp_expires"],
    "liability_ins_expires": ["liability_ins_expires"],
    "auto_ins_expires": ["auto_ins_expires"],
    "state_lic_expires": ["state_lic_expires"],
}

FIELDS = list(COLUMN_MAP)


def _find_col(header: list[str], candidates: list[str]) -> Optional[int]:
    for candidate in candidates:
        for i, h in enumerate(header):
            if h.strip().lower() == candidate:
                return i
    return None


def parse_csv(path: Path) -> list[dict]:
    """Read vendor rows; rows without a company name are skipped."""
    records = []
    with open(path, newline="", encoding="utf-8-sig") as f:
        reader = csv.reader(f)
        header = next(reader, None)
        if not header:
            return []

        col_idx = {field: _find_col(header, candidates) for field, candidates in COLUMN_MAP.items()}
        if col_idx["company_name"] is None:
            raise ValueError(f"{path}: no company name column in header {header}")

        for line_no, row in enumerate(reader, start=2):
            if not any(cell.strip() for cell in row):
                continue

            def get(field):
                idx = col_idx.get(field)
                value = row[idx].strip() if idx is not None and idx < len(row) else ""
                return value or None

            record = {field: get(field) for field in FIELDS}
            if not record["company_name"]:
                logger.warning(f"Line {line_no}: missing company name, skipped")
                continue
            records.append(record)

    logger.info(f"Parsed {len(records)} vendor records from {path}")
    return records


def save_to_db(conn: sqlite3.Connection, records: list[dict]) -> tuple[int, int]:
    """Insert or update vendors. Returns (inserted, updated)."""
    inserted = updated = 0
    now = datetime.now(timezone.utc).isoformat()
    cursor = conn.cursor()

    for rec in records:
        existing = None
        if rec["external_id"]:
            existing = cursor.execute(
                "SELECT id FROM vendors WHERE external_id = ?", (rec["external_id"],)
            ).fetchone()

        if existing:
            assignments = ", ".join(f"{field} = ?" for field in FIELDS if field != "external_id")
            cursor.execute(
                f"UPDATE vendors SET {assignments}, updated_at = ? WHERE id = ?",
                [rec[field] for field in FIELDS if field != "external_id"] + [now, existing[0]],
            )
            updated += 1
        else:
            columns = ["id", *FIELDS, "created_at", "updated_at"]
            cursor.execute(
                f"INSERT INTO vendors ({', '.join(columns)}) VALUES ({', '.join('?' * len(columns))})",
                [str(uuid.uuid4()), *(rec[field] for field in FIELDS), now, now],
            )
            inserted += 1

    conn.commit()
    logger.info(f"Saved vendors: {inserted} inserted, {updated} updated")
    return inserted, updated


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description="Load vendors from CSV")
    parser.add_argument("csv_path", type=Path, help="CSV file with a header row")
    parser.add_argument("--dry-run", action="store_true", help="Parse only, write nothing")
    args = parser.parse_args(argv)

    if not args.csv_path.exists():
        logger.error(f"File not found: {args.csv_path}")
        return 1

    try:
        records = parse_csv(args.csv_path)
    except ValueError as e:
        logger.error(str(e))
        return 1

    if args.dry_run:
        for rec in records[:10]:
            print(f"  {rec['external_id'] or '-':<12} {rec['company_name']}")
        logger.info(f"Dry run: {len(records)} records would be loaded")
        return 0

    with dependencies.get_db() as conn:
        ensure_schema(conn)
        save_to_db(conn, records)
    return 0


if __name__ == "__main__":
    sys.exit(main())
